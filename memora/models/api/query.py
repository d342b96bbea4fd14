"""Pydantic models for the /query router."""
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field

from memora.models.domain.queries import QueryAnswer, SourceDetail


class QueryRequest(BaseModel):
    space_id: str
    query: str = Field(..., min_length=1)
    log_history: bool = Field(
        default=True,
        description="If True, the answer is also recorded in the space's query history.",
    )


class QueryHistoryResponse(BaseModel):
    space_id: str
    queries: List[QueryAnswer] = []


class SourceDetailsRequest(BaseModel):
    space_id: str
    summary_ids: List[str]
    topics_referenced: Dict[str, List[str]] = Field(default_factory=dict)


class SourceDetailsResponse(BaseModel):
    space_id: str
    sources: List[SourceDetail] = []
