"""Domain models for query resolution results and query history."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field

from ._time import utcnow

MISSING_ENTRY_CONTENT = "Entry not found"
MISSING_ENTRY_SOURCE_TYPE = "unknown"
MISSING_ENTRY_CONTRIBUTOR = "Unknown"
ANONYMOUS_CONTRIBUTOR = "Anonymous"


def new_query_id() -> str:
    return f"query_{uuid.uuid4()}"


class SourcesUsed(BaseModel):
    summaries: List[str] = Field(default_factory=list)
    topics_referenced: Dict[str, List[str]] = Field(default_factory=dict)
    original_entries: List[str] = Field(default_factory=list)


class EntryDetail(BaseModel):
    entry_id: str
    content: str
    source_type: str
    timestamp: datetime
    contributor: str


class QueryAnswer(BaseModel):
    query_id: str = Field(default_factory=new_query_id)
    space_id: str
    original_query: str
    answer: str = ""
    sources_used: SourcesUsed = Field(default_factory=SourcesUsed)
    original_entry_details: List[EntryDetail] = Field(default_factory=list)
    confidence: float = 0.0
    insufficient_info: bool = False
    timestamp: datetime = Field(default_factory=utcnow)


class SourceDetail(BaseModel):
    summary_id: str
    domain: str
    subtopic: str
    topics_used: List[str] = Field(default_factory=list)
    entry_count: int = 0
