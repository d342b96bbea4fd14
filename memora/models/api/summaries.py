"""Pydantic models for the /summaries router."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel

from memora.models.domain.summaries import Summary
from memora.services.summary_size import SummarySizeReport


class SummaryResponse(BaseModel):
    summary: Summary
    size: SummarySizeReport


class SummaryListResponse(BaseModel):
    space_id: str
    summaries: List[SummaryResponse] = []
