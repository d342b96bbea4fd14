"""Pydantic models for the /entries router."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from memora.models.domain.entries import EntryMetadata, SourceType


class EntrySubmitRequest(BaseModel):
    space_id: str
    content: str = Field(..., min_length=1)
    source_type: SourceType = SourceType.MANUAL
    contributor: Optional[str] = None
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)


class EntrySubmitResponse(BaseModel):
    success: bool
    entry_id: str
    summary_id: Optional[str] = None
    topics_extracted: List[str] = []
    error: Optional[str] = None


class EntryResponse(BaseModel):
    entry_id: str
    space_id: str
    content: str
    source_type: str
    contributor: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class EntryListResponse(BaseModel):
    space_id: str
    entries: List[EntryResponse] = []


# ── Batch models ─────────────────────────────────────────────────────────────

class BatchEntryItem(BaseModel):
    content: str = Field(..., min_length=1)
    source_type: SourceType = SourceType.MANUAL
    contributor: Optional[str] = None
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)


class BatchEntryRequest(BaseModel):
    space_id: str
    items: List[BatchEntryItem] = Field(..., min_length=1, max_length=50)


class BatchItemStatus(BaseModel):
    index: int
    status: str                # "pending" | "complete" | "failed"
    entry_id: Optional[str] = None
    summary_id: Optional[str] = None
    topics_extracted: List[str] = []
    detail: Optional[str] = None


class BatchEntryResponse(BaseModel):
    batch_id: str
    total: int
    status: str                # "running" | "complete" | "partial_failure" | "failed"
    items: List[BatchItemStatus] = []


class BatchEntryStatusResponse(BaseModel):
    batch_id: str
    total: int
    completed: int
    failed: int
    status: str
    items: List[BatchItemStatus] = []
