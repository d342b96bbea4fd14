"""
Domain models for topic extraction and per-(domain, subtopic) summaries.

Natural key of a summary: (space_id, summary_id), where summary_id is derived
from the normalised domain and subtopic so that repeated extraction into the
same pair always targets the same document.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from ._time import utcnow

FALLBACK_DOMAIN = "general"
FALLBACK_SUBTOPIC = "uncategorized"
FALLBACK_CONFIDENCE = 0.1

# Extractions below this confidence never create or touch a summary.
CONFIDENCE_THRESHOLD = 0.3
MAX_TOPICS_PER_ENTRY = 5


class TopicInfo(BaseModel):
    topic_key: str
    topic_label: str = ""
    extracted_info: str = ""


class ExtractionResult(BaseModel):
    domain: str
    subtopic: str
    topics: List[TopicInfo] = Field(default_factory=list)
    confidence: float = 0.0

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return min(1.0, max(0.0, float(v)))

    @classmethod
    def fallback(cls) -> "ExtractionResult":
        return cls(
            domain=FALLBACK_DOMAIN,
            subtopic=FALLBACK_SUBTOPIC,
            topics=[],
            confidence=FALLBACK_CONFIDENCE,
        )

    @property
    def is_confident(self) -> bool:
        return self.confidence >= CONFIDENCE_THRESHOLD

    @property
    def topic_keys(self) -> List[str]:
        return [t.topic_key for t in self.topics]


class CreateSummaryResult(BaseModel):
    summary_content: str


class MergeResult(BaseModel):
    updated_content: str
    topics_updated: List[str] = Field(default_factory=list)
    new_topics_added: List[str] = Field(default_factory=list)
    merge_notes: str = ""
    degraded: bool = False


def summary_id_for(domain: str, subtopic: str) -> str:
    return f"summary_{domain}_{subtopic}"


class Summary(BaseModel):
    summary_id: str
    space_id: str
    domain: str
    subtopic: str
    content: str

    topic_sources: Dict[str, List[str]] = Field(default_factory=dict)
    all_contributing_entries: List[str] = Field(default_factory=list)
    entry_count: int = 0
    version: int = 1

    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    @property
    def topic_keys(self) -> List[str]:
        return list(self.topic_sources.keys())
