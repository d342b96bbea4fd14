"""Domain models for raw entries (immutable contributions to a space)."""
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ._time import utcnow

JsonDict = Dict[str, Any]


class SourceType(str, Enum):
    MANUAL = "manual"
    HELP = "help"
    CHAT = "chat"


def new_entry_id() -> str:
    return f"entry_{uuid.uuid4()}"


class EntryMetadata(BaseModel):
    """
    Optional linkage carried with an entry.

    existing_entry_id is only set when the raw entry was already persisted
    upstream and the pipeline must reuse its id for provenance.
    """

    model_config = ConfigDict(extra="allow")

    user_tags: List[str] = Field(default_factory=list)
    question_id: Optional[str] = None
    conversation_id: Optional[str] = None
    existing_entry_id: Optional[str] = None


class EntryCreate(BaseModel):
    space_id: str
    content: str
    source_type: SourceType = SourceType.MANUAL
    contributor: Optional[str] = None
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)


class Entry(EntryCreate):
    """Stored entry. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=new_entry_id)
    created_at: datetime = Field(default_factory=utcnow)
