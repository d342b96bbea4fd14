"""
memora/stores/base.py
----------------------
The narrow persistence interface the pipeline depends on.

Every call is scoped by an opaque space_id. Summaries are written with
optimistic concurrency: save_summary(summary, expected_version=None) creates,
save_summary(summary, expected_version=N) replaces only a stored version N.
Anything else raises SummaryVersionConflict so the caller can re-read and
retry instead of silently dropping a concurrent merge.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from memora.models.domain.entries import Entry
from memora.models.domain.queries import QueryAnswer
from memora.models.domain.summaries import Summary


class StoreError(RuntimeError):
    """A read or write against the backing store failed."""


class SummaryVersionConflict(StoreError):
    def __init__(self, space_id: str, summary_id: str, expected_version: Optional[int]):
        self.space_id = space_id
        self.summary_id = summary_id
        self.expected_version = expected_version
        if expected_version is None:
            msg = f"summary {summary_id} already exists in space {space_id}"
        else:
            msg = (
                f"summary {summary_id} in space {space_id} is no longer "
                f"at version {expected_version}"
            )
        super().__init__(msg)


class KnowledgeStore(ABC):

    # ── Entries ───────────────────────────────────────────────────────────────

    @abstractmethod
    def save_entry(self, entry: Entry) -> str:
        """Persist a raw entry and return its entry_id."""

    @abstractmethod
    def get_entry(self, space_id: str, entry_id: str) -> Optional[Entry]:
        ...

    @abstractmethod
    def list_entries(self, space_id: str) -> List[Entry]:
        """All entries of a space, newest first."""

    # ── Summaries ─────────────────────────────────────────────────────────────

    @abstractmethod
    def get_summary(self, space_id: str, summary_id: str) -> Optional[Summary]:
        ...

    @abstractmethod
    def save_summary(self, summary: Summary, expected_version: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def list_summaries(self, space_id: str) -> List[Summary]:
        ...

    # ── Query history ─────────────────────────────────────────────────────────

    @abstractmethod
    def save_query_log(self, answer: QueryAnswer) -> str:
        ...

    @abstractmethod
    def list_query_logs(self, space_id: str, limit: int = 20) -> List[QueryAnswer]:
        """Most recent first."""

    def ping(self) -> None:
        """Cheap reachability check; raises StoreError when the backend is down."""
