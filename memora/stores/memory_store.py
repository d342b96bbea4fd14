"""
In-process KnowledgeStore.

Used for local runs (MEMORA_STORE_BACKEND=memory) and as the store in tests.
A single lock guards every operation, so the version check in save_summary
behaves like the conditional update the Supabase store performs.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Tuple

from memora.models.domain.entries import Entry
from memora.models.domain.queries import QueryAnswer
from memora.models.domain.summaries import Summary
from memora.stores.base import KnowledgeStore, SummaryVersionConflict

logger = logging.getLogger(__name__)

_Key = Tuple[str, str]


class InMemoryKnowledgeStore(KnowledgeStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[_Key, Entry] = {}
        self._summaries: Dict[_Key, Summary] = {}
        self._query_logs: Dict[str, List[QueryAnswer]] = {}

    # ── Entries ───────────────────────────────────────────────────────────────

    def save_entry(self, entry: Entry) -> str:
        with self._lock:
            self._entries[(entry.space_id, entry.entry_id)] = entry.model_copy(deep=True)
        return entry.entry_id

    def get_entry(self, space_id: str, entry_id: str) -> Optional[Entry]:
        with self._lock:
            entry = self._entries.get((space_id, entry_id))
            return entry.model_copy(deep=True) if entry else None

    def list_entries(self, space_id: str) -> List[Entry]:
        with self._lock:
            rows = [e.model_copy(deep=True) for (sid, _), e in self._entries.items() if sid == space_id]
        return sorted(rows, key=lambda e: e.created_at, reverse=True)

    # ── Summaries ─────────────────────────────────────────────────────────────

    def get_summary(self, space_id: str, summary_id: str) -> Optional[Summary]:
        with self._lock:
            summary = self._summaries.get((space_id, summary_id))
            return summary.model_copy(deep=True) if summary else None

    def save_summary(self, summary: Summary, expected_version: Optional[int] = None) -> None:
        key = (summary.space_id, summary.summary_id)
        with self._lock:
            current = self._summaries.get(key)
            if expected_version is None:
                if current is not None:
                    raise SummaryVersionConflict(summary.space_id, summary.summary_id, None)
            elif current is None or current.version != expected_version:
                raise SummaryVersionConflict(summary.space_id, summary.summary_id, expected_version)
            self._summaries[key] = summary.model_copy(deep=True)
        logger.debug("Saved summary %s v%d", summary.summary_id, summary.version)

    def list_summaries(self, space_id: str) -> List[Summary]:
        with self._lock:
            return [s.model_copy(deep=True) for (sid, _), s in self._summaries.items() if sid == space_id]

    # ── Query history ─────────────────────────────────────────────────────────

    def save_query_log(self, answer: QueryAnswer) -> str:
        with self._lock:
            self._query_logs.setdefault(answer.space_id, []).append(answer.model_copy(deep=True))
        return answer.query_id

    def list_query_logs(self, space_id: str, limit: int = 20) -> List[QueryAnswer]:
        with self._lock:
            logs = list(self._query_logs.get(space_id, []))
        logs.sort(key=lambda a: a.timestamp, reverse=True)
        return [a.model_copy(deep=True) for a in logs[:limit]]
