"""
memora/stores/supabase_store.py
--------------------------------
KnowledgeStore backed by Supabase (PostgREST) tables.

Tables (see sql/schema.sql)
---------------------------
  entries     — PK (space_id, entry_id)
  summaries   — PK (space_id, summary_id), integer version column
  query_logs  — PK (space_id, query_id)

Optimistic concurrency
----------------------
  create   → INSERT; a unique violation (23505) means another writer created
             the same summary first → SummaryVersionConflict
  replace  → UPDATE ... WHERE version = expected; zero rows touched means the
             stored version moved on → SummaryVersionConflict
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from memora.models.domain.entries import Entry
from memora.models.domain.queries import QueryAnswer
from memora.models.domain.summaries import Summary
from memora.stores.base import KnowledgeStore, StoreError, SummaryVersionConflict

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

ENTRIES_TABLE = "entries"
SUMMARIES_TABLE = "summaries"
QUERY_LOGS_TABLE = "query_logs"

_UNIQUE_VIOLATION = "23505"


def _ensure_parsed(value: Any, fallback: Any = None) -> Any:
    """Supabase may return JSONB columns as JSON strings — parse if needed."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return fallback
    return value if value is not None else fallback


def _row_to_entry(row: JsonDict) -> Entry:
    return Entry(
        entry_id=row["entry_id"],
        space_id=row["space_id"],
        content=row["content"],
        source_type=row["source_type"],
        contributor=row.get("contributor"),
        metadata=_ensure_parsed(row.get("metadata"), {}),
        created_at=row["created_at"],
    )


def _row_to_summary(row: JsonDict) -> Summary:
    return Summary(
        summary_id=row["summary_id"],
        space_id=row["space_id"],
        domain=row["domain"],
        subtopic=row["subtopic"],
        content=row.get("content") or "",
        topic_sources=_ensure_parsed(row.get("topic_sources"), {}),
        all_contributing_entries=_ensure_parsed(row.get("all_contributing_entries"), []),
        entry_count=row.get("entry_count") or 0,
        version=row.get("version") or 1,
        created_at=row["created_at"],
        last_updated=row["last_updated"],
    )


class SupabaseKnowledgeStore(KnowledgeStore):
    def __init__(self, supabase: Client):
        self.sb = supabase

    # ── Entries ───────────────────────────────────────────────────────────────

    def save_entry(self, entry: Entry) -> str:
        payload = entry.model_dump(mode="json")
        try:
            res = self.sb.table(ENTRIES_TABLE).insert(payload).execute()
        except APIError as e:
            raise StoreError(f"entries insert failed: {e}") from e
        if not res.data:
            raise StoreError("entries insert returned no rows")
        logger.info("Saved entry %s in space %s", entry.entry_id, entry.space_id)
        return entry.entry_id

    def get_entry(self, space_id: str, entry_id: str) -> Optional[Entry]:
        try:
            res = (
                self.sb.table(ENTRIES_TABLE)
                .select("*")
                .eq("space_id", space_id)
                .eq("entry_id", entry_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"entries select failed: {e}") from e
        rows = res.data or []
        return _row_to_entry(rows[0]) if rows else None

    def list_entries(self, space_id: str) -> List[Entry]:
        try:
            res = (
                self.sb.table(ENTRIES_TABLE)
                .select("*")
                .eq("space_id", space_id)
                .order("created_at", desc=True)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"entries list failed: {e}") from e
        return [_row_to_entry(row) for row in (res.data or [])]

    # ── Summaries ─────────────────────────────────────────────────────────────

    def get_summary(self, space_id: str, summary_id: str) -> Optional[Summary]:
        try:
            res = (
                self.sb.table(SUMMARIES_TABLE)
                .select("*")
                .eq("space_id", space_id)
                .eq("summary_id", summary_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"summaries select failed: {e}") from e
        rows = res.data or []
        return _row_to_summary(rows[0]) if rows else None

    def save_summary(self, summary: Summary, expected_version: Optional[int] = None) -> None:
        payload = summary.model_dump(mode="json")

        if expected_version is None:
            try:
                res = self.sb.table(SUMMARIES_TABLE).insert(payload).execute()
            except APIError as e:
                if e.code == _UNIQUE_VIOLATION:
                    raise SummaryVersionConflict(summary.space_id, summary.summary_id, None) from e
                raise StoreError(f"summaries insert failed: {e}") from e
            if not res.data:
                raise StoreError("summaries insert returned no rows")
            logger.info("Created summary %s in space %s", summary.summary_id, summary.space_id)
            return

        try:
            res = (
                self.sb.table(SUMMARIES_TABLE)
                .update(payload)
                .eq("space_id", summary.space_id)
                .eq("summary_id", summary.summary_id)
                .eq("version", expected_version)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"summaries update failed: {e}") from e
        if not res.data:
            raise SummaryVersionConflict(summary.space_id, summary.summary_id, expected_version)
        logger.info(
            "Updated summary %s in space %s (v%d → v%d)",
            summary.summary_id, summary.space_id, expected_version, summary.version,
        )

    def list_summaries(self, space_id: str) -> List[Summary]:
        try:
            res = (
                self.sb.table(SUMMARIES_TABLE)
                .select("*")
                .eq("space_id", space_id)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"summaries list failed: {e}") from e
        return [_row_to_summary(row) for row in (res.data or [])]

    # ── Query history ─────────────────────────────────────────────────────────

    def save_query_log(self, answer: QueryAnswer) -> str:
        payload = {
            "space_id": answer.space_id,
            "query_id": answer.query_id,
            "original_query": answer.original_query,
            "created_at": answer.timestamp.isoformat(),
            "result": answer.model_dump(mode="json"),
        }
        try:
            self.sb.table(QUERY_LOGS_TABLE).insert(payload).execute()
        except APIError as e:
            raise StoreError(f"query_logs insert failed: {e}") from e
        return answer.query_id

    def list_query_logs(self, space_id: str, limit: int = 20) -> List[QueryAnswer]:
        try:
            res = (
                self.sb.table(QUERY_LOGS_TABLE)
                .select("result")
                .eq("space_id", space_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"query_logs list failed: {e}") from e
        return [
            QueryAnswer.model_validate(_ensure_parsed(row.get("result"), {}))
            for row in (res.data or [])
        ]

    def ping(self) -> None:
        try:
            self.sb.table(SUMMARIES_TABLE).select("summary_id").limit(1).execute()
        except Exception as e:
            raise StoreError(f"Supabase unreachable: {e}") from e
