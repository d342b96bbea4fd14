"""
memora/services/entry_processor.py
-----------------------------------
Ingestion pipeline for one entry: extract topics → create or merge the
(domain, subtopic) summary → persist with topic-level provenance.
No FastAPI / HTTP coupling — call from a router, background task, or script.

Partial-failure guarantee
-------------------------
  The raw entry is persisted before (or outside) process(). Anything that
  goes wrong afterwards is logged and returned as success=False; the entry
  itself is never lost and the caller never sees an exception.

Concurrency
-----------
  Two ingestions landing on the same summary race on a read-modify-write.
  Writes carry the version that was read; a SummaryVersionConflict re-reads
  and re-merges, so neither entry's provenance is dropped.

Import
------
    from memora.services.entry_processor import EntryProcessor

    processor = EntryProcessor(store)
    result = processor.submit(EntryCreate(space_id="s1", content="..."))
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from memora.models.domain._time import utcnow
from memora.models.domain.entries import (
    Entry,
    EntryCreate,
    EntryMetadata,
    SourceType,
    new_entry_id,
)
from memora.models.domain.summaries import ExtractionResult, Summary, summary_id_for
from memora.services.summary_merger import SummaryMerger
from memora.services.summary_size import check_summary_size
from memora.services.topic_extractor import TopicExtractor
from memora.settings import get_settings
from memora.stores.base import KnowledgeStore, StoreError, SummaryVersionConflict

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# DTOs
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ProcessEntryResult:
    success: bool
    entry_id: str
    summary_id: Optional[str] = None
    topics_extracted: List[str] = field(default_factory=list)
    error: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Provenance bookkeeping
# ─────────────────────────────────────────────────────────────────────────────

def _append_unique(values: List[str], value: str) -> List[str]:
    return values if value in values else [*values, value]


def seed_summary(
    space_id: str,
    entry_id: str,
    extraction: ExtractionResult,
    content: str,
) -> Summary:
    now = utcnow()
    return Summary(
        summary_id=summary_id_for(extraction.domain, extraction.subtopic),
        space_id=space_id,
        domain=extraction.domain,
        subtopic=extraction.subtopic,
        content=content,
        topic_sources={key: [entry_id] for key in extraction.topic_keys},
        all_contributing_entries=[entry_id],
        entry_count=1,
        version=1,
        created_at=now,
        last_updated=now,
    )


def apply_merge(
    existing: Summary,
    entry_id: str,
    content: str,
    topic_keys: Sequence[str],
) -> Summary:
    topic_sources: Dict[str, List[str]] = {k: list(v) for k, v in existing.topic_sources.items()}
    for key in topic_keys:
        topic_sources[key] = _append_unique(topic_sources.get(key, []), entry_id)

    contributors = list(dict.fromkeys(existing.all_contributing_entries))
    contributors = _append_unique(contributors, entry_id)

    return existing.model_copy(update={
        "content": content,
        "topic_sources": topic_sources,
        "all_contributing_entries": contributors,
        "entry_count": len(contributors),
        "version": existing.version + 1,
        "last_updated": utcnow(),
    })


# ─────────────────────────────────────────────────────────────────────────────
# Service
# ─────────────────────────────────────────────────────────────────────────────

class EntryProcessor:
    def __init__(
        self,
        store: KnowledgeStore,
        extractor: Optional[TopicExtractor] = None,
        merger: Optional[SummaryMerger] = None,
        max_conflict_retries: Optional[int] = None,
    ):
        self.store = store
        self.extractor = extractor or TopicExtractor()
        self.merger = merger or SummaryMerger()
        self.max_conflict_retries = (
            get_settings().conflict_retries if max_conflict_retries is None else max_conflict_retries
        )

    # ── Summary write (read-modify-write with retry) ─────────────────────────

    def _upsert_summary(
        self,
        space_id: str,
        entry_id: str,
        content: str,
        extraction: ExtractionResult,
    ) -> Summary:
        summary_id = summary_id_for(extraction.domain, extraction.subtopic)
        attempts = self.max_conflict_retries + 1

        for attempt in range(1, attempts + 1):
            existing = self.store.get_summary(space_id, summary_id)

            # summary ids join domain and subtopic with "_", which both may contain
            if existing is not None and (existing.domain, existing.subtopic) != (
                extraction.domain, extraction.subtopic,
            ):
                raise StoreError(
                    f"summary id {summary_id} already belongs to "
                    f"{existing.domain}/{existing.subtopic}, not "
                    f"{extraction.domain}/{extraction.subtopic}"
                )

            if existing is not None:
                merge = self.merger.merge_summary(
                    existing_content=existing.content,
                    existing_topic_keys=existing.topic_keys,
                    new_entry_content=content,
                    new_topics=extraction.topics,
                )
                if merge.degraded:
                    logger.warning("Summary %s merged in degraded mode: %s", summary_id, merge.merge_notes)
                updated = apply_merge(
                    existing,
                    entry_id,
                    merge.updated_content,
                    [*merge.topics_updated, *merge.new_topics_added],
                )
                expected_version: Optional[int] = existing.version
            else:
                created = self.merger.create_summary(
                    domain=extraction.domain,
                    subtopic=extraction.subtopic,
                    entry_content=content,
                    topics=extraction.topics,
                )
                updated = seed_summary(space_id, entry_id, extraction, created.summary_content)
                expected_version = None

            try:
                self.store.save_summary(updated, expected_version=expected_version)
                return updated
            except SummaryVersionConflict as e:
                logger.info(
                    "Write conflict on %s (attempt %d/%d): %s",
                    summary_id, attempt, attempts, e,
                )

        raise StoreError(
            f"summary {summary_id} kept changing underneath us; gave up after {attempts} attempts"
        )

    # ── Entry point ───────────────────────────────────────────────────────────

    def process(
        self,
        space_id: str,
        content: str,
        source_type: SourceType = SourceType.MANUAL,
        metadata: Optional[EntryMetadata] = None,
        contributor: Optional[str] = None,
    ) -> ProcessEntryResult:
        metadata = metadata or EntryMetadata()
        entry_id = metadata.existing_entry_id or new_entry_id()

        try:
            existing_summaries = self.store.list_summaries(space_id)
            existing_domains = list(dict.fromkeys(s.domain for s in existing_summaries))

            extraction = self.extractor.extract(
                content,
                existing_domains=existing_domains or None,
                contributor=contributor,
            )

            if not extraction.is_confident:
                logger.info(
                    "Entry %s (%s) below confidence threshold (%.2f) — no summary update",
                    entry_id, SourceType(source_type).value, extraction.confidence,
                )
                return ProcessEntryResult(success=True, entry_id=entry_id)

            summary = self._upsert_summary(space_id, entry_id, content, extraction)
            check_summary_size(summary)

            logger.info(
                "Entry %s → %s v%d (%d entries)",
                entry_id, summary.summary_id, summary.version, summary.entry_count,
            )
            return ProcessEntryResult(
                success=True,
                entry_id=entry_id,
                summary_id=summary.summary_id,
                topics_extracted=extraction.topic_keys,
            )
        except Exception as e:
            logger.exception("Processing entry %s failed", entry_id)
            return ProcessEntryResult(
                success=False,
                entry_id=entry_id,
                error=str(e) or e.__class__.__name__,
            )

    def submit(self, inp: EntryCreate) -> ProcessEntryResult:
        """Persist the raw entry, then run it through the pipeline."""
        data = inp.model_dump()
        # only the pipeline sets this; a caller-supplied value is not stored
        data["metadata"]["existing_entry_id"] = None
        entry = Entry(**data)
        try:
            self.store.save_entry(entry)
        except Exception as e:
            logger.exception("Saving entry %s failed", entry.entry_id)
            return ProcessEntryResult(success=False, entry_id=entry.entry_id, error=str(e))

        metadata = entry.metadata.model_copy(update={"existing_entry_id": entry.entry_id})
        return self.process(
            entry.space_id,
            entry.content,
            source_type=entry.source_type,
            metadata=metadata,
            contributor=entry.contributor,
        )

    def process_batch(
        self,
        items: Sequence[EntryCreate],
        delay_seconds: Optional[float] = None,
    ) -> List[ProcessEntryResult]:
        """Submit entries one at a time, in order, pausing between model-heavy calls."""
        delay = get_settings().batch_delay if delay_seconds is None else delay_seconds
        results: List[ProcessEntryResult] = []

        for idx, item in enumerate(items):
            if idx and delay > 0:
                time.sleep(delay)
            results.append(self.submit(item))

        failed = sum(1 for r in results if not r.success)
        logger.info("Batch complete — %d entries, %d failed", len(results), failed)
        return results
