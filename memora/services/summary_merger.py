"""
memora/services/summary_merger.py
----------------------------------
Create a summary from a first entry, or fold a new entry into an existing one.

Both operations degrade instead of failing: creation falls back to the raw
entry text, and a failed merge appends the raw entry under an
"Additional information" marker so nothing the contributor wrote is lost.

Provenance (topic_sources / all_contributing_entries / version) is not
touched here — EntryProcessor owns that bookkeeping.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from langchain_core.runnables import Runnable
from pydantic import ValidationError

from memora.models.domain.summaries import CreateSummaryResult, MergeResult, TopicInfo
from memora.prompts.summary_prompts import (
    CREATE_SUMMARY_PROMPT,
    MERGE_SUMMARY_PROMPT,
    topic_keys_section,
    topics_section,
)
from memora.services.llm import get_chat_model, run_json_chain

logger = logging.getLogger(__name__)

FALLBACK_MERGE_NOTES = "Appended new information due to processing error"


def fallback_merge(existing_content: str, new_entry_content: str, new_topics: Iterable[TopicInfo]) -> MergeResult:
    return MergeResult(
        updated_content=f"{existing_content}\n\nAdditional information: {new_entry_content}",
        topics_updated=[],
        new_topics_added=[t.topic_key for t in new_topics],
        merge_notes=FALLBACK_MERGE_NOTES,
        degraded=True,
    )


def classify_topics(
    incoming_keys: List[str],
    existing_keys: Iterable[str],
    llm_updated: Iterable[str],
    llm_added: Iterable[str],
) -> Tuple[List[str], List[str]]:
    """
    Put every incoming key in exactly one of (updated, added).

    The model's classification wins where it is consistent; keys the model
    invented are dropped and keys it forgot are classified by whether the
    summary already had them.
    """
    existing = set(existing_keys)
    said_updated = set(llm_updated)
    said_added = set(llm_added)

    updated: List[str] = []
    added: List[str] = []
    for key in dict.fromkeys(incoming_keys):
        if key in said_updated and key in said_added:
            (updated if key in existing else added).append(key)
        elif key in said_updated:
            updated.append(key)
        elif key in said_added:
            added.append(key)
        else:
            (updated if key in existing else added).append(key)
    return updated, added


class SummaryMerger:
    def __init__(self, llm: Optional[Runnable] = None):
        self.llm = llm if llm is not None else get_chat_model()

    # ── Create ────────────────────────────────────────────────────────────────

    def create_summary(
        self,
        domain: str,
        subtopic: str,
        entry_content: str,
        topics: List[TopicInfo],
    ) -> CreateSummaryResult:
        parsed = run_json_chain(
            CREATE_SUMMARY_PROMPT,
            self.llm,
            {
                "domain": domain,
                "subtopic": subtopic,
                "entry_content": entry_content,
                "topics_section": topics_section(topics),
            },
            name="create_summary",
        )
        content = (parsed or {}).get("summary_content")
        if not isinstance(content, str) or not content.strip():
            logger.warning("create_summary for %s/%s fell back to raw entry text", domain, subtopic)
            return CreateSummaryResult(summary_content=entry_content)
        return CreateSummaryResult(summary_content=content)

    # ── Merge ─────────────────────────────────────────────────────────────────

    def merge_summary(
        self,
        existing_content: str,
        existing_topic_keys: List[str],
        new_entry_content: str,
        new_topics: List[TopicInfo],
    ) -> MergeResult:
        parsed = run_json_chain(
            MERGE_SUMMARY_PROMPT,
            self.llm,
            {
                "existing_content": existing_content,
                "existing_topics_section": topic_keys_section(existing_topic_keys),
                "new_entry_content": new_entry_content,
                "new_topics_section": topics_section(new_topics),
            },
            name="merge_summary",
        )
        if not parsed:
            return fallback_merge(existing_content, new_entry_content, new_topics)

        try:
            result = MergeResult.model_validate(parsed)
        except ValidationError as e:
            logger.warning("merge_summary output failed validation: %s", e)
            return fallback_merge(existing_content, new_entry_content, new_topics)

        if not result.updated_content.strip():
            return fallback_merge(existing_content, new_entry_content, new_topics)

        updated, added = classify_topics(
            [t.topic_key for t in new_topics],
            existing_topic_keys,
            result.topics_updated,
            result.new_topics_added,
        )
        return MergeResult(
            updated_content=result.updated_content,
            topics_updated=updated,
            new_topics_added=added,
            merge_notes=result.merge_notes,
        )
