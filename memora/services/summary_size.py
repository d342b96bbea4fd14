"""Advisory check for summaries that have grown large enough to want splitting."""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from memora.models.domain.summaries import Summary

logger = logging.getLogger(__name__)

MAX_SUMMARY_WORDS = 1000
MAX_SUMMARY_TOPICS = 10


class SummarySizeReport(BaseModel):
    summary_id: str
    word_count: int
    topic_count: int
    needs_split: bool


def measure_summary(summary: Summary) -> SummarySizeReport:
    word_count = len(summary.content.split())
    topic_count = len(summary.topic_sources)
    return SummarySizeReport(
        summary_id=summary.summary_id,
        word_count=word_count,
        topic_count=topic_count,
        needs_split=word_count > MAX_SUMMARY_WORDS or topic_count > MAX_SUMMARY_TOPICS,
    )


def check_summary_size(summary: Summary) -> Optional[SummarySizeReport]:
    """Log a warning and return the report when the summary is oversized; never blocks."""
    report = measure_summary(summary)
    if not report.needs_split:
        return None
    # Splitting is not implemented; this only flags the summary.
    logger.warning(
        "Summary %s may need splitting: %d words, %d topics",
        report.summary_id, report.word_count, report.topic_count,
    )
    return report
