"""
memora/services/topic_extractor.py
-----------------------------------
Turns one raw entry into {domain, subtopic, topics[], confidence}.

Never raises: entries that are too short skip the model entirely, and any
model failure degrades to the "general / uncategorized, not confident"
result, which downstream gating treats as "store the entry, touch nothing".

Import
------
    from memora.services.topic_extractor import TopicExtractor

    extraction = TopicExtractor().extract("Google's onsite has 5 rounds ...")
"""
from __future__ import annotations

import logging
from typing import List, Optional

from langchain_core.runnables import Runnable
from pydantic import ValidationError

from memora.models.domain.summaries import ExtractionResult
from memora.prompts.extraction_prompts import EXTRACT_TOPICS_PROMPT, domains_section
from memora.services.llm import get_chat_model, run_json_chain
from memora.services.topic_keys import normalize_category, normalize_topics

logger = logging.getLogger(__name__)

MIN_ENTRY_LENGTH = 10


class TopicExtractor:
    def __init__(self, llm: Optional[Runnable] = None):
        self.llm = llm if llm is not None else get_chat_model()

    def extract(
        self,
        entry_content: str,
        existing_domains: Optional[List[str]] = None,
        contributor: Optional[str] = None,
    ) -> ExtractionResult:
        if not entry_content or len(entry_content.strip()) < MIN_ENTRY_LENGTH:
            logger.debug("Entry too short for extraction — using fallback")
            return ExtractionResult.fallback()

        parsed = run_json_chain(
            EXTRACT_TOPICS_PROMPT,
            self.llm,
            {
                "entry_content": entry_content,
                "domains_section": domains_section(existing_domains),
            },
            name="extract_topics",
        )
        if not parsed:
            return ExtractionResult.fallback()

        try:
            raw = ExtractionResult.model_validate(parsed)
        except ValidationError as e:
            logger.warning("extract_topics output failed validation: %s", e)
            return ExtractionResult.fallback()

        domain = normalize_category(raw.domain)
        subtopic = normalize_category(raw.subtopic)
        if not domain or not subtopic:
            logger.warning("extract_topics returned an empty domain/subtopic")
            return ExtractionResult.fallback()

        result = ExtractionResult(
            domain=domain,
            subtopic=subtopic,
            topics=normalize_topics(raw.topics, contributor=contributor),
            confidence=raw.confidence,
        )
        logger.info(
            "Extracted %s/%s with %d topics (confidence=%.2f)",
            result.domain, result.subtopic, len(result.topics), result.confidence,
        )
        return result
