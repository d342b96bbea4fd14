"""
memora/prompts/summary_prompts.py
----------------------------------
Prompt templates for building and growing per-(domain, subtopic) summaries.

Provides two prompts:
  - CREATE_SUMMARY_PROMPT — first summary for a new domain/subtopic pair
  - MERGE_SUMMARY_PROMPT  — fold a new entry into an existing summary
"""
from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

# ── Create ──────────────────────────────────────────────────────────────────

CREATE_SUMMARY_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are creating a new knowledge summary for Memora, a knowledge "
        "management system.\n\n"
        "Domain: {domain}\n"
        "Subtopic: {subtopic}\n\n"
        "Create a concise, informative summary based on the entry. The summary should:\n"
        "1. Be well-structured and easy to read\n"
        "2. Focus on actionable, shareable knowledge\n"
        "3. Be written in a neutral, informative tone\n"
        "4. Use clear sections if multiple topics are covered\n"
        "5. Be under 300 words for the initial version\n\n"
        "This summary will grow as more entries are added, so capture the key points clearly.\n\n"
        "Respond with ONLY valid JSON in this exact format:\n"
        '{{"summary_content": "..."}}',
    ),
    (
        "human",
        "Initial entry:\n\"\"\"\n{entry_content}\n\"\"\"\n\n"
        "Topics extracted:\n{topics_section}",
    ),
])

# ── Merge ───────────────────────────────────────────────────────────────────

MERGE_SUMMARY_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are updating a knowledge summary for Memora, a knowledge management system.\n\n"
        "Task:\n"
        "1. Update the summary content to incorporate the new information\n"
        "2. DO NOT duplicate existing information — refine or strengthen it instead\n"
        "3. If the new entry contradicts existing information, keep both and note the "
        "variation (e.g. \"Some report X, while others experienced Y\")\n"
        "4. Keep the summary concise (max 500 words)\n"
        "5. Maintain a neutral, informative tone\n"
        "6. Structure the summary with clear sections if multiple topics are covered\n\n"
        "Classify every new topic_key: put it in topics_updated if it is one of the "
        "current topics, otherwise in new_topics_added.\n\n"
        "Respond with ONLY valid JSON in this exact format:\n"
        '{{"updated_content": "...", "topics_updated": ["..."], '
        '"new_topics_added": ["..."], "merge_notes": "..."}}',
    ),
    (
        "human",
        "Current summary:\n\"\"\"\n{existing_content}\n\"\"\"\n\n"
        "Current topics:\n{existing_topics_section}\n\n"
        "New entry to incorporate:\n\"\"\"\n{new_entry_content}\n\"\"\"\n\n"
        "New topics extracted from the entry:\n{new_topics_section}",
    ),
])


def topics_section(topics) -> str:
    if not topics:
        return "(none)"
    return "\n".join(f"- {t.topic_key}: {t.extracted_info}" for t in topics)


def topic_keys_section(topic_keys) -> str:
    if not topic_keys:
        return "(none)"
    return "\n".join(f"- {k}" for k in topic_keys)
