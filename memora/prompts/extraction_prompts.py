"""
memora/prompts/extraction_prompts.py
-------------------------------------
Prompt template for turning one raw entry into domain / subtopic / topics.

Used by memora/services/topic_extractor.py
"""
from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

# ── Topic extraction ────────────────────────────────────────────────────────

EXTRACT_TOPICS_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are analyzing an experience entry for Memora, a knowledge management "
        "system where members of a space share academic and professional experiences.\n\n"
        "Extract:\n"
        "- domain: the primary category (company names like \"google\", \"amazon\"; "
        "or categories like \"academic\", \"career\", \"research\")\n"
        "- subtopic: the specific area within the domain (e.g. \"interviews\", "
        "\"internship\", \"coursework\", \"projects\")\n"
        "- topics: the specific topics found in the entry, each with topic_key, "
        "topic_label and extracted_info\n"
        "- confidence: how confident you are in this extraction (0.0-1.0)\n\n"
        "Rules:\n"
        "1. topic_key is snake_case, reusable and generic (\"interview_rounds\", "
        "never \"johns_interview_rounds\"); never put people's names in a key\n"
        "2. extracted_info is factual, not opinion unless clearly marked as such\n"
        "3. At most 5 topics per entry\n"
        "4. If the entry is too vague or has no useful information, return confidence < 0.3\n"
        "5. domain and subtopic are lowercase with underscores instead of spaces\n"
        "6. Focus on actionable, shareable knowledge\n\n"
        "Good topic_keys: interview_structure, technical_rounds, behavioral_questions, "
        "application_timeline, compensation_details, team_culture, project_experience, "
        "course_difficulty, professor_teaching_style, career_advice\n\n"
        "{domains_section}"
        "Respond with ONLY valid JSON in this exact format:\n"
        '{{"domain": "...", "subtopic": "...", "topics": [{{"topic_key": "...", '
        '"topic_label": "...", "extracted_info": "..."}}], "confidence": 0.0}}',
    ),
    ("human", "Entry:\n\"\"\"\n{entry_content}\n\"\"\""),
])


def domains_section(existing_domains) -> str:
    if not existing_domains:
        return ""
    lines = "\n".join(f"- {d}" for d in existing_domains)
    return f"Existing domains (reuse one if it applies, otherwise suggest a new one):\n{lines}\n\n"
