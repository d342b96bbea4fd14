"""
memora/prompts/query_prompts.py
--------------------------------
Prompt template for answering a query from candidate summaries with
topic-level citations.

Used by memora/workflows/query_workflow.py
"""
from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

# ── Answer with sources ─────────────────────────────────────────────────────

ANSWER_WITH_SOURCES_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are answering a question using accumulated knowledge from Memora, a "
        "knowledge management system for sharing academic and professional experiences.\n\n"
        "Instructions:\n"
        "1. Answer the query using ONLY the provided knowledge\n"
        "2. Track which summaries and which topics within each summary you use\n"
        "3. If the knowledge is insufficient, set insufficient_info to true and return "
        "an empty answer\n"
        "4. Be concise and helpful; format the answer with markdown\n"
        "5. Never make up information — only use what is in the summaries\n"
        "6. If you can only partially answer, do so and note what is missing\n\n"
        "Available knowledge:\n{knowledge}\n\n"
        "Respond with ONLY valid JSON in this exact format:\n"
        '{{"answer": "...", "summaries_used": ["<summary_id>"], '
        '"topics_referenced": {{"<summary_id>": ["<topic_key>"]}}, '
        '"confidence": 0.0, "insufficient_info": false}}',
    ),
    ("human", "{query}"),
])


def knowledge_section(summaries) -> str:
    """Render candidate summaries ({summary_id, domain, subtopic, content, topics})."""
    blocks = []
    for s in summaries:
        blocks.append(
            f"---\n[Summary ID: {s['summary_id']}]\n"
            f"Domain: {s['domain']} | Subtopic: {s['subtopic']}\n"
            f"Topics: {', '.join(s['topics'])}\n\n"
            f"Content:\n{s['content']}"
        )
    return "\n".join(blocks)
