"""
memora/workflows/query_workflow.py
-----------------------------------
LangGraph query workflow: load → select → answer → resolve sources.

  load_summaries     — every summary in the space
  select_candidates  — keyword scoring, top 5; all summaries when nothing scores
  insufficient_info  — empty knowledge base or failed synthesis, no model call
  synthesize_answer  — answer strictly from candidates, with topic citations
  resolve_sources    — cited (summary_id, topic_key) → entry ids → entry records

Store errors are not caught here; they surface to QueryResolver's caller.

Usage
-----
    from memora.workflows.query_workflow import build_query_graph

    app = build_query_graph(store, llm)
    state = app.invoke({"space_id": "s1", "query": "How many onsite rounds at Google?"})
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, TypedDict

from langchain_core.runnables import Runnable
from langgraph.graph import END, StateGraph

from memora.models.domain.queries import (
    ANONYMOUS_CONTRIBUTOR,
    MISSING_ENTRY_CONTENT,
    MISSING_ENTRY_CONTRIBUTOR,
    MISSING_ENTRY_SOURCE_TYPE,
    EntryDetail,
)
from memora.models.domain.summaries import Summary
from memora.prompts.query_prompts import ANSWER_WITH_SOURCES_PROMPT, knowledge_section
from memora.services.llm import run_json_chain
from memora.stores.base import KnowledgeStore

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 5
MIN_QUERY_WORD_LENGTH = 3


# ── State ────────────────────────────────────────────────────────────────────

class QueryState(TypedDict, total=False):
    space_id: str
    query: str
    timestamp: datetime
    summaries: List[Summary]
    candidates: List[Summary]
    answer: str
    summaries_used: List[str]
    topics_referenced: Dict[str, List[str]]
    confidence: float
    insufficient_info: bool
    original_entries: List[str]
    original_entry_details: List[EntryDetail]


# ── Scoring ──────────────────────────────────────────────────────────────────

def score_summary(query: str, summary: Summary) -> int:
    """
    Additive keyword score.

    +3 domain in query, +2 subtopic in query, +1 per query word (> 2 chars,
    repeats counted per word) found in the content, +2 per topic_key in query.
    """
    query_lower = query.lower()
    query_words = [w for w in query_lower.split() if len(w) >= MIN_QUERY_WORD_LENGTH]

    score = 0
    if summary.domain.lower() in query_lower:
        score += 3
    if summary.subtopic.lower() in query_lower:
        score += 2

    content_lower = summary.content.lower()
    score += sum(1 for word in query_words if word in content_lower)

    score += sum(2 for key in summary.topic_sources if key.lower() in query_lower)
    return score


def find_relevant_summaries(query: str, summaries: List[Summary], limit: int = MAX_CANDIDATES) -> List[Summary]:
    scored = [(score_summary(query, s), s) for s in summaries]
    scored = [pair for pair in scored if pair[0] > 0]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [s for _, s in scored[:limit]]


def _empty_answer() -> Dict[str, Any]:
    return {
        "answer": "",
        "summaries_used": [],
        "topics_referenced": {},
        "confidence": 0.0,
        "insufficient_info": True,
        "original_entries": [],
        "original_entry_details": [],
    }


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _coerce_answer(parsed: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Validate the answer-synthesis JSON; None when it is not usable."""
    answer = parsed.get("answer", "")
    if not isinstance(answer, str):
        return None

    topics_raw = parsed.get("topics_referenced") or {}
    if not isinstance(topics_raw, dict):
        return None
    topics_referenced = {
        str(sid): [str(k) for k in keys]
        for sid, keys in topics_raw.items()
        if isinstance(keys, list)
    }

    used = parsed.get("summaries_used") or []
    if not isinstance(used, list):
        used = []

    try:
        confidence = float(parsed.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0

    return {
        "answer": answer,
        "summaries_used": [str(s) for s in used],
        "topics_referenced": topics_referenced,
        "confidence": min(1.0, max(0.0, confidence)),
        "insufficient_info": _as_bool(parsed.get("insufficient_info", False)),
    }


# ── Graph ────────────────────────────────────────────────────────────────────

def build_query_graph(store: KnowledgeStore, llm: Runnable):
    """Build and compile the query LangGraph bound to a store and model."""

    def load_summaries(state: QueryState) -> QueryState:
        summaries = store.list_summaries(state["space_id"])
        logger.debug("Loaded %d summaries for space %s", len(summaries), state["space_id"])
        return {**state, "summaries": summaries}

    def select_candidates(state: QueryState) -> QueryState:
        summaries = state.get("summaries", [])
        relevant = find_relevant_summaries(state["query"], summaries)
        # Sparse knowledge bases rarely share keywords with the query.
        candidates = relevant or summaries
        logger.info(
            "Query %r — %d/%d summaries scored, %d candidates",
            state["query"][:80], len(relevant), len(summaries), len(candidates),
        )
        return {**state, "candidates": candidates}

    def synthesize_answer(state: QueryState) -> QueryState:
        payload = [
            {
                "summary_id": s.summary_id,
                "domain": s.domain,
                "subtopic": s.subtopic,
                "content": s.content,
                "topics": s.topic_keys,
            }
            for s in state["candidates"]
        ]
        parsed = run_json_chain(
            ANSWER_WITH_SOURCES_PROMPT,
            llm,
            {"query": state["query"], "knowledge": knowledge_section(payload)},
            name="answer_with_sources",
        )
        result = _coerce_answer(parsed) if parsed else None
        if result is None:
            return {**state, **_empty_answer()}
        return {**state, **result}

    def resolve_sources(state: QueryState) -> QueryState:
        by_id = {s.summary_id: s for s in state.get("candidates", [])}

        # citations outside the candidates, or to topics a summary lacks, are dropped
        topics_referenced: Dict[str, List[str]] = {}
        for summary_id, topic_keys in state.get("topics_referenced", {}).items():
            summary = by_id.get(summary_id)
            if summary is None:
                logger.debug("Answer cited unknown summary %s", summary_id)
                continue
            known = [k for k in dict.fromkeys(topic_keys) if k in summary.topic_sources]
            if known:
                topics_referenced[summary_id] = known
        summaries_used = [
            sid for sid in dict.fromkeys([*state.get("summaries_used", []), *topics_referenced])
            if sid in by_id
        ]

        entry_ids: Dict[str, None] = {}
        for summary_id, topic_keys in topics_referenced.items():
            for key in topic_keys:
                for entry_id in by_id[summary_id].topic_sources[key]:
                    entry_ids.setdefault(entry_id, None)

        details: List[EntryDetail] = []
        for entry_id in entry_ids:
            entry = store.get_entry(state["space_id"], entry_id)
            if entry is None:
                logger.warning("Cited entry %s not found — using placeholder", entry_id)
                details.append(EntryDetail(
                    entry_id=entry_id,
                    content=MISSING_ENTRY_CONTENT,
                    source_type=MISSING_ENTRY_SOURCE_TYPE,
                    timestamp=state["timestamp"],
                    contributor=MISSING_ENTRY_CONTRIBUTOR,
                ))
                continue
            details.append(EntryDetail(
                entry_id=entry.entry_id,
                content=entry.content,
                source_type=entry.source_type.value,
                timestamp=entry.created_at,
                contributor=entry.contributor or ANONYMOUS_CONTRIBUTOR,
            ))

        return {
            **state,
            "summaries_used": summaries_used,
            "topics_referenced": topics_referenced,
            "original_entries": list(entry_ids),
            "original_entry_details": details,
        }

    def insufficient_info(state: QueryState) -> QueryState:
        return {**state, **_empty_answer()}

    def route_on_candidates(state: QueryState) -> str:
        return "synthesize_answer" if state.get("candidates") else "insufficient_info"

    graph = StateGraph(QueryState)

    graph.add_node("load_summaries", load_summaries)
    graph.add_node("select_candidates", select_candidates)
    graph.add_node("synthesize_answer", synthesize_answer)
    graph.add_node("resolve_sources", resolve_sources)
    graph.add_node("insufficient_info", insufficient_info)

    graph.set_entry_point("load_summaries")

    graph.add_edge("load_summaries", "select_candidates")
    graph.add_conditional_edges("select_candidates", route_on_candidates)
    graph.add_edge("synthesize_answer", "resolve_sources")
    graph.add_edge("resolve_sources", END)
    graph.add_edge("insufficient_info", END)

    return graph.compile()
