"""
memora/services/query_resolver.py
----------------------------------
Answers a free-text query from the space's summaries and traces the answer
back to the raw entries behind each cited topic.

Model failures resolve to an insufficient_info answer; only store failures
propagate (as StoreError or whatever the backend raised).

Import
------
    from memora.services.query_resolver import QueryResolver

    resolver = QueryResolver(store)
    answer = resolver.resolve("space-1", "What do Google onsites look like?")
    answer.sources_used.original_entries   # ["entry_...", ...]
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from langchain_core.runnables import Runnable

from memora.models.domain._time import utcnow
from memora.models.domain.queries import QueryAnswer, SourceDetail, SourcesUsed
from memora.services.llm import get_chat_model
from memora.stores.base import KnowledgeStore
from memora.workflows.query_workflow import build_query_graph

logger = logging.getLogger(__name__)


class QueryResolver:
    def __init__(self, store: KnowledgeStore, llm: Optional[Runnable] = None):
        self.store = store
        self.llm = llm if llm is not None else get_chat_model()
        self._graph = build_query_graph(store, self.llm)

    def resolve(self, space_id: str, query_text: str) -> QueryAnswer:
        timestamp = utcnow()
        state = self._graph.invoke({
            "space_id": space_id,
            "query": query_text,
            "timestamp": timestamp,
        })

        answer = QueryAnswer(
            space_id=space_id,
            original_query=query_text,
            answer=state.get("answer", ""),
            sources_used=SourcesUsed(
                summaries=state.get("summaries_used", []),
                topics_referenced=state.get("topics_referenced", {}),
                original_entries=state.get("original_entries", []),
            ),
            original_entry_details=state.get("original_entry_details", []),
            confidence=state.get("confidence", 0.0),
            insufficient_info=state.get("insufficient_info", True),
            timestamp=timestamp,
        )
        logger.info(
            "Query %s resolved — insufficient_info=%s confidence=%.2f entries=%d",
            answer.query_id, answer.insufficient_info, answer.confidence,
            len(answer.sources_used.original_entries),
        )
        return answer

    def resolve_and_log(self, space_id: str, query_text: str) -> QueryAnswer:
        """resolve(), then record the answer in the query history (best effort)."""
        answer = self.resolve(space_id, query_text)
        try:
            self.store.save_query_log(answer)
        except Exception as e:
            logger.warning("Could not log query %s: %s", answer.query_id, e)
        return answer

    def source_details(
        self,
        space_id: str,
        summary_ids: List[str],
        topics_referenced: Dict[str, List[str]],
    ) -> List[SourceDetail]:
        """Human-readable breakdown of which summaries/topics backed an answer."""
        summaries = {s.summary_id: s for s in self.store.list_summaries(space_id)}
        details: List[SourceDetail] = []
        for summary_id in summary_ids:
            summary = summaries.get(summary_id)
            if summary is None:
                continue
            topics_used = topics_referenced.get(summary_id, [])
            details.append(SourceDetail(
                summary_id=summary_id,
                domain=summary.domain,
                subtopic=summary.subtopic,
                topics_used=topics_used,
                entry_count=sum(len(summary.topic_sources.get(t, [])) for t in topics_used),
            ))
        return details
