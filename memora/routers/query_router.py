"""
/query router
-------------
Ask the space's accumulated knowledge, with topic-level source attribution.

POST /query                        — Answer a query; cites summaries, topics and raw entries
POST /query/sources                — Per-summary breakdown of a previous answer's sources
GET  /query/history/{space_id}     — Recently logged queries
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from memora.models.api.query import (
    QueryHistoryResponse,
    QueryRequest,
    SourceDetailsRequest,
    SourceDetailsResponse,
)
from memora.models.domain.queries import QueryAnswer
from memora.routers.deps import get_query_resolver, store_dependency
from memora.services.query_resolver import QueryResolver
from memora.stores.base import KnowledgeStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/query", tags=["query"])


@router.post("", response_model=QueryAnswer)
def ask(
    req: QueryRequest,
    resolver: QueryResolver = Depends(get_query_resolver),
) -> QueryAnswer:
    """
    Resolve a query against the space's summaries.

    An empty knowledge base or an unanswerable query comes back with
    insufficient_info=True and an empty answer — not an error. Only a store
    failure produces a 500.
    """
    try:
        if req.log_history:
            return resolver.resolve_and_log(req.space_id, req.query)
        return resolver.resolve(req.space_id, req.query)
    except Exception as e:
        logger.exception("Query resolution failed")
        raise HTTPException(status_code=500, detail=f"Query failed: {e}")


@router.post("/sources", response_model=SourceDetailsResponse)
def source_details(
    req: SourceDetailsRequest,
    resolver: QueryResolver = Depends(get_query_resolver),
) -> SourceDetailsResponse:
    try:
        sources = resolver.source_details(req.space_id, req.summary_ids, req.topics_referenced)
    except Exception as e:
        logger.exception("Source details lookup failed")
        raise HTTPException(status_code=500, detail=str(e))
    return SourceDetailsResponse(space_id=req.space_id, sources=sources)


@router.get("/history/{space_id}", response_model=QueryHistoryResponse)
def query_history(
    space_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    store: KnowledgeStore = Depends(store_dependency),
) -> QueryHistoryResponse:
    try:
        queries = store.list_query_logs(space_id, limit=limit)
    except Exception as e:
        logger.exception("Query history lookup failed")
        raise HTTPException(status_code=500, detail=str(e))
    return QueryHistoryResponse(space_id=space_id, queries=queries)
