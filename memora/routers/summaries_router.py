"""
/summaries router
-----------------
Read-only view of the per-(domain, subtopic) summaries.

GET /summaries/{space_id}                — All summaries with their size report
GET /summaries/{space_id}/{summary_id}   — One summary
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from memora.models.api.summaries import SummaryListResponse, SummaryResponse
from memora.routers.deps import store_dependency
from memora.services.summary_size import measure_summary
from memora.stores.base import KnowledgeStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/summaries", tags=["summaries"])


@router.get("/{space_id}", response_model=SummaryListResponse)
def list_summaries(
    space_id: str,
    store: KnowledgeStore = Depends(store_dependency),
) -> SummaryListResponse:
    try:
        summaries = store.list_summaries(space_id)
    except Exception as e:
        logger.exception("Listing summaries for %s failed", space_id)
        raise HTTPException(status_code=500, detail=str(e))

    summaries.sort(key=lambda s: s.last_updated, reverse=True)
    return SummaryListResponse(
        space_id=space_id,
        summaries=[SummaryResponse(summary=s, size=measure_summary(s)) for s in summaries],
    )


@router.get("/{space_id}/{summary_id}", response_model=SummaryResponse)
def get_summary(
    space_id: str,
    summary_id: str,
    store: KnowledgeStore = Depends(store_dependency),
) -> SummaryResponse:
    try:
        summary = store.get_summary(space_id, summary_id)
    except Exception as e:
        logger.exception("Fetching summary %s failed", summary_id)
        raise HTTPException(status_code=500, detail=str(e))

    if summary is None:
        raise HTTPException(
            status_code=404,
            detail=f"No summary '{summary_id}' in space '{space_id}'.",
        )
    return SummaryResponse(summary=summary, size=measure_summary(summary))
