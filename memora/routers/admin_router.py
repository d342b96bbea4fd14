"""
/admin router
-------------
GET /admin/health — Liveness check (store reachable + OPENAI_API_KEY present)
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from memora.models.api.admin import HealthResponse
from memora.routers.deps import store_dependency
from memora.settings import get_settings
from memora.stores.base import KnowledgeStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse)
def health(store: KnowledgeStore = Depends(store_dependency)) -> HealthResponse:
    """
    Liveness + dependency check.

    Verifies:
      - the configured store answers a lightweight query
      - OPENAI_API_KEY is present in environment (no API call made)
    """
    settings = get_settings()
    store_ok = False
    detail = None

    try:
        store.ping()
        store_ok = True
    except Exception as e:
        detail = f"Store unreachable: {e}"
        logger.error(detail)

    openai_ok = bool(settings.openai_api_key)
    if not openai_ok:
        detail = ((detail or "") + " OPENAI_API_KEY missing.").strip()

    return HealthResponse(
        status="ok" if (store_ok and openai_ok) else "degraded",
        store_backend=settings.store_backend,
        store=store_ok,
        openai=openai_ok,
        detail=detail,
    )
