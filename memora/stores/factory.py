"""Store selection — one KnowledgeStore per process, chosen by MEMORA_STORE_BACKEND."""
from __future__ import annotations

import logging
from functools import lru_cache

from memora.settings import get_settings
from memora.stores.base import KnowledgeStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store() -> KnowledgeStore:
    backend = get_settings().store_backend
    if backend == "memory":
        from memora.stores.memory_store import InMemoryKnowledgeStore

        logger.warning("Using in-memory knowledge store — data is lost on restart")
        return InMemoryKnowledgeStore()

    from memora.stores.supabase_store import SupabaseKnowledgeStore
    from memora.supabase.supabase_client import get_supabase

    return SupabaseKnowledgeStore(get_supabase())
