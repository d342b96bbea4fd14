"""FastAPI dependencies — one place to swap the store or the pipeline services in tests."""
from __future__ import annotations

from fastapi import Depends

from memora.services.entry_processor import EntryProcessor
from memora.services.query_resolver import QueryResolver
from memora.stores.base import KnowledgeStore
from memora.stores.factory import get_store


def store_dependency() -> KnowledgeStore:
    return get_store()


def get_entry_processor(store: KnowledgeStore = Depends(store_dependency)) -> EntryProcessor:
    return EntryProcessor(store)


def get_query_resolver(store: KnowledgeStore = Depends(store_dependency)) -> QueryResolver:
    return QueryResolver(store)
