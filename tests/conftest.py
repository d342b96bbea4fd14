from __future__ import annotations

import pytest

from memora.stores.memory_store import InMemoryKnowledgeStore


@pytest.fixture
def store() -> InMemoryKnowledgeStore:
    return InMemoryKnowledgeStore()
