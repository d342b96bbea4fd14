"""
HTTP-level tests for the routers, with the store and model swapped out
through FastAPI dependency overrides.
"""
import pytest
from fastapi.testclient import TestClient

from factories import ScriptedLLM, extraction, make_entry
from memora.main import app
from memora.routers.deps import get_entry_processor, get_query_resolver, store_dependency
from memora.services.entry_processor import EntryProcessor
from memora.services.query_resolver import QueryResolver
from memora.services.summary_merger import SummaryMerger
from memora.services.topic_extractor import TopicExtractor
from memora.settings import get_settings
from memora.stores.memory_store import InMemoryKnowledgeStore

SPACE = "space-1"


@pytest.fixture
def client(store):
    app.dependency_overrides[store_dependency] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_processor(store, extractor_llm, merger_llm):
    processor = EntryProcessor(
        store,
        extractor=TopicExtractor(extractor_llm.runnable),
        merger=SummaryMerger(merger_llm.runnable),
    )
    app.dependency_overrides[get_entry_processor] = lambda: processor
    return processor


def _use_resolver(store, llm):
    resolver = QueryResolver(store, llm.runnable)
    app.dependency_overrides[get_query_resolver] = lambda: resolver
    return resolver


def test_root(client):
    body = client.get("/").json()
    assert body["health"] == "/admin/health"


class TestEntries:

    def test_submit_creates_summary(self, client, store):
        _use_processor(store, ScriptedLLM(extraction()), ScriptedLLM({"summary_content": "Five rounds."}))

        resp = client.post("/entries", json={
            "space_id": SPACE,
            "content": "Google's onsite has 5 rounds including system design",
            "source_type": "help",
            "contributor": "Priya",
            "metadata": {"user_tags": ["interviews"]},
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["summary_id"] == "summary_google_interviews"
        assert body["topics_extracted"] == ["interview_structure"]

        saved = store.get_entry(SPACE, body["entry_id"])
        assert saved.contributor == "Priya"
        assert saved.metadata.user_tags == ["interviews"]

    def test_submit_ignores_client_entry_id(self, client, store):
        _use_processor(store, ScriptedLLM(extraction()), ScriptedLLM({"summary_content": "x"}))

        body = client.post("/entries", json={
            "space_id": SPACE,
            "content": "Google's onsite has 5 rounds",
            "metadata": {"existing_entry_id": "entry-forged"},
        }).json()

        assert body["entry_id"] != "entry-forged"
        listed = client.get(f"/entries/{SPACE}").json()["entries"]
        assert "existing_entry_id" not in listed[0]["metadata"]

    def test_submit_rejects_empty_content(self, client, store):
        _use_processor(store, ScriptedLLM(), ScriptedLLM())
        resp = client.post("/entries", json={"space_id": SPACE, "content": ""})
        assert resp.status_code == 422

    def test_list_entries(self, client, store):
        store.save_entry(make_entry(SPACE, "e1", "Google's onsite has 5 rounds"))

        body = client.get(f"/entries/{SPACE}").json()

        assert [e["entry_id"] for e in body["entries"]] == ["e1"]
        assert body["entries"][0]["source_type"] == "manual"

    def test_batch_runs_in_background(self, client, store):
        _use_processor(
            store,
            ScriptedLLM(extraction(), extraction(confidence=0.1)),
            ScriptedLLM({"summary_content": "Five rounds."}),
        )

        resp = client.post("/entries/batch", json={
            "space_id": SPACE,
            "items": [
                {"content": "Google's onsite has 5 rounds"},
                {"content": "Vague musings about things"},
            ],
        })

        assert resp.status_code == 202
        batch_id = resp.json()["batch_id"]
        assert resp.json()["total"] == 2

        status = client.get(f"/entries/batch/status/{batch_id}").json()
        assert status["status"] == "complete"
        assert status["completed"] == 2
        assert [it["summary_id"] for it in status["items"]] == ["summary_google_interviews", None]
        assert len(store.list_entries(SPACE)) == 2

    def test_batch_limit(self, client, store):
        _use_processor(store, ScriptedLLM(), ScriptedLLM())
        resp = client.post("/entries/batch", json={
            "space_id": SPACE,
            "items": [{"content": f"entry number {i}"} for i in range(51)],
        })
        assert resp.status_code == 422

    def test_unknown_batch(self, client):
        assert client.get("/entries/batch/status/nope").status_code == 404


def _submit_google_entry(client, store):
    _use_processor(store, ScriptedLLM(extraction()), ScriptedLLM({"summary_content": "Five rounds."}))
    return client.post("/entries", json={
        "space_id": SPACE,
        "content": "Google's onsite has 5 rounds",
        "contributor": "Priya",
    }).json()["entry_id"]


class TestQuery:

    def test_answer_traces_back_to_entry(self, client, store):
        entry_id = _submit_google_entry(client, store)
        _use_resolver(store, ScriptedLLM({
            "answer": "Five rounds.",
            "summaries_used": ["summary_google_interviews"],
            "topics_referenced": {"summary_google_interviews": ["interview_structure"]},
            "confidence": 0.9,
            "insufficient_info": False,
        }))

        resp = client.post("/query", json={"space_id": SPACE, "query": "How many rounds at Google?"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["sources_used"]["original_entries"] == [entry_id]
        assert body["original_entry_details"][0]["contributor"] == "Priya"

        history = client.get(f"/query/history/{SPACE}").json()
        assert [q["query_id"] for q in history["queries"]] == [body["query_id"]]

    def test_history_opt_out(self, client, store):
        _use_resolver(store, ScriptedLLM())

        resp = client.post("/query", json={"space_id": SPACE, "query": "anything", "log_history": False})

        assert resp.json()["insufficient_info"] is True
        assert client.get(f"/query/history/{SPACE}").json()["queries"] == []

    def test_store_failure_is_500(self, client):
        class Broken(InMemoryKnowledgeStore):
            def list_summaries(self, space_id):
                raise ConnectionError("down")

        _use_resolver(Broken(), ScriptedLLM())

        resp = client.post("/query", json={"space_id": SPACE, "query": "anything"})

        assert resp.status_code == 500
        assert "down" in resp.json()["detail"]

    def test_sources(self, client, store):
        _submit_google_entry(client, store)
        _use_resolver(store, ScriptedLLM())

        body = client.post("/query/sources", json={
            "space_id": SPACE,
            "summary_ids": ["summary_google_interviews"],
            "topics_referenced": {"summary_google_interviews": ["interview_structure"]},
        }).json()

        assert body["sources"][0]["entry_count"] == 1


class TestSummariesAndAdmin:

    def test_get_and_list(self, client, store):
        _submit_google_entry(client, store)

        listed = client.get(f"/summaries/{SPACE}").json()
        assert [s["summary"]["summary_id"] for s in listed["summaries"]] == ["summary_google_interviews"]
        assert listed["summaries"][0]["size"]["needs_split"] is False

        one = client.get(f"/summaries/{SPACE}/summary_google_interviews").json()
        assert one["summary"]["version"] == 1

    def test_missing_summary_is_404(self, client):
        assert client.get(f"/summaries/{SPACE}/summary_none").status_code == 404

    def test_health(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("MEMORA_STORE_BACKEND", "memory")
        get_settings.cache_clear()
        try:
            body = client.get("/admin/health").json()
        finally:
            get_settings.cache_clear()

        assert body == {
            "status": "ok",
            "store_backend": "memory",
            "store": True,
            "openai": True,
            "detail": None,
        }

    def test_health_degraded_without_key(self, client, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        get_settings.cache_clear()
        try:
            body = client.get("/admin/health").json()
        finally:
            get_settings.cache_clear()

        assert body["status"] == "degraded"
        assert "OPENAI_API_KEY missing" in body["detail"]
