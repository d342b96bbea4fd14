"""
Tests for query resolution and source attribution.

Tests memora/workflows/query_workflow.py and memora/services/query_resolver.py.
"""
from factories import ScriptedLLM, make_entry
from memora.models.domain.queries import ANONYMOUS_CONTRIBUTOR, MISSING_ENTRY_CONTENT
from memora.models.domain.summaries import Summary
from memora.services.query_resolver import QueryResolver
from memora.stores.memory_store import InMemoryKnowledgeStore
from memora.workflows.query_workflow import find_relevant_summaries, score_summary

SPACE = "space-1"


def _summary(domain, subtopic, content, topic_sources=None, space_id=SPACE):
    topic_sources = topic_sources or {}
    contributors = list(dict.fromkeys(e for ids in topic_sources.values() for e in ids))
    return Summary(
        summary_id=f"summary_{domain}_{subtopic}",
        space_id=space_id,
        domain=domain,
        subtopic=subtopic,
        content=content,
        topic_sources=topic_sources,
        all_contributing_entries=contributors,
        entry_count=len(contributors),
    )


def _seed(store, *summaries):
    for s in summaries:
        store.save_summary(s)


def _answer(**overrides):
    body = {
        "answer": "Google's onsite has 5 rounds.",
        "summaries_used": ["summary_google_interviews"],
        "topics_referenced": {"summary_google_interviews": ["interview_structure"]},
        "confidence": 0.85,
        "insufficient_info": False,
    }
    body.update(overrides)
    return body


GOOGLE = _summary(
    "google", "interviews", "Google's onsite has 5 rounds including system design",
    {"interview_structure": ["e1", "e2"], "offer_timeline": ["e3"]},
)


class TestScoring:

    def test_additive_score(self):
        summary = _summary("google", "interviews", "Google's onsite has 5 rounds", {"interview_structure": []})
        # domain 3 + subtopic 2 + onsite/rounds/google 3
        assert score_summary("How many onsite rounds at Google interviews?", summary) == 8

    def test_topic_key_in_query(self):
        summary = _summary("amazon", "internship", "nothing shared", {"team_culture": []})
        assert score_summary("team_culture", summary) == 2

    def test_short_words_ignored(self):
        summary = _summary("amazon", "internship", "an of to")
        assert score_summary("an of to", summary) == 0

    def test_case_insensitive(self):
        summary = _summary("google", "interviews", "x")
        assert score_summary("GOOGLE", summary) == 3

    def test_top_five_by_score(self):
        summaries = [_summary(f"d{i}", "s", "alpha") for i in range(7)]
        summaries[3] = _summary("d3", "s", "alpha beta gamma")
        summaries[5] = _summary("d5", "s", "alpha beta")
        picked = find_relevant_summaries("alpha beta gamma", summaries)

        assert len(picked) == 5
        assert picked[0].summary_id == "summary_d3_s"
        assert picked[1].summary_id == "summary_d5_s"
        assert [s.domain for s in picked[2:]] == ["d0", "d1", "d2"]

    def test_zero_scores_excluded(self):
        summaries = [_summary("google", "interviews", "x"), _summary("amazon", "internship", "y")]
        assert [s.domain for s in find_relevant_summaries("google", summaries)] == ["google"]


class TestResolve:

    def test_empty_space_is_insufficient_without_model_call(self, store):
        llm = ScriptedLLM()
        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "anything?")

        assert answer.insufficient_info
        assert answer.answer == ""
        assert answer.confidence == 0.0
        assert answer.sources_used.original_entries == []
        assert llm.calls == []
        assert answer.query_id.startswith("query_")
        assert answer.original_query == "anything?"

    def test_round_trip_attribution(self, store):
        _seed(store, GOOGLE)
        store.save_entry(make_entry(SPACE, "e1", "Google's onsite has 5 rounds", contributor="Priya"))
        store.save_entry(make_entry(SPACE, "e2", "Only 3 rounds now"))
        store.save_entry(make_entry(SPACE, "e3", "Offer took two weeks"))
        llm = ScriptedLLM(_answer())

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "How many rounds in Google's onsite?")

        assert not answer.insufficient_info
        assert answer.confidence == 0.85
        assert answer.sources_used.summaries == ["summary_google_interviews"]
        assert answer.sources_used.original_entries == ["e1", "e2"]
        details = {d.entry_id: d for d in answer.original_entry_details}
        assert set(details) == {"e1", "e2"}
        assert details["e1"].contributor == "Priya"
        assert details["e2"].contributor == ANONYMOUS_CONTRIBUTOR
        assert details["e1"].source_type == "manual"
        assert "[Summary ID: summary_google_interviews]" in llm.calls[0]

    def test_missing_entry_gets_placeholder(self, store):
        _seed(store, GOOGLE)
        store.save_entry(make_entry(SPACE, "e1", "Google's onsite has 5 rounds"))
        llm = ScriptedLLM(_answer())

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "google onsite")

        assert answer.sources_used.original_entries == ["e1", "e2"]
        placeholder = [d for d in answer.original_entry_details if d.entry_id == "e2"][0]
        assert placeholder.content == MISSING_ENTRY_CONTENT
        assert placeholder.source_type == "unknown"
        assert placeholder.contributor == "Unknown"
        assert placeholder.timestamp == answer.timestamp

    def test_unknown_citations_are_ignored(self, store):
        _seed(store, GOOGLE)
        llm = ScriptedLLM(_answer(topics_referenced={
            "summary_google_interviews": ["no_such_topic"],
            "summary_made_up": ["interview_structure"],
        }))

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "google")

        assert answer.sources_used.original_entries == []
        assert answer.original_entry_details == []
        assert answer.sources_used.summaries == ["summary_google_interviews"]
        assert answer.sources_used.topics_referenced == {}

    def test_fabricated_summary_not_reported(self, store):
        _seed(store, GOOGLE)
        llm = ScriptedLLM(_answer(
            summaries_used=["summary_made_up", "summary_google_interviews"],
            topics_referenced={
                "summary_made_up": ["fake"],
                "summary_google_interviews": ["fake", "offer_timeline"],
            },
        ))

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "google")

        assert answer.sources_used.summaries == ["summary_google_interviews"]
        assert answer.sources_used.topics_referenced == {"summary_google_interviews": ["offer_timeline"]}
        assert answer.sources_used.original_entries == ["e3"]

    def test_string_insufficient_flag(self, store):
        _seed(store, GOOGLE)
        resolver = QueryResolver(store, ScriptedLLM(
            _answer(insufficient_info="false"), _answer(insufficient_info="True"),
        ).runnable)

        assert resolver.resolve(SPACE, "google").insufficient_info is False
        assert resolver.resolve(SPACE, "google").insufficient_info is True

    def test_fallback_to_all_summaries(self, store):
        amazon = _summary("amazon", "internship", "Friendly team", {"team_culture": ["e9"]})
        _seed(store, GOOGLE, amazon)
        llm = ScriptedLLM(_answer(insufficient_info=True, confidence=0.1, topics_referenced={}))

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "xyz qqq")

        assert "summary_google_interviews" in llm.calls[0]
        assert "summary_amazon_internship" in llm.calls[0]
        assert answer.insufficient_info

    def test_only_top_candidates_sent(self, store):
        others = [_summary(f"other{i}", "misc", "unrelated") for i in range(6)]
        _seed(store, GOOGLE, *others)
        llm = ScriptedLLM(_answer())

        QueryResolver(store, llm.runnable).resolve(SPACE, "google")

        assert "summary_google_interviews" in llm.calls[0]
        assert "summary_other0_misc" not in llm.calls[0]

    def test_model_failure_is_insufficient(self, store):
        _seed(store, GOOGLE)
        llm = ScriptedLLM(RuntimeError("model down"))

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "google")

        assert answer.insufficient_info
        assert answer.answer == ""
        assert answer.sources_used.summaries == []

    def test_unparseable_answer_is_insufficient(self, store):
        _seed(store, GOOGLE)
        answer = QueryResolver(store, ScriptedLLM("I think 5?").runnable).resolve(SPACE, "google")
        assert answer.insufficient_info

    def test_confidence_clamped(self, store):
        _seed(store, GOOGLE)
        llm = ScriptedLLM(_answer(confidence=3))
        assert QueryResolver(store, llm.runnable).resolve(SPACE, "google").confidence == 1.0

    def test_spaces_are_isolated(self, store):
        _seed(store, _summary("google", "interviews", "Other space", space_id="space-2"))
        llm = ScriptedLLM()

        answer = QueryResolver(store, llm.runnable).resolve(SPACE, "google")

        assert answer.insufficient_info
        assert llm.calls == []


class _NoLogStore(InMemoryKnowledgeStore):
    def save_query_log(self, answer):
        raise ConnectionError("history table missing")


class TestHistoryAndSources:

    def test_resolve_and_log_records_history(self, store):
        _seed(store, GOOGLE)
        resolver = QueryResolver(store, ScriptedLLM(_answer()).runnable)

        answer = resolver.resolve_and_log(SPACE, "google onsite")

        logs = store.list_query_logs(SPACE)
        assert [a.query_id for a in logs] == [answer.query_id]
        assert logs[0].answer == answer.answer

    def test_log_failure_does_not_fail_query(self):
        store = _NoLogStore()
        _seed(store, GOOGLE)
        resolver = QueryResolver(store, ScriptedLLM(_answer()).runnable)

        answer = resolver.resolve_and_log(SPACE, "google onsite")

        assert not answer.insufficient_info

    def test_source_details(self, store):
        _seed(store, GOOGLE)
        resolver = QueryResolver(store, ScriptedLLM().runnable)

        details = resolver.source_details(
            SPACE,
            ["summary_google_interviews", "summary_gone"],
            {"summary_google_interviews": ["interview_structure", "offer_timeline"]},
        )

        assert len(details) == 1
        assert details[0].domain == "google"
        assert details[0].topics_used == ["interview_structure", "offer_timeline"]
        assert details[0].entry_count == 3
