import asyncio

from mila_assistant.core.constants import DEGRADED_NOTICES, SAFE_FALLBACK_RESPONSE
from mila_assistant.schemas import AssistantContext, AssistantQueryInput

from conftest import FakeGenaiClient

COMPARISON_QUERY = "Explain the difference between ICD-10 and CPT codes and when to use each"


def _query(text, **kwargs):
    return AssistantQueryInput(text=text, **kwargs)


def test_terminology_scenario_end_to_end(make_service):
    result = asyncio.run(make_service().process_query(_query("What is OD?")))
    assert result.path == "local"
    assert result.handler == "terminology"
    assert result.intent == "terminology"
    assert "Right Eye" in result.response


def test_bulk_scenario_end_to_end(make_service):
    result = asyncio.run(make_service().process_query(_query("show me all CPT codes for ophthalmology")))
    assert result.intent == "bulk_code_listing"
    assert result.confidence == 10
    assert "92250" in result.response
    assert "99213" not in result.response


def test_remote_answer(make_service):
    service = make_service(genai_client=FakeGenaiClient("Use ICD-10 for diagnoses and CPT for procedures."),
                           api_key="test-key")
    result = asyncio.run(service.process_query(_query(COMPARISON_QUERY)))
    assert result.path == "remote"
    assert not result.degraded
    assert result.response == "Use ICD-10 for diagnoses and CPT for procedures."
    assert len(service.interaction_log) == 0


def test_remote_failure_degrades_with_notice(make_service):
    service = make_service(genai_client=FakeGenaiClient(TimeoutError("slow")), api_key="test-key")
    result = asyncio.run(service.process_query(_query(COMPARISON_QUERY)))
    assert result.path == "local"
    assert result.degraded
    assert result.response.startswith(DEGRADED_NOTICES["transport"])


def test_unconfigured_remote_degrades(make_service):
    result = asyncio.run(make_service().process_query(_query(COMPARISON_QUERY)))
    assert result.degraded
    assert result.response.startswith(DEGRADED_NOTICES["configuration"])


def test_sixteen_remote_calls_in_one_second(make_service, fake_clock):
    service = make_service(genai_client=FakeGenaiClient(*["answer"] * 16), api_key="test-key")

    async def run():
        return await asyncio.gather(*(service.process_query(_query(COMPARISON_QUERY)) for _ in range(16)))

    results = asyncio.run(run())
    assert all(result.path == "remote" for result in results)
    assert fake_clock.sleeps == [60.0]


def test_unexpected_errors_never_escape(make_service, monkeypatch):
    service = make_service()

    async def explode(*args, **kwargs):
        raise RuntimeError("router exploded")

    monkeypatch.setattr(service.router, "route", explode)
    result = asyncio.run(service.process_query(_query("What is OD?")))
    assert result.response == SAFE_FALLBACK_RESPONSE
    assert result.degraded


def test_local_answers_feed_the_interaction_log(make_service):
    service = make_service()
    context = AssistantContext(form_type="ClaimsSubmissionForm")

    async def run():
        await service.process_query(_query("diabetes codes", user_id="user-1", context=context))
        await service.process_query(_query("zzz qqq", user_id="user-1", context=context))

    asyncio.run(run())
    records = service.interaction_log.recent()
    assert [record.success for record in records] == [True, False]
    assert service.interaction_log.top_tokens("user-1", "ClaimsSubmissionForm") == ["diabetes", "codes"]


def test_learning_hints_appear_in_contextual_help(make_service):
    service = make_service()
    context = AssistantContext(form_type="ClaimsSubmissionForm")

    async def run():
        await service.process_query(_query("diabetes codes", user_id="user-1", context=context))
        return await service.process_query(_query("zzz qqq", user_id="user-1", context=context))

    result = asyncio.run(run())
    assert "diabetes, codes" in result.response


def test_health(make_service):
    health = asyncio.run(make_service().health())
    assert health == {"memory_available": False, "remote_configured": False, "interactions_logged": 0}


def test_each_query_is_classified_once(make_service, monkeypatch):
    service = make_service()
    calls = []
    classify = service.classifier.classify

    def counting_classify(text):
        calls.append(text)
        return classify(text)

    monkeypatch.setattr(service.classifier, "classify", counting_classify)
    asyncio.run(service.process_query(_query("What is OD?")))
    assert calls == ["What is OD?"]
