import pytest

from mila_assistant.services.interaction_log import InteractionLog, InteractionRecord, tokenize


def _record(query, success=True, user_id="u1", form_type="ClaimsSubmissionForm", path="local"):
    return InteractionRecord(user_id=user_id, form_type=form_type, query=query, response="answer",
                             success=success, path=path)


def test_oldest_entries_are_evicted_first():
    log = InteractionLog(capacity=50)
    for index in range(60):
        log.record(_record(f"query {index}"))
    records = log.recent()
    assert len(records) == 50
    assert records[0].query == "query 10"
    assert records[-1].query == "query 59"


def test_top_tokens_counts_only_successful_matching_queries():
    log = InteractionLog()
    log.record(_record("E11.9 diabetes code"))
    log.record(_record("diabetes retinopathy code"))
    log.record(_record("diabetes diabetes diabetes", success=False))
    log.record(_record("diabetes code", user_id="someone-else"))
    log.record(_record("glaucoma code", form_type="PatientEligibilityForm"))

    assert log.top_tokens(user_id="u1", form_type="ClaimsSubmissionForm", limit=2) == ["diabetes", "code"]


def test_tokenize_drops_stopwords():
    assert tokenize("What is the code for E11.9?") == ["code", "e11.9"]


def test_insights_summary():
    log = InteractionLog(capacity=5)
    log.record(_record("a", success=True))
    log.record(_record("b", success=False))
    insights = log.insights()
    assert insights["total_interactions"] == 2
    assert insights["successful_interactions"] == 1
    assert insights["success_rate"] == 0.5
    assert insights["capacity"] == 5


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        InteractionLog(capacity=0)
