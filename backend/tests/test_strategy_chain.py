import pytest

from mila_assistant.schemas import AssistantContext
from mila_assistant.services.strategies import ResponseStrategy, default_strategies
from mila_assistant.services.strategy_chain import CONTEXTUAL_HELP, StrategyChainExecutor


def test_terminology_scenario(chain):
    result = chain.execute("What is OD?")
    assert result.handler == "terminology"
    assert result.success
    assert "Right Eye" in result.text


def test_bulk_listing_returns_only_the_specialty_subset(chain):
    result = chain.execute("show me all CPT codes for ophthalmology")
    assert result.handler == "code_lookup"
    for code in ("92250", "92227", "92228", "92229", "92285", "92310", "92015"):
        assert code in result.text
    assert "99213" not in result.text
    assert "E11.9" not in result.text


def test_exact_code_lookup(chain):
    result = chain.execute("E11.9")
    assert result.handler == "code_lookup"
    assert "Type 2 diabetes mellitus" in result.text


def test_unknown_code_gets_suggestions_not_an_error(chain):
    result = chain.execute("E99.99")
    assert result.handler == "code_lookup"
    assert "couldn't find **E99.99**" in result.text
    assert "Similar codes" in result.text
    assert "E11.9" in result.text


def test_condition_code_search(chain):
    result = chain.execute("diabetes codes")
    assert result.handler == "code_lookup"
    assert "E11.9" in result.text


def test_invalid_npi_is_explained(chain):
    result = chain.execute("Check NPI 1234567890")
    assert result.handler == "provider_lookup"
    assert "not a valid NPI" in result.text


def test_known_npi_returns_directory_entry(chain):
    result = chain.execute("Validate provider 1245319599")
    assert result.handler == "provider_lookup"
    assert "Dr. Michael Chen" in result.text


def test_specialty_profile(chain):
    result = chain.execute("tell me about nephrology")
    assert result.handler == "specialty"
    assert "N18.3" in result.text


def test_eligibility_includes_field_guidance(chain):
    context = AssistantContext(form_type="PatientEligibilityForm", current_field="subscriberId")
    result = chain.execute("how do I check eligibility", context=context)
    assert result.handler == "eligibility"
    assert "member ID" in result.text


def test_claim_denials(chain):
    result = chain.execute("why was my claim denied")
    assert result.handler == "claims"
    assert "denial reasons" in result.text


def test_workflow_marks_current_step(chain):
    context = AssistantContext(form_type="ClaimsSubmissionForm", current_step=2)
    result = chain.execute("what is the next step", context=context)
    assert result.handler == "workflow"
    assert "2. Diagnosis codes  <- you are here" in result.text
    assert "Next: Prescription details" in result.text


def test_mobile_voice_commands(chain):
    result = chain.execute("what voice commands can I use")
    assert result.handler == "mobile"
    assert "next step" in result.text


def test_greeting(chain):
    result = chain.execute("hello")
    assert result.handler == "general"
    assert result.success


def test_medium_confidence_falls_through_to_full_chain(chain):
    # "providers" is only a substring hit for provider lookup, which has nothing to say
    result = chain.execute("any providers for OD")
    assert result.confidence == 1
    assert result.handler == "terminology"


def test_contextual_help_when_nothing_matches(chain):
    context = AssistantContext(form_type="ClaimsSubmissionForm", current_field="diagnosisCodes")
    result = chain.execute("zzz qqq", context=context, hints=["e11.9"])
    assert result.handler == CONTEXTUAL_HELP
    assert not result.success
    assert "ClaimsSubmissionForm" in result.text
    assert "diagnosisCodes" in result.text
    assert "Code lookups" in result.text
    assert "e11.9" in result.text


@pytest.mark.parametrize("text", [
    "", "?", "zzz", "I'd be happy to help", "show all", "12", "list every thing",
    "asdf qwer zxcv", "what is", "E", "999999", "hello?", "!!!",
])
def test_chain_always_terminates_with_text(chain, text):
    result = chain.execute(text)
    assert result.text
    assert result.text.strip()


class ExplodingStrategy(ResponseStrategy):
    name = "exploding"

    def handle(self, query):
        raise RuntimeError("boom")


class FillerStrategy(ResponseStrategy):
    name = "filler"

    def handle(self, query):
        return "I'd be happy to help! Let me know what you need."


def test_failing_and_generic_strategies_are_skipped(knowledge, classifier, extractor, config):
    strategies = [ExplodingStrategy(knowledge), FillerStrategy(knowledge)] + list(default_strategies(knowledge))
    executor = StrategyChainExecutor(knowledge, classifier, extractor, config.routing, strategies=strategies)
    result = executor.execute("HEDIS")
    assert result.handler == "terminology"
    assert "Healthcare Effectiveness" in result.text


def test_only_failing_strategies_still_produce_help(knowledge, classifier, extractor, config):
    strategies = [ExplodingStrategy(knowledge), FillerStrategy(knowledge)]
    executor = StrategyChainExecutor(knowledge, classifier, extractor, config.routing, strategies=strategies)
    result = executor.execute("HEDIS")
    assert result.handler == CONTEXTUAL_HELP
    assert result.text
