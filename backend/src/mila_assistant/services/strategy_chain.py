"""
Strategy chain executor.

Routes a query to the handler for its classified intent when confidence is
high enough, falls back to trying every handler in order, and finally
returns contextual help. The chain always produces an answer.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from mila_assistant.core.config import RoutingConfig
from mila_assistant.core.constants import CAPABILITY_MENU
from mila_assistant.knowledge import KnowledgeBase
from mila_assistant.schemas import AssistantContext
from mila_assistant.services.entity_extractor import EntityExtractor, SemanticEntity
from mila_assistant.services.query_classifier import Intent, IntentCandidate, IntentClassifier
from mila_assistant.services.response_quality import is_generic_response
from mila_assistant.services.strategies import ResponseStrategy, StrategyInput, default_strategies

logger = logging.getLogger(__name__)

CONTEXTUAL_HELP = "contextual_help"

INTENT_HANDLERS: Dict[Intent, str] = {
    Intent.CODE_LOOKUP: "code_lookup",
    Intent.BULK_CODE_LISTING: "code_lookup",
    Intent.TERMINOLOGY: "terminology",
    Intent.PROVIDER_LOOKUP: "provider_lookup",
    Intent.SPECIALTY: "specialty",
    Intent.ELIGIBILITY: "eligibility",
    Intent.CLAIMS: "claims",
    Intent.WORKFLOW: "workflow",
    Intent.MOBILE: "mobile",
    Intent.GENERAL: "general",
}


@dataclass(frozen=True)
class ChainResult:
    """Outcome of one chain execution."""
    text: str
    handler: str
    success: bool
    intent: Optional[str] = None
    confidence: int = 0


class StrategyChainExecutor:
    """Runs local strategies for a query until one gives a concrete answer."""

    def __init__(
        self,
        knowledge: KnowledgeBase,
        classifier: IntentClassifier,
        extractor: EntityExtractor,
        routing: Optional[RoutingConfig] = None,
        strategies: Optional[Sequence[ResponseStrategy]] = None,
    ):
        self.knowledge = knowledge
        self.classifier = classifier
        self.extractor = extractor
        self.routing = routing or RoutingConfig()
        self.strategies: List[ResponseStrategy] = list(strategies or default_strategies(knowledge))
        self._by_name = {strategy.name: strategy for strategy in self.strategies}

    def execute(
        self,
        text: str,
        context: Optional[AssistantContext] = None,
        classification: Optional[IntentCandidate] = None,
        entities: Optional[List[SemanticEntity]] = None,
        hints: Sequence[str] = (),
    ) -> ChainResult:
        """
        Answer a query from local knowledge.

        Args:
            text: Raw user input
            context: Active form/field context
            classification: Pre-computed intent, classified here when omitted
            entities: Pre-computed entities, extracted here when omitted
            hints: Previously successful query words for this user and form

        Returns:
            ChainResult; success is False only for contextual help
        """
        context = context or AssistantContext()
        classification = classification or self.classifier.classify(text)
        if entities is None:
            entities = self.extractor.extract(text)

        query = StrategyInput(
            text=text,
            context=context,
            classification=classification,
            entities=entities,
            code_tokens=self.extractor.find_code_tokens(text),
            npis=self.extractor.find_npis(text),
        )

        tried = set()
        if classification.confidence >= self.routing.medium_confidence_threshold:
            strategy = self._by_name.get(INTENT_HANDLERS.get(classification.intent, ""))
            if strategy is not None:
                tried.add(strategy.name)
                answer = self._attempt(strategy, query)
                if answer is not None:
                    return self._result(answer, strategy.name, classification)
                level = "high" if classification.confidence >= self.routing.high_confidence_threshold else "medium"
                logger.info(f"{strategy.name} gave no concrete answer at {level} confidence, running full chain")

        for strategy in self.strategies:
            if strategy.name in tried:
                continue
            answer = self._attempt(strategy, query)
            if answer is not None:
                return self._result(answer, strategy.name, classification)

        logger.info("No strategy produced a concrete answer, returning contextual help")
        return ChainResult(
            text=self.contextual_help(query, hints),
            handler=CONTEXTUAL_HELP,
            success=False,
            intent=classification.name,
            confidence=classification.confidence,
        )

    def _attempt(self, strategy: ResponseStrategy, query: StrategyInput) -> Optional[str]:
        try:
            answer = strategy.handle(query)
        except Exception as e:
            logger.error(f"Strategy {strategy.name} failed: {e}", exc_info=True)
            return None
        if is_generic_response(answer):
            return None
        return answer

    def _result(self, answer: str, handler: str, classification: IntentCandidate) -> ChainResult:
        return ChainResult(
            text=answer,
            handler=handler,
            success=True,
            intent=classification.name,
            confidence=classification.confidence,
        )

    def contextual_help(self, query: StrategyInput, hints: Sequence[str] = ()) -> str:
        """Last-resort answer built from the user's context and the capability menu."""
        lines = ["I couldn't find a specific answer to that in the billing references."]

        context = query.context
        if context.form_type and context.current_field:
            lines.append(f"You're on **{context.form_type}**, field **{context.current_field}**.")
            guidance = self.knowledge.field_help(context.form_type, context.current_field)
            if guidance:
                lines.append(guidance)
        elif context.form_type:
            lines.append(f"You're on **{context.form_type}**.")

        if query.classification.matched_keywords:
            lines.append(f"I picked up: {', '.join(query.classification.matched_keywords)}.")

        if hints:
            lines.append(f"Questions that worked for you here before mentioned: {', '.join(hints)}.")

        lines.append("")
        lines.append("Here is what I can help with:")
        lines.extend(f"• {item}" for item in CAPABILITY_MENU)
        return "\n".join(lines)
