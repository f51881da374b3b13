"""
Hybrid router: decides whether a query is answered from local knowledge or
by the remote model, and falls back to local knowledge when the remote
path fails.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from mila_assistant.core.config import RoutingConfig
from mila_assistant.core.constants import COMPLEX_REASONING_INDICATORS, LOCAL_KNOWLEDGE_PHRASES
from mila_assistant.core.exceptions import RemoteGatewayError
from mila_assistant.knowledge import KnowledgeBase
from mila_assistant.schemas import AssistantContext
from mila_assistant.services.entity_extractor import EntityExtractor
from mila_assistant.services.genai_client import RemoteGateway
from mila_assistant.services.query_classifier import IntentCandidate, IntentClassifier
from mila_assistant.services.strategy_chain import ChainResult, StrategyChainExecutor

logger = logging.getLogger(__name__)

LOCAL = "local"
REMOTE = "remote"

ABBREVIATION_QUERY = re.compile(
    r"^\s*(?:what\s+is|what's|whats|define|what\s+does)\s+(?:an?\s+|the\s+)?"
    r"([a-z0-9][a-z0-9\-]*)(?:\s+(?:mean|stand\s+for))?\s*[?.!]*\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RoutingDecision:
    path: str
    rationale: str


@dataclass(frozen=True)
class RoutedResponse:
    """Final answer plus how it was produced."""
    text: str
    path: str
    classification: IntentCandidate
    handler: Optional[str] = None
    success: bool = True
    degraded: bool = False
    error_kind: Optional[str] = None


class HybridRouter:
    """Routes queries between the strategy chain and the remote gateway."""

    def __init__(
        self,
        knowledge: KnowledgeBase,
        classifier: IntentClassifier,
        extractor: EntityExtractor,
        chain: StrategyChainExecutor,
        gateway: RemoteGateway,
        routing: Optional[RoutingConfig] = None,
    ):
        self.knowledge = knowledge
        self.classifier = classifier
        self.extractor = extractor
        self.chain = chain
        self.gateway = gateway
        self.routing = routing or RoutingConfig()

    def decide(self, text: str) -> RoutingDecision:
        """Pure routing decision; the first matching rule wins."""
        lowered = text.lower()
        word_count = len(text.split())

        # Rule 1: obvious local-knowledge queries
        if self.extractor.is_code_shaped(text):
            return RoutingDecision(LOCAL, "input is a code")
        if word_count <= self.routing.remote_word_threshold and self.extractor.find_code_tokens(text):
            return RoutingDecision(LOCAL, "short query containing a code")
        match = ABBREVIATION_QUERY.match(text)
        if match and self.knowledge.define(match.group(1)) is not None:
            return RoutingDecision(LOCAL, f"known abbreviation {match.group(1).upper()}")
        for phrase in LOCAL_KNOWLEDGE_PHRASES:
            if phrase in lowered:
                return RoutingDecision(LOCAL, f"local phrase '{phrase}'")

        # Rule 2: reasoning language
        for indicator in COMPLEX_REASONING_INDICATORS:
            if indicator in lowered:
                return RoutingDecision(REMOTE, f"complex indicator '{indicator.strip()}'")

        # Rule 3: long queries and longer questions
        if word_count > self.routing.remote_word_threshold:
            return RoutingDecision(REMOTE, f"{word_count} words")
        if "?" in text and word_count > self.routing.question_word_threshold:
            return RoutingDecision(REMOTE, f"question with {word_count} words")

        # Rule 4
        return RoutingDecision(LOCAL, "default")

    async def route(
        self,
        text: str,
        context: Optional[AssistantContext] = None,
        hints: Sequence[str] = (),
        classification: Optional[IntentCandidate] = None,
    ) -> RoutedResponse:
        """Answer a query; never raises for remote failures."""
        decision = self.decide(text)
        classification = classification or self.classifier.classify(text)
        logger.info(f"Routing to {decision.path}: {decision.rationale}")

        if decision.path == REMOTE:
            try:
                answer = await self.gateway.generate(text, context)
                return RoutedResponse(text=answer, path=REMOTE, classification=classification)
            except RemoteGatewayError as e:
                logger.warning(f"Remote path failed ({e.kind}), answering locally: {e}")
                result = self._run_chain(text, context, classification, hints)
                return RoutedResponse(
                    text=f"{e.user_message}\n\n{result.text}",
                    path=LOCAL,
                    classification=classification,
                    handler=result.handler,
                    success=result.success,
                    degraded=True,
                    error_kind=e.kind,
                )

        result = self._run_chain(text, context, classification, hints)
        return RoutedResponse(
            text=result.text,
            path=LOCAL,
            classification=classification,
            handler=result.handler,
            success=result.success,
        )

    def _run_chain(
        self,
        text: str,
        context: Optional[AssistantContext],
        classification: IntentCandidate,
        hints: Sequence[str],
    ) -> ChainResult:
        return self.chain.execute(text, context=context, classification=classification, hints=hints)
