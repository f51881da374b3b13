"""
Assistant service: the top-level query pipeline.

classify + extract -> route (local chain or remote gateway) -> personalize
-> record. Nothing below ``process_query`` may escape it; the caller always
receives a natural-language answer.
"""

import logging
from typing import Any, Callable, Dict, Optional

from mila_assistant.core.config import Config, get_config
from mila_assistant.core.constants import SAFE_FALLBACK_RESPONSE
from mila_assistant.knowledge import KnowledgeBase, build_default_knowledge_base
from mila_assistant.schemas import AssistantContext, AssistantQueryInput, AssistantQueryResponse
from mila_assistant.services.entity_extractor import EntityExtractor
from mila_assistant.services.genai_client import RemoteGateway, default_client_factory
from mila_assistant.services.hybrid_router import LOCAL, HybridRouter
from mila_assistant.services.interaction_log import InteractionLog, InteractionRecord
from mila_assistant.services.memory_overlay import MemoryOverlay
from mila_assistant.services.memory_store import MemoryStore, build_memory_store
from mila_assistant.services.query_classifier import Intent, IntentClassifier
from mila_assistant.services.rate_limiter import SlidingWindowRateLimiter
from mila_assistant.services.response_quality import is_successful_response
from mila_assistant.services.strategy_chain import StrategyChainExecutor

logger = logging.getLogger(__name__)


class AssistantService:
    """Owns one instance of every pipeline component."""

    def __init__(
        self,
        config: Optional[Config] = None,
        knowledge: Optional[KnowledgeBase] = None,
        memory_store: Optional[MemoryStore] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        interaction_log: Optional[InteractionLog] = None,
        client_factory: Callable[[str], Any] = default_client_factory,
    ):
        self.config = config or get_config()
        routing = self.config.routing

        self.knowledge = knowledge or build_default_knowledge_base()
        self.classifier = IntentClassifier(self.knowledge)
        self.extractor = EntityExtractor(self.knowledge)
        self.chain = StrategyChainExecutor(self.knowledge, self.classifier, self.extractor, routing)
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter.from_config(self.config.rate_limit)
        self.gateway = RemoteGateway(self.config.gemini, self.rate_limiter, client_factory=client_factory)
        self.router = HybridRouter(
            self.knowledge, self.classifier, self.extractor, self.chain, self.gateway, routing
        )
        self.interaction_log = interaction_log or InteractionLog(routing.interaction_log_capacity)
        self.memory = MemoryOverlay(memory_store, self.knowledge, self.config.memory, routing)

        logger.info("Assistant service initialized")

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "AssistantService":
        config = config or get_config()
        return cls(config=config, memory_store=build_memory_store(config.memory))

    async def process_query(self, query: AssistantQueryInput) -> AssistantQueryResponse:
        """
        Answer one query.

        Args:
            query: Validated user input with optional user/session and form context

        Returns:
            AssistantQueryResponse; falls back to a safe message on unexpected errors
        """
        text = query.text.strip()[:self.config.application.max_query_length]
        context = query.context or AssistantContext()
        try:
            classification = self.classifier.classify(text)
            snapshot = await self.memory.prepare(
                text,
                query.user_id,
                query.session_id,
                context,
                is_terminology_question=classification.intent == Intent.TERMINOLOGY,
            )
            hints = self.interaction_log.top_tokens(
                user_id=query.user_id,
                form_type=context.form_type,
                limit=self.config.routing.learning_hint_limit,
            )

            routed = await self.router.route(text, context, hints=hints, classification=classification)
            answer = self.memory.personalize(routed.text, snapshot, context)

            if routed.path == LOCAL:
                self.interaction_log.record(InteractionRecord(
                    user_id=query.user_id,
                    form_type=context.form_type,
                    query=text,
                    response=routed.text,
                    success=is_successful_response(routed.text) and routed.success,
                    path=routed.path,
                    intent=routed.classification.name,
                ))

            metadata: Dict[str, Any] = {
                "path": routed.path,
                "intent": routed.classification.name,
                "handler": routed.handler,
                "degraded": routed.degraded,
            }
            await self.memory.record_turn(query.user_id, query.session_id, text, answer, context, metadata)
            if routed.success and routed.handler:
                await self.memory.store_learning_pattern(query.user_id, routed.classification.name, {
                    "query": text,
                    "handler": routed.handler,
                    "formType": context.form_type,
                }, session_id=query.session_id)

            return AssistantQueryResponse(
                response=answer,
                path=routed.path,
                intent=routed.classification.name,
                confidence=routed.classification.confidence,
                handler=routed.handler,
                degraded=routed.degraded,
            )

        except Exception as e:
            logger.error(f"Unexpected error processing query: {e}", exc_info=True)
            return AssistantQueryResponse(response=SAFE_FALLBACK_RESPONSE, path=LOCAL, degraded=True)

    async def health(self) -> Dict[str, Any]:
        return {
            "memory_available": await self.memory.is_available(),
            "remote_configured": self.gateway.is_configured(),
            "interactions_logged": len(self.interaction_log),
        }

    async def close(self) -> None:
        await self.memory.drain()
        if self.memory.store is not None:
            await self.memory.store.close()
        logger.info("Assistant service closed")
