"""
Memory and personalization overlay.

Wraps query processing with per-user memory: preferences and prior term
usage are loaded before routing, answers are enriched afterwards, and each
turn is persisted. Every step is best-effort: failures and timeouts are
logged and skipped, and never change the primary answer.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TypeVar

from cachetools import TTLCache

from mila_assistant.core.config import MemoryStoreConfig, RoutingConfig
from mila_assistant.core.constants import DETAILED_STYLE_VALUES, RESPONSE_STYLE_KEYS
from mila_assistant.knowledge import KnowledgeBase
from mila_assistant.schemas import (
    AssistantContext,
    ConversationMessage,
    MemoryEntry,
    MemoryMetadata,
    MemoryStats,
)
from mila_assistant.services.memory_store import MemoryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANONYMOUS_SESSION = "default"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class MemorySnapshot:
    """What the overlay learned about the user before routing."""
    available: bool = False
    preferences: Dict[str, Any] = field(default_factory=dict)
    prior_terms: List[str] = field(default_factory=list)
    query_terms: List[str] = field(default_factory=list)

    @property
    def wants_detail(self) -> bool:
        for key in RESPONSE_STYLE_KEYS:
            value = self.preferences.get(key)
            if isinstance(value, str) and value.lower() in DETAILED_STYLE_VALUES:
                return True
        return False


class MemoryOverlay:
    """Best-effort personalization around the router."""

    def __init__(
        self,
        store: Optional[MemoryStore],
        knowledge: KnowledgeBase,
        config: Optional[MemoryStoreConfig] = None,
        routing: Optional[RoutingConfig] = None,
    ):
        self.store = store
        self.knowledge = knowledge
        self.config = config or MemoryStoreConfig()
        self.routing = routing or RoutingConfig()
        # Bounded; an "unavailable" answer is re-probed once its entry expires
        self._availability: TTLCache = TTLCache(
            maxsize=self.config.availability_cache_size,
            ttl=self.config.availability_ttl_seconds,
        )
        self._pending_writes: Set[asyncio.Task] = set()

    # Plumbing

    async def _read(self, step: str, operation: Callable[[], Awaitable[T]], default: T) -> T:
        try:
            return await asyncio.wait_for(operation(), timeout=self.config.timeout_seconds)
        except Exception as e:
            logger.warning(f"Memory step '{step}' skipped: {type(e).__name__}: {e}")
            return default

    async def _write(self, step: str, operation: Callable[[], Awaitable[T]]) -> Optional[T]:
        # A write that has started is allowed to finish even if the caller goes away
        task = asyncio.ensure_future(operation())
        self._pending_writes.add(task)
        task.add_done_callback(self._write_finished)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.config.timeout_seconds)
        except Exception as e:
            logger.warning(f"Memory step '{step}' skipped: {type(e).__name__}: {e}")
            return None

    def _write_finished(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Background memory write failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait for in-flight writes (shutdown and tests)."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def is_available(self, session_key: str = ANONYMOUS_SESSION) -> bool:
        """Probe the store once per session and cache the answer for a while."""
        if self.store is None:
            return False
        cached = self._availability.get(session_key)
        if cached is not None:
            return cached
        available = await self._read("probe", self.store.is_available, False)
        self._availability[session_key] = available
        if not available:
            logger.warning(f"Memory store unavailable for session {session_key}, personalization disabled")
        return available

    async def _usable(self, user_id: Optional[str], session_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return await self.is_available(session_id or user_id)

    # Pipeline steps

    async def prepare(
        self,
        text: str,
        user_id: Optional[str],
        session_id: Optional[str],
        context: AssistantContext,
        is_terminology_question: bool = False,
    ) -> MemorySnapshot:
        """Load preferences and prior terms, then record this query's terms and context."""
        snapshot = MemorySnapshot()
        if not await self._usable(user_id, session_id):
            return snapshot
        snapshot.available = True

        snapshot.preferences = await self.get_user_preferences(user_id)

        usage = await self._read(
            "load-term-usage",
            lambda: self.store.get_term_usage(user_id, limit=self.routing.related_terms_limit + 5),
            [],
        )
        snapshot.prior_terms = [record.term for record in usage]

        if is_terminology_question:
            snapshot.query_terms = self.knowledge.find_terms(text)
            tags = [tag for tag in (context.form_type, context.current_field) if tag]
            for term in snapshot.query_terms:
                await self._write(
                    "record-term",
                    lambda term=term: self.store.record_term_usage(term, user_id, tags),
                )

        await self.store_conversation_context(user_id, session_id, context)
        return snapshot

    def personalize(self, response: str, snapshot: MemorySnapshot, context: Optional[AssistantContext] = None) -> str:
        """Append the detail block and related-terms hint; pure, never raises."""
        if not snapshot.available:
            return response

        sections = [response]
        if snapshot.wants_detail:
            detail = self._detail_block(snapshot, context or AssistantContext())
            if detail:
                sections.append(detail)

        current = {term.lower() for term in snapshot.query_terms}
        related = [term for term in snapshot.prior_terms if term.lower() not in current]
        related = related[:self.routing.related_terms_limit]
        if related:
            sections.append(f"**Related terms you've asked about:** {', '.join(related)}")
        return "\n\n".join(sections)

    def _detail_block(self, snapshot: MemorySnapshot, context: AssistantContext) -> Optional[str]:
        lines = []
        for term in snapshot.query_terms:
            definition = self.knowledge.define(term)
            if definition:
                lines.append(f"• **{term}**: {definition}")
        guidance = self.knowledge.field_help(context.form_type, context.current_field)
        if guidance:
            lines.append(f"• **{context.current_field}**: {guidance}")
        if not lines:
            return None
        return "**More detail**\n" + "\n".join(lines)

    async def record_turn(
        self,
        user_id: Optional[str],
        session_id: Optional[str],
        query: str,
        response: str,
        context: AssistantContext,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Persist the (input, response) pair as a conversation record."""
        if not await self._usable(user_id, session_id):
            return
        now = _timestamp_ms()
        messages = [
            ConversationMessage(role="user", content=query, timestamp=now),
            ConversationMessage(role="assistant", content=response, timestamp=now, metadata=metadata),
        ]
        await self._write(
            "persist-conversation",
            lambda: self.store.save_conversation(
                user_id, session_id or ANONYMOUS_SESSION, messages, context.model_dump(exclude_none=True)
            ),
        )
        if context.form_type:
            await self.store_form_pattern(user_id, context.form_type, {
                "lastField": context.current_field,
                "lastStep": context.current_step,
                "deviceType": context.device_type,
            })

    # Helpers

    async def get_user_preferences(self, user_id: str) -> Dict[str, Any]:
        entries: List[MemoryEntry] = await self._read(
            "load-preferences",
            lambda: self.store.get_memories(user_id=user_id, type="preference", limit=50),
            [],
        )
        # Newest first; keep the most recent value per key
        preferences: Dict[str, Any] = {}
        for entry in entries:
            preferences.setdefault(entry.key, entry.value)
        return preferences

    async def store_user_preference(self, user_id: str, key: str, value: Any, importance: str = "medium") -> Optional[MemoryEntry]:
        if not await self._usable(user_id, None):
            return None
        metadata = MemoryMetadata(timestamp=_timestamp_ms(), source="user_interaction",
                                  importance=importance, tags=["user_preference"])
        return await self._write(
            "store-preference",
            lambda: self.store.store_memory(user_id, "preference", key, value, metadata=metadata),
        )

    async def store_form_pattern(self, user_id: str, form_type: str, pattern: Dict[str, Any]) -> Optional[MemoryEntry]:
        metadata = MemoryMetadata(timestamp=_timestamp_ms(), source="form_completion",
                                  importance="medium", tags=["form_pattern", form_type])
        return await self._write(
            "store-form-pattern",
            lambda: self.store.store_memory(user_id, "form_data", f"form_pattern_{form_type}", pattern, metadata=metadata),
        )

    async def store_learning_pattern(
        self,
        user_id: Optional[str],
        pattern: str,
        details: Dict[str, Any],
        session_id: Optional[str] = None,
    ) -> Optional[MemoryEntry]:
        if not await self._usable(user_id, session_id):
            return None
        metadata = MemoryMetadata(timestamp=_timestamp_ms(), source="ai_learning",
                                  importance="high", tags=["learning", "pattern"])
        return await self._write(
            "store-learning-pattern",
            lambda: self.store.store_memory(user_id, "learning", f"learning_{pattern}", details, metadata=metadata),
        )

    async def store_conversation_context(self, user_id: str, session_id: Optional[str], context: AssistantContext) -> Optional[MemoryEntry]:
        metadata = MemoryMetadata(timestamp=_timestamp_ms(), source="conversation",
                                  importance="high", tags=["conversation", "context"])
        return await self._write(
            "store-context",
            lambda: self.store.store_memory(
                user_id, "context", "current_context", context.model_dump(exclude_none=True),
                session_id=session_id, metadata=metadata,
            ),
        )

    async def get_memory_stats(self) -> Optional[MemoryStats]:
        if not await self.is_available():
            return None
        return await self._read("stats", self.store.get_stats, None)

    async def clear_user_memory(self, user_id: str) -> int:
        if not await self._usable(user_id, None):
            return 0
        removed = await self._write("clear-user-memory", lambda: self.store.clear_user_memory(user_id))
        return removed or 0
