"""
Memory store clients.

Two interchangeable backends: a SQLAlchemy store for single-process
deployments and an HTTP client for the standalone memory server. Both raise
on failure; the memory overlay decides what is best-effort.
"""

import asyncio
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
from sqlalchemy import func

from mila_assistant.core.config import MemoryStoreConfig
from mila_assistant.core.database import (
    check_database_connection,
    create_memory_engine,
    create_session_factory,
    create_tables,
    session_scope,
)
from mila_assistant.core.exceptions import MemoryUnavailable
from mila_assistant.models import ConversationRecord, MedicalTermUsageRecord, MemoryEntryRecord
from mila_assistant.schemas import (
    ConversationMemory,
    ConversationMessage,
    MedicalTermUsage,
    MemoryEntry,
    MemoryMetadata,
    MemoryStats,
    MemoryType,
    TermCount,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOP_TERMS_LIMIT = 10


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemoryStore(ABC):
    """Operations the assistant needs from a memory backend."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Cheap health probe; never raises."""

    @abstractmethod
    async def store_memory(
        self,
        user_id: Optional[str],
        type: MemoryType,
        key: str,
        value: Any,
        session_id: Optional[str] = None,
        metadata: Optional[MemoryMetadata] = None,
    ) -> MemoryEntry:
        """Create the entry, or update it in place when (user, session, type, key) exists."""

    @abstractmethod
    async def get_memories(
        self,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        type: Optional[MemoryType] = None,
        key: Optional[str] = None,
        limit: int = 10,
    ) -> List[MemoryEntry]:
        """Newest first."""

    @abstractmethod
    async def delete_memory(self, entry_id: str) -> bool:
        ...

    @abstractmethod
    async def clear_user_memory(self, user_id: str) -> int:
        """Delete every memory entry owned by a user; returns the number removed."""

    @abstractmethod
    async def save_conversation(
        self,
        user_id: str,
        session_id: str,
        messages: List[ConversationMessage],
        context: Dict[str, Any],
        summary: Optional[str] = None,
    ) -> ConversationMemory:
        ...

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Optional[ConversationMemory]:
        ...

    @abstractmethod
    async def get_user_conversations(self, user_id: str, limit: int = 10) -> List[ConversationMemory]:
        ...

    @abstractmethod
    async def record_term_usage(self, term: str, user_id: str, context: List[str]) -> MedicalTermUsage:
        """Upsert by (term, user): count + 1 and context appended."""

    @abstractmethod
    async def get_term_usage(self, user_id: str, limit: int = 20) -> List[MedicalTermUsage]:
        """Most used first."""

    @abstractmethod
    async def get_stats(self) -> MemoryStats:
        ...

    async def close(self) -> None:
        return None


class SqlMemoryStore(MemoryStore):
    """SQLAlchemy-backed store; blocking work runs in worker threads."""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_memory_engine(database_url, echo=echo)
        self.session_factory = create_session_factory(self.engine)
        create_tables(self.engine)
        # Upserts are read-then-write; only one runs at a time in this process
        self._upsert_lock = threading.Lock()
        logger.info("SQL memory store ready")

    def _serialized(self, work: Callable[[], T]) -> T:
        with self._upsert_lock:
            return work()

    async def is_available(self) -> bool:
        return await asyncio.to_thread(check_database_connection, self.engine)

    # Memory entries

    @staticmethod
    def _entry_to_schema(record: MemoryEntryRecord) -> MemoryEntry:
        return MemoryEntry(
            id=record.id,
            user_id=record.user_id,
            session_id=record.session_id,
            type=record.type,
            key=record.key,
            value=record.value,
            metadata=record.entry_metadata,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def store_memory(self, user_id, type, key, value, session_id=None, metadata=None) -> MemoryEntry:
        def _store() -> MemoryEntry:
            with session_scope(self.session_factory) as db:
                record = db.query(MemoryEntryRecord).filter(
                    MemoryEntryRecord.user_id == user_id,
                    MemoryEntryRecord.session_id == session_id,
                    MemoryEntryRecord.type == type,
                    MemoryEntryRecord.key == key,
                ).first()
                meta = metadata.model_dump() if metadata else None
                if record is None:
                    now = _now_iso()
                    record = MemoryEntryRecord(
                        id=str(uuid.uuid4()),
                        user_id=user_id,
                        session_id=session_id,
                        type=type,
                        key=key,
                        value=value,
                        entry_metadata=meta,
                        created_at=now,
                        updated_at=now,
                    )
                    db.add(record)
                else:
                    record.value = value
                    if meta is not None:
                        record.entry_metadata = meta
                    record.updated_at = _now_iso()
                db.flush()
                return self._entry_to_schema(record)

        return await asyncio.to_thread(self._serialized, _store)

    async def get_memories(self, user_id=None, session_id=None, type=None, key=None, limit=10) -> List[MemoryEntry]:
        def _get() -> List[MemoryEntry]:
            with session_scope(self.session_factory) as db:
                query = db.query(MemoryEntryRecord)
                if user_id:
                    query = query.filter(MemoryEntryRecord.user_id == user_id)
                if session_id:
                    query = query.filter(MemoryEntryRecord.session_id == session_id)
                if type:
                    query = query.filter(MemoryEntryRecord.type == type)
                if key:
                    query = query.filter(MemoryEntryRecord.key == key)
                records = query.order_by(MemoryEntryRecord.created_at.desc()).limit(limit).all()
                return [self._entry_to_schema(record) for record in records]

        return await asyncio.to_thread(_get)

    async def delete_memory(self, entry_id: str) -> bool:
        def _delete() -> bool:
            with session_scope(self.session_factory) as db:
                deleted = db.query(MemoryEntryRecord).filter(MemoryEntryRecord.id == entry_id).delete()
                return deleted > 0

        return await asyncio.to_thread(_delete)

    async def clear_user_memory(self, user_id: str) -> int:
        def _clear() -> int:
            with session_scope(self.session_factory) as db:
                return db.query(MemoryEntryRecord).filter(MemoryEntryRecord.user_id == user_id).delete()

        removed = await asyncio.to_thread(_clear)
        logger.info(f"Cleared {removed} memory entries for user {user_id}")
        return removed

    # Conversations

    @staticmethod
    def _conversation_to_schema(record: ConversationRecord) -> ConversationMemory:
        return ConversationMemory(
            id=record.id,
            user_id=record.user_id,
            session_id=record.session_id,
            messages=record.messages,
            context=record.context or {},
            summary=record.summary,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def save_conversation(self, user_id, session_id, messages, context, summary=None) -> ConversationMemory:
        def _save() -> ConversationMemory:
            with session_scope(self.session_factory) as db:
                now = _now_iso()
                record = ConversationRecord(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    session_id=session_id,
                    messages=[message.model_dump(exclude_none=True) for message in messages],
                    context=context,
                    summary=summary,
                    created_at=now,
                    updated_at=now,
                )
                db.add(record)
                db.flush()
                return self._conversation_to_schema(record)

        return await asyncio.to_thread(_save)

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationMemory]:
        def _get() -> Optional[ConversationMemory]:
            with session_scope(self.session_factory) as db:
                record = db.query(ConversationRecord).filter(ConversationRecord.id == conversation_id).first()
                return self._conversation_to_schema(record) if record else None

        return await asyncio.to_thread(_get)

    async def get_user_conversations(self, user_id: str, limit: int = 10) -> List[ConversationMemory]:
        def _get() -> List[ConversationMemory]:
            with session_scope(self.session_factory) as db:
                records = db.query(ConversationRecord).filter(
                    ConversationRecord.user_id == user_id
                ).order_by(ConversationRecord.created_at.desc()).limit(limit).all()
                return [self._conversation_to_schema(record) for record in records]

        return await asyncio.to_thread(_get)

    # Medical term usage

    @staticmethod
    def _usage_to_schema(record: MedicalTermUsageRecord) -> MedicalTermUsage:
        return MedicalTermUsage(
            id=record.id,
            term=record.term,
            user_id=record.user_id,
            usage_count=record.usage_count,
            last_used=record.last_used,
            context=record.context or [],
            related_terms=record.related_terms or [],
            user_notes=record.user_notes,
        )

    async def record_term_usage(self, term: str, user_id: str, context: List[str]) -> MedicalTermUsage:
        def _record() -> MedicalTermUsage:
            with session_scope(self.session_factory) as db:
                record = db.query(MedicalTermUsageRecord).filter(
                    MedicalTermUsageRecord.term == term,
                    MedicalTermUsageRecord.user_id == user_id,
                ).first()
                now = _now_iso()
                if record is None:
                    record = MedicalTermUsageRecord(
                        id=str(uuid.uuid4()),
                        term=term,
                        user_id=user_id,
                        usage_count=1,
                        last_used=now,
                        context=list(context),
                        related_terms=[],
                        created_at=now,
                        updated_at=now,
                    )
                    db.add(record)
                else:
                    record.usage_count = record.usage_count + 1
                    # Reassign so the JSON column is flagged dirty
                    record.context = list(record.context or []) + list(context)
                    record.last_used = now
                    record.updated_at = now
                db.flush()
                return self._usage_to_schema(record)

        return await asyncio.to_thread(self._serialized, _record)

    async def get_term_usage(self, user_id: str, limit: int = 20) -> List[MedicalTermUsage]:
        def _get() -> List[MedicalTermUsage]:
            with session_scope(self.session_factory) as db:
                records = db.query(MedicalTermUsageRecord).filter(
                    MedicalTermUsageRecord.user_id == user_id
                ).order_by(
                    MedicalTermUsageRecord.usage_count.desc(),
                    MedicalTermUsageRecord.last_used.desc(),
                ).limit(limit).all()
                return [self._usage_to_schema(record) for record in records]

        return await asyncio.to_thread(_get)

    async def get_stats(self) -> MemoryStats:
        def _stats() -> MemoryStats:
            with session_scope(self.session_factory) as db:
                total = db.query(func.count(MemoryEntryRecord.id)).scalar() or 0
                by_type = db.query(MemoryEntryRecord.type, func.count(MemoryEntryRecord.id)).group_by(
                    MemoryEntryRecord.type
                ).all()
                by_user = db.query(MemoryEntryRecord.user_id, func.count(MemoryEntryRecord.id)).filter(
                    MemoryEntryRecord.user_id.isnot(None)
                ).group_by(MemoryEntryRecord.user_id).all()
                usage_total = func.sum(MedicalTermUsageRecord.usage_count)
                top_terms = db.query(MedicalTermUsageRecord.term, usage_total).group_by(
                    MedicalTermUsageRecord.term
                ).order_by(usage_total.desc()).limit(TOP_TERMS_LIMIT).all()
                conversations = db.query(func.count(ConversationRecord.id)).scalar() or 0

                return MemoryStats(
                    total_entries=total,
                    entries_by_type={entry_type: count for entry_type, count in by_type},
                    entries_by_user={user: count for user, count in by_user},
                    top_terms=[TermCount(term=term, usage_count=int(count)) for term, count in top_terms],
                    total_conversations=conversations,
                )

        return await asyncio.to_thread(_stats)

    async def close(self) -> None:
        self.engine.dispose()


class HttpMemoryStore(MemoryStore):
    """Client for the memory server's REST API ({success, data} envelopes, camelCase)."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = await self._client.request(method, path, **kwargs)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MemoryUnavailable(f"{method} {path} returned {response.status_code}") from e
        body = response.json()
        if not body.get("success"):
            raise MemoryUnavailable(f"{method} {path} failed: {body.get('error', 'unknown error')}")
        return body

    async def is_available(self) -> bool:
        try:
            response = await self._client.get("/health")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"Memory service not available: {e}")
            return False

    async def store_memory(self, user_id, type, key, value, session_id=None, metadata=None) -> MemoryEntry:
        existing = await self.get_memories(user_id=user_id, session_id=session_id, type=type, key=key, limit=1)
        meta = metadata.model_dump(by_alias=True, exclude_none=True) if metadata else None
        # The server filters on truthy params only, so confirm the match is exact
        if existing and existing[0].user_id == user_id and existing[0].session_id == session_id:
            body = await self._request("PUT", f"/memory/{existing[0].id}", json={"value": value, "metadata": meta})
        else:
            payload = {"userId": user_id, "sessionId": session_id, "type": type, "key": key,
                       "value": value, "metadata": meta}
            body = await self._request("POST", "/memory", json=payload)
        return MemoryEntry.model_validate(body["data"])

    async def get_memories(self, user_id=None, session_id=None, type=None, key=None, limit=10) -> List[MemoryEntry]:
        params = {"userId": user_id, "sessionId": session_id, "type": type, "key": key, "limit": limit}
        body = await self._request("GET", "/memory", params={k: v for k, v in params.items() if v})
        return [MemoryEntry.model_validate(item) for item in body.get("data") or []]

    async def delete_memory(self, entry_id: str) -> bool:
        body = await self._request("DELETE", f"/memory/{entry_id}")
        return bool(body.get("deleted"))

    async def clear_user_memory(self, user_id: str) -> int:
        # The server has no bulk delete, so remove entries one by one
        removed = 0
        entries = await self.get_memories(user_id=user_id, limit=1000)
        for entry in entries:
            if await self.delete_memory(entry.id):
                removed += 1
        logger.info(f"Cleared {removed} memory entries for user {user_id}")
        return removed

    async def save_conversation(self, user_id, session_id, messages, context, summary=None) -> ConversationMemory:
        payload = {
            "userId": user_id,
            "sessionId": session_id,
            "messages": [message.model_dump(by_alias=True, exclude_none=True) for message in messages],
            "context": context,
            "summary": summary,
        }
        body = await self._request("POST", "/conversations", json=payload)
        return ConversationMemory.model_validate(body["data"])

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationMemory]:
        response = await self._client.get(f"/conversations/{conversation_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        data = response.json().get("data")
        return ConversationMemory.model_validate(data) if data else None

    async def get_user_conversations(self, user_id: str, limit: int = 10) -> List[ConversationMemory]:
        body = await self._request("GET", f"/conversations/user/{user_id}", params={"limit": limit})
        return [ConversationMemory.model_validate(item) for item in body.get("data") or []]

    async def record_term_usage(self, term: str, user_id: str, context: List[str]) -> MedicalTermUsage:
        payload = {"term": term, "userId": user_id, "context": list(context)}
        body = await self._request("POST", "/medical-terms/usage", json=payload)
        return MedicalTermUsage.model_validate(body["data"])

    async def get_term_usage(self, user_id: str, limit: int = 20) -> List[MedicalTermUsage]:
        body = await self._request("GET", f"/medical-terms/usage/{user_id}", params={"limit": limit})
        return [MedicalTermUsage.model_validate(item) for item in body.get("data") or []]

    async def get_stats(self) -> MemoryStats:
        body = await self._request("GET", "/stats")
        return MemoryStats.model_validate(body.get("data") or {})

    async def close(self) -> None:
        await self._client.aclose()


def build_memory_store(config: MemoryStoreConfig) -> Optional[MemoryStore]:
    """Create the configured backend; None when memory is disabled."""
    if config.backend == "disabled":
        logger.info("Memory store disabled")
        return None
    if config.backend == "http":
        logger.info(f"Using HTTP memory store at {config.base_url}")
        return HttpMemoryStore(config.base_url, timeout=config.timeout_seconds)
    logger.info("Using SQL memory store")
    return SqlMemoryStore(config.database_url)
