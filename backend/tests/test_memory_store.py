import asyncio
import json

import httpx
import pytest

from mila_assistant.core.config import MemoryStoreConfig
from mila_assistant.core.exceptions import MemoryUnavailable
from mila_assistant.schemas import ConversationMessage, MemoryMetadata
from mila_assistant.services.memory_store import HttpMemoryStore, SqlMemoryStore, build_memory_store


def test_term_usage_upsert_counts_and_concatenates_context(sql_store):
    contexts = [["ClaimsSubmissionForm"], [], ["PatientEligibilityForm", "providerId"], ["x"]]

    async def run():
        result = None
        for context in contexts:
            result = await sql_store.record_term_usage("OD", "user-1", context)
        return result

    usage = asyncio.run(run())
    assert usage.usage_count == len(contexts)
    assert len(usage.context) == sum(len(c) for c in contexts)
    assert usage.context == ["ClaimsSubmissionForm", "PatientEligibilityForm", "providerId", "x"]


def test_concurrent_term_usage_upserts_keep_every_increment(tmp_path):
    store = SqlMemoryStore(f"sqlite:///{tmp_path / 'memory.db'}")

    async def run():
        await asyncio.gather(*(store.record_term_usage("OD", "user-1", ["ctx"]) for _ in range(8)))
        return await store.get_term_usage("user-1")

    usage = asyncio.run(run())
    asyncio.run(store.close())
    assert len(usage) == 1
    assert usage[0].usage_count == 8
    assert usage[0].context == ["ctx"] * 8


def test_concurrent_writes_to_one_key_leave_one_entry(tmp_path):
    store = SqlMemoryStore(f"sqlite:///{tmp_path / 'memory.db'}")

    async def run():
        await asyncio.gather(*(
            store.store_memory("user-1", "context", "current_context", {"step": step}, session_id="session-1")
            for step in range(6)
        ))
        return await store.get_memories(user_id="user-1", type="context")

    entries = asyncio.run(run())
    asyncio.run(store.close())
    assert len(entries) == 1


def test_term_usage_is_per_user_and_sorted_by_count(sql_store):
    async def run():
        for _ in range(3):
            await sql_store.record_term_usage("HEDIS", "user-1", [])
        await sql_store.record_term_usage("OD", "user-1", [])
        await sql_store.record_term_usage("OD", "user-2", [])
        return await sql_store.get_term_usage("user-1")

    usage = asyncio.run(run())
    assert [(u.term, u.usage_count) for u in usage] == [("HEDIS", 3), ("OD", 1)]


def test_store_memory_updates_in_place_for_same_key(sql_store):
    metadata = MemoryMetadata(timestamp=1.0, importance="high", tags=["user_preference"])

    async def run():
        first = await sql_store.store_memory("user-1", "preference", "response_style", "brief", metadata=metadata)
        second = await sql_store.store_memory("user-1", "preference", "response_style", "detailed")
        entries = await sql_store.get_memories(user_id="user-1", type="preference")
        return first, second, entries

    first, second, entries = asyncio.run(run())
    assert first.id == second.id
    assert len(entries) == 1
    assert entries[0].value == "detailed"
    assert entries[0].metadata.importance == "high"


def test_delete_and_clear(sql_store):
    async def run():
        entry = await sql_store.store_memory("user-1", "learning", "a", {"x": 1})
        await sql_store.store_memory("user-1", "learning", "b", {"x": 2})
        await sql_store.store_memory("user-2", "learning", "a", {"x": 3})
        deleted = await sql_store.delete_memory(entry.id)
        missing = await sql_store.delete_memory(entry.id)
        cleared = await sql_store.clear_user_memory("user-1")
        remaining = await sql_store.get_memories(limit=10)
        return deleted, missing, cleared, remaining

    deleted, missing, cleared, remaining = asyncio.run(run())
    assert deleted is True
    assert missing is False
    assert cleared == 1
    assert [entry.user_id for entry in remaining] == ["user-2"]


def test_conversations_and_stats(sql_store):
    messages = [
        ConversationMessage(role="user", content="What is OD?", timestamp=1),
        ConversationMessage(role="assistant", content="Right eye", timestamp=2),
    ]

    async def run():
        saved = await sql_store.save_conversation("user-1", "s1", messages, {"form_type": "ClaimsSubmissionForm"})
        loaded = await sql_store.get_conversation(saved.id)
        listed = await sql_store.get_user_conversations("user-1")
        await sql_store.store_memory("user-1", "preference", "k", "v")
        await sql_store.record_term_usage("OD", "user-1", [])
        await sql_store.record_term_usage("OD", "user-2", [])
        stats = await sql_store.get_stats()
        return loaded, listed, stats

    loaded, listed, stats = asyncio.run(run())
    assert [m.content for m in loaded.messages] == ["What is OD?", "Right eye"]
    assert len(listed) == 1
    assert stats.total_entries == 1
    assert stats.entries_by_type == {"preference": 1}
    assert stats.entries_by_user == {"user-1": 1}
    assert stats.top_terms[0].term == "OD"
    assert stats.top_terms[0].usage_count == 2
    assert stats.total_conversations == 1


def test_sql_store_availability(sql_store):
    assert asyncio.run(sql_store.is_available()) is True


class FakeMemoryServer:
    """Just enough of the memory server's REST API for the HTTP client."""

    def __init__(self):
        self.entries = {}
        self.usage = {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        path = request.url.path
        if path == "/health":
            return httpx.Response(200, json={"status": "healthy"})
        if path == "/memory" and request.method == "GET":
            params = request.url.params
            found = [
                e for e in self.entries.values()
                if all(params.get(name) in (None, e.get(name)) for name in ("userId", "sessionId", "type", "key"))
            ]
            return httpx.Response(200, json={"success": True, "data": found[: int(params.get("limit", 10))]})
        if path == "/memory" and request.method == "POST":
            body = json.loads(request.content)
            entry = dict(body, id=f"m{len(self.entries) + 1}", createdAt="2026-01-01", updatedAt="2026-01-01")
            self.entries[entry["id"]] = entry
            return httpx.Response(200, json={"success": True, "data": entry})
        if path.startswith("/memory/") and request.method == "PUT":
            entry = self.entries[path.rsplit("/", 1)[1]]
            entry.update(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "data": entry})
        if path.startswith("/memory/") and request.method == "DELETE":
            deleted = self.entries.pop(path.rsplit("/", 1)[1], None) is not None
            return httpx.Response(200, json={"success": True, "deleted": deleted})
        if path == "/medical-terms/usage":
            body = json.loads(request.content)
            key = (body["term"], body["userId"])
            record = self.usage.get(key)
            if record is None:
                record = {"id": f"t{len(self.usage) + 1}", "term": body["term"], "userId": body["userId"],
                          "usageCount": 1, "lastUsed": "2026-01-01", "context": body["context"],
                          "relatedTerms": []}
            else:
                record = dict(record, usageCount=record["usageCount"] + 1,
                              context=record["context"] + body["context"])
            self.usage[key] = record
            return httpx.Response(200, json={"success": True, "data": record})
        if path == "/stats":
            return httpx.Response(200, json={"success": True, "data": {
                "totalEntries": len(self.entries), "entriesByType": {}, "entriesByUser": {},
                "recentActivity": [], "topTerms": [{"term": "OD", "usageCount": 4}], "userEngagement": [],
            }})
        return httpx.Response(500, json={"success": False, "error": "not implemented"})


@pytest.fixture
def memory_server():
    return FakeMemoryServer()


@pytest.fixture
def http_store(memory_server):
    client = httpx.AsyncClient(transport=httpx.MockTransport(memory_server.handler), base_url="http://memory.test")
    return HttpMemoryStore("http://memory.test", client=client)


def test_http_store_speaks_camel_case(http_store, memory_server):
    async def run():
        available = await http_store.is_available()
        entry = await http_store.store_memory("user-1", "preference", "response_style", "detailed",
                                              metadata=MemoryMetadata(timestamp=1.0, tags=["user_preference"]))
        return available, entry

    available, entry = asyncio.run(run())
    assert available is True
    assert entry.user_id == "user-1"
    stored = memory_server.entries[entry.id]
    assert stored["userId"] == "user-1"
    assert stored["metadata"]["tags"] == ["user_preference"]


def test_http_store_upserts_existing_entry(http_store, memory_server):
    async def run():
        first = await http_store.store_memory("user-1", "preference", "response_style", "brief")
        second = await http_store.store_memory("user-1", "preference", "response_style", "detailed")
        return first, second

    first, second = asyncio.run(run())
    assert first.id == second.id
    assert second.value == "detailed"
    assert ("PUT", f"/memory/{first.id}") in memory_server.requests


def test_http_term_usage_upsert(http_store):
    async def run():
        result = None
        for context in (["a"], ["b", "c"], []):
            result = await http_store.record_term_usage("OD", "user-1", context)
        return result

    usage = asyncio.run(run())
    assert usage.usage_count == 3
    assert usage.context == ["a", "b", "c"]


def test_http_stats_and_clear(http_store):
    async def run():
        await http_store.store_memory("user-1", "learning", "a", 1)
        await http_store.store_memory("user-1", "learning", "b", 2)
        stats = await http_store.get_stats()
        cleared = await http_store.clear_user_memory("user-1")
        return stats, cleared

    stats, cleared = asyncio.run(run())
    assert stats.total_entries == 2
    assert stats.top_terms[0].usage_count == 4
    assert cleared == 2


def test_http_failure_envelope_raises(http_store):
    with pytest.raises(MemoryUnavailable):
        asyncio.run(http_store.get_user_conversations("user-1"))


def test_unreachable_http_server_is_unavailable():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://memory.test")
    store = HttpMemoryStore("http://memory.test", client=client)
    assert asyncio.run(store.is_available()) is False


def test_build_memory_store_by_backend():
    assert build_memory_store(MemoryStoreConfig(backend="disabled")) is None
    assert isinstance(build_memory_store(MemoryStoreConfig(backend="http")), HttpMemoryStore)
    assert isinstance(build_memory_store(MemoryStoreConfig(backend="sql", database_url="sqlite://")), SqlMemoryStore)
