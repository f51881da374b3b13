import asyncio

from cachetools import TTLCache

from mila_assistant.core.config import MemoryStoreConfig
from mila_assistant.schemas import AssistantContext, AssistantQueryInput
from mila_assistant.services.memory_overlay import MemoryOverlay, MemorySnapshot
from mila_assistant.services.memory_store import SqlMemoryStore


class BrokenStore:
    """Every operation except the health probe fails."""

    def __init__(self, available: bool = True):
        self.available = available
        self.calls = []

    async def is_available(self):
        self.calls.append("is_available")
        return self.available

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            self.calls.append(name)
            raise RuntimeError(f"{name} exploded")
        return fail


class SlowStore(BrokenStore):
    async def get_memories(self, *args, **kwargs):
        await asyncio.sleep(5)
        return []


class CountingStore(SqlMemoryStore):
    def __init__(self):
        super().__init__("sqlite://")
        self.probes = 0

    async def is_available(self):
        self.probes += 1
        return await super().is_available()


def _query(text, user_id="user-1", session_id="session-1", **context):
    return AssistantQueryInput(text=text, user_id=user_id, session_id=session_id, context=context)


def test_unavailable_store_still_answers(make_service):
    service = make_service(memory_store=BrokenStore(available=False))
    result = asyncio.run(service.process_query(_query("What is OD?")))
    assert "Right Eye" in result.response
    assert "Related terms" not in result.response
    assert service.memory.store.calls == ["is_available"]


def test_every_memory_step_failing_leaves_the_answer_unchanged(make_service):
    baseline = asyncio.run(make_service().process_query(_query("What is OD?")))
    broken = make_service(memory_store=BrokenStore())
    result = asyncio.run(broken.process_query(_query("What is OD?")))
    assert result.response == baseline.response
    assert "record_term_usage" in broken.memory.store.calls
    assert "save_conversation" in broken.memory.store.calls


def test_slow_store_reads_time_out(make_service, config):
    config.memory = MemoryStoreConfig(backend="sql", timeout_seconds=0.05)
    service = make_service(memory_store=SlowStore())
    result = asyncio.run(service.process_query(_query("What is OD?")))
    assert "Right Eye" in result.response


def test_anonymous_users_skip_memory(make_service):
    store = BrokenStore()
    service = make_service(memory_store=store)
    asyncio.run(service.process_query(_query("What is OD?", user_id=None)))
    assert store.calls == []


def test_detailed_preference_and_related_terms(make_service, sql_store):
    service = make_service(memory_store=sql_store)

    async def run():
        await service.memory.store_user_preference("user-1", "response_style", "detailed")
        first = await service.process_query(_query("What is OD?"))
        second = await service.process_query(_query("What is HEDIS?"))
        conversations = await sql_store.get_user_conversations("user-1")
        usage = await sql_store.get_term_usage("user-1")
        return first, second, conversations, usage

    first, second, conversations, usage = asyncio.run(run())
    assert "**More detail**" in first.response
    assert "Oculus Dexter" in first.response
    assert "Related terms" not in first.response
    assert "**Related terms you've asked about:** OD" in second.response
    assert len(conversations) == 2
    assert {u.term for u in usage} == {"OD", "HEDIS"}


def test_preferred_language_key_also_enables_detail(knowledge):
    overlay = MemoryOverlay(None, knowledge)
    snapshot = MemorySnapshot(available=True, preferences={"preferredLanguage": "Detailed"}, query_terms=["OD"])
    assert "**More detail**" in overlay.personalize("answer", snapshot)


def test_related_terms_are_capped(knowledge):
    overlay = MemoryOverlay(None, knowledge)
    snapshot = MemorySnapshot(available=True, prior_terms=["OD", "OS", "OU", "NPI", "HEDIS"])
    text = overlay.personalize("answer", snapshot)
    assert text.endswith("OD, OS, OU")


def test_availability_is_probed_once_per_session(make_service):
    store = CountingStore()
    service = make_service(memory_store=store)

    async def run():
        await service.process_query(_query("What is OD?"))
        await service.process_query(_query("E11.9"))

    asyncio.run(run())
    assert store.probes == 1
    asyncio.run(store.close())


def test_writes_finish_after_the_caller_stops_waiting(knowledge):
    overlay = MemoryOverlay(None, knowledge, MemoryStoreConfig(timeout_seconds=0.01))
    finished = []

    async def slow_write():
        await asyncio.sleep(0.05)
        finished.append(True)
        return "stored"

    async def run():
        result = await overlay._write("slow", slow_write)
        await overlay.drain()
        return result

    assert asyncio.run(run()) is None
    assert finished == [True]


def test_disabled_store_reports_no_stats(knowledge):
    overlay = MemoryOverlay(None, knowledge)
    assert asyncio.run(overlay.get_memory_stats()) is None
    assert asyncio.run(overlay.clear_user_memory("user-1")) == 0


def test_form_pattern_is_stored_and_cleared(knowledge, sql_store):
    overlay = MemoryOverlay(sql_store, knowledge)
    context = AssistantContext(form_type="ClaimsSubmissionForm", current_field="odSphere", current_step=3)

    async def run():
        await overlay.record_turn("user-1", "session-1", "help with odSphere", "Enter the sphere power.", context)
        patterns = await sql_store.get_memories(user_id="user-1", type="form_data")
        conversations = await sql_store.get_user_conversations("user-1")
        removed = await overlay.clear_user_memory("user-1")
        return patterns, conversations, removed

    patterns, conversations, removed = asyncio.run(run())
    assert [entry.key for entry in patterns] == ["form_pattern_ClaimsSubmissionForm"]
    assert patterns[0].value["lastField"] == "odSphere"
    assert [message.role for message in conversations[0].messages] == ["user", "assistant"]
    assert removed == 1


def test_availability_cache_is_bounded(knowledge):
    store = CountingStore()
    overlay = MemoryOverlay(store, knowledge, MemoryStoreConfig(availability_cache_size=16))

    async def run():
        for i in range(100):
            await overlay.is_available(f"session-{i}")

    asyncio.run(run())
    assert len(overlay._availability) <= 16
    assert store.probes == 100
    asyncio.run(store.close())


def test_unavailable_store_is_probed_again_after_expiry(knowledge, fake_clock):
    store = BrokenStore(available=False)
    overlay = MemoryOverlay(store, knowledge)
    overlay._availability = TTLCache(maxsize=8, ttl=60, timer=fake_clock)

    async def run():
        first = await overlay.is_available("session-1")
        cached = await overlay.is_available("session-1")
        store.available = True
        fake_clock.now += 61
        return first, cached, await overlay.is_available("session-1")

    assert asyncio.run(run()) == (False, False, True)
    assert store.calls == ["is_available", "is_available"]
