"""Tests for AssetCache: dedup, persistence, failures and observers."""

import asyncio

import pytest

from freshly.assets import AssetCache, AssetEntry, AssetState, create_asset_cache
from freshly.config import load_config
from freshly.db.assets import AssetStore, SQLiteAssetStore
from freshly.imagegen import (
    AspectRatio,
    ErrorKind,
    GeneratedImage,
    ImageGenerationError,
    ImageProvider,
    ImageRequest,
    RateLimitedError,
)
from freshly.imagegen.gemini import GeminiImageProvider
from freshly.imagegen.throttle import ThrottledGenerator
from freshly.prompts import prompt_for_key

IMAGE = GeneratedImage(data=b"generated")
STORED = GeneratedImage(data=b"persisted")


class MemoryStore(AssetStore):
    def __init__(self, data=None, *, fail_get=False, fail_set=None):
        self.data = dict(data or {})
        self.fail_get = fail_get
        self.fail_set = fail_set  # None, "false" or "raise"
        self.get_calls = 0
        self.closed = False

    async def get(self, key):
        self.get_calls += 1
        if self.fail_get:
            raise OSError("storage unavailable")
        return self.data.get(key)

    async def set(self, key, value):
        if self.fail_set == "raise":
            raise OSError("quota exceeded")
        if self.fail_set == "false":
            return False
        self.data[key] = value
        return True

    def close(self):
        self.closed = True


class CountingProvider(ImageProvider):
    """Succeeds unless scripted otherwise; can be held open with ``gate``."""

    def __init__(self, outcomes=(), clock=None):
        self.outcomes = list(outcomes)
        self.clock = clock
        self.calls = 0
        self.requests: list[tuple[str, AspectRatio]] = []
        self.dispatched_at: list[float] = []
        self.gate: asyncio.Event | None = None

    async def generate(self, prompt, aspect_ratio):
        self.calls += 1
        self.requests.append((prompt, aspect_ratio))
        if self.clock is not None:
            self.dispatched_at.append(self.clock())
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if self.outcomes else IMAGE
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def _builder(key):
    return ImageRequest(prompt=f"render {key}")


def _cache(provider, store=None, clock=None, min_interval=0.0):
    clock = clock or FakeClock()
    generator = ThrottledGenerator(
        provider,
        min_interval=min_interval,
        base_delay=5.0,
        timeout=None,
        clock=clock,
        sleep=clock.sleep,
    )
    return AssetCache(store if store is not None else MemoryStore(), generator)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


def _record(cache, key):
    states: list[AssetState] = []
    cache.subscribe(key, lambda entry: states.append(entry.state))
    return states


@pytest.mark.asyncio
async def test_generates_and_persists_on_miss():
    store = MemoryStore()
    provider = CountingProvider()
    cache = _cache(provider, store)
    states = _record(cache, "category:dairy")

    entry = await cache.ensure("category:dairy", _builder)

    assert entry.state is AssetState.READY
    assert entry.value == IMAGE
    assert store.data["category:dairy"] == IMAGE
    assert provider.requests == [("render category:dairy", AspectRatio.SQUARE)]
    assert states == [AssetState.IDLE, AssetState.LOADING, AssetState.READY]


@pytest.mark.asyncio
async def test_concurrent_ensure_makes_one_provider_call():
    provider = CountingProvider()
    provider.gate = asyncio.Event()
    cache = _cache(provider)

    first = asyncio.create_task(cache.ensure("item:milk", _builder))
    second = asyncio.create_task(cache.ensure("item:milk", _builder))
    await _settle()

    assert cache.entry("item:milk").state is AssetState.LOADING
    third = asyncio.create_task(cache.ensure("item:milk", _builder))
    await _settle()

    provider.gate.set()
    results = await asyncio.gather(first, second, third)

    assert provider.calls == 1
    assert all(r.state is AssetState.READY for r in results)
    assert all(r.value == IMAGE for r in results)


@pytest.mark.asyncio
async def test_concurrent_ensure_reads_store_once():
    store = MemoryStore({"item:milk": STORED})
    provider = CountingProvider()
    cache = _cache(provider, store)

    results = await asyncio.gather(
        cache.ensure("item:milk", _builder),
        cache.ensure("item:milk", _builder),
    )

    assert store.get_calls == 1
    assert provider.calls == 0
    assert [r.value for r in results] == [STORED, STORED]


@pytest.mark.asyncio
async def test_persisted_value_skips_generation():
    store = MemoryStore({"onboarding:1": STORED})
    provider = CountingProvider()
    cache = _cache(provider, store)
    states = _record(cache, "onboarding:1")

    entry = await cache.ensure("onboarding:1", _builder)

    assert entry.state is AssetState.READY
    assert entry.value == STORED
    assert provider.calls == 0
    assert AssetState.LOADING not in states


@pytest.mark.asyncio
async def test_ready_entry_is_returned_without_io():
    store = MemoryStore()
    provider = CountingProvider()
    cache = _cache(provider, store)

    await cache.ensure("category:fruits", _builder)
    await cache.ensure("category:fruits", _builder)

    assert provider.calls == 1
    assert store.get_calls == 1


@pytest.mark.asyncio
async def test_rate_limit_exhaustion_marks_failed():
    store = MemoryStore()
    provider = CountingProvider([RateLimitedError("429")] * 5)
    cache = _cache(provider, store)
    states = _record(cache, "category:grains")

    entry = await cache.ensure("category:grains", _builder)

    assert entry.state is AssetState.FAILED
    assert entry.error_kind is ErrorKind.RATE_LIMITED
    assert entry.value is None
    assert provider.calls == 4
    assert "category:grains" not in store.data
    assert states == [AssetState.IDLE, AssetState.LOADING, AssetState.FAILED]


@pytest.mark.asyncio
async def test_failed_key_can_be_retried():
    provider = CountingProvider([ImageGenerationError("500")])
    cache = _cache(provider)

    failed = await cache.ensure("recipe:pasta", _builder)
    assert failed.state is AssetState.FAILED
    assert failed.error_kind is ErrorKind.OTHER
    assert cache.entry("recipe:pasta").state is AssetState.FAILED

    states = _record(cache, "recipe:pasta")
    retried = await cache.ensure("recipe:pasta", _builder)

    assert retried.state is AssetState.READY
    assert provider.calls == 2
    assert states == [AssetState.IDLE, AssetState.LOADING, AssetState.READY]


@pytest.mark.asyncio
async def test_empty_provider_result_marks_failed():
    provider = CountingProvider([None])
    cache = _cache(provider)

    entry = await cache.ensure("item:durian", _builder)
    assert entry.state is AssetState.FAILED
    assert entry.error_kind is ErrorKind.OTHER


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", ["false", "raise"])
async def test_persist_failure_keeps_value_for_session(mode):
    store = MemoryStore(fail_set=mode)
    provider = CountingProvider()
    cache = _cache(provider, store)

    entry = await cache.ensure("category:dairy", _builder)
    assert entry.state is AssetState.READY
    assert entry.value == IMAGE

    again = await cache.ensure("category:dairy", _builder)
    assert again.value == IMAGE
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_store_read_failure_is_a_miss():
    store = MemoryStore({"category:dairy": STORED}, fail_get=True)
    provider = CountingProvider()
    cache = _cache(provider, store)

    entry = await cache.ensure("category:dairy", _builder)
    assert entry.state is AssetState.READY
    assert entry.value == IMAGE
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_prompt_builder_error_marks_failed():
    def broken(key):
        raise ValueError(f"no prompt for {key}")

    provider = CountingProvider()
    cache = _cache(provider)

    entry = await cache.ensure("mystery:thing", broken)
    assert entry.state is AssetState.FAILED
    assert "no prompt" in entry.error
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_subscribers_are_isolated():
    cache = _cache(CountingProvider())
    seen: list[AssetEntry] = []

    def bad(entry):
        raise RuntimeError("render crashed")

    cache.subscribe("item:milk", bad)
    cache.subscribe("item:milk", seen.append)

    entry = await cache.ensure("item:milk", _builder)
    assert entry.state is AssetState.READY
    assert [e.state for e in seen][-1] is AssetState.READY


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications():
    cache = _cache(CountingProvider())
    seen: list[AssetEntry] = []
    unsubscribe = cache.subscribe("item:milk", seen.append)
    unsubscribe()
    unsubscribe()  # idempotent

    await cache.ensure("item:milk", _builder)
    assert seen == []


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_load():
    provider = CountingProvider()
    provider.gate = asyncio.Event()
    cache = _cache(provider)

    waiter = asyncio.create_task(cache.ensure("item:eggs", _builder))
    await _settle()
    waiter.cancel()
    await _settle()

    provider.gate.set()
    entry = await cache.ensure("item:eggs", _builder)

    assert entry.state is AssetState.READY
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_warm_is_sequential_and_spaced():
    clock = FakeClock()
    provider = CountingProvider(clock=clock)
    cache = _cache(provider, clock=clock, min_interval=3.0)
    keys = ["category:grains", "category:dairy", "category:fruits"]

    results = await cache.warm(keys, _builder)

    assert list(results) == keys
    assert all(e.state is AssetState.READY for e in results.values())
    assert provider.dispatched_at == [0.0, 3.0, 6.0]


@pytest.mark.asyncio
async def test_independent_keys_are_spaced():
    clock = FakeClock()
    provider = CountingProvider(clock=clock)
    cache = _cache(provider, clock=clock, min_interval=2.5)

    await asyncio.gather(
        cache.ensure("category:dairy", _builder),
        cache.ensure("category:fruits", _builder),
    )

    assert provider.calls == 2
    assert provider.dispatched_at[1] - provider.dispatched_at[0] >= 2.5


@pytest.mark.asyncio
async def test_snapshot_and_entry_defaults():
    cache = _cache(CountingProvider())
    assert cache.entry("item:milk") == AssetEntry(key="item:milk")
    assert cache.value("item:milk") is None

    await cache.ensure("item:milk", _builder)
    snap = cache.snapshot()
    assert set(snap) == {"item:milk"}
    assert snap["item:milk"].state is AssetState.READY


@pytest.mark.asyncio
async def test_with_sqlite_store_and_real_prompts(tmp_path):
    store = SQLiteAssetStore(tmp_path / "freshly.db")
    provider = CountingProvider()
    try:
        cache = _cache(provider, store)
        entry = await cache.ensure("recipe:pasta al pomodoro", prompt_for_key)
        assert entry.state is AssetState.READY
        assert provider.requests[0][1] is AspectRatio.WIDE

        # A new session finds the persisted image
        fresh = _cache(provider, store)
        again = await fresh.ensure("recipe:pasta al pomodoro", prompt_for_key)
        assert again.value == IMAGE
        assert provider.calls == 1
    finally:
        store.close()


def test_create_asset_cache_from_config(tmp_path):
    config = load_config()
    config.database.path = str(tmp_path / "freshly.db")
    cache = create_asset_cache(config)

    assert isinstance(cache, AssetCache)
    assert isinstance(cache._generator._provider, GeminiImageProvider)
    assert isinstance(cache._store, SQLiteAssetStore)


@pytest.mark.asyncio
async def test_close_releases_store_and_keeps_entries():
    store = MemoryStore()
    cache = _cache(CountingProvider(), store)
    await cache.ensure("category:dairy", _builder)

    cache.close()

    assert store.closed is True
    assert cache.value("category:dairy") == IMAGE
