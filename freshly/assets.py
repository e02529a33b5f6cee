"""Cache of generated images shared by everything that displays assets.

:class:`AssetCache` is the single place that decides whether an asset comes
from the persistent store or from the image generator. It guarantees at most
one load in flight per key, remembers the outcome for the session, and
notifies subscribers on every state change.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .db.assets import AssetStore, SQLiteAssetStore
from .imagegen import (
    ErrorKind,
    GeneratedImage,
    GenerationFailed,
    ImageRequest,
    create_provider,
)
from .imagegen.throttle import ThrottledGenerator

if TYPE_CHECKING:
    from .config import FreshlyConfig

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[str], ImageRequest]


class AssetState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class AssetEntry:
    key: str
    state: AssetState = AssetState.IDLE
    value: GeneratedImage | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None


Subscriber = Callable[[AssetEntry], None]


class AssetCache:
    """Resolve asset keys to images via the store, then the generator."""

    def __init__(self, store: AssetStore, generator: ThrottledGenerator) -> None:
        self._store = store
        self._generator = generator
        self._entries: dict[str, AssetEntry] = {}
        self._inflight: dict[str, asyncio.Task[AssetEntry]] = {}
        self._subscribers: dict[str, list[Subscriber]] = {}

    def entry(self, key: str) -> AssetEntry:
        """Current entry for ``key`` (Idle if never requested)."""
        return self._entries.get(key) or AssetEntry(key=key)

    def value(self, key: str) -> GeneratedImage | None:
        return self.entry(key).value

    def snapshot(self) -> dict[str, AssetEntry]:
        return dict(self._entries)

    def close(self) -> None:
        """Close the underlying store. Loaded entries stay readable."""
        self._store.close()

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` on every state change of ``key``.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    async def ensure(self, key: str, prompt_builder: PromptBuilder) -> AssetEntry:
        """Make ``key`` available and return its settled entry.

        Concurrent callers for the same key share one load. Never raises;
        failures are reported as a Failed entry, and a later call for a
        Failed key starts a fresh attempt.
        """
        current = self._entries.get(key)
        if current is not None and current.state is AssetState.READY:
            return current

        task = self._inflight.get(key)
        if task is None:
            if current is None or current.state is AssetState.FAILED:
                self._transition(AssetEntry(key=key))
            task = asyncio.ensure_future(self._load(key, prompt_builder))
            self._inflight[key] = task
        # A caller that stops waiting must not cancel the shared load
        return await asyncio.shield(task)

    async def warm(
        self, keys: Iterable[str], prompt_builder: PromptBuilder
    ) -> dict[str, AssetEntry]:
        """Ensure several keys one after another.

        Keys are never requested in parallel; cache misses are paced by the
        generator's spacing.
        """
        results: dict[str, AssetEntry] = {}
        for key in keys:
            results[key] = await self.ensure(key, prompt_builder)
        return results

    async def _load(self, key: str, prompt_builder: PromptBuilder) -> AssetEntry:
        try:
            return await self._resolve(key, prompt_builder)
        except Exception as e:
            logger.exception("Unexpected error while loading asset %s", key)
            return self._transition(
                AssetEntry(
                    key=key,
                    state=AssetState.FAILED,
                    error_kind=ErrorKind.OTHER,
                    error=str(e) or type(e).__name__,
                )
            )
        finally:
            self._inflight.pop(key, None)

    async def _resolve(self, key: str, prompt_builder: PromptBuilder) -> AssetEntry:
        persisted = await self._read_store(key)
        if persisted is not None:
            return self._transition(
                AssetEntry(key=key, state=AssetState.READY, value=persisted)
            )

        self._transition(AssetEntry(key=key, state=AssetState.LOADING))
        request = prompt_builder(key)
        try:
            image = await self._generator.request_image(
                request.prompt, request.aspect_ratio
            )
        except GenerationFailed as e:
            logger.warning("Could not generate asset %s: %s", key, e)
            return self._transition(
                AssetEntry(
                    key=key,
                    state=AssetState.FAILED,
                    error_kind=e.kind,
                    error=str(e),
                )
            )

        await self._write_store(key, image)
        return self._transition(AssetEntry(key=key, state=AssetState.READY, value=image))

    async def _read_store(self, key: str) -> GeneratedImage | None:
        try:
            return await self._store.get(key)
        except Exception:
            logger.warning("Treating asset store error for %s as a miss", key, exc_info=True)
            return None

    async def _write_store(self, key: str, image: GeneratedImage) -> None:
        try:
            saved = await self._store.set(key, image)
        except Exception:
            logger.warning("Could not persist asset %s", key, exc_info=True)
            return
        if not saved:
            logger.warning("Asset %s is cached for this session only", key)

    def _transition(self, entry: AssetEntry) -> AssetEntry:
        self._entries[entry.key] = entry
        for callback in list(self._subscribers.get(entry.key, [])):
            try:
                callback(entry)
            except Exception:
                logger.exception("Asset subscriber failed for %s", entry.key)
        return entry


def create_asset_cache(
    config: FreshlyConfig, store: AssetStore | None = None
) -> AssetCache:
    """Wire the configured provider, throttle and SQLite store together."""
    generator = ThrottledGenerator(
        create_provider(config),
        min_interval=config.throttle.min_interval,
        base_delay=config.throttle.base_delay,
        max_retries=config.throttle.max_retries,
        timeout=config.throttle.timeout,
    )
    if store is None:
        store = SQLiteAssetStore(config.database.path)
    return AssetCache(store, generator)
