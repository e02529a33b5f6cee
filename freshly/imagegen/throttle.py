"""Rate-limit aware wrapper around an image provider.

All provider calls made through one :class:`ThrottledGenerator` pass through
a single cooperative queue: a call is dispatched only after ``min_interval``
seconds have elapsed since the previous call resolved. Rate-limited calls are
retried with linear backoff; the backoff wait happens outside the queue so it
only delays the request that was throttled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from . import (
    AspectRatio,
    ErrorKind,
    GeneratedImage,
    GenerationFailed,
    ImageGenerationError,
    ImageProvider,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL = 3.0
DEFAULT_BASE_DELAY = 5.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT = 60.0


@dataclass
class RetryState:
    attempt: int = 0
    last_error_kind: ErrorKind | None = None


class ThrottledGenerator:
    """Serialize and retry calls to an :class:`ImageProvider`.

    Args:
        provider: The underlying generator.
        min_interval: Minimum seconds between one call resolving and the
            next being dispatched.
        base_delay: Backoff unit; retry ``n`` (0-based) waits
            ``base_delay * (n + 1)``.
        max_retries: Retries allowed after the first rate-limited call.
        timeout: Per-call limit in seconds, or None to wait indefinitely.
        clock: Monotonic time source.
        sleep: Coroutine used for spacing and backoff waits.
    """

    def __init__(
        self,
        provider: ImageProvider,
        *,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float | None = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._min_interval = min_interval
        self._base_delay = base_delay
        self._max_retries = max_retries
        self._timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self._queue = asyncio.Lock()
        self._last_resolved: float | None = None
        self.calls_made = 0

    def backoff_delay(self, attempt: int) -> float:
        return self._base_delay * (attempt + 1)

    async def request_image(
        self, prompt: str, aspect_ratio: AspectRatio = AspectRatio.SQUARE
    ) -> GeneratedImage:
        """Generate an image, retrying on rate limits.

        Raises:
            GenerationFailed: When retries are exhausted, the provider fails
                for any other reason, or no image is returned.
        """
        state = RetryState()
        while True:
            try:
                image = await self._dispatch(prompt, aspect_ratio)
            except RateLimitedError as e:
                state.last_error_kind = ErrorKind.RATE_LIMITED
                if state.attempt >= self._max_retries:
                    logger.error(
                        "Rate limited %d times, giving up", state.attempt + 1
                    )
                    raise GenerationFailed(
                        f"rate limited after {state.attempt + 1} attempts",
                        kind=ErrorKind.RATE_LIMITED,
                        attempts=state.attempt + 1,
                    ) from e
                delay = self.backoff_delay(state.attempt)
                logger.warning(
                    "Rate limit hit, retrying in %.1fs (retry %d/%d)",
                    delay,
                    state.attempt + 1,
                    self._max_retries,
                )
                await self._sleep(delay)
                state.attempt += 1
                continue
            except Exception as e:
                raise GenerationFailed(
                    str(e) or type(e).__name__,
                    kind=ErrorKind.OTHER,
                    attempts=state.attempt + 1,
                ) from e

            if image is None:
                raise GenerationFailed(
                    "provider returned no image",
                    kind=ErrorKind.OTHER,
                    attempts=state.attempt + 1,
                )
            return image

    async def _dispatch(
        self, prompt: str, aspect_ratio: AspectRatio
    ) -> GeneratedImage | None:
        async with self._queue:
            if self._last_resolved is not None:
                wait = self._last_resolved + self._min_interval - self._clock()
                if wait > 0:
                    await self._sleep(wait)

            self.calls_made += 1
            try:
                call = self._provider.generate(prompt, aspect_ratio)
                if self._timeout is None:
                    return await call
                return await asyncio.wait_for(call, self._timeout)
            except asyncio.TimeoutError:
                raise ImageGenerationError(
                    f"provider did not answer within {self._timeout}s"
                ) from None
            finally:
                self._last_resolved = self._clock()
