"""
In-process cache for the compressed sitemap with single-flight generation.

State machine::

    IDLE --get_payload--> BUILDING --ok--> READY
                             |
                             +--error--> FAILED --get_payload--> BUILDING

All callers that arrive while a build is running wait on that same build
and receive its outcome. The build runs in its own task, so a caller that
goes away (client disconnect, cancellation) does not stop it for the rest.

Only one pipeline runs at a time. A pipeline that outlived its build (timed
out, or invalidated) keeps the pipeline lock until it returns, and the next
build waits for it before starting its own.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from storefront.sitemap.errors import BuildResult, BuildTimeout, SitemapBuildFailed, SitemapError

logger = logging.getLogger(__name__)

class CacheState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"

@dataclass(frozen=True)
class CachedPayload:
    content: bytes
    built_at: datetime

BuildOutcome = Union[CachedPayload, BaseException]

class SitemapCache:
    """
    Holds at most one finished sitemap payload.

    Args:
        build: coroutine function running the pipeline once
        ttl_seconds: expire a ready payload after this many seconds (None = never)
        build_timeout: fail a build that runs longer than this (None = no limit)
    """

    def __init__(
        self,
        build: Callable[[], Awaitable[BuildResult]],
        ttl_seconds: Optional[float] = None,
        build_timeout: Optional[float] = None,
    ):
        self._build = build
        self._ttl_seconds = ttl_seconds
        self._build_timeout = build_timeout

        self._lock = asyncio.Lock()
        # Held for as long as a pipeline task is alive
        self._pipeline_lock = asyncio.Lock()
        self._state = CacheState.IDLE
        self._payload: Optional[CachedPayload] = None
        self._expires_at: Optional[float] = None
        self._task: Optional["asyncio.Task[BuildOutcome]"] = None
        self._last_error: Optional[BaseException] = None
        self._build_count = 0

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def build_count(self) -> int:
        return self._build_count

    @property
    def pipeline_running(self) -> bool:
        return self._pipeline_lock.locked()

    def _expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def _reset(self) -> None:
        self._state = CacheState.IDLE
        self._payload = None
        self._expires_at = None

    async def get_payload(self) -> CachedPayload:
        """
        Return the compressed sitemap, building it if needed.

        Raises:
            SitemapBuildFailed: the build this call waited on failed
        """
        payload = self._payload
        if payload is not None and not self._expired():
            return payload

        async with self._lock:
            if self._state is CacheState.READY and self._expired():
                logger.info("Cached sitemap expired, rebuilding")
                self._reset()

            if self._state is CacheState.READY:
                return self._payload

            if self._state is not CacheState.BUILDING:
                self._start_build()
            task = self._task

        outcome = await asyncio.shield(task)
        if isinstance(outcome, CachedPayload):
            return outcome
        raise SitemapBuildFailed(outcome) from outcome

    def _start_build(self) -> None:
        self._build_count += 1
        self._state = CacheState.BUILDING
        self._task = asyncio.create_task(self._run_build(self._build_count))

    async def _run_pipeline(self, generation: int) -> BuildResult:
        try:
            return await self._build()
        except Exception as e:
            logger.error(f"Unexpected error in sitemap build #{generation}: {e}", exc_info=True)
            return BuildResult.failure(e)

    async def _run_build(self, generation: int) -> BuildOutcome:
        try:
            if self._pipeline_lock.locked():
                logger.warning(
                    f"Sitemap build #{generation} waiting for an earlier pipeline to finish"
                )
            await self._pipeline_lock.acquire()
            pipeline = asyncio.create_task(self._run_pipeline(generation))
            pipeline.add_done_callback(lambda _: self._pipeline_lock.release())

            logger.info(f"Starting sitemap build #{generation}")
            if self._build_timeout is not None:
                result = await asyncio.wait_for(asyncio.shield(pipeline), self._build_timeout)
            else:
                result = await asyncio.shield(pipeline)
        except asyncio.TimeoutError:
            logger.error(
                f"Sitemap build #{generation} timed out; its pipeline keeps running "
                "and the next build waits for it"
            )
            result = BuildResult.failure(
                BuildTimeout(f"Sitemap build exceeded {self._build_timeout}s")
            )
        except asyncio.CancelledError:
            self._finish(generation, BuildResult.failure(SitemapError("Sitemap build was cancelled")))
            raise

        return self._finish(generation, result)

    def _finish(self, generation: int, result: BuildResult) -> BuildOutcome:
        outcome: BuildOutcome
        if result.ok:
            outcome = CachedPayload(content=result.content, built_at=datetime.now(timezone.utc))
        else:
            outcome = result.error

        if self._task is not asyncio.current_task():
            # Invalidated while running: only this build's own waiters see it
            logger.info(f"Sitemap build #{generation} finished after invalidation, not cached")
            return outcome

        if not result.ok:
            self._state = CacheState.FAILED
            self._last_error = result.error
            logger.error(f"Sitemap build #{generation} failed: {result.error}")
            return outcome

        self._payload = outcome
        if self._ttl_seconds is not None:
            self._expires_at = time.monotonic() + self._ttl_seconds
        self._state = CacheState.READY
        self._last_error = None
        logger.info(f"Sitemap build #{generation} cached ({len(outcome.content)} bytes)")
        return outcome

    async def invalidate(self) -> None:
        """
        Drop the cached payload so the next request rebuilds.

        A build already in flight still answers the callers waiting on it,
        but its result is not cached and later callers start a new build.
        """
        async with self._lock:
            self._task = None
            self._reset()
        logger.info("Sitemap cache invalidated")

    def snapshot(self) -> Dict[str, Any]:
        payload = self._payload
        return {
            "state": self._state.value,
            "built_at": payload.built_at if payload else None,
            "size_bytes": len(payload.content) if payload else None,
            "build_count": self._build_count,
            "last_error": str(self._last_error) if self._last_error else None,
        }
