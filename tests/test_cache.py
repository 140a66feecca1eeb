"""
Tests for the single-flight sitemap cache.
"""

import asyncio
import time
import unittest

from fastapi.concurrency import run_in_threadpool

from storefront.sitemap.cache import CachedPayload, CacheState, SitemapCache
from storefront.sitemap.errors import (
    BuildResult, BuildTimeout, CatalogUnavailable, SitemapBuildFailed
)
from storefront.sitemap.pipeline import build_sitemap

from tests.helpers import FakeCatalogSource, make_settings


class ControlledBuild:
    """Build function whose completion the test decides."""

    def __init__(self):
        self.calls = 0
        self.running = 0
        self.max_running = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.results = []

    async def __call__(self):
        self.calls += 1
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        self.started.set()
        try:
            await self.release.wait()
        finally:
            self.running -= 1
        if self.results:
            return self.results.pop(0)
        return BuildResult.success(f"payload-{self.calls}".encode())


class TestSitemapCache(unittest.IsolatedAsyncioTestCase):
    """Test cases for SitemapCache state transitions."""

    async def test_starts_idle(self):
        cache = SitemapCache(ControlledBuild())
        self.assertEqual(cache.state, CacheState.IDLE)
        self.assertEqual(cache.snapshot()["size_bytes"], None)

    async def test_ready_payload_is_served_without_rebuilding(self):
        build = ControlledBuild()
        build.release.set()
        cache = SitemapCache(build)

        first = await cache.get_payload()
        second = await cache.get_payload()

        self.assertIsInstance(first, CachedPayload)
        self.assertIs(first, second)
        self.assertEqual(build.calls, 1)
        self.assertEqual(cache.state, CacheState.READY)

    async def test_concurrent_requests_share_one_build(self):
        build = ControlledBuild()
        cache = SitemapCache(build)

        waiters = [asyncio.create_task(cache.get_payload()) for _ in range(25)]
        await build.started.wait()
        self.assertEqual(cache.state, CacheState.BUILDING)

        build.release.set()
        payloads = await asyncio.gather(*waiters)

        self.assertEqual(build.calls, 1)
        self.assertEqual(cache.build_count, 1)
        self.assertTrue(all(p is payloads[0] for p in payloads))
        self.assertEqual(payloads[0].content, b"payload-1")

    async def test_failure_reaches_every_waiter_and_next_request_retries(self):
        build = ControlledBuild()
        build.results.append(BuildResult.failure(CatalogUnavailable("db down")))
        cache = SitemapCache(build)

        waiters = [asyncio.create_task(cache.get_payload()) for _ in range(5)]
        await build.started.wait()
        build.release.set()
        outcomes = await asyncio.gather(*waiters, return_exceptions=True)

        for outcome in outcomes:
            self.assertIsInstance(outcome, SitemapBuildFailed)
            self.assertIsInstance(outcome.cause, CatalogUnavailable)
        self.assertEqual(cache.state, CacheState.FAILED)
        self.assertEqual(cache.snapshot()["last_error"], "db down")
        self.assertIsNone(cache.snapshot()["built_at"])

        payload = await cache.get_payload()
        self.assertEqual(payload.content, b"payload-2")
        self.assertEqual(build.calls, 2)
        self.assertEqual(cache.state, CacheState.READY)
        self.assertIsNone(cache.snapshot()["last_error"])

    async def test_unexpected_exception_fails_the_build(self):
        async def broken():
            raise ValueError("bug")

        cache = SitemapCache(broken)
        with self.assertLogs("storefront.sitemap.cache", level="ERROR"):
            with self.assertRaises(SitemapBuildFailed) as ctx:
                await cache.get_payload()
        self.assertIsInstance(ctx.exception.__cause__, ValueError)
        self.assertEqual(cache.state, CacheState.FAILED)

    async def test_cancelled_waiter_does_not_cancel_the_build(self):
        build = ControlledBuild()
        cache = SitemapCache(build)

        first = asyncio.create_task(cache.get_payload())
        second = asyncio.create_task(cache.get_payload())
        await build.started.wait()

        first.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await first

        build.release.set()
        payload = await second
        self.assertEqual(payload.content, b"payload-1")
        self.assertEqual(cache.state, CacheState.READY)
        self.assertEqual(build.calls, 1)

    async def test_build_timeout(self):
        build = ControlledBuild()
        cache = SitemapCache(build, build_timeout=0.05)

        with self.assertRaises(SitemapBuildFailed) as ctx:
            await cache.get_payload()
        self.assertIsInstance(ctx.exception.cause, BuildTimeout)
        self.assertEqual(cache.state, CacheState.FAILED)
        self.assertTrue(cache.pipeline_running)

    async def test_ttl_expiry_triggers_rebuild(self):
        build = ControlledBuild()
        build.release.set()
        cache = SitemapCache(build, ttl_seconds=0)

        first = await cache.get_payload()
        second = await cache.get_payload()

        self.assertEqual(first.content, b"payload-1")
        self.assertEqual(second.content, b"payload-2")
        self.assertEqual(build.calls, 2)

    async def test_invalidate_drops_ready_payload(self):
        build = ControlledBuild()
        build.release.set()
        cache = SitemapCache(build)

        await cache.get_payload()
        await cache.invalidate()
        self.assertEqual(cache.state, CacheState.IDLE)

        payload = await cache.get_payload()
        self.assertEqual(payload.content, b"payload-2")

    async def test_invalidate_during_build_is_not_cached(self):
        build = ControlledBuild()
        cache = SitemapCache(build)

        waiter = asyncio.create_task(cache.get_payload())
        await build.started.wait()
        await cache.invalidate()
        build.release.set()

        payload = await waiter
        self.assertEqual(payload.content, b"payload-1")
        self.assertEqual(cache.state, CacheState.IDLE)

        payload = await cache.get_payload()
        self.assertEqual(payload.content, b"payload-2")

    async def test_caller_after_invalidate_gets_a_fresh_build(self):
        build = ControlledBuild()
        cache = SitemapCache(build)

        early = asyncio.create_task(cache.get_payload())
        await build.started.wait()
        await cache.invalidate()
        self.assertEqual(cache.state, CacheState.IDLE)

        late = asyncio.create_task(cache.get_payload())
        await asyncio.sleep(0.01)
        # The new build waits for the old pipeline instead of overlapping it
        self.assertEqual(build.calls, 1)
        self.assertEqual(cache.state, CacheState.BUILDING)

        build.release.set()
        self.assertEqual((await early).content, b"payload-1")
        self.assertEqual((await late).content, b"payload-2")
        self.assertEqual(build.max_running, 1)
        self.assertEqual(cache.state, CacheState.READY)

        payload = await cache.get_payload()
        self.assertEqual(payload.content, b"payload-2")
        self.assertEqual(build.calls, 2)

    async def test_timed_out_pipeline_delays_the_next_build(self):
        build = ControlledBuild()
        cache = SitemapCache(build, build_timeout=0.05)

        with self.assertRaises(SitemapBuildFailed):
            await cache.get_payload()
        self.assertTrue(cache.pipeline_running)

        retry = asyncio.create_task(cache.get_payload())
        await asyncio.sleep(0.1)
        self.assertEqual(build.calls, 1)
        self.assertEqual(cache.state, CacheState.BUILDING)

        build.release.set()
        payload = await retry
        self.assertEqual(payload.content, b"payload-2")
        self.assertEqual(build.max_running, 1)
        self.assertEqual(cache.state, CacheState.READY)

    async def test_timed_out_threadpool_work_never_overlaps(self):
        counter = {"running": 0, "peak": 0}

        async def slow_build():
            counter["running"] += 1
            counter["peak"] = max(counter["peak"], counter["running"])
            try:
                await run_in_threadpool(time.sleep, 0.2)
            finally:
                counter["running"] -= 1
            return BuildResult.success(b"late")

        cache = SitemapCache(slow_build, build_timeout=0.05)
        for _ in range(2):
            with self.assertRaises(SitemapBuildFailed) as ctx:
                await cache.get_payload()
            self.assertIsInstance(ctx.exception.cause, BuildTimeout)

        self.assertEqual(counter["peak"], 1)
        while cache.pipeline_running:
            await asyncio.sleep(0.05)
        self.assertEqual(counter["running"], 0)

    async def test_snapshot_after_build(self):
        build = ControlledBuild()
        build.release.set()
        cache = SitemapCache(build)
        await cache.get_payload()

        snapshot = cache.snapshot()
        self.assertEqual(snapshot["state"], "ready")
        self.assertEqual(snapshot["size_bytes"], len(b"payload-1"))
        self.assertEqual(snapshot["build_count"], 1)
        self.assertIsNotNone(snapshot["built_at"])


class TestCacheWithPipeline(unittest.IsolatedAsyncioTestCase):
    """Test cases running the real pipeline behind the cache."""

    async def test_catalog_called_once_for_concurrent_requests(self):
        source = FakeCatalogSource()
        cache = SitemapCache(lambda: build_sitemap(source, make_settings()))

        payloads = await asyncio.gather(*(cache.get_payload() for _ in range(10)))

        self.assertEqual(source.calls, 1)
        self.assertEqual(len({p.content for p in payloads}), 1)

    async def test_failed_catalog_leaves_cache_empty_then_retries(self):
        source = FakeCatalogSource(error=RuntimeError("db down"))
        cache = SitemapCache(lambda: build_sitemap(source, make_settings()))

        with self.assertRaises(SitemapBuildFailed):
            await cache.get_payload()
        self.assertIsNone(cache.snapshot()["size_bytes"])

        source.error = None
        payload = await cache.get_payload()
        self.assertEqual(source.calls, 2)
        self.assertTrue(payload.content.startswith(b"\x1f\x8b"))
