"""Tests for the bounded-parallelism download scheduler."""

import threading
import time

import pytest

from conftest import StubTransport
from jarfetch.cache import ArtifactCache
from jarfetch.errors import NotFoundError, TransportError
from jarfetch.scheduler import DownloadScheduler

BASE = "https://repo.test/files/"


@pytest.fixture
def cache(tmp_path):
    files = {f"{BASE}{i}.jar": f"file {i}".encode() for i in range(10)}
    return ArtifactCache(tmp_path, StubTransport(files))


class TestDownloadScheduler:

    def test_rejects_non_positive_parallelism(self, cache):
        with pytest.raises(ValueError):
            DownloadScheduler(cache, 0)

    def test_results_in_input_order(self, cache):
        scheduler = DownloadScheduler(cache, 3)
        urls = [f"{BASE}{i}.jar" for i in (7, 2, 5)]
        results = scheduler.fetch_all(urls)
        assert list(results) == urls
        assert results[urls[0]].read_bytes() == b"file 7"

    def test_partial_failure_does_not_abort_others(self, cache):
        scheduler = DownloadScheduler(cache, 2)
        urls = [f"{BASE}1.jar", f"{BASE}missing.jar", f"{BASE}2.jar"]
        results = scheduler.fetch_all(urls)
        assert isinstance(results[urls[1]], NotFoundError)
        assert results[urls[0]].read_bytes() == b"file 1"
        assert results[urls[2]].read_bytes() == b"file 2"

    def test_duplicate_urls_fetched_once(self, cache):
        scheduler = DownloadScheduler(cache, 4)
        url = f"{BASE}3.jar"
        results = scheduler.fetch_all([url, url, url])
        assert list(results) == [url]
        assert cache.transport.calls[url] == 1

    def test_parallelism_bound_is_respected(self, cache):
        active = 0
        peak = 0
        lock = threading.Lock()

        def task():
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return True

        results = DownloadScheduler(cache, 2).run({i: task for i in range(6)})
        assert all(results.values())
        assert peak <= 2

    def test_run_collects_jarfetch_errors_as_values(self, cache):
        def boom():
            raise TransportError("timeout")

        results = DownloadScheduler(cache, 2).run({"ok": lambda: 1, "bad": boom})
        assert results["ok"] == 1
        assert isinstance(results["bad"], TransportError)

    def test_empty_task_set(self, cache):
        assert DownloadScheduler(cache).run({}) == {}
