"""Tests for the per-invocation PR details cache."""
from __future__ import annotations

import threading
import time

from ghprs.cache import PRDetailsCache, is_blocked_with_cache, needs_rebase_with_cache
from ghprs.errors import NetworkError

from .conftest import make_pull_request, pr_payload

DETAILS = "repos/owner/repo/pulls/1"


class SlowClient:
    """Client whose detail fetch takes measurable time."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def get(self, path):
        with self._lock:
            self.calls += 1
        time.sleep(self.delay)
        return pr_payload(number=int(path.rsplit("/", 1)[1]), mergeable_state="dirty")

    def post(self, path, body):
        raise AssertionError("unexpected POST")

    def get_text(self, path, accept):
        raise AssertionError("unexpected GET")


class TestGetOrFetch:
    def test_known_state_skips_fetch(self, fake_client):
        cache = PRDetailsCache()
        pr = make_pull_request(mergeable_state="clean")

        assert cache.get_or_fetch(fake_client, "owner", "repo", 1, pr) is pr
        assert fake_client.calls == []
        assert len(cache) == 0

    def test_single_fetch_across_many_calls(self, fake_client):
        fake_client.add(DETAILS, pr_payload(number=1, mergeable_state="behind"))
        cache = PRDetailsCache()
        pr = make_pull_request(mergeable_state="")

        results = [cache.get_or_fetch(fake_client, "owner", "repo", 1, pr) for _ in range(10)]

        assert len(fake_client.requests("GET", DETAILS)) == 1
        assert all(r.mergeable_state == "behind" for r in results)
        assert 1 in cache

    def test_unknown_state_triggers_fetch(self, fake_client):
        fake_client.add(DETAILS, pr_payload(number=1, mergeable_state="blocked"))
        cache = PRDetailsCache()

        result = cache.get_or_fetch(fake_client, "owner", "repo", 1, make_pull_request(mergeable_state="unknown"))

        assert result.mergeable_state == "blocked"
        assert len(fake_client.calls) == 1

    def test_failure_is_cached(self, fake_client):
        fake_client.add(DETAILS, NetworkError("down"))
        cache = PRDetailsCache()
        pr = make_pull_request(mergeable_state="")

        first = cache.get_or_fetch(fake_client, "owner", "repo", 1, pr)
        second = cache.get_or_fetch(fake_client, "owner", "repo", 1, pr)

        assert first is pr
        assert second is pr
        assert len(fake_client.calls) == 1

    def test_second_pass_is_faster(self):
        client = SlowClient(delay=0.02)
        cache = PRDetailsCache()
        prs = [make_pull_request(number=n) for n in range(1, 6)]

        start = time.perf_counter()
        for pr in prs:
            cache.get_or_fetch(client, "owner", "repo", pr.number, pr)
        first_pass = time.perf_counter() - start

        start = time.perf_counter()
        for pr in prs:
            cache.get_or_fetch(client, "owner", "repo", pr.number, pr)
        second_pass = time.perf_counter() - start

        assert client.calls == 5
        assert second_pass * 2 <= first_pass

    def test_concurrent_misses_fetch_once(self):
        client = SlowClient(delay=0.01)
        cache = PRDetailsCache()
        pr = make_pull_request(number=7)

        threads = [
            threading.Thread(target=cache.get_or_fetch, args=(client, "owner", "repo", 7, pr))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert client.calls == 1


class TestCachedPredicates:
    def test_rebase_and_blocked_share_one_fetch(self, fake_client):
        fake_client.add(DETAILS, pr_payload(number=1, mergeable_state="dirty"))
        cache = PRDetailsCache()
        pr = make_pull_request()

        assert needs_rebase_with_cache(cache, fake_client, "owner", "repo", pr)
        assert not is_blocked_with_cache(cache, fake_client, "owner", "repo", pr)
        assert len(fake_client.calls) == 1
