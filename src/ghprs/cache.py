from __future__ import annotations

import threading

from .classify import fetch_pr_details, is_blocked, needs_rebase
from .client import RestClient
from .errors import GhprsError
from .models import PullRequest


class PRDetailsCache:
    """Per-invocation memo of full pull request records keyed by PR number.

    List responses usually omit ``mergeable_state``; the single-PR endpoint
    computes it. Entries are never evicted and never refreshed, and a failed
    fetch caches the list record so the same PR is not retried.
    """

    def __init__(self) -> None:
        self._entries: dict[int, PullRequest] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, number: object) -> bool:
        return number in self._entries

    def get_or_fetch(
        self, client: RestClient, owner: str, repo: str, number: int, original: PullRequest
    ) -> PullRequest:
        # "unknown" is refetched as well as "": the API reports it while the
        # merge check is still running, so it is not a final state.
        if original.merge_state_known:
            return original

        cached = self._entries.get(number)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._entries.get(number)
            if cached is not None:
                return cached
            try:
                resolved = fetch_pr_details(client, owner, repo, number)
            except GhprsError:
                resolved = original
            self._entries[number] = resolved
            return resolved


def needs_rebase_with_cache(
    cache: PRDetailsCache, client: RestClient, owner: str, repo: str, pr: PullRequest
) -> bool:
    return needs_rebase(cache.get_or_fetch(client, owner, repo, pr.number, pr))


def is_blocked_with_cache(
    cache: PRDetailsCache, client: RestClient, owner: str, repo: str, pr: PullRequest
) -> bool:
    return is_blocked(cache.get_or_fetch(client, owner, repo, pr.number, pr))
