from __future__ import annotations

import time
from typing import Any, Protocol

import httpx
from rich.console import Console

from .errors import ApiError, AuthError, NetworkError, NotFoundError, RateLimitError

_API_URL = "https://api.github.com/"
_RETRY_DELAYS = (1, 5, 15)
_LOW_RATE_LIMIT = 100
_stderr = Console(stderr=True)

DIFF_MEDIA_TYPE = "application/vnd.github.diff"


class RestClient(Protocol):
    """The request capability the triage engine consumes.

    Paths are REST resource strings relative to the API root, e.g.
    ``repos/{owner}/{repo}/pulls/{n}/reviews``.
    """

    def get(self, path: str) -> Any: ...

    def post(self, path: str, body: Any) -> Any: ...

    def get_text(self, path: str, accept: str) -> str: ...


class GitHubClient:
    def __init__(self, token: str | None, base_url: str = _API_URL) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(30.0),
        )
        self._rate_limit_warned = False

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self._client.close()

    def close(self) -> None:
        self._client.close()

    def get(self, path: str) -> Any:
        return self._request("GET", path, retry=True).json()

    def post(self, path: str, body: Any) -> Any:
        response = self._request("POST", path, json=body)
        if not response.content:
            return None
        return response.json()

    def get_text(self, path: str, accept: str) -> str:
        return self._request("GET", path, headers={"Accept": accept}, retry=True).text

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        retry: bool = False,
    ) -> httpx.Response:
        # Only idempotent reads are retried; mutations fail fast.
        delays = (*_RETRY_DELAYS, None) if retry else (None,)

        last_exc: Exception | None = None
        for delay in delays:
            try:
                response = self._client.request(method, path, json=json, headers=headers)
            except httpx.TimeoutException as exc:
                if not retry:
                    raise NetworkError(f"{method} {path} timed out") from exc
                last_exc = exc
                if delay is not None:
                    time.sleep(delay)
                continue
            except httpx.RequestError as exc:
                raise NetworkError(str(exc)) from exc

            if response.status_code >= 500 and retry:
                last_exc = ApiError(f"GitHub API returned HTTP {response.status_code}")
                if delay is not None:
                    time.sleep(delay)
                continue

            self._raise_for_status(response)
            self._warn_if_rate_limit_low(response)
            return response

        raise NetworkError(f"Request failed after retries: {last_exc}") from last_exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 401:
            raise AuthError("GitHub token is invalid or missing required scopes.")
        if status in (403, 429) and response.headers.get("X-RateLimit-Remaining") == "0":
            reset_at = response.headers.get("X-RateLimit-Reset", "unknown")
            raise RateLimitError(f"GitHub rate limit exhausted. Resets at {reset_at}.")
        if status == 404:
            raise NotFoundError(f"GitHub API returned HTTP 404 for {response.request.url.path}")
        raise ApiError(f"GitHub API returned HTTP {status}: {_error_message(response)}")

    def _warn_if_rate_limit_low(self, response: httpx.Response) -> None:
        remaining = response.headers.get("X-RateLimit-Remaining")
        if self._rate_limit_warned or remaining is None or not remaining.isdigit():
            return
        if int(remaining) < _LOW_RATE_LIMIT:
            self._rate_limit_warned = True
            _stderr.print(
                f"[yellow]Warning:[/yellow] GitHub rate limit low: {remaining} requests remaining "
                f"(resets at {response.headers.get('X-RateLimit-Reset', 'unknown')})"
            )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text
