"""Shared factories and fixtures for the test suite."""
from __future__ import annotations

from typing import Any

import pytest

from ghprs.errors import NotFoundError
from ghprs.models import Branch, CheckRun, PRFile, PullRequest, Review, StatusCheck

# ---------------------------------------------------------------------------
# REST payload factories: raw dicts that mirror API responses
# ---------------------------------------------------------------------------


def pr_payload(
    number: int = 1,
    title: str = "Bump dependency",
    body: str = "",
    state: str = "open",
    draft: bool = False,
    author: str | None = "alice",
    head_ref: str = "feature",
    head_sha: str = "abc123",
    base_ref: str = "main",
    created_at: str = "2024-01-01T00:00:00Z",
    updated_at: str = "2024-01-02T00:00:00Z",
    mergeable_state: str | None = None,
    labels: list[str] | None = None,
) -> dict:
    payload = {
        "number": number,
        "title": title,
        "body": body,
        "state": state,
        "draft": draft,
        "user": {"login": author} if author else None,
        "head": {"ref": head_ref, "sha": head_sha},
        "base": {"ref": base_ref, "sha": "def456"},
        "created_at": created_at,
        "updated_at": updated_at,
        "html_url": f"https://github.com/owner/repo/pull/{number}",
        "labels": [{"name": lbl} for lbl in (labels or [])],
    }
    if mergeable_state is not None:
        payload["mergeable_state"] = mergeable_state
    return payload


def files_payload(*names: str, status: str = "modified") -> list[dict]:
    return [{"filename": name, "status": status} for name in names]


def reviews_payload(*states: str) -> list[dict]:
    return [{"state": state, "user": {"login": f"reviewer{i}"}} for i, state in enumerate(states)]


# ---------------------------------------------------------------------------
# Model object factories: construct typed model instances
# ---------------------------------------------------------------------------


def make_pull_request(
    number: int = 1,
    title: str = "Bump dependency",
    body: str = "",
    state: str = "open",
    draft: bool = False,
    author: str = "alice",
    head_ref: str = "feature",
    head_sha: str = "abc123",
    base_ref: str = "main",
    created_at: str = "2024-01-01T00:00:00Z",
    updated_at: str = "2024-01-02T00:00:00Z",
    mergeable_state: str = "",
    labels: list[str] | None = None,
) -> PullRequest:
    return PullRequest(
        number=number,
        title=title,
        body=body,
        state=state,
        draft=draft,
        author=author,
        head=Branch(ref=head_ref, sha=head_sha),
        base=Branch(ref=base_ref, sha="def456"),
        created_at=created_at,
        updated_at=updated_at,
        html_url=f"https://github.com/owner/repo/pull/{number}",
        mergeable_state=mergeable_state,
        labels=labels or [],
    )


def make_pr_file(filename: str = "src/main.py", status: str = "modified") -> PRFile:
    return PRFile(filename=filename, status=status)


def make_review(state: str = "APPROVED", author: str = "reviewer") -> Review:
    return Review(state=state, author=author)


def make_check_run(
    name: str = "build", status: str = "completed", conclusion: str = "success"
) -> CheckRun:
    return CheckRun(name=name, status=status, conclusion=conclusion)


def make_status_check(
    state: str = "success", context: str = "ci/legacy", description: str = ""
) -> StatusCheck:
    return StatusCheck(state=state, context=context, description=description)


def create_mock_check_runs(success: int, failure: int, pending: int) -> dict:
    """Check-runs response with the given number of passing, failing and running checks."""
    runs = (
        [{"name": f"pass-{i}", "status": "completed", "conclusion": "success"} for i in range(success)]
        + [{"name": f"fail-{i}", "status": "completed", "conclusion": "failure"} for i in range(failure)]
        + [{"name": f"run-{i}", "status": "in_progress", "conclusion": None} for i in range(pending)]
    )
    return {"total_count": len(runs), "check_runs": runs}


# ---------------------------------------------------------------------------
# In-memory REST client
# ---------------------------------------------------------------------------


class FakeRestClient:
    """Canned-response stand-in for ``GitHubClient``.

    Responses are matched by exact path first, then by the longest registered
    pattern contained in the path. Registering an exception makes the matching
    request raise it. Raw-text responses (diffs) are registered separately with
    ``add_text``. Every request is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self._responses: dict[str, Any] = {}
        self._texts: dict[str, Any] = {}
        self.calls: list[tuple[str, str, Any]] = []

    def add(self, pattern: str, response: Any) -> None:
        self._responses[pattern] = response

    def add_text(self, pattern: str, response: Any) -> None:
        self._texts[pattern] = response

    @staticmethod
    def _lookup(table: dict[str, Any], path: str) -> Any:
        if path in table:
            response = table[path]
        else:
            matches = [pattern for pattern in table if pattern in path]
            if not matches:
                raise NotFoundError(f"GitHub API returned HTTP 404 for /{path}")
            response = table[max(matches, key=len)]
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, path: str) -> Any:
        self.calls.append(("GET", path, None))
        return self._lookup(self._responses, path)

    def post(self, path: str, body: Any) -> Any:
        self.calls.append(("POST", path, body))
        return self._lookup(self._responses, path)

    def get_text(self, path: str, accept: str) -> str:
        self.calls.append(("GET", path, accept))
        return self._lookup(self._texts, path)

    def requests(self, method: str, fragment: str = "") -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == method and fragment in call[1]]


@pytest.fixture
def fake_client() -> FakeRestClient:
    return FakeRestClient()


# ---------------------------------------------------------------------------
# Autouse fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def no_dotenv(mocker):
    """Prevent tests from loading a real .env file."""
    mocker.patch("ghprs.cli.load_dotenv")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep real tokens, colour settings and config files out of the tests."""
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("GHPRS_CONFIG", str(tmp_path / "config.yaml"))
