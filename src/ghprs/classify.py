"""Predicates that derive triage status from pull request data.

The pure predicates never raise and accept zero-value ``PullRequest``
objects. The fetching helpers talk to a ``RestClient`` and let
``GhprsError`` propagate unless noted otherwise.
"""
from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape

from .client import RestClient
from .errors import ApiError, GhprsError
from .models import CheckRun, CheckStatus, PRFile, PullRequest, Review, StatusCheck

HOLD_LABEL = "do-not-merge/hold"
NUDGE_LABEL = "konflux-nudge"
APPROVAL_LABELS = frozenset({"approved", "lgtm"})

TEKTON_DIR = ".tekton/"
TEKTON_SUFFIXES = ("-pull-request.yaml", "-push.yaml")

MIGRATION_MARKERS = (
    "⚠️[migration]",
    ":warning:[migration]",
    "⚠️migration⚠️",
    "[migration]",
)

SECURITY_KEYWORDS = ("security", "cve")

ICON_DRAFT = "🟡"
ICON_ON_HOLD = "🔶"
ICON_OPEN = "🟢"
ICON_CLOSED = "🔴"
ICON_MERGED = "🟣"
ICON_OTHER = "⚪"

_stderr = Console(stderr=True)


def is_on_hold(pr: PullRequest) -> bool:
    return HOLD_LABEL in pr.labels


def is_konflux_nudge(pr: PullRequest) -> bool:
    return NUDGE_LABEL in pr.labels


def needs_rebase(pr: PullRequest) -> bool:
    return pr.mergeable_state in ("dirty", "behind")


def is_blocked(pr: PullRequest) -> bool:
    return pr.mergeable_state == "blocked"


def has_security(pr: PullRequest) -> bool:
    title = pr.title.lower()
    return any(keyword in title for keyword in SECURITY_KEYWORDS)


def has_migration_warning(pr: PullRequest) -> bool:
    # Only bracketed or flagged markers count; a bare "migration" in prose does not.
    body = pr.body.lower()
    return any(marker.lower() in body for marker in MIGRATION_MARKERS)


def is_approvable(pr: PullRequest) -> bool:
    return pr.state == "open" and not pr.draft and not is_on_hold(pr)


def get_status_icon(pr: PullRequest) -> str:
    if pr.draft:
        return ICON_DRAFT
    if is_on_hold(pr):
        return ICON_ON_HOLD
    if pr.state == "open":
        return ICON_OPEN
    if pr.state == "closed":
        return ICON_CLOSED
    if pr.state == "merged":
        return ICON_MERGED
    return ICON_OTHER


def get_status_text(pr: PullRequest) -> str:
    if pr.draft:
        return "draft"
    if is_on_hold(pr):
        return "on hold"
    return pr.state


def is_tekton_pipeline_file(filename: str) -> bool:
    return filename.startswith(TEKTON_DIR) and filename.endswith(TEKTON_SUFFIXES)


# ---------------------------------------------------------------------------
# Fetch helpers
# ---------------------------------------------------------------------------


def _expect(data: Any, kind: type, path: str) -> Any:
    if not isinstance(data, kind):
        raise ApiError(f"Unexpected response for {path}: expected a JSON {kind.__name__}")
    return data


def fetch_pull_requests(
    client: RestClient, owner: str, repo: str, state: str, limit: int
) -> list[PullRequest]:
    path = f"repos/{owner}/{repo}/pulls?state={state}&per_page={limit}"
    return [PullRequest.from_api(node) for node in _expect(client.get(path), list, path)]


def fetch_pr_details(client: RestClient, owner: str, repo: str, number: int) -> PullRequest:
    path = f"repos/{owner}/{repo}/pulls/{number}"
    return PullRequest.from_api(_expect(client.get(path), dict, path))


def fetch_pr_files(client: RestClient, owner: str, repo: str, number: int) -> list[PRFile]:
    path = f"repos/{owner}/{repo}/pulls/{number}/files"
    return [PRFile.from_api(node) for node in _expect(client.get(path), list, path)]


def fetch_reviews(client: RestClient, owner: str, repo: str, number: int) -> list[Review]:
    path = f"repos/{owner}/{repo}/pulls/{number}/reviews"
    return [Review.from_api(node) for node in _expect(client.get(path), list, path)]


def has_approved_review(reviews: list[Review]) -> bool:
    return any(review.state == "APPROVED" for review in reviews)


def is_reviewed(
    client: RestClient, owner: str, repo: str, number: int, labels: list[str]
) -> bool:
    """True when an approval label is present or any review approved the PR.

    Labels are checked first and cost no request. A failed review fetch
    counts as not reviewed.
    """
    if any(label in APPROVAL_LABELS for label in labels):
        return True
    try:
        reviews = fetch_reviews(client, owner, repo, number)
    except GhprsError:
        return False
    return has_approved_review(reviews)


def check_tekton_files(
    client: RestClient, owner: str, repo: str, number: int
) -> tuple[bool, list[str]]:
    """Report whether a PR changes Tekton pipeline definitions and nothing else.

    Returns ``(True, matched_files)`` only when every changed file is a
    ``.tekton/*-pull-request.yaml`` or ``.tekton/*-push.yaml`` file;
    otherwise ``(False, [])``. Fetch errors propagate.
    """
    files = fetch_pr_files(client, owner, repo, number)

    matched: list[str] = []
    others: list[str] = []
    for f in files:
        if is_tekton_pipeline_file(f.filename):
            matched.append(f.filename)
        else:
            others.append(f.filename)

    if matched and not others:
        return True, matched
    return False, []


# ---------------------------------------------------------------------------
# CI checks
# ---------------------------------------------------------------------------


def fetch_check_runs(client: RestClient, owner: str, repo: str, sha: str) -> list[CheckRun]:
    path = f"repos/{owner}/{repo}/commits/{sha}/check-runs"
    data = _expect(client.get(path), dict, path)
    return [CheckRun.from_api(node) for node in data.get("check_runs") or []]


def fetch_status_checks(client: RestClient, owner: str, repo: str, sha: str) -> list[StatusCheck]:
    path = f"repos/{owner}/{repo}/commits/{sha}/status"
    data = _expect(client.get(path), dict, path)
    return [StatusCheck.from_api(node) for node in data.get("statuses") or []]


def tally_check_runs(status: CheckStatus, runs: list[CheckRun]) -> None:
    for run in runs:
        status.total += 1
        if run.status == "completed":
            if run.conclusion == "success":
                status.passed += 1
            elif run.conclusion in ("failure", "timed_out", "action_required"):
                status.failed += 1
            elif run.conclusion == "cancelled":
                status.cancelled += 1
            elif run.conclusion in ("skipped", "neutral"):
                status.skipped += 1
        elif run.status in ("queued", "in_progress"):
            status.pending += 1


def tally_status_checks(status: CheckStatus, checks: list[StatusCheck]) -> None:
    for check in checks:
        status.total += 1
        if check.state == "success":
            status.passed += 1
        elif check.state in ("failure", "error"):
            status.failed += 1
        elif check.state == "pending":
            status.pending += 1


def get_check_status(client: RestClient, owner: str, repo: str, sha: str) -> CheckStatus:
    """Aggregate check runs and legacy commit statuses into one tally.

    The two sources are added together, not deduplicated. A source that
    fails to load is reported and contributes nothing.
    """
    status = CheckStatus()
    try:
        tally_check_runs(status, fetch_check_runs(client, owner, repo, sha))
    except GhprsError as exc:
        _stderr.print(f"[yellow]Warning:[/yellow] Could not fetch check runs: {escape(str(exc))}")
    try:
        tally_status_checks(status, fetch_status_checks(client, owner, repo, sha))
    except GhprsError as exc:
        _stderr.print(f"[yellow]Warning:[/yellow] Could not fetch status checks: {escape(str(exc))}")
    return status
