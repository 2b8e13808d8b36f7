from __future__ import annotations

from .classify import check_tekton_files, has_migration_warning
from .client import RestClient
from .errors import GhprsError
from .models import PullRequest

SORT_KEYS = ("newest", "oldest", "updated", "number", "priority")


def sort_pull_requests(prs: list[PullRequest], sort_by: str) -> list[PullRequest]:
    """Return ``prs`` reordered by ``sort_by``.

    Timestamps are ISO-8601 strings, so they compare correctly as text.
    ``newest`` and unknown keys keep the API order, which is already newest
    first.
    """
    if sort_by == "oldest":
        return sorted(prs, key=lambda pr: pr.created_at)
    if sort_by == "updated":
        return sorted(prs, key=lambda pr: pr.updated_at, reverse=True)
    if sort_by == "number":
        return sorted(prs, key=lambda pr: pr.number)
    if sort_by == "priority":
        by_date = sorted(prs, key=lambda pr: pr.created_at, reverse=True)
        return sorted(by_date, key=lambda pr: not has_migration_warning(pr))
    return list(prs)


def sort_pull_requests_with_context(
    prs: list[PullRequest],
    client: RestClient,
    owner: str,
    repo: str,
    sort_by: str,
) -> list[PullRequest]:
    """Priority sort that also ranks Tekton-only PRs ahead of the rest.

    Order is migration warnings, then PRs touching only Tekton pipeline
    files, then newest first. Costs one file-list request per PR, so it
    only runs for ``priority``; other keys return ``prs`` unchanged.
    """
    if sort_by != "priority":
        return list(prs)

    tekton_only: dict[int, bool] = {}
    for pr in prs:
        try:
            tekton_only[pr.number], _ = check_tekton_files(client, owner, repo, pr.number)
        except GhprsError:
            tekton_only[pr.number] = False

    by_date = sorted(prs, key=lambda pr: pr.created_at, reverse=True)
    return sorted(
        by_date,
        key=lambda pr: (not has_migration_warning(pr), not tekton_only[pr.number]),
    )
