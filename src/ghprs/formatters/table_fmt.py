from __future__ import annotations

from dataclasses import dataclass

from ..cache import PRDetailsCache, is_blocked_with_cache, needs_rebase_with_cache
from ..classify import (
    check_tekton_files,
    get_status_icon,
    get_status_text,
    has_migration_warning,
    is_konflux_nudge,
    is_on_hold,
    is_reviewed,
)
from ..client import RestClient
from ..config import ListOptions
from ..errors import GhprsError
from ..models import PullRequest
from ..text import format_pr_link, pad, truncate

MIGRATION_MARK = "🚨"
YES = "✅"
NO = "❌"

# (header, width); TEKTON is appended for Konflux runs only.
COLUMNS = (
    ("ST", 2),
    ("PR", 6),
    ("TITLE", 41),
    ("AUTHOR", 16),
    ("BRANCH", 14),
    ("TARGET", 12),
    ("STATUS", 10),
    ("REVIEWED", 8),
    ("REBASE", 6),
    ("BLOCKED", 7),
    ("NUDGE", 5),
)
TEKTON_COLUMN = ("TEKTON", 6)


@dataclass(frozen=True)
class TableRow:
    icon: str
    link: str
    title: str
    author: str
    branch: str
    target: str
    status: str
    reviewed: str
    rebase: str
    blocked: str
    nudge: str
    tekton: str | None = None

    def cells(self) -> list[str]:
        cells = [
            self.icon,
            self.link,
            self.title,
            self.author,
            self.branch,
            self.target,
            self.status,
            self.reviewed,
            self.rebase,
            self.blocked,
            self.nudge,
        ]
        if self.tekton is not None:
            cells.append(self.tekton)
        return cells


def _columns(konflux: bool) -> list[tuple[str, int]]:
    return [*COLUMNS, TEKTON_COLUMN] if konflux else list(COLUMNS)


def build_table_rows(
    prs: list[PullRequest],
    client: RestClient,
    owner: str,
    repo: str,
    options: ListOptions,
    cache: PRDetailsCache,
) -> list[TableRow]:
    """Enrich each PR into a table row, applying the Tekton/migration filters."""
    widths = dict(_columns(True))
    rows: list[TableRow] = []
    for pr in prs:
        only_tekton = False
        if options.konflux:
            try:
                only_tekton, _ = check_tekton_files(client, owner, repo, pr.number)
            except GhprsError:
                only_tekton = False
        migration = options.konflux and has_migration_warning(pr)

        if options.tekton_only and not only_tekton:
            continue
        if options.migration_only and not migration:
            continue

        status = get_status_text(pr)
        if migration:
            status += f" {MIGRATION_MARK}"

        # Merge state is irrelevant while a PR is held, so skip the lookup.
        if is_on_hold(pr):
            rebase = blocked = "-"
        else:
            rebase = "🔄" if needs_rebase_with_cache(cache, client, owner, repo, pr) else ""
            blocked = "🚫" if is_blocked_with_cache(cache, client, owner, repo, pr) else ""

        rows.append(
            TableRow(
                icon=get_status_icon(pr),
                link=format_pr_link(owner, repo, pr.number, options.no_color),
                title=truncate(pr.title, widths["TITLE"]),
                author=truncate(pr.author, widths["AUTHOR"]),
                branch=truncate(pr.head.ref, widths["BRANCH"]),
                target=truncate(pr.base.ref, widths["TARGET"]),
                status=truncate(status, widths["STATUS"]),
                reviewed=YES if is_reviewed(client, owner, repo, pr.number, pr.labels) else NO,
                rebase=rebase,
                blocked=blocked,
                nudge="👉" if is_konflux_nudge(pr) else "",
                tekton=(YES if only_tekton else NO) if options.konflux else None,
            )
        )
    return rows


def format_legend(konflux: bool = False) -> str:
    lines = [
        "Legend:",
        "  Status: 🟢 open  🟡 draft  🔶 on hold  🔴 closed  🟣 merged",
        "  Reviewed: ✅ approved  ❌ not approved",
        "  Rebase: 🔄 needs rebase  - N/A (on hold)  (empty = up to date)",
        "  Blocked: 🚫 blocked from merging  - N/A (on hold)  (empty = not blocked)",
        "  Nudge: 👉 konflux nudge PR  (empty = not a nudge)",
    ]
    if konflux:
        lines.append("  Tekton: ✅ exclusively Tekton files  ❌ mixed/other files")
        lines.append(f"  {MIGRATION_MARK} = migration warning")
    return "\n".join(lines) + "\n"


def format_pr_table(rows: list[TableRow], konflux: bool = False) -> str:
    columns = _columns(konflux)
    lines = [
        " ".join(pad(header, width) for header, width in columns),
        " ".join("-" * width for _, width in columns),
    ]
    for row in rows:
        lines.append(" ".join(pad(cell, width) for cell, (_, width) in zip(row.cells(), columns)))
    return "\n".join(lines)
