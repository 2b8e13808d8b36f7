"""Interactive approval loop.

The session alternates between browsing (render the remaining PRs and pick
one) and reviewing (show details for one PR and read a decision) until the
user quits, input runs out or nothing approvable is left. The summary is
printed on every exit path.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import click
from rich.console import Console
from rich.markup import escape

from .cache import PRDetailsCache, is_blocked_with_cache, needs_rebase_with_cache
from .classify import (
    HOLD_LABEL,
    check_tekton_files,
    fetch_check_runs,
    fetch_pr_files,
    fetch_reviews,
    fetch_status_checks,
    get_check_status,
    has_approved_review,
    has_migration_warning,
    is_approvable,
    is_on_hold,
)
from .client import DIFF_MEDIA_TYPE, RestClient
from .config import ListOptions
from .errors import GhprsError
from .formatters import format_check_details, format_check_summary, format_file_list, get_formatter
from .models import CheckRun, PullRequest, StatusCheck
from .text import colorize_diff, format_pr_link, should_use_colors

APPROVE_BODY = "/lgtm"
HOLD_COMMAND = "/hold"
HOLD_FOLLOWUP_LABEL = "needs-ok-to-test"
SEPARATOR = "═" * 63

_stderr = Console(stderr=True)


class ApprovalResult(Enum):
    SKIP = "skip"
    APPROVE = "approve"
    HOLD = "hold"
    QUIT = "quit"
    COMMENT = "comment"


@dataclass(frozen=True)
class ApprovalConfig:
    is_konflux: bool = False
    show_files: bool = False
    show_diff: bool = False
    no_color: bool = False


@dataclass
class ApprovalSummary:
    approved: int = 0
    skipped: int = 0
    already_approved: int = 0
    held: int = 0
    commented: int = 0

    @property
    def total(self) -> int:
        return self.approved + self.skipped + self.already_approved + self.held + self.commented

    def record(self, result: ApprovalResult) -> None:
        if result is ApprovalResult.APPROVE:
            self.approved += 1
        elif result is ApprovalResult.SKIP:
            self.skipped += 1
        elif result is ApprovalResult.HOLD:
            self.held += 1
        elif result is ApprovalResult.COMMENT:
            self.commented += 1

    def format(self) -> str:
        return "\n".join(
            [
                SEPARATOR,
                "📊 Final Approval Summary:",
                f"   ✅ Approved: {self.approved}",
                f"   ❌ Skipped: {self.skipped}",
                f"   ☑️  Already approved: {self.already_approved}",
                f"   ⏸️  Put on hold: {self.held}",
                f"   💬 Commented: {self.commented}",
                f"   📊 Total processed: {self.total}",
            ]
        )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def approve_pr(client: RestClient, owner: str, repo: str, number: int) -> None:
    client.post(
        f"repos/{owner}/{repo}/pulls/{number}/reviews",
        {"body": APPROVE_BODY, "event": "APPROVE"},
    )


def add_comment(client: RestClient, owner: str, repo: str, number: int, text: str) -> None:
    client.post(f"repos/{owner}/{repo}/issues/{number}/comments", {"body": text})


def hold_pr(client: RestClient, owner: str, repo: str, number: int, comment: str = "") -> None:
    """Post ``/hold`` (with an optional note) and then add the follow-up label.

    The label is only added once the comment has been posted.
    """
    body = HOLD_COMMAND
    if comment:
        body += "\n\n" + comment
    add_comment(client, owner, repo, number, body)
    client.post(f"repos/{owner}/{repo}/issues/{number}/labels", {"labels": [HOLD_FOLLOWUP_LABEL]})


def fetch_diff(client: RestClient, owner: str, repo: str, number: int) -> str:
    return client.get_text(f"repos/{owner}/{repo}/pulls/{number}", DIFF_MEDIA_TYPE)


def _prompt(text: str) -> str:
    return click.prompt(text, default="", show_default=False, prompt_suffix="")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class ApprovalSession:
    def __init__(
        self,
        client: RestClient,
        owner: str,
        repo: str,
        prs: list[PullRequest],
        config: ApprovalConfig,
        cache: PRDetailsCache | None = None,
        ask: Callable[[str], str] | None = None,
    ) -> None:
        self.client = client
        self.owner = owner
        self.repo = repo
        self.prs = list(prs)
        self.config = config
        self.cache = cache if cache is not None else PRDetailsCache()
        self.summary = ApprovalSummary()
        self._ask = ask or _prompt
        self._processed: set[int] = set()

    def run(self) -> ApprovalSummary:
        click.echo(f"\n🎯 Interactive approval mode for {len(self.prs)} PRs")

        while True:
            pr = self._select()
            if pr is None:
                break
            click.echo(SEPARATOR)
            proceed = self._confirm_if_approved(pr)
            if proceed is None:
                click.echo("Exiting approval process.")
                break
            if not proceed:
                self._processed.add(pr.number)
                self.summary.already_approved += 1
                click.echo("")
                continue
            result = self.review_pr(pr)
            if result is ApprovalResult.QUIT:
                click.echo("Exiting approval process.")
                break
            self._processed.add(pr.number)
            self.summary.record(result)
            click.echo("")

        click.echo(self.summary.format())
        return self.summary

    def _confirm_if_approved(self, pr: PullRequest) -> bool | None:
        """False skips a PR that already has an approving review; None means quit."""
        try:
            reviews = fetch_reviews(self.client, self.owner, self.repo, pr.number)
        except GhprsError as exc:
            _stderr.print(
                f"[yellow]Warning:[/yellow] Could not check existing reviews for #{pr.number}: "
                f"{escape(str(exc))}"
            )
            return True
        if not has_approved_review(reviews):
            return True

        click.echo(f"✅ PR {self._link(pr.number)} is already approved: {pr.title}")
        answer = self._read("Do you want to continue anyway? [y/N]: ")
        if answer is None:
            return None
        if answer.strip().lower() not in ("y", "yes"):
            click.echo("Skipping already approved PR.")
            return False
        return True

    def review_pr(self, pr: PullRequest) -> ApprovalResult:
        link = self._link(pr.number)
        self._show_details(pr)

        while True:
            answer = self._read(self._decision_prompt(pr))
            if answer is None:
                return ApprovalResult.QUIT
            choice = answer.strip().lower()

            if choice in ("y", "yes"):
                return self._approve(pr)
            if choice in ("", "n", "no"):
                click.echo(f"❌ Skipped PR {link}")
                return ApprovalResult.SKIP
            if choice in ("q", "quit"):
                click.echo("Quitting approval process.")
                return ApprovalResult.QUIT

            if choice in ("h", "hold"):
                result = self._hold(pr)
            elif choice in ("m", "comment"):
                result = self._comment(pr)
            else:
                result = None
                if choice in ("f", "files"):
                    self._show_files(pr)
                elif choice in ("d", "diff"):
                    self._show_diff(pr, requested=True)
                elif choice in ("c", "checks"):
                    self._show_checks(pr)
                else:
                    click.echo(f"Invalid option '{choice}'. Please choose from the available options.")
            if result is not None:
                return result

    # -- browsing ---------------------------------------------------------

    def _select(self) -> PullRequest | None:
        while True:
            remaining = [pr for pr in self.prs if pr.number not in self._processed]
            if not remaining:
                click.echo("\n✅ All PRs have been processed!")
                return None

            click.echo(SEPARATOR)
            click.echo(self._render_table(remaining))
            click.echo(SEPARATOR)

            approvable = [pr for pr in remaining if is_approvable(pr)]
            if not approvable:
                click.echo("❌ No more PRs available for approval (remaining are closed, draft, or on hold)")
                return None

            available = ", ".join(f"#{pr.number}" for pr in approvable)
            click.echo("\n📝 Select PR to approve:")
            click.echo(f"   Enter PR number (default: {approvable[0].number} for first approvable PR)")
            click.echo("   Or press 'q' to quit")
            click.echo(f"   Available for approval: {available}")

            answer = self._read("\nPR to approve: ")
            if answer is None:
                return None
            answer = answer.strip()

            if answer.lower() in ("q", "quit"):
                click.echo("Exiting approval process.")
                return None
            if not answer:
                click.echo(f"Using default PR: #{approvable[0].number}")
                return approvable[0]

            number = answer.removeprefix("#")
            if not number.isdigit():
                click.echo(f"❌ Invalid PR number: {number}")
                click.echo("Press Enter to continue or 'q' to quit.")
                continue

            selected = next((pr for pr in approvable if pr.number == int(number)), None)
            if selected is None:
                click.echo(
                    f"❌ PR #{number} is not available for approval "
                    "(may be closed, draft, on hold, or not exist)"
                )
                click.echo(f"   Available PRs: {available}")
                click.echo("Press Enter to continue or 'q' to quit.")
                continue

            click.echo(f"Selected PR: #{selected.number}")
            return selected

    def _render_table(self, prs: list[PullRequest]) -> str:
        options = ListOptions(konflux=self.config.is_konflux, no_color=self.config.no_color)
        formatter = get_formatter(
            "table",
            client=self.client,
            owner=self.owner,
            repo=self.repo,
            options=options,
            cache=self.cache,
        )
        return formatter(prs)

    # -- reviewing --------------------------------------------------------

    def _show_details(self, pr: PullRequest) -> None:
        click.echo(f"\n🔍 Review PR {self._link(pr.number)}:")
        click.echo(f"   Title: {pr.title}")
        click.echo(f"   Author: @{pr.author}")
        click.echo(f"   Branch: {pr.head.ref} → {pr.base.ref}")

        if needs_rebase_with_cache(self.cache, self.client, self.owner, self.repo, pr):
            click.echo("   🔄 Rebase needed: PR is behind the target branch or has conflicts")
        if is_blocked_with_cache(self.cache, self.client, self.owner, self.repo, pr):
            click.echo("   🚫 Blocked: PR is blocked from merging (failed checks, missing reviews, etc.)")

        try:
            files = fetch_pr_files(self.client, self.owner, self.repo, pr.number)
        except GhprsError as exc:
            _stderr.print(f"[yellow]Warning:[/yellow] Could not fetch file list: {escape(str(exc))}")
        else:
            if self.config.show_files:
                click.echo(f"   📁 Files changed ({len(files)}):")
                if files:
                    click.echo(format_file_list(files))
            else:
                click.echo(f"   📁 Files changed: {len(files)} (press 'f' during approval to view)")

        if pr.head.sha:
            status = get_check_status(self.client, self.owner, self.repo, pr.head.sha)
            click.echo(format_check_summary(status))

        if self.config.show_diff:
            self._show_diff(pr)

        if self.config.is_konflux:
            try:
                only_tekton, matched = check_tekton_files(self.client, self.owner, self.repo, pr.number)
            except GhprsError as exc:
                _stderr.print(f"[yellow]Warning:[/yellow] Could not check Tekton files: {escape(str(exc))}")
            else:
                if only_tekton:
                    click.echo(f"   ✅ ONLY modifies Tekton files: {', '.join(matched)}")
                else:
                    click.echo("   ❌ Does NOT exclusively modify target Tekton files")
            if has_migration_warning(pr):
                click.echo("   🚨 MIGRATION WARNING: This PR contains migration notes - review carefully!")

        if is_on_hold(pr):
            click.echo(f"   ⚠️  Status: ON HOLD (has '{HOLD_LABEL}' label)")

    def _decision_prompt(self, pr: PullRequest) -> str:
        options = ["y/N/q/h/m"]
        hints = ["h=hold", "m=comment"]
        if not self.config.show_files:
            options.append("f")
            hints.append("f=show files")
        if not self.config.show_diff:
            options.append("d")
            hints.append("d=show diff")
        if pr.head.sha:
            options.append("c")
            hints.append("c=show checks")
        return f"\nApprove this PR? [{'/'.join(options)}] ({', '.join(hints)}): "

    def _approve(self, pr: PullRequest) -> ApprovalResult:
        link = self._link(pr.number)
        if has_migration_warning(pr):
            click.echo("\n🚨 ⚠️  MIGRATION WARNING DETECTED ⚠️  🚨")
            click.echo("This PR contains migration warnings which may indicate breaking changes or")
            click.echo("require special attention during deployment.\n")
            answer = self._read("Are you sure you want to approve this PR with migration warnings? [y/N]: ")
            if answer is None:
                return ApprovalResult.QUIT
            if answer.strip().lower() not in ("y", "yes"):
                click.echo(f"❌ Approval cancelled due to migration warnings. Skipping PR {link}")
                return ApprovalResult.SKIP
            click.echo("✅ Confirmed - proceeding with approval despite migration warnings.")

        click.echo(f"✅ Approving {link}: {pr.title}")
        try:
            approve_pr(self.client, self.owner, self.repo, pr.number)
        except GhprsError as exc:
            _stderr.print(f"[red]Error:[/red] Failed to approve #{pr.number}: {escape(str(exc))}")
            return ApprovalResult.SKIP
        click.echo(f"   ✓ Successfully approved {link}")
        return ApprovalResult.APPROVE

    def _hold(self, pr: PullRequest) -> ApprovalResult | None:
        comment = self._read("Enter an optional comment to add with /hold (or press Enter for none): ")
        if comment is None:
            return ApprovalResult.QUIT
        try:
            hold_pr(self.client, self.owner, self.repo, pr.number, comment.strip())
        except GhprsError as exc:
            _stderr.print(f"[red]Error:[/red] Failed to hold #{pr.number}: {escape(str(exc))}")
            return None
        click.echo(f"⏸️  Put PR {self._link(pr.number)} on hold")
        return ApprovalResult.HOLD

    def _comment(self, pr: PullRequest) -> ApprovalResult | None:
        text = self._read("Enter your comment: ")
        if text is None:
            return ApprovalResult.QUIT
        text = text.strip()
        if not text:
            click.echo("Empty comment, skipping.")
            return None
        try:
            add_comment(self.client, self.owner, self.repo, pr.number, text)
        except GhprsError as exc:
            _stderr.print(f"[red]Error:[/red] Failed to add comment to #{pr.number}: {escape(str(exc))}")
            return None
        click.echo(f"💬 Added comment to PR {self._link(pr.number)}")
        return ApprovalResult.COMMENT

    def _show_files(self, pr: PullRequest) -> None:
        if self.config.show_files:
            click.echo("\n📁 File list already shown above.")
            return
        click.echo(f"\n📁 Detailed file list for PR {self._link(pr.number)}:")
        try:
            files = fetch_pr_files(self.client, self.owner, self.repo, pr.number)
        except GhprsError as exc:
            _stderr.print(f"[red]Error:[/red] Could not fetch file list: {escape(str(exc))}")
            return
        if files:
            click.echo(format_file_list(files))
        click.echo(f"\nTotal: {len(files)} files changed")

    def _show_diff(self, pr: PullRequest, requested: bool = False) -> None:
        if requested and self.config.show_diff:
            click.echo("\n📄 Diff already shown above.")
            return
        try:
            diff = fetch_diff(self.client, self.owner, self.repo, pr.number)
        except GhprsError as exc:
            _stderr.print(f"[red]Error:[/red] Could not fetch diff: {escape(str(exc))}")
            return
        if should_use_colors(self.config.no_color):
            diff = colorize_diff(diff)
        click.echo(f"\n📄 Diff for PR {self._link(pr.number)}:")
        click.echo(SEPARATOR)
        click.echo(diff)
        click.echo(SEPARATOR)

    def _show_checks(self, pr: PullRequest) -> None:
        if not pr.head.sha:
            click.echo("   ❌ No commit SHA available for check status")
            return
        click.echo(f"\n🔍 Detailed check status for PR {self._link(pr.number)}:")

        runs: list[CheckRun] = []
        statuses: list[StatusCheck] = []
        try:
            runs = fetch_check_runs(self.client, self.owner, self.repo, pr.head.sha)
        except GhprsError as exc:
            _stderr.print(f"[yellow]Warning:[/yellow] Could not fetch check runs: {escape(str(exc))}")
        try:
            statuses = fetch_status_checks(self.client, self.owner, self.repo, pr.head.sha)
        except GhprsError as exc:
            _stderr.print(f"[yellow]Warning:[/yellow] Could not fetch status checks: {escape(str(exc))}")

        if not runs and not statuses:
            click.echo("   No checks found")
        else:
            click.echo(format_check_details(runs, statuses))
        click.echo("")

    # -- helpers ----------------------------------------------------------

    def _read(self, prompt: str) -> str | None:
        """Read one line; ``None`` means input ended or was interrupted."""
        try:
            return self._ask(prompt)
        except (EOFError, KeyboardInterrupt, click.Abort):
            click.echo("\n(EOF - exiting approval process)")
            return None

    def _link(self, number: int) -> str:
        return format_pr_link(self.owner, self.repo, number, self.config.no_color)
