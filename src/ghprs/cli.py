from __future__ import annotations

import os
import sys
from collections.abc import Callable
from typing import Any, NoReturn

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .approval import ApprovalConfig, ApprovalSession
from .cache import PRDetailsCache
from .classify import fetch_pull_requests
from .client import GitHubClient
from .config import (
    DEFAULT_LIMIT,
    DEFAULT_STATE,
    STATES,
    Config,
    ListOptions,
    config_path,
    is_valid_repo_spec,
    load_config,
    save_config,
)
from .errors import ConfigError, GhprsError
from .formatters import get_formatter
from .repository import current_repository
from .sorting import SORT_KEYS, sort_pull_requests, sort_pull_requests_with_context

KONFLUX_AUTHOR = "red-hat-konflux[bot]"

_stderr = Console(stderr=True)


load_dotenv()


def _fail(message: str) -> NoReturn:
    _stderr.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def _token() -> str | None:
    return os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN")


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """ghprs: triage and approve GitHub pull requests from the terminal."""
    if ctx.invoked_subcommand is None:
        click.echo("Welcome to ghprs!")
        click.echo("Use 'ghprs --help' to see available commands.")


def _list_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``list`` and ``konflux``."""
    options = [
        click.argument("repository", metavar="[OWNER/REPO]", required=False),
        click.option(
            "--state",
            "-s",
            type=click.Choice(STATES),
            default=None,
            help=f"Filter PRs by state (default from config, else {DEFAULT_STATE}).",
        ),
        click.option(
            "--limit",
            "-l",
            type=click.IntRange(min=1),
            default=None,
            help=f"Maximum number of PRs to fetch (default from config, else {DEFAULT_LIMIT}).",
        ),
        click.option(
            "--current",
            "-c",
            is_flag=True,
            help="Use the repository of the current directory, ignoring configured repositories.",
        ),
        click.option(
            "--sort-by",
            type=click.Choice(SORT_KEYS),
            default=None,
            help="Sort order; priority puts migration warnings first.",
        ),
        click.option("--approve", "-a", is_flag=True, help="Interactively approve PRs."),
        click.option("--show-files", "-f", is_flag=True, help="Show the changed file list while approving."),
        click.option("--show-diff", "-d", is_flag=True, help="Show the diff while approving."),
        click.option("--no-color", is_flag=True, help="Disable colours and hyperlinks."),
        click.option(
            "--format",
            "output_format",
            type=click.Choice(["table", "json"]),
            default="table",
            show_default=True,
            help="Output format.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command("list")
@_list_options
def list_cmd(repository: str | None, **kwargs: Any) -> None:
    """List pull requests for OWNER/REPO.

    Without OWNER/REPO the configured repositories are used, falling back to
    the repository of the current directory.
    """
    _list_pull_requests(repository, author=None, konflux=False, **kwargs)


@cli.command()
@_list_options
@click.option("--tekton-only", "-t", is_flag=True, help="Only PRs that exclusively modify Tekton pipelines.")
@click.option("--migration-only", "-m", is_flag=True, help="Only PRs with migration warnings.")
def konflux(repository: str | None, **kwargs: Any) -> None:
    """List Konflux pull requests (authored by red-hat-konflux[bot])."""
    _list_pull_requests(repository, author=KONFLUX_AUTHOR, konflux=True, **kwargs)


def _list_pull_requests(
    repository: str | None,
    *,
    author: str | None,
    konflux: bool,
    state: str | None,
    limit: int | None,
    current: bool,
    sort_by: str | None,
    approve: bool,
    show_files: bool,
    show_diff: bool,
    no_color: bool,
    output_format: str,
    tekton_only: bool = False,
    migration_only: bool = False,
) -> None:
    try:
        config = load_config()
    except ConfigError as exc:
        _stderr.print(f"[yellow]Warning:[/yellow] Could not load config: {escape(str(exc))}")
        config = Config()

    options = ListOptions(
        state=state or config.state,
        limit=limit or config.limit,
        sort_by=sort_by or "",
        approve=approve,
        current=current,
        show_files=show_files,
        show_diff=show_diff,
        no_color=no_color,
        tekton_only=tekton_only,
        migration_only=migration_only,
        konflux=konflux,
        output_format=output_format,
    )

    token = _token()
    if not token:
        _fail("GH_TOKEN or GITHUB_TOKEN environment variable is not set.")

    repositories = _resolve_repositories(repository, config, options)
    if not repositories:
        click.echo("No repository selected. Exiting.")
        return

    failed = False
    with GitHubClient(token) as client:
        for i, spec in enumerate(repositories):
            if len(repositories) > 1:
                if i > 0:
                    click.echo()
                click.echo(f"=== {spec} ===")
            if not is_valid_repo_spec(spec):
                _stderr.print(
                    f"[yellow]Warning:[/yellow] Invalid repository format {escape(spec)!r}, skipping. "
                    "Must be 'owner/repo'."
                )
                continue
            owner, name = spec.split("/")
            try:
                _show_repository(client, owner, name, options, author, single=len(repositories) == 1)
            except GhprsError as exc:
                _stderr.print(
                    f"[red]Error:[/red] Failed to fetch pull requests for {escape(spec)}: {escape(str(exc))}"
                )
                failed = True

    if failed:
        sys.exit(1)


def _resolve_repositories(repository: str | None, config: Config, options: ListOptions) -> list[str]:
    if repository:
        if not is_valid_repo_spec(repository):
            raise click.BadParameter(
                f"{repository!r} is not a valid OWNER/REPO format.",
                param_hint="OWNER/REPO",
            )
        return [repository]

    if options.current:
        detected = current_repository()
        if detected is None:
            _fail("Could not detect current repository. Make sure you're in a git repository.")
        return ["/".join(detected)]

    configured = config.get_repositories(options.konflux)
    if len(configured) > 1:
        return _prompt_for_repositories(configured)
    if configured:
        return configured

    detected = current_repository()
    if detected is not None:
        return ["/".join(detected)]

    add_cmd = "ghprs config add-repo --konflux" if options.konflux else "ghprs config add-repo"
    _fail(
        "No repositories specified and none configured. Pass OWNER/REPO, "
        f"configure one with '{add_cmd} owner/repo', or run from a git repository."
    )


def _prompt_for_repositories(repositories: list[str]) -> list[str]:
    """Ask which configured repository to list; empty means cancelled."""
    count = len(repositories)
    click.echo("Multiple repositories configured:")
    for i, repo in enumerate(repositories, start=1):
        click.echo(f"  {i}. {repo}")
    click.echo(f"  {count + 1}. All repositories")
    click.echo("  0. Cancel")

    while True:
        try:
            choice = click.prompt(
                f"\nSelect repository (1-{count}, {count + 1} for all, 0 to cancel)",
                type=int,
            )
        except click.Abort:
            click.echo()
            return []
        if choice == 0:
            return []
        if 1 <= choice <= count:
            return [repositories[choice - 1]]
        if choice == count + 1:
            return list(repositories)
        click.echo(f"Invalid choice {choice}. Please select a number between 0 and {count + 1}.")


def _show_repository(
    client: GitHubClient,
    owner: str,
    repo: str,
    options: ListOptions,
    author: str | None,
    single: bool,
) -> None:
    spec = f"{owner}/{repo}"
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=_stderr,
        transient=True,
    ) as progress:
        progress.add_task(f"Fetching PRs from {spec}…", total=None)
        prs = fetch_pull_requests(client, owner, repo, options.state, options.limit)

    if author:
        prs = [pr for pr in prs if pr.author == author]

    if options.sort_by:
        prs = sort_pull_requests(prs, options.sort_by)
        if options.konflux and options.sort_by == "priority":
            prs = sort_pull_requests_with_context(prs, client, owner, repo, options.sort_by)

    if not prs:
        if options.konflux:
            click.echo(f"No Konflux pull requests found for {spec}")
        else:
            click.echo(f"No {options.state} pull requests found for {spec}")
        return

    if options.output_format == "json" and not options.approve:
        click.echo(get_formatter("json")(prs))
        return

    if single:
        kind = "Konflux pull requests" if options.konflux else "Pull requests"
        click.echo(f"{kind} for {spec}:\n")

    cache = PRDetailsCache()
    if options.approve:
        approval_config = ApprovalConfig(
            is_konflux=options.konflux,
            show_files=options.show_files,
            show_diff=options.show_diff,
            no_color=options.no_color,
        )
        ApprovalSession(client, owner, repo, prs, approval_config, cache).run()
        return

    formatter = get_formatter("table", client=client, owner=owner, repo=repo, options=options, cache=cache)
    click.echo(formatter(prs))


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage the ghprs configuration file."""


def _load_or_fail() -> Config:
    try:
        return load_config()
    except ConfigError as exc:
        _fail(str(exc))


def _save_or_fail(cfg: Config) -> None:
    try:
        save_config(cfg)
    except ConfigError as exc:
        _fail(str(exc))


def _print_repositories(heading: str, repositories: list[str]) -> None:
    if not repositories:
        click.echo(f"  {heading}: (none)")
        return
    click.echo(f"  {heading}:")
    for repo in repositories:
        click.echo(f"    - {repo}")


@config.command("show")
def config_show() -> None:
    """Show the current configuration."""
    cfg = _load_or_fail()
    click.echo(f"Configuration file: {config_path()}\n")
    click.echo("Current configuration:")
    click.echo(f"  Default State: {cfg.state}")
    click.echo(f"  Default Limit: {cfg.limit}")
    _print_repositories("Default Repositories", cfg.repositories)
    _print_repositories("Konflux Repositories", cfg.konflux_repositories)


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file.")
def config_init(force: bool) -> None:
    """Create a configuration file with default settings."""
    path = config_path()
    if path.exists() and not force:
        _fail(f"Configuration file already exists at {path} (use --force to overwrite).")
    cfg = Config()
    _save_or_fail(cfg)
    click.echo(f"Configuration file created at: {path}")
    click.echo("\nDefault configuration:")
    click.echo(f"  State: {cfg.state}")
    click.echo(f"  Limit: {cfg.limit}")
    click.echo("  Repositories: (none)")
    click.echo("\nEdit the file to add your default repositories and customize settings.")


@config.command("add-repo")
@click.argument("repository", metavar="OWNER/REPO")
@click.option("--konflux", is_flag=True, help="Add to the Konflux repository list.")
def config_add_repo(repository: str, konflux: bool) -> None:
    """Add a repository to the default (or Konflux) list."""
    if not is_valid_repo_spec(repository):
        _fail("Repository must be in the format 'owner/repo'")
    cfg = _load_or_fail()
    target = cfg.konflux_repositories if konflux else cfg.repositories
    if repository in target:
        click.echo(f"Repository {repository} is already in the configuration")
        return
    target.append(repository)
    _save_or_fail(cfg)
    click.echo(f"Added repository {repository} to configuration")


@config.command("remove-repo")
@click.argument("repository", metavar="OWNER/REPO")
@click.option("--konflux", is_flag=True, help="Remove from the Konflux repository list.")
def config_remove_repo(repository: str, konflux: bool) -> None:
    """Remove a repository from the default (or Konflux) list."""
    cfg = _load_or_fail()
    target = cfg.konflux_repositories if konflux else cfg.repositories
    if repository not in target:
        _fail(f"Repository {repository} not found in configuration")
    target.remove(repository)
    _save_or_fail(cfg)
    click.echo(f"Removed repository {repository} from configuration")


@config.command("set")
@click.argument("key", type=click.Choice(["state", "limit"]))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a default value (state or limit)."""
    cfg = _load_or_fail()
    if key == "state":
        if value not in STATES:
            _fail(f"State must be one of: {', '.join(STATES)}")
        cfg.state = value
    else:
        if not value.isdigit():
            _fail("Limit must be a number")
        if int(value) <= 0:
            _fail("Limit must be greater than 0")
        cfg.limit = int(value)
    _save_or_fail(cfg)
    click.echo(f"Set {key} = {value}")


@cli.command()
def version() -> None:
    """Print the ghprs version."""
    click.echo(f"ghprs v{__version__}")


