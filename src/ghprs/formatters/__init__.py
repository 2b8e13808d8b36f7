from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..cache import PRDetailsCache
from ..config import ListOptions
from ..models import PullRequest
from .detail_fmt import format_check_details, format_check_summary, format_file_list
from .json_fmt import format_json
from .table_fmt import build_table_rows, format_legend, format_pr_table


def get_formatter(fmt: str, **kwargs: Any) -> Callable[[list[PullRequest]], str]:
    if fmt == "json":
        return format_json
    if fmt == "table":
        client = kwargs["client"]
        owner = kwargs.get("owner", "")
        repo = kwargs.get("repo", "")
        options = kwargs.get("options") or ListOptions()
        cache = kwargs.get("cache")
        if cache is None:
            cache = PRDetailsCache()

        def _table(prs: list[PullRequest]) -> str:
            rows = build_table_rows(prs, client, owner, repo, options, cache)
            return format_legend(options.konflux) + "\n" + format_pr_table(rows, options.konflux)

        return _table
    raise ValueError(f"Unknown format: {fmt!r}")


__all__ = [
    "build_table_rows",
    "format_check_details",
    "format_check_summary",
    "format_file_list",
    "format_json",
    "format_legend",
    "format_pr_table",
    "get_formatter",
]
