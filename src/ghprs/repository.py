"""Detect the GitHub repository of the current working directory."""
from __future__ import annotations

import re
import subprocess

# git@github.com:owner/repo.git, https://github.com/owner/repo, ssh://git@github.com/owner/repo.git
_REMOTE_RE = re.compile(r"^(?:.+@|https?://|ssh://(?:.+@)?)github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?/?$")


def parse_remote_url(url: str) -> tuple[str, str] | None:
    match = _REMOTE_RE.match(url.strip())
    if match is None:
        return None
    return match.group(1), match.group(2)


def current_repository(cwd: str | None = None) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` from the ``origin`` remote, or None outside a GitHub checkout."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (subprocess.TimeoutExpired, subprocess.SubprocessError, FileNotFoundError):
        return None
    if result.returncode != 0:
        return None
    return parse_remote_url(result.stdout)
