"""Terminal text layout: escape stripping, display width, truncation, padding.

Widths use a small fixed table of wide code points rather than the full
East Asian Width tables, so column layout stays identical across platforms.
"""
from __future__ import annotations

import os
import sys

ESC = "\x1b"
BEL = "\x07"
ELLIPSIS = "..."

_WIDE_RANGES = (
    (0x1F600, 0x1F64F),  # emoticons
    (0x1F300, 0x1F5FF),  # misc symbols and pictographs
    (0x1F680, 0x1F6FF),  # transport and map
    (0x1F7E0, 0x1F7EB),  # coloured circles and squares
    (0x1F1E0, 0x1F1FF),  # regional indicators
    (0x2600, 0x26FF),  # misc symbols
    (0x2700, 0x27BF),  # dingbats
    (0x200D, 0x200D),  # zero width joiner
    (0xFE0F, 0xFE0F),  # variation selector-16
)

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_CYAN = "\033[36m"
_WHITE = "\033[37m"
_DIM_GRAY = "\033[90m"

# Checked in order; the first matching prefix wins.
_DIFF_STYLES = (
    ("diff --git", _BOLD + _WHITE),
    ("index ", _DIM_GRAY),
    ("--- ", _RED),
    ("+++ ", _GREEN),
    ("@@", _CYAN),
    ("+", _GREEN),
    ("-", _RED),
    ("new file mode", _GREEN),
    ("deleted file mode", _RED),
    ("rename from", _YELLOW),
    ("rename to", _YELLOW),
    ("similarity index", _DIM_GRAY),
    ("dissimilarity index", _DIM_GRAY),
)


def _is_final_byte(ch: str) -> bool:
    return 0x40 <= ord(ch) <= 0x7E


def strip_escape_sequences(s: str) -> str:
    """Remove CSI (``ESC [ ... final``) and OSC (``ESC ] ... BEL|ESC \\``) sequences.

    Unterminated sequences are consumed up to the end of the string. A lone
    trailing ESC is kept as-is.
    """
    out: list[str] = []
    i = 0
    n = len(s)
    while i < n:
        if s[i] != ESC or i + 1 >= n:
            out.append(s[i])
            i += 1
            continue

        i += 1
        if s[i] == "]":
            i += 1
            while i < n:
                if s[i] == BEL:
                    i += 1
                    break
                if s[i] == ESC and i + 1 < n and s[i + 1] == "\\":
                    i += 2
                    break
                i += 1
        else:
            if s[i] == "[":
                i += 1
            while i < n:
                if _is_final_byte(s[i]):
                    i += 1
                    break
                i += 1
    return "".join(out)


def char_width(ch: str) -> int:
    cp = ord(ch)
    for low, high in _WIDE_RANGES:
        if low <= cp <= high:
            return 2
    if cp < 0x20:
        return 0
    return 1


def display_width(s: str) -> int:
    return sum(char_width(ch) for ch in strip_escape_sequences(s))


def truncate(s: str, max_width: int) -> str:
    """Shorten ``s`` to at most ``max_width`` columns, ending in ``...``.

    Widths of three or less leave no room for the ellipsis, so the string is
    cut to its first ``max_width`` code points instead.
    """
    if display_width(s) <= max_width:
        return s
    if max_width <= 0:
        return ""
    if max_width <= 3:
        head = s[:max_width]
        while head and display_width(head) > max_width:
            head = head[:-1]
        return head

    target = max_width - len(ELLIPSIS)
    width = 0
    for i, ch in enumerate(s):
        w = char_width(ch)
        if width + w > target:
            return s[:i] + ELLIPSIS
        width += w
    return s


def pad(s: str, width: int) -> str:
    current = display_width(s)
    if current >= width:
        return s
    return s + " " * (width - current)


def colorize_diff(diff: str) -> str:
    lines = []
    for line in diff.split("\n"):
        for prefix, style in _DIFF_STYLES:
            if line.startswith(prefix):
                line = f"{style}{line}{_RESET}"
                break
        lines.append(line)
    return "\n".join(lines)


def should_use_colors(no_color: bool = False) -> bool:
    if no_color or os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def format_pr_link(owner: str, repo: str, number: int, no_color: bool = False) -> str:
    """Render ``#number`` as an OSC-8 hyperlink when the terminal supports it."""
    if not should_use_colors(no_color):
        return f"#{number}"
    url = f"https://github.com/{owner}/{repo}/pull/{number}"
    return f"{ESC}]8;;{url}{ESC}\\#{number}{ESC}]8;;{ESC}\\"
