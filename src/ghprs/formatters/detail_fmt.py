from __future__ import annotations

from ..models import CheckRun, CheckStatus, PRFile, StatusCheck

_FILE_STATUS = {
    "added": ("🟢", "+"),
    "modified": ("🟡", "~"),
    "removed": ("🔴", "-"),
    "renamed": ("🔵", "→"),
}


def format_file_list(files: list[PRFile]) -> str:
    lines = []
    for f in files:
        icon, marker = _FILE_STATUS.get(f.status, ("⚪", "?"))
        lines.append(f"      {icon} {marker} {f.filename}")
    return "\n".join(lines)


def overall_check_icon(status: CheckStatus) -> str:
    if status.failed:
        return "❌"
    if status.pending:
        return "🟡"
    if status.passed:
        return "✅"
    return "⚪"


def format_check_summary(status: CheckStatus) -> str:
    if status.total == 0:
        return "   ✅ No checks configured"

    parts = []
    if status.passed:
        parts.append(f"✅ {status.passed} passed")
    if status.failed:
        parts.append(f"❌ {status.failed} failed")
    if status.pending:
        parts.append(f"🟡 {status.pending} pending")
    if status.cancelled:
        parts.append(f"⚫ {status.cancelled} cancelled")
    if status.skipped:
        parts.append(f"⚪ {status.skipped} skipped")

    return (
        f"   {overall_check_icon(status)} Checks ({status.total} total): "
        f"{', '.join(parts)} (press 'c' during approval to view details)"
    )


def _describe_check_run(run: CheckRun) -> tuple[str, str]:
    if run.status == "completed":
        if run.conclusion == "success":
            return "✅", "passed"
        if run.conclusion in ("failure", "timed_out", "action_required"):
            return "❌", f"failed ({run.conclusion})"
        if run.conclusion == "cancelled":
            return "⚫", "cancelled"
        if run.conclusion in ("skipped", "neutral"):
            return "⚪", f"skipped ({run.conclusion})"
        return "❓", run.conclusion
    if run.status == "queued":
        return "🟡", "queued"
    if run.status == "in_progress":
        return "🟡", "running"
    return "❓", run.status


_STATUS_CHECK_ICONS = {"success": "✅", "failure": "❌", "error": "❌", "pending": "🟡"}


def format_check_details(runs: list[CheckRun], statuses: list[StatusCheck]) -> str:
    lines: list[str] = []
    if runs:
        lines.append("")
        lines.append("📋 Check Runs:")
        for run in runs:
            icon, text = _describe_check_run(run)
            lines.append(f"   {icon} {run.name}: {text}")
    if statuses:
        lines.append("")
        lines.append("📋 Status Checks:")
        for check in statuses:
            icon = _STATUS_CHECK_ICONS.get(check.state, "❓")
            lines.append(f"   {icon} {check.context}: {check.description or check.state}")
    return "\n".join(lines)
