from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# mergeable_state values meaning GitHub has not computed the merge state yet
UNCOMPUTED_MERGE_STATES = frozenset({"", "unknown"})


@dataclass(frozen=True)
class Branch:
    ref: str = ""
    sha: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any] | None) -> Branch:
        node = node or {}
        return cls(ref=node.get("ref") or "", sha=node.get("sha") or "")


@dataclass(frozen=True)
class PullRequest:
    number: int = 0
    title: str = ""
    body: str = ""
    state: str = ""
    draft: bool = False
    author: str = ""
    head: Branch = field(default_factory=Branch)
    base: Branch = field(default_factory=Branch)
    created_at: str = ""
    updated_at: str = ""
    html_url: str = ""
    mergeable_state: str = ""
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> PullRequest:
        user = node.get("user") or {}
        return cls(
            number=node.get("number") or 0,
            title=node.get("title") or "",
            body=node.get("body") or "",
            state=node.get("state") or "",
            draft=bool(node.get("draft")),
            author=user.get("login") or "",
            head=Branch.from_api(node.get("head")),
            base=Branch.from_api(node.get("base")),
            created_at=node.get("created_at") or "",
            updated_at=node.get("updated_at") or "",
            html_url=node.get("html_url") or "",
            mergeable_state=node.get("mergeable_state") or "",
            labels=[lbl["name"] for lbl in node.get("labels") or [] if lbl.get("name")],
        )

    @property
    def merge_state_known(self) -> bool:
        return self.mergeable_state not in UNCOMPUTED_MERGE_STATES


@dataclass(frozen=True)
class PRFile:
    filename: str
    status: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> PRFile:
        return cls(filename=node.get("filename") or "", status=node.get("status") or "")


@dataclass(frozen=True)
class Review:
    state: str
    author: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> Review:
        user = node.get("user") or {}
        return cls(state=node.get("state") or "", author=user.get("login") or "")


@dataclass(frozen=True)
class CheckRun:
    name: str
    status: str
    conclusion: str = ""
    html_url: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> CheckRun:
        return cls(
            name=node.get("name") or "",
            status=node.get("status") or "",
            conclusion=node.get("conclusion") or "",
            html_url=node.get("html_url") or "",
        )


@dataclass(frozen=True)
class StatusCheck:
    state: str
    context: str = ""
    description: str = ""
    target_url: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> StatusCheck:
        return cls(
            state=node.get("state") or "",
            context=node.get("context") or "",
            description=node.get("description") or "",
            target_url=node.get("target_url") or "",
        )


@dataclass
class CheckStatus:
    passed: int = 0
    failed: int = 0
    pending: int = 0
    cancelled: int = 0
    skipped: int = 0
    total: int = 0
