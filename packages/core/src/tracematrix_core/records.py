"""Raw tracker records, parsed at the collaborator boundary.

Each record type mirrors the subset of the GitHub REST payload the extractor
reads. Records form a closed union discriminated by ``kind``; nothing past
the extractor sees them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from tracematrix_core.models import RequirementKind


def parse_iso_datetime(value: str | None, default: datetime | None = None) -> datetime | None:
    """Parse an ISO datetime string, handling the Z suffix."""
    if not value:
        return default
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return default


def _lenient_datetime(value: Any) -> Any:
    # Malformed timestamps degrade to None instead of failing the record
    if isinstance(value, str):
        return parse_iso_datetime(value)
    return value


Timestamp = Annotated[datetime | None, BeforeValidator(_lenient_datetime)]


def _label_names(raw: Any) -> list[str]:
    names = []
    for label in raw or []:
        if isinstance(label, dict):
            name = label.get("name")
        else:
            name = label
        if isinstance(name, str) and name:
            names.append(name)
    return names


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class IssueRecord(_Record):
    """An issue (work item)."""

    kind: Literal["issue"] = "issue"
    number: int
    title: str
    body: str | None = None
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)
    milestone_title: str | None = None
    milestone_number: int | None = None
    state: str = "open"
    created_at: Timestamp = None
    updated_at: Timestamp = None
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "IssueRecord":
        """Parse a GitHub issue payload."""
        milestone = data.get("milestone") or {}
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body"),
            labels=_label_names(data.get("labels")),
            assignees=[a["login"] for a in data.get("assignees") or [] if a.get("login")],
            milestone_title=milestone.get("title"),
            milestone_number=milestone.get("number"),
            state=data.get("state") or "open",
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            url=data.get("html_url") or data.get("url"),
        )


class MilestoneRecord(_Record):
    """A milestone (strategic goal)."""

    kind: Literal["milestone"] = "milestone"
    number: int
    title: str
    description: str | None = None
    state: str = "open"
    due_on: Timestamp = None
    created_at: Timestamp = None
    updated_at: Timestamp = None
    open_issues: int = 0
    closed_issues: int = 0
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "MilestoneRecord":
        """Parse a GitHub milestone payload."""
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            description=data.get("description"),
            state=data.get("state") or "open",
            due_on=data.get("due_on"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            open_issues=data.get("open_issues") or 0,
            closed_issues=data.get("closed_issues") or 0,
            url=data.get("html_url") or data.get("url"),
        )


class ImplementationRecord(_Record):
    """A pull request (implementation artifact)."""

    kind: Literal["implementation"] = "implementation"
    number: int
    title: str
    body: str | None = None
    state: str = "open"
    author: str | None = None
    labels: list[str] = Field(default_factory=list)
    created_at: Timestamp = None
    updated_at: Timestamp = None
    merged_at: Timestamp = None
    url: str | None = None
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ImplementationRecord":
        """Parse a GitHub pull request payload."""
        user = data.get("user") or {}
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body"),
            state=data.get("state") or "open",
            author=user.get("login"),
            labels=_label_names(data.get("labels")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            merged_at=data.get("merged_at"),
            url=data.get("html_url") or data.get("url"),
            changed_files=data.get("changed_files") or 0,
            additions=data.get("additions") or 0,
            deletions=data.get("deletions") or 0,
        )


class CategoryRecord(_Record):
    """A label (categorical tag)."""

    kind: Literal["category"] = "category"
    name: str
    description: str | None = None
    color: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CategoryRecord":
        """Parse a GitHub label payload."""
        return cls(
            name=data["name"],
            description=data.get("description"),
            color=data.get("color"),
        )


TrackerRecord = Union[IssueRecord, MilestoneRecord, ImplementationRecord, CategoryRecord]


@dataclass(frozen=True)
class TrackerSnapshot:
    """All raw records fetched for a single matrix computation."""

    issues: tuple[IssueRecord, ...] = ()
    milestones: tuple[MilestoneRecord, ...] = ()
    implementations: tuple[ImplementationRecord, ...] = ()
    categories: tuple[CategoryRecord, ...] = ()
    repository: str = ""
    fetched_kinds: frozenset[RequirementKind] = field(default_factory=frozenset)

    def count(self, kind: RequirementKind) -> int:
        """Number of raw records of ``kind``."""
        return len(self.records(kind))

    def records(self, kind: RequirementKind) -> tuple[Any, ...]:
        """Raw records of ``kind``."""
        return {
            RequirementKind.ISSUE: self.issues,
            RequirementKind.MILESTONE: self.milestones,
            RequirementKind.IMPLEMENTATION: self.implementations,
            RequirementKind.CATEGORY: self.categories,
        }[RequirementKind(kind)]
