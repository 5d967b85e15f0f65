"""Source extraction: raw tracker records -> normalized requirements."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

import structlog

from tracematrix_core.classifiers import (
    assess_business_value,
    assess_change_complexity,
    assess_complexity,
    classify_category,
    classify_priority,
    extract_acceptance_criteria,
    extract_dependencies,
    extract_linked_references,
    extract_test_references,
    is_category_label,
)
from tracematrix_core.models import (
    PRIORITY_ORDER,
    MilestoneProgress,
    Priority,
    Requirement,
    RequirementKind,
    RequirementStatus,
    TraceabilityLevel,
    percentage,
    requirement_id,
)
from tracematrix_core.records import (
    CategoryRecord,
    ImplementationRecord,
    IssueRecord,
    MilestoneRecord,
    TrackerRecord,
    TrackerSnapshot,
)

logger = structlog.get_logger()

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class RequirementFilters:
    """Narrows the issues that become requirements.

    An empty tuple disables the corresponding filter.
    """

    labels: tuple[str, ...] = ()
    milestones: tuple[str, ...] = ()

    def accepts(self, issue: IssueRecord) -> bool:
        if self.labels and not any(label in self.labels for label in issue.labels):
            return False
        if self.milestones and issue.milestone_title not in self.milestones:
            return False
        return True


def _status(state: str | None) -> RequirementStatus:
    return RequirementStatus.OPEN if (state or "open") == "open" else RequirementStatus.CLOSED


def issue_to_requirement(issue: IssueRecord) -> Requirement:
    """Normalize an issue into a detailed requirement."""
    description = issue.body or ""
    return Requirement(
        id=requirement_id(RequirementKind.ISSUE, issue.number),
        kind=RequirementKind.ISSUE,
        title=issue.title,
        description=description,
        priority=classify_priority(issue.labels),
        status=_status(issue.state),
        labels=tuple(issue.labels),
        assignees=tuple(issue.assignees),
        milestone_ref=issue.milestone_title,
        created_at=issue.created_at,
        updated_at=issue.updated_at,
        source_number=issue.number,
        category=classify_category(issue.title, description, issue.labels),
        business_value=assess_business_value(issue.title, description, issue.labels),
        technical_complexity=assess_complexity(issue.title, description, issue.labels),
        traceability_level=TraceabilityLevel.DETAILED,
        dependencies=tuple(extract_dependencies(description)),
        url=issue.url,
        acceptance_criteria=tuple(extract_acceptance_criteria(description)),
        test_references=tuple(extract_test_references(description)),
    )


def milestone_to_requirement(milestone: MilestoneRecord) -> Requirement:
    """Normalize a milestone into a strategic requirement."""
    total = milestone.open_issues + milestone.closed_issues
    return Requirement(
        id=requirement_id(RequirementKind.MILESTONE, milestone.number),
        kind=RequirementKind.MILESTONE,
        title=milestone.title,
        description=milestone.description or "",
        # Milestones are high-level goals
        priority=Priority.HIGH,
        status=_status(milestone.state),
        created_at=milestone.created_at,
        updated_at=milestone.updated_at,
        source_number=milestone.number,
        category="strategic",
        business_value="high",
        technical_complexity="variable",
        traceability_level=TraceabilityLevel.STRATEGIC,
        url=milestone.url,
        due_on=milestone.due_on,
        progress=MilestoneProgress(
            total_issues=total,
            completed_issues=milestone.closed_issues,
            percentage=percentage(milestone.closed_issues, total),
        ),
    )


def implementation_to_requirement(pr: ImplementationRecord) -> Requirement:
    """Normalize a pull request into an implementation requirement."""
    return Requirement(
        id=requirement_id(RequirementKind.IMPLEMENTATION, pr.number),
        kind=RequirementKind.IMPLEMENTATION,
        title=f"Implementation: {pr.title}",
        description=pr.body or "",
        priority=classify_priority(pr.labels),
        status=_status(pr.state),
        labels=tuple(pr.labels),
        assignees=(pr.author,) if pr.author else (),
        created_at=pr.created_at,
        updated_at=pr.updated_at,
        source_number=pr.number,
        category="implementation",
        business_value="implementation",
        technical_complexity=assess_change_complexity(
            pr.changed_files, pr.additions, pr.deletions
        ),
        traceability_level=TraceabilityLevel.IMPLEMENTATION,
        dependencies=tuple(extract_linked_references(pr.body)),
        url=pr.url,
        merged_at=pr.merged_at,
    )


def category_to_requirement(label: CategoryRecord, position: int) -> Requirement:
    """Normalize a category label; ``position`` is its 1-based list index."""
    return Requirement(
        id=requirement_id(RequirementKind.CATEGORY, position),
        kind=RequirementKind.CATEGORY,
        title=f"{label.name} Category",
        description=label.description or f"All requirements tagged with {label.name}",
        priority=Priority.MEDIUM,
        status=RequirementStatus.ACTIVE,
        labels=(label.name,),
        source_number=position,
        category="organizational",
        business_value="organizational",
        technical_complexity="none",
        traceability_level=TraceabilityLevel.CATEGORICAL,
        color=f"#{label.color}" if label.color else None,
    )


def normalize_record(record: TrackerRecord, position: int = 0) -> Requirement:
    """Dispatch a raw record to its normalizer."""
    if isinstance(record, IssueRecord):
        return issue_to_requirement(record)
    if isinstance(record, MilestoneRecord):
        return milestone_to_requirement(record)
    if isinstance(record, ImplementationRecord):
        return implementation_to_requirement(record)
    return category_to_requirement(record, position)


def _sort_key(requirement: Requirement) -> tuple[int, datetime]:
    created = requirement.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (PRIORITY_ORDER[requirement.priority], created)


def sort_requirements(requirements: Iterable[Requirement]) -> list[Requirement]:
    """Order by priority (critical first), then most recently created first."""
    return sorted(requirements, key=_sort_key, reverse=True)


def extract_requirements(
    snapshot: TrackerSnapshot,
    kinds: Iterable[RequirementKind | str],
    filters: RequirementFilters | None = None,
) -> list[Requirement]:
    """Extract requirements of the selected kinds from a snapshot.

    Args:
        snapshot: Raw records fetched from the tracker
        kinds: Source kinds to include
        filters: Optional label/milestone filters applied to issues

    Returns:
        Requirements ordered by priority, then recency
    """
    selected = {RequirementKind(kind) for kind in kinds}
    filters = filters or RequirementFilters()
    requirements: list[Requirement] = []

    if RequirementKind.ISSUE in selected:
        kept = [issue for issue in snapshot.issues if filters.accepts(issue)]
        if len(kept) != len(snapshot.issues):
            logger.debug(
                "Filtered issues",
                kept=len(kept),
                dropped=len(snapshot.issues) - len(kept),
            )
        requirements.extend(issue_to_requirement(issue) for issue in kept)

    if RequirementKind.MILESTONE in selected:
        requirements.extend(milestone_to_requirement(m) for m in snapshot.milestones)

    if RequirementKind.CATEGORY in selected:
        for position, label in enumerate(snapshot.categories, start=1):
            if is_category_label(label.name):
                requirements.append(category_to_requirement(label, position))

    if RequirementKind.IMPLEMENTATION in selected:
        requirements.extend(implementation_to_requirement(pr) for pr in snapshot.implementations)

    ordered = sort_requirements(requirements)
    logger.info(
        "Extracted requirements",
        count=len(ordered),
        kinds=sorted(kind.value for kind in selected),
    )
    return ordered
