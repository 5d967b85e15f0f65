"""Coverage analysis: which requirements participate in trace links."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

import structlog

from tracematrix_core.models import (
    CoverageReport,
    Mapping,
    Requirement,
    RequirementKind,
    RequirementRef,
    percentage,
)

logger = structlog.get_logger()

MAPPABLE_KINDS: frozenset[RequirementKind] = frozenset(
    {RequirementKind.ISSUE, RequirementKind.MILESTONE}
)

GAP_REASON = "No implementation or traceability found"
ORPHAN_REASON = "Implementation without clear requirement traceability"


@dataclass(frozen=True)
class CoverageThresholds:
    """Coverage percentages that trigger recommendations."""

    warn_below: int = 70
    praise_above: int = 90


@dataclass(frozen=True)
class _CoverageFacts:
    percentage: int
    gaps: int
    orphans: int


@dataclass(frozen=True)
class RecommendationRule:
    """Emits ``message`` (formatted with the facts) when ``applies`` holds."""

    applies: Callable[[_CoverageFacts, CoverageThresholds], bool]
    message: str


RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        lambda facts, t: facts.percentage < t.warn_below,
        "Coverage below {warn_below}% - focus on mapping unmapped requirements",
    ),
    RecommendationRule(
        lambda facts, t: facts.gaps > 0,
        "{gaps} requirements need implementation or traceability links",
    ),
    RecommendationRule(
        lambda facts, t: facts.orphans > 0,
        "{orphans} implementations need requirement linkage",
    ),
    RecommendationRule(
        lambda facts, t: facts.percentage > t.praise_above,
        "Excellent traceability coverage - focus on maintaining quality",
    ),
    RecommendationRule(
        lambda facts, t: True,
        "Schedule regular traceability matrix updates",
    ),
    RecommendationRule(
        lambda facts, t: True,
        "Consider automated traceability checks in CI/CD",
    ),
)


def mapped_ids(mappings: Sequence[Mapping]) -> set[str]:
    """Ids appearing on either end of any mapping."""
    ids: set[str] = set()
    for mapping in mappings:
        ids.add(mapping.from_id)
        ids.add(mapping.to_id)
    return ids


def generate_recommendations(
    coverage_percentage: int,
    gaps: int,
    orphans: int,
    thresholds: CoverageThresholds | None = None,
) -> list[str]:
    """Evaluate the static recommendation table."""
    thresholds = thresholds or CoverageThresholds()
    facts = _CoverageFacts(percentage=coverage_percentage, gaps=gaps, orphans=orphans)
    return [
        rule.message.format(
            gaps=gaps,
            orphans=orphans,
            warn_below=thresholds.warn_below,
        )
        for rule in RECOMMENDATION_RULES
        if rule.applies(facts, thresholds)
    ]


def _ref(requirement: Requirement, reason: str) -> RequirementRef:
    return RequirementRef(
        id=requirement.id,
        title=requirement.title,
        kind=requirement.kind,
        priority=requirement.priority,
        reason=reason,
    )


def analyze_coverage(
    requirements: Sequence[Requirement],
    mappings: Sequence[Mapping],
    thresholds: CoverageThresholds | None = None,
) -> CoverageReport:
    """Compute coverage, gaps, and orphans.

    Only issues and milestones count toward coverage. Orphans are
    implementations that no mapping touches.
    """
    linked = mapped_ids(mappings)
    mappable = [r for r in requirements if r.kind in MAPPABLE_KINDS]
    gaps = [r for r in mappable if r.id not in linked]
    orphans = [
        r for r in requirements if r.kind == RequirementKind.IMPLEMENTATION and r.id not in linked
    ]
    mapped_count = len(mappable) - len(gaps)
    coverage_percentage = percentage(mapped_count, len(mappable))

    logger.debug(
        "Coverage analyzed",
        coverage=coverage_percentage,
        gaps=len(gaps),
        orphans=len(orphans),
    )

    return CoverageReport(
        coverage_percentage=coverage_percentage,
        total_requirements=len(mappable),
        mapped_count=mapped_count,
        gaps=tuple(_ref(r, GAP_REASON) for r in gaps),
        orphans=tuple(_ref(r, ORPHAN_REASON) for r in orphans),
        recommendations=tuple(
            generate_recommendations(coverage_percentage, len(gaps), len(orphans), thresholds)
        ),
    )
