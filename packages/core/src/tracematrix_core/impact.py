"""Impact analysis over the weighted mapping graph.

Weight table (per mapping, added to both endpoints):

    strong = 3
    medium = 2
    weak   = 1

A requirement is high-impact when its total weight exceeds 5 and sits on
the critical path when it has more than 2 outgoing links. Both thresholds
and the list caps are configurable through :class:`ImpactSettings`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import structlog

from tracematrix_core.models import (
    ImpactReport,
    Mapping,
    MappingStrength,
    NodeImpact,
    Requirement,
    RiskAssessment,
)

logger = structlog.get_logger()

DEFAULT_STRENGTH_WEIGHTS: dict[MappingStrength, int] = {
    MappingStrength.STRONG: 3,
    MappingStrength.MEDIUM: 2,
    MappingStrength.WEAK: 1,
}

CHANGE_IMPACT_GUIDELINES: tuple[str, ...] = (
    "Changes to high-impact requirements may affect multiple components",
    "Critical path requirements should be handled with extra caution",
    "Consider dependency chains when planning changes",
    "Impact analysis should be performed before major modifications",
)


@dataclass(frozen=True)
class ImpactSettings:
    """Weights, thresholds, and caps of the impact model."""

    strength_weights: dict[MappingStrength, int] = field(
        default_factory=lambda: dict(DEFAULT_STRENGTH_WEIGHTS)
    )
    high_impact_threshold: int = 5
    critical_path_threshold: int = 2
    max_high_impact: int = 10
    max_critical_path: int = 5

    def weight(self, strength: MappingStrength) -> int:
        return self.strength_weights.get(strength, DEFAULT_STRENGTH_WEIGHTS[strength])


@dataclass
class _Degree:
    incoming: int = 0
    outgoing: int = 0
    total_weight: int = 0


def compute_degrees(
    mappings: Sequence[Mapping],
    settings: ImpactSettings | None = None,
) -> dict[str, NodeImpact]:
    """Weighted in/out degree of every requirement touched by a mapping.

    Keys are ordered by first appearance in ``mappings``.
    """
    settings = settings or ImpactSettings()
    degrees: dict[str, _Degree] = {}

    for mapping in mappings:
        weight = settings.weight(mapping.strength)
        source = degrees.setdefault(mapping.from_id, _Degree())
        target = degrees.setdefault(mapping.to_id, _Degree())
        source.outgoing += 1
        source.total_weight += weight
        target.incoming += 1
        target.total_weight += weight

    return {
        node_id: NodeImpact(
            id=node_id,
            incoming=degree.incoming,
            outgoing=degree.outgoing,
            total_weight=degree.total_weight,
        )
        for node_id, degree in degrees.items()
    }


def analyze_impact(
    requirements: Sequence[Requirement],
    mappings: Sequence[Mapping],
    settings: ImpactSettings | None = None,
) -> ImpactReport:
    """Rank high-impact and critical-path requirements.

    ``requirements`` is accepted for symmetry with the other analyzers; the
    degree model only covers requirements that take part in a mapping.
    """
    settings = settings or ImpactSettings()
    nodes = compute_degrees(mappings, settings)

    # sorted() is stable, so ties keep first-appearance order
    high_impact = sorted(
        (n for n in nodes.values() if n.total_weight > settings.high_impact_threshold),
        key=lambda n: n.total_weight,
        reverse=True,
    )[: settings.max_high_impact]
    critical_path = sorted(
        (n for n in nodes.values() if n.outgoing > settings.critical_path_threshold),
        key=lambda n: n.outgoing,
        reverse=True,
    )[: settings.max_critical_path]

    total_nodes = len(nodes)
    risk = RiskAssessment(
        high_risk=len(high_impact),
        medium_risk=len(critical_path),
        low_risk=max(0, total_nodes - len(high_impact) - len(critical_path)),
    )

    logger.debug(
        "Impact analyzed",
        nodes=total_nodes,
        requirements=len(requirements),
        high_impact=len(high_impact),
        critical_path=len(critical_path),
    )

    return ImpactReport(
        nodes=nodes,
        high_impact=tuple(high_impact),
        critical_path=tuple(critical_path),
        risk_assessment=risk,
        total_connections=len(mappings),
        average_connections=len(mappings) / total_nodes if total_nodes else 0.0,
        guidelines=CHANGE_IMPACT_GUIDELINES,
    )
