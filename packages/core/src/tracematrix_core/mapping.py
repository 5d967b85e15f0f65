"""Mapping builder: derives typed trace links between requirements.

Rules are evaluated independently, so a single pair of requirements may be
linked by more than one mapping type. Such multi-edges are kept; only their
ids are disambiguated.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Sequence

import structlog

from tracematrix_core.models import (
    Mapping,
    MappingStrength,
    MappingType,
    Requirement,
    RequirementKind,
    TraceDirection,
    mapping_id,
)

logger = structlog.get_logger()

# Preference order when several kinds share a "#N" number
RESOLUTION_ORDER: tuple[RequirementKind, ...] = (
    RequirementKind.ISSUE,
    RequirementKind.IMPLEMENTATION,
    RequirementKind.MILESTONE,
    RequirementKind.CATEGORY,
)


@dataclass(frozen=True)
class _Link:
    from_id: str
    to_id: str
    type: MappingType
    direction: TraceDirection
    strength: MappingStrength
    description: str


class _ReferenceIndex:
    """Resolves "#N" references and milestone titles to requirements."""

    def __init__(self, requirements: Sequence[Requirement]) -> None:
        self._by_number: dict[int, Requirement] = {}
        self._milestones: dict[str, Requirement] = {}
        for kind in RESOLUTION_ORDER:
            for req in requirements:
                if req.kind == kind:
                    self._by_number.setdefault(req.source_number, req)
        for req in requirements:
            if req.kind == RequirementKind.MILESTONE:
                self._milestones.setdefault(req.title, req)

    def by_number(self, number: int) -> Requirement | None:
        return self._by_number.get(number)

    def milestone(self, title: str | None) -> Requirement | None:
        if not title:
            return None
        return self._milestones.get(title)


def _includes_forward(direction: TraceDirection) -> bool:
    return direction in (TraceDirection.FORWARD, TraceDirection.BIDIRECTIONAL)


def _includes_backward(direction: TraceDirection) -> bool:
    return direction in (TraceDirection.BACKWARD, TraceDirection.BIDIRECTIONAL)


def _forward_links(requirements: Sequence[Requirement], index: _ReferenceIndex) -> list[_Link]:
    links: list[_Link] = []
    implementations = [r for r in requirements if r.kind == RequirementKind.IMPLEMENTATION]

    for req in requirements:
        if req.kind != RequirementKind.ISSUE:
            continue

        milestone = index.milestone(req.milestone_ref)
        if milestone is not None:
            links.append(
                _Link(
                    from_id=req.id,
                    to_id=milestone.id,
                    type=MappingType.CONTRIBUTES_TO,
                    direction=TraceDirection.FORWARD,
                    strength=MappingStrength.STRONG,
                    description=(
                        f"Issue {req.source_number} contributes to milestone {milestone.title}"
                    ),
                )
            )

        for impl in implementations:
            if req.source_number in impl.dependencies:
                links.append(
                    _Link(
                        from_id=req.id,
                        to_id=impl.id,
                        type=MappingType.IMPLEMENTED_BY,
                        direction=TraceDirection.FORWARD,
                        strength=MappingStrength.STRONG,
                        description=(
                            f"Issue {req.source_number} implemented by PR {impl.source_number}"
                        ),
                    )
                )
    return links


def _backward_links(requirements: Sequence[Requirement], index: _ReferenceIndex) -> list[_Link]:
    links: list[_Link] = []
    for req in requirements:
        if req.kind != RequirementKind.IMPLEMENTATION:
            continue
        for number in req.dependencies:
            target = index.by_number(number)
            if target is None or target.id == req.id:
                continue
            links.append(
                _Link(
                    from_id=req.id,
                    to_id=target.id,
                    type=MappingType.TRACES_TO,
                    direction=TraceDirection.BACKWARD,
                    strength=MappingStrength.STRONG,
                    description=(
                        f"PR {req.source_number} traces back to "
                        f"{target.kind.value} {target.source_number}"
                    ),
                )
            )
    return links


def _dependency_links(
    requirements: Sequence[Requirement], index: _ReferenceIndex
) -> list[_Link]:
    links: list[_Link] = []
    for req in requirements:
        for number in req.dependencies:
            target = index.by_number(number)
            if target is None or target.id == req.id:
                continue
            links.append(
                _Link(
                    from_id=req.id,
                    to_id=target.id,
                    type=MappingType.DEPENDS_ON,
                    direction=TraceDirection.BIDIRECTIONAL,
                    strength=MappingStrength.MEDIUM,
                    description=f"{req.title} depends on {target.title}",
                )
            )
    return links


def build_mappings(
    requirements: Sequence[Requirement],
    direction: TraceDirection | str = TraceDirection.BIDIRECTIONAL,
) -> list[Mapping]:
    """Derive trace links between requirements.

    Args:
        requirements: Extracted requirements (the full set)
        direction: Which traceability rules to evaluate; dependency links
            are produced in every mode

    Returns:
        Mappings in rule order: forward, backward, then dependency links
    """
    direction = TraceDirection(direction)
    index = _ReferenceIndex(requirements)

    links: list[_Link] = []
    if _includes_forward(direction):
        links.extend(_forward_links(requirements, index))
    if _includes_backward(direction):
        links.extend(_backward_links(requirements, index))
    links.extend(_dependency_links(requirements, index))

    # A pair may appear once per type; rule inputs are deduplicated upstream
    pair_counts = Counter((link.from_id, link.to_id) for link in links)

    mappings = [
        Mapping(
            id=mapping_id(
                link.from_id,
                link.to_id,
                link.type if pair_counts[(link.from_id, link.to_id)] > 1 else None,
            ),
            from_id=link.from_id,
            to_id=link.to_id,
            type=link.type,
            direction=link.direction,
            strength=link.strength,
            description=link.description,
        )
        for link in links
    ]

    logger.info(
        "Built trace mappings",
        count=len(mappings),
        direction=direction.value,
        multi_edge_pairs=sum(1 for count in pair_counts.values() if count > 1),
    )
    return mappings
