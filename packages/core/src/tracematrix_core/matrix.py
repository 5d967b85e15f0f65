"""Traceability matrix orchestration.

Extraction and mapping run sequentially; the coverage, impact, and graph
analyzers then run concurrently over the same immutable inputs and are
joined into a single :class:`MatrixResult`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from tracematrix_core.config import (
    COMPLIANCE_LEVELS,
    STATUS_FILTERS,
    MatrixConfig,
    parse_direction,
    parse_source_kinds,
)
from tracematrix_core.coverage import CoverageThresholds, analyze_coverage
from tracematrix_core.errors import RequestValidationError
from tracematrix_core.extraction import RequirementFilters, extract_requirements
from tracematrix_core.graph import build_dependency_graph
from tracematrix_core.impact import ImpactSettings, analyze_impact
from tracematrix_core.mapping import build_mappings
from tracematrix_core.models import (
    MatrixMetadata,
    MatrixResult,
    MatrixSummary,
    Requirement,
    RequirementKind,
    TraceDirection,
)
from tracematrix_core.records import TrackerSnapshot

logger = structlog.get_logger()


class SnapshotSource(Protocol):
    """Anything that can fetch a tracker snapshot (the GitHub client, a fake)."""

    repository: str

    async def fetch_snapshot(self, kinds: Any, status: str = "all") -> TrackerSnapshot: ...


@dataclass
class MatrixOptions:
    """Options for one matrix computation."""

    title: str = "Requirements Traceability Matrix"
    source_kinds: list[RequirementKind] = field(default_factory=lambda: [
        RequirementKind.ISSUE,
        RequirementKind.MILESTONE,
        RequirementKind.IMPLEMENTATION,
    ])
    direction: TraceDirection = TraceDirection.BIDIRECTIONAL
    filters: RequirementFilters = field(default_factory=RequirementFilters)
    status: str = "all"
    include_coverage: bool = True
    include_impact: bool = True
    include_graph: bool = True
    compliance_level: str = "standard"
    coverage_thresholds: CoverageThresholds = field(default_factory=CoverageThresholds)
    impact_settings: ImpactSettings = field(default_factory=ImpactSettings)

    @classmethod
    def from_config(cls, config: MatrixConfig) -> "MatrixOptions":
        """Build options from a parsed configuration file."""
        return cls(
            title=config.title,
            source_kinds=list(config.source_kinds),
            direction=config.direction,
            filters=config.filters,
            status=config.filter_status,
            include_coverage=config.include_coverage,
            include_impact=config.include_impact,
            include_graph=config.include_graph,
            compliance_level=config.compliance_level,
            coverage_thresholds=config.coverage,
            impact_settings=config.impact,
        )


def validate_options(options: MatrixOptions) -> MatrixOptions:
    """Normalize option values, raising RequestValidationError on bad input.

    Runs before any tracker read.
    """
    kinds = parse_source_kinds(options.source_kinds)
    if not kinds:
        raise RequestValidationError("At least one source kind is required")
    direction = parse_direction(
        options.direction.value
        if isinstance(options.direction, TraceDirection)
        else options.direction
    )
    if options.status not in STATUS_FILTERS:
        raise RequestValidationError(
            f"Invalid status filter: {options.status!r} "
            f"(expected one of {', '.join(STATUS_FILTERS)})"
        )
    if options.compliance_level not in COMPLIANCE_LEVELS:
        raise RequestValidationError(f"Invalid compliance level: {options.compliance_level!r}")

    return replace(options, source_kinds=kinds, direction=direction)


def summarize(
    requirements: list[Requirement],
    mapping_count: int,
    coverage_percentage: int,
) -> MatrixSummary:
    """Headline counts of a matrix."""

    def count(kind: RequirementKind) -> int:
        return sum(1 for r in requirements if r.kind == kind)

    return MatrixSummary(
        total_requirements=len(requirements),
        total_mappings=mapping_count,
        coverage_percentage=coverage_percentage,
        total_issues=count(RequirementKind.ISSUE),
        total_milestones=count(RequirementKind.MILESTONE),
        total_implementations=count(RequirementKind.IMPLEMENTATION),
        total_categories=count(RequirementKind.CATEGORY),
    )


async def _skipped() -> None:
    return None


async def build_matrix(snapshot: TrackerSnapshot, options: MatrixOptions) -> MatrixResult:
    """Compute a matrix from an already-fetched snapshot."""
    requirements = extract_requirements(snapshot, options.source_kinds, options.filters)
    mappings = build_mappings(requirements, options.direction)

    coverage, impact, graph = await asyncio.gather(
        asyncio.to_thread(
            analyze_coverage, requirements, mappings, options.coverage_thresholds
        )
        if options.include_coverage
        else _skipped(),
        asyncio.to_thread(analyze_impact, requirements, mappings, options.impact_settings)
        if options.include_impact
        else _skipped(),
        asyncio.to_thread(
            build_dependency_graph, mappings, options.impact_settings.strength_weights
        )
        if options.include_graph
        else _skipped(),
    )

    metadata = MatrixMetadata(
        title=options.title,
        repository=snapshot.repository,
        generated_at=datetime.now(timezone.utc),
        direction=options.direction,
        compliance_level=options.compliance_level,
        source_kinds=tuple(options.source_kinds),
        filters={
            "labels": list(options.filters.labels),
            "milestones": list(options.filters.milestones),
            "status": options.status,
        },
    )

    result = MatrixResult(
        metadata=metadata,
        requirements=tuple(requirements),
        mappings=tuple(mappings),
        coverage=coverage,
        impact=impact,
        graph=graph,
        summary=summarize(
            requirements,
            len(mappings),
            coverage.coverage_percentage if coverage is not None else 0,
        ),
    )

    logger.info(
        "Generated traceability matrix",
        repository=snapshot.repository,
        requirements=len(requirements),
        mappings=len(mappings),
        coverage=result.summary.coverage_percentage,
    )
    return result


async def generate_matrix(
    source: SnapshotSource,
    options: MatrixOptions | None = None,
) -> MatrixResult:
    """Validate options, fetch a snapshot, and compute the matrix.

    Any tracker error aborts the computation and propagates unchanged.
    """
    options = validate_options(options or MatrixOptions())
    logger.debug(
        "Fetching tracker snapshot",
        repository=source.repository,
        kinds=[kind.value for kind in options.source_kinds],
        status=options.status,
    )
    snapshot = await source.fetch_snapshot(options.source_kinds, options.status)
    return await build_matrix(snapshot, options)
