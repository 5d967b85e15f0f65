"""Core data models for the traceability engine.

Every model is frozen: a matrix is computed from a single tracker snapshot
and discarded once rendered.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============================================================================
# Enums
# ============================================================================


class RequirementKind(str, Enum):
    """Source kind a requirement was extracted from."""

    ISSUE = "issue"
    MILESTONE = "milestone"
    IMPLEMENTATION = "implementation"
    CATEGORY = "category"


class Priority(str, Enum):
    """Requirement priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Higher number sorts first
PRIORITY_ORDER: dict[Priority, int] = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class RequirementStatus(str, Enum):
    """Lifecycle status of a requirement."""

    OPEN = "open"
    CLOSED = "closed"
    ACTIVE = "active"


class TraceabilityLevel(str, Enum):
    """Abstraction level a requirement lives at."""

    STRATEGIC = "strategic"
    DETAILED = "detailed"
    IMPLEMENTATION = "implementation"
    CATEGORICAL = "categorical"


class MappingType(str, Enum):
    """Type of a trace link."""

    IMPLEMENTS = "implements"
    IMPLEMENTED_BY = "implemented_by"
    DEPENDS_ON = "depends_on"
    TRACES_TO = "traces_to"
    CONTRIBUTES_TO = "contributes_to"


class TraceDirection(str, Enum):
    """Direction of traceability."""

    FORWARD = "forward"
    BACKWARD = "backward"
    BIDIRECTIONAL = "bidirectional"


class MappingStrength(str, Enum):
    """Strength of a trace link."""

    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


# ============================================================================
# Identifiers
# ============================================================================


def requirement_id(kind: RequirementKind | str, number: int) -> str:
    """Build the stable identifier of a requirement.

    Example:
        >>> requirement_id(RequirementKind.ISSUE, 1)
        'REQ-ISSUE-1'
    """
    kind_value = RequirementKind(kind).value
    return f"REQ-{kind_value.upper()}-{number}"


def mapping_id(
    from_id: str,
    to_id: str,
    mapping_type: MappingType | str | None = None,
) -> str:
    """Build the identifier of a trace link.

    The type suffix is only needed when a pair of requirements carries more
    than one mapping type.
    """
    base = f"MAP-{from_id}-{to_id}"
    if mapping_type is None:
        return base
    return f"{base}-{MappingType(mapping_type).value}"


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage rounded half up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def kind_token(node_id: str) -> str:
    """Return the lower-cased kind token of a requirement id ("unknown" if absent)."""
    parts = node_id.split("-")
    return parts[1].lower() if len(parts) >= 3 else "unknown"


# ============================================================================
# Requirements and mappings
# ============================================================================


class MilestoneProgress(BaseModel):
    """Issue completion counts for a milestone."""

    model_config = ConfigDict(frozen=True)

    total_issues: int = Field(default=0, ge=0)
    completed_issues: int = Field(default=0, ge=0)
    percentage: int = Field(default=0, ge=0, le=100)


class Requirement(BaseModel):
    """A normalized unit of trackable work or strategic goal."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: RequirementKind
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: RequirementStatus = RequirementStatus.OPEN
    labels: tuple[str, ...] = ()
    assignees: tuple[str, ...] = ()
    milestone_ref: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    source_number: int
    category: str = "general"
    business_value: str = "medium"
    technical_complexity: str = "medium"
    traceability_level: TraceabilityLevel
    dependencies: tuple[int, ...] = ()

    # Kind-specific details
    url: str | None = None
    due_on: datetime | None = None
    merged_at: datetime | None = None
    acceptance_criteria: tuple[str, ...] = ()
    test_references: tuple[str, ...] = ()
    progress: MilestoneProgress | None = None
    color: str | None = None

    @field_validator("labels", mode="after")
    @classmethod
    def _dedupe_labels(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # Labels behave as a set; keep first-seen order for stable output
        return tuple(dict.fromkeys(value))


class Mapping(BaseModel):
    """A directed, typed, weighted trace link between two requirements."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    type: MappingType
    direction: TraceDirection
    strength: MappingStrength
    description: str = ""


# ============================================================================
# Analysis reports
# ============================================================================


class RequirementRef(BaseModel):
    """Short reference to a requirement listed in a report."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    kind: RequirementKind
    priority: Priority
    reason: str = ""


class CoverageReport(BaseModel):
    """Mapped/unmapped ratios and gap lists."""

    model_config = ConfigDict(frozen=True)

    coverage_percentage: int = Field(default=0, ge=0, le=100)
    total_requirements: int = Field(default=0, ge=0)
    mapped_count: int = Field(default=0, ge=0)
    gaps: tuple[RequirementRef, ...] = ()
    orphans: tuple[RequirementRef, ...] = ()
    recommendations: tuple[str, ...] = ()


class NodeImpact(BaseModel):
    """Weighted degree of a single requirement in the mapping graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    incoming: int = 0
    outgoing: int = 0
    total_weight: int = 0


class RiskAssessment(BaseModel):
    """Requirement counts per risk bucket."""

    model_config = ConfigDict(frozen=True)

    high_risk: int = 0
    medium_risk: int = 0
    low_risk: int = 0


class ImpactReport(BaseModel):
    """Degree model and ranked impact lists."""

    model_config = ConfigDict(frozen=True)

    nodes: dict[str, NodeImpact] = Field(default_factory=dict)
    high_impact: tuple[NodeImpact, ...] = ()
    critical_path: tuple[NodeImpact, ...] = ()
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    total_connections: int = 0
    average_connections: float = 0.0
    guidelines: tuple[str, ...] = ()


class GraphNode(BaseModel):
    """A node of the dependency graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    kind: str


class GraphEdge(BaseModel):
    """An edge of the dependency graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    type: MappingType
    weight: int


class GraphStatistics(BaseModel):
    """Structural statistics of the dependency graph."""

    model_config = ConfigDict(frozen=True)

    total_nodes: int = 0
    total_edges: int = 0
    density: float = Field(default=0.0, ge=0.0)
    average_degree: float = Field(default=0.0, ge=0.0)


class DependencyGraph(BaseModel):
    """Node/edge/cluster view of the mapping graph."""

    model_config = ConfigDict(frozen=True)

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()
    clusters: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    statistics: GraphStatistics = Field(default_factory=GraphStatistics)


# ============================================================================
# Aggregate result
# ============================================================================


class MatrixMetadata(BaseModel):
    """Describes how a matrix was generated."""

    model_config = ConfigDict(frozen=True)

    title: str
    repository: str
    generated_at: datetime
    direction: TraceDirection
    compliance_level: str = "standard"
    source_kinds: tuple[RequirementKind, ...] = ()
    filters: dict[str, Any] = Field(default_factory=dict)


class MatrixSummary(BaseModel):
    """Headline counts of a matrix."""

    model_config = ConfigDict(frozen=True)

    total_requirements: int = 0
    total_mappings: int = 0
    coverage_percentage: int = 0
    total_issues: int = 0
    total_milestones: int = 0
    total_implementations: int = 0
    total_categories: int = 0


class MatrixResult(BaseModel):
    """The single value object handed to presentation layers."""

    model_config = ConfigDict(frozen=True)

    metadata: MatrixMetadata
    requirements: tuple[Requirement, ...] = ()
    mappings: tuple[Mapping, ...] = ()
    coverage: CoverageReport | None = None
    impact: ImpactReport | None = None
    graph: DependencyGraph | None = None
    summary: MatrixSummary = Field(default_factory=MatrixSummary)

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize to JSON using the wire names ("from"/"to")."""
        return self.model_dump_json(indent=indent, by_alias=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "MatrixResult":
        """Parse a result previously produced by :meth:`to_json`."""
        return cls.model_validate_json(data)
