"""tracematrix core - requirements traceability engine."""

from tracematrix_core.errors import (
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    RequestValidationError,
    TraceabilityError,
    UpstreamError,
)

from tracematrix_core.models import (
    CoverageReport,
    DependencyGraph,
    GraphEdge,
    GraphNode,
    GraphStatistics,
    ImpactReport,
    Mapping,
    MappingStrength,
    MappingType,
    MatrixMetadata,
    MatrixResult,
    MatrixSummary,
    NodeImpact,
    Priority,
    Requirement,
    RequirementKind,
    RequirementRef,
    RequirementStatus,
    RiskAssessment,
    TraceabilityLevel,
    TraceDirection,
    # Id constructors
    mapping_id,
    requirement_id,
)

from tracematrix_core.records import (
    CategoryRecord,
    ImplementationRecord,
    IssueRecord,
    MilestoneRecord,
    TrackerSnapshot,
)

# Pipeline stages
from tracematrix_core.extraction import RequirementFilters, extract_requirements
from tracematrix_core.mapping import build_mappings
from tracematrix_core.coverage import CoverageThresholds, analyze_coverage
from tracematrix_core.impact import ImpactSettings, analyze_impact
from tracematrix_core.graph import build_dependency_graph
from tracematrix_core.matrix import (
    MatrixOptions,
    build_matrix,
    generate_matrix,
    validate_options,
)

from tracematrix_core.config import MatrixConfig, load_config, parse_config
from tracematrix_core.settings import Settings
from tracematrix_core.tracker import GitHubTrackerClient

__all__ = [
    # Errors
    "TraceabilityError",
    "ConfigurationError",
    "NotFoundError",
    "PermissionDeniedError",
    "RequestValidationError",
    "UpstreamError",
    # Models
    "CoverageReport",
    "DependencyGraph",
    "GraphEdge",
    "GraphNode",
    "GraphStatistics",
    "ImpactReport",
    "Mapping",
    "MappingStrength",
    "MappingType",
    "MatrixMetadata",
    "MatrixResult",
    "MatrixSummary",
    "NodeImpact",
    "Priority",
    "Requirement",
    "RequirementKind",
    "RequirementRef",
    "RequirementStatus",
    "RiskAssessment",
    "TraceabilityLevel",
    "TraceDirection",
    "mapping_id",
    "requirement_id",
    # Records
    "CategoryRecord",
    "ImplementationRecord",
    "IssueRecord",
    "MilestoneRecord",
    "TrackerSnapshot",
    # Pipeline
    "RequirementFilters",
    "extract_requirements",
    "build_mappings",
    "CoverageThresholds",
    "analyze_coverage",
    "ImpactSettings",
    "analyze_impact",
    "build_dependency_graph",
    "MatrixOptions",
    "build_matrix",
    "generate_matrix",
    "validate_options",
    # Configuration
    "MatrixConfig",
    "load_config",
    "parse_config",
    "Settings",
    # Tracker
    "GitHubTrackerClient",
]
