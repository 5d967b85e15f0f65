"""Configuration file parser for .tracematrix.yml files."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tracematrix_core.coverage import CoverageThresholds
from tracematrix_core.errors import RequestValidationError
from tracematrix_core.extraction import RequirementFilters
from tracematrix_core.impact import DEFAULT_STRENGTH_WEIGHTS, ImpactSettings
from tracematrix_core.models import MappingStrength, RequirementKind, TraceDirection

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100
STATUS_FILTERS = ("open", "closed", "all")
COMPLIANCE_LEVELS = ("basic", "standard", "comprehensive", "enterprise")

# Accept the tracker's own names for each source kind
SOURCE_KIND_ALIASES: dict[str, RequirementKind] = {
    "issue": RequirementKind.ISSUE,
    "issues": RequirementKind.ISSUE,
    "milestone": RequirementKind.MILESTONE,
    "milestones": RequirementKind.MILESTONE,
    "implementation": RequirementKind.IMPLEMENTATION,
    "implementations": RequirementKind.IMPLEMENTATION,
    "pull_request": RequirementKind.IMPLEMENTATION,
    "pull_requests": RequirementKind.IMPLEMENTATION,
    "category": RequirementKind.CATEGORY,
    "categories": RequirementKind.CATEGORY,
    "label": RequirementKind.CATEGORY,
    "labels": RequirementKind.CATEGORY,
}


@dataclass
class MatrixConfig:
    """Complete traceability matrix configuration."""

    version: str = "1"
    title: str = "Requirements Traceability Matrix"

    # Sources
    source_kinds: list[RequirementKind] = field(default_factory=lambda: [
        RequirementKind.ISSUE,
        RequirementKind.MILESTONE,
        RequirementKind.IMPLEMENTATION,
    ])
    direction: TraceDirection = TraceDirection.BIDIRECTIONAL

    # Filters
    filter_labels: list[str] = field(default_factory=list)
    filter_milestones: list[str] = field(default_factory=list)
    filter_status: str = "all"
    per_page: int = MAX_PER_PAGE

    # Analyses
    include_coverage: bool = True
    include_impact: bool = True
    include_graph: bool = True
    compliance_level: str = "standard"

    coverage: CoverageThresholds = field(default_factory=CoverageThresholds)
    impact: ImpactSettings = field(default_factory=ImpactSettings)

    @property
    def filters(self) -> RequirementFilters:
        """Issue filters for the extractor."""
        return RequirementFilters(
            labels=tuple(self.filter_labels),
            milestones=tuple(self.filter_milestones),
        )

    def validate(self) -> None:
        """Raise RequestValidationError on values the tracker cannot serve."""
        if self.filter_status not in STATUS_FILTERS:
            raise RequestValidationError(
                f"Invalid status filter: {self.filter_status!r} "
                f"(expected one of {', '.join(STATUS_FILTERS)})"
            )
        if not isinstance(self.per_page, int) or not 1 <= self.per_page <= MAX_PER_PAGE:
            raise RequestValidationError(
                f"per_page must be between 1 and {MAX_PER_PAGE}, got {self.per_page}"
            )
        if not self.source_kinds:
            raise RequestValidationError("At least one source kind is required")
        if self.compliance_level not in COMPLIANCE_LEVELS:
            raise RequestValidationError(
                f"Invalid compliance level: {self.compliance_level!r}"
            )


def parse_source_kinds(values: Any) -> list[RequirementKind]:
    """Resolve source kind names, accepting tracker aliases."""
    if isinstance(values, str):
        values = [v.strip() for v in values.split(",") if v.strip()]
    if not isinstance(values, (list, tuple)):
        raise RequestValidationError(f"Source kinds must be a list, got {values!r}")

    kinds: list[RequirementKind] = []
    for value in values:
        if isinstance(value, RequirementKind):
            kind = value
        else:
            kind = SOURCE_KIND_ALIASES.get(str(value).lower())
        if kind is None:
            raise RequestValidationError(
                f"Unknown source kind: {value!r}. "
                f"Supported: {', '.join(k.value for k in RequirementKind)}"
            )
        if kind not in kinds:
            kinds.append(kind)
    return kinds


def parse_direction(value: Any) -> TraceDirection:
    """Resolve a traceability direction name."""
    try:
        return TraceDirection(str(value).lower())
    except ValueError:
        raise RequestValidationError(
            f"Invalid traceability direction: {value!r} "
            f"(expected one of {', '.join(d.value for d in TraceDirection)})"
        ) from None


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RequestValidationError(f"{name} must be a mapping, got {value!r}")
    return value


def _string_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise RequestValidationError(f"{name} must be a list, got {value!r}")
    return [str(item) for item in value]


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise RequestValidationError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RequestValidationError(f"{name} must be an integer, got {value!r}") from None


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise RequestValidationError(f"{name} must be true or false, got {value!r}")
    return value


def _parse_impact(data: dict[str, Any]) -> ImpactSettings:
    weights = dict(DEFAULT_STRENGTH_WEIGHTS)
    for name, weight in _section(data, "weights").items():
        try:
            strength = MappingStrength(name)
        except ValueError:
            raise RequestValidationError(f"Invalid impact weight: {name}={weight!r}") from None
        weights[strength] = _as_int(weight, f"impact.weights.{name}")

    defaults = ImpactSettings()

    def threshold(key: str) -> int:
        return _as_int(data.get(key, getattr(defaults, key)), f"impact.{key}")

    return ImpactSettings(
        strength_weights=weights,
        high_impact_threshold=threshold("high_impact_threshold"),
        critical_path_threshold=threshold("critical_path_threshold"),
        max_high_impact=threshold("max_high_impact"),
        max_critical_path=threshold("max_critical_path"),
    )


def parse_config(content: str | dict[str, Any]) -> MatrixConfig:
    """Parse configuration from YAML string or dict."""
    if isinstance(content, str):
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise RequestValidationError(f"Invalid YAML: {e}") from e
    else:
        data = content

    if not isinstance(data, dict):
        raise RequestValidationError("Configuration must be a mapping")

    config = MatrixConfig()

    config.version = str(data.get("version", "1"))
    config.title = str(data.get("title", config.title))

    # Sources
    if "sources" in data:
        config.source_kinds = parse_source_kinds(data["sources"])
    if "direction" in data:
        config.direction = parse_direction(data["direction"])

    # Filters
    filters = _section(data, "filters")
    config.filter_labels = _string_list(filters.get("labels"), "filters.labels")
    config.filter_milestones = _string_list(filters.get("milestones"), "filters.milestones")
    config.filter_status = filters.get("status", "all")
    config.per_page = _as_int(data.get("per_page", MAX_PER_PAGE), "per_page")

    # Analyses
    analyses = _section(data, "analyses")
    config.include_coverage = _as_bool(analyses.get("coverage", True), "analyses.coverage")
    config.include_impact = _as_bool(analyses.get("impact", True), "analyses.impact")
    config.include_graph = _as_bool(
        analyses.get("dependency_graph", True), "analyses.dependency_graph"
    )
    config.compliance_level = data.get("compliance_level", "standard")

    if "coverage" in data:
        c = _section(data, "coverage")
        config.coverage = CoverageThresholds(
            warn_below=_as_int(c.get("warn_below", 70), "coverage.warn_below"),
            praise_above=_as_int(c.get("praise_above", 90), "coverage.praise_above"),
        )

    if "impact" in data:
        config.impact = _parse_impact(_section(data, "impact"))

    config.validate()
    return config


def load_config(repo_path: Path | str) -> MatrixConfig:
    """Load configuration from a directory or an explicit file path."""
    path = Path(repo_path)

    if path.is_file():
        logger.info(f"Loading config from {path}")
        return parse_config(path.read_text())

    # Try different config file names
    config_names = [".tracematrix.yml", ".tracematrix.yaml", "tracematrix.yml"]

    for name in config_names:
        config_file = path / name
        if config_file.exists():
            logger.info(f"Loading config from {config_file}")
            return parse_config(config_file.read_text())

    # Return defaults if no config file
    logger.info("No config file found, using defaults")
    return MatrixConfig()


# Example configuration for documentation
EXAMPLE_CONFIG = """
# .tracematrix.yml - traceability matrix configuration
version: "1"
title: "Release 2.0 Traceability"

# Record sources: issues, milestones, pull_requests, labels
sources:
  - issues
  - milestones
  - pull_requests

# forward | backward | bidirectional
direction: bidirectional

filters:
  labels: []
  milestones: []
  status: all   # open | closed | all

per_page: 100

analyses:
  coverage: true
  impact: true
  dependency_graph: true

compliance_level: standard

coverage:
  warn_below: 70
  praise_above: 90

impact:
  weights:
    strong: 3
    medium: 2
    weak: 1
  high_impact_threshold: 5
  critical_path_threshold: 2
  max_high_impact: 10
  max_critical_path: 5
"""
