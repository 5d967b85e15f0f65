"""Tests for configuration module."""
import pytest

from tracematrix_core.config import (
    EXAMPLE_CONFIG,
    MatrixConfig,
    load_config,
    parse_config,
    parse_source_kinds,
)
from tracematrix_core.errors import ConfigurationError, RequestValidationError
from tracematrix_core.models import MappingStrength, RequirementKind, TraceDirection
from tracematrix_core.settings import Settings


class TestParseConfig:
    """Tests for parse_config function."""

    def test_parse_empty_config(self):
        """Empty config returns defaults."""
        config = parse_config("")
        assert config.version == "1"
        assert config.direction == TraceDirection.BIDIRECTIONAL
        assert config.source_kinds == [
            RequirementKind.ISSUE,
            RequirementKind.MILESTONE,
            RequirementKind.IMPLEMENTATION,
        ]
        assert config.filter_status == "all"
        assert config.per_page == 100

    def test_parse_example_config(self):
        """The documented example parses cleanly."""
        config = parse_config(EXAMPLE_CONFIG)
        assert config.title == "Release 2.0 Traceability"
        assert config.impact.weight(MappingStrength.STRONG) == 3
        assert config.coverage.warn_below == 70

    def test_parse_sources_and_filters(self):
        yaml_content = """
sources: [issues, labels]
direction: forward
filters:
  labels: [api]
  milestones: [V1]
  status: open
"""
        config = parse_config(yaml_content)
        assert config.source_kinds == [RequirementKind.ISSUE, RequirementKind.CATEGORY]
        assert config.direction == TraceDirection.FORWARD
        assert config.filters.labels == ("api",)
        assert config.filters.milestones == ("V1",)
        assert config.filter_status == "open"

    def test_parse_impact_overrides(self):
        config = parse_config({
            "impact": {"weights": {"weak": 0}, "high_impact_threshold": 8},
        })
        assert config.impact.weight(MappingStrength.WEAK) == 0
        assert config.impact.weight(MappingStrength.STRONG) == 3
        assert config.impact.high_impact_threshold == 8

    def test_unknown_keys_ignored(self):
        config = parse_config({"unexpected": True})
        assert isinstance(config, MatrixConfig)

    @pytest.mark.parametrize("content", [
        "sources: [wiki]",
        "direction: sideways",
        "filters: {status: pending}",
        "per_page: 500",
        "per_page: 0",
        "compliance_level: extreme",
        "impact: {weights: {huge: 9}}",
        "- just\n- a list",
        "sources: []",
        "filters: [bug]",
        "filters: {labels: bug}",
        "filters: {milestones: {V1: true}}",
        "coverage: 80",
        "coverage: {warn_below: low}",
        "impact: [strong]",
        "impact: {weights: [3, 2, 1]}",
        "impact: {weights: {strong: null}}",
        "impact: {weights: {strong: many}}",
        "impact:\n  high_impact_threshold: high",
        "impact: {max_critical_path: null}",
        "analyses: [coverage]",
        "analyses: {impact: maybe}",
        "per_page: lots",
    ])
    def test_invalid_values_rejected(self, content):
        with pytest.raises(RequestValidationError):
            parse_config(content)

    def test_numeric_strings_coerced(self):
        config = parse_config(
            "per_page: '50'\nimpact: {high_impact_threshold: '7', weights: {medium: '4'}}\n"
        )
        assert config.per_page == 50
        assert config.impact.high_impact_threshold == 7
        assert config.impact.weight(MappingStrength.MEDIUM) == 4

    def test_empty_sections_use_defaults(self):
        config = parse_config("filters:\ncoverage:\nimpact:\nanalyses:\n")
        assert config.filter_labels == []
        assert config.coverage.warn_below == 70
        assert config.impact.max_high_impact == 10
        assert config.include_graph is True

    def test_invalid_yaml(self):
        with pytest.raises(RequestValidationError):
            parse_config("title: [unclosed")


class TestParseSourceKinds:
    """Tests for source kind aliases."""

    def test_aliases(self):
        assert parse_source_kinds(["pull_requests", "milestone", "issues"]) == [
            RequirementKind.IMPLEMENTATION,
            RequirementKind.MILESTONE,
            RequirementKind.ISSUE,
        ]

    def test_comma_string_and_dedupe(self):
        assert parse_source_kinds("issues, issue ,labels") == [
            RequirementKind.ISSUE,
            RequirementKind.CATEGORY,
        ]


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path):
        config = load_config(tmp_path)
        assert config == MatrixConfig()

    def test_finds_config_in_directory(self, tmp_path):
        (tmp_path / ".tracematrix.yaml").write_text("title: From disk\n")
        assert load_config(tmp_path).title == "From disk"

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("direction: backward\n")
        assert load_config(path).direction == TraceDirection.BACKWARD


class TestSettings:
    """Tests for environment settings."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_OWNER", "acme")
        monkeypatch.setenv("GITHUB_REPO", "api")
        monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3/")
        settings = Settings(_env_file=None)
        assert settings.require_repository() == ("acme", "api")
        assert settings.repository == "acme/api"
        assert settings.GITHUB_API_URL == "https://ghe.example.com/api/v3"

    def test_missing_repository(self, monkeypatch):
        monkeypatch.delenv("GITHUB_OWNER", raising=False)
        monkeypatch.delenv("GITHUB_REPO", raising=False)
        settings = Settings(_env_file=None)
        with pytest.raises(ConfigurationError, match="GITHUB_OWNER, GITHUB_REPO"):
            settings.require_repository()
