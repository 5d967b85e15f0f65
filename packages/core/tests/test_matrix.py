"""Tests for end-to-end matrix generation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tracematrix_core import matrix as matrix_module
from tracematrix_core.errors import NotFoundError, RequestValidationError
from tracematrix_core.extraction import RequirementFilters
from tracematrix_core.matrix import (
    MatrixOptions,
    build_matrix,
    generate_matrix,
    validate_options,
)
from tracematrix_core.config import parse_config
from tracematrix_core.models import (
    MappingStrength,
    MappingType,
    MatrixResult,
    RequirementKind,
    TraceDirection,
)
from tracematrix_core.records import (
    ImplementationRecord,
    IssueRecord,
    MilestoneRecord,
    TrackerSnapshot,
)


def snapshot(**kwargs) -> TrackerSnapshot:
    return TrackerSnapshot(repository="acme/api", **kwargs)


def fake_source(snap: TrackerSnapshot) -> MagicMock:
    source = MagicMock()
    source.repository = snap.repository
    source.fetch_snapshot = AsyncMock(return_value=snap)
    return source


class TestScenarios:
    """Reference scenarios."""

    @pytest.mark.asyncio
    async def test_issue_contributes_to_milestone(self):
        snap = snapshot(
            issues=(IssueRecord(number=1, title="Add login", milestone_title="V1"),),
            milestones=(MilestoneRecord(number=1, title="V1"),),
        )
        options = MatrixOptions(source_kinds=[RequirementKind.ISSUE, RequirementKind.MILESTONE])
        result = await build_matrix(snap, options)

        assert {r.id for r in result.requirements} == {"REQ-ISSUE-1", "REQ-MILESTONE-1"}
        assert len(result.mappings) == 1
        m = result.mappings[0]
        assert (m.from_id, m.to_id) == ("REQ-ISSUE-1", "REQ-MILESTONE-1")
        assert m.type == MappingType.CONTRIBUTES_TO
        assert m.strength == MappingStrength.STRONG
        assert result.coverage.coverage_percentage == 100

    @pytest.mark.asyncio
    async def test_unresolved_dependency(self):
        snap = snapshot(issues=(IssueRecord(number=5, title="Export", body="depends on #3"),))
        result = await build_matrix(snap, MatrixOptions(source_kinds=[RequirementKind.ISSUE]))

        assert result.requirements[0].dependencies == (3,)
        assert result.mappings == ()
        assert result.coverage.coverage_percentage == 0
        assert [g.id for g in result.coverage.gaps] == ["REQ-ISSUE-5"]

    @pytest.mark.asyncio
    async def test_no_mappable_requirements(self):
        snap = snapshot(implementations=(ImplementationRecord(number=7, title="Cleanup"),))
        result = await build_matrix(
            snap, MatrixOptions(source_kinds=[RequirementKind.IMPLEMENTATION])
        )

        assert result.coverage.coverage_percentage == 0
        assert result.coverage.gaps == ()
        assert [o.id for o in result.coverage.orphans] == ["REQ-IMPLEMENTATION-7"]

    @pytest.mark.asyncio
    async def test_multi_edges_retained(self):
        snap = snapshot(
            issues=(IssueRecord(number=3, title="Search"),),
            implementations=(
                ImplementationRecord(number=9, title="Search API", body="Closes #3, depends on #3"),
            ),
        )
        result = await build_matrix(
            snap,
            MatrixOptions(source_kinds=[RequirementKind.ISSUE, RequirementKind.IMPLEMENTATION]),
        )

        pair = [
            m for m in result.mappings
            if (m.from_id, m.to_id) == ("REQ-IMPLEMENTATION-9", "REQ-ISSUE-3")
        ]
        assert {m.type for m in pair} == {MappingType.TRACES_TO, MappingType.DEPENDS_ON}
        assert len({m.id for m in pair}) == 2
        assert len({m.id for m in result.mappings}) == len(result.mappings)

    @pytest.mark.asyncio
    async def test_issue_depends_on_its_milestone(self):
        snap = snapshot(
            issues=(
                IssueRecord(number=1, title="Add login", milestone_title="V1",
                            body="depends on #2"),
            ),
            milestones=(MilestoneRecord(number=2, title="V1"),),
        )
        result = await build_matrix(
            snap, MatrixOptions(source_kinds=[RequirementKind.ISSUE, RequirementKind.MILESTONE])
        )

        assert {m.type for m in result.mappings} == {
            MappingType.CONTRIBUTES_TO,
            MappingType.DEPENDS_ON,
        }
        assert {m.id for m in result.mappings} == {
            "MAP-REQ-ISSUE-1-REQ-MILESTONE-2-contributes_to",
            "MAP-REQ-ISSUE-1-REQ-MILESTONE-2-depends_on",
        }
        assert result.graph.statistics.total_edges == 2


class TestBuildMatrix:
    """Tests for build_matrix."""

    def _snapshot(self) -> TrackerSnapshot:
        return snapshot(
            issues=(
                IssueRecord(number=1, title="Add login", milestone_title="V1", labels=["api"]),
                IssueRecord(number=2, title="Audit log", labels=["ui"], body="requires #1"),
            ),
            milestones=(MilestoneRecord(number=1, title="V1"),),
            implementations=(ImplementationRecord(number=3, title="Login", body="Fixes #1"),),
        )

    @pytest.mark.asyncio
    async def test_referential_integrity(self):
        result = await build_matrix(self._snapshot(), MatrixOptions())
        ids = {r.id for r in result.requirements}
        for m in result.mappings:
            assert m.from_id in ids and m.to_id in ids
        assert {n.id for n in result.graph.nodes} <= ids

    @pytest.mark.asyncio
    async def test_summary(self):
        result = await build_matrix(self._snapshot(), MatrixOptions())
        assert result.summary.total_requirements == 4
        assert result.summary.total_issues == 2
        assert result.summary.total_milestones == 1
        assert result.summary.total_implementations == 1
        assert result.summary.total_mappings == len(result.mappings)
        assert result.summary.coverage_percentage == result.coverage.coverage_percentage
        assert result.metadata.repository == "acme/api"

    @pytest.mark.asyncio
    async def test_optional_analyses(self):
        options = MatrixOptions(include_coverage=False, include_impact=False, include_graph=False)
        result = await build_matrix(self._snapshot(), options)
        assert result.coverage is None
        assert result.impact is None
        assert result.graph is None
        assert result.summary.coverage_percentage == 0

    @pytest.mark.asyncio
    async def test_filters_recorded(self):
        options = MatrixOptions(filters=RequirementFilters(labels=("api",)))
        result = await build_matrix(self._snapshot(), options)
        assert [r.id for r in result.requirements if r.kind == RequirementKind.ISSUE] == [
            "REQ-ISSUE-1"
        ]
        assert result.metadata.filters["labels"] == ["api"]

    @pytest.mark.asyncio
    async def test_analyzers_run_in_threads(self):
        with patch.object(
            matrix_module.asyncio, "to_thread", wraps=asyncio.to_thread
        ) as to_thread:
            await build_matrix(self._snapshot(), MatrixOptions())
        assert to_thread.call_count == 3

    @pytest.mark.asyncio
    async def test_json_round_trip(self):
        result = await build_matrix(self._snapshot(), MatrixOptions())
        restored = MatrixResult.from_json(result.to_json())
        assert restored.requirements == result.requirements
        assert restored.mappings == result.mappings
        assert restored.summary == result.summary

    @pytest.mark.asyncio
    async def test_direction_backward(self):
        result = await build_matrix(
            self._snapshot(), MatrixOptions(direction=TraceDirection.BACKWARD)
        )
        types = {m.type for m in result.mappings}
        assert MappingType.CONTRIBUTES_TO not in types
        assert MappingType.TRACES_TO in types


class TestGenerateMatrix:
    """Tests for generate_matrix."""

    @pytest.mark.asyncio
    async def test_fetches_then_builds(self):
        snap = snapshot(issues=(IssueRecord(number=1, title="One"),))
        source = fake_source(snap)

        result = await generate_matrix(
            source, MatrixOptions(source_kinds=["issues"], status="open")
        )

        source.fetch_snapshot.assert_awaited_once_with([RequirementKind.ISSUE], "open")
        assert [r.id for r in result.requirements] == ["REQ-ISSUE-1"]

    @pytest.mark.asyncio
    async def test_invalid_options_rejected_before_fetch(self):
        source = fake_source(snapshot())
        with pytest.raises(RequestValidationError):
            await generate_matrix(source, MatrixOptions(source_kinds=["wiki"]))
        source.fetch_snapshot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_errors_propagate(self):
        source = MagicMock()
        source.repository = "acme/missing"
        source.fetch_snapshot = AsyncMock(side_effect=NotFoundError("issues", "acme/missing"))
        with pytest.raises(NotFoundError):
            await generate_matrix(source)


class TestValidateOptions:
    """Tests for validate_options."""

    def test_normalizes_strings(self):
        options = validate_options(MatrixOptions(source_kinds=["labels"], direction="forward"))
        assert options.source_kinds == [RequirementKind.CATEGORY]
        assert options.direction == TraceDirection.FORWARD

    def test_leaves_caller_options_untouched(self):
        original = MatrixOptions(source_kinds=["pull_requests", "issues"], direction="backward")
        normalized = validate_options(original)

        assert normalized is not original
        assert original.source_kinds == ["pull_requests", "issues"]
        assert original.direction == "backward"
        assert normalized.source_kinds == [RequirementKind.IMPLEMENTATION, RequirementKind.ISSUE]

    @pytest.mark.parametrize("kwargs", [
        {"source_kinds": []},
        {"direction": "up"},
        {"status": "merged"},
        {"compliance_level": "none"},
    ])
    def test_rejects(self, kwargs):
        with pytest.raises(RequestValidationError):
            validate_options(MatrixOptions(**kwargs))

    def test_from_config(self):
        config = parse_config("title: Q3\ndirection: backward\nanalyses: {impact: false}\n")
        options = MatrixOptions.from_config(config)
        assert options.title == "Q3"
        assert options.direction == TraceDirection.BACKWARD
        assert options.include_impact is False
