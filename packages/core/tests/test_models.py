"""Tests for core data models and identifier constructors."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from tracematrix_core.models import (
    Mapping,
    MappingStrength,
    MappingType,
    MatrixMetadata,
    MatrixResult,
    Requirement,
    RequirementKind,
    TraceabilityLevel,
    TraceDirection,
    kind_token,
    mapping_id,
    percentage,
    requirement_id,
)


class TestRequirementId:
    """Tests for requirement_id."""

    def test_upper_cases_kind(self):
        assert requirement_id(RequirementKind.ISSUE, 1) == "REQ-ISSUE-1"
        assert requirement_id("implementation", 42) == "REQ-IMPLEMENTATION-42"

    def test_is_deterministic(self):
        """Same input always yields the same id."""
        assert requirement_id("milestone", 3) == requirement_id(RequirementKind.MILESTONE, 3)

    def test_distinct_per_kind(self):
        """Different kinds with the same number never collide."""
        ids = {requirement_id(kind, 7) for kind in RequirementKind}
        assert len(ids) == len(RequirementKind)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            requirement_id("epic", 1)


class TestMappingId:
    """Tests for mapping_id."""

    def test_without_type(self):
        assert mapping_id("REQ-ISSUE-1", "REQ-MILESTONE-1") == "MAP-REQ-ISSUE-1-REQ-MILESTONE-1"

    def test_with_type_suffix(self):
        assert (
            mapping_id("REQ-IMPLEMENTATION-9", "REQ-ISSUE-3", MappingType.DEPENDS_ON)
            == "MAP-REQ-IMPLEMENTATION-9-REQ-ISSUE-3-depends_on"
        )


class TestPercentage:
    """Tests for the rounding helper."""

    def test_zero_total(self):
        assert percentage(0, 0) == 0

    def test_rounds_half_up(self):
        assert percentage(1, 8) == 13  # 12.5
        assert percentage(1, 3) == 33
        assert percentage(2, 3) == 67

    def test_bounds(self):
        assert percentage(5, 5) == 100
        assert percentage(0, 5) == 0


class TestKindToken:
    """Tests for kind_token."""

    def test_parses_kind(self):
        assert kind_token("REQ-ISSUE-12") == "issue"
        assert kind_token("REQ-IMPLEMENTATION-3") == "implementation"

    def test_unknown(self):
        assert kind_token("orphan") == "unknown"


class TestRequirement:
    """Tests for the Requirement model."""

    def test_labels_behave_as_set(self):
        req = Requirement(
            id="REQ-ISSUE-1",
            kind=RequirementKind.ISSUE,
            title="Login",
            source_number=1,
            traceability_level=TraceabilityLevel.DETAILED,
            labels=("bug", "ui", "bug"),
        )
        assert req.labels == ("bug", "ui")

    def test_is_frozen(self):
        req = Requirement(
            id="REQ-ISSUE-1",
            kind=RequirementKind.ISSUE,
            title="Login",
            source_number=1,
            traceability_level=TraceabilityLevel.DETAILED,
        )
        with pytest.raises(ValidationError):
            req.title = "Other"


class TestMatrixResultJson:
    """Tests for MatrixResult serialization."""

    def _result(self) -> MatrixResult:
        reqs = tuple(
            Requirement(
                id=requirement_id("issue", n),
                kind=RequirementKind.ISSUE,
                title=f"Issue {n}",
                source_number=n,
                traceability_level=TraceabilityLevel.DETAILED,
            )
            for n in (3, 1, 2)
        )
        mappings = (
            Mapping(
                id=mapping_id("REQ-ISSUE-3", "REQ-ISSUE-1"),
                from_id="REQ-ISSUE-3",
                to_id="REQ-ISSUE-1",
                type=MappingType.DEPENDS_ON,
                direction=TraceDirection.BIDIRECTIONAL,
                strength=MappingStrength.MEDIUM,
                description="Issue 3 depends on Issue 1",
            ),
        )
        return MatrixResult(
            metadata=MatrixMetadata(
                title="Matrix",
                repository="acme/api",
                generated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                direction=TraceDirection.BIDIRECTIONAL,
            ),
            requirements=reqs,
            mappings=mappings,
        )

    def test_uses_wire_names(self):
        """Mapping endpoints serialize as "from"/"to"."""
        data = self._result().to_json()
        assert '"from": "REQ-ISSUE-3"' in data
        assert '"to": "REQ-ISSUE-1"' in data
        assert "from_id" not in data

    def test_round_trip_preserves_order(self):
        result = self._result()
        restored = MatrixResult.from_json(result.to_json())
        assert [r.id for r in restored.requirements] == ["REQ-ISSUE-3", "REQ-ISSUE-1", "REQ-ISSUE-2"]
        assert restored.mappings == result.mappings
        assert restored == result
