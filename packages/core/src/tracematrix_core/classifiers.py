"""Rule-based classification of tracker records.

Every heuristic is an ordered table of ``(keywords, label)`` rules evaluated
first-match-wins against lower-cased text. The tables are plain data so they
can be unit tested and extended without any I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence

from tracematrix_core.models import Priority


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Anchor at a word start so "ui" does not fire on "build"
    return re.compile(r"\b" + re.escape(keyword))


@dataclass(frozen=True)
class KeywordRule:
    """Assigns ``label`` when any of ``keywords`` starts a word in the text."""

    keywords: tuple[str, ...]
    label: str

    def matches(self, text: str) -> bool:
        return any(_keyword_pattern(keyword).search(text) for keyword in self.keywords)


def classify(text: str, rules: Sequence[KeywordRule], default: str) -> str:
    """Return the label of the first matching rule, or ``default``."""
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule.label
    return default


def classification_text(title: str, description: str | None, labels: Iterable[str]) -> str:
    """Join the fields the keyword tables are evaluated against."""
    return " ".join([title or "", description or "", " ".join(labels)]).lower()


# Priority is read from label names only
PRIORITY_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("critical", "urgent"), Priority.CRITICAL.value),
    KeywordRule(("high",), Priority.HIGH.value),
    KeywordRule(("medium",), Priority.MEDIUM.value),
    KeywordRule(("low",), Priority.LOW.value),
)

CATEGORY_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("bug", "fix", "defect"), "bug"),
    KeywordRule(("feature", "enhancement"), "feature"),
    KeywordRule(("documentation", "docs"), "documentation"),
    KeywordRule(("test", "qa"), "testing"),
    KeywordRule(("security", "compliance", "vulnerability"), "security"),
    KeywordRule(("performance", "scalability", "latency"), "performance"),
    KeywordRule(("ui", "interface", "frontend"), "frontend"),
    KeywordRule(("api", "backend", "server"), "backend"),
)

BUSINESS_VALUE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("revenue", "customer", "business critical", "strategic", "competitive"), "high"),
    KeywordRule(("efficiency", "productivity", "user experience", "performance"), "medium"),
    KeywordRule(("internal", "maintenance", "refactor", "cleanup"), "low"),
)

COMPLEXITY_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("architecture", "migration", "integration", "algorithm", "complex"), "high"),
    KeywordRule(("api", "database", "authentication", "validation"), "medium"),
    KeywordRule(("ui", "text", "copy", "styling", "documentation", "simple"), "low"),
)

# Label names that mark a label as a requirement category
CATEGORY_LABEL_MARKERS: tuple[str, ...] = (
    "requirement",
    "epic",
    "feature",
    "user-story",
    "acceptance-criteria",
)


def classify_priority(labels: Iterable[str]) -> Priority:
    """Derive priority from the first label that names one.

    Label names are matched by plain substring, so ``P1-critical`` and
    ``priority:high`` both count.
    """
    for label in labels:
        lowered = label.lower()
        for rule in PRIORITY_RULES:
            if any(keyword in lowered for keyword in rule.keywords):
                return Priority(rule.label)
    return Priority.MEDIUM


def classify_category(title: str, description: str | None, labels: Iterable[str]) -> str:
    """Functional area of a work item."""
    return classify(classification_text(title, description, labels), CATEGORY_RULES, "general")


def assess_business_value(title: str, description: str | None, labels: Iterable[str]) -> str:
    """Business value bucket of a work item."""
    return classify(
        classification_text(title, description, labels), BUSINESS_VALUE_RULES, "medium"
    )


def assess_complexity(title: str, description: str | None, labels: Iterable[str]) -> str:
    """Technical complexity bucket of a work item."""
    return classify(classification_text(title, description, labels), COMPLEXITY_RULES, "medium")


def assess_change_complexity(changed_files: int, additions: int, deletions: int) -> str:
    """Technical complexity of an implementation from its change size."""
    total_changes = (additions or 0) + (deletions or 0)
    changed_files = changed_files or 0
    if changed_files > 20 or total_changes > 1000:
        return "high"
    if changed_files > 10 or total_changes > 500:
        return "medium"
    return "low"


def is_category_label(name: str) -> bool:
    """Whether a label denotes a requirement category."""
    lowered = name.lower()
    return any(marker in lowered for marker in CATEGORY_LABEL_MARKERS)


# ============================================================================
# Reference extraction
# ============================================================================

DEPENDENCY_PATTERN = re.compile(
    r"\b(?:depends\s+on|blocked\s+by|requires|needs|after)\s+#(\w+)",
    re.IGNORECASE,
)

CLOSING_PATTERN = re.compile(
    r"\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s+#(\w+)",
    re.IGNORECASE,
)

ACCEPTANCE_SECTION_PATTERN = re.compile(
    r"acceptance criteria:?(.+?)(?=\n##|\n\*\*|\Z)",
    re.IGNORECASE | re.DOTALL,
)
CHECKLIST_PATTERN = re.compile(r"^\s*[-*] \[[ xX]\] (.+)$", re.MULTILINE)
TEST_REFERENCE_PATTERN = re.compile(
    r"(?:test case|test scenario|unit test|integration test|e2e test):?[ \t]*(.+)",
    re.IGNORECASE,
)

MAX_ACCEPTANCE_CRITERIA = 10
MAX_TEST_REFERENCES = 5


def _numeric_references(text: str | None, patterns: Sequence[re.Pattern[str]]) -> list[int]:
    if not text:
        return []

    found: list[tuple[int, int]] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            token = match.group(1)
            # "#abc" and "#²" style references are not issue numbers
            if token.isdecimal():
                found.append((match.start(), int(token)))

    found.sort(key=lambda item: item[0])
    return list(dict.fromkeys(number for _, number in found))


def extract_dependencies(text: str | None) -> list[int]:
    """Issue numbers referenced with dependency phrases, first occurrence order."""
    return _numeric_references(text, (DEPENDENCY_PATTERN,))


def extract_linked_references(text: str | None) -> list[int]:
    """Dependency and closing-keyword references of an implementation."""
    return _numeric_references(text, (DEPENDENCY_PATTERN, CLOSING_PATTERN))


def extract_acceptance_criteria(text: str | None) -> list[str]:
    """Acceptance criteria from a dedicated section or checklist items."""
    if not text:
        return []

    criteria: list[str] = []
    section = ACCEPTANCE_SECTION_PATTERN.search(text)
    if section:
        for line in section.group(1).splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                criteria.append(re.sub(r"^[-*] (\[[ xX]\] )?", "", line))

    if not criteria:
        criteria = [m.group(1).strip() for m in CHECKLIST_PATTERN.finditer(text)]

    return list(dict.fromkeys(c for c in criteria if c))[:MAX_ACCEPTANCE_CRITERIA]


def extract_test_references(text: str | None) -> list[str]:
    """Test cases mentioned in a work item description."""
    if not text:
        return []
    refs = [m.group(1).strip() for m in TEST_REFERENCE_PATTERN.finditer(text)]
    return [r for r in refs if r][:MAX_TEST_REFERENCES]
