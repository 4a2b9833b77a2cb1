"""
Outpost Stock — Condition Grade Tests

Tests the mapping of storefront condition labels onto the ordered grade
enum used to rank offers.
"""

from __future__ import annotations

import pytest

from outpost_stock.utils.condition_map import (
    QUALITY_ORDER,
    ConditionGrade,
    grade_rank,
    parse_grade,
)


class TestParseGrade:
    """Storefront labels and their older spellings."""

    @pytest.mark.parametrize("grade", list(ConditionGrade))
    def test_canonical_labels(self, grade: ConditionGrade) -> None:
        """Every enum value parses back to itself."""
        assert parse_grade(grade.value) is grade

    def test_case_and_whitespace_are_ignored(self) -> None:
        assert parse_grade("  ex/gd ") is ConditionGrade.EXCELLENT
        assert parse_grade("near   mint") is ConditionGrade.NEAR_MINT

    @pytest.mark.parametrize(
        ("label", "grade"),
        [
            ("NM", ConditionGrade.NEAR_MINT),
            ("Mint", ConditionGrade.NEAR_MINT),
            ("GD", ConditionGrade.EXCELLENT),
            ("Played", ConditionGrade.SLIGHTLY_PLAYED),
            ("Heavily Played", ConditionGrade.HEAVILY_PLAYED),
            ("poor", ConditionGrade.POOR),
        ],
    )
    def test_aliases(self, label: str, grade: ConditionGrade) -> None:
        assert parse_grade(label) is grade

    @pytest.mark.parametrize("label", ["", None, "LP", "graded 9"])
    def test_unknown_labels(self, label: str | None) -> None:
        assert parse_grade(label) is None


class TestGradeRank:
    def test_quality_order_best_first(self) -> None:
        assert [g.value for g in QUALITY_ORDER] == ["NM/M", "EX/GD", "SP/P", "HP", "PR"]

    def test_ranks_follow_quality_order(self) -> None:
        ranks = [grade_rank(label) for label in ("NM/M", "EX/GD", "SP/P", "HP", "PR")]

        assert ranks == sorted(ranks)
        assert ranks[0] == 0

    def test_unknown_ranks_last(self) -> None:
        assert grade_rank("LP") == len(QUALITY_ORDER)
        assert grade_rank("LP") > grade_rank("PR")

    def test_sort_offers_by_quality(self) -> None:
        labels = ["HP", "??", "NM/M", "SP/P"]

        assert sorted(labels, key=grade_rank) == ["NM/M", "SP/P", "HP", "??"]
