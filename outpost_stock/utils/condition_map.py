"""
Outpost Stock — Condition Grade Vocabulary

Outpost labels each sale row with one of five quality grades. The labels are
kept verbatim on ConditionOffer; this module maps them onto an ordered enum
so consumers can rank offers by quality.

Best to worst: NM/M > EX/GD > SP/P > HP > PR
"""

from __future__ import annotations

from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class ConditionGrade(str, Enum):
    """
    Outpost condition grades.

    Enum values match the raw labels printed on the storefront.
    """
    NEAR_MINT = "NM/M"
    EXCELLENT = "EX/GD"
    SLIGHTLY_PLAYED = "SP/P"
    HEAVILY_PLAYED = "HP"
    POOR = "PR"


# Best first. Consumers walk this order to find the best available tier.
QUALITY_ORDER: tuple[ConditionGrade, ...] = (
    ConditionGrade.NEAR_MINT,
    ConditionGrade.EXCELLENT,
    ConditionGrade.SLIGHTLY_PLAYED,
    ConditionGrade.HEAVILY_PLAYED,
    ConditionGrade.POOR,
)

# Spellings seen on older pages and in hand-edited files
_ALIASES: dict[str, ConditionGrade] = {
    "NM": ConditionGrade.NEAR_MINT,
    "M": ConditionGrade.NEAR_MINT,
    "MINT": ConditionGrade.NEAR_MINT,
    "NEAR MINT": ConditionGrade.NEAR_MINT,
    "EX": ConditionGrade.EXCELLENT,
    "GD": ConditionGrade.EXCELLENT,
    "EXCELLENT": ConditionGrade.EXCELLENT,
    "SP": ConditionGrade.SLIGHTLY_PLAYED,
    "P": ConditionGrade.SLIGHTLY_PLAYED,
    "PLAYED": ConditionGrade.SLIGHTLY_PLAYED,
    "HEAVILY PLAYED": ConditionGrade.HEAVILY_PLAYED,
    "POOR": ConditionGrade.POOR,
}


def parse_grade(label: str | None) -> ConditionGrade | None:
    """
    Map a free-text condition label to its grade.

    Args:
        label: Label as scraped, e.g. "NM/M" or " ex/gd ".

    Returns:
        The matching ConditionGrade, or None for unknown labels.
    """
    if not label:
        return None

    normalized = " ".join(label.split()).upper()
    try:
        return ConditionGrade(normalized)
    except ValueError:
        pass

    grade = _ALIASES.get(normalized)
    if grade is None:
        logger.debug("condition_label_unknown", label=label)
    return grade


def grade_rank(label: str | None) -> int:
    """
    Rank a label by quality: 0 for NM/M up to 4 for PR.

    Unknown labels rank after every known grade.
    """
    grade = parse_grade(label)
    if grade is None:
        return len(QUALITY_ORDER)
    return QUALITY_ORDER.index(grade)
