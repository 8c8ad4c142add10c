"""
Colour rule evaluation.

Maps a polygon value to a display colour. Rules are tried in ascending
threshold order, not in the order they were added, and the first rule whose
comparison holds wins. Rules sharing a threshold keep their insertion order.
"""

from typing import Sequence

from ..core import constants
from ..models import ColorRule


def evaluate_rule(value: float, rule: ColorRule) -> bool:
    """
    Check whether a value satisfies a rule.

    Equality is exact, no tolerance is applied.

    Args:
        value: Polygon value
        rule: Colour rule

    Returns:
        True if the comparison holds
    """
    operator = rule.operator
    if operator == "=":
        return value == rule.threshold
    if operator == "<":
        return value < rule.threshold
    if operator == ">":
        return value > rule.threshold
    if operator == "<=":
        return value <= rule.threshold
    if operator == ">=":
        return value >= rule.threshold
    return False


def classify(
    value: float,
    rules: Sequence[ColorRule],
    default: str = constants.DEFAULT_COLOR
) -> str:
    """
    Get the display colour for a value.

    Args:
        value: Polygon value
        rules: Colour rules in any order
        default: Colour returned when no rule matches

    Returns:
        Colour of the first matching rule by ascending threshold, else the default
    """
    for rule in sorted(rules, key=lambda r: r.threshold):
        if evaluate_rule(value, rule):
            return rule.color
    return default
