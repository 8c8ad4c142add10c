"""
Colour rule data models.

Contains DTOs for threshold rules that map a polygon value to a display colour.
"""

from dataclasses import dataclass
from typing import Dict, Any

OPERATORS = ("=", "<", ">", "<=", ">=")


@dataclass(frozen=True)
class ColorRule:
    """Threshold comparison mapped to a display colour."""

    operator: str
    threshold: float
    color: str
    label: str = ""

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ValueError(
                f"Unknown rule operator {self.operator!r}, expected one of {', '.join(OPERATORS)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator": self.operator,
            "threshold": self.threshold,
            "color": self.color,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColorRule":
        # "value" is accepted for snapshots written by older dashboards
        threshold = data.get("threshold", data.get("value"))
        if threshold is None:
            raise ValueError(f"Colour rule without threshold: {data}")
        return cls(
            operator=data["operator"],
            threshold=float(threshold),
            color=data["color"],
            label=data.get("label", ""),
        )
