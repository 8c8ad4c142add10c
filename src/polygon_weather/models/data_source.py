"""
Data source models.

A data source names the archive field a polygon is measured by and the
rules used to colour it.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

from .rule import ColorRule


@dataclass(frozen=True)
class DataSource:
    """Named external metric plus its colour rules."""

    id: str
    name: str
    field: str
    rules: Tuple[ColorRule, ...] = ()
    api_endpoint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "field": self.field,
            "rules": [rule.to_dict() for rule in self.rules],
            "api_endpoint": self.api_endpoint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataSource":
        raw_rules = data.get("rules", data.get("colorRules", []))
        return cls(
            id=data["id"],
            name=data["name"],
            field=data["field"],
            rules=tuple(ColorRule.from_dict(rule) for rule in raw_rules),
            api_endpoint=data.get("api_endpoint"),
        )
