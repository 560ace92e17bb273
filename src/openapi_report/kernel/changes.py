"""Change records produced by the semantic diff."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel


class ChangeSeverity(str, Enum):
    """Compatibility severity, ordered Breaking < Risky < Additive < Cosmetic."""

    BREAKING = "Breaking"
    RISKY = "Risky"
    ADDITIVE = "Additive"
    COSMETIC = "Cosmetic"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def base_risk(self) -> int:
        return _BASE_RISK[self]

    def __str__(self) -> str:
        return self.value


SEVERITY_ORDER: Tuple[ChangeSeverity, ...] = (
    ChangeSeverity.BREAKING,
    ChangeSeverity.RISKY,
    ChangeSeverity.ADDITIVE,
    ChangeSeverity.COSMETIC,
)

_SEVERITY_RANK = {severity: index for index, severity in enumerate(SEVERITY_ORDER)}

_BASE_RISK = {
    ChangeSeverity.BREAKING: 100,
    ChangeSeverity.RISKY: 60,
    ChangeSeverity.ADDITIVE: 20,
    ChangeSeverity.COSMETIC: 5,
}


@dataclass(frozen=True)
class ChangeRecord:
    """A single classified change between two contract documents."""
    severity: ChangeSeverity
    risk_score: int
    tag: str
    endpoint: str  # "METHOD /path" or "components.schemas.<name>"
    pointer: str  # Dotted location, e.g. paths./orders.get.parameters[id].required
    title: str
    before: str
    after: str
    meaning: str
    suggested_action: str

    @property
    def method(self) -> Optional[str]:
        """Method half of the endpoint, or None if the endpoint has no leading token."""
        index = self.endpoint.find(" ")
        if index <= 0:
            return None
        return self.endpoint[:index]

    @property
    def path(self) -> str:
        index = self.endpoint.find(" ")
        if index < 0 or index + 1 >= len(self.endpoint):
            return self.endpoint
        return self.endpoint[index + 1:]

    def to_dict(self) -> Dict:
        return {
            "category": self.severity.value,
            "title": self.title,
            "tag": self.tag,
            "endpoint": self.endpoint,
            "method": self.method,
            "path": self.path,
            "pointer": self.pointer,
            "before": self.before,
            "after": self.after,
            "meaning": self.meaning,
            "suggestedAction": self.suggested_action,
            "riskScore": self.risk_score,
        }


class DiffSummary(BaseModel):
    """Counts per severity for a change list."""
    breaking: int = 0
    risky: int = 0
    additive: int = 0
    cosmetic: int = 0
    total: int = 0
    top_by_risk: int = 0

    model_config = {"frozen": True}

    @property
    def has_breaking(self) -> bool:
        return self.breaking > 0
