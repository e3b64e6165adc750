"""
Compliance scoring.

Each agency contributes ``1 - active/total``; agencies are combined as a
weighted mean using the policy's weights. Agencies with no records do not take
part, and a set with no records at all scores 1.0.
"""
from __future__ import annotations
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compliance_core.records import Agency
from compliance_core.settings import settings

# (max active count, grade)
GRADE_THRESHOLDS = [(0, "A"), (2, "B"), (5, "C")]


class AgencyCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    agency: Agency
    active_count: int = 0
    total_count: int = 0


class ScoringPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    weights: Dict[Agency, float] = Field(default_factory=lambda: {a: 1.0 for a in Agency})

    @field_validator("weights")
    @classmethod
    def _non_negative(cls, weights: Dict[Agency, float]) -> Dict[Agency, float]:
        for agency, weight in weights.items():
            if weight < 0:
                raise ValueError(f"Weight for '{agency.value}' must not be negative")
        return weights

    def weight_for(self, agency: Agency) -> float:
        return self.weights.get(agency, 1.0)


def default_policy() -> ScoringPolicy:
    return ScoringPolicy(
        weights={
            Agency.PERMIT: settings.weight_permit,
            Agency.SANITATION_VIOLATION: settings.weight_sanitation_violation,
            Agency.HOUSING_VIOLATION: settings.weight_housing_violation,
            Agency.EMISSIONS_FILING: settings.weight_emissions_filing,
        }
    )


def agency_ratio(active_count: int, total_count: int) -> float:
    if total_count <= 0:
        return 1.0
    return min(1.0, max(0.0, 1.0 - active_count / total_count))


def compliance_score(
    counts: Iterable[AgencyCounts], policy: Optional[ScoringPolicy] = None
) -> float:
    policy = policy or ScoringPolicy()
    weighted = 0.0
    total_weight = 0.0
    for c in counts:
        if c.total_count <= 0:
            continue
        weight = policy.weight_for(c.agency)
        weighted += weight * agency_ratio(c.active_count, c.total_count)
        total_weight += weight
    if total_weight <= 0:
        return 1.0
    return min(1.0, max(0.0, weighted / total_weight))


def letter_grade(active_count: int) -> str:
    for limit, grade in GRADE_THRESHOLDS:
        if active_count <= limit:
            return grade
    return "D"
