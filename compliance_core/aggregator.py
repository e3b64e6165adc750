"""
Per-building and portfolio rollups, and the display ranking.
"""
from __future__ import annotations
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from compliance_core.directory import BuildingInfo
from compliance_core.records import Agency, NormalizedRecord, Severity
from compliance_core.scoring import AgencyCounts, ScoringPolicy, compliance_score, letter_grade


class BuildingRollup(BaseModel):
    model_config = ConfigDict(frozen=True)

    building: BuildingInfo
    active_count: int = 0
    total_count: int = 0
    by_agency: List[AgencyCounts] = Field(default_factory=list)
    critical_count: int = 0
    outstanding_fines: float = 0.0
    compliance_score: float = 1.0
    grade: str = "A"


class PortfolioRollup(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_active: int = 0
    total_count: int = 0
    building_count: int = 0
    by_agency: List[AgencyCounts] = Field(default_factory=list)
    critical_count: int = 0
    outstanding_fines: float = 0.0
    compliance_score: float = 1.0


def count_by_agency(records: Sequence[NormalizedRecord]) -> List[AgencyCounts]:
    """Active/total counts per agency, in agency declaration order, present agencies only."""
    active: Dict[Agency, int] = {}
    total: Dict[Agency, int] = {}
    for record in records:
        total[record.agency] = total.get(record.agency, 0) + 1
        if record.is_active:
            active[record.agency] = active.get(record.agency, 0) + 1
    return [
        AgencyCounts(agency=a, active_count=active.get(a, 0), total_count=total[a])
        for a in Agency
        if a in total
    ]


def _merge_counts(groups: Sequence[Sequence[AgencyCounts]]) -> List[AgencyCounts]:
    active: Dict[Agency, int] = {}
    total: Dict[Agency, int] = {}
    for counts in groups:
        for c in counts:
            active[c.agency] = active.get(c.agency, 0) + c.active_count
            total[c.agency] = total.get(c.agency, 0) + c.total_count
    return [
        AgencyCounts(agency=a, active_count=active[a], total_count=total[a])
        for a in Agency
        if a in total
    ]


def rollup_building(
    building: BuildingInfo,
    records: Sequence[NormalizedRecord],
    policy: Optional[ScoringPolicy] = None,
) -> BuildingRollup:
    active = [r for r in records if r.is_active]
    by_agency = count_by_agency(records)
    return BuildingRollup(
        building=building,
        active_count=len(active),
        total_count=len(records),
        by_agency=by_agency,
        critical_count=sum(1 for r in active if r.severity == Severity.CRITICAL),
        outstanding_fines=sum(r.fine_amount or 0.0 for r in active),
        compliance_score=compliance_score(by_agency, policy),
        grade=letter_grade(len(active)),
    )


def aggregate(
    grouped: Mapping[str, Sequence[NormalizedRecord]],
    directory: Mapping[str, BuildingInfo],
    policy: Optional[ScoringPolicy] = None,
) -> List[BuildingRollup]:
    """Roll up each building that has records, in directory order."""
    return [
        rollup_building(building, grouped[building_id], policy)
        for building_id, building in directory.items()
        if grouped.get(building_id)
    ]


def rank(rollups: Sequence[BuildingRollup]) -> List[BuildingRollup]:
    """Order by active count, highest first. Ties keep their incoming order."""
    return sorted(rollups, key=lambda r: r.active_count, reverse=True)


def portfolio_rollup(
    rollups: Sequence[BuildingRollup], policy: Optional[ScoringPolicy] = None
) -> PortfolioRollup:
    by_agency = _merge_counts([r.by_agency for r in rollups])
    return PortfolioRollup(
        total_active=sum(r.active_count for r in rollups),
        total_count=sum(r.total_count for r in rollups),
        building_count=len(rollups),
        by_agency=by_agency,
        critical_count=sum(r.critical_count for r in rollups),
        outstanding_fines=sum(r.outstanding_fines for r in rollups),
        compliance_score=compliance_score(by_agency, policy),
    )
