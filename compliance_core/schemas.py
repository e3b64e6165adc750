from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from compliance_core.aggregator import BuildingRollup, PortfolioRollup
from compliance_core.directory import BuildingInfo
from compliance_core.records import Agency, NormalizedRecord, RawViolationRecord


class AgencyPayload(BaseModel):
    agency: str
    payload: Dict[str, Any]


class NormalizeRequest(BaseModel):
    records: List[AgencyPayload]
    now: Optional[datetime] = None


class NormalizeResult(BaseModel):
    success: bool
    record: Optional[NormalizedRecord] = None
    error: Optional[str] = None


class NormalizeResponse(BaseModel):
    total_count: int
    success_count: int
    failed_count: int
    results: List[NormalizeResult]


class RollupRequest(BaseModel):
    records: List[RawViolationRecord] = Field(default_factory=list)
    payloads: List[AgencyPayload] = Field(default_factory=list)
    buildings: Optional[List[BuildingInfo]] = None
    window: Optional[str] = None
    lifetime: bool = False
    scope: Optional[str] = None
    agencies: Optional[List[Agency]] = None
    now: Optional[datetime] = None


class RollupResponse(BaseModel):
    window: Optional[str] = None
    window_label: Optional[str] = None
    rollups: List[BuildingRollup]
    portfolio: PortfolioRollup


class WindowSchema(BaseModel):
    key: str
    unit: str
    count: int
    label: str


class HealthResponse(BaseModel):
    status: str
    version: str
