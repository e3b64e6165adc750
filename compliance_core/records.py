"""
Record value objects shared by every stage of the rollup pipeline.

Raw records arrive from the fetch layer already deserialized; normalized
records are what the index, window filter and aggregator operate on. All of
them are frozen pydantic models so they can be handed across threads or
serialized straight into an HTTP response.
"""
from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class Agency(str, Enum):
    PERMIT = "permit"
    SANITATION_VIOLATION = "sanitation_violation"
    HOUSING_VIOLATION = "housing_violation"
    EMISSIONS_FILING = "emissions_filing"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RawViolationRecord(BaseModel):
    """One agency record before normalization.

    ``status_flag`` keeps the agency's own polarity: ``is_expired`` for
    permits, ``is_active`` for sanitation and housing violations and
    ``is_compliant`` for emissions filings.
    """

    model_config = ConfigDict(frozen=True)

    agency: Agency
    building_id: str
    raw_date: Optional[str] = None
    status_flag: Union[bool, str, None] = None
    record_id: Optional[str] = None
    description: Optional[str] = None
    status_text: Optional[str] = None
    fine_amount: Optional[float] = None


class NormalizedRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    building_id: str
    date: Optional[datetime] = None
    is_active: bool
    agency: Agency
    record_id: Optional[str] = None
    severity: Optional[Severity] = None
    fine_amount: Optional[float] = None
