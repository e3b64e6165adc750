"""
Building directory and grouping of normalized records by building.

The directory is the only source of display data (name, address) and of
"directory order", which the aggregator uses so that rollups come out in a
deterministic order before ranking.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from compliance_core.models import Building
from compliance_core.records import NormalizedRecord

logger = logging.getLogger(__name__)


class BuildingInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str = ""


class BuildingDirectory(Mapping[str, BuildingInfo]):
    """Read-only ``building_id -> BuildingInfo`` mapping kept in directory order.

    A later entry with an id already seen replaces the earlier one's data but
    keeps its original position.
    """

    def __init__(self, buildings: Iterable[BuildingInfo] = ()):
        self._buildings: Dict[str, BuildingInfo] = {}
        for building in buildings:
            self._buildings[building.id] = building

    def __getitem__(self, building_id: str) -> BuildingInfo:
        return self._buildings[building_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._buildings)

    def __len__(self) -> int:
        return len(self._buildings)

    def __repr__(self) -> str:
        return f"BuildingDirectory({list(self._buildings)})"


def index_records(
    records: Iterable[NormalizedRecord], directory: Mapping[str, BuildingInfo]
) -> Dict[str, List[NormalizedRecord]]:
    """Group records by building, dropping records for buildings not in the directory."""
    grouped: Dict[str, List[NormalizedRecord]] = {}
    dropped = 0
    for record in records:
        if record.building_id not in directory:
            dropped += 1
            continue
        grouped.setdefault(record.building_id, []).append(record)
    if dropped:
        logger.debug("Dropped %d records for buildings not in the directory", dropped)
    return grouped


def restrict_scope(
    grouped: Dict[str, List[NormalizedRecord]], scope: Optional[str]
) -> Dict[str, List[NormalizedRecord]]:
    if scope is None:
        return grouped
    if scope in grouped:
        return {scope: grouped[scope]}
    return {}


def load_directory(db: Session) -> BuildingDirectory:
    rows = db.query(Building).order_by(Building.position, Building.id).all()
    return BuildingDirectory(
        BuildingInfo(id=row.id, name=row.name, address=row.address or "") for row in rows
    )


def save_directory(db: Session, buildings: Iterable[BuildingInfo]) -> BuildingDirectory:
    """Replace the stored directory, keeping the given order."""
    directory = BuildingDirectory(buildings)
    db.query(Building).delete()
    for position, building in enumerate(directory.values()):
        db.add(
            Building(
                id=building.id,
                name=building.name,
                address=building.address,
                position=position,
            )
        )
    db.commit()
    return directory
