from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from compliance_core import __version__
from compliance_core.database import get_db
from compliance_core.directory import BuildingDirectory, BuildingInfo, load_directory, save_directory
from compliance_core.normalizers import dispatch_payload, normalize
from compliance_core.pipeline import RollupQuery, run_query
from compliance_core.schemas import (
    HealthResponse,
    NormalizeRequest,
    NormalizeResponse,
    NormalizeResult,
    RollupRequest,
    RollupResponse,
    WindowSchema,
)
from compliance_core.scoring import default_policy
from compliance_core.settings import settings
from compliance_core.utils import utc_now
from compliance_core.windows import PRESET_WINDOWS, parse_window

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", version=__version__)


@router.get("/windows", response_model=List[WindowSchema])
def list_windows():
    return [
        WindowSchema(key=key, unit=w.unit, count=w.count, label=w.label)
        for key, w in PRESET_WINDOWS.items()
    ]


@router.post("/normalize", response_model=NormalizeResponse)
def normalize_batch(req: NormalizeRequest):
    now = req.now or utc_now()
    results = []
    success_count = 0
    for item in req.records:
        try:
            record = normalize(dispatch_payload(item.agency, item.payload, now))
            results.append(NormalizeResult(success=True, record=record))
            success_count += 1
        except ValueError as exc:
            results.append(NormalizeResult(success=False, error=str(exc)))
    return NormalizeResponse(
        total_count=len(req.records),
        success_count=success_count,
        failed_count=len(req.records) - success_count,
        results=results,
    )


@router.post("/rollups", response_model=RollupResponse)
def rollups(req: RollupRequest, db: Session = Depends(get_db)):
    now = req.now or utc_now()
    try:
        window = None if req.lifetime else parse_window(req.window or settings.default_window)
        raw_records = list(req.records) + [
            dispatch_payload(item.agency, item.payload, now) for item in req.payloads
        ]
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if req.buildings is not None:
        directory = BuildingDirectory(req.buildings)
    else:
        directory = load_directory(db)

    query = RollupQuery(
        window=window,
        scope=req.scope,
        agencies=set(req.agencies) if req.agencies is not None else None,
        now=now,
    )
    result = run_query(raw_records, directory, query, default_policy())
    return RollupResponse(
        window=window.key if window else None,
        window_label=window.label if window else None,
        rollups=result.rollups,
        portfolio=result.portfolio,
    )


@router.get("/buildings", response_model=List[BuildingInfo])
def list_buildings(db: Session = Depends(get_db)):
    return list(load_directory(db).values())


@router.put("/buildings", response_model=List[BuildingInfo])
def replace_buildings(buildings: List[BuildingInfo], db: Session = Depends(get_db)):
    return list(save_directory(db, buildings).values())


@router.get("/buildings/{building_id}", response_model=BuildingInfo)
def get_building(building_id: str, db: Session = Depends(get_db)):
    directory = load_directory(db)
    if building_id not in directory:
        raise HTTPException(status_code=404, detail="Building not found")
    return directory[building_id]
