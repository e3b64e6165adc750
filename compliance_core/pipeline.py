"""
End-to-end rollup query: normalize, index, scope, window, aggregate, rank.

Also holds the upstream fan-out helper. Each agency fetcher runs on its own
worker; one agency failing only means that agency contributes no records.
"""
from __future__ import annotations
import concurrent.futures
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Set

from pydantic import BaseModel, ConfigDict

from compliance_core.aggregator import BuildingRollup, PortfolioRollup, aggregate, portfolio_rollup, rank
from compliance_core.directory import BuildingInfo, index_records, restrict_scope
from compliance_core.normalizers import normalize_all
from compliance_core.records import Agency, RawViolationRecord
from compliance_core.scoring import ScoringPolicy
from compliance_core.settings import settings
from compliance_core.utils import utc_now
from compliance_core.windows import WindowSpec, windowed

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Iterable[RawViolationRecord]]


class RollupQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    window: Optional[WindowSpec] = None
    scope: Optional[str] = None
    agencies: Optional[Set[Agency]] = None
    now: Optional[datetime] = None


class QueryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    rollups: List[BuildingRollup]
    portfolio: PortfolioRollup


def run_query(
    raw_records: Iterable[RawViolationRecord],
    directory: Mapping[str, BuildingInfo],
    query: Optional[RollupQuery] = None,
    policy: Optional[ScoringPolicy] = None,
) -> QueryResult:
    query = query or RollupQuery()
    records = normalize_all(raw_records)
    if query.agencies is not None:
        records = [r for r in records if r.agency in query.agencies]

    grouped = restrict_scope(index_records(records, directory), query.scope)
    if query.window is not None:
        now = query.now if query.now is not None else utc_now()
        grouped = {
            building_id: windowed(items, query.window, now)
            for building_id, items in grouped.items()
        }

    rollups = aggregate(grouped, directory, policy)
    return QueryResult(rollups=rank(rollups), portfolio=portfolio_rollup(rollups, policy))


def _fetcher_name(fetcher: Fetcher) -> str:
    return getattr(fetcher, "__name__", repr(fetcher))


def collect_records(
    fetchers: Sequence[Fetcher], max_workers: Optional[int] = None
) -> List[RawViolationRecord]:
    """Run fetchers concurrently and concatenate their records in fetcher order."""
    if not fetchers:
        return []
    max_workers = max_workers or settings.fetch_max_workers
    results: List[List[RawViolationRecord]] = [[] for _ in fetchers]
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(fetcher): i for i, fetcher in enumerate(fetchers)}
        for future in concurrent.futures.as_completed(futures):
            i = futures[future]
            try:
                results[i] = list(future.result())
            except Exception as exc:
                logger.warning("Fetch failed for %s: %s", _fetcher_name(fetchers[i]), exc)
    return [record for batch in results for record in batch]
