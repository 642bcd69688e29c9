"""
Pipeline KPIs - Dashboard Aggregates over Opportunity Records.

Pure functions over already-fetched records. Soft-deleted records are
always excluded. Time windows are relative to the ``now`` argument so
results are reproducible in tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from opportunity_engine.domain.entities import Opportunity, OpportunityStage
from opportunity_engine.domain.value_objects import PipelineKPIs

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def _live(records: Iterable[Opportunity]) -> List[Opportunity]:
    return [r for r in records if not r.is_deleted]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _since(value: Optional[datetime], start: datetime) -> bool:
    return value is not None and _as_utc(value) >= start


def group_by_stage(records: Iterable[Opportunity]) -> Dict[OpportunityStage, List[Opportunity]]:
    """
    Group live records by stage.

    Every stage is present, in pipeline order, even when empty.
    """
    groups: Dict[OpportunityStage, List[Opportunity]] = {stage: [] for stage in OpportunityStage}
    for record in _live(records):
        groups[record.stage].append(record)
    return groups


def compute_pipeline_kpis(
    records: Iterable[Opportunity],
    now: Optional[datetime] = None,
) -> PipelineKPIs:
    """
    Compute dashboard KPIs.

    Args:
        records: Opportunity records (deleted ones are ignored)
        now: Reference time for the weekly/monthly windows

    Returns:
        PipelineKPIs. Average probability covers active (not won)
        records; conversion rate is won over total. Both are rounded
        whole percentages. A record counts as won this month or closed
        this week by its ``updated_at``.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    week_start = now - WEEK
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    live = _live(records)
    won = [r for r in live if r.is_won]
    active = [r for r in live if not r.is_won]

    average_probability = 0
    if active:
        average_probability = round(sum(r.probability_percent for r in active) / len(active))

    conversion_rate = 0
    if live:
        conversion_rate = round(len(won) * 100 / len(live))

    distribution = {stage: len(items) for stage, items in group_by_stage(live).items()}

    kpis = PipelineKPIs(
        total_opportunities=len(live),
        active_opportunities=len(active),
        won_opportunities=len(won),
        average_probability=average_probability,
        conversion_rate=conversion_rate,
        won_this_month=sum(1 for r in won if _since(r.updated_at, month_start)),
        created_this_week=sum(1 for r in live if _since(r.created_at, week_start)),
        updated_this_week=sum(1 for r in live if _since(r.updated_at, week_start)),
        closed_this_week=sum(1 for r in won if _since(r.updated_at, week_start)),
        stage_distribution=distribution,
    )
    logger.debug(f"Computed KPIs over {kpis.total_opportunities} live opportunities")
    return kpis
