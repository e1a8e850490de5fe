from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from costguard.model import EstimateSummary

from .models import EVENT_TYPES, EstimateSession, Event, new_id


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def empty_counts() -> Dict[str, int]:
    return {event_type: 0 for event_type in EVENT_TYPES}


def add_event(
    s: AsyncSession,
    event_type: str,
    *,
    source: str,
    self_test: bool,
    session_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Event:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {event_type!r}")
    event = Event(
        event_type=event_type,
        timestamp=now_utc(),
        source=source,
        self_test=self_test,
        session_id=session_id,
        details={k: v for k, v in (details or {}).items() if v is not None},
    )
    s.add(event)
    return event


def add_session(
    s: AsyncSession,
    summary: EstimateSummary,
    *,
    source: str,
    self_test: bool,
) -> EstimateSession:
    now = now_utc()
    session = EstimateSession(
        id=new_id(),
        created_at=now,
        updated_at=now,
        source=source,
        self_test=self_test,
        budget_usd=summary.budget_usd,
        monthly_runs=summary.monthly_runs,
        monthly_cost_usd=summary.monthly_cost_usd,
        policy_mode=summary.policy_mode,
        policy_decision=summary.policy_decision,
    )
    s.add(session)
    return session


async def event_counts(s: AsyncSession, self_test: Optional[bool] = None) -> Dict[str, int]:
    """Events per type, optionally restricted to self-test or real traffic."""
    q = sa.select(Event.event_type, sa.func.count()).group_by(Event.event_type)
    if self_test is not None:
        q = q.where(Event.self_test == self_test)
    counts = empty_counts()
    for event_type, n in (await s.execute(q)).all():
        counts[event_type] = n
    return counts


async def daily_counts(s: AsyncSession) -> Dict[str, Dict[str, int]]:
    """Events per type bucketed by UTC day (YYYY-MM-DD)."""
    buckets: Dict[str, Dict[str, int]] = {}
    rows = await s.execute(sa.select(Event.timestamp, Event.event_type).order_by(Event.timestamp))
    for timestamp, event_type in rows.all():
        day = timestamp.date().isoformat()
        bucket = buckets.setdefault(day, empty_counts())
        bucket[event_type] = bucket.get(event_type, 0) + 1
    return buckets


async def session_count(s: AsyncSession) -> int:
    q = sa.select(sa.func.count()).select_from(EstimateSession)
    return (await s.execute(q)).scalar_one()
