from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

EVENT_TYPES = (
    "landing_view",
    "estimate_generated",
    "checkout_started",
    "payment_confirmed",
    "policy_pack_exported",
)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class EstimateSession(Base):
    __tablename__ = "estimate_sessions"
    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(sa.String(40), nullable=False)
    self_test: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    budget_usd: Mapped[float] = mapped_column(sa.Float, nullable=False)
    monthly_runs: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    monthly_cost_usd: Mapped[float] = mapped_column(sa.Float, nullable=False)
    policy_mode: Mapped[str] = mapped_column(sa.String(8), nullable=False)
    policy_decision: Mapped[str] = mapped_column(sa.String(8), nullable=False)
    # set by checkout, then by a confirmed payment proof
    checkout_started_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    payment_proof: Mapped[Optional[str]] = mapped_column(sa.String(128), nullable=True)


class Event(Base):
    __tablename__ = "events"
    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    event_type: Mapped[str] = mapped_column(sa.String(32), nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(sa.String(40), nullable=False)
    self_test: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    session_id: Mapped[Optional[str]] = mapped_column(
        sa.String(36), sa.ForeignKey("estimate_sessions.id", ondelete="SET NULL"), nullable=True
    )
    details: Mapped[dict] = mapped_column(sa.JSON, nullable=False, default=dict)
