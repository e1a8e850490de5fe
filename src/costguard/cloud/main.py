from __future__ import annotations

import json
import logging
import re
import urllib.request
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from costguard.errors import EstimateError
from costguard.estimator import estimate
from costguard.policy import build_policy_pack, build_policy_snippet, build_recommendation
from costguard.sanitize import sanitize
from costguard.workflow_import import (
    WorkflowImportError,
    fetch_workflow_yaml,
    resolve_raw_workflow_url,
    sanitize_workflow_url,
)

from . import settings
from .db import make_engine, make_sessionmaker
from .models import Base, EstimateSession
from .store import add_event, add_session, daily_counts, event_counts, now_utc, session_count

log = logging.getLogger("costguard.cloud")

SERVICE_NAME = "actions-cost-guard"

_SOURCE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,39}$")
_PAYMENT_PROOF = re.compile(r"^[A-Za-z0-9_-]{8,128}$")


@dataclass
class ServiceError(Exception):
    """Transport-level failure returned to the client as {"error": kind}."""
    kind: str
    status_code: int = 400

    def __str__(self) -> str:
        return self.kind


# -------------------- Schemas --------------------

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(CamelModel):
    status: str
    service: str
    time: datetime


class StatusResponse(CamelModel):
    status: str


class CheckoutInfo(CamelModel):
    endpoint: str
    price_usd: float


class EstimateResponse(CamelModel):
    status: str
    session_id: str
    estimate: dict[str, Any]
    recommendation: str
    policy_snippet: str
    checkout: CheckoutInfo


class ImportResponse(CamelModel):
    status: str
    source_url: str
    workflow_yaml: str


class CheckoutResponse(CamelModel):
    status: str
    checkout_mode: str
    payment_url: str
    price_usd: float


class ConfirmResponse(CamelModel):
    status: str
    session_id: str
    paid_at: datetime


class PackFile(CamelModel):
    path: str
    content: str


class ExportResponse(CamelModel):
    status: str
    session_id: str
    files: list[PackFile]


class MetricsTotals(CamelModel):
    including_self_tests: dict[str, int]
    excluding_self_tests: dict[str, int]


class MetricsResponse(CamelModel):
    totals: MetricsTotals
    session_count: int
    generated_at: datetime


class DailyMetricsResponse(CamelModel):
    daily: dict[str, dict[str, int]]
    generated_at: datetime


# -------------------- Request helpers --------------------

def parse_bool(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return False


def normalize_source(value: Any, fallback: str = "web") -> str:
    if not isinstance(value, str):
        return fallback
    normalized = value.strip().lower()
    if not _SOURCE.match(normalized):
        return fallback
    return normalized


async def read_json_body(request: Request, max_bytes: int) -> dict[str, Any]:
    """
    Read the request body as a JSON object.

    Empty bodies read as {}. Raises ServiceError payload_too_large (413)
    past max_bytes and invalid_json for anything that is not an object.
    """
    chunks: list[bytes] = []
    total = 0
    async for chunk in request.stream():
        total += len(chunk)
        if total > max_bytes:
            raise ServiceError("payload_too_large", 413)
        chunks.append(chunk)

    raw = b"".join(chunks).decode("utf-8", errors="replace").strip()
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise ServiceError("invalid_json") from e
    if not isinstance(parsed, dict):
        raise ServiceError("invalid_json")
    return parsed


def session_id_from(body: dict[str, Any]) -> str:
    raw = body.get("sessionId")
    return raw.strip() if isinstance(raw, str) else ""


# -------------------- App --------------------

def create_app(
    *,
    database_url: Optional[str] = None,
    payment_url: Optional[str] = None,
    price_usd: Optional[float] = None,
    max_body_bytes: Optional[int] = None,
    workflow_opener: Optional[Callable[..., Any]] = None,
) -> FastAPI:
    app = FastAPI(title="Actions Cost Guard")

    engine = make_engine(database_url or settings.DATABASE_URL)
    SessionLocal = make_sessionmaker(engine)
    payment_url = payment_url or settings.PAYMENT_URL
    price_usd = settings.PRICE_USD if price_usd is None else price_usd
    max_body_bytes = max_body_bytes or settings.MAX_BODY_BYTES
    opener = workflow_opener or urllib.request.urlopen

    app.state.engine = engine
    app.state.sessionmaker = SessionLocal

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type"],
    )

    # -------------------- Errors --------------------

    def error_response(kind: str, status_code: int = 400) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content={"error": kind},
            headers={"cache-control": "no-store"},
        )

    @app.exception_handler(ServiceError)
    async def service_error(request: Request, exc: ServiceError):
        return error_response(exc.kind, exc.status_code)

    @app.exception_handler(EstimateError)
    async def estimate_error(request: Request, exc: EstimateError):
        return error_response(exc.kind)

    @app.exception_handler(WorkflowImportError)
    async def import_error(request: Request, exc: WorkflowImportError):
        return error_response(exc.kind)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response("not_found", 404)
        if exc.status_code == 405:
            return error_response("method_not_allowed", 405)
        return error_response("invalid_request", exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response("invalid_request")

    # -------------------- Startup --------------------

    @app.on_event("startup")
    async def startup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Database ready at %s", engine.url.render_as_string(hide_password=True))

    @app.on_event("shutdown")
    async def shutdown() -> None:
        await engine.dispose()

    # -------------------- Endpoints --------------------

    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok", service=SERVICE_NAME, time=now_utc())

    @app.post("/api/events/landing-view", response_model=StatusResponse)
    async def landing_view(request: Request):
        body = await read_json_body(request, max_body_bytes)
        user_agent = body.get("userAgent")

        async with SessionLocal() as s:
            async with s.begin():
                add_event(
                    s,
                    "landing_view",
                    source=normalize_source(body.get("source")),
                    self_test=parse_bool(body.get("selfTest")),
                    details={"userAgent": user_agent[:200] if isinstance(user_agent, str) else None},
                )
        return StatusResponse(status="ok")

    @app.post("/api/estimate", response_model=EstimateResponse)
    async def create_estimate(request: Request):
        body = await read_json_body(request, max_body_bytes)
        source = normalize_source(body.get("source"))
        self_test = parse_bool(body.get("selfTest"))

        result = estimate(sanitize(body))
        summary = result.summary

        async with SessionLocal() as s:
            async with s.begin():
                session = add_session(s, summary, source=source, self_test=self_test)
                await s.flush()
                add_event(
                    s,
                    "estimate_generated",
                    source=source,
                    self_test=self_test,
                    session_id=session.id,
                    details={
                        "monthlyCostUsd": summary.monthly_cost_usd,
                        "budgetUsd": summary.budget_usd,
                        "policyDecision": summary.policy_decision,
                    },
                )
                session_id = session.id

        log.info(
            "Estimate %s: $%.2f/month vs $%.2f budget -> %s",
            session_id,
            summary.monthly_cost_usd,
            summary.budget_usd,
            summary.policy_decision,
        )

        return EstimateResponse(
            status="ok",
            session_id=session_id,
            estimate=result.to_dict(),
            recommendation=build_recommendation(
                summary.policy_decision, summary.monthly_cost_usd, summary.budget_usd
            ),
            policy_snippet=build_policy_snippet(
                monthly_runs=summary.monthly_runs,
                monthly_cost_usd=summary.monthly_cost_usd,
                budget_usd=summary.budget_usd,
                policy_mode=summary.policy_mode,
                policy_decision=summary.policy_decision,
            ),
            checkout=CheckoutInfo(endpoint="/api/billing/checkout", price_usd=price_usd),
        )

    @app.post("/api/workflow/import", response_model=ImportResponse)
    async def import_workflow(request: Request):
        body = await read_json_body(request, max_body_bytes)
        workflow_url = sanitize_workflow_url(body)
        raw_url = resolve_raw_workflow_url(workflow_url)
        # urllib blocks; keep it off the event loop
        workflow_yaml = await run_in_threadpool(fetch_workflow_yaml, raw_url, opener)
        return ImportResponse(status="ok", source_url=raw_url, workflow_yaml=workflow_yaml)

    @app.post("/api/billing/checkout", response_model=CheckoutResponse)
    async def checkout(request: Request):
        body = await read_json_body(request, max_body_bytes)
        session_id = session_id_from(body)
        if not session_id:
            raise ServiceError("invalid_session_id")

        async with SessionLocal() as s:
            async with s.begin():
                session = await s.get(EstimateSession, session_id)
                if not session:
                    raise ServiceError("invalid_session_id")

                source = normalize_source(body.get("source"), session.source)
                self_test = parse_bool(body.get("selfTest")) or session.self_test

                if session.checkout_started_at is None:
                    session.checkout_started_at = now_utc()
                session.updated_at = now_utc()

                add_event(
                    s,
                    "checkout_started",
                    source=source,
                    self_test=self_test,
                    session_id=session_id,
                    details={
                        "monthlyCostUsd": session.monthly_cost_usd,
                        "budgetUsd": session.budget_usd,
                        "policyDecision": session.policy_decision,
                        "priceUsd": price_usd,
                    },
                )

        return CheckoutResponse(
            status="ok",
            checkout_mode="payment_link",
            payment_url=payment_url,
            price_usd=price_usd,
        )

    @app.post("/api/billing/confirm", response_model=ConfirmResponse)
    async def confirm_payment(request: Request):
        body = await read_json_body(request, max_body_bytes)
        session_id = session_id_from(body)
        if not session_id:
            raise ServiceError("invalid_session_id")

        proof = body.get("paymentProof")
        proof = proof.strip() if isinstance(proof, str) else ""
        if not _PAYMENT_PROOF.match(proof):
            raise ServiceError("invalid_payment_proof")

        async with SessionLocal() as s:
            async with s.begin():
                session = await s.get(EstimateSession, session_id)
                if not session:
                    raise ServiceError("invalid_session_id")
                if session.checkout_started_at is None:
                    raise ServiceError("checkout_not_started")

                if session.paid_at is None:
                    session.paid_at = now_utc()
                    session.payment_proof = proof
                    add_event(
                        s,
                        "payment_confirmed",
                        source=normalize_source(body.get("source"), session.source),
                        self_test=parse_bool(body.get("selfTest")) or session.self_test,
                        session_id=session_id,
                        details={"priceUsd": price_usd},
                    )
                session.updated_at = now_utc()
                paid_at = session.paid_at

        return ConfirmResponse(status="ok", session_id=session_id, paid_at=paid_at)

    @app.post("/api/policy-pack/export", response_model=ExportResponse)
    async def export_policy_pack(request: Request):
        body = await read_json_body(request, max_body_bytes)
        session_id = session_id_from(body)
        if not session_id:
            raise ServiceError("invalid_session_id")

        async with SessionLocal() as s:
            async with s.begin():
                session = await s.get(EstimateSession, session_id)
                if not session:
                    raise ServiceError("invalid_session_id")
                if session.paid_at is None:
                    raise ServiceError("payment_required", 402)

                files = build_policy_pack(
                    monthly_runs=session.monthly_runs,
                    monthly_cost_usd=session.monthly_cost_usd,
                    budget_usd=session.budget_usd,
                    policy_mode=session.policy_mode,
                    policy_decision=session.policy_decision,
                )
                add_event(
                    s,
                    "policy_pack_exported",
                    source=normalize_source(body.get("source"), session.source),
                    self_test=parse_bool(body.get("selfTest")) or session.self_test,
                    session_id=session_id,
                    details={"files": len(files)},
                )

        return ExportResponse(
            status="ok",
            session_id=session_id,
            files=[PackFile(**f) for f in files],
        )

    @app.get("/api/metrics", response_model=MetricsResponse)
    async def metrics():
        async with SessionLocal() as s:
            totals = MetricsTotals(
                including_self_tests=await event_counts(s),
                excluding_self_tests=await event_counts(s, self_test=False),
            )
            sessions = await session_count(s)
        return MetricsResponse(totals=totals, session_count=sessions, generated_at=now_utc())

    @app.get("/api/metrics/daily", response_model=DailyMetricsResponse)
    async def metrics_daily():
        async with SessionLocal() as s:
            daily = await daily_counts(s)
        return DailyMetricsResponse(daily=daily, generated_at=now_utc())

    return app
