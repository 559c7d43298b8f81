"""Open a play session for a customer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.application.services import time_accounting as ta
from app.application.services.plan_rules import FundingChoice
from app.domain.errors import ConflictError, ValidationError
from app.domain.models import (
    BRANCHES,
    CustomFunding,
    PlanFunding,
    Session,
    Status,
    SubscriptionFunding,
)
from app.domain.ports import IAuditLog
from app.infrastructure.lounge_repository import LoungeRepository
from app.shared.setup_logger import LOGGER

logger = LOGGER.get_logger(__name__)

SESSION_PLAN_TYPES = {"straight", "hourly", "timed"}


@dataclass
class StartSessionInput:
    customer_id: int
    funding: FundingChoice
    branch: str
    actor: Optional[str] = None


def _fund_from_plan(repo: LoungeRepository, funding: PlanFunding, branch: str, now: datetime) -> dict:
    plan = repo.get_plan(funding.plan_id)
    if not plan.is_active:
        raise ValidationError(f"plan '{plan.name}' is no longer sold", code="plan_inactive")
    if plan.plan_type not in SESSION_PLAN_TYPES:
        raise ValidationError(f"{plan.plan_type} plans start sessions through a subscription",
                              code="plan_requires_subscription")
    if plan.available_at and branch not in plan.available_at:
        raise ValidationError(f"plan '{plan.name}' is not available at {branch}", code="plan_not_at_branch")
    if plan.plan_type == "timed":
        if not plan.time_valid_start or not plan.time_valid_end or \
                ta.parse_hhmm(plan.time_valid_start) >= ta.parse_hhmm(plan.time_valid_end):
            raise ValidationError(f"plan '{plan.name}' has a malformed valid-hours window",
                                  code="invalid_time_window")
        if not ta.within_valid_hours(plan, now):
            raise ValidationError(
                f"plan '{plan.name}' is only valid {plan.time_valid_start}-{plan.time_valid_end}",
                code="outside_valid_hours",
            )
    if plan.plan_type == "straight" and plan.time_included is None:
        raise ValidationError(f"plan '{plan.name}' has no included time", code="missing_time_included")
    return {"plan_id": plan.id}


def _fund_from_subscription(repo: LoungeRepository, funding: SubscriptionFunding,
                            customer_id: int, now: datetime) -> dict:
    sub = repo.get_subscription(funding.subscription_id)
    if sub.customer_id != customer_id:
        raise ValidationError(f"subscription {sub.id} belongs to another customer",
                              code="subscription_owner_mismatch")
    plan = repo.get_plan(sub.plan_id)
    if ta.status_badge(plan, sub, now) == Status.EXPIRED:
        raise ConflictError(f"subscription {sub.id} is expired", code="subscription_expired")
    return {"plan_id": plan.id, "subscription_id": sub.id}


def execute(repo: LoungeRepository, audit: IAuditLog, args: StartSessionInput, now: datetime) -> Session:
    branch = (args.branch or "").strip().lower()
    if branch not in BRANCHES:
        raise ValidationError(f"unknown branch '{args.branch}'", code="invalid_branch")

    customer = repo.get_customer(args.customer_id)

    # read-then-write: two terminals can still race here
    if repo.list_sessions(open_only=True, customer_id=customer.id):
        raise ConflictError(f"{customer.full_name} already has an open session", code="session_already_open")

    funding = args.funding
    refs: dict = {}
    if isinstance(funding, PlanFunding):
        refs = _fund_from_plan(repo, funding, branch, now)
    elif isinstance(funding, SubscriptionFunding):
        refs = _fund_from_subscription(repo, funding, customer.id, now)
    elif isinstance(funding, CustomFunding):
        refs = {"price": funding.price, "custom_minutes": funding.minutes}
    else:
        raise ValidationError("unsupported funding choice", code="invalid_funding")

    session = repo.insert_session(Session(
        id=None,
        customer_id=customer.id,
        start_time=now,
        branch=branch,
        **refs,
    ))
    logger.info("session_start session=%s customer=%s funding=%s", session.id, customer.id, funding.kind)

    audit.record(
        "session_start",
        f"Started {funding.kind} session for {customer.full_name}",
        {"session_id": session.id, "customer_id": customer.id, "branch": branch, **refs},
        actor=args.actor,
    )
    return session
