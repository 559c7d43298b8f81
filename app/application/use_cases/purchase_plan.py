"""Sell a bundle plan to a customer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.application.services import time_accounting as ta
from app.domain.errors import ConflictError, InconsistentStateError, ValidationError
from app.domain.models import BRANCHES, Status, SubscriptionActive
from app.domain.ports import IAuditLog
from app.infrastructure.lounge_repository import LoungeRepository
from app.shared.setup_logger import LOGGER

logger = LOGGER.get_logger(__name__)


@dataclass
class PurchasePlanInput:
    customer_id: int
    plan_id: int
    branch: str
    actor: Optional[str] = None


def execute(repo: LoungeRepository, audit: IAuditLog, args: PurchasePlanInput, now: datetime) -> SubscriptionActive:
    branch = (args.branch or "").strip().lower()
    if branch not in BRANCHES:
        raise ValidationError(f"unknown branch '{args.branch}'", code="invalid_branch")

    plan = repo.get_plan(args.plan_id)
    if plan.plan_type != "bundle" or not plan.is_active:
        raise ValidationError(f"plan {plan.id} is not an active bundle plan", code="not_a_bundle_plan")
    if plan.available_at and branch not in plan.available_at:
        raise ValidationError(f"plan '{plan.name}' is not sold at {branch}", code="plan_not_at_branch")
    customer = repo.get_customer(args.customer_id)

    for existing in repo.list_subscriptions(customer_id=customer.id, plan_id=plan.id):
        if ta.status_badge(plan, existing, now) != Status.EXPIRED:
            raise ConflictError(f"{customer.full_name} already holds a live '{plan.name}' subscription",
                                code="duplicate_subscription")

    expiry = now + timedelta(days=plan.expiry_duration) if plan.expiry_duration is not None else None
    sub = repo.insert_subscription(SubscriptionActive(
        id=None,
        customer_id=customer.id,
        plan_id=plan.id,
        created_at=now,
        expiry_date=expiry,
        time_left=plan.time_included,
        days_left=plan.days_included,
    ))
    logger.info("plan_purchase subscription=%s customer=%s plan=%s", sub.id, customer.id, plan.id)

    pending = []
    try:
        repo.insert_transaction({
            "customer_id": customer.id,
            "plan_id": plan.id,
            "total": plan.price,
            "date": now.isoformat(),
            "branch": branch,
            "staff": args.actor,
        })
    except Exception as e:
        logger.error("subscription=%s created but transaction not recorded: %s", sub.id, e)
        pending.append({"record": "transactions", "error": str(e)})
    try:
        customer.total_spent = round(customer.total_spent + plan.price, 2)
        repo.update_customer_totals(customer)
    except Exception as e:
        logger.error("subscription=%s created but customer=%s total not updated: %s", sub.id, customer.id, e)
        pending.append({"record": "customers", "id": customer.id, "error": str(e)})

    audit.record(
        "plan_purchase",
        f"{customer.full_name} purchased {plan.name}",
        {"subscription_id": sub.id, "customer_id": customer.id, "plan_id": plan.id,
         "price": plan.price, "branch": branch},
        actor=args.actor,
    )
    if pending:
        raise InconsistentStateError(
            f"subscription {sub.id} was created but {len(pending)} record(s) were not updated",
            details={"subscription_id": sub.id, "unsaved": pending},
        )
    return sub
