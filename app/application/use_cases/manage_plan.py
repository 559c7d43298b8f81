"""Plan administration: create, adjust, deactivate and delete subscription plans."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from app.application.services import time_accounting as ta
from app.application.services.plan_rules import MUTABLE_WHEN_IN_USE, PLAN_FIELDS, parse_plan
from app.domain.errors import ConflictError, ValidationError
from app.domain.models import Status, SubscriptionPlan
from app.domain.ports import IAuditLog
from app.infrastructure.lounge_repository import LoungeRepository
from app.shared.setup_logger import LOGGER

logger = LOGGER.get_logger(__name__)


def plan_in_use(repo: LoungeRepository, plan: SubscriptionPlan, now: datetime) -> bool:
    if repo.list_sessions(open_only=True, plan_id=plan.id):
        return True
    return any(ta.status_badge(plan, s, now) != Status.EXPIRED
               for s in repo.list_subscriptions(plan_id=plan.id))


def create_plan(repo: LoungeRepository, audit: IAuditLog, payload: Dict[str, Any],
                now: datetime, actor: Optional[str] = None) -> SubscriptionPlan:
    plan = parse_plan(payload)
    plan.created_at = now
    saved = repo.insert_plan(plan)
    logger.info("create_plan plan=%s type=%s", saved.id, saved.plan_type)
    audit.record("create_plan", f"Created plan {saved.name}",
                 {"plan_id": saved.id, "plan_type": saved.plan_type, "price": saved.price}, actor=actor)
    return saved


def update_plan(repo: LoungeRepository, audit: IAuditLog, plan_id: int, changes: Dict[str, Any],
                now: datetime, actor: Optional[str] = None) -> SubscriptionPlan:
    if not isinstance(changes, dict) or not changes:
        raise ValidationError("nothing to update", code="empty_update")
    unknown = set(changes) - PLAN_FIELDS
    if unknown:
        raise ValidationError(f"unknown plan fields: {', '.join(sorted(unknown))}", code="unknown_fields")

    plan = repo.get_plan(plan_id)
    if set(changes) - MUTABLE_WHEN_IN_USE and plan_in_use(repo, plan, now):
        raise ConflictError(f"plan '{plan.name}' is in use; only its active flag can change", code="plan_in_use")

    merged = parse_plan({**plan.to_row(), **changes})
    row = merged.to_row()
    updated = repo.update_plan(plan.id, {k: row[k] for k in changes})
    logger.info("update_plan plan=%s fields=%s", plan.id, sorted(changes))
    audit.record("update_plan", f"Updated plan {updated.name}",
                 {"plan_id": plan.id, "fields": sorted(changes)}, actor=actor)
    return updated


def deactivate_plan(repo: LoungeRepository, audit: IAuditLog, plan_id: int,
                    now: datetime, actor: Optional[str] = None) -> SubscriptionPlan:
    return update_plan(repo, audit, plan_id, {"is_active": False}, now, actor=actor)


def delete_plan(repo: LoungeRepository, audit: IAuditLog, plan_id: int,
                actor: Optional[str] = None) -> None:
    plan = repo.get_plan(plan_id)
    if plan.is_active:
        raise ConflictError(f"plan '{plan.name}' is active; deactivate it first", code="plan_active")
    if repo.list_subscriptions(plan_id=plan.id) or repo.list_sessions(plan_id=plan.id):
        raise ConflictError(f"plan '{plan.name}' is referenced by sessions or subscriptions",
                            code="plan_referenced")
    repo.delete_plan(plan.id)
    logger.info("delete_plan plan=%s", plan.id)
    audit.record("delete_plan", f"Deleted plan {plan.name}", {"plan_id": plan.id}, actor=actor)
