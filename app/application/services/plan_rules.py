"""Validation of plan payloads and start-session funding choices."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from app.application.services.time_accounting import parse_hhmm
from app.domain.errors import ValidationError
from app.domain.models import (
    BRANCHES,
    PLAN_TYPES,
    CustomFunding,
    PlanFunding,
    SubscriptionFunding,
    SubscriptionPlan,
)

FundingChoice = Union[PlanFunding, SubscriptionFunding, CustomFunding]

# only is_active may change while a plan is referenced
MUTABLE_WHEN_IN_USE = {"is_active"}
PLAN_FIELDS = {
    "name", "plan_type", "price", "is_active", "time_included", "days_included",
    "expiry_duration", "time_valid_start", "time_valid_end", "available_at",
}


def _opt_int(data: Dict[str, Any], key: str) -> Optional[int]:
    v = data.get(key)
    if v is None or v == "":
        return None
    try:
        n = int(v)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a whole number", code=f"invalid_{key}")
    if n < 0:
        raise ValidationError(f"{key} cannot be negative", code=f"invalid_{key}")
    return n


def _price(v: Any) -> float:
    try:
        p = float(v)
    except (TypeError, ValueError):
        raise ValidationError("price must be a number", code="invalid_price")
    if p < 0:
        raise ValidationError("price cannot be lower than 0", code="invalid_price")
    return p


def _flag(data: Dict[str, Any], key: str, default: bool) -> bool:
    v = data.get(key, default)
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in ("true", "false"):
        return v.strip().lower() == "true"
    raise ValidationError(f"{key} must be true or false", code=f"invalid_{key}")


def _hhmm(data: Dict[str, Any], key: str) -> Optional[str]:
    v = data.get(key)
    if v is None or v == "":
        return None
    try:
        return parse_hhmm(str(v)).strftime("%H:%M")
    except ValueError:
        raise ValidationError(f"{key} must be in HH:MM format", code=f"invalid_{key}")


def check_plan(plan: SubscriptionPlan) -> SubscriptionPlan:
    """Enforce the per-type configuration rules on a parsed plan."""
    if len(plan.name) < 2:
        raise ValidationError("plan name is too short", code="invalid_name")
    if plan.plan_type not in PLAN_TYPES:
        raise ValidationError(f"plan_type must be one of {', '.join(PLAN_TYPES)}", code="invalid_plan_type")
    if not plan.available_at:
        raise ValidationError("plan must be available at one branch at least", code="invalid_available_at")
    unknown = [b for b in plan.available_at if b not in BRANCHES]
    if unknown:
        raise ValidationError(f"unknown branch: {', '.join(unknown)}", code="invalid_available_at")

    if plan.plan_type == "bundle":
        if (plan.time_included is None) == (plan.days_included is None):
            raise ValidationError("bundle plans need exactly one of time_included or days_included",
                                  code="invalid_bundle_allotment")
        if plan.expiry_duration is None:
            raise ValidationError("bundle plans need expiry_duration", code="missing_expiry_duration")
        if plan.expiry_duration < 1:
            raise ValidationError("expiry_duration must be at least one day", code="invalid_expiry_duration")
    elif plan.plan_type == "straight":
        if plan.time_included is None:
            raise ValidationError("straight plans need time_included", code="missing_time_included")
    elif plan.plan_type == "timed":
        if not plan.time_valid_start or not plan.time_valid_end:
            raise ValidationError("timed plans need a valid-hours window", code="missing_time_window")
        if parse_hhmm(plan.time_valid_start) >= parse_hhmm(plan.time_valid_end):
            raise ValidationError("time_valid_start must be before time_valid_end", code="invalid_time_window")
    return plan


def parse_plan(data: Dict[str, Any]) -> SubscriptionPlan:
    if not isinstance(data, dict):
        raise ValidationError("plan payload must be an object", code="invalid_payload")
    if "price" not in data:
        raise ValidationError("price is required", code="missing_price")
    available = data.get("available_at") or []
    if isinstance(available, str):
        available = [available]
    plan = SubscriptionPlan(
        id=None,
        name=(data.get("name") or data.get("plan_name") or "").strip(),
        plan_type=(data.get("plan_type") or "").strip().lower(),
        price=_price(data.get("price")),
        is_active=_flag(data, "is_active", True),
        time_included=_opt_int(data, "time_included"),
        days_included=_opt_int(data, "days_included"),
        expiry_duration=_opt_int(data, "expiry_duration"),
        time_valid_start=_hhmm(data, "time_valid_start"),
        time_valid_end=_hhmm(data, "time_valid_end"),
        available_at=[str(b).strip().lower() for b in available],
    )
    return check_plan(plan)


def parse_funding_choice(body: Dict[str, Any]) -> FundingChoice:
    """``{"kind": "plan", "plan_id": 3}`` | ``{"kind": "subscription", "subscription_id": 9}``
    | ``{"kind": "custom", "price": 120, "minutes": 90}``"""
    if not isinstance(body, dict):
        raise ValidationError("funding must be an object", code="invalid_funding")
    kind = (body.get("kind") or "").strip().lower()
    try:
        if kind == "plan":
            return PlanFunding(plan_id=int(body["plan_id"]))
        if kind == "subscription":
            return SubscriptionFunding(subscription_id=int(body["subscription_id"]))
        if kind == "custom":
            return CustomFunding(price=_price(body.get("price")), minutes=_opt_int(body, "minutes"))
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"missing or invalid reference for {kind} funding", code="invalid_funding")
    raise ValidationError("funding kind must be plan, subscription or custom", code="invalid_funding_kind")
