"""Time accounting for lounge sessions and subscriptions.

Everything here is pure: callers pass ``now`` explicitly and get values back,
no record is mutated and nothing is persisted. ``now`` and the stored
timestamps must be timezone-aware.

Rounding policy, in one place:
- elapsed time is truncated to whole minutes and never negative;
- hourly billing rounds elapsed time *up* to the next whole hour;
- bundle time balances are decremented by the *truncated* elapsed minutes;
- day passes are consumed one whole unit per session.

A bundle subscription is expired when its balance is exhausted OR its
expiry date has passed, whichever comes first.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, time
from typing import Optional

from app.domain.errors import ValidationError
from app.domain.models import (
    AccountingSnapshot,
    HourlyBill,
    Remaining,
    Session,
    Status,
    SubscriptionActive,
    SubscriptionPlan,
)


def parse_hhmm(value: str) -> time:
    """Parse ``HH:MM`` (seconds, if present, are ignored). Raises ValueError."""
    raw = (value or "").strip()[:5]
    if len(raw) != 5 or raw[2] != ":" or not (raw[:2].isdigit() and raw[3:].isdigit()):
        raise ValueError(f"invalid time '{value}', expected HH:MM")
    return time(int(raw[:2]), int(raw[3:]))


def elapsed_minutes(session: Session, now: datetime) -> int:
    """Whole minutes since the session started; clamped to 0 on clock skew."""
    seconds = (now - session.start_time).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)


def bill_hourly(session: Session, plan: SubscriptionPlan, now: datetime) -> HourlyBill:
    """Pay-as-you-go bill: every started hour is charged in full."""
    mins = elapsed_minutes(session, now)
    hours = math.ceil(mins / 60)
    return HourlyBill(
        elapsed_minutes=mins,
        billed_hours=hours,
        rate=plan.price,
        amount_due=round(hours * plan.price, 2),
    )


def _allotment(allotted: int, session: Session, now: datetime) -> Remaining:
    left = allotted - elapsed_minutes(session, now)
    if left <= 0:
        return Remaining(Status.EXPIRED, minutes=0)
    return Remaining(Status.ACTIVE, minutes=left)


def remaining_for_straight(session: Session, plan: SubscriptionPlan, now: datetime) -> Remaining:
    return _allotment(int(plan.time_included or 0), session, now)


def within_valid_hours(plan: SubscriptionPlan, now: datetime) -> bool:
    if not plan.time_valid_start or not plan.time_valid_end:
        return True
    start, end = parse_hhmm(plan.time_valid_start), parse_hhmm(plan.time_valid_end)
    current = now.time().replace(second=0, microsecond=0, tzinfo=None)
    return start <= current < end


def remaining_for_timed(session: Session, plan: SubscriptionPlan, now: datetime) -> Remaining:
    """Timed plans with an allotment behave like straight plans; otherwise
    the session may run until the end of the plan's valid-hours window."""
    if plan.time_included is not None:
        return remaining_for_straight(session, plan, now)
    end = parse_hhmm(plan.time_valid_end)
    window_end = now.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
    left = int((window_end - now).total_seconds() // 60)
    if left <= 0 or not within_valid_hours(plan, now):
        return Remaining(Status.EXPIRED, minutes=0)
    return Remaining(Status.ACTIVE, minutes=left)


def remaining_for_custom(session: Session, now: datetime) -> Remaining:
    if session.custom_minutes is None:
        return Remaining(Status.NO_EXPIRY)
    return _allotment(int(session.custom_minutes), session, now)


def uses_day_passes(subscription: SubscriptionActive, plan: Optional[SubscriptionPlan] = None) -> bool:
    if plan is not None and plan.plan_type == "bundle":
        return plan.days_included is not None
    return subscription.time_left is None and subscription.days_left is not None


def _past_expiry(subscription: SubscriptionActive, now: datetime) -> bool:
    return subscription.expiry_date is not None and now > subscription.expiry_date


def remaining_for_bundle(subscription: SubscriptionActive, session: Optional[Session], now: datetime,
                         plan: Optional[SubscriptionPlan] = None) -> Remaining:
    """Projected balance of a bundle subscription.

    For time bundles the minutes elapsed in ``session`` (if any) are
    subtracted for display only; the stored balance only moves at logout.
    Day passes are shown as-is since one is consumed whole at logout.
    """
    expired_by_date = _past_expiry(subscription, now)

    if uses_day_passes(subscription, plan):
        days = int(subscription.days_left or 0)
        status = Status.EXPIRED if days <= 0 or expired_by_date else Status.ACTIVE
        return Remaining(status, days=max(0, days))

    if subscription.time_left is not None:
        projected = int(subscription.time_left) - (elapsed_minutes(session, now) if session else 0)
        status = Status.EXPIRED if projected <= 0 or expired_by_date else Status.ACTIVE
        return Remaining(status, minutes=max(0, projected))

    # no balance configured at all: only the date can expire it
    if expired_by_date:
        return Remaining(Status.EXPIRED)
    return Remaining(Status.ACTIVE if subscription.expiry_date else Status.NO_EXPIRY)


def status_badge(plan: Optional[SubscriptionPlan], subscription: Optional[SubscriptionActive],
                 now: datetime) -> Status:
    """Active / Expired / NoExpiry for the UI.

    Without a subscription there is nothing that can run out (hourly, custom
    or not-yet-purchased plans), so the badge is NoExpiry.
    """
    if subscription is None:
        return Status.NO_EXPIRY
    return remaining_for_bundle(subscription, None, now, plan).status


def decrement_subscription(subscription: SubscriptionActive, elapsed: int,
                           plan: Optional[SubscriptionPlan] = None) -> SubscriptionActive:
    """Balance after one session: one day pass, or the elapsed minutes, never below zero."""
    if uses_day_passes(subscription, plan):
        return replace(subscription, days_left=max(0, int(subscription.days_left or 0) - 1))
    if subscription.time_left is None:
        return subscription
    return replace(subscription, time_left=max(0, int(subscription.time_left) - max(0, elapsed)))


def snapshot(session: Session, plan: Optional[SubscriptionPlan],
             subscription: Optional[SubscriptionActive], now: datetime) -> AccountingSnapshot:
    """Accounting for one session at ``now``, whatever funds it."""
    mins = elapsed_minutes(session, now)

    if subscription is not None:
        return AccountingSnapshot("bundle", mins, remaining_for_bundle(subscription, session, now, plan))

    if plan is None:
        amount = float(session.price or 0)
        return AccountingSnapshot("custom", mins, remaining_for_custom(session, now), amount_due=amount)

    if plan.plan_type == "hourly":
        bill = bill_hourly(session, plan, now)
        return AccountingSnapshot("hourly", mins, Remaining(Status.NO_EXPIRY),
                                  amount_due=bill.amount_due, bill=bill)
    if plan.plan_type == "straight":
        return AccountingSnapshot("straight", mins, remaining_for_straight(session, plan, now))
    if plan.plan_type == "timed":
        return AccountingSnapshot("timed", mins, remaining_for_timed(session, plan, now))

    raise ValidationError(
        f"session {session.id} uses bundle plan {plan.id} without a subscription",
        code="bundle_session_without_subscription",
    )
