"""Attach customer, plan and subscription snapshots to listing rows."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from app.application.services import time_accounting as ta
from app.domain.errors import ValidationError
from app.domain.models import (
    Customer,
    Session,
    Status,
    SubscriptionActive,
    SubscriptionPlan,
    format_ts,
)


def _index(items: Iterable) -> Dict[int, object]:
    return {i.id: i for i in items}


def _customer_view(c: Optional[Customer]) -> dict:
    if c is None:
        return {"first_name": "Unknown", "last_name": "Unknown"}
    return {"id": c.id, "first_name": c.first_name, "last_name": c.last_name}


def _plan_view(p: Optional[SubscriptionPlan]) -> dict:
    if p is None:
        return {"name": "Custom", "type": "Custom", "price": 0, "minutes": None, "day_passes": None}
    return {
        "id": p.id,
        "name": p.name,
        "type": p.plan_type,
        "price": p.price,
        "minutes": p.time_included,
        "day_passes": p.days_included,
        "expiry_duration": p.expiry_duration,
    }


def enrich_sessions(sessions: List[Session], customers: List[Customer], plans: List[SubscriptionPlan],
                    subscriptions: List[SubscriptionActive], now: datetime) -> List[dict]:
    by_customer, by_plan, by_sub = _index(customers), _index(plans), _index(subscriptions)
    out = []
    for s in sessions:
        plan = by_plan.get(s.plan_id) if s.plan_id is not None else None
        sub = by_sub.get(s.subscription_id) if s.subscription_id is not None else None
        row = s.to_row()
        row["state"] = s.state.value
        row["customer"] = _customer_view(by_customer.get(s.customer_id))
        row["plan"] = _plan_view(plan)
        row["plan_type"] = plan.plan_type if plan else None
        row["subscription"] = None if sub is None else {
            "time_left": sub.time_left,
            "days_left": sub.days_left,
            "expiry_date": format_ts(sub.expiry_date),
        }
        if s.is_open:
            try:
                row["accounting"] = ta.snapshot(s, plan, sub, now).to_dict()
            except ValidationError:
                # plan or subscription row vanished from the reference lists
                row["accounting"] = None
        else:
            row["accounting"] = None
        out.append(row)
    return out


def enrich_subscriptions(subscriptions: List[SubscriptionActive], customers: List[Customer],
                         plans: List[SubscriptionPlan], now: datetime) -> List[dict]:
    by_customer, by_plan = _index(customers), _index(plans)
    out = []
    for sub in subscriptions:
        plan = by_plan.get(sub.plan_id)
        remaining = ta.remaining_for_bundle(sub, None, now, plan)
        row = sub.to_row()
        row["customer"] = _customer_view(by_customer.get(sub.customer_id))
        row["plan_name"] = plan.name if plan else "Custom"
        row["status"] = remaining.status.value
        row["remaining"] = remaining.to_dict()
        out.append(row)
    return out


def expired_only(rows: List[dict]) -> List[dict]:
    return [r for r in rows if r["status"] == Status.EXPIRED.value]
