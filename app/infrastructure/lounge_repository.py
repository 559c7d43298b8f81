from datetime import datetime
from typing import Any, Dict, List, Optional

from app.domain.errors import NotFoundError
from app.domain.models import Customer, Session, SubscriptionActive, SubscriptionPlan, format_ts
from app.domain.ports import IRecordStore

CUSTOMERS = "customers"
PLANS = "subscription_plans"
SUBSCRIPTIONS = "subscription_active"
SESSIONS = "sessions"
TRANSACTIONS = "transactions"
ACTION_LOGS = "action_logs"


class LoungeRepository:
    """Typed access to the lounge tables; every call is one independent request."""

    def __init__(self, store: IRecordStore):
        self._store = store

    def _one(self, table: str, record_id: int, what: str) -> Dict[str, Any]:
        rows = self._store.select(table, {"id": f"eq.{record_id}"}, limit=1)
        if not rows:
            raise NotFoundError(f"{what} {record_id} not found", code=f"{what}_not_found")
        return rows[0]

    # customers
    def get_customer(self, customer_id: int) -> Customer:
        return Customer.from_row(self._one(CUSTOMERS, customer_id, "customer"))

    def list_customers(self) -> List[Customer]:
        return [Customer.from_row(r) for r in self._store.select(CUSTOMERS, order="id.asc")]

    def insert_customer(self, customer: Customer) -> Customer:
        return Customer.from_row(self._store.insert(CUSTOMERS, customer.to_row()))

    def update_customer_totals(self, customer: Customer) -> None:
        self._store.update(CUSTOMERS, {"id": f"eq.{customer.id}"},
                           {"total_spent": customer.total_spent, "total_hours": customer.total_hours})

    # plans
    def get_plan(self, plan_id: int) -> SubscriptionPlan:
        return SubscriptionPlan.from_row(self._one(PLANS, plan_id, "plan"))

    def list_plans(self, active_only: bool = False) -> List[SubscriptionPlan]:
        filters = {"is_active": "eq.true"} if active_only else {}
        return [SubscriptionPlan.from_row(r) for r in self._store.select(PLANS, filters, order="id.asc")]

    def insert_plan(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        return SubscriptionPlan.from_row(self._store.insert(PLANS, plan.to_row()))

    def update_plan(self, plan_id: int, changes: Dict[str, Any]) -> SubscriptionPlan:
        rows = self._store.update(PLANS, {"id": f"eq.{plan_id}"}, changes)
        if not rows:
            raise NotFoundError(f"plan {plan_id} not found", code="plan_not_found")
        return SubscriptionPlan.from_row(rows[0])

    def delete_plan(self, plan_id: int) -> None:
        self._store.delete(PLANS, {"id": f"eq.{plan_id}"})

    # subscriptions
    def get_subscription(self, subscription_id: int) -> SubscriptionActive:
        return SubscriptionActive.from_row(self._one(SUBSCRIPTIONS, subscription_id, "subscription"))

    def list_subscriptions(self, customer_id: Optional[int] = None,
                           plan_id: Optional[int] = None) -> List[SubscriptionActive]:
        filters = {}
        if customer_id is not None:
            filters["customer_id"] = f"eq.{customer_id}"
        if plan_id is not None:
            filters["plan_id"] = f"eq.{plan_id}"
        rows = self._store.select(SUBSCRIPTIONS, filters, order="id.asc")
        return [SubscriptionActive.from_row(r) for r in rows]

    def insert_subscription(self, sub: SubscriptionActive) -> SubscriptionActive:
        return SubscriptionActive.from_row(self._store.insert(SUBSCRIPTIONS, sub.to_row()))

    def save_subscription_balance(self, sub: SubscriptionActive) -> None:
        self._store.update(SUBSCRIPTIONS, {"id": f"eq.{sub.id}"},
                           {"time_left": sub.time_left, "days_left": sub.days_left})

    # sessions
    def get_session(self, session_id: int) -> Session:
        return Session.from_row(self._one(SESSIONS, session_id, "session"))

    def list_sessions(self, open_only: bool = False, customer_id: Optional[int] = None,
                      plan_id: Optional[int] = None) -> List[Session]:
        filters = {}
        if open_only:
            filters["end_time"] = "is.null"
        if customer_id is not None:
            filters["customer_id"] = f"eq.{customer_id}"
        if plan_id is not None:
            filters["plan_id"] = f"eq.{plan_id}"
        rows = self._store.select(SESSIONS, filters, order="start_time.desc")
        return [Session.from_row(r) for r in rows]

    def insert_session(self, session: Session) -> Session:
        return Session.from_row(self._store.insert(SESSIONS, session.to_row()))

    def close_session(self, session_id: int, end_time: datetime) -> None:
        self._store.update(SESSIONS, {"id": f"eq.{session_id}"}, {"end_time": format_ts(end_time)})

    # logs
    def insert_transaction(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._store.insert(TRANSACTIONS, row)

    def list_transactions(self, limit: int, offset: int) -> List[Dict[str, Any]]:
        return self._store.select(TRANSACTIONS, order="date.desc", limit=limit, offset=offset)

    def list_action_logs(self, filters: Dict[str, str], limit: int, offset: int) -> List[Dict[str, Any]]:
        return self._store.select(ACTION_LOGS, filters, order="created_at.desc", limit=limit, offset=offset)
