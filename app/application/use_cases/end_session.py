"""Close a play session and settle it against its plan or subscription.

Order of writes: session ``end_time`` first, then the subscription balance,
then the customer totals. The storage backend only offers per-record writes,
so a failure after the session is closed is reported as
``InconsistentStateError`` and left for manual reconciliation; nothing is
rolled back. Closing first also means a repeated logout is rejected with
``AlreadyClosedError`` before any balance is touched again.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from app.application.services import time_accounting as ta
from app.domain.errors import AlreadyClosedError, InconsistentStateError, ValidationError
from app.domain.models import AccountingSnapshot, Session, SessionState, SubscriptionActive
from app.domain.ports import IAuditLog
from app.infrastructure.lounge_repository import LoungeRepository
from app.shared.setup_logger import LOGGER

logger = LOGGER.get_logger(__name__)


@dataclass
class EndSessionInput:
    session_id: int
    actor: Optional[str] = None


@dataclass
class EndSessionOutput:
    session: Session
    snapshot: AccountingSnapshot
    subscription: Optional[SubscriptionActive] = None

    def to_dict(self) -> dict:
        sub = self.subscription
        return {
            "ok": True,
            "session": self.session.to_row(),
            "accounting": self.snapshot.to_dict(),
            "subscription": sub.to_row() if sub else None,
        }


def execute(repo: LoungeRepository, audit: IAuditLog, args: EndSessionInput, now: datetime) -> EndSessionOutput:
    session = repo.get_session(args.session_id)
    if session.state == SessionState.NOT_STARTED:
        raise ValidationError(f"session {session.id} has no start_time", code="session_not_started")
    if not session.is_open:
        raise AlreadyClosedError(f"session {session.id} was already closed at {session.end_time.isoformat()}")

    plan = repo.get_plan(session.plan_id) if session.plan_id is not None else None
    sub = repo.get_subscription(session.subscription_id) if session.subscription_id is not None else None

    snap = ta.snapshot(session, plan, sub, now)
    new_sub = ta.decrement_subscription(sub, snap.elapsed_minutes, plan) if sub is not None else None

    repo.close_session(session.id, now)
    closed = replace(session, end_time=now)

    pending = []
    if new_sub is not None:
        try:
            repo.save_subscription_balance(new_sub)
        except Exception as e:
            logger.error("session=%s closed but subscription=%s balance not saved: %s", session.id, sub.id, e)
            pending.append({"record": "subscription_active", "id": sub.id,
                            "time_left": new_sub.time_left, "days_left": new_sub.days_left, "error": str(e)})

    if snap.funding in ("hourly", "custom") and snap.amount_due:
        try:
            customer = repo.get_customer(session.customer_id)
            customer.total_spent = round(customer.total_spent + snap.amount_due, 2)
            customer.total_hours = round(customer.total_hours + snap.elapsed_minutes / 60, 4)
            repo.update_customer_totals(customer)
        except Exception as e:
            logger.error("session=%s closed but customer=%s totals not saved: %s", session.id, session.customer_id, e)
            pending.append({"record": "customers", "id": session.customer_id,
                            "amount_due": snap.amount_due, "error": str(e)})

    logger.info("session_end session=%s funding=%s elapsed=%s amount_due=%s",
                session.id, snap.funding, snap.elapsed_minutes, snap.amount_due)
    audit.record(
        "session_end",
        f"Ended {snap.funding} session {session.id}",
        {"session_id": session.id, "customer_id": session.customer_id,
         "accounting": snap.to_dict(), "unsaved": pending},
        actor=args.actor,
    )

    if pending:
        raise InconsistentStateError(
            f"session {session.id} was closed but {len(pending)} record(s) were not updated",
            details={"session_id": session.id, "unsaved": pending},
        )
    return EndSessionOutput(session=closed, snapshot=snap, subscription=new_sub)
