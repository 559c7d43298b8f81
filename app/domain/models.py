from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

PLAN_TYPES = ("straight", "bundle", "hourly", "timed")
BRANCHES = ("obrero", "matina")


def parse_ts(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Status(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    NO_EXPIRY = "NoExpiry"


class SessionState(str, Enum):
    NOT_STARTED = "NotStarted"
    OPEN = "Open"
    CLOSED = "Closed"


@dataclass
class Customer:
    id: Optional[int]
    first_name: str
    last_name: str
    created_at: Optional[datetime] = None
    total_spent: float = 0.0
    total_hours: float = 0.0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, r: Dict[str, Any]) -> "Customer":
        return cls(
            id=r.get("id"),
            first_name=(r.get("first_name") or "").strip(),
            last_name=(r.get("last_name") or "").strip(),
            created_at=parse_ts(r.get("created_at")),
            total_spent=float(r.get("total_spent") or 0),
            total_hours=float(r.get("total_hours") or 0),
        )

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["created_at"] = format_ts(self.created_at)
        return row


@dataclass
class SubscriptionPlan:
    id: Optional[int]
    name: str
    plan_type: str              # straight|bundle|hourly|timed
    price: float
    is_active: bool = True
    time_included: Optional[int] = None     # minutes
    days_included: Optional[int] = None
    expiry_duration: Optional[int] = None   # days
    time_valid_start: Optional[str] = None  # "HH:MM"
    time_valid_end: Optional[str] = None
    available_at: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def is_day_pass(self) -> bool:
        return self.plan_type == "bundle" and self.days_included is not None

    @classmethod
    def from_row(cls, r: Dict[str, Any]) -> "SubscriptionPlan":
        def _hhmm(v):
            return str(v)[:5] if v not in (None, "") else None

        return cls(
            id=r.get("id"),
            name=(r.get("name") or "").strip(),
            plan_type=(r.get("plan_type") or "").strip(),
            price=float(r.get("price") or 0),
            is_active=bool(r.get("is_active", True)),
            time_included=r.get("time_included"),
            days_included=r.get("days_included"),
            expiry_duration=r.get("expiry_duration"),
            time_valid_start=_hhmm(r.get("time_valid_start")),
            time_valid_end=_hhmm(r.get("time_valid_end")),
            available_at=list(r.get("available_at") or []),
            created_at=parse_ts(r.get("created_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["created_at"] = format_ts(self.created_at)
        return row


@dataclass
class SubscriptionActive:
    id: Optional[int]
    customer_id: int
    plan_id: int
    created_at: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    time_left: Optional[int] = None   # minutes
    days_left: Optional[int] = None

    @classmethod
    def from_row(cls, r: Dict[str, Any]) -> "SubscriptionActive":
        return cls(
            id=r.get("id"),
            customer_id=r.get("customer_id"),
            plan_id=r.get("plan_id"),
            created_at=parse_ts(r.get("created_at")),
            expiry_date=parse_ts(r.get("expiry_date")),
            time_left=r.get("time_left"),
            days_left=r.get("days_left"),
        )

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["created_at"] = format_ts(self.created_at)
        row["expiry_date"] = format_ts(self.expiry_date)
        return row


@dataclass
class Session:
    id: Optional[int]
    customer_id: int
    start_time: datetime
    branch: str
    plan_id: Optional[int] = None           # None -> custom session
    subscription_id: Optional[int] = None   # bundle funding only
    end_time: Optional[datetime] = None
    price: Optional[float] = None           # custom only
    custom_minutes: Optional[int] = None    # custom only

    @property
    def state(self) -> SessionState:
        if self.start_time is None:
            return SessionState.NOT_STARTED
        return SessionState.OPEN if self.end_time is None else SessionState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    @classmethod
    def from_row(cls, r: Dict[str, Any]) -> "Session":
        price = r.get("price")
        return cls(
            id=r.get("id"),
            customer_id=r.get("customer_id"),
            start_time=parse_ts(r.get("start_time")),
            branch=(r.get("branch") or "").strip(),
            plan_id=r.get("plan_id"),
            subscription_id=r.get("subscription_id"),
            end_time=parse_ts(r.get("end_time")),
            price=float(price) if price is not None else None,
            custom_minutes=r.get("custom_minutes"),
        )

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["start_time"] = format_ts(self.start_time)
        row["end_time"] = format_ts(self.end_time)
        return row


# Funding choices accepted by start-session

@dataclass(frozen=True)
class PlanFunding:
    plan_id: int
    kind: str = "plan"


@dataclass(frozen=True)
class SubscriptionFunding:
    subscription_id: int
    kind: str = "subscription"


@dataclass(frozen=True)
class CustomFunding:
    price: float
    minutes: Optional[int] = None
    kind: str = "custom"


@dataclass
class Remaining:
    status: Status
    minutes: Optional[int] = None
    days: Optional[int] = None

    @property
    def hours_part(self) -> Optional[int]:
        return None if self.minutes is None else max(0, self.minutes) // 60

    @property
    def minutes_part(self) -> Optional[int]:
        return None if self.minutes is None else max(0, self.minutes) % 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "minutes": self.minutes,
            "days": self.days,
            "hours_part": self.hours_part,
            "minutes_part": self.minutes_part,
        }


@dataclass
class HourlyBill:
    elapsed_minutes: int
    billed_hours: int
    rate: float
    amount_due: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AccountingSnapshot:
    funding: str                 # hourly|straight|timed|bundle|custom
    elapsed_minutes: int
    remaining: Remaining
    amount_due: float = 0.0
    bill: Optional[HourlyBill] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "funding": self.funding,
            "elapsed_minutes": self.elapsed_minutes,
            "remaining": self.remaining.to_dict(),
            "amount_due": self.amount_due,
            "bill": self.bill.to_dict() if self.bill else None,
        }
