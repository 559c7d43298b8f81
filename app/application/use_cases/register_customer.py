"""Use-case to register a new lounge customer."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.domain.errors import ValidationError
from app.domain.models import Customer
from app.domain.ports import IAuditLog
from app.infrastructure.lounge_repository import LoungeRepository

@dataclass
class RegisterCustomerInput:
    first_name: str
    last_name: str
    actor: Optional[str] = None

def execute(repo: LoungeRepository, audit: IAuditLog, args: RegisterCustomerInput, now: datetime) -> Customer:
    first, last = (args.first_name or "").strip(), (args.last_name or "").strip()
    if not first or not last:
        raise ValidationError("first_name and last_name are required", code="missing_name")
    customer = repo.insert_customer(Customer(id=None, first_name=first, last_name=last, created_at=now))
    audit.record("create_customer", f"Registered {customer.full_name}", {"customer_id": customer.id}, actor=args.actor)
    return customer
