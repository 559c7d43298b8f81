from flask import Blueprint, jsonify, current_app

from app.application.services.enrichment import enrich_subscriptions
from app.application.use_cases.register_customer import RegisterCustomerInput, execute as register_uc
from app.presentation.http.auth import current_staff_id
from app.presentation.http.request_utils import json_body, now

bp = Blueprint("customers", __name__)


@bp.get("/customers")
def list_customers():
    c = current_app.container
    busy = {s.customer_id for s in c.repo.list_sessions(open_only=True)}
    rows = []
    for cu in c.cache.customers():
        row = cu.to_row()
        row["in_session"] = cu.id in busy
        rows.append(row)
    return jsonify(rows)


@bp.post("/customers")
def create_customer():
    c = current_app.container
    j = json_body()
    customer = register_uc(c.repo, c.audit, RegisterCustomerInput(
        first_name=j.get("first_name") or "",
        last_name=j.get("last_name") or "",
        actor=current_staff_id(),
    ), now())
    c.cache.invalidate("customers")
    return jsonify({"ok": True, "customer": customer.to_row()}), 201


@bp.get("/customers/<int:customer_id>")
def get_customer(customer_id: int):
    c = current_app.container
    return jsonify(c.repo.get_customer(customer_id).to_row())


@bp.get("/customers/<int:customer_id>/subscriptions")
def customer_subscriptions(customer_id: int):
    c = current_app.container
    customer = c.repo.get_customer(customer_id)
    subs = c.repo.list_subscriptions(customer_id=customer.id)
    return jsonify(enrich_subscriptions(subs, [customer], c.cache.plans(), now()))
