from flask import Blueprint, jsonify, current_app

from app.application.services.enrichment import enrich_subscriptions, expired_only
from app.application.use_cases.purchase_plan import PurchasePlanInput, execute as purchase_uc
from app.presentation.http.auth import current_staff_id
from app.presentation.http.request_utils import json_body, now, page_args, required_int

bp = Blueprint("subscriptions", __name__)


def _enriched(subs):
    c = current_app.container
    return enrich_subscriptions(subs, c.cache.customers(), c.cache.plans(), now())


@bp.get("/subscriptions")
def list_subscriptions():
    c = current_app.container
    return jsonify(_enriched(c.repo.list_subscriptions()))


@bp.get("/subscriptions/expired")
def expired_subscriptions():
    c = current_app.container
    page, limit, offset = page_args()
    rows = expired_only(_enriched(c.repo.list_subscriptions()))
    rows.sort(key=lambda r: r.get("expiry_date") or "", reverse=True)
    return jsonify({
        "data": rows[offset:offset + limit],
        "pagination": {"page": page, "limit": limit, "total": len(rows)},
    })


@bp.get("/subscriptions/<int:subscription_id>")
def get_subscription(subscription_id: int):
    c = current_app.container
    return jsonify(_enriched([c.repo.get_subscription(subscription_id)])[0])


@bp.post("/subscriptions")
def purchase():
    c = current_app.container
    j = json_body()
    sub = purchase_uc(c.repo, c.audit, PurchasePlanInput(
        customer_id=required_int(j, "customer_id"),
        plan_id=required_int(j, "plan_id"),
        branch=j.get("branch") or c.settings.default_branch,
        actor=current_staff_id(),
    ), now())
    c.cache.invalidate("customers")
    return jsonify({"ok": True, "subscription": sub.to_row()}), 201
