from flask import Blueprint, jsonify, current_app

from app.application.use_cases import manage_plan
from app.presentation.http.auth import current_staff_id
from app.presentation.http.request_utils import json_body, now

bp = Blueprint("plans", __name__)


@bp.get("/plans")
def list_plans():
    c = current_app.container
    return jsonify([p.to_row() for p in c.cache.plans()])


@bp.get("/plans/<int:plan_id>")
def get_plan(plan_id: int):
    c = current_app.container
    return jsonify(c.repo.get_plan(plan_id).to_row())


@bp.post("/plans")
def create_plan():
    c = current_app.container
    plan = manage_plan.create_plan(c.repo, c.audit, json_body(), now(), actor=current_staff_id())
    c.cache.invalidate("plans")
    return jsonify({"ok": True, "plan": plan.to_row()}), 201


@bp.post("/plans/<int:plan_id>")
def adjust_plan(plan_id: int):
    """Adjust a plan; ``{"delete": true}`` deactivates it (it stays on record)."""
    c = current_app.container
    j = json_body()
    if j.pop("delete", False):
        plan = manage_plan.deactivate_plan(c.repo, c.audit, plan_id, now(), actor=current_staff_id())
    else:
        plan = manage_plan.update_plan(c.repo, c.audit, plan_id, j, now(), actor=current_staff_id())
    c.cache.invalidate("plans")
    return jsonify({"ok": True, "plan": plan.to_row()})


@bp.delete("/plans/<int:plan_id>")
def delete_plan(plan_id: int):
    c = current_app.container
    manage_plan.delete_plan(c.repo, c.audit, plan_id, actor=current_staff_id())
    c.cache.invalidate("plans")
    return jsonify({"ok": True})
