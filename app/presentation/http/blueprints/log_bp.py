from flask import Blueprint, request, jsonify, current_app

from app.presentation.http.request_utils import page_args

bp = Blueprint("logs", __name__)


@bp.get("/logs/activity")
def activity_log():
    c = current_app.container
    page, limit, offset = page_args()
    filters = {}
    if request.args.get("user_id"):
        filters["user_id"] = f"eq.{request.args['user_id']}"
    if request.args.get("action_type"):
        filters["action_type"] = f"eq.{request.args['action_type']}"
    # both bounds on created_at go through a single and=(...) filter
    bounds = []
    if request.args.get("from_date"):
        bounds.append(f"created_at.gte.{request.args['from_date']}")
    if request.args.get("to_date"):
        bounds.append(f"created_at.lte.{request.args['to_date']}")
    if bounds:
        filters["and"] = f"({','.join(bounds)})"
    rows = c.repo.list_action_logs(filters, limit=limit, offset=offset)
    return jsonify({"data": rows, "pagination": {"page": page, "limit": limit}})


@bp.get("/logs/financial")
def financial_log():
    c = current_app.container
    page, limit, offset = page_args()
    rows = c.repo.list_transactions(limit=limit, offset=offset)
    return jsonify({"data": rows, "pagination": {"page": page, "limit": limit}})
