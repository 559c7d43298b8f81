from flask import Blueprint, jsonify, current_app

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    c = current_app.container
    return jsonify({
        "ok": True,
        "now": c.clock().isoformat(),
        "timezone": c.settings.lounge_timezone,
        "default_branch": c.settings.default_branch,
        "using_service_role": bool(c.settings.supabase_service_role),
    })
