import json
import time
from flask import Blueprint, request, jsonify, current_app

from app.application.services.enrichment import enrich_sessions
from app.application.services.plan_rules import parse_funding_choice
from app.application.use_cases.start_session import StartSessionInput, execute as start_session_uc
from app.application.use_cases.end_session import EndSessionInput, execute as end_session_uc
from app.presentation.http.auth import current_staff_id
from app.presentation.http.request_utils import json_body, now, required_int

bp = Blueprint("sessions", __name__)

# ============== log helpers ==============
def _log(kind: str, msg: str, data=None):
    try:
        if data is None:
            current_app.logger.info("[%s] %s", kind, msg)
        else:
            as_txt = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, default=str)[:2000]
            current_app.logger.info("[%s] %s | %s", kind, msg, as_txt)
    except Exception:
        pass
# =========================================


def _enrich(sessions):
    c = current_app.container
    subs = c.repo.list_subscriptions() if any(s.subscription_id for s in sessions) else []
    return enrich_sessions(sessions, c.cache.customers(), c.cache.plans(), subs, now())


@bp.get("/sessions")
def list_sessions():
    c = current_app.container
    open_only = request.args.get("open") in ("1", "true")
    sessions = c.repo.list_sessions(open_only=open_only)
    return jsonify(_enrich(sessions))


@bp.get("/sessions/<int:session_id>")
def get_session(session_id: int):
    c = current_app.container
    return jsonify(_enrich([c.repo.get_session(session_id)])[0])


@bp.post("/sessions")
def start_session():
    t0 = time.time()
    c = current_app.container
    j = json_body()
    args = StartSessionInput(
        customer_id=required_int(j, "customer_id"),
        funding=parse_funding_choice(j.get("funding") or {}),
        branch=j.get("branch") or c.settings.default_branch,
        actor=current_staff_id(),
    )
    _log("START", "in", {"customer_id": args.customer_id, "funding": args.funding.kind, "branch": args.branch})
    session = start_session_uc(c.repo, c.audit, args, now())
    _log("START", "ok", {"ms": int((time.time()-t0)*1000), "session": session.id})
    return jsonify({"ok": True, "session": session.to_row()}), 201


@bp.post("/sessions/<int:session_id>/logout")
def logout_session(session_id: int):
    t0 = time.time()
    c = current_app.container
    _log("LOGOUT", "in", {"session_id": session_id})
    try:
        out = end_session_uc(c.repo, c.audit, EndSessionInput(session_id=session_id, actor=current_staff_id()), now())
    finally:
        # totals may have moved even when a later write failed
        c.cache.invalidate("customers")
    _log("LOGOUT", "ok", {"ms": int((time.time()-t0)*1000), "amount_due": out.snapshot.amount_due})
    return jsonify(out.to_dict())
