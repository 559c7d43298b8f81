"""Staff authentication against Supabase Auth and request guards."""

import requests
from flask import request, jsonify, current_app, abort, g

def _is_public_path_allowed(path: str) -> bool:
    return path in {"/health"}

def _extract_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return None

def _get_user_from_supabase(token: str) -> dict | None:
    settings = current_app.container.settings
    url = f"{settings.supabase_url}/auth/v1/user"
    headers = {
        "Authorization": f"Bearer {token}",
        "apikey": settings.supabase_service_role,
    }
    try:
        resp = requests.get(url, headers=headers, timeout=10)
    except requests.RequestException:
        return None
    if resp.status_code != 200:
        return None
    return resp.json()

def _unauthorized():
    resp = jsonify({"ok": False, "error": "unauthorized"})
    resp.status_code = 401
    abort(resp)

def _authenticate() -> str | None:
    if request.method == "OPTIONS" or _is_public_path_allowed(request.path):
        return None
    token = _extract_token()
    if not token:
        _unauthorized()
    user = _get_user_from_supabase(token)
    if not user or not user.get("id"):
        _unauthorized()
    return user["id"]

def require_auth():
    g.staff_id = _authenticate()

def current_staff_id() -> str | None:
    return g.get("staff_id")
