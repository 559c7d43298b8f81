import requests
from ..core.settings import Settings
from ..domain.errors import StorageError

def rest_headers(settings: Settings) -> dict:
    return {
        "apikey": settings.supabase_service_role,
        "Authorization": f"Bearer {settings.supabase_service_role}",
    }

def table_url(settings: Settings, table: str) -> str:
    return f"{settings.supabase_url}/rest/v1/{table}"

def _fail(op: str, table: str, r: requests.Response) -> StorageError:
    msg = r.text[:300]
    if r.status_code == 403 and "row-level security" in msg.lower():
        msg += " (RLS: check table policies or use the service role key on the backend)"
    return StorageError(f"{op} {table} failed: {msg}", code=f"supabase_{op}_{r.status_code}")

def get_json(settings: Settings, table: str, select: str, params: dict, limit: int | None = None,
             offset: int | None = None):
    q = {"select": select, **params}
    if limit: q["limit"] = str(limit)
    if offset: q["offset"] = str(offset)
    try:
        r = requests.get(table_url(settings, table), headers=rest_headers(settings), params=q,
                         timeout=settings.request_timeout)
    except requests.RequestException as e:
        raise StorageError(f"select {table} failed: {e}", code="supabase_unreachable")
    if not r.ok:
        raise _fail("select", table, r)
    return r.json() or []

def patch_json(settings: Settings, table: str, params: dict, body: dict) -> list[dict]:
    try:
        r = requests.patch(table_url(settings, table), params=params,
                           headers={**rest_headers(settings), "Content-Type": "application/json",
                                    "Prefer": "return=representation"},
                           json=body, timeout=settings.request_timeout)
    except requests.RequestException as e:
        raise StorageError(f"update {table} failed: {e}", code="supabase_unreachable")
    if not r.ok:
        raise _fail("update", table, r)
    return r.json() or []

def insert_json(settings: Settings, table: str, rows: list[dict]) -> list[dict]:
    try:
        r = requests.post(table_url(settings, table),
                          headers={**rest_headers(settings), "Content-Type": "application/json",
                                   "Prefer": "return=representation"},
                          json=rows, timeout=settings.request_timeout)
    except requests.RequestException as e:
        raise StorageError(f"insert {table} failed: {e}", code="supabase_unreachable")
    if not r.ok:
        raise _fail("insert", table, r)
    return r.json() or []

def delete_json(settings: Settings, table: str, params: dict) -> None:
    try:
        r = requests.delete(table_url(settings, table), params=params, headers=rest_headers(settings),
                            timeout=settings.request_timeout)
    except requests.RequestException as e:
        raise StorageError(f"delete {table} failed: {e}", code="supabase_unreachable")
    if not r.ok:
        raise _fail("delete", table, r)
