from typing import Any, Dict, List, Optional

from app.core.settings import Settings
from app.domain.ports import IRecordStore
from app.infrastructure.supabase_rest import delete_json, get_json, insert_json, patch_json


class SupabaseRecordStore(IRecordStore):
    def __init__(self, settings: Settings):
        self._s = settings

    def select(self, table: str, filters: Optional[Dict[str, str]] = None, *,
               order: Optional[str] = None, limit: Optional[int] = None,
               offset: Optional[int] = None) -> List[Dict[str, Any]]:
        params = dict(filters or {})
        if order:
            params["order"] = order
        return get_json(self._s, table, "*", params, limit=limit, offset=offset)

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        body = {k: v for k, v in row.items() if not (k == "id" and v is None)}
        rows = insert_json(self._s, table, [body])
        return rows[0] if rows else body

    def update(self, table: str, filters: Dict[str, str], changes: Dict[str, Any]) -> List[Dict[str, Any]]:
        return patch_json(self._s, table, filters, changes)

    def delete(self, table: str, filters: Dict[str, str]) -> None:
        delete_json(self._s, table, filters)
