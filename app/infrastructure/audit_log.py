"""Best-effort audit trail written to the ``action_logs`` table."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.domain.ports import IAuditLog, IRecordStore
from app.infrastructure.lounge_repository import ACTION_LOGS
from app.shared.setup_logger import LOGGER

logger = LOGGER.get_logger(__name__)


class SupabaseAuditLog(IAuditLog):
    def __init__(self, store: IRecordStore):
        self._store = store

    def record(self, action_type: str, description: str,
               metadata: Optional[Dict[str, Any]] = None, actor: Optional[str] = None) -> None:
        row = {
            "user_id": actor,
            "action_type": action_type,
            "description": description,
            "metadata": metadata or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._store.insert(ACTION_LOGS, row)
        except Exception as e:
            # a lost audit row never fails the lifecycle operation
            logger.warning("audit log write failed action=%s actor=%s: %s", action_type, actor, e)
