from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class IRecordStore(ABC):
    """Per-record CRUD against the hosted database.

    Filters use PostgREST operator syntax, e.g. ``{"id": "eq.4", "end_time": "is.null"}``.
    """

    @abstractmethod
    def select(self, table: str, filters: Optional[Dict[str, str]] = None, *,
               order: Optional[str] = None, limit: Optional[int] = None,
               offset: Optional[int] = None) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def update(self, table: str, filters: Dict[str, str], changes: Dict[str, Any]) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def delete(self, table: str, filters: Dict[str, str]) -> None: ...


class IAuditLog(ABC):
    @abstractmethod
    def record(self, action_type: str, description: str,
               metadata: Optional[Dict[str, Any]] = None, actor: Optional[str] = None) -> None: ...
