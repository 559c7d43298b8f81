from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from app.core.settings import Settings
from app.domain.ports import IAuditLog, IRecordStore
from app.infrastructure.audit_log import SupabaseAuditLog
from app.infrastructure.lounge_repository import LoungeRepository
from app.infrastructure.record_store import SupabaseRecordStore
from app.infrastructure.reference_cache import ReferenceCache


@dataclass
class Container:
    settings: Settings = field(default_factory=Settings.load)

    store: IRecordStore = None
    repo: LoungeRepository = None
    audit: IAuditLog = None
    cache: ReferenceCache = None
    clock: Callable[[], datetime] = None

    def __post_init__(self):
        # a store handed in (tests, scripts) wins over the Supabase one
        if self.store is None:
            self.store = SupabaseRecordStore(self.settings)
        self.repo = self.repo or LoungeRepository(self.store)
        self.audit = self.audit or SupabaseAuditLog(self.store)
        self.cache = self.cache or ReferenceCache(self.repo, ttl_seconds=self.settings.reference_cache_ttl)
        if self.clock is None:
            tz = ZoneInfo(self.settings.lounge_timezone)
            self.clock = lambda: datetime.now(tz)
