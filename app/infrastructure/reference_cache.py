"""Read-through cache of the small reference lists used to enrich listings."""

import threading
import time
from typing import Callable, Dict, List, Tuple

from app.domain.models import Customer, SubscriptionPlan
from app.infrastructure.lounge_repository import LoungeRepository


class ReferenceCache:
    def __init__(self, repo: LoungeRepository, ttl_seconds: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self._repo = repo
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, list]] = {}

    def _get(self, key: str, loader: Callable[[], list]) -> list:
        now = self._clock()
        with self._lock:
            hit = self._entries.get(key)
            if hit and now - hit[0] < self._ttl:
                return hit[1]
        value = loader()
        with self._lock:
            self._entries[key] = (now, value)
        return value

    def customers(self) -> List[Customer]:
        return self._get("customers", self._repo.list_customers)

    def plans(self) -> List[SubscriptionPlan]:
        return self._get("plans", self._repo.list_plans)

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
