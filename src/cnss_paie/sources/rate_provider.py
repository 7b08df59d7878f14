import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Hashable, Iterable, Optional

from ..config.rates import DEFAULT_RATE_TABLES, RateTable
from ..exceptions import CalculationError
from ..models.payroll import Period

logger = logging.getLogger(__name__)


class RateTableCache:
    """
    Small TTL cache with least-recently-used eviction.

    Passed explicitly to the objects that use it; ``clock`` is injectable so
    expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float, max_entries: int,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def put(self, key: Hashable, value):
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Rate table cache evicted %s", evicted)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)


class RateTableProvider:
    """Resolve the rate table in force for a period (latest effective date not after its first day)"""

    def __init__(self, tables: Iterable[RateTable] = DEFAULT_RATE_TABLES,
                 cache: Optional[RateTableCache] = None):
        self.tables = sorted(tables, key=lambda table: table.effective_from)
        self.cache = cache

    def for_period(self, period: Period) -> RateTable:
        if self.cache is not None:
            cached = self.cache.get(period)
            if cached is not None:
                return cached

        candidates = [table for table in self.tables if table.effective_from <= period.start]
        if not candidates:
            raise CalculationError("rates", f"no rate table in force for period {period}")
        table = candidates[-1]
        table.check()

        if self.cache is not None:
            self.cache.put(period, table)
        logger.debug("Rate table %s selected for %s", table.label or table.effective_from, period)
        return table
