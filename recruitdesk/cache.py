"""
Keyed query cache with explicit invalidation.

Read routes fetch through ``get_or_fetch``; every successful mutation calls
``invalidate`` with the keys it affects so the next read goes back to the
store. One instance lives on ``app.state`` for the lifetime of the process.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[Hashable, ...]

# Canonical keys
APPLICATIONS = ("applications",)
APPLICANTS = ("applicants",)
JOBS = ("jobs",)
JOBS_LIST = ("jobs-list",)
DASHBOARD_STATS = ("dashboard-stats",)
RECENT_APPLICATIONS = ("recent-applications",)
INTERVIEW_SCHEDULE = ("interview-schedule",)


def application_detail(application_id: str) -> CacheKey:
    return ("application-detail", application_id)


def applicant_profile(applicant_id: str) -> CacheKey:
    return ("applicant-profile", applicant_id)


def applicant_applications(applicant_id: str) -> CacheKey:
    return ("applicant-applications", applicant_id)


@dataclass
class CacheEntry:
    data: Any
    fetched_at: float
    stale: bool = False


class QueryCache:
    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def is_fresh(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return False
        if self.ttl_seconds and self._clock() - entry.fetched_at > self.ttl_seconds:
            return False
        return True

    def get(self, key: CacheKey) -> Any:
        """Cached data for ``key`` if it is still fresh, else None."""
        if not self.is_fresh(key):
            return None
        return self._entries[key].data

    def set(self, key: CacheKey, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, fetched_at=self._clock())

    async def get_or_fetch(self, key: CacheKey, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        if self.is_fresh(key):
            return self._entries[key].data
        data = await fetcher()
        self.set(key, data)
        return data

    def invalidate(self, keys: Iterable[CacheKey]) -> int:
        """Mark entries stale.

        A key matches every cached key it is a prefix of, so ``("applications",)``
        also covers filtered variants such as ``("applications", "pending")``.
        Returns the number of entries marked.
        """
        marked = 0
        for key in keys:
            for cached_key, entry in self._entries.items():
                if cached_key[: len(key)] == tuple(key) and not entry.stale:
                    entry.stale = True
                    marked += 1
        if marked:
            logger.debug("Invalidated %d cache entries", marked)
        return marked

    def clear(self) -> None:
        self._entries.clear()


# Invalidation sets used after each kind of mutation
def after_status_change(application_id: Optional[str] = None) -> list:
    keys = [APPLICATIONS, DASHBOARD_STATS, RECENT_APPLICATIONS, ("applicant-applications",)]
    if application_id:
        keys.append(application_detail(application_id))
    return keys


def after_application_edit(application_id: str) -> list:
    return [
        application_detail(application_id),
        APPLICATIONS,
        INTERVIEW_SCHEDULE,
        ("applicant-applications",),
    ]


def after_applicant_edit(applicant_id: str) -> list:
    return [applicant_profile(applicant_id), APPLICANTS, APPLICATIONS]


def after_job_change(deleted: bool = False) -> list:
    keys = [JOBS, JOBS_LIST, DASHBOARD_STATS]
    if deleted:
        keys.extend([APPLICATIONS, APPLICANTS, RECENT_APPLICATIONS, INTERVIEW_SCHEDULE])
    return keys
