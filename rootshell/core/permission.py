"""
PermissionCache: remembers whether root was granted, for a while.
"""
import threading
import time
from typing import Callable, Optional

from .config import PERMISSION_EXPIRE_SECONDS


class PermissionCache:
    """
    Caches the outcome of an elevation probe.

    Only a grant is cached, for up to the TTL. After a refusal every call
    probes again.
    """

    def __init__(
        self,
        probe: Callable[[], bool],
        ttl: float = PERMISSION_EXPIRE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._probe = probe
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self.granted: Optional[bool] = None
        self.last_checked_at: Optional[float] = None

    def _fresh(self, ttl: float) -> bool:
        return (
            self.granted is True
            and self.last_checked_at is not None
            and self._clock() - self.last_checked_at <= ttl
        )

    def check_elevated(self, ttl: Optional[float] = None) -> bool:
        ttl = self._ttl if ttl is None else ttl
        if self._fresh(ttl):
            return self.granted

        with self._lock:
            # Another caller may have probed while we waited
            if self._fresh(ttl):
                return self.granted
            granted = bool(self._probe())
            self.granted = granted
            self.last_checked_at = self._clock()
            return granted

    def invalidate(self):
        with self._lock:
            self.granted = None
            self.last_checked_at = None
