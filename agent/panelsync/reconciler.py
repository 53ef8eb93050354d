from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from .models import OnlineUser, UserInfo

logger = logging.getLogger(__name__)


class LimitReconciler:
    """Device-limit reconciliation against recently reported online sessions.

    Keeps the per-user session counts from the most recent online report and
    uses them to compute each user's effective device limit on the next
    user-list poll. A limit that drops below the number of sessions a user
    already holds throttles new connections instead of cutting the existing
    ones.

    One lock guards the retained counts, covering both the report write and the
    whole read-then-use pass over a user list.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_online: Dict[int, int] = {}

    def reset(self) -> None:
        with self._lock:
            self._last_online = {}

    def snapshot(self) -> Dict[int, int]:
        with self._lock:
            return dict(self._last_online)

    def record_online(self, users: Iterable[OnlineUser]) -> Dict[int, int]:
        """Replace the retained counts with session counts per uid in ``users``."""
        counts = dict(Counter(int(u.uid) for u in users))
        with self._lock:
            self._last_online = counts
        return dict(counts)

    def _effective_limit(self, uid: int, limit: int, online: int) -> Optional[int]:
        # caller holds self._lock
        if limit > 0 and online > 0:
            last = self._last_online.get(uid, 0)
            candidate = limit - online + last
            if candidate > 0:
                return candidate
            if last > 0:
                return last
            return None
        if online == 0 and uid in self._last_online:
            del self._last_online[uid]
        return limit

    def reconcile(self, candidates: Iterable[Tuple[UserInfo, int]]) -> List[UserInfo]:
        """Apply effective device limits; users without headroom are left out."""
        out: List[UserInfo] = []
        dropped = 0
        with self._lock:
            for user, online in candidates:
                effective = self._effective_limit(user.uid, int(user.device_limit), int(online))
                if effective is None:
                    dropped += 1
                    continue
                if effective != user.device_limit:
                    user = user.model_copy(update={"device_limit": effective})
                out.append(user)
        if dropped:
            logger.info("device limit reached for %d user(s), left out of this cycle", dropped)
        return out
