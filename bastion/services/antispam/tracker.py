"""
Anti-Spam Rate Window Tracker
=============================

Per-(guild, user) sliding-window message counter.

DESIGN:
    Each key owns a deque of event timestamps in milliseconds, kept sorted
    because Discord delivers a user's messages in no guaranteed order.
    Recording inserts the timestamp in place and pops entries from the
    left once they are a full window behind the recorded event. The count
    for an event at T is the number of timestamps in (T - window, T], so
    a late message is judged against its own time and newer entries are
    not counted for it. A single lock covers the whole table; record() is
    one short critical section with no awaits, so concurrent callers can
    neither lose nor double count an event.
"""

import bisect
import threading
from collections import defaultdict, deque
from typing import Deque, Dict, List, Tuple

from .models import WindowResult

Key = Tuple[str, str]


class RateWindowTracker:
    """Sliding-window message counter keyed by (guild_id, user_id)."""

    def __init__(self) -> None:
        self._windows: Dict[Key, Deque[int]] = defaultdict(deque)
        self._lock = threading.Lock()

    def record(
        self,
        guild_id: str,
        user_id: str,
        event_timestamp_ms: int,
        window_ms: int,
        max_events: int,
    ) -> WindowResult:
        """
        Record one event and report whether the user is within the limit.

        Args:
            guild_id: Guild the message was sent in.
            user_id: Message author.
            event_timestamp_ms: Event time in milliseconds.
            window_ms: Window length in milliseconds.
            max_events: Largest allowed count inside the window.

        Returns:
            WindowResult with the post-insert count.
        """
        with self._lock:
            window = self._windows[(str(guild_id), str(user_id))]
            bisect.insort(window, event_timestamp_ms)
            cutoff = event_timestamp_ms - window_ms
            while window[0] <= cutoff:
                window.popleft()
            count = (
                bisect.bisect_right(window, event_timestamp_ms)
                - bisect.bisect_right(window, event_timestamp_ms - window_ms)
            )
        return WindowResult(within_limit=count <= max_events, event_count=count)

    def count(self, guild_id: str, user_id: str) -> int:
        with self._lock:
            window = self._windows.get((str(guild_id), str(user_id)))
            return len(window) if window else 0

    def tracked_keys(self) -> List[Key]:
        with self._lock:
            return list(self._windows.keys())

    def sweep(self, now_ms: int, window_ms: int) -> int:
        """
        Drop stale timestamps and empty keys.

        Returns:
            Number of keys removed.
        """
        cutoff = now_ms - window_ms
        removed = 0
        with self._lock:
            for key, window in list(self._windows.items()):
                while window and window[0] <= cutoff:
                    window.popleft()
                if not window:
                    del self._windows[key]
                    removed += 1
        return removed

    def clear(self, guild_id: str, user_id: str) -> None:
        with self._lock:
            self._windows.pop((str(guild_id), str(user_id)), None)
