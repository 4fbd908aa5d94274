"""Clock abstraction for blocking waits.

All sleeps and timestamps used by poll loops and cool-down waits go through a
clock object so they can be replaced in tests.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


class SystemClock:
    """Wall clock backed by ``time.sleep`` and timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float) -> None:
        """Block the calling thread for the given number of seconds."""
        if seconds > 0:
            time.sleep(seconds)
