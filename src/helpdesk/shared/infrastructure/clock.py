"""
Clock
=====

Wall-clock access. Services take a ``clock`` callable so scans can be
replayed at fixed instants in tests.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
