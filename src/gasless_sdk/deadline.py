"""
deadline.py – Deadline guard for signed authorizations.

An authorization is valid up to *and including* its deadline second;
it expires only once ``now > deadline``.
"""

from __future__ import annotations

import time
from enum import Enum, unique
from typing import Callable

from .errors import Expired

# Callable with no args returning the current unix time in seconds
Clock = Callable[[], int]


@unique
class DeadlineStatus(Enum):
    VALID   = "valid"
    EXPIRED = "expired"


def system_clock() -> int:
    """Wall-clock unix seconds (the off-chain stand-in for block.timestamp)."""
    return int(time.time())


def check_deadline(deadline: int, now: int) -> DeadlineStatus:
    return DeadlineStatus.EXPIRED if now > deadline else DeadlineStatus.VALID


def ensure_not_expired(deadline: int, now: int) -> None:
    """Raise Expired if ``now`` is past ``deadline``."""
    if check_deadline(deadline, now) is DeadlineStatus.EXPIRED:
        raise Expired(deadline, now)
