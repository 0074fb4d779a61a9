"""
Clock plugin: lets the model look up today's date.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from agent_demos.plugins.registry import kernel_function


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WhatDateIsIt:
    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or _utc_now

    @kernel_function(description="Get the current UTC date")
    def date(self) -> str:
        today = self._now()
        # Long date, e.g. "Monday, October 19, 2026"
        return f"{today:%A}, {today:%B} {today.day}, {today.year}"
