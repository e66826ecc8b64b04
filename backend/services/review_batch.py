"""
Review notification batch.

Collects reviewed assets per client email for one project. Each recorded
review moves the send deadline to `now + delay`; deadlines are reset, never
stacked. All methods take the current time as input so the countdown is a
pure function of the clock.
"""
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Set
from uuid import UUID

Clock = Callable[[], datetime]


class ReviewBatch:
    def __init__(self, delay: timedelta, clock: Clock = datetime.utcnow):
        if delay.total_seconds() <= 0:
            raise ValueError("delay must be positive")
        self.delay = delay
        self.clock = clock
        self.reviewed: Dict[str, Set[UUID]] = {}
        self.last_review_at: Optional[datetime] = None
        self.deadline: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.deadline is not None

    @property
    def emails(self):
        return sorted(self.reviewed)

    def record(self, asset_id: UUID, client_email: str, now: Optional[datetime] = None) -> datetime:
        """Add a reviewed asset and restart the countdown. Returns the new deadline."""
        now = now or self.clock()
        self.reviewed.setdefault(client_email, set()).add(asset_id)
        self.last_review_at = now
        self.deadline = now + self.delay
        return self.deadline

    def time_remaining(self, now: Optional[datetime] = None) -> timedelta:
        if self.deadline is None:
            return timedelta(0)
        now = now or self.clock()
        return max(timedelta(0), self.deadline - now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.deadline is not None and self.time_remaining(now) == timedelta(0)

    def progress(self, now: Optional[datetime] = None) -> float:
        """Elapsed share of the countdown, 0-100"""
        if self.deadline is None:
            return 0.0
        elapsed = self.delay - self.time_remaining(now)
        return round(elapsed / self.delay * 100, 2)

    def format_remaining(self, now: Optional[datetime] = None) -> str:
        """Countdown as M:SS, rounding partial seconds up"""
        total_seconds = math.ceil(self.time_remaining(now).total_seconds())
        minutes, seconds = divmod(total_seconds, 60)
        return f"{minutes}:{seconds:02d}"

    def clear(self) -> None:
        self.reviewed = {}
        self.last_review_at = None
        self.deadline = None

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        now = now or self.clock()
        return {
            "active": self.is_active,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "last_review_at": self.last_review_at.isoformat() if self.last_review_at else None,
            "time_remaining_seconds": math.ceil(self.time_remaining(now).total_seconds()),
            "time_remaining": self.format_remaining(now),
            "progress": self.progress(now),
            "emails": self.emails,
            "delay_minutes": self.delay.total_seconds() / 60,
        }
