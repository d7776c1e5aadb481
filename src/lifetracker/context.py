"""Per-call user context passed explicitly to managers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .clock import as_utc, utcnow


@dataclass(frozen=True)
class UserContext:
    """Identifies the caller and pins the clock for one request."""

    owner_id: str
    now: Optional[datetime] = field(default=None)

    def current_time(self) -> datetime:
        """Get the request time as an aware UTC datetime."""
        if self.now is None:
            return utcnow()
        return as_utc(self.now)
