import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def iso_to_timestamp(value: str) -> float:
    """Convert an ISO 8601 datetime string to a POSIX timestamp

    "2025-04-12T14:59:18Z" -> 1744469958.0. Naive values are read as UTC.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


@dataclass
class Credential:
    """Signature issued by the backlinks overview endpoint for one subject"""

    subject: str
    signature: str
    valid_until: str
    overview_data: Any = None
    minted_at: float = field(default_factory=time.time)

    def expires_at(self) -> Optional[float]:
        if not isinstance(self.valid_until, str):
            return None
        try:
            return iso_to_timestamp(self.valid_until)
        except (TypeError, ValueError):
            return None

    def is_usable(self, now: Optional[float] = None) -> bool:
        """A credential is usable only while the current time is before validUntil"""
        expires_at = self.expires_at()
        if expires_at is None:
            return False
        if now is None:
            now = time.time()
        return now < expires_at

    def to_cache_entry(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "validUntil": self.valid_until,
            "overviewData": self.overview_data,
            "timestamp": self.minted_at,
        }

    @classmethod
    def from_cache_entry(cls, subject: str, entry: Dict[str, Any]) -> "Credential":
        return cls(
            subject=subject,
            signature=entry["signature"],
            valid_until=entry["validUntil"],
            overview_data=entry.get("overviewData"),
            minted_at=entry.get("timestamp") or 0.0,
        )


class SolveStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class SolveTask:
    """In-flight CapSolver task, never persisted"""

    target_site_url: str
    task_id: str
    status: SolveStatus = SolveStatus.PENDING
    token: Optional[str] = None
    error: Optional[str] = None
