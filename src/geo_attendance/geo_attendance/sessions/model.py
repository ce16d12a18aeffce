from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import SessionStatus
from ..geo.geofence import GeoPoint


@dataclass(frozen=True)
class Session:
    """A georeferenced attendance session of one class."""

    session_id: str
    class_id: str
    teacher_id: str
    status: SessionStatus
    location: GeoPoint
    radius_meters: float
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    extension: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_truly_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE and self.end_time is None

    @property
    def is_stale_active(self) -> bool:
        """Marked active although an end time was already written."""
        return self.status == SessionStatus.ACTIVE and self.end_time is not None


@dataclass(frozen=True)
class NewSession:
    """Input for creating a session."""

    class_id: str
    teacher_id: str
    location: GeoPoint
    radius_meters: float
    extension: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionChange:
    """Outcome of a lifecycle call; ``changed`` is False for idempotent no-ops."""

    session: Session
    changed: bool
    message: str
