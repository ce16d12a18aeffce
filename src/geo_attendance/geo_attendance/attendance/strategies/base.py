from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    is_gps_verified: bool
    message: str


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_checkin(self, *, distance_meters: float, radius_meters: float) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_checkout(self, *, current: AttendanceStatus, is_gps_verified: bool) -> StatusDecision:
        raise NotImplementedError
