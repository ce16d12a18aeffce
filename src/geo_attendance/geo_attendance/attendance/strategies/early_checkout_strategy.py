from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class EarlyCheckoutStrategy(AttendanceStrategy):
    """Checkout before the record was ever verified."""

    def decide_checkin(self, *, distance_meters: float, radius_meters: float) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PENDING, is_gps_verified=False, message="Check-in pending")

    def decide_checkout(self, *, current: AttendanceStatus, is_gps_verified: bool) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.CHECKED_OUT_EARLY,
            is_gps_verified=False,
            message="Checked out before attendance was verified",
        )
