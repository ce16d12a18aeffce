from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class OutsideRadiusStrategy(AttendanceStrategy):
    """Check-in recorded outside the geofence."""

    def decide_checkin(self, *, distance_meters: float, radius_meters: float) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.FAILED_LOCATION,
            is_gps_verified=False,
            message=(
                "Check-in recorded, but you are outside the allowed radius "
                f"({distance_meters:.0f}m from the session, limit {radius_meters:.0f}m)."
            ),
        )

    def decide_checkout(self, *, current: AttendanceStatus, is_gps_verified: bool) -> StatusDecision:
        return StatusDecision(status=current, is_gps_verified=is_gps_verified, message="Checked out successfully")
