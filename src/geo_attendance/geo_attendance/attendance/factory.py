from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import AttendanceStatus
from .strategies.base import AttendanceStrategy
from .strategies.early_checkout_strategy import EarlyCheckoutStrategy
from .strategies.outside_radius_strategy import OutsideRadiusStrategy
from .strategies.within_radius_strategy import WithinRadiusStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, distance_meters: float, radius_meters: float) -> AttendanceStrategy:
        if distance_meters <= radius_meters:
            return WithinRadiusStrategy()
        return OutsideRadiusStrategy()

    def for_checkout(self, *, current_status: AttendanceStatus) -> AttendanceStrategy:
        if current_status.is_unverified:
            return EarlyCheckoutStrategy()
        if current_status == AttendanceStatus.VERIFIED:
            return WithinRadiusStrategy()
        # failed_location and manual statuses keep their value on checkout.
        return OutsideRadiusStrategy()
