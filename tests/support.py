from __future__ import annotations

from datetime import datetime, timedelta

CENTER = {"latitude": 40.0, "longitude": -75.0}
# About 111.2 m north of CENTER.
FAR = {"latitude": 40.001, "longitude": -75.0}


class ManualClock:
    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)
