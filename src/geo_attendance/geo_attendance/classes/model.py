from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClassInfo:
    """Read-model of a class as seen by the attendance core."""

    class_id: str
    teacher_id: str
    name: Optional[str] = None
