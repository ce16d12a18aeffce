from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any

from .datetime_utils import to_iso


def to_jsonable(value: Any) -> Any:
    """Convert domain dataclasses (and their enums/datetimes) into JSON-safe structures."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value
