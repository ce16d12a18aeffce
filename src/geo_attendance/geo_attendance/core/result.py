from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Result:
    """Boundary result: either ``ok`` with ``data`` or a failure with a kind and message."""

    ok: bool
    data: Any = None
    error_kind: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None, *, message: Optional[str] = None) -> "Result":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(cls, error_kind: str, message: str) -> "Result":
        return cls(ok=False, error_kind=error_kind, message=message)

    def to_dict(self) -> dict:
        if self.ok:
            out: dict = {"ok": True, "data": self.data}
            if self.message:
                out["message"] = self.message
            return out
        return {"ok": False, "error_kind": self.error_kind, "message": self.message}
