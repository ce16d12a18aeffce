from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ClassInfo


class ClassDirectory(Protocol):
    """Class ownership and enrollment lookups (roster CRUD lives elsewhere)."""

    def get_class(self, class_id: str) -> Optional[ClassInfo]:
        raise NotImplementedError

    def is_enrolled(self, class_id: str, student_id: str) -> bool:
        raise NotImplementedError

    def list_students(self, class_id: str) -> Sequence[str]:
        raise NotImplementedError

    def list_classes_for_student(self, student_id: str) -> Sequence[str]:
        raise NotImplementedError
