from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import CLASSES_COLLECTION, ENROLLMENTS_COLLECTION
from ..database.document_store import DocumentStore, WriteOp
from .model import ClassInfo
from .repository import ClassDirectory


def enrollment_doc_id(class_id: str, student_id: str) -> str:
    return f"{class_id}:{student_id}"


class DocumentClassDirectory(ClassDirectory):
    """Reads ``classes/{class_id}`` and ``enrollments/{class_id}:{student_id}`` documents."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def get_class(self, class_id: str) -> Optional[ClassInfo]:
        doc = self._store.get(CLASSES_COLLECTION, class_id)
        if not doc:
            return None
        return ClassInfo(
            class_id=class_id,
            teacher_id=str(doc.get("teacher_id") or ""),
            name=doc.get("name"),
        )

    def is_enrolled(self, class_id: str, student_id: str) -> bool:
        return self._store.get(ENROLLMENTS_COLLECTION, enrollment_doc_id(class_id, student_id)) is not None

    def list_students(self, class_id: str) -> Sequence[str]:
        docs = self._store.query(ENROLLMENTS_COLLECTION, class_id=class_id)
        return [str(d.fields["student_id"]) for d in docs]

    def list_classes_for_student(self, student_id: str) -> Sequence[str]:
        docs = self._store.query(ENROLLMENTS_COLLECTION, student_id=student_id)
        return [str(d.fields["class_id"]) for d in docs]

    def register_class(self, *, class_id: str, teacher_id: str, name: Optional[str] = None) -> None:
        """Upsert a class document (used by bootstrap scripts and tests)."""
        self._store.set(
            CLASSES_COLLECTION,
            class_id,
            {"class_id": class_id, "teacher_id": teacher_id, "name": name},
            merge=True,
        )

    def enroll(self, *, class_id: str, student_id: str) -> None:
        self._store.batch_commit(
            [
                WriteOp.set(
                    ENROLLMENTS_COLLECTION,
                    enrollment_doc_id(class_id, student_id),
                    {"class_id": class_id, "student_id": student_id},
                )
            ]
        )
