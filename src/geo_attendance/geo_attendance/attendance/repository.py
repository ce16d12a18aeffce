from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, VerificationRequest


class AttendanceRepository(Protocol):
    def get(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> bool:
        """Insert the record only if none exists for (session, student).

        Returns False when another writer created it first.
        """

        raise NotImplementedError

    def update(self, record: AttendanceRecord) -> None:
        """Overwrite mutable fields of an existing record; NotFoundError if it was deleted."""

        raise NotImplementedError

    def put(self, record: AttendanceRecord) -> None:
        """Create or replace the record."""

        raise NotImplementedError

    def delete(self, session_id: str, student_id: str) -> None:
        raise NotImplementedError

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_verification_request(self, session_id: str, student_id: str) -> Optional[VerificationRequest]:
        raise NotImplementedError

    def put_verification_request(self, request: VerificationRequest) -> None:
        raise NotImplementedError

    def save_verification_response(self, record: AttendanceRecord, request: VerificationRequest) -> None:
        """Write the answered request and the updated record in one batch."""

        raise NotImplementedError
