from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence


class WriteKind(str, Enum):
    SET = "set"
    MERGE = "merge"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Document:
    doc_id: str
    fields: dict


@dataclass(frozen=True)
class WriteOp:
    """One write inside a batch commit."""

    kind: WriteKind
    collection: str
    doc_id: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def set(cls, collection: str, doc_id: str, fields: Mapping[str, Any], *, merge: bool = False) -> "WriteOp":
        return cls(WriteKind.MERGE if merge else WriteKind.SET, collection, doc_id, dict(fields))

    @classmethod
    def update(cls, collection: str, doc_id: str, fields: Mapping[str, Any]) -> "WriteOp":
        return cls(WriteKind.UPDATE, collection, doc_id, dict(fields))

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> "WriteOp":
        return cls(WriteKind.DELETE, collection, doc_id)


class DocumentStore(Protocol):
    """Document store with per-document atomic writes and atomic batch commit.

    Documents are flat JSON-compatible dicts. Implementations never share
    mutable dicts with callers.
    """

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], *, merge: bool = False) -> None:
        raise NotImplementedError

    def create(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        """Insert only if the document does not exist.

        Returns False (and writes nothing) when it already exists.
        """

        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Shallow-merge ``fields`` into an existing document; NotFoundError if absent."""

        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def query(self, collection: str, **equals: Any) -> Sequence[Document]:
        """Documents whose top-level fields equal every given value."""

        raise NotImplementedError

    def batch_commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply all ops atomically: either every op lands or none does."""

        raise NotImplementedError
