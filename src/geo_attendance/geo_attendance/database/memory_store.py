from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import NotFoundError
from .document_store import Document, WriteKind, WriteOp


class InMemoryDocumentStore:
    """Thread-safe document store kept in process memory.

    Used by tests and the ``memory`` store backend.
    """

    def __init__(self):
        self._docs: Dict[Tuple[str, str], dict] = {}
        self._lock = threading.RLock()

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._docs.get((collection, doc_id))
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], *, merge: bool = False) -> None:
        self.batch_commit([WriteOp.set(collection, doc_id, fields, merge=merge)])

    def create(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        with self._lock:
            key = (collection, doc_id)
            if key in self._docs:
                return False
            self._docs[key] = copy.deepcopy(dict(fields))
            return True

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self.batch_commit([WriteOp.update(collection, doc_id, fields)])

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch_commit([WriteOp.delete(collection, doc_id)])

    def query(self, collection: str, **equals: Any) -> Sequence[Document]:
        with self._lock:
            out = []
            for (coll, doc_id), doc in self._docs.items():
                if coll != collection:
                    continue
                if all(doc.get(k) == v for k, v in equals.items()):
                    out.append(Document(doc_id=doc_id, fields=copy.deepcopy(doc)))
            out.sort(key=lambda d: d.doc_id)
            return out

    def batch_commit(self, ops: Sequence[WriteOp]) -> None:
        with self._lock:
            staged = dict(self._docs)
            for op in ops:
                key = (op.collection, op.doc_id)
                if op.kind == WriteKind.DELETE:
                    staged.pop(key, None)
                elif op.kind == WriteKind.SET:
                    staged[key] = copy.deepcopy(dict(op.fields))
                elif op.kind == WriteKind.MERGE:
                    merged = dict(staged.get(key) or {})
                    merged.update(copy.deepcopy(dict(op.fields)))
                    staged[key] = merged
                elif op.kind == WriteKind.UPDATE:
                    if key not in staged:
                        raise NotFoundError(f"Document {op.collection}/{op.doc_id} not found")
                    merged = dict(staged[key])
                    merged.update(copy.deepcopy(dict(op.fields)))
                    staged[key] = merged
                else:
                    raise ValueError(f"Unsupported write kind: {op.kind!r}")
            self._docs = staged

    def clear(self) -> None:
        with self._lock:
            self._docs.clear()
