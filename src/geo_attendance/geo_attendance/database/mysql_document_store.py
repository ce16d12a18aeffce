from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional, Sequence

import mysql.connector

from ..core.exceptions import NotFoundError, ValidationError
from .connection import DatabaseConnection
from .document_store import Document, WriteKind, WriteOp
from .mysql_base import db_cursor, fetchall, fetchone, translate_store_errors

logger = logging.getLogger(__name__)

_FIELD_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _dumps(fields: Mapping[str, Any]) -> str:
    return json.dumps(dict(fields), separators=(",", ":"), sort_keys=True)


def _loads(body: Any) -> dict:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        return json.loads(body)
    return dict(body or {})


class MySQLDocumentStore:
    """Documents stored as JSON rows in the ``documents`` table.

    Every public method runs in its own short-lived transaction; batch commits
    share one transaction and lock touched rows with ``SELECT ... FOR UPDATE``.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with translate_store_errors("read a document"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT body FROM documents WHERE collection=%s AND doc_id=%s",
                (collection, doc_id),
            )
            row = fetchone(cur)
            return _loads(row["body"]) if row else None

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], *, merge: bool = False) -> None:
        self.batch_commit([WriteOp.set(collection, doc_id, fields, merge=merge)])

    def create(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        with translate_store_errors("create a document"):
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        "INSERT INTO documents(collection, doc_id, body) VALUES(%s,%s,%s)",
                        (collection, doc_id, _dumps(fields)),
                    )
                return True
            except mysql.connector.IntegrityError:
                # Duplicate primary key: someone else created it first.
                return False

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self.batch_commit([WriteOp.update(collection, doc_id, fields)])

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch_commit([WriteOp.delete(collection, doc_id)])

    def query(self, collection: str, **equals: Any) -> Sequence[Document]:
        sql = "SELECT doc_id, body FROM documents WHERE collection=%s"
        params: list = [collection]
        for name, value in equals.items():
            if not _FIELD_NAME.fullmatch(name):
                raise ValidationError(f"Invalid field name: {name!r}")
            sql += f" AND JSON_EXTRACT(body, '$.{name}') = CAST(%s AS JSON)"
            params.append(json.dumps(value))
        sql += " ORDER BY doc_id"

        with translate_store_errors("query documents"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [Document(doc_id=str(r["doc_id"]), fields=_loads(r["body"])) for r in fetchall(cur)]

    def batch_commit(self, ops: Sequence[WriteOp]) -> None:
        if not ops:
            return
        with translate_store_errors("commit a batch"), db_cursor(self._conn_factory) as (_, cur):
            for op in ops:
                self._apply(cur, op)
        logger.debug("Committed batch of %d write(s)", len(ops))

    @staticmethod
    def _apply(cur, op: WriteOp) -> None:
        if op.kind == WriteKind.DELETE:
            cur.execute(
                "DELETE FROM documents WHERE collection=%s AND doc_id=%s",
                (op.collection, op.doc_id),
            )
            return

        if op.kind == WriteKind.SET:
            cur.execute(
                """
                INSERT INTO documents(collection, doc_id, body) VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE body=VALUES(body)
                """,
                (op.collection, op.doc_id, _dumps(op.fields)),
            )
            return

        cur.execute(
            "SELECT body FROM documents WHERE collection=%s AND doc_id=%s FOR UPDATE",
            (op.collection, op.doc_id),
        )
        row = fetchone(cur)
        if row is None:
            if op.kind == WriteKind.UPDATE:
                raise NotFoundError(f"Document {op.collection}/{op.doc_id} not found")
            cur.execute(
                "INSERT INTO documents(collection, doc_id, body) VALUES(%s,%s,%s)",
                (op.collection, op.doc_id, _dumps(op.fields)),
            )
            return

        merged = _loads(row["body"])
        merged.update(op.fields)
        cur.execute(
            "UPDATE documents SET body=%s WHERE collection=%s AND doc_id=%s",
            (_dumps(merged), op.collection, op.doc_id),
        )
