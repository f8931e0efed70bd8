from __future__ import annotations

import logging
import os
import uuid
from datetime import UTC, datetime
from typing import Any

import psycopg2
from psycopg2.extras import Json, execute_values

from lead_import.models.config_models import DatabaseConfig

from .store import CollectionScope, CommitGroup, RecordRef, StoreError, WriteOp, resolve_timestamps

"""PostgreSQL-backed RecordStore.

Documents live in one jsonb table keyed by (collection path, id):

    documents(path text, id text, data jsonb, created_at, updated_at)

- exact-match queries read `data #>> '{a,b}'` for dotted field names
- a CommitGroup runs in a single transaction (COMMIT / ROLLBACK)
- set ops are INSERT ... ON CONFLICT DO UPDATE via execute_values
- update ops merge key by key with jsonb_set, so untouched fields survive
"""

__all__ = [
    "PostgresStore",
    "resolve_dsn",
    "SCHEMA_SQL",
]

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    path text NOT NULL,
    id text NOT NULL,
    data jsonb NOT NULL,
    created_at timestamptz NOT NULL DEFAULT now(),
    updated_at timestamptz NOT NULL DEFAULT now(),
    PRIMARY KEY (path, id)
)
"""


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the connection DSN.

    優先順位:
        1. DATABASE_URL / PGDSN (DSN 全体)
        2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config の database セクション (不足分のフォールバック)
    """
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn_env:
        return dsn_env
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


class PostgresStore:
    """RecordStore on top of a psycopg2 connection (autocommit off)."""

    def __init__(self, conn: Any, table: str = "documents") -> None:
        self.conn = conn
        self.table = table

    def ensure_schema(self) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(SCHEMA_SQL.replace("documents", self.table, 1))
            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            raise StoreError(f"schema setup failed: {e}") from e

    def query_by_field(
        self,
        scope: CollectionScope,
        field: str,
        value: str,
        *,
        case_insensitive: bool = False,
    ) -> list[RecordRef]:
        if case_insensitive:
            cond = "lower(data #>> %s) = lower(%s)"
        else:
            cond = "data #>> %s = %s"
        sql = f"SELECT id FROM {self.table} WHERE path = %s AND {cond} ORDER BY created_at, id"
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, (scope.path, field.split("."), value))
                rows = cur.fetchall()
            # 読み取りでもトランザクションが開くので閉じておく
            self.conn.rollback()
        except psycopg2.Error as e:
            self.conn.rollback()
            raise StoreError(f"query failed on {scope.path}.{field}: {e}") from e
        return [RecordRef(scope.path, r[0]) for r in rows]

    def new_ref(self, path: str) -> RecordRef:
        return RecordRef(path, uuid.uuid4().hex[:20])

    def begin_group(self) -> CommitGroup:
        return CommitGroup()

    def group_set(self, group: CommitGroup, ref: RecordRef, payload: dict[str, Any]) -> None:
        group.ops.append(WriteOp("set", ref, payload))

    def group_update(self, group: CommitGroup, ref: RecordRef, payload: dict[str, Any]) -> None:
        group.ops.append(WriteOp("update", ref, payload))

    def commit(self, group: CommitGroup) -> None:
        """Apply all ops of `group` in one transaction, in queue order."""
        if not group.ops:
            return
        now = datetime.now(UTC).isoformat()
        try:
            with self.conn.cursor() as cur:
                pending_sets: list[tuple[str, str, Json]] = []
                for op in group.ops:
                    payload = resolve_timestamps(op.payload, now)
                    if op.kind == "set":
                        pending_sets.append((op.ref.path, op.ref.record_id, Json(payload)))
                        continue
                    # update 前に溜まった set を流して順序を保つ
                    self._flush_sets(cur, pending_sets)
                    pending_sets = []
                    self._apply_update(cur, op.ref, payload)
                self._flush_sets(cur, pending_sets)
            self.conn.commit()
        except StoreError:
            self.conn.rollback()
            raise
        except psycopg2.Error as e:
            self.conn.rollback()
            raise StoreError(f"commit failed: {e}") from e
        logger.debug("committed group ops=%d", len(group.ops))

    def _flush_sets(self, cur: Any, rows: list[tuple[str, str, Json]]) -> None:
        if not rows:
            return
        sql = (
            f"INSERT INTO {self.table} (path, id, data) VALUES %s "
            "ON CONFLICT (path, id) DO UPDATE SET data = EXCLUDED.data, updated_at = now()"
        )
        execute_values(cur, sql, rows, template="(%s, %s, %s::jsonb)", page_size=1000)

    def _apply_update(self, cur: Any, ref: RecordRef, payload: dict[str, Any]) -> None:
        expr = "data"
        params: list[Any] = []
        for key, value in payload.items():
            expr = f"jsonb_set({expr}, %s, %s::jsonb, true)"
            params.extend([key.split("."), Json(value)])
        params.extend([ref.path, ref.record_id])
        cur.execute(
            f"UPDATE {self.table} SET data = {expr}, updated_at = now() WHERE path = %s AND id = %s",
            params,
        )
        if cur.rowcount == 0:
            raise StoreError(f"no document to update: {ref.path}/{ref.record_id}")
