from __future__ import annotations

import logging

from psycopg2.extras import Json

from gitlytics.domain.entities import InsightsSnapshot, to_json
from gitlytics.domain.interfaces import ISnapshotSink

log = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS insights_snapshots (
    id           SERIAL PRIMARY KEY,
    username     TEXT        NOT NULL,
    captured_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_updated TIMESTAMPTZ NOT NULL,
    payload      JSONB       NOT NULL
)
"""


class PostgresSnapshotSink(ISnapshotSink):
    """
    Appends finished insights snapshots to PostgreSQL.

    Receives an already-connected psycopg2 connection; opening and closing
    it is the caller's job.
    """

    def __init__(self, conn) -> None:
        self._conn = conn

    def ensure_schema(self) -> None:
        with self._conn.cursor() as cur:
            cur.execute(CREATE_TABLE_SQL)
        self._conn.commit()

    def save(self, snapshot: InsightsSnapshot, last_updated: str) -> None:
        """
        Insert one row per snapshot. History is append-only: earlier rows for
        the same user are kept for later comparison.
        """
        payload = Json(snapshot, dumps=to_json)
        with self._conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO insights_snapshots (username, last_updated, payload)
                VALUES (%s, %s, %s)
                RETURNING id
                """,
                (snapshot.user.login, last_updated, payload),
            )
            snapshot_id = cur.fetchone()[0]
        self._conn.commit()
        log.debug("Saved snapshot #%d for %s", snapshot_id, snapshot.user.login)
