"""Session scratch storage for the in-progress website draft.

One JSON blob per session under a fixed key. Writes overwrite (last write
wins); there is no merge.

Provides:
- ScratchStore: protocol for dependency injection
- PgScratchStore: PostgreSQL-backed store (psycopg)
- MockScratchStore: in-memory store for tests and local runs
"""

from __future__ import annotations

import json
import os
from typing import Protocol

import psycopg
from psycopg.rows import dict_row


SCRATCH_KEY = "agent-wizard-website-data"


class ScratchStore(Protocol):
    """Protocol defining the scratch storage interface."""

    def load(self, session_id: str) -> dict | None:
        """Return the stored website draft for a session, or None."""
        ...

    def save(self, session_id: str, data: dict) -> None:
        """Overwrite the stored website draft for a session."""
        ...

    def clear(self, session_id: str) -> None:
        """Remove the stored website draft for a session."""
        ...


def _get_connection_string() -> str:
    return os.environ.get(
        "DATABASE_URL",
        "postgresql://localhost/agentwizard"
    )


class PgScratchStore:
    """Scratch storage in a ``wizard_scratch`` table.

    Expected schema::

        CREATE TABLE wizard_scratch (
            session_id TEXT NOT NULL,
            key        TEXT NOT NULL,
            data       JSONB NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (session_id, key)
        );
    """

    def __init__(self, connection_string: str | None = None):
        self._conninfo = connection_string or _get_connection_string()

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(self._conninfo, row_factory=dict_row)

    def load(self, session_id: str) -> dict | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT data FROM wizard_scratch WHERE session_id = %s AND key = %s",
                    (session_id, SCRATCH_KEY)
                )
                row = cur.fetchone()
        if row is None:
            return None
        data = row["data"]
        # JSONB comes back decoded; TEXT columns in older schemas do not.
        if isinstance(data, str):
            data = json.loads(data)
        return data

    def save(self, session_id: str, data: dict) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO wizard_scratch (session_id, key, data)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (session_id, key)
                    DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
                    """,
                    (session_id, SCRATCH_KEY, json.dumps(data))
                )
                conn.commit()

    def clear(self, session_id: str) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM wizard_scratch WHERE session_id = %s AND key = %s",
                    (session_id, SCRATCH_KEY)
                )
                conn.commit()


class MockScratchStore:
    """In-memory scratch storage."""

    def __init__(self):
        self._data: dict[tuple[str, str], str] = {}

    def load(self, session_id: str) -> dict | None:
        raw = self._data.get((session_id, SCRATCH_KEY))
        return json.loads(raw) if raw is not None else None

    def save(self, session_id: str, data: dict) -> None:
        self._data[(session_id, SCRATCH_KEY)] = json.dumps(data)

    def clear(self, session_id: str) -> None:
        self._data.pop((session_id, SCRATCH_KEY), None)
