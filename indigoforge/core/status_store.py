"""Build status persistence backed by SQLite.

Two tables:
- ``build_status``: the latest status per location, overwritten on save.
- ``build_runs``: one row per run_id, updated in place as the run
  progresses, giving a per-location run history.

Statuses are stored as canonical JSON using the external field names,
so a stored record round-trips through ``BuildStatus.model_validate``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from indigoforge.core.errors import IndigoForgeError
from indigoforge.core.hasher import canonical_json_bytes
from indigoforge.models.build import BuildStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_STATUS = """
CREATE TABLE IF NOT EXISTS build_status (
    location_id   TEXT PRIMARY KEY,
    run_id        TEXT NOT NULL,
    plan_hash     TEXT NOT NULL,
    status        TEXT NOT NULL,
    started_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL,
    status_json   TEXT NOT NULL
);
"""

_CREATE_RUNS = """
CREATE TABLE IF NOT EXISTS build_runs (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id        TEXT NOT NULL UNIQUE,
    location_id   TEXT NOT NULL,
    plan_hash     TEXT NOT NULL,
    status        TEXT NOT NULL,
    started_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL,
    status_json   TEXT NOT NULL
);
"""

_CREATE_IDX_RUNS_LOCATION = """
CREATE INDEX IF NOT EXISTS idx_runs_location ON build_runs(location_id, id);
"""


class StatusStoreError(IndigoForgeError):
    """Raised when a persisted status cannot be decoded."""


@runtime_checkable
class BuildStatusStore(Protocol):
    """Persistence contract for build statuses, keyed by location id."""

    def save(self, status: BuildStatus) -> None:
        ...

    def load(self, location_id: str) -> BuildStatus | None:
        ...

    def history(self, location_id: str, limit: int = 20) -> list[BuildStatus]:
        ...


class InMemoryBuildStatusStore:
    """Volatile store; keeps deep copies so callers cannot mutate history."""

    def __init__(self) -> None:
        self._latest: dict[str, BuildStatus] = {}
        self._runs: dict[str, BuildStatus] = {}
        self.save_count = 0

    def save(self, status: BuildStatus) -> None:
        snapshot = status.model_copy(deep=True)
        self._latest[status.tenant_id] = snapshot
        self._runs[status.run_id] = snapshot
        self.save_count += 1

    def load(self, location_id: str) -> BuildStatus | None:
        status = self._latest.get(location_id)
        return status.model_copy(deep=True) if status else None

    def history(self, location_id: str, limit: int = 20) -> list[BuildStatus]:
        runs = [s for s in self._runs.values() if s.tenant_id == location_id]
        return [s.model_copy(deep=True) for s in reversed(runs)][:limit]


class SQLiteBuildStatusStore:
    """SQLite-backed status store.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    clock:
        Source of the ``updated_at`` save time.
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._db_path = Path(db_path)
        self._clock = clock
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_STATUS)
            conn.execute(_CREATE_RUNS)
            conn.execute(_CREATE_IDX_RUNS_LOCATION)
            conn.commit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, status: BuildStatus) -> None:
        """Overwrite the latest status for the location and upsert the run row."""
        payload = canonical_json_bytes(status.to_json_dict()).decode("utf-8")
        row = (
            status.tenant_id,
            status.run_id,
            status.plan_hash,
            status.status.value,
            status.last_run_at.isoformat(),
            self._clock().isoformat(),
            payload,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO build_status
                    (location_id, run_id, plan_hash, status, started_at, updated_at, status_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(location_id) DO UPDATE SET
                    run_id = excluded.run_id,
                    plan_hash = excluded.plan_hash,
                    status = excluded.status,
                    started_at = excluded.started_at,
                    updated_at = excluded.updated_at,
                    status_json = excluded.status_json
                """,
                row,
            )
            conn.execute(
                """
                INSERT INTO build_runs
                    (location_id, run_id, plan_hash, status, started_at, updated_at, status_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(run_id) DO UPDATE SET
                    status = excluded.status,
                    updated_at = excluded.updated_at,
                    status_json = excluded.status_json
                """,
                row,
            )
            conn.commit()
        logger.debug(
            "Saved status %s for run %s (location %s)",
            status.status.value, status.run_id, status.tenant_id,
        )

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def load(self, location_id: str) -> BuildStatus | None:
        """Return the latest status for a location, or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT status_json FROM build_status WHERE location_id = ?",
                (location_id,),
            ).fetchone()
        return self._decode(row[0]) if row else None

    def history(self, location_id: str, limit: int = 20) -> list[BuildStatus]:
        """Return runs for a location, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT status_json FROM build_runs WHERE location_id = ? "
                "ORDER BY id DESC LIMIT ?",
                (location_id, limit),
            ).fetchall()
        return [self._decode(row[0]) for row in rows]

    def get_run(self, run_id: str) -> BuildStatus | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT status_json FROM build_runs WHERE run_id = ?",
                (run_id,),
            ).fetchone()
        return self._decode(row[0]) if row else None

    def locations(self) -> list[str]:
        """Locations with a stored status, most recently saved first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT location_id FROM build_status ORDER BY updated_at DESC"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(raw: str) -> BuildStatus:
        try:
            return BuildStatus.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StatusStoreError(f"Corrupt build status record: {exc}") from exc
