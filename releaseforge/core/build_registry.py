"""Build-info registry backed by SQLite.

Each build run is one row keyed by (name, number, started) holding the
JSON-serialized ``DetailedBuild``.  Artifact files are not stored here: a
run's files are the repository files whose ``build.name`` and
``build.number`` properties match the run.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from releaseforge.core.repository import FileSystemRepository
from releaseforge.core.result import Err, Ok, Result
from releaseforge.models.build import BuildRun, DetailedBuild
from releaseforge.models.repo import FileInfo, StorageFault

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_BUILDS = """
CREATE TABLE IF NOT EXISTS builds (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT NOT NULL,
    number        TEXT NOT NULL,
    started       TEXT NOT NULL,
    build_json    TEXT NOT NULL,
    recorded_utc  TEXT NOT NULL,
    UNIQUE (name, number, started)
);
"""

_CREATE_IDX_NAME_NUMBER = """
CREATE INDEX IF NOT EXISTS idx_name_number ON builds(name, number, id);
"""


class BuildRegistryError(RuntimeError):
    """Raised when a build record cannot be written."""


class SQLiteBuildRegistry:
    """Build-info storage.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    repository:
        Artifact store searched by ``list_artifact_files``.
    """

    def __init__(self, db_path: Path, repository: FileSystemRepository) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._repository = repository
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_BUILDS)
            conn.execute(_CREATE_IDX_NAME_NUMBER)
            conn.commit()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find(self, name: str, number: str, started: str | None = None) -> list[BuildRun]:
        query = "SELECT name, number, started FROM builds WHERE name = ? AND number = ?"
        args: list[str] = [name, number]
        if started is not None:
            query += " AND started = ?"
            args.append(started)
        query += " ORDER BY id"
        with self._connect() as conn:
            rows = conn.execute(query, args).fetchall()
        return [BuildRun(name=r[0], number=r[1], started=r[2]) for r in rows]

    def list_runs(self, name: str) -> list[BuildRun]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, number, started FROM builds WHERE name = ? ORDER BY id",
                (name,),
            ).fetchall()
        return [BuildRun(name=r[0], number=r[1], started=r[2]) for r in rows]

    def load_detailed(self, run: BuildRun) -> DetailedBuild | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT build_json FROM builds WHERE name = ? AND number = ? AND started = ?",
                (run.name, run.number, run.started),
            ).fetchone()
        if row is None:
            return None
        return DetailedBuild.model_validate_json(row[0])

    def list_artifact_files(self, run: BuildRun) -> list[FileInfo]:
        """Files tagged with the run's name and number.

        Runs that share a name and number also share those properties, so
        when siblings exist, files whose checksum only a sibling run lists
        among its artifacts are left out.
        """
        files = self._repository.search_by_properties(
            {"build.name": run.name, "build.number": run.number}
        )
        siblings = [r for r in self.find(run.name, run.number) if r != run]
        if not siblings:
            return files
        own = self._artifact_checksums(run)
        foreign: set[str] = set()
        for sibling in siblings:
            foreign |= self._artifact_checksums(sibling)
        foreign -= own
        return [f for f in files if f.sha1 not in foreign]

    def _artifact_checksums(self, run: BuildRun) -> set[str]:
        build = self.load_detailed(run)
        if build is None:
            return set()
        return {a.sha1 for m in build.modules for a in m.artifacts}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, build: DetailedBuild) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO builds (name, number, started, build_json, recorded_utc)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        build.name,
                        build.number,
                        build.started,
                        build.model_dump_json(),
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise BuildRegistryError(f"Build {build} is already recorded") from exc
        logger.info("Saved build info %s (started %s)", build, build.started)

    def delete(self, run: BuildRun) -> Result[None, StorageFault]:
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM builds WHERE name = ? AND number = ? AND started = ?",
                    (run.name, run.number, run.started),
                )
                conn.commit()
        except sqlite3.Error as exc:
            return Err(StorageFault(message=f"Failed to delete build {run}", cause=exc))
        if cursor.rowcount == 0:
            return Err(StorageFault(message=f"Build {run} not found"))
        return Ok(None)
