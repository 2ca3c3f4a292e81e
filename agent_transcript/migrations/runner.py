"""Apply the numbered SQL migrations to a transcript database.

Migrations are the ``NNN_name.sql`` files of a directory (this package by
default), applied in version order. Each applied file is recorded in
``_schema_version`` with the SHA256 of its text; a file edited after it was
applied is reported with a warning and never re-run.
"""

import hashlib
import logging
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILENAME = re.compile(r"^(\d+)_\w+\.sql$")


class Migration(NamedTuple):
    version: int
    path: Path
    sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()


def load_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Read the migrations of directory, ordered by version.

    Files not named like ``001_initial_schema.sql`` are ignored.
    """
    migrations: list[Migration] = []
    for path in directory.glob("*.sql"):
        match = MIGRATION_FILENAME.match(path.name)
        if match is None:
            logger.debug("Ignoring %s: not a numbered migration", path.name)
            continue
        migrations.append(
            Migration(int(match.group(1)), path, path.read_text(encoding="utf-8"))
        )
    return sorted(migrations, key=lambda migration: migration.version)


def _applied_checksums(conn: sqlite3.Connection) -> dict[int, str]:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS _schema_version (
            version INTEGER PRIMARY KEY,
            filename TEXT NOT NULL,
            applied_at TEXT NOT NULL,
            checksum TEXT NOT NULL
        )
    """)
    conn.commit()
    rows = conn.execute("SELECT version, checksum FROM _schema_version").fetchall()
    return {version: checksum for version, checksum in rows}


def _apply(conn: sqlite3.Connection, migration: Migration) -> None:
    conn.executescript(migration.sql)
    conn.execute(
        """
        INSERT INTO _schema_version (version, filename, applied_at, checksum)
        VALUES (?, ?, ?, ?)
        """,
        (
            migration.version,
            migration.path.name,
            datetime.now(timezone.utc).isoformat(),
            migration.checksum,
        ),
    )
    conn.commit()
    logger.info("Applied migration %s", migration.path.name)


def run_migrations(db_path: Path, directory: Path = MIGRATIONS_DIR) -> int:
    """Bring the database at db_path up to the latest schema.

    Args:
        db_path: SQLite database file, created if missing
        directory: Where the migration files live

    Returns:
        Number of migrations applied by this call

    Raises:
        sqlite3.Error: If the database can't be read or a migration fails
    """
    conn = sqlite3.connect(db_path, timeout=30.0)
    try:
        applied = _applied_checksums(conn)
        count = 0
        for migration in load_migrations(directory):
            recorded = applied.get(migration.version)
            if recorded is None:
                _apply(conn, migration)
                count += 1
            elif recorded != migration.checksum:
                logger.warning(
                    "Migration %s was modified after it was applied to %s",
                    migration.path.name,
                    db_path,
                )
        return count
    finally:
        conn.close()
