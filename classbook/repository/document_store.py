"""SQLite-backed keyed JSON document store."""

from __future__ import annotations

import json
import sqlite3
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional, Sequence, TypeVar

from classbook.domain.errors import StoreUnavailableError
from classbook.utils.config import Settings, get_settings
from classbook.utils.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class DocumentVersionConflictError(StoreUnavailableError):
    """Raised when a version-checked write finds a newer document."""


class DocumentStore:
    """Named JSON documents with a monotonically increasing version per name.

    The store gives no multi-document transactions. Callers that need
    read-modify-write semantics pass the version they read to ``write`` and
    get a ``DocumentVersionConflictError`` if someone else wrote in between.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = float(self._settings.store_timeout_seconds)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path, timeout=self._timeout)
        connection.row_factory = sqlite3.Row
        return connection

    def initialize_database(self) -> None:
        """Create the documents table before API startup."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Documents (
                        name TEXT PRIMARY KEY,
                        body TEXT NOT NULL,
                        version INTEGER NOT NULL CHECK (version > 0),
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                conn.commit()
            logger.info("Document store initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Document store initialization failed: {exc}") from exc

    def read(self, name: str, default: T) -> T | Any:
        document, _ = self.read_versioned(name, default)
        return document

    def read_versioned(self, name: str, default: T) -> tuple[T | Any, int]:
        """Return (document, version); version 0 means the document is absent.

        Unparseable or non-object bodies are treated as absent, mirroring a
        missing file.
        """
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT body, version FROM Documents WHERE name = ?;",
                    (name,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Could not read document {name!r}: {exc}") from exc

        if row is None:
            return deepcopy(default), 0
        version = int(row["version"])
        try:
            document = json.loads(row["body"])
        except json.JSONDecodeError as exc:
            logger.warning("Document %s holds invalid JSON (%s); using default", name, exc)
            return deepcopy(default), version
        if not isinstance(document, (dict, list)):
            logger.warning("Document %s holds a %s; using default", name, type(document).__name__)
            return deepcopy(default), version
        return document, version

    def write(
        self,
        name: str,
        document: Any,
        expected_version: Optional[int] = None,
    ) -> int:
        """Persist a document and return its new version.

        With ``expected_version`` the write only succeeds if the stored
        version still matches (0 meaning "must not exist yet").
        """
        body = json.dumps(document, ensure_ascii=False, sort_keys=True)
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                if expected_version is None:
                    cursor.execute(
                        """
                        INSERT INTO Documents (name, body, version)
                        VALUES (?, ?, 1)
                        ON CONFLICT(name) DO UPDATE SET
                            body = excluded.body,
                            version = Documents.version + 1,
                            updated_at = CURRENT_TIMESTAMP;
                        """,
                        (name, body),
                    )
                elif expected_version == 0:
                    cursor.execute(
                        """
                        INSERT OR IGNORE INTO Documents (name, body, version)
                        VALUES (?, ?, 1);
                        """,
                        (name, body),
                    )
                    if cursor.rowcount == 0:
                        raise DocumentVersionConflictError(
                            f"Document {name!r} was created concurrently"
                        )
                else:
                    cursor.execute(
                        """
                        UPDATE Documents
                        SET body = ?, version = version + 1, updated_at = CURRENT_TIMESTAMP
                        WHERE name = ? AND version = ?;
                        """,
                        (body, name, expected_version),
                    )
                    if cursor.rowcount == 0:
                        raise DocumentVersionConflictError(
                            f"Document {name!r} changed since version {expected_version}"
                        )
                cursor.execute("SELECT version FROM Documents WHERE name = ?;", (name,))
                new_version = int(cursor.fetchone()["version"])
                conn.commit()
                return new_version
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Could not write document {name!r}: {exc}") from exc

    def list_names(self, prefix: str = "") -> Sequence[str]:
        """Return stored document names starting with ``prefix``, sorted."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT name FROM Documents WHERE name LIKE ? ESCAPE '\\' ORDER BY name ASC;",
                    (f"{escaped}%",),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Could not list documents: {exc}") from exc
        return tuple(str(row["name"]) for row in rows)
