"""
SQLite-backed store of named authenticators.

Schema
------
authenticators
  id       INTEGER  PRIMARY KEY AUTOINCREMENT
  name     TEXT     NOT NULL UNIQUE  -- label chosen by the user
  flavor   TEXT     NOT NULL         -- "standard" / "battlenet"
  data     TEXT     NOT NULL         -- password-protected secret data

Only secret data is persisted.  Server time offsets are re-derived by
syncing after every load.
"""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from core import protection
from core.authenticator import Authenticator, get_flavor, make_synchronizer
from core.config import Settings, load_settings

logger = logging.getLogger(__name__)


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass
class StoredAuthenticator:
    """A row of the store; ``data`` is still protected."""

    name: str
    flavor: str
    data: str
    id: Optional[int] = None

    def load(self, password: str, settings: Optional[Settings] = None) -> Authenticator:
        """Decrypt and build the :class:`Authenticator` for this row."""
        flavor = get_flavor(self.flavor)
        auth = Authenticator.locked(
            self.data, flavor=flavor, synchronizer=make_synchronizer(flavor, settings or load_settings())
        )
        auth.unlock(password)
        return auth


# ── Database ──────────────────────────────────────────────────────────────────

class AuthenticatorStore:
    """Persist authenticators, protecting their secret data with a password."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """
        Args:
            db_path: Path to the SQLite file.  Defaults to
                     :attr:`core.config.Settings.db_path`.
        """
        self._path = Path(db_path or load_settings().db_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._bootstrap()

    # ── Schema ───────────────────────────────────────────────────────────

    def _bootstrap(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS authenticators (
                    id     INTEGER PRIMARY KEY AUTOINCREMENT,
                    name   TEXT    NOT NULL UNIQUE,
                    flavor TEXT    NOT NULL DEFAULT 'standard',
                    data   TEXT    NOT NULL
                );
                """
            )

    # ── CRUD ──────────────────────────────────────────────────────────────

    def add(self, name: str, authenticator: Authenticator, password: str) -> int:
        """
        Protect and insert ``authenticator`` under ``name``; return the row id.

        Raises:
            ValueError: If ``name`` is already taken.
        """
        data = authenticator.protect(password)
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO authenticators (name, flavor, data) VALUES (?, ?, ?)",
                    (name, authenticator.flavor.name, data),
                )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"An authenticator named '{name}' already exists.") from exc
        logger.info("Stored %s authenticator '%s'.", authenticator.flavor.name, name)
        return cursor.lastrowid  # type: ignore[return-value]

    def get(self, name: str) -> Optional[StoredAuthenticator]:
        row = self._conn.execute(
            "SELECT * FROM authenticators WHERE name=?", (name,)
        ).fetchone()
        return self._row_to_stored(row) if row else None

    def list(self) -> List[StoredAuthenticator]:
        """Return all rows, still protected, ordered by id."""
        rows = self._conn.execute(
            "SELECT * FROM authenticators ORDER BY id"
        ).fetchall()
        return [self._row_to_stored(r) for r in rows]

    def load(self, name: str, password: str, settings: Optional[Settings] = None) -> Authenticator:
        """
        Fetch and unlock the authenticator called ``name``.

        Raises:
            KeyError: Unknown name.
            ProtectionError: Wrong password.
        """
        stored = self.get(name)
        if stored is None:
            raise KeyError(name)
        return stored.load(password, settings)

    def update(self, name: str, authenticator: Authenticator, password: str) -> None:
        """Re-protect and replace the secret data stored under ``name``."""
        with self._conn:
            cursor = self._conn.execute(
                "UPDATE authenticators SET flavor=?, data=? WHERE name=?",
                (authenticator.flavor.name, authenticator.protect(password), name),
            )
        if cursor.rowcount == 0:
            raise KeyError(name)

    def delete(self, name: str) -> bool:
        """Delete by name; return True if a row was removed."""
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM authenticators WHERE name=?", (name,)
            )
        return cursor.rowcount > 0

    def change_password(self, old_password: str, new_password: str) -> int:
        """Re-protect every row with ``new_password``; return the row count."""
        rows = self.list()
        updated = [
            (protection.protect(protection.unprotect(r.data, old_password), new_password), r.id)
            for r in rows
        ]
        with self._conn:
            self._conn.executemany("UPDATE authenticators SET data=? WHERE id=?", updated)
        return len(updated)

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _row_to_stored(row: sqlite3.Row) -> StoredAuthenticator:
        return StoredAuthenticator(
            id=row["id"],
            name=row["name"],
            flavor=row["flavor"],
            data=row["data"],
        )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
