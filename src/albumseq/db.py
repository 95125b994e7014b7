"""
SQLite Context Store for albumseq.

Holds the working context the CLI operates on:
- Tracklists (ordered tracks, name matched case-insensitively)
- Media (side count and per-side duration cap)
- Constraints (insertion-ordered; removal by position shifts later ones down)
"""

import json
import sqlite3
import logging
from pathlib import Path
from typing import Optional, List, Tuple
from datetime import datetime, timezone

from .models import Duration, Medium, Track, Tracklist
from .sequence.constraints import Constraint, ConstraintError, parse_constraint

logger = logging.getLogger(__name__)


class ContextError(Exception):
    """Raised when the context file cannot be created or opened."""
    pass


class ContextStore:
    """SQLite-backed store for tracklists, media and constraints."""

    SCHEMA_VERSION = 1

    # SQL schema definition
    SCHEMA = """
    -- Tracklists: one row per named tracklist
    CREATE TABLE IF NOT EXISTS tracklists (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE COLLATE NOCASE,
        updated_at TEXT NOT NULL
    );

    -- Tracks: position is the reference order within the tracklist
    CREATE TABLE IF NOT EXISTS tracks (
        tracklist_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        name TEXT NOT NULL,
        duration_ms INTEGER NOT NULL,
        PRIMARY KEY (tracklist_id, position),
        FOREIGN KEY (tracklist_id) REFERENCES tracklists(id) ON DELETE CASCADE
    );

    -- Media: physical carriers
    CREATE TABLE IF NOT EXISTS media (
        name TEXT PRIMARY KEY COLLATE NOCASE,
        sides INTEGER NOT NULL,
        max_duration_ms INTEGER NOT NULL,
        updated_at TEXT NOT NULL
    );

    -- Constraints: id only preserves insertion order
    CREATE TABLE IF NOT EXISTS constraints (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kind TEXT NOT NULL,
        args TEXT NOT NULL,
        weight REAL NOT NULL,
        created_at TEXT NOT NULL
    );

    -- Schema version tracking
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        updated_at TEXT NOT NULL
    );
    """

    def __init__(self, db_path: str = "context.sqlite"):
        """
        Initialize store.

        Args:
            db_path: Path to SQLite context file.
        """
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None

    def exists(self) -> bool:
        return self.db_path.exists()

    def connect(self, create: bool = True) -> None:
        """
        Open the context file and initialize schema.

        Args:
            create: Create the file if missing. When False a missing file
                    raises ContextError.
        """
        if not create and not self.exists():
            raise ContextError(
                f"Context file not found: {self.db_path} (run 'albumseq init' first)"
            )

        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            logger.debug(f"Connected to context: {self.db_path}")
            self._initialize_schema()
        except sqlite3.DatabaseError as e:
            self.disconnect()
            raise ContextError(f"Cannot open context {self.db_path}: {e}")

    def disconnect(self) -> None:
        """Close the context file."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Context disconnected")

    def __enter__(self) -> "ContextStore":
        if self.conn is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _initialize_schema(self) -> None:
        """Initialize or check schema."""
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if not cursor.fetchone():
            logger.info("Initializing context schema...")
            cursor.executescript(self.SCHEMA)
            cursor.execute(
                "INSERT INTO schema_version (version, updated_at) VALUES (?, ?)",
                (self.SCHEMA_VERSION, _now()),
            )
            self.conn.commit()
            logger.info(f"✅ Context schema initialized (v{self.SCHEMA_VERSION})")
        else:
            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            current_version = cursor.fetchone()[0]
            if current_version < self.SCHEMA_VERSION:
                logger.warning(
                    f"Schema version mismatch: {current_version} < {self.SCHEMA_VERSION}. "
                    f"Consider recreating the context."
                )

    # Tracklists

    def add_or_replace_tracklist(self, tracklist: Tracklist) -> bool:
        """
        Store a tracklist, replacing any with the same name.

        Returns:
            True if an existing tracklist was replaced.
        """
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute("SELECT id FROM tracklists WHERE name = ?", (tracklist.name,))
        row = cursor.fetchone()
        replaced = row is not None

        if replaced:
            tracklist_id = row["id"]
            cursor.execute("DELETE FROM tracks WHERE tracklist_id = ?", (tracklist_id,))
            cursor.execute(
                "UPDATE tracklists SET name = ?, updated_at = ? WHERE id = ?",
                (tracklist.name, _now(), tracklist_id),
            )
        else:
            cursor.execute(
                "INSERT INTO tracklists (name, updated_at) VALUES (?, ?)",
                (tracklist.name, _now()),
            )
            tracklist_id = cursor.lastrowid

        cursor.executemany(
            "INSERT INTO tracks (tracklist_id, position, name, duration_ms) VALUES (?, ?, ?, ?)",
            [
                (tracklist_id, position, track.name, track.duration.milliseconds)
                for position, track in enumerate(tracklist.tracks)
            ],
        )
        self.conn.commit()

        logger.info(
            f"{'Replaced' if replaced else 'Added'} tracklist '{tracklist.name}' "
            f"({len(tracklist)} tracks)"
        )
        return replaced

    def _load_tracks(self, tracklist_id: int) -> List[Track]:
        assert self.conn is not None
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT name, duration_ms FROM tracks WHERE tracklist_id = ? ORDER BY position",
            (tracklist_id,),
        )
        return [Track(row["name"], Duration(row["duration_ms"])) for row in cursor.fetchall()]

    def get_tracklist(self, name: str) -> Optional[Tracklist]:
        """
        Retrieve a tracklist by name (case-insensitive).

        Returns:
            Tracklist or None if not found.
        """
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute("SELECT id, name FROM tracklists WHERE name = ?", (name,))
        row = cursor.fetchone()

        if not row:
            return None

        return Tracklist(row["name"], self._load_tracks(row["id"]))

    def list_tracklists(self) -> List[Tracklist]:
        """All tracklists in insertion order."""
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute("SELECT id, name FROM tracklists ORDER BY id")
        return [Tracklist(row["name"], self._load_tracks(row["id"])) for row in cursor.fetchall()]

    # Media

    def add_or_replace_medium(self, medium: Medium) -> bool:
        """
        Store a medium, replacing any with the same name.

        Returns:
            True if an existing medium was replaced.
        """
        assert self.conn is not None
        cursor = self.conn.cursor()

        replaced = self.get_medium(medium.name) is not None
        values = (medium.name, medium.sides, medium.max_duration_per_side.milliseconds, _now())

        if replaced:
            cursor.execute(
                """
                UPDATE media SET name = ?, sides = ?, max_duration_ms = ?, updated_at = ?
                WHERE name = ?
                """,
                values + (medium.name,),
            )
        else:
            cursor.execute(
                """
                INSERT INTO media (name, sides, max_duration_ms, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                values,
            )
        self.conn.commit()

        logger.info(f"{'Replaced' if replaced else 'Added'} medium '{medium.name}'")
        return replaced

    def get_medium(self, name: str) -> Optional[Medium]:
        """Retrieve a medium by name (case-insensitive)."""
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute("SELECT * FROM media WHERE name = ?", (name,))
        row = cursor.fetchone()

        if not row:
            return None

        return Medium(row["name"], row["sides"], Duration(row["max_duration_ms"]))

    def list_media(self) -> List[Medium]:
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute("SELECT * FROM media ORDER BY rowid")
        return [
            Medium(row["name"], row["sides"], Duration(row["max_duration_ms"]))
            for row in cursor.fetchall()
        ]

    # Constraints

    def _constraint_rows(self) -> List[sqlite3.Row]:
        assert self.conn is not None
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, kind, args, weight FROM constraints ORDER BY id")
        return cursor.fetchall()

    def add_or_replace_constraint(self, constraint: Constraint) -> Tuple[int, bool]:
        """
        Store a constraint. A constraint with the same kind and arguments has
        its weight replaced in place.

        Returns:
            Tuple (index, replaced) where index is the constraint's position.
        """
        assert self.conn is not None
        cursor = self.conn.cursor()
        args_json = json.dumps(constraint.args)

        for index, row in enumerate(self._constraint_rows()):
            if _row_to_constraint(row).same_rule(constraint):
                cursor.execute(
                    "UPDATE constraints SET weight = ? WHERE id = ?",
                    (constraint.weight, row["id"]),
                )
                self.conn.commit()
                logger.info(f"Replaced constraint #{index}: {constraint}")
                return index, True

        cursor.execute(
            "INSERT INTO constraints (kind, args, weight, created_at) VALUES (?, ?, ?, ?)",
            (constraint.kind, args_json, constraint.weight, _now()),
        )
        self.conn.commit()

        index = len(self._constraint_rows()) - 1
        logger.info(f"Added constraint #{index}: {constraint}")
        return index, False

    def list_constraints(self) -> List[Constraint]:
        """
        Constraints in insertion order; list index is the removal index.

        Raises:
            ContextError: If a stored row no longer parses.
        """
        return [_row_to_constraint(row) for row in self._constraint_rows()]

    def remove_constraint(self, index: int) -> Optional[Constraint]:
        """
        Remove the constraint at a position. Later constraints shift down by one.

        Returns:
            The removed constraint, or None if the index is out of range.
        """
        assert self.conn is not None
        rows = self._constraint_rows()

        if not 0 <= index < len(rows):
            logger.warning(f"Constraint index {index} out of range (0..{len(rows) - 1})")
            return None

        row = rows[index]
        removed = _row_to_constraint(row)

        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM constraints WHERE id = ?", (row["id"],))
        self.conn.commit()

        logger.info(f"Removed constraint #{index}: {removed}")
        return removed

    def get_stats(self) -> dict:
        """Counts of stored entities."""
        assert self.conn is not None
        cursor = self.conn.cursor()

        stats = {}
        for table in ("tracklists", "tracks", "media", "constraints"):
            cursor.execute(f"SELECT COUNT(*) FROM {table}")
            stats[table] = cursor.fetchone()[0]
        return stats


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_constraint(row: sqlite3.Row) -> Constraint:
    try:
        return parse_constraint(row["kind"], json.loads(row["args"]), row["weight"])
    except (ConstraintError, ValueError) as e:
        raise ContextError(f"Stored constraint {row['id']} is invalid: {e}")
