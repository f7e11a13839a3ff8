"""SQLite store for generated image records."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from promptcanvas.core.errors import ImageNotFoundError, ImageStoreError

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as a fixed-width ISO-8601 string.

    Microseconds are always included so timestamps sort lexically.
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@dataclass
class GeneratedImage:
    """One generation or upload result.

    ``image_url`` may be a remote URL, a storage URL, or a ``data:`` URI.
    """

    id: str
    user_id: str
    prompt: str
    image_url: str
    liked: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> GeneratedImage:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            prompt=row["prompt"],
            image_url=row["image_url"],
            liked=bool(row["liked"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


class ImageStore:
    """Manage generated image records using SQLite.

    Every public method opens its own connection, so one store instance can be
    shared across concurrent requests.  SQLite errors are re-raised as
    :class:`ImageStoreError`; lookups of unknown ids raise
    :class:`ImageNotFoundError`.
    """

    def __init__(self, db_path: Path | str):
        """Initialize the store and create the schema if needed.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized image store at {self.db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise ImageStoreError(f"Could not open {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise ImageStoreError(str(e)) from e
        finally:
            conn.close()

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS generated_images (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    prompt TEXT NOT NULL,
                    image_url TEXT NOT NULL,
                    liked INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_generated_images_created_at
                ON generated_images(created_at DESC)
                """)

    def _fetch(self, conn: sqlite3.Connection, image_id: str) -> GeneratedImage:
        row = conn.execute(
            "SELECT * FROM generated_images WHERE id = ?",
            (image_id,),
        ).fetchone()
        if row is None:
            raise ImageNotFoundError(image_id)
        return GeneratedImage.from_row(row)

    def list_images(self, user_id: str | None = None) -> list[GeneratedImage]:
        """Return records newest first, optionally for one user only."""
        query = "SELECT * FROM generated_images"
        params: tuple = ()
        if user_id is not None:
            query += " WHERE user_id = ?"
            params = (user_id,)
        # rowid breaks ties between records created in the same microsecond
        query += " ORDER BY created_at DESC, rowid DESC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [GeneratedImage.from_row(row) for row in rows]

    def get_image(self, image_id: str) -> GeneratedImage:
        with self._connect() as conn:
            return self._fetch(conn, image_id)

    def create_image(
        self,
        prompt: str,
        image_url: str,
        user_id: str,
        liked: bool = False,
    ) -> GeneratedImage:
        """Insert a new record.

        The prompt is stored stripped of surrounding whitespace.

        Raises:
            ValueError: If ``prompt`` or ``image_url`` is blank.
            ImageStoreError: If the insert fails.
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("prompt is required")
        if not image_url:
            raise ValueError("image_url is required")

        now = utc_timestamp()
        image = GeneratedImage(
            id=str(uuid.uuid4()),
            user_id=user_id,
            prompt=prompt,
            image_url=image_url,
            liked=liked,
            created_at=now,
            updated_at=now,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO generated_images
                    (id, user_id, prompt, image_url, liked, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    image.id,
                    image.user_id,
                    image.prompt,
                    image.image_url,
                    int(image.liked),
                    image.created_at,
                    image.updated_at,
                ),
            )
        logger.info(f"Created image record {image.id}")
        return image

    def set_liked(self, image_id: str, liked: bool) -> GeneratedImage:
        """Set the liked flag and refresh ``updated_at``."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE generated_images SET liked = ?, updated_at = ? WHERE id = ?",
                (int(liked), utc_timestamp(), image_id),
            )
            if cursor.rowcount == 0:
                raise ImageNotFoundError(image_id)
            return self._fetch(conn, image_id)

    def toggle_liked(self, image_id: str) -> GeneratedImage:
        """Flip the liked flag; applying it twice restores the original value."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE generated_images SET liked = 1 - liked, updated_at = ? WHERE id = ?",
                (utc_timestamp(), image_id),
            )
            if cursor.rowcount == 0:
                raise ImageNotFoundError(image_id)
            return self._fetch(conn, image_id)

    def delete_image(self, image_id: str) -> GeneratedImage:
        """Delete a record and return what was deleted."""
        with self._connect() as conn:
            image = self._fetch(conn, image_id)
            conn.execute("DELETE FROM generated_images WHERE id = ?", (image_id,))
        logger.info(f"Deleted image record {image_id}")
        return image

