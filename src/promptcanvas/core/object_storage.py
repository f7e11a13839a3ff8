"""Directory-backed object storage for uploaded images.

Objects live under ``storage_dir`` at their key (``<user_id>/<epoch-ms>.jpg``
for uploads) and are served by the API's static mount, so the public URL of
an object is simply ``<storage_public_path>/<key>``.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from promptcanvas.core.errors import StorageError

logger = logging.getLogger(__name__)


class LocalObjectStorage:
    """A single storage bucket rooted at a local directory.

    Args:
        root: Directory holding the bucket's objects.
        public_path: URL prefix the directory is served under.
    """

    def __init__(self, root: Path | str, public_path: str = "/storage") -> None:
        self.root = Path(root)
        self.public_path = public_path.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        """Map *key* to a path inside the bucket, rejecting traversal."""
        parts = PurePosixPath(key).parts
        if not parts or key.startswith("/") or any(part in ("..", ".") for part in parts):
            raise StorageError(f"Invalid object key: {key!r}")
        return self.root.joinpath(*parts)

    def upload(self, key: str, data: bytes, upsert: bool = False) -> str:
        """Write *data* at *key*.

        Args:
            key: Object key, ``/``-separated.
            data: Object contents.
            upsert: Overwrite an existing object instead of failing.

        Returns:
            The key that was written.

        Raises:
            StorageError: If the key is invalid, already exists (without
                *upsert*), or the write fails.
        """
        path = self._resolve(key)
        if path.exists() and not upsert:
            raise StorageError(f"Object already exists: {key}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write {key}: {e}") from e

        logger.info(f"Stored object {key} ({len(data)} bytes)")
        return key

    def remove(self, keys: list[str]) -> list[str]:
        """Delete objects; missing keys are skipped.

        Returns:
            Keys that were actually removed.
        """
        removed: list[str] = []
        for key in keys:
            path = self._resolve(key)
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Could not remove {key}: {e}") from e
            removed.append(key)
        return removed

    def get_public_url(self, key: str) -> str:
        self._resolve(key)
        return f"{self.public_path}/{key}"

    def key_from_public_url(self, url: str) -> str | None:
        """Inverse of :meth:`get_public_url`; ``None`` for foreign URLs."""
        prefix = f"{self.public_path}/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):] or None
