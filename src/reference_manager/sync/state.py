"""Base snapshot persistence layer.

A three-way merge needs the common ancestor of local and remote.  After
every clean (or auto-resolved) merge the merged library becomes the new
ancestor, so it is stored here, in the ``.reference_manager/`` directory.
Each library gets its own file (``base_{library_name}.json``) holding the
records plus a little bookkeeping.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see a half-written base.
* **Content hashing** -- ``content_hash()`` hashes canonical JSON
  (sorted keys, compact separators) so the hash does not depend on key
  order or whitespace.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from reference_manager.sync.models import Record, Snapshot

STATE_VERSION = 1


class BaseStore:
    """Load, save, and query the stored base snapshot of a library.

    Args:
        state_dir: Directory where base files are stored
            (typically ``.reference_manager/``).
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def exists(self, library_name: str) -> bool:
        return self._state_path(library_name).exists()

    def load(self, library_name: str) -> list[Record]:
        """Load the stored base records.

        Args:
            library_name: The library name (used in the filename).

        Returns:
            The base records.  An empty list if no base was stored yet,
            which makes the first merge treat every record as an addition.

        Raises:
            ValueError: If the file exists but is not a valid base file.
        """
        document = self._read(library_name)
        if document is None:
            return []
        return list(document["items"])

    def meta(self, library_name: str) -> dict[str, Any] | None:
        """Return bookkeeping for the stored base, or ``None`` if absent.

        The dict has ``saved_at``, ``hash`` and ``count`` keys.
        """
        document = self._read(library_name)
        if document is None:
            return None
        return {
            "saved_at": document.get("saved_at"),
            "hash": document.get("hash"),
            "count": len(document["items"]),
        }

    def save(self, library_name: str, records: Snapshot) -> None:
        """Persist *records* as the new base atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates ``state_dir`` if it does not exist.

        Args:
            library_name: The library name.
            records: The records that become the new common ancestor.
        """
        self._state_dir.mkdir(parents=True, exist_ok=True)
        items = list(records)
        document = {
            "version": STATE_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "library": library_name,
            "hash": self.content_hash(items),
            "items": items,
        }

        target = self._state_path(library_name)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, target)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def clear(self, library_name: str) -> None:
        """Remove the stored base.  No-op if not present."""
        self._state_path(library_name).unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Content hashing
    # ------------------------------------------------------------------

    @staticmethod
    def content_hash(records: Snapshot) -> str:
        """Compute a SHA-256 hex digest of *records* as canonical JSON."""
        canonical = json.dumps(
            list(records),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self, library_name: str) -> dict[str, Any] | None:
        path = self._state_path(library_name)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as fh:
            try:
                document = json.load(fh)
            except json.JSONDecodeError as exc:
                raise ValueError(
                    f"Invalid base file {path}: {exc}"
                ) from exc
        if not isinstance(document, dict) or not isinstance(
            document.get("items"), list
        ):
            raise ValueError(
                f"Invalid base file {path}: expected an object with an 'items' list"
            )
        return document

    def _state_path(self, library_name: str) -> Path:
        """Return the path to the base file for *library_name*."""
        return self._state_dir / f"base_{library_name}.json"
