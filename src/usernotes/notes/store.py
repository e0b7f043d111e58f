"""ObjectDb: keyed collection of object notes behind one exclusive lock.

The collection itself is not synchronized. Callers hold ``db.lock()``
around lookups, mutation and enumeration; ``load()`` and ``save()`` take the
lock themselves. The lock is a plain ``threading.Lock`` and is never
acquired recursively, so a caller holding it must not call load/save.

    db = ObjectDb(Path("~/.usernotes/usernotes.xml").expanduser())
    db.load()
    with db.lock():
        note = db.create_or_update(1, "explorer.exe")
        note.collapse = True
    db.save()
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from usernotes.notes.document import load_db, save_db
from usernotes.notes.errors import StorageError
from usernotes.notes.record import UINT32_MAX, ObjectNote, check_xml_text, make_key

logger = logging.getLogger(__name__)


class ObjectDb:
    """In-memory object note database with XML persistence."""

    def __init__(self, path: Path | None = None) -> None:
        self._objects: dict[tuple[int, str], ObjectNote] = {}
        self._lock = threading.Lock()
        self._path = path

    # ── Persist path ─────────────────────────────────────────

    @property
    def path(self) -> Path | None:
        return self._path

    def set_path(self, path: Path | str) -> None:
        self._path = Path(path)

    # ── Locking ──────────────────────────────────────────────

    def lock(self) -> threading.Lock:
        """Return the exclusive lock, for use as ``with db.lock():``."""
        return self._lock

    def acquire(self) -> None:
        self._lock.acquire()

    def release(self) -> None:
        self._lock.release()

    # ── Collection ───────────────────────────────────────────

    def count(self) -> int:
        return len(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def lookup(self, tag: int, name: str) -> ObjectNote | None:
        return self._objects.get(make_key(tag, name))

    def create_or_update(self, tag: int, name: str, comment: str | None = None) -> ObjectNote:
        """Return the note for (tag, name), creating it if absent.

        A supplied comment replaces the existing one; otherwise an existing
        note's comment is left alone and a new note gets an empty comment.
        Raises InvalidTextError for names or comments that cannot be saved.
        """
        if not 0 <= tag <= UINT32_MAX:
            raise ValueError(f"tag out of range: {tag}")
        check_xml_text(name, "name")
        if comment is not None:
            check_xml_text(comment, "comment")

        candidate = ObjectNote(tag=tag, name=name, comment=comment or "")
        note = self._objects.setdefault(candidate.key, candidate)
        if note is candidate:
            logger.debug("Created note: tag=%d name=%s", tag, name)
        elif comment is not None:
            note.replace_comment(comment)
        return note

    def delete(self, note: ObjectNote) -> None:
        """Remove a note. Raises KeyError if it is not stored here."""
        key = note.key
        if self._objects.get(key) is not note:
            raise KeyError(key)
        del self._objects[key]

    def notes(self) -> list[ObjectNote]:
        """Snapshot of all notes, in storage order (not sorted)."""
        return list(self._objects.values())

    def clear(self) -> None:
        """Release every note. Used at shutdown."""
        self._objects.clear()

    # ── Persistence ──────────────────────────────────────────

    def load(self) -> int:
        """Load the persist path into this database. Returns notes read."""
        return load_db(self, self._require_path())

    def save(self) -> int:
        """Write this database to the persist path. Returns notes written."""
        return save_db(self, self._require_path())

    def _require_path(self) -> Path:
        if self._path is None:
            raise StorageError("No persist path set")
        return self._path
