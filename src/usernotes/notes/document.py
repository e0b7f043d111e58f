"""XML load/save for ObjectDb.

Loading is lenient so that documents written by older versions keep
working: numeric attributes that do not parse fall back to their defaults
instead of failing the load, and missing attributes are simply absent.
Only a document that does not parse at all is rejected, and then before
anything in the database is touched.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING

from usernotes.notes.errors import CorruptFormatError, StorageError
from usernotes.notes.record import (
    BACKCOLOR_UNSET,
    UINT32_MAX,
    UINT64_MAX,
    ObjectNote,
    check_xml_text,
)

if TYPE_CHECKING:
    from usernotes.notes.store import ObjectDb

logger = logging.getLogger(__name__)

ROOT_ELEMENT = "objects"
OBJECT_ELEMENT = "object"

_DIGITS_RE = re.compile(r"[0-9]+")


# ── Value conversion ─────────────────────────────────────────


def parse_uint(text: str, default: int = 0, max_value: int = UINT32_MAX) -> int:
    """Best-effort base-10 unsigned parse.

    Anything other than plain ASCII digits yields ``default``. Values wider
    than the field are truncated to it.
    """
    if not _DIGITS_RE.fullmatch(text):
        return default
    return int(text) & max_value


def format_uint(value: int) -> str:
    return str(int(value))


# ── Load ─────────────────────────────────────────────────────


@dataclass
class ObjectAttributes:
    """Recognized attributes of one <object> element, already parsed."""

    tag: int | None = None
    name: str | None = None
    priority_class: int | None = None
    io_priority_plus_one: int | None = None
    back_color: int | None = None
    collapse: bool | None = None
    affinity_mask: int | None = None
    comment: str = ""

    @classmethod
    def from_element(cls, node: ET.Element) -> ObjectAttributes:
        attrs = cls(comment=node.text or "")
        # Attribute names are matched case-insensitively; a later duplicate wins.
        for raw_name, value in node.attrib.items():
            name = raw_name.lower()
            if name == "tag":
                attrs.tag = parse_uint(value)
            elif name == "name":
                attrs.name = value
            elif name == "priorityclass":
                attrs.priority_class = parse_uint(value)
            elif name == "iopriorityplusone":
                attrs.io_priority_plus_one = parse_uint(value)
            elif name == "backcolor":
                attrs.back_color = parse_uint(value, default=BACKCOLOR_UNSET)
            elif name == "collapse":
                attrs.collapse = parse_uint(value, max_value=UINT64_MAX) != 0
            elif name == "affinity":
                attrs.affinity_mask = parse_uint(value, max_value=UINT64_MAX)
        return attrs

    def apply(self, db: ObjectDb) -> ObjectNote | None:
        """Create or update the note these attributes describe.

        Nodes without both ``tag`` and ``name`` produce nothing, and their
        backcolor/collapse/affinity values are dropped with them.
        """
        if self.tag is None or self.name is None:
            return None

        note = db.create_or_update(self.tag, self.name, self.comment)
        note.priority_class = self.priority_class or 0
        note.io_priority_plus_one = self.io_priority_plus_one or 0

        # Stored separately so documents predating these fields still load.
        if self.back_color is not None:
            note.back_color = self.back_color
        if self.collapse is not None:
            note.collapse = self.collapse
        if self.affinity_mask is not None:
            note.affinity_mask = self.affinity_mask
        return note


def parse_document(data: bytes) -> ET.Element:
    """Parse a whole document and return its root element."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise CorruptFormatError(f"Object database is not valid XML: {e}") from e
    if not isinstance(root.tag, str):
        raise CorruptFormatError("Object database root is not an element")
    return root


def load_objects(db: ObjectDb, stream: IO[bytes]) -> int:
    """Read an XML document from ``stream`` into ``db``.

    An empty stream is a valid empty database. The document is parsed in
    full before the database is locked and populated, so a corrupt document
    never leaves a partial merge behind. Returns the number of notes applied.
    """
    data = stream.read()
    if not data:
        return 0

    root = parse_document(data)

    applied = 0
    with db.lock():
        for node in root:
            if not isinstance(node.tag, str):
                continue
            attrs = ObjectAttributes.from_element(node)
            if attrs.apply(db) is None:
                logger.debug("Skipped <%s> without tag/name: %s", node.tag, dict(node.attrib))
                continue
            applied += 1
    return applied


def load_db(db: ObjectDb, path: Path) -> int:
    try:
        with path.open("rb") as f:
            count = load_objects(db, f)
    except OSError as e:
        raise StorageError(f"Cannot read object database {path}: {e}", path, e) from e
    logger.info("Loaded %d object notes from %s", count, path)
    return count


# ── Save ─────────────────────────────────────────────────────


def _object_element(parent: ET.Element, note: ObjectNote) -> ET.Element:
    node = ET.SubElement(parent, OBJECT_ELEMENT)
    node.set("tag", format_uint(note.tag))
    node.set("name", check_xml_text(note.name, "name"))
    node.set("priorityclass", format_uint(note.priority_class))
    node.set("iopriorityplusone", format_uint(note.io_priority_plus_one))
    node.set("backcolor", format_uint(note.back_color))
    node.set("collapse", format_uint(note.collapse))
    node.set("affinity", format_uint(note.affinity_mask))
    node.text = check_xml_text(note.comment, "comment")
    return node


def build_document(db: ObjectDb) -> ET.ElementTree:
    """Snapshot ``db`` into an XML tree. Holds the lock only while building.

    Raises InvalidTextError if a note was given text XML cannot carry.
    """
    root = ET.Element(ROOT_ELEMENT)
    with db.lock():
        for note in db.notes():
            _object_element(root, note)
    return ET.ElementTree(root)


def serialize_document(tree: ET.ElementTree) -> bytes:
    """Render ``tree`` as indented UTF-8 XML."""
    ET.indent(tree, space="  ")
    data = ET.tostring(tree.getroot(), encoding="utf-8")
    # ElementTree leaves CR raw in text, where parsers would turn it into LF.
    return data.replace(b"\r", b"&#13;")


def save_db(db: ObjectDb, path: Path) -> int:
    """Write ``db`` to ``path``, replacing any existing file.

    The document is rendered in full before the file is opened, so a note
    with unsavable text aborts the save with the previous file intact. The
    write itself is not atomic: a failure part way through can leave a
    truncated file. If the directory or file cannot be created, nothing is
    written and the previous file is left as it was.
    """
    tree = build_document(db)
    count = len(tree.getroot())
    data = serialize_document(tree)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        f = path.open("wb")
    except OSError as e:
        raise StorageError(f"Cannot create object database {path}: {e}", path, e) from e

    try:
        with f:
            f.write(data)
    except OSError as e:
        raise StorageError(f"Failed writing object database {path}: {e}", path, e) from e

    logger.info("Saved %d object notes to %s", count, path)
    return count
