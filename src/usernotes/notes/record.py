"""ObjectNote: one stored note, keyed by (tag, case-insensitive name)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from usernotes.notes.errors import InvalidTextError

UINT32_MAX = 0xFFFFFFFF
UINT64_MAX = 0xFFFFFFFFFFFFFFFF

# Reserved "no custom color" value, distinct from color 0 (black).
BACKCOLOR_UNSET = UINT32_MAX

# Anything outside the XML 1.0 Char production, lone surrogates included.
_NON_XML_CHAR_RE = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def fold_name(name: str) -> str:
    """Normalize a name for key comparison.

    Upper-cases one code point at a time, so the folded key always has the
    same length as the name. Characters whose upper case form is longer
    (``ß`` -> ``SS``) are kept as they are.
    """
    return "".join(u if len(u := c.upper()) == 1 else c for c in name)


def make_key(tag: int, name: str) -> tuple[int, str]:
    return (tag, fold_name(name))


def check_xml_text(value: str, field: str) -> str:
    """Reject text that cannot be stored in the XML document."""
    match = _NON_XML_CHAR_RE.search(value)
    if match:
        raise InvalidTextError(
            f"{field} contains character {match.group()!r} at {match.start()}, "
            "which cannot be saved"
        )
    return value


@dataclass(eq=False)
class ObjectNote:
    """Metadata attached to a named object of a given tag.

    Records compare by identity: the owning ObjectDb guarantees there is at
    most one record per key.
    """

    tag: int
    name: str
    comment: str = ""
    priority_class: int = 0
    io_priority_plus_one: int = 0
    back_color: int = BACKCOLOR_UNSET
    collapse: bool = False
    affinity_mask: int = 0

    @property
    def key(self) -> tuple[int, str]:
        return make_key(self.tag, self.name)

    @property
    def io_priority(self) -> int | None:
        """Real I/O priority, or None when unset."""
        if self.io_priority_plus_one == 0:
            return None
        return self.io_priority_plus_one - 1

    @io_priority.setter
    def io_priority(self, value: int | None) -> None:
        self.io_priority_plus_one = 0 if value is None else value + 1

    @property
    def has_back_color(self) -> bool:
        return self.back_color != BACKCOLOR_UNSET

    def replace_comment(self, comment: str) -> str:
        """Install a new comment and return the one it replaced."""
        previous, self.comment = self.comment, comment
        return previous
