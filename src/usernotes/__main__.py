"""Entry point: python -m usernotes <command>

- list:    Print every stored note
- show:    Print one note
- set:     Create or update a note
- delete:  Remove a note
- count:   Print the number of notes
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from usernotes.config import UserNotesConfig, load_config
from usernotes.notes.errors import NotesDbError, StorageError
from usernotes.notes.record import BACKCOLOR_UNSET, UINT32_MAX, UINT64_MAX, ObjectNote
from usernotes.notes.store import ObjectDb

logger = logging.getLogger("usernotes")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _uint(max_value: int):
    def convert(text: str) -> int:
        try:
            value = int(text, 10)
        except ValueError:
            raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
        if not 0 <= value <= max_value:
            raise argparse.ArgumentTypeError(f"out of range: {value}")
        return value

    return convert


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="usernotes", description="Object note database")
    parser.add_argument("--db", type=Path, help="database file (overrides config)")
    parser.add_argument("--config", type=Path, help="path to usernotes.toml")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="print every note")
    sub.add_parser("count", help="print the number of notes")

    for name, help_text in [("show", "print one note"), ("delete", "remove a note")]:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("tag", type=_uint(UINT32_MAX))
        p.add_argument("name")

    p = sub.add_parser("set", help="create or update a note")
    p.add_argument("tag", type=_uint(UINT32_MAX))
    p.add_argument("name")
    p.add_argument("--comment")
    p.add_argument("--priority-class", type=_uint(UINT32_MAX))
    p.add_argument("--io-priority", type=_uint(UINT32_MAX - 1))
    p.add_argument("--affinity", type=_uint(UINT64_MAX))
    color = p.add_mutually_exclusive_group()
    color.add_argument("--back-color", type=_uint(UINT32_MAX - 1))
    color.add_argument(
        "--clear-back-color", dest="back_color", action="store_const", const=BACKCOLOR_UNSET
    )
    collapse = p.add_mutually_exclusive_group()
    collapse.add_argument("--collapse", dest="collapse", action="store_const", const=True)
    collapse.add_argument("--expand", dest="collapse", action="store_const", const=False)
    return parser


# ── Formatting ───────────────────────────────────────────────


def _flags(note: ObjectNote) -> str:
    parts = []
    if note.priority_class:
        parts.append(f"priority={note.priority_class}")
    if note.io_priority is not None:
        parts.append(f"io={note.io_priority}")
    if note.has_back_color:
        parts.append(f"color=#{note.back_color:06x}")
    if note.collapse:
        parts.append("collapsed")
    if note.affinity_mask:
        parts.append(f"affinity={note.affinity_mask:#x}")
    return " ".join(parts)


def _describe(note: ObjectNote) -> str:
    return "\n".join(
        [
            f"tag:         {note.tag}",
            f"name:        {note.name}",
            f"comment:     {note.comment}",
            f"priority:    {note.priority_class}",
            f"io priority: {'-' if note.io_priority is None else note.io_priority}",
            f"back color:  {f'#{note.back_color:06x}' if note.has_back_color else '-'}",
            f"collapse:    {'yes' if note.collapse else 'no'}",
            f"affinity:    {note.affinity_mask:#x}",
        ]
    )


# ── Commands ─────────────────────────────────────────────────


def _cmd_list(db: ObjectDb, args: argparse.Namespace) -> int:
    with db.lock():
        notes = sorted(db.notes(), key=lambda n: (n.tag, n.name.casefold()))
    for note in notes:
        print(f"{note.tag}\t{note.name}\t{_flags(note)}\t{note.comment}")
    return 0


def _cmd_count(db: ObjectDb, args: argparse.Namespace) -> int:
    with db.lock():
        count = db.count()
    print(count)
    return 0


def _cmd_show(db: ObjectDb, args: argparse.Namespace) -> int:
    with db.lock():
        note = db.lookup(args.tag, args.name)
        text = _describe(note) if note else None
    if text is None:
        print(f"Not found: {args.tag} {args.name}", file=sys.stderr)
        return 1
    print(text)
    return 0


def _cmd_set(db: ObjectDb, args: argparse.Namespace) -> int:
    with db.lock():
        note = db.create_or_update(args.tag, args.name, args.comment)
        if args.priority_class is not None:
            note.priority_class = args.priority_class
        if args.io_priority is not None:
            note.io_priority = args.io_priority
        if args.back_color is not None:
            note.back_color = args.back_color
        if args.collapse is not None:
            note.collapse = args.collapse
        if args.affinity is not None:
            note.affinity_mask = args.affinity
        text = _describe(note)
    print(text)
    return 0


def _cmd_delete(db: ObjectDb, args: argparse.Namespace) -> int:
    with db.lock():
        note = db.lookup(args.tag, args.name)
        if note is not None:
            db.delete(note)
    if note is None:
        print(f"Not found: {args.tag} {args.name}", file=sys.stderr)
        return 1
    print(f"Deleted {args.tag} {args.name}")
    return 0


_COMMANDS = {
    "list": (_cmd_list, False),
    "count": (_cmd_count, False),
    "show": (_cmd_show, False),
    "set": (_cmd_set, True),
    "delete": (_cmd_delete, True),
}


def _open_db(config: UserNotesConfig) -> ObjectDb:
    db = ObjectDb(config.db_path)
    try:
        db.load()
    except StorageError as e:
        if not isinstance(e.error, FileNotFoundError):
            raise
        logger.warning("No object database at %s, starting empty", config.db_path)
    return db


def run(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config = load_config(args.config)
    if args.db is not None:
        config.db_path = args.db
    _setup_logging(config.log_level)

    handler, mutates = _COMMANDS[args.command]
    try:
        db = _open_db(config)
        code = handler(db, args)
        if code == 0 and mutates and config.autosave:
            db.save()
    except NotesDbError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return code


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
