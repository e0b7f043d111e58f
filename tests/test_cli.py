"""Tests for the usernotes command line host."""

from __future__ import annotations

from pathlib import Path

import pytest

from usernotes.__main__ import run
from usernotes.notes.record import BACKCOLOR_UNSET
from usernotes.notes.store import ObjectDb


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for key in ["USERNOTES_DB_PATH", "USERNOTES_LOG_LEVEL", "USERNOTES_AUTOSAVE"]:
        monkeypatch.delenv(key, raising=False)
    return tmp_path / "data" / "notes.xml"


def _reload(path: Path) -> ObjectDb:
    db = ObjectDb(path)
    db.load()
    return db


class TestSet:
    def test_creates_and_saves(self, db_path: Path, capsys):
        code = run(["--db", str(db_path), "set", "1", "explorer.exe", "--comment", "shell"])
        assert code == 0
        assert "explorer.exe" in capsys.readouterr().out

        note = _reload(db_path).lookup(1, "EXPLORER.EXE")
        assert note is not None
        assert note.comment == "shell"

    def test_sets_fields(self, db_path: Path):
        run([
            "--db", str(db_path), "set", "2", "svchost.exe",
            "--priority-class", "3", "--io-priority", "0",
            "--back-color", "255", "--collapse", "--affinity", "12",
        ])
        note = _reload(db_path).lookup(2, "svchost.exe")
        assert note.priority_class == 3
        assert note.io_priority_plus_one == 1
        assert note.back_color == 255
        assert note.collapse is True
        assert note.affinity_mask == 12

    def test_update_keeps_comment(self, db_path: Path):
        run(["--db", str(db_path), "set", "1", "a", "--comment", "keep"])
        run(["--db", str(db_path), "set", "1", "A", "--expand", "--clear-back-color"])
        db = _reload(db_path)
        assert db.count() == 1
        note = db.lookup(1, "a")
        assert note.comment == "keep"
        assert note.collapse is False
        assert note.back_color == BACKCOLOR_UNSET

    def test_rejects_negative_tag(self, db_path: Path):
        with pytest.raises(SystemExit):
            run(["--db", str(db_path), "set", "-1", "a"])

    def test_autosave_disabled(self, db_path: Path, monkeypatch):
        monkeypatch.setenv("USERNOTES_AUTOSAVE", "false")
        assert run(["--db", str(db_path), "set", "1", "a"]) == 0
        assert not db_path.exists()


class TestReadCommands:
    def test_list_sorted(self, db_path: Path, capsys):
        run(["--db", str(db_path), "set", "2", "b", "--comment", "second"])
        run(["--db", str(db_path), "set", "1", "a", "--comment", "first"])
        capsys.readouterr()

        assert run(["--db", str(db_path), "list"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("1\ta")
        assert lines[1].endswith("second")

    def test_count(self, db_path: Path, capsys):
        run(["--db", str(db_path), "set", "1", "a"])
        run(["--db", str(db_path), "set", "1", "b"])
        capsys.readouterr()
        assert run(["--db", str(db_path), "count"]) == 0
        assert capsys.readouterr().out.strip() == "2"

    def test_show_missing(self, db_path: Path, capsys):
        assert run(["--db", str(db_path), "show", "1", "nothing"]) == 1
        assert "Not found" in capsys.readouterr().err

    def test_missing_database_is_empty(self, db_path: Path, capsys):
        assert run(["--db", str(db_path), "count"]) == 0
        assert capsys.readouterr().out.strip() == "0"


class TestDelete:
    def test_delete(self, db_path: Path):
        run(["--db", str(db_path), "set", "1", "a"])
        run(["--db", str(db_path), "set", "1", "b"])
        assert run(["--db", str(db_path), "delete", "1", "A"]) == 0
        db = _reload(db_path)
        assert db.count() == 1
        assert db.lookup(1, "a") is None

    def test_delete_missing(self, db_path: Path):
        assert run(["--db", str(db_path), "delete", "1", "a"]) == 1


class TestErrors:
    def test_corrupt_database(self, db_path: Path, capsys):
        db_path.parent.mkdir(parents=True)
        db_path.write_text("<objects><object>", encoding="utf-8")
        assert run(["--db", str(db_path), "list"]) == 1
        assert "Error" in capsys.readouterr().err
        # Corrupt file is never overwritten
        assert db_path.read_text(encoding="utf-8") == "<objects><object>"

    def test_corrupt_database_blocks_set(self, db_path: Path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text("not xml", encoding="utf-8")
        assert run(["--db", str(db_path), "set", "1", "a"]) == 1
        assert db_path.read_text(encoding="utf-8") == "not xml"

    def test_control_character_comment_keeps_database_usable(self, db_path: Path, capsys):
        assert run(["--db", str(db_path), "set", "1", "keep", "--comment", "precious"]) == 0
        assert run(["--db", str(db_path), "set", "1", "x", "--comment", "ctl\x02"]) == 1
        assert "Error" in capsys.readouterr().err

        assert run(["--db", str(db_path), "count"]) == 0
        assert capsys.readouterr().out.strip() == "1"
        assert _reload(db_path).lookup(1, "keep").comment == "precious"
