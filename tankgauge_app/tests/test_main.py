"""Tests for the command-line import."""

from __future__ import annotations

import pytest

from tankgauge_app import main as cli
from tankgauge_app.config.settings import Settings
from tankgauge_app.repositories.database import init_database
from tankgauge_app.repositories.vessel_repository import VesselRepository


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path):
    def _default(db_path=None):
        return Settings(project_root=tmp_path, data_dir=tmp_path, db_path=db_path or tmp_path / "t.db")

    monkeypatch.setattr(cli.Settings, "default", staticmethod(_default))
    monkeypatch.setattr(cli, "init_logging", lambda settings: None)
    return tmp_path


def _vessel_names(db_path):
    session = init_database(db_path)()
    try:
        return [v.name for v in VesselRepository(session).load_store()]
    finally:
        session.close()


class TestMain:
    def test_import_persists_store(self, isolated_settings, capsys):
        batch = isolated_settings / "lote.txt"
        batch.write_text("BALSA;B1;Balsa Um\nTANQUE;B1;T1;Tanque 1;100;500\n", encoding="utf-8")
        db = isolated_settings / "cli.db"
        assert cli.main([str(batch), "--db", str(db)]) == 0
        assert "Vessels: 1 created" in capsys.readouterr().out
        assert _vessel_names(db) == ["Balsa Um"]

    def test_strict_abort_exit_code(self, isolated_settings):
        batch = isolated_settings / "lote.txt"
        batch.write_text("BALSA;B1;Balsa Um\nTANQUE;B9;T1;Tanque 1\nBALSA;B2;Balsa Dois\n", encoding="utf-8")
        db = isolated_settings / "cli.db"
        assert cli.main([str(batch), "--strict", "--db", str(db)]) == 1
        assert _vessel_names(db) == ["Balsa Um"]

    def test_unparseable_batch(self, isolated_settings):
        batch = isolated_settings / "lote.txt"
        batch.write_text("nothing to import", encoding="utf-8")
        assert cli.main([str(batch), "--db", str(isolated_settings / "cli.db")]) == 1

    def test_missing_file(self, isolated_settings):
        assert cli.main([str(isolated_settings / "none.txt"), "--db", str(isolated_settings / "cli.db")]) == 2
