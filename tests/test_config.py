from __future__ import annotations

from app.config import Settings


def test_fixture_dir_reads_scout_prefixed_env(monkeypatch, tmp_path):
    monkeypatch.delenv("FIXTURE_DIR", raising=False)
    monkeypatch.setenv("SCOUT_FIXTURE_DIR", str(tmp_path))

    assert Settings(_env_file=None).fixture_dir == str(tmp_path)


def test_fixture_dir_accepts_unprefixed_env_and_keyword(monkeypatch, tmp_path):
    monkeypatch.delenv("SCOUT_FIXTURE_DIR", raising=False)
    monkeypatch.setenv("FIXTURE_DIR", str(tmp_path))

    assert Settings(_env_file=None).fixture_dir == str(tmp_path)
    assert Settings(_env_file=None, fixture_dir="elsewhere").fixture_dir == "elsewhere"


def test_fixture_dir_default(monkeypatch):
    monkeypatch.delenv("SCOUT_FIXTURE_DIR", raising=False)
    monkeypatch.delenv("FIXTURE_DIR", raising=False)

    assert Settings(_env_file=None).fixture_dir == "fixtures/sample"
