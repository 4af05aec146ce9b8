import os

import pytest

from aerolog import config
from aerolog.orchestrator import ScanEventListener


def test_listener_reports_only_new_scans(tmp_path):
    (tmp_path / "old.jpg").write_bytes(b"x")
    listener = ScanEventListener(watch_dir=str(tmp_path), poll_interval_sec=0.1)

    assert listener.scan_once() == []

    (tmp_path / "b.PNG").write_bytes(b"x")
    (tmp_path / "a.pdf").write_bytes(b"x")
    (tmp_path / "notes.txt").write_bytes(b"x")
    found = listener.scan_once()

    assert [os.path.basename(p) for p in found] == ["a.pdf", "b.PNG"]
    assert listener.scan_once() == []


def test_listener_can_include_existing(tmp_path):
    (tmp_path / "old.jpg").write_bytes(b"x")
    listener = ScanEventListener(watch_dir=str(tmp_path), include_existing=True)
    assert [os.path.basename(p) for p in listener.scan_once()] == ["old.jpg"]


def test_listener_requires_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        ScanEventListener(watch_dir=str(tmp_path / "missing"))


def test_environment_wins_over_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("AEROLOG_SYNC_URL=http://dotenv.example\nAEROLOG_SYNC_DEBOUNCE=2.5\n", encoding="utf-8")

    assert config.load_default_sync_url(str(tmp_path)) == "http://dotenv.example"
    assert config.load_sync_debounce(str(tmp_path)) == 2.5

    monkeypatch.setenv("AEROLOG_SYNC_URL", "http://env.example")
    assert config.load_default_sync_url(str(tmp_path)) == "http://env.example"


def test_numeric_settings_fall_back_on_bad_values(tmp_path, monkeypatch):
    monkeypatch.setenv("AEROLOG_SYNC_DEBOUNCE", "soon")
    monkeypatch.setenv("AEROLOG_HTTP_TIMEOUT", "-3")
    assert config.load_sync_debounce(str(tmp_path)) == config.DEFAULT_SYNC_DEBOUNCE_SECONDS
    assert config.load_http_timeout(str(tmp_path)) == config.DEFAULT_HTTP_TIMEOUT_SECONDS


def test_unknown_backend_defaults_to_openrouter(tmp_path, monkeypatch):
    monkeypatch.setenv("AEROLOG_BACKEND", "carrier-pigeon")
    assert config.load_backend(str(tmp_path)) == "openrouter"
    monkeypatch.setenv("AEROLOG_BACKEND", "OpenAI")
    assert config.load_backend(str(tmp_path)) == "openai"
