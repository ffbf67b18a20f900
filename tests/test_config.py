from __future__ import annotations

from pathlib import Path

import teamdesk
from teamdesk import config


def test_reload_from_environment_reads_overrides(monkeypatch, tmp_path):
    roster_file = tmp_path / "team.json"
    monkeypatch.setenv("TEAMDESK_ROSTER_FILE", str(roster_file))
    monkeypatch.setenv("TEAMDESK_LOG_LEVEL", " debug ")
    monkeypatch.setenv("TEAMDESK_MODEL_TIMEOUT", "7.5")
    monkeypatch.setenv("TEAMDESK_SUMMARY_PLACEHOLDER", "Loading...")
    try:
        config.reload_from_environment()

        assert config.ROSTER_FILE == Path(roster_file)
        assert config.LOG_LEVEL == "DEBUG"
        assert config.MODEL_TIMEOUT == 7.5
        assert teamdesk.SUMMARY_PLACEHOLDER == "Loading..."
    finally:
        for name in (
            "TEAMDESK_ROSTER_FILE",
            "TEAMDESK_LOG_LEVEL",
            "TEAMDESK_MODEL_TIMEOUT",
            "TEAMDESK_SUMMARY_PLACEHOLDER",
        ):
            monkeypatch.delenv(name)
        config.reload_from_environment()


def test_invalid_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("TEAMDESK_MODEL_TIMEOUT", "-3")
    try:
        config.reload_from_environment()
        assert config.MODEL_TIMEOUT == 120.0
    finally:
        monkeypatch.delenv("TEAMDESK_MODEL_TIMEOUT")
        config.reload_from_environment()
