"""Tests for the command line entry point."""

import sys

import pytest
import yaml

from pkgwatch import __main__ as cli
from pkgwatch.common.errors import SyncError
from pkgwatch.updates.models import PackageChange
from tests.factories import make_package


class StubSession:
    """Session replacement returning canned results."""

    updates = []
    error = None

    def __init__(self, config):
        self.config = config

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return None

    def sync(self):
        if self.error is not None:
            raise self.error
        return []

    def check_updates(self):
        return self.updates

    def check_watched(self):
        return []

    def check_foreign(self):
        return []


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"logging": {"level": "WARNING"}}))
    return str(path)


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["pkgwatch", *args])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    return exc_info.value.code


class TestMain:
    """Tests for main()."""

    def test_missing_config(self, monkeypatch, tmp_path, capsys):
        assert _run(monkeypatch, str(tmp_path / "missing.yaml")) == 2
        assert "Configuration file not found" in capsys.readouterr().err

    def test_up_to_date(self, monkeypatch, config_file):
        monkeypatch.setattr(cli, "Session", StubSession)
        assert _run(monkeypatch, config_file) == 0

    def test_updates_reported(self, monkeypatch, config_file, capsys):
        change = PackageChange.addition(
            make_package("foo", "1.1", repository="core"), make_package("foo", "1.0")
        )
        stub = type("UpdatesSession", (StubSession,), {"updates": [change]})
        monkeypatch.setattr(cli, "Session", stub)

        assert _run(monkeypatch, config_file) == 1
        assert "core/foo 1.0 -> 1.1" in capsys.readouterr().out

    def test_engine_error(self, monkeypatch, config_file, capsys):
        stub = type("FailingSession", (StubSession,), {"error": SyncError("Failed to update core: boom")})
        monkeypatch.setattr(cli, "Session", stub)

        assert _run(monkeypatch, config_file) == 2
        assert "Failed to update core: boom" in capsys.readouterr().err
