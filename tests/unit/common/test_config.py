"""Tests for the configuration module."""

import pytest
import yaml

from pkgwatch.common.config import (
    PkgwatchConfig,
    RepositoryConfig,
    load_config,
    load_typed_config,
    parse_config,
    parse_pacman_config,
    parse_repository_config,
    parse_sig_level,
    parse_watched,
)
from pkgwatch.common.errors import ConfigError
from pkgwatch.engine.base import (
    SIG_DATABASE_OPTIONAL,
    SIG_PACKAGE,
    SIG_USE_DEFAULT,
)
from pkgwatch.repos.registry import RepositoryRegistry
from pkgwatch.updates.models import WatchedEntry
from tests.factories import FakeEngine


class TestSigLevel:
    """Tests for signature level parsing."""

    def test_default(self):
        assert parse_sig_level(None) == SIG_USE_DEFAULT

    def test_integer(self):
        assert parse_sig_level(3) == 3

    def test_names(self):
        assert parse_sig_level(["package", "Database_Optional"]) == (
            SIG_PACKAGE | SIG_DATABASE_OPTIONAL
        )

    def test_single_name(self):
        assert parse_sig_level("package") == SIG_PACKAGE

    def test_unknown_name(self):
        with pytest.raises(ConfigError, match="Unknown signature level"):
            parse_sig_level(["trustall"])


class TestRepositoryConfig:
    """Tests for repository parsing."""

    def test_parse_repository(self):
        repo = parse_repository_config(
            {"name": "core", "sig_level": ["package"], "servers": ["http://a/$repo"]}
        )
        assert repo == RepositoryConfig(name="core", sig_level=SIG_PACKAGE, servers=["http://a/$repo"])

    def test_repository_needs_name(self):
        with pytest.raises(ConfigError):
            parse_repository_config({"servers": []})


class TestPacmanConfig:
    """Tests for the package manager section."""

    def test_defaults(self):
        pacman = parse_pacman_config({})
        assert pacman.root_dir == "/"
        assert pacman.db_path == "/var/lib/pacman/"
        assert pacman.architecture is None
        assert pacman.repositories == []

    def test_engine_options(self):
        pacman = parse_pacman_config(
            {
                "architecture": "x86_64",
                "ignore_packages": ["linux"],
                "ignore_groups": ["kde"],
                "gpg_dir": "/tmp/gnupg",
                "cache_dirs": ["/tmp/cache"],
                "verbose_pkg_lists": True,
            }
        )
        options = pacman.engine_options()
        assert options.architecture == "x86_64"
        assert options.ignore_packages == ["linux"]
        assert options.ignore_groups == ["kde"]
        assert options.gpg_dir == "/tmp/gnupg"
        assert options.cache_dirs == ["/tmp/cache"]
        assert options.verbose is True


class TestWatched:
    """Tests for watch list parsing."""

    def test_mapping_and_string_forms(self):
        entries = parse_watched([{"name": "core/linux", "version": "6.1"}, "firefox 120.0"])
        assert entries == [WatchedEntry("core/linux", "6.1"), WatchedEntry("firefox", "120.0")]

    def test_numeric_version(self):
        assert parse_watched([{"name": "foo", "version": 2}]) == [WatchedEntry("foo", "2")]

    def test_missing_version(self):
        with pytest.raises(ConfigError, match="Invalid watched package entry"):
            parse_watched(["foo"])


class TestParseConfig:
    """Tests for full configuration parsing."""

    def test_empty(self):
        config = parse_config({})
        assert isinstance(config, PkgwatchConfig)
        assert config.mirror.path is None
        assert config.mirror.keep is True
        assert config.logging.level == "INFO"

    def test_full(self):
        config = parse_config(
            {
                "pacman": {
                    "architecture": "aarch64",
                    "repositories": [{"name": "core", "servers": ["http://x/$repo/$arch"]}],
                },
                "mirror": {"path": "/var/tmp/pkgwatch", "keep": False},
                "watched": [{"name": "foo", "version": "1.0"}],
                "foreign_ignore": ["yay"],
                "logging": {"level": "DEBUG", "file_logging": True},
            }
        )
        assert config.pacman.repositories[0].name == "core"
        assert config.mirror.path == "/var/tmp/pkgwatch"
        assert config.mirror.keep is False
        assert config.watched == [WatchedEntry("foo", "1.0")]
        assert config.foreign_ignore == ["yay"]
        assert config.logging.level == "DEBUG"
        assert config.logging.file_logging is True


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(TypeError, match="must be a mapping"):
            load_config(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pacman: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_config(str(path))

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PKGWATCH_TEST_DIR", "/srv/shadow")
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"mirror": {"path": "$PKGWATCH_TEST_DIR/db"}}))

        config = load_typed_config(str(path))

        assert config.mirror.path == "/srv/shadow/db"

    def test_server_templates_survive_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("arch", "i686")
        monkeypatch.setenv("repo", "bogus")
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "pacman": {
                        "repositories": [
                            {"name": "core", "servers": ["http://$repo.example/$arch"]}
                        ]
                    }
                }
            )
        )

        config = load_typed_config(str(path))

        assert config.pacman.repositories[0].servers == ["http://$repo.example/$arch"]
        with pytest.raises(ConfigError, match=r"contains the \$arch variable"):
            RepositoryRegistry(FakeEngine()).register(
                config.pacman.repositories, config.pacman.architecture
            )
