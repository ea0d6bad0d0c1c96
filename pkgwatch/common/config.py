"""Configuration management for pkgwatch.

Handles loading and validation of the YAML configuration file. The
package manager settings (``pacman`` section) arrive already parsed; this
module only maps them onto typed dataclasses.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..engine.base import SIG_LEVEL_NAMES, SIG_USE_DEFAULT, EngineOptions
from ..updates.models import WatchedEntry
from .errors import ConfigError

DEFAULT_CONFIG_PATH = "~/.config/pkgwatch/config.yaml"

# Keys whose values carry $repo/$arch placeholders rather than env vars
TEMPLATE_KEYS = frozenset({"servers"})


@dataclass
class RepositoryConfig:
    """Configuration for a single sync repository."""

    name: str
    sig_level: int = SIG_USE_DEFAULT
    servers: List[str] = field(default_factory=list)


@dataclass
class PacmanConfig:
    """Package manager settings."""

    root_dir: str = "/"
    db_path: str = "/var/lib/pacman/"
    architecture: Optional[str] = None
    ignore_packages: List[str] = field(default_factory=list)
    ignore_groups: List[str] = field(default_factory=list)
    sig_level: int = SIG_USE_DEFAULT
    gpg_dir: str = "/etc/pacman.d/gnupg/"
    cache_dirs: List[str] = field(default_factory=lambda: ["/var/cache/pacman/pkg/"])
    verbose_pkg_lists: bool = False
    repositories: List[RepositoryConfig] = field(default_factory=list)

    def engine_options(self) -> EngineOptions:
        """Build the options applied to a freshly initialized engine."""
        return EngineOptions(
            root_dir=self.root_dir,
            architecture=self.architecture,
            ignore_packages=list(self.ignore_packages),
            ignore_groups=list(self.ignore_groups),
            default_sig_level=self.sig_level,
            gpg_dir=self.gpg_dir,
            cache_dirs=list(self.cache_dirs),
            verbose=self.verbose_pkg_lists,
        )


@dataclass
class MirrorSettings:
    """Shadow database settings."""

    path: Optional[str] = None  # None: ephemeral directory
    keep: bool = True


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    log_dir: str = "~/.local/state/pkgwatch"
    file_logging: bool = False


@dataclass
class PkgwatchConfig:
    """Top-level configuration for pkgwatch."""

    pacman: PacmanConfig = field(default_factory=PacmanConfig)
    mirror: MirrorSettings = field(default_factory=MirrorSettings)
    watched: List[WatchedEntry] = field(default_factory=list)
    foreign_ignore: List[str] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_sig_level(value: Union[int, str, List[str], None]) -> int:
    """Parse a signature level.

    Accepts an integer bitmask, a single level name or a list of names
    (e.g. ``["package", "database_optional"]``).

    Args:
        value: Raw configuration value

    Returns:
        Signature level bitmask

    Raises:
        ConfigError: If a level name is unknown
    """
    if value is None:
        return SIG_USE_DEFAULT
    if isinstance(value, bool):
        raise ConfigError(f"Invalid signature level: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = [value]

    level = 0
    for name in value:
        key = str(name).strip().lower()
        if key not in SIG_LEVEL_NAMES:
            raise ConfigError(
                f"Unknown signature level '{name}'. "
                f"Must be one of: {', '.join(sorted(SIG_LEVEL_NAMES))}"
            )
        level |= SIG_LEVEL_NAMES[key]
    return level


def parse_repository_config(repo_dict: Dict[str, Any]) -> RepositoryConfig:
    """Parse a repository configuration dictionary.

    Args:
        repo_dict: Repository configuration dictionary

    Returns:
        RepositoryConfig instance
    """
    name = repo_dict.get("name")
    if not name:
        raise ConfigError("Repository entry without a name")
    return RepositoryConfig(
        name=name,
        sig_level=parse_sig_level(repo_dict.get("sig_level")),
        servers=list(repo_dict.get("servers", [])),
    )


def parse_pacman_config(pacman_dict: Dict[str, Any]) -> PacmanConfig:
    """Parse the package manager section.

    Args:
        pacman_dict: Package manager configuration dictionary

    Returns:
        PacmanConfig instance
    """
    defaults = PacmanConfig()
    return PacmanConfig(
        root_dir=pacman_dict.get("root_dir", defaults.root_dir),
        db_path=pacman_dict.get("db_path", defaults.db_path),
        architecture=pacman_dict.get("architecture"),
        ignore_packages=list(pacman_dict.get("ignore_packages", [])),
        ignore_groups=list(pacman_dict.get("ignore_groups", [])),
        sig_level=parse_sig_level(pacman_dict.get("sig_level")),
        gpg_dir=pacman_dict.get("gpg_dir", defaults.gpg_dir),
        cache_dirs=list(pacman_dict.get("cache_dirs", defaults.cache_dirs)),
        verbose_pkg_lists=bool(pacman_dict.get("verbose_pkg_lists", False)),
        repositories=[
            parse_repository_config(repo)
            for repo in pacman_dict.get("repositories", [])
        ],
    )


def parse_watched(watched_list: List[Any]) -> List[WatchedEntry]:
    """Parse the watch list.

    Entries are either mappings with ``name`` and ``version`` keys or
    ``"name version"`` strings.
    """
    entries = []
    for item in watched_list:
        if isinstance(item, dict):
            name, version = item.get("name"), item.get("version")
        else:
            parts = str(item).split()
            name, version = (parts + [None, None])[:2]
        if not name or version is None:
            raise ConfigError(f"Invalid watched package entry: {item!r}")
        entries.append(WatchedEntry(name=str(name), version=str(version)))
    return entries


def parse_config(config_dict: Dict[str, Any]) -> PkgwatchConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        PkgwatchConfig instance
    """
    mirror_dict = config_dict.get("mirror", {})
    logging_dict = config_dict.get("logging", {})
    log_defaults = LoggingConfig()

    return PkgwatchConfig(
        pacman=parse_pacman_config(config_dict.get("pacman", {})),
        mirror=MirrorSettings(
            path=mirror_dict.get("path"),
            keep=bool(mirror_dict.get("keep", True)),
        ),
        watched=parse_watched(config_dict.get("watched", [])),
        foreign_ignore=list(config_dict.get("foreign_ignore", [])),
        logging=LoggingConfig(
            level=logging_dict.get("level", log_defaults.level),
            log_dir=logging_dict.get("log_dir", log_defaults.log_dir),
            file_logging=bool(logging_dict.get("file_logging", False)),
        ),
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path).expanduser()

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Server lists are left alone: their ``$repo`` and ``$arch`` placeholders are
    resolved at registration time, not from the environment.
    """
    if isinstance(obj, dict):
        return {
            key: value if key in TEMPLATE_KEYS else _expand_env_vars(value)
            for key, value in obj.items()
        }
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(config_path: str = DEFAULT_CONFIG_PATH) -> PkgwatchConfig:
    """Load and parse configuration into typed dataclass.

    Args:
        config_path: Path to configuration file

    Returns:
        PkgwatchConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        ConfigError: If a value is invalid
    """
    return parse_config(load_config(config_path))
