"""CLI interface for pkgwatch."""

import os
import sys

import yaml

from .common.config import DEFAULT_CONFIG_PATH, load_typed_config
from .common.errors import PkgwatchError
from .common.logger import setup_logger
from .session import Session
from .updates.models import has_updates, net_size_change, total_download_size


def _print_changes(title, changes):
    print(f"{title}:")
    for change in changes:
        flag = " [ignored]" if change.ignored else ""
        repo = f"{change.repository}/" if change.repository and "/" not in change.name else ""
        print(f"  {repo}{change.name} {change.old_version} -> {change.new_version}{flag}")


def main():
    """Main entry point for pkgwatch CLI."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH

    try:
        config = load_typed_config(config_path)
    except (FileNotFoundError, TypeError, yaml.YAMLError, PkgwatchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logger(
        "pkgwatch",
        log_dir=os.path.expanduser(config.logging.log_dir),
        level=config.logging.level,
        file_logging=config.logging.file_logging,
    )

    try:
        with Session(config) as session:
            session.sync()
            updates = session.check_updates()
            watched = session.check_watched()
            foreign = session.check_foreign()
    except PkgwatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    if updates:
        _print_changes("Updates", updates)
        print(
            f"  Download: {total_download_size(updates)} bytes, "
            f"net change: {net_size_change(updates)} bytes"
        )
    if watched:
        _print_changes("Watched", watched)
    if foreign:
        print("Foreign packages:")
        for pkg in foreign:
            print(f"  {pkg.name} {pkg.version}")

    if has_updates(updates) or has_updates(watched) or foreign:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
