"""Tests for watched package evaluation."""

import pytest

from pkgwatch.common.errors import SyncError
from pkgwatch.updates.models import (
    ChangeKind,
    MISSING_VERSION,
    NOT_FOUND_DESCRIPTION,
    WatchedEntry,
)
from pkgwatch.updates.watched import WatchedPackageMatcher
from tests.factories import FakeEngine, make_package


@pytest.fixture
def repo_engine():
    engine = FakeEngine(ignore_packages=["linux"])
    engine.add_repository("core", [make_package("foo", "1.1"), make_package("linux", "6.2")])
    engine.add_repository("extra", [make_package("foo", "2.0"), make_package("bar", "1.10")])
    return engine


class TestWatchedEntry:
    """Tests for WatchedEntry name splitting."""

    def test_plain_name(self):
        entry = WatchedEntry("foo", "1.0")
        assert entry.repository is None
        assert entry.package_name == "foo"

    def test_pinned_name(self):
        entry = WatchedEntry("core/foo", "1.0")
        assert entry.repository == "core"
        assert entry.package_name == "foo"


class TestWatchedPackageMatcher:
    """Tests for WatchedPackageMatcher."""

    def test_pinned_entry(self, repo_engine):
        changes = WatchedPackageMatcher(repo_engine).match([WatchedEntry("core/foo", "1.0")])

        assert len(changes) == 1
        change = changes[0]
        assert change.kind is ChangeKind.WATCHED
        assert change.repository == "core"
        assert change.name == "core/foo"
        assert change.old_version == "1.0"
        assert change.new_version == "1.1"

    def test_pinned_entry_other_repository(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("extra/foo", "1.0")])

        assert change.repository == "extra"
        assert change.name == "extra/foo"
        assert change.new_version == "2.0"

    def test_first_repository_wins(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("foo", "1.0")])

        assert change.repository == "core"
        assert change.name == "foo"
        assert change.new_version == "1.1"

    def test_first_match_stops_search_even_without_update(self, repo_engine):
        # core has 1.1, extra has 2.0; core is searched first and is not newer
        changes = WatchedPackageMatcher(repo_engine).match([WatchedEntry("foo", "1.5")])

        assert changes == []

    def test_version_ordering_not_lexical(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("bar", "1.9")])

        assert change.new_version == "1.10"

    def test_same_version_no_record(self, repo_engine):
        assert WatchedPackageMatcher(repo_engine).match([WatchedEntry("bar", "1.10")]) == []

    def test_not_found(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("missing", "3.0")])

        assert change.kind is ChangeKind.NOT_FOUND
        assert not change.is_found
        assert change.name == "missing"
        assert change.description == NOT_FOUND_DESCRIPTION
        assert change.old_version == "3.0"
        assert change.new_version == MISSING_VERSION
        assert (change.old_size, change.new_size, change.download_size) == (0, 0, 0)

    def test_pinned_to_wrong_repository_not_found(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("core/bar", "1.0")])

        assert change.kind is ChangeKind.NOT_FOUND
        assert change.name == "core/bar"

    def test_pinned_to_unknown_repository_not_found(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("testing/foo", "1.0")])

        assert change.kind is ChangeKind.NOT_FOUND

    def test_ignored_flag(self, repo_engine):
        changes = WatchedPackageMatcher(repo_engine).match(
            [WatchedEntry("linux", "6.1"), WatchedEntry("foo", "1.0")]
        )

        assert [c.ignored for c in changes] == [True, False]

    def test_sizes_from_found_package(self, repo_engine):
        (change,) = WatchedPackageMatcher(repo_engine).match([WatchedEntry("foo", "1.0")])

        assert change.new_size == 1000
        assert change.download_size == 400
        assert change.old_size == 0

    def test_requires_repositories(self, engine):
        with pytest.raises(SyncError):
            WatchedPackageMatcher(engine).match([WatchedEntry("foo", "1.0")])
