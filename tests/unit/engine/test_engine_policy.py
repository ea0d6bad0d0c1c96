"""Tests for the engine-independent policy helpers."""

import pytest

from pkgwatch.engine.base import (
    ALPM_ERR_CONFLICTING_DEPS,
    ALPM_ERR_PKG_INVALID_ARCH,
    ALPM_ERR_UNSATISFIED_DEPS,
    SIG_DATABASE,
    SIG_PACKAGE,
    SIG_USE_DEFAULT,
    PrepareErrorKind,
    classify_prepare_error,
    effective_sig_level,
    is_ignored,
    match_patterns,
)


class TestEffectiveSigLevel:
    """Tests for resolving a repository's signature level."""

    def test_default_applies_to_unset_repository(self):
        assert effective_sig_level(SIG_USE_DEFAULT, SIG_PACKAGE | SIG_DATABASE) == (
            SIG_PACKAGE | SIG_DATABASE
        )

    def test_explicit_level_wins(self):
        assert effective_sig_level(SIG_DATABASE, SIG_PACKAGE) == SIG_DATABASE

    def test_unset_default_leaves_level_alone(self):
        assert effective_sig_level(SIG_USE_DEFAULT, SIG_USE_DEFAULT) == SIG_USE_DEFAULT


class TestMatchPatterns:
    """Tests for IgnorePkg-style glob matching."""

    def test_glob(self):
        assert match_patterns(["linux*"], "linux-lts") is True

    def test_no_match(self):
        assert match_patterns(["linux*"], "firefox") is None

    def test_case_sensitive(self):
        assert match_patterns(["Linux*"], "linux") is None

    def test_negation_in_later_pattern_wins(self):
        assert match_patterns(["linux*", "!linux-lts"], "linux-lts") is False
        assert match_patterns(["linux*", "!linux-lts"], "linux-zen") is True

    def test_later_pattern_overrides_negation(self):
        assert match_patterns(["!linux-lts", "linux*"], "linux-lts") is True

    def test_escaped_bang(self):
        assert match_patterns(["\\!weird"], "!weird") is True


class TestIsIgnored:
    """Tests for the package ignore policy."""

    def test_name_glob(self):
        assert is_ignored("linux-lts", [], ["linux*"], [])

    def test_group_glob(self):
        assert is_ignored("gimp", ["gnome-extra"], [], ["gnome*"])

    def test_negated_name_not_ignored(self):
        assert not is_ignored("linux-lts", [], ["linux*", "!linux-lts"], [])

    def test_nothing_configured(self):
        assert not is_ignored("linux", ["base"], [], [])


class TestClassifyPrepareError:
    """Tests for prepare failure classification."""

    @pytest.mark.parametrize(
        "code,kind",
        [
            (ALPM_ERR_PKG_INVALID_ARCH, PrepareErrorKind.INVALID_ARCH),
            (ALPM_ERR_UNSATISFIED_DEPS, PrepareErrorKind.UNSATISFIED_DEPS),
            (ALPM_ERR_CONFLICTING_DEPS, PrepareErrorKind.CONFLICTING_DEPS),
        ],
    )
    def test_by_code(self, code, kind):
        assert classify_prepare_error(code, "transaction preparation failed") is kind

    def test_code_beats_translated_message(self):
        kind = classify_prepare_error(ALPM_ERR_UNSATISFIED_DEPS, "Abhängigkeiten nicht erfüllbar")
        assert kind is PrepareErrorKind.UNSATISFIED_DEPS

    def test_unknown_code_is_other(self):
        assert classify_prepare_error(1, "could not satisfy dependencies") is PrepareErrorKind.OTHER

    def test_message_without_code(self):
        kind = classify_prepare_error(None, "conflicting dependencies")
        assert kind is PrepareErrorKind.CONFLICTING_DEPS
