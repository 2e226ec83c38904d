"""
Tests for the extension compatibility policy.
"""

import pytest

from pgcollector.extensions import CompatibilityMatrix, VersionRule, parse_version


class TestDefaultMatrix:
    """The default matrix has no rules and allows everything."""

    @pytest.mark.parametrize("extension,version", [
        ("pg_stat_monitor", "0.1"),
        ("pg_stat_monitor", "2.1.0"),
        ("pg_stat_statements", "1.10"),
        ("unknown_extension", "not-a-version"),
        ("", ""),
    ])
    def test_everything_is_compatible(self, extension, version):
        assert CompatibilityMatrix().is_compatible(extension, version) is True

    def test_default_has_no_rules(self):
        assert CompatibilityMatrix().rules == {}


class TestParseVersion:

    @pytest.mark.parametrize("raw,expected", [
        ("1.10", (1, 10)),
        ("1.9", (1, 9)),
        ("2.0.4", (2, 0, 4)),
        ("2.0beta1", (2, 0)),
        ("", ()),
    ])
    def test_parse(self, raw, expected):
        assert parse_version(raw) == expected

    def test_numeric_ordering(self):
        """1.10 sorts after 1.9, unlike a string comparison."""
        assert parse_version("1.10") > parse_version("1.9")


class TestVersionRules:

    def test_min_version_bound(self):
        matrix = CompatibilityMatrix()
        matrix.add_rule("pg_stat_monitor", VersionRule(min_version="2.0"))

        assert matrix.is_compatible("pg_stat_monitor", "1.1.1") is False
        assert matrix.is_compatible("pg_stat_monitor", "2.0") is True
        assert matrix.is_compatible("pg_stat_monitor", "2.1.0") is True

    def test_inclusive_range(self):
        matrix = CompatibilityMatrix({
            "pg_stat_monitor": [VersionRule(min_version="1.0", max_version="2.0")],
        })

        assert matrix.is_compatible("pg_stat_monitor", "1.0") is True
        assert matrix.is_compatible("pg_stat_monitor", "2.0") is True
        assert matrix.is_compatible("pg_stat_monitor", "2.1") is False

    def test_any_matching_rule_is_enough(self):
        matrix = CompatibilityMatrix({
            "pg_stat_monitor": [
                VersionRule(max_version="1.0"),
                VersionRule(min_version="2.0"),
            ],
        })

        assert matrix.is_compatible("pg_stat_monitor", "0.9") is True
        assert matrix.is_compatible("pg_stat_monitor", "1.5") is False
        assert matrix.is_compatible("pg_stat_monitor", "2.3") is True

    def test_rules_only_apply_to_their_extension(self):
        matrix = CompatibilityMatrix({"pg_stat_monitor": [VersionRule(min_version="2.0")]})

        assert matrix.is_compatible("pg_wait_sampling", "0.1") is True

    def test_custom_policy_subclass(self):
        """Policies can be replaced by overriding is_compatible."""

        class DenyAll(CompatibilityMatrix):
            def is_compatible(self, extension_name, version):
                return False

        assert DenyAll().is_compatible("pg_stat_monitor", "2.0") is False
