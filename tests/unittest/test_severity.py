# AGPL-3.0 License

"""
Unit tests for the severity model.
"""

import pytest

from pr_annotator.algo.severity import (
    Severity,
    format_finding_body,
    normalize_severity,
    parse_severity_header,
    rank,
)
from pr_annotator.config_loader import get_min_severity


class TestNormalizeSeverity:
    """Tests for normalize_severity."""

    @pytest.mark.parametrize("raw, expected", [
        ("low", Severity.LOW),
        ("medium", Severity.MEDIUM),
        ("high", Severity.HIGH),
        ("critical", Severity.CRITICAL),
        ("  HIGH ", Severity.HIGH),
        ("Critical", Severity.CRITICAL),
    ])
    def test_known_tiers(self, raw, expected):
        """Test that known tier names normalize regardless of case and spacing."""
        assert normalize_severity(raw) == expected

    @pytest.mark.parametrize("raw", ["urgent", "", "hi", "highest", None, 3, ["high"]])
    def test_unknown_values_fall_back_to_low(self, raw):
        """Unrecognized input is masked as low rather than rejected."""
        assert normalize_severity(raw) == Severity.LOW

    def test_idempotent(self):
        """Test that normalizing twice gives the same tier."""
        for raw in ["HIGH", "bogus", " medium "]:
            once = normalize_severity(raw)
            assert normalize_severity(once) == once


class TestRank:
    """Tests for the severity order."""

    def test_total_order(self):
        """Test that ranks follow the tier order."""
        ordered = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]
        assert [rank(s) for s in ordered] == [0, 1, 2, 3]

    def test_rank_accepts_raw_strings(self):
        """Test that rank normalizes raw strings first."""
        assert rank("high") == rank(Severity.HIGH)
        assert rank("nonsense") == rank(Severity.LOW)

    def test_invalid_severity_passes_low_threshold(self):
        """An unknown severity survives a low threshold and is dropped by anything higher."""
        assert rank(normalize_severity("urgent")) >= rank(Severity.LOW)
        assert rank(normalize_severity("urgent")) < rank(Severity.MEDIUM)


class TestFindingBody:
    """Tests for the posted finding header."""

    def test_format(self):
        """Test the rendered header of a finding body."""
        body = format_finding_body("Possible SQL injection.", Severity.HIGH)
        assert body == "🔴 **High**\n\nPossible SQL injection."

    def test_parse_round_trip(self):
        """Test that a rendered header parses back to its tier."""
        for severity in Severity:
            assert parse_severity_header(format_finding_body("text", severity)) == severity

    def test_parse_without_header(self):
        """Test that bodies without a header have no parsed tier."""
        assert parse_severity_header("> [!WARNING]\n> Something") is None
        assert parse_severity_header("") is None


class TestMinSeveritySetting:
    """Tests for get_min_severity."""

    def test_configured_value(self, override_settings):
        """Test that the configured minimum severity is normalized."""
        override_settings("config.min_severity", " Medium ")
        assert get_min_severity() == Severity.MEDIUM

    def test_invalid_value_defaults_to_low(self, override_settings):
        """Test that an invalid minimum severity falls back to low."""
        override_settings("config.min_severity", "urgent")
        assert get_min_severity() == Severity.LOW
