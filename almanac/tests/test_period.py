"""Tests for the period key validator."""
import pytest

from almanac.period import canonical_period, format_period, is_valid_period, parse_period


class TestIsValidPeriod:
    @pytest.mark.parametrize("key", [
        "2000Q1", "2025Q2", "2025Q3", "2099Q4", "2050Q1",
    ])
    def test_accepts_well_formed_keys(self, key):
        assert is_valid_period(key) is True

    @pytest.mark.parametrize("key,why", [
        ("25Q1", "wrong length"),
        ("2025Q5", "quarter out of range"),
        ("2025Q0", "quarter out of range"),
        ("2025M2", "wrong delimiter"),
        ("2025q2", "lowercase delimiter"),
        ("test", "wrong shape"),
        ("0000Q0", "year and quarter out of range"),
        ("1999Q4", "year below range"),
        ("2100Q1", "year above range"),
        ("", "empty"),
        ("2025Q22", "too long"),
        ("20a5Q1", "non-digit in year"),
        (" 025Q1", "space in year"),
        ("2025QQ", "non-digit quarter"),
    ])
    def test_rejects_malformed_keys(self, key, why):
        assert is_valid_period(key) is False, why

    def test_rejects_non_ascii_digits(self):
        # Arabic-Indic digits are str.isdigit() but not ASCII
        assert is_valid_period("٢٠٢٥Q1") is False
        # fullwidth quarter digit
        assert is_valid_period("2025Q２") is False

    def test_accepts_bytes_one_byte_per_char(self):
        assert is_valid_period(b"2025Q2") is True
        assert is_valid_period(b"2025Q5") is False
        assert is_valid_period("2025Q2".encode("utf-16")) is False

    @pytest.mark.parametrize("value", [None, 2025, 20.25, ["2025Q1"], object()])
    def test_total_on_non_string_input(self, value):
        assert is_valid_period(value) is False

    def test_never_raises_on_long_input(self):
        assert is_valid_period("2025Q1" * 10_000) is False


class TestParseAndFormat:
    def test_parse_valid(self):
        assert parse_period("2025Q2") == (2025, 2)
        assert parse_period(b"2001Q4") == (2001, 4)

    def test_parse_invalid_returns_none(self):
        assert parse_period("2025Q5") is None

    def test_format_round_trip(self):
        assert format_period(2025, 3) == "2025Q3"

    def test_format_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            format_period(1999, 1)
        with pytest.raises(ValueError):
            format_period(2025, 5)


class TestCanonicalPeriod:
    def test_text_key_unchanged(self):
        assert canonical_period("2025Q2") == "2025Q2"

    def test_bytes_key_decoded(self):
        assert canonical_period(b"2025Q2") == "2025Q2"
        assert canonical_period(bytearray(b"2099Q4")) == "2099Q4"

    @pytest.mark.parametrize("key", ["2025Q5", b"1999Q1", None, 2025])
    def test_invalid_is_none(self, key):
        assert canonical_period(key) is None
