"""
Unit tests for form field normalization.

Tests cover:
- Slug derivation and fallbacks
- Lenient position parsing
- Blank-to-None text cleaning
- datetime-local parsing (rejects unparsable input)
"""

import pytest

from app.usampac.forms import (
    SLUG_MAX_LENGTH,
    clean_text,
    form_id,
    is_checked,
    parse_position,
    parse_timestamp,
    slug_or_derived,
    slugify,
)


class TestSlugify:
    def test_title_with_padding(self):
        assert slugify("  Ballot Measure 1  ", "poll") == "ballot-measure-1"

    def test_punctuation_only_falls_back(self):
        assert slugify("???", "poll") == "poll"
        assert slugify("???", "question") == "question"

    def test_runs_collapse_to_single_hyphen(self):
        assert slugify("What's   your -- favourite?!", "poll") == "what-s-your-favourite"

    def test_truncated(self):
        slug = slugify("a" * 200, "poll")
        assert len(slug) == SLUG_MAX_LENGTH

    def test_explicit_slug_wins(self):
        assert slug_or_derived("  custom-slug ", "Some Title", "poll") == "custom-slug"
        assert slug_or_derived("   ", "Some Title", "poll") == "some-title"
        assert slug_or_derived(None, "!!!", "question") == "question"


class TestParsePosition:
    @pytest.mark.parametrize(
        "raw,expected",
        [("3", 3), (" 7", 7), ("12abc", 12), ("3.7", 3), ("-2", -2), ("abc", 0), ("", 0), (None, 0)],
    )
    def test_leading_integer(self, raw, expected):
        assert parse_position(raw) == expected

    def test_only_ascii_digits_count(self):
        assert parse_position("٣") == 0
        assert parse_position("4٣") == 4

    def test_absurdly_long_number_falls_back(self):
        assert parse_position("9" * 5000) == 0
        assert parse_position("9" * 5000, default=1) == 1


class TestCleanText:
    def test_blank_is_none(self):
        assert clean_text("") is None
        assert clean_text("   ") is None
        assert clean_text(None) is None

    def test_strips(self):
        assert clean_text("  hello ") == "hello"

    def test_form_id(self):
        assert form_id("") is None
        assert form_id(" 42 ") == "42"


def test_is_checked():
    assert is_checked({"is_active": "on"}, "is_active") is True
    assert is_checked({}, "is_active") is False


class TestParseTimestamp:
    def test_datetime_local_is_utc(self):
        assert parse_timestamp("2024-05-01T10:30") == "2024-05-01T10:30:00+00:00"

    def test_offset_converted_to_utc(self):
        assert parse_timestamp("2024-05-01T10:30:00-04:00") == "2024-05-01T14:30:00+00:00"

    def test_zulu_suffix(self):
        assert parse_timestamp("2024-05-01T10:30:00Z") == "2024-05-01T10:30:00+00:00"

    def test_blank_is_none(self):
        assert parse_timestamp("  ") is None

    def test_unparsable_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("next tuesday")
