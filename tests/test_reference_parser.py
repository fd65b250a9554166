"""Tests for scripture reference parsing."""

import pytest

from anchor.datatypes.daily_content_datatypes import ScriptureReference
from anchor.devotional.reference_parser import normalize_spacing, parse_reference
from anchor.exceptions import ReferenceParseError


class TestParseReference:
    """Tests for parse_reference."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("John 3:16", ScriptureReference("John", 3, 16, 16)),
            ("1 John 4:18", ScriptureReference("1 John", 4, 18, 18)),
            ("Romans 8:38-39", ScriptureReference("Romans", 8, 38, 39)),
            ("Romans 8:38 – 39", ScriptureReference("Romans", 8, 38, 39)),
            ("  Song of Solomon  2 : 4 ", ScriptureReference("Song of Solomon", 2, 4, 4)),
        ],
    )
    def test_valid_references(self, text, expected):
        """Test that supported shapes parse to book, chapter and verse range."""
        assert parse_reference(text) == expected

    @pytest.mark.parametrize("text", ["", "Romans 8", "Romans", "8:28", "Romans 8:28a", "Romans 0:1", "Romans 8:5-3"])
    def test_invalid_references(self, text):
        """Test that malformed or out-of-order references raise."""
        with pytest.raises(ReferenceParseError):
            parse_reference(text)

    def test_str_roundtrip(self):
        """Test the canonical string form of a parsed reference."""
        assert str(parse_reference("Romans 8 : 38–39")) == "Romans 8:38-39"
        assert str(parse_reference("John 3:16")) == "John 3:16"
        assert parse_reference("1 John 4:18").chapter_query == "1 John 4"

    def test_normalize_spacing(self):
        assert normalize_spacing("  Psalm   23 :  1 –  3 ") == "Psalm 23:1-3"
