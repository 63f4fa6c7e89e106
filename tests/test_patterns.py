"""
Tests for the lexical pattern library and the line cursor.
"""

import datetime
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ascension_log.parser import patterns  # noqa: E402
from ascension_log.parser.cursor import LineCursor  # noqa: E402


class TestPatternHelpers:
    """Tests for the pattern helper functions."""

    def test_match_stat_triple(self):
        """Test matching a name followed by three numbers."""
        assert patterns.match_stat_triple("Muscle:  100  20 -3") == ("Muscle", 100, 20, -3)
        assert patterns.match_stat_triple("Muscle: 100 20") is None

    def test_match_name_number_uses_last_colon(self):
        """Test that names may contain colons."""
        assert patterns.match_name_number("Cast: Saucestorm: 12") == ("Cast: Saucestorm", 12)
        assert patterns.match_name_number("no number here") is None

    def test_extract_numbers_handles_commas(self):
        """Test that thousands separators are ignored."""
        assert patterns.extract_numbers("Meat: 12,345 and 7") == [12345, 7]
        assert patterns.first_number("nothing") is None

    def test_number_after_prefix(self):
        """Test parsing a number after a literal prefix."""
        assert patterns.number_after_prefix("Total meat gained: 1,200", "Total meat gained:") == 1200
        assert patterns.number_after_prefix("Other line: 5", "Total meat gained:") is None
        assert patterns.number_after_prefix("Total meat gained: lots", "Total meat gained:") is None

    def test_parse_gain_lose(self):
        """Test signed amounts of gain and lose lines."""
        assert patterns.parse_gain_lose("You gain 1,000 Meat") == (1000, "Meat")
        assert patterns.parse_gain_lose("After Battle: You lose 5 hit points") == (-5, "hit points")
        assert patterns.parse_gain_lose("You acquire an item: bone") is None

    def test_parse_statgain_brackets(self):
        """Test that the last bracket triple is used."""
        line = "[12] Spooky Forest [1,2,3] then [4,-5,6]"
        assert patterns.parse_statgain_brackets(line) == (4, -5, 6)
        assert patterns.parse_statgain_brackets("[12] Spooky Forest") is None

    def test_substat_kind(self):
        """Test mapping substat names to stats."""
        assert patterns.substat_kind("Beefiness") == "mus"
        assert patterns.substat_kind("Wizardliness") == "myst"
        assert patterns.substat_kind("Sarcasm") == "mox"
        assert patterns.substat_kind("Meat") is None

    def test_log_date_from_filename(self):
        """Test reading the date from a log file name."""
        assert patterns.log_date_from_filename("Tester_ascend20240315.txt") == datetime.date(
            2024, 3, 15
        )
        assert patterns.log_date_from_filename("Tester_99999999.txt") is None
        assert patterns.log_date_from_filename("Tester.txt") is None

    @pytest.mark.parametrize(
        "name,line",
        [
            ("turns_used", "[123] Spooky Forest"),
            ("turns_used", "[12-15] Haunted Pantry"),
            ("item_found", "  +> Got bone"),
            ("day_change", "===Day 2==="),
            ("semirare", " #> [55] Semirare: Lunchboxing"),
            ("familiar_changed", "  -> Turn [10] Mosquito"),
        ],
    )
    def test_named_patterns(self, name, line):
        """Test that typical lines match their named patterns."""
        assert patterns.matches(name, line)

    def test_day_one_is_not_a_day_change(self):
        """Test that day 1 does not count as a day change."""
        assert not patterns.matches("day_change", "===Day 1===")


class TestLineCursor:
    """Tests for LineCursor."""

    def test_strips_line_endings(self):
        """Test that line endings are removed."""
        cursor = LineCursor(["a\r\n", "b\n"])
        assert cursor.next_line() == "a"
        assert cursor.next_line() == "b"
        assert cursor.next_line() is None
        assert cursor.at_end

    def test_peek_does_not_consume(self):
        """Test look-ahead."""
        cursor = LineCursor(["a", "b", "c"])
        assert cursor.peek() == "a"
        assert cursor.peek(2) == "c"
        assert cursor.peek(3) is None
        assert cursor.position == 0

    def test_pushback(self):
        """Test stepping back over read lines."""
        cursor = LineCursor(["a", "b"])
        cursor.next_line()
        cursor.next_line()
        cursor.pushback()
        assert cursor.next_line() == "b"
        assert cursor.line_number == 2

    def test_pushback_past_start(self):
        """Test that pushing back past the start fails."""
        cursor = LineCursor(["a"])
        with pytest.raises(ValueError):
            cursor.pushback()
