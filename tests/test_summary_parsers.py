"""
Tests for the pre-parsed log rundown and summary section parsers.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ascension_log.config import ParserConfig  # noqa: E402
from ascension_log.exceptions import SummaryBlockError  # noqa: E402
from ascension_log.logdata.holder import LogDataHolder  # noqa: E402
from ascension_log.logdata.turn_actions import NamedTurn  # noqa: E402
from ascension_log.logdata.values import MeatGain, MPGain, Statgain  # noqa: E402
from ascension_log.parser.cursor import LineCursor  # noqa: E402
from ascension_log.parser.line_parsers import ParserContext  # noqa: E402
from ascension_log.parser.summary_parsers import (  # noqa: E402
    BottleneckSummaryBlockParser,
    FamiliarSummaryBlockParser,
    LevelSummaryBlockParser,
    MeatSummaryBlockParser,
    MPSummaryBlockParser,
    SemirareSummaryBlockParser,
    SkillSummaryBlockParser,
    StatsSummaryBlockParser,
    parse_summary_sections,
    parse_turn_rundown,
)


@pytest.fixture
def holder():
    return LogDataHolder(False)


@pytest.fixture
def context():
    return ParserContext(ParserConfig())


class TestTurnRundown:
    """Tests for reading the turn rundown."""

    def test_rundown_stops_at_ascended(self, holder, context):
        """Test that the rundown ends at the "Ascended!" line."""
        cursor = LineCursor(
            [
                "[1-5] Spooky Forest [1,2,3]",
                "",
                "[6-10] Haunted Pantry [4,5,6]",
                "Ascended!",
                "MEAT",
            ]
        )
        parse_turn_rundown(cursor, holder, context)
        assert [i.area_name for i in holder.turn_intervals_spent][-2:] == [
            "Spooky Forest",
            "Haunted Pantry",
        ]
        assert cursor.peek() == "MEAT"

    def test_rundown_without_end_line(self, holder, context):
        """Test that a rundown may run to the end of the log."""
        cursor = LineCursor(["[1-5] Spooky Forest [1,2,3]"])
        parse_turn_rundown(cursor, holder, context)
        assert cursor.at_end
        assert holder.last_turn_spent.end_turn == 5


class TestSummaryBlocks:
    """Tests for the individual summary section parsers."""

    def test_meat_total_and_reader_position(self, holder, context):
        """Test that two blank lines end a section with the second one pushed back."""
        cursor = LineCursor(["MEAT", "Total meat gained: 12345", "", "", "STATS"])
        MeatSummaryBlockParser().parse(cursor, holder, context)
        assert holder.log_summary.total_meat_gain == 12345
        assert cursor.position == 3
        assert cursor.next_line() == ""
        assert cursor.peek() == "STATS"

    def test_meat_per_level(self, holder, context):
        """Test the meat totals and per level values."""
        cursor = LineCursor(
            [
                "MEAT",
                "Total meat gained: 12,345",
                "Total meat spent: 2,000",
                "",
                "Level 1",
                "   Encounters: 100",
                "   Other: 50",
                "   Spent: 20",
            ]
        )
        MeatSummaryBlockParser().parse(cursor, holder, context)
        summary = holder.log_summary
        assert summary.total_meat_gain == 12345
        assert summary.total_meat_spent == 2000
        assert summary.meat_summary.level_data(1) == MeatGain(100, 50, 20)

    def test_meat_level_cut_short(self, holder, context):
        """Test that a section ending inside a level block is an error."""
        cursor = LineCursor(["MEAT", "Level 1", "   Encounters: 100"])
        with pytest.raises(SummaryBlockError):
            MeatSummaryBlockParser().parse(cursor, holder, context)

    def test_stats(self, holder, context):
        """Test that the four stat lines fill total, combat, noncombat and other."""
        cursor = LineCursor(
            [
                "STATS",
                "           Muscle Myst Moxie",
                "Total:  100  200  300",
                "Combat: 50 100 150",
                "Noncombat: 30 60 90",
                "Other: 20 40 60",
                "",
                "",
            ]
        )
        StatsSummaryBlockParser().parse(cursor, holder, context)
        summary = holder.log_summary
        assert summary.total_stat_gains == Statgain(100, 200, 300)
        assert summary.combat_stat_gains == Statgain(50, 100, 150)
        assert summary.noncombat_stat_gains == Statgain(30, 60, 90)
        assert summary.other_stat_gains == Statgain(20, 40, 60)

    def test_stats_with_blank_after_header(self, holder, context):
        """Test stat names with spaces and a blank line after the header."""
        cursor = LineCursor(
            [
                "STATS",
                "",
                "Total Stats: 100 50 25",
                "Combats: 80 40 20",
                "Noncombats: 15 8 4",
                "Other: 5 2 1",
                "",
            ]
        )
        StatsSummaryBlockParser().parse(cursor, holder, context)
        summary = holder.log_summary
        assert summary.total_stat_gains == Statgain(100, 50, 25)
        assert summary.combat_stat_gains == Statgain(80, 40, 20)
        assert summary.noncombat_stat_gains == Statgain(15, 8, 4)
        assert summary.other_stat_gains == Statgain(5, 2, 1)

    def test_levels(self, holder, context):
        """Test level lines with the turns of the previous level."""
        cursor = LineCursor(
            [
                "LEVELS",
                "Hit Level 2 on turn 5, 5 from last level. (3.20 substats / turn)",
                "   Combats: 3",
                "   Noncombats: 1",
                "   Others: 1",
                "",
                "COMBATS: 50",
                "NONCOMBATS: 20",
                "OTHER: 10",
            ]
        )
        LevelSummaryBlockParser().parse(cursor, holder, context)
        levels = holder.levels
        assert [(lv.level_number, lv.level_reached_on_turn) for lv in levels] == [(1, 0), (2, 5)]
        assert (levels[0].combat_turns, levels[0].noncombat_turns, levels[0].other_turns) == (
            3,
            1,
            1,
        )
        assert levels[1].stat_gain_per_turn == pytest.approx(3.2)
        summary = holder.log_summary
        assert summary.total_turns_combat == 50
        assert summary.total_turns_noncombat == 20
        assert summary.total_turns_other == 10

    def test_familiars(self, holder, context):
        """Test familiar usage lines."""
        cursor = LineCursor(
            ["FAMILIARS", "Mosquito: 40 (50.0%)", "Hovering Sombrero: 20 (25.0%)", "", ""]
        )
        FamiliarSummaryBlockParser().parse(cursor, holder, context)
        assert holder.log_summary.familiar_usage == [
            NamedTurn("Mosquito", 40),
            NamedTurn("Hovering Sombrero", 20),
        ]

    def test_semirares(self, holder, context):
        """Test semirare lines."""
        cursor = LineCursor(["SEMI-RARES", "55 : Lunchboxing", "130 : Bad Trip", "", ""])
        SemirareSummaryBlockParser().parse(cursor, holder, context)
        assert holder.log_summary.semirares == [
            NamedTurn("Lunchboxing", 55),
            NamedTurn("Bad Trip", 130),
        ]

    def test_skills(self, holder, context):
        """Test that cast lines get their MP cost from the reference tables."""
        cursor = LineCursor(["CASTS", "Cast 3 Saucestorm", "", ""])
        SkillSummaryBlockParser().parse(cursor, holder, context)
        summary = holder.log_summary
        assert summary.total_amount_skill_casts == 3
        assert summary.total_mp_used == 36

    def test_mp_gains(self, holder, context):
        """Test MP totals and per level values."""
        cursor = LineCursor(
            [
                "MP GAINS",
                "Inside Encounters: 100",
                "Starfish Familiars: 20",
                "Resting: 30",
                "Outside Encounters: 40",
                "Consumables: 50",
                "",
                "Level 1",
                "   Inside Encounters: 10",
                "   Starfish Familiars: 2",
                "   Resting: 3",
                "   Outside Encounters: 4",
                "   Consumables: 5",
            ]
        )
        MPSummaryBlockParser().parse(cursor, holder, context)
        summary = holder.log_summary
        assert summary.total_mp_gains == MPGain(100, 20, 30, 40, 50)
        assert summary.mp_gain_summary.level_data(1) == MPGain(10, 2, 3, 4, 5)

    def test_mp_total_without_number(self, holder, context):
        """Test that a total without a number is an error."""
        cursor = LineCursor(["MP GAINS", "Resting: lots"])
        with pytest.raises(SummaryBlockError):
            MPSummaryBlockParser().parse(cursor, holder, context)

    def test_bottlenecks(self, holder, context):
        """Test bloopers, goatlet drops and lost combats."""
        cursor = LineCursor(
            [
                "BOTTLENECKS",
                "Found 4 bloopers",
                "Got 2 dairy goats for 5 cheese",
                "Number of lost combats: 2",
                "    spooky mummy: 12",
                "    Ninja Snowman: 40",
                "",
                "",
            ]
        )
        BottleneckSummaryBlockParser().parse(cursor, holder, context)
        summary = holder.log_summary
        assert summary.nes_realm.bloopers_found == 4
        assert summary.goatlet.dairy_goats_found == 2
        assert summary.goatlet.cheese_found == 5
        assert holder.lost_combats == [NamedTurn("spooky mummy", 12), NamedTurn("Ninja Snowman", 40)]


class TestSummaryDispatch:
    """Tests for dispatching summary sections to their parsers."""

    def test_sections_in_sequence(self, holder, context):
        """Test that the section after a two blank line terminator is read."""
        cursor = LineCursor(
            [
                "Ascended!",
                "MEAT",
                "Total meat gained: 12345",
                "",
                "",
                "FAMILIARS",
                "Mosquito: 40 (100.0%)",
            ]
        )
        parse_summary_sections(cursor, holder, context)
        summary = holder.log_summary
        assert summary.total_meat_gain == 12345
        assert summary.familiar_usage == [NamedTurn("Mosquito", 40)]
        assert cursor.at_end

    def test_unknown_lines_are_skipped(self, holder, context):
        """Test that lines outside of known sections are ignored."""
        cursor = LineCursor(["", "Some comment", "", "MEAT", "Total meat gained: 7"])
        parse_summary_sections(cursor, holder, context)
        assert holder.log_summary.total_meat_gain == 7

    def test_second_blank_consumed_before_next_header(self, holder, context):
        """Test that the blank pushed back by MEAT is read before STATS is dispatched."""

        class RecordingStatsParser(StatsSummaryBlockParser):
            def parse(self, cursor, holder, context):
                self.start = cursor.position
                self.start_line = cursor.peek()
                super().parse(cursor, holder, context)

        stats_parser = RecordingStatsParser()
        cursor = LineCursor(
            [
                "Ascended!",
                "MEAT",
                "Total meat gained: 12345",
                "",
                "",
                "STATS",
                "Total Stats: 100 50 25",
                "Combats: 80 40 20",
                "Noncombats: 15 8 4",
                "Other: 5 2 1",
            ]
        )
        parse_summary_sections(cursor, holder, context, [MeatSummaryBlockParser(), stats_parser])
        assert stats_parser.start == 5
        assert stats_parser.start_line == "STATS"
        summary = holder.log_summary
        assert summary.total_meat_gain == 12345
        assert summary.total_stat_gains == Statgain(100, 50, 25)
        assert summary.other_stat_gains == Statgain(5, 2, 1)
