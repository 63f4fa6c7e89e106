"""
Pre-parsed log summary parsers.

A pre-parsed log starts with a turn rundown (one line per turn interval)
and ends with summary sections such as LEVELS, STATS or MEAT. The
rundown goes through the rundown line parsers; each summary section is
read by the block parser whose header it carries.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from ..exceptions import SummaryBlockError
from ..logdata.countables import Skill
from ..logdata.holder import LogDataHolder
from ..logdata.turn_actions import LevelData, NamedTurn
from ..logdata.values import MeatGain, MPGain, Statgain
from . import patterns
from .cursor import LineCursor
from .line_parsers import ParserContext, rundown_line_parsers, run_line_parsers, skill_mp_cost
from .patterns import (
    TRIVIAL_COMBAT_SKILLS,
    extract_numbers,
    first_number,
    match_stat_triple,
    number_after_prefix,
)

logger = logging.getLogger(__name__)

RUNDOWN_END_PREFIXES = ("Ascended!", "Turn rundown finished!")


def parse_turn_rundown(cursor: LineCursor, holder: LogDataHolder, context: ParserContext) -> None:
    """
    Feed the turn rundown to the rundown line parsers.

    Stops after the "Ascended!" or "Turn rundown finished!" line, or at
    the end of the log.
    """
    parsers = rundown_line_parsers()
    while True:
        line = cursor.next_line()
        if line is None:
            return
        if not line:
            continue
        if line.startswith(RUNDOWN_END_PREFIXES):
            logger.debug(f"Turn rundown ends at line {cursor.line_number}")
            return
        run_line_parsers(parsers, line, holder, context)


def _next_required(cursor: LineCursor, section: str) -> str:
    line = cursor.next_line()
    if line is None:
        raise SummaryBlockError(
            f"{section} section ended early", cursor.line_number, "unexpected end of log"
        )
    return line


def _required_number(line: str, cursor: LineCursor, section: str) -> int:
    number = first_number(line)
    if number is None:
        raise SummaryBlockError(
            f"{section} section has a field without a number", cursor.line_number, line
        )
    return number


class SummaryBlockParser(ABC):
    """
    Base class for summary section parsers.

    parse() starts at the header line and reads lines until a run of
    blank_threshold blank lines. The last blank line is pushed back, so
    the caller's read of the next line consumes it.
    """

    header = ""
    blank_threshold = 2

    def is_compatible(self, line: str) -> bool:
        return self.header in line

    def is_blank(self, line: str) -> bool:
        return not line.strip()

    def begin(self, holder: LogDataHolder, context: ParserContext) -> None:
        pass

    @abstractmethod
    def parse_line(
        self, line: str, cursor: LineCursor, holder: LogDataHolder, context: ParserContext
    ) -> None:
        pass

    def finish(self, holder: LogDataHolder, context: ParserContext) -> None:
        pass

    def parse(self, cursor: LineCursor, holder: LogDataHolder, context: ParserContext) -> None:
        self.begin(holder, context)
        blanks = 0
        while True:
            line = cursor.next_line()
            if line is None:
                break
            if self.is_blank(line):
                blanks += 1
                if blanks >= self.blank_threshold:
                    cursor.pushback()
                    break
                continue
            blanks = 0
            self.parse_line(line, cursor, holder, context)
        self.finish(holder, context)


class LevelSummaryBlockParser(SummaryBlockParser):
    """
    LEVELS: when each level was hit and the turns spent in the level before.

    The three lines after "Hit Level N" hold the combat, noncombat and
    other turns of the previous level.
    """

    header = "LEVELS"
    blank_threshold = 3

    STATS_PER_TURN = re.compile(
        r"Hit Level \d+ on turn \d+, \d+ from last level\. \((\d+\.\d+) substats / turn\)"
    )
    ENDS_WITH_DIGIT = re.compile(r".*\d$")

    def parse_line(self, line, cursor, holder, context):
        summary = holder.log_summary
        if line.startswith("Hit Level"):
            numbers = extract_numbers(line)
            if len(numbers) < 2:
                raise SummaryBlockError("Level line without turn number", cursor.line_number, line)
            level_number, turn_number = numbers[0], numbers[1]
            rate = self.STATS_PER_TURN.fullmatch(line)

            last_level = holder.last_level
            for _ in range(3):
                turns_line = _next_required(cursor, self.header)
                if not self.ENDS_WITH_DIGIT.match(turns_line):
                    continue
                turns = _required_number(turns_line, cursor, self.header)
                if "Combats" in turns_line:
                    last_level.combat_turns = turns
                elif "Noncombats" in turns_line:
                    last_level.noncombat_turns = turns
                else:
                    last_level.other_turns = turns

            holder.add_level(
                LevelData(
                    level_number,
                    turn_number,
                    stat_gain_per_turn=float(rate.group(1)) if rate else 0.0,
                )
            )
        elif patterns.matches("name_colon_number", line):
            turns = _required_number(line, cursor, self.header)
            if "NONCOMBATS" in line:
                summary.total_turns_noncombat = turns
            elif "COMBATS" in line:
                summary.total_turns_combat = turns
            elif "OTHER" in line:
                summary.total_turns_other = turns

    def finish(self, holder, context):
        holder.log_summary.levels = holder.levels


class StatsSummaryBlockParser(SummaryBlockParser):
    """STATS: total, combat, noncombat and other substat gains, in that order."""

    header = "STATS"

    TARGETS = (
        "total_stat_gains",
        "combat_stat_gains",
        "noncombat_stat_gains",
        "other_stat_gains",
    )

    def is_blank(self, line: str) -> bool:
        return len(line) <= 4

    def begin(self, holder, context):
        self._stat_lines = 0

    def parse_line(self, line, cursor, holder, context):
        if self._stat_lines >= len(self.TARGETS):
            return
        triple = match_stat_triple(line)
        if triple is None:
            return
        stats = Statgain(*triple[1:])
        setattr(holder.log_summary, self.TARGETS[self._stat_lines], stats)
        self._stat_lines += 1


class FamiliarSummaryBlockParser(SummaryBlockParser):
    """FAMILIARS: "Name: turns (percentage)" lines."""

    header = "FAMILIARS"

    def begin(self, holder, context):
        self._usage: List[NamedTurn] = []

    def parse_line(self, line, cursor, holder, context):
        if not patterns.matches("name_colon_number", line):
            return
        name, _, rest = line.partition(":")
        self._usage.append(NamedTurn(name.strip(), _required_number(rest, cursor, self.header)))

    def finish(self, holder, context):
        holder.log_summary.familiar_usage = self._usage


class SemirareSummaryBlockParser(SummaryBlockParser):
    """SEMI-RARES: "turn : name" lines."""

    header = "SEMI-RARES"

    SEMIRARE_LINE = re.compile(r"^\d+\s*:\s*\w+.*")
    BEFORE_NAME = re.compile(r".+:\s*")

    def begin(self, holder, context):
        self._semirares: List[NamedTurn] = []

    def parse_line(self, line, cursor, holder, context):
        if not self.SEMIRARE_LINE.match(line):
            return
        name = self.BEFORE_NAME.sub("", line, count=1)
        self._semirares.append(NamedTurn(name, first_number(line)))

    def finish(self, holder, context):
        holder.log_summary.semirares = self._semirares


class SkillSummaryBlockParser(SummaryBlockParser):
    """CASTS: "Cast N skill" lines; MP costs come from the reference tables."""

    header = "CASTS"

    BEFORE_SKILL_NAME = re.compile(r"Cast\s+\d+\s+")

    def begin(self, holder, context):
        self._skills: List[Skill] = []

    def parse_line(self, line, cursor, holder, context):
        if not line.startswith("Cast"):
            return
        casts = _required_number(line, cursor, self.header)
        name = self.BEFORE_SKILL_NAME.sub("", line, count=1)
        mp_cost = skill_mp_cost(context.reference, name, casts, 0)
        if TRIVIAL_COMBAT_SKILLS.get(name.lower()) == holder.character_class.class_name:
            mp_cost = 0
        self._skills.append(Skill(name, casts, mp_cost, 0))

    def finish(self, holder, context):
        holder.log_summary.set_skills_cast(self._skills)


class MPSummaryBlockParser(SummaryBlockParser):
    """
    MP GAINS: totals by source, then per level.

    A "Level N" line is followed by five lines holding the encounter,
    starfish, resting, outside-encounter and consumable MP of the level.
    """

    header = "MP GAINS"

    TOTAL_PREFIXES = {
        "Inside Encounters: ": "encounter",
        "Starfish Familiars: ": "starfish",
        "Resting: ": "resting",
        "Outside Encounters: ": "out_of_encounter",
        "Consumables: ": "consumable",
    }
    LEVEL_PREFIX = "Level "

    def begin(self, holder, context):
        self._totals = {}

    def parse_line(self, line, cursor, holder, context):
        for prefix, source in self.TOTAL_PREFIXES.items():
            if line.startswith(prefix):
                value = number_after_prefix(line, prefix)
                if value is None:
                    raise SummaryBlockError(
                        f"{self.header} total is not a number", cursor.line_number, line
                    )
                self._totals[source] = value
                return
        if line.startswith(self.LEVEL_PREFIX):
            level = _required_number(line, cursor, self.header)
            values = [
                _required_number(_next_required(cursor, self.header), cursor, self.header)
                for _ in range(5)
            ]
            holder.log_summary.mp_gain_summary.add_level_data(level, MPGain(*values))

    def finish(self, holder, context):
        holder.log_summary.total_mp_gains = MPGain(**self._totals)


class MeatSummaryBlockParser(SummaryBlockParser):
    """
    MEAT: total meat gained and spent, then per level.

    A "Level N" line is followed by three lines holding the meat gained
    inside and outside of encounters and the meat spent in the level.
    """

    header = "MEAT"

    TOTAL_GAINED = "Total meat gained:"
    TOTAL_SPENT = "Total meat spent:"
    LEVEL_PREFIX = "Level "

    def parse_line(self, line, cursor, holder, context):
        summary = holder.log_summary
        if line.startswith(self.TOTAL_GAINED):
            summary.total_meat_gain = _required_number(line, cursor, self.header)
        elif line.startswith(self.TOTAL_SPENT):
            summary.total_meat_spent = _required_number(line, cursor, self.header)
        elif line.startswith(self.LEVEL_PREFIX):
            level = _required_number(line, cursor, self.header)
            values = [
                _required_number(_next_required(cursor, self.header), cursor, self.header)
                for _ in range(3)
            ]
            summary.meat_summary.add_level_data(level, MeatGain(*values))


class BottleneckSummaryBlockParser(SummaryBlockParser):
    """BOTTLENECKS: 8-bit realm bloopers, goatlet drops and lost combats."""

    header = "BOTTLENECKS"

    LOST_COMBATS = "Number of lost combats: "
    LOST_COMBAT = re.compile(r"\s*(.+?): (\d+)")

    def parse_line(self, line, cursor, holder, context):
        summary = holder.log_summary
        if line.endswith("bloopers"):
            bloopers = first_number(line)
            if bloopers is not None:
                summary.nes_realm.bloopers_found = bloopers
        elif "dairy goats" in line:
            numbers = extract_numbers(line)
            if len(numbers) >= 2:
                summary.goatlet.dairy_goats_found = numbers[0]
                summary.goatlet.cheese_found = numbers[1]
            else:
                logger.warning(f"Skipping goatlet line without drop counts: {line}")
        elif line.startswith(self.LOST_COMBATS):
            # The list ends at a blank line, which is left for the block loop.
            while True:
                lost = cursor.peek()
                if not lost:
                    break
                cursor.next_line()
                m = self.LOST_COMBAT.match(lost)
                if not m:
                    raise SummaryBlockError(
                        "Unreadable lost combat", cursor.line_number, lost
                    )
                holder.add_lost_combat(NamedTurn(m.group(1), int(m.group(2))))


def summary_block_parsers() -> List[SummaryBlockParser]:
    """Summary section parsers, in dispatch order."""
    return [
        LevelSummaryBlockParser(),
        StatsSummaryBlockParser(),
        FamiliarSummaryBlockParser(),
        SemirareSummaryBlockParser(),
        SkillSummaryBlockParser(),
        MPSummaryBlockParser(),
        MeatSummaryBlockParser(),
        BottleneckSummaryBlockParser(),
    ]


def parse_summary_sections(
    cursor: LineCursor,
    holder: LogDataHolder,
    context: ParserContext,
    parsers: Optional[List[SummaryBlockParser]] = None,
) -> None:
    """
    Read the summary sections after the turn rundown.

    Each cycle consumes one line and offers the following line to the
    section parsers; the first parser whose header it carries reads the
    section starting at that line.
    """
    if parsers is None:
        parsers = summary_block_parsers()
    while cursor.next_line() is not None:
        header = cursor.peek()
        if not header:
            continue
        for parser in parsers:
            if parser.is_compatible(header):
                logger.debug(f"Reading {parser.header} section at line {cursor.position + 1}")
                parser.parse(cursor, holder, context)
                break
