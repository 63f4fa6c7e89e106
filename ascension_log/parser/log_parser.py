"""
Ascension Log Parser.

Parses KoLmafia session logs (the detailed dialect) and pre-parsed
ascension logs (the summary dialect) into a LogDataHolder. The dialect is
detected from the log content.
"""

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from ..config import ParserConfig
from ..exceptions import InvalidLogFormatError, LogFileAccessError, LogParseError
from ..logdata.holder import LogDataHolder
from ..logdata.turn_actions import DayChange
from ..logdata.values import MPGain
from ..services.reference_data import ReferenceDataService
from .block_parsers import LogBlock, LogBlockType, SessionLogReader, block_parsers
from .cursor import LineCursor
from .line_parsers import ParserContext
from .summary_parsers import RUNDOWN_END_PREFIXES, parse_summary_sections, parse_turn_rundown

logger = logging.getLogger(__name__)

SUMMARY_SECTION_MARKERS = frozenset(
    ["LEVELS", "STATS", "FAMILIARS", "SEMI-RARES", "CASTS", "MP GAINS", "MEAT", "BOTTLENECKS"]
)
MP_REGEN_SLOTS = ("hat", "weapon", "offhand", "shirt", "pants", "acc1", "acc2", "acc3")


class LogDialect(Enum):
    DETAILED = "detailed"
    PREPARSED = "pre-parsed"


def detect_dialect(lines: Iterable[str]) -> LogDialect:
    """
    Decide whether lines belong to a pre-parsed or a detailed log.

    A log is pre-parsed when it has a turn rundown end marker, or at least
    two summary section headers on lines of their own.
    """
    markers = set()
    for line in lines:
        if line.startswith(RUNDOWN_END_PREFIXES):
            return LogDialect.PREPARSED
        stripped = line.strip()
        if stripped in SUMMARY_SECTION_MARKERS:
            markers.add(stripped)
            if len(markers) >= 2:
                return LogDialect.PREPARSED
    return LogDialect.DETAILED


_ASCEND_NAME_SEPARATORS = re.compile(r"_ascend|(?:_\d+_\d+)?\..+$")


def log_name_from_filename(file_name: str) -> str:
    """
    Derive the log name from a file name.

    "Name_ascend20240101.txt" becomes "Name-20240101"; other names only
    lose their ".txt" extension.
    """
    if "_ascend" in file_name:
        parts = [p for p in _ASCEND_NAME_SEPARATORS.split(file_name) if p]
        if len(parts) >= 2:
            return f"{parts[0]}-{parts[1]}"
    return file_name.replace(".txt", "")


class DetailedLogParser:
    """
    Parser for raw KoLmafia session logs.

    Reads the log block by block and stops after the block that ends the
    ascension (the final boss fight or its path-specific equivalent).
    """

    FINAL_BOSSES = ("Naughty Sorceress (3)", "The Rain King", "Avatar of Jarlsberg")
    SORCERESS_CHAMBER = "The Naughty Sorceress' Chamber"
    WINS_THE_FIGHT = "wins the fight!"
    DONATE_BODY = "Took choice 1089/30"
    MACGUFFIN_RETURNED = "Encounter: Returning the MacGuffin"
    MACGUFFIN_CHOICE = "choice.php?pwd&whichchoice=1054&option=1"
    KING_FREED = "Tower: Freeing King Ralph"

    ROUND_ZERO = re.compile(r"Round 0: (.*) +(?:wins|loses) initiative!")
    ENCOUNTER = re.compile(r"Encounter: (.*) *$")

    def __init__(
        self,
        lines: Iterable[str],
        log_name: Optional[str] = None,
        config: Optional[ParserConfig] = None,
        reference: Optional[ReferenceDataService] = None,
    ):
        """
        Initialize parser with the lines of a log.

        Args:
            lines: Log lines, with or without line endings
            log_name: Name stored on the resulting holder
            config: Parser settings
            reference: Reference data; the shared tables are used if None
        """
        self.config = config or ParserConfig()
        self.cursor = LineCursor(lines)
        self.holder = LogDataHolder(True)
        self.holder.log_name = log_name
        self.context = ParserContext(self.config, reference)
        self._block_parsers = block_parsers()

    def parse(self) -> LogDataHolder:
        """
        Parse the log.

        Returns:
            The filled LogDataHolder

        Raises:
            LogParseError: If a block could not be parsed
        """
        logger.info(f"Parsing detailed log {self.holder.log_name}")
        reader = SessionLogReader(self.cursor, self.config)
        for block in reader:
            self._parse_block(block)
            if self._is_ascension_end(block):
                logger.info(f"Ascension ended in block at line {block.start_line}")
                break

        self._finish()
        logger.info(
            f"Parsed {self.holder.log_name}: {self.holder.last_turn_spent.turn_number} turns"
        )
        return self.holder

    def _parse_block(self, block: LogBlock) -> None:
        try:
            self._block_parsers[block.block_type].parse_block(block, self.holder, self.context)
        except (ValueError, IndexError) as e:
            raise LogParseError(
                f"Failed to parse {block.block_type.value} block",
                line_number=block.start_line,
                details=str(e),
                last_turn=self.holder.last_turn_spent.turn_number,
            ) from e

    def _is_ascension_end(self, block: LogBlock) -> bool:
        lines = block.lines
        first = lines[0] if lines else ""
        second = lines[1] if len(lines) > 1 else ""

        if block.block_type == LogBlockType.ENCOUNTER:
            if second.endswith(self.FINAL_BOSSES):
                return self._is_fight_won(lines)
            if self.SORCERESS_CHAMBER in first:
                if self._is_final_dark_gyffte_battle(second, lines) or "Encounter: Wa" in second:
                    return self._is_fight_won(lines)
        elif block.block_type == LogBlockType.SERVICE:
            return first.startswith(self.DONATE_BODY)
        elif block.block_type == LogBlockType.OTHER:
            if len(lines) > 2 and self.MACGUFFIN_RETURNED in second:
                return self.MACGUFFIN_CHOICE in lines
            if self.KING_FREED in second:
                return True
        return False

    def _is_fight_won(self, lines: List[str]) -> bool:
        return any(line.endswith(self.WINS_THE_FIGHT) for line in lines)

    def _is_final_dark_gyffte_battle(self, encounter_line: str, lines: List[str]) -> bool:
        """The final boss of Dark Gyffte is named after the player, spelled backwards."""
        if len(lines) < 3:
            return False
        player = self.ROUND_ZERO.search(lines[2])
        boss = self.ENCOUNTER.search(encounter_line)
        if not player or not boss:
            return False
        return boss.group(1).strip().lower() == player.group(1).strip().lower()[::-1]

    def _finish(self) -> None:
        """Add equipment MP regeneration and rebuild the change records from the turns."""
        holder = self.holder
        reference = self.context.reference
        turns = holder.turns_spent

        for turn in turns:
            regen = sum(
                reference.mp_from_equipment(getattr(turn.used_equipment, slot))
                for slot in MP_REGEN_SLOTS
            )
            if regen:
                turn.add_mp_gain(MPGain(encounter=regen))

        current_day = 1
        for turn in turns:
            while current_day < turn.day_number:
                current_day += 1
                holder.add_day_change(DayChange(current_day, max(turn.turn_number - 1, 0)))

        holder.set_familiar_changes([turn.used_familiar for turn in turns])
        holder.set_equipment_changes([turn.used_equipment for turn in turns])
        holder.create_log_summary()


class PreparsedLogParser:
    """
    Parser for pre-parsed ascension logs.

    The turn rundown fills the holder with turn intervals; the summary
    sections after it overwrite the computed summary fields.
    """

    def __init__(
        self,
        lines: Iterable[str],
        log_name: Optional[str] = None,
        config: Optional[ParserConfig] = None,
        reference: Optional[ReferenceDataService] = None,
    ):
        self.config = config or ParserConfig()
        self.cursor = LineCursor(lines)
        self.holder = LogDataHolder(False)
        self.holder.log_name = log_name
        self.context = ParserContext(self.config, reference)

    def parse(self) -> LogDataHolder:
        """
        Parse the log.

        Returns:
            The filled LogDataHolder

        Raises:
            LogParseError: If the rundown or a summary section could not be parsed
        """
        logger.info(f"Parsing pre-parsed log {self.holder.log_name}")
        try:
            parse_turn_rundown(self.cursor, self.holder, self.context)
            summary = self.holder.create_log_summary()
            summary.semirares = list(self.context.semirares)
            summary.badmoon_adventures = list(self.context.badmoon_adventures)
            summary.disintegrated_combats = list(self.context.disintegrated_combats)
            parse_summary_sections(self.cursor, self.holder, self.context)
        except (ValueError, IndexError) as e:
            raise LogParseError(
                "Failed to parse pre-parsed log",
                line_number=self.cursor.line_number,
                details=str(e),
                last_turn=self.holder.last_turn_spent.turn_number,
            ) from e

        logger.info(
            f"Parsed {self.holder.log_name}: "
            f"{len(self.holder.turn_intervals_spent)} turn intervals"
        )
        return self.holder


def parse(
    lines: Iterable[str],
    log_name: Optional[str] = None,
    config: Optional[ParserConfig] = None,
    reference: Optional[ReferenceDataService] = None,
) -> LogDataHolder:
    """
    Parse log lines of either dialect.

    Args:
        lines: Log lines
        log_name: Name stored on the resulting holder
        config: Parser settings
        reference: Reference data; the shared tables are used if None

    Returns:
        The filled LogDataHolder

    Raises:
        InvalidLogFormatError: If there are no non-blank lines
    """
    lines = list(lines)
    if not any(line.strip() for line in lines):
        raise InvalidLogFormatError("Log is empty", details=log_name)
    if detect_dialect(lines) == LogDialect.PREPARSED:
        parser = PreparsedLogParser(lines, log_name, config, reference)
    else:
        parser = DetailedLogParser(lines, log_name, config, reference)
    return parser.parse()


def parse_log_file(
    path, config: Optional[ParserConfig] = None, reference: Optional[ReferenceDataService] = None
) -> LogDataHolder:
    """
    Convenience function to parse a log file.

    Args:
        path: Path to the log file
        config: Parser settings

    Returns:
        The filled LogDataHolder

    Raises:
        LogFileAccessError: If the file is missing or unreadable
        InvalidLogFormatError: If the file holds no log lines
        LogParseError: If the content could not be parsed
    """
    config = config or ParserConfig()
    path = Path(path)
    try:
        with open(path, "r", encoding=config.encoding, errors="replace") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise LogFileAccessError(f"Cannot read log file: {e.strerror or e}", str(path)) from e
    except LookupError as e:
        raise LogFileAccessError(f"Cannot read log file: {e}", str(path)) from e
    if not any(line.strip() for line in lines):
        raise InvalidLogFormatError("Log file is empty", details=str(path))
    return parse(lines, log_name_from_filename(path.name), config, reference)
