"""
Detailed log block parsers.

A raw session log is a sequence of blocks separated by blank lines. The
SessionLogReader cuts the log into typed blocks and the block parsers
turn each block into turns, consumables, equipment changes and the other
records of the log data holder.
"""

import html
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from ..config import ParserConfig
from ..exceptions import MalformedLineError
from ..logdata.countables import Consumable, ConsumableVersion
from ..logdata.holder import AscensionPath, CharacterClass, GameMode, LogDataHolder
from ..logdata.turn import SingleTurn, TurnVersion
from ..logdata.turn_actions import (
    NO_EQUIPMENT,
    NO_EQUIPMENT_STRING,
    NO_FAMILIAR,
    DayChange,
    EquipmentChange,
    FamiliarChange,
    NamedTurn,
    PlayerSnapshot,
)
from ..logdata.values import MeatGain, Statgain
from . import patterns
from .cursor import LineCursor
from .line_parsers import (
    EquipmentLineParser,
    ItemAcquisitionLineParser,
    LineParser,
    MeatGainType,
    MeatLineParser,
    MeatSpentLineParser,
    MPGainLineParser,
    MPGainType,
    NotesLineParser,
    ParserContext,
    StatLineParser,
    encounter_line_parsers,
    other_line_parsers,
    run_line_parsers,
)
from .patterns import COMBAT_ROUND_PREFIX, SPECIAL_CONSUMABLES, substat_kind

logger = logging.getLogger(__name__)

ENCOUNTER_PREFIX = "Encounter: "

BROKEN_AREAS_ENCOUNTER_SET = frozenset(
    [
        "Encounter: Big Wisniewski",
        "Encounter: The Big Wisniewski",
        "Encounter: The Man",
        "Encounter: Lord Spookyraven",
        "Encounter: Ed the Undying",
        "Encounter: The Infiltrationist",
        "Encounter: giant sandworm",
        "Encounter: Wu Tang the Betrayer",
    ]
)


class LogBlockType(Enum):
    ENCOUNTER = "encounter"
    CONSUMABLE = "consumable"
    PLAYER_SNAPSHOT = "player snapshot"
    ASCENSION_DATA = "ascension data"
    HYBRID = "hybrid"
    SERVICE = "service"
    OTHER = "other"


@dataclass
class LogBlock:
    """
    Lines of one block of a raw session log.

    Attributes:
        block_type: Kind of block, decides which block parser handles it
        lines: Lines of the block, without the terminating blank line
        start_line: 1-based line number of the first line in the log
    """

    block_type: LogBlockType
    lines: List[str] = field(default_factory=list)
    start_line: int = 0


class SessionLogReader:
    """
    Cuts a raw session log into blocks.

    Usage:
        reader = SessionLogReader(LineCursor(lines))
        for block in reader:
            ...
    """

    SKIPPED_PREFIXES = ("mall.php", "manageprices.php", "familiarnames.php")
    SNAPSHOT_SEPARATOR = "=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-=-="
    PLAYER_SNAPSHOT = "Player Snapshot"
    ASCENSION_DATA_PREFIX = "Ascension #"
    SERVICE_PREFIX = "Took choice 1089"
    HYBRID_PREFIXES = ("Hybridizing yourself", "Making a Gene Tonic")
    CONSUMABLE_PREFIXES = ("use", "eat", "drink", "Buy", "chew")
    RAIN_MAN = "cast 1 Rain Man"
    POUND_GAIN_SUFFIX = "gains a pound!"
    BOSSFIGHT_PREFIX = "bigisland.php?"
    SERVICE_BLOCK_LENGTH = 4

    def __init__(self, cursor: LineCursor, config: Optional[ParserConfig] = None):
        self._cursor = cursor
        self._config = config or ParserConfig()

    @property
    def cursor(self) -> LineCursor:
        return self._cursor

    def __iter__(self) -> Iterator[LogBlock]:
        while True:
            block = self.next_block()
            if block is None:
                return
            yield block

    def _is_skipped(self, line: str) -> bool:
        return (
            len(line) == 0
            or len(line) >= self._config.max_line_length
            or line.startswith(self.SKIPPED_PREFIXES)
        )

    def next_block(self) -> Optional[LogBlock]:
        """
        Read the next block.

        Returns:
            The block, or None once the log is exhausted
        """
        while not self._cursor.at_end and self._is_skipped(self._cursor.peek()):
            self._cursor.next_line()
        if self._cursor.at_end:
            return None

        line = self._cursor.peek()
        line2 = self._cursor.peek(1) or ""
        block_type = self.classify(line, line2)
        start_line = self._cursor.position + 1

        if block_type == LogBlockType.ENCOUNTER:
            lines = self._read_encounter()
        elif block_type == LogBlockType.PLAYER_SNAPSHOT:
            lines = self._read_snapshot()
        elif block_type == LogBlockType.SERVICE:
            lines = self._read_lines(self.SERVICE_BLOCK_LENGTH)
        else:
            lines = self._read_normal()

        logger.debug(f"Read {block_type.value} block of {len(lines)} lines at line {start_line}")
        return LogBlock(block_type, lines, start_line)

    @classmethod
    def classify(cls, line: str, line2: str) -> LogBlockType:
        """Decide the block type from its first two lines."""
        if cls.is_encounter_start(line, line2):
            return LogBlockType.ENCOUNTER
        if line.startswith(cls.CONSUMABLE_PREFIXES) and patterns.matches("consumable_used", line):
            return LogBlockType.CONSUMABLE
        if line == cls.SNAPSHOT_SEPARATOR and cls.PLAYER_SNAPSHOT in line2:
            return LogBlockType.PLAYER_SNAPSHOT
        if line.startswith(cls.ASCENSION_DATA_PREFIX):
            return LogBlockType.ASCENSION_DATA
        if line.startswith(cls.HYBRID_PREFIXES):
            return LogBlockType.HYBRID
        if line.startswith(cls.SERVICE_PREFIX):
            return LogBlockType.SERVICE
        return LogBlockType.OTHER

    @classmethod
    def is_encounter_start(cls, line: str, line2: str) -> bool:
        if line.startswith("[") and patterns.matches("turns_used", line):
            return True
        if line2 in BROKEN_AREAS_ENCOUNTER_SET:
            return True
        return line == cls.RAIN_MAN

    def _read_lines(self, count: int) -> List[str]:
        lines = []
        for _ in range(count):
            line = self._cursor.next_line()
            if line is None:
                break
            lines.append(line)
        return lines

    def _read_normal(self) -> List[str]:
        """Read up to the next blank line, which is consumed."""
        lines = [self._cursor.next_line()]
        while True:
            line = self._cursor.next_line()
            if line is None or not line.strip():
                break
            if line.startswith(self.SERVICE_PREFIX):
                self._cursor.pushback()
                break
            lines.append(line)
        return lines

    def _read_snapshot(self) -> List[str]:
        # The header holds a separator line of its own.
        lines = self._read_lines(3)
        while True:
            line = self._cursor.next_line()
            if line is None:
                break
            lines.append(line)
            if line == self.SNAPSHOT_SEPARATOR:
                break
        return lines

    def _read_encounter(self) -> List[str]:
        """
        Read an encounter block.

        Fights sometimes contain stray blank lines. A blank line only ends
        the block if none of the next three lines continues the fight with
        a combat round.
        """
        lines: List[str] = []
        while True:
            line = self._cursor.next_line()
            if line is None:
                break
            if line.endswith(self.POUND_GAIN_SUFFIX) and self._cursor.peek() == "":
                self._read_lines(3)
                line = self._cursor.next_line()
                if line is None:
                    break
            if lines and line.startswith("[") and patterns.matches("turns_used", line):
                self._cursor.pushback()
                break
            if not line.strip():
                line = self._continued_fight()
                if line is None:
                    break
            lines.append(line)
        return lines

    def _continued_fight(self) -> Optional[str]:
        """Consume up to the combat round that continues a fight after a blank line."""
        for offset in range(3):
            ahead = self._cursor.peek(offset)
            if ahead is None or ahead.startswith(("[", self.BOSSFIGHT_PREFIX)):
                return None
            if ahead.startswith(COMBAT_ROUND_PREFIX):
                self._read_lines(offset + 1)
                return ahead
        return None


class BlockParser(ABC):
    """Base class for block parsers."""

    @abstractmethod
    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        pass


def _new_turn(
    area_name: str,
    encounter_name: str,
    turn_number: int,
    holder: LogDataHolder,
    version: TurnVersion,
    day_number: Optional[int] = None,
) -> SingleTurn:
    """Create a turn with the current day, equipment and familiar."""
    if day_number is None:
        day_number = holder.last_day_change.day_number
    return SingleTurn(
        area_name,
        encounter_name,
        turn_number,
        day_number,
        holder.last_equipment_change or NO_EQUIPMENT,
        holder.last_familiar_change or NO_FAMILIAR,
        version,
    )


class EncounterBlockParser(BlockParser):
    """
    Turns spent in an area.

    The block starts with "[N] Area" (or a bare "Encounter: X" header for
    areas whose turn line is broken) and holds everything that happened
    during the encounter.
    """

    OTHER_ENCOUNTER_AREAS = frozenset(
        [
            "Unlucky Sewer",
            "Sewer With Clovers",
            "Lemon Party",
            "Guild Challenge",
            "Mining (In Disguise)",
            "Itznotyerzitz Mine (in Disguise)",
        ]
    )
    GAME_GRID_AREAS = frozenset(
        [
            "DemonStar",
            "Meteoid",
            "The Fighters of Fighting",
            "Dungeon Fist!",
            "Space Trip",
            "Jackass Plumber",
        ]
    )
    CRAFTING_PREFIXES = ("Cook ", "Mix ", "Smith ")
    SHORE_SUFFIX = " Vacation"
    SHORE_MEAT_COST = 500
    HYBRIDIZING_AREA = "Hybridizing yourself"
    RAIN_MAN_FAX = "Rainy Fax Dreams on your Wedding Day"

    HYBRIDIZE = re.compile(r"You acquire an intrinsic: (.+) Hybrid$")
    COMBAT_START = re.compile(r"^Round [01]: ")
    HP_LOST = re.compile(r"You lose \d+ hit points?")
    FIGHT_WON = re.compile(r"Round \d+: .+ wins the fight!")

    def __init__(self):
        self._line_parsers = encounter_line_parsers()

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        lines = block.lines
        if not lines:
            return
        turn_line = self._turn_line(lines, 0)
        if turn_line is None:
            return

        hybrid = self.HYBRIDIZE.match(turn_line)
        if hybrid:
            holder.add_turn_spent(
                _new_turn(
                    self.HYBRIDIZING_AREA,
                    hybrid.group(1),
                    holder.last_turn_spent.turn_number + 1,
                    holder,
                    TurnVersion.OTHER,
                )
            )
            turn_line = self._turn_line(lines, 3)
            if turn_line is None:
                return

        is_combat = any(self.COMBAT_START.match(line) for line in lines)

        if turn_line.startswith(ENCOUNTER_PREFIX):
            name = turn_line[len(ENCOUNTER_PREFIX):]
            version = TurnVersion.COMBAT if is_combat else TurnVersion.OTHER
            turn = _new_turn(name, name, holder.last_turn_spent.turn_number + 1, holder, version)
            holder.add_turn_spent(turn)
        else:
            turn = self._area_turn(turn_line, lines, holder, is_combat, block)
            if turn is None:
                self._parse_lines(lines, holder, context)
                return
            if not self._special_area(turn, holder):
                holder.add_turn_spent(turn)

        self._parse_lines(lines, holder, context)
        self._check_lost_combat(lines, turn, holder)

    @staticmethod
    def _turn_line(lines: List[str], index: int) -> Optional[str]:
        """The turn line at index, or the one after it if index holds no "[N]" line."""
        if index < len(lines) and lines[index].startswith("["):
            return lines[index]
        if index + 1 < len(lines):
            return lines[index + 1]
        return None

    def _area_turn(
        self,
        turn_line: str,
        lines: List[str],
        holder: LogDataHolder,
        is_combat: bool,
        block: LogBlock,
    ) -> Optional[SingleTurn]:
        """
        Build the turn of a "[N] Area" block.

        Returns:
            The turn, or None if the block counts no turn
        """
        close = turn_line.find("]")
        if close < 0:
            raise MalformedLineError(
                "Turn line without closing bracket", block.start_line, turn_line
            )
        area_name = turn_line[close + 2:]
        is_crafting = area_name.startswith(self.CRAFTING_PREFIXES)
        turn_number = int(turn_line[turn_line.index("[") + 1:close])
        if is_crafting:
            turn_number -= 1

        encounter_name = ""
        is_multiple_combats = False
        for line in lines:
            if not line.startswith(ENCOUNTER_PREFIX):
                continue
            if line == ENCOUNTER_PREFIX:
                # Nothing was encountered, e.g. an already cleared area.
                return None
            encounter_name = line[len(ENCOUNTER_PREFIX):]
            is_multiple_combats = line in BROKEN_AREAS_ENCOUNTER_SET
            if self.RAIN_MAN_FAX not in encounter_name:
                break

        if is_multiple_combats:
            area_name = encounter_name
            extra_combats = sum(1 for line in lines if line.startswith(ENCOUNTER_PREFIX)) - 1
            for _ in range(extra_combats):
                holder.add_turn_spent(
                    _new_turn(area_name, encounter_name, turn_number, holder, TurnVersion.COMBAT)
                )
                turn_number += 1

        if area_name.endswith(self.SHORE_SUFFIX) or area_name in self.GAME_GRID_AREAS:
            version = TurnVersion.OTHER
        elif is_combat:
            version = TurnVersion.COMBAT
        elif is_crafting or area_name in self.OTHER_ENCOUNTER_AREAS:
            version = TurnVersion.OTHER
        else:
            version = TurnVersion.NONCOMBAT
        return _new_turn(area_name, encounter_name, turn_number, holder, version)

    def _special_area(self, turn: SingleTurn, holder: LogDataHolder) -> bool:
        """
        Add turns of areas that take more than one turn per visit.

        Returns:
            True if the turn was added here
        """
        if turn.area_name.endswith(self.SHORE_SUFFIX):
            if holder.ascension_path == AscensionPath.WAY_OF_THE_SURPRISING_FIST:
                extra_turns = 4
            else:
                extra_turns = 2
                turn.add_meat(MeatGain(spent=self.SHORE_MEAT_COST))
        elif turn.area_name in self.GAME_GRID_AREAS:
            extra_turns = 4
        else:
            return False

        holder.add_turn_spent(turn)
        for i in range(1, extra_turns + 1):
            holder.add_turn_spent(
                _new_turn(
                    turn.area_name,
                    turn.encounter_name,
                    turn.turn_number + i,
                    holder,
                    TurnVersion.OTHER,
                    turn.day_number,
                )
            )
        return True

    def _parse_lines(self, lines: List[str], holder: LogDataHolder, context: ParserContext) -> None:
        for line in lines:
            run_line_parsers(self._line_parsers, line, holder, context)

    def _check_lost_combat(self, lines: List[str], turn: SingleTurn, holder: LogDataHolder) -> None:
        """A fight is lost when it ends with an HP loss and no won-fight message."""
        if turn.turn_version != TurnVersion.COMBAT:
            return
        last_line = lines[-1]
        if ("outfit" in last_line or last_line.startswith("mcd")) and len(lines) > 1:
            last_line = lines[-2]
        if not self.HP_LOST.fullmatch(last_line):
            return

        last_encounter = 0
        if turn.encounter_name:
            for i in range(len(lines) - 1, -1, -1):
                if lines[i].startswith(ENCOUNTER_PREFIX):
                    last_encounter = i
                    break
        if any(self.FIGHT_WON.fullmatch(line) for line in lines[last_encounter:]):
            return
        holder.add_lost_combat(NamedTurn(turn.encounter_name, turn.turn_number))


class ConsumableBlockParser(BlockParser):
    """eat/drink/chew/use commands and what they gave."""

    BOUGHT_AND_USED = re.compile(r"([\w\s]+) (\d+) (.+) for \d+ Meat")
    USED = re.compile(r"([\w\s]+) (\d+) (.+)")
    USED_SINGLE = re.compile(r"(\w+) (.+)")

    COCKROACH_ENCOUNTER = "Encounter: Form of...Cockroach!"
    COCKROACH_AREA = "Form of...Cockroach!"
    COCKROACH_TURNS = 3

    def __init__(self):
        self._line_parsers: List[LineParser] = [
            MPGainLineParser(MPGainType.CONSUMABLE),
            MeatLineParser(MeatGainType.OTHER),
            MeatSpentLineParser(),
            EquipmentLineParser(),
            NotesLineParser(),
        ]
        self._cockroach_parsers: List[LineParser] = [
            StatLineParser(),
            MPGainLineParser(MPGainType.ENCOUNTER),
            EquipmentLineParser(),
            NotesLineParser(),
        ]

    def _header(self, line: str):
        """
        Split the command line.

        Returns:
            Tuple of (usage command, amount, item name)
        """
        for pattern in (self.BOUGHT_AND_USED, self.USED):
            m = pattern.fullmatch(line)
            if m:
                return m.group(1), int(m.group(2)), m.group(3)
        m = self.USED_SINGLE.match(line)
        if not m:
            return None
        return m.group(1), 1, m.group(2)

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        header = self._header(block.lines[0])
        if header is None:
            logger.warning(f"Skipping unreadable consumable line: {block.lines[0]}")
            return
        usage, amount, item_name = header
        item_name = html.unescape(item_name)
        if amount <= 0:
            return

        adventure_gain = 0
        statgain = Statgain()
        for i, line in enumerate(block.lines[1:], start=1):
            if line == self.COCKROACH_ENCOUNTER:
                self._cockroach_turns(block.lines[i:], holder, context)
                break
            if run_line_parsers(self._line_parsers, line, holder, context):
                continue
            gained = patterns.parse_gain_lose(line)
            if gained is None:
                continue
            gain, unit = gained
            if unit.startswith("Adventure"):
                adventure_gain += gain
            else:
                kind = substat_kind(unit)
                if kind is not None:
                    statgain = statgain.add(Statgain(**{kind: gain}))

        adventure_gain = max(adventure_gain, 0)
        if adventure_gain == 0 and statgain.is_all_zero() and item_name not in SPECIAL_CONSUMABLES:
            return

        if "eat" in usage:
            version = ConsumableVersion.FOOD
        elif "drink" in usage:
            version = ConsumableVersion.BOOZE
        elif "chew" in usage or context.reference.spleen_hit(item_name) > 0:
            version = ConsumableVersion.SPLEEN
        else:
            version = ConsumableVersion.OTHER

        turn = holder.last_turn_spent
        turn.add_consumable_used(
            Consumable(
                item_name,
                amount,
                adventure_gain,
                version,
                turn.turn_number,
                holder.last_day_change.day_number,
                statgain,
            )
        )

    def _cockroach_turns(
        self, lines: List[str], holder: LogDataHolder, context: ParserContext
    ) -> None:
        """The llama gong turns the player into a cockroach for three turns."""
        last_turn_number = holder.last_turn_spent.turn_number
        for i in range(1, self.COCKROACH_TURNS + 1):
            holder.add_turn_spent(
                _new_turn(
                    self.COCKROACH_AREA,
                    self.COCKROACH_AREA,
                    last_turn_number + i,
                    holder,
                    TurnVersion.OTHER,
                )
            )
        for line in lines:
            run_line_parsers(self._cockroach_parsers, line, holder, context)


class PlayerSnapshotBlockParser(BlockParser):
    """Periodic character sheet dumps: base stats, familiar, equipment."""

    STATS_WITH_BUFFED = re.compile(r"(?:Mus|Mys|Mox): \d+ \((\d+)\).*")
    STATS_WITHOUT_BUFFED = re.compile(r"(?:Mus|Mys|Mox): (\d+)(?:$|, tnp =.*)")
    FAMILIAR_DECORATION = re.compile(r"^Pet: | \(\d+ lbs\)\s*$")

    EQUIPMENT_PREFIXES = {
        "Hat: ": "hat",
        "Weapon: ": "weapon",
        "Off-hand: ": "offhand",
        "Shirt: ": "shirt",
        "Pants: ": "pants",
        "Acc. 1: ": "acc1",
        "Acc. 2: ": "acc2",
        "Acc. 3: ": "acc3",
    }
    FAMILIAR_EQUIPMENT_PREFIX = "Item: "
    DAY_CHANGE = "Day change occurred"

    @staticmethod
    def _equipment_name(line: str) -> str:
        name = line[line.index(":") + 2:].lower()
        if "(none)" in name:
            return NO_EQUIPMENT_STRING
        if name.endswith(")"):
            if name.startswith("("):
                return name[1:-1]
            return name[:name.rindex("(")].rstrip()
        return name

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        turn_number = holder.last_turn_spent.turn_number
        stats: List[int] = []
        adventures = 0
        meat = 0
        equipment: Dict[str, str] = {}
        fam_equip = NO_EQUIPMENT_STRING

        for line in block.lines:
            if not line:
                continue
            stat = self.STATS_WITH_BUFFED.fullmatch(line) or self.STATS_WITHOUT_BUFFED.fullmatch(line)
            if stat:
                if len(stats) < 3:
                    stats.append(int(stat.group(1)))
            elif line.startswith("Pet: "):
                # Ed's servants are not familiars.
                if holder.ascension_path != AscensionPath.ED:
                    name = self.FAMILIAR_DECORATION.sub("", line)
                    holder.add_familiar_change(FamiliarChange(name, turn_number))
            elif line.startswith("Advs: "):
                adventures = int(line[line.index(":") + 2:].replace(",", ""))
            elif line.startswith("Meat: ") and "%" not in line:
                meat = int(line[line.index(":") + 2:].replace(",", ""))
            elif line.startswith(tuple(self.EQUIPMENT_PREFIXES)):
                prefix = next(p for p in self.EQUIPMENT_PREFIXES if line.startswith(p))
                equipment[self.EQUIPMENT_PREFIXES[prefix]] = self._equipment_name(line)
            elif line.startswith(self.FAMILIAR_EQUIPMENT_PREFIX) and "%" not in line:
                fam_equip = self._equipment_name(line)
            elif line.startswith(self.DAY_CHANGE):
                holder.add_day_change(
                    DayChange(holder.last_day_change.day_number + 1, holder.last_turn_spent.turn_number)
                )
            elif line.startswith("Class: ") and holder.character_class == CharacterClass.NOT_DEFINED:
                holder.character_class = CharacterClass.from_string(line[len("Class: "):])

        familiar = holder.last_familiar_change or NO_FAMILIAR
        context.familiar_equipment[familiar.familiar_name] = fam_equip
        worn = EquipmentChange(turn_number, fam_equip=fam_equip, **equipment)
        if not worn.same_equipment(context.current_equipment):
            context.push_equipment(worn, holder)

        if len(stats) == 3:
            holder.add_player_snapshot(PlayerSnapshot(turn_number, *stats, adventures, meat))
        else:
            logger.debug(f"Player snapshot at line {block.start_line} has no complete stats")


class AscensionDataBlockParser(BlockParser):
    """
    "Ascension #N:" headers.

    Class, game mode and path are only set once; the first header of the
    log wins.
    """

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        if holder.character_class == CharacterClass.NOT_DEFINED:
            holder.character_class = self._find(
                block.lines, CharacterClass, lambda line, c: line.endswith(c.class_name)
            )
        if holder.game_mode == GameMode.NOT_DEFINED:
            holder.game_mode = self._find(
                block.lines, GameMode, lambda line, m: line.startswith(m.value)
            )
        if holder.ascension_path == AscensionPath.NOT_DEFINED:
            holder.ascension_path = self._find(
                block.lines, AscensionPath, lambda line, p: p.value in line
            )

    @staticmethod
    def _find(lines: List[str], enum_type, test):
        for line in lines:
            for member in enum_type:
                if member is not enum_type.NOT_DEFINED and test(line, member):
                    return member
        return enum_type.NOT_DEFINED


class HybridBlockParser(BlockParser):
    """DNA lab usage: hybridizing yourself or making a gene tonic."""

    HYBRIDIZING = "Hybridizing yourself"
    MAKING_TONIC = "Making a Gene Tonic"
    ACQUIRE_INTRINSIC = "You acquire an intrinsic: "
    ACQUIRE_ITEM = "You acquire an item: "
    GENE_TONIC = "Gene Tonic"

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        action = None
        result = None
        for line in block.lines:
            if line.startswith(self.ACQUIRE_INTRINSIC):
                result = line[len(self.ACQUIRE_INTRINSIC):]
            elif line.startswith(self.ACQUIRE_ITEM) and self.GENE_TONIC in line:
                result = line[len(self.ACQUIRE_ITEM):]
            elif line.startswith(self.HYBRIDIZING):
                action = "Hybridizing"
            elif line.startswith(self.MAKING_TONIC):
                action = "Making"

        if action is not None and result is not None:
            turn_number = holder.last_turn_spent.turn_number
            holder.add_hybrid_content(NamedTurn(f"{action} {result}", turn_number))


COMMUNITY_SERVICES = {
    "1": "Donate Blood",
    "2": "Feed the Children (But Not Too Much)",
    "3": "Build Playground Mazes",
    "4": "Feed Conspirators",
    "5": "Breed More Collies",
    "6": "Reduce Gazelle Population",
    "7": "Make Sausage",
    "8": "Be a Living Statue",
    "9": "Make Margaritas",
    "10": "Clean Steam Tunnels",
    "11": "Coil Wire",
    "30": "Donate Body",
}


class ServiceBlockParser(BlockParser):
    """Community Service quests, which take their turns outside of any area."""

    CHOICE = re.compile(r"Took choice 1089/(\d*):")
    ADVENTURES = re.compile(r"You lose (\d*) Adventure")
    UNKNOWN_SERVICE = "unknown"
    NO_TURN_SERVICES = frozenset(["Donate Body", UNKNOWN_SERVICE])

    def __init__(self):
        self._item_parser = ItemAcquisitionLineParser()

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        lines = block.lines
        choice = self.CHOICE.search(lines[0])
        if not choice:
            raise MalformedLineError("Unreadable service choice", block.start_line, lines[0])
        service = COMMUNITY_SERVICES.get(choice.group(1), self.UNKNOWN_SERVICE)

        adventures = 0
        if service not in self.NO_TURN_SERVICES:
            m = self.ADVENTURES.search(lines[2]) if len(lines) > 2 else None
            if not m or not m.group(1):
                raise MalformedLineError(
                    f"No adventure cost for service {service}", block.start_line + 2
                )
            adventures = int(m.group(1))

        previous = holder.last_turn_spent
        turn_number = previous.turn_number
        if self._spent_turn(previous):
            turn_number += 1
        for _ in range(adventures):
            holder.add_turn_spent(
                _new_turn(
                    f"Community Service: {service}",
                    service,
                    turn_number,
                    holder,
                    TurnVersion.OTHER,
                )
            )
            turn_number += 1

        if len(lines) > 3:
            self._item_parser.parse_line(lines[3], holder, context)

    @staticmethod
    def _spent_turn(turn) -> bool:
        """Crafting leaves the turn counter where it was."""
        if turn.turn_version == TurnVersion.COMBAT:
            return True
        return not turn.area_name.startswith(("Mix", "Cook"))


class OtherBlockParser(BlockParser):
    """Everything outside of encounters: shopping, familiar changes, buffs."""

    def __init__(self):
        self._line_parsers = other_line_parsers()

    def parse_block(self, block: LogBlock, holder: LogDataHolder, context: ParserContext) -> None:
        for line in block.lines:
            run_line_parsers(self._line_parsers, line, holder, context)


def block_parsers() -> Dict[LogBlockType, BlockParser]:
    """Block parser for every block type."""
    return {
        LogBlockType.ENCOUNTER: EncounterBlockParser(),
        LogBlockType.CONSUMABLE: ConsumableBlockParser(),
        LogBlockType.PLAYER_SNAPSHOT: PlayerSnapshotBlockParser(),
        LogBlockType.ASCENSION_DATA: AscensionDataBlockParser(),
        LogBlockType.HYBRID: HybridBlockParser(),
        LogBlockType.SERVICE: ServiceBlockParser(),
        LogBlockType.OTHER: OtherBlockParser(),
    }
