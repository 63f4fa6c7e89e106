"""
Log data holder.

The root aggregate of one parsed ascension log. Block parsers mutate it
during a single linear pass; afterwards consumers only read from it.
"""

import copy
import logging
from enum import Enum
from typing import Dict, List, Optional, TypeVar

from ..exceptions import LogDataHolderError
from .countables import CombatItem, Consumable, CountableSet, Item, Skill, sorted_by_name
from .turn import (
    AbstractTurn,
    AbstractTurnInterval,
    SingleTurn,
    SimpleTurnInterval,
    TurnVersion,
    derive_intervals,
)
from .turn_actions import (
    NO_EQUIPMENT,
    NO_FAMILIAR,
    DayChange,
    EquipmentChange,
    FamiliarChange,
    LevelData,
    NamedTurn,
    PlayerSnapshot,
    Pull,
)

logger = logging.getLogger(__name__)

ASCENSION_START = "Ascension Start"

V = TypeVar("V")


class StatClass(Enum):
    MUSCLE = "muscle"
    MYSTICALITY = "mysticality"
    MOXIE = "moxie"


class CharacterClass(Enum):
    SEAL_CLUBBER = ("Seal Clubber", StatClass.MUSCLE)
    TURTLE_TAMER = ("Turtle Tamer", StatClass.MUSCLE)
    PASTAMANCER = ("Pastamancer", StatClass.MYSTICALITY)
    SAUCEROR = ("Sauceror", StatClass.MYSTICALITY)
    DISCO_BANDIT = ("Disco Bandit", StatClass.MOXIE)
    ACCORDION_THIEF = ("Accordion Thief", StatClass.MOXIE)
    AVATAR_OF_BORIS = ("Avatar of Boris", StatClass.MUSCLE)
    AVATAR_OF_JARLSBERG = ("Avatar of Jarlsberg", StatClass.MYSTICALITY)
    AVATAR_OF_SNEAKY_PETE = ("Avatar of Sneaky Pete", StatClass.MOXIE)
    ED = ("Ed", StatClass.MYSTICALITY)
    NOT_DEFINED = ("not defined", StatClass.MUSCLE)

    def __init__(self, class_name: str, stat_class: StatClass):
        self.class_name = class_name
        self.stat_class = stat_class

    def __str__(self) -> str:
        return self.class_name

    @classmethod
    def from_string(cls, name: str) -> "CharacterClass":
        for member in cls:
            if member.class_name == name:
                return member
        return cls.NOT_DEFINED


class GameMode(Enum):
    CASUAL = "Casual"
    SOFTCORE = "Softcore"
    HARDCORE = "Hardcore"
    NOT_DEFINED = "not defined"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, name: str) -> "GameMode":
        for member in cls:
            if member.value == name:
                return member
        return cls.NOT_DEFINED


class AscensionPath(Enum):
    NO_PATH = "No-Path"
    TEETOTALER = "Teetotaler"
    BOOZETAFARIAN = "Boozetafarian"
    OXYGENARIAN = "Oxygenarian"
    BEES_HATE_YOU = "Bees Hate You"
    WAY_OF_THE_SURPRISING_FIST = "Way of the Surprising Fist"
    TRENDY = "Trendy"
    AVATAR_OF_BORIS = "Avatar of Boris"
    BUGBEAR_INVASION = "Bugbear Invasion"
    ZOMBIE_SLAYER = "Zombie Slayer"
    AVATAR_OF_JARLSBERG = "Avatar of Jarlsberg"
    BIG = "BIG!"
    KOLHS = "KOLHS"
    # Must precede CLASS_ACT, which is a substring of it.
    CLASS_ACT_II = "Class Act II: A Class For Pigs"
    CLASS_ACT = "Class Act"
    AVATAR_OF_SNEAKY_PETE = "Avatar of Sneaky Pete"
    SLOW_AND_STEADY = "Slow and Steady"
    HEAVY_RAINS = "Heavy Rains"
    PICKY = "Picky"
    STANDARD = "Standard"
    ED = "Actually Ed the Undying"
    COMMUNITY_SERVICE = "Community Service"
    NOT_DEFINED = "not defined"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, name: str) -> "AscensionPath":
        for member in cls:
            if member.value == name:
                return member
        return cls.NOT_DEFINED


class ParsedLogCreator(Enum):
    LOG_VISUALIZER = "log visualizer"
    AFH_PARSER = "afh parser"
    NOT_DEFINED = "not defined"


def _last_before(elements: Dict[int, V], turn: int) -> Optional[V]:
    """Value with the highest key not above the turn."""
    keys = [key for key in elements if key <= turn]
    return elements[max(keys)] if keys else None


def _first_after(elements: Dict[int, V], turn: int) -> Optional[V]:
    """Value with the lowest key above the turn."""
    keys = [key for key in elements if key > turn]
    return elements[min(keys)] if keys else None


class LogDataHolder:
    """
    All data of one parsed ascension log.

    A detailed holder stores single turns and derives turn intervals from
    them; a pre-parsed holder stores the turn intervals directly.
    """

    def __init__(self, is_detailed_log: bool):
        self._is_detailed_log = is_detailed_log
        self.log_name: Optional[str] = None
        self.is_edited = False
        self.is_subinterval_log = False
        self.character_class = CharacterClass.NOT_DEFINED
        self.game_mode = GameMode.NOT_DEFINED
        self.ascension_path = AscensionPath.NOT_DEFINED
        self.parsed_log_creator = ParsedLogCreator.NOT_DEFINED

        self._turns: List[SingleTurn] = []
        self._intervals: Optional[List[AbstractTurnInterval]] = None
        self._summary = None

        self._familiar_changes: Dict[int, FamiliarChange] = {}
        self._day_changes: Dict[int, DayChange] = {}
        self._levels: Dict[int, LevelData] = {}
        self._player_snapshots: Dict[int, PlayerSnapshot] = {}
        self._equipment_changes: Dict[int, EquipmentChange] = {}
        self._pulls: List[Pull] = []
        self._learned_skills: List[NamedTurn] = []
        self._hybrid_content: List[NamedTurn] = []
        self._hunted_combats: List[NamedTurn] = []
        self._lost_combats: List[NamedTurn] = []

        self.add_day_change(DayChange(1, 0))
        self.add_level(LevelData(1, 0))
        self._equipment_changes[0] = NO_EQUIPMENT
        self._familiar_changes[0] = NO_FAMILIAR

        if is_detailed_log:
            first = SingleTurn(
                ASCENSION_START,
                ASCENSION_START,
                0,
                1,
                NO_EQUIPMENT,
                NO_FAMILIAR,
                TurnVersion.NOT_DEFINED,
            )
            self._turns.append(first)
            self._last_turn: AbstractTurn = first
        else:
            first = SimpleTurnInterval(ASCENSION_START, 0, 0)
            self._intervals = [first]
            self._last_turn = first

    @property
    def is_detailed_log(self) -> bool:
        return self._is_detailed_log

    # Turns and intervals

    def add_turn_spent(self, turn: SingleTurn) -> None:
        """
        Append a single turn.

        A turn with the same number as the last turn is a further
        encounter of that turn and is merged into it.

        Raises:
            LogDataHolderError: If this holder is based on a pre-parsed log
        """
        if not self._is_detailed_log:
            raise LogDataHolderError(
                "This holder is not based on a detailed log, only add turn intervals."
            )
        last = self._last_turn
        if isinstance(last, SingleTurn) and last.turn_number == turn.turn_number:
            if (
                turn.free_runaways == 0
                and turn.is_ran_away_on_this_turn()
                and turn.is_runaways_equipment_equipped()
            ):
                turn.add_free_runaways(1)
            last.add_encounter(turn)
        else:
            self._turns.append(turn)
            self._last_turn = turn
        self._invalidate()

    def add_turn_interval_spent(self, interval: AbstractTurnInterval) -> None:
        """
        Append a turn interval.

        Raises:
            LogDataHolderError: If this holder is based on a detailed log
        """
        if self._is_detailed_log:
            raise LogDataHolderError(
                "This holder is based on a detailed log, only add single turns."
            )
        self._intervals.append(interval)
        self._last_turn = interval
        self._summary = None

    @property
    def last_turn_spent(self) -> AbstractTurn:
        return self._last_turn

    @property
    def turns_spent(self) -> List[SingleTurn]:
        if not self._is_detailed_log:
            raise LogDataHolderError("Only detailed holders contain single turns.")
        return list(self._turns)

    @property
    def turn_intervals_spent(self) -> List[AbstractTurnInterval]:
        if self._intervals is None:
            self._intervals = derive_intervals(self._turns)
        return list(self._intervals)

    def create_log_summary(self):
        """
        Derive turn intervals (detailed logs) and compute the log summary.

        Returns:
            The new LogSummaryData
        """
        from .summary import LogSummaryData

        if self._is_detailed_log:
            self._intervals = derive_intervals(self._turns)
        self._summary = LogSummaryData(self)
        return self._summary

    @property
    def log_summary(self):
        if self._summary is None:
            self.create_log_summary()
        return self._summary

    def _invalidate(self) -> None:
        self._intervals = None
        self._summary = None

    # Familiar changes

    def add_familiar_change(self, change: FamiliarChange) -> None:
        """Record a familiar change unless it repeats the current familiar."""
        self._familiar_changes.pop(change.turn_number, None)
        last = self.last_familiar_change
        if last is None or last.familiar_name != change.familiar_name:
            self._familiar_changes[change.turn_number] = change

    def set_familiar_changes(self, changes: List[FamiliarChange]) -> None:
        self._familiar_changes.clear()
        for change in sorted(changes, key=lambda c: c.turn_number):
            self.add_familiar_change(change)

    @property
    def familiar_changes(self) -> List[FamiliarChange]:
        return [self._familiar_changes[k] for k in sorted(self._familiar_changes)]

    @property
    def last_familiar_change(self) -> Optional[FamiliarChange]:
        if not self._familiar_changes:
            return None
        return self._familiar_changes[max(self._familiar_changes)]

    def last_familiar_change_before_turn(self, turn: int) -> Optional[FamiliarChange]:
        self._check_turn(turn)
        return _last_before(self._familiar_changes, turn)

    def first_familiar_change_after_turn(self, turn: int) -> Optional[FamiliarChange]:
        self._check_turn(turn)
        return _first_after(self._familiar_changes, turn)

    # Equipment changes

    def add_equipment_change(self, change: EquipmentChange) -> None:
        """Record an equipment change unless nothing actually changed."""
        self._equipment_changes.pop(change.turn_number, None)
        last = self.last_equipment_change
        if last is None or not last.same_equipment(change):
            self._equipment_changes[change.turn_number] = change

    def set_equipment_changes(self, changes: List[EquipmentChange]) -> None:
        self._equipment_changes.clear()
        for change in sorted(changes, key=lambda c: c.turn_number):
            self.add_equipment_change(change)

    @property
    def equipment_changes(self) -> List[EquipmentChange]:
        return [self._equipment_changes[k] for k in sorted(self._equipment_changes)]

    @property
    def last_equipment_change(self) -> Optional[EquipmentChange]:
        if not self._equipment_changes:
            return None
        return self._equipment_changes[max(self._equipment_changes)]

    def last_equipment_change_before_turn(self, turn: int) -> Optional[EquipmentChange]:
        self._check_turn(turn)
        return _last_before(self._equipment_changes, turn)

    def first_equipment_change_after_turn(self, turn: int) -> Optional[EquipmentChange]:
        self._check_turn(turn)
        return _first_after(self._equipment_changes, turn)

    # Days

    def add_day_change(self, day_change: DayChange) -> None:
        self._day_changes[day_change.day_number] = day_change

    @property
    def day_changes(self) -> List[DayChange]:
        return [self._day_changes[k] for k in sorted(self._day_changes)]

    @property
    def last_day_change(self) -> DayChange:
        return self._day_changes[max(self._day_changes)]

    def current_day(self, turn: int) -> DayChange:
        """Day change in effect on the given turn."""
        current = self.day_changes[0]
        for day_change in self.day_changes:
            if day_change.turn_number < turn:
                current = day_change
            else:
                break
        return current

    # Levels

    def add_level(self, level: LevelData) -> None:
        self._levels[level.level_number] = level

    @property
    def levels(self) -> List[LevelData]:
        return [self._levels[k] for k in sorted(self._levels)]

    @property
    def last_level(self) -> LevelData:
        return self._levels[max(self._levels)]

    def current_level(self, turn: int) -> LevelData:
        """Level the player was at on the given turn."""
        current = self.levels[0]
        for level in self.levels:
            if level.level_reached_on_turn <= turn:
                current = level
            else:
                break
        return current

    # Player snapshots

    def add_player_snapshot(self, snapshot: PlayerSnapshot) -> None:
        self._player_snapshots[snapshot.turn_number] = snapshot

    @property
    def player_snapshots(self) -> List[PlayerSnapshot]:
        return [self._player_snapshots[k] for k in sorted(self._player_snapshots)]

    @property
    def last_player_snapshot(self) -> Optional[PlayerSnapshot]:
        if not self._player_snapshots:
            return None
        return self._player_snapshots[max(self._player_snapshots)]

    def last_player_snapshot_before_turn(self, turn: int) -> Optional[PlayerSnapshot]:
        self._check_turn(turn)
        return _last_before(self._player_snapshots, turn)

    def first_player_snapshot_after_turn(self, turn: int) -> Optional[PlayerSnapshot]:
        self._check_turn(turn)
        return _first_after(self._player_snapshots, turn)

    # Misc records

    def add_pull(self, pull: Pull) -> None:
        self._pulls.append(pull)

    @property
    def pulls(self) -> List[Pull]:
        return list(self._pulls)

    def add_learned_skill(self, learned: NamedTurn) -> None:
        self._learned_skills.append(learned)

    @property
    def learned_skills(self) -> List[NamedTurn]:
        return list(self._learned_skills)

    def add_hybrid_content(self, hybrid: NamedTurn) -> None:
        self._hybrid_content.append(hybrid)

    @property
    def hybrid_content(self) -> List[NamedTurn]:
        return list(self._hybrid_content)

    def add_hunted_combat(self, hunted: NamedTurn) -> None:
        self._hunted_combats.append(hunted)

    @property
    def hunted_combats(self) -> List[NamedTurn]:
        return list(self._hunted_combats)

    def add_lost_combat(self, lost: NamedTurn) -> None:
        self._lost_combats.append(lost)

    @property
    def lost_combats(self) -> List[NamedTurn]:
        return list(self._lost_combats)

    # Aggregate views

    def _merged(self, attribute: str) -> list:
        merged = CountableSet()
        for interval in self.turn_intervals_spent:
            merged.add_all(getattr(interval, attribute))
        return sorted_by_name(merged.elements())

    @property
    def all_dropped_items(self) -> List[Item]:
        return self._merged("dropped_items")

    @property
    def all_skills_cast(self) -> List[Skill]:
        return self._merged("skills_cast")

    @property
    def all_consumables_used(self) -> List[Consumable]:
        return self._merged("consumables_used")

    @property
    def all_combat_items_used(self) -> List[CombatItem]:
        return self._merged("combat_items_used")

    # Sub range

    def sub_range(self, start_turn: int, end_turn: int) -> "LogDataHolder":
        """
        Build a new holder restricted to a turn range.

        Intervals and the summary are recomputed for the range instead of
        being sliced from this holder's cached aggregates.

        Args:
            start_turn: First turn of the range
            end_turn: Last turn of the range

        Returns:
            New LogDataHolder

        Raises:
            LogDataHolderError: If the range is empty or ends at turn 0
        """
        if end_turn <= start_turn:
            raise LogDataHolderError("The end turn must be greater than the start turn.")
        if end_turn <= 0:
            raise LogDataHolderError("The end turn must be greater than zero.")

        sub = LogDataHolder(self._is_detailed_log)
        sub.is_subinterval_log = True
        sub.log_name = self.log_name
        sub.parsed_log_creator = self.parsed_log_creator
        sub.character_class = self.character_class
        sub.game_mode = self.game_mode
        sub.ascension_path = self.ascension_path
        sub._familiar_changes.clear()
        sub._equipment_changes.clear()
        sub._day_changes.clear()
        sub._levels.clear()

        if self._is_detailed_log:
            sub._turns = [
                copy.deepcopy(t) for t in self._turns if start_turn <= t.turn_number <= end_turn
            ]
            if sub._turns:
                sub._last_turn = sub._turns[-1]
            sub._intervals = None
        else:
            sub._intervals = [
                copy.deepcopy(i)
                for i in self.turn_intervals_spent
                if i.end_turn > start_turn and i.start_turn < end_turn
            ]
            if sub._intervals:
                sub._last_turn = sub._intervals[-1]

        famchange = self.last_familiar_change_before_turn(start_turn)
        if famchange is not None:
            sub.add_familiar_change(famchange)
        for change in self.familiar_changes:
            if start_turn <= change.turn_number <= end_turn:
                sub.add_familiar_change(change)

        equipchange = self.last_equipment_change_before_turn(start_turn)
        if equipchange is not None:
            sub.add_equipment_change(equipchange)
        for change in self.equipment_changes:
            if start_turn < change.turn_number < end_turn:
                sub.add_equipment_change(change)

        sub.add_day_change(self.current_day(start_turn))
        for day_change in self.day_changes:
            if start_turn <= day_change.turn_number < end_turn:
                sub.add_day_change(day_change)

        sub.add_level(self.current_level(start_turn))
        for level in self.levels:
            if start_turn <= level.level_reached_on_turn <= end_turn:
                sub.add_level(level)

        snapshot = self.last_player_snapshot_before_turn(start_turn)
        if snapshot is not None:
            sub.add_player_snapshot(snapshot)
        for snapshot in self.player_snapshots:
            if start_turn <= snapshot.turn_number < end_turn:
                sub.add_player_snapshot(snapshot)

        included_days = {d.day_number for d in sub.day_changes}
        for pull in self._pulls:
            if start_turn <= pull.turn_number <= end_turn and pull.day_number in included_days:
                sub.add_pull(pull)
        for attribute in ("_learned_skills", "_hybrid_content", "_hunted_combats", "_lost_combats"):
            getattr(sub, attribute).extend(
                n for n in getattr(self, attribute) if start_turn <= n.turn_number <= end_turn
            )

        sub.create_log_summary()

        comments = {
            i.sort_key(): (i.pre_interval_comment, i.post_interval_comment)
            for i in self.turn_intervals_spent
        }
        for interval in sub.turn_intervals_spent:
            if interval.sort_key() in comments:
                interval.pre_interval_comment, interval.post_interval_comment = comments[
                    interval.sort_key()
                ]

        logger.debug(
            f"Created sub range [{start_turn}, {end_turn}] of {self.log_name} "
            f"with {len(sub.turn_intervals_spent)} intervals"
        )
        return sub

    @staticmethod
    def _check_turn(turn: int) -> None:
        if turn < 0:
            raise LogDataHolderError("Turn number cannot be negative.")
