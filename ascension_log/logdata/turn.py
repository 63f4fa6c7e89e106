"""
Turn and turn interval model.

A SingleTurn is one recorded game action. Turn intervals group
contiguous turns spent in the same area and carry the summed gains of
their members. DetailedTurnInterval is backed by real turns, while
SimpleTurnInterval only knows its boundaries (pre-parsed logs).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from ..exceptions import TurnIntervalError, UsageError
from .countables import CombatItem, Consumable, CountableSet, Item, Skill
from .turn_actions import NO_EQUIPMENT, NO_FAMILIAR, EquipmentChange, FamiliarChange
from .values import (
    NO_MEAT,
    NO_MP,
    NO_STATS,
    FreeRunaways,
    MeatGain,
    MPGain,
    Statgain,
)

logger = logging.getLogger(__name__)

RUNAWAY_EQUIPMENT = ("navel ring of navel gazing", "greatest american pants")
RUN_SKILL_NAME = "return"


class TurnVersion(Enum):
    COMBAT = "combat"
    NONCOMBAT = "noncombat"
    OTHER = "other"
    NOT_DEFINED = "not defined"


class AbstractTurn:
    """State shared by single turns and turn intervals."""

    def __init__(self, area_name: str):
        if area_name is None:
            raise UsageError("Area name must not be None.")
        self._area_name = area_name
        self.meat: MeatGain = NO_MEAT
        self.mp_gain: MPGain = NO_MP
        self.stat_gain: Statgain = NO_STATS
        self.dropped_items: CountableSet[Item] = CountableSet()
        self.skills_cast: CountableSet[Skill] = CountableSet()
        self.combat_items_used: CountableSet[CombatItem] = CountableSet()
        self.consumables_used: CountableSet[Consumable] = CountableSet()
        self.free_runaways = 0
        self.is_free_turn = False
        self.notes = ""

    @property
    def area_name(self) -> str:
        return self._area_name

    def add_stat_gain(self, stats: Statgain) -> None:
        self.stat_gain = self.stat_gain.add(stats)

    def add_mp_gain(self, mp_gain: MPGain) -> None:
        self.mp_gain = self.mp_gain.add(mp_gain)

    def add_meat(self, meat: MeatGain) -> None:
        self.meat = self.meat.add(meat)

    def add_free_runaways(self, runaways: int) -> None:
        self.free_runaways += runaways

    @property
    def total_stat_gain(self) -> Statgain:
        """Stat gain including the stats of consumables used."""
        total = self.stat_gain
        for consumable in self.consumables_used:
            total = total.add(consumable.statgain)
        return total

    def add_dropped_item(self, item: Item) -> None:
        self.dropped_items.add(item)

    def add_skill_cast(self, skill: Skill) -> None:
        self.skills_cast.add(skill)

    def add_combat_item_used(self, combat_item: CombatItem) -> None:
        self.combat_items_used.add(combat_item)

    def add_consumable_used(self, consumable: Consumable) -> None:
        self.consumables_used.add(consumable)

    def is_item_dropped(self, name: str) -> bool:
        return self.dropped_items.contains_by_name(name)

    def is_skill_cast(self, name: str) -> bool:
        return self.skills_cast.contains_by_name(name)

    def is_consumable_used(self, name: str) -> bool:
        return self.consumables_used.contains_by_name(name)

    def add_notes(self, notes: str) -> None:
        if not notes:
            return
        self.notes = f"{self.notes}\n{notes}" if self.notes else notes

    def add_turn_data(self, turn: "AbstractTurn") -> None:
        """Accumulate the gains, countables and notes of another turn."""
        self.meat = self.meat.add(turn.meat)
        self.stat_gain = self.stat_gain.add(turn.stat_gain)
        self.mp_gain = self.mp_gain.add(turn.mp_gain)
        self.free_runaways += turn.free_runaways
        self.add_notes(turn.notes)
        for item in turn.dropped_items:
            self.add_dropped_item(item)
        for skill in turn.skills_cast:
            self.add_skill_cast(skill)
        for consumable in turn.consumables_used:
            self.add_consumable_used(consumable)
        for combat_item in turn.combat_items_used:
            self.add_combat_item_used(combat_item)

    def _state(self) -> tuple:
        return (
            self._area_name,
            self.meat,
            self.mp_gain,
            self.stat_gain,
            self.dropped_items,
            self.skills_cast,
            self.combat_items_used,
            self.consumables_used,
            self.free_runaways,
            self.notes,
        )


@dataclass(frozen=True)
class Encounter:
    """An additional encounter merged into a turn with the same number."""

    area_name: str
    encounter_name: str
    turn_number: int
    turn_version: TurnVersion


class SingleTurn(AbstractTurn):
    """One turn spent in an area."""

    def __init__(
        self,
        area_name: str,
        encounter_name: str,
        turn_number: int,
        day_number: int = 1,
        used_equipment: EquipmentChange = NO_EQUIPMENT,
        used_familiar: FamiliarChange = NO_FAMILIAR,
        turn_version: TurnVersion = TurnVersion.NOT_DEFINED,
    ):
        super().__init__(area_name)
        if encounter_name is None:
            raise UsageError("Encounter name must not be None.")
        if turn_number < 0:
            raise UsageError(f"Turn number below 0: {turn_number}")
        if day_number < 1:
            raise UsageError(f"Day number below 1: {day_number}")
        self._encounter_name = encounter_name
        self._turn_number = turn_number
        self._day_number = day_number
        self.used_equipment = used_equipment
        self.used_familiar = used_familiar
        self._turn_version = turn_version
        self._is_disintegrated = False
        self._is_banished = False
        self.banished_info: Optional[str] = None
        self.encounters: List[Encounter] = []

    @property
    def turn_number(self) -> int:
        return self._turn_number

    @property
    def day_number(self) -> int:
        return self._day_number

    @property
    def encounter_name(self) -> str:
        return self._encounter_name

    @property
    def turn_version(self) -> TurnVersion:
        return self._turn_version

    @turn_version.setter
    def turn_version(self, version: TurnVersion) -> None:
        if self._turn_version not in (TurnVersion.NOT_DEFINED, version):
            raise UsageError(
                f"Turn {self._turn_number} is already {self._turn_version.value}, "
                f"cannot change it to {version.value}"
            )
        self._turn_version = version

    def add_dropped_item(self, item: Item) -> None:
        if item.found_on_turn != self._turn_number:
            item = item.new_instance()
            item.found_on_turn = self._turn_number
        super().add_dropped_item(item)

    def add_skill_cast(self, skill: Skill) -> None:
        if skill.turn_number_of_cast != self._turn_number:
            skill = skill.new_instance()
            skill.turn_number_of_cast = self._turn_number
        super().add_skill_cast(skill)

    def add_consumable_used(self, consumable: Consumable) -> None:
        if consumable.turn_number_of_usage != self._turn_number:
            consumable = consumable.new_instance()
            consumable.turn_number_of_usage = self._turn_number
        super().add_consumable_used(consumable)

    def add_combat_item_used(self, combat_item: CombatItem) -> None:
        if combat_item.turn_used != self._turn_number:
            combat_item = combat_item.new_instance()
            combat_item.turn_used = self._turn_number
        super().add_combat_item_used(combat_item)

    def is_runaways_equipment_equipped(self) -> bool:
        return any(self.used_equipment.is_equipped(name) for name in RUNAWAY_EQUIPMENT)

    def is_ran_away_on_this_turn(self) -> bool:
        return self._turn_version == TurnVersion.COMBAT and self.is_skill_cast(RUN_SKILL_NAME)

    @property
    def is_disintegrated(self) -> bool:
        return self._turn_version == TurnVersion.COMBAT and self._is_disintegrated

    @is_disintegrated.setter
    def is_disintegrated(self, value: bool) -> None:
        self._is_disintegrated = self._turn_version == TurnVersion.COMBAT and value

    @property
    def is_banished(self) -> bool:
        return self._turn_version == TurnVersion.COMBAT and self._is_banished

    def set_banished(self, banished: bool, banish_name: str = None, turns: str = None) -> None:
        self._is_banished = self._turn_version == TurnVersion.COMBAT and banished
        if banished:
            self.banished_info = (
                f"{self._encounter_name} {{{banish_name or 'unknown'} ({turns or '???'} turns )}}"
            )

    def add_encounter(self, turn: "SingleTurn") -> None:
        """Merge a further encounter that happened on this same turn."""
        self.encounters.append(
            Encounter(turn.area_name, turn.encounter_name, self._turn_number, turn.turn_version)
        )
        self.add_turn_data(turn)

    def to_encounter(self) -> Encounter:
        return Encounter(self.area_name, self._encounter_name, self._turn_number, self._turn_version)

    def sort_key(self) -> tuple:
        return (self._day_number, self._turn_number)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SingleTurn):
            return NotImplemented
        return self._state() == other._state()

    def _state(self) -> tuple:
        return super()._state() + (
            self._encounter_name,
            self._turn_number,
            self._day_number,
            self._turn_version,
            self.used_equipment,
            self.used_familiar,
            self._is_disintegrated,
            self._is_banished,
            tuple(self.encounters),
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"SingleTurn({self})"

    def __str__(self) -> str:
        return f"[{self._turn_number}] {self.area_name} -- {self._encounter_name} {self.stat_gain}"


class AbstractTurnInterval(AbstractTurn, ABC):
    """Common behaviour of detailed and simple turn intervals."""

    def __init__(self, area_name: str):
        super().__init__(area_name)
        self.pre_interval_comment = ""
        self.post_interval_comment = ""
        self.unsuccessful_free_runaways = 0

    start_turn: int
    end_turn: int

    @property
    def turn_number(self) -> int:
        return self.end_turn

    @property
    def turn_version(self) -> TurnVersion:
        return TurnVersion.NOT_DEFINED

    @property
    def total_turns(self) -> int:
        return self.end_turn - self.start_turn

    @property
    def runaway_attempts(self) -> FreeRunaways:
        return FreeRunaways(
            self.free_runaways + self.unsuccessful_free_runaways, self.free_runaways
        )

    @property
    def turns(self) -> List[SingleTurn]:
        return []

    @abstractmethod
    def add_turn(self, turn: SingleTurn) -> None:
        pass

    def add_turns(self, turns: Iterable[SingleTurn]) -> None:
        for turn in turns:
            self.add_turn(turn)

    def sort_key(self) -> tuple:
        return (self.start_turn, self.end_turn)

    def _state(self) -> tuple:
        return super()._state() + (
            type(self).__name__,
            self.start_turn,
            self.end_turn,
            self.unsuccessful_free_runaways,
            self.pre_interval_comment,
            tuple(self.turns),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, AbstractTurnInterval):
            return NotImplemented
        return self._state() == other._state()

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"

    def __str__(self) -> str:
        if self.total_turns > 1:
            turns = f"{self.start_turn + 1}-{self.end_turn}"
        else:
            turns = str(self.end_turn)
        return f"[{turns}] {self.area_name} {self.stat_gain}"


class DetailedTurnInterval(AbstractTurnInterval):
    """Turn interval backed by the single turns it contains."""

    def __init__(self, turn: SingleTurn, is_free_turn_interval: bool = False):
        super().__init__(turn.area_name)
        start = turn.turn_number if is_free_turn_interval else turn.turn_number - 1
        self.start_turn = max(start, 0)
        self.end_turn = turn.turn_number
        self._turns: List[SingleTurn] = []
        self._record(turn)

    @property
    def turns(self) -> List[SingleTurn]:
        return list(self._turns)

    def add_turn(self, turn: SingleTurn) -> None:
        """
        Add a turn of the same area to this interval.

        Raises:
            TurnIntervalError: If the turn was spent in another area
        """
        if turn.area_name != self.area_name:
            raise TurnIntervalError(
                f"Turn {turn.turn_number} in '{turn.area_name}' does not belong "
                f"to the interval of '{self.area_name}'"
            )
        if self.start_turn >= turn.turn_number:
            self.start_turn = max(turn.turn_number - 1, 0)
        if self.end_turn < turn.turn_number:
            self.end_turn = turn.turn_number
        self._record(turn)

    def _record(self, turn: SingleTurn) -> None:
        self.add_turn_data(turn)
        # Ran away while wearing runaway equipment: counted as unsuccessful.
        if (
            turn.turn_version == TurnVersion.COMBAT
            and turn.is_ran_away_on_this_turn()
            and turn.is_runaways_equipment_equipped()
        ):
            self.unsuccessful_free_runaways += 1
        self._turns.append(turn)
        self._turns.sort(key=SingleTurn.sort_key)


class SimpleTurnInterval(AbstractTurnInterval):
    """Turn interval that only knows its boundaries."""

    def __init__(self, area_name: str, start_turn: int, end_turn: int):
        super().__init__(area_name)
        if start_turn < 0 or end_turn < 0:
            raise TurnIntervalError(f"Turn range below 0: [{start_turn}, {end_turn}]")
        self.start_turn = start_turn
        self.end_turn = max(end_turn, start_turn)

    def set_unsuccessful_free_runaways(self, runaways: int) -> None:
        self.unsuccessful_free_runaways = runaways

    def add_turn(self, turn: SingleTurn) -> None:
        raise TurnIntervalError("SimpleTurnInterval does not hold single turns.")

    def add_turns(self, turns: Iterable[SingleTurn]) -> None:
        raise TurnIntervalError("SimpleTurnInterval does not hold single turns.")


def derive_intervals(turns: Iterable[SingleTurn]) -> List[DetailedTurnInterval]:
    """
    Group consecutive turns that share an area into turn intervals.

    Args:
        turns: Turns in turn-number order

    Returns:
        New list of DetailedTurnInterval objects
    """
    intervals: List[DetailedTurnInterval] = []
    current: Optional[DetailedTurnInterval] = None
    for turn in turns:
        if current is not None and turn.area_name == current.area_name:
            current.add_turn(turn)
        else:
            current = DetailedTurnInterval(turn)
            intervals.append(current)
    logger.debug(f"Derived {len(intervals)} turn intervals")
    return intervals
