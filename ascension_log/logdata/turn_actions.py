"""
Turn actions.

Small records that happen on a given turn: day changes, familiar and
equipment changes, player snapshots, pulls and level-ups.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional

from .values import NO_STATS, Statgain

NO_EQUIPMENT_STRING = "none"
EQUIPMENT_SLOTS = (
    "hat",
    "weapon",
    "offhand",
    "shirt",
    "pants",
    "acc1",
    "acc2",
    "acc3",
    "fam_equip",
)


@dataclass(frozen=True)
class DayChange:
    """Start of a new in-game day."""

    day_number: int
    turn_number: int

    def __str__(self) -> str:
        return f"Day {self.day_number} (turn {self.turn_number})"


@dataclass(frozen=True)
class FamiliarChange:
    """Familiar taken out on a turn."""

    familiar_name: str
    turn_number: int

    def __str__(self) -> str:
        return f"Turn {self.turn_number}: {self.familiar_name}"


NO_FAMILIAR = FamiliarChange(NO_EQUIPMENT_STRING, 0)


@dataclass(frozen=True)
class EquipmentChange:
    """Snapshot of every equipment slot, taken when it changes."""

    turn_number: int = 0
    hat: str = NO_EQUIPMENT_STRING
    weapon: str = NO_EQUIPMENT_STRING
    offhand: str = NO_EQUIPMENT_STRING
    shirt: str = NO_EQUIPMENT_STRING
    pants: str = NO_EQUIPMENT_STRING
    acc1: str = NO_EQUIPMENT_STRING
    acc2: str = NO_EQUIPMENT_STRING
    acc3: str = NO_EQUIPMENT_STRING
    fam_equip: str = NO_EQUIPMENT_STRING

    def is_equipped(self, item_name: str) -> bool:
        return item_name in self.slots().values()

    def slots(self) -> Dict[str, str]:
        return {slot: getattr(self, slot) for slot in EQUIPMENT_SLOTS}

    def with_slot(self, slot: str, item_name: str) -> "EquipmentChange":
        return replace(self, **{slot: item_name})

    def at_turn(self, turn_number: int) -> "EquipmentChange":
        return replace(self, turn_number=turn_number)

    def same_equipment(self, other: "EquipmentChange") -> bool:
        """Compare slots only, ignoring the turn number."""
        return self.slots() == other.slots()


NO_EQUIPMENT = EquipmentChange()


@dataclass(frozen=True)
class PlayerSnapshot:
    """Periodic capture of base stats, adventures left and meat."""

    turn_number: int
    mus_stats: int = 0
    myst_stats: int = 0
    mox_stats: int = 0
    adventures: int = 0
    meat: int = 0

    @property
    def stats(self) -> Statgain:
        return Statgain(self.mus_stats, self.myst_stats, self.mox_stats)


@dataclass(frozen=True)
class Pull:
    """Item pulled from storage."""

    item_name: str
    amount: int
    turn_number: int
    day_number: int

    def __str__(self) -> str:
        return f"Turn {self.turn_number}: pulled {self.amount} {self.item_name}"


@dataclass(frozen=True)
class NamedTurn:
    """A name paired with the turn it happened on."""

    name: str
    turn_number: int

    def __str__(self) -> str:
        return f"{self.name}: {self.turn_number}"


@dataclass
class LevelData:
    """A player level, the turn it was reached and the turns spent in it."""

    level_number: int
    level_reached_on_turn: int
    combat_turns: int = 0
    noncombat_turns: int = 0
    other_turns: int = 0
    stats_at_level_reached: Statgain = NO_STATS
    stat_gain_per_turn: Optional[float] = None

    @property
    def total_turns(self) -> int:
        return self.combat_turns + self.noncombat_turns + self.other_turns

    def __str__(self) -> str:
        text = f"Hit Level {self.level_number} on turn {self.level_reached_on_turn}"
        if self.stat_gain_per_turn is not None:
            text += f" ({self.stat_gain_per_turn:.1f} substats / turn)"
        return text
