"""
Log summary data.

Aggregates computed from a LogDataHolder's turn intervals: consumption,
items, skills, stat/meat/MP totals, per-level breakdowns, and named-turn
lists such as semirares and disintegrated combats. The pre-parsed summary
block parsers overwrite the same fields from the log's own summaries.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from ..parser.patterns import TRACKED_COMBAT_ITEMS
from ..services.reference_data import get_reference_data
from .countables import (
    CombatItem,
    Consumable,
    ConsumableVersion,
    CountableSet,
    Item,
    Skill,
    sorted_by_name,
)
from .turn import TurnVersion
from .turn_actions import DayChange, LevelData, NamedTurn
from .values import NO_MEAT, NO_MP, NO_STATS, FreeRunaways, MeatGain, MPGain, Statgain

logger = logging.getLogger(__name__)

# Main stat needed for each level, compared against sqrt(substats).
LEVEL_STAT_BORDERS = {1: 0}
for _level in range(2, 36):
    LEVEL_STAT_BORDERS[_level] = (_level - 1) * (_level - 1) + 4

# Substats at the start of an ascension, per class.
STARTING_SUBSTATS = {
    "Seal Clubber": Statgain(9, 1, 4),
    "Turtle Tamer": Statgain(9, 4, 1),
    "Pastamancer": Statgain(4, 9, 1),
    "Sauceror": Statgain(1, 9, 4),
    "Disco Bandit": Statgain(4, 1, 9),
    "Accordion Thief": Statgain(1, 4, 9),
}

GUILD_CHALLENGE = "Guild Challenge"
ENCHANTED_BARBELL = "enchanted barbell"
CONCENTRATED_MAGICALNESS_PILL = "concentrated magicalness pill"
GIANT_MOXIE_WEED = "giant moxie weed"
THEMTHAR_HILLS = "Themthar Hills"
ROMANTIC_ARROW_SKILLS = ("fire a badly romantic arrow", "wink at")


@dataclass
class Goatlet:
    turns_spent: int = 0
    dairy_goats_found: int = 0
    cheese_found: int = 0
    milk_found: int = 0


@dataclass
class InexplicableDoor:
    """8-Bit Realm summary."""

    turns_spent: int = 0
    bullets_found: int = 0
    bloopers_found: int = 0


@dataclass
class AreaStatgains:
    area_name: str
    statgain: Statgain = NO_STATS


class MeatSummary:
    """Meat gained and spent per level."""

    def __init__(self):
        self._levels: Dict[int, MeatGain] = {}

    def add_level_data(self, level: int, meat: MeatGain) -> None:
        self._levels[level] = self._levels.get(level, NO_MEAT).add(meat)

    def level_data(self, level: int) -> MeatGain:
        return self._levels.get(level, NO_MEAT)

    @property
    def per_level(self) -> Dict[int, MeatGain]:
        return dict(sorted(self._levels.items()))

    @property
    def total(self) -> MeatGain:
        total = NO_MEAT
        for meat in self._levels.values():
            total = total.add(meat)
        return total


class MPGainSummary:
    """MP gained per level."""

    def __init__(self):
        self._levels: Dict[int, MPGain] = {}

    def add_level_data(self, level: int, mp_gain: MPGain) -> None:
        self._levels[level] = self._levels.get(level, NO_MP).add(mp_gain)

    def level_data(self, level: int) -> MPGain:
        return self._levels.get(level, NO_MP)

    @property
    def per_level(self) -> Dict[int, MPGain]:
        return dict(sorted(self._levels.items()))


@dataclass
class ConsumptionSummary:
    """Adventures gained from consumables, by organ and by day."""

    consumables: List[Consumable] = field(default_factory=list)
    day_changes: List[DayChange] = field(default_factory=list)

    def _turns_from(self, version: ConsumableVersion) -> int:
        return sum(
            c.adventure_gain for c in self.consumables if c.consumable_version == version
        )

    @property
    def total_turns_from_food(self) -> int:
        return self._turns_from(ConsumableVersion.FOOD)

    @property
    def total_turns_from_booze(self) -> int:
        return self._turns_from(ConsumableVersion.BOOZE)

    @property
    def total_turns_from_spleen(self) -> int:
        return self._turns_from(ConsumableVersion.SPLEEN)

    @property
    def total_turns_from_other(self) -> int:
        return self._turns_from(ConsumableVersion.OTHER) + self.total_turns_from_spleen

    def consumables_per_day(self) -> Dict[int, List[Consumable]]:
        per_day: Dict[int, List[Consumable]] = {d.day_number: [] for d in self.day_changes}
        for consumable in self.consumables:
            per_day.setdefault(consumable.day_number_of_usage, []).append(consumable)
        return per_day


class LogSummaryData:
    """
    Summary statistics of a parsed log.

    Computed once from the holder's intervals when created. Setters exist
    for the fields that pre-parsed logs carry in their own summaries.
    """

    def __init__(self, log_data):
        self.total_stat_gains = NO_STATS
        self.combat_stat_gains = NO_STATS
        self.noncombat_stat_gains = NO_STATS
        self.other_stat_gains = NO_STATS
        self.total_mp_gains = NO_MP
        self.total_turns_combat = 0
        self.total_turns_noncombat = 0
        self.total_turns_other = 0
        self.total_meat_gain = 0
        self.total_meat_spent = 0
        self.meat_summary = MeatSummary()
        self.mp_gain_summary = MPGainSummary()
        self.goatlet = Goatlet()
        self.nes_realm = InexplicableDoor()
        self.familiar_usage: List[NamedTurn] = []
        self.semirares: List[NamedTurn] = []
        self.badmoon_adventures: List[NamedTurn] = []
        self.disintegrated_combats: List[NamedTurn] = []
        self.banished_combats: List[NamedTurn] = []
        self.wandering_adventures: List[NamedTurn] = []
        self.romantic_arrow_usages: List[NamedTurn] = []
        self.tracked_combat_item_uses: List[NamedTurn] = []
        self.free_runaway_combats: List[NamedTurn] = []
        self.levels: List[LevelData] = []

        self._consumables = CountableSet()
        self._dropped_items = CountableSet()
        self._skills = CountableSet()
        self._combat_items = CountableSet()
        self._calculate(log_data)

    def _calculate(self, log_data) -> None:
        reference = get_reference_data()
        consumables: List[Consumable] = []
        turns_per_area: Counter = Counter()
        area_stats: Dict[str, Statgain] = {}
        familiar_usage: Counter = Counter()
        attempted_runaways = 0
        successful_runaways = 0

        for interval in log_data.turn_intervals_spent:
            for consumable in interval.consumables_used:
                self.total_stat_gains = self.total_stat_gains.add(consumable.statgain)
                self._consumables.add(consumable)
                consumables.append(consumable)
            self._dropped_items.add_all(interval.dropped_items)
            self._skills.add_all(interval.skills_cast)
            self._combat_items.add_all(interval.combat_items_used)
            self.total_mp_gains = self.total_mp_gains.add(interval.mp_gain)
            if interval.total_turns > 0:
                turns_per_area[interval.area_name] += interval.total_turns
            area_stats[interval.area_name] = area_stats.get(interval.area_name, NO_STATS).add(
                interval.stat_gain
            )

            if not log_data.is_detailed_log:
                self.total_stat_gains = self.total_stat_gains.add(interval.stat_gain)

            for turn in interval.turns:
                self._count_turn(turn, familiar_usage, reference)

            runaways = interval.runaway_attempts
            attempted_runaways += runaways.attempted
            successful_runaways += runaways.successful

            if interval.area_name == "Goatlet":
                self.goatlet.turns_spent += interval.total_turns
                self.goatlet.dairy_goats_found += sum(
                    1 for t in interval.turns if t.encounter_name == "dairy goat"
                )
                for item in interval.dropped_items:
                    if item.name == "goat cheese":
                        self.goatlet.cheese_found += item.amount
                    elif item.name == "glass of goat's milk":
                        self.goatlet.milk_found += item.amount
            if interval.area_name == "8-Bit Realm":
                self.nes_realm.turns_spent += interval.total_turns
                for turn in interval.turns:
                    if turn.encounter_name == "Bullet Bill":
                        self.nes_realm.bullets_found += 1
                    elif turn.encounter_name == "Blooper":
                        self.nes_realm.bloopers_found += 1

            if interval.area_name != THEMTHAR_HILLS:
                self.total_meat_gain += interval.meat.encounter
            self.total_meat_gain += interval.meat.other
            self.total_meat_spent += interval.meat.spent

        self.free_runaways = FreeRunaways(attempted_runaways, successful_runaways)
        self.turns_per_area: List[NamedTurn] = [
            NamedTurn(name, count)
            for name, count in sorted(turns_per_area.items(), key=lambda p: (-p[1], p[0]))
        ]
        self.areas_statgains = [AreaStatgains(name, stats) for name, stats in area_stats.items()]
        self.familiar_usage = [
            NamedTurn(name, count)
            for name, count in sorted(familiar_usage.items(), key=lambda p: (-p[1], p[0]))
        ]
        self.consumption_summary = ConsumptionSummary(consumables, log_data.day_changes)

        last_turn = log_data.last_turn_spent.turn_number
        rollover = (
            last_turn
            - self.consumption_summary.total_turns_from_food
            - self.consumption_summary.total_turns_from_booze
            - self.consumption_summary.total_turns_from_other
        )
        self.total_turns_from_rollover = max(rollover, 0)

        if log_data.is_detailed_log and not log_data.is_subinterval_log:
            self._create_level_data(log_data)
        else:
            self.levels = log_data.levels

        if log_data.is_detailed_log:
            for interval in log_data.turn_intervals_spent:
                for turn in interval.turns:
                    level = log_data.current_level(turn.turn_number).level_number
                    if turn.meat != NO_MEAT:
                        self.meat_summary.add_level_data(level, turn.meat)
                    if turn.mp_gain != NO_MP:
                        self.mp_gain_summary.add_level_data(level, turn.mp_gain)

    def _count_turn(self, turn, familiar_usage: Counter, reference) -> None:
        self.total_stat_gains = self.total_stat_gains.add(turn.stat_gain)
        if turn.turn_version == TurnVersion.COMBAT:
            self.total_turns_combat += 1
            self.combat_stat_gains = self.combat_stat_gains.add(turn.stat_gain)
            familiar_usage[turn.used_familiar.familiar_name] += 1
        elif turn.turn_version == TurnVersion.NONCOMBAT:
            self.total_turns_noncombat += 1
            self.noncombat_stat_gains = self.noncombat_stat_gains.add(turn.stat_gain)
        elif turn.turn_version == TurnVersion.OTHER:
            self.total_turns_other += 1
            self.other_stat_gains = self.other_stat_gains.add(turn.stat_gain)

        named = NamedTurn(turn.encounter_name, turn.turn_number)
        if turn.is_disintegrated:
            self.disintegrated_combats.append(named)
        if turn.is_banished:
            self.banished_combats.append(NamedTurn(turn.banished_info, turn.turn_number))
        if reference.is_semirare_encounter(turn.encounter_name):
            self.semirares.append(named)
        if reference.is_badmoon_encounter(turn.encounter_name):
            self.badmoon_adventures.append(named)
        for combat_item in turn.combat_items_used:
            if combat_item.name in TRACKED_COMBAT_ITEMS:
                self.tracked_combat_item_uses.append(
                    NamedTurn(combat_item.name, turn.turn_number)
                )

        encounters = [turn.to_encounter()] + turn.encounters
        for encounter in encounters:
            if reference.is_wandering_encounter(encounter.encounter_name):
                self.wandering_adventures.append(
                    NamedTurn(encounter.encounter_name, encounter.turn_number)
                )
        if turn.turn_version == TurnVersion.COMBAT:
            if any(turn.is_skill_cast(s) for s in ROMANTIC_ARROW_SKILLS):
                self.romantic_arrow_usages.append(named)
            if turn.free_runaways > 0:
                self.free_runaway_combats.append(named)

    def _create_level_data(self, log_data) -> None:
        """Reconstruct level-ups from the accumulated substats per turn."""
        if log_data.character_class.class_name not in STARTING_SUBSTATS:
            self._guess_character_class(log_data)
        stat_class = log_data.character_class.stat_class.value
        stats = STARTING_SUBSTATS.get(log_data.character_class.class_name, NO_STATS)

        snapshots = iter(log_data.player_snapshots)
        snapshot = next(snapshots, None)
        counts = {TurnVersion.COMBAT: 0, TurnVersion.NONCOMBAT: 0, TurnVersion.OTHER: 0}

        first = LevelData(1, 0, stats_at_level_reached=stats)
        levels = [first]
        border = LEVEL_STAT_BORDERS[2]

        for interval in log_data.turn_intervals_spent:
            for turn in interval.turns:
                stats = stats.add(turn.total_stat_gain)
                if snapshot is not None and snapshot.turn_number <= turn.turn_number:
                    # Snapshots hold base stats, authoritative when higher.
                    stats = Statgain(
                        max(stats.mus, snapshot.mus_stats ** 2),
                        max(stats.myst, snapshot.myst_stats ** 2),
                        max(stats.mox, snapshot.mox_stats ** 2),
                    )
                    snapshot = next(snapshots, None)
                if turn.turn_version in counts:
                    counts[turn.turn_version] += 1

                main_stat = math.sqrt(max(self._main_substats(stats, stat_class), 0))
                while border is not None and border <= main_stat:
                    current = levels[-1]
                    current.combat_turns = counts[TurnVersion.COMBAT]
                    current.noncombat_turns = counts[TurnVersion.NONCOMBAT]
                    current.other_turns = counts[TurnVersion.OTHER]
                    new_level = LevelData(
                        current.level_number + 1,
                        turn.turn_number,
                        stats_at_level_reached=stats,
                    )
                    current.stat_gain_per_turn = self._stat_gain_per_turn(
                        current, new_level.level_number, turn.turn_number
                    )
                    levels.append(new_level)
                    counts = dict.fromkeys(counts, 0)
                    border = LEVEL_STAT_BORDERS.get(new_level.level_number + 1)

        levels[-1].combat_turns = counts[TurnVersion.COMBAT]
        levels[-1].noncombat_turns = counts[TurnVersion.NONCOMBAT]
        levels[-1].other_turns = counts[TurnVersion.OTHER]
        self.levels = levels
        for level in levels:
            log_data.add_level(level)

    @staticmethod
    def _stat_gain_per_turn(current: LevelData, new_level_number: int, turn_number: int) -> float:
        substat_gap = (
            LEVEL_STAT_BORDERS[new_level_number] ** 2
            - LEVEL_STAT_BORDERS[current.level_number] ** 2
        )
        turns_taken = turn_number - current.level_reached_on_turn
        if turns_taken > 0:
            return substat_gap / turns_taken
        return float(substat_gap)

    @staticmethod
    def _main_substats(stats: Statgain, stat_class: str) -> int:
        if stat_class == "muscle":
            return stats.mus
        if stat_class == "mysticality":
            return stats.myst
        return stats.mox

    def _guess_character_class(self, log_data) -> None:
        from .holder import CharacterClass

        if log_data.character_class != CharacterClass.NOT_DEFINED:
            return
        guild_items = set()
        for interval in log_data.turn_intervals_spent:
            if interval.area_name == GUILD_CHALLENGE:
                for item in interval.dropped_items:
                    if item.name in (
                        ENCHANTED_BARBELL,
                        CONCENTRATED_MAGICALNESS_PILL,
                        GIANT_MOXIE_WEED,
                    ):
                        guild_items.add(item.name)
        total = self.total_stat_gains
        if total.mus > total.myst and total.mus > total.mox:
            name = "Seal Clubber" if GIANT_MOXIE_WEED in guild_items else "Turtle Tamer"
        elif total.myst > total.mus and total.myst > total.mox:
            name = "Sauceror" if GIANT_MOXIE_WEED in guild_items else "Pastamancer"
        elif CONCENTRATED_MAGICALNESS_PILL in guild_items:
            name = "Accordion Thief"
        else:
            name = "Disco Bandit"
        log_data.character_class = CharacterClass.from_string(name)
        logger.debug(f"Guessed character class {name} for {log_data.log_name}")

    # Read accessors

    @property
    def all_consumables_used(self) -> List[Consumable]:
        return sorted_by_name(self._consumables.elements())

    def _consumables_of(self, version: ConsumableVersion) -> List[Consumable]:
        return [c for c in self.all_consumables_used if c.consumable_version == version]

    @property
    def food_consumables_used(self) -> List[Consumable]:
        return self._consumables_of(ConsumableVersion.FOOD)

    @property
    def booze_consumables_used(self) -> List[Consumable]:
        return self._consumables_of(ConsumableVersion.BOOZE)

    @property
    def spleen_consumables_used(self) -> List[Consumable]:
        return self._consumables_of(ConsumableVersion.SPLEEN)

    @property
    def other_consumables_used(self) -> List[Consumable]:
        return self._consumables_of(ConsumableVersion.OTHER)

    @property
    def dropped_items(self) -> List[Item]:
        return sorted_by_name(self._dropped_items.elements())

    @property
    def skills_cast(self) -> List[Skill]:
        return sorted_by_name(self._skills.elements())

    def set_skills_cast(self, skills: List[Skill]) -> None:
        self._skills.set_elements(skills)

    @property
    def combat_items_used(self) -> List[CombatItem]:
        return sorted_by_name(self._combat_items.elements())

    @property
    def total_amount_skill_casts(self) -> int:
        return sum(s.amount for s in self._skills)

    @property
    def total_mp_used(self) -> int:
        return sum(s.mp_cost for s in self._skills)

    @property
    def total_turns(self) -> int:
        return self.total_turns_combat + self.total_turns_noncombat + self.total_turns_other
