"""
Tests for the log data holder and its summary.

Covers adding turns, change records, sub ranges and summary totals.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ascension_log.exceptions import LogDataHolderError  # noqa: E402
from ascension_log.logdata.countables import Item, Skill  # noqa: E402
from ascension_log.logdata.holder import (  # noqa: E402
    ASCENSION_START,
    CharacterClass,
    LogDataHolder,
)
from ascension_log.logdata.turn import SimpleTurnInterval, SingleTurn, TurnVersion  # noqa: E402
from ascension_log.logdata.turn_actions import (  # noqa: E402
    DayChange,
    EquipmentChange,
    FamiliarChange,
    LevelData,
)
from ascension_log.logdata.values import MeatGain, MPGain, Statgain  # noqa: E402


def build_holder():
    """Detailed holder with ten turns in two areas."""
    holder = LogDataHolder(True)
    holder.log_name = "Tester-20240101"
    holder.character_class = CharacterClass.SAUCEROR
    for number in range(1, 11):
        area = "Spooky Forest" if number <= 5 else "Haunted Pantry"
        version = TurnVersion.COMBAT if number % 2 else TurnVersion.NONCOMBAT
        turn = SingleTurn(area, f"monster {number}", number, turn_version=version)
        turn.add_stat_gain(Statgain(1, 2, 3))
        turn.add_meat(MeatGain(encounter=10))
        turn.add_mp_gain(MPGain(encounter=2))
        holder.add_turn_spent(turn)
    holder.add_day_change(DayChange(2, 6))
    return holder


class TestHolderBasics:
    """Tests for holder construction and turn bookkeeping."""

    def test_detailed_holder_starts_with_turn_zero(self):
        """Test that a detailed holder starts with the ascension start turn."""
        holder = LogDataHolder(True)
        assert holder.last_turn_spent.turn_number == 0
        assert holder.last_turn_spent.area_name == ASCENSION_START
        assert holder.day_changes == [DayChange(1, 0)]
        assert holder.levels[0].level_number == 1

    def test_pre_parsed_holder_rejects_single_turns(self):
        """Test that single turns cannot be added to a pre-parsed holder."""
        holder = LogDataHolder(False)
        with pytest.raises(LogDataHolderError):
            holder.add_turn_spent(SingleTurn("Area", "Encounter", 1))

    def test_detailed_holder_rejects_intervals(self):
        """Test that intervals cannot be added to a detailed holder."""
        holder = LogDataHolder(True)
        with pytest.raises(LogDataHolderError):
            holder.add_turn_interval_spent(SimpleTurnInterval("Area", 0, 3))

    def test_same_turn_number_merges(self):
        """Test that a turn with the last turn's number is merged into it."""
        holder = LogDataHolder(True)
        holder.add_turn_spent(SingleTurn("Area", "first", 1, turn_version=TurnVersion.COMBAT))
        second = SingleTurn("Area", "second", 1, turn_version=TurnVersion.COMBAT)
        second.add_dropped_item(Item("bone", 1))
        holder.add_turn_spent(second)

        turns = holder.turns_spent
        assert len(turns) == 2
        assert turns[-1].encounter_name == "first"
        assert turns[-1].is_item_dropped("bone")
        assert turns[-1].encounters[0].encounter_name == "second"

    def test_intervals_are_derived(self):
        """Test interval derivation from the holder's turns."""
        intervals = build_holder().turn_intervals_spent
        assert [(i.area_name, i.start_turn, i.end_turn) for i in intervals] == [
            (ASCENSION_START, 0, 0),
            ("Spooky Forest", 0, 5),
            ("Haunted Pantry", 5, 10),
        ]

    def test_familiar_change_ignores_repeats(self):
        """Test that taking out the same familiar again is not recorded."""
        holder = LogDataHolder(True)
        holder.add_familiar_change(FamiliarChange("Mosquito", 3))
        holder.add_familiar_change(FamiliarChange("Mosquito", 5))
        holder.add_familiar_change(FamiliarChange("Hovering Sombrero", 8))
        names = [(c.familiar_name, c.turn_number) for c in holder.familiar_changes]
        assert names == [("none", 0), ("Mosquito", 3), ("Hovering Sombrero", 8)]

    def test_equipment_change_ignores_same_equipment(self):
        """Test that unchanged equipment is not recorded."""
        holder = LogDataHolder(True)
        holder.add_equipment_change(EquipmentChange(2, hat="helmet turtle"))
        holder.add_equipment_change(EquipmentChange(4, hat="helmet turtle"))
        assert [c.turn_number for c in holder.equipment_changes] == [0, 2]
        assert holder.last_equipment_change_before_turn(3).hat == "helmet turtle"

    def test_negative_turn_lookup(self):
        """Test that negative turn lookups are rejected."""
        with pytest.raises(LogDataHolderError):
            LogDataHolder(True).last_familiar_change_before_turn(-1)

    def test_current_day(self):
        """Test that the day change applies after its turn."""
        holder = build_holder()
        assert holder.current_day(6).day_number == 1
        assert holder.current_day(7).day_number == 2

    def test_all_dropped_items_sorted(self):
        """Test that merged item lists are sorted by name."""
        holder = LogDataHolder(True)
        first = SingleTurn("Area", "a", 1)
        first.add_dropped_item(Item("zeppelin ticket", 1))
        second = SingleTurn("Area", "b", 2)
        second.add_dropped_item(Item("Bone", 1))
        second.add_dropped_item(Item("zeppelin ticket", 1))
        holder.add_turn_spent(first)
        holder.add_turn_spent(second)
        assert [(i.name, i.amount) for i in holder.all_dropped_items] == [
            ("Bone", 1),
            ("zeppelin ticket", 2),
        ]


class TestLogSummary:
    """Tests for the computed log summary."""

    def test_turn_counts(self):
        """Test that turns are counted by version."""
        summary = build_holder().create_log_summary()
        assert summary.total_turns_combat == 5
        assert summary.total_turns_noncombat == 5
        assert summary.total_turns_other == 0

    def test_totals(self):
        """Test the stat, meat and MP totals."""
        summary = build_holder().create_log_summary()
        assert summary.total_stat_gains == Statgain(10, 20, 30)
        assert summary.total_meat_gain == 100
        assert summary.total_mp_gains.encounter == 20

    def test_familiar_usage_counts_combats(self):
        """Test that familiar usage counts combat turns only."""
        summary = build_holder().create_log_summary()
        assert [(f.name, f.turn_number) for f in summary.familiar_usage] == [("none", 5)]

    def test_skill_mp_totals(self):
        """Test that the skill summary sums casts and MP."""
        holder = LogDataHolder(True)
        turn = SingleTurn("Area", "a", 1, turn_version=TurnVersion.COMBAT)
        turn.add_skill_cast(Skill("Saucestorm", 2, 24))
        holder.add_turn_spent(turn)
        summary = holder.create_log_summary()
        assert summary.total_amount_skill_casts == 2
        assert summary.total_mp_used == 24

    def test_log_summary_created_lazily(self):
        """Test that reading the summary creates it."""
        holder = build_holder()
        assert holder.log_summary is holder.log_summary


class TestSubRange:
    """Tests for restricting a holder to a turn range."""

    def test_sub_range_turns(self):
        """Test that only turns inside the range are kept."""
        sub = build_holder().sub_range(3, 7)
        numbers = [t.turn_number for t in sub.turns_spent]
        assert numbers == [3, 4, 5, 6, 7]
        assert sub.is_subinterval_log
        assert sub.log_name == "Tester-20240101"

    def test_sub_range_recomputes_summary(self):
        """Test that the summary covers only the range."""
        sub = build_holder().sub_range(3, 7)
        summary = sub.log_summary
        assert summary.total_meat_gain == 50
        assert summary.total_turns_combat + summary.total_turns_noncombat == 5

    def test_sub_range_keeps_day_changes(self):
        """Test that the day in effect at the start and later days are kept."""
        sub = build_holder().sub_range(3, 9)
        assert [d.day_number for d in sub.day_changes] == [1, 2]

    def test_sub_range_keeps_levels(self):
        """Test that the level in effect at the start is kept."""
        holder = build_holder()
        holder.add_level(LevelData(2, 4))
        sub = holder.sub_range(5, 9)
        assert sub.levels[0].level_number == 2

    def test_sub_range_rejects_empty_range(self):
        """Test that the end must come after the start."""
        with pytest.raises(LogDataHolderError):
            build_holder().sub_range(5, 5)

    def test_sub_range_does_not_share_turns(self):
        """Test that sub range turns are copies."""
        holder = build_holder()
        sub = holder.sub_range(1, 4)
        sub.turns_spent[0].add_stat_gain(Statgain(100, 0, 0))
        assert holder.turns_spent[1].stat_gain == Statgain(1, 2, 3)
