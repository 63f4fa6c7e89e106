"""
Tests for the log data model.

Covers the gain value types, countables and their sets, single turns,
and the derivation of turn intervals from turns.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ascension_log.exceptions import (  # noqa: E402
    CountableMergeError,
    TurnIntervalError,
    UsageError,
)
from ascension_log.logdata.countables import (  # noqa: E402
    Consumable,
    ConsumableVersion,
    CountableSet,
    Item,
    Skill,
    sorted_by_name,
)
from ascension_log.logdata.turn import (  # noqa: E402
    AbstractTurnInterval,
    DetailedTurnInterval,
    SimpleTurnInterval,
    SingleTurn,
    TurnVersion,
    derive_intervals,
)
from ascension_log.logdata.turn_actions import EquipmentChange  # noqa: E402
from ascension_log.logdata.values import (  # noqa: E402
    FreeRunaways,
    MeatGain,
    MPGain,
    Statgain,
)


def make_turn(area, turn_number, version=TurnVersion.NONCOMBAT, **kwargs):
    return SingleTurn(area, f"{area} encounter", turn_number, turn_version=version, **kwargs)


class TestValues:
    """Tests for Statgain, MPGain, MeatGain and FreeRunaways."""

    def test_statgain_add(self):
        """Test that adding stat gains sums each stat."""
        total = Statgain(1, 2, 3).add(Statgain(10, 20, 30))
        assert total == Statgain(11, 22, 33)
        assert total.total == 66

    def test_statgain_is_immutable(self):
        """Test that add returns a new instance."""
        stats = Statgain(1, 1, 1)
        stats.add(Statgain(5, 5, 5))
        assert stats == Statgain(1, 1, 1)

    def test_mp_gain_total(self):
        """Test MP gain total over all sources."""
        mp = MPGain(encounter=1, starfish=2, resting=3, out_of_encounter=4, consumable=5)
        assert mp.total == 15
        assert mp.add(MPGain(encounter=10)).encounter == 11

    def test_meat_gain_rejects_negative(self):
        """Test that negative meat values are rejected."""
        with pytest.raises(ValueError):
            MeatGain(encounter=-1)

    def test_meat_gain_total(self):
        """Test that spent meat is not part of the total gain."""
        meat = MeatGain(encounter=100, other=50, spent=30)
        assert meat.total_gain == 150

    def test_free_runaways_validation(self):
        """Test that successful runaways cannot exceed attempts."""
        with pytest.raises(ValueError):
            FreeRunaways(attempted=1, successful=2)
        assert str(FreeRunaways(3, 2)) == "2 / 3 free retreats"


class TestCountables:
    """Tests for countable merging and sets."""

    def test_merge_sums_amount(self):
        """Test that merging adds the amounts."""
        item = Item("hermit permit", 1, 5)
        item.merge(Item("hermit permit", 2, 3))
        assert item.amount == 3
        assert item.found_on_turn == 3

    def test_merge_rejects_other_name(self):
        """Test that merging different names fails."""
        with pytest.raises(CountableMergeError):
            Item("a", 1).merge(Item("b", 1))

    def test_merge_is_commutative(self):
        """Test that merge order does not change the result."""
        a1, b1 = Skill("Saucestorm", 2, 24, 10), Skill("Saucestorm", 3, 36, 4)
        a2, b2 = Skill("Saucestorm", 2, 24, 10), Skill("Saucestorm", 3, 36, 4)
        a1.merge(b1)
        b2.merge(a2)
        assert a1 == b2
        assert a1.amount == 5
        assert a1.mp_cost == 60
        assert a1.turn_number_of_cast == 4

    def test_consumable_merge(self):
        """Test that consumables merge adventures and stats."""
        first = Consumable("pr0n", 1, 5, ConsumableVersion.FOOD, 10, 1, Statgain(1, 0, 0))
        first.merge(Consumable("pr0n", 1, 6, ConsumableVersion.FOOD, 12, 1, Statgain(0, 2, 0)))
        assert first.amount == 2
        assert first.adventure_gain == 11
        assert first.statgain == Statgain(1, 2, 0)

    def test_consumable_requires_amount(self):
        """Test that a consumable needs at least one use."""
        with pytest.raises(ValueError):
            Consumable("nothing", 0)

    def test_countable_set_merges_same_name(self):
        """Test that the set merges entries with equal names."""
        items = CountableSet()
        items.add(Item("bone", 1))
        items.add(Item("bone", 2))
        items.add(Item("Apple", 1))
        assert len(items) == 2
        assert items.get("bone").amount == 3
        assert items.contains_by_name("Apple")

    def test_countable_set_copies_added_elements(self):
        """Test that later merges do not change the caller's instance."""
        item = Item("bone", 1)
        items = CountableSet()
        items.add(item)
        items.add(Item("bone", 1))
        assert item.amount == 1

    def test_sorted_by_name_ignores_case(self):
        """Test case-insensitive sort order."""
        names = [c.name for c in sorted_by_name([Item("beta"), Item("Alpha"), Item("gamma")])]
        assert names == ["Alpha", "beta", "gamma"]


class TestSingleTurn:
    """Tests for SingleTurn."""

    def test_rejects_negative_turn(self):
        """Test that a negative turn number is rejected."""
        with pytest.raises(UsageError):
            SingleTurn("Area", "Encounter", -1)

    def test_turn_version_cannot_change(self):
        """Test that a set version cannot be replaced."""
        turn = make_turn("Area", 1, TurnVersion.COMBAT)
        turn.turn_version = TurnVersion.COMBAT
        with pytest.raises(UsageError):
            turn.turn_version = TurnVersion.NONCOMBAT

    def test_added_countables_are_stamped(self):
        """Test that added items carry the turn's number."""
        turn = make_turn("Area", 7)
        item = Item("bone", 1, 2)
        turn.add_dropped_item(item)
        assert turn.dropped_items.get("bone").found_on_turn == 7
        assert item.found_on_turn == 2

    def test_disintegrated_only_for_combats(self):
        """Test that non-combat turns are never disintegrated."""
        noncombat = make_turn("Area", 1)
        noncombat.is_disintegrated = True
        assert not noncombat.is_disintegrated

        combat = make_turn("Area", 2, TurnVersion.COMBAT)
        combat.is_disintegrated = True
        assert combat.is_disintegrated

    def test_ran_away(self):
        """Test that casting return in a combat counts as running away."""
        turn = make_turn("Area", 3, TurnVersion.COMBAT)
        turn.add_skill_cast(Skill("return", 1))
        assert turn.is_ran_away_on_this_turn()

    def test_add_encounter_merges_data(self):
        """Test that a further encounter adds its gains to the turn."""
        turn = make_turn("Area", 5)
        other = make_turn("Area", 5, TurnVersion.COMBAT)
        other.add_stat_gain(Statgain(3, 3, 3))
        other.add_meat(MeatGain(encounter=20))
        turn.add_encounter(other)
        assert turn.stat_gain == Statgain(3, 3, 3)
        assert turn.meat.encounter == 20
        assert len(turn.encounters) == 1

    def test_total_stat_gain_includes_consumables(self):
        """Test that consumable stats count towards the total."""
        turn = make_turn("Area", 1)
        turn.add_stat_gain(Statgain(1, 1, 1))
        turn.add_consumable_used(Consumable("tofu", 1, 2, statgain=Statgain(5, 0, 0)))
        assert turn.total_stat_gain == Statgain(6, 1, 1)


class TestTurnIntervals:
    """Tests for turn interval construction and derivation."""

    def test_area_transition(self):
        """Test that an area change starts a new interval at the previous turn."""
        turns = [make_turn("Foo", 1), make_turn("Foo", 2), make_turn("Foo", 3), make_turn("Bar", 4)]
        intervals = derive_intervals(turns)
        assert [(i.area_name, i.start_turn, i.end_turn) for i in intervals] == [
            ("Foo", 0, 3),
            ("Bar", 3, 4),
        ]

    def test_derivation_is_idempotent(self):
        """Test that deriving intervals twice gives equal results."""
        turns = [make_turn("Foo", 1), make_turn("Bar", 2), make_turn("Bar", 3)]
        turns[1].add_stat_gain(Statgain(2, 4, 6))
        assert derive_intervals(turns) == derive_intervals(turns)

    def test_aggregates_are_conserved(self):
        """Test that interval sums equal the sums over their turns."""
        turns = []
        for number, area in enumerate(["Foo", "Foo", "Bar", "Foo"], start=1):
            turn = make_turn(area, number)
            turn.add_stat_gain(Statgain(number, 0, 1))
            turn.add_mp_gain(MPGain(encounter=number))
            turn.add_meat(MeatGain(encounter=10 * number))
            turns.append(turn)

        intervals = derive_intervals(turns)
        stats = Statgain()
        mp = MPGain()
        meat = MeatGain()
        for interval in intervals:
            stats = stats.add(interval.stat_gain)
            mp = mp.add(interval.mp_gain)
            meat = meat.add(interval.meat)
        assert stats == Statgain(10, 0, 4)
        assert mp.total == 10
        assert meat.encounter == 100

    def test_start_turn_clamped_at_zero(self):
        """Test that an interval at turn 0 starts at 0."""
        interval = DetailedTurnInterval(make_turn("Start", 0))
        assert interval.start_turn == 0
        assert interval.end_turn == 0

    def test_free_turn_interval_starts_at_turn(self):
        """Test that free turn intervals start on their turn."""
        interval = DetailedTurnInterval(make_turn("Area", 5), is_free_turn_interval=True)
        assert interval.start_turn == 5

    def test_add_turn_of_other_area(self):
        """Test that a turn of another area is rejected."""
        interval = DetailedTurnInterval(make_turn("Foo", 1))
        with pytest.raises(TurnIntervalError):
            interval.add_turn(make_turn("Bar", 2))

    def test_unsuccessful_free_runaway(self):
        """Test that running away in runaway equipment counts as unsuccessful."""
        equipment = EquipmentChange(1, acc1="navel ring of navel gazing")
        interval = DetailedTurnInterval(make_turn("Foo", 1))
        before = interval.runaway_attempts

        turn = make_turn("Foo", 2, TurnVersion.COMBAT, used_equipment=equipment)
        turn.add_skill_cast(Skill("return", 1))
        interval.add_turn(turn)

        assert interval.unsuccessful_free_runaways == 1
        assert interval.runaway_attempts.attempted == before.attempted + 1
        assert interval.runaway_attempts.successful == before.successful

    def test_simple_interval_holds_no_turns(self):
        """Test that simple intervals reject single turns."""
        interval = SimpleTurnInterval("Foo", 0, 10)
        assert interval.total_turns == 10
        assert interval.turns == []
        with pytest.raises(TurnIntervalError):
            interval.add_turn(make_turn("Foo", 3))

    def test_interval_str(self):
        """Test the textual form of an interval."""
        interval = SimpleTurnInterval("Foo", 2, 5)
        interval.add_stat_gain(Statgain(1, 2, 3))
        assert str(interval) == "[3-5] Foo [1,2,3]"

    def test_interval_without_add_turn_cannot_be_created(self):
        """Test that an interval class must define add_turn."""

        class AreaOnlyInterval(AbstractTurnInterval):
            start_turn = 0
            end_turn = 0

        with pytest.raises(TypeError):
            AbstractTurnInterval("Foo")
        with pytest.raises(TypeError):
            AreaOnlyInterval("Foo")
