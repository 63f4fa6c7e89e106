"""
Line parsers.

Each parser recognizes one kind of log line and applies it to the log
data holder. Parsers are tried in a fixed order and the first compatible
one handles the line. All mutable parse state (equipment stack, familiar
equipment, collected named turns) lives in a ParserContext that is
threaded through every call, so the parsers themselves are stateless and
can be shared.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..config import ParserConfig
from ..logdata.countables import CombatItem, Consumable, ConsumableVersion, Item, Skill
from ..logdata.holder import ASCENSION_START, LogDataHolder, ParsedLogCreator
from ..logdata.turn import AbstractTurnInterval, SimpleTurnInterval, SingleTurn, TurnVersion
from ..logdata.turn_actions import (
    NO_EQUIPMENT,
    NO_EQUIPMENT_STRING,
    DayChange,
    EquipmentChange,
    FamiliarChange,
    NamedTurn,
    Pull,
)
from ..logdata.values import MeatGain, MPGain, Statgain
from ..services.reference_data import Outfit, ReferenceDataService, get_reference_data
from . import patterns
from .patterns import (
    ACQUIRE_EFFECT_PREFIX,
    BANISH_ITEMS,
    BANISH_SKILLS,
    COMBAT_ROUND_PREFIX,
    MP_NAMES,
    TRIVIAL_COMBAT_SKILLS,
    first_number,
    parse_gain_lose,
    parse_statgain_brackets,
    substat_kind,
)

logger = logging.getLogger(__name__)


@dataclass
class ParserContext:
    """
    Mutable state of a single parse.

    Attributes:
        config: Parser settings
        reference: Reference data tables
        equipment_stack: Equipment worn, most recent last
        familiar_equipment: Familiar name -> equipment it carries
        semirares: Semirares listed in a pre-parsed turn rundown
        badmoon_adventures: Bad Moon adventures listed in a pre-parsed turn rundown
        disintegrated_combats: Disintegrated combats listed in a pre-parsed turn rundown
    """

    config: ParserConfig = field(default_factory=ParserConfig)
    reference: Optional[ReferenceDataService] = None
    equipment_stack: List[EquipmentChange] = field(default_factory=lambda: [NO_EQUIPMENT])
    familiar_equipment: Dict[str, str] = field(default_factory=dict)
    semirares: List[NamedTurn] = field(default_factory=list)
    badmoon_adventures: List[NamedTurn] = field(default_factory=list)
    disintegrated_combats: List[NamedTurn] = field(default_factory=list)

    def __post_init__(self):
        if self.reference is None:
            self.reference = get_reference_data(self.config.reference_data_dir)

    @property
    def current_equipment(self) -> EquipmentChange:
        return self.equipment_stack[-1] if self.equipment_stack else NO_EQUIPMENT

    def push_equipment(self, change: EquipmentChange, holder: LogDataHolder) -> None:
        self.equipment_stack.append(change)
        holder.add_equipment_change(change)


class LineParser(ABC):
    """Base class for line parsers."""

    @abstractmethod
    def is_compatible(self, line: str) -> bool:
        pass

    @abstractmethod
    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        pass

    def parse_line(self, line: str, holder: LogDataHolder, context: ParserContext) -> bool:
        """
        Parse the line if this parser recognizes it.

        Returns:
            True if the line was handled
        """
        if not self.is_compatible(line):
            return False
        self.parse(line, holder, context)
        return True


def run_line_parsers(
    parsers: Iterable[LineParser], line: str, holder: LogDataHolder, context: ParserContext
) -> bool:
    """Offer a line to each parser in order; stop at the first that handles it."""
    for parser in parsers:
        if parser.parse_line(line, holder, context):
            return True
    return False


def _amount(text: str) -> int:
    return int(text.replace(",", ""))


# Detailed log line parsers


class ItemAcquisitionLineParser(LineParser):
    """Item drops: "You acquire an item: X", "You acquire 3 Xs", "You acquire X (3)"."""

    SINGLE_ITEM = "You acquire an item: "
    MULTIPLE_ITEMS_OLD = re.compile(r"^You acquire (\d*,?\d+) (.+)$")
    MULTIPLE_ITEMS_NEW = re.compile(r"^You acquire (.+) \((\d*,?\d+)\)$")

    def is_compatible(self, line: str) -> bool:
        if not line.startswith("You acquire") or line.startswith(ACQUIRE_EFFECT_PREFIX):
            return False
        return (
            line.startswith(self.SINGLE_ITEM)
            or self.MULTIPLE_ITEMS_OLD.match(line) is not None
            or self.MULTIPLE_ITEMS_NEW.match(line) is not None
        )

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        if line.startswith(self.SINGLE_ITEM):
            name, amount = line[len(self.SINGLE_ITEM):], 1
        else:
            m = self.MULTIPLE_ITEMS_OLD.match(line)
            if m:
                amount, name = _amount(m.group(1)), m.group(2)
            else:
                m = self.MULTIPLE_ITEMS_NEW.match(line)
                name, amount = m.group(1), _amount(m.group(2))
        turn = holder.last_turn_spent
        turn.add_dropped_item(Item(name, max(amount, 1), turn.turn_number))


def skill_mp_cost(
    reference: ReferenceDataService, skill_name: str, casts: int, mp_cost_offset: int
) -> int:
    """
    Total MP spent on a number of casts.

    Skills with a cost get the equipment offset applied, but never drop
    below 1 MP per cast.
    """
    cost = reference.skill_mp_cost(skill_name)
    if cost > 0:
        cost = max(cost + mp_cost_offset, 1)
    return cost * casts


class SkillCastLineParser(LineParser):
    """Noncombat "cast N skill" and combat "... casts SKILL!" lines."""

    SKILL_CAST = re.compile(r"cast \d+ .+|.*casts .+!(?: \(auto-attack\))?")
    COMBAT_CAST = re.compile(r".*casts (.+?)!(?: \(auto-attack\))?$")
    NONCOMBAT_CAST = re.compile(r"cast (\d+) (.+)")

    def is_compatible(self, line: str) -> bool:
        return "cast" in line and self.SKILL_CAST.fullmatch(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        is_combat_cast = "casts" in line
        if is_combat_cast:
            name = self.COMBAT_CAST.match(line).group(1).lower()
            casts = 1
        else:
            m = self.NONCOMBAT_CAST.match(line)
            casts, name = int(m.group(1)), m.group(2).lower()

        turn = holder.last_turn_spent
        offset = context.reference.mp_cost_offset(context.current_equipment)
        mp_cost = skill_mp_cost(context.reference, name, casts, offset)
        if TRIVIAL_COMBAT_SKILLS.get(name) == holder.character_class.class_name:
            mp_cost = 0
        turn.add_skill_cast(Skill(name, casts, mp_cost, turn.turn_number))

        if is_combat_cast and name in BANISH_SKILLS and isinstance(turn, SingleTurn):
            turn.set_banished(True, name)


class CombatItemUsedLineParser(LineParser):
    """Items thrown in combat; banishing items flag the turn."""

    COMBAT_ITEM_USED = re.compile(r".*uses (.+?)!(?: \(auto-attack\))?$")

    def is_compatible(self, line: str) -> bool:
        return "uses" in line and self.COMBAT_ITEM_USED.match(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        name = self.COMBAT_ITEM_USED.match(line).group(1).lower()
        turn = holder.last_turn_spent
        turn.add_combat_item_used(CombatItem(name, 1, turn.turn_number))
        logger.debug(f"Combat item {name} used on turn {turn.turn_number}")
        if name in BANISH_ITEMS and isinstance(turn, SingleTurn):
            turn.set_banished(True, name)


class MeatGainType(Enum):
    ENCOUNTER = "encounter"
    OTHER = "other"


class MeatLineParser(LineParser):
    """"You gain N Meat" lines."""

    MEAT_GAIN = re.compile(r"^You gain (\d*,?\d+) Meat")

    def __init__(self, gain_type: MeatGainType):
        self.gain_type = gain_type

    def is_compatible(self, line: str) -> bool:
        return self.MEAT_GAIN.match(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        amount = _amount(self.MEAT_GAIN.match(line).group(1))
        if self.gain_type == MeatGainType.ENCOUNTER:
            holder.last_turn_spent.add_meat(MeatGain(encounter=amount))
        else:
            holder.last_turn_spent.add_meat(MeatGain(other=amount))


class MeatSpentLineParser(LineParser):
    """"You spent N Meat" and "You lose N Meat" lines."""

    MEAT_SPENT = re.compile(r"^You (?:spent|lose) (\d*,?\d+) Meat")

    def is_compatible(self, line: str) -> bool:
        return self.MEAT_SPENT.match(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        amount = _amount(self.MEAT_SPENT.match(line).group(1))
        holder.last_turn_spent.add_meat(MeatGain(spent=amount))


class StatLineParser(LineParser):
    """Substat gains and losses."""

    def is_compatible(self, line: str) -> bool:
        if parse_gain_lose(line) is None:
            return False
        return substat_kind(line.rsplit(" ", 1)[-1]) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        amount, _ = parse_gain_lose(line)
        kind = substat_kind(line.rsplit(" ", 1)[-1])
        holder.last_turn_spent.add_stat_gain(Statgain(**{kind: amount}))


class MPGainType(Enum):
    ENCOUNTER = "encounter"
    NOT_ENCOUNTER = "not encounter"
    CONSUMABLE = "consumable"


RESTING_AREAS = frozenset(["Rest in your dwelling", "Rest in your bed in the Chateau"])


class MPGainLineParser(LineParser):
    """MP gains, attributed by where they happened."""

    def __init__(self, gain_type: MPGainType):
        self.gain_type = gain_type

    def is_compatible(self, line: str) -> bool:
        parsed = parse_gain_lose(line)
        if parsed is None or parsed[0] <= 0:
            return False
        return any(line.endswith(name) for name in MP_NAMES)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        amount, _ = parse_gain_lose(line)
        turn = holder.last_turn_spent
        if self.gain_type == MPGainType.ENCOUNTER:
            if turn.area_name in RESTING_AREAS:
                turn.add_mp_gain(MPGain(resting=amount))
            else:
                turn.add_mp_gain(MPGain(encounter=amount))
        elif self.gain_type == MPGainType.NOT_ENCOUNTER:
            turn.add_mp_gain(MPGain(out_of_encounter=amount))
        else:
            turn.add_mp_gain(MPGain(consumable=amount))


class CombatRecognizerLineParser(LineParser):
    """The first round of a fight marks the turn as a combat."""

    FIRST_ROUND = "Round 0: "

    def is_compatible(self, line: str) -> bool:
        return line.startswith(self.FIRST_ROUND)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn = holder.last_turn_spent
        if not isinstance(turn, SingleTurn):
            return
        if turn.turn_version == TurnVersion.NOT_DEFINED:
            turn.turn_version = TurnVersion.COMBAT
        elif turn.turn_version != TurnVersion.COMBAT:
            logger.debug(
                f"Combat round on turn {turn.turn_number}, "
                f"which was already recorded as {turn.turn_version.value}"
            )


EQUIPMENT_SLOT_NAMES = {
    "hat": "hat",
    "weapon": "weapon",
    "off-hand": "offhand",
    "offhand": "offhand",
    "shirt": "shirt",
    "pants": "pants",
    "acc1": "acc1",
    "acc2": "acc2",
    "acc3": "acc3",
    "familiarequip": "fam_equip",
    "familiar": "fam_equip",
}


class EquipmentLineParser(LineParser):
    """equip/unequip, outfit and custom outfit commands."""

    PREVIOUS_OUTFITS = frozenset(["custom outfit backup", "custom outfit your previous outfit"])

    def is_compatible(self, line: str) -> bool:
        return line.lower().startswith(("equip", "unequip", "outfit", "custom outfit"))

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        line = line.lower()
        turn_number = holder.last_turn_spent.turn_number
        current = context.current_equipment

        if line.startswith("outfit"):
            outfit = context.reference.outfit(line.split(" ", 1)[-1])
            if outfit is Outfit.NO_CHANGE:
                return
            slots = {
                slot: NO_EQUIPMENT_STRING
                for slot in ("hat", "weapon", "offhand", "shirt", "pants", "acc1", "acc2", "acc3")
                if getattr(outfit, slot)
            }
            worn = {**current.slots(), **slots}
            context.push_equipment(EquipmentChange(turn_number, **worn), holder)
            return

        if line.startswith("custom outfit"):
            if line in self.PREVIOUS_OUTFITS:
                if context.equipment_stack:
                    context.equipment_stack.pop()
                holder.add_equipment_change(context.current_equipment.at_turn(turn_number))
            else:
                context.push_equipment(
                    EquipmentChange(turn_number, fam_equip=current.fam_equip), holder
                )
            return

        rest = line.split(" ", 1)[-1]
        slot_name, _, item_name = rest.partition(" ")
        if line.startswith("unequip"):
            item_name = NO_EQUIPMENT_STRING
        elif not item_name:
            return

        slot = EQUIPMENT_SLOT_NAMES.get(slot_name)
        if slot is None:
            return
        if slot == "fam_equip":
            familiar = holder.last_familiar_change
            if familiar is not None:
                context.familiar_equipment[familiar.familiar_name] = item_name
        context.push_equipment(current.with_slot(slot, item_name).at_turn(turn_number), holder)


ED_SERVANTS = {
    1: "Cat",
    2: "Belly-Dancer",
    3: "Maid",
    4: "Bodyguard",
    5: "Scribe",
    6: "Priest",
    7: "Assassin",
}


class FamiliarChangeLineParser(LineParser):
    """"familiar Name (N lbs)" commands and Ed's servant changes."""

    FAMILIAR_CHANGE = re.compile(r"familiar (.+) \((\d+) lbs\)")
    ED_SERVANT_CHANGE = re.compile(r"choice\.php\?whichchoice=1053&option=[0-9].*&sid=([0-9])")

    def is_compatible(self, line: str) -> bool:
        if line.startswith("familiar "):
            return not line.endswith("lock")
        return self.ED_SERVANT_CHANGE.match(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn_number = holder.last_turn_spent.turn_number
        servant = self.ED_SERVANT_CHANGE.match(line)
        if servant:
            familiar_name = ED_SERVANTS.get(int(servant.group(1)), "Unknown")
        else:
            if line.endswith(NO_EQUIPMENT_STRING):
                familiar_name = NO_EQUIPMENT_STRING
            else:
                m = self.FAMILIAR_CHANGE.search(line)
                if not m:
                    logger.warning(f"Skipping unreadable familiar change: {line}")
                    return
                familiar_name = m.group(1)
            fam_equip = context.familiar_equipment.get(familiar_name, NO_EQUIPMENT_STRING)
            if familiar_name == NO_EQUIPMENT_STRING:
                fam_equip = NO_EQUIPMENT_STRING
            change = context.current_equipment.with_slot("fam_equip", fam_equip)
            context.push_equipment(change.at_turn(turn_number), holder)
        holder.add_familiar_change(FamiliarChange(familiar_name, turn_number))


class OnTheTrailLineParser(LineParser):
    """Olfaction: the current combat becomes the hunted monster."""

    ON_THE_TRAIL = re.compile(r"You acquire an effect:\s*On the Trail.*$")

    def is_compatible(self, line: str) -> bool:
        return line.startswith(ACQUIRE_EFFECT_PREFIX) and self.ON_THE_TRAIL.match(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn = holder.last_turn_spent
        if isinstance(turn, SingleTurn):
            holder.add_hunted_combat(NamedTurn(turn.encounter_name, turn.turn_number))


FREE_RUNAWAY_PHRASES = (
    " snatches you up in his jaws, tosses you onto his back, and flooms away,"
    " weaving slightly and hiccelping fire.",
    " kicks you in the butt to speed your escape. ",
    " uses the divine champagne popper",
    " uses the glob of Blank-Out",
    " uses the Louder Than Bomb",
    " uses the green smoke bomb",
)


class FreeRunawaysLineParser(LineParser):
    """Combat rounds that end in a free escape."""

    def is_compatible(self, line: str) -> bool:
        return line.startswith(COMBAT_ROUND_PREFIX) and any(
            phrase in line for phrase in FREE_RUNAWAY_PHRASES
        )

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        holder.last_turn_spent.add_free_runaways(1)


class DisintegrateLineParser(LineParser):
    """Yellow ray usage, by effect or by familiar."""

    YELLOW_EFFECT = re.compile(r"You acquire an effect:\s*Everything Looks Yellow.*")
    YELLOW_FAMILIAR = re.compile(
        r"Round \d+: .+? swings his eyestalk around and unleashes a massive ray of yellow"
        r" energy, completely disintegrating your opponent\."
    )

    def is_compatible(self, line: str) -> bool:
        return (
            self.YELLOW_EFFECT.match(line) is not None
            or self.YELLOW_FAMILIAR.match(line) is not None
        )

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn = holder.last_turn_spent
        if isinstance(turn, SingleTurn):
            turn.is_disintegrated = True


STARFISH_ATTACKS = [
    re.compile(
        r"Round \d+: .+ floats behind your opponent, and begins to glow brightly\.\s*Starlight"
        r" shines through your opponent, doing (\d+) damage, and pours into your body\."
    ),
    re.compile(r"Round \d+: .+ leaps on your opponent, sliming \w+ for (\d+) damage\.\s*It's inspiring!"),
    re.compile(
        r"Round \d+: .+ de-rezzes \w+ for (\d+) damage, then offers you a drink out of his identity"
        r" disc\.\s*It's a little too intimate for your comfort, but it's still refreshing\."
    ),
    re.compile(
        r"Round \d+: .+ tosses his identity disc at \w+ for (\d+) damage, then invites you to drink"
        r" some glowing blue liquid out of the disc\.\s*The whole thing's a little more intimate"
        r" than you're comfortable with, but it's still refreshing\."
    ),
    re.compile(
        r"Round \d+: .+ bounces his disc off of \w+ for (\d+) damage, and it ricochets into you,"
        r" giving you quite a shock\."
    ),
    re.compile(
        r"Round \d+: .+ flops toward \w+, gasping for water, and manages to tailsmack \w+ for"
        r" (\d+) slimy, clammy damage\."
    ),
    re.compile(
        r"Round \d+: .+ quacks loudly, and a bolt of enriched wheat energy tears through your"
        r" opponent for (\d+) damage, then arcs toward you, energizing your nervous system\."
    ),
    re.compile(
        r"Round \d+: .+ rises into the air and spreads her wings, bathing your opponent in cold"
        r" light and dealing (\d+) damage\.\s*It's inspiring\."
    ),
    re.compile(
        r"Round \d+: .+ fixes an evil glare on your opponent, causing \w+ to suffer (\d+) damage"
        r" worth of heebie-jeebies\.\s*A plume of oily black smoke emerges from his bark, and you"
        r" accidentally inhale some of it\.\s*You realize, to your horror, that it smells\.\.\. good\."
    ),
    re.compile(
        r"Round \d+: .+ holds up an empty bottle of booze and gazes at it sadly\.\s*Starlight"
        r" filters through the bottle, through the spirit hobo, and through the booze inside the"
        r" spirit hobo, then pierces your opponent for (\d+) damage, and then shines into you\."
        r"\s*What the hell\?"
    ),
    re.compile(
        r"Round \d+: .+ slimes your opponent thoroughly, dealing (\d+) damage\.\s*The resulting"
        r" ectoplasmic shock wave gives you a mystical jolt\."
    ),
    re.compile(
        r"Round \d+: .+ swoops through your opponent, somehow transferring (\d+) points of \w+"
        r" lifeforce into \w+ Points for you\.\s*You feel slightly skeeved out\."
    ),
    re.compile(
        r"Round \d+: .+ swoops back and forth through your opponent, scaring the bejeezus out of"
        r" \w+ to the tune of (\d+) damage\.\s*Then he converts the bejeezus into \w+ Points!"
    ),
]


class StarfishMPGainLineParser(LineParser):
    """
    MP restoring familiar attacks.

    The MP shows up as a regular encounter MP gain later in the fight, so
    the damage is moved from the encounter bucket to the starfish bucket.
    """

    def _match(self, line: str) -> Optional[re.Match]:
        if not line.startswith(COMBAT_ROUND_PREFIX):
            return None
        for attack in STARFISH_ATTACKS:
            m = attack.fullmatch(line)
            if m:
                return m
        return None

    def is_compatible(self, line: str) -> bool:
        return self._match(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        damage = int(self._match(line).group(1))
        turn = holder.last_turn_spent
        turn.add_mp_gain(MPGain(starfish=damage))
        turn.add_mp_gain(MPGain(encounter=-damage))


class RedRayStatsLineParser(LineParser):
    """Stats gained from the red ray, reported inside the combat round line."""

    RED_RAY = (
        " swings his eyestalk toward your opponent, firing a searing ray of heat at it, dealing "
    )
    FIREWORKS = "That was way more entertaining than fireworks!"

    def __init__(self):
        self._stat_parser = StatLineParser()

    def is_compatible(self, line: str) -> bool:
        return line.startswith(COMBAT_ROUND_PREFIX) and self.RED_RAY in line and "You gain " in line

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        _, found, gains = line.partition(self.FIREWORKS)
        if not found:
            logger.warning(f"Skipping red ray line without stat gains: {line}")
            return
        for gain in re.split(r"[.!]", gains):
            self._stat_parser.parse_line(gain.strip(), holder, context)


class PoolMPBuffLineParser(LineParser):
    """The pool table buff restores 100 MP."""

    POOL_BUFF = "You acquire an effect: Mental A-cue-ity (duration: 10 Adventures)"

    def is_compatible(self, line: str) -> bool:
        return line == self.POOL_BUFF

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        holder.last_turn_spent.add_mp_gain(MPGain(encounter=100))


class PullLineParser(LineParser):
    """Hagnk's storage pulls: "pull: 1 foo, 2 bar"."""

    PULL = re.compile(r"pull: \d+ .+")
    PULLED_ITEM = re.compile(r"([0-9]+ ((?:[^,]+)|(?:, [^0-9]))*)(?:, )?")

    def is_compatible(self, line: str) -> bool:
        return self.PULL.fullmatch(line) is not None

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn_number = holder.last_turn_spent.turn_number
        day_number = holder.last_day_change.day_number
        for m in self.PULLED_ITEM.finditer(line):
            amount, _, item_name = m.group(1).partition(" ")
            holder.add_pull(Pull(item_name, max(1, int(amount)), turn_number, day_number))


class DayChangeLineParser(LineParser):
    """"===Day N===" markers."""

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("day_change", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        day_number = first_number(line)
        holder.add_day_change(DayChange(day_number, holder.last_turn_spent.turn_number))


class LearnedSkillLineParser(LineParser):
    LEARNED_SKILL = "You learned a new skill: "

    def is_compatible(self, line: str) -> bool:
        return line.startswith(self.LEARNED_SKILL)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        skill_name = line[len(self.LEARNED_SKILL):]
        holder.add_learned_skill(NamedTurn(skill_name, holder.last_turn_spent.turn_number))


class NotesLineParser(LineParser):
    """User notes (" > Note: ...") attached to the last turn."""

    NOTE = " > Note: "

    def is_compatible(self, line: str) -> bool:
        return line.startswith(self.NOTE)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        if context.config.include_notes:
            holder.last_turn_spent.add_notes(line[len(self.NOTE):])


# Pre-parsed turn rundown line parsers


class TurnsSpentLineParser(LineParser):
    """
    Turn interval lines: "[N] Area [m,y,x]" or "[a-b] Area".

    The first interval line also decides which tool created the log:
    only the AFH parser leaves out the stat gains.
    """

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("turns_used", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        has_stats = patterns.matches("area_statgain", line)
        if has_stats:
            area_name = line[line.index(" ") + 1:line.rindex("[") - 1]
        else:
            area_name = line[line.index(" ") + 1:]
        turn_counts = line[line.index("[") + 1:line.index("]")]

        if "-" in turn_counts:
            start, _, end = turn_counts.partition("-")
            start_turn, end_turn = int(start) - 1, int(end)
        else:
            end_turn = int(turn_counts)
            start_turn = end_turn if end_turn == 0 and area_name == ASCENSION_START else end_turn - 1

        last = holder.last_turn_spent
        if (
            area_name == ASCENSION_START
            and end_turn == 0
            and isinstance(last, SimpleTurnInterval)
            and last.area_name == ASCENSION_START
            and last.end_turn == 0
        ):
            interval = last
        else:
            interval = SimpleTurnInterval(area_name, start_turn, end_turn)
            holder.add_turn_interval_spent(interval)
        if has_stats:
            interval.stat_gain = Statgain(*parse_statgain_brackets(line))

        if holder.parsed_log_creator == ParsedLogCreator.NOT_DEFINED:
            if interval.end_turn != 0 and not has_stats:
                holder.parsed_log_creator = ParsedLogCreator.AFH_PARSER
            else:
                holder.parsed_log_creator = ParsedLogCreator.LOG_VISUALIZER


class DroppedItemLineParser(LineParser):
    """"+> [N] Got item a, item b"."""

    BEFORE_ITEMS = re.compile(r"^.*?\]\s*Got\s*")

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("item_found", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        found_on_turn = first_number(line)
        interval = holder.last_turn_spent
        for name in re.split(r",\s*", self.BEFORE_ITEMS.sub("", line, count=1)):
            if name:
                interval.add_dropped_item(Item(name, 1, found_on_turn))


class ConsumableLineParser(LineParser):
    """"o> Ate 2 hell ramen (12 adventures gained) [0,0,10]"."""

    PREFIX = re.compile(r"^\s*o>\s*\w+\s+\d*\s*")
    SUFFIX = re.compile(r"(?:\s*\(.*\))?\s*(?:\[[-?\d,]+\])?$")
    ADVENTURE_GAIN = re.compile(r"\((\d+) adventures gained\)")

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("consumed", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        name = self.SUFFIX.sub("", self.PREFIX.sub("", line, count=1), count=1)
        amount = first_number(self.PREFIX.match(line).group(0)) or 1
        gained = self.ADVENTURE_GAIN.search(line)
        adventure_gain = int(gained.group(1)) if gained else 0
        stats = parse_statgain_brackets(line)

        if "Ate" in line:
            version = ConsumableVersion.FOOD
        elif "Drank" in line:
            version = ConsumableVersion.BOOZE
        elif context.reference.spleen_hit(name) > 0 and adventure_gain > 0:
            version = ConsumableVersion.SPLEEN
        else:
            version = ConsumableVersion.OTHER

        interval = holder.last_turn_spent
        if isinstance(interval, AbstractTurnInterval):
            used_on = interval.start_turn + interval.total_turns // 2
        else:
            used_on = interval.turn_number
        interval.add_consumable_used(
            Consumable(
                name,
                amount,
                adventure_gain,
                version,
                used_on,
                holder.last_day_change.day_number,
                Statgain(*stats) if stats else Statgain(),
            )
        )


class RundownFamiliarChangeLineParser(LineParser):
    """"-> Turn [N] Familiar Name (N lbs)"."""

    BEFORE_NAME = re.compile(r"^.*\]\s*")
    AFTER_NAME = re.compile(r"\s*\(.*\)\s*$")

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("familiar_changed", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn_number = first_number(line)
        if holder.parsed_log_creator == ParsedLogCreator.AFH_PARSER:
            turn_number -= 1
        name = self.AFTER_NAME.sub("", self.BEFORE_NAME.sub("", line, count=1))
        holder.add_familiar_change(FamiliarChange(name, max(turn_number, 0)))


class RundownPullLineParser(LineParser):
    """"#> Turn [N] pulled 1 foo, 2 bar"."""

    BEFORE_PULLS = re.compile(r"^.*\]\s*pulled\s*")

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("pull", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn_number = first_number(line)
        day_number = holder.last_day_change.day_number
        for pulled in re.split(r",\s*", self.BEFORE_PULLS.sub("", line, count=1)):
            amount, _, item_name = pulled.partition(" ")
            if not amount.isdigit() or not item_name:
                logger.warning(f"Skipping unreadable pull '{pulled}' on turn {turn_number}")
                continue
            holder.add_pull(Pull(item_name, int(amount), turn_number, day_number))


class RundownFreeRunawaysLineParser(LineParser):
    """"&> 2 \\ 3 free retreats": successful and attempted runaways."""

    def is_compatible(self, line: str) -> bool:
        return patterns.matches("free_runaways_usage", line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        numbers = patterns.extract_numbers(line)
        successful, attempted = numbers[0], numbers[1]
        interval = holder.last_turn_spent
        interval.free_runaways = successful
        if isinstance(interval, SimpleTurnInterval):
            interval.set_unsuccessful_free_runaways(max(attempted - successful, 0))


class NamedTurnLineParser(LineParser):
    """
    Rundown lines that name something that happened on a turn.

    Args:
        pattern_name: Name of the pattern recognizing the line
        name_prefix: Regex matching everything before the name
        target: ParserContext list collecting the results, or None to
            record hunted combats on the holder
    """

    def __init__(self, pattern_name: str, name_prefix: str, target: Optional[str] = None):
        self.pattern_name = pattern_name
        self.name_prefix = re.compile(name_prefix)
        self.target = target

    def is_compatible(self, line: str) -> bool:
        return patterns.matches(self.pattern_name, line)

    def parse(self, line: str, holder: LogDataHolder, context: ParserContext) -> None:
        turn_number = first_number(line)
        name = self.name_prefix.sub("", line, count=1).strip()
        if not name:
            return
        named = NamedTurn(name, turn_number)
        if self.target is None:
            holder.add_hunted_combat(named)
        else:
            getattr(context, self.target).append(named)


def encounter_line_parsers() -> List[LineParser]:
    """Line parsers for the body of an encounter block, in priority order."""
    return [
        ItemAcquisitionLineParser(),
        SkillCastLineParser(),
        MeatLineParser(MeatGainType.ENCOUNTER),
        MeatSpentLineParser(),
        StatLineParser(),
        MPGainLineParser(MPGainType.ENCOUNTER),
        CombatRecognizerLineParser(),
        EquipmentLineParser(),
        OnTheTrailLineParser(),
        FreeRunawaysLineParser(),
        DisintegrateLineParser(),
        StarfishMPGainLineParser(),
        RedRayStatsLineParser(),
        CombatItemUsedLineParser(),
        NotesLineParser(),
    ]


def other_line_parsers() -> List[LineParser]:
    """Line parsers for blocks that belong to no turn of their own."""
    return [
        ItemAcquisitionLineParser(),
        SkillCastLineParser(),
        FamiliarChangeLineParser(),
        MeatLineParser(MeatGainType.OTHER),
        MeatSpentLineParser(),
        StatLineParser(),
        MPGainLineParser(MPGainType.NOT_ENCOUNTER),
        EquipmentLineParser(),
        PullLineParser(),
        PoolMPBuffLineParser(),
        DayChangeLineParser(),
        LearnedSkillLineParser(),
        NotesLineParser(),
    ]


def rundown_line_parsers() -> List[LineParser]:
    """Line parsers for the turn rundown of a pre-parsed log."""
    return [
        TurnsSpentLineParser(),
        DroppedItemLineParser(),
        ConsumableLineParser(),
        RundownFamiliarChangeLineParser(),
        RundownPullLineParser(),
        RundownFreeRunawaysLineParser(),
        DayChangeLineParser(),
        NamedTurnLineParser("semirare", r"^.*?Semirare:\s*", "semirares"),
        NamedTurnLineParser("badmoon", r"^.*?Badmoon:\s*", "badmoon_adventures"),
        NamedTurnLineParser("hunted_combat", r"^.*Started hunting\s+"),
        NamedTurnLineParser("disintegrated_combat", r"^.*Disintegrated\s+", "disintegrated_combats"),
        NotesLineParser(),
    ]
