"""
Lexical pattern library.

Compiled regular expressions and small matching helpers for the line
shapes found in ascension logs. Every helper returns None (or an empty
list) for a non-matching line instead of raising, so callers can probe
several patterns in a row.
"""

import datetime
import re
from typing import List, Optional, Tuple

MUSCLE_SUBSTAT_NAMES = frozenset(
    ["Beefiness", "Fortitude", "Muscleboundness", "Strengthliness", "Strongness"]
)
MYST_SUBSTAT_NAMES = frozenset(
    ["Enchantedness", "Magicalness", "Mysteriousness", "Wizardliness"]
)
MOXIE_SUBSTAT_NAMES = frozenset(["Cheek", "Chutzpah", "Roguishness", "Sarcasm", "Smarm"])
MP_NAMES = frozenset(["Muscularity Points", "Mana Points", "Mojo Points"])

# Skill name -> character class name for whom the skill costs nothing.
TRIVIAL_COMBAT_SKILLS = {
    "clobber": "Seal Clubber",
    "toss": "Turtle Tamer",
    "spaghetti spear": "Pastamancer",
    "salsaball": "Sauceror",
    "suckerpunch": "Disco Bandit",
    "sing": "Accordion Thief",
}

TRACKED_COMBAT_ITEMS = frozenset(["alpine watercolor set", "talisman of renenutet"])

BANISH_SKILLS = frozenset(
    [
        "curse of vacation",
        "batter up",
        "talk about politics",
        "creepy grin",
        "banishing shout",
        "howl of the alpha",
        "peel out",
        "walk away from explosion",
        "thunder clap",
    ]
)

BANISH_ITEMS = frozenset(
    [
        "louder than bomb",
        "crystal skull",
        "ice house",
        "divine champagne popper",
        "harold's bell",
        "pulled indigo taffy",
        "classy monkey",
        "dirty stinkbomb",
        "deathchucks",
        "smoke grenade",
        "cocktail napkin",
    ]
)

SPECIAL_CONSUMABLES = frozenset(
    [
        "steel margarita",
        "steel lasagna",
        "steel-scented air freshener",
        "spice melange",
        "synthetic dog hair pill",
        "mojo filter",
    ]
)

COMBAT_ROUND_PREFIX = "Round "
ACQUIRE_EFFECT_PREFIX = "You acquire an effect:"
AFTER_BATTLE_PREFIX = "After Battle: "

PATTERNS = {
    "name_colon_number": re.compile(r"^\S.*:\s+\d+.*"),
    "stat_triple": re.compile(r"^\s*([^:]+?):\s+(-?\d+)\s+(-?\d+)\s+(-?\d+).*"),
    "turns_used": re.compile(r"^\[\d+(?:-\d+)?\].+"),
    "area_statgain": re.compile(r".*\[-?\d+,-?\d+,-?\d+\].*"),
    "item_found": re.compile(r"^\s*\+>.+"),
    "consumed": re.compile(r"^\s*o>\s(?:Ate|Drank|Used|Chew).+"),
    "familiar_changed": re.compile(r"^\s*->\sTurn.+"),
    "pull": re.compile(r"^\s*#>\sTurn\s\[\d+\]\spulled.+"),
    "day_change": re.compile(r"^=+Day\s+(?:[2-9]|\d\d+).*"),
    "semirare": re.compile(r"^\s*#>\s\[\d+\]\sSemirare:\s.+"),
    "badmoon": re.compile(r"^\s*%>.+"),
    "hunted_combat": re.compile(r"^\s*\*>\s\[\d+\]\sStarted\shunting.*"),
    "disintegrated_combat": re.compile(r"^\s*\}> \[\d+\] Disintegrated .*"),
    "free_runaways_usage": re.compile(r"^\s*&> \d+ \\ \d+ free retreats.*"),
    "consumable_used": re.compile(
        r"(?:(?:use|eat|drink|chew)|Buy and (?:eat|drink))(?: \d+)? .+"
    ),
    "gain_lose": re.compile(r"^(?:After Battle: )?You (?:gain|lose) \d*,?\d+ [\w\s]+"),
    "gain_lose_capture": re.compile(
        r"^(?:After Battle: )?You (gain|lose) (\d*,?\d+) ([\w\s]+)"
    ),
    "usual_format_log_name": re.compile(r".+-\d{8}$"),
}

_NUMBER = re.compile(r"-?\d[\d,]*")
_UNSIGNED = re.compile(r"\d+")
_STATGAIN_BRACKET = re.compile(r"\[(-?\d+),(-?\d+),(-?\d+)\]")
_LOG_DATE = re.compile(r"\d{8}")


def matches(name: str, line: str) -> bool:
    """Check a line against one of the named patterns."""
    return PATTERNS[name].match(line) is not None


def match_stat_triple(line: str) -> Optional[Tuple[str, int, int, int]]:
    """
    Match a "name: int int int" line.

    Args:
        line: Line to match

    Returns:
        Tuple of (name, first, second, third) or None
    """
    m = PATTERNS["stat_triple"].match(line)
    if not m:
        return None
    return m.group(1).strip(), int(m.group(2)), int(m.group(3)), int(m.group(4))


def match_name_number(line: str) -> Optional[Tuple[str, int]]:
    """
    Match a "name: number" line.

    The name may contain punctuation and further colons; the number is
    taken after the last colon.

    Returns:
        Tuple of (name, number) or None
    """
    if not PATTERNS["name_colon_number"].match(line):
        return None
    name, _, rest = line.rpartition(":")
    number = first_number(rest)
    if not name or number is None:
        return None
    return name.strip(), number


def extract_numbers(line: str) -> List[int]:
    """Return every unsigned integer in the line, thousands commas allowed."""
    return [int(token) for token in _UNSIGNED.findall(line.replace(",", ""))]


def first_number(line: str) -> Optional[int]:
    """Return the first unsigned integer in the line, or None."""
    numbers = extract_numbers(line)
    return numbers[0] if numbers else None


def number_after_prefix(line: str, prefix: str) -> Optional[int]:
    """
    Strip a literal prefix and parse the remainder as an integer.

    Returns:
        The integer, or None if the prefix is missing or the rest is not numeric
    """
    if not line.startswith(prefix):
        return None
    rest = line[len(prefix):].strip().replace(",", "")
    m = _NUMBER.match(rest)
    if not m:
        return None
    return int(m.group(0))


def parse_gain_lose(line: str) -> Optional[Tuple[int, str]]:
    """
    Parse a "You gain/lose N thing" line.

    Returns:
        Tuple of (signed amount, unit name) or None
    """
    m = PATTERNS["gain_lose_capture"].match(line)
    if not m:
        return None
    amount = int(m.group(2).replace(",", ""))
    if m.group(1) == "lose":
        amount = -amount
    return amount, m.group(3).strip()


def parse_statgain_brackets(line: str) -> Optional[Tuple[int, int, int]]:
    """Return the last "[m,y,x]" triple in the line, or None."""
    found = _STATGAIN_BRACKET.findall(line)
    if not found:
        return None
    mus, myst, mox = found[-1]
    return int(mus), int(myst), int(mox)


def substat_kind(name: str) -> Optional[str]:
    """Map a substat name to "mus", "myst" or "mox"."""
    if name in MUSCLE_SUBSTAT_NAMES:
        return "mus"
    if name in MYST_SUBSTAT_NAMES:
        return "myst"
    if name in MOXIE_SUBSTAT_NAMES:
        return "mox"
    return None


def log_date_from_filename(file_name: str) -> Optional[datetime.date]:
    """
    Read the ascension date (YYYYMMDD) from a log file name.

    The last eight-digit run in the name is used.

    Returns:
        Date or None if the name holds no valid date
    """
    found = _LOG_DATE.findall(file_name)
    if not found:
        return None
    try:
        return datetime.datetime.strptime(found[-1], "%Y%m%d").date()
    except ValueError:
        return None
