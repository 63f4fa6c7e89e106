"""
Countable entities.

Items, skills, consumables and combat items are named, counted things
that merge by summing their counts. Sorting uses a case-insensitive name
key, while equality compares every field; the two are kept apart on
purpose since callers depend on each separately.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Generic, Iterable, List, TypeVar

from ..exceptions import CountableMergeError
from .values import NO_STATS, Statgain


@dataclass
class Countable:
    """Base for all named, counted entities."""

    name: str
    amount: int = 1

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Amount of '{self.name}' must not be below 0.")

    def merge(self, other: "Countable") -> None:
        """
        Merge another entity with the same name into this one.

        Args:
            other: Entity to merge

        Raises:
            CountableMergeError: If the names differ
        """
        if other.name != self.name:
            raise CountableMergeError(self.name, other.name)
        self.amount += other.amount

    def new_instance(self) -> "Countable":
        """Return a detached deep copy."""
        return copy.deepcopy(self)

    def sort_key(self) -> str:
        return self.name.lower()

    @property
    def turn_number(self) -> int:
        return 0


@dataclass
class Item(Countable):
    """Item drop."""

    found_on_turn: int = 0

    def __post_init__(self):
        if self.amount < 1:
            raise ValueError(f"Item '{self.name}' needs an amount of at least 1.")

    def merge(self, other: "Item") -> None:
        super().merge(other)
        self.found_on_turn = min(self.found_on_turn, other.found_on_turn)

    @property
    def turn_number(self) -> int:
        return self.found_on_turn

    def __str__(self) -> str:
        return f"{self.name} ({self.amount})"


@dataclass
class Skill(Countable):
    """Skill cast, with the total MP it cost."""

    amount: int = 0
    mp_cost: int = 0
    turn_number_of_cast: int = 0

    @property
    def casts(self) -> int:
        return self.amount

    def merge(self, other: "Skill") -> None:
        super().merge(other)
        self.mp_cost += other.mp_cost
        self.turn_number_of_cast = min(self.turn_number_of_cast, other.turn_number_of_cast)

    @property
    def turn_number(self) -> int:
        return self.turn_number_of_cast

    def __str__(self) -> str:
        return f"Cast {self.amount} {self.name}"


@dataclass
class CombatItem(Countable):
    """Item thrown during combat."""

    turn_used: int = 0

    def merge(self, other: "CombatItem") -> None:
        super().merge(other)
        self.turn_used = min(self.turn_used, other.turn_used)

    @property
    def turn_number(self) -> int:
        return self.turn_used


class ConsumableVersion(Enum):
    FOOD = "food"
    BOOZE = "booze"
    SPLEEN = "spleen"
    OTHER = "other"


@dataclass
class Consumable(Countable):
    """Eaten, drunk, chewed or used consumable."""

    adventure_gain: int = 0
    consumable_version: ConsumableVersion = ConsumableVersion.OTHER
    turn_number_of_usage: int = 0
    day_number_of_usage: int = 1
    statgain: Statgain = NO_STATS

    def __post_init__(self):
        if self.amount < 1:
            raise ValueError(f"Consumable '{self.name}' needs an amount of at least 1.")
        if self.adventure_gain < 0:
            raise ValueError(f"Adventure gain of '{self.name}' must not be below 0.")

    def merge(self, other: "Consumable") -> None:
        super().merge(other)
        self.adventure_gain += other.adventure_gain
        self.statgain = self.statgain.add(other.statgain)
        self.turn_number_of_usage = min(self.turn_number_of_usage, other.turn_number_of_usage)

    @property
    def turn_number(self) -> int:
        return self.turn_number_of_usage

    def __str__(self) -> str:
        return f"{self.name} ({self.amount}) {self.adventure_gain} adventures {self.statgain}"


C = TypeVar("C", bound=Countable)


@dataclass
class CountableSet(Generic[C]):
    """Countables keyed by name; adding an existing name merges."""

    _elements: Dict[str, C] = field(default_factory=dict)

    def add(self, element: C) -> None:
        existing = self._elements.get(element.name)
        if existing is None:
            self._elements[element.name] = element.new_instance()
        else:
            existing.merge(element)

    def add_all(self, elements: Iterable[C]) -> None:
        for element in elements:
            self.add(element)

    def set_elements(self, elements: Iterable[C]) -> None:
        self._elements.clear()
        self.add_all(elements)

    def elements(self) -> List[C]:
        return list(self._elements.values())

    def contains(self, element: C) -> bool:
        return self._elements.get(element.name) == element

    def contains_by_name(self, name: str) -> bool:
        return name in self._elements

    def get(self, name: str):
        return self._elements.get(name)

    def clear(self) -> None:
        self._elements.clear()

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self):
        return iter(self._elements.values())


def sorted_by_name(elements: Iterable[C]) -> List[C]:
    """Sort countables by their case-insensitive name."""
    return sorted(elements, key=lambda c: c.sort_key())
