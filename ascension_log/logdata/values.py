"""
Immutable value types for stat, MP and meat gains.

Every add operation returns a new instance, so turns, intervals and
summaries can accumulate gains without sharing mutable state.
"""

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Statgain:
    """Substat gain split over muscle, mysticality and moxie."""

    mus: int = 0
    myst: int = 0
    mox: int = 0

    def add(self, other: "Statgain") -> "Statgain":
        return Statgain(self.mus + other.mus, self.myst + other.myst, self.mox + other.mox)

    @property
    def total(self) -> int:
        return self.mus + self.myst + self.mox

    def is_all_zero(self) -> bool:
        return self.mus == 0 and self.myst == 0 and self.mox == 0

    def __str__(self) -> str:
        return f"[{self.mus},{self.myst},{self.mox}]"


NO_STATS = Statgain()


@dataclass(frozen=True, order=True)
class MPGain:
    """MP gain broken down by source."""

    encounter: int = 0
    starfish: int = 0
    resting: int = 0
    out_of_encounter: int = 0
    consumable: int = 0

    def add(self, other: "MPGain") -> "MPGain":
        return MPGain(
            self.encounter + other.encounter,
            self.starfish + other.starfish,
            self.resting + other.resting,
            self.out_of_encounter + other.out_of_encounter,
            self.consumable + other.consumable,
        )

    @property
    def total(self) -> int:
        return (
            self.encounter
            + self.starfish
            + self.resting
            + self.out_of_encounter
            + self.consumable
        )


NO_MP = MPGain()


@dataclass(frozen=True, order=True)
class MeatGain:
    """Meat gained inside and outside of encounters, and meat spent."""

    encounter: int = 0
    other: int = 0
    spent: int = 0

    def __post_init__(self):
        if self.encounter < 0 or self.other < 0 or self.spent < 0:
            raise ValueError(f"Meat values must not be below 0: {self!r}")

    def add(self, other: "MeatGain") -> "MeatGain":
        return MeatGain(
            self.encounter + other.encounter,
            self.other + other.other,
            self.spent + other.spent,
        )

    @property
    def total_gain(self) -> int:
        return self.encounter + self.other


NO_MEAT = MeatGain()


@dataclass(frozen=True)
class FreeRunaways:
    """Attempted and successful free runaway counts."""

    attempted: int = 0
    successful: int = 0

    def __post_init__(self):
        if self.attempted < 0 or self.successful < 0:
            raise ValueError("Number of runaways must not be below 0.")
        if self.successful > self.attempted:
            raise ValueError("Successful runaways must not exceed attempted runaways.")

    def add(self, other: "FreeRunaways") -> "FreeRunaways":
        return FreeRunaways(self.attempted + other.attempted, self.successful + other.successful)

    def __str__(self) -> str:
        return f"{self.successful} / {self.attempted} free retreats"


NO_RUNAWAYS = FreeRunaways()
