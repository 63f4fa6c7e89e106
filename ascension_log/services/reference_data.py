"""
Reference Data Service.

Provides lookups against the bundled game data tables: consumable organ
hits, skill MP costs, MP-relevant equipment, outfits and the special
encounter name sets (semirares, Bad Moon and wandering adventures).
Replacement tables can be downloaded into a cache directory.
"""

import json
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Optional

import requests

from ..exceptions import ReferenceDataError

logger = logging.getLogger(__name__)

TABLES_FILE_NAME = "reference_tables.json"
BUNDLED_TABLES = Path(__file__).parent / "data" / TABLES_FILE_NAME

REQUIRED_TABLES = (
    "fullness",
    "inebriety",
    "spleen",
    "skills",
    "mp_regen_equipment",
    "mp_cost_equipment",
    "outfits",
    "semirares",
    "badmoon",
    "wandering",
)

MIN_MP_COST_OFFSET = -3
FLOWERS_FOR_BAD_MOON = "flowers for "

_NON_ASCII = re.compile(r"[^\x00-\x7F]")


def _normalize(name: str) -> str:
    return _NON_ASCII.sub("", name).lower()


@dataclass(frozen=True)
class Outfit:
    """Equipment slots an outfit occupies when put on."""

    outfit_name: str
    hat: bool = False
    weapon: bool = False
    offhand: bool = False
    shirt: bool = False
    pants: bool = False
    acc1: bool = False
    acc2: bool = False
    acc3: bool = False


Outfit.NO_CHANGE = Outfit("no change")


class ReferenceDataService:
    """
    Service for looking up game reference data.

    Tables are read once on construction and never change afterwards,
    so a single instance can be shared between threads. Refreshing builds
    a new instance.
    """

    def __init__(self, data_dir: Optional[str] = None, tables: Optional[dict] = None):
        """
        Initialize the reference data service.

        Args:
            data_dir: Directory holding downloaded tables. If it has no
                tables file, the bundled tables are used.
            tables: Already loaded tables to index instead of reading a file
        """
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._fullness: Dict[str, int] = {}
        self._inebriety: Dict[str, int] = {}
        self._spleen: Dict[str, int] = {}
        self._skills: Dict[str, int] = {}
        self._mp_regen_equipment: Dict[str, int] = {}
        self._mp_cost_equipment: Dict[str, int] = {}
        self._outfits: Dict[str, Outfit] = {}
        self._semirares: FrozenSet[str] = frozenset()
        self._badmoon: FrozenSet[str] = frozenset()
        self._wandering: FrozenSet[str] = frozenset()
        if tables is None:
            self._load(self._tables_path())
        else:
            self._index(tables)

    def _tables_path(self) -> Path:
        if self.data_dir is not None:
            cached = self.data_dir / TABLES_FILE_NAME
            if cached.exists():
                return cached
        return BUNDLED_TABLES

    def _load(self, path: Path) -> None:
        """
        Read and index the tables file.

        Raises:
            ReferenceDataError: If the file is missing, unreadable or incomplete
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                tables = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ReferenceDataError(f"Failed to load reference tables from {path}: {e}") from e
        self._index(tables)
        logger.debug(f"Loaded reference tables from {path}")

    def _index(self, tables: dict) -> None:
        missing = [name for name in REQUIRED_TABLES if name not in tables]
        if missing:
            raise ReferenceDataError(f"Reference tables incomplete, missing: {', '.join(missing)}")

        def numbers(table: str) -> Dict[str, int]:
            return {_normalize(k): int(v) for k, v in tables[table].items()}

        self._fullness = numbers("fullness")
        self._inebriety = numbers("inebriety")
        self._spleen = numbers("spleen")
        self._skills = numbers("skills")
        self._mp_regen_equipment = numbers("mp_regen_equipment")
        self._mp_cost_equipment = numbers("mp_cost_equipment")
        self._outfits = {
            _normalize(name): Outfit(name, **{slot: True for slot in slots})
            for name, slots in tables["outfits"].items()
        }
        self._semirares = frozenset(_normalize(n) for n in tables["semirares"])
        self._badmoon = frozenset(_normalize(n) for n in tables["badmoon"])
        self._wandering = frozenset(_normalize(n) for n in tables["wandering"])

    def refresh(self, url: str) -> Optional["ReferenceDataService"]:
        """
        Download replacement tables into the data directory.

        This instance keeps its tables. The downloaded ones are loaded into
        a new instance, which also replaces the shared instance if this
        one is it.

        Args:
            url: Location of a JSON tables file

        Returns:
            The service holding the new tables, or None if the download failed

        Note:
            Logs errors but doesn't raise exceptions.
        """
        if self.data_dir is None:
            logger.error("No data directory configured, cannot store downloaded tables")
            return None
        try:
            logger.info(f"Downloading reference tables from {url}...")
            response = requests.get(url, timeout=30)
            response.raise_for_status()
            tables = response.json()
            refreshed = ReferenceDataService(str(self.data_dir), tables)

            self.data_dir.mkdir(parents=True, exist_ok=True)
            target = self.data_dir / TABLES_FILE_NAME
            with open(target, "w", encoding="utf-8") as f:
                json.dump(tables, f, indent=2, sort_keys=True)
            logger.info(f"Stored reference tables in {target}")

        except requests.RequestException as e:
            logger.error(f"Failed to download reference tables: {e}")
            return None
        except (ValueError, ReferenceDataError) as e:
            logger.error(f"Downloaded reference tables are invalid: {e}")
            return None
        except IOError as e:
            logger.error(f"Failed to write reference tables: {e}")
            return None

        global _reference_data
        with _reference_data_lock:
            if _reference_data is self:
                _reference_data = refreshed
        return refreshed


    # Consumables

    def fullness_hit(self, consumable_name: str) -> int:
        return self._fullness.get(_normalize(consumable_name), 0)

    def drunkenness_hit(self, consumable_name: str) -> int:
        return self._inebriety.get(_normalize(consumable_name), 0)

    def spleen_hit(self, consumable_name: str) -> int:
        return self._spleen.get(_normalize(consumable_name), 0)

    # Skills and equipment

    def skill_mp_cost(self, skill_name: str) -> int:
        return self._skills.get(_normalize(skill_name), 0)

    def mp_cost_offset(self, equipment) -> int:
        """
        MP cost offset of skill casts for the given equipment.

        Args:
            equipment: EquipmentChange in use

        Returns:
            Summed offset of all slots, but never below -3
        """
        offset = sum(
            self._mp_cost_equipment.get(_normalize(item), 0)
            for item in equipment.slots().values()
        )
        return max(offset, MIN_MP_COST_OFFSET)

    def mp_from_equipment(self, equipment_name: str) -> int:
        """MP regenerated per turn by a piece of equipment."""
        return self._mp_regen_equipment.get(_normalize(equipment_name), 0)

    def outfit(self, outfit_name: str) -> Outfit:
        return self._outfits.get(_normalize(outfit_name), Outfit.NO_CHANGE)

    # Encounters

    def is_semirare_encounter(self, encounter_name: str) -> bool:
        return _normalize(encounter_name) in self._semirares

    def is_badmoon_encounter(self, encounter_name: str) -> bool:
        name = _normalize(encounter_name)
        return name in self._badmoon or name.startswith(FLOWERS_FOR_BAD_MOON)

    def is_wandering_encounter(self, encounter_name: str) -> bool:
        return _normalize(encounter_name) in self._wandering


# Singleton instance
_reference_data: Optional[ReferenceDataService] = None
_reference_data_lock = threading.Lock()


def get_reference_data(data_dir: Optional[str] = None) -> ReferenceDataService:
    """
    Get the shared ReferenceDataService instance.

    The first call decides the data directory; later calls return the
    same instance.
    """
    global _reference_data
    with _reference_data_lock:
        if _reference_data is None:
            _reference_data = ReferenceDataService(data_dir)
        return _reference_data
