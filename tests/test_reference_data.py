"""
Tests for the reference data service.

Tests table lookups, cached tables and downloading replacement tables.
"""

import json
import sys
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from ascension_log.exceptions import ReferenceDataError  # noqa: E402
from ascension_log.logdata.turn_actions import EquipmentChange  # noqa: E402
from ascension_log.services import reference_data  # noqa: E402
from ascension_log.services.reference_data import (  # noqa: E402
    BUNDLED_TABLES,
    TABLES_FILE_NAME,
    Outfit,
    ReferenceDataService,
    get_reference_data,
)


def bundled_tables():
    with open(BUNDLED_TABLES, "r", encoding="utf-8") as f:
        return json.load(f)


class TestLookups:
    """Tests for lookups against the bundled tables."""

    def test_consumable_hits(self):
        """Test organ hits by consumable name."""
        service = ReferenceDataService()
        assert service.fullness_hit("hell ramen") == 6
        assert service.drunkenness_hit("gimlet") == 4
        assert service.spleen_hit("agua de vida") == 4

    def test_unknown_names_return_zero(self):
        """Test that unknown names give 0 instead of failing."""
        service = ReferenceDataService()
        assert service.fullness_hit("no such food") == 0
        assert service.skill_mp_cost("no such skill") == 0
        assert service.mp_from_equipment("no such hat") == 0

    def test_names_are_normalized(self):
        """Test that lookups ignore case and non-ASCII characters."""
        service = ReferenceDataService()
        assert service.skill_mp_cost("Saucestorm") == 12
        assert service.skill_mp_cost("Sauceéstorm") == 12

    def test_mp_cost_offset(self):
        """Test the summed skill cost offset of worn equipment."""
        service = ReferenceDataService()
        assert service.mp_cost_offset(EquipmentChange(0, hat="jewel-eyed wizard hat")) == -1
        assert service.mp_cost_offset(EquipmentChange(0)) == 0

    def test_mp_cost_offset_floor(self):
        """Test that the offset never goes below -3."""
        service = ReferenceDataService()
        equipment = EquipmentChange(
            0,
            acc1="stainless steel solitaire",
            acc2="baconstone bracelet",
            acc3="brimstone bracelet",
        )
        assert service.mp_cost_offset(equipment) == -3

    def test_outfit(self):
        """Test outfit slot lookups."""
        service = ReferenceDataService()
        outfit = service.outfit("Mining Gear")
        assert outfit.hat and outfit.weapon and outfit.pants
        assert not outfit.shirt
        assert service.outfit("Unknown Outfit") == Outfit.NO_CHANGE

    def test_encounter_sets(self):
        """Test semirare, Bad Moon and wandering encounter lookups."""
        service = ReferenceDataService()
        assert service.is_semirare_encounter("Lunchboxing")
        assert service.is_badmoon_encounter("Mandatory Fun")
        assert service.is_badmoon_encounter("Flowers for Algernon")
        assert service.is_wandering_encounter("Ninja Snowman Assassin")
        assert not service.is_semirare_encounter("spooky mummy")


class TestTablesFile:
    """Tests for choosing and loading the tables file."""

    def test_cached_tables_preferred(self, tmp_path):
        """Test that tables in the data directory replace the bundled ones."""
        tables = bundled_tables()
        tables["skills"] = {"saucestorm": 99}
        (tmp_path / TABLES_FILE_NAME).write_text(json.dumps(tables), encoding="utf-8")

        service = ReferenceDataService(str(tmp_path))
        assert service.skill_mp_cost("saucestorm") == 99

    def test_empty_data_dir_uses_bundled(self, tmp_path):
        """Test that a data directory without tables falls back to the bundled ones."""
        assert ReferenceDataService(str(tmp_path)).skill_mp_cost("saucestorm") == 12

    def test_incomplete_tables(self, tmp_path):
        """Test that tables missing a section are rejected."""
        (tmp_path / TABLES_FILE_NAME).write_text(json.dumps({"skills": {}}), encoding="utf-8")
        with pytest.raises(ReferenceDataError):
            ReferenceDataService(str(tmp_path))

    def test_unreadable_tables(self, tmp_path):
        """Test that invalid JSON is rejected."""
        (tmp_path / TABLES_FILE_NAME).write_text("{not json", encoding="utf-8")
        with pytest.raises(ReferenceDataError):
            ReferenceDataService(str(tmp_path))

    def test_shared_instance(self):
        """Test that get_reference_data returns one shared instance."""
        with patch.object(reference_data, "_reference_data", None):
            first = get_reference_data()
            assert get_reference_data() is first


class TestRefresh:
    """Tests for downloading replacement tables."""

    @patch("ascension_log.services.reference_data.requests.get")
    def test_refresh_stores_tables(self, mock_get, tmp_path):
        """Test that downloaded tables are stored and loaded."""
        tables = bundled_tables()
        tables["skills"] = {"saucestorm": 20}
        mock_response = MagicMock()
        mock_response.json.return_value = tables
        mock_get.return_value = mock_response

        service = ReferenceDataService(str(tmp_path / "data"))
        refreshed = service.refresh("https://example.com/tables.json")
        assert refreshed is not service
        assert refreshed.skill_mp_cost("saucestorm") == 20
        assert service.skill_mp_cost("saucestorm") == 12
        assert ReferenceDataService(str(tmp_path / "data")).skill_mp_cost("saucestorm") == 20
        assert (tmp_path / "data" / TABLES_FILE_NAME).exists()
        mock_get.assert_called_once_with("https://example.com/tables.json", timeout=30)

    @patch("ascension_log.services.reference_data.requests.get")
    def test_refresh_network_error(self, mock_get, tmp_path):
        """Test that a failed download keeps the current tables."""
        mock_get.side_effect = requests.ConnectionError("offline")

        service = ReferenceDataService(str(tmp_path))
        assert not service.refresh("https://example.com/tables.json")
        assert service.skill_mp_cost("saucestorm") == 12
        assert not (tmp_path / TABLES_FILE_NAME).exists()

    @patch("ascension_log.services.reference_data.requests.get")
    def test_refresh_invalid_tables(self, mock_get, tmp_path):
        """Test that incomplete downloaded tables are not stored."""
        mock_response = MagicMock()
        mock_response.json.return_value = {"skills": {"saucestorm": 1}}
        mock_get.return_value = mock_response

        service = ReferenceDataService(str(tmp_path))
        assert not service.refresh("https://example.com/tables.json")
        assert service.skill_mp_cost("saucestorm") == 12
        assert not (tmp_path / TABLES_FILE_NAME).exists()

    @patch("ascension_log.services.reference_data.requests.get")
    def test_refresh_replaces_shared_instance(self, mock_get, tmp_path):
        """Test that refreshing the shared tables swaps in a new shared instance."""
        tables = bundled_tables()
        tables["skills"] = {"saucestorm": 20}
        mock_response = MagicMock()
        mock_response.json.return_value = tables
        mock_get.return_value = mock_response

        shared = get_reference_data(str(tmp_path))
        refreshed = shared.refresh("https://example.com/tables.json")
        assert get_reference_data() is refreshed
        assert shared.skill_mp_cost("saucestorm") == 12

    @patch("ascension_log.services.reference_data.requests.get")
    def test_refresh_of_other_instance_keeps_shared(self, mock_get, tmp_path):
        """Test that refreshing a private instance leaves the shared one alone."""
        mock_response = MagicMock()
        mock_response.json.return_value = bundled_tables()
        mock_get.return_value = mock_response

        shared = get_reference_data()
        assert ReferenceDataService(str(tmp_path)).refresh("https://example.com/tables.json")
        assert get_reference_data() is shared

    def test_refresh_without_data_dir(self):
        """Test that refreshing needs a data directory."""
        assert not ReferenceDataService().refresh("https://example.com/tables.json")
