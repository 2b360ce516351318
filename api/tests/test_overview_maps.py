"""
Unit tests for the overview map data preparation.
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.overview_maps import (
    DENSITY_COLORS,
    collect_us_pins,
    color_world_features,
    country_location_counts,
    density_bin,
    density_legend,
    normalize_country_name,
)


class TestDensityBins:

    @pytest.mark.parametrize("count,expected", [
        (0, 0), (1, 1), (2, 2), (5, 2), (6, 3), (10, 3),
        (11, 4), (25, 4), (26, 5), (50, 5), (51, 6), (100, 6), (101, 7), (5000, 7),
    ])
    def test_bin_boundaries(self, count, expected):
        assert density_bin(count) == expected

    def test_legend_has_one_entry_per_colour(self):
        legend = density_legend()
        assert [entry["color"] for entry in legend] == DENSITY_COLORS
        assert legend[0]["label"] == "No locations"


class TestCountryCounts:

    @pytest.mark.asyncio
    async def test_us_states_fold_into_united_states(self, loader):
        international = [await loader.load("Canada"), await loader.load("Austria")]
        us_states = await loader.load_all_us_states()

        counts = country_location_counts(international, us_states)

        assert counts == {"Canada": 3, "Austria": 1, "United States": 3}

    def test_name_normalization_aliases(self):
        assert normalize_country_name("United States") == normalize_country_name("United States of America")
        assert normalize_country_name("Czech Republic") == normalize_country_name("Czechia")
        assert normalize_country_name(None) == ""

    @pytest.mark.asyncio
    async def test_color_world_features(self, loader):
        world = await loader.load_geojson("country")
        counts = {"Canada": 3, "Austria": 1, "United States": 120, "Czech Republic": 0}

        colored = color_world_features(world, counts)

        by_name = {
            (feature["properties"].get("ADMIN") or feature["properties"].get("NAME")): feature["properties"]
            for feature in colored["features"]
        }
        assert by_name["Canada"]["location_count"] == 3
        assert by_name["Canada"]["fill_color"] == DENSITY_COLORS[2]
        assert by_name["Austria"]["fill_color"] == DENSITY_COLORS[1]
        assert by_name["United States of America"]["fill_color"] == DENSITY_COLORS[7]
        assert by_name["Czechia"]["location_count"] == 0
        # Source GeoJSON is left untouched
        assert "fill_color" not in world["features"][0]["properties"]

    def test_color_world_features_without_geojson(self):
        assert color_world_features(None, {"Canada": 1}) is None


class TestUsPins:

    @pytest.mark.asyncio
    async def test_pins_skip_locations_without_coordinates(self, loader):
        pins = collect_us_pins(await loader.load_all_us_states())

        assert [pin["title"] for pin in pins] == [
            "Los Angeles - Wilshire Blvd",
            "San Francisco - Market St",
        ]
        assert pins[0]["state"] == "California"
        assert pins[0]["latitude"] == pytest.approx(34.0617)
