"""
Unit tests for the location data loader.

Covers the three source shapes, the combined-file fallback, count
recomputation and the error kinds raised for bad identifiers and files.
"""

import json
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.country_document import CountryDocument, Region
from services.export_errors import MalformedSourceError, NotFoundError
from services.location_loader import (
    ALL_INTERNATIONAL_NAME,
    LocationDataLoader,
    country_key_from_filename,
    detect_shape,
    normalize_source,
)
from services.source_registry import SourceRegistry, SourceShape


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def city_shaped(name: str, cities):
    return {
        "state": name,
        "total_locations": sum(len(city["locations"]) for city in cities),
        "scraped_at": "2025-01-01T00:00:00",
        "state_data": {"cities": cities},
    }


class TestLoadShapes:
    """Each on-disk shape normalizes to the same document layout."""

    @pytest.mark.asyncio
    async def test_us_state_maps_cities_to_regions(self, loader):
        """US state cities become regions in source order."""
        document = await loader.load("California")

        assert document.country == "California"
        assert document.kind == "us_state"
        assert [region.region for region in document.regions] == ["Los Angeles", "San Francisco"]
        assert document.total_locations == 3
        assert document.regions[0].location_count == 2

    @pytest.mark.asyncio
    async def test_identifier_is_case_insensitive(self, loader):
        """Mixed-case and padded identifiers resolve to the same file."""
        document = await loader.load("  cALifornia ")
        assert document.country == "California"

    @pytest.mark.asyncio
    async def test_single_location_country(self, loader):
        """The country name stored under 'state' becomes the document country."""
        document = await loader.load("austria")

        assert document.country == "Austria"
        assert document.kind == "country"
        assert [region.region for region in document.regions] == ["Vienna"]
        assert document.total_locations == 1

    @pytest.mark.asyncio
    async def test_multi_location_country_recomputes_stale_counts(self, loader):
        """A declared region count that disagrees with the data is replaced."""
        document = await loader.load("Canada")

        vancouver = document.regions[1]
        assert vancouver.region == "Vancouver"
        assert vancouver.location_count == len(vancouver.locations) == 1
        assert document.total_locations == 3

    def test_equivalent_shapes_normalize_identically(self):
        """City-shaped and region-shaped sources with the same data agree."""
        location = {"title": "Main St", "address": "1 Main St", "latitude": "1.0", "longitude": "2.0"}
        single = {
            "state": "Kenya",
            "total_locations": 1,
            "scraped_at": "2025-01-01T00:00:00",
            "state_data": {"cities": [{"city_name": "Nairobi", "location_count": 1, "locations": [location]}]},
        }
        multi = {
            "country": "Kenya",
            "total_locations": 1,
            "scraped_at": "2025-01-01T00:00:00",
            "regions": [{"region": "Nairobi", "location_count": 1, "locations": [location]}],
        }

        from_single = normalize_source(single, SourceShape.SINGLE_LOCATION)
        from_multi = normalize_source(multi, SourceShape.MULTI_LOCATION)

        assert from_single.model_dump() == from_multi.model_dump()

    def test_numeric_and_blank_coordinates(self):
        """Numeric coordinates are kept as strings and blanks become None."""
        raw = city_shaped("Kenya", [{
            "city_name": "Nairobi",
            "locations": [
                {"title": "A", "latitude": -1.29, "longitude": 36.82},
                {"title": "B", "latitude": "", "longitude": "  "},
            ],
        }])
        document = normalize_source(raw, SourceShape.SINGLE_LOCATION)
        first, second = document.regions[0].locations

        assert first.latitude == "-1.29"
        assert first.coordinates == (-1.29, 36.82)
        assert second.latitude is None
        assert second.coordinates is None

    def test_null_display_fields_are_tolerated(self):
        """Null flags, text and list entries load instead of failing the file."""
        raw = {
            "country": "Spain",
            "regions": [{
                "region": "Madrid",
                "locations": [{
                    "title": None,
                    "address": None,
                    "is_premier": None,
                    "location_info": {
                        "operator_info": {"name": "Op", "verified": None},
                        "features": [
                            {"name": "Mail scanning", "available": None},
                            {"name": None, "available": True},
                        ],
                        "shipping_carriers": ["DHL", None],
                    },
                }],
            }],
        }

        document = normalize_source(raw, SourceShape.MULTI_LOCATION)
        location = document.regions[0].locations[0]

        assert location.title == ""
        assert location.address == ""
        assert location.is_premier is False
        assert location.is_verified is False
        assert [(f.name, f.available) for f in location.location_info.features] == [("Mail scanning", False)]
        assert location.location_info.shipping_carriers == ["DHL"]

    def test_empty_regions_are_allowed(self):
        """A document with no regions has zero locations."""
        raw = {"country": "Caribbean", "total_locations": 0, "regions": []}
        document = normalize_source(raw, SourceShape.MULTI_LOCATION)

        assert document.regions == []
        assert document.total_locations == 0

    def test_detect_shape(self):
        """Shapes are recognised from their distinguishing keys."""
        assert detect_shape({"country": "X", "regions": []}) == SourceShape.MULTI_LOCATION
        assert detect_shape({"state": "X", "state_data": {"cities": []}}) == SourceShape.SINGLE_LOCATION
        assert detect_shape({"name": "X"}) is None
        assert detect_shape([]) is None


class TestDocumentInvariants:
    """The canonical model rejects inconsistent counts."""

    def test_region_count_must_match_locations(self):
        with pytest.raises(ValueError):
            Region(region="Vienna", location_count=2, locations=[])

    def test_total_must_match_region_sum(self):
        region = Region(region="Vienna", location_count=0, locations=[])
        with pytest.raises(ValueError):
            CountryDocument(country="Austria", total_locations=5, regions=[region])

    @pytest.mark.asyncio
    async def test_iter_locations_pairs_each_location_with_its_region(self, loader):
        document = await loader.load("Canada")

        pairs = [(region.region, location.title) for region, location in document.iter_locations()]

        assert [name for name, _ in pairs] == ["Toronto", "Toronto", "Vancouver"]

    def test_schema_example(self):
        assert CountryDocument.model_json_schema()["example"]["country"] == "Austria"


class TestFallbackAndErrors:
    """Missing files, unknown identifiers and malformed sources."""

    @pytest.mark.asyncio
    async def test_missing_file_served_from_combined_file(self, loader):
        """Greece has no per-country file but is present in the combined file."""
        document = await loader.load("Greece")

        assert document.country == "Greece"
        assert [region.region for region in document.regions] == ["Athens"]

    @pytest.mark.asyncio
    async def test_fallback_accepts_city_shaped_entries(self, loader):
        """Malta is stored in the combined file in the city shape."""
        document = await loader.load("malta")

        assert document.country == "Malta"
        assert document.regions[0].region == "Valletta"

    @pytest.mark.asyncio
    async def test_unknown_identifier_raises_not_found(self, loader):
        with pytest.raises(NotFoundError) as exc_info:
            await loader.load("Atlantis")

        assert exc_info.value.identifier == "Atlantis"
        assert exc_info.value.to_dict()["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_known_but_absent_identifier_raises_not_found(self, loader):
        """A US state with no file and no fallback entry is not found."""
        with pytest.raises(NotFoundError):
            await loader.load("Wyoming")

    @pytest.mark.asyncio
    async def test_invalid_json_raises_malformed(self, tmp_path):
        """A malformed file without a fallback entry is reported as malformed."""
        registry = SourceRegistry(data_dir=tmp_path)
        path = registry.source_path("Texas", SourceShape.US_STATE)
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(MalformedSourceError) as exc_info:
            await LocationDataLoader(registry).load("texas")

        assert "Invalid JSON" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_wrong_shape_raises_malformed(self, tmp_path):
        """Valid JSON missing required keys is malformed."""
        registry = SourceRegistry(data_dir=tmp_path)
        write_json(registry.source_path("Texas", SourceShape.US_STATE), {"state": "Texas"})

        with pytest.raises(MalformedSourceError):
            await LocationDataLoader(registry).load("Texas")

    @pytest.mark.asyncio
    async def test_malformed_file_recovers_from_fallback(self, tmp_path):
        """The combined file is used when the per-country file is broken."""
        registry = SourceRegistry(data_dir=tmp_path)
        path = registry.source_path("Italy", SourceShape.SINGLE_LOCATION)
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2", encoding="utf-8")
        write_json(registry.combined_path, [
            city_shaped("Italy", [{"city_name": "Rome", "locations": [{"title": "Via Roma"}]}])
        ])

        document = await LocationDataLoader(registry).load("Italy")

        assert document.country == "Italy"
        assert document.total_locations == 1


class TestAggregates:
    """Merged loads and corpus iteration."""

    @pytest.mark.asyncio
    async def test_load_all_international_merges_regions(self, loader):
        """Every country with data contributes prefixed regions."""
        document = await loader.load_all_international()

        assert document.country == ALL_INTERNATIONAL_NAME
        assert document.kind == "country"
        assert [region.region for region in document.regions] == [
            "Canada - Toronto",
            "Canada - Vancouver",
            "Greece - Athens",
            "Austria - Vienna",
            "Malta - Valletta",
        ]
        assert document.total_locations == 6

    @pytest.mark.asyncio
    async def test_load_all_international_reads_fallback_once(self, fixture_registry):
        """The combined file is read once however many countries need it."""
        loader = LocationDataLoader(fixture_registry)
        read_paths = []
        original_read = loader.read_json

        async def tracking_read(path):
            read_paths.append(path)
            return await original_read(path)

        loader.read_json = tracking_read
        document = await loader.load_all_international()

        assert document.total_locations == 6
        assert read_paths.count(fixture_registry.combined_path) == 1

    def test_iter_source_files_skips_index_file(self, loader):
        files = [(path.name, shape) for path, shape in loader.iter_source_files()]

        assert files == [
            ("canada_multi_locations.json", SourceShape.MULTI_LOCATION),
            ("austria_single_location.json", SourceShape.SINGLE_LOCATION),
            ("us_state_california.json", SourceShape.US_STATE),
        ]

    @pytest.mark.asyncio
    async def test_load_all_us_states(self, loader):
        documents = await loader.load_all_us_states()
        assert [document.country for document in documents] == ["California"]

    @pytest.mark.asyncio
    async def test_load_geojson(self, loader, tmp_path):
        us = await loader.load_geojson("us_state")
        world = await loader.load_geojson("country")
        missing = await LocationDataLoader(SourceRegistry(data_dir=tmp_path)).load_geojson("country")

        assert us["features"][0]["properties"]["name"] == "California"
        assert len(world["features"]) == 4
        assert missing is None

    def test_country_key_from_filename(self):
        assert country_key_from_filename("canada_multi_locations.json") == "canada"
        assert country_key_from_filename("united_arab_emirates_single_location.json") == "united_arab_emirates"
        assert country_key_from_filename("other.json") == "other"
