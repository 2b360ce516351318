"""
Tests for the combined international file builder script.
"""

import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from scripts.combine_international import combine_international_files
from services.location_loader import LocationDataLoader
from services.source_registry import SourceRegistry


class TestCombineInternational:

    def test_combines_fixture_corpus(self, fixture_registry):
        combined = combine_international_files(fixture_registry)

        assert sorted(combined) == ["austria", "canada"]
        assert combined["canada"]["country"] == "Canada"
        assert combined["austria"]["state"] == "Austria"

    def test_unreadable_files_are_skipped(self, tmp_path):
        registry = SourceRegistry(data_dir=tmp_path)
        registry.single_location_path.mkdir(parents=True)
        (registry.single_location_path / "malta_single_location.json").write_text("{", encoding="utf-8")
        (registry.single_location_path / "italy_single_location.json").write_text(
            json.dumps({"state": "Italy", "state_data": {"cities": []}}), encoding="utf-8"
        )

        combined = combine_international_files(registry)

        assert list(combined) == ["italy"]

    @pytest.mark.asyncio
    async def test_combined_output_serves_as_fallback(self, fixture_registry, tmp_path):
        """A corpus whose only data is the combined file still loads."""
        registry = SourceRegistry(data_dir=tmp_path)
        registry.combined_path.write_text(
            json.dumps(combine_international_files(fixture_registry)), encoding="utf-8"
        )

        document = await LocationDataLoader(registry).load("Canada")

        assert document.country == "Canada"
        assert document.total_locations == 3
