"""
Static registry of the location source corpus.

Holds the directory layout, the fixed membership sets that decide which file
shape a country or state is stored in, and the file naming rules. A registry
is built once from settings and handed to the loader.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional


class SourceShape(str, Enum):
    """On-disk JSON shape of a source file."""
    US_STATE = "us_state"
    SINGLE_LOCATION = "single_location"
    MULTI_LOCATION = "multi_location"


SINGLE_LOCATION_COUNTRIES = frozenset([
    "zambia", "slovakia", "malta", "hungary", "colombia",
    "united arab emirates", "thailand", "taiwan", "sweden", "slovenia",
    "pakistan", "oman", "netherlands", "mauritius", "lithuania", "kenya",
    "italy", "india", "egypt", "denmark", "cyprus", "belgium", "austria",
])

MULTI_LOCATION_COUNTRIES = frozenset([
    "united kingdom", "ukraine", "switzerland", "spain", "south africa",
    "singapore", "romania", "portugal", "philippines", "nigeria", "mexico",
    "malaysia", "ireland", "indonesia", "hong kong", "greece", "france",
    "czech republic", "croatia", "china", "caribbean", "canada", "bulgaria",
    "brazil", "australia",
])

US_STATES = frozenset([
    "alabama", "alaska", "arizona", "arkansas", "california", "colorado",
    "connecticut", "delaware", "florida", "georgia", "hawaii", "idaho",
    "illinois", "indiana", "iowa", "kansas", "kentucky", "louisiana", "maine",
    "maryland", "massachusetts", "michigan", "minnesota", "mississippi",
    "missouri", "montana", "nebraska", "nevada", "new hampshire",
    "new jersey", "new mexico", "new york", "north carolina", "north dakota",
    "ohio", "oklahoma", "oregon", "pennsylvania", "rhode island",
    "south carolina", "south dakota", "tennessee", "texas", "utah", "vermont",
    "virginia", "washington", "west virginia", "wisconsin", "wyoming",
])

SINGLE_LOCATION_SUFFIX = "_single_location.json"
MULTI_LOCATION_SUFFIX = "_multi_locations.json"
US_STATE_PREFIX = "us_state_"


def _underscored(name: str) -> str:
    return "_".join(name.strip().lower().split())


@dataclass(frozen=True)
class SourceRegistry:
    """Immutable description of where and how location data is stored."""

    data_dir: Path
    us_states_dir: str = "us_states"
    single_location_dir: str = "internationalLocationsS"
    multi_location_dir: str = "InternationalLocationsR"
    combined_file: str = "international_locations.json"
    skipped_index_file: str = "country_s_urls.json"
    us_geojson_file: str = "us-states.json"
    world_geojson_file: str = "world-countries.json"
    single_location_countries: FrozenSet[str] = field(default=SINGLE_LOCATION_COUNTRIES)
    multi_location_countries: FrozenSet[str] = field(default=MULTI_LOCATION_COUNTRIES)
    us_states: FrozenSet[str] = field(default=US_STATES)

    @classmethod
    def from_settings(cls, settings) -> "SourceRegistry":
        """Build a registry from application settings."""
        return cls(
            data_dir=Path(settings.data_dir),
            us_states_dir=settings.us_states_dir,
            single_location_dir=settings.single_location_dir,
            multi_location_dir=settings.multi_location_dir,
            combined_file=settings.combined_file,
            skipped_index_file=settings.skipped_index_file,
            us_geojson_file=settings.us_geojson_file,
            world_geojson_file=settings.world_geojson_file,
        )

    # Directories

    @property
    def us_states_path(self) -> Path:
        return self.data_dir / self.us_states_dir

    @property
    def single_location_path(self) -> Path:
        return self.data_dir / self.single_location_dir

    @property
    def multi_location_path(self) -> Path:
        return self.data_dir / self.multi_location_dir

    @property
    def combined_path(self) -> Path:
        return self.data_dir / self.combined_file

    @property
    def us_geojson_path(self) -> Path:
        return self.data_dir / self.us_geojson_file

    @property
    def world_geojson_path(self) -> Path:
        return self.data_dir / self.world_geojson_file

    # Classification and file names

    def classify(self, identifier: str) -> Optional[SourceShape]:
        """
        Decide which source shape stores the given country or state.

        Args:
            identifier: Country or state name, any case

        Returns:
            SourceShape, or None when the name is in no membership set
        """
        key = " ".join(identifier.strip().lower().split())
        if key in self.us_states:
            return SourceShape.US_STATE
        if key in self.single_location_countries:
            return SourceShape.SINGLE_LOCATION
        if key in self.multi_location_countries:
            return SourceShape.MULTI_LOCATION
        return None

    def source_path(self, identifier: str, shape: SourceShape) -> Path:
        """Path of the per-region file for an identifier of the given shape."""
        name = _underscored(identifier)
        if shape == SourceShape.US_STATE:
            return self.us_states_path / f"{US_STATE_PREFIX}{name}.json"
        if shape == SourceShape.SINGLE_LOCATION:
            return self.single_location_path / f"{name}{SINGLE_LOCATION_SUFFIX}"
        return self.multi_location_path / f"{name}{MULTI_LOCATION_SUFFIX}"

    def us_state_file_names(self):
        """Expected file name for every US state, alphabetical."""
        return [f"{US_STATE_PREFIX}{_underscored(state)}.json" for state in sorted(self.us_states)]

    def international_countries(self):
        """Every international country name in a stable order (multi first)."""
        return sorted(self.multi_location_countries) + sorted(self.single_location_countries)
