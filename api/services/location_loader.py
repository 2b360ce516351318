"""
Location Data Loader.

Reads the per-region JSON files (US state, single-location country and
multi-location country shapes) and normalizes them into CountryDocument
instances. Downstream code never sees the raw source shapes.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from models.country_document import CountryDocument, Region
from models.location import LocationRecord
from services.export_errors import MalformedSourceError, NotFoundError
from services.source_registry import (
    MULTI_LOCATION_SUFFIX,
    SINGLE_LOCATION_SUFFIX,
    SourceRegistry,
    SourceShape,
)

logger = logging.getLogger(__name__)

ALL_INTERNATIONAL_NAME = "All International Locations"


# Source shape variants

class CitySource(BaseModel):
    """A city entry inside a state_data block."""
    city_name: str
    location_count: Optional[int] = None
    locations: List[LocationRecord] = Field(default_factory=list)


class StateData(BaseModel):
    cities: List[CitySource]


class RegionSource(BaseModel):
    """A region entry in a multi-location country file."""
    region: str
    location_count: Optional[int] = None
    locations: List[LocationRecord] = Field(default_factory=list)


class _CityShapedSource(BaseModel):
    """Common layout of US state and single-location country files."""
    state: str
    total_locations: Optional[int] = None
    scraped_at: Optional[str] = None
    state_data: StateData

    document_kind: ClassVar[str] = "country"

    def normalize(self) -> CountryDocument:
        """Map cities onto regions (region = city_name)."""
        regions = [
            _build_region(self.state, city.city_name, city.locations, city.location_count)
            for city in self.state_data.cities
        ]
        return _build_document(self.state, regions, self.total_locations,
                               self.scraped_at, self.document_kind)


class UsStateSource(_CityShapedSource):
    """us_state_<name>.json"""
    document_kind: ClassVar[str] = "us_state"


class SingleLocationCountrySource(_CityShapedSource):
    """<country>_single_location.json, where the country is stored as 'state'."""
    document_kind: ClassVar[str] = "country"


class MultiLocationCountrySource(BaseModel):
    """<country>_multi_locations.json, already in canonical layout."""
    country: str
    total_locations: Optional[int] = None
    scraped_at: Optional[str] = None
    regions: List[RegionSource]

    def normalize(self) -> CountryDocument:
        regions = [
            _build_region(self.country, region.region, region.locations, region.location_count)
            for region in self.regions
        ]
        return _build_document(self.country, regions, self.total_locations,
                               self.scraped_at, "country")


SourceDocument = Union[UsStateSource, SingleLocationCountrySource, MultiLocationCountrySource]

SHAPE_MODELS = {
    SourceShape.US_STATE: UsStateSource,
    SourceShape.SINGLE_LOCATION: SingleLocationCountrySource,
    SourceShape.MULTI_LOCATION: MultiLocationCountrySource,
}


def _build_region(owner: str, name: str, locations: List[LocationRecord],
                  declared_count: Optional[int]) -> Region:
    if declared_count is not None and declared_count != len(locations):
        logger.warning(
            f"Stale location_count for {owner} / {name}: "
            f"declared {declared_count}, found {len(locations)}"
        )
    return Region(region=name, location_count=len(locations), locations=locations)


def _build_document(name: str, regions: List[Region], declared_total: Optional[int],
                    scraped_at: Optional[str], kind: str) -> CountryDocument:
    total = sum(region.location_count for region in regions)
    if declared_total is not None and declared_total != total:
        logger.warning(
            f"Stale total_locations for {name}: declared {declared_total}, found {total}"
        )
    return CountryDocument(
        country=name,
        total_locations=total,
        scraped_at=scraped_at or "",
        regions=regions,
        kind=kind,
    )


def detect_shape(raw: Any) -> Optional[SourceShape]:
    """
    Guess the shape of a raw JSON document from its keys.

    City-shaped documents are reported as single-location countries; callers
    that know the file is a US state pass the shape explicitly instead.
    """
    if not isinstance(raw, dict):
        return None
    if "regions" in raw and "country" in raw:
        return SourceShape.MULTI_LOCATION
    if "state_data" in raw and "state" in raw:
        return SourceShape.SINGLE_LOCATION
    return None


def parse_source(raw: Any, shape: SourceShape, path: str = "<memory>") -> SourceDocument:
    """
    Validate raw JSON against one source shape.

    Args:
        raw: Parsed JSON content
        shape: Expected source shape
        path: File name used in error messages

    Returns:
        The matching source variant

    Raises:
        MalformedSourceError: If the content does not match the shape
    """
    if not isinstance(raw, dict):
        raise MalformedSourceError(path, "Top-level JSON value is not an object")
    try:
        return SHAPE_MODELS[shape].model_validate(raw)
    except ValidationError as e:
        raise MalformedSourceError(path, str(e))


def normalize_source(raw: Any, shape: SourceShape, path: str = "<memory>") -> CountryDocument:
    """Parse and normalize raw JSON of a known shape into a CountryDocument."""
    return parse_source(raw, shape, path).normalize()


def _read_json(path: Path) -> Any:
    """Read a JSON file. Raises FileNotFoundError or MalformedSourceError."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except UnicodeDecodeError as e:
        raise MalformedSourceError(str(path), f"Invalid encoding: {e}")
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedSourceError(str(path), f"Invalid JSON: {e}")


def _matches(raw: Any, key: str) -> bool:
    if not isinstance(raw, dict):
        return False
    name = raw.get("country") or raw.get("state")
    return isinstance(name, str) and name.strip().lower() == key


class LocationDataLoader:
    """
    Resolves country/state identifiers to normalized CountryDocuments.

    File reads run in worker threads so the event loop stays free while
    large source files are parsed.
    """

    def __init__(self, registry: SourceRegistry):
        """
        Initialize the loader.

        Args:
            registry: Source corpus layout and membership sets
        """
        self.registry = registry

    async def read_json(self, path: Path) -> Any:
        """Read and parse a JSON file off the event loop."""
        return await asyncio.to_thread(_read_json, path)

    async def load(self, identifier: str,
                   fallback_entries: Optional[List[Any]] = None) -> CountryDocument:
        """
        Load the document for a country or US state.

        The per-region file is tried first. When it is missing or malformed
        the combined international file is searched by case-insensitive name.

        Args:
            identifier: Country or state name, any case
            fallback_entries: Already read combined-file entries; the file is
                read on demand when omitted

        Returns:
            Normalized CountryDocument

        Raises:
            NotFoundError: If neither the per-region file nor the fallback
                holds the identifier
            MalformedSourceError: If the per-region file is malformed and the
                fallback has no entry for it
        """
        shape = self.registry.classify(identifier)
        source_error: Optional[MalformedSourceError] = None

        if shape is not None:
            path = self.registry.source_path(identifier, shape)
            try:
                raw = await self.read_json(path)
                document = normalize_source(raw, shape, str(path))
                logger.info(
                    f"Loaded {document.country} from {path.name}: "
                    f"{len(document.regions)} regions, {document.total_locations} locations"
                )
                return document
            except FileNotFoundError:
                logger.warning(f"Source file {path} not found for '{identifier}'")
            except MalformedSourceError as e:
                logger.warning(f"Source file {path} is malformed: {e.details}")
                source_error = e
        else:
            logger.info(f"'{identifier}' is not in any membership set, searching fallback")

        if fallback_entries is None:
            fallback_entries = await self.read_fallback_entries()
        document = self._find_in_fallback(fallback_entries, identifier)
        if document is not None:
            logger.warning(
                f"Served '{identifier}' from fallback file {self.registry.combined_file}"
            )
            return document

        if source_error is not None:
            raise source_error
        raise NotFoundError(identifier)

    async def read_fallback_entries(self) -> List[Any]:
        """
        Read the combined international file as a list of entries.

        Returns an empty list when the file is missing or unusable.
        """
        path = self.registry.combined_path
        try:
            combined = await self.read_json(path)
        except FileNotFoundError:
            logger.warning(f"Fallback file {path} not found")
            return []
        except MalformedSourceError as e:
            logger.error(f"Fallback file {path} is malformed: {e.details}")
            return []

        if isinstance(combined, dict):
            return list(combined.values())
        if isinstance(combined, list):
            return combined
        logger.error(f"Fallback file {path} holds neither an object nor an array")
        return []

    def _find_in_fallback(self, entries: List[Any], identifier: str) -> Optional[CountryDocument]:
        """Search combined-file entries for a matching country."""
        key = " ".join(identifier.strip().lower().split())
        for entry in entries:
            if not _matches(entry, key):
                continue
            shape = detect_shape(entry)
            if shape is None:
                continue
            try:
                return normalize_source(
                    entry, shape, f"{self.registry.combined_file}[{identifier}]"
                )
            except MalformedSourceError as e:
                logger.warning(f"Fallback entry for '{identifier}' is malformed: {e.details}")
                return None
        return None

    async def load_source_file(self, path: Path, shape: SourceShape) -> CountryDocument:
        """Load one source file whose shape is already known."""
        raw = await self.read_json(path)
        return normalize_source(raw, shape, str(path))

    async def load_all_international(self) -> CountryDocument:
        """
        Merge every international country into a single document.

        Countries with no data are skipped with a warning. Regions are
        renamed to "<Country> - <Region>" so they stay distinct in the
        table of contents.

        Returns:
            Merged CountryDocument
        """
        regions: List[Region] = []
        scraped_at = ""
        loaded = 0
        fallback_entries = await self.read_fallback_entries()

        for country in self.registry.international_countries():
            try:
                document = await self.load(country, fallback_entries)
            except (NotFoundError, MalformedSourceError) as e:
                logger.warning(f"Skipping {country} in all-international export: {e}")
                continue

            loaded += 1
            scraped_at = max(scraped_at, document.scraped_at)
            for region in document.regions:
                regions.append(Region(
                    region=f"{document.country} - {region.region}",
                    location_count=region.location_count,
                    locations=region.locations,
                ))

        logger.info(f"Merged {loaded} countries into {len(regions)} regions")
        return CountryDocument(
            country=ALL_INTERNATIONAL_NAME,
            total_locations=sum(region.location_count for region in regions),
            scraped_at=scraped_at,
            regions=regions,
            kind="country",
        )

    async def load_all_us_states(self) -> List[CountryDocument]:
        """Load every US state file present on disk, skipping bad files."""
        documents = []
        for path, shape in self.iter_source_files(include_international=False):
            try:
                documents.append(await self.load_source_file(path, shape))
            except MalformedSourceError as e:
                logger.warning(f"Skipping {path.name}: {e.details}")
        return documents

    def iter_source_files(self, include_us: bool = True,
                          include_international: bool = True) -> Iterator[Tuple[Path, SourceShape]]:
        """
        Yield (path, shape) for every JSON source file on disk.

        Order is multi-location, then single-location, then US states, each
        sorted by file name. The multi-location index file is skipped.
        """
        directories = []
        if include_international:
            directories.append((self.registry.multi_location_path, SourceShape.MULTI_LOCATION))
            directories.append((self.registry.single_location_path, SourceShape.SINGLE_LOCATION))
        if include_us:
            directories.append((self.registry.us_states_path, SourceShape.US_STATE))

        for directory, shape in directories:
            if not directory.is_dir():
                logger.warning(f"Source directory {directory} does not exist")
                continue
            for path in sorted(directory.glob("*.json")):
                if path.name == self.registry.skipped_index_file:
                    continue
                yield path, shape

    async def load_geojson(self, kind: str) -> Optional[Dict]:
        """
        Read a boundary GeoJSON file.

        Args:
            kind: "us_state" for US state outlines, anything else for world countries

        Returns:
            Parsed GeoJSON, or None when the file is missing or malformed
        """
        path = self.registry.us_geojson_path if kind == "us_state" else self.registry.world_geojson_path
        try:
            return await self.read_json(path)
        except FileNotFoundError:
            logger.warning(f"GeoJSON file {path} not found")
        except MalformedSourceError as e:
            logger.warning(f"GeoJSON file {path} is malformed: {e.details}")
        return None


def country_key_from_filename(filename: str) -> str:
    """Strip the shape suffix from an international file name."""
    for suffix in (MULTI_LOCATION_SUFFIX, SINGLE_LOCATION_SUFFIX, ".json"):
        if filename.endswith(suffix):
            return filename[: -len(suffix)]
    return filename
