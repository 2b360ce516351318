"""
Export Orchestrator Service.

Coordinates every export: load the source data, attach map images, render
HTML and print it to PDF, all under a request deadline. Also produces the
directory CSV, the source validation report and the overview map PDFs.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional

from config import settings
from models.country_document import CountryDocument
from models.export_request import ValidationResult
from services.export_errors import (
    ExportError,
    ExportTimeoutError,
    MalformedSourceError,
    UnknownExportError,
)
from services.location_loader import LocationDataLoader
from services.map_enrichment_service import enrich_document_async
from services.overview_maps import (
    collect_us_pins,
    color_world_features,
    country_location_counts,
    density_legend,
)
from services.pdf_print_service import PageOptions, PdfPrintService
from services.pdf_templates import (
    render_country_document_html,
    render_us_map_html,
    render_world_map_html,
)
from services.source_registry import SourceRegistry, SourceShape
from services.static_map_client import StaticMapClient
from utils.csv_export import build_directory_csv
from utils.source_validation import (
    INTL_MULTI_TYPE,
    INTL_SINGLE_TYPE,
    US_STATE_TYPE,
    VALIDATORS,
)

logger = logging.getLogger(__name__)

ALL_IDENTIFIER = "all"

PDF_MEDIA_TYPE = "application/pdf"
CSV_MEDIA_TYPE = "text/csv"

ALL_INTERNATIONAL_FILENAME = "AnytimeMailbox_All_International.pdf"
CSV_FILENAME = "international_locations.csv"
US_MAP_FILENAME = "us-locations-map.pdf"
WORLD_MAP_FILENAME = "world-locations-heatmap.pdf"

US_MAP_WIDTH = 1169
US_MAP_HEIGHT = 827


@dataclass
class ExportResult:
    """A finished export, ready to be sent as a binary response."""
    content: bytes
    filename: str
    media_type: str
    stats: Dict[str, Any] = field(default_factory=dict)


def export_filename(identifier: str) -> str:
    """AnytimeMailbox_<Identifier_With_Underscores>.pdf"""
    name = "_".join(identifier.split())
    name = re.sub(r"[^A-Za-z0-9_\-]", "", name) or "Export"
    return f"AnytimeMailbox_{name}.pdf"


class ExportOrchestrator:
    """
    Orchestrates one export request.

    Each instance carries its own job ID and statistics; create one per
    request. Loader, print service and map client can be injected for tests.
    """

    def __init__(self, registry: Optional[SourceRegistry] = None,
                 loader: Optional[LocationDataLoader] = None,
                 print_service: Optional[PdfPrintService] = None,
                 map_client: Optional[StaticMapClient] = None):
        """Initialize the orchestrator with its collaborators."""
        self.registry = registry or SourceRegistry.from_settings(settings)
        self.loader = loader or LocationDataLoader(self.registry)
        self.print_service = print_service or PdfPrintService()
        self.map_client = map_client

        # Generate unique job ID
        self.job_id = str(uuid.uuid4())
        self.start_time = datetime.now(timezone.utc)

        # Track statistics for reporting
        self.stats: Dict[str, Any] = {
            "job_id": self.job_id,
            "status": "processing",
            "export": None,
            "locations": 0,
            "regions": 0,
            "enrichment": None,
            "html_bytes": 0,
            "output_bytes": 0,
            "errors": [],
            "started_at": self.start_time.isoformat()
        }

    async def _run_with_deadline(self, work: Awaitable[ExportResult], timeout: float,
                                 label: str) -> ExportResult:
        """
        Await an export under a deadline and classify its failure.

        Raises:
            ExportTimeoutError: If the deadline passes
            ExportError: Typed pipeline errors are re-raised unchanged
            UnknownExportError: For anything unexpected
        """
        self.stats["export"] = label
        logger.info(f"Export job {self.job_id} started: {label} (timeout {timeout}s)")

        try:
            result = await asyncio.wait_for(self._guard_timeouts(work, label), timeout=timeout)
        except asyncio.TimeoutError:
            self._finish("timed_out", f"Timed out after {timeout} seconds")
            logger.error(f"Export job {self.job_id} for {label} timed out after {timeout} seconds")
            raise ExportTimeoutError(
                f"Export of {label} timed out after {timeout} seconds",
                details="The deadline passed before the PDF was ready"
            )
        except ExportError as e:
            self._finish("failed", e.message)
            logger.error(f"Export job {self.job_id} for {label} failed: {e.kind.value}: {e.message}")
            raise
        except Exception as e:
            self._finish("failed", str(e))
            logger.error(f"Export job {self.job_id} for {label} failed unexpectedly: {e}", exc_info=True)
            raise UnknownExportError(f"Failed to export {label}", details=str(e)) from e

        self.stats["output_bytes"] = len(result.content)
        self._finish("completed")
        result.stats = dict(self.stats)
        logger.info(
            f"Export job {self.job_id} completed in {self.stats['execution_time_seconds']:.2f} seconds: "
            f"{result.filename} ({len(result.content)} bytes)"
        )
        return result

    async def _guard_timeouts(self, work: Awaitable[ExportResult], label: str) -> ExportResult:
        """
        Await the export work, reporting its own timeouts as unknown failures.

        Only the deadline in _run_with_deadline may surface as a
        TimeoutError from wait_for.
        """
        try:
            return await work
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise UnknownExportError(
                f"Failed to export {label}",
                details=f"Unexpected timeout inside the export: {e!r}"
            ) from e

    def _finish(self, status: str, error: Optional[str] = None):
        if error:
            self.stats["errors"].append({
                "error": error,
                "timestamp": datetime.now(timezone.utc).isoformat()
            })
        self.stats["status"] = status
        self.stats["completed_at"] = datetime.now(timezone.utc).isoformat()
        self.stats["execution_time_seconds"] = (
            datetime.now(timezone.utc) - self.start_time
        ).total_seconds()

    async def _render_document(self, document: CountryDocument, filename: str,
                               rich_map: bool, price_included: bool) -> ExportResult:
        """Enrich, render and print an already loaded document."""
        document = document.model_copy(update={"price_included": price_included})
        self.stats["locations"] = document.total_locations
        self.stats["regions"] = len(document.regions)

        geojson = None
        if not rich_map:
            geojson = await self.loader.load_geojson(document.kind)

        self.stats["enrichment"] = await enrich_document_async(
            document,
            self.job_id,
            rich_map=rich_map,
            map_client=self.map_client,
            geojson=geojson
        )

        html = render_country_document_html(document)
        self.stats["html_bytes"] = len(html)

        pdf_bytes = await self.print_service.render_pdf(html, PageOptions())
        return ExportResult(content=pdf_bytes, filename=filename, media_type=PDF_MEDIA_TYPE)

    async def _export_identifier(self, identifier: str, rich_map: bool,
                                 price_included: bool) -> ExportResult:
        document = await self.loader.load(identifier)
        return await self._render_document(
            document, export_filename(identifier), rich_map, price_included
        )

    async def _export_all_international(self, rich_map: bool, price_included: bool) -> ExportResult:
        document = await self.loader.load_all_international()
        return await self._render_document(
            document, ALL_INTERNATIONAL_FILENAME, rich_map, price_included
        )

    async def export_pdf(self, identifier: str, rich_map: bool = True,
                         price_included: bool = True) -> ExportResult:
        """
        Export one country or US state as a PDF.

        The identifier "all" exports every international country.

        Args:
            identifier: Country or state name, any case
            rich_map: Remote static maps (True) or local GeoJSON maps (False)
            price_included: Render prices or redact them to "Available"

        Returns:
            ExportResult with the PDF bytes and filename

        Raises:
            NotFoundError: If the identifier matches no data
            RenderTimeoutError: If rendering or the whole export timed out
            ExportError: For other classified failures
        """
        identifier = identifier.strip()
        if identifier.lower() == ALL_IDENTIFIER:
            return await self.export_all_international_pdf(rich_map, price_included)

        return await self._run_with_deadline(
            self._export_identifier(identifier, rich_map, price_included),
            settings.export_timeout_seconds,
            identifier
        )

    async def export_all_international_pdf(self, rich_map: bool = True,
                                           price_included: bool = True) -> ExportResult:
        """Export every international country as one PDF, with the longer deadline."""
        return await self._run_with_deadline(
            self._export_all_international(rich_map, price_included),
            settings.export_all_timeout_seconds,
            "all international locations"
        )

    async def _export_directory_csv(self) -> ExportResult:
        documents = []
        for path, shape in self.loader.iter_source_files(include_us=False):
            documents.append(await self.loader.load_source_file(path, shape))

        self.stats["locations"] = sum(document.total_locations for document in documents)
        csv_text = build_directory_csv(documents)
        return ExportResult(
            content=csv_text.encode("utf-8"),
            filename=CSV_FILENAME,
            media_type=CSV_MEDIA_TYPE
        )

    async def export_directory_csv(self) -> ExportResult:
        """
        Export every international location as one CSV row.

        Raises:
            MalformedSourceError: If any international source file is malformed
        """
        return await self._run_with_deadline(
            self._export_directory_csv(),
            settings.export_timeout_seconds,
            "international directory CSV"
        )

    async def _export_us_map(self) -> ExportResult:
        us_states = await self.loader.load_all_us_states()
        pins = collect_us_pins(us_states)
        self.stats["locations"] = len(pins)

        geojson = await self.loader.load_geojson("us_state")
        html = render_us_map_html(pins, geojson, width=US_MAP_WIDTH, height=US_MAP_HEIGHT)
        self.stats["html_bytes"] = len(html)

        options = PageOptions(
            width="11.69in",
            height="8.27in",
            margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
            page_ranges="1",
            viewport_width=US_MAP_WIDTH,
            viewport_height=US_MAP_HEIGHT,
            settle_ms=settings.map_settle_ms
        )
        pdf_bytes = await self.print_service.render_pdf(html, options)
        return ExportResult(content=pdf_bytes, filename=US_MAP_FILENAME, media_type=PDF_MEDIA_TYPE)

    async def export_us_map_pdf(self) -> ExportResult:
        """Export a single-page map of every US location."""
        return await self._run_with_deadline(
            self._export_us_map(),
            settings.export_timeout_seconds,
            "US locations map"
        )

    async def _export_world_map(self) -> ExportResult:
        international = []
        for path, shape in self.loader.iter_source_files(include_us=False):
            try:
                international.append(await self.loader.load_source_file(path, shape))
            except MalformedSourceError as e:
                logger.warning(f"Skipping {path.name} in world map: {e.details}")
        us_states = await self.loader.load_all_us_states()

        counts = country_location_counts(international, us_states)
        self.stats["locations"] = sum(counts.values())

        geojson = color_world_features(await self.loader.load_geojson("country"), counts)
        html = render_world_map_html(
            geojson,
            density_legend(),
            total_locations=sum(counts.values()),
            country_count=len(counts)
        )
        self.stats["html_bytes"] = len(html)

        options = PageOptions(
            format="A4",
            landscape=True,
            margin={"top": "10mm", "right": "10mm", "bottom": "10mm", "left": "10mm"},
            settle_ms=settings.map_settle_ms
        )
        pdf_bytes = await self.print_service.render_pdf(html, options)
        return ExportResult(content=pdf_bytes, filename=WORLD_MAP_FILENAME, media_type=PDF_MEDIA_TYPE)

    async def export_world_map_pdf(self) -> ExportResult:
        """Export a world map coloured by location count per country."""
        return await self._run_with_deadline(
            self._export_world_map(),
            settings.export_timeout_seconds,
            "world locations map"
        )

    async def _validate_file(self, path: Path, file_type: str) -> ValidationResult:
        try:
            data = await self.loader.read_json(path)
        except FileNotFoundError:
            return ValidationResult(file=path.name, type=file_type, exists=False,
                                    valid=False, errors=["File does not exist"])
        except MalformedSourceError as e:
            return ValidationResult(file=path.name, type=file_type, exists=True,
                                    valid=False, errors=[e.details or e.message])

        errors = VALIDATORS[file_type](data)
        return ValidationResult(file=path.name, type=file_type, exists=True,
                                valid=not errors, errors=errors)

    async def validate_sources(self) -> List[ValidationResult]:
        """
        Validate every source file.

        All 50 expected US state files are reported, including missing ones,
        followed by every file found in the international directories.

        Returns:
            One ValidationResult per file
        """
        results = []
        for file_name in self.registry.us_state_file_names():
            results.append(await self._validate_file(
                self.registry.us_states_path / file_name, US_STATE_TYPE
            ))

        types = {
            SourceShape.SINGLE_LOCATION: INTL_SINGLE_TYPE,
            SourceShape.MULTI_LOCATION: INTL_MULTI_TYPE,
        }
        international = sorted(
            self.loader.iter_source_files(include_us=False),
            key=lambda item: item[1] != SourceShape.SINGLE_LOCATION
        )
        for path, shape in international:
            results.append(await self._validate_file(path, types[shape]))

        invalid = sum(1 for result in results if not result.valid)
        logger.info(f"Validated {len(results)} source files, {invalid} with problems")
        return results
