"""
Map Image Enrichment Service.

Attaches a map thumbnail to every location of a CountryDocument before it is
rendered. Images come either from a remote static-map provider or from local
GeoJSON rasterization. Work runs in small concurrent batches with a pause
between batches, and a failed image never fails the export.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from config import settings
from models.country_document import CountryDocument, Region
from models.location import LocationRecord
from services.export_errors import EnrichmentFailure
from services.geojson_map_renderer import MapPin, render_map_image
from services.location_loader import ALL_INTERNATIONAL_NAME
from services.static_map_client import StaticMapClient

logger = logging.getLogger(__name__)

ATTACHED = "attached"
SKIPPED = "skipped"
FAILED = "failed"


def _map_title(document: CountryDocument, region: Region) -> str:
    if document.country == ALL_INTERNATIONAL_NAME:
        return region.region.split(" - ", 1)[0]
    return document.country


async def enrich_location(location: LocationRecord, rich_map: bool, title: str,
                          map_client: Optional[StaticMapClient] = None,
                          geojson: Optional[Dict] = None) -> Tuple[str, Optional[str]]:
    """
    Produce and attach the map image for one location.

    Never raises. Locations without usable coordinates, and locations whose
    image could not be produced, get an empty map_image.

    Args:
        location: Location to enrich in place
        rich_map: Use the remote provider (True) or local GeoJSON drawing (False)
        title: Name written on locally drawn maps
        map_client: Remote provider client, required when rich_map is True
        geojson: Boundary outlines for local drawing

    Returns:
        Tuple of (outcome, error message)
    """
    coordinates = location.coordinates
    if coordinates is None:
        location.map_image = ""
        return SKIPPED, None

    latitude, longitude = coordinates
    try:
        if rich_map:
            if map_client is None:
                raise EnrichmentFailure("No static map client configured")
            image = await asyncio.to_thread(map_client.fetch_map_image, latitude, longitude)
        else:
            image = await asyncio.to_thread(
                render_map_image,
                geojson,
                [MapPin(latitude, longitude)],
                title,
                settings.map_image_width,
                settings.map_image_height
            )
        location.map_image = image
        return ATTACHED, None
    except EnrichmentFailure as e:
        logger.warning(f"Map image unavailable for '{location.title}': {e}")
        location.map_image = ""
        return FAILED, str(e)
    except Exception as e:
        logger.error(f"Unexpected error enriching '{location.title}': {e}", exc_info=True)
        location.map_image = ""
        return FAILED, str(e)


async def enrich_document_async(document: CountryDocument, job_id: str, rich_map: bool = True,
                                map_client: Optional[StaticMapClient] = None,
                                geojson: Optional[Dict] = None,
                                batch_size: Optional[int] = None,
                                batch_delay: Optional[float] = None) -> Dict:
    """
    Asynchronously attach map images to every location of a document.

    Locations are processed in batches of batch_size concurrent operations,
    pausing batch_delay seconds between batches. Each result is written only
    to its own location, so completion order inside a batch does not matter.

    Args:
        document: Document to enrich in place
        job_id: Export job ID used in log messages
        rich_map: Remote static maps (True) or local GeoJSON maps (False)
        map_client: Remote provider client; built from settings when omitted
        geojson: Boundary outlines for local maps
        batch_size: Concurrent operations per batch (defaults to settings)
        batch_delay: Seconds between batches (defaults to settings)

    Returns:
        Dictionary with enrichment statistics
    """
    batch_size = batch_size or settings.enrichment_batch_size
    batch_delay = settings.enrichment_batch_delay_seconds if batch_delay is None else batch_delay
    strategy = "remote" if rich_map else "local"

    work: List[Tuple[LocationRecord, str]] = [
        (location, _map_title(document, region))
        for region, location in document.iter_locations()
    ]

    logger.info(
        f"Starting map enrichment for job {job_id}: {len(work)} locations, "
        f"strategy={strategy}, batch_size={batch_size}"
    )

    start_time = datetime.now(timezone.utc)
    results = {
        "job_id": job_id,
        "status": "processing",
        "strategy": strategy,
        "locations_processed": 0,
        "images_attached": 0,
        "skipped_no_coordinates": 0,
        "failures": 0,
        "errors": [],
        "started_at": start_time.isoformat()
    }

    owns_client = False
    if rich_map and map_client is None:
        map_client = StaticMapClient.from_settings(settings)
        owns_client = True

    try:
        for i in range(0, len(work), batch_size):
            batch = work[i:i + batch_size]
            logger.debug(
                f"Job {job_id}: enriching batch {i // batch_size + 1} "
                f"(locations {i + 1} to {i + len(batch)})"
            )

            outcomes = await asyncio.gather(*[
                enrich_location(location, rich_map, title, map_client, geojson)
                for location, title in batch
            ])

            for (location, _), (outcome, error) in zip(batch, outcomes):
                results["locations_processed"] += 1
                if outcome == ATTACHED:
                    results["images_attached"] += 1
                elif outcome == SKIPPED:
                    results["skipped_no_coordinates"] += 1
                else:
                    results["failures"] += 1
                    results["errors"].append({
                        "location": location.title,
                        "error": error,
                        "timestamp": datetime.now(timezone.utc).isoformat()
                    })

            # Pause between batches to spare the provider
            if i + batch_size < len(work) and batch_delay > 0:
                await asyncio.sleep(batch_delay)
    finally:
        if owns_client:
            map_client.close()

    execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()
    results["status"] = "completed" if not results["errors"] else "completed_with_errors"
    results["completed_at"] = datetime.now(timezone.utc).isoformat()
    results["execution_time_seconds"] = execution_time

    logger.info(
        f"Map enrichment for job {job_id} completed in {execution_time:.2f} seconds. "
        f"Attached: {results['images_attached']}, "
        f"Skipped: {results['skipped_no_coordinates']}, "
        f"Failures: {results['failures']}"
    )
    return results
