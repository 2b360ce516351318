"""
Export Routes for the Mailbox Directory API.

Provides endpoints that export country and US state location data as PDF,
the international directory as CSV, and overview map PDFs.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import Response

from models.export_request import (
    AllExportRequest,
    CountryExportRequest,
    ExportErrorResponse,
    ExportRequest,
    StateExportRequest,
)
from services.export_orchestrator import ExportOrchestrator, ExportResult

logger = logging.getLogger(__name__)

NO_CACHE = "no-cache, no-store, must-revalidate"

router = APIRouter(
    prefix="/exports",
    tags=["exports"],
    responses={
        404: {"model": ExportErrorResponse, "description": "No data for the requested country or state"},
        408: {"model": ExportErrorResponse, "description": "Export timed out; retry with richMap=false"},
        422: {"description": "Invalid request body"},
        500: {"model": ExportErrorResponse, "description": "Export failed"}
    }
)


def binary_response(result: ExportResult) -> Response:
    """Wrap an export result as a non-cacheable attachment."""
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "Cache-Control": NO_CACHE,
            "X-Export-Job-Id": str(result.stats.get("job_id", "")),
        }
    )


@router.post(
    "/pdf",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    summary="Export a country or US state as PDF",
    description="""
    Export all mailbox locations of one country or US state as a PDF.

    The identifier is matched case-insensitively. Use `all` to export every
    international country in one document.

    ## Options
    - `richMap` (default true): fetch remote static maps for each location.
      When false, maps are drawn locally from boundary outlines, which is
      faster and needs no network.
    - `priceIncluded` (default true): when false, prices in plan features are
      replaced by "Available".

    ## Errors
    - 404 when the country or state has no data
    - 408 when the export times out
    """
)
async def export_pdf(request: ExportRequest) -> Response:
    """
    Export one country or state as PDF.

    Args:
        request: Identifier and rendering options

    Returns:
        PDF attachment
    """
    logger.info(
        f"PDF export requested for '{request.identifier}' "
        f"(rich_map={request.rich_map}, price_included={request.price_included})"
    )
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_pdf(
        request.identifier,
        rich_map=request.rich_map,
        price_included=request.price_included
    )
    return binary_response(result)


@router.post(
    "/international-pdf",
    response_class=Response,
    summary="Export an international country as PDF"
)
async def export_international_pdf(request: CountryExportRequest) -> Response:
    """Export one international country as PDF."""
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_pdf(
        request.country,
        rich_map=request.rich_map,
        price_included=request.price_included
    )
    return binary_response(result)


@router.post(
    "/us-state-pdf",
    response_class=Response,
    summary="Export a US state as PDF"
)
async def export_us_state_pdf(request: StateExportRequest) -> Response:
    """Export one US state as PDF."""
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_pdf(
        request.state,
        rich_map=request.rich_map,
        price_included=request.price_included
    )
    return binary_response(result)


@router.post(
    "/all-international-pdf",
    response_class=Response,
    summary="Export every international country as one PDF",
    description="Aggregates every international country. Uses a longer timeout than single exports."
)
async def export_all_international_pdf(request: AllExportRequest) -> Response:
    """Export every international country as one PDF."""
    logger.info(
        f"All-international PDF export requested "
        f"(rich_map={request.rich_map}, price_included={request.price_included})"
    )
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_all_international_pdf(
        rich_map=request.rich_map,
        price_included=request.price_included
    )
    return binary_response(result)


@router.get(
    "/csv",
    response_class=Response,
    summary="Export the international directory as CSV",
    description="One row per international location: country, city, address, premier, top_rated, verified."
)
async def export_csv() -> Response:
    """Export the international directory as CSV."""
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_directory_csv()
    return binary_response(result)


@router.post(
    "/us-map-pdf",
    response_class=Response,
    summary="Export a map of all US locations as PDF"
)
async def export_us_map_pdf() -> Response:
    """Export the US overview map."""
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_us_map_pdf()
    return binary_response(result)


@router.post(
    "/world-map-pdf",
    response_class=Response,
    summary="Export a world location density map as PDF"
)
async def export_world_map_pdf() -> Response:
    """Export the world density map."""
    orchestrator = ExportOrchestrator()
    result = await orchestrator.export_world_map_pdf()
    return binary_response(result)
