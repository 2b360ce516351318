"""
Source Validation Routes for the Mailbox Directory API.
"""

import logging

from fastapi import APIRouter, status

from models.export_request import ValidationReport
from services.export_orchestrator import ExportOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/validation",
    tags=["validation"],
    responses={
        500: {"description": "Internal server error"}
    }
)


@router.get(
    "/sources",
    response_model=ValidationReport,
    status_code=status.HTTP_200_OK,
    summary="Validate the source corpus",
    description="""
    Check every location source file.

    Reports all 50 expected US state files (missing ones included) and every
    file in the international directories. Each result lists structural
    problems and every blank value, null, or zero price found in the file.
    """
)
async def validate_sources() -> ValidationReport:
    """
    Validate every source file.

    Returns:
        ValidationReport with one entry per file
    """
    orchestrator = ExportOrchestrator()
    results = await orchestrator.validate_sources()
    return ValidationReport(results=results)
