"""
Pydantic models for export API requests and responses.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExportOptions(BaseModel):
    """
    Rendering options shared by every PDF export.

    Accepts both snake_case and the camelCase keys sent by the map UI
    (richMap, priceIncluded).
    """

    model_config = ConfigDict(populate_by_name=True)

    rich_map: bool = Field(
        True,
        alias="richMap",
        description="Fetch remote static maps. When false, maps are drawn locally from GeoJSON."
    )

    price_included: bool = Field(
        True,
        alias="priceIncluded",
        description="Render prices. When false, pricing text is replaced by 'Available'."
    )


class ExportRequest(ExportOptions):
    """
    Request model for exporting a single country or US state.

    The identifier is matched case-insensitively against the source corpus.
    """

    identifier: str = Field(
        ...,
        min_length=1,
        description="Country or US state name, e.g. 'Austria' or 'California'"
    )

    @field_validator('identifier')
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Reject blank identifiers."""
        v = v.strip()
        if not v:
            raise ValueError("identifier must not be blank")
        return v

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"identifier": "California", "richMap": False, "priceIncluded": True},
                {"identifier": "Austria", "richMap": True, "priceIncluded": False}
            ]
        }
    )


class CountryExportRequest(ExportOptions):
    """Request body for the international export route."""

    country: str = Field(..., min_length=1, description="Country name")


class StateExportRequest(ExportOptions):
    """Request body for the US state export route."""

    state: str = Field(..., min_length=1, description="US state name")


class AllExportRequest(ExportOptions):
    """Request body for the all-international export."""


class ExportErrorResponse(BaseModel):
    """Error body returned by export endpoints."""

    error: str = Field(..., description="Human readable error message")
    kind: str = Field(..., description="Error kind, e.g. 'not_found' or 'render_timeout'")
    details: Optional[Any] = Field(None, description="Additional context")
    identifier: Optional[str] = Field(None, description="Identifier that was not found")
    suggestion: Optional[str] = Field(None, description="Hint for retrying the request")
    traceback: Optional[str] = Field(None, description="Stack trace (debug mode only)")


class ValidationResult(BaseModel):
    """Validation outcome for one source file."""

    file: str = Field(..., description="File name")
    type: str = Field(..., description="'US State', 'Intl Single' or 'Intl Multi'")
    exists: bool
    valid: bool
    errors: List[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    """Validation outcome for the whole source corpus."""

    results: List[ValidationResult] = Field(default_factory=list)
