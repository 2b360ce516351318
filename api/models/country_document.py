"""
Canonical document model shared by every export path.

All three on-disk source shapes are normalized into a CountryDocument before
any enrichment or rendering happens.
"""

from typing import Iterator, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.location import LocationRecord


class Region(BaseModel):
    """A city (US) or sub-area (international) grouping locations."""

    region: str = Field(..., description="Region or city name")
    location_count: int = Field(..., ge=0, description="Number of locations in the region")
    locations: List[LocationRecord] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_location_count(self):
        """location_count must match the locations actually present."""
        if self.location_count != len(self.locations):
            raise ValueError(
                f"Region '{self.region}' declares {self.location_count} locations "
                f"but holds {len(self.locations)}"
            )
        return self


class CountryDocument(BaseModel):
    """
    Root export unit for one country, one US state, or a merged set.

    total_locations always equals the sum of the region counts.
    """

    country: str = Field(..., description="Country or state name")
    total_locations: int = Field(..., ge=0)
    scraped_at: str = Field("", description="Timestamp of the source data, may be empty")
    regions: List[Region] = Field(default_factory=list)
    kind: Literal["us_state", "country"] = Field(
        "country",
        description="Selects the boundary map used for local map rendering"
    )

    # Export-time flag, not part of the source data
    price_included: bool = True

    @model_validator(mode='after')
    def validate_total_locations(self):
        """total_locations must equal the sum of region counts."""
        expected = sum(region.location_count for region in self.regions)
        if self.total_locations != expected:
            raise ValueError(
                f"Document '{self.country}' declares {self.total_locations} locations "
                f"but its regions hold {expected}"
            )
        return self

    def iter_locations(self) -> Iterator[Tuple[Region, LocationRecord]]:
        """Yield (region, location) pairs in document order."""
        for region in self.regions:
            for location in region.locations:
                yield region, location

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "country": "Austria",
                "total_locations": 1,
                "scraped_at": "2025-06-01T10:00:00",
                "regions": [
                    {
                        "region": "Vienna",
                        "location_count": 1,
                        "locations": [
                            {
                                "title": "Vienna - Mariahilfer Strasse",
                                "address": "Mariahilfer Strasse 1, 1060 Vienna",
                                "latitude": "48.1986",
                                "longitude": "16.3489"
                            }
                        ]
                    }
                ]
            }
        }
    )
