"""
Pydantic models for a single mailbox location and its plans.

Field names mirror the keys used in the on-disk location JSON files. Display
fields tolerate JSON null: flags read as False, text as empty.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


def _null_as_false(v: Any) -> Any:
    return False if v is None else v


class Price(BaseModel):
    """Amount and currency pair as stored in the source files."""
    amount: Optional[float] = None
    currency: Optional[str] = None


class Feature(BaseModel):
    """A service offered (or not) at a location, e.g. mail scanning."""
    name: str
    available: bool = False

    @field_validator('available', mode='before')
    @classmethod
    def default_available(cls, v: Any) -> Any:
        """Treat a null flag as unavailable."""
        return _null_as_false(v)


class OperatorInfo(BaseModel):
    """Operator running the location."""
    name: Optional[str] = None
    verified: bool = False

    @field_validator('verified', mode='before')
    @classmethod
    def default_verified(cls, v: Any) -> Any:
        """Treat a null flag as unverified."""
        return _null_as_false(v)


class LocationInfo(BaseModel):
    """Operator and feature metadata for a location."""
    address_title: Optional[str] = None
    address_text: Optional[str] = None
    street_address: Optional[str] = None
    suite_info: Optional[str] = None
    city_state_zip: Optional[str] = None
    country: Optional[str] = None
    features: List[Feature] = Field(default_factory=list)
    shipping_carriers: List[str] = Field(default_factory=list)
    operator_info: Optional[OperatorInfo] = None

    @field_validator('features', mode='before')
    @classmethod
    def drop_unnamed_features(cls, v: Any) -> Any:
        """Treat a null array as empty and skip features without a name."""
        if v is None:
            return []
        if isinstance(v, list):
            return [
                feature for feature in v
                if not (isinstance(feature, dict) and feature.get('name') is None)
            ]
        return v

    @field_validator('shipping_carriers', mode='before')
    @classmethod
    def drop_null_carriers(cls, v: Any) -> Any:
        """Treat a null array as empty and drop null entries."""
        if v is None:
            return []
        if isinstance(v, list):
            return [carrier for carrier in v if carrier is not None]
        return v


class Plan(BaseModel):
    """Pricing/feature tier attached to a location."""
    title: Optional[str] = None
    monthly_price: Optional[Price] = None
    yearly_price: Optional[Price] = None
    service_plan_id: Optional[str] = None

    # Short label -> display value
    features: Dict[str, Any] = Field(default_factory=dict)

    # Long label -> descriptive text, may embed prices
    detailed_features: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('features', 'detailed_features', mode='before')
    @classmethod
    def default_mappings(cls, v: Any) -> Any:
        """Treat null mappings as empty."""
        return {} if v is None else v


class LocationRecord(BaseModel):
    """One physical mailbox location."""

    title: str = ""
    address: str = ""

    # Geocoding, kept as decimal strings like the source files
    latitude: Optional[str] = None
    longitude: Optional[str] = None

    price: Optional[Price] = None
    is_premier: bool = False
    plan_url: Optional[str] = None
    plans: List[Plan] = Field(default_factory=list)
    location_info: Optional[LocationInfo] = None

    # Populated per export by the map enricher; never written back to disk
    map_image: Optional[str] = Field(
        default=None,
        exclude=True,
        description="Embeddable map thumbnail (data URI); empty when unavailable"
    )

    @field_validator('plans', mode='before')
    @classmethod
    def default_plans(cls, v: Any) -> Any:
        """Treat a null plans array as empty."""
        return [] if v is None else v

    @field_validator('title', 'address', mode='before')
    @classmethod
    def default_text(cls, v: Any) -> Any:
        """Treat null text as empty; the validation report flags it."""
        return "" if v is None else v

    @field_validator('is_premier', mode='before')
    @classmethod
    def default_premier(cls, v: Any) -> Any:
        """Treat a null flag as not premier."""
        return _null_as_false(v)

    @field_validator('latitude', 'longitude', mode='before')
    @classmethod
    def coerce_coordinate(cls, v: Any) -> Optional[str]:
        """Accept numeric coordinates and normalize blanks to None."""
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            return v.strip() or None
        return None

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        """
        Parsed (latitude, longitude) pair.

        Returns:
            Tuple of floats, or None when either value is missing, unparseable
            or out of range.
        """
        if self.latitude is None or self.longitude is None:
            return None
        try:
            lat = float(self.latitude)
            lon = float(self.longitude)
        except ValueError:
            return None
        if lat != lat or lon != lon:  # NaN
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        return lat, lon

    @property
    def is_verified(self) -> bool:
        """Whether the operator is verified."""
        return bool(
            self.location_info
            and self.location_info.operator_info
            and self.location_info.operator_info.verified
        )
