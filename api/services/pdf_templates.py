"""
HTML templates for PDF exports.

render_country_document_html is a pure function of its CountryDocument: it
builds a view model (anchors, formatted prices, optionally redacted features)
without touching the input and renders it with Jinja2. The overview map
renderers work the same way for the US pin map and the world density map.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape

from models.country_document import CountryDocument
from models.location import LocationRecord, Plan, Price
from utils.pricing import redact_mapping

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

COUNTRY_TEMPLATE = "country_document.html.j2"
US_MAP_TEMPLATE = "us_map.html.j2"
WORLD_MAP_TEMPLATE = "world_map.html.j2"

_LINE_BREAK = re.compile(r"\\n|\r\n|\n")


def nl2br(value) -> Markup:
    """Escape a value and turn literal "\\n" sequences and newlines into <br>."""
    if value is None:
        return Markup("")
    parts = _LINE_BREAK.split(str(value))
    return Markup("<br>").join(escape(part) for part in parts)


def slugify(name: str) -> str:
    """Anchor-safe slug: lower case, whitespace to dashes, other symbols dropped."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    slug = re.sub(r"[^a-z0-9\-]", "", slug)
    return slug or "section"


def format_price(price: Optional[Price]) -> str:
    """'USD 9.99' style price, or '' when no amount is known."""
    if price is None or price.amount is None:
        return ""
    currency = (price.currency or "").strip()
    amount = f"{price.amount:,.2f}"
    return f"{currency} {amount}".strip()


def format_generated_on(scraped_at: str) -> str:
    """Format an ISO timestamp for the footer, falling back to the raw value."""
    if not scraped_at:
        return "Unknown"
    try:
        parsed = datetime.fromisoformat(scraped_at.replace("Z", "+00:00"))
    except ValueError:
        return scraped_at
    return parsed.strftime("%B %d, %Y %H:%M")


def _build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["nl2br"] = nl2br
    return env


_environment = _build_environment()


def _plan_view(plan: Plan, price_included: bool) -> Dict:
    features = plan.features
    detailed_features = plan.detailed_features
    if not price_included:
        features = redact_mapping(features)
        detailed_features = redact_mapping(detailed_features)

    return {
        "title": plan.title or "Plan",
        "monthly_price": format_price(plan.monthly_price) if price_included else "",
        "yearly_price": format_price(plan.yearly_price) if price_included else "",
        "features": list(features.items()),
        "detailed_features": list(detailed_features.items()),
    }


def _location_view(location: LocationRecord, anchor: str, price_included: bool) -> Dict:
    info = None
    if location.location_info is not None:
        operator = location.location_info.operator_info
        info = {
            "operator_name": operator.name if operator else None,
            "verified": bool(operator and operator.verified),
            "features": location.location_info.features,
            "shipping_carriers": ", ".join(location.location_info.shipping_carriers) or "N/A",
        }

    return {
        "anchor": anchor,
        "title": location.title,
        "address": location.address,
        "is_premier": location.is_premier,
        "starting_price": format_price(location.price) if price_included else "",
        "map_image": location.map_image or "",
        "info": info,
        "plans": [_plan_view(plan, price_included) for plan in location.plans],
    }


def build_document_context(document: CountryDocument) -> Dict:
    """
    View model for the country document template.

    Anchors are region-<slug> (city-<slug> for US states) and stay unique
    even when two regions share a name.
    """
    prefix = "city" if document.kind == "us_state" else "region"
    seen: Dict[str, int] = {}
    regions = []

    for region in document.regions:
        anchor = f"{prefix}-{slugify(region.region)}"
        if anchor in seen:
            seen[anchor] += 1
            anchor = f"{anchor}-{seen[anchor]}"
        else:
            seen[anchor] = 0

        regions.append({
            "name": region.region,
            "anchor": anchor,
            "location_count": region.location_count,
            "locations": [
                _location_view(location, f"location-{anchor}-{index}", document.price_included)
                for index, location in enumerate(region.locations)
            ],
        })

    return {
        "name": document.country,
        "total_locations": document.total_locations,
        "generated_on": format_generated_on(document.scraped_at),
        "regions": regions,
    }


def render_country_document_html(document: CountryDocument) -> str:
    """
    Render a CountryDocument to a complete, print-styled HTML page.

    Args:
        document: Normalized (and usually enriched) document

    Returns:
        HTML string
    """
    context = build_document_context(document)
    return _environment.get_template(COUNTRY_TEMPLATE).render(**context)


def render_us_map_html(pins: Sequence[Dict], geojson: Optional[Dict],
                       width: int = 1169, height: int = 827,
                       title: str = "Anytime Mailbox US Locations") -> str:
    """Render the US overview map with one marker per location."""
    return _environment.get_template(US_MAP_TEMPLATE).render(
        title=title,
        pins=list(pins),
        pin_count=len(pins),
        geojson=geojson,
        width=width,
        height=height,
    )


def render_world_map_html(geojson: Optional[Dict], bins: List[Dict], total_locations: int,
                          country_count: int,
                          title: str = "Anytime Mailbox Locations Worldwide") -> str:
    """Render the world density map. Features must carry properties.fill_color."""
    return _environment.get_template(WORLD_MAP_TEMPLATE).render(
        title=title,
        geojson=geojson,
        bins=bins,
        total_locations=total_locations,
        country_count=country_count,
    )
