"""
Data preparation for the overview map exports.

Builds the pin list for the US locations map and the per-country location
totals and colour bins for the world density map.
"""

import copy
import re
from typing import Dict, Iterable, List, Optional

from models.country_document import CountryDocument

UNITED_STATES = "United States"

DENSITY_COLORS = [
    "#f0f0f0",
    "#e3f0ff",
    "#b3d8ff",
    "#7fc7ff",
    "#4fa3e3",
    "#2176b6",
    "#0d3c61",
    "#001933",
]

DENSITY_LABELS = [
    "No locations",
    "1 location",
    "2-5 locations",
    "6-10 locations",
    "11-25 locations",
    "26-50 locations",
    "51-100 locations",
    "101+ locations",
]

# Upper bound of each bin after the first two (0 and 1)
DENSITY_UPPER_BOUNDS = [5, 10, 25, 50, 100]

# Source country names that differ from common GeoJSON ADMIN/NAME values
NAME_ALIASES = {
    "unitedstates": "unitedstatesofamerica",
    "usa": "unitedstatesofamerica",
    "southkorea": "korea",
    "northkorea": "koreademocraticpeoplesrepublicof",
    "russia": "russianfederation",
    "vietnam": "vietnamsocialistrepublicof",
    "laos": "laopeoplesdemocraticrepublic",
    "moldova": "moldovarepublicof",
    "tanzania": "tanzaniatheunitedrepublicof",
    "unitedrepublicoftanzania": "tanzaniatheunitedrepublicof",
    "venezuela": "venezuelabolivarianrepublicof",
    "syria": "syrianarabrepublic",
    "bolivia": "boliviaplurinationalstateof",
    "brunei": "bruneidarussalam",
    "iran": "iranislamicrepublicof",
    "macedonia": "northmacedonia",
    "czechrepublic": "czechia",
    "slovakrepublic": "slovakia",
    "hongkongsar": "hongkong",
    "hongkongsarchina": "hongkong",
}


def normalize_country_name(name: Optional[str]) -> str:
    """Lower-case alphanumeric key with known aliases folded together."""
    if not name:
        return ""
    key = re.sub(r"[^a-z0-9]", "", name.lower())
    return NAME_ALIASES.get(key, key)


def density_bin(count: int) -> int:
    """Index of the colour bin for a location count."""
    if count <= 0:
        return 0
    if count == 1:
        return 1
    for index, upper in enumerate(DENSITY_UPPER_BOUNDS):
        if count <= upper:
            return index + 2
    return len(DENSITY_COLORS) - 1


def density_legend() -> List[Dict[str, str]]:
    return [
        {"color": color, "label": label}
        for color, label in zip(DENSITY_COLORS, DENSITY_LABELS)
    ]


def country_location_counts(international: Iterable[CountryDocument],
                            us_states: Iterable[CountryDocument]) -> Dict[str, int]:
    """
    Location totals per country.

    All US state documents are summed into a single "United States" entry.
    """
    counts: Dict[str, int] = {}
    for document in international:
        counts[document.country] = counts.get(document.country, 0) + document.total_locations

    us_total = sum(document.total_locations for document in us_states)
    if us_total:
        counts[UNITED_STATES] = counts.get(UNITED_STATES, 0) + us_total
    return counts


def feature_name(feature: Dict) -> str:
    properties = feature.get("properties") or {}
    for key in ("ADMIN", "NAME", "name"):
        if properties.get(key):
            return properties[key]
    return ""


def color_world_features(geojson: Optional[Dict], counts: Dict[str, int]) -> Optional[Dict]:
    """
    Copy of the world GeoJSON with location_count and fill_color set on each feature.

    The input GeoJSON is not modified.
    """
    if not geojson:
        return None

    normalized = {}
    for name, count in counts.items():
        key = normalize_country_name(name)
        normalized[key] = normalized.get(key, 0) + count

    colored = copy.deepcopy(geojson)
    for feature in colored.get("features") or []:
        count = normalized.get(normalize_country_name(feature_name(feature)), 0)
        properties = feature.setdefault("properties", {})
        properties["location_count"] = count
        properties["fill_color"] = DENSITY_COLORS[density_bin(count)]
    return colored


def collect_us_pins(us_states: Iterable[CountryDocument]) -> List[Dict]:
    """One pin per US location with valid coordinates."""
    pins = []
    for document in us_states:
        for region in document.regions:
            for location in region.locations:
                coordinates = location.coordinates
                if coordinates is None:
                    continue
                pins.append({
                    "latitude": coordinates[0],
                    "longitude": coordinates[1],
                    "title": location.title,
                    "address": location.address,
                    "state": document.country,
                    "city": region.region,
                })
    return pins
