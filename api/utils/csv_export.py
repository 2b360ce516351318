"""
CSV Export Utility Module.

Pure functions that flatten normalized location documents into the
directory CSV: one row per location with country, city, address and the
premier / top rated / verified flags.
"""

import csv
import io
from typing import Dict, Iterable, List

from models.country_document import CountryDocument
from models.location import LocationRecord

CSV_HEADERS = ["country", "city", "address", "premier", "top_rated", "verified"]


def yes_no(flag: bool) -> str:
    """Render a boolean flag as Yes/No."""
    return "Yes" if flag else "No"


def location_to_row(country: str, region_name: str, location: LocationRecord) -> Dict[str, str]:
    """
    Build one CSV row for a location.

    The city column uses the location title and falls back to the region
    name. top_rated mirrors the operator's verified flag.

    Args:
        country: Country name of the document
        region_name: Region (or city) the location belongs to
        location: Location record

    Returns:
        Dictionary keyed by CSV_HEADERS
    """
    verified = location.is_verified
    return {
        "country": country,
        "city": location.title or region_name,
        "address": location.address or "",
        "premier": yes_no(location.is_premier),
        "top_rated": yes_no(verified),
        "verified": yes_no(verified),
    }


def document_rows(document: CountryDocument) -> List[Dict[str, str]]:
    """All CSV rows for a document, in source order."""
    return [
        location_to_row(document.country, region.region, location)
        for region, location in document.iter_locations()
    ]


def build_directory_csv(documents: Iterable[CountryDocument]) -> str:
    """
    Serialize documents into the directory CSV.

    The header row is written bare; every data field is quoted.

    Args:
        documents: Documents in output order

    Returns:
        CSV text
    """
    output = io.StringIO()
    output.write(",".join(CSV_HEADERS) + "\n")

    writer = csv.DictWriter(
        output,
        fieldnames=CSV_HEADERS,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n"
    )
    for document in documents:
        writer.writerows(document_rows(document))

    return output.getvalue()
