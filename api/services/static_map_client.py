"""
Static map API client for fetching location thumbnails.
Implements retries for transient provider errors and data URI encoding.
"""

import base64
import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from services.export_errors import EnrichmentFailure

logger = logging.getLogger(__name__)


class StaticMapClient:
    """Client for a remote static-map image provider.

    Requests a fixed-size map centred on a location with a red pushpin and
    returns it as an embeddable data URI.
    """

    def __init__(self, base_url: str, zoom: int = 15, width: int = 800, height: int = 400,
                 timeout: float = 10.0, retries: int = 2):
        """Initialize the static map client.

        Args:
            base_url: Provider endpoint, e.g. https://www.mapito.net/staticmap/
            zoom: Map zoom level
            width: Image width in pixels
            height: Image height in pixels
            timeout: Per-request timeout in seconds
            retries: Retries for 429/5xx responses
        """
        self.base_url = base_url
        self.zoom = zoom
        self.width = width
        self.height = height
        self.timeout = timeout

        # Configure session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_settings(cls, settings) -> "StaticMapClient":
        """Build a client from application settings."""
        return cls(
            base_url=settings.static_map_url,
            zoom=settings.static_map_zoom,
            width=settings.map_image_width,
            height=settings.map_image_height,
            timeout=settings.map_fetch_timeout_seconds,
            retries=settings.map_fetch_retries,
        )

    def build_params(self, latitude: float, longitude: float) -> dict:
        """Query parameters for a map centred on the given point."""
        point = f"{latitude},{longitude}"
        return {
            "center": point,
            "zoom": self.zoom,
            "size": f"{self.width}x{self.height}",
            "markers": f"{point},red-pushpin",
        }

    def fetch_map_image(self, latitude: float, longitude: float) -> str:
        """Fetch a static map and encode it as a data URI.

        Args:
            latitude: Centre latitude
            longitude: Centre longitude

        Returns:
            str: "data:<content-type>;base64,<payload>"

        Raises:
            EnrichmentFailure: On non-success status, network error, timeout
                or an empty body
        """
        params = self.build_params(latitude, longitude)
        logger.debug(f"Fetching static map for {params['center']}")

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise EnrichmentFailure(f"Static map request timed out for {params['center']}")
        except requests.exceptions.RequestException as e:
            raise EnrichmentFailure(f"Static map request failed for {params['center']}: {e}")

        if response.status_code != 200:
            raise EnrichmentFailure(
                f"Static map provider returned {response.status_code} for {params['center']}"
            )
        if not response.content:
            raise EnrichmentFailure(f"Static map provider returned an empty body for {params['center']}")

        content_type = self._content_type(response)
        encoded = base64.b64encode(response.content).decode("ascii")
        return f"data:{content_type};base64,{encoded}"

    @staticmethod
    def _content_type(response) -> str:
        content_type: Optional[str] = response.headers.get("Content-Type")
        if not content_type:
            return "image/png"
        return content_type.split(";")[0].strip()

    def close(self):
        """Close the underlying HTTP session."""
        self.session.close()
