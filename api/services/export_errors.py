"""
Export error taxonomy.

Every failure raised by the export pipeline is an ExportError subclass carrying
one of a closed set of kinds, so the API boundary can pick a status code
without inspecting messages.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ExportErrorKind(str, Enum):
    """Closed set of export failure kinds."""
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    ENRICHMENT_FAILURE = "enrichment_failure"
    RENDER_TIMEOUT = "render_timeout"
    UNKNOWN = "unknown"


class ExportError(Exception):
    """Base class for export pipeline errors."""

    kind: ExportErrorKind = ExportErrorKind.UNKNOWN

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Error body used by the HTTP layer."""
        body = {"error": self.message, "kind": self.kind.value}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ExportError):
    """No source file and no fallback entry matched the identifier."""

    kind = ExportErrorKind.NOT_FOUND

    def __init__(self, identifier: str):
        super().__init__(f"No location data found for '{identifier}'")
        self.identifier = identifier

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["identifier"] = self.identifier
        return body


class MalformedSourceError(ExportError):
    """A source file exists but is not valid JSON or misses required fields."""

    kind = ExportErrorKind.MALFORMED

    def __init__(self, path: str, reason: str):
        super().__init__(f"Malformed source file {path}", details=reason)
        self.path = path
        self.reason = reason


class EnrichmentFailure(ExportError):
    """A map image could not be produced. Always absorbed by the enricher."""

    kind = ExportErrorKind.ENRICHMENT_FAILURE


class RenderTimeoutError(ExportError):
    """A rendering step ran past its deadline."""

    kind = ExportErrorKind.RENDER_TIMEOUT


class ContentLoadTimeoutError(RenderTimeoutError):
    """The browser did not reach network idle while loading the HTML."""


class PrintTimeoutError(RenderTimeoutError):
    """The print-to-PDF step exceeded its timeout."""


class ExportTimeoutError(RenderTimeoutError):
    """The whole export exceeded the request deadline."""


class UnknownExportError(ExportError):
    """Catch-all for unexpected failures."""

    kind = ExportErrorKind.UNKNOWN


class BrowserLaunchError(UnknownExportError):
    """The headless browser could not be started."""
