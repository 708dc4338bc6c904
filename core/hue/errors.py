"""
Hue Error Taxonomy

Exception hierarchy shared by the hub client, the REST surface and the tool
catalogue. Every class carries the HTTP status the REST layer answers with, so
the error handler middleware can classify it without a lookup table.

@.architecture
Incoming: core/hue/client.py, core/hue/setup.py, core/hue/queue.py, api/rest/*.py --- {raised on validation, configuration and downstream failures}
Processing: exception construction --- {1 job: error_classification}
Outgoing: api/middleware/error_handler.py, core/tools/catalog.py --- {status_code + message for responses and tool error results}
"""

from typing import Any, Optional


class HueGatewayError(Exception):
    """Base class for all gateway errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =============================================================================
# Validation & Configuration
# =============================================================================

class ValidationError(HueGatewayError):
    """Client input rejected before it reaches the hub."""

    status_code = 400


class HubNotConfiguredError(HueGatewayError):
    """Bridge IP or username is unset."""

    status_code = 503

    def __init__(self, message: str = "Not configured. Set HUE_BRIDGE_IP and HUE_USERNAME environment variables."):
        super().__init__(message)


# =============================================================================
# Downstream
# =============================================================================

class HubError(HueGatewayError):
    """A hub operation failed."""

    status_code = 502


class HubUnreachableError(HubError):
    """The bridge could not be reached."""


class HubTimeoutError(HubError):
    """The bridge did not answer within the per-call timeout."""

    status_code = 504


class HubApiError(HubError):
    """
    The bridge answered with a domain error.

    Hue API v1 reports these inside a 200 response as
    ``[{"error": {"type": 7, "address": "/lights/1/state/bri", "description": "..."}}]``.
    """

    def __init__(self, description: str, error_type: Optional[int] = None, address: Optional[str] = None):
        super().__init__(description)
        self.error_type = error_type
        self.address = address

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["HubApiError"]:
        """Build an error from a hub response body, or None if it holds no error entries."""
        if not isinstance(payload, list):
            return None
        for entry in payload:
            if isinstance(entry, dict) and isinstance(entry.get("error"), dict):
                error = entry["error"]
                error_type = error.get("type")
                description = error.get("description") or "Unknown bridge error"
                if error_type == LinkButtonNotPressedError.ERROR_TYPE:
                    return LinkButtonNotPressedError(description, address=error.get("address"))
                return cls(description, error_type=error_type, address=error.get("address"))
        return None


class LinkButtonNotPressedError(HubApiError):
    """Token issuance attempted without pressing the bridge's link button."""

    ERROR_TYPE = 101
    status_code = 428

    def __init__(self, description: str = "link button not pressed", address: Optional[str] = None):
        super().__init__(description, error_type=self.ERROR_TYPE, address=address)


class SerializerClosedError(HubError):
    """The request serializer shut down before the operation ran."""

    status_code = 503
