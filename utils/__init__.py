"""
Utilities Package - helper modules shared by the hub client and settings.

- http: HTTP client with connect retries and timeout management
- config: Gateway TOML loading
"""

from .http import (
    HTTPClient,
    HTTPClientConfig,
    RETRYABLE_ERRORS,
)

from .config import (
    load_config,
    get_fallback_config,
)

__all__ = [
    # HTTP
    'HTTPClient',
    'HTTPClientConfig',
    'RETRYABLE_ERRORS',

    # Config
    'load_config',
    'get_fallback_config',
]
