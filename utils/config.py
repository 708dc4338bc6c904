"""
Simple config loader for gateway components.
Reads the gateway TOML file, falling back to built-in defaults.

@.architecture
Incoming: config/gateway.toml, config/settings.py --- {TOML file, load_config calls}
Processing: load_config(), get_fallback_config() --- {2 jobs: config_loading, fallback_generation}
Outgoing: config/settings.py --- {Dict[str, Any] config data keyed by section}
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml

from monitoring import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "gateway.toml"


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from the gateway TOML file.

    Args:
        path: Config file path (defaults to config/gateway.toml)

    Returns:
        Dict keyed by section name (hub, server, stream, monitoring)
    """
    config_file = Path(path) if path else DEFAULT_CONFIG_FILE
    try:
        with open(config_file, 'r') as f:
            return toml.load(f)
    except FileNotFoundError:
        logger.warning(f"Config file {config_file} not found, using built-in defaults")
    except toml.TomlDecodeError as e:
        logger.error(f"Config file {config_file} is not valid TOML ({e}), using built-in defaults")
    return get_fallback_config()


def get_fallback_config() -> Dict[str, Any]:
    """Configuration used when the TOML file can't be loaded."""
    return {
        "hub": {
            "timeout_seconds": 10.0,
            "verify_tls": False,
            "connect_retries": 2,
            "discovery_url": "https://discovery.meethue.com/",
        },
        "server": {
            "bind_host": "0.0.0.0",
            "bind_port": 3100,
        },
        "stream": {
            "path": "/mcp",
            "json_response": False,
        },
        "monitoring": {
            "metrics_enabled": True,
        },
    }
