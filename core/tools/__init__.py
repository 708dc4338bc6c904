"""
MCP tools and resources offered by the gateway.

Components:
- catalog.py: ToolCatalog, the tool definitions and handlers
- server.py: create_tool_server(), mcp low-level Server wiring
- guide.py: hue://setup-guide resource
"""

from .catalog import ToolCatalog, ToolSpec
from .guide import SETUP_GUIDE, SETUP_GUIDE_MIME_TYPE, SETUP_GUIDE_URI
from .server import SERVER_NAME, create_tool_server

__all__ = [
    "ToolCatalog",
    "ToolSpec",
    "SETUP_GUIDE",
    "SETUP_GUIDE_MIME_TYPE",
    "SETUP_GUIDE_URI",
    "SERVER_NAME",
    "create_tool_server",
]
