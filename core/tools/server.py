"""
MCP Tool Server

Wires the ToolCatalog and the setup-guide resource into an mcp low-level
Server. One Server instance is shared by every session; each session runs
its own Server.run() loop over its own streams.

@.architecture
Incoming: app.py (lifespan), stream/transport.py (Server.run per session) --- {ToolCatalog, JSON-RPC tools/list, tools/call, resources/list, resources/read}
Processing: create_tool_server(), list_tools(), call_tool(), list_resources(), read_resource() --- {3 jobs: tool_listing, tool_invocation, resource_serving}
Outgoing: core/tools/catalog.py, MCP peers --- {types.Tool list, TextContent results, setup-guide markdown}
"""

from typing import Any, Dict, Iterable, List

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from core.tools.catalog import ToolCatalog
from core.tools.guide import SETUP_GUIDE, SETUP_GUIDE_MIME_TYPE, SETUP_GUIDE_URI
from monitoring import get_logger

logger = get_logger(__name__)

SERVER_NAME = "philips-hue-mcp"


def create_tool_server(catalog: ToolCatalog, version: str = "1.0.0") -> Server:
    """
    Build the MCP server exposing the tool catalogue.

    Args:
        catalog: Tools to expose
        version: Server version reported in the handshake

    Returns:
        Configured low-level Server
    """
    server: Server = Server(SERVER_NAME, version=version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return catalog.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        # Exceptions are reported to the peer as isError results
        text = await catalog.call(name, arguments)
        return [types.TextContent(type="text", text=text)]

    @server.list_resources()
    async def list_resources() -> List[types.Resource]:
        return [
            types.Resource(
                uri=SETUP_GUIDE_URI,
                name="Hue Setup Guide",
                description="Instructions for discovering a Hue bridge and creating an auth token",
                mimeType=SETUP_GUIDE_MIME_TYPE,
            )
        ]

    @server.read_resource()
    async def read_resource(uri) -> Iterable[ReadResourceContents]:
        if str(uri) != SETUP_GUIDE_URI:
            raise ValueError(f"Unknown resource: {uri}")
        return [ReadResourceContents(content=SETUP_GUIDE, mime_type=SETUP_GUIDE_MIME_TYPE)]

    logger.info(f"MCP tool server ready: {len(catalog.names())} tools")
    return server
