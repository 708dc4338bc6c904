"""
Stream Protocol Definitions

JSON-RPC envelopes and handshake validation for the MCP streamable HTTP
endpoint. Only the pieces the gateway itself inspects live here; framing of
tool calls is left to the mcp SDK.

@.architecture
Incoming: stream/gateway.py --- {raw request bodies, session header values}
Processing: parse_json_body(), is_initialize_request(), error_envelope() --- {3 jobs: body_parsing, handshake_detection, error_formatting}
Outgoing: stream/gateway.py --- {InitializeMessage, ProtocolError, JSON-RPC error dicts}
"""

import json
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError

# Header carrying the session id; ASGI header names are lower-case
MCP_SESSION_ID_HEADER = "mcp-session-id"

JSONRPC_VERSION = "2.0"

# JSON-RPC error codes
PARSE_ERROR = -32700
INTERNAL_ERROR = -32603
SESSION_ERROR = -32000  # Implementation-defined server error range

NO_VALID_SESSION_MESSAGE = "Bad Request: No valid session ID provided"


class ProtocolError(Exception):
    """A stream request the gateway refuses before it reaches a transport."""

    def __init__(self, message: str, code: int = SESSION_ERROR, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def to_envelope(self) -> Dict[str, Any]:
        return error_envelope(self.code, self.message)


class InitializeParams(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    protocolVersion: str
    capabilities: Dict[str, Any]
    clientInfo: Dict[str, Any]


class InitializeMessage(BaseModel):
    """
    The handshake request that opens a session.

    Example:
        {"jsonrpc": "2.0", "id": 1, "method": "initialize",
         "params": {"protocolVersion": "2025-03-26", "capabilities": {},
                    "clientInfo": {"name": "inspector", "version": "1.0"}}}
    """
    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"]
    id: Union[int, str]
    method: Literal["initialize"]
    params: InitializeParams


def error_envelope(code: int, message: str, request_id: Optional[Union[int, str]] = None) -> Dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": code, "message": message},
        "id": request_id,
    }


def parse_json_body(body: bytes) -> Any:
    """
    Decode a request body.

    Raises:
        ProtocolError: With code -32700 if the body is not JSON
    """
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as exc:
        raise ProtocolError(f"Parse error: {exc}", code=PARSE_ERROR) from exc


def is_initialize_request(payload: Any) -> bool:
    """True for a single JSON-RPC initialize request; batches never open sessions."""
    if not isinstance(payload, dict):
        return False
    try:
        InitializeMessage.model_validate(payload)
    except PydanticValidationError:
        return False
    return True
