"""
House-wide Endpoints

Control every light through the bridge's built-in group 0.

@.architecture
Incoming: api/rest/router.py, REST clients (HTTP POST/PUT) --- {HTTP requests to /api/all/*, ColorRequest JSON payload}
Processing: all_on(), all_off(), all_color() --- {3 jobs: configuration_gating, input_validation, background_dispatch}
Outgoing: core/hue/client.py, api/rest/background.py, REST clients (HTTP) --- {HubClient.set_all_state calls, 202 MessageResponse}
"""

from fastapi import APIRouter, Depends, status

from api.dependencies import get_dispatcher, require_hub_client, setup_request_context
from api.rest.background import BackgroundDispatcher
from api.rest.schemas import ColorRequest, MessageResponse
from api.rest.validation import validate_color
from core.hue.client import HubClient

router = APIRouter(tags=["house"], prefix="/all", dependencies=[Depends(setup_request_context)])

ACCEPTED = status.HTTP_202_ACCEPTED


@router.post("/on", status_code=ACCEPTED, response_model=MessageResponse, summary="Turn on all lights")
async def all_on(
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    dispatcher.dispatch("turn all lights on", hub.set_all_state({"on": True}))
    return MessageResponse(message="All lights turning on")


@router.post("/off", status_code=ACCEPTED, response_model=MessageResponse, summary="Turn off all lights")
async def all_off(
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    dispatcher.dispatch("turn all lights off", hub.set_all_state({"on": False}))
    return MessageResponse(message="All lights turning off")


@router.put("/color", status_code=ACCEPTED, response_model=MessageResponse, summary="Set all lights to a color")
async def all_color(
    body: ColorRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    spec = validate_color(body.color)
    dispatcher.dispatch(f"set all lights color {body.color}", hub.set_all_state({"on": True, **spec.to_state()}))
    return MessageResponse(message=f"All lights set to {body.color}")
