"""
Light Endpoints

Read and control individual lights.

@.architecture
Incoming: api/rest/router.py, REST clients (HTTP GET/POST/PUT) --- {HTTP requests to /api/lights/*, BrightnessRequest, ColorRequest, ColorTempRequest, StateRequest JSON payloads}
Processing: list_lights(), get_light(), turn_on(), turn_off(), set_brightness(), set_color(), set_color_temp(), set_state() --- {4 jobs: configuration_gating, input_validation, background_dispatch, hub_reads}
Outgoing: core/hue/client.py, api/rest/background.py, REST clients (HTTP) --- {HubClient calls, 200 resource JSON, 202 MessageResponse}
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from api.dependencies import get_dispatcher, require_hub_client, setup_request_context
from api.rest.background import BackgroundDispatcher
from api.rest.schemas import (
    BrightnessRequest,
    ColorRequest,
    ColorTempRequest,
    MessageResponse,
    StateRequest,
)
from api.rest.validation import (
    state_from_request,
    validate_brightness,
    validate_color,
    validate_color_temp,
)
from core.hue.client import HubClient
from monitoring import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["lights"], prefix="/lights", dependencies=[Depends(setup_request_context)])

ACCEPTED = status.HTTP_202_ACCEPTED


# =============================================================================
# Reads
# =============================================================================

@router.get("", summary="List all lights")
async def list_lights(hub: HubClient = Depends(require_hub_client)) -> List[Dict[str, Any]]:
    return [light.to_public() for light in await hub.get_lights()]


@router.get("/{light_id}", summary="Get a specific light")
async def get_light(light_id: str, hub: HubClient = Depends(require_hub_client)) -> Dict[str, Any]:
    return (await hub.get_light(light_id)).to_public()


# =============================================================================
# Writes (fire-and-forget)
# =============================================================================

@router.post("/{light_id}/on", status_code=ACCEPTED, response_model=MessageResponse, summary="Turn on a light")
async def turn_on(
    light_id: str,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    dispatcher.dispatch(f"turn light {light_id} on", hub.turn_light_on(light_id))
    return MessageResponse(message=f"Light {light_id} turning on")


@router.post("/{light_id}/off", status_code=ACCEPTED, response_model=MessageResponse, summary="Turn off a light")
async def turn_off(
    light_id: str,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    dispatcher.dispatch(f"turn light {light_id} off", hub.turn_light_off(light_id))
    return MessageResponse(message=f"Light {light_id} turning off")


@router.put("/{light_id}/brightness", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set light brightness")
async def set_brightness(
    light_id: str,
    body: BrightnessRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    brightness = validate_brightness(body.brightness)
    dispatcher.dispatch(f"set light {light_id} brightness {brightness}", hub.set_brightness(light_id, brightness))
    return MessageResponse(message=f"Light {light_id} brightness set to {brightness}")


@router.put("/{light_id}/color", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set light color (CSS format)")
async def set_color(
    light_id: str,
    body: ColorRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    validate_color(body.color)
    dispatcher.dispatch(f"set light {light_id} color {body.color}", hub.set_color(light_id, body.color))
    return MessageResponse(message=f"Light {light_id} set to {body.color}")


@router.put("/{light_id}/color-temp", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set light color temperature")
async def set_color_temp(
    light_id: str,
    body: ColorTempRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    mireds = validate_color_temp(body.color_temp)
    dispatcher.dispatch(f"set light {light_id} color temp {mireds}", hub.set_color_temp(light_id, mireds))
    return MessageResponse(message=f"Light {light_id} color temperature set to {mireds:g} mireds")


@router.put("/{light_id}/state", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set multiple light properties")
async def set_state(
    light_id: str,
    body: StateRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    state = state_from_request(body)
    dispatcher.dispatch(f"set light {light_id} state {state}", hub.set_light_state(light_id, state))
    return MessageResponse(message=f"Light {light_id} state updated")
