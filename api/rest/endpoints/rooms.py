"""
Room & Group Endpoints

Read rooms/zones/groups and control every light in a room at once.

@.architecture
Incoming: api/rest/router.py, REST clients (HTTP GET/POST/PUT) --- {HTTP requests to /api/rooms/*, /api/groups, BrightnessRequest, ColorRequest, ColorTempRequest, StateRequest JSON payloads}
Processing: list_rooms(), list_groups(), get_room(), turn_on(), turn_off(), set_brightness(), set_color(), set_color_temp(), set_state() --- {4 jobs: configuration_gating, input_validation, background_dispatch, hub_reads}
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

router = APIRouter(tags=["rooms"], dependencies=[Depends(setup_request_context)])

ACCEPTED = status.HTTP_202_ACCEPTED


@router.get("/rooms", summary="List rooms and zones")
async def list_rooms(hub: HubClient = Depends(require_hub_client)) -> List[Dict[str, Any]]:
    return [room.to_public() for room in await hub.get_rooms()]


@router.get("/groups", summary="List all groups")
async def list_groups(hub: HubClient = Depends(require_hub_client)) -> List[Dict[str, Any]]:
    """Rooms, zones, entertainment areas and light groups."""
    return [group.to_public() for group in await hub.get_all_groups()]


@router.get("/rooms/{room_id}", summary="Get a specific room")
async def get_room(room_id: str, hub: HubClient = Depends(require_hub_client)) -> Dict[str, Any]:
    return (await hub.get_room(room_id)).to_public()


@router.post("/rooms/{room_id}/on", status_code=ACCEPTED, response_model=MessageResponse,
             summary="Turn on all lights in a room")
async def turn_on(
    room_id: str,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    dispatcher.dispatch(f"turn room {room_id} on", hub.turn_room_on(room_id))
    return MessageResponse(message=f"Room {room_id} turning on")


@router.post("/rooms/{room_id}/off", status_code=ACCEPTED, response_model=MessageResponse,
             summary="Turn off all lights in a room")
async def turn_off(
    room_id: str,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    dispatcher.dispatch(f"turn room {room_id} off", hub.turn_room_off(room_id))
    return MessageResponse(message=f"Room {room_id} turning off")


@router.put("/rooms/{room_id}/brightness", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set room brightness")
async def set_brightness(
    room_id: str,
    body: BrightnessRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    brightness = validate_brightness(body.brightness)
    dispatcher.dispatch(f"set room {room_id} brightness {brightness}", hub.set_room_brightness(room_id, brightness))
    return MessageResponse(message=f"Room {room_id} brightness set to {brightness}")


@router.put("/rooms/{room_id}/color", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set room color (CSS format)")
async def set_color(
    room_id: str,
    body: ColorRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    validate_color(body.color)
    dispatcher.dispatch(f"set room {room_id} color {body.color}", hub.set_room_color(room_id, body.color))
    return MessageResponse(message=f"Room {room_id} set to {body.color}")


@router.put("/rooms/{room_id}/color-temp", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set room color temperature")
async def set_color_temp(
    room_id: str,
    body: ColorTempRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    mireds = validate_color_temp(body.color_temp)
    dispatcher.dispatch(f"set room {room_id} color temp {mireds}", hub.set_room_color_temp(room_id, mireds))
    return MessageResponse(message=f"Room {room_id} color temperature set to {mireds:g} mireds")


@router.put("/rooms/{room_id}/state", status_code=ACCEPTED, response_model=MessageResponse,
            summary="Set multiple room properties")
async def set_state(
    room_id: str,
    body: StateRequest,
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    state = state_from_request(body)
    dispatcher.dispatch(f"set room {room_id} state {state}", hub.set_room_state(room_id, state))
    return MessageResponse(message=f"Room {room_id} state updated")
