"""
Scene Endpoints

@.architecture
Incoming: api/rest/router.py, REST clients (HTTP GET/POST/DELETE) --- {HTTP requests to /api/scenes/*, CreateSceneRequest, ActivateSceneRequest JSON payloads}
Processing: list_scenes(), create_scene(), activate_scene(), delete_scene() --- {4 jobs: configuration_gating, input_validation, background_dispatch, hub_calls}
Outgoing: core/hue/client.py, api/rest/background.py, REST clients (HTTP) --- {HubClient calls, 200 scene JSON, 201 SceneCreatedResponse, 202/200 MessageResponse}
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status

from api.dependencies import get_dispatcher, require_hub_client, setup_request_context
from api.rest.background import BackgroundDispatcher
from api.rest.schemas import (
    ActivateSceneRequest,
    CreateSceneRequest,
    MessageResponse,
    SceneCreatedResponse,
)
from api.rest.validation import validate_name
from core.hue.client import HubClient
from monitoring import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["scenes"], prefix="/scenes", dependencies=[Depends(setup_request_context)])


@router.get("", summary="List all scenes")
async def list_scenes(hub: HubClient = Depends(require_hub_client)) -> List[Dict[str, Any]]:
    return [scene.to_public() for scene in await hub.get_scenes()]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SceneCreatedResponse,
             summary="Create a scene from current light states")
async def create_scene(
    body: CreateSceneRequest,
    hub: HubClient = Depends(require_hub_client),
) -> SceneCreatedResponse:
    """
    Store the current state of some lights as a scene.

    Light selection: lightIds if given, else the lights of roomId, else every
    light. Waits for the bridge so the new id can be returned.
    """
    name = validate_name(body.name)
    lights = await hub.resolve_scene_lights(body.room_id, body.light_ids)
    scene_id = await hub.create_scene(name, lights, body.room_id)
    logger.info(f"Created scene {scene_id} '{name}' with {len(lights)} light(s)")
    return SceneCreatedResponse(message=f'Scene "{name}" created', id=scene_id)


@router.post("/{scene_id}/activate", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse,
             summary="Activate a scene")
async def activate_scene(
    scene_id: str,
    body: Optional[ActivateSceneRequest] = Body(default=None),
    hub: HubClient = Depends(require_hub_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    group_id = body.group_id if body else None
    dispatcher.dispatch(f"activate scene {scene_id}", hub.activate_scene(scene_id, group_id))
    suffix = f" in group {group_id}" if group_id else ""
    return MessageResponse(message=f"Scene {scene_id} activating{suffix}")


@router.delete("/{scene_id}", response_model=MessageResponse, summary="Delete a scene")
async def delete_scene(scene_id: str, hub: HubClient = Depends(require_hub_client)) -> MessageResponse:
    await hub.delete_scene(scene_id)
    return MessageResponse(message=f"Scene {scene_id} deleted")
