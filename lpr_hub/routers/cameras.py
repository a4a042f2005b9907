# lpr_hub/routers/cameras.py
"""Camera management — explicit registration, partial edits, removal."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from lpr_hub.database import get_store
from lpr_hub.schemas.camera import CameraCreate, CameraUpdate, CameraOut
from lpr_hub.services.entity_store import EntityStore

router = APIRouter()


@router.get("/cameras", response_model=list[CameraOut])
def list_cameras(site_id: Optional[int] = Query(None, alias="siteId"),
                 store: EntityStore = Depends(get_store)):
    return store.list_cameras(site_id)


@router.get("/cameras/channel/{channel_id}", response_model=CameraOut, summary="Look up a camera by channel ID")
def get_camera_by_channel(channel_id: str, store: EntityStore = Depends(get_store)):
    return store.get_camera_by_channel(channel_id)


@router.get("/cameras/{camera_id}", response_model=CameraOut)
def get_camera(camera_id: int, store: EntityStore = Depends(get_store)):
    return store.get_camera(camera_id)


@router.post("/cameras", response_model=CameraOut, status_code=status.HTTP_201_CREATED,
             summary="Register a camera")
def create_camera(body: CameraCreate, store: EntityStore = Depends(get_store)):
    """Duplicate channel IDs and unknown sites are rejected with 409."""
    return store.add_camera(
        channel_id=body.channel_id,
        mac_address=body.mac_address,
        name=body.name,
        description=body.description,
        site_id=body.site_id,
    )


@router.put("/cameras/{camera_id}", response_model=CameraOut)
def update_camera(camera_id: int, body: CameraUpdate, store: EntityStore = Depends(get_store)):
    return store.update_camera(camera_id, **body.model_dump(exclude_unset=True))


@router.delete("/cameras/{camera_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_camera(camera_id: int, store: EntityStore = Depends(get_store)):
    store.delete_camera(camera_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
