# lpr_hub/routers/sites.py
"""Site management — create-or-get, update, cascading delete, per-site stats."""

from fastapi import APIRouter, Depends, Response, status
from lpr_hub.database import get_store
from lpr_hub.schemas.dashboard import SiteStats
from lpr_hub.schemas.site import SiteCreate, SiteUpdate, SiteOut
from lpr_hub.services.entity_store import EntityStore

router = APIRouter()


@router.get("/sites", response_model=list[SiteStats], summary="All sites with detection stats")
def list_sites(store: EntityStore = Depends(get_store)):
    return store.get_site_stats()


@router.get("/sites/{site_id}", response_model=SiteOut)
def get_site(site_id: int, store: EntityStore = Depends(get_store)):
    return store.get_site(site_id)


@router.post("/sites", response_model=SiteOut, status_code=status.HTTP_201_CREATED,
             summary="Create a site (idempotent on name)")
def create_site(body: SiteCreate, store: EntityStore = Depends(get_store)):
    """Posting an existing name returns the stored site instead of a duplicate."""
    site_id = store.create_or_get_site(body.name, body.description)
    return store.get_site(site_id)


@router.put("/sites/{site_id}")
def update_site(site_id: int, body: SiteUpdate, store: EntityStore = Depends(get_store)):
    store.update_site(site_id, body.name, body.description)
    return {"id": site_id, "name": body.name.strip(), "description": body.description}


@router.delete("/sites/{site_id}", status_code=status.HTTP_204_NO_CONTENT,
               summary="Delete a site with all its cameras and events")
def delete_site(site_id: int, store: EntityStore = Depends(get_store)):
    store.delete_site(site_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
