from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
import logging

from pinatree.config import settings
from pinatree.core.boundaries import ImageStore, TreeRepository
from pinatree.core.form import TreeForm, validate_field, validate_form
from pinatree.core.geo import bounding_box, haversine_distance
from pinatree.dependencies import get_current_user, get_image_store, get_session_store, get_tree_repository
from pinatree.errors import PersistenceError, TreeNotFoundError
from pinatree.schemas.session import UserSession
from pinatree.schemas.tree import NearbyTree, TreeCreate, TreeListResponse, TreeQuery, TreeRecord, TreeUpdate
from pinatree.services import LocalImageStore, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/trees", tags=["trees"])

NEARBY_CANDIDATE_LIMIT = 500


def _form_errors(tree) -> dict:
    form = TreeForm(
        name=tree.name,
        species=tree.species,
        date_planted=tree.date_planted,
        description=tree.description,
    )
    return validate_form(form, strict=settings.strict_validation)


@router.get("", response_model=TreeListResponse)
async def list_trees(
    search: Optional[str] = None,
    species: Optional[str] = None,
    south: Optional[float] = Query(None, ge=-90, le=90),
    north: Optional[float] = Query(None, ge=-90, le=90),
    west: Optional[float] = Query(None, ge=-180, le=180),
    east: Optional[float] = Query(None, ge=-180, le=180),
    page: int = 1,
    page_size: int = 20,
    trees: TreeRepository = Depends(get_tree_repository)
):
    """Get paginated list of trees, optionally filtered by text, species or map bounds"""
    if page < 1 or page_size < 1:
        raise HTTPException(status_code=400, detail="Invalid pagination parameters")

    bounds = (south, north, west, east)
    if any(b is not None for b in bounds) and None in bounds:
        raise HTTPException(status_code=400, detail="Bounds require south, north, west and east")

    query = TreeQuery(
        search=search, species=species,
        south=south, north=north, west=west, east=east,
        page=page, page_size=min(page_size, 500),
    )
    try:
        return await trees.list_trees(query)
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/search", response_model=TreeListResponse)
async def search_trees(
    query: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500),
    trees: TreeRepository = Depends(get_tree_repository)
):
    """Search trees by name, species, description or tags"""
    try:
        return await trees.list_trees(TreeQuery(search=query, page=page, page_size=page_size))
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/nearby", response_model=List[NearbyTree])
async def trees_near(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(10.0, gt=0, le=1000),
    trees: TreeRepository = Depends(get_tree_repository)
):
    """Trees within radius_km of a point, nearest first"""
    south, north, west, east = bounding_box(latitude, longitude, radius_km)
    query = TreeQuery(south=south, north=north, west=west, east=east, page_size=NEARBY_CANDIDATE_LIMIT)
    try:
        candidates = await trees.list_trees(query)
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    nearby = []
    for tree in candidates.trees:
        distance = haversine_distance(latitude, longitude, tree.location.latitude, tree.location.longitude)
        if distance <= radius_km:
            nearby.append(NearbyTree(tree=tree, distance_km=distance))
    nearby.sort(key=lambda n: n.distance_km)
    return nearby


@router.get("/{tree_id}", response_model=TreeRecord)
async def get_tree(
    tree_id: str,
    trees: TreeRepository = Depends(get_tree_repository)
):
    """Get tree details"""
    try:
        return await trees.get(tree_id)
    except TreeNotFoundError:
        raise HTTPException(status_code=404, detail="Tree not found")
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("", response_model=TreeRecord, status_code=201)
async def create_tree(
    tree: TreeCreate,
    user: Optional[UserSession] = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
    trees: TreeRepository = Depends(get_tree_repository)
):
    """Create a tree directly from a complete record (image already uploaded)"""
    if not sessions.can_add_tree(user):
        raise HTTPException(status_code=401, detail="Sign in to add a tree")

    errors = _form_errors(tree)
    if errors:
        raise HTTPException(status_code=422, detail={"message": "Validation failed", "errors": errors})

    if user is not None:
        tree = tree.model_copy(update={"submitter": sessions.to_submitter(user)})

    try:
        record = await trees.create(tree)
    except PersistenceError as e:
        logger.error(f"Error creating tree: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    logger.info(f"Created tree {record.id} via direct create")
    return record


@router.put("/{tree_id}", response_model=TreeRecord)
async def update_tree(
    tree_id: str,
    tree_update: TreeUpdate,
    trees: TreeRepository = Depends(get_tree_repository)
):
    """Update tree metadata"""
    try:
        existing = await trees.get(tree_id)
    except TreeNotFoundError:
        raise HTTPException(status_code=404, detail="Tree not found")
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    changes = tree_update.model_dump(exclude_unset=True, exclude_none=True)
    form = TreeForm(
        name=changes.get("name", existing.name),
        species=changes.get("species", existing.species),
        date_planted=changes.get("date_planted", existing.date_planted),
        description=changes.get("description", existing.description),
    )
    errors = {}
    for field in ("name", "species", "date_planted", "description"):
        if field in changes:
            message = validate_field(form, field, strict=settings.strict_validation)
            if message:
                errors[field] = message
    if errors:
        raise HTTPException(status_code=422, detail={"message": "Validation failed", "errors": errors})

    try:
        return await trees.update(tree_id, tree_update)
    except TreeNotFoundError:
        raise HTTPException(status_code=404, detail="Tree not found")
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.delete("/{tree_id}", status_code=204)
async def delete_tree(
    tree_id: str,
    trees: TreeRepository = Depends(get_tree_repository),
    images: ImageStore = Depends(get_image_store)
):
    """Delete tree and its stored image"""
    try:
        tree = await trees.get(tree_id)
        await trees.delete(tree_id)
    except TreeNotFoundError:
        raise HTTPException(status_code=404, detail="Tree not found")
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if tree.image_url and isinstance(images, LocalImageStore):
        images.discard(tree.image_url)
