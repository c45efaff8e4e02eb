from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from typing import List
import logging

from pinatree.core.boundaries import TreeRepository
from pinatree.core.map_renderer import MapRenderer
from pinatree.dependencies import get_map_renderer, get_tree_repository
from pinatree.errors import PersistenceError
from pinatree.schemas.map import MarkerSpec
from pinatree.schemas.tree import TreeQuery, TreeRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["map"])

PAGE_SIZE = 500


async def _all_trees(trees: TreeRepository) -> List[TreeRecord]:
    records = []
    page = 1
    while True:
        result = await trees.list_trees(TreeQuery(page=page, page_size=PAGE_SIZE))
        records.extend(result.trees)
        if page >= result.total_pages or not result.trees:
            return records
        page += 1


async def _refresh(trees: TreeRepository, renderer: MapRenderer) -> MapRenderer:
    try:
        records = await _all_trees(trees)
    except PersistenceError as e:
        logger.error(f"Error loading trees for map: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    result = renderer.sync(records)
    if result.changed:
        logger.info(
            f"Map markers synced: {len(result.added)} added, "
            f"{len(result.updated)} updated, {len(result.removed)} removed"
        )
    return renderer


@router.get("/api/v1/map/markers", response_model=List[MarkerSpec])
async def get_markers(
    trees: TreeRepository = Depends(get_tree_repository),
    renderer: MapRenderer = Depends(get_map_renderer)
):
    """One marker per tree with valid coordinates"""
    renderer = await _refresh(trees, renderer)
    return renderer.markers


@router.get("/map", response_class=HTMLResponse)
async def show_map(
    trees: TreeRepository = Depends(get_tree_repository),
    renderer: MapRenderer = Depends(get_map_renderer)
):
    """Interactive map of all planted trees"""
    renderer = await _refresh(trees, renderer)
    return HTMLResponse(renderer.render_html())
