from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import logging
import os

from pinatree import __version__
from pinatree.config import settings
from pinatree.database import init_db
from pinatree.routers import maps, session, submissions, trees, uploads
from pinatree.services import get_draft_service

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Initialize database
    if settings.persistence_backend == "database":
        await init_db()
    logger.info(
        f"Pin-a-Tree started (persistence={settings.persistence_backend}, "
        f"images={settings.image_backend}, geocoder={settings.geocoder})"
    )

    yield

    # Shutdown: drop unfinished drafts and their previews
    drafts = get_draft_service()
    if len(drafts):
        logger.info(f"Discarding {len(drafts)} unfinished submissions")
    drafts.discard_all()


app = FastAPI(
    title="Pin-a-Tree API",
    description="Upload a tree photo, place it on the map and share it with the community",
    version=__version__,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(session.router)
app.include_router(uploads.router)
app.include_router(submissions.router)
app.include_router(trees.router)
app.include_router(maps.router)

# Stored images
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount(settings.upload_url_prefix, StaticFiles(directory=settings.upload_dir), name="uploads")


@app.get("/api/v1/health")
async def health_check():
    """API health check endpoint"""
    return {
        "status": "healthy",
        "service": "pin-a-tree-api",
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Pin-a-Tree API",
        "docs": "/docs",
        "map": "/map",
        "health": "/api/v1/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pinatree.main:app", host="0.0.0.0", port=8000, reload=True)
