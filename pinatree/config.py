from pydantic_settings import BaseSettings
from typing import List, Optional, Tuple


class Settings(BaseSettings):
    # Database - SQLite for local development, any async SQLAlchemy URL works
    database_url: str = "sqlite+aiosqlite:///./pinatree.db"
    database_echo: bool = False

    # Storage
    upload_dir: str = "./uploads"
    upload_url_prefix: str = "/uploads"

    # CORS - allow web client
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000", "*"]

    # Image ingestion
    max_upload_bytes: int = 10 * 1024 * 1024  # 10MB
    preview_max_size: Tuple[int, int] = (400, 400)
    stored_image_max_size: Tuple[int, int] = (800, 600)
    stored_image_quality: int = 80

    # Boundaries: "database" | "memory" | "http"
    persistence_backend: str = "database"
    # "local" | "memory" | "http"
    image_backend: str = "local"
    api_base_url: str = "http://localhost:3001/api"
    api_token: Optional[str] = None
    request_timeout_seconds: float = 10.0

    # Reverse geocoding: "nominatim" | "none"
    geocoder: str = "nominatim"
    nominatim_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_user_agent: str = "pin-a-tree/1.0"

    # Form behaviour
    strict_validation: bool = True  # description required (>= 10 chars)
    allow_typed_coordinates: bool = True
    allow_guest_submissions: bool = True

    # Submission drafts: idle drafts are dropped after draft_ttl_seconds
    draft_ttl_seconds: float = 3600.0
    max_drafts: int = 1000

    # Map
    map_default_center: Tuple[float, float] = (40.7128, -74.006)
    map_default_zoom: int = 12
    map_tiles: str = "OpenStreetMap"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "PINATREE_"


settings = Settings()
