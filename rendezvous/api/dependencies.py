"""
Shared dependencies, state, and helpers for the API routers.

Parsed grids are cached by file hash and extension so the detect-mapping /
validate / import sequence on the same upload only parses the file once.
"""
import hashlib
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Tuple

from fastapi import Depends, HTTPException, UploadFile
from sqlalchemy.orm import Session

from rendezvous.core.config import settings
from rendezvous.db.session import get_db
from rendezvous.db.store import EntityStore, SqlAlchemyStore
from rendezvous.domain.imports.columns import ENTITY_COLUMNS
from rendezvous.domain.imports.processors.file_parser import FileParseError, parse_file
from rendezvous.integrations.api_integrations import APIIntegrationManager, get_api_integrations

logger = logging.getLogger(__name__)

# Key: file_hash:extension, Value: dict with 'grid', 'file_name', 'timestamp'
grid_cache: Dict[str, Dict[str, Any]] = {}
CACHE_TTL_SECONDS = settings.grid_cache_ttl_seconds


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return SqlAlchemyStore(db)


def get_integrations() -> APIIntegrationManager:
    return get_api_integrations()


def resolve_entity_type(entity_type: str) -> str:
    if entity_type not in ENTITY_COLUMNS:
        raise HTTPException(status_code=404, detail=f"Type d'import inconnu: {entity_type}")
    return entity_type


async def read_upload(file: UploadFile) -> Tuple[bytes, str]:
    """Read an upload, enforcing the size limit. Returns (content, sha256 hash)."""
    content = await file.read()
    max_bytes = settings.upload_max_file_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Fichier trop volumineux (maximum {settings.upload_max_file_size_mb} Mo)",
        )
    return content, hashlib.sha256(content).hexdigest()


def _prune_grid_cache(now: float) -> None:
    expired_keys = [key for key, entry in grid_cache.items()
                    if now - entry.get("timestamp", 0) > CACHE_TTL_SECONDS]
    for key in expired_keys:
        del grid_cache[key]


def grid_cache_key(file_hash: str, filename: str) -> str:
    extension = Path(filename or "").suffix.lower()
    return f"{file_hash}:{extension}"


def load_grid(content: bytes, file_hash: str, filename: str) -> List[List[Any]]:
    """Return the parsed grid for an upload, from the cache when still fresh."""
    now = time.time()
    _prune_grid_cache(now)

    cache_key = grid_cache_key(file_hash, filename)
    cached = grid_cache.get(cache_key)
    if cached is not None:
        logger.debug("Using cached grid for file hash %s", file_hash[:8])
        return cached["grid"]

    try:
        grid = parse_file(content, filename)
    except FileParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    grid_cache[cache_key] = {"grid": grid, "file_name": filename, "timestamp": now}
    logger.info("Cached %d rows for file hash %s", len(grid), file_hash[:8])
    return grid
