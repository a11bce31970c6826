"""
Integration endpoints: cached geocoding/distance lookups and cache maintenance.
"""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from rendezvous.api.dependencies import get_integrations
from rendezvous.api.schemas.shared import CacheStatsResponse, ClearCacheResponse, IntegrationResponse
from rendezvous.integrations.api_integrations import APIIntegrationManager
from rendezvous.integrations.cache import IntegrationError

router = APIRouter(prefix="/integrations", tags=["integrations"])

logger = logging.getLogger(__name__)


@router.get("/geocode", response_model=IntegrationResponse)
def geocode_endpoint(
    address: str = Query(..., min_length=1),
    integrations: APIIntegrationManager = Depends(get_integrations),
):
    try:
        data = integrations.geocode_address(address)
    except (IntegrationError, httpx.HTTPError) as exc:
        logger.warning("Geocoding failed for '%s': %s", address, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return IntegrationResponse(success=True, data=data)


@router.get("/distance", response_model=IntegrationResponse)
def distance_endpoint(
    origin: str = Query(..., min_length=1),
    destination: str = Query(..., min_length=1),
    integrations: APIIntegrationManager = Depends(get_integrations),
):
    try:
        data = integrations.calculate_distance(origin, destination)
    except (IntegrationError, httpx.HTTPError) as exc:
        logger.warning("Distance lookup failed (%s -> %s): %s", origin, destination, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return IntegrationResponse(success=True, data=data)


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats_endpoint(integrations: APIIntegrationManager = Depends(get_integrations)):
    return CacheStatsResponse(**integrations.get_cache_stats())


@router.delete("/cache", response_model=ClearCacheResponse)
def clear_cache_endpoint(
    pattern: Optional[str] = None,
    integrations: APIIntegrationManager = Depends(get_integrations),
):
    cleared = integrations.clear_cache(pattern)
    return ClearCacheResponse(success=True, cleared=cleared, pattern=pattern)
