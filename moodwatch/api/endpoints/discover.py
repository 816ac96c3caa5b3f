from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from moodwatch.api.deps import get_discovery_service
from moodwatch.core.exceptions import UnknownMoodError
from moodwatch.models.requests import DiscoverRequest
from moodwatch.services.discovery import DiscoveryService

router = APIRouter(tags=["discovery"])


@router.post("/discover/{mood}")
async def discover(mood: str, body: DiscoverRequest, service: DiscoveryService = Depends(get_discovery_service)):
    """
    Rank the supplied candidates for a mood.

    Results for the same mood and filters are served from the result cache
    for up to an hour.
    """
    try:
        result = await service.discover(mood, body.filters, candidates=body.candidates, profile=body.profile)
    except UnknownMoodError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error in mood-based discovery for {mood}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return result.model_dump(mode="json")
