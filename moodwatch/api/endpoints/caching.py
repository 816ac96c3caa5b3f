from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from moodwatch.api.deps import get_result_cache
from moodwatch.core.exceptions import CacheUnavailableError
from moodwatch.models.cache import CacheStats
from moodwatch.services.result_cache import ResultCache

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=CacheStats)
async def cache_stats(cache: ResultCache = Depends(get_result_cache)) -> CacheStats:
    try:
        return await cache.stats()
    except CacheUnavailableError as e:
        logger.warning(f"Failed to read cache stats: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/")
async def clear_cache(cache: ResultCache = Depends(get_result_cache)):
    """
    Clear all cached discovery results.
    The next discovery run for any mood recomputes its results.
    """
    try:
        deleted = await cache.clear()
        logger.info("Result cache cleared via API endpoint")
        return {"message": "Result cache cleared successfully", "status": "success", "deleted": deleted}
    except CacheUnavailableError as e:
        logger.error(f"Error clearing cache: {e}")
        raise HTTPException(status_code=503, detail=f"Failed to clear cache: {str(e)}")


@router.post("/sweep")
async def sweep_cache(cache: ResultCache = Depends(get_result_cache)):
    try:
        removed = await cache.sweep_expired()
    except CacheUnavailableError as e:
        logger.error(f"Error sweeping cache: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return {"removed": removed}
