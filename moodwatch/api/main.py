from fastapi import APIRouter

from .endpoints.caching import router as caching_router
from .endpoints.discover import router as discover_router
from .endpoints.health import router as health_router
from .endpoints.moods import router as moods_router
from .endpoints.scoring import router as scoring_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "Moodwatch API is running"}


api_router.include_router(health_router)
api_router.include_router(moods_router)
api_router.include_router(scoring_router)
api_router.include_router(discover_router)
api_router.include_router(caching_router)
