from datetime import datetime

from fastapi import APIRouter

from moodwatch.models.requests import BasicScoreRequest, ScoreRequest, SimilarRequest
from moodwatch.services.scoring import ScoringEngine
from moodwatch.services.similarity import find_similar

router = APIRouter(tags=["scoring"])


@router.post("/score")
async def score_items(body: ScoreRequest) -> dict:
    """Smart score breakdown per item, highest total first."""
    now = datetime.now()
    scored = []
    for item in body.items:
        breakdown = ScoringEngine.smart_score_breakdown(item, body.profile, now)
        scored.append({"id": item.id, "content_type": item.content_type, **breakdown.model_dump()})
    scored.sort(key=lambda s: s["total"], reverse=True)
    return {"scores": scored}


@router.post("/score/basic")
async def basic_score(body: BasicScoreRequest) -> dict:
    return {"id": body.item.id, "score": ScoringEngine.basic_score(body.item, body.factors)}


@router.post("/similar")
async def similar_items(body: SimilarRequest) -> dict:
    results = find_similar(body.target, body.candidates, body.limit)
    return {"results": [item.model_dump(mode="json") for item in results]}
