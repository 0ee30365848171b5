"""
API router for calculation cache administration.
"""
from fastapi import APIRouter, status

from estimator.api.dependencies import CalculationCacheDep
from estimator.api.v1.models.responses import CacheStatsResponse


router = APIRouter(
    prefix="/cache",
    tags=["cache"],
)


@router.get(
    "/stats",
    response_model=CacheStatsResponse,
    summary="Calculation cache counters",
)
async def cache_stats(cache: CalculationCacheDep) -> CacheStatsResponse:
    stats = cache.stats
    return CacheStatsResponse(
        hits=stats.hits,
        misses=stats.misses,
        evictions=stats.evictions,
        size=stats.size,
        in_flight=cache.in_flight,
        ttl_seconds=cache.ttl_seconds,
    )


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear the calculation cache",
)
async def clear_cache(cache: CalculationCacheDep) -> None:
    cache.clear()
