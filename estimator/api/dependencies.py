"""
Dependency injection for FastAPI.

Reference data, the rate table and the calculation cache are built once per
process and shared; engines are cheap and built per request.
"""
from typing import Annotated, Optional
from fastapi import Depends

from estimator.config import settings
from estimator.domain.factor_catalog import FactorCatalog, default_catalog
from estimator.domain.models import ScoreFormula
from estimator.domain.rate_tables import RateTable, default_rate_table, load_rate_table
from estimator.services.application.estimate_service import EstimateService
from estimator.services.domain.calculation_cache import CalculationCache
from estimator.services.domain.pricing_engine import PricingEngine
from estimator.services.domain.score_engine import ScoreEngine


# Singleton instances
_rate_table: Optional[RateTable] = None
_calculation_cache: Optional[CalculationCache] = None


def get_rate_table() -> RateTable:
    """
    Get or load the singleton rate table.

    Returns:
        Table from settings.rate_table_path, or the built-in table tuned
        by the pricing settings
    """
    global _rate_table
    if _rate_table is None:
        if settings.rate_table_path:
            _rate_table = load_rate_table(settings.rate_table_path)
        else:
            _rate_table = default_rate_table(
                base_points_per_hour=settings.base_points_per_hour,
                per_person_wage=settings.per_person_wage,
                min_effective_rate=settings.min_effective_rate,
            )
    return _rate_table


def get_calculation_cache() -> CalculationCache:
    """
    Get or create the process-wide calculation cache.

    Returns:
        CalculationCache instance
    """
    global _calculation_cache
    if _calculation_cache is None:
        _calculation_cache = CalculationCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )
    return _calculation_cache


def get_factor_catalog() -> FactorCatalog:
    return default_catalog


def get_score_engine() -> ScoreEngine:
    return ScoreEngine(default_formula=ScoreFormula(settings.default_score_formula))


def get_pricing_engine(
    rate_table: Annotated[RateTable, Depends(get_rate_table)],
) -> PricingEngine:
    return PricingEngine(rate_table=rate_table)


def get_estimate_service(
    score_engine: Annotated[ScoreEngine, Depends(get_score_engine)],
    pricing_engine: Annotated[PricingEngine, Depends(get_pricing_engine)],
    catalog: Annotated[FactorCatalog, Depends(get_factor_catalog)],
    cache: Annotated[CalculationCache, Depends(get_calculation_cache)],
) -> EstimateService:
    """
    Dependency factory for EstimateService.

    Args:
        score_engine: Score engine (injected)
        pricing_engine: Pricing engine (injected)
        catalog: Factor catalog (injected)
        cache: Shared calculation cache (injected)

    Returns:
        EstimateService instance
    """
    return EstimateService(
        score_engine=score_engine,
        pricing_engine=pricing_engine,
        catalog=catalog,
        cache=cache,
    )


# Type aliases for cleaner route signatures
EstimateServiceDep = Annotated[EstimateService, Depends(get_estimate_service)]
FactorCatalogDep = Annotated[FactorCatalog, Depends(get_factor_catalog)]
CalculationCacheDep = Annotated[CalculationCache, Depends(get_calculation_cache)]
