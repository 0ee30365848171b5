"""
API router for assessment factor reference data.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Query

from estimator.api.dependencies import FactorCatalogDep
from estimator.api.v1.models.requests import SuggestFactorsRequest
from estimator.api.v1.models.responses import (
    FactorListResponse,
    FactorResponse,
    PresetResponse,
)
from estimator.domain.models import AssessmentFactor, FactorCategory


router = APIRouter(
    prefix="/factors",
    tags=["factors"],
)


def _factor_list(factors: List[AssessmentFactor]) -> FactorListResponse:
    return FactorListResponse(
        count=len(factors),
        factors=[FactorResponse.from_factor(f) for f in factors],
    )


@router.get(
    "",
    response_model=FactorListResponse,
    summary="List assessment factors",
    description="List the assessment factor catalog, optionally for one category.",
)
async def list_factors(
    catalog: FactorCatalogDep,
    category: Annotated[
        Optional[FactorCategory],
        Query(description="Only return factors of this category")
    ] = None,
) -> FactorListResponse:
    factors = catalog.factors_for(category) if category else catalog.all()
    return _factor_list(factors)


@router.get(
    "/search",
    response_model=FactorListResponse,
    summary="Search assessment factors",
)
async def search_factors(
    catalog: FactorCatalogDep,
    q: Annotated[str, Query(min_length=1, description="Text matched against names and search terms")],
) -> FactorListResponse:
    return _factor_list(catalog.search(q))


@router.post(
    "/suggest",
    response_model=FactorListResponse,
    summary="Suggest factors from a site description",
    description="""
    Rank catalog factors against a free-text description of the site.

    Each search term found in the description scores 10 points and each word
    of a factor's name scores 5. At most ten factors are returned, best first.
    """,
)
async def suggest_factors(
    request: SuggestFactorsRequest,
    catalog: FactorCatalogDep,
) -> FactorListResponse:
    return _factor_list(catalog.suggest(request.description))


@router.get(
    "/presets",
    response_model=List[PresetResponse],
    summary="List factor presets",
)
async def list_presets(catalog: FactorCatalogDep) -> List[PresetResponse]:
    return [
        PresetResponse(
            name=preset.name,
            description=preset.description,
            factor_names=list(preset.factor_names),
        )
        for preset in catalog.presets
    ]
