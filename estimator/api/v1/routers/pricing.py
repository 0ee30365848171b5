"""
API router for pricing endpoints.
"""
from fastapi import APIRouter

from estimator.api.dependencies import EstimateServiceDep
from estimator.api.v1.models.requests import (
    AreaPriceRequest,
    LineItemsRequest,
    PricedItemsRequest,
    PropertyEstimateRequest,
    StumpEstimateRequest,
    TreeEstimateRequest,
)
from estimator.domain.models import AreaQuote, LineItemsResult, PropertyPricingResult, TreeEstimate


router = APIRouter(
    prefix="/pricing",
    tags=["pricing"],
)

_STRICT_RESPONSES = {
    400: {"description": "Unknown assessment factor name"},
    422: {"description": "Invalid measurements in strict mode, or malformed request"},
    429: {"description": "Rate limit exceeded"},
}


@router.post(
    "/tree",
    response_model=TreeEstimate,
    summary="Score and price a tree",
    description="""
    Score a tree and convert the score into hours and a price.

    Hours are the score divided by the effective production rate
    (base points per hour, scaled by crew size and equipment). The price is
    labor and equipment cost, plus cleanup and hauling surcharges, times the
    service and urgency multipliers.

    With `strict=true`, a tree whose measurements fail validation is
    rejected with 422 instead of being priced.
    """,
    responses=_STRICT_RESPONSES,
)
async def price_tree(
    request: TreeEstimateRequest,
    estimate_service: EstimateServiceDep,
) -> TreeEstimate:
    """
    Score and price one tree.

    Args:
        request: Tree assessment with pricing options
        estimate_service: Estimate service (injected dependency)

    Returns:
        TreeEstimate with score, complexity and pricing
    """
    return estimate_service.estimate_tree(request.assessment, request.options, request.strict)


@router.post(
    "/stump",
    response_model=TreeEstimate,
    summary="Score and price a stump",
    responses=_STRICT_RESPONSES,
)
async def price_stump(
    request: StumpEstimateRequest,
    estimate_service: EstimateServiceDep,
) -> TreeEstimate:
    return estimate_service.estimate_stump(request.assessment, request.options, request.strict)


@router.post(
    "/property",
    response_model=PropertyPricingResult,
    summary="Price every tree and stump on a property",
    description="""
    Score and price all items with the same options, then apply the bundle
    discount: 5% for 2 items, 10% for 3 or 4, 15% from 5 items up.
    A `bulk_discount_fraction` overrides the tier.
    """,
    responses=_STRICT_RESPONSES,
)
async def price_property(
    request: PropertyEstimateRequest,
    estimate_service: EstimateServiceDep,
) -> PropertyPricingResult:
    return estimate_service.estimate_property(
        trees=request.trees,
        stumps=request.stumps,
        options=request.options,
        bulk_discount_fraction=request.bulk_discount_fraction,
        strict=request.strict,
    )


@router.post(
    "/items",
    response_model=PropertyPricingResult,
    summary="Aggregate already-priced items",
)
async def price_items(
    request: PricedItemsRequest,
    estimate_service: EstimateServiceDep,
) -> PropertyPricingResult:
    return estimate_service.price_items(request.items, request.bulk_discount_fraction)


@router.post(
    "/line-items",
    response_model=LineItemsResult,
    summary="Quick-price proposal line items",
    description="""
    Price proposal lines from their own base rates instead of crew hours.

    - **tree_removal**, **tree_trimming**, **stump_grinding**: score times
      $0.85, $1.10 or $1.75 per point, with minimums of $850, $500 and $150
    - **forestry_mulching**: $2,500 per acre, scaled by the largest stem
      diameter over a 6" standard
    - **emergency**: twice the $1,200 hourly rate
    - Every other line: its base rate

    Each line is multiplied by its quantity. A line's score comes from
    `score`, or from an attached tree or stump. Lines are then totalled
    with the bundle discount unless `bulk_discount_fraction` overrides it.
    """,
    responses={
        400: {"description": "Unknown assessment factor name on an attached tree"},
        429: {"description": "Rate limit exceeded"},
        503: {"description": "Rate table has no rate for a line type"},
    },
)
async def price_line_items(
    request: LineItemsRequest,
    estimate_service: EstimateServiceDep,
) -> LineItemsResult:
    """
    Quick-price proposal lines.

    Args:
        request: Lines with optional bundle discount override
        estimate_service: Estimate service (injected dependency)

    Returns:
        LineItemsResult with each line and the bundle total
    """
    return estimate_service.price_line_items(request.items, request.bulk_discount_fraction)


@router.post(
    "/area",
    response_model=AreaQuote,
    summary="Price a work area by acreage",
)
async def price_area(
    request: AreaPriceRequest,
    estimate_service: EstimateServiceDep,
) -> AreaQuote:
    return estimate_service.price_area(request.polygon, request.price_per_acre)
