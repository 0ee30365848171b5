"""
API router for tree and stump scoring.
"""
from fastapi import APIRouter

from estimator.api.dependencies import EstimateServiceDep
from estimator.domain.models import ScoreResult, StumpAssessment, TreeAssessment


router = APIRouter(
    prefix="/scores",
    tags=["scores"],
)


@router.post(
    "/tree",
    response_model=ScoreResult,
    summary="Score a tree",
    description="""
    Compute a tree's work-complexity score.

    The base score comes from the selected formula (`area_based_v1` by
    default) and is then adjusted by the selected hazard model:

    - `hazard_percentage`: the measurement's overall hazard percentage
    - `additive_flags`: near-structure, power-line, slope and access flags
    - `assessment_factors`: a set of named catalog factors

    Invalid measurements are scored anyway and flagged with `is_valid=false`.
    """,
    responses={
        400: {"description": "Unknown assessment factor name"},
        429: {"description": "Rate limit exceeded"},
    }
)
async def score_tree(
    assessment: TreeAssessment,
    estimate_service: EstimateServiceDep,
) -> ScoreResult:
    """
    Score one tree.

    Args:
        assessment: Measurements with formula and hazard selection
        estimate_service: Estimate service (injected dependency)

    Returns:
        ScoreResult
    """
    return estimate_service.score_tree(assessment)


@router.post(
    "/stump",
    response_model=ScoreResult,
    summary="Score a stump",
)
async def score_stump(
    assessment: StumpAssessment,
    estimate_service: EstimateServiceDep,
) -> ScoreResult:
    return estimate_service.score_stump(assessment)
