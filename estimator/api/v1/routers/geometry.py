"""
API router for map measurement endpoints.
"""
from fastapi import APIRouter

from estimator.api.dependencies import EstimateServiceDep
from estimator.api.v1.models.requests import MeasureRequest
from estimator.api.v1.models.responses import MeasureResponse
from estimator.domain.models import Polygon, PolygonExport


router = APIRouter(
    prefix="/geometry",
    tags=["geometry"],
)


@router.post(
    "/measure",
    response_model=MeasureResponse,
    summary="Measure placed points",
    description="""
    Measure the points placed with the map measuring tool.

    - Fewer than 2 points: no measurement
    - 2 points: geodesic distance
    - 3 or more points: enclosed area, with the ring perimeter

    Areas over half an acre lead with acres, smaller ones with square feet.
    Distances of 1000 m and up are displayed in kilometers.
    """,
    responses={
        200: {
            "description": "Measurement of the placed points",
            "content": {
                "application/json": {
                    "example": {
                        "point_count": 2,
                        "measurement": {
                            "kind": "distance",
                            "value": 111319.49,
                            "unit": "meters",
                            "display_value": "111.32 km",
                            "perimeter": None,
                        }
                    }
                }
            }
        },
    }
)
async def measure_points(
    request: MeasureRequest,
    estimate_service: EstimateServiceDep,
) -> MeasureResponse:
    return MeasureResponse(
        point_count=len(request.points),
        measurement=estimate_service.measure(request.points),
    )


@router.post(
    "/polygons/export",
    response_model=PolygonExport,
    summary="Export a work area",
    description="Build the versioned interchange record for a drawn work area.",
)
async def export_polygon(
    polygon: Polygon,
    estimate_service: EstimateServiceDep,
) -> PolygonExport:
    return estimate_service.export_polygon(polygon)
