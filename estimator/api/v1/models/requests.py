"""
API request models using Pydantic.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from estimator.domain.models import (
    GeoPoint,
    LineItem,
    Polygon,
    PricedItem,
    PricingOptions,
    ServiceType,
    StumpAssessment,
    TreeAssessment,
)


class TreeEstimateRequest(BaseModel):
    """Score and price one tree."""
    assessment: TreeAssessment
    options: PricingOptions = Field(default_factory=PricingOptions)
    strict: bool = Field(
        default=False,
        description="Reject invalid measurements instead of pricing them"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "assessment": {
                    "entity_id": "tree-42",
                    "measurement": {"height": 40, "dbh": 20, "canopy_radius": 15},
                    "hazard_model": "assessment_factors",
                    "factor_names": ["Power Lines", "Steep Slope"],
                },
                "options": {
                    "service_type": "removal",
                    "crew_size": 3,
                    "equipment_type": "crane",
                    "includes_cleanup": True,
                    "includes_hauling": True,
                    "urgency": "normal",
                },
            }
        }


class StumpEstimateRequest(BaseModel):
    """Score and price one stump."""
    assessment: StumpAssessment
    options: PricingOptions = Field(default_factory=PricingOptions)
    strict: bool = False


class PropertyEstimateRequest(BaseModel):
    """Score and price every tree and stump on a property."""
    trees: List[TreeAssessment] = Field(default_factory=list)
    stumps: List[StumpAssessment] = Field(default_factory=list)
    options: PricingOptions = Field(default_factory=PricingOptions)
    bulk_discount_fraction: Optional[float] = Field(
        default=None,
        ge=0,
        le=1,
        description="Overrides the bundle discount tier when set"
    )
    strict: bool = False


class PricedItemsRequest(BaseModel):
    """Aggregate already-priced items."""
    items: List[PricedItem]
    bulk_discount_fraction: Optional[float] = Field(default=None, ge=0, le=1)


class LineItemsRequest(BaseModel):
    """Quick-price proposal lines."""
    items: List[LineItem]
    bulk_discount_fraction: Optional[float] = Field(default=None, ge=0, le=1)

    class Config:
        json_schema_extra = {
            "example": {
                "items": [
                    {"line_type": "tree_removal", "score": 1200},
                    {"line_type": "stump_grinding", "quantity": 3,
                     "stump": {"measurement": {"diameter": 24}}},
                    {"line_type": "forestry_mulching", "acres": 2.5, "max_dbh": 8},
                ],
                "bulk_discount_fraction": 0,
            }
        }


class MeasureRequest(BaseModel):
    """Points placed with the measuring tool."""
    points: List[GeoPoint]


class AreaPriceRequest(BaseModel):
    """Price a drawn work area by acreage."""
    polygon: Polygon
    price_per_acre: Optional[Dict[ServiceType, float]] = Field(
        default=None,
        description="Per-service acre prices; defaults to the rate table"
    )


class SuggestFactorsRequest(BaseModel):
    """Free-text description of a site."""
    description: str = Field(
        examples=["Backyard oak over the pool, power lines along the fence"]
    )
