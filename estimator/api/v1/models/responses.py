"""
API response models using Pydantic.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from estimator.domain.models import (
    AssessmentFactor,
    FactorCategory,
    ImpactType,
    MeasurementResult,
)


class FactorResponse(BaseModel):
    """Single assessment factor."""
    name: str = Field(examples=["Power Lines"])
    category: FactorCategory
    category_name: str = Field(examples=["Utilities & Services"])
    description: str
    impact_type: ImpactType
    internal_percentage: int = Field(
        description="Weight as a whole percentage (internal use only)"
    )

    @classmethod
    def from_factor(cls, factor: AssessmentFactor) -> "FactorResponse":
        return cls(
            name=factor.name,
            category=factor.category,
            category_name=factor.category.full_name,
            description=factor.description,
            impact_type=factor.impact_type,
            internal_percentage=factor.internal_percentage,
        )


class FactorListResponse(BaseModel):
    """Response model for factor listings and searches."""
    count: int = Field(description="Number of factors returned")
    factors: List[FactorResponse]


class PresetResponse(BaseModel):
    """Named factor combination."""
    name: str
    description: str
    factor_names: List[str]


class MeasureResponse(BaseModel):
    """Measurement of the placed points, absent with fewer than two."""
    point_count: int
    measurement: Optional[MeasurementResult] = None


class CacheStatsResponse(BaseModel):
    """Calculation cache counters."""
    hits: int
    misses: int
    evictions: int
    size: int
    in_flight: int = Field(description="Keys with a computation running or waited on")
    ttl_seconds: float
