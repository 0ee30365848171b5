"""
Domain models for measurements, assessment factors and engine results.

These models represent the core domain entities and should be independent
of any infrastructure concerns (HTTP, storage, map rendering, etc.).
"""
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# Geometry
# ============================================================

class GeoPoint(BaseModel):
    """A WGS84 coordinate in degrees."""
    latitude: float = Field(ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(ge=-180, le=180, description="Longitude in degrees")

    class Config:
        frozen = True


class ServiceType(str, Enum):
    """Kind of work priced for a tree or a work area."""
    PRUNING = "pruning"
    REMOVAL = "removal"
    THINNING = "thinning"
    CLEARING = "clearing"
    EMERGENCY = "emergency"


class EquipmentType(str, Enum):
    """Equipment class driving production rate and hourly cost."""
    MANUAL = "manual"
    SMALL_CHIPPER = "small_chipper"
    LARGE_CHIPPER = "large_chipper"
    CRANE = "crane"
    BUCKET = "bucket"
    MULCHER = "mulcher"


class UrgencyFactor(str, Enum):
    """Scheduling urgency applied as a final price multiplier."""
    NORMAL = "normal"
    PRIORITY = "priority"
    EMERGENCY = "emergency"
    STORM = "storm"


class Polygon(BaseModel):
    """A drawn work area. The ring is implicitly closed."""
    polygon_id: Optional[str] = None
    points: List[GeoPoint] = Field(default_factory=list)
    label: str = ""
    service_type: ServiceType = ServiceType.CLEARING
    notes: Optional[str] = None


class MeasurementKind(str, Enum):
    DISTANCE = "distance"
    AREA = "area"


class MeasurementResult(BaseModel):
    """Outcome of the interactive measuring tool."""
    kind: MeasurementKind
    value: float
    unit: str
    display_value: str
    perimeter: Optional[float] = None


class PolygonExport(BaseModel):
    """Versioned interchange record for a measured work area."""
    schema_version: int = 1
    polygon_id: Optional[str] = None
    label: str
    service_type: ServiceType
    area_m2: float
    area_formatted: str
    acres: float
    perimeter_m: float
    perimeter_formatted: str
    centroid: Optional[GeoPoint] = None
    is_simple: bool
    coordinates: List[GeoPoint]
    notes: str = ""
    exported_at: datetime = Field(default_factory=utc_now)


class AreaQuote(BaseModel):
    """Acreage price for a drawn work area."""
    polygon_id: Optional[str] = None
    service_type: ServiceType
    area_m2: float
    acres: float
    price_per_acre: Optional[float] = Field(
        default=None,
        description="Acre price applied, absent when the service has none"
    )
    price: float

    class Config:
        json_schema_extra = {
            "example": {
                "polygon_id": "area-1",
                "service_type": "clearing",
                "area_m2": 4046.86,
                "acres": 1.0,
                "price_per_acre": 3500.0,
                "price": 3500.0,
            }
        }


# ============================================================
# Measurements
# ============================================================

class TreeMeasurement(BaseModel):
    """Field measurements of one tree."""
    height: float = Field(description="Tree height in feet")
    dbh: float = Field(description="Diameter at breast height in inches")
    canopy_radius: float = Field(description="Canopy radius in feet")
    canopy_spread: Optional[float] = Field(
        default=None,
        description="Canopy spread in feet; defaults to twice the radius"
    )
    hazard_percentage: float = Field(
        default=0.0,
        description="Overall hazard percentage (0-100)"
    )
    gps_accuracy: Optional[float] = Field(
        default=None,
        description="Horizontal GPS accuracy in meters"
    )
    species: Optional[str] = None

    class Config:
        frozen = True

    @property
    def effective_canopy_spread(self) -> float:
        if self.canopy_spread is not None:
            return self.canopy_spread
        return self.canopy_radius * 2


class StumpMeasurement(BaseModel):
    """Field measurements of one stump."""
    diameter: float = Field(description="Stump diameter in inches")
    height_above_grade: float = Field(default=1.0, description="Feet above grade")
    grind_depth: float = Field(default=1.0, description="Feet to grind below grade")

    class Config:
        frozen = True


class HazardFlags(BaseModel):
    """Boolean site hazards used by the additive impact model."""
    near_structure: bool = False
    power_lines: bool = False
    slope: bool = False
    access_difficulty: float = Field(
        default=1.0,
        description="1.0 = easy, 1.5 = medium, 2.0 = hard"
    )

    class Config:
        frozen = True


# ============================================================
# Assessment factors
# ============================================================

class FactorCategory(str, Enum):
    STRUCTURES = "structures"
    LANDSCAPE = "landscape"
    UTILITIES = "utilities"
    ACCESS = "access"
    PROJECT_SPECIFIC = "project"

    @property
    def full_name(self) -> str:
        return _CATEGORY_NAMES[self]


_CATEGORY_NAMES = {
    FactorCategory.STRUCTURES: "Structures & Infrastructure",
    FactorCategory.LANDSCAPE: "Landscape & Aesthetic Features",
    FactorCategory.UTILITIES: "Utilities & Services",
    FactorCategory.ACCESS: "Access & Site Conditions",
    FactorCategory.PROJECT_SPECIFIC: "Project-Specific Factors",
}


class ImpactType(str, Enum):
    """What an assessment factor adjusts."""
    SCORE = "score"
    PRODUCTION = "production"
    BOTH = "both"

    @property
    def affects_score(self) -> bool:
        return self in (ImpactType.SCORE, ImpactType.BOTH)

    @property
    def affects_production(self) -> bool:
        return self in (ImpactType.PRODUCTION, ImpactType.BOTH)


class AssessmentFactor(BaseModel):
    """A named site condition carrying a percentage weight."""
    name: str
    category: FactorCategory
    description: str = ""
    search_terms: tuple[str, ...] = ()
    weight: float = Field(gt=0, lt=1, description="Fractional impact, 0.15 = 15%")
    impact_type: ImpactType

    class Config:
        frozen = True

    def af_score(self, base_score: float) -> int:
        """Displayed score contribution of this factor, halves rounded away from zero."""
        contribution = base_score * self.weight
        return int(math.copysign(math.floor(abs(contribution) + 0.5), contribution))

    @property
    def internal_percentage(self) -> int:
        return int(self.weight * 100)


# ============================================================
# Results
# ============================================================

class ScoreFormula(str, Enum):
    """Versioned base-score formula identifiers."""
    AREA_BASED = "area_based_v1"
    LINEAR = "linear_v1"


class TreeComplexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class ScoreResult(BaseModel):
    """Scored asset with its hazard adjustment."""
    base_score: float
    hazard_impact: float
    final_score: float
    formula: Optional[ScoreFormula] = None
    formula_text: str
    hazard_model: str
    multiplier: float = 1.0
    factor_scores: Dict[str, int] = Field(default_factory=dict)
    is_valid: bool
    validation_errors: List[str] = Field(default_factory=list)
    gps_accuracy: Optional[float] = None
    computed_at: datetime = Field(default_factory=utc_now)


class HazardModelKind(str, Enum):
    """Which hazard composition to apply to a tree's base score."""
    PERCENTAGE = "hazard_percentage"
    FLAGS = "additive_flags"
    FACTORS = "assessment_factors"


class TreeAssessment(BaseModel):
    """Everything needed to score one tree."""
    entity_id: Optional[str] = None
    label: str = ""
    measurement: TreeMeasurement
    formula: Optional[ScoreFormula] = None
    hazard_model: HazardModelKind = HazardModelKind.PERCENTAGE
    hazard_flags: HazardFlags = Field(default_factory=HazardFlags)
    factor_names: List[str] = Field(default_factory=list)
    trim_percent: Optional[float] = Field(
        default=None,
        description="Share of the tree removed by a trimming job (0-100)"
    )


class StumpAssessment(BaseModel):
    """Everything needed to score one stump."""
    entity_id: Optional[str] = None
    label: str = ""
    measurement: StumpMeasurement
    linked_tree_hazard_impact: float = 0.0


class PricingResult(BaseModel):
    """Hours, cost and price derived from one score."""
    score: float
    estimated_hours: float
    base_price: float
    final_price: float
    labor_cost: float
    equipment_cost: float
    profit_margin: float
    effective_rate: float = Field(description="Production rate in points per hour")


class PricingOptions(BaseModel):
    """Crew, equipment and service parameters for pricing a score."""
    service_type: ServiceType = ServiceType.REMOVAL
    crew_size: int = 1
    equipment_type: EquipmentType = EquipmentType.MANUAL
    includes_cleanup: bool = True
    includes_hauling: bool = False
    urgency: UrgencyFactor = UrgencyFactor.NORMAL

    class Config:
        frozen = True


class ScoredItem(BaseModel):
    """A scored tree or stump waiting to be priced."""
    item_id: str
    label: str = ""
    score: float


class PricedItem(BaseModel):
    """One already-priced line of a multi-item request."""
    item_id: str
    label: str = ""
    score: float = 0.0
    estimated_hours: float = 0.0
    final_price: float


class TreeEstimate(BaseModel):
    """Score and price of one tree or stump."""
    item_id: Optional[str] = None
    score: ScoreResult
    priced_score: float = Field(description="Score actually priced, after trimming")
    complexity: TreeComplexity
    pricing: PricingResult


class PropertyPricingResult(BaseModel):
    """Aggregate over several priced items with bundle discount."""
    total_items: int
    total_score: float
    total_hours: float
    subtotal: float
    discount_fraction: float
    discount: float
    final_price: float
    crew_days_required: int
    recommended_crew_size: int
    items: List[PricedItem] = Field(default_factory=list)


# ============================================================
# Proposal line items
# ============================================================

class LineItemType(str, Enum):
    """Kind of proposal line, each with its own unit and base rate."""
    TREE_REMOVAL = "tree_removal"
    TREE_TRIMMING = "tree_trimming"
    STUMP_GRINDING = "stump_grinding"
    FORESTRY_MULCHING = "forestry_mulching"
    EMERGENCY = "emergency"
    LAND_CLEARING = "land_clearing"
    CRANE_REMOVAL = "crane_removal"
    HEALTH_ASSESSMENT = "health_assessment"
    WOOD_RETENTION = "wood_retention"
    RIGHT_OF_WAY = "right_of_way"


class LineItemBasis(str, Enum):
    """How a line's unit price is derived from its rate."""
    PER_POINT = "per_point"
    PER_ACRE = "per_acre"
    FLAT = "flat"


class LineItem(BaseModel):
    """
    One proposal line priced from the line-item rates.

    The priced score is taken from `score` when given. Otherwise it comes
    from the attached tree (trim-adjusted for trimming lines) or stump.
    """
    item_id: Optional[str] = None
    line_type: LineItemType
    label: str = ""
    quantity: float = Field(default=1.0, description="Count in the line's unit")
    score: Optional[float] = Field(default=None, description="Score priced per point")
    tree: Optional[TreeAssessment] = None
    stump: Optional[StumpAssessment] = None
    acres: Optional[float] = Field(default=None, description="Mulched acreage, 1 if absent")
    max_dbh: Optional[float] = Field(
        default=None,
        description="Largest stem diameter in inches for mulching, standard size if absent"
    )


class LineItemPrice(BaseModel):
    """Unit and total price of one proposal line."""
    item_id: Optional[str] = None
    line_type: LineItemType
    unit: str
    quantity: float
    score: float
    unit_price: float
    total_price: float
    minimum_applied: bool = False


class LineItemsResult(BaseModel):
    """Priced proposal lines with their bundle total."""
    lines: List[LineItemPrice]
    summary: PropertyPricingResult
