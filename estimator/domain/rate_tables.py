"""
Rate tables used by the pricing engine.

A RateTable is an immutable value passed into the engine; there are no
process-wide rate lookups.
"""
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from estimator.domain.errors import RateTableError
from estimator.domain.models import (
    EquipmentType,
    LineItemBasis,
    LineItemType,
    ServiceType,
    UrgencyFactor,
)

logger = logging.getLogger(__name__)


class EquipmentRates(BaseModel):
    """Production and cost figures for one equipment class."""
    efficiency_multiplier: float = Field(description="Production rate multiplier")
    hourly_rate: float = Field(description="Billed rate per hour")
    operating_cost: float = Field(description="Operating cost per hour")

    class Config:
        frozen = True


class LineItemRate(BaseModel):
    """Base rate and pricing rule for one kind of proposal line."""
    base_rate: float
    unit: str = Field(description="Unit the quantity counts, e.g. \"per tree\"")
    basis: LineItemBasis = LineItemBasis.FLAT
    price_per_point: float = Field(default=0.0, description="Dollars per score point")
    minimum_price: float = Field(default=0.0, description="Floor on the per-point unit price")
    multiplier: float = Field(default=1.0, description="Multiplier on the base rate")

    class Config:
        frozen = True


def default_line_item_rates() -> Dict[LineItemType, LineItemRate]:
    """Quick-quote rates for proposal lines."""
    return {
        LineItemType.TREE_REMOVAL: LineItemRate(
            base_rate=750.0, unit="per tree", basis=LineItemBasis.PER_POINT,
            price_per_point=0.85, minimum_price=850.0,
        ),
        LineItemType.TREE_TRIMMING: LineItemRate(
            base_rate=450.0, unit="per tree", basis=LineItemBasis.PER_POINT,
            price_per_point=1.10, minimum_price=500.0,
        ),
        LineItemType.STUMP_GRINDING: LineItemRate(
            base_rate=250.0, unit="per stump", basis=LineItemBasis.PER_POINT,
            price_per_point=1.75, minimum_price=150.0,
        ),
        LineItemType.FORESTRY_MULCHING: LineItemRate(
            base_rate=2500.0, unit="per acre", basis=LineItemBasis.PER_ACRE,
        ),
        LineItemType.EMERGENCY: LineItemRate(base_rate=1200.0, unit="per hour", multiplier=2.0),
        LineItemType.LAND_CLEARING: LineItemRate(base_rate=3000.0, unit="per day"),
        LineItemType.CRANE_REMOVAL: LineItemRate(base_rate=2000.0, unit="per lift"),
        LineItemType.HEALTH_ASSESSMENT: LineItemRate(base_rate=150.0, unit="per assessment"),
        LineItemType.WOOD_RETENTION: LineItemRate(base_rate=200.0, unit="per cord"),
        LineItemType.RIGHT_OF_WAY: LineItemRate(base_rate=1500.0, unit="per 100ft"),
    }


class RateTable(BaseModel):
    """All constants needed to turn a score into hours and dollars."""
    base_points_per_hour: float = 50.0
    crew_efficiency_gain: float = Field(
        default=0.3,
        description="Production gain per crew member beyond the first"
    )
    per_person_wage: float = 35.0
    min_effective_rate: float = 0.01
    cleanup_surcharge: float = 0.15
    hauling_surcharge: float = 0.20
    work_day_hours: float = 8.0
    equipment: Dict[EquipmentType, EquipmentRates]
    service_multipliers: Dict[ServiceType, float]
    urgency_multipliers: Dict[UrgencyFactor, float]
    price_per_acre: Dict[ServiceType, float]
    standard_mulching_dbh: float = Field(
        default=6.0,
        description="Stem diameter in inches that mulching base rates assume"
    )
    line_items: Dict[LineItemType, LineItemRate] = Field(default_factory=default_line_item_rates)

    class Config:
        frozen = True

    def equipment_rates(self, equipment_type: EquipmentType) -> EquipmentRates:
        return self.equipment[equipment_type]

    def service_multiplier(self, service_type: ServiceType) -> float:
        return self.service_multipliers[service_type]

    def urgency_multiplier(self, urgency: UrgencyFactor) -> float:
        return self.urgency_multipliers[urgency]

    def line_item_rate(self, line_type: LineItemType) -> LineItemRate:
        try:
            return self.line_items[line_type]
        except KeyError:
            raise RateTableError(f"No line-item rate for {line_type.value}") from None


def default_rate_table(
    base_points_per_hour: float = 50.0,
    per_person_wage: float = 35.0,
    min_effective_rate: float = 0.01,
) -> RateTable:
    """Built-in rates for a single-climber baseline of 50 points per hour."""
    return RateTable(
        base_points_per_hour=base_points_per_hour,
        per_person_wage=per_person_wage,
        min_effective_rate=min_effective_rate,
        equipment={
            EquipmentType.MANUAL: EquipmentRates(efficiency_multiplier=1.0, hourly_rate=150.0, operating_cost=20.0),
            EquipmentType.SMALL_CHIPPER: EquipmentRates(efficiency_multiplier=1.3, hourly_rate=250.0, operating_cost=50.0),
            EquipmentType.LARGE_CHIPPER: EquipmentRates(efficiency_multiplier=1.5, hourly_rate=350.0, operating_cost=80.0),
            EquipmentType.CRANE: EquipmentRates(efficiency_multiplier=2.0, hourly_rate=500.0, operating_cost=200.0),
            EquipmentType.BUCKET: EquipmentRates(efficiency_multiplier=1.8, hourly_rate=450.0, operating_cost=150.0),
            EquipmentType.MULCHER: EquipmentRates(efficiency_multiplier=2.5, hourly_rate=600.0, operating_cost=250.0),
        },
        service_multipliers={
            ServiceType.PRUNING: 0.8,
            ServiceType.REMOVAL: 1.0,
            ServiceType.THINNING: 0.6,
            ServiceType.CLEARING: 0.7,
            ServiceType.EMERGENCY: 1.5,
        },
        urgency_multipliers={
            UrgencyFactor.NORMAL: 1.0,
            UrgencyFactor.PRIORITY: 1.25,
            UrgencyFactor.EMERGENCY: 1.5,
            UrgencyFactor.STORM: 2.0,
        },
        price_per_acre={
            ServiceType.CLEARING: 3500.0,
            ServiceType.THINNING: 1600.0,
            ServiceType.REMOVAL: 2200.0,
            ServiceType.PRUNING: 1200.0,
            ServiceType.EMERGENCY: 4500.0,
        },
    )


def load_rate_table(path: Optional[str]) -> RateTable:
    """
    Load a rate table from a JSON file.

    Args:
        path: File path, or None for the built-in table

    Returns:
        Validated RateTable

    Raises:
        RateTableError: If the file cannot be read or does not validate
    """
    if not path:
        return default_rate_table()

    try:
        raw = Path(path).read_text(encoding="utf-8")
        table = RateTable.model_validate_json(raw)
    except OSError as e:
        raise RateTableError(f"Cannot read rate table {path}: {e}") from e
    except ValidationError as e:
        raise RateTableError(f"Invalid rate table {path}: {e}") from e

    logger.info(f"Loaded rate table from {path}")
    return table
