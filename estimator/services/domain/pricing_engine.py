"""
Domain service: convert scores and work areas into hours and prices.

Pure math over an injected RateTable. Business inputs out of range (zero
crew, negative scores) are computed literally; only the strict entry point
rejects anything.
"""
import logging
import math
from typing import Mapping, Optional, Sequence

from estimator.domain.errors import ScoreValidationError
from estimator.domain.models import (
    AreaQuote,
    EquipmentType,
    LineItemBasis,
    LineItemPrice,
    LineItemType,
    Polygon,
    PricedItem,
    PricingOptions,
    PricingResult,
    PropertyPricingResult,
    ScoredItem,
    ScoreResult,
    ServiceType,
    UrgencyFactor,
)
from estimator.domain.rate_tables import RateTable, default_rate_table
from estimator.utils.geo_measurements import polygon_area, square_meters_to_acres

logger = logging.getLogger(__name__)

# (minimum item count, discount fraction), checked in order
BUNDLE_DISCOUNT_TIERS = (
    (5, 0.15),
    (3, 0.10),
    (2, 0.05),
)


def bundle_discount_fraction(item_count: int) -> float:
    """Bundle discount for a request with this many items."""
    for min_items, fraction in BUNDLE_DISCOUNT_TIERS:
        if item_count >= min_items:
            return fraction
    return 0.0


def recommended_crew_size(total_hours: float) -> int:
    if total_hours > 40:
        return 3
    if total_hours > 16:
        return 2
    return 1


class PricingEngine:
    """
    Domain service for pricing scored work.

    Features:
    - Single-score pricing with crew, equipment, surcharges and urgency
    - Multi-item aggregation with bundle discounts and crew scheduling
    - Per-acre pricing of drawn work areas
    - Quick pricing of proposal line items from their own base rates
    - Optional strict validation for batch callers
    """

    def __init__(self, rate_table: Optional[RateTable] = None):
        self.rate_table = rate_table or default_rate_table()

    def crew_multiplier(self, crew_size: int) -> float:
        return 1.0 + self.rate_table.crew_efficiency_gain * (crew_size - 1)

    def effective_rate(self, crew_size: int, equipment_type: EquipmentType) -> float:
        """
        Production rate in points per hour for a crew and equipment class.

        Clamped to the table's minimum rate so hours never divide by zero.
        """
        table = self.rate_table
        rate = (
            table.base_points_per_hour
            * self.crew_multiplier(crew_size)
            * table.equipment_rates(equipment_type).efficiency_multiplier
        )
        if rate < table.min_effective_rate:
            logger.warning(
                f"Effective rate {rate:.3f} pts/h for crew={crew_size}, "
                f"equipment={equipment_type.value} clamped to {table.min_effective_rate}"
            )
            rate = table.min_effective_rate
        return rate

    def price_one(
        self,
        score: float,
        service_type: ServiceType,
        crew_size: int,
        equipment_type: EquipmentType,
        includes_cleanup: bool,
        includes_hauling: bool,
        urgency: UrgencyFactor = UrgencyFactor.NORMAL,
    ) -> PricingResult:
        """
        Price one score.

        Args:
            score: Final score of the tree or stump
            service_type: Kind of work
            crew_size: Number of crew members
            equipment_type: Equipment class on site
            includes_cleanup: Add the cleanup surcharge
            includes_hauling: Add the hauling surcharge (after cleanup)
            urgency: Scheduling urgency

        Returns:
            PricingResult with hours, costs, price and margin
        """
        table = self.rate_table
        equipment = table.equipment_rates(equipment_type)

        rate = self.effective_rate(crew_size, equipment_type)
        hours = score / rate

        base_price = hours * equipment.hourly_rate * table.service_multiplier(service_type)
        if includes_cleanup:
            base_price += base_price * table.cleanup_surcharge
        if includes_hauling:
            base_price += base_price * table.hauling_surcharge

        final_price = base_price * table.urgency_multiplier(urgency)

        labor_cost = hours * crew_size * table.per_person_wage
        equipment_cost = hours * equipment.operating_cost
        total_cost = labor_cost + equipment_cost
        profit_margin = (final_price - total_cost) / final_price if final_price else 0.0

        logger.debug(
            f"Priced score {score:.2f}: rate={rate:.2f} pts/h, hours={hours:.2f}, "
            f"final=${final_price:.2f}, margin={profit_margin:.2%}"
        )

        return PricingResult(
            score=score,
            estimated_hours=hours,
            base_price=base_price,
            final_price=final_price,
            labor_cost=labor_cost,
            equipment_cost=equipment_cost,
            profit_margin=profit_margin,
            effective_rate=rate,
        )

    def price_with_options(self, score: float, options: PricingOptions) -> PricingResult:
        return self.price_one(
            score=score,
            service_type=options.service_type,
            crew_size=options.crew_size,
            equipment_type=options.equipment_type,
            includes_cleanup=options.includes_cleanup,
            includes_hauling=options.includes_hauling,
            urgency=options.urgency,
        )

    def price_score(
        self,
        score_result: ScoreResult,
        options: PricingOptions,
        strict: bool = False,
    ) -> PricingResult:
        """
        Price a ScoreResult's final score.

        Args:
            score_result: Result from the score engine
            options: Pricing parameters
            strict: Reject invalid scores instead of pricing them

        Returns:
            PricingResult

        Raises:
            ScoreValidationError: In strict mode, if the score is invalid
        """
        if strict and not score_result.is_valid:
            raise ScoreValidationError(
                "Cannot price an invalid score",
                errors=score_result.validation_errors,
            )
        return self.price_with_options(score_result.final_score, options)

    def price_many(
        self,
        items: Sequence[PricedItem],
        bulk_discount_fraction: Optional[float] = None,
    ) -> PropertyPricingResult:
        """
        Aggregate priced items into a property total.

        Args:
            items: Individually priced items
            bulk_discount_fraction: Discount to apply; defaults to the
                bundle tier for the number of items

        Returns:
            PropertyPricingResult with discount and scheduling figures
        """
        if bulk_discount_fraction is None:
            bulk_discount_fraction = bundle_discount_fraction(len(items))

        subtotal = sum(item.final_price for item in items)
        total_hours = sum(item.estimated_hours for item in items)
        total_score = sum(item.score for item in items)
        discount = subtotal * bulk_discount_fraction

        return PropertyPricingResult(
            total_items=len(items),
            total_score=total_score,
            total_hours=total_hours,
            subtotal=subtotal,
            discount_fraction=bulk_discount_fraction,
            discount=discount,
            final_price=subtotal - discount,
            crew_days_required=math.ceil(total_hours / self.rate_table.work_day_hours),
            recommended_crew_size=recommended_crew_size(total_hours),
            items=list(items),
        )

    def price_property(
        self,
        scored_items: Sequence[ScoredItem],
        options: PricingOptions,
        bulk_discount_fraction: Optional[float] = None,
    ) -> PropertyPricingResult:
        """Price every scored item with the same options, then aggregate."""
        priced = []
        for item in scored_items:
            pricing = self.price_with_options(item.score, options)
            priced.append(PricedItem(
                item_id=item.item_id,
                label=item.label,
                score=item.score,
                estimated_hours=pricing.estimated_hours,
                final_price=pricing.final_price,
            ))

        logger.info(f"Priced {len(priced)} items for property")
        return self.price_many(priced, bulk_discount_fraction)

    def quote_area(
        self,
        polygon: Polygon,
        price_per_acre: Optional[Mapping[ServiceType, float]] = None,
    ) -> AreaQuote:
        """
        Measure and price a drawn work area by acreage.

        Args:
            polygon: Work area with its service type
            price_per_acre: Per-service acre prices; defaults to the rate table

        Returns:
            AreaQuote with area, acres and price; the price is 0 if the
            service has no acre price
        """
        table = price_per_acre if price_per_acre is not None else self.rate_table.price_per_acre
        area = polygon_area(polygon.points)
        acres = square_meters_to_acres(area)

        acre_price = table.get(polygon.service_type)
        if acre_price is None:
            logger.warning(f"No per-acre price for service {polygon.service_type.value}")

        return AreaQuote(
            polygon_id=polygon.polygon_id,
            service_type=polygon.service_type,
            area_m2=area,
            acres=acres,
            price_per_acre=acre_price,
            price=acres * acre_price if acre_price is not None else 0.0,
        )

    def price_area(
        self,
        polygon: Polygon,
        price_per_acre: Optional[Mapping[ServiceType, float]] = None,
    ) -> float:
        """Price for a drawn work area, 0 if the service has no acre price."""
        return self.quote_area(polygon, price_per_acre).price

    def price_line_item(
        self,
        line_type: LineItemType,
        score: float = 0.0,
        quantity: float = 1.0,
        acres: Optional[float] = None,
        max_dbh: Optional[float] = None,
        item_id: Optional[str] = None,
    ) -> LineItemPrice:
        """
        Quick-price one proposal line from its line-item rate.

        Per-point lines (removal, trimming, stump grinding) charge the score
        times the per-point rate, floored at the line's minimum. Mulching
        charges the base rate per acre, scaled by the largest stem diameter
        relative to the standard size. Every other line charges its base
        rate times its multiplier. The unit price is then multiplied by the
        quantity.

        Args:
            line_type: Kind of line
            score: Score priced per point (ignored by other lines)
            quantity: Count in the line's unit
            acres: Mulched acreage, 1 if absent
            max_dbh: Largest stem diameter in inches, standard size if absent
            item_id: Caller's identifier for the line

        Returns:
            LineItemPrice

        Raises:
            RateTableError: If the rate table has no rate for the line type
        """
        table = self.rate_table
        rate = table.line_item_rate(line_type)
        minimum_applied = False

        if rate.basis == LineItemBasis.PER_POINT:
            per_point = score * rate.price_per_point
            minimum_applied = per_point < rate.minimum_price
            unit_price = max(per_point, rate.minimum_price)
        elif rate.basis == LineItemBasis.PER_ACRE:
            standard_dbh = table.standard_mulching_dbh
            dbh_factor = (max_dbh if max_dbh is not None else standard_dbh) / standard_dbh
            unit_price = rate.base_rate * (acres if acres is not None else 1.0) * dbh_factor
        else:
            unit_price = rate.base_rate * rate.multiplier

        total_price = unit_price * quantity
        logger.debug(
            f"Line {line_type.value}: unit=${unit_price:.2f} x {quantity} = ${total_price:.2f}"
            f"{' (minimum)' if minimum_applied else ''}"
        )

        return LineItemPrice(
            item_id=item_id,
            line_type=line_type,
            unit=rate.unit,
            quantity=quantity,
            score=score,
            unit_price=unit_price,
            total_price=total_price,
            minimum_applied=minimum_applied,
        )
