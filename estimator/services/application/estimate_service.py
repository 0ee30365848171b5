"""
Application service: orchestration layer for scoring and pricing requests.
"""
import logging
from typing import Mapping, Optional, Sequence

from estimator.domain.errors import ScoreValidationError
from estimator.domain.factor_catalog import FactorCatalog
from estimator.domain.models import (
    AreaQuote,
    GeoPoint,
    HazardModelKind,
    LineItem,
    LineItemsResult,
    LineItemType,
    MeasurementResult,
    Polygon,
    PolygonExport,
    PricedItem,
    PricingOptions,
    PricingResult,
    PropertyPricingResult,
    ScoredItem,
    ScoreResult,
    ServiceType,
    StumpAssessment,
    TreeAssessment,
    TreeEstimate,
)
from estimator.services.domain.calculation_cache import CalculationCache, content_key
from estimator.services.domain.pricing_engine import PricingEngine
from estimator.services.domain.score_engine import (
    AdditiveFlagModel,
    FactorMultiplierModel,
    HazardModel,
    HazardPercentageModel,
    ScoreEngine,
)
from estimator.utils.geo_measurements import (
    format_area,
    format_distance,
    measure,
    polygon_area,
    polygon_perimeter,
    square_meters_to_acres,
)
from estimator.utils.spatial_helpers import is_simple_ring, polygon_centroid

logger = logging.getLogger(__name__)


class EstimateService:
    """
    Application service for tree-service estimates.

    Coordinates the factor catalog, score and pricing engines and the
    calculation cache. No business math here, only wiring.
    """

    def __init__(
        self,
        score_engine: ScoreEngine,
        pricing_engine: PricingEngine,
        catalog: FactorCatalog,
        cache: CalculationCache,
    ):
        """
        Initialize the service with dependencies.

        Args:
            score_engine: Engine for tree and stump scores
            pricing_engine: Engine for hours and prices
            catalog: Assessment factor reference data
            cache: Shared memoization for computed results
        """
        self.score_engine = score_engine
        self.pricing_engine = pricing_engine
        self.catalog = catalog
        self.cache = cache

    # ------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------

    def build_hazard_model(self, assessment: TreeAssessment) -> HazardModel:
        """
        Select the hazard composition requested by the assessment.

        Raises:
            UnknownFactorError: If a factor name is not in the catalog
        """
        if assessment.hazard_model == HazardModelKind.FLAGS:
            return AdditiveFlagModel(assessment.hazard_flags)
        if assessment.hazard_model == HazardModelKind.FACTORS:
            return FactorMultiplierModel(self.catalog.select(assessment.factor_names))
        return HazardPercentageModel(assessment.measurement.hazard_percentage)

    def score_tree(self, assessment: TreeAssessment) -> ScoreResult:
        """
        Score a tree, reusing a cached result for identical inputs.

        Args:
            assessment: Measurements plus formula and hazard selection

        Returns:
            ScoreResult
        """
        formula = assessment.formula or self.score_engine.default_formula
        hazard_model = self.build_hazard_model(assessment)
        key = content_key(
            "tree-score",
            assessment.entity_id,
            [
                assessment.measurement,
                formula.value,
                assessment.hazard_model.value,
                assessment.hazard_flags,
                sorted(assessment.factor_names),
            ],
        )
        return self.cache.get(
            key,
            lambda: self.score_engine.score_tree(assessment.measurement, formula, hazard_model),
        )

    def score_stump(self, assessment: StumpAssessment) -> ScoreResult:
        key = content_key(
            "stump-score",
            assessment.entity_id,
            [assessment.measurement, assessment.linked_tree_hazard_impact],
        )
        return self.cache.get(
            key,
            lambda: self.score_engine.score_stump(
                assessment.measurement, assessment.linked_tree_hazard_impact
            ),
        )

    # ------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------

    def _price_score(
        self,
        entity_id: Optional[str],
        score: ScoreResult,
        priced_score: float,
        options: PricingOptions,
        strict: bool,
    ) -> TreeEstimate:
        self._check_strict(entity_id or "item", score, strict)

        key = content_key("price", entity_id, [priced_score, options])
        pricing: PricingResult = self.cache.get(
            key,
            lambda: self.pricing_engine.price_with_options(priced_score, options),
        )
        return TreeEstimate(
            item_id=entity_id,
            score=score,
            priced_score=priced_score,
            complexity=self.score_engine.classify_complexity(score.final_score),
            pricing=pricing,
        )

    def estimate_tree(
        self,
        assessment: TreeAssessment,
        options: PricingOptions,
        strict: bool = False,
    ) -> TreeEstimate:
        """
        Score and price one tree.

        Args:
            assessment: Tree assessment
            options: Pricing parameters
            strict: Reject invalid measurements instead of pricing them

        Returns:
            TreeEstimate

        Raises:
            ScoreValidationError: In strict mode, if the score is invalid
        """
        score = self.score_tree(assessment)
        priced_score = self.score_engine.trim_adjusted_score(
            score.final_score, assessment.trim_percent
        )
        return self._price_score(assessment.entity_id, score, priced_score, options, strict)

    def estimate_stump(
        self,
        assessment: StumpAssessment,
        options: PricingOptions,
        strict: bool = False,
    ) -> TreeEstimate:
        score = self.score_stump(assessment)
        return self._price_score(assessment.entity_id, score, score.final_score, options, strict)

    def estimate_property(
        self,
        trees: Sequence[TreeAssessment],
        stumps: Sequence[StumpAssessment],
        options: PricingOptions,
        bulk_discount_fraction: Optional[float] = None,
        strict: bool = False,
    ) -> PropertyPricingResult:
        """
        Score every tree and stump on a property and price them together.

        Items without an entity id are numbered in request order.

        Raises:
            ScoreValidationError: In strict mode, if any score is invalid
        """
        scored_items = []

        for index, tree in enumerate(trees, start=1):
            score = self.score_tree(tree)
            item_id = tree.entity_id or f"tree-{index}"
            self._check_strict(item_id, score, strict)
            scored_items.append(ScoredItem(
                item_id=item_id,
                label=tree.label or tree.measurement.species or "",
                score=self.score_engine.trim_adjusted_score(score.final_score, tree.trim_percent),
            ))

        for index, stump in enumerate(stumps, start=1):
            score = self.score_stump(stump)
            item_id = stump.entity_id or f"stump-{index}"
            self._check_strict(item_id, score, strict)
            scored_items.append(ScoredItem(item_id=item_id, label=stump.label, score=score.final_score))

        logger.info(f"Estimating property with {len(trees)} trees and {len(stumps)} stumps")
        return self.pricing_engine.price_property(scored_items, options, bulk_discount_fraction)

    @staticmethod
    def _check_strict(item_id: str, score: ScoreResult, strict: bool) -> None:
        if strict and not score.is_valid:
            raise ScoreValidationError(
                f"Cannot price invalid score for {item_id}",
                errors=score.validation_errors,
            )

    def price_items(
        self,
        items: Sequence[PricedItem],
        bulk_discount_fraction: Optional[float] = None,
    ) -> PropertyPricingResult:
        return self.pricing_engine.price_many(items, bulk_discount_fraction)

    def line_item_score(self, item: LineItem) -> float:
        """
        Score priced by a per-point line.

        An explicit score wins. A stump line prices the stump score and a
        trimming line prices the trimmed share of the tree score. Lines with
        neither score nor asset price a score of 0, so per-point lines fall
        to their minimum.
        """
        if item.score is not None:
            return item.score
        if item.stump is not None:
            return self.score_stump(item.stump).final_score
        if item.tree is not None:
            score = self.score_tree(item.tree).final_score
            if item.line_type == LineItemType.TREE_TRIMMING:
                return self.score_engine.trim_adjusted_score(score, item.tree.trim_percent)
            return score
        return 0.0

    def price_line_items(
        self,
        items: Sequence[LineItem],
        bulk_discount_fraction: Optional[float] = None,
    ) -> LineItemsResult:
        """
        Quick-price proposal lines and total them with the bundle discount.

        Lines without an item id are numbered in request order.

        Raises:
            UnknownFactorError: If an attached tree names an unknown factor
            RateTableError: If the rate table has no rate for a line type
        """
        lines = []
        priced = []
        for index, item in enumerate(items, start=1):
            line = self.pricing_engine.price_line_item(
                item.line_type,
                score=self.line_item_score(item),
                quantity=item.quantity,
                acres=item.acres,
                max_dbh=item.max_dbh,
                item_id=item.item_id or f"line-{index}",
            )
            lines.append(line)
            priced.append(PricedItem(
                item_id=line.item_id,
                label=item.label,
                score=line.score,
                final_price=line.total_price,
            ))

        logger.info(f"Priced {len(lines)} proposal lines")
        return LineItemsResult(
            lines=lines,
            summary=self.pricing_engine.price_many(priced, bulk_discount_fraction),
        )

    # ------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------

    def measure(self, points: Sequence[GeoPoint]) -> Optional[MeasurementResult]:
        return measure(points)

    def price_area(
        self,
        polygon: Polygon,
        price_per_acre: Optional[Mapping[ServiceType, float]] = None,
    ) -> AreaQuote:
        return self.pricing_engine.quote_area(polygon, price_per_acre)

    def export_polygon(self, polygon: Polygon) -> PolygonExport:
        """Build the interchange record for a drawn work area."""
        area = polygon_area(polygon.points)
        perimeter = polygon_perimeter(polygon.points)
        return PolygonExport(
            polygon_id=polygon.polygon_id,
            label=polygon.label,
            service_type=polygon.service_type,
            area_m2=area,
            area_formatted=format_area(area),
            acres=square_meters_to_acres(area),
            perimeter_m=perimeter,
            perimeter_formatted=format_distance(perimeter),
            centroid=polygon_centroid(polygon.points),
            is_simple=is_simple_ring(polygon.points),
            coordinates=list(polygon.points),
            notes=polygon.notes or "",
        )
