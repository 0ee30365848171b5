"""
Domain service: TreeScore and StumpScore calculation.

A score is a dimensionless magnitude derived from physical measurements.
This module provides:
- Two explicitly selected base-score formulas (area-based and linear)
- Interchangeable hazard composition models (percentage, additive flags,
  multiplicative assessment factors)
- Stump scoring with inherited tree hazard
- Validation that flags bad input instead of rejecting it
"""
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from estimator.domain.assessment import SelectedFactorSet
from estimator.domain.models import (
    HazardFlags,
    ScoreFormula,
    ScoreResult,
    StumpMeasurement,
    TreeComplexity,
    TreeMeasurement,
)

logger = logging.getLogger(__name__)

STUMP_HAZARD_SHARE = 0.1


# ============================================================
# Base score formulas
# ============================================================

def area_based_score(measurement: TreeMeasurement) -> float:
    """Height × canopy area × DBH / 100."""
    canopy_area = math.pi * measurement.canopy_radius ** 2
    return measurement.height * canopy_area * measurement.dbh / 100.0


def linear_score(measurement: TreeMeasurement) -> float:
    """Height + 2 × DBH + canopy spread."""
    return measurement.height + measurement.dbh * 2 + measurement.effective_canopy_spread


FORMULAS: Dict[ScoreFormula, Callable[[TreeMeasurement], float]] = {
    ScoreFormula.AREA_BASED: area_based_score,
    ScoreFormula.LINEAR: linear_score,
}

FORMULA_TEXT = {
    ScoreFormula.AREA_BASED: "TreeScore = (H × πR² × DBH) / 100",
    ScoreFormula.LINEAR: "TreeScore = H + (DBH × 2) + Spread",
}


# ============================================================
# Hazard composition models
# ============================================================

@dataclass
class HazardComposition:
    """Result of applying a hazard model to a base score."""
    hazard_impact: float
    final_score: float
    multiplier: float
    factor_scores: Dict[str, int] = field(default_factory=dict)


class HazardModel(ABC):
    """Strategy turning a base score into a hazard-adjusted final score."""

    name: str = "base"
    formula_suffix: str = ""

    @abstractmethod
    def compose(self, base_score: float) -> HazardComposition:
        """Apply the model to a base score."""


class HazardPercentageModel(HazardModel):
    """Single overall hazard percentage measured on site."""

    name = "hazard_percentage"
    formula_suffix = " × (1 + AFISS%/100)"

    def __init__(self, percentage: float):
        self.percentage = percentage

    def compose(self, base_score: float) -> HazardComposition:
        multiplier = 1.0 + self.percentage / 100.0
        return HazardComposition(
            hazard_impact=base_score * (multiplier - 1.0),
            final_score=base_score * multiplier,
            multiplier=multiplier,
        )


class AdditiveFlagModel(HazardModel):
    """
    Boolean site hazards whose weights are summed and added on top of the
    base score.
    """

    name = "additive_flags"
    formula_suffix = " + base × Σ(hazard weights)"

    NEAR_STRUCTURE_WEIGHT = 0.25
    POWER_LINES_WEIGHT = 0.25
    SLOPE_WEIGHT = 0.15
    ACCESS_WEIGHT = 0.35

    def __init__(self, flags: HazardFlags):
        self.flags = flags

    @property
    def total_weight(self) -> float:
        weight = 0.0
        if self.flags.near_structure:
            weight += self.NEAR_STRUCTURE_WEIGHT
        if self.flags.power_lines:
            weight += self.POWER_LINES_WEIGHT
        if self.flags.slope:
            weight += self.SLOPE_WEIGHT
        weight += (self.flags.access_difficulty - 1.0) * self.ACCESS_WEIGHT
        return weight

    def compose(self, base_score: float) -> HazardComposition:
        weight = self.total_weight
        impact = base_score * weight
        return HazardComposition(
            hazard_impact=impact,
            final_score=base_score + impact,
            multiplier=1.0 + weight,
        )


class FactorMultiplierModel(HazardModel):
    """Selected assessment factors multiplied onto the base score."""

    name = "assessment_factors"
    formula_suffix = " × (1 + Σ factor weights)"

    def __init__(self, selection: SelectedFactorSet):
        self.selection = selection

    def compose(self, base_score: float) -> HazardComposition:
        multiplier = self.selection.total_multiplier
        final_score = base_score * multiplier
        return HazardComposition(
            hazard_impact=final_score - base_score,
            final_score=final_score,
            multiplier=multiplier,
            factor_scores=self.selection.af_scores(base_score),
        )


# ============================================================
# Engine
# ============================================================

class ScoreEngine:
    """
    Domain service for scoring trees and stumps.

    Pure: holds only the default formula and never retains measurements.
    Invalid measurements produce a result with is_valid=False and the
    numbers computed as-is, so partial input can still be previewed.
    """

    def __init__(self, default_formula: ScoreFormula = ScoreFormula.AREA_BASED):
        self.default_formula = default_formula

    def base_score(self, measurement: TreeMeasurement, formula: ScoreFormula) -> float:
        return FORMULAS[formula](measurement)

    def validate_tree(self, measurement: TreeMeasurement, formula: ScoreFormula) -> List[str]:
        errors = []
        if measurement.height <= 0:
            errors.append("height must be greater than 0")
        if measurement.dbh <= 0:
            errors.append("dbh must be greater than 0")
        if formula == ScoreFormula.LINEAR:
            if measurement.effective_canopy_spread <= 0:
                errors.append("canopy spread must be greater than 0")
        elif measurement.canopy_radius <= 0:
            errors.append("canopy radius must be greater than 0")
        if not 0 <= measurement.hazard_percentage <= 100:
            errors.append("hazard percentage must be between 0 and 100")
        return errors

    def score_tree(
        self,
        measurement: TreeMeasurement,
        formula: Optional[ScoreFormula] = None,
        hazard_model: Optional[HazardModel] = None,
    ) -> ScoreResult:
        """
        Score one tree.

        Args:
            measurement: Tree measurements
            formula: Base-score formula, defaults to the engine default
            hazard_model: Hazard composition, defaults to the measurement's
                hazard percentage

        Returns:
            ScoreResult tagged with the formula and hazard model used
        """
        formula = formula or self.default_formula
        if hazard_model is None:
            hazard_model = HazardPercentageModel(measurement.hazard_percentage)

        base = self.base_score(measurement, formula)
        composition = hazard_model.compose(base)
        errors = self.validate_tree(measurement, formula)

        logger.debug(
            f"Scored tree with {formula.value}/{hazard_model.name}: "
            f"base={base:.2f}, final={composition.final_score:.2f}, valid={not errors}"
        )

        return ScoreResult(
            base_score=base,
            hazard_impact=composition.hazard_impact,
            final_score=composition.final_score,
            formula=formula,
            formula_text=FORMULA_TEXT[formula] + hazard_model.formula_suffix,
            hazard_model=hazard_model.name,
            multiplier=composition.multiplier,
            factor_scores=composition.factor_scores,
            is_valid=not errors,
            validation_errors=errors,
            gps_accuracy=measurement.gps_accuracy,
        )

    def score_stump(
        self,
        stump: StumpMeasurement,
        linked_tree_hazard_impact: float = 0.0,
    ) -> ScoreResult:
        """
        Score one stump.

        A stump linked to a scored tree inherits 10% of that tree's hazard
        impact.

        Args:
            stump: Stump measurements
            linked_tree_hazard_impact: Hazard impact of the associated tree

        Returns:
            ScoreResult for the stump
        """
        base = (stump.height_above_grade + stump.grind_depth) * stump.diameter
        impact = STUMP_HAZARD_SHARE * linked_tree_hazard_impact

        errors = []
        if stump.diameter <= 0:
            errors.append("diameter must be greater than 0")
        if stump.height_above_grade < 0:
            errors.append("height above grade cannot be negative")
        if stump.grind_depth < 0:
            errors.append("grind depth cannot be negative")
        if stump.height_above_grade + stump.grind_depth <= 0:
            errors.append("height above grade plus grind depth must be greater than 0")

        final = base + impact
        return ScoreResult(
            base_score=base,
            hazard_impact=impact,
            final_score=final,
            formula_text="StumpScore = (Height + Depth) × Diameter + 10% tree hazard",
            hazard_model="linked_tree",
            multiplier=final / base if base else 1.0,
            is_valid=not errors,
            validation_errors=errors,
        )

    @staticmethod
    def trim_adjusted_score(score: float, trim_percent: Optional[float]) -> float:
        """Share of the score removed by a trimming job."""
        if trim_percent is None:
            return score
        return score * trim_percent / 100.0

    @staticmethod
    def classify_complexity(score: float) -> TreeComplexity:
        if score < 50:
            return TreeComplexity.LOW
        if score < 150:
            return TreeComplexity.MEDIUM
        if score < 300:
            return TreeComplexity.HIGH
        return TreeComplexity.EXTREME
