"""
Unit tests for tree and stump scoring.

Tests cover:
- Area-based and linear base formulas
- Validation flags (flag, don't reject)
- Hazard percentage, additive flag and assessment factor models
- Stump scoring with inherited tree hazard
- Trim adjustment and complexity classes
"""
import math
import pytest

from estimator.domain.assessment import SelectedFactorSet
from estimator.domain.models import HazardFlags, ScoreFormula, StumpMeasurement, TreeComplexity, TreeMeasurement
from estimator.services.domain.score_engine import (
    AdditiveFlagModel,
    FactorMultiplierModel,
    HazardPercentageModel,
    ScoreEngine,
    area_based_score,
    linear_score,
)


OAK_BASE_SCORE = 40 * math.pi * 15 ** 2 * 20 / 100  # ≈ 5654.87


# ============================================================
# Base Formula Tests
# ============================================================

class TestBaseFormulas:
    """Tests for the versioned base-score formulas."""

    def test_area_based_formula(self, oak):
        """Height × πR² × DBH / 100."""
        assert area_based_score(oak) == pytest.approx(5654.87, abs=0.01)

    def test_linear_formula_defaults_spread_to_diameter(self, oak):
        """Spread falls back to twice the canopy radius."""
        assert linear_score(oak) == pytest.approx(40 + 20 * 2 + 30)

    def test_linear_formula_uses_measured_spread(self):
        tree = TreeMeasurement(height=30, dbh=10, canopy_radius=8, canopy_spread=20)
        assert linear_score(tree) == pytest.approx(30 + 20 + 20)

    def test_engine_default_formula(self, oak):
        """The engine scores with its default formula unless told otherwise."""
        assert ScoreEngine().score_tree(oak).formula == ScoreFormula.AREA_BASED
        linear_engine = ScoreEngine(default_formula=ScoreFormula.LINEAR)
        assert linear_engine.score_tree(oak).base_score == pytest.approx(110.0)

    def test_explicit_formula_wins(self, score_engine, oak):
        result = score_engine.score_tree(oak, formula=ScoreFormula.LINEAR)

        assert result.formula == ScoreFormula.LINEAR
        assert result.formula_text.startswith("TreeScore = H + (DBH × 2) + Spread")


# ============================================================
# Validation Tests
# ============================================================

class TestValidation:
    """Invalid measurements are scored and flagged, never rejected."""

    def test_valid_tree(self, score_engine, oak):
        result = score_engine.score_tree(oak)

        assert result.is_valid
        assert result.validation_errors == []

    def test_zero_height_is_flagged(self, score_engine):
        """A zero dimension yields a zero score marked invalid."""
        tree = TreeMeasurement(height=0, dbh=20, canopy_radius=15)
        result = score_engine.score_tree(tree)

        assert result.final_score == 0.0
        assert not result.is_valid
        assert "height must be greater than 0" in result.validation_errors

    def test_negative_dbh_is_computed_literally(self, score_engine):
        tree = TreeMeasurement(height=40, dbh=-20, canopy_radius=15)
        result = score_engine.score_tree(tree)

        assert result.base_score == pytest.approx(-OAK_BASE_SCORE)
        assert not result.is_valid

    def test_hazard_percentage_out_of_range(self, score_engine):
        tree = TreeMeasurement(height=40, dbh=20, canopy_radius=15, hazard_percentage=150)
        result = score_engine.score_tree(tree)

        assert not result.is_valid
        assert "hazard percentage must be between 0 and 100" in result.validation_errors

    def test_linear_formula_checks_spread(self, score_engine):
        """The linear formula needs a spread, not a radius."""
        tree = TreeMeasurement(height=40, dbh=20, canopy_radius=0, canopy_spread=25)

        assert score_engine.score_tree(tree, formula=ScoreFormula.LINEAR).is_valid
        assert not score_engine.score_tree(tree, formula=ScoreFormula.AREA_BASED).is_valid

    def test_gps_accuracy_is_carried(self, score_engine):
        tree = TreeMeasurement(height=40, dbh=20, canopy_radius=15, gps_accuracy=3.5)
        assert score_engine.score_tree(tree).gps_accuracy == 3.5


# ============================================================
# Hazard Model Tests
# ============================================================

class TestHazardModels:
    """Tests for the interchangeable hazard compositions."""

    def test_zero_hazard_keeps_base_score(self, score_engine, oak):
        """Variant A with no hazard: final equals base."""
        result = score_engine.score_tree(oak)

        assert result.hazard_impact == 0.0
        assert result.final_score == pytest.approx(OAK_BASE_SCORE)
        assert result.hazard_model == "hazard_percentage"

    def test_hazard_percentage(self, score_engine):
        tree = TreeMeasurement(height=40, dbh=20, canopy_radius=15, hazard_percentage=25)
        result = score_engine.score_tree(tree)

        assert result.multiplier == pytest.approx(1.25)
        assert result.hazard_impact == pytest.approx(OAK_BASE_SCORE * 0.25)
        assert result.final_score == pytest.approx(OAK_BASE_SCORE * 1.25)

    def test_additive_flags(self, score_engine, oak, risky_flags):
        """Structure and power lines add 0.25 each, medium access adds 0.175."""
        model = AdditiveFlagModel(risky_flags)
        result = score_engine.score_tree(oak, hazard_model=model)

        assert model.total_weight == pytest.approx(0.675)
        assert result.hazard_impact == pytest.approx(OAK_BASE_SCORE * 0.675)
        assert result.final_score == pytest.approx(OAK_BASE_SCORE * 1.675)
        assert result.hazard_model == "additive_flags"

    def test_no_flags_no_impact(self, score_engine, oak):
        result = score_engine.score_tree(oak, hazard_model=AdditiveFlagModel(HazardFlags()))
        assert result.final_score == pytest.approx(result.base_score)

    def test_assessment_factors(self, score_engine, catalog, oak):
        """Power lines and steep slope multiply the base score by 1.52."""
        selection = catalog.select(["Power Lines", "Steep Slope"])
        result = score_engine.score_tree(oak, hazard_model=FactorMultiplierModel(selection))

        assert result.multiplier == pytest.approx(1.52)
        assert result.final_score == pytest.approx(OAK_BASE_SCORE * 1.52)
        assert result.hazard_impact == pytest.approx(OAK_BASE_SCORE * 0.52)
        assert result.factor_scores == {"Power Lines": 1696, "Steep Slope": 1244}

    def test_empty_selection_is_identity(self, score_engine, oak):
        result = score_engine.score_tree(oak, hazard_model=FactorMultiplierModel(SelectedFactorSet()))

        assert result.multiplier == 1.0
        assert result.final_score == pytest.approx(result.base_score)

    def test_default_model_reads_measurement(self, score_engine):
        """Without an explicit model the measurement's percentage applies."""
        tree = TreeMeasurement(height=40, dbh=20, canopy_radius=15, hazard_percentage=10)
        explicit = score_engine.score_tree(tree, hazard_model=HazardPercentageModel(10))

        assert score_engine.score_tree(tree).final_score == pytest.approx(explicit.final_score)


# ============================================================
# Stump Tests
# ============================================================

class TestStumpScore:
    """Tests for stump scoring."""

    def test_stump_base(self, score_engine, stump):
        """(Height + Depth) × Diameter."""
        result = score_engine.score_stump(stump)

        assert result.base_score == pytest.approx(48.0)
        assert result.final_score == pytest.approx(48.0)
        assert result.is_valid

    def test_linked_tree_hazard(self, score_engine, stump):
        """A stump inherits 10% of its tree's hazard impact."""
        result = score_engine.score_stump(stump, linked_tree_hazard_impact=200.0)

        assert result.hazard_impact == pytest.approx(20.0)
        assert result.final_score == pytest.approx(68.0)

    def test_flush_cut_stump_with_depth_is_valid(self, score_engine):
        stump = StumpMeasurement(diameter=18, height_above_grade=0, grind_depth=1)
        assert score_engine.score_stump(stump).is_valid

    def test_zero_volume_stump_is_flagged(self, score_engine):
        stump = StumpMeasurement(diameter=18, height_above_grade=0, grind_depth=0)
        result = score_engine.score_stump(stump)

        assert not result.is_valid
        assert result.final_score == 0.0
        assert result.multiplier == 1.0

    def test_zero_diameter_is_flagged(self, score_engine):
        result = score_engine.score_stump(StumpMeasurement(diameter=0))
        assert "diameter must be greater than 0" in result.validation_errors


# ============================================================
# Trim & Complexity Tests
# ============================================================

class TestTrimAndComplexity:

    def test_trim_percent(self):
        assert ScoreEngine.trim_adjusted_score(400.0, 25) == pytest.approx(100.0)

    def test_no_trim_keeps_score(self):
        assert ScoreEngine.trim_adjusted_score(400.0, None) == 400.0

    @pytest.mark.parametrize("score,expected", [
        (0, TreeComplexity.LOW),
        (49.9, TreeComplexity.LOW),
        (50, TreeComplexity.MEDIUM),
        (150, TreeComplexity.HIGH),
        (300, TreeComplexity.EXTREME),
    ])
    def test_complexity_thresholds(self, score, expected):
        assert ScoreEngine.classify_complexity(score) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
