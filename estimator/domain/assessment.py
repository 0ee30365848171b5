"""
Selected assessment factors for one tree or stump.
"""
from typing import Dict, Iterable, List, Optional

from estimator.domain.models import AssessmentFactor, FactorCategory


class SelectedFactorSet:
    """
    Mutable selection of assessment factors.

    Factors are identified by name. Equality compares the selected names as
    a set, so toggling a factor twice restores an equal selection even when
    the display order changed.
    """

    def __init__(self, factors: Optional[Iterable[AssessmentFactor]] = None):
        self._selected: Dict[str, AssessmentFactor] = {}
        for factor in factors or ():
            self._selected[factor.name] = factor

    def __len__(self) -> int:
        return len(self._selected)

    def __iter__(self):
        return iter(list(self._selected.values()))

    def __contains__(self, factor: AssessmentFactor) -> bool:
        return self.is_selected(factor)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectedFactorSet):
            return NotImplemented
        return set(self._selected) == set(other._selected)

    def __repr__(self) -> str:
        return f"SelectedFactorSet({list(self._selected)!r})"

    @property
    def factors(self) -> List[AssessmentFactor]:
        return list(self._selected.values())

    @property
    def names(self) -> List[str]:
        return list(self._selected)

    def copy(self) -> "SelectedFactorSet":
        return SelectedFactorSet(self._selected.values())

    def toggle(self, factor: AssessmentFactor) -> bool:
        """
        Add the factor if absent, remove it if present.

        Returns:
            True if the factor is selected after the call
        """
        if factor.name in self._selected:
            del self._selected[factor.name]
            return False
        self._selected[factor.name] = factor
        return True

    def is_selected(self, factor: AssessmentFactor) -> bool:
        return factor.name in self._selected

    def factors_for(self, category: FactorCategory) -> List[AssessmentFactor]:
        return [f for f in self._selected.values() if f.category == category]

    def clear(self) -> None:
        self._selected.clear()

    @property
    def total_multiplier(self) -> float:
        """1 + the sum of all selected weights."""
        return 1.0 + sum(f.weight for f in self._selected.values())

    @property
    def score_multiplier(self) -> float:
        return 1.0 + sum(
            f.weight for f in self._selected.values() if f.impact_type.affects_score
        )

    @property
    def production_multiplier(self) -> float:
        return 1.0 + sum(
            f.weight for f in self._selected.values() if f.impact_type.affects_production
        )

    def af_scores(self, base_score: float) -> Dict[str, int]:
        return {name: f.af_score(base_score) for name, f in self._selected.items()}

    def total_af_score(self, base_score: float) -> int:
        if base_score <= 0:
            return 0
        return sum(self.af_scores(base_score).values())

    def summary(self) -> str:
        if not self._selected:
            return "No assessment factors selected"
        names = self.names
        text = ", ".join(names[:3])
        if len(names) > 3:
            text += f" +{len(names) - 3} more"
        return text
