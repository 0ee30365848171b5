"""
Assessment factor catalog (AFISS).

Static reference data: the named site conditions an assessor can select,
their hidden weights and what they adjust. Loaded once and never mutated.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from estimator.domain.assessment import SelectedFactorSet
from estimator.domain.errors import UnknownFactorError
from estimator.domain.models import AssessmentFactor, FactorCategory, ImpactType

logger = logging.getLogger(__name__)


def _factor(name, category, description, terms, weight, impact):
    return AssessmentFactor(
        name=name,
        category=category,
        description=description,
        search_terms=tuple(terms),
        weight=weight,
        impact_type=impact,
    )


_S = FactorCategory.STRUCTURES
_L = FactorCategory.LANDSCAPE
_U = FactorCategory.UTILITIES
_A = FactorCategory.ACCESS
_P = FactorCategory.PROJECT_SPECIFIC

DEFAULT_FACTORS: tuple[AssessmentFactor, ...] = (
    # Structures & Infrastructure
    _factor("House/Building Proximity", _S, "Structures within potential drop zone",
            ["house", "building", "home", "structure", "roof"], 0.15, ImpactType.BOTH),
    _factor("Pool & Water Features", _S, "Swimming pools, hot tubs, fountains",
            ["pool", "swimming", "hot tub", "spa", "fountain", "water feature"], 0.20, ImpactType.SCORE),
    _factor("Deck & Patio", _S, "Elevated surfaces and outdoor living areas",
            ["deck", "patio", "porch", "balcony", "terrace"], 0.12, ImpactType.BOTH),
    _factor("Fencing", _S, "Property boundaries and barriers",
            ["fence", "gate", "wall", "barrier", "boundary"], 0.08, ImpactType.PRODUCTION),
    _factor("Driveway & Walkways", _S, "Paved surfaces requiring protection",
            ["driveway", "sidewalk", "walkway", "path", "pavement", "concrete"], 0.10, ImpactType.PRODUCTION),
    _factor("Outbuildings", _S, "Sheds, garages, workshops",
            ["shed", "garage", "workshop", "barn", "outbuilding"], 0.12, ImpactType.BOTH),

    # Landscape & Aesthetic Features
    _factor("Premium Lawn", _L, "Manicured or specialty grass areas",
            ["lawn", "grass", "turf", "yard", "zoysia", "bermuda"], 0.08, ImpactType.PRODUCTION),
    _factor("Garden Beds", _L, "Flower beds, vegetable gardens",
            ["garden", "flowers", "plants", "beds", "landscaping", "vegetables"], 0.10, ImpactType.PRODUCTION),
    _factor("Ornamental Trees/Shrubs", _L, "Specimen plants and shaped shrubs",
            ["shrubs", "bushes", "ornamental", "topiary", "specimen"], 0.12, ImpactType.PRODUCTION),
    _factor("Irrigation System", _L, "Sprinklers and underground irrigation",
            ["sprinkler", "irrigation", "watering", "drip"], 0.08, ImpactType.PRODUCTION),
    _factor("Hardscaping", _L, "Decorative stone, pavers, retaining walls",
            ["hardscape", "pavers", "stone", "brick", "retaining wall"], 0.15, ImpactType.BOTH),

    # Utilities & Services
    _factor("Power Lines", _U, "Overhead electrical lines",
            ["power", "electric", "electrical", "lines", "wires", "voltage"], 0.30, ImpactType.BOTH),
    _factor("Gas Lines", _U, "Natural gas or propane systems",
            ["gas", "propane", "natural gas", "fuel", "tank"], 0.25, ImpactType.BOTH),
    _factor("Cable/Internet", _U, "Communication lines",
            ["cable", "internet", "phone", "fiber", "communication"], 0.12, ImpactType.PRODUCTION),
    _factor("Water/Sewer", _U, "Water mains, sewer lines, septic",
            ["water", "sewer", "septic", "plumbing", "pipes"], 0.18, ImpactType.BOTH),
    _factor("HVAC Equipment", _U, "AC units, heat pumps, generators",
            ["ac", "hvac", "air conditioner", "heat pump", "generator"], 0.15, ImpactType.PRODUCTION),

    # Access & Site Conditions
    _factor("Narrow Access", _A, "Limited entry points or tight spaces",
            ["narrow", "tight", "limited", "small gate", "restricted"], 0.18, ImpactType.PRODUCTION),
    _factor("Steep Slope", _A, "Challenging terrain angles",
            ["steep", "slope", "hill", "incline", "grade"], 0.22, ImpactType.BOTH),
    _factor("Backyard Location", _A, "Interior property position",
            ["backyard", "back yard", "rear", "behind house"], 0.12, ImpactType.PRODUCTION),
    _factor("Poor Ground Conditions", _A, "Wet, muddy, or unstable soil",
            ["mud", "wet", "soft", "saturated", "unstable", "swamp"], 0.15, ImpactType.PRODUCTION),
    _factor("Distance from Road", _A, "Long carry/drag distances",
            ["far", "distance", "remote", "carry", "drag"], 0.14, ImpactType.PRODUCTION),

    # Project-Specific Factors
    _factor("Dead/Diseased Tree", _P, "Compromised tree structure",
            ["dead", "diseased", "dying", "decay", "rotten"], 0.20, ImpactType.SCORE),
    _factor("Emergency/Storm", _P, "Urgent or storm damage work",
            ["emergency", "storm", "urgent", "damage", "fallen"], 0.35, ImpactType.BOTH),
    _factor("Permits Required", _P, "Municipal approvals needed",
            ["permit", "approval", "city", "municipal", "hoa"], 0.15, ImpactType.PRODUCTION),
    _factor("Crane Required", _P, "Specialized equipment needed",
            ["crane", "lift", "bucket", "specialized equipment"], 0.40, ImpactType.BOTH),
    _factor("Historic/Protected", _P, "Heritage or protected status",
            ["historic", "heritage", "protected", "landmark"], 0.25, ImpactType.BOTH),
)


@dataclass(frozen=True)
class FactorPreset:
    """A named combination of factors for common site types."""
    name: str
    description: str
    factor_names: tuple[str, ...]


DEFAULT_PRESETS: tuple[FactorPreset, ...] = (
    FactorPreset("Suburban Standard", "Typical residential property",
                 ("House/Building Proximity", "Premium Lawn", "Driveway & Walkways")),
    FactorPreset("Luxury Estate", "High-value property with extensive landscaping",
                 ("Pool & Water Features", "Premium Lawn", "Garden Beds", "Hardscaping", "Irrigation System")),
    FactorPreset("Tight Access", "Challenging backyard access",
                 ("Narrow Access", "Backyard Location", "Fencing")),
    FactorPreset("Utility Hazard", "Power lines and utilities present",
                 ("Power Lines", "Cable/Internet", "HVAC Equipment")),
    FactorPreset("Emergency Storm", "Storm damage emergency work",
                 ("Emergency/Storm", "Dead/Diseased Tree", "House/Building Proximity")),
)


class FactorCatalog:
    """
    Read-only lookup over the assessment factors.

    Supports category filtering, free-text search, suggestions from a
    scene description and preset selections.
    """

    SUGGESTION_LIMIT = 10
    TERM_MATCH_POINTS = 10
    NAME_WORD_POINTS = 5

    def __init__(
        self,
        factors: Iterable[AssessmentFactor] = DEFAULT_FACTORS,
        presets: Iterable[FactorPreset] = DEFAULT_PRESETS,
    ):
        self._factors = tuple(factors)
        self._by_name = {f.name: f for f in self._factors}
        self._presets = {p.name: p for p in presets}

    def __len__(self) -> int:
        return len(self._factors)

    def all(self) -> List[AssessmentFactor]:
        return list(self._factors)

    def get(self, name: str) -> AssessmentFactor:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownFactorError(f"Unknown assessment factor: {name!r}") from None

    def factors_for(self, category: FactorCategory) -> List[AssessmentFactor]:
        return [f for f in self._factors if f.category == category]

    def search(self, query: str) -> List[AssessmentFactor]:
        """Case-insensitive match on name, description or search terms."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            f for f in self._factors
            if needle in f.name.lower()
            or needle in f.description.lower()
            or any(needle in term for term in f.search_terms)
        ]

    def suggest(self, description: str) -> List[AssessmentFactor]:
        """
        Suggest factors from a free-text scene description.

        Each search term found in the text scores 10 points and each word of
        the factor name scores 5; the ten best matches are returned.

        Args:
            description: Assessor's description of the site

        Returns:
            Matching factors ordered by relevance
        """
        text = description.lower()
        if not text.strip():
            return []

        scored = []
        for factor in self._factors:
            score = sum(self.TERM_MATCH_POINTS for term in factor.search_terms if term in text)
            score += sum(
                self.NAME_WORD_POINTS for word in factor.name.lower().split() if word in text
            )
            if score > 0:
                scored.append((score, factor))

        # sorted() is stable so equal scores keep catalog order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)
        suggestions = [factor for _, factor in scored[: self.SUGGESTION_LIMIT]]
        logger.debug(f"Suggested {len(suggestions)} factors from scene description")
        return suggestions

    def select(self, names: Iterable[str]) -> SelectedFactorSet:
        return SelectedFactorSet(self.get(name) for name in names)

    @property
    def presets(self) -> List[FactorPreset]:
        return list(self._presets.values())

    def apply_preset(self, preset_name: str) -> SelectedFactorSet:
        """Build a fresh selection containing the preset's factors."""
        preset = self._presets.get(preset_name)
        if preset is None:
            raise UnknownFactorError(f"Unknown factor preset: {preset_name!r}")
        selection = SelectedFactorSet()
        for name in preset.factor_names:
            factor = self._by_name.get(name)
            if factor is not None:
                selection.toggle(factor)
        return selection

    def apply_suggestions(self, selection: SelectedFactorSet, description: str) -> SelectedFactorSet:
        """Add every suggested factor that is not already selected."""
        for factor in self.suggest(description):
            if not selection.is_selected(factor):
                selection.toggle(factor)
        return selection


default_catalog = FactorCatalog()
