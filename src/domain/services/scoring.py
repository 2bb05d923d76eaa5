"""
Heuristic relevance scoring for recommendation candidates.

Every facet has a fixed weight and the weights sum to ``TOTAL_FACET_WEIGHT``.
A facet without signal contributes zero but keeps its share of the
denominator, so a cold-start user is ranked purely by popularity.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..entities.preference import PreferenceModel
from ..entities.property import Property


PROPERTY_TYPE = "property_type"
LOCATION = "location"
LISTING_TYPE = "listing_type"
PRICE = "price"
BEDROOMS = "bedrooms"
POPULARITY = "popularity"

FACET_WEIGHTS: Dict[str, float] = {
    PROPERTY_TYPE: 0.25,
    LOCATION: 0.20,
    LISTING_TYPE: 0.15,
    PRICE: 0.20,
    BEDROOMS: 0.10,
    POPULARITY: 0.10,
}
TOTAL_FACET_WEIGHT = 1.0

POPULARITY_SATURATION_VIEWS = 100
PARTIAL_CREDIT = 0.5
SCORE_PRECISION = 4
DEFAULT_RANK_LIMIT = 20

FALLBACK_REASON = "Recommended based on your browsing history."


@dataclass(frozen=True)
class ScoredCandidate:
    property: Property
    score: float
    factors: Dict[str, float]
    reason: str


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def popularity_score(prop: Property) -> float:
    return _clamp((prop.views_count or 0) / POPULARITY_SATURATION_VIEWS)


def price_proximity(price: Optional[float], preferences: PreferenceModel) -> float:
    price_range = preferences.price_range
    if price_range is None or price is None:
        return 0.0
    if price_range.span <= 0:
        return 1.0 if price == price_range.midpoint else 0.0
    distance = abs(price - price_range.midpoint) / price_range.span
    return _clamp(1.0 - min(1.0, distance))


def facet_values(prop: Property, preferences: PreferenceModel) -> Dict[str, float]:
    """Per-facet contribution in [0, 1] before weighting"""
    return {
        PROPERTY_TYPE: 1.0 if prop.property_type in preferences.property_types else 0.0,
        LOCATION: 1.0 if prop.location in preferences.locations else 0.0,
        LISTING_TYPE: 1.0 if prop.listing_type in preferences.listing_types else 0.0,
        PRICE: price_proximity(prop.price, preferences),
        BEDROOMS: 1.0 if prop.bedrooms in preferences.bedroom_counts else 0.0,
        POPULARITY: popularity_score(prop),
    }


def calculate_score(prop: Property, preferences: PreferenceModel) -> float:
    values = facet_values(prop, preferences)
    weighted = sum(FACET_WEIGHTS[name] * value for name, value in values.items())
    return round(_clamp(weighted / TOTAL_FACET_WEIGHT), SCORE_PRECISION)


def calculate_factors(prop: Property, preferences: PreferenceModel) -> Dict[str, float]:
    """Display breakdown; not fed back into the score"""
    if preferences.price_range is not None and prop.price is not None:
        price_match = 1.0 if preferences.price_range.contains(prop.price) else PARTIAL_CREDIT
    else:
        price_match = PARTIAL_CREDIT

    return {
        "property_type_match": 1.0 if prop.property_type in preferences.property_types else 0.0,
        "location_match": 1.0 if prop.location in preferences.locations else 0.0,
        "listing_type_match": 1.0 if prop.listing_type in preferences.listing_types else 0.0,
        "price_match": price_match,
        "bedroom_match": 1.0 if prop.bedrooms in preferences.bedroom_counts else PARTIAL_CREDIT,
        "popularity": popularity_score(prop),
    }


def generate_reason(prop: Property, factors: Dict[str, float]) -> str:
    clauses = []

    if factors["property_type_match"] == 1:
        clauses.append(f"matches your interest in {prop.property_type.replace('_', ' ')}s")
    if factors["location_match"] == 1:
        clauses.append(f"located in {prop.location} where you've been searching")
    if factors["price_match"] == 1:
        clauses.append("within your budget range")
    if factors["bedroom_match"] == 1:
        clauses.append(f"has {prop.bedrooms} bedrooms like your preferences")
    if prop.is_featured:
        clauses.append("featured property")

    if not clauses:
        return FALLBACK_REASON
    return f"This property {', '.join(clauses)}."


def score_candidate(prop: Property, preferences: PreferenceModel) -> ScoredCandidate:
    factors = calculate_factors(prop, preferences)
    return ScoredCandidate(
        property=prop,
        score=calculate_score(prop, preferences),
        factors=factors,
        reason=generate_reason(prop, factors)
    )


def rank_candidates(candidates: Sequence[Property], preferences: PreferenceModel,
                    limit: int = DEFAULT_RANK_LIMIT) -> List[ScoredCandidate]:
    scored = [score_candidate(prop, preferences) for prop in candidates]
    # sorted() is stable, so ties keep the retriever's featured/popularity/recency order
    ranked = sorted(scored, key=lambda candidate: candidate.score, reverse=True)
    return ranked[:limit]
