"""
Pricing suggestions and comparable listings.

Everything here is a pure function of the record passed in: no I/O, no
randomness, and the comparable reference set is never mutated.
"""
import logging
from typing import Dict, List, Tuple

from interview.models import ComparableListing, ListingRecord, PriceRange, PriceSuggestion
from interview.specs import PREMIUM_FEATURE_KEYWORDS, contains_any

logger = logging.getLogger(__name__)

# (min, max) monthly rate per square foot
PRICING_TIERS: Dict[str, Tuple[float, float]] = {
    "nyc_fidi": (2.80, 3.50),
    "nyc_midtown": (2.80, 3.50),
    "nyc_other": (2.20, 2.80),
    "sf_soma": (3.00, 3.80),
    "sf_fidi": (3.00, 3.80),
    "sf_other": (2.40, 3.00),
    "la": (2.00, 2.60),
    "default": (1.80, 2.40),
}

AMENITY_PREMIUM_THRESHOLD = 5
AMENITY_MULTIPLIER = 1.10
FEATURE_MULTIPLIER = 1.15
RANGE_LOW = 0.9
RANGE_HIGH = 1.1
ABOVE_MARKET_FACTOR = 1.2

MAX_COMPARABLES = 3
MIN_FILTERED_COMPARABLES = 2
SIZE_TOLERANCE = 0.5

COMPARABLES: Tuple[ComparableListing, ...] = (
    ComparableListing(
        id="1",
        location="New York",
        neighborhood="Financial District",
        squareFeet=2500,
        monthlyRate=7500,
        pricePerSqft=3.00,
        amenities=["High-speed internet", "Kitchen", "Meeting rooms", "Natural light"],
        standoutFeatures="River views",
    ),
    ComparableListing(
        id="2",
        location="New York",
        neighborhood="Midtown",
        squareFeet=4000,
        monthlyRate=12000,
        pricePerSqft=3.00,
        amenities=["High-speed internet", "Kitchen", "Meeting rooms", "Reception", "Parking"],
        standoutFeatures="Recently renovated",
    ),
    ComparableListing(
        id="3",
        location="San Francisco",
        neighborhood="SOMA",
        squareFeet=3000,
        monthlyRate=10500,
        pricePerSqft=3.50,
        amenities=["High-speed internet", "Kitchen", "Meeting rooms", "Natural light", "24/7 access"],
        standoutFeatures="Exposed brick",
    ),
    ComparableListing(
        id="4",
        location="Los Angeles",
        neighborhood="Downtown",
        squareFeet=2000,
        monthlyRate=5000,
        pricePerSqft=2.50,
        amenities=["High-speed internet", "Kitchen", "Meeting rooms"],
    ),
)


def get_location_tier(city: str, neighborhood: str) -> str:
    """
    Classify a city/neighborhood pair into a pricing tier.

    City keywords are checked first, then the neighborhood refines the tier
    within that city. Anything unrecognized is "default".
    """
    if contains_any(city, ["new york", "nyc"]):
        if contains_any(neighborhood, ["financial", "fidi"]):
            return "nyc_fidi"
        if contains_any(neighborhood, ["midtown"]):
            return "nyc_midtown"
        return "nyc_other"

    if contains_any(city, ["san francisco", "sf"]):
        if contains_any(neighborhood, ["soma", "financial"]):
            return "sf_soma"
        return "sf_other"

    if contains_any(city, ["los angeles", "la"]):
        return "la"

    return "default"


def has_premium_features(standout_features: str) -> bool:
    return contains_any(standout_features, PREMIUM_FEATURE_KEYWORDS)


def calculate_suggested_price(record: ListingRecord) -> PriceSuggestion:
    """
    Suggest a monthly price for the record.

    Starts from the midpoint of the location tier's per-sqft range, applies
    the amenity and premium-feature multipliers, then scales by square
    footage. The suggested range is +/-10% around the base price.

    Returns an all-zero suggestion when squareFeet, location or neighborhood
    is missing.
    """
    if not record.squareFeet or not record.location or not record.neighborhood:
        return PriceSuggestion()

    tier = get_location_tier(record.location, record.neighborhood)
    tier_min, tier_max = PRICING_TIERS.get(tier, PRICING_TIERS["default"])

    rate = (tier_min + tier_max) / 2

    if len(record.amenities) >= AMENITY_PREMIUM_THRESHOLD:
        rate *= AMENITY_MULTIPLIER

    if record.standoutFeatures and has_premium_features(record.standoutFeatures):
        rate *= FEATURE_MULTIPLIER

    base_price = rate * record.squareFeet
    logger.debug(f"Pricing: tier={tier} rate={rate:.4f} base_price={base_price:.2f}")

    return PriceSuggestion(
        basePrice=base_price,
        suggestedRange=PriceRange(min=base_price * RANGE_LOW, max=base_price * RANGE_HIGH),
        pricePerSqft=rate,
    )


def is_above_market(record: ListingRecord) -> bool:
    """True when the asked rate is more than 20% above the suggested maximum."""
    if not record.monthlyRate:
        return False
    suggestion = calculate_suggested_price(record)
    if suggestion.basePrice <= 0:
        return False
    return record.monthlyRate > suggestion.suggestedRange.max * ABOVE_MARKET_FACTOR


def _same_city(comp: ComparableListing, location: str) -> bool:
    comp_city = comp.location.lower()
    location = location.lower()
    return location in comp_city or comp_city in location


def _similar_size(comp: ComparableListing, square_feet: int) -> bool:
    return (
        square_feet * (1 - SIZE_TOLERANCE) <= comp.squareFeet <= square_feet * (1 + SIZE_TOLERANCE)
    )


def get_comparables(
    record: ListingRecord,
    reference: Tuple[ComparableListing, ...] = COMPARABLES,
) -> List[ComparableListing]:
    """
    Pick up to three comparable listings for the record.

    Filters the reference set by city (substring match in either direction)
    and size (within 50%). With fewer than two matches, the first three
    reference listings are returned instead so there is always something to
    show.
    """
    if not record.location or not record.squareFeet:
        return list(reference[:MAX_COMPARABLES])

    filtered = [
        comp for comp in reference
        if _same_city(comp, record.location) and _similar_size(comp, record.squareFeet)
    ]

    if len(filtered) >= MIN_FILTERED_COMPARABLES:
        return filtered[:MAX_COMPARABLES]
    return list(reference[:MAX_COMPARABLES])
