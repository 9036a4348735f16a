"""
Listing field extraction logic.

This module fills listing fields from free-text host messages using
deterministic pattern and keyword matching only:
- Numbers: first integer in the message, checked against the field's bounds
- Cities, space types, amenities, features: keyword tables from interview.specs
- Terms: accepted verbatim

Only the first unset field of the current phase is ever considered, so the
extraction order is exactly the order in which the planner asks questions.
Extraction never raises: anything that does not parse leaves the field unset.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from interview.models import ListingRecord
from interview.specs import (
    AMENITY_KEYWORDS,
    CITY_GAZETTEER,
    NEGATION_KEYWORDS,
    NO_RESTRICTIONS,
    PREMIUM_FEATURE_KEYWORDS,
    SKIP_KEYWORDS,
    SPACE_TYPE_KEYWORDS,
    ExtractorKind,
    FieldSpec,
    Phase,
    contains_any,
    get_phase_spec,
)

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"\d+")
_PRICE_PATTERN = re.compile(r"\$?(\d[\d,]*)")
_DIGITS_ONLY_PATTERN = re.compile(r"^\d+$")

# Minimum lengths for verbatim answers
_MIN_PLACE_LENGTH = 3
_MIN_KEYWORD_FEATURE_LENGTH = 6
_MIN_FREEFORM_FEATURE_LENGTH = 11


@dataclass
class ExtractionResult:
    """Result of extracting one utterance into the record."""
    record: ListingRecord
    filled_field: Optional[str] = None
    value: Any = None

    @property
    def filled(self) -> bool:
        return self.filled_field is not None

    @property
    def filled_fields(self) -> List[str]:
        return [self.filled_field] if self.filled_field else []


# =============================================================================
# PRIMITIVE PARSERS
# =============================================================================

def extract_number(text: str) -> Optional[int]:
    """Return the first integer in the text, or None."""
    match = _NUMBER_PATTERN.search(text)
    if match:
        return int(match.group())
    return None


def extract_city(text: str) -> Optional[str]:
    """
    Match the text against the city gazetteer.

    Returns the gazetteer entry (lowercase) of the first hit, None otherwise.
    """
    text_lower = text.lower()
    for city in CITY_GAZETTEER:
        if city in text_lower:
            return city
    return None


def is_place_text(text: str) -> bool:
    """A verbatim place answer must be more than a couple of chars and not just a number."""
    return len(text) >= _MIN_PLACE_LENGTH and not _DIGITS_ONLY_PATTERN.match(text)


def classify_space_type(text: str) -> str:
    """Map the text to a canonical space type, or keep it verbatim."""
    for label, keywords in SPACE_TYPE_KEYWORDS:
        if contains_any(text, keywords):
            return label
    return text


def extract_amenities(text: str, existing: Optional[List[str]] = None) -> List[str]:
    """
    Scan the text for amenity keywords.

    Returns the existing labels followed by every newly matched canonical
    label, without duplicates and in first-seen order.
    """
    amenities = list(existing or [])
    text_lower = text.lower()
    for keyword, label in AMENITY_KEYWORDS.items():
        if keyword in text_lower and label not in amenities:
            amenities.append(label)
    return amenities


def extract_standout_features(text: str) -> Optional[str]:
    """
    Accept a standout-features answer.

    A premium keyword is enough for a short answer; otherwise the answer has
    to be long enough to plausibly describe something.
    """
    if contains_any(text, PREMIUM_FEATURE_KEYWORDS) and len(text) >= _MIN_KEYWORD_FEATURE_LENGTH:
        return text
    if len(text) >= _MIN_FREEFORM_FEATURE_LENGTH:
        return text
    return None


def extract_restrictions(text: str) -> str:
    if contains_any(text, NEGATION_KEYWORDS):
        return NO_RESTRICTIONS
    return text


def parse_price(text: str) -> Optional[int]:
    """
    Parse a monthly rate like "9000", "$9,000" or "about $12,500/mo".

    Returns None for anything that is not a positive whole number.
    """
    match = _PRICE_PATTERN.search(text)
    if not match:
        return None
    price = int(match.group(1).replace(",", ""))
    if price <= 0:
        return None
    return price


# =============================================================================
# FIELD DISPATCH
# =============================================================================

def extract_field_value(
    utterance: str,
    field_spec: FieldSpec,
    record: ListingRecord,
) -> Tuple[Optional[Any], bool]:
    """
    Try to extract one field's value from the utterance.

    Args:
        utterance: The host's message, already stripped
        field_spec: The field being filled
        record: The current record (amenities extend what is there)

    Returns:
        Tuple of (extracted_value, success)
    """
    kind = field_spec.extractor

    if kind == ExtractorKind.CITY:
        value = extract_city(utterance)
        if value is None and is_place_text(utterance):
            value = utterance
        return (value, value is not None)

    elif kind == ExtractorKind.TEXT:
        return (utterance, True) if is_place_text(utterance) else (None, False)

    elif kind == ExtractorKind.FREE_TEXT:
        return (utterance, bool(utterance))

    elif kind == ExtractorKind.NUMBER:
        value = extract_number(utterance)
        if value is not None and field_spec.in_bounds(value):
            return (value, True)
        return (None, False)

    elif kind == ExtractorKind.COUNT:
        value = extract_number(utterance)
        if value is not None and field_spec.in_bounds(value):
            return (value, True)
        if contains_any(utterance, SKIP_KEYWORDS):
            return (0, True)
        return (None, False)

    elif kind == ExtractorKind.SPACE_TYPE:
        return (classify_space_type(utterance), True)

    elif kind == ExtractorKind.AMENITIES:
        amenities = extract_amenities(utterance, record.amenities)
        if len(amenities) > len(record.amenities):
            return (amenities, True)
        return (None, False)

    elif kind == ExtractorKind.FEATURES:
        value = extract_standout_features(utterance)
        return (value, value is not None)

    elif kind == ExtractorKind.RESTRICTIONS:
        return (extract_restrictions(utterance), True)

    elif kind == ExtractorKind.PRICE:
        value = parse_price(utterance)
        if value is not None and field_spec.in_bounds(value):
            return (value, True)
        return (None, False)

    return (None, False)


# =============================================================================
# MAIN EXTRACTION FUNCTION
# =============================================================================

def extract_fields(
    record: ListingRecord,
    phase: Phase,
    utterance: str,
) -> ExtractionResult:
    """
    Extract the next listing field from a host message.

    The input record is never mutated; the result carries an updated copy.
    Phases without fields (greeting, preview, complete) extract nothing.

    Args:
        record: The current partial record
        phase: The current interview phase
        utterance: The host's raw message

    Returns:
        ExtractionResult with the (possibly) updated record
    """
    updated = record.model_copy(deep=True)
    text = (utterance or "").strip()
    if not text:
        return ExtractionResult(record=updated)

    field_spec = get_phase_spec(phase).get_next_unset_field(updated)
    if field_spec is None:
        return ExtractionResult(record=updated)

    value, success = extract_field_value(text, field_spec, updated)
    if not success:
        logger.debug(f"No match for {field_spec.name} in phase={phase.value}")
        return ExtractionResult(record=updated)

    setattr(updated, field_spec.name, value)
    if field_spec.name == "monthlyRate" and updated.squareFeet:
        updated.pricePerSqft = value / updated.squareFeet

    logger.info(f"Deterministic extraction: {field_spec.name}={value!r}")
    return ExtractionResult(record=updated, filled_field=field_spec.name, value=value)
