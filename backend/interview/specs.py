"""
PhaseSpec and FieldSpec definitions.

This module holds the declarative phase and field tables for the listing interview.
The extractor and the planner both read these tables, so the order in which
fields are extracted is the same order in which the fallback replies ask for
them. There is no per-phase if/else branching anywhere else.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Phase(str, Enum):
    """Interview phases, in the only order they can be visited."""
    GREETING = "greeting"
    BASICS = "phase1_basics"
    CONFIG = "phase2_config"
    TERMS = "phase3_terms"
    PRICING = "phase4_pricing"
    PREVIEW = "phase5_preview"
    COMPLETE = "complete"


PHASE_ORDER: List[Phase] = [
    Phase.GREETING,
    Phase.BASICS,
    Phase.CONFIG,
    Phase.TERMS,
    Phase.PRICING,
    Phase.PREVIEW,
    Phase.COMPLETE,
]


class ExtractorKind(str, Enum):
    """How a field's value is pulled out of a free-text utterance."""
    CITY = "CITY"  # Gazetteer match, else verbatim text
    TEXT = "TEXT"  # Verbatim text (location-style guard)
    FREE_TEXT = "FREE_TEXT"  # Verbatim text, any non-empty answer
    NUMBER = "NUMBER"  # First integer, within bounds
    COUNT = "COUNT"  # First integer within bounds, or skip keyword -> 0
    SPACE_TYPE = "SPACE_TYPE"  # Keyword classification, else verbatim
    AMENITIES = "AMENITIES"  # Keyword table -> canonical labels
    FEATURES = "FEATURES"  # Premium keyword or long enough answer
    RESTRICTIONS = "RESTRICTIONS"  # Verbatim, negation -> NO_RESTRICTIONS
    PRICE = "PRICE"  # Currency-like number


# Stored in `restrictions` when the host says there are none.
# `None` keeps meaning "not asked yet".
NO_RESTRICTIONS = ""


# =============================================================================
# SHARED KEYWORD TABLES
# =============================================================================

# Checked in order, first substring hit wins
CITY_GAZETTEER: List[str] = [
    "new york", "nyc", "san francisco", "sf", "los angeles", "la",
    "chicago", "boston", "seattle",
]

SPACE_TYPE_KEYWORDS: List[Tuple[str, List[str]]] = [
    ("Entire floor", ["entire", "whole", "full"]),
    ("Partial floor", ["partial", "part"]),
    ("Private offices", ["private", "office"]),
]

STANDARD_AMENITIES: List[str] = [
    "High-speed internet",
    "Kitchen/break room",
    "Meeting rooms",
    "Printer/office equipment",
    "Reception area",
    "Natural light/windows",
    "Parking",
    "24/7 access",
]

AMENITY_KEYWORDS: Dict[str, str] = {
    "internet": "High-speed internet",
    "wifi": "High-speed internet",
    "kitchen": "Kitchen/break room",
    "break room": "Kitchen/break room",
    "meeting room": "Meeting rooms",
    "conference": "Meeting rooms",
    "printer": "Printer/office equipment",
    "equipment": "Printer/office equipment",
    "reception": "Reception area",
    "natural light": "Natural light/windows",
    "windows": "Natural light/windows",
    "parking": "Parking",
    "24/7": "24/7 access",
    "24 hour": "24/7 access",
}

# Used by the extractor to accept a feature answer and by pricing for the premium bump
PREMIUM_FEATURE_KEYWORDS: List[str] = [
    "exposed brick", "city views", "river views", "renovated",
    "natural light", "views", "brick",
]

SKIP_KEYWORDS: List[str] = ["skip", "none", "n/a"]
NEGATION_KEYWORDS: List[str] = ["none", "no restriction"]
SAVE_KEYWORDS: List[str] = ["save", "done", "yes"]
EDIT_KEYWORDS: List[str] = ["edit", "change", "back"]


def contains_any(text: str, keywords: List[str]) -> bool:
    """Case-insensitive substring check against a keyword list."""
    text_lower = text.lower()
    return any(keyword in text_lower for keyword in keywords)


# =============================================================================
# FIELD / PHASE SPECS
# =============================================================================

@dataclass
class FieldSpec:
    """
    Specification for a single listing field collected in a phase.

    Attributes:
        name: The record attribute (e.g., "squareFeet")
        extractor: How the value is extracted from an utterance
        prompt: The question asked when this is the next unset field
        retry_prompt: Asked again when the answer could not be parsed
        ack: Acknowledgement echoing the parsed value ({value}, {s} for plural)
        ack_zero: Acknowledgement used when the parsed value is 0 / "none"
        min_value: Inclusive lower bound for numeric extractors
        max_value: Exclusive upper bound for numeric extractors
    """
    name: str
    extractor: ExtractorKind
    prompt: str
    retry_prompt: str
    ack: str = "Got it."
    ack_zero: Optional[str] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None

    def in_bounds(self, value: int) -> bool:
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value >= self.max_value:
            return False
        return True


@dataclass
class PhaseSpec:
    """
    Specification for one interview phase.

    Fields are collected strictly in `fields_in_order`; the phase is done
    when every one of them is set.
    """
    phase: Phase
    fields_in_order: List[FieldSpec] = field(default_factory=list)
    intro_lines: List[str] = field(default_factory=list)

    def get_field_by_name(self, name: str) -> Optional[FieldSpec]:
        for field_spec in self.fields_in_order:
            if field_spec.name == name:
                return field_spec
        return None

    def get_field_names(self) -> List[str]:
        return [f.name for f in self.fields_in_order]

    def get_next_unset_field(self, record: Any) -> Optional[FieldSpec]:
        """First field of this phase that the record does not have yet."""
        for field_spec in self.fields_in_order:
            if not is_field_set(record, field_spec.name):
                return field_spec
        return None

    def is_satisfied(self, record: Any) -> bool:
        return self.get_next_unset_field(record) is None


def is_field_set(record: Any, field_name: str) -> bool:
    """
    Check if a record field holds a real answer.

    `None` is the only "unset" marker: 0 offices and NO_RESTRICTIONS are
    answers. A list counts as set once it has at least one entry.
    """
    value = getattr(record, field_name, None)
    if value is None:
        return False
    if isinstance(value, list):
        return len(value) > 0
    return True


# =============================================================================
# INTERVIEW REGISTRY
# =============================================================================

BASICS_SPEC = PhaseSpec(
    phase=Phase.BASICS,
    intro_lines=["Hey! Let's get your space listed."],
    fields_in_order=[
        FieldSpec(
            name="location",
            extractor=ExtractorKind.CITY,
            prompt="Where's your office located?",
            retry_prompt="Which city is the office in?",
            ack="Got it - {value}.",
        ),
        FieldSpec(
            name="neighborhood",
            extractor=ExtractorKind.TEXT,
            prompt="Which neighborhood?",
            retry_prompt="Which neighborhood is the office in?",
            ack="Perfect!",
        ),
        FieldSpec(
            name="squareFeet",
            extractor=ExtractorKind.NUMBER,
            prompt="How much space are you looking to sublet?",
            retry_prompt="Could you tell me the square footage? (e.g., 3000 sqft)",
            ack="Great! {value} sq ft.",
            min_value=101,
        ),
        FieldSpec(
            name="spaceType",
            extractor=ExtractorKind.SPACE_TYPE,
            prompt="Is this the entire floor, or part of a larger office?",
            retry_prompt="Is this the entire floor, part of a floor, or private offices?",
            ack="Got it - {value}.",
        ),
        FieldSpec(
            name="deskCapacity",
            extractor=ExtractorKind.NUMBER,
            prompt="How many desks can this space accommodate?",
            retry_prompt="How many desks can fit in the space? (e.g., 10 desks)",
            ack="Perfect! {value} desk{s}.",
            min_value=1,
            max_value=1000,
        ),
    ],
)

CONFIG_SPEC = PhaseSpec(
    phase=Phase.CONFIG,
    intro_lines=["Moving on to configuration... Let's talk about the layout."],
    fields_in_order=[
        FieldSpec(
            name="privateOffices",
            extractor=ExtractorKind.COUNT,
            prompt="How many private offices does the space have? (or type 'skip' if none)",
            retry_prompt="Could you give me a number? (e.g., 3 offices, or type 'skip')",
            ack="Great! {value} private office{s}.",
            ack_zero="No problem.",
            min_value=0,
            max_value=100,
        ),
        FieldSpec(
            name="conferenceRooms",
            extractor=ExtractorKind.COUNT,
            prompt="How many conference or meeting rooms?",
            retry_prompt="How many meeting rooms? (or type 'skip')",
            ack="Got it - {value} meeting room{s}.",
            ack_zero="No meeting rooms, noted.",
            min_value=0,
            max_value=50,
        ),
        FieldSpec(
            name="amenities",
            extractor=ExtractorKind.AMENITIES,
            prompt=(
                "Now let's check off amenities. Which of these does your space have? "
                f"({', '.join(STANDARD_AMENITIES)})"
            ),
            retry_prompt="Which amenities does your space have? You can also use the checklist below.",
            ack="Got it! I've noted: {value}.",
        ),
        FieldSpec(
            name="standoutFeatures",
            extractor=ExtractorKind.FEATURES,
            prompt="Any standout features? (e.g., exposed brick, city views, recently renovated, river views)",
            retry_prompt="Tell me a bit more about what makes the space stand out.",
            ack='Perfect! "{value}" sounds great.',
        ),
    ],
)

TERMS_SPEC = PhaseSpec(
    phase=Phase.TERMS,
    intro_lines=["Now let's talk about availability and terms."],
    fields_in_order=[
        FieldSpec(
            name="availableFrom",
            extractor=ExtractorKind.FREE_TEXT,
            prompt="When is the space available? (e.g., 'immediate', 'January 1st', 'next month')",
            retry_prompt="When can a tenant move in?",
            ack="Got it - available {value}.",
        ),
        FieldSpec(
            name="minimumTerm",
            extractor=ExtractorKind.FREE_TEXT,
            prompt="What's the minimum lease term? (e.g., month-to-month, 3 months, 6 months, 12 months)",
            retry_prompt="What's the shortest term you'd accept?",
            ack="Got it - {value} minimum.",
        ),
        FieldSpec(
            name="restrictions",
            extractor=ExtractorKind.RESTRICTIONS,
            prompt=(
                "Any restrictions? (e.g., industry types, noise levels, after-hours access) "
                "Or type 'none' if no restrictions."
            ),
            retry_prompt="Any restrictions? Type 'none' if there aren't any.",
            ack="Noted: {value}.",
            ack_zero="No restrictions, noted.",
        ),
    ],
)

PRICING_SPEC = PhaseSpec(
    phase=Phase.PRICING,
    intro_lines=["Perfect! Let's talk pricing."],
    fields_in_order=[
        FieldSpec(
            name="monthlyRate",
            extractor=ExtractorKind.PRICE,
            prompt="What monthly rate would you like to set?",
            retry_prompt="Could you provide the monthly rate as a number? (e.g., 9000 or $9,000)",
            ack="Great, ${value}/month.",
            min_value=1,
        ),
    ],
)

PREVIEW_SPEC = PhaseSpec(
    phase=Phase.PREVIEW,
    intro_lines=["Perfect! Here's your listing preview:"],
)

COMPLETE_SPEC = PhaseSpec(
    phase=Phase.COMPLETE,
    intro_lines=["Great! Your listing has been saved. You'll receive a shareable URL shortly."],
)

GREETING_SPEC = PhaseSpec(phase=Phase.GREETING)

PHASES: Dict[Phase, PhaseSpec] = {
    Phase.GREETING: GREETING_SPEC,
    Phase.BASICS: BASICS_SPEC,
    Phase.CONFIG: CONFIG_SPEC,
    Phase.TERMS: TERMS_SPEC,
    Phase.PRICING: PRICING_SPEC,
    Phase.PREVIEW: PREVIEW_SPEC,
    Phase.COMPLETE: COMPLETE_SPEC,
}


def get_phase_spec(phase: Phase) -> PhaseSpec:
    """
    Get the PhaseSpec for a phase.

    Raises:
        ValueError: If the phase is unknown
    """
    phase = Phase(phase)
    if phase not in PHASES:
        raise ValueError(f"Unknown phase: {phase}")
    return PHASES[phase]


def get_following_phase(phase: Phase) -> Optional[Phase]:
    """The phase right after `phase`, or None for the terminal phase."""
    index = PHASE_ORDER.index(Phase(phase))
    if index + 1 >= len(PHASE_ORDER):
        return None
    return PHASE_ORDER[index + 1]


def phase_index(phase: Phase) -> int:
    return PHASE_ORDER.index(Phase(phase))


def find_field(field_name: str) -> Tuple[PhaseSpec, FieldSpec]:
    """
    Locate the phase that collects a field.

    Raises:
        ValueError: If no phase collects the field
    """
    for phase in PHASE_ORDER:
        spec = PHASES[phase]
        field_spec = spec.get_field_by_name(field_name)
        if field_spec is not None:
            return spec, field_spec
    raise ValueError(f"Unknown listing field: {field_name}")


def get_all_field_names() -> List[str]:
    names: List[str] = []
    for phase in PHASE_ORDER:
        names.extend(PHASES[phase].get_field_names())
    return names
