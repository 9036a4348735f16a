"""
Interview phase and field tables, registry and record models.
"""
from .specs import (
    Phase,
    PHASE_ORDER,
    ExtractorKind,
    FieldSpec,
    PhaseSpec,
    PHASES,
    NO_RESTRICTIONS,
    get_phase_spec,
    get_following_phase,
    find_field,
    is_field_set,
)
from .models import (
    Role,
    Message,
    PriceRange,
    PriceSuggestion,
    ListingRecord,
    FullListing,
    ConversationState,
    ComparableListing,
)

__all__ = [
    "Phase",
    "PHASE_ORDER",
    "ExtractorKind",
    "FieldSpec",
    "PhaseSpec",
    "PHASES",
    "NO_RESTRICTIONS",
    "get_phase_spec",
    "get_following_phase",
    "find_field",
    "is_field_set",
    "Role",
    "Message",
    "PriceRange",
    "PriceSuggestion",
    "ListingRecord",
    "FullListing",
    "ConversationState",
    "ComparableListing",
]
