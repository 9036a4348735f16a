"""
Interview engine - extractor, planner, pricing and listing composer.
"""
from .planner import (
    TransitionResult,
    FallbackReply,
    next_phase,
    enter_phase,
    rewind_for_reset,
    build_fallback_reply,
    wants_to_save,
    wants_to_edit,
)
from .extract import (
    ExtractionResult,
    extract_fields,
)
from .pricing import (
    calculate_suggested_price,
    get_comparables,
    get_location_tier,
    is_above_market,
)
from .composer import (
    generate_title,
    generate_description,
    generate_formatted_listing,
    to_full_listing,
)

__all__ = [
    "TransitionResult",
    "FallbackReply",
    "next_phase",
    "enter_phase",
    "rewind_for_reset",
    "build_fallback_reply",
    "wants_to_save",
    "wants_to_edit",
    "ExtractionResult",
    "extract_fields",
    "calculate_suggested_price",
    "get_comparables",
    "get_location_tier",
    "is_above_market",
    "generate_title",
    "generate_description",
    "generate_formatted_listing",
    "to_full_listing",
]
