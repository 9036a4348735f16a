"""
Deterministic interview planner.

This module is the SINGLE SOURCE OF TRUTH for interview flow decisions.
It uses the PhaseSpec tables to determine:
- When a phase is finished and the next one starts
- What happens on entering a phase (pricing suggestion, listing preview)
- Which question the rule-based fallback asks next
- How an explicit field reset rewinds the interview

NO LLM calls are made in this module. All logic is deterministic.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from interview.models import ListingRecord
from interview.specs import (
    CITY_GAZETTEER,
    EDIT_KEYWORDS,
    NO_RESTRICTIONS,
    SAVE_KEYWORDS,
    FieldSpec,
    Phase,
    contains_any,
    find_field,
    get_following_phase,
    get_phase_spec,
    phase_index,
)

from .composer import generate_description, generate_formatted_listing, generate_title, to_full_listing
from .pricing import calculate_suggested_price, get_comparables, is_above_market

logger = logging.getLogger(__name__)

PREVIEW_NUDGE = "Type 'save' to publish your listing, or 'edit' to make changes."
EDIT_PROMPT = "Which section would you like to edit? (basics, amenities, terms, pricing)"
COMPLETE_MESSAGE = "Thanks! Your listing is complete."
PHASE_READY_MESSAGE = "Everything for this step is filled in. Send any message to continue."


@dataclass
class TransitionResult:
    """Result of evaluating the phase guard once."""
    phase: Phase
    record: ListingRecord
    entered: bool = False


@dataclass
class FallbackReply:
    """Rule-based reply lines plus the field the last line asks about."""
    lines: List[str] = field(default_factory=list)
    asked_field: Optional[str] = None


# =============================================================================
# INTENT CHECKS
# =============================================================================

def wants_to_edit(utterance: str) -> bool:
    return contains_any(utterance or "", EDIT_KEYWORDS)


def wants_to_save(utterance: str) -> bool:
    """Save intent only counts when the host is not also asking to edit."""
    text = utterance or ""
    return contains_any(text, SAVE_KEYWORDS) and not wants_to_edit(text)


# =============================================================================
# TRANSITIONS
# =============================================================================

def is_phase_complete(phase: Phase, record: ListingRecord, utterance: str = "") -> bool:
    """
    Completion guard for a phase.

    Every phase is complete once all of its fields are set (greeting has no
    fields, so first contact always completes it). The preview additionally
    needs an explicit save from the host.
    """
    if not get_phase_spec(phase).is_satisfied(record):
        return False
    if phase == Phase.PREVIEW:
        return wants_to_save(utterance)
    return True


def enter_phase(phase: Phase, record: ListingRecord) -> ListingRecord:
    """
    Apply the on-entry effects of a phase to a copy of the record.

    - Pricing: store the suggested range and per-sqft rate
    - Preview: generate title/description and fill display defaults
    """
    updated = record.model_copy(deep=True)

    if phase == Phase.PRICING:
        pricing = calculate_suggested_price(updated)
        updated.suggestedPriceRange = pricing.suggestedRange
        updated.pricePerSqft = pricing.pricePerSqft
        logger.info(
            f"Planner: pricing suggestion min={pricing.suggestedRange.min:.2f} "
            f"max={pricing.suggestedRange.max:.2f}"
        )

    elif phase == Phase.PREVIEW:
        if updated.monthlyRate and updated.squareFeet:
            updated.pricePerSqft = updated.monthlyRate / updated.squareFeet
        if updated.availableFrom is None:
            updated.availableFrom = "immediate"
        if updated.minimumTerm is None:
            updated.minimumTerm = "month-to-month"
        updated.title = generate_title(updated)
        updated.description = generate_description(updated)

    return updated


def next_phase(phase: Phase, record: ListingRecord, utterance: str = "") -> TransitionResult:
    """
    Evaluate the transition out of `phase` exactly once.

    Only the immediate next phase can be entered, even if the record already
    satisfies later phases too. Phases never move backwards here.

    Args:
        phase: The current phase
        record: The record after extraction
        utterance: The host's message (used for the preview's save intent)

    Returns:
        TransitionResult with the (possibly) new phase and record
    """
    following = get_following_phase(phase)
    if following is None or not is_phase_complete(phase, record, utterance):
        return TransitionResult(phase=phase, record=record, entered=False)

    logger.info(f"Planner: {phase.value} => {following.value}")
    return TransitionResult(phase=following, record=enter_phase(following, record), entered=True)


def rewind_for_reset(
    phase: Phase,
    record: ListingRecord,
    field_name: str,
) -> Tuple[Phase, ListingRecord]:
    """
    Clear one field so it can be asked again.

    The phase moves back to the phase that collects the field (never
    forward), and every value derived on entering a later phase is cleared
    so those entry effects run again.

    Raises:
        ValueError: If the field is not collected by any phase
    """
    owning_spec, _ = find_field(field_name)
    updated = record.model_copy(deep=True)
    setattr(updated, field_name, [] if field_name == "amenities" else None)

    new_phase = phase
    if phase_index(owning_spec.phase) < phase_index(phase):
        new_phase = owning_spec.phase

    if field_name in ("squareFeet", "monthlyRate"):
        updated.pricePerSqft = None
    if phase_index(new_phase) < phase_index(Phase.PRICING):
        updated.suggestedPriceRange = None
        updated.pricePerSqft = None
    if phase_index(new_phase) < phase_index(Phase.PREVIEW):
        updated.title = None
        updated.description = None

    logger.info(f"Planner: reset {field_name}, phase {phase.value} => {new_phase.value}")
    return new_phase, updated


# =============================================================================
# FALLBACK REPLIES
# =============================================================================

def round_half_up(value: float) -> int:
    return int(value + 0.5)


def format_field_value(field_name: str, value: Any) -> str:
    """Format a parsed value for echoing back to the host."""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, int):
        return f"{value:,}"
    if field_name == "location" and value in CITY_GAZETTEER:
        return value.upper() if len(value) <= 3 else value.title()
    return str(value)


def build_acknowledgement(field_spec: FieldSpec, value: Any) -> str:
    """Echo back the value just parsed, e.g. "Great! 3,000 sq ft."."""
    if field_spec.ack_zero is not None and (value == 0 or value == NO_RESTRICTIONS):
        return field_spec.ack_zero
    plural = "s" if isinstance(value, int) and value > 1 else ""
    return field_spec.ack.format(value=format_field_value(field_spec.name, value), s=plural)


def build_pricing_lines(record: ListingRecord) -> List[str]:
    pricing = calculate_suggested_price(record)
    low = round_half_up(pricing.suggestedRange.min)
    high = round_half_up(pricing.suggestedRange.max)
    lines = [
        f"Based on your location and amenities, I suggest a price range of "
        f"${low:,}-${high:,}/month (${pricing.pricePerSqft:.2f}/sqft).",
        "Here are some comparable listings in your area:",
    ]
    for comp in get_comparables(record):
        lines.append(
            f"• {comp.neighborhood}: {comp.squareFeet:,} sqft @ ${comp.monthlyRate:,}/mo "
            f"(${comp.pricePerSqft:.2f}/sqft)"
        )
    return lines


def build_preview_lines(record: ListingRecord) -> List[str]:
    lines: List[str] = []
    if is_above_market(record):
        lines.append(
            f"Heads up: ${record.pricePerSqft:.2f}/sqft is above market. "
            f"You can still edit the price before saving."
        )
    lines.extend(get_phase_spec(Phase.PREVIEW).intro_lines)
    lines.append(generate_formatted_listing(to_full_listing(record)))
    lines.append(PREVIEW_NUDGE)
    return lines


def _ask_next_field(phase: Phase, record: ListingRecord, reply: FallbackReply, retry: bool) -> None:
    next_field = get_phase_spec(phase).get_next_unset_field(record)
    if next_field is None:
        reply.lines.append(PHASE_READY_MESSAGE)
        return
    reply.lines.append(next_field.retry_prompt if retry else next_field.prompt)
    reply.asked_field = next_field.name


def build_fallback_reply(
    transition: TransitionResult,
    utterance: str = "",
    filled_field: Optional[str] = None,
    filled_value: Any = None,
) -> FallbackReply:
    """
    Build the rule-based reply for a processed utterance.

    Mirrors the extraction order: acknowledge what was just parsed, then
    either introduce the newly entered phase or ask for the next unset
    field. If nothing was parsed, the current question is asked again.

    Args:
        transition: The transition evaluated after extraction
        utterance: The host's message
        filled_field: Name of the field extraction filled this turn, if any
        filled_value: The value it was filled with

    Returns:
        FallbackReply with one or more lines
    """
    phase = transition.phase
    record = transition.record
    reply = FallbackReply()

    if filled_field is not None:
        _, field_spec = find_field(filled_field)
        reply.lines.append(build_acknowledgement(field_spec, filled_value))

    if transition.entered:
        if phase == Phase.PREVIEW:
            reply.lines.extend(build_preview_lines(record))
            return reply
        reply.lines.extend(get_phase_spec(phase).intro_lines)
        if phase == Phase.PRICING:
            reply.lines.extend(build_pricing_lines(record))
        if phase != Phase.COMPLETE:
            _ask_next_field(phase, record, reply, retry=False)
        return reply

    if phase == Phase.PREVIEW:
        reply.lines.append(EDIT_PROMPT if wants_to_edit(utterance) else PREVIEW_NUDGE)
        return reply

    if phase == Phase.COMPLETE:
        reply.lines.append(COMPLETE_MESSAGE)
        return reply

    _ask_next_field(phase, record, reply, retry=filled_field is None)
    return reply
