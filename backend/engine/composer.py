"""
Listing title, description and shareable text export.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from interview.models import FullListing, ListingRecord, Message

AnyListing = Union[ListingRecord, FullListing]


def pluralize(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def _first_feature(standout_features: Optional[str]) -> Optional[str]:
    if not standout_features:
        return None
    return standout_features.split(",")[0].strip()


def generate_title(listing: AnyListing) -> str:
    """
    Build the listing title.

    Uses the first comma-separated standout feature plus the neighborhood
    when both exist, e.g. "Exposed brick SOMA Office"; otherwise a generic
    "{spaceType} Space in {place}".
    """
    if not listing.neighborhood or not listing.standoutFeatures:
        space_type = listing.spaceType or "Office"
        place = listing.neighborhood or listing.location or "Downtown"
        return f"{space_type} Space in {place}"

    feature = _first_feature(listing.standoutFeatures)
    feature = feature[:1].upper() + feature[1:]
    return f"{feature} {listing.neighborhood} Office"


def generate_description(listing: AnyListing) -> str:
    parts: List[str] = []

    if listing.neighborhood and listing.location:
        parts.append(f"Located in {listing.neighborhood}, {listing.location}")
    elif listing.location:
        parts.append(f"Located in {listing.location}")

    feature = _first_feature(listing.standoutFeatures)
    if feature is not None:
        parts.append(f"with {feature}")

    config_parts: List[str] = []
    if listing.privateOffices:
        config_parts.append(pluralize(listing.privateOffices, "private office"))
    if listing.conferenceRooms:
        config_parts.append(pluralize(listing.conferenceRooms, "meeting room"))
    if listing.deskCapacity:
        config_parts.append(f"space for {pluralize(listing.deskCapacity, 'desk')}")
    if config_parts:
        parts.append(f"Includes {', '.join(config_parts)}")

    if listing.deskCapacity and listing.deskCapacity >= 10:
        parts.append("Perfect for growing teams looking for an inspiring workspace")
    else:
        parts.append("Perfect for small teams or startups")

    return ". ".join(parts) + "."


def to_full_listing(
    record: ListingRecord,
    session_id: str = "",
    history: Optional[List[Message]] = None,
    listing_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> FullListing:
    """
    Fill display defaults and freeze a record into a FullListing.

    createdAt defaults to now unless the snapshot time is passed in.
    """
    extra: Dict[str, Any] = {}
    if created_at is not None:
        extra["createdAt"] = created_at
    return FullListing(
        location=record.location or "",
        neighborhood=record.neighborhood or "",
        squareFeet=record.squareFeet or 0,
        spaceType=record.spaceType or "",
        deskCapacity=record.deskCapacity or 0,
        privateOffices=record.privateOffices,
        conferenceRooms=record.conferenceRooms,
        amenities=list(record.amenities),
        standoutFeatures=record.standoutFeatures,
        availableFrom=record.availableFrom or "immediate",
        minimumTerm=record.minimumTerm or "month-to-month",
        restrictions=record.restrictions,
        monthlyRate=record.monthlyRate or 0,
        pricePerSqft=record.pricePerSqft or 0.0,
        suggestedPriceRange=record.suggestedPriceRange,
        title=record.title or "",
        description=record.description or "",
        conversationHistory=list(history or []),
        sessionId=session_id,
        listingId=listing_id,
        **extra,
    )


def generate_formatted_listing(listing: FullListing) -> str:
    """
    Render the shareable plain-text listing.

    Layout (lines joined with newlines):
        title, blank, stats, blank, description, blank,
        one "✓ amenity" line each (+ blank if any),
        availability, minimum term, restrictions
    """
    lines: List[str] = []

    lines.append(listing.title)
    lines.append("")

    stats = [
        f"{listing.squareFeet:,} sq ft",
        pluralize(listing.deskCapacity, "desk"),
        f"${listing.monthlyRate:,}/mo",
    ]
    lines.append(" • ".join(stats))
    lines.append("")

    lines.append(listing.description)
    lines.append("")

    for amenity in listing.amenities:
        lines.append(f"✓ {amenity}")
    if listing.amenities:
        lines.append("")

    lines.append(f"Available {listing.availableFrom}")
    lines.append(f"{listing.minimumTerm} terms")
    lines.append(listing.restrictions if listing.restrictions else "No restrictions")

    return "\n".join(lines)
