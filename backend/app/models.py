"""
Pydantic models for the listing interview API.

Domain models (records, messages, listings) live in interview.models; this
module only holds request/response envelopes.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from interview.models import (
    ComparableListing,
    FullListing,
    ListingRecord,
    Message,
    PriceSuggestion,
)
from interview.specs import Phase


class ConversationRequest(BaseModel):
    sessionId: Optional[str] = None  # New session when omitted
    userMessage: str = ""
    useAI: bool = True
    debug: bool = False


class DebugPayload(BaseModel):
    """Debug information returned when debug=true."""
    filled_field: Optional[str] = None
    reply_failure: Optional[str] = None
    phase_changed: bool


class ConversationResponse(BaseModel):
    sessionId: str
    replies: List[str]
    phase: Phase
    record: ListingRecord
    aiCallMade: bool
    aiModel: str
    saved: bool
    listingId: Optional[str] = None  # Set when this turn completed and published the listing
    debugPayload: Optional[DebugPayload] = None  # Only present when debug=true


class ConversationStateResponse(BaseModel):
    sessionId: str
    phase: Phase
    record: ListingRecord
    messages: List[Message]


class AmenitiesRequest(BaseModel):
    amenities: List[str] = Field(default_factory=list)


class StandoutFeaturesRequest(BaseModel):
    standoutFeatures: str


class ResetFieldRequest(BaseModel):
    field: str


class PricingResponse(BaseModel):
    tier: str
    suggestion: PriceSuggestion
    comparables: List[ComparableListing]


class ListingPreviewResponse(BaseModel):
    listing: FullListing
    formattedText: str


class PublishListingResponse(BaseModel):
    success: bool
    listingId: str
    url: str
