"""
Pydantic models for the listing record and conversation state.

Field names are camelCase so the records serialize straight into the
wire/JSON format used by the API and the session store.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .specs import Phase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One dialogue turn. Frozen once appended."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class PriceRange(BaseModel):
    min: float
    max: float


class PriceSuggestion(BaseModel):
    """Result of the pricing engine."""
    basePrice: float = 0.0
    suggestedRange: PriceRange = Field(default_factory=lambda: PriceRange(min=0.0, max=0.0))
    pricePerSqft: float = 0.0


class ListingRecord(BaseModel):
    """
    The listing being built, filled progressively by the interview.

    Every field is optional and `None` means "not answered yet". Zero is a
    valid answer for privateOffices / conferenceRooms, and the empty string
    (NO_RESTRICTIONS) is the explicit "no restrictions" answer.
    """
    # Basic info
    location: Optional[str] = None
    neighborhood: Optional[str] = None
    squareFeet: Optional[int] = None
    spaceType: Optional[str] = None
    deskCapacity: Optional[int] = None

    # Configuration
    privateOffices: Optional[int] = None
    conferenceRooms: Optional[int] = None
    amenities: List[str] = Field(default_factory=list)
    standoutFeatures: Optional[str] = None

    # Terms
    availableFrom: Optional[str] = None
    minimumTerm: Optional[str] = None
    restrictions: Optional[str] = None

    # Pricing
    monthlyRate: Optional[int] = None
    pricePerSqft: Optional[float] = None
    suggestedPriceRange: Optional[PriceRange] = None

    # Generated content
    title: Optional[str] = None
    description: Optional[str] = None


class FullListing(BaseModel):
    """
    Immutable snapshot of a finished listing.

    Produced by the conversation engine once the preview is reached, and
    accepted by the listing service for publication.
    """
    model_config = ConfigDict(frozen=True)

    location: str = ""
    neighborhood: str = ""
    squareFeet: int = 0
    spaceType: str = ""
    deskCapacity: int = 0

    privateOffices: Optional[int] = None
    conferenceRooms: Optional[int] = None
    amenities: List[str] = Field(default_factory=list)
    standoutFeatures: Optional[str] = None

    availableFrom: str = "immediate"
    minimumTerm: str = "month-to-month"
    restrictions: Optional[str] = None

    monthlyRate: int = 0
    pricePerSqft: float = 0.0
    suggestedPriceRange: Optional[PriceRange] = None

    title: str = ""
    description: str = ""

    conversationHistory: List[Message] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=utc_now)
    sessionId: str = ""
    listingId: Optional[str] = None


class ConversationState(BaseModel):
    """Everything one conversation owns; this is what the session store persists."""
    sessionId: str
    phase: Phase = Phase.GREETING
    record: ListingRecord = Field(default_factory=ListingRecord)
    messages: List[Message] = Field(default_factory=list)
    createdAt: Optional[datetime] = None  # First listing snapshot
    listingId: Optional[str] = None  # Set once the listing is published


class ComparableListing(BaseModel):
    """Read-only reference listing used to contextualize a price."""
    model_config = ConfigDict(frozen=True)

    id: str
    location: str
    neighborhood: str
    squareFeet: int
    monthlyRate: int
    pricePerSqft: float
    amenities: List[str] = Field(default_factory=list)
    standoutFeatures: Optional[str] = None
