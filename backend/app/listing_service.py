"""
Listing Service - validates and publishes finished listings.

Publishing:
1. Deterministically checks the required fields (location, squareFeet, monthlyRate)
2. Assigns a listingId if the listing has none (reusing the session's id on re-save)
3. Upserts the listing into the session store keyed by sessionId
"""

import logging
import time
from typing import List, Optional

from interview.models import FullListing

from .session_store import SessionStore, random_suffix

logger = logging.getLogger(__name__)

REQUIRED_LISTING_FIELDS = ["location", "squareFeet", "monthlyRate"]


class ListingValidationError(ValueError):
    """Raised when a listing is missing required fields."""

    def __init__(self, missing_fields: List[str]):
        self.missing_fields = missing_fields
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")


def compute_missing_listing_fields(listing: FullListing) -> List[str]:
    """
    Deterministically compute which required fields are missing.
    Zero and empty string count as missing.
    """
    return [name for name in REQUIRED_LISTING_FIELDS if not getattr(listing, name, None)]


def generate_listing_id() -> str:
    """Time-based prefix plus random suffix, e.g. listing_1760850000000_x8f2k1m0q."""
    return f"listing_{int(time.time() * 1000)}_{random_suffix()}"


def listing_url(listing_id: str) -> str:
    return f"/listing/{listing_id}"


class ListingService:
    """Publishes listings into a SessionStore."""

    def __init__(self, store: SessionStore):
        self.store = store

    def publish(self, listing: FullListing) -> FullListing:
        """
        Validate and save a listing.

        Returns:
            The saved listing (with listingId set)

        Raises:
            ListingValidationError: If required fields are missing
            SessionStoreError: If the store cannot be written
        """
        missing = compute_missing_listing_fields(listing)
        if missing:
            logger.warning(
                f"METRIC listing_validation_failed sessionId={listing.sessionId or 'none'} "
                f"missing={missing}"
            )
            raise ListingValidationError(missing)

        listing_id = listing.listingId
        if not listing_id and listing.sessionId:
            existing = self.store.get_listing_for_session(listing.sessionId)
            if existing is not None:
                listing_id = existing.listingId
        if not listing_id:
            listing_id = generate_listing_id()

        saved = listing.model_copy(update={"listingId": listing_id})
        self.store.save_listing(saved)
        logger.info(f"Listing published: id={listing_id} sessionId={listing.sessionId or 'none'}")
        return saved

    def get(self, listing_id: str) -> Optional[FullListing]:
        return self.store.get_listing(listing_id)

    def list_all(self) -> List[FullListing]:
        return self.store.list_listings()
