"""
Tests for the in-memory session store and listing publication.
"""
import re
import pytest

from app.listing_service import (
    ListingService,
    ListingValidationError,
    compute_missing_listing_fields,
    generate_listing_id,
    listing_url,
)
from app.session_store import InMemorySessionStore, SessionStoreError, generate_session_id
from interview.models import ConversationState, FullListing, ListingRecord, Message, Role
from interview.specs import Phase


class TestInMemorySessionStore:
    """Sessions round-trip through JSON."""

    def test_round_trip(self):
        store = InMemorySessionStore()
        state = ConversationState(
            sessionId="store-1",
            phase=Phase.CONFIG,
            record=ListingRecord(location="boston", squareFeet=2000, amenities=["Parking"]),
            messages=[
                Message(role=Role.USER, content="Boston"),
                Message(role=Role.ASSISTANT, content="Got it - boston."),
            ],
        )

        store.save("store-1", state)
        loaded = store.load("store-1")

        assert loaded == state
        assert loaded.messages[0].timestamp == state.messages[0].timestamp
        assert loaded.messages[0].timestamp.tzinfo is not None

    def test_saved_as_iso_timestamps(self):
        store = InMemorySessionStore()
        message = Message(role=Role.USER, content="hi")
        store.save("store-2", ConversationState(sessionId="store-2", messages=[message]))

        raw = store._sessions["store-2"]

        assert message.timestamp.strftime("%Y-%m-%dT%H:%M:%S") in raw

    def test_unknown_session(self):
        assert InMemorySessionStore().load("missing") is None

    def test_corrupt_session(self):
        store = InMemorySessionStore()
        store._sessions["broken"] = "{not json"
        with pytest.raises(SessionStoreError):
            store.load("broken")

    def test_listing_upsert_by_session(self):
        store = InMemorySessionStore()
        store.save_listing(FullListing(location="Boston", sessionId="s1", listingId="listing_1"))
        store.save_listing(FullListing(location="Chicago", sessionId="s1", listingId="listing_1"))

        listings = store.list_listings()

        assert len(listings) == 1
        assert listings[0].location == "Chicago"
        assert store.get_listing_for_session("s1").listingId == "listing_1"

    def test_listings_without_session_do_not_collide(self):
        store = InMemorySessionStore()
        store.save_listing(FullListing(location="Boston", listingId="listing_1"))
        store.save_listing(FullListing(location="Chicago", listingId="listing_2"))
        assert [l.listingId for l in store.list_listings()] == ["listing_1", "listing_2"]

    def test_session_id_format(self):
        assert re.match(r"^session_\d+_[0-9a-z]{9}$", generate_session_id())


def valid_listing(**overrides) -> FullListing:
    data = dict(location="Boston", neighborhood="Back Bay", squareFeet=2000, monthlyRate=5000, sessionId="pub-1")
    data.update(overrides)
    return FullListing(**data)


class TestListingService:
    """Validation and publication."""

    def test_missing_monthly_rate_is_rejected(self):
        store = InMemorySessionStore()
        service = ListingService(store)

        with pytest.raises(ListingValidationError) as exc_info:
            service.publish(valid_listing(monthlyRate=0))

        assert exc_info.value.missing_fields == ["monthlyRate"]
        assert "monthlyRate" in str(exc_info.value)
        assert store.list_listings() == []

    def test_missing_fields_are_all_reported(self):
        assert compute_missing_listing_fields(FullListing()) == ["location", "squareFeet", "monthlyRate"]

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            ListingService(InMemorySessionStore()).publish(FullListing(location="Boston"))

    def test_publish_assigns_id(self):
        service = ListingService(InMemorySessionStore())

        saved = service.publish(valid_listing())

        assert re.match(r"^listing_\d+_[0-9a-z]{9}$", saved.listingId)
        assert service.get(saved.listingId) == saved

    def test_republish_keeps_session_listing_id(self):
        service = ListingService(InMemorySessionStore())
        first = service.publish(valid_listing())

        second = service.publish(valid_listing(monthlyRate=5500))

        assert second.listingId == first.listingId
        assert len(service.list_all()) == 1
        assert service.get(first.listingId).monthlyRate == 5500

    def test_explicit_listing_id_kept(self):
        service = ListingService(InMemorySessionStore())
        saved = service.publish(valid_listing(listingId="listing_custom"))
        assert saved.listingId == "listing_custom"

    def test_unknown_listing(self):
        assert ListingService(InMemorySessionStore()).get("listing_nope") is None

    def test_listing_id_and_url(self):
        listing_id = generate_listing_id()
        assert listing_id.startswith("listing_")
        assert listing_url(listing_id) == f"/listing/{listing_id}"
