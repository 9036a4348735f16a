"""
Tests for listing title, description and the shareable text export.
"""
from datetime import datetime, timezone

from engine.composer import (
    generate_description,
    generate_formatted_listing,
    generate_title,
    pluralize,
    to_full_listing,
)
from interview.models import FullListing, ListingRecord, Message, Role


class TestTitle:
    def test_feature_and_neighborhood(self):
        record = ListingRecord(neighborhood="SOMA", standoutFeatures="exposed brick, river views")
        assert generate_title(record) == "Exposed brick SOMA Office"

    def test_without_features(self):
        record = ListingRecord(location="Boston", neighborhood="Back Bay", spaceType="Entire floor")
        assert generate_title(record) == "Entire floor Space in Back Bay"

    def test_without_neighborhood(self):
        record = ListingRecord(location="Boston", standoutFeatures="city views")
        assert generate_title(record) == "Office Space in Boston"

    def test_empty_record(self):
        assert generate_title(ListingRecord()) == "Office Space in Downtown"


class TestDescription:
    def test_full_description(self):
        record = ListingRecord(
            location="San Francisco",
            neighborhood="SOMA",
            standoutFeatures="exposed brick, river views",
            privateOffices=2,
            conferenceRooms=1,
            deskCapacity=12,
        )
        assert generate_description(record) == (
            "Located in SOMA, San Francisco. with exposed brick. "
            "Includes 2 private offices, 1 meeting room, space for 12 desks. "
            "Perfect for growing teams looking for an inspiring workspace."
        )

    def test_small_team_description(self):
        """Zero counts are left out of the configuration clause."""
        record = ListingRecord(location="Boston", privateOffices=0, conferenceRooms=0, deskCapacity=4)
        assert generate_description(record) == (
            "Located in Boston. Includes space for 4 desks. Perfect for small teams or startups."
        )

    def test_pluralize(self):
        assert pluralize(1, "desk") == "1 desk"
        assert pluralize(0, "desk") == "0 desk"
        assert pluralize(3, "desk") == "3 desks"


class TestFormattedListing:
    """The export document is reproduced byte-for-byte."""

    def test_with_amenities_and_no_restrictions(self):
        listing = FullListing(
            title="Exposed brick SOMA Office",
            squareFeet=3000,
            deskCapacity=12,
            monthlyRate=9000,
            description="Located in SOMA, San Francisco.",
            amenities=["High-speed internet", "Parking"],
            availableFrom="immediate",
            minimumTerm="6 months",
            restrictions="",
        )
        assert generate_formatted_listing(listing) == (
            "Exposed brick SOMA Office\n"
            "\n"
            "3,000 sq ft • 12 desks • $9,000/mo\n"
            "\n"
            "Located in SOMA, San Francisco.\n"
            "\n"
            "✓ High-speed internet\n"
            "✓ Parking\n"
            "\n"
            "Available immediate\n"
            "6 months terms\n"
            "No restrictions"
        )

    def test_without_amenities_with_restrictions(self):
        listing = FullListing(
            title="Office Space in Boston",
            squareFeet=12500,
            deskCapacity=1,
            monthlyRate=25000,
            description="Located in Boston.",
            availableFrom="January 1st",
            minimumTerm="month-to-month",
            restrictions="No loud music",
        )
        assert generate_formatted_listing(listing) == (
            "Office Space in Boston\n"
            "\n"
            "12,500 sq ft • 1 desk • $25,000/mo\n"
            "\n"
            "Located in Boston.\n"
            "\n"
            "Available January 1st\n"
            "month-to-month terms\n"
            "No loud music"
        )


class TestToFullListing:
    def test_defaults_and_history(self):
        history = [Message(role=Role.USER, content="hi")]
        record = ListingRecord(location="Boston", squareFeet=2000, monthlyRate=5000)
        listing = to_full_listing(record, session_id="session_1", history=history)
        assert listing.availableFrom == "immediate"
        assert listing.minimumTerm == "month-to-month"
        assert listing.neighborhood == ""
        assert listing.sessionId == "session_1"
        assert listing.conversationHistory == history
        assert listing.listingId is None

    def test_listing_id_and_created_at_passed_through(self):
        created = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = ListingRecord(location="Boston", squareFeet=2000, monthlyRate=5000)

        first = to_full_listing(record, listing_id="listing_1", created_at=created)
        second = to_full_listing(record, listing_id="listing_1", created_at=created)

        assert first.listingId == "listing_1"
        assert first.createdAt == created
        assert first == second


class TestExportPurity:
    """The export text depends on nothing but the listing."""

    def test_rendering_twice_is_identical(self):
        record = ListingRecord(
            location="San Francisco",
            neighborhood="SOMA",
            squareFeet=3000,
            deskCapacity=12,
            amenities=["Parking", "24/7 access"],
            standoutFeatures="exposed brick",
            monthlyRate=9000,
            restrictions="No pets",
        )
        record.title = generate_title(record)
        record.description = generate_description(record)
        listing = to_full_listing(record)
        before = listing.model_copy(deep=True)

        first = generate_formatted_listing(listing)
        second = generate_formatted_listing(listing)

        assert first == second
        assert listing == before

    def test_same_record_gives_same_text(self):
        """Two snapshots of one record render the same, whatever their createdAt."""
        record = ListingRecord(location="Boston", squareFeet=2000, deskCapacity=3, monthlyRate=5000)
        first = generate_formatted_listing(to_full_listing(record))
        second = generate_formatted_listing(to_full_listing(record))
        assert first == second
