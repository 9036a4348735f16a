"""
Tests for deterministic listing field extraction.

These tests verify:
1. Only the first unset field of the current phase is filled
2. Numeric bounds reject out-of-range answers (field stays unset)
3. Keyword tables map free text to canonical values
4. The input record is never mutated
"""
import pytest

from engine.extract import (
    classify_space_type,
    extract_amenities,
    extract_city,
    extract_fields,
    extract_standout_features,
    parse_price,
)
from interview.models import ListingRecord
from interview.specs import NO_RESTRICTIONS, Phase


def basics_record(**overrides) -> ListingRecord:
    data = dict(
        location="san francisco",
        neighborhood="SOMA",
        squareFeet=3000,
        spaceType="Entire floor",
        deskCapacity=12,
    )
    data.update(overrides)
    return ListingRecord(**data)


def config_record(**overrides) -> ListingRecord:
    data = dict(
        privateOffices=2,
        conferenceRooms=1,
        amenities=["High-speed internet"],
        standoutFeatures="exposed brick",
    )
    data.update(overrides)
    return basics_record(**data)


class TestBasicsExtraction:
    """Phase 1 fields are filled one at a time, in order."""

    def test_gazetteer_city(self):
        result = extract_fields(ListingRecord(), Phase.BASICS, "We're in San Francisco")
        assert result.filled_field == "location"
        assert result.record.location == "san francisco"

    def test_unknown_city_is_kept_verbatim(self):
        result = extract_fields(ListingRecord(), Phase.BASICS, "  Denver  ")
        assert result.record.location == "Denver"

    def test_digits_only_location_is_rejected(self):
        result = extract_fields(ListingRecord(), Phase.BASICS, "12345")
        assert not result.filled
        assert result.record.location is None

    def test_too_short_location_is_rejected(self):
        result = extract_fields(ListingRecord(), Phase.BASICS, "ab")
        assert result.record.location is None

    def test_only_first_unset_field_is_filled(self):
        """A message with a number still fills location first."""
        result = extract_fields(ListingRecord(), Phase.BASICS, "Boston, 3000 sqft")
        assert result.filled_fields == ["location"]
        assert result.record.location == "boston"
        assert result.record.squareFeet is None

    def test_square_feet_accepted(self):
        record = basics_record(squareFeet=None, spaceType=None, deskCapacity=None)
        result = extract_fields(record, Phase.BASICS, "about 3000 sqft")
        assert result.record.squareFeet == 3000

    def test_small_square_feet_rejected(self):
        """'50 sqft' is not a real office; the field stays unset."""
        record = basics_record(squareFeet=None, spaceType=None, deskCapacity=None)
        result = extract_fields(record, Phase.BASICS, "50 sqft")
        assert not result.filled
        assert result.record.squareFeet is None

    def test_square_feet_lower_bound(self):
        record = basics_record(squareFeet=None, spaceType=None, deskCapacity=None)
        assert extract_fields(record, Phase.BASICS, "100").record.squareFeet is None
        assert extract_fields(record, Phase.BASICS, "101").record.squareFeet == 101

    def test_desk_capacity_bounds(self):
        record = basics_record(deskCapacity=None)
        assert extract_fields(record, Phase.BASICS, "0 desks").record.deskCapacity is None
        assert extract_fields(record, Phase.BASICS, "1000 desks").record.deskCapacity is None
        assert extract_fields(record, Phase.BASICS, "999 desks").record.deskCapacity == 999

    def test_input_record_not_mutated(self):
        record = ListingRecord()
        extract_fields(record, Phase.BASICS, "Chicago")
        assert record.location is None


class TestSpaceTypeClassification:
    """Space type keywords map to canonical labels."""

    @pytest.mark.parametrize("text,expected", [
        ("the whole floor", "Entire floor"),
        ("Entire 4th floor", "Entire floor"),
        ("part of a floor", "Partial floor"),
        ("a few private rooms", "Private offices"),
        ("coworking corner", "coworking corner"),
    ])
    def test_classify(self, text, expected):
        assert classify_space_type(text) == expected


class TestConfigExtraction:
    """Phase 2 counts, amenities and standout features."""

    def test_skip_sets_private_offices_to_zero(self):
        result = extract_fields(basics_record(), Phase.CONFIG, "skip")
        assert result.filled_field == "privateOffices"
        assert result.record.privateOffices == 0
        assert result.record.conferenceRooms is None

    def test_none_counts_as_skip(self):
        result = extract_fields(basics_record(privateOffices=2), Phase.CONFIG, "none")
        assert result.record.conferenceRooms == 0

    def test_count_out_of_range_without_skip_is_rejected(self):
        result = extract_fields(basics_record(), Phase.CONFIG, "150 offices")
        assert result.record.privateOffices is None

    def test_amenities_from_keywords(self):
        record = basics_record(privateOffices=2, conferenceRooms=1)
        result = extract_fields(record, Phase.CONFIG, "We have wifi, a kitchen and parking")
        assert result.record.amenities == ["High-speed internet", "Kitchen/break room", "Parking"]

    def test_amenities_without_keywords_stay_unset(self):
        record = basics_record(privateOffices=2, conferenceRooms=1)
        result = extract_fields(record, Phase.CONFIG, "nothing special")
        assert not result.filled
        assert result.record.amenities == []

    def test_extract_amenities_keeps_existing_without_duplicates(self):
        amenities = extract_amenities("internet and parking", ["Parking"])
        assert amenities == ["Parking", "High-speed internet"]

    def test_standout_features(self):
        assert extract_standout_features("city views") == "city views"
        assert extract_standout_features("brick") is None
        assert extract_standout_features("nice space") is None
        assert extract_standout_features("great vibes") == "great vibes"


class TestTermsExtraction:
    """Phase 3 terms are verbatim; restrictions understand 'none'."""

    def test_available_from_verbatim(self):
        result = extract_fields(config_record(), Phase.TERMS, "January 1st")
        assert result.record.availableFrom == "January 1st"

    @pytest.mark.parametrize("text", ["none", "No restrictions at all"])
    def test_no_restrictions(self, text):
        record = config_record(availableFrom="immediate", minimumTerm="6 months")
        result = extract_fields(record, Phase.TERMS, text)
        assert result.filled_field == "restrictions"
        assert result.record.restrictions == NO_RESTRICTIONS

    def test_restrictions_verbatim(self):
        record = config_record(availableFrom="immediate", minimumTerm="6 months")
        result = extract_fields(record, Phase.TERMS, "No loud music after 8pm")
        assert result.record.restrictions == "No loud music after 8pm"


class TestPriceExtraction:
    """Phase 4 monthly rate parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("9000", 9000),
        ("$9,000", 9000),
        ("about $12,500/mo", 12500),
        ("free", None),
        ("$0", None),
    ])
    def test_parse_price(self, text, expected):
        assert parse_price(text) == expected

    def test_monthly_rate_sets_price_per_sqft(self):
        result = extract_fields(config_record(), Phase.PRICING, "$9,000")
        assert result.record.monthlyRate == 9000
        assert result.record.pricePerSqft == pytest.approx(3.0)


class TestNoExtractionPhases:
    """Phases without fields never extract."""

    @pytest.mark.parametrize("phase", [Phase.GREETING, Phase.PREVIEW, Phase.COMPLETE])
    def test_nothing_extracted(self, phase):
        result = extract_fields(ListingRecord(), phase, "San Francisco 3000")
        assert not result.filled
        assert result.record == ListingRecord()

    def test_blank_utterance(self):
        result = extract_fields(ListingRecord(), Phase.BASICS, "   ")
        assert not result.filled

    def test_extract_city_first_gazetteer_hit(self):
        assert extract_city("NYC office") == "nyc"
        assert extract_city("Denver") is None
