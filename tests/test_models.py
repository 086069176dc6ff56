from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import BASE_TIME, message_doc, place_doc

from pawmap._api.messages import decode_message, decode_messages
from pawmap._api.places import decode_place
from pawmap.exceptions import InvalidPlaceDraftError, MalformedRecordError
from pawmap.models._base import parse_store_timestamp, safe_float
from pawmap.models.place import CategoryFilter, PlaceCategory, PlaceDraft, PlaceSource, ViewportBounds
from pawmap.store import StoredDocument


def test_decode_message_maps_wire_fields() -> None:
    message = decode_message("chat_messages", message_doc("m1", "Woof", 5, user="u9", name="Rex"))

    assert message.id == "m1"
    assert message.text == "Woof"
    assert message.author_id == "u9"
    assert message.author_name == "Rex"
    assert message.created_at == datetime(2026, 1, 1, 12, 5, tzinfo=UTC)


def test_decode_message_pending_timestamp_is_none() -> None:
    doc = StoredDocument(
        id="m1",
        fields={"text": "hi", "userId": "u1", "username": "Ada", "createdAt": {"$serverTimestamp": True}},
    )

    assert decode_message("chat_messages", doc).created_at is None


@pytest.mark.parametrize(
    "fields",
    [
        {"userId": "u1", "username": "Ada"},
        {"text": "  ", "userId": "u1", "username": "Ada"},
        {"text": "hi", "username": "Ada"},
        {"text": "hi", "userId": "u1", "username": "Ada", "createdAt": "yesterday"},
    ],
)
def test_decode_message_malformed(fields: dict[str, object]) -> None:
    with pytest.raises(MalformedRecordError) as excinfo:
        decode_message("chat_messages", StoredDocument(id="bad", fields=fields))

    assert excinfo.value.collection == "chat_messages"
    assert excinfo.value.document_id == "bad"


def test_decode_messages_logs_and_drops(caplog: pytest.LogCaptureFixture) -> None:
    docs = [message_doc("m1", "a", 1), StoredDocument(id="bad", fields={})]

    with caplog.at_level("WARNING", logger="pawmap._api.messages"):
        messages = decode_messages("chat_messages", docs)

    assert [m.id for m in messages] == ["m1"]
    assert "bad" in caplog.text


def test_decode_place_maps_wire_fields() -> None:
    place = decode_place(
        "places",
        place_doc(
            "p1",
            "Marymoor",
            "47.66",
            -122.11,
            type_="Park",
            parking="Lot B",
            photoUrl="https://cdn.example.com/p1.jpg",
            authorId="u1",
            upvotes=3,
        ),
    )

    assert place.category is PlaceCategory.PARK
    assert place.lat == pytest.approx(47.66)
    assert place.parking_info == "Lot B"
    assert place.photo_url == "https://cdn.example.com/p1.jpg"
    assert place.author_id == "u1"
    assert place.upvotes == 3
    assert place.created_at == BASE_TIME
    assert place.source is PlaceSource.USER_SUBMITTED


def test_decode_place_unknown_category_is_other() -> None:
    place = decode_place("places", place_doc("p1", "Beach", 47.6, -122.3, type_="beach"))

    assert place.category is PlaceCategory.OTHER


def test_decode_place_ignores_stored_source() -> None:
    place = decode_place("places", place_doc("p1", "Spot", 47.6, -122.3, source="external-search"))

    assert place.source is PlaceSource.USER_SUBMITTED


@pytest.mark.parametrize("lat", [None, "", "north", float("nan")])
def test_decode_place_bad_coordinate(lat: object) -> None:
    doc = StoredDocument(id="p1", fields={"name": "Spot", "type": "park", "lat": lat, "lng": -122.3})

    with pytest.raises(MalformedRecordError):
        decode_place("places", doc)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        ({"$serverTimestamp": True}, None),
        ("2026-01-01T12:00:00Z", BASE_TIME),
        (1767268800, BASE_TIME),
        (1767268800000, BASE_TIME),
        ({"seconds": 1767268800, "nanos": 0}, BASE_TIME),
    ],
)
def test_parse_store_timestamp(value: object, expected: datetime | None) -> None:
    assert parse_store_timestamp(value) == expected


def test_parse_store_timestamp_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_store_timestamp("not a time")


@pytest.mark.parametrize(
    ("value", "expected"),
    [(" 1.5 ", 1.5), (2, 2.0), (True, None), ("", None), ("inf", None), ("abc", None)],
)
def test_safe_float(value: object, expected: float | None) -> None:
    assert safe_float(value) == expected


def test_category_filter() -> None:
    assert CategoryFilter.ALL.matches(PlaceCategory.TRAIL)
    assert CategoryFilter.CAFE.matches(PlaceCategory.CAFE)
    assert not CategoryFilter.CAFE.matches(PlaceCategory.PARK)
    assert CategoryFilter.ALL.search_category() is PlaceCategory.PARK
    assert CategoryFilter.ALL.search_category(PlaceCategory.TRAIL) is PlaceCategory.TRAIL
    assert CategoryFilter.TRAIL.search_category() is PlaceCategory.TRAIL


def test_viewport_bounds_are_inclusive() -> None:
    viewport = ViewportBounds(center_lat=10.0, center_lng=20.0, lat_span=2.0, lng_span=4.0)

    assert (viewport.min_lat, viewport.max_lat) == (9.0, 11.0)
    assert (viewport.min_lng, viewport.max_lng) == (18.0, 22.0)
    assert viewport.contains(9.0, 22.0)
    assert not viewport.contains(11.01, 20.0)


def test_viewport_rejects_negative_span() -> None:
    with pytest.raises(ValueError):
        ViewportBounds(center_lat=0, center_lng=0, lat_span=-1, lng_span=1)


def test_place_draft_to_fields() -> None:
    draft = PlaceDraft(
        name="  Cafe Bark ",
        lat="47.61",
        lng=" -122.34 ",
        category=PlaceCategory.CAFE,
        notes=" water bowls ",
    )

    assert draft.to_fields() == {
        "name": "Cafe Bark",
        "type": "cafe",
        "address": None,
        "notes": "water bowls",
        "parking": None,
        "lat": 47.61,
        "lng": -122.34,
    }


@pytest.mark.parametrize(
    ("draft", "field"),
    [
        (PlaceDraft(name=" ", lat="1", lng="2"), "name"),
        (PlaceDraft(name="x", lat=None, lng="2"), "lat"),
        (PlaceDraft(name="x", lat="1", lng="east"), "lng"),
    ],
)
def test_place_draft_invalid(draft: PlaceDraft, field: str) -> None:
    with pytest.raises(InvalidPlaceDraftError) as excinfo:
        draft.to_fields()

    assert excinfo.value.field == field
