# Haven test scripts
from __future__ import annotations

from haven_platform.listings import Listing, listings_from_rows


def test_from_row_coerces_postgrest_values() -> None:
    item = Listing.from_row({
        "id": 42,
        "title": "Sunny loft",
        "price": "2450.00",
        "bedrooms": "2",
        "bathrooms": "1.5",
        "sqft": None,
        "images": ["a.jpg", None, "b.jpg"],
        "amenities": "parking",
        "latitude": "",
        "longitude": "-122.41",
        "average_rating": 0,
        "total_ratings": "7",
    })
    assert item.id == "42"
    assert item.price == 2450.0
    assert item.bedrooms == 2
    assert item.bathrooms == 1.5
    assert item.sqft == 0
    assert item.images == ("a.jpg", "b.jpg")
    assert item.amenities == ("parking",)
    assert item.latitude is None
    assert item.longitude == -122.41
    assert item.average_rating is None
    assert item.total_ratings == 7


def test_to_dict_is_json_friendly() -> None:
    d = Listing(id="l1", images=("x.jpg",)).to_dict()
    assert d["id"] == "l1"
    assert d["images"] == ["x.jpg"]
    assert d["latitude"] is None


def test_listings_from_rows_skips_rows_without_id() -> None:
    existing = Listing(id="keep")
    out = listings_from_rows([{"id": "a"}, {"title": "no id"}, existing, "junk", None])
    assert [l.id for l in out] == ["a", "keep"]
    assert out[1] is existing
    assert listings_from_rows(None) == ()  # type: ignore[arg-type]
