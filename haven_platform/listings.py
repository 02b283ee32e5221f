# haven_platform/listings.py
# Haven - immutable listing record and remote row conversion.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Iterable, Mapping
from typing import Any, Optional


def _num(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _int(v: Any, default: int = 0) -> int:
    n = _num(v)
    return int(n) if n is not None else default


def _strs(v: Any) -> tuple[str, ...]:
    if isinstance(v, str):
        return (v,) if v else ()
    if isinstance(v, Iterable):
        return tuple(str(x) for x in v if x is not None)
    return ()


@dataclass(frozen=True)
class Listing:
    id: str
    title: str = ""
    address: str = ""
    price: float = 0.0
    bedrooms: int = 0
    bathrooms: float = 0.0
    sqft: int = 0
    images: tuple[str, ...] = ()
    amenities: tuple[str, ...] = ()
    description: str = ""
    available_from: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    average_rating: Optional[float] = None
    total_ratings: Optional[int] = None
    manager_id: str = ""
    created_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Listing":
        # PostgREST returns numerics as strings ("2450.00"); blank coordinates mean unknown.
        return cls(
            id=str(row.get("id") or ""),
            title=str(row.get("title") or ""),
            address=str(row.get("address") or ""),
            price=_num(row.get("price")) or 0.0,
            bedrooms=_int(row.get("bedrooms")),
            bathrooms=_num(row.get("bathrooms")) or 0.0,
            sqft=_int(row.get("sqft")),
            images=_strs(row.get("images")),
            amenities=_strs(row.get("amenities")),
            description=str(row.get("description") or ""),
            available_from=str(row.get("available_from") or ""),
            latitude=_num(row.get("latitude")),
            longitude=_num(row.get("longitude")),
            average_rating=_num(row.get("average_rating")) or None,
            total_ratings=_int(row.get("total_ratings")) or None,
            manager_id=str(row.get("manager_id") or ""),
            created_at=str(row.get("created_at") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "address": self.address,
            "price": self.price,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "sqft": self.sqft,
            "images": list(self.images),
            "amenities": list(self.amenities),
            "description": self.description,
            "available_from": self.available_from,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "average_rating": self.average_rating,
            "total_ratings": self.total_ratings,
            "manager_id": self.manager_id,
            "created_at": self.created_at,
        }


def listings_from_rows(rows: Iterable[Any]) -> tuple[Listing, ...]:
    """Convert remote rows, passing Listing instances through and dropping rows without an id."""
    out: list[Listing] = []
    for row in rows or ():
        if isinstance(row, Listing):
            item = row
        elif isinstance(row, Mapping):
            item = Listing.from_row(row)
        else:
            continue
        if item.id:
            out.append(item)
    return tuple(out)
