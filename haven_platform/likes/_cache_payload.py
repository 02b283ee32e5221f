# haven_platform/likes/_cache_payload.py
# versioned cache payload for the liked-listings key.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from ._types import KeyValueCache

LIKED_CACHE_KEY = "liked_listings"
PAYLOAD_VERSION = 1


class LikedPayload(BaseModel):
    version: int = PAYLOAD_VERSION
    user_id: Optional[str] = None
    ids: list[str] = Field(default_factory=list)


def encode_liked(ids: Iterable[str], user_id: str | None = None) -> str:
    return LikedPayload(user_id=user_id, ids=sorted(set(ids))).model_dump_json()


def decode_liked(raw: str | None) -> LikedPayload | None:
    """Parse a cached value; anything unreadable counts as absent."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    # pre-versioned form: a bare JSON array of ids
    if isinstance(data, list):
        return LikedPayload(ids=[x for x in data if isinstance(x, str)])
    if not isinstance(data, dict):
        return None
    try:
        payload = LikedPayload.model_validate(data)
    except ValidationError:
        return None
    if payload.version > PAYLOAD_VERSION:
        return None
    return payload


def read_liked(cache: KeyValueCache, user_id: str | None = None) -> set[str]:
    """What a personalization consumer sees; a payload for another user reads as empty."""
    try:
        payload = decode_liked(cache.get(LIKED_CACHE_KEY))
    except Exception:
        return set()
    if payload is None:
        return set()
    if user_id is not None and payload.user_id not in (None, user_id):
        return set()
    return set(payload.ids)
