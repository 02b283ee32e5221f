# /api/listingsAPI.py
# Haven - listings collection API
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request

from haven_platform.collection_loader import CollectionLoader

router = APIRouter(prefix="/api/listings", tags=["listings"])


def _loader(request: Request) -> CollectionLoader:
    return request.app.state.listings


def _payload(loader: CollectionLoader, *, items: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "state": loader.state.value,
        "count": len(loader.listings),
        "attempts": loader.attempts,
        "error": loader.last_error,
    }
    if items:
        out["items"] = [it.to_dict() for it in loader.listings]
    return out


@router.get("")
async def api_listings(request: Request, items: bool = Query(True)) -> dict[str, Any]:
    return _payload(_loader(request), items=items)


@router.post("/refresh")
async def api_listings_refresh(request: Request) -> dict[str, Any]:
    loader = _loader(request)
    await loader.refresh()
    return _payload(loader, items=False)
