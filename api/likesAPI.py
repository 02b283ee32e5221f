# /api/likesAPI.py
# Haven - liked listings API for the swipe front end
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Path as FPath, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from haven_platform.likes import LikedSetReconciler

router = APIRouter(prefix="/api/likes", tags=["likes"])


class LikesIn(BaseModel):
    ids: list[str] = []


def _reconciler(request: Request) -> LikedSetReconciler | None:
    binder = getattr(request.app.state, "session", None)
    return binder.reconciler if binder is not None else None


def _no_session() -> JSONResponse:
    return JSONResponse({"ok": False, "error": "no_session"}, status_code=409)


def _state(rec: LikedSetReconciler) -> dict[str, Any]:
    return {
        "user_id": rec.user_id,
        "ids": sorted(rec.liked_ids),
        "count": rec.liked_count,
        "loading": rec.loading,
        "pending": rec.pending,
    }


@router.get("")
async def api_likes(request: Request) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    return _state(rec)


@router.put("")
async def api_likes_replace(request: Request, payload: LikesIn = Body(...)) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    rec.replace_all(set(payload.ids))
    return _state(rec)


@router.delete("")
async def api_likes_clear(request: Request) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    report = await rec.clear_all()
    return {**_state(rec), "flush": report.as_dict()}


@router.post("/flush")
async def api_likes_flush(request: Request) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    report = await rec.flush_now()
    return report.as_dict()


@router.post("/reload")
async def api_likes_reload(request: Request) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    await rec.reload()
    return _state(rec)


@router.get("/{listing_id}")
async def api_like_status(request: Request, listing_id: str = FPath(...)) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    return {"id": listing_id, "liked": rec.is_liked(listing_id)}


@router.post("/{listing_id}/toggle")
async def api_like_toggle(request: Request, listing_id: str = FPath(...)) -> Any:
    rec = _reconciler(request)
    if rec is None:
        return _no_session()
    ok = await rec.toggle(listing_id)
    return {"id": listing_id, "ok": ok, "liked": rec.is_liked(listing_id)}
