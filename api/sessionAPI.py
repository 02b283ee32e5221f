# /api/sessionAPI.py
# Haven - session identity API (login / switch user / logout)
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Request
from pydantic import BaseModel

from haven_platform.likes import SessionBinder

router = APIRouter(prefix="/api/session", tags=["session"])


class SessionIn(BaseModel):
    user_id: Optional[str] = None


def _binder(request: Request) -> SessionBinder:
    return request.app.state.session


def _payload(binder: SessionBinder) -> dict[str, Any]:
    rec = binder.reconciler
    return {
        "user_id": binder.user_id,
        "loaded": bool(rec and rec.loaded),
        "count": rec.liked_count if rec else 0,
    }


@router.get("")
async def api_session(request: Request) -> dict[str, Any]:
    return _payload(_binder(request))


@router.put("")
async def api_session_bind(request: Request, payload: SessionIn = Body(...)) -> dict[str, Any]:
    binder = _binder(request)
    await binder.bind(payload.user_id)
    return _payload(binder)
