from __future__ import annotations

from fastapi import FastAPI

from .likesAPI import router as likes_router
from .listingsAPI import router as listings_router
from .sessionAPI import router as session_router

__all__ = [
    "likes_router",
    "listings_router",
    "session_router",
    "register",
]


def register(app: FastAPI) -> None:
    for router in (session_router, likes_router, listings_router):
        app.include_router(router)
