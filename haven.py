# haven.py
# Haven - liked-listings sync service: app factory, lifespan wiring and entry point.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import uvicorn
from fastapi import FastAPI, Request

import api
from _logging import configure as configure_logging, log as _root_log
from haven_platform.collection_loader import CollectionLoader
from haven_platform.config_base import (
    cache_path,
    likes_settings,
    load_config,
    loader_settings,
    teardown_grace,
)
from haven_platform.likes import KeyValueCache, LikedSetReconciler, RemoteStore, SessionBinder
from haven_platform.local_cache import JsonFileCache
from haven_platform.remote_store import build_store

_log = _root_log.child("HAVEN")


def create_app(
    cfg: Optional[Mapping[str, Any]] = None,
    *,
    store: Optional[RemoteStore] = None,
    cache: Optional[KeyValueCache] = None,
) -> FastAPI:
    """Build the app; store and cache default to the configured Supabase client and JSON file."""
    config = dict(cfg) if cfg is not None else load_config()
    configure_logging(config)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        remote = store if store is not None else build_store(config)
        local = cache if cache is not None else JsonFileCache(cache_path(config))
        lk = likes_settings(config)

        def _reconciler_for(user_id: str) -> LikedSetReconciler:
            return LikedSetReconciler(remote, local, user_id, settings=lk)

        app.state.session = SessionBinder(_reconciler_for, local, teardown_grace=teardown_grace(config))
        app.state.listings = CollectionLoader.for_store(remote, settings=loader_settings(config))

        startup: Optional[asyncio.Task] = None
        if bool((config.get("listings") or {}).get("load_on_startup", True)):
            startup = asyncio.ensure_future(app.state.listings.load())
        _log.info("ready")

        try:
            yield
        finally:
            if startup is not None and not startup.done():
                startup.cancel()
            app.state.listings.close()
            try:
                await app.state.session.close()
            except Exception as e:
                _log.error(f"session teardown failed: {e!r}")
            _log.info("stopped")

    app = FastAPI(title="Haven", lifespan=_lifespan)
    api.register(app)

    @app.middleware("http")
    async def _no_store(request: Request, call_next):
        resp = await call_next(request)
        if request.url.path.startswith("/api/"):
            resp.headers["Cache-Control"] = "no-store"
        return resp

    return app


# Entry point
def main() -> None:
    cfg = load_config()
    srv = cfg.get("server") or {}
    host = str(srv.get("host") or "0.0.0.0")
    port = int(srv.get("port") or 8787)
    debug = bool((cfg.get("runtime") or {}).get("debug"))

    print("\nHaven sync service running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}\n")

    uvicorn.run(
        create_app(cfg),
        host=host,
        port=port,
        log_level=("debug" if debug else "warning"),
        access_log=debug,
    )


if __name__ == "__main__":
    main()
