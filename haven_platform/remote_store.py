# haven_platform/remote_store.py
# Haven - Supabase (PostgREST) client for liked listings and the listings table.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import time
from collections.abc import Mapping
from typing import Any

import requests

from _logging import log as _root_log

__all__ = [
    "RemoteStoreError",
    "SupabaseStore",
    "build_store",
    "request_with_retries",
    "safe_json",
]

_log = _root_log.child("REMOTE")

LIKED_TABLE = "liked_listings"
LISTINGS_TABLE = "listings"


class RemoteStoreError(RuntimeError):
    pass


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return None
        return resp.json()
    except (ValueError, json.JSONDecodeError):
        return None


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    last: Any = None
    attempts = max(1, int(max_retries))
    for i in range(attempts):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            last = e
            if i < attempts - 1:
                time.sleep(backoff_base * (2**i))
            continue
        if resp.status_code in retry_on and i < attempts - 1:
            wait = backoff_base * (2**i)
            if resp.status_code == 429:
                try:
                    wait = max(wait, float(resp.headers.get("Retry-After") or 0))
                except ValueError:
                    pass
            time.sleep(wait)
            last = resp
            continue
        return resp
    if isinstance(last, requests.Response):
        return last
    raise RemoteStoreError(f"request failed after retries: {method} {url}: {last}")


class SupabaseStore:
    """Blocking client; the async core calls it through a worker thread."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        session: requests.Session | None = None,
    ) -> None:
        if not url:
            raise ValueError("remote url is required")
        self.base = url.rstrip("/") + "/rest/v1"
        self.timeout = float(timeout)
        self.max_retries = int(max_retries)
        self.backoff_base = float(backoff_base)
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": anon_key,
            "Authorization": f"Bearer {anon_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    def _req(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        return request_with_retries(
            self.session,
            method,
            f"{self.base}/{table}",
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_base=self.backoff_base,
            **kwargs,
        )

    def fetch_liked_ids(self, user_id: str) -> list[str]:
        try:
            r = self._req("GET", LIKED_TABLE, params={"select": "listing_id", "user_id": f"eq.{user_id}"})
        except RemoteStoreError as e:
            _log.error(f"fetch liked ids failed: {e}")
            return []
        if not r.ok:
            _log.error(f"fetch liked ids failed: HTTP {r.status_code}")
            return []
        rows = safe_json(r)
        if not isinstance(rows, list):
            return []
        return [str(row["listing_id"]) for row in rows if isinstance(row, Mapping) and row.get("listing_id")]

    def add_liked(self, user_id: str, listing_id: str) -> bool:
        try:
            r = self._req(
                "POST",
                LIKED_TABLE,
                json={"user_id": user_id, "listing_id": listing_id},
                headers={"Prefer": "return=minimal"},
            )
        except RemoteStoreError as e:
            _log.error(f"add liked {listing_id} failed: {e}")
            return False
        if not r.ok:
            _log.warn(f"add liked {listing_id}: HTTP {r.status_code}")
        return bool(r.ok)

    def remove_liked(self, user_id: str, listing_id: str) -> bool:
        try:
            r = self._req(
                "DELETE",
                LIKED_TABLE,
                params={"user_id": f"eq.{user_id}", "listing_id": f"eq.{listing_id}"},
            )
        except RemoteStoreError as e:
            _log.error(f"remove liked {listing_id} failed: {e}")
            return False
        if not r.ok:
            _log.warn(f"remove liked {listing_id}: HTTP {r.status_code}")
        return bool(r.ok)

    def fetch_all_listings(self) -> list[dict[str, Any]]:
        r = self._req("GET", LISTINGS_TABLE, params={"select": "*", "order": "created_at.desc"})
        if not r.ok:
            raise RemoteStoreError(f"fetch listings: HTTP {r.status_code}")
        rows = safe_json(r)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise RemoteStoreError("fetch listings: unexpected payload")
        return [dict(row) for row in rows if isinstance(row, Mapping)]


def build_store(cfg: Mapping[str, Any]) -> SupabaseStore:
    rc = dict(cfg.get("remote") or {})
    return SupabaseStore(
        str(rc.get("url") or ""),
        str(rc.get("anon_key") or ""),
        timeout=float(rc.get("timeout") or 10.0),
        max_retries=int(rc.get("max_retries") or 3),
    )
