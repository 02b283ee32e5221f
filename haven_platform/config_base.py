# haven_platform/config_base.py
# Haven - config file resolution, defaults and typed accessors.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import copy
import json
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config and cache files.

    Priority:
      1) $HAVEN_CONFIG_BASE if set
      2) /config (when running in a container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("HAVEN_CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Remote store (Supabase / PostgREST) --------------------------------
    "remote": {
        "url": "",                                      # https://<project>.supabase.co (or $HAVEN_SUPABASE_URL)
        "anon_key": "",                                 # Public anon key (or $HAVEN_SUPABASE_KEY)
        "timeout": 10.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Attempts per request on 429/5xx and transport errors
    },

    # --- Durable local cache ------------------------------------------------
    "cache": {
        "path": "",                                     # Empty = <config base>/local_cache.json
    },

    # --- Liked listings -----------------------------------------------------
    "likes": {
        "debounce_ms": 500,                             # Quiet period before queued likes are flushed
        "flush_before_load": True,                      # Push queued changes before reloading from remote
        "guard_empty_replace": False,                   # Ignore a bulk replace that would wipe a non-empty set
        "load_timeout_sec": 12,                         # Give up on the liked-ids fetch after this long
    },

    # --- Listings collection ------------------------------------------------
    "listings": {
        "max_retries": 2,                               # Retries after the first attempt (3 attempts total)
        "retry_delay_ms": 1500,                         # Fixed delay between attempts
        "timeout_sec": 20,                              # Hard ceiling for the whole load, retries included
        "load_on_startup": True,                        # Start the first load when the app boots
    },

    # --- Session ------------------------------------------------------------
    "session": {
        "teardown_grace_sec": 2.0,                      # How long shutdown waits for the last flush (0 = don't wait)
    },

    # --- Runtime / Diagnostics ----------------------------------------------
    "runtime": {
        "debug": False,                                 # Extra verbose logging (debug level)
        "log_level": "info",                            # silent | error | warn | info | debug
        "log_json": "",                                 # Optional JSON-lines log file
    },

    # --- HTTP server --------------------------------------------------------
    "server": {
        "host": "0.0.0.0",
        "port": 8787,
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def config_path() -> Path:
    return CONFIG_BASE() / "config.json"


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(f".{time.time_ns()}.{os.getpid()}.{secrets.token_hex(4)}.tmp")
    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env(cfg: Dict[str, Any]) -> Dict[str, Any]:
    remote = cfg.setdefault("remote", {})
    url = (os.getenv("HAVEN_SUPABASE_URL") or "").strip()
    key = (os.getenv("HAVEN_SUPABASE_KEY") or "").strip()
    if url:
        remote["url"] = url
    if key:
        remote["anon_key"] = key
    return cfg


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """Read config.json merged over DEFAULT_CFG; an unreadable file yields the defaults."""
    p = config_path()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except Exception:
            user_cfg = {}
    if not isinstance(user_cfg, dict):
        user_cfg = {}
    return _apply_env(_deep_merge(DEFAULT_CFG, user_cfg))


def save_config(cfg: Mapping[str, Any]) -> None:
    _write_json_atomic(config_path(), dict(cfg or {}))


def cache_path(cfg: Mapping[str, Any]) -> Path:
    raw = str((cfg.get("cache") or {}).get("path") or "").strip()
    return Path(raw) if raw else CONFIG_BASE() / "local_cache.json"


# ------------------------------------------------------------
# Typed settings
# ------------------------------------------------------------
@dataclass(frozen=True)
class LikesSettings:
    debounce_sec: float = 0.5
    flush_before_load: bool = True
    guard_empty_replace: bool = False
    load_timeout_sec: float = 12.0

    def __post_init__(self) -> None:
        if self.debounce_sec <= 0:
            raise ValueError(f"debounce must be positive, got {self.debounce_sec}")
        if self.load_timeout_sec <= 0:
            raise ValueError(f"load timeout must be positive, got {self.load_timeout_sec}")


@dataclass(frozen=True)
class LoaderSettings:
    max_retries: int = 2
    retry_delay_sec: float = 1.5
    timeout_sec: float = 20.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay_sec < 0:
            raise ValueError(f"retry delay must be >= 0, got {self.retry_delay_sec}")
        if self.timeout_sec <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout_sec}")


def likes_settings(cfg: Mapping[str, Any]) -> LikesSettings:
    lk = dict(cfg.get("likes") or {})
    return LikesSettings(
        debounce_sec=float(lk.get("debounce_ms", 500)) / 1000.0,
        flush_before_load=bool(lk.get("flush_before_load", True)),
        guard_empty_replace=bool(lk.get("guard_empty_replace", False)),
        load_timeout_sec=float(lk.get("load_timeout_sec", 12)),
    )


def loader_settings(cfg: Mapping[str, Any]) -> LoaderSettings:
    ls = dict(cfg.get("listings") or {})
    return LoaderSettings(
        max_retries=int(ls.get("max_retries", 2)),
        retry_delay_sec=float(ls.get("retry_delay_ms", 1500)) / 1000.0,
        timeout_sec=float(ls.get("timeout_sec", 20)),
    )


def teardown_grace(cfg: Mapping[str, Any]) -> float:
    try:
        return max(0.0, float((cfg.get("session") or {}).get("teardown_grace_sec", 2.0)))
    except (TypeError, ValueError):
        return 2.0
