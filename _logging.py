# _logging.py
# Haven - structured logger with coloured console output and an optional JSON-lines sink.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import datetime
import json
import os
import sys
import threading
from typing import Any, Mapping, Optional, TextIO

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

_TAG_COLORS: dict[str, str] = {
    "DEBUG": YELLOW,
    "INFO": BLUE,
    "WARN": YELLOW,
    "ERROR": RED,
    "SUCCESS": GREEN,
}

# ── runtime debug gate ────────────────────────────────────────────────────
# HAVEN_DEBUG wins; otherwise runtime.debug from the last configure() call.
_DEBUG_FROM_CFG = False


def _debug_enabled() -> bool:
    env = (os.getenv("HAVEN_DEBUG") or "").strip().lower()
    if env:
        return env in ("1", "true", "yes", "on")
    return _DEBUG_FROM_CFG


def _use_color(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR") is not None:
        return False
    try:
        return bool(stream.isatty())
    except Exception:
        return False


class Logger:
    def __init__(
        self,
        stream: Optional[TextIO] = None,
        level: str = "info",
        use_color: Optional[bool] = None,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        *,
        _context: Optional[dict[str, Any]] = None,
        _json_stream: Optional[TextIO] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        self.stream = stream
        self.level_no = LEVELS.get(level, 20)
        self.use_color = _use_color(stream or sys.stdout) if use_color is None else use_color
        self.show_time = show_time
        self.time_fmt = time_fmt
        self._context: dict[str, Any] = dict(_context or {})
        self._json_stream = _json_stream
        self._lock = _lock or threading.Lock()

    def set_level(self, level: str) -> None:
        self.level_no = LEVELS.get(level, self.level_no)

    def enable_json(self, file_path: str) -> None:
        self._json_stream = open(file_path, "a", encoding="utf-8")

    @property
    def level_name(self) -> str:
        for k, v in LEVELS.items():
            if v == self.level_no:
                return k
        return "info"

    def bind(self, **ctx: Any) -> "Logger":
        new_ctx = dict(self._context)
        new_ctx.update(ctx)
        child = Logger(
            stream=self.stream,
            level=self.level_name,
            use_color=self.use_color,
            show_time=self.show_time,
            time_fmt=self.time_fmt,
            _context=new_ctx,
            _json_stream=self._json_stream,
            _lock=self._lock,
        )
        child._parent = self  # type: ignore[attr-defined]
        return child

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    def _root(self) -> "Logger":
        node = self
        while getattr(node, "_parent", None) is not None:
            node = node._parent  # type: ignore[attr-defined]
        return node

    def _line(self, label: str, msg: str) -> str:
        mod = str(self._context.get("module") or "").strip()
        col = _TAG_COLORS.get(label) if self.use_color else None
        lvl = f"{col}{label}{RESET}" if col else label
        head = f"[{mod}] " if mod else ""
        line = f"{head}{lvl} {msg}"
        if not self.show_time:
            return line
        ts = datetime.datetime.now().strftime(self.time_fmt)
        return f"{DIM}[{ts}]{RESET} {line}" if self.use_color else f"[{ts}] {line}"

    def _emit(self, severity: str, label: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        if severity == "debug":
            if not _debug_enabled():
                return
        # children follow the root level so configure() reaches every bound logger
        elif self._root().level_no > LEVELS.get(severity, 20):
            return
        msg = " ".join(str(p) for p in parts)
        root = self._root()
        sink = root._json_stream or self._json_stream
        with self._lock:
            out = self.stream or sys.stdout
            out.write(self._line(label, msg) + "\n")
            out.flush()
            if sink:
                payload: dict[str, Any] = {
                    "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds"),
                    "level": label,
                    "msg": msg,
                    "ctx": self._context,
                }
                if extra:
                    payload["extra"] = dict(extra)
                sink.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
                sink.flush()

    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", *parts, extra=extra)

    def warning(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self.warn(*parts, extra=extra)

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "SUCCESS", *parts, extra=extra)

    # logger("text", level="WARN")
    def __call__(self, message: str, *, level: str = "INFO", extra: Optional[Mapping[str, Any]] = None) -> None:
        lvl = (level or "INFO").lower()
        if lvl == "debug":
            self.debug(message, extra=extra)
        elif lvl in ("warn", "warning"):
            self.warn(message, extra=extra)
        elif lvl == "error":
            self.error(message, extra=extra)
        elif lvl == "success":
            self.success(message, extra=extra)
        else:
            self.info(message, extra=extra)


def configure(cfg: Mapping[str, Any]) -> None:
    """Apply runtime.{debug,log_level,log_json} from a loaded config to the shared logger."""
    global _DEBUG_FROM_CFG
    rt = cfg.get("runtime") or {}
    _DEBUG_FROM_CFG = bool(rt.get("debug"))
    log.set_level(str(rt.get("log_level") or "info").lower())
    path = str(rt.get("log_json") or "").strip()
    if path and log._json_stream is None:
        log.enable_json(path)


# default instance
log = Logger(level=(os.getenv("HAVEN_LOG_LEVEL") or "info").strip().lower())

__all__ = ["Logger", "log", "configure", "LEVELS"]
