from __future__ import annotations

import json
from typing import Any, Callable


class Emitter:
    """Structured progress events as compact JSON lines for an optional callback."""

    def __init__(self, cb: Callable[[str], None] | None = None):
        self.cb = cb

    def emit(self, event: str, **data: Any) -> None:
        if not self.cb:
            return
        payload: dict[str, Any] = {"event": event}
        payload.update(data)
        try:
            self.cb(json.dumps(payload, separators=(",", ":"), default=list))
        except Exception:
            pass

    def info(self, line: str) -> None:
        if not self.cb:
            return
        try:
            self.cb(line)
        except Exception:
            pass


def collect(into: list[dict[str, Any]]) -> Callable[[str], None]:
    """Callback that decodes emitted events into dicts (tests, diagnostics)."""
    def _cb(line: str) -> None:
        try:
            into.append(json.loads(line))
        except ValueError:
            into.append({"event": "info", "line": line})
    return _cb
