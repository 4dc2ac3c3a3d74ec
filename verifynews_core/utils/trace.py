# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# VerifyNews Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with VerifyNews Engine. If not, see <https://www.gnu.org/licenses/>.

"""
Local debug trace: one JSONL file per trace id under `data/trace/`.

Events from the cache, limiter, retry executor, provider chain and
orchestrator land here when a run is local and tracing is not disabled.
Provider keys and uploaded media never reach the file.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from verifynews_core.runtime_config import EngineRuntimeConfig
from verifynews_core.utils.runtime import is_local_run, now_ms

TRACE_DIR = Path("data") / "trace"

_active_trace: contextvars.ContextVar[str | None] = contextvars.ContextVar("verifynews_active_trace", default=None)

# Field names whose values are always masked, compared case-insensitively.
_SECRET_FIELDS = frozenset({
    "authorization",
    "api_key",
    "key",
    "groq_api_key",
    "openrouter_api_key",
    "gemini_api_key",
    "tavily_api_key",
})

# Field names that carry base64 media payloads.
_MEDIA_FIELDS = frozenset({"data", "mediadata", "media_data"})

_TOKEN_PATTERNS = (
    re.compile(r"([?&](?:api_)?key=)[^&\s]+", re.IGNORECASE),
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+", re.IGNORECASE),
    re.compile(r"()\b(?:gsk|tvly|sk-or)[-_][A-Za-z0-9\-_]{4,}"),
)

_MAX_STR = 4000
_MAX_ITEMS = 100


def _redact_text(s: str) -> str:
    for pattern in _TOKEN_PATTERNS:
        s = pattern.sub(r"\1***", s)
    return s


def _digest(s: str) -> dict[str, Any]:
    edge = min(300, _MAX_STR // 2)
    return {
        "len": len(s),
        "sha256": hashlib.sha256(s.encode("utf-8")).hexdigest(),
        "head": s[:edge],
        "tail": s[-edge:],
    }


def _sanitize(obj: Any) -> Any:
    """JSON-safe copy of `obj` with secrets masked and large values summarized."""
    match obj:
        case None | bool() | int() | float():
            return obj
        case str():
            s = _redact_text(obj)
            return s if len(s) <= _MAX_STR else _digest(s)
        case bytes():
            return f"<bytes:{len(obj)}>"
        case list() | tuple():
            out = [_sanitize(x) for x in obj[:_MAX_ITEMS]]
            if len(obj) > _MAX_ITEMS:
                out.append(f"...(+{len(obj) - _MAX_ITEMS} more)")
            return out
        case dict():
            clean: dict[str, Any] = {}
            for name, value in list(obj.items())[:_MAX_ITEMS]:
                key = str(name)
                if key.lower() in _SECRET_FIELDS:
                    clean[key] = "***"
                elif key.lower() in _MEDIA_FIELDS and isinstance(value, str):
                    clean[key] = f"<base64:{len(value)} chars>"
                else:
                    clean[key] = _sanitize(value)
            if len(obj) > _MAX_ITEMS:
                clean["..."] = f"(+{len(obj) - _MAX_ITEMS} more keys)"
            return clean
        case _:
            return _sanitize(str(obj))


def _trace_file(trace_id: str) -> Path:
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", trace_id)
    TRACE_DIR.mkdir(parents=True, exist_ok=True)
    return TRACE_DIR / f"{safe}.jsonl"


def current_trace_id() -> str | None:
    return _active_trace.get()


def trace_enabled() -> bool:
    return _active_trace.get() is not None


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    enabled: bool


class Trace:
    """
    Local-only JSONL trace sink.

    `start` binds a trace id to the current context when the run is local
    and the runtime flag allows it; `event` is a no-op otherwise.
    Writing a trace never raises into the caller.
    """

    @staticmethod
    def start(trace_id: str, *, runtime: EngineRuntimeConfig | None = None) -> TraceContext:
        runtime = runtime or EngineRuntimeConfig.load_from_env()
        enabled = is_local_run() and runtime.features.trace_enabled
        _active_trace.set(trace_id if enabled else None)
        if enabled:
            Trace.event("trace.start", {"trace_id": trace_id})
        return TraceContext(trace_id=trace_id, enabled=enabled)

    @staticmethod
    def stop() -> None:
        trace_id = _active_trace.get()
        if trace_id is not None:
            Trace.event("trace.stop", {"trace_id": trace_id})
        _active_trace.set(None)

    @staticmethod
    def event(name: str, data: Any | None = None) -> None:
        trace_id = _active_trace.get()
        if trace_id is None:
            return
        record = {"ts_ms": now_ms(), "trace_id": trace_id, "event": name, "data": _sanitize(data)}
        try:
            with _trace_file(trace_id).open("a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError:
            return
