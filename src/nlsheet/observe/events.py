"""Lifecycle events (NDJSON on stderr) and command timing."""

from __future__ import annotations

import sys
import time
from datetime import datetime, timezone
from typing import Any, TextIO

import orjson


class Timer:
    """Context manager measuring wall time in whole milliseconds."""

    def __init__(self) -> None:
        self._start: float | None = None
        self.elapsed_ms: int = 0

    def _now_ms(self) -> int:
        if self._start is None:
            return 0
        return int((time.perf_counter() - self._start) * 1000)

    @property
    def running_ms(self) -> int:
        """Elapsed time so far, usable before the block exits."""
        return self._now_ms()

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed_ms = self._now_ms()


class EventEmitter:
    """Writes one JSON object per line for each session lifecycle event.

    Disabled emitters are free to call. Every event carries a per-emitter
    sequence number so a host can spot dropped lines.
    """

    def __init__(self, enabled: bool = False, stream: TextIO | None = None) -> None:
        self.enabled = enabled
        self._stream = stream
        self._seq = 0

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        self._seq += 1
        line = orjson.dumps(
            {
                "event": event,
                "seq": self._seq,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "data": data or {},
            },
            default=str,
        )
        stream = self._stream or sys.stderr
        stream.write(line.decode() + "\n")
        stream.flush()
