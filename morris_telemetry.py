"""Telemetry schema and sinks for strategy instrumentation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from queue import Queue
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, TextIO, Tuple
import json
import threading
import time


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TelemetryEnvelope:
    event: str
    ts_ms: int
    data: Dict[str, Any]


@dataclass(frozen=True)
class StrategyStartEvent:
    strategy: str
    state_key: str
    phase: str
    side: int
    legal_moves: int


@dataclass(frozen=True)
class MoveScoredEvent:
    strategy: str
    move: str
    score: int
    region: Optional[str] = None


@dataclass(frozen=True)
class StrategyEndEvent:
    strategy: str
    best_move: Optional[str]
    score: Optional[int]
    top_moves: List[Tuple[str, int]]
    evaluated: int
    cache_hits: int
    cache_size: int
    elapsed_ms: int
    reason: str


class TelemetrySink(Protocol):
    def emit(self, envelope: TelemetryEnvelope) -> None:
        ...

    def close(self) -> None:
        ...


class NullTelemetrySink:
    def emit(self, envelope: TelemetryEnvelope) -> None:
        _ = envelope

    def close(self) -> None:
        return


class CallbackTelemetrySink:
    def __init__(self, callback: Callable[[TelemetryEnvelope], None]) -> None:
        self._callback = callback

    def emit(self, envelope: TelemetryEnvelope) -> None:
        self._callback(envelope)

    def close(self) -> None:
        return


class QueueTelemetrySink:
    def __init__(self, queue: "Queue[TelemetryEnvelope]") -> None:
        self._queue = queue

    def emit(self, envelope: TelemetryEnvelope) -> None:
        self._queue.put(envelope)

    def close(self) -> None:
        return


class JsonlTelemetrySink:
    """Writes one compact JSON object per envelope to a text stream."""

    def __init__(self, stream: TextIO, close_stream: bool = False) -> None:
        self._stream = stream
        self._close_stream = close_stream
        self._lock = threading.Lock()
        self._closed = False

    def emit(self, envelope: TelemetryEnvelope) -> None:
        payload = {
            "event": envelope.event,
            "ts_ms": envelope.ts_ms,
            "data": envelope.data,
        }
        line = json.dumps(payload, separators=(",", ":"))
        with self._lock:
            if self._closed:
                return
            self._stream.write(line + "\n")
            self._stream.flush()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._close_stream:
                self._stream.close()


def emit_event(sink: Optional[TelemetrySink], event: str, payload: Mapping[str, Any]) -> None:
    if sink is None:
        return
    envelope = TelemetryEnvelope(event=event, ts_ms=now_ms(), data=dict(payload))
    try:
        sink.emit(envelope)
    except Exception:
        return


def emit_dataclass_event(sink: Optional[TelemetrySink], event: str, payload_obj: object) -> None:
    if sink is None:
        return
    emit_event(sink, event, asdict(payload_obj))
