"""
PLEXUS EVENT RECORDER - Flight Recorder for Editor Events

An EventRecorder is an ordinary pipe: attach it to any scope and it sees
every event that reaches its position in the chain. It never vetoes and
never transforms; it only records.

Architecture:
- RecordedEvent: serializable summary of one event
- EventBuffer: in-memory ring buffer for recent events
- FileLogger: optional newline-delimited JSON log, one file per day
- EventRecorder: the pipe tying them together

Usage:
    recorder = EventRecorder()
    recorder.attach(editor)

    await editor.add_node(node)
    [e.type for e in recorder.get_last(2)]   # ["nodecreate", "nodecreated"]

Attach it first to see vetoed pre-events too; attach it last to see only
what every other pipe let through.
"""
import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Union

import msgspec

from core.events import event_entity_id, event_type


logger = logging.getLogger("plexus.recorder")


class RecordedEvent(msgspec.Struct, kw_only=True):
    """Summary of one event as it passed the recorder."""
    sequence: int
    timestamp: str
    scope: str
    type: str                          # EventType value, or class name for foreign events
    entity_id: Optional[str] = None    # Node/connection id when the event carries one


# =============================================================================
# EVENT BUFFER
# =============================================================================

class EventBuffer:
    """Ring buffer of recent events. O(1) append, O(n) queries."""

    def __init__(self, max_size: int = 10000):
        self._buffer: deque = deque(maxlen=max_size)
        self._sequence = 0

    def append(self, event: RecordedEvent) -> None:
        self._buffer.append(event)

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def get_last(self, n: int) -> List[RecordedEvent]:
        if n <= 0:
            return []
        return list(self._buffer)[-n:]

    def get_by_type(self, type: str) -> List[RecordedEvent]:
        return [e for e in self._buffer if e.type == type]

    def get_by_entity(self, entity_id: str) -> List[RecordedEvent]:
        return [e for e in self._buffer if e.entity_id == entity_id]

    def get_since(self, timestamp: str) -> List[RecordedEvent]:
        return [e for e in self._buffer if e.timestamp >= timestamp]

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


# =============================================================================
# FILE LOGGER
# =============================================================================

class FileLogger:
    """
    Newline-delimited JSON event log.

    One file per UTC day: events_YYYY-MM-DD.jsonl
    """

    def __init__(self, log_path: Union[str, Path]):
        self._log_path = Path(log_path)
        self._current_file = None
        self._current_date: Optional[str] = None
        self._encoder = msgspec.json.Encoder()

        self._log_path.mkdir(parents=True, exist_ok=True)

    def write(self, event: RecordedEvent) -> None:
        self._ensure_file()
        self._current_file.write(self._encoder.encode(event) + b"\n")
        self._current_file.flush()

    def _ensure_file(self) -> None:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        if self._current_date != today:
            if self._current_file:
                self._current_file.close()
            self._current_file = open(self._log_path / f"events_{today}.jsonl", "ab")
            self._current_date = today

    def close(self) -> None:
        if self._current_file:
            self._current_file.close()
            self._current_file = None

    def read_log(self, date: str) -> List[RecordedEvent]:
        """Read back the events logged on a given day (YYYY-MM-DD)."""
        filepath = self._log_path / f"events_{date}.jsonl"
        if not filepath.exists():
            return []

        decoder = msgspec.json.Decoder(type=RecordedEvent)
        with open(filepath, "rb") as f:
            return [decoder.decode(line) for line in f if line.strip()]


# =============================================================================
# EVENT RECORDER (Main Interface)
# =============================================================================

class EventRecorder:
    """
    Pipe that records every event flowing through a scope.

    Usage:
        recorder = EventRecorder(buffer_size=1000, log_path="./workspace/logs")
        recorder.attach(editor)
    """

    def __init__(
        self,
        buffer_size: int = 10000,
        log_path: Optional[Union[str, Path]] = None,
        scope_name: str = "",
    ):
        self._buffer = EventBuffer(buffer_size)
        self._file_logger = FileLogger(log_path) if log_path else None
        self.scope_name = scope_name

    @classmethod
    def from_settings(cls, settings) -> "EventRecorder":
        """Build from PlexusSettings (infrastructure.config)."""
        return cls(
            buffer_size=settings.recorder.buffer_size,
            log_path=settings.recorder.log_path,
        )

    def attach(self, scope) -> "EventRecorder":
        """Register this recorder as a pipe of `scope`."""
        if not self.scope_name:
            self.scope_name = scope.name
        scope.add_pipe(self)
        return self

    def detach(self, scope) -> bool:
        return scope.remove_pipe(self)

    def __call__(self, event: Any) -> Any:
        kind = event_type(event)
        record = RecordedEvent(
            sequence=self._buffer.next_sequence(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            scope=self.scope_name,
            type=kind.value if kind is not None else type(event).__name__,
            entity_id=event_entity_id(event),
        )
        self._buffer.append(record)
        logger.debug(f"[{record.scope}] #{record.sequence} {record.type} {record.entity_id or ''}")

        if self._file_logger:
            self._file_logger.write(record)

        return event

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_last(self, n: int) -> List[RecordedEvent]:
        return self._buffer.get_last(n)

    def get_by_type(self, type: Any) -> List[RecordedEvent]:
        """Events of a type; accepts an EventType or its string value."""
        return self._buffer.get_by_type(getattr(type, "value", type))

    def get_by_entity(self, entity_id: str) -> List[RecordedEvent]:
        return self._buffer.get_by_entity(entity_id)

    def get_since(self, timestamp: str) -> List[RecordedEvent]:
        return self._buffer.get_since(timestamp)

    def types(self) -> List[str]:
        """Types of all buffered events, oldest first."""
        return [e.type for e in self._buffer.get_last(len(self._buffer))]

    def clear(self) -> None:
        self._buffer.clear()

    def close(self) -> None:
        if self._file_logger:
            self._file_logger.close()

    def __len__(self) -> int:
        return len(self._buffer)
