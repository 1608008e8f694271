"""
Diagnostics for discarded, failed and starved discovery requests.

Nothing in this module changes discovery state. It is the observability
channel for every outcome that never reaches capability subscribers: a
response nobody asked for, an entity answering with an error, a query that
timed out or could not be sent, a subscriber that raised.
"""

import logging
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger("entitycaps.diagnostics")


class DiagnosticKind(str, Enum):
    """Kinds of diagnostic events."""

    UNKNOWN_CORRELATION = "unknown_correlation"
    REMOTE_ERROR = "remote_error"
    QUERY_TIMEOUT = "query_timeout"
    QUERY_RETRIED = "query_retried"
    SEND_FAILED = "send_failed"
    LISTENER_FAILED = "listener_failed"


# Kinds after which the listed waiters will not be resolved by this request
STARVING_KINDS = {
    DiagnosticKind.REMOTE_ERROR,
    DiagnosticKind.QUERY_TIMEOUT,
    DiagnosticKind.SEND_FAILED,
}


@dataclass
class DiagnosticEvent:
    kind: DiagnosticKind
    correlation_id: Optional[str] = None
    fingerprint: Optional[str] = None
    extension_id: Optional[str] = None
    waiters: List[str] = field(default_factory=list)
    detail: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def starved(self) -> bool:
        """True if waiters were left without data by this event."""
        return self.kind in STARVING_KINDS and bool(self.waiters)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["starved"] = self.starved
        return data


DiagnosticListener = Callable[[DiagnosticEvent], None]


class DiagnosticsRecorder:
    """Keeps a bounded history of diagnostic events and per-kind counters."""

    def __init__(self, history: int = 100):
        """
        Initialize recorder.

        Args:
            history: Number of recent events to keep
        """
        self._events: Deque[DiagnosticEvent] = deque(maxlen=history)
        self._counts: Counter = Counter()
        self._listeners: List[DiagnosticListener] = []

    def record(self, event: DiagnosticEvent) -> DiagnosticEvent:
        """Store an event, log it and pass it to listeners."""
        self._events.append(event)
        self._counts[event.kind] += 1

        message = event.kind.value
        if event.detail:
            message = f"{message}: {event.detail}"
        if event.starved:
            logger.warning(f"{message} (starved waiters: {', '.join(sorted(event.waiters))})")
        else:
            logger.warning(message)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Diagnostics listener failed: {e}")

        return event

    def subscribe(self, listener: DiagnosticListener) -> Callable[[], None]:
        """
        Register a listener called with every recorded event.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def recent(self, limit: Optional[int] = None) -> List[DiagnosticEvent]:
        """Most recent events, oldest first."""
        events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def counts(self) -> Dict[str, int]:
        """Number of events recorded per kind since startup."""
        return {kind.value: self._counts[kind] for kind in DiagnosticKind}
