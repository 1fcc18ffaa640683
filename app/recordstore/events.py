"""
Store notifications and the observer interface they are delivered through.

The store calls `EventBus.dispatch` synchronously, after the mutation that
produced the events has committed. Sinks never see events from a failed call.
A sink that raises is logged and skipped; the remaining sinks still run.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Protocol


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserCreated:
    user_id: str
    name: str
    email: str

    event_name = "user.created"

    def payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DocumentCreated:
    user_id: str
    document_id: str
    content_hash: str

    event_name = "document.created"

    def payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AuditEntryAdded:
    document_id: str
    action: str
    performed_by: str
    timestamp: int

    event_name = "audit.entry_added"

    def payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DocumentShared:
    document_id: str
    user_id: str
    shared_with_user_id: str

    event_name = "document.shared"

    def payload(self) -> dict[str, Any]:
        return asdict(self)


StoreNotification = UserCreated | DocumentCreated | AuditEntryAdded | DocumentShared


class EventSink(Protocol):
    def emit(self, event: StoreNotification) -> None:
        ...


class LoggingSink:
    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def emit(self, event: StoreNotification) -> None:
        self.log.info("event %s %s", event.event_name, event.payload())


class CollectingSink:
    """Keeps every event in memory, in delivery order."""

    def __init__(self) -> None:
        self.events: list[StoreNotification] = []

    def emit(self, event: StoreNotification) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.event_name for e in self.events]


class EventBus:
    def __init__(self, sinks: list[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks or [])

    def subscribe(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def dispatch(self, events: list[StoreNotification]) -> None:
        for ev in events:
            for sink in self._sinks:
                try:
                    sink.emit(ev)
                except Exception:
                    logger.exception("Event sink %r failed for %s", sink, ev.event_name)
