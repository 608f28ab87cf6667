"""Append-only notification log.

The ledger publishes a transaction's notifications here only after the
transaction commits, so every record in the log describes a state change
that actually happened.

Records are numbered in publish order.  Each event type's ``INDEXED``
fields are indexed on append, so "every CertificateIssued for recipient
X" is a dictionary lookup instead of a scan.

Subscribers are plain callables invoked synchronously, in subscription
order, with each committed record.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from soulbound.models.events import EVENT_TYPES, Event, EventRecord, event_name

logger = logging.getLogger(__name__)

Subscriber = Callable[[EventRecord], None]


class EventLog:
    def __init__(self) -> None:
        self._records: list[EventRecord] = []
        self._by_name: dict[str, list[int]] = {}
        self._by_field: dict[tuple[str, str, Any], list[int]] = {}
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def publish(self, events: Iterable[Event]) -> list[EventRecord]:
        with self._lock:
            published: list[EventRecord] = []
            for event in events:
                record = EventRecord(sequence=len(self._records), event=event)
                self._records.append(record)
                self._index(record)
                published.append(record)
            subscribers = list(self._subscribers)

        for record in published:
            for subscriber in subscribers:
                try:
                    subscriber(record)
                except Exception:
                    # The state change is already committed; a broken
                    # observer must not hide it from the others.
                    logger.exception(
                        "Subscriber %r failed on %s #%d",
                        subscriber,
                        record.name,
                        record.sequence,
                    )
        return published

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return _unsubscribe

    def records(self, from_sequence: int = 0) -> list[EventRecord]:
        return self._records[from_sequence:]

    def query(
        self,
        name: str | None = None,
        *,
        from_sequence: int = 0,
        **indexed: Any,
    ) -> list[EventRecord]:
        """Return records matching an event name and/or indexed field values.

        Filtering on a field that is not indexed for the named event
        raises ValueError.  Without a name, a field filter matches every
        event type that indexes that field.
        """
        if name is not None and name not in EVENT_TYPES:
            raise ValueError(f"unknown event: {name!r}")

        names = [name] if name is not None else list(EVENT_TYPES)
        for field in indexed:
            indexing = [n for n in names if field in EVENT_TYPES[n].INDEXED]
            if not indexing:
                raise ValueError(f"{field!r} is not an indexed field")
            names = indexing

        positions: set[int] = set()
        for candidate in names:
            matched = set(self._by_name.get(candidate, ()))
            for field, value in indexed.items():
                matched &= set(self._by_field.get((candidate, field, value), ()))
            positions |= matched

        return [self._records[i] for i in sorted(positions) if i >= from_sequence]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._by_name.clear()
            self._by_field.clear()

    def _index(self, record: EventRecord) -> None:
        name = event_name(record.event)
        self._by_name.setdefault(name, []).append(record.sequence)
        for field in type(record.event).INDEXED:
            key = (name, field, getattr(record.event, field))
            self._by_field.setdefault(key, []).append(record.sequence)
