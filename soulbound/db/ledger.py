"""In-process ledger substrate.

WHY A LEDGER AND NOT JUST DICTS?
--------------------------------
The registry's rules only hold if every operation sees the state as if
it ran alone and either lands completely or not at all.  Issuing a
certificate touches four places (the certificate table, the owner
table, the recipient's reverse index and the token counter) and emits
three events.  If the third write raised, plain dicts would be left
with a counter that skipped a token id and an index entry pointing at
nothing.

WHAT THE LEDGER GUARANTEES
--------------------------
1. SERIALIZATION
   One transaction at a time, behind a re-entrant lock.  Re-entrant
   because a gated operation may call another gated helper; the inner
   ``transaction()`` joins the outer one instead of deadlocking.

2. ATOMICITY
   Every write goes through the Transaction journal, which remembers
   the value it replaced.  An exception anywhere inside the ``with``
   block restores the journaled values in reverse order, so repeated
   writes to one key unwind to the value before the first of them.

3. COUPLED NOTIFICATIONS
   Events emitted inside the transaction are buffered and published to
   the EventLog only after commit.  A subscriber never hears about a
   certificate that was rolled back.

4. BLOCK TIME
   One timestamp per transaction, taken from an injectable clock, so
   every record written by one operation agrees on "now" and tests can
   pin it.

The registry itself does no locking; it only talks to the Transaction.
A deployment backed by a real chain or database would replace this
module and keep the same Transaction surface.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any

from soulbound.models.events import Event
from soulbound.services.event_log import EventLog

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

_MISSING = object()


def wall_clock() -> int:
    return int(time.time())


class Transaction:
    """Journal of writes plus buffered notifications for one operation."""

    def __init__(self, timestamp: int) -> None:
        self.timestamp = timestamp
        self._undo: list[Callable[[], None]] = []
        self._events: list[Event] = []

    @property
    def events(self) -> tuple[Event, ...]:
        return tuple(self._events)

    def put(self, table: MutableMapping[Any, Any], key: Any, value: Any) -> None:
        previous = table.get(key, _MISSING)
        if previous is _MISSING:
            self._undo.append(lambda: table.pop(key, None))
        else:
            self._undo.append(lambda: table.__setitem__(key, previous))
        table[key] = value

    def delete(self, table: MutableMapping[Any, Any], key: Any) -> None:
        if key not in table:
            return
        previous = table.pop(key)
        self._undo.append(lambda: table.__setitem__(key, previous))

    def append(self, seq: list[Any], value: Any) -> None:
        seq.append(value)
        self._undo.append(seq.pop)

    def emit(self, event: Event) -> None:
        self._events.append(event)

    def rollback(self) -> None:
        for undo in reversed(self._undo):
            undo()
        self._undo.clear()
        self._events.clear()


class Ledger:
    def __init__(
        self,
        *,
        clock: Clock | None = None,
        events: EventLog | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._clock = clock or wall_clock
        self._active: Transaction | None = None
        self.events = events if events is not None else EventLog()

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            if self._active is not None:
                # Nested call from the same thread: join the outer unit.
                yield self._active
                return

            tx = Transaction(timestamp=self._clock())
            self._active = tx
            try:
                yield tx
            except BaseException:
                tx.rollback()
                raise
            finally:
                self._active = None

            if tx.events:
                self.events.publish(tx.events)
