from __future__ import annotations

import threading

import pytest

from soulbound.db.ledger import Ledger
from soulbound.models.events import Locked


def test_commit_applies_writes_and_publishes_events() -> None:
    ledger = Ledger(clock=lambda: 100)
    table: dict[str, int] = {}
    seq: list[int] = []

    with ledger.transaction() as tx:
        assert tx.timestamp == 100
        tx.put(table, "a", 1)
        tx.append(seq, 7)
        tx.emit(Locked(token_id=1))
        # Not visible to observers before commit.
        assert len(ledger.events) == 0

    assert table == {"a": 1}
    assert seq == [7]
    assert [r.event for r in ledger.events.records()] == [Locked(token_id=1)]


def test_exception_rolls_back_every_write() -> None:
    ledger = Ledger(clock=lambda: 1)
    table = {"keep": 1, "overwrite": 2, "remove": 3}
    seq = [1, 2]

    with pytest.raises(RuntimeError):
        with ledger.transaction() as tx:
            tx.put(table, "overwrite", 20)
            tx.put(table, "new", 4)
            tx.delete(table, "remove")
            tx.append(seq, 3)
            tx.emit(Locked(token_id=9))
            raise RuntimeError("abort")

    assert table == {"keep": 1, "overwrite": 2, "remove": 3}
    assert seq == [1, 2]
    assert len(ledger.events) == 0


def test_repeated_puts_to_one_key_unwind_to_first_value() -> None:
    ledger = Ledger()
    table = {"k": 0}

    with pytest.raises(ValueError):
        with ledger.transaction() as tx:
            tx.put(table, "k", 1)
            tx.put(table, "k", 2)
            raise ValueError

    assert table == {"k": 0}


def test_nested_transaction_joins_outer() -> None:
    ledger = Ledger(clock=lambda: 5)
    table: dict[str, int] = {}

    with pytest.raises(RuntimeError):
        with ledger.transaction() as outer:
            with ledger.transaction() as inner:
                assert inner is outer
                inner.put(table, "x", 1)
            raise RuntimeError

    assert table == {}


def test_delete_missing_key_is_a_no_op() -> None:
    ledger = Ledger()
    table: dict[str, int] = {}
    with ledger.transaction() as tx:
        tx.delete(table, "nope")
    assert table == {}


def test_transactions_are_serialized() -> None:
    ledger = Ledger()
    counter = {"n": 0}

    def bump() -> None:
        for _ in range(200):
            with ledger.transaction() as tx:
                tx.put(counter, "n", counter["n"] + 1)

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter["n"] == 800
