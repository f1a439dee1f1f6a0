import threading

import pytest

from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.errors import OperationCancelledError


def test_new_context_is_not_cancelled() -> None:
    ctx = OperationContext()
    assert not ctx.cancelled
    assert ctx.remaining() is None
    ctx.check()


def test_cancel() -> None:
    ctx = OperationContext()
    ctx.cancel()
    assert ctx.cancelled
    with pytest.raises(OperationCancelledError, match='Operation cancelled'):
        ctx.check()


def test_deadline_passed() -> None:
    ctx = OperationContext(timeout=0)
    assert ctx.cancelled
    assert ctx.remaining() == 0.0
    with pytest.raises(OperationCancelledError, match='deadline exceeded'):
        ctx.check()


def test_deadline_in_the_future() -> None:
    ctx = OperationContext(timeout=3600)
    assert not ctx.cancelled
    assert 0 < ctx.remaining() <= 3600
    ctx.check()


def test_cancel_runs_interrupt_callbacks_once() -> None:
    ctx = OperationContext()
    calls = []

    with ctx.interrupting(lambda: calls.append('interrupt')):
        ctx.cancel()
        ctx.cancel()

    assert calls == ['interrupt']


def test_deadline_runs_interrupt_callbacks() -> None:
    ctx = OperationContext(timeout=0.2)
    fired = threading.Event()

    with ctx.interrupting(fired.set):
        assert fired.wait(5)

    assert ctx.cancelled


def test_no_interrupt_after_the_block() -> None:
    ctx = OperationContext(timeout=3600)
    calls = []

    with ctx.interrupting(lambda: calls.append('interrupt')):
        pass
    ctx.cancel()

    assert calls == []


def test_interrupting_a_fired_context_raises() -> None:
    ctx = OperationContext()
    ctx.cancel()
    calls = []

    with pytest.raises(OperationCancelledError, match='Operation cancelled'), ctx.interrupting(lambda: calls.append(1)):
        pass

    assert calls == []
