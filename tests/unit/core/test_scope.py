"""
Unit tests for core/scope.py - Signal and Scope

Tests the event pipeline:
- Sequential dispatch in registration order
- Transform / pass-through / STOP semantics
- Sync and async pipes
- Error propagation (FAILED state)
- Nested scopes via use()
- Registration during dispatch
"""
import asyncio

import pytest

from core.errors import InvalidStateError
from core.scope import STOP, Dispatch, DispatchState, Scope, Signal


# =============================================================================
# DISPATCH ORDER
# =============================================================================

@pytest.mark.asyncio
async def test_pipes_run_in_registration_order():
    scope = Scope("test")
    calls = []

    for name in ("first", "second", "third"):
        def pipe(event, name=name):
            calls.append(name)
            return event
        scope.add_pipe(pipe)

    result = await scope.emit({"type": "ping"})

    assert calls == ["first", "second", "third"]
    assert result == {"type": "ping"}


@pytest.mark.asyncio
async def test_async_pipes_do_not_overlap():
    """
    Validate that pipe N+1 starts only after pipe N's awaited work is done.
    """
    scope = Scope("test")
    timeline = []

    async def slow(event):
        timeline.append("slow:start")
        await asyncio.sleep(0.01)
        timeline.append("slow:end")
        return event

    async def fast(event):
        timeline.append("fast")
        return event

    scope.add_pipe(slow)
    scope.add_pipe(fast)

    await scope.emit("event")

    assert timeline == ["slow:start", "slow:end", "fast"]


@pytest.mark.asyncio
async def test_pipe_can_transform_event():
    scope = Scope("test")
    scope.add_pipe(lambda event: event + 1)
    scope.add_pipe(lambda event: event * 10)

    assert await scope.emit(1) == 20


@pytest.mark.asyncio
async def test_none_passes_event_through_unchanged():
    scope = Scope("test")
    seen = []

    scope.add_pipe(lambda event: None)
    scope.add_pipe(lambda event: seen.append(event))

    result = await scope.emit("payload")

    assert seen == ["payload"]
    assert result == "payload"


@pytest.mark.asyncio
async def test_emit_without_pipes_completes():
    scope = Scope("empty")
    record = await scope.dispatch("event")

    assert record.state is DispatchState.COMPLETED
    assert record.pipes_run == 0
    assert record.result == "event"


# =============================================================================
# VETO (STOP)
# =============================================================================

@pytest.mark.asyncio
async def test_stop_short_circuits_remaining_pipes():
    scope = Scope("test")
    calls = []

    scope.add_pipe(lambda event: calls.append("before") or event)
    scope.add_pipe(lambda event: STOP)
    scope.add_pipe(lambda event: calls.append("after") or event)

    result = await scope.emit("event")

    assert result is None
    assert calls == ["before"]


@pytest.mark.asyncio
async def test_async_stop():
    scope = Scope("test")

    async def veto(event):
        await asyncio.sleep(0)
        return STOP

    scope.add_pipe(veto)
    record = await scope.dispatch("event")

    assert record.stopped
    assert not record.completed
    assert record.pipes_run == 1
    assert record.result is None


def test_stop_is_falsy_singleton():
    assert not STOP
    assert repr(STOP) == "STOP"
    assert type(STOP)() is STOP


# =============================================================================
# ERRORS
# =============================================================================

@pytest.mark.asyncio
async def test_pipe_error_propagates_and_aborts():
    scope = Scope("test")
    calls = []

    def boom(event):
        raise RuntimeError("subscriber failed")

    scope.add_pipe(boom)
    scope.add_pipe(lambda event: calls.append("after") or event)

    with pytest.raises(RuntimeError, match="subscriber failed"):
        await scope.emit("event")

    assert calls == []


@pytest.mark.asyncio
async def test_signal_reraises_the_original_error():
    signal = Signal()
    error = ValueError("bad")

    async def boom(event):
        raise error

    signal.add_pipe(boom)

    with pytest.raises(ValueError) as exc_info:
        await signal.dispatch("event")

    assert exc_info.value is error


def test_dispatch_starts_idle():
    record = Dispatch("event")
    assert record.state is DispatchState.IDLE
    assert record.error is None


def test_add_pipe_rejects_non_callable():
    with pytest.raises(TypeError):
        Signal().add_pipe("not a pipe")


# =============================================================================
# REGISTRATION
# =============================================================================

@pytest.mark.asyncio
async def test_pipe_added_during_dispatch_runs_next_time():
    scope = Scope("test")
    late_calls = []

    def late(event):
        late_calls.append(event)
        return event

    def registrar(event):
        if late not in scope.signal.pipes:
            scope.add_pipe(late)
        return event

    scope.add_pipe(registrar)

    await scope.emit("first")
    assert late_calls == []

    await scope.emit("second")
    assert late_calls == ["second"]


def test_remove_pipe():
    scope = Scope("test")
    pipe = scope.add_pipe(lambda event: event)

    assert scope.pipe_count() == 1
    assert scope.remove_pipe(pipe) is True
    assert scope.remove_pipe(pipe) is False
    assert scope.pipe_count() == 0


# =============================================================================
# NESTED SCOPES
# =============================================================================

@pytest.mark.asyncio
async def test_use_forwards_events_to_child():
    parent = Scope("parent")
    child = Scope("child")
    seen = []

    child.add_pipe(lambda event: seen.append(event) or event)
    parent.use(child)

    await parent.emit("event")

    assert seen == ["event"]
    assert child.parent is parent
    assert child.has_parent()


@pytest.mark.asyncio
async def test_child_veto_vetoes_parent():
    parent = Scope("parent")
    child = Scope("child")
    after = []

    child.add_pipe(lambda event: STOP)
    parent.use(child)
    parent.add_pipe(lambda event: after.append(event) or event)

    assert await parent.emit("event") is None
    assert after == []


@pytest.mark.asyncio
async def test_child_transform_reaches_later_parent_pipes():
    parent = Scope("parent")
    child = Scope("child")
    child.add_pipe(lambda event: event.upper())
    parent.use(child)
    parent.add_pipe(lambda event: event + "!")

    assert await parent.emit("hi") == "HI!"


def test_use_rejects_non_scope():
    with pytest.raises(TypeError):
        Scope("parent").use(object())


def test_use_rejects_self():
    scope = Scope("loop")
    with pytest.raises(InvalidStateError):
        scope.use(scope)


def test_parent_scope_lookup():
    class Area(Scope):
        pass

    parent = Area("area")
    child = Scope("child")
    parent.use(child)

    assert child.parent_scope() is parent
    assert child.parent_scope(Area) is parent

    class Other(Scope):
        pass

    with pytest.raises(InvalidStateError):
        child.parent_scope(Other)


def test_parent_scope_without_parent():
    with pytest.raises(InvalidStateError, match="no parent"):
        Scope("orphan").parent_scope()
