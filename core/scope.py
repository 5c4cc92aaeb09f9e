"""
PLEXUS SCOPE - The Cancellable Event Pipeline

A Scope is a named dispatcher that pushes every event through an ordered
list of pipes. Each pipe receives the current event and either:

- returns an event (the same one or a replacement) -> dispatch continues
- returns None                                     -> dispatch continues unchanged
- returns STOP                                     -> dispatch is vetoed
- raises                                           -> dispatch fails, error propagates

Pipes may be plain callables or coroutine functions. Dispatch is strictly
sequential: pipe N+1 never starts before pipe N (and whatever it awaits)
has finished.

Architecture:
    caller -> Scope.emit(event) -> Signal -> [pipe, pipe, child scope, ...]

Per emission:
    IDLE -> DISPATCHING -> COMPLETED | STOPPED | FAILED

Scopes nest with `use()`: the child becomes a pipe of the parent, so a
child veto vetoes the parent emission too.

Thread Safety:
    NOT thread-safe. A scope is a single logical actor; serialize concurrent
    emissions at the call site if strict isolation is needed.
"""
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Type, TypeVar, Union

from core.errors import InvalidStateError


logger = logging.getLogger("plexus.scope")


class _Stop:
    """Veto sentinel type. Use the STOP singleton."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "STOP"

    def __bool__(self) -> bool:
        return False


STOP = _Stop()

Pipe = Callable[[Any], Union[Any, Awaitable[Any]]]
S = TypeVar("S", bound="Scope")


class DispatchState(str, Enum):
    """Lifecycle of a single emission."""
    IDLE = "idle"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


class Dispatch:
    """
    Record of one emission through a Signal.

    Attributes:
        event: Event in flight; the final event once COMPLETED
        state: Current DispatchState
        pipes_run: Number of pipes that were invoked
        error: Exception raised by a pipe (FAILED only)
    """

    def __init__(self, event: Any):
        self.event = event
        self.state = DispatchState.IDLE
        self.pipes_run = 0
        self.error: Optional[BaseException] = None

    @property
    def completed(self) -> bool:
        return self.state is DispatchState.COMPLETED

    @property
    def stopped(self) -> bool:
        return self.state is DispatchState.STOPPED

    @property
    def result(self) -> Any:
        """The final event if the chain ran to completion, else None."""
        return self.event if self.completed else None

    def __repr__(self) -> str:
        return f"Dispatch(state={self.state.value}, pipes_run={self.pipes_run})"


class Signal:
    """
    Ordered pipe list with sequential, short-circuiting dispatch.

    The pipe list is snapshotted when a dispatch starts: pipes added or
    removed while it runs take effect from the next dispatch.
    """

    def __init__(self):
        self._pipes: List[Pipe] = []

    @property
    def pipes(self) -> List[Pipe]:
        """Registered pipes in dispatch order (copy)."""
        return list(self._pipes)

    def add_pipe(self, pipe: Pipe) -> None:
        if not callable(pipe):
            raise TypeError(f"pipe must be callable, got {type(pipe).__name__}")
        self._pipes.append(pipe)

    def remove_pipe(self, pipe: Pipe) -> bool:
        """Remove a pipe (same instance). Returns False if it was not registered."""
        if pipe in self._pipes:
            self._pipes.remove(pipe)
            return True
        return False

    def pipe_count(self) -> int:
        return len(self._pipes)

    async def dispatch(self, event: Any) -> Dispatch:
        """
        Run `event` through every pipe and report how the emission ended.

        Raises:
            Whatever a pipe raises. The Dispatch is marked FAILED first.
        """
        record = Dispatch(event)
        record.state = DispatchState.DISPATCHING
        current = event

        for pipe in tuple(self._pipes):
            record.pipes_run += 1
            try:
                result = pipe(current)
                if inspect.isawaitable(result):
                    result = await result
            except BaseException as e:
                record.state = DispatchState.FAILED
                record.error = e
                record.event = current
                raise

            if result is STOP:
                record.state = DispatchState.STOPPED
                record.event = current
                return record
            if result is not None:
                current = result

        record.event = current
        record.state = DispatchState.COMPLETED
        return record

    async def emit(self, event: Any) -> Any:
        """Dispatch and return the final event, or None if a pipe vetoed it."""
        record = await self.dispatch(event)
        return record.result


class Scope:
    """
    Named, hierarchical event scope.

    The name is for diagnostics only; it plays no part in routing.

    Usage:
        scope = Scope("editor")

        async def audit(event):
            print(event)
            return event

        scope.add_pipe(audit)
        result = await scope.emit(SomeEvent(...))   # falsy if vetoed
    """

    def __init__(self, name: str):
        self.name = name
        self.signal = Signal()
        self.parent: Optional["Scope"] = None

    def add_pipe(self, pipe: Pipe) -> Pipe:
        """Register a pipe at the end of the chain. Returns the pipe."""
        self.signal.add_pipe(pipe)
        logger.debug(f"Added pipe {getattr(pipe, '__name__', pipe)!s} to scope {self.name}")
        return pipe

    def remove_pipe(self, pipe: Pipe) -> bool:
        removed = self.signal.remove_pipe(pipe)
        if removed:
            logger.debug(f"Removed pipe {getattr(pipe, '__name__', pipe)!s} from scope {self.name}")
        return removed

    def pipe_count(self) -> int:
        return self.signal.pipe_count()

    def use(self, scope: S) -> S:
        """
        Nest `scope` under this one.

        Every event of this scope is forwarded through the child's signal at
        the current position in the chain. A veto in the child vetoes here.
        """
        if not isinstance(scope, Scope):
            raise TypeError("cannot use non-Scope instance")
        if scope is self:
            raise InvalidStateError(f"scope {self.name} cannot use itself")

        scope.set_parent(self)

        async def forward(event: Any) -> Any:
            record = await scope.signal.dispatch(event)
            if record.stopped:
                return STOP
            return record.event

        forward.__name__ = f"forward_to_{scope.name}"
        self.add_pipe(forward)
        return scope

    def set_parent(self, scope: "Scope") -> None:
        self.parent = scope

    def has_parent(self) -> bool:
        return self.parent is not None

    def parent_scope(self, type: Optional[Type[S]] = None) -> S:
        """
        Return the parent scope, optionally checking its type.

        Raises:
            InvalidStateError: If there is no parent or it is not a `type`
        """
        if self.parent is None:
            raise InvalidStateError(f"scope {self.name} has no parent")
        if type is not None and not isinstance(self.parent, type):
            raise InvalidStateError(
                f"parent of scope {self.name} is {self.parent.__class__.__name__}, "
                f"not {type.__name__}"
            )
        return self.parent

    async def dispatch(self, event: Any) -> Dispatch:
        try:
            record = await self.signal.dispatch(event)
        except Exception as e:
            logger.debug(f"Dispatch failed in scope {self.name}: {e!r}")
            raise
        if record.stopped:
            logger.debug(f"Event {type(event).__name__} vetoed in scope {self.name}")
        return record

    async def emit(self, event: Any) -> Any:
        """Final event on completion, None if any pipe returned STOP."""
        record = await self.dispatch(event)
        return record.result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, pipes={self.pipe_count()})"
