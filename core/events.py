"""
PLEXUS EVENTS - The Editor's Event Taxonomy

Every mutation of the graph store is announced as a tagged event:

    nodecreate / nodecreated           noderemove / noderemoved
    connectioncreate / connectioncreated
    connectionremove / connectionremoved
    clear / clearcancelled / cleared
    import / imported                  export / exported

Naming convention:
- bare verb      = pre-event, vetoable (a pipe may return STOP)
- past tense     = post-event, informational
- *cancelled     = fired only when the matching pre-event was vetoed

Each variant is a msgspec.Struct tagged on the "type" field, so pipes can
match on the class (or `event.kind`) and the whole union stays encodable
when its payloads are.
"""
import functools
import inspect
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, List, Optional, Union

import msgspec


class EventType(str, Enum):
    """Tags of the events emitted by the node editor."""
    NODE_CREATE = "nodecreate"
    NODE_CREATED = "nodecreated"
    NODE_REMOVE = "noderemove"
    NODE_REMOVED = "noderemoved"
    CONNECTION_CREATE = "connectioncreate"
    CONNECTION_CREATED = "connectioncreated"
    CONNECTION_REMOVE = "connectionremove"
    CONNECTION_REMOVED = "connectionremoved"
    CLEAR = "clear"
    CLEAR_CANCELLED = "clearcancelled"
    CLEARED = "cleared"
    IMPORT = "import"
    IMPORTED = "imported"
    EXPORT = "export"
    EXPORTED = "exported"


VETOABLE_EVENTS = frozenset({
    EventType.NODE_CREATE,
    EventType.NODE_REMOVE,
    EventType.CONNECTION_CREATE,
    EventType.CONNECTION_REMOVE,
    EventType.CLEAR,
    EventType.IMPORT,
    EventType.EXPORT,
})


# =============================================================================
# SNAPSHOT (Import/Export Payload)
# =============================================================================

class GraphSnapshot(msgspec.Struct, kw_only=True):
    """
    Flat, order-preserving view of the store at a point in time.

    Connections reference nodes by id only; nothing else is cross-linked.
    """
    nodes: List[Any] = msgspec.field(default_factory=list)
    connections: List[Any] = msgspec.field(default_factory=list)


# =============================================================================
# EVENT VARIANTS
# =============================================================================

class Event(msgspec.Struct, tag_field="type"):
    """Base of all editor events. `kind` is the variant's EventType."""
    kind: ClassVar[EventType]


class NodeCreate(Event, tag=EventType.NODE_CREATE.value):
    kind: ClassVar[EventType] = EventType.NODE_CREATE
    data: Any


class NodeCreated(Event, tag=EventType.NODE_CREATED.value):
    kind: ClassVar[EventType] = EventType.NODE_CREATED
    data: Any


class NodeRemove(Event, tag=EventType.NODE_REMOVE.value):
    kind: ClassVar[EventType] = EventType.NODE_REMOVE
    data: Any


class NodeRemoved(Event, tag=EventType.NODE_REMOVED.value):
    kind: ClassVar[EventType] = EventType.NODE_REMOVED
    data: Any


class ConnectionCreate(Event, tag=EventType.CONNECTION_CREATE.value):
    kind: ClassVar[EventType] = EventType.CONNECTION_CREATE
    data: Any


class ConnectionCreated(Event, tag=EventType.CONNECTION_CREATED.value):
    kind: ClassVar[EventType] = EventType.CONNECTION_CREATED
    data: Any


class ConnectionRemove(Event, tag=EventType.CONNECTION_REMOVE.value):
    kind: ClassVar[EventType] = EventType.CONNECTION_REMOVE
    data: Any


class ConnectionRemoved(Event, tag=EventType.CONNECTION_REMOVED.value):
    kind: ClassVar[EventType] = EventType.CONNECTION_REMOVED
    data: Any


class Clear(Event, tag=EventType.CLEAR.value):
    kind: ClassVar[EventType] = EventType.CLEAR


class ClearCancelled(Event, tag=EventType.CLEAR_CANCELLED.value):
    kind: ClassVar[EventType] = EventType.CLEAR_CANCELLED


class Cleared(Event, tag=EventType.CLEARED.value):
    kind: ClassVar[EventType] = EventType.CLEARED


class Import(Event, tag=EventType.IMPORT.value):
    kind: ClassVar[EventType] = EventType.IMPORT
    data: GraphSnapshot


class Imported(Event, tag=EventType.IMPORTED.value):
    kind: ClassVar[EventType] = EventType.IMPORTED
    data: GraphSnapshot


class Export(Event, tag=EventType.EXPORT.value):
    kind: ClassVar[EventType] = EventType.EXPORT
    data: GraphSnapshot


class Exported(Event, tag=EventType.EXPORTED.value):
    kind: ClassVar[EventType] = EventType.EXPORTED
    data: GraphSnapshot


EditorEvent = Union[
    NodeCreate, NodeCreated, NodeRemove, NodeRemoved,
    ConnectionCreate, ConnectionCreated, ConnectionRemove, ConnectionRemoved,
    Clear, ClearCancelled, Cleared,
    Import, Imported, Export, Exported,
]


# =============================================================================
# HELPERS
# =============================================================================

def event_type(event: Any) -> Optional[EventType]:
    """Return the EventType of an editor event, or None for foreign events."""
    if isinstance(event, Event):
        return event.kind
    return None


def event_entity_id(event: Any) -> Optional[str]:
    """Id of the node/connection an event carries, if any."""
    data = getattr(event, "data", None)
    return getattr(data, "id", None)


def on(*types: Union[EventType, str]) -> Callable[[Callable], Callable]:
    """
    Restrict a handler to some event variants.

    The wrapped pipe passes every other event through untouched, so
    handlers stay small:

        @on(EventType.NODE_CREATE)
        def no_empty_labels(event):
            if not event.data.label:
                return STOP
            return event

        editor.add_pipe(no_empty_labels)
    """
    wanted = frozenset(EventType(t) for t in types)

    def decorator(handler: Callable) -> Callable:
        @functools.wraps(handler)
        async def pipe(event: Any) -> Any:
            if event_type(event) not in wanted:
                return event
            result = handler(event)
            if inspect.isawaitable(result):
                result = await result
            return result
        return pipe

    return decorator


def types_of(events: Iterable[Any]) -> List[str]:
    """Tags of a sequence of events, for assertions and diagnostics."""
    return [e.kind.value if isinstance(e, Event) else type(e).__name__ for e in events]
