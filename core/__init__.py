"""
PLEXUS CORE - Central exports for the node editor core.

This module provides access to:
- The event pipeline (Scope, Signal, STOP)
- The graph store (NodeEditor) and its event taxonomy
- The classic entity preset (Socket, Input, Output, Control, Node, Connection)
- Contract errors (NotFoundError, DuplicateEntityError, InvalidStateError)
"""

from core.errors import (
    EditorError,
    NotFoundError,
    DuplicateEntityError,
    InvalidStateError,
)
from core.ids import generate_id
from core.scope import Scope, Signal, Dispatch, DispatchState, STOP
from core.events import EventType, GraphSnapshot, event_type, on
from core.editor import NodeEditor
from core.classic import (
    Socket,
    Port,
    Input,
    Output,
    Control,
    InputControl,
    Node,
    Connection,
    ClassicEditor,
)

__all__ = [
    # Errors
    "EditorError",
    "NotFoundError",
    "DuplicateEntityError",
    "InvalidStateError",
    # Pipeline
    "generate_id",
    "Scope",
    "Signal",
    "Dispatch",
    "DispatchState",
    "STOP",
    "EventType",
    "GraphSnapshot",
    "event_type",
    "on",
    # Store
    "NodeEditor",
    # Classic preset
    "Socket",
    "Port",
    "Input",
    "Output",
    "Control",
    "InputControl",
    "Node",
    "Connection",
    "ClassicEditor",
]
