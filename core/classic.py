"""
PLEXUS CLASSIC PRESET - Sockets, Ports, Controls, Nodes, Connections

The editor itself only needs entities with an `id`. This module is the
richer layer most editors build on:

- Socket: named type tag of a port (compatibility is judged by extensions)
- Input/Output: ports keyed on a Node; inputs may carry one Control
- Control: inline-editable state; InputControl holds a text/number value
- Node: label + three keyed mappings (inputs, outputs, controls)
- Connection: output key of one node -> input key of another, by node id

Usage:
    number = Socket("number")

    a = Node("A")
    a.add_output("out1", Output(number))
    b = Node("B")
    b.add_input("in1", Input(number))

    conn = Connection(a, "out1", b, "in1")
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.editor import NodeEditor
from core.errors import DuplicateEntityError, InvalidStateError, NotFoundError
from core.ids import generate_id


@dataclass(frozen=True)
class Socket:
    """Named endpoint type. Two sockets with the same name are the same type."""
    name: str


# =============================================================================
# PORTS
# =============================================================================

class Port:
    """
    Connection point of a Node.

    Attributes:
        id: Unique port id
        index: Optional ordering hint for extensions that sort ports
        socket: Socket describing what flows through the port
        label: Optional display label
        multiple_connections: Whether several connections may share the port
    """

    def __init__(
        self,
        socket: Socket,
        label: Optional[str] = None,
        multiple_connections: Optional[bool] = None,
        id: Optional[str] = None,
    ):
        self.id = id or generate_id()
        self.index: Optional[int] = None
        self.socket = socket
        self.label = label
        self.multiple_connections = multiple_connections

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(socket={self.socket.name!r}, "
            f"label={self.label!r}, id={self.id!r})"
        )


class Input(Port):
    """Input port. Single connection by default; owns at most one Control."""

    def __init__(
        self,
        socket: Socket,
        label: Optional[str] = None,
        multiple_connections: bool = False,
        id: Optional[str] = None,
    ):
        super().__init__(socket, label, bool(multiple_connections), id=id)
        self.control: Optional["Control"] = None
        self.show_control = True

    def add_control(self, control: "Control") -> None:
        """
        Attach a control to this input.

        Raises:
            InvalidStateError: If a control is already attached
        """
        if self.control is not None:
            raise InvalidStateError(f"control already added for input {self.id}")
        self.control = control

    def remove_control(self) -> None:
        self.control = None


class Output(Port):
    """Output port. Multiple connections unless explicitly disabled."""

    def __init__(
        self,
        socket: Socket,
        label: Optional[str] = None,
        multiple_connections: Optional[bool] = None,
        id: Optional[str] = None,
    ):
        super().__init__(socket, label, multiple_connections is not False, id=id)


# =============================================================================
# CONTROLS
# =============================================================================

class Control:
    """Unit of inline-editable state."""

    def __init__(self, id: Optional[str] = None):
        self.id = id or generate_id()
        self.index: Optional[int] = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"


class InputControl(Control):
    """
    Text or number field.

    Usage:
        InputControl("text", readonly=True, initial="hello")
        InputControl("number", initial=0, change=lambda v: print(v))

    `change` is called on every `set_value`, even when the value is equal.
    """

    KINDS = ("text", "number")

    def __init__(
        self,
        kind: str = "text",
        readonly: bool = False,
        initial: Any = None,
        change: Optional[Callable[[Any], None]] = None,
        id: Optional[str] = None,
    ):
        if kind not in self.KINDS:
            raise ValueError(f"InputControl kind must be one of {self.KINDS}, got {kind!r}")
        super().__init__(id=id)
        self.kind = kind
        self.readonly = readonly
        self.value = initial
        self.change = change

    def set_value(self, value: Any) -> None:
        self.value = value
        if self.change is not None:
            self.change(value)

    def __repr__(self) -> str:
        return f"InputControl(kind={self.kind!r}, value={self.value!r}, id={self.id!r})"


# =============================================================================
# NODE
# =============================================================================

class Node:
    """
    Graph node with keyed inputs, outputs and controls.

    Each mapping preserves insertion order; keys are unique per mapping.
    Ports and controls belong to exactly one node.
    """

    def __init__(self, label: str, id: Optional[str] = None):
        self.id = id or generate_id()
        self.label = label
        self.selected = False
        self.inputs: Dict[str, Input] = {}
        self.outputs: Dict[str, Output] = {}
        self.controls: Dict[str, Control] = {}

    def has_input(self, key: str) -> bool:
        return key in self.inputs

    def add_input(self, key: str, input: Input) -> None:
        if self.has_input(key):
            raise DuplicateEntityError("input", key)
        self.inputs[key] = input

    def remove_input(self, key: str) -> None:
        self.inputs.pop(key, None)

    def has_output(self, key: str) -> bool:
        return key in self.outputs

    def add_output(self, key: str, output: Output) -> None:
        if self.has_output(key):
            raise DuplicateEntityError("output", key)
        self.outputs[key] = output

    def remove_output(self, key: str) -> None:
        self.outputs.pop(key, None)

    def has_control(self, key: str) -> bool:
        return key in self.controls

    def add_control(self, key: str, control: Control) -> None:
        if self.has_control(key):
            raise DuplicateEntityError("control", key)
        self.controls[key] = control

    def remove_control(self, key: str) -> None:
        self.controls.pop(key, None)

    def __repr__(self) -> str:
        return f"Node(label={self.label!r}, id={self.id!r})"


# =============================================================================
# CONNECTION
# =============================================================================

class Connection:
    """
    Directed edge from `source`'s output key to `target`'s input key.

    Only node ids are kept. Removing an endpoint node from an editor does
    not remove the connection; it is left dangling until removed explicitly.

    Raises:
        NotFoundError: If the source has no such output or the target no
            such input at construction time
    """

    def __init__(
        self,
        source: Node,
        source_output: str,
        target: Node,
        target_input: str,
        id: Optional[str] = None,
    ):
        if not source.has_output(source_output):
            raise NotFoundError("output", f"{source_output} (node {source.id})")
        if not target.has_input(target_input):
            raise NotFoundError("input", f"{target_input} (node {target.id})")

        self.id = id or generate_id()
        self.source: str = source.id
        self.source_output = source_output
        self.target: str = target.id
        self.target_input = target_input

    @classmethod
    def restore(
        cls,
        id: str,
        source: str,
        source_output: str,
        target: str,
        target_input: str,
    ) -> "Connection":
        """Rebuild a connection from stored ids, without endpoint checks."""
        conn = cls.__new__(cls)
        conn.id = id
        conn.source = source
        conn.source_output = source_output
        conn.target = target
        conn.target_input = target_input
        return conn

    def __repr__(self) -> str:
        return (
            f"Connection({self.source}.{self.source_output} -> "
            f"{self.target}.{self.target_input}, id={self.id!r})"
        )


ClassicEditor = NodeEditor[Node, Connection]
