"""
PLEXUS SERIALIZATION - Snapshot Encoding for the Classic Preset

GraphSnapshot holds live entity objects. To persist or ship one, it is
converted to plain msgspec records and encoded as JSON or msgpack:

    GraphSnapshot --to_record--> SnapshotRecord --encode--> bytes
    bytes --decode--> SnapshotRecord --from_record--> GraphSnapshot

Records carry ids, keys, labels, socket names, port flags and control
state. Control `change` callbacks are runtime-only and are not encoded.
Controls other than InputControl round-trip as plain Control.

Connections are restored without endpoint checks: a snapshot may hold
dangling connections (the editor never cascades node removal).
"""
from typing import Any, Dict, List, Optional

import msgspec

from core.classic import Connection, Control, Input, InputControl, Node, Output, Socket
from core.events import GraphSnapshot


SNAPSHOT_FORMATS = ("json", "msgpack")


# =============================================================================
# RECORDS
# =============================================================================

class ControlRecord(msgspec.Struct, kw_only=True, omit_defaults=True):
    id: str
    index: Optional[int] = None
    kind: Optional[str] = None          # "text" | "number" for InputControl
    value: Any = None
    readonly: bool = False


class PortRecord(msgspec.Struct, kw_only=True, omit_defaults=True):
    id: str
    socket: str                         # Socket.name
    multiple_connections: bool
    label: Optional[str] = None
    index: Optional[int] = None
    control: Optional[ControlRecord] = None   # inputs only
    show_control: bool = True


class NodeRecord(msgspec.Struct, kw_only=True):
    id: str
    label: str
    selected: bool = False
    inputs: Dict[str, PortRecord] = msgspec.field(default_factory=dict)
    outputs: Dict[str, PortRecord] = msgspec.field(default_factory=dict)
    controls: Dict[str, ControlRecord] = msgspec.field(default_factory=dict)


class ConnectionRecord(msgspec.Struct, kw_only=True):
    id: str
    source: str
    source_output: str
    target: str
    target_input: str


class SnapshotRecord(msgspec.Struct, kw_only=True):
    nodes: List[NodeRecord] = msgspec.field(default_factory=list)
    connections: List[ConnectionRecord] = msgspec.field(default_factory=list)


# =============================================================================
# ENTITY <-> RECORD
# =============================================================================

def control_to_record(control: Control) -> ControlRecord:
    if isinstance(control, InputControl):
        return ControlRecord(
            id=control.id,
            index=control.index,
            kind=control.kind,
            value=control.value,
            readonly=control.readonly,
        )
    return ControlRecord(id=control.id, index=control.index)


def control_from_record(record: ControlRecord) -> Control:
    if record.kind is None:
        control = Control(id=record.id)
    else:
        control = InputControl(
            record.kind,
            readonly=record.readonly,
            initial=record.value,
            id=record.id,
        )
    control.index = record.index
    return control


def _port_to_record(port) -> PortRecord:
    control = getattr(port, "control", None)
    return PortRecord(
        id=port.id,
        socket=port.socket.name,
        multiple_connections=port.multiple_connections,
        label=port.label,
        index=port.index,
        control=control_to_record(control) if control is not None else None,
        show_control=getattr(port, "show_control", True),
    )


def node_to_record(node: Node) -> NodeRecord:
    return NodeRecord(
        id=node.id,
        label=node.label,
        selected=bool(node.selected),
        inputs={key: _port_to_record(port) for key, port in node.inputs.items()},
        outputs={key: _port_to_record(port) for key, port in node.outputs.items()},
        controls={key: control_to_record(c) for key, c in node.controls.items()},
    )


def node_from_record(record: NodeRecord) -> Node:
    node = Node(record.label, id=record.id)
    node.selected = record.selected

    for key, rec in record.inputs.items():
        port = Input(Socket(rec.socket), rec.label, rec.multiple_connections, id=rec.id)
        port.index = rec.index
        port.show_control = rec.show_control
        if rec.control is not None:
            port.add_control(control_from_record(rec.control))
        node.add_input(key, port)

    for key, rec in record.outputs.items():
        port = Output(Socket(rec.socket), rec.label, rec.multiple_connections, id=rec.id)
        port.index = rec.index
        node.add_output(key, port)

    for key, rec in record.controls.items():
        node.add_control(key, control_from_record(rec))

    return node


def connection_to_record(connection: Connection) -> ConnectionRecord:
    return ConnectionRecord(
        id=connection.id,
        source=connection.source,
        source_output=connection.source_output,
        target=connection.target,
        target_input=connection.target_input,
    )


def connection_from_record(record: ConnectionRecord) -> Connection:
    return Connection.restore(
        record.id,
        record.source,
        record.source_output,
        record.target,
        record.target_input,
    )


def to_record(snapshot: GraphSnapshot) -> SnapshotRecord:
    """Convert a snapshot of classic entities to encodable records."""
    return SnapshotRecord(
        nodes=[node_to_record(n) for n in snapshot.nodes],
        connections=[connection_to_record(c) for c in snapshot.connections],
    )


def from_record(record: SnapshotRecord) -> GraphSnapshot:
    """Rebuild fresh classic entities from records, preserving order."""
    return GraphSnapshot(
        nodes=[node_from_record(n) for n in record.nodes],
        connections=[connection_from_record(c) for c in record.connections],
    )


# =============================================================================
# BYTES
# =============================================================================

# Pre-compiled encoders/decoders, reused across calls
_json_encoder = msgspec.json.Encoder()
_json_decoder = msgspec.json.Decoder(type=SnapshotRecord)
_msgpack_encoder = msgspec.msgpack.Encoder()
_msgpack_decoder = msgspec.msgpack.Decoder(type=SnapshotRecord)


def _check_format(format: str) -> None:
    if format not in SNAPSHOT_FORMATS:
        raise ValueError(f"Unknown snapshot format {format!r}, expected one of {SNAPSHOT_FORMATS}")


def encode_snapshot(snapshot: GraphSnapshot, format: str = "json") -> bytes:
    """
    Encode a snapshot to bytes.

    Raises:
        ValueError: If format is not "json" or "msgpack"
    """
    _check_format(format)
    record = to_record(snapshot)
    if format == "json":
        return _json_encoder.encode(record)
    return _msgpack_encoder.encode(record)


def decode_snapshot(data: bytes, format: str = "json") -> GraphSnapshot:
    """
    Decode bytes produced by encode_snapshot.

    Raises:
        ValueError: If format is not "json" or "msgpack"
        msgspec.ValidationError: If the payload does not match the schema
        msgspec.DecodeError: If the payload is malformed
    """
    _check_format(format)
    if format == "json":
        record = _json_decoder.decode(data)
    else:
        record = _msgpack_decoder.decode(data)
    return from_record(record)
