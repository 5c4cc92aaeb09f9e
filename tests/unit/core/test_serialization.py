"""
Unit tests for core/serialization.py - snapshot records and codecs
"""
import msgspec
import pytest

from core.classic import Connection, Control, Input, InputControl, Node, Output, Socket
from core.events import GraphSnapshot
from core.serialization import (
    SnapshotRecord,
    decode_snapshot,
    encode_snapshot,
    from_record,
    node_to_record,
    to_record,
)


@pytest.fixture
def sample_snapshot():
    number = Socket("number")

    source = Node("Number")
    source.add_control("value", InputControl("number", initial=3, readonly=True))
    source.add_output("out", Output(number, "Value"))
    source.selected = True

    add = Node("Add")
    a = Input(number, "A")
    a.add_control(InputControl("number", initial=1))
    a.show_control = False
    a.index = 0
    add.add_input("a", a)
    add.add_input("b", Input(number, "B"))
    add.add_output("sum", Output(number, multiple_connections=False))
    add.add_control("note", Control())

    conn = Connection(source, "out", add, "b")
    return GraphSnapshot(nodes=[source, add], connections=[conn])


def test_node_record_fields(sample_snapshot):
    record = node_to_record(sample_snapshot.nodes[1])

    assert record.label == "Add"
    assert list(record.inputs) == ["a", "b"]
    assert record.inputs["a"].socket == "number"
    assert record.inputs["a"].control.kind == "number"
    assert record.inputs["a"].show_control is False
    assert record.outputs["sum"].multiple_connections is False
    assert record.controls["note"].kind is None


def test_json_encoding_is_plain_json(sample_snapshot):
    data = encode_snapshot(sample_snapshot, "json")
    decoded = msgspec.json.decode(data)

    assert [n["label"] for n in decoded["nodes"]] == ["Number", "Add"]
    assert decoded["connections"][0]["source_output"] == "out"


@pytest.mark.parametrize("format", ["json", "msgpack"])
def test_decode_restores_entities(sample_snapshot, format):
    restored = decode_snapshot(encode_snapshot(sample_snapshot, format), format)

    source, add = restored.nodes
    original_source, original_add = sample_snapshot.nodes

    assert [n.id for n in restored.nodes] == [original_source.id, original_add.id]
    assert source.selected is True
    assert source.controls["value"].value == 3
    assert source.controls["value"].readonly is True
    assert source.outputs["out"].label == "Value"
    assert source.outputs["out"].id == original_source.outputs["out"].id

    assert isinstance(add.inputs["a"], Input)
    assert add.inputs["a"].socket == Socket("number")
    assert add.inputs["a"].control.value == 1
    assert add.inputs["a"].show_control is False
    assert add.inputs["a"].index == 0
    assert add.outputs["sum"].multiple_connections is False
    assert type(add.controls["note"]) is Control

    conn = restored.connections[0]
    original_conn = sample_snapshot.connections[0]
    assert (conn.id, conn.source, conn.source_output, conn.target, conn.target_input) == (
        original_conn.id, original_source.id, "out", original_add.id, "b"
    )


def test_change_callback_is_not_encoded():
    node = Node("N")
    node.add_control("v", InputControl("text", initial="x", change=print))

    restored = from_record(to_record(GraphSnapshot(nodes=[node])))

    assert restored.nodes[0].controls["v"].change is None
    assert restored.nodes[0].controls["v"].value == "x"


def test_dangling_connections_survive_round_trip():
    conn = Connection.restore("c1", "gone", "out", "also-gone", "in")
    restored = decode_snapshot(encode_snapshot(GraphSnapshot(connections=[conn])))

    assert restored.connections[0].source == "gone"


def test_unknown_format_rejected(sample_snapshot):
    with pytest.raises(ValueError, match="Unknown snapshot format"):
        encode_snapshot(sample_snapshot, "yaml")
    with pytest.raises(ValueError):
        decode_snapshot(b"{}", "yaml")


def test_invalid_payload_raises():
    with pytest.raises(msgspec.ValidationError):
        decode_snapshot(b'{"nodes": [{"label": "no id"}]}')


def test_empty_record():
    assert from_record(SnapshotRecord()) == GraphSnapshot()
