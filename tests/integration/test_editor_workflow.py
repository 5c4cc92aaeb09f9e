"""
Integration tests: editor + extensions + serialization + CLI

End-to-end scenarios:
- Build a graph with extensions attached, export, encode, decode, import
- Nested scopes acting as independent extensions
- The inspect/convert commands on real files
"""
import asyncio

import pytest

from core.classic import ClassicEditor, Connection, Input, InputControl, Node, Output, Socket
from core.editor import NodeEditor
from core.events import EventType, GraphSnapshot, on
from core.graph_invariants import validate_editor
from core.guards import referential_guard, single_input_guard
from core.scope import STOP, Scope
from core.serialization import decode_snapshot, encode_snapshot
from infrastructure.logger import EventRecorder
import main


def _math_graph():
    number = Socket("number")

    one = Node("Number")
    one.add_control("value", InputControl("number", initial=1))
    one.add_output("value", Output(number))

    two = Node("Number")
    two.add_control("value", InputControl("number", initial=2))
    two.add_output("value", Output(number))

    add = Node("Add")
    a = Input(number, "A")
    a.add_control(InputControl("number", initial=0))
    add.add_input("a", a)
    add.add_input("b", Input(number, "B"))
    add.add_output("sum", Output(number, "Sum"))

    connections = [
        Connection(one, "value", add, "a"),
        Connection(two, "value", add, "b"),
    ]
    return [one, two, add], connections


@pytest.mark.asyncio
@pytest.mark.parametrize("format", ["json", "msgpack"])
async def test_export_import_round_trip(format):
    """
    Validate that export -> encode -> decode -> import on a fresh editor
    reproduces the same ids and keys.
    """
    nodes, connections = _math_graph()
    editor = ClassicEditor()
    referential_guard(editor)
    for node in nodes:
        assert await editor.add_node(node)
    for conn in connections:
        assert await editor.add_connection(conn)

    snapshot = await editor.export_snapshot()
    data = encode_snapshot(snapshot, format)

    fresh = ClassicEditor()
    recorder = EventRecorder().attach(fresh)
    assert await fresh.import_snapshot(decode_snapshot(data, format))

    assert [n.id for n in fresh.get_nodes()] == [n.id for n in nodes]
    assert [c.id for c in fresh.get_connections()] == [c.id for c in connections]
    for original, restored in zip(nodes, fresh.get_nodes()):
        assert list(restored.inputs) == list(original.inputs)
        assert list(restored.outputs) == list(original.outputs)
        assert list(restored.controls) == list(original.controls)

    assert recorder.types()[0] == "import"
    assert recorder.types()[-1] == "imported"
    assert validate_editor(fresh).violations == []


@pytest.mark.asyncio
async def test_scenario_remove_node_leaves_dangling_connection():
    number = Socket("number")
    a = Node("A")
    a.add_output("out1", Output(number))
    b = Node("B")
    b.add_input("in1", Input(number))

    editor = ClassicEditor()
    await editor.add_node(a)
    await editor.add_node(b)
    conn = Connection(a, "out1", b, "in1")

    assert await editor.add_connection(conn) is True
    assert await editor.remove_node(a.id) is True

    assert editor.get_nodes() == [b]
    assert editor.get_connections() == [conn]
    assert validate_editor(editor).metrics["dangling_connections"] == 1


@pytest.mark.asyncio
async def test_nested_scope_extension_can_veto():
    """
    A plugin living in its own scope vetoes through the editor.
    """
    editor = NodeEditor()
    plugin = Scope("readonly-plugin")
    locked = set()

    @on(EventType.NODE_REMOVE, EventType.CONNECTION_REMOVE)
    def protect(event):
        if event.data.id in locked:
            return STOP
        return event

    plugin.add_pipe(protect)
    editor.use(plugin)

    node = Node("Pinned")
    await editor.add_node(node)
    locked.add(node.id)

    assert await editor.remove_node(node.id) is False
    assert await editor.clear() is True
    assert editor.get_nodes() == [node]
    assert plugin.parent_scope(NodeEditor) is editor


@pytest.mark.asyncio
async def test_guards_and_recorder_together():
    nodes, connections = _math_graph()
    one, two, add = nodes
    editor = ClassicEditor()
    recorder = EventRecorder().attach(editor)
    single_input_guard(editor)

    for node in nodes:
        await editor.add_node(node)
    await editor.add_connection(connections[0])

    again = Connection(two, "value", add, "a")
    assert await editor.add_connection(again) is False

    # The recorder runs first, so it saw the vetoed pre-event
    created = recorder.get_by_type(EventType.CONNECTION_CREATE)
    assert [e.entity_id for e in created] == [connections[0].id, again.id]
    assert len(recorder.get_by_type(EventType.CONNECTION_CREATED)) == 1


# =============================================================================
# CLI
# =============================================================================

async def _snapshot_bytes(format="json", remove_first=False):
    nodes, connections = _math_graph()
    editor = ClassicEditor()
    for node in nodes:
        await editor.add_node(node)
    for conn in connections:
        await editor.add_connection(conn)
    if remove_first:
        await editor.remove_node(nodes[0].id)
    return encode_snapshot(await editor.export_snapshot(), format)


@pytest.mark.asyncio
async def test_cli_inspect(tmp_path, capsys):
    path = tmp_path / "graph.json"
    path.write_bytes(await _snapshot_bytes())

    code = await _run_cli(["inspect", str(path)])

    out = capsys.readouterr().out
    assert code == 0
    assert "nodes:       3" in out
    assert "No violations." in out


@pytest.mark.asyncio
async def test_cli_inspect_reports_warnings(tmp_path, capsys):
    path = tmp_path / "graph.json"
    path.write_bytes(await _snapshot_bytes(remove_first=True))

    code = await _run_cli(["inspect", str(path)])

    out = capsys.readouterr().out
    assert code == 0
    assert "[WARNING] connection_endpoints" in out


@pytest.mark.asyncio
async def test_cli_convert(tmp_path, capsys):
    src = tmp_path / "graph.json"
    dst = tmp_path / "graph.msgpack"
    src.write_bytes(await _snapshot_bytes())

    code = await _run_cli(["convert", str(src), str(dst)])

    assert code == 0
    restored = decode_snapshot(dst.read_bytes(), "msgpack")
    assert len(restored.nodes) == 3
    assert "(msgpack)" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_cli_inspect_reports_duplicate_ids(tmp_path, capsys):
    """
    Validate that duplicate ids are reported as violations with exit code 1
    instead of failing the import.
    """
    a = Node("A")
    snapshot = GraphSnapshot(nodes=[a, Node("B", id=a.id)])
    path = tmp_path / "graph.json"
    path.write_bytes(encode_snapshot(snapshot))

    code = await _run_cli(["inspect", str(path)])

    out = capsys.readouterr().out
    assert code == 1
    assert "[ERROR] unique_node_ids" in out
    assert "events:" not in out


@pytest.mark.asyncio
async def test_cli_inspect_closes_recorder_when_import_fails(tmp_path, monkeypatch):
    path = tmp_path / "graph.json"
    path.write_bytes(await _snapshot_bytes())
    closed = []

    async def failing_import(self, snapshot):
        raise RuntimeError("import failed")

    monkeypatch.setattr(NodeEditor, "import_snapshot", failing_import)
    monkeypatch.setattr(EventRecorder, "close", lambda self: closed.append(self))

    with pytest.raises(RuntimeError, match="import failed"):
        await _run_cli(["inspect", str(path)])

    assert len(closed) == 1


async def _run_cli(argv):
    """main() drives its own event loop, so run it off this test's loop."""
    return await asyncio.to_thread(main.main, argv)


def test_cli_without_command(capsys):
    assert main.main([]) == 2
