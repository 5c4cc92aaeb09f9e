"""
Connection policies built purely on the pipe API.

None of these are installed by default; the core store accepts any
connection whose id is new. Each installer registers its pipe on the
editor and returns it so it can be removed again with `remove_pipe`.
"""
import logging
from typing import Any, Callable

from core.events import EventType, on
from core.graph_invariants import would_create_cycle
from core.scope import STOP


logger = logging.getLogger("plexus.guards")


def referential_guard(editor) -> Callable:
    """Veto connections whose endpoint nodes are not in the editor."""

    @on(EventType.CONNECTION_CREATE)
    def check_endpoints(event: Any) -> Any:
        conn = event.data
        if not editor.has_node(conn.source) or not editor.has_node(conn.target):
            logger.info(f"Vetoed connection {conn.id}: endpoint node missing")
            return STOP
        return event

    return editor.add_pipe(check_endpoints)


def single_input_guard(editor) -> Callable:
    """
    Veto a connection into a port that is already connected when that port
    does not allow multiple connections.
    """

    def _taken(node_id: str, key: str, attr_node: str, attr_key: str) -> bool:
        return any(
            getattr(c, attr_node) == node_id and getattr(c, attr_key) == key
            for c in editor.get_connections()
        )

    @on(EventType.CONNECTION_CREATE)
    def check_ports(event: Any) -> Any:
        conn = event.data
        target = editor.get_node(conn.target)
        source = editor.get_node(conn.source)

        port = getattr(target, "inputs", {}).get(conn.target_input)
        if port is not None and not port.multiple_connections:
            if _taken(conn.target, conn.target_input, "target", "target_input"):
                logger.info(f"Vetoed connection {conn.id}: input {conn.target_input} is taken")
                return STOP

        port = getattr(source, "outputs", {}).get(conn.source_output)
        if port is not None and not port.multiple_connections:
            if _taken(conn.source, conn.source_output, "source", "source_output"):
                logger.info(f"Vetoed connection {conn.id}: output {conn.source_output} is taken")
                return STOP

        return event

    return editor.add_pipe(check_ports)


def acyclic_guard(editor) -> Callable:
    """Veto connections that would close a cycle."""

    @on(EventType.CONNECTION_CREATE)
    def check_cycle(event: Any) -> Any:
        conn = event.data
        if would_create_cycle(editor, conn.source, conn.target):
            logger.info(f"Vetoed connection {conn.id}: would create a cycle")
            return STOP
        return event

    return editor.add_pipe(check_cycle)


def cascade_removal(editor) -> Callable:
    """
    Remove a node's connections before the node itself.

    Each connection goes through remove_connection. If any of those is
    vetoed, the node removal is vetoed too so no connection is left dangling.
    """

    @on(EventType.NODE_REMOVE)
    async def remove_attached(event: Any) -> Any:
        node_id = event.data.id
        attached = [
            c for c in editor.get_connections()
            if c.source == node_id or c.target == node_id
        ]
        for conn in attached:
            if not await editor.remove_connection(conn.id):
                logger.info(f"Vetoed removal of node {node_id}: connection {conn.id} was kept")
                return STOP
        return event

    return editor.add_pipe(remove_attached)
