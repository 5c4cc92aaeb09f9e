"""
PLEXUS NODE EDITOR - The Authoritative Graph Store

The editor owns the node and connection collections. It never changes them
directly on request; every mutation is a three-step protocol:

    1. pre-event  (nodecreate, noderemove, ...)   any pipe may veto
    2. mutation   (append / remove)                only if accepted
    3. post-event (nodecreated, noderemoved, ...)  informational

A veto is a normal outcome: the operation returns False (or None for
export_snapshot) and nothing changes. Contract errors (duplicate ids,
unknown ids) raise before any event is emitted.

If a pre-event pipe raises, nothing has been mutated. If a post-event pipe
raises, the mutation is already applied and stays applied.

The editor is generic over the node and connection types; anything with an
`id` attribute qualifies. See core.classic for the standard entity types.

Usage:
    editor = NodeEditor()
    editor.add_pipe(my_extension)

    await editor.add_node(node)              # True, or False if vetoed
    await editor.add_connection(connection)
    snapshot = await editor.export_snapshot()
"""
import logging
from typing import Generic, List, Optional, Protocol, TypeVar

from core.errors import DuplicateEntityError, NotFoundError
from core.events import (
    GraphSnapshot,
    NodeCreate, NodeCreated, NodeRemove, NodeRemoved,
    ConnectionCreate, ConnectionCreated, ConnectionRemove, ConnectionRemoved,
    Clear, ClearCancelled, Cleared,
    Import, Imported, Export, Exported,
)
from core.scope import Scope


logger = logging.getLogger("plexus.editor")


class HasId(Protocol):
    """Minimal capability of anything the editor stores."""
    id: str


N = TypeVar("N", bound=HasId)
C = TypeVar("C", bound=HasId)


class NodeEditor(Scope, Generic[N, C]):
    """
    Event-governed store of nodes and connections.

    Thread Safety:
        NOT thread-safe, and concurrent un-awaited operations are not
        isolated from each other: two add_node calls for the same id may
        both pass the duplicate check while a pipe is suspended. Serialize
        calls at the call site if that matters.
    """

    def __init__(self, name: str = "NodeEditor"):
        super().__init__(name)
        self._nodes: List[N] = []
        self._connections: List[C] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_node(self, id: str) -> Optional[N]:
        """Node with the given id, or None."""
        for node in self._nodes:
            if node.id == id:
                return node
        return None

    def get_nodes(self) -> List[N]:
        """Live, ordered node collection. Do not mutate it directly."""
        return self._nodes

    def has_node(self, id: str) -> bool:
        return self.get_node(id) is not None

    def get_connection(self, id: str) -> Optional[C]:
        """Connection with the given id, or None."""
        for connection in self._connections:
            if connection.id == id:
                return connection
        return None

    def get_connections(self) -> List[C]:
        """Live, ordered connection collection. Do not mutate it directly."""
        return self._connections

    def has_connection(self, id: str) -> bool:
        return self.get_connection(id) is not None

    def _index_of(self, items: List, id: str) -> int:
        for i, item in enumerate(items):
            if item.id == id:
                return i
        return -1

    def _discard(self, items: List, id: str) -> None:
        index = self._index_of(items, id)
        if index >= 0:
            del items[index]

    # =========================================================================
    # NODE OPERATIONS
    # =========================================================================

    async def add_node(self, node: N) -> bool:
        """
        Add a node to the store.

        Returns:
            True if added, False if a pipe vetoed `nodecreate`

        Raises:
            DuplicateEntityError: If a node with the same id is present
        """
        if self.has_node(node.id):
            raise DuplicateEntityError("node", node.id)

        if not (await self.dispatch(NodeCreate(node))).completed:
            return False

        self._nodes.append(node)
        logger.info(f"Added node {node.id} to {self.name}")

        await self.emit(NodeCreated(node))
        return True

    async def remove_node(self, id: str) -> bool:
        """
        Remove a node. Its connections are NOT removed.

        Returns:
            True if removed, False if a pipe vetoed `noderemove`

        Raises:
            NotFoundError: If no node has this id
        """
        index = self._index_of(self._nodes, id)
        if index < 0:
            raise NotFoundError("node", id)
        node = self._nodes[index]

        if not (await self.dispatch(NodeRemove(node))).completed:
            return False

        # Pipes may have reordered the store while suspended
        self._discard(self._nodes, id)
        logger.info(f"Removed node {id} from {self.name}")

        await self.emit(NodeRemoved(node))
        return True

    # =========================================================================
    # CONNECTION OPERATIONS
    # =========================================================================

    async def add_connection(self, connection: C) -> bool:
        """
        Add a connection to the store.

        Returns:
            True if added, False if a pipe vetoed `connectioncreate`

        Raises:
            DuplicateEntityError: If a connection with the same id is present
        """
        if self.has_connection(connection.id):
            raise DuplicateEntityError("connection", connection.id)

        if not (await self.dispatch(ConnectionCreate(connection))).completed:
            return False

        self._connections.append(connection)
        logger.info(f"Added connection {connection.id} to {self.name}")

        await self.emit(ConnectionCreated(connection))
        return True

    async def remove_connection(self, id: str) -> bool:
        """
        Remove a connection.

        Returns:
            True if removed, False if a pipe vetoed `connectionremove`

        Raises:
            NotFoundError: If no connection has this id
        """
        index = self._index_of(self._connections, id)
        if index < 0:
            raise NotFoundError("connection", id)
        connection = self._connections[index]

        if not (await self.dispatch(ConnectionRemove(connection))).completed:
            return False

        self._discard(self._connections, id)
        logger.info(f"Removed connection {id} from {self.name}")

        await self.emit(ConnectionRemoved(connection))
        return True

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    async def clear(self) -> bool:
        """
        Remove every connection, then every node.

        Each removal goes through remove_connection/remove_node, so it emits
        its own events and can be vetoed individually.

        Returns:
            False (after emitting `clearcancelled`) if `clear` was vetoed
        """
        if not (await self.dispatch(Clear())).completed:
            await self.emit(ClearCancelled())
            return False

        for connection in list(self._connections):
            await self.remove_connection(connection.id)
        for node in list(self._nodes):
            await self.remove_node(node.id)

        logger.info(f"Cleared {self.name}")
        await self.emit(Cleared())
        return True

    async def import_snapshot(self, snapshot: GraphSnapshot) -> bool:
        """
        Add every node, then every connection, of a snapshot in order.

        A vetoed individual add is skipped; contract errors propagate and
        leave whatever was added so far in place.

        Returns:
            False if `import` was vetoed
        """
        if not (await self.dispatch(Import(snapshot))).completed:
            return False

        for node in snapshot.nodes:
            await self.add_node(node)
        for connection in snapshot.connections:
            await self.add_connection(connection)

        logger.info(
            f"Imported {len(snapshot.nodes)} nodes and "
            f"{len(snapshot.connections)} connections into {self.name}"
        )
        await self.emit(Imported(snapshot))
        return True

    async def export_snapshot(self) -> Optional[GraphSnapshot]:
        """
        Capture the current nodes and connections in collection order.

        `export` is emitted with an empty snapshot; the same object is filled
        and then passed to `exported`.

        Returns:
            The populated snapshot, or None if `export` was vetoed
        """
        snapshot = GraphSnapshot()

        if not (await self.dispatch(Export(snapshot))).completed:
            return None

        snapshot.nodes.extend(self._nodes)
        snapshot.connections.extend(self._connections)

        await self.emit(Exported(snapshot))
        return snapshot
