"""
PLEXUS GRAPH INVARIANTS - Store Health Checks

The editor keeps its own invariants on every mutation (unique ids) but
deliberately allows one to lapse: removing a node never removes its
connections. This module inspects a store (or a snapshot) and reports
what a collaborator would want to know before persisting or rendering it.

Invariants Checked:
1. Node ids are unique                                  (ERROR)
2. Connection ids are unique                            (ERROR)
3. Connections reference nodes in the store             (WARNING, dangling)
4. Referenced output/input keys exist on those nodes    (WARNING)

Metrics come from a rustworkx PyDiGraph built from the valid connections:
node/connection counts, components, acyclicity.
"""
import rustworkx as rx
from typing import Any, Dict, List, Optional, Set, Tuple
from dataclasses import dataclass, field
from enum import Enum

from core.events import GraphSnapshot


# =============================================================================
# INVARIANT RESULTS
# =============================================================================

class InvariantSeverity(Enum):
    """Severity levels for invariant violations."""
    ERROR = "error"      # The store is corrupt
    WARNING = "warning"  # Allowed, but usually a caller bug
    INFO = "info"        # For metrics/diagnostics


@dataclass
class InvariantViolation:
    """A specific invariant violation."""
    invariant: str
    severity: InvariantSeverity
    message: str
    nodes_involved: List[str] = field(default_factory=list)
    connections_involved: List[str] = field(default_factory=list)


@dataclass
class InvariantReport:
    """Complete invariant validation report."""
    valid: bool
    violations: List[InvariantViolation]
    metrics: Dict[str, Any]

    @property
    def errors(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.ERROR]

    @property
    def warnings(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.WARNING]


def _collections(source: Any) -> Tuple[List[Any], List[Any]]:
    """Nodes and connections of an editor or a GraphSnapshot."""
    if isinstance(source, GraphSnapshot):
        return list(source.nodes), list(source.connections)
    return list(source.get_nodes()), list(source.get_connections())


# =============================================================================
# GRAPH INVARIANTS
# =============================================================================

class GraphInvariants:
    """
    Invariant validators over editor collections.

    All methods are static. `validate` runs every check and collects
    metrics; the individual checks are usable on their own.
    """

    @staticmethod
    def validate_unique_ids(items: List[Any], kind: str) -> Optional[InvariantViolation]:
        seen: Set[str] = set()
        duplicates: List[str] = []
        for item in items:
            if item.id in seen and item.id not in duplicates:
                duplicates.append(item.id)
            seen.add(item.id)

        if not duplicates:
            return None
        return InvariantViolation(
            invariant=f"unique_{kind}_ids",
            severity=InvariantSeverity.ERROR,
            message=f"{len(duplicates)} duplicate {kind} id(s)",
            nodes_involved=duplicates if kind == "node" else [],
            connections_involved=duplicates if kind == "connection" else [],
        )

    @staticmethod
    def find_dangling_connections(nodes: List[Any], connections: List[Any]) -> List[Any]:
        """Connections whose source or target node is not among `nodes`."""
        node_ids = {n.id for n in nodes}
        return [
            c for c in connections
            if c.source not in node_ids or c.target not in node_ids
        ]

    @staticmethod
    def validate_referential_integrity(
        nodes: List[Any],
        connections: List[Any],
    ) -> List[InvariantViolation]:
        violations = []

        dangling = GraphInvariants.find_dangling_connections(nodes, connections)
        if dangling:
            missing = sorted({
                node_id
                for c in dangling
                for node_id in (c.source, c.target)
                if node_id not in {n.id for n in nodes}
            })
            violations.append(InvariantViolation(
                invariant="connection_endpoints",
                severity=InvariantSeverity.WARNING,
                message=f"{len(dangling)} connection(s) reference missing nodes",
                nodes_involved=missing,
                connections_involved=[c.id for c in dangling],
            ))

        by_id = {n.id: n for n in nodes}
        missing_ports = []
        for c in connections:
            source = by_id.get(c.source)
            target = by_id.get(c.target)
            if source is None or target is None:
                continue
            # Only nodes with keyed ports can be checked
            if hasattr(source, "outputs") and c.source_output not in source.outputs:
                missing_ports.append(c.id)
            elif hasattr(target, "inputs") and c.target_input not in target.inputs:
                missing_ports.append(c.id)

        if missing_ports:
            violations.append(InvariantViolation(
                invariant="connection_ports",
                severity=InvariantSeverity.WARNING,
                message=f"{len(missing_ports)} connection(s) reference missing port keys",
                connections_involved=missing_ports,
            ))

        return violations

    @staticmethod
    def build_graph(nodes: List[Any], connections: List[Any]) -> Tuple[rx.PyDiGraph, Dict[str, int]]:
        """
        PyDiGraph of the store: node payloads are the nodes themselves,
        edge payloads the connections. Dangling connections are left out.
        """
        graph = rx.PyDiGraph(multigraph=True)
        index: Dict[str, int] = {}
        for node in nodes:
            if node.id not in index:
                index[node.id] = graph.add_node(node)

        for c in connections:
            if c.source in index and c.target in index:
                graph.add_edge(index[c.source], index[c.target], c)

        return graph, index

    @staticmethod
    def validate_acyclicity(graph: rx.PyDiGraph) -> Optional[InvariantViolation]:
        """Cycles are legal in an editor; reported as INFO for consumers that care."""
        if rx.is_directed_acyclic_graph(graph):
            return None
        return InvariantViolation(
            invariant="acyclicity",
            severity=InvariantSeverity.INFO,
            message="Graph contains at least one cycle",
        )

    @staticmethod
    def validate(source: Any) -> InvariantReport:
        """Run every check on an editor or snapshot."""
        nodes, connections = _collections(source)
        violations: List[InvariantViolation] = []

        for items, kind in ((nodes, "node"), (connections, "connection")):
            violation = GraphInvariants.validate_unique_ids(items, kind)
            if violation:
                violations.append(violation)

        violations.extend(GraphInvariants.validate_referential_integrity(nodes, connections))

        graph, _ = GraphInvariants.build_graph(nodes, connections)
        cycle = GraphInvariants.validate_acyclicity(graph)
        if cycle:
            violations.append(cycle)

        metrics = {
            "node_count": len(nodes),
            "connection_count": len(connections),
            "dangling_connections": len(GraphInvariants.find_dangling_connections(nodes, connections)),
            "components": rx.number_weakly_connected_components(graph) if len(graph) else 0,
            "is_dag": cycle is None,
        }

        return InvariantReport(
            valid=not any(v.severity == InvariantSeverity.ERROR for v in violations),
            violations=violations,
            metrics=metrics,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def validate_editor(source: Any) -> InvariantReport:
    """Validate an editor or snapshot. See GraphInvariants.validate."""
    return GraphInvariants.validate(source)


def find_dangling_connections(source: Any) -> List[Any]:
    """Connections of an editor or snapshot that point at removed nodes."""
    nodes, connections = _collections(source)
    return GraphInvariants.find_dangling_connections(nodes, connections)


def would_create_cycle(source: Any, source_id: str, target_id: str) -> bool:
    """True if a connection source_id -> target_id would close a cycle."""
    if source_id == target_id:
        return True
    nodes, connections = _collections(source)
    graph, index = GraphInvariants.build_graph(nodes, connections)
    if source_id not in index or target_id not in index:
        return False
    return index[source_id] in rx.descendants(graph, index[target_id])
