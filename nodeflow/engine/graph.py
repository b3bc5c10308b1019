"""
Graph Introspection for the Workflow Engine.

Flows are wired by object references, so their structure only exists as
the graph reachable from the start node. These helpers walk that graph
and describe it as plain data or as a Mermaid diagram.
"""

from collections import deque
from typing import Any, Dict, List, Set

from nodeflow.engine.flow import BatchFlow, Flow
from nodeflow.engine.node import DEFAULT_ACTION, BaseNode, BatchNode


def node_kind(node: BaseNode) -> str:
    """Classify a node as batch_flow, flow, batch_node or node."""
    if isinstance(node, BatchFlow):
        return "batch_flow"
    if isinstance(node, Flow):
        return "flow"
    if isinstance(node, BatchNode):
        return "batch_node"
    return "node"


class _GraphWalker:
    """Assigns stable ids to nodes by identity while walking flows."""

    def __init__(self):
        self._ids: Dict[int, str] = {}
        self._open_flows: Set[int] = set()

    def node_id(self, node: BaseNode) -> str:
        key = id(node)
        if key not in self._ids:
            self._ids[key] = f"n{len(self._ids)}"
        return self._ids[key]

    @staticmethod
    def reachable(start: BaseNode) -> List[BaseNode]:
        """Nodes reachable from ``start`` in breadth-first order."""
        seen: Set[int] = set()
        order: List[BaseNode] = []
        to_visit = deque([start])

        while to_visit:
            node = to_visit.popleft()
            if id(node) in seen:
                continue
            seen.add(id(node))
            order.append(node)
            to_visit.extend(node.successors.values())

        return order

    def describe(self, flow: Flow) -> Dict[str, Any]:
        description: Dict[str, Any] = {
            "name": flow.name,
            "type": type(flow).__name__,
            "start": None,
            "nodes": [],
            "edges": [],
        }
        if flow.start is None:
            return description

        self._open_flows.add(id(flow))
        description["start"] = self.node_id(flow.start)

        for node in self.reachable(flow.start):
            source = self.node_id(node)
            entry: Dict[str, Any] = {
                "id": source,
                "name": node.name,
                "type": type(node).__name__,
                "kind": node_kind(node),
            }
            # A flow that contains itself is described only once
            if isinstance(node, Flow) and id(node) not in self._open_flows:
                entry["graph"] = self.describe(node)
            description["nodes"].append(entry)

            for action, target in node.successors.items():
                description["edges"].append({
                    "source": source,
                    "target": self.node_id(target),
                    "action": action,
                })

        self._open_flows.discard(id(flow))
        return description


def describe_flow(flow: Flow) -> Dict[str, Any]:
    """
    Describe the graph of a flow as a dictionary.

    Args:
        flow: The flow to describe

    Returns:
        Dict with the flow name, start node id, nodes and labelled edges.
        Nested flows carry their own description under "graph".
    """
    return _GraphWalker().describe(flow)


def _mermaid_label(name: str) -> str:
    return name.replace('"', "'")


def _append_mermaid(graph: Dict[str, Any], lines: List[str], indent: str) -> None:
    for node in graph["nodes"]:
        label = _mermaid_label(node["name"])
        if "graph" in node:
            lines.append(f'{indent}subgraph {node["id"]}["{label}"]')
            _append_mermaid(node["graph"], lines, indent + "    ")
            lines.append(f"{indent}end")
        else:
            lines.append(f'{indent}{node["id"]}["{label}"]')

    for edge in graph["edges"]:
        if edge["action"] == DEFAULT_ACTION:
            lines.append(f'{indent}{edge["source"]} --> {edge["target"]}')
        else:
            lines.append(f'{indent}{edge["source"]} -->|{edge["action"]}| {edge["target"]}')


def to_mermaid(flow: Flow) -> str:
    """Generate a Mermaid diagram of a flow's graph."""
    lines = ["graph TD"]
    _append_mermaid(describe_flow(flow), lines, "    ")
    return "\n".join(lines)
