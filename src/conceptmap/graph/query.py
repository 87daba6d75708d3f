from __future__ import annotations

import sqlite3
from typing import Any

from .sqlite_graph import find_edges, find_nodes


def get_map(*, conn: sqlite3.Connection, user_id: str) -> dict[str, Any]:
    """The user's whole graph as plain dicts, ready for JSON."""
    nodes = find_nodes(conn, user_id)
    edges = find_edges(conn, user_id)
    names = {n.node_id: n.name for n in nodes}

    return {
        "nodes": [{"id": n.node_id, "name": n.name, "user_id": n.user_id} for n in nodes],
        "edges": [
            {
                "id": e.edge_id,
                "source_node_id": e.source_node_id,
                "target_node_id": e.target_node_id,
                "source_name": names.get(e.source_node_id),
                "target_name": names.get(e.target_node_id),
                "user_id": e.user_id,
            }
            for e in edges
        ],
    }
