from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass

from ..errors import StoreFailure


@dataclass(frozen=True)
class Node:
    node_id: int
    user_id: str
    name: str


@dataclass(frozen=True)
class Edge:
    edge_id: int
    user_id: str
    source_node_id: int
    target_node_id: int


def init_graph(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS nodes (
          node_id INTEGER PRIMARY KEY,
          user_id TEXT NOT NULL,
          name TEXT NOT NULL,
          created_at INTEGER NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_nodes_user ON nodes(user_id);")

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS edges (
          edge_id INTEGER PRIMARY KEY,
          user_id TEXT NOT NULL,
          source_node_id INTEGER NOT NULL REFERENCES nodes(node_id),
          target_node_id INTEGER NOT NULL REFERENCES nodes(node_id),
          created_at INTEGER NOT NULL
        );
        """
    )
    # Ordered pair: (a, b) and (b, a) are different relationships.
    conn.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_edges_pair ON edges(user_id, source_node_id, target_node_id);"
    )

    conn.commit()


def create_node(conn: sqlite3.Connection, *, name: str, user_id: str) -> Node:
    try:
        cur = conn.execute(
            "INSERT INTO nodes(user_id, name, created_at) VALUES(?, ?, ?)",
            (str(user_id), name, int(time.time())),
        )
    except sqlite3.Error as e:
        raise StoreFailure(f"Failed to create node {name!r} for user {user_id}: {e}") from e
    return Node(node_id=int(cur.lastrowid), user_id=str(user_id), name=name)


def create_edge(conn: sqlite3.Connection, *, source_node_id: int, target_node_id: int, user_id: str) -> Edge:
    src = int(source_node_id)
    tgt = int(target_node_id)

    rows = conn.execute(
        "SELECT node_id, user_id FROM nodes WHERE node_id IN (?, ?)",
        (src, tgt),
    ).fetchall()
    owners = {int(r["node_id"]): str(r["user_id"]) for r in rows}
    for nid in (src, tgt):
        if nid not in owners:
            raise StoreFailure(f"Edge endpoint {nid} does not exist")
        if owners[nid] != str(user_id):
            raise StoreFailure(f"Edge endpoint {nid} is not owned by user {user_id}")

    try:
        cur = conn.execute(
            "INSERT INTO edges(user_id, source_node_id, target_node_id, created_at) VALUES(?, ?, ?, ?)",
            (str(user_id), src, tgt, int(time.time())),
        )
    except sqlite3.Error as e:
        raise StoreFailure(f"Failed to create edge {src}->{tgt} for user {user_id}: {e}") from e
    return Edge(edge_id=int(cur.lastrowid), user_id=str(user_id), source_node_id=src, target_node_id=tgt)


def find_nodes(conn: sqlite3.Connection, user_id: str) -> list[Node]:
    cur = conn.execute(
        "SELECT node_id, user_id, name FROM nodes WHERE user_id = ? ORDER BY node_id",
        (str(user_id),),
    )
    return [Node(node_id=int(r["node_id"]), user_id=str(r["user_id"]), name=str(r["name"])) for r in cur]


def find_edges(conn: sqlite3.Connection, user_id: str) -> list[Edge]:
    cur = conn.execute(
        """
        SELECT edge_id, user_id, source_node_id, target_node_id
        FROM edges
        WHERE user_id = ?
        ORDER BY edge_id
        """,
        (str(user_id),),
    )
    return [
        Edge(
            edge_id=int(r["edge_id"]),
            user_id=str(r["user_id"]),
            source_node_id=int(r["source_node_id"]),
            target_node_id=int(r["target_node_id"]),
        )
        for r in cur
    ]
