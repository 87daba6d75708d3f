from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from .candidates import CandidateGraph
from .resolve import DEFAULT_MAX_DISTANCE, EntityResolver
from .sqlite_graph import Edge, Node, create_edge, create_node, find_edges, find_nodes


logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    nodes_matched: int = 0
    nodes_created: int = 0
    nodes_skipped_blank: int = 0
    edges_created: int = 0
    edges_skipped_duplicate: int = 0
    edges_skipped_unresolved: int = 0

    def stats(self) -> dict[str, Any]:
        return {
            "nodes_matched": self.nodes_matched,
            "nodes_created": self.nodes_created,
            "nodes_skipped_blank": self.nodes_skipped_blank,
            "edges_created": self.edges_created,
            "edges_skipped_duplicate": self.edges_skipped_duplicate,
            "edges_skipped_unresolved": self.edges_skipped_unresolved,
            "total_nodes": len(self.nodes),
            "total_edges": len(self.edges),
        }


def merge_candidates(
    *,
    conn: sqlite3.Connection,
    user_id: str,
    candidates: CandidateGraph,
    document_id: int | str | None = None,
    max_distance: float = DEFAULT_MAX_DISTANCE,
    atomic: bool = False,
) -> MergeResult:
    """Merge one candidate graph into the user's stored graph.

    Candidate nodes are resolved against the nodes stored before this call;
    unmatched ones become new nodes. Candidate edges are then mapped through
    the resolved ids and stored unless an edge with the same (source, target)
    already exists. Edges with an endpoint that did not resolve are skipped.

    By default every create is committed on its own, so a failure part way
    leaves the earlier creates in place. With ``atomic=True`` the whole merge
    is one transaction and a failure rolls all of it back.
    """
    user_id = str(user_id)
    prev_nodes = find_nodes(conn, user_id)
    prev_edges = find_edges(conn, user_id)

    result = MergeResult(nodes=list(prev_nodes), edges=list(prev_edges))
    resolver = EntityResolver(prev_nodes, max_distance=max_distance)

    def commit() -> None:
        if not atomic:
            conn.commit()

    try:
        # Phase 1: every candidate node resolves before any edge is looked at.
        temp_to_node: dict[str, Node] = {}
        for cand in candidates.nodes:
            if not cand.label.strip():
                result.nodes_skipped_blank += 1
                continue

            match = resolver.resolve(cand.label)
            if match is not None:
                temp_to_node[cand.temp_id] = match
                result.nodes_matched += 1
                continue

            node = create_node(conn, name=cand.label.strip(), user_id=user_id)
            commit()
            temp_to_node[cand.temp_id] = node
            result.nodes.append(node)
            result.nodes_created += 1

        if result.nodes_skipped_blank:
            logger.warning(
                "Dropped %d candidate node(s) with a blank label (document=%s user=%s)",
                result.nodes_skipped_blank,
                document_id,
                user_id,
            )

        # Phase 2: edges, deduped on the ordered pair.
        seen_pairs: set[tuple[int, int]] = {(e.source_node_id, e.target_node_id) for e in prev_edges}
        for cand_edge in candidates.edges:
            src = temp_to_node.get(cand_edge.source_temp_id)
            tgt = temp_to_node.get(cand_edge.target_temp_id)
            if src is None or tgt is None:
                logger.warning(
                    "Skipping edge %s -> %s: endpoint not resolved (document=%s)",
                    cand_edge.source_temp_id,
                    cand_edge.target_temp_id,
                    document_id,
                )
                result.edges_skipped_unresolved += 1
                continue

            pair = (src.node_id, tgt.node_id)
            if pair in seen_pairs:
                logger.debug("Skipping duplicate edge %s -> %s", src.name, tgt.name)
                result.edges_skipped_duplicate += 1
                continue

            edge = create_edge(conn, source_node_id=src.node_id, target_node_id=tgt.node_id, user_id=user_id)
            commit()
            seen_pairs.add(pair)
            result.edges.append(edge)
            result.edges_created += 1

        if atomic:
            conn.commit()
    except Exception:
        conn.rollback()
        raise

    return result
