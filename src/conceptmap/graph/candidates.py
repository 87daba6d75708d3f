from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..errors import MalformedExtraction


logger = logging.getLogger(__name__)

# Models are told not to, but still wrap replies in ```json fences.
_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


@dataclass(frozen=True)
class CandidateNode:
    temp_id: str  # unique only within one extraction
    label: str


@dataclass(frozen=True)
class CandidateEdge:
    source_temp_id: str
    target_temp_id: str
    # Carried along but not persisted.
    relation_label: str = ""


@dataclass(frozen=True)
class CandidateGraph:
    nodes: list[CandidateNode] = field(default_factory=list)
    edges: list[CandidateEdge] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.nodes and not self.edges


def parse_candidates(raw: str | None) -> CandidateGraph:
    """Parse extractor output into a ``CandidateGraph``.

    Empty or non-JSON output yields an empty graph. JSON whose top level is not
    an object with ``nodes``/``edges`` arrays raises ``MalformedExtraction``.
    Individual entries that lack an id/label or endpoints are dropped.
    """
    text = _strip_fences(raw or "")
    if not text:
        logger.warning("Concept extractor returned no output; treating as zero candidates")
        return CandidateGraph()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Concept extractor output is not JSON (%s); treating as zero candidates", e)
        return CandidateGraph()

    return candidates_from_dict(data)


def candidates_from_dict(data: Any) -> CandidateGraph:
    if not isinstance(data, dict):
        raise MalformedExtraction(f"Expected a JSON object, got {type(data).__name__}")

    raw_nodes = data.get("nodes", [])
    raw_edges = data.get("edges", [])
    if raw_nodes is None:
        raw_nodes = []
    if raw_edges is None:
        raw_edges = []
    if not isinstance(raw_nodes, list):
        raise MalformedExtraction(f"'nodes' must be an array, got {type(raw_nodes).__name__}")
    if not isinstance(raw_edges, list):
        raise MalformedExtraction(f"'edges' must be an array, got {type(raw_edges).__name__}")

    nodes: list[CandidateNode] = []
    seen: set[str] = set()
    dropped_nodes = 0
    for item in raw_nodes:
        if not isinstance(item, dict):
            dropped_nodes += 1
            continue
        temp_id = _as_id(item.get("id"))
        label = item.get("label")
        if temp_id is None or not isinstance(label, str):
            dropped_nodes += 1
            continue
        if temp_id in seen:
            # First occurrence wins.
            dropped_nodes += 1
            continue
        seen.add(temp_id)
        nodes.append(CandidateNode(temp_id=temp_id, label=label))

    edges: list[CandidateEdge] = []
    dropped_edges = 0
    for item in raw_edges:
        if not isinstance(item, dict):
            dropped_edges += 1
            continue
        source = _as_id(item.get("source"))
        target = _as_id(item.get("target"))
        if source is None or target is None:
            dropped_edges += 1
            continue
        rel = item.get("label")
        edges.append(
            CandidateEdge(
                source_temp_id=source,
                target_temp_id=target,
                relation_label=rel if isinstance(rel, str) else "",
            )
        )

    if dropped_nodes or dropped_edges:
        logger.warning(
            "Dropped malformed extractor entries: %d node(s), %d edge(s)",
            dropped_nodes,
            dropped_edges,
        )

    return CandidateGraph(nodes=nodes, edges=edges)


def _as_id(value: Any) -> str | None:
    # Small models sometimes emit numeric ids.
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _strip_fences(text: str) -> str:
    m = _FENCE_RE.match(text)
    if m:
        return m.group(1).strip()
    return text.strip()
