from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from rapidfuzz import fuzz, process

from .sqlite_graph import Node


DEFAULT_MAX_DISTANCE = 0.4


def norm_entity(name: str) -> str:
    # Normalize for stable matching.
    return re.sub(r"\s+", " ", name.strip()).lower()


@dataclass(frozen=True)
class Match:
    node: Node
    score: float  # 0-100, higher is closer


class EntityResolver:
    """Fuzzy lookup of candidate labels against a fixed snapshot of nodes.

    Built once per batch from the nodes that existed before the batch started;
    nodes created during the batch are never added, so every candidate is
    resolved independently of the others.

    ``max_distance`` is a tolerance in [0, 1]: 0 accepts only identical
    (normalized) names, 1 accepts anything. A name matches when its
    ``rapidfuzz.fuzz.ratio`` score is at least ``(1 - max_distance) * 100``.
    """

    def __init__(self, nodes: Iterable[Node], *, max_distance: float = DEFAULT_MAX_DISTANCE):
        if not 0.0 <= float(max_distance) <= 1.0:
            raise ValueError(f"max_distance must be between 0 and 1, got {max_distance}")
        self.max_distance = float(max_distance)
        self.score_cutoff = (1.0 - self.max_distance) * 100.0

        self._nodes: list[Node] = []
        self._names: list[str] = []
        for n in nodes:
            name_norm = norm_entity(n.name)
            if not name_norm:
                continue
            self._nodes.append(n)
            self._names.append(name_norm)

    def __len__(self) -> int:
        return len(self._nodes)

    def rank(self, label: str, *, limit: int | None = None) -> list[Match]:
        """All nodes clearing the threshold, best first.

        Ties on score are broken by normalized name, then node id, so the
        result does not depend on snapshot order.
        """
        query = norm_entity(label)
        if not query:
            raise ValueError("Cannot resolve a blank label")
        if not self._names:
            return []

        hits = process.extract(
            query,
            self._names,
            scorer=fuzz.ratio,
            processor=None,
            limit=None,
            score_cutoff=self.score_cutoff,
        )
        hits.sort(key=lambda h: (-h[1], h[0], self._nodes[h[2]].node_id))
        out = [Match(node=self._nodes[idx], score=float(score)) for _, score, idx in hits]
        return out[:limit] if limit is not None else out

    def resolve(self, label: str) -> Node | None:
        """Best matching existing node, or None when the label is a new concept."""
        best = self.rank(label, limit=1)
        return best[0].node if best else None
