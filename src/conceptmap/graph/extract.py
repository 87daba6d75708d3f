from __future__ import annotations

import logging
from typing import Protocol

from ..chat.llm import ChatMessage, LLMError
from ..errors import ExtractionFailure
from .candidates import CandidateGraph, parse_candidates


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You analyze documents and identify their main topics, key concepts and the relationships between them.\n"
    "Reply with a single valid JSON object and nothing else. No markdown, no code fences."
)

USER_PROMPT = """Structure your response as a JSON object with two keys: "nodes" and "edges".

- "nodes": an array of objects, one per topic or concept, each with:
    - "id": a unique, lowercase, hyphenated string (e.g. "machine-learning").
    - "label": a human-readable title (e.g. "Machine Learning").
- "edges": an array of objects, one per relationship between two nodes, each with:
    - "source": the "id" of the source node.
    - "target": the "id" of the target node.
    - "label": a description of the relationship (e.g. "is a type of", "is used for").

Here is the text:
---
{text}
---
"""


class ChatClient(Protocol):
    def chat(self, messages: list[ChatMessage]) -> str: ...


def build_messages(text: str, *, max_chars: int | None = None) -> list[ChatMessage]:
    body = text.strip()
    if max_chars is not None and len(body) > max_chars:
        body = body[:max_chars]
    return [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=USER_PROMPT.format(text=body)),
    ]


def extract_concepts(
    text: str,
    *,
    llm: ChatClient,
    max_chars: int | None = None,
) -> CandidateGraph:
    """Ask the model for a candidate concept graph of ``text``.

    A failed call (connection error, timeout, bad status) raises
    ``ExtractionFailure``. An empty or unparseable reply is an empty graph.
    """
    if not text.strip():
        logger.info("Document has no text; skipping concept extraction")
        return CandidateGraph()

    try:
        raw = llm.chat(build_messages(text, max_chars=max_chars))
    except LLMError as e:
        raise ExtractionFailure(f"Concept extraction failed: {e}") from e

    graph = parse_candidates(raw)
    logger.debug("Extracted %d candidate node(s), %d candidate edge(s)", len(graph.nodes), len(graph.edges))
    return graph
