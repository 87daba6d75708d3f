"""Per-user concept graphs.

Candidate concepts and relationships come from an LLM as JSON. Each candidate
is matched against the user's stored concepts with fuzzy string similarity;
only unmatched concepts become new nodes, and an edge is stored only once per
ordered (source, target) pair.
"""
