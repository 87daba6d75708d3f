import unittest

from conceptmap.errors import ExtractionFailure, MalformedExtraction
from conceptmap.graph.candidates import parse_candidates
from conceptmap.graph.extract import build_messages, extract_concepts

from helpers import FakeLLM


REPLY = {
    "nodes": [
        {"id": "acid", "label": "Acid"},
        {"id": "base", "label": "Base"},
    ],
    "edges": [{"source": "acid", "target": "base", "label": "neutralizes"}],
}


class TestParseCandidates(unittest.TestCase):
    def test_parses_nodes_and_edges(self):
        g = parse_candidates('{"nodes": [{"id": "a", "label": "Acid"}], "edges": [{"source": "a", "target": "a", "label": "is"}]}')
        self.assertEqual(g.nodes[0].temp_id, "a")
        self.assertEqual(g.nodes[0].label, "Acid")
        self.assertEqual(g.edges[0].relation_label, "is")

    def test_strips_markdown_fences(self):
        g = parse_candidates('```json\n{"nodes": [{"id": "a", "label": "Acid"}], "edges": []}\n```')
        self.assertEqual(len(g.nodes), 1)

    def test_empty_and_unparseable_output_is_zero_candidates(self):
        for raw in ("", "   ", None, "Sorry, I can't help with that.", '{"nodes": ['):
            g = parse_candidates(raw)
            self.assertTrue(g.is_empty(), raw)

    def test_top_level_shape_violation_is_fatal(self):
        with self.assertRaises(MalformedExtraction):
            parse_candidates('["acid", "base"]')
        with self.assertRaises(MalformedExtraction):
            parse_candidates('{"nodes": {"id": "a"}, "edges": []}')
        with self.assertRaises(MalformedExtraction):
            parse_candidates('{"nodes": [], "edges": "none"}')

    def test_missing_keys_default_to_empty(self):
        g = parse_candidates('{"nodes": [{"id": "a", "label": "Acid"}]}')
        self.assertEqual(len(g.nodes), 1)
        self.assertEqual(g.edges, [])

    def test_malformed_entries_are_dropped(self):
        g = parse_candidates(
            '{"nodes": [{"id": "a", "label": "Acid"}, {"label": "No id"}, "junk", {"id": "b"}],'
            ' "edges": [{"source": "a"}, {"source": "a", "target": "b"}, 3]}'
        )
        self.assertEqual([n.temp_id for n in g.nodes], ["a"])
        self.assertEqual(len(g.edges), 1)
        self.assertEqual(g.edges[0].relation_label, "")

    def test_duplicate_temp_ids_keep_first(self):
        g = parse_candidates('{"nodes": [{"id": "a", "label": "Acid"}, {"id": "a", "label": "Alkali"}], "edges": []}')
        self.assertEqual([n.label for n in g.nodes], ["Acid"])

    def test_numeric_ids_become_strings(self):
        g = parse_candidates('{"nodes": [{"id": 1, "label": "Acid"}], "edges": [{"source": 1, "target": 2}]}')
        self.assertEqual(g.nodes[0].temp_id, "1")
        self.assertEqual((g.edges[0].source_temp_id, g.edges[0].target_temp_id), ("1", "2"))


class TestExtractConcepts(unittest.TestCase):
    def test_returns_candidate_graph(self):
        llm = FakeLLM(REPLY)
        g = extract_concepts("Acids neutralize bases.", llm=llm)
        self.assertEqual([n.label for n in g.nodes], ["Acid", "Base"])
        self.assertEqual(llm.calls, 1)

    def test_blank_text_skips_the_model(self):
        llm = FakeLLM(REPLY)
        g = extract_concepts("  \n ", llm=llm)
        self.assertTrue(g.is_empty())
        self.assertEqual(llm.calls, 0)

    def test_model_failure_is_extraction_failure(self):
        with self.assertRaises(ExtractionFailure):
            extract_concepts("Acids.", llm=FakeLLM(error="timed out"))

    def test_prompt_truncates_text(self):
        msgs = build_messages("x" * 100, max_chars=10)
        self.assertIn("x" * 10, msgs[-1].content)
        self.assertNotIn("x" * 11, msgs[-1].content)


if __name__ == "__main__":
    unittest.main()
