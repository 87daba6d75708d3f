import unittest

from conceptmap.errors import StoreFailure
from conceptmap.graph.query import get_map
from conceptmap.graph.sqlite_graph import create_edge, create_node, find_edges, find_nodes

from helpers import memory_db


class TestSqliteGraph(unittest.TestCase):
    def setUp(self):
        self.conn = memory_db()

    def tearDown(self):
        self.conn.close()

    def test_nodes_are_partitioned_by_user(self):
        create_node(self.conn, name="Acid", user_id="u1")
        create_node(self.conn, name="Base", user_id="u2")
        self.conn.commit()
        self.assertEqual([n.name for n in find_nodes(self.conn, "u1")], ["Acid"])
        self.assertEqual([n.name for n in find_nodes(self.conn, "u2")], ["Base"])

    def test_edge_requires_existing_endpoints(self):
        a = create_node(self.conn, name="Acid", user_id="u1")
        with self.assertRaises(StoreFailure):
            create_edge(self.conn, source_node_id=a.node_id, target_node_id=999, user_id="u1")

    def test_edge_endpoints_must_share_the_user(self):
        a = create_node(self.conn, name="Acid", user_id="u1")
        b = create_node(self.conn, name="Base", user_id="u2")
        with self.assertRaises(StoreFailure):
            create_edge(self.conn, source_node_id=a.node_id, target_node_id=b.node_id, user_id="u1")

    def test_ordered_pair_is_unique_but_direction_matters(self):
        a = create_node(self.conn, name="Acid", user_id="u1")
        b = create_node(self.conn, name="Base", user_id="u1")
        create_edge(self.conn, source_node_id=a.node_id, target_node_id=b.node_id, user_id="u1")
        create_edge(self.conn, source_node_id=b.node_id, target_node_id=a.node_id, user_id="u1")
        with self.assertRaises(StoreFailure):
            create_edge(self.conn, source_node_id=a.node_id, target_node_id=b.node_id, user_id="u1")
        self.assertEqual(len(find_edges(self.conn, "u1")), 2)

    def test_edge_from_a_node_to_itself(self):
        a = create_node(self.conn, name="Acid", user_id="u1")
        e = create_edge(self.conn, source_node_id=a.node_id, target_node_id=a.node_id, user_id="u1")
        self.assertEqual((e.source_node_id, e.target_node_id), (a.node_id, a.node_id))

    def test_get_map(self):
        a = create_node(self.conn, name="Acid", user_id="u1")
        b = create_node(self.conn, name="Base", user_id="u1")
        create_edge(self.conn, source_node_id=a.node_id, target_node_id=b.node_id, user_id="u1")
        self.conn.commit()

        m = get_map(conn=self.conn, user_id="u1")
        self.assertEqual([n["name"] for n in m["nodes"]], ["Acid", "Base"])
        self.assertEqual(m["edges"][0]["source_name"], "Acid")
        self.assertEqual(m["edges"][0]["target_node_id"], b.node_id)
        self.assertEqual(get_map(conn=self.conn, user_id="nobody"), {"nodes": [], "edges": []})


if __name__ == "__main__":
    unittest.main()
