import os
import sys
import unittest
from types import SimpleNamespace

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from hashring.ring.partitioning import ConsistentHashPartitioner, Partitioner


def node_id(node):
    return node.node_id


class ConsistentHashPartitionerTest(unittest.TestCase):
    def test_is_partitioner(self):
        self.assertIsInstance(ConsistentHashPartitioner(), Partitioner)
        self.assertEqual(ConsistentHashPartitioner().get_partition_id("k"), 0)

    def test_uniform_distribution(self):
        nodes = [SimpleNamespace(node_id=f"n{i}") for i in range(3)]
        part = ConsistentHashPartitioner(partitions_per_node=50, node_key=node_id)
        for n in nodes:
            part.add_node(n)

        keys = [f"k{i}" for i in range(600)]
        pmap = part.get_partition_map()
        counts = {n.node_id: 0 for n in nodes}
        for k in keys:
            pid = part.get_partition_id(k)
            counts[pmap[pid]] += 1

        expected = len(keys) / len(nodes)
        for c in counts.values():
            self.assertLessEqual(abs(c - expected), expected * 0.5)

    def test_partition_matches_ring_owner(self):
        nodes = [SimpleNamespace(node_id=f"n{i}") for i in range(4)]
        part = ConsistentHashPartitioner(nodes, partitions_per_node=5, node_key=node_id)
        self.assertEqual(part.num_partitions, 20)
        pmap = part.get_partition_map()
        for i in range(100):
            key = f"user-{i}"
            self.assertEqual(pmap[part.get_partition_id(key)], part.get_owner(key).node_id)

    def test_remove_node(self):
        nodes = [SimpleNamespace(node_id=f"n{i}") for i in range(3)]
        part = ConsistentHashPartitioner(nodes, partitions_per_node=4, node_key=node_id)
        part.remove_node(nodes[1])
        self.assertEqual([n.node_id for n in part.nodes], ["n0", "n2"])
        self.assertEqual(set(part.get_partition_map().values()), {"n0", "n2"})

    def test_preference_list(self):
        part = ConsistentHashPartitioner(["a", "b", "c"], partitions_per_node=8)
        prefs = part.get_preference_list("key-1", 2)
        self.assertEqual(len(prefs), 2)
        self.assertEqual(prefs[0], part.get_owner("key-1"))


if __name__ == "__main__":
    unittest.main()
