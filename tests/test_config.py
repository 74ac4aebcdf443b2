import os
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from hashring.config import RingConfig
from hashring.ring.digest import default_node_key, hash_function, numeric_compare, sha256_hex
from hashring.ring.hash_ring import HashRing


class RingConfigTest(unittest.TestCase):
    def test_defaults(self):
        config = RingConfig.from_env({})
        self.assertEqual(config.replicas, 50)
        self.assertEqual(config.hash_algorithm, "sha256")
        self.assertEqual(config.placement, "standard")
        self.assertEqual(config.max_rotation_attempts, 1000)
        self.assertIsNone(config.event_log_path)
        self.assertEqual(config.initial_nodes, [])

    def test_from_env(self):
        env = {
            "HASHRING_REPLICAS": "7",
            "HASHRING_HASH": "md5",
            "HASHRING_PLACEMENT": "spread",
            "HASHRING_SPREAD_GROUPS": "2",
            "HASHRING_MAX_ROTATIONS": "50",
            "HASHRING_NODES": "a, b,,c",
        }
        config = RingConfig.from_env(env)
        self.assertEqual(config.replicas, 7)
        self.assertEqual(config.initial_nodes, ["a", "b", "c"])
        ring = HashRing.from_config(config)
        self.assertEqual(ring.get_nodes_count(), 3)
        self.assertEqual(len(ring), 21)
        self.assertEqual(ring.placement, "spread")
        self.assertEqual(ring.max_rotation_attempts, 50)
        self.assertEqual(len(ring.get_ordered_nodes()[0].digest), 32)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            RingConfig.from_env({"HASHRING_REPLICAS": "0"})
        with self.assertRaises(ValueError):
            RingConfig.from_env({"HASHRING_PLACEMENT": "random"})
        with self.assertRaises(ValueError):
            RingConfig.from_env({"HASHRING_HASH": "nope"})
        with self.assertRaises(ValueError):
            RingConfig(max_rotation_attempts=0).validate()

    def test_event_log_from_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "ring.log")
            ring = HashRing.from_config(RingConfig(replicas=2, event_log_path=path), ["x"])
            ring.event_logger.close()
            with open(path, encoding="utf-8") as fp:
                self.assertIn("Node x added with 2 replicas", fp.read())


class DigestTest(unittest.TestCase):
    def test_sha256_hex(self):
        self.assertEqual(
            sha256_hex("abc"),
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad",
        )
        self.assertEqual(hash_function("sha256")("abc"), sha256_hex("abc"))

    def test_numeric_compare(self):
        self.assertLess(numeric_compare("9", "10"), 0)
        self.assertGreater(numeric_compare("10", "9"), 0)
        self.assertEqual(numeric_compare("10", "10"), 0)

    def test_default_node_key(self):
        class Server:
            def __init__(self, host):
                self.host = host

            def __str__(self):
                return f"server://{self.host}"

        class Plain:
            def __init__(self):
                self.host = "h"
                self.port = 1

        self.assertEqual(default_node_key("a"), "a")
        self.assertEqual(default_node_key(Server("h1")), "server://h1")
        self.assertEqual(default_node_key({"b": 1, "a": 2}), '{"a": 2, "b": 1}')
        self.assertEqual(default_node_key(Plain()), '{"host": "h", "port": 1}')
        self.assertEqual(default_node_key(3), "3")

    def test_default_node_key_never_uses_object_address(self):
        class Slotted:
            __slots__ = ("host", "port")

            def __init__(self, host, port):
                self.host = host
                self.port = port

        class Plain:
            def __init__(self, inner):
                self.inner = inner

        self.assertEqual(default_node_key(Slotted("h", 1)), '{"host": "h", "port": 1}')
        self.assertEqual(default_node_key(Slotted("h", 1)), default_node_key(Slotted("h", 1)))
        self.assertEqual(
            default_node_key(Plain(Slotted("h", 2))),
            '{"inner": {"host": "h", "port": 2}}',
        )
        self.assertEqual(
            default_node_key({"server": Slotted("x", 3)}),
            '{"server": {"host": "x", "port": 3}}',
        )
        with self.assertRaises(TypeError):
            default_node_key(object())
        with self.assertRaises(TypeError):
            default_node_key({"server": object()})


if __name__ == "__main__":
    unittest.main()
