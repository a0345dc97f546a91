"""
Unit tests for ShardRouter.

Tests routing, membership changes and move previews.
"""
import pytest
from ringroute.cluster.router import ShardRouter
from ringroute.config import RingSettings
from ringroute.errors import InvalidArgumentError, NoAvailableNodeError
from ringroute.hashing import Md5Hash, Murmur3Hash


def make_router(nodes=("shard-0", "shard-1", "shard-2"), replication_factor=100):
    return ShardRouter(list(nodes), replication_factor, Md5Hash())


def test_router_initialization():
    """Test initializing shard router"""
    router = make_router()

    assert router.nodes == {"shard-0", "shard-1", "shard-2"}
    assert router.hash_ring.get_vnode_count() == 300


def test_from_settings():
    settings = RingSettings(nodes=["a", "b"], replication_factor=4, hash_function="murmur3")
    router = ShardRouter.from_settings(settings)

    assert router.nodes == {"a", "b"}
    assert router.hash_ring.replication_factor == 4
    assert isinstance(router.hash_ring.hash_function, Murmur3Hash)


def test_consistent_routing():
    """Test that same key always goes to same shard"""
    router = make_router()

    shard_for_key = router.route("user:123")

    assert router.route("user:123") == shard_for_key
    assert router.hash_ring.get_node("user:123") == shard_for_key


def test_route_many_groups_by_node():
    """Test batch routing matches single-key routing"""
    router = make_router()
    keys = [f"key:{i}" for i in range(300)]

    assignments = router.route_many(keys)

    assert sum(len(v) for v in assignments.values()) == 300
    for node, node_keys in assignments.items():
        for key in node_keys:
            assert router.route(key) == node

    # Keys keep their input order within a node
    for node_keys in assignments.values():
        assert node_keys == sorted(node_keys, key=keys.index)


def test_route_many_edge_cases():
    router = make_router()

    assert router.route_many([]) == {}
    with pytest.raises(InvalidArgumentError):
        router.route_many(["a", None])

    empty = ShardRouter([], 10, Md5Hash())
    with pytest.raises(NoAvailableNodeError):
        empty.route_many(["a"])


def test_keys_distributed_across_shards():
    """Test that keys are distributed across multiple shards"""
    router = make_router(replication_factor=300)

    stats = router.get_stats([f"key:{i}" for i in range(3000)])

    assert sum(stats["keys_per_node"].values()) == 3000

    # Each shard should have some keys (not all in one shard)
    for shard_id, count in stats["keys_per_node"].items():
        assert 700 < count < 1300, f"{shard_id} has {count} keys (expected ~1000)"


def test_get_stats():
    """Test stats output"""
    router = make_router(replication_factor=10)

    stats = router.get_stats()

    assert stats["num_nodes"] == 3
    assert stats["num_vnodes"] == 30
    assert stats["replication_factor"] == 10
    assert stats["vnodes_per_node"] == {"shard-0": 10, "shard-1": 10, "shard-2": 10}
    assert stats["keys_per_node"] == {"shard-0": 0, "shard-1": 0, "shard-2": 0}


def test_get_stats_empty_ring():
    router = ShardRouter([], 10, Md5Hash())

    stats = router.get_stats(["a", "b"])

    assert stats["num_nodes"] == 0
    assert stats["keys_per_node"] == {}


def test_add_and_remove_node():
    router = make_router()

    router.add_node("shard-3")
    assert "shard-3" in router.nodes

    router.remove_node("shard-3")
    router.remove_node("shard-3")  # already gone
    assert "shard-3" not in router.nodes


def test_preview_add_matches_real_add():
    """Test that the preview predicts exactly the keys that move"""
    router = make_router()
    keys = [f"key:{i}" for i in range(2000)]
    before = {key: router.route(key) for key in keys}

    preview = router.preview_add("shard-3", keys)

    # Live ring untouched by the preview
    assert "shard-3" not in router.nodes
    assert preview
    assert all(new == "shard-3" for _, new in preview.values())

    router.add_node("shard-3")
    actual = {
        key: (before[key], router.route(key))
        for key in keys
        if router.route(key) != before[key]
    }
    assert preview == actual


def test_preview_remove():
    router = make_router()
    keys = [f"key:{i}" for i in range(2000)]

    preview = router.preview_remove("shard-1", keys)

    assert "shard-1" in router.nodes
    assert preview
    for key, (old, new) in preview.items():
        assert old == "shard-1"
        assert new in {"shard-0", "shard-2"}


def test_preview_remove_last_node():
    router = make_router(nodes=["only"])

    preview = router.preview_remove("only", ["a", "b"])

    assert preview == {"a": ("only", None), "b": ("only", None)}


def test_route_many_non_string_keys():
    """Test that batch routing agrees with single-key routing for non-strings"""
    router = make_router()

    assignments = router.route_many([1, 2, 3, "1"])

    for node, node_keys in assignments.items():
        for key in node_keys:
            assert router.route(key) == node
    assert router.route(1) == router.route("1")


def test_remove_node_reports_presence():
    router = make_router()

    assert router.remove_node("shard-0") is True
    assert router.remove_node("shard-0") is False
