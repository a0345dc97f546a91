"""
Shard Router for assigning keys to nodes.

The ShardRouter is the caller-side layer over ConsistentHashRing: it
builds the ring from settings, routes keys (one at a time or in batches),
applies membership changes and reports how keys are spread.

Membership changes can be previewed against a sample of keys before they
are applied, to see exactly which keys would move and where.
"""
from typing import Hashable, Iterable, Optional
import logging

from ringroute.cluster.consistent_hash import ConsistentHashRing
from ringroute.config import RingSettings
from ringroute.errors import InvalidArgumentError, NoAvailableNodeError
from ringroute.hashing import HashFunction, get_hash_function

logger = logging.getLogger(__name__)


class ShardRouter:
    """
    Routes keys to shards with consistent hashing.

    Usage:
        router = ShardRouter(["shard-0", "shard-1", "shard-2"])

        router.route("user:123")               # → "shard-1"
        router.route_many(["a", "b", "c"])     # → {"shard-0": ["a"], ...}

        moves = router.preview_add("shard-3", sample_keys)
        router.add_node("shard-3")
    """

    def __init__(
        self,
        node_ids: Iterable[Hashable],
        replication_factor: int = 100,
        hash_function: Optional[HashFunction] = None,
    ):
        """
        Initialize shard router.

        Args:
            node_ids: Initial shard identifiers (e.g., ["shard-0", "shard-1"])
            replication_factor: Virtual nodes per shard for hash ring
            hash_function: Hash function for the ring (default JavaStringHash)
        """
        self.hash_ring = ConsistentHashRing(
            hash_function=hash_function,
            replication_factor=replication_factor,
            nodes=node_ids,
        )

        logger.info(
            f"ShardRouter ready: {self.hash_ring.get_node_count()} nodes, "
            f"{self.hash_ring.get_vnode_count()} virtual nodes"
        )

    @classmethod
    def from_settings(cls, settings: RingSettings) -> "ShardRouter":
        """Build a router from validated RingSettings"""
        return cls(
            settings.nodes,
            replication_factor=settings.replication_factor,
            hash_function=get_hash_function(settings.hash_function),
        )

    def route(self, key: str) -> Hashable:
        """
        Get the node responsible for a key.

        Raises:
            InvalidArgumentError: If key is None
            NoAvailableNodeError: If no nodes are on the ring
        """
        return self.hash_ring.get_node(key)

    def route_many(self, keys: Iterable[str]) -> dict[Hashable, list[str]]:
        """
        Group keys by owning node.

        All keys are routed against the same ring snapshot, so a concurrent
        membership change cannot split the batch across two ring versions.

        Returns:
            Dict mapping node → keys it owns, in input order
        """
        keys = list(keys)
        if not keys:
            return {}

        if any(key is None for key in keys):
            raise InvalidArgumentError("Key must not be None")

        snapshot = self.hash_ring.snapshot()
        if not snapshot:
            raise NoAvailableNodeError(keys[0])

        hash_function = self.hash_ring.hash_function
        assignments: dict[Hashable, list[str]] = {}

        for key in keys:
            assignments.setdefault(snapshot.successor(hash_function(str(key))), []).append(key)

        return assignments

    def add_node(self, node: Hashable) -> None:
        """Add a node to the ring"""
        self.hash_ring.add_node(node)
        logger.info(f"Node {node!r} joined; distribution: {self.hash_ring.get_distribution()}")

    def remove_node(self, node: Hashable) -> bool:
        """
        Remove a node from the ring (no-op if absent).

        Returns:
            True if the node was on the ring when it was removed
        """
        present = self.hash_ring.remove_node(node)
        logger.info(f"Node {node!r} left; {self.hash_ring.get_node_count()} nodes remain")
        return present

    @property
    def nodes(self) -> frozenset:
        return self.hash_ring.nodes

    def preview_add(self, node: Hashable, keys: Iterable[str]) -> dict[str, tuple]:
        """
        Show which keys would move if a node were added.

        The live ring is not changed.

        Args:
            node: Node that would be added
            keys: Sample keys to check

        Returns:
            Dict mapping moved key → (old_node, new_node)
        """
        before = self._frozen_ring()
        after = self._frozen_ring()
        after.add_node(node)
        return self._diff(before, after, keys)

    def preview_remove(self, node: Hashable, keys: Iterable[str]) -> dict[str, tuple]:
        """
        Show which keys would move if a node were removed.

        Keys that would be left with no node at all map to (old_node, None).
        """
        before = self._frozen_ring()
        after = self._frozen_ring()
        after.remove_node(node)
        return self._diff(before, after, keys)

    def get_stats(self, sample_keys: Iterable[str] = ()) -> dict:
        """
        Get statistics about ring membership and key distribution.

        Args:
            sample_keys: Keys to route for the per-node key counts

        Returns:
            Dictionary with:
            - num_nodes: Number of physical nodes
            - num_vnodes: Number of positions on the ring
            - replication_factor: Configured vnodes per node
            - vnodes_per_node: Dict mapping node → positions owned
            - keys_per_node: Dict mapping node → sample keys routed to it
        """
        vnodes = self.hash_ring.get_distribution()
        keys_per_node = {node: 0 for node in vnodes}

        if vnodes:
            for node, keys in self.route_many(sample_keys).items():
                keys_per_node[node] = len(keys)

        return {
            "num_nodes": len(vnodes),
            "num_vnodes": self.hash_ring.get_vnode_count(),
            "replication_factor": self.hash_ring.replication_factor,
            "vnodes_per_node": vnodes,
            "keys_per_node": keys_per_node,
        }

    def _frozen_ring(self) -> ConsistentHashRing:
        """Scratch ring holding the current snapshot"""
        return self.hash_ring.copy()

    @staticmethod
    def _diff(
        before: ConsistentHashRing, after: ConsistentHashRing, keys: Iterable[str]
    ) -> dict[str, tuple]:
        moved = {}

        for key in keys:
            old = before.get_node(key) if len(before) else None
            new = after.get_node(key) if len(after) else None
            if old != new:
                moved[key] = (old, new)

        return moved
