"""
Hash ring mapping keys to nodes through virtual-node positions.

Each node claims replication_factor positions on a circular integer space;
a key belongs to the node at the first position at or after the key's hash.
A membership change only reassigns the arcs ending at the changed
positions, so most keys keep their node.

The ring is published as an immutable RingSnapshot. Writers build a new
snapshot under a lock and swap it in with a single assignment; readers
grab the current reference and never lock, so a lookup can never see a
half-applied add or remove.
"""
import bisect
import threading
from typing import Any, Hashable, Iterable, Iterator, Optional
import logging

from ringroute.errors import ConfigurationError, InvalidArgumentError, NoAvailableNodeError
from ringroute.hashing import HashFunction, JavaStringHash

logger = logging.getLogger(__name__)


class RingSnapshot:
    """
    Immutable view of the ring: sorted positions and their owners.

    positions[i] is owned by owners[i]; positions are strictly ascending.
    """

    __slots__ = ("positions", "owners")

    def __init__(self, positions: tuple[int, ...] = (), owners: tuple[Hashable, ...] = ()):
        self.positions = positions
        self.owners = owners

    @classmethod
    def from_mapping(cls, ring_map: dict[int, Hashable]) -> "RingSnapshot":
        """Build a snapshot from a position → owner mapping"""
        positions = tuple(sorted(ring_map))
        return cls(positions, tuple(ring_map[p] for p in positions))

    def to_mapping(self) -> dict[int, Hashable]:
        """Copy of the snapshot as a position → owner dict"""
        return dict(zip(self.positions, self.owners))

    def successor(self, position: int) -> Hashable:
        """
        Owner of the smallest position >= the given one.

        Wraps around to the first position when the hash is past the end.
        Caller must check the snapshot is non-empty.
        """
        idx = bisect.bisect_left(self.positions, position)

        # Wrap around if we're past the end
        if idx == len(self.positions):
            idx = 0

        return self.owners[idx]

    def __iter__(self) -> Iterator[tuple[int, Hashable]]:
        return zip(self.positions, self.owners)

    def __len__(self) -> int:
        return len(self.positions)

    def __bool__(self) -> bool:
        return bool(self.positions)

    def __repr__(self) -> str:
        return f"RingSnapshot({len(self.positions)} positions)"


class ConsistentHashRing:
    """
    Ordered position → node map with successor lookup.

    Placing A at [10, 40] and B at [25, 70] gives the ring
    10→A, 25→B, 40→A, 70→B. A key hashing to 30 lands on 40 (A), one
    hashing to 25 lands on 25 (B), and one hashing to 90 wraps to 10 (A).

    Virtual node i of a node sits at hash_function(str(node) + str(i)).
    When two vnodes land on the same position the last one written owns it,
    and removing a node deletes all of its computed positions, even one
    that a later node has since taken over.

    Usage:
        ring = ConsistentHashRing(replication_factor=100, nodes=["A", "B"])
        ring.add_node("C")
        owner = ring.get_node("user:123")
        ring.remove_node("A")

    Thread-safe: writers are serialized, readers never block.
    """

    def __init__(
        self,
        hash_function: Optional[HashFunction] = None,
        replication_factor: int = 100,
        nodes: Iterable[Hashable] = (),
    ):
        """
        Initialize the hash ring.

        Args:
            hash_function: Callable mapping a string to a non-negative int.
                           Defaults to JavaStringHash.
            replication_factor: Number of virtual nodes per physical node.
                                More vnodes = better distribution but more memory.
            nodes: Initial nodes to place on the ring

        Raises:
            ConfigurationError: If replication_factor < 1 or hash_function
                                is not callable
            InvalidArgumentError: If any initial node is None
        """
        if hash_function is None:
            hash_function = JavaStringHash()
        if not callable(hash_function):
            raise ConfigurationError(f"hash_function must be callable, got {hash_function!r}")
        if (
            isinstance(replication_factor, bool)
            or not isinstance(replication_factor, int)
            or replication_factor < 1
        ):
            raise ConfigurationError(
                f"replication_factor must be a positive integer, got {replication_factor!r}"
            )

        self.hash_function = hash_function
        self.replication_factor = replication_factor
        self._write_lock = threading.Lock()
        self._snapshot = RingSnapshot()

        initial = list(nodes)
        if initial:
            self._mutate(initial, self._place)

        logger.info(
            f"Initialized hash ring with {replication_factor} virtual nodes per node, "
            f"{len(initial)} initial nodes, hash={hash_function!r}"
        )

    def _hash(self, key) -> int:
        return self.hash_function(str(key))

    def positions_for(self, node: Hashable) -> list[int]:
        """
        Positions a node generates, whether or not it currently owns them.

        Args:
            node: Node identity

        Returns:
            replication_factor positions, in vnode order (may contain duplicates)

        Raises:
            InvalidArgumentError: If node is None
        """
        if node is None:
            raise InvalidArgumentError("Node identity must not be None")

        node_key = str(node)
        return [self._hash(f"{node_key}{i}") for i in range(self.replication_factor)]

    def _place(self, ring_map: dict[int, Hashable], node: Hashable) -> None:
        for position in self.positions_for(node):
            previous = ring_map.get(position)
            if previous is not None and previous != node:
                logger.warning(
                    f"Position {position} collision: {node!r} overwrites {previous!r}"
                )
            ring_map[position] = node

    def _evict(self, ring_map: dict[int, Hashable], node: Hashable) -> None:
        for position in self.positions_for(node):
            owner = ring_map.pop(position, None)
            if owner is not None and owner != node:
                logger.warning(
                    f"Removing {node!r} evicted position {position} owned by {owner!r}"
                )

    def _mutate(self, nodes: list[Hashable], apply) -> tuple[RingSnapshot, RingSnapshot]:
        """
        Apply a change to a copy of the ring and publish it.

        Every node is validated before anything is copied, so a bad argument
        leaves the ring untouched.

        Returns:
            (replaced snapshot, published snapshot)
        """
        if any(node is None for node in nodes):
            raise InvalidArgumentError("Node identity must not be None")

        with self._write_lock:
            previous = self._snapshot
            ring_map = previous.to_mapping()
            for node in nodes:
                apply(ring_map, node)
            snapshot = RingSnapshot.from_mapping(ring_map)
            # Single reference swap publishes the new ring to readers
            self._snapshot = snapshot

        return previous, snapshot

    def add_node(self, node: Hashable) -> None:
        """
        Add a node to the hash ring.

        Creates replication_factor virtual nodes for this physical node,
        each at a different position on the ring. Adding a node that is
        already present re-asserts the same positions.

        Args:
            node: Unique identifier for the node (e.g., "shard-0")

        Raises:
            InvalidArgumentError: If node is None
        """
        _, snapshot = self._mutate([node], self._place)
        logger.info(f"Added node {node!r} ({len(snapshot)} positions on ring)")

    def remove_node(self, node: Hashable) -> bool:
        """
        Remove a node from the hash ring.

        Deletes the positions this node generates. Removing a node that
        was never added is a no-op.

        Args:
            node: Node to remove

        Returns:
            True if the node owned a position just before this removal

        Raises:
            InvalidArgumentError: If node is None
        """
        previous, snapshot = self._mutate([node], self._evict)
        present = node in previous.owners

        if not present:
            logger.warning(f"Node {node!r} not found in ring")
        logger.info(f"Removed node {node!r} ({len(snapshot)} positions on ring)")
        return present

    def get_node(self, key: Any) -> Any:
        """
        Owner of the first position at or after hash(str(key)).

        Past the highest position the search wraps to the lowest. The owner
        is whichever node last wrote that position.

        Args:
            key: The key to look up; non-strings are hashed as str(key)

        Returns:
            Node that owns this key

        Raises:
            InvalidArgumentError: If key is None
            NoAvailableNodeError: If the ring is empty
        """
        if key is None:
            raise InvalidArgumentError("Key must not be None")

        snapshot = self._snapshot
        if not snapshot:
            raise NoAvailableNodeError(key)

        return snapshot.successor(self._hash(key))

    def snapshot(self) -> RingSnapshot:
        """The current immutable ring snapshot"""
        return self._snapshot

    def copy(self) -> "ConsistentHashRing":
        """
        Independent ring starting from the current snapshot.

        Shares the hash function and the (immutable) snapshot; changes to
        either ring afterwards do not affect the other.
        """
        ring = object.__new__(ConsistentHashRing)
        ring.hash_function = self.hash_function
        ring.replication_factor = self.replication_factor
        ring._write_lock = threading.Lock()
        ring._snapshot = self._snapshot
        return ring

    def entries(self) -> Iterator[tuple[int, Hashable]]:
        """
        Iterate (position, node) pairs in ascending position order.

        Reads the snapshot current when iteration starts; later changes are not seen.
        """
        snapshot = self._snapshot
        yield from snapshot

    def __iter__(self) -> Iterator[tuple[int, Hashable]]:
        return self.entries()

    @property
    def nodes(self) -> frozenset:
        """Nodes owning at least one position"""
        return frozenset(self._snapshot.owners)

    def __contains__(self, node: Hashable) -> bool:
        return node in self._snapshot.owners

    def __len__(self) -> int:
        return len(self._snapshot)

    def get_distribution(self) -> dict[Hashable, int]:
        """
        Positions currently owned by each node.

        A node can own fewer than replication_factor positions after
        collisions.

        Returns:
            Dictionary mapping node → owned position count
        """
        distribution: dict[Hashable, int] = {}

        for node in self._snapshot.owners:
            distribution[node] = distribution.get(node, 0) + 1

        return distribution

    def get_node_count(self) -> int:
        """Nodes owning at least one position"""
        return len(self.nodes)

    def get_vnode_count(self) -> int:
        """Positions on the ring"""
        return len(self._snapshot)

    def describe(self) -> str:
        """Human-readable dump of every position, one per line"""
        return "\n".join(
            f"Hash: {position} => Node: {node}" for position, node in self.entries()
        )
