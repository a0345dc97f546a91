"""
Demo: route a few keys, add a node, route them again.

    python -m ringroute.demo

Keys that change owner after NodeD joins all move to NodeD; the rest stay
where they were. Ring settings other than the node list come from the
environment (see ringroute.config).
"""
import logging

from ringroute.cluster.router import ShardRouter
from ringroute.config import RingSettings
from ringroute.hashing import get_hash_function

DEMO_NODES = ["NodeA", "NodeB", "NodeC"]
DEMO_KEYS = ["Key1", "Key2", "Key3"]
NEW_NODE = "NodeD"


def run(settings: RingSettings) -> dict[str, tuple]:
    """
    Run the demo scenario.

    Returns:
        Dict mapping each demo key → (owner before, owner after NodeD joined)
    """
    router = ShardRouter(
        DEMO_NODES,
        replication_factor=settings.replication_factor,
        hash_function=get_hash_function(settings.hash_function),
    )

    before = {key: router.route(key) for key in DEMO_KEYS}
    for key, node in before.items():
        print(f"{key} => {node}")

    print(f"\nAdding {NEW_NODE}...\n")
    router.add_node(NEW_NODE)

    after = {key: router.route(key) for key in DEMO_KEYS}
    for key, node in after.items():
        marker = "" if node == before[key] else "  (moved)"
        print(f"{key} => {node}{marker}")

    print("\nHash Ring Snapshot:")
    print(router.hash_ring.describe())

    return {key: (before[key], after[key]) for key in DEMO_KEYS}


def main() -> None:
    settings = RingSettings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    run(settings)


if __name__ == "__main__":
    main()
