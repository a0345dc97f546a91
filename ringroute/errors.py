"""
Exceptions raised by the hash ring and its callers.

Every failure is a caller-contract violation or an empty-ring precondition,
so none of these are retried internally.
"""


class HashRingError(Exception):
    """Base class for all ring errors"""


class ConfigurationError(HashRingError, ValueError):
    """Invalid ring configuration (replication factor, hash function, settings)"""


class InvalidArgumentError(HashRingError, ValueError):
    """A key or node identity was None"""


class NoAvailableNodeError(HashRingError, LookupError):
    """Lookup on a ring that owns no positions"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Hash ring is empty - no node available for key '{key}'")
