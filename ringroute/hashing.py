"""
Hash functions for placing keys and virtual nodes on the ring.

A hash function is any callable taking a string and returning a
non-negative integer. The ring never looks inside it, so the classes here
are interchangeable:

    JavaStringHash   31-multiplier string hash, 31-bit output (default)
    Sha256Hash       first 64 bits of SHA-256
    Md5Hash          first 32 bits of MD5
    Murmur3Hash      32-bit MurmurHash3 (mmh3)

Swapping one for another changes where positions land, never whether
lookups are correct.
"""
import hashlib
from typing import Callable, Optional
import logging

import mmh3

from ringroute.errors import ConfigurationError, InvalidArgumentError

logger = logging.getLogger(__name__)

HashFunction = Callable[[str], int]


def _require_key(key: Optional[str]) -> str:
    if key is None:
        raise InvalidArgumentError("Cannot hash a None key")
    return key


class JavaStringHash:
    """
    Polynomial string hash over UTF-16 code units, masked to 31 bits.

    Computes s[0]*31^(n-1) + ... + s[n-1] with 32-bit wrap-around, then
    clears the sign bit. Output is identical to Java's
    ``String.hashCode() & 0x7fffffff``, which keeps ring positions
    reproducible across processes (unlike Python's salted ``hash()``).
    """

    name = "java"
    max_value = 0x7FFFFFFF

    def __call__(self, key: str) -> int:
        data = _require_key(key).encode("utf-16-be", "surrogatepass")
        h = 0
        for i in range(0, len(data), 2):
            h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
        return h & 0x7FFFFFFF

    def __repr__(self) -> str:
        return "JavaStringHash()"


class Sha256Hash:
    """
    SHA-256 based hash.

    Takes the first 16 hex characters (64 bits) of the digest, giving a
    position in [0, 2^64).
    """

    name = "sha256"
    max_value = 2**64 - 1

    def __call__(self, key: str) -> int:
        data = _require_key(key).encode("utf-8", "surrogatepass")
        hash_digest = hashlib.sha256(data).hexdigest()
        return int(hash_digest[:16], 16)

    def __repr__(self) -> str:
        return "Sha256Hash()"


class Md5Hash:
    """MD5 based hash using the first 4 bytes as an unsigned 32-bit integer"""

    name = "md5"
    max_value = 2**32 - 1

    def __call__(self, key: str) -> int:
        data = _require_key(key).encode("utf-8", "surrogatepass")
        digest = hashlib.md5(data, usedforsecurity=False).digest()
        return int.from_bytes(digest[:4], byteorder="big")

    def __repr__(self) -> str:
        return "Md5Hash()"


class Murmur3Hash:
    """
    32-bit MurmurHash3, unsigned.

    Args:
        seed: Murmur seed. Rings that must agree on placement need the same seed.
    """

    name = "murmur3"
    max_value = 2**32 - 1

    def __init__(self, seed: int = 0):
        self.seed = seed

    def __call__(self, key: str) -> int:
        return mmh3.hash(_require_key(key).encode("utf-8", "surrogatepass"), self.seed, signed=False)

    def __repr__(self) -> str:
        return f"Murmur3Hash(seed={self.seed})"


_REGISTRY: dict[str, Callable[[], HashFunction]] = {
    JavaStringHash.name: JavaStringHash,
    Sha256Hash.name: Sha256Hash,
    Md5Hash.name: Md5Hash,
    Murmur3Hash.name: Murmur3Hash,
}

DEFAULT_HASH_FUNCTION = JavaStringHash.name


def available_hash_functions() -> list[str]:
    """Names accepted by get_hash_function()"""
    return sorted(_REGISTRY)


def get_hash_function(name: str = DEFAULT_HASH_FUNCTION) -> HashFunction:
    """
    Build a hash function by registry name.

    Args:
        name: One of available_hash_functions() (case-insensitive)

    Returns:
        A new hash function instance

    Raises:
        ConfigurationError: If the name is unknown
    """
    factory = _REGISTRY.get(name.strip().lower()) if name else None

    if factory is None:
        raise ConfigurationError(
            f"Unknown hash function '{name}' (expected one of {available_hash_functions()})"
        )

    hash_function = factory()
    logger.debug(f"Using hash function {hash_function!r}")
    return hash_function
