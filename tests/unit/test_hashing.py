"""
Unit tests for the pluggable hash functions.
"""
import pytest
from ringroute.errors import ConfigurationError, InvalidArgumentError
from ringroute.hashing import (
    JavaStringHash,
    Md5Hash,
    Murmur3Hash,
    Sha256Hash,
    available_hash_functions,
    get_hash_function,
)


@pytest.mark.parametrize("key, expected", [
    ("", 0),
    ("a", 97),
    ("ab", 3105),
    ("hello", 99162322),
    ("\U0001F600", 1772899),  # surrogate pair D83D DE00
    ("polygenelubricants", 0),  # raw value is -2^31, masked to 0
    ("\ud800", 55296),  # lone surrogate, hashed as its code unit
])
def test_java_string_hash_vectors(key, expected):
    """Test known values of the 31-multiplier string hash"""
    assert JavaStringHash()(key) == expected


def test_java_string_hash_collision():
    """"Aa" and "BB" are a well-known colliding pair"""
    hash_fn = JavaStringHash()

    assert hash_fn("Aa") == hash_fn("BB") == 2112
    assert hash_fn("Aa0") == hash_fn("BB0")


def test_sha256_hash():
    assert Sha256Hash()("") == int("e3b0c44298fc1c14", 16)


def test_md5_hash():
    assert Md5Hash()("") == 0xD41D8CD9


def test_murmur3_hash():
    assert Murmur3Hash()("foo") == 4138058784
    assert Murmur3Hash(seed=42)("foo") != Murmur3Hash()("foo")


@pytest.mark.parametrize("name", ["java", "sha256", "md5", "murmur3"])
def test_output_range(name):
    """Test that every hash function stays within [0, max_value]"""
    hash_fn = get_hash_function(name)

    for i in range(1000):
        value = hash_fn(f"key:{i}")
        assert 0 <= value <= hash_fn.max_value


@pytest.mark.parametrize("name", ["java", "sha256", "md5", "murmur3"])
def test_deterministic(name):
    """Test that separate instances agree"""
    assert get_hash_function(name)("user:123") == get_hash_function(name)("user:123")


@pytest.mark.parametrize("name", ["java", "sha256", "md5", "murmur3"])
def test_none_key_rejected(name):
    with pytest.raises(InvalidArgumentError):
        get_hash_function(name)(None)


def test_registry():
    assert available_hash_functions() == ["java", "md5", "murmur3", "sha256"]
    assert isinstance(get_hash_function(), JavaStringHash)
    assert isinstance(get_hash_function(" MD5 "), Md5Hash)


@pytest.mark.parametrize("name", ["crc32", "", None])
def test_unknown_hash_function(name):
    with pytest.raises(ConfigurationError):
        get_hash_function(name)


@pytest.mark.parametrize("name", ["java", "sha256", "md5", "murmur3"])
def test_lone_surrogate_key(name):
    """Test that any Python str hashes, including unpaired surrogates"""
    hash_fn = get_hash_function(name)

    assert hash_fn("\ud800") == hash_fn("\ud800")
    assert hash_fn("a\udfffb") != hash_fn("ab")
