"""
Ring settings loaded from environment variables.

    RING_NODES          comma-separated initial nodes   (node-0,node-1,node-2)
    REPLICATION_FACTOR  virtual nodes per node          (100)
    HASH_FUNCTION       java | sha256 | md5 | murmur3   (java)
    NODE_ID             id reported by /health          (unknown)
    LOG_LEVEL           logging level                   (INFO)
"""
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ringroute.errors import ConfigurationError
from ringroute.hashing import DEFAULT_HASH_FUNCTION, available_hash_functions


class RingSettings(BaseModel):
    """Validated configuration for a ShardRouter and the HTTP app"""
    nodes: list[str] = Field(default_factory=lambda: ["node-0", "node-1", "node-2"])
    replication_factor: int = Field(default=100, ge=1)
    hash_function: str = DEFAULT_HASH_FUNCTION
    node_id: str = "unknown"
    log_level: str = "INFO"

    @field_validator("nodes", mode="before")
    @classmethod
    def split_nodes(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        # Drop blanks and duplicates, keep first-seen order
        return list(dict.fromkeys(n.strip() for n in value if n and n.strip()))

    @field_validator("hash_function")
    @classmethod
    def known_hash_function(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in available_hash_functions():
            raise ValueError(f"must be one of {available_hash_functions()}")
        return value

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown logging level '{value}'")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RingSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (used by tests)

        Raises:
            ConfigurationError: If any variable is invalid
        """
        env = os.environ if environ is None else environ
        raw = {
            "nodes": env.get("RING_NODES"),
            "replication_factor": env.get("REPLICATION_FACTOR"),
            "hash_function": env.get("HASH_FUNCTION"),
            "node_id": env.get("NODE_ID"),
            "log_level": env.get("LOG_LEVEL"),
        }

        try:
            return cls(**{name: value for name, value in raw.items() if value is not None})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid ring settings: {e}") from e
