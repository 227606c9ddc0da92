"""
Configuration for the memory engine.

Defaults reproduce the behaviour the chat application was tuned for; every
field can be overridden through ``RAGMEMORY_*`` environment variables.
"""

import os
from typing import Any, Dict, Optional
from pathlib import Path

from pydantic import BaseModel, Field

from .domain.context.memory.key_value_store import (
    KeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)

ENV_PREFIX = "RAGMEMORY_"


class MemoryEngineConfig(BaseModel):
    """Capacities, retrieval thresholds and storage settings"""
    short_term_capacity: int = Field(default=20, ge=1)
    long_term_capacity: int = Field(default=50, ge=1)
    similarity_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    min_token_length: int = Field(default=3, ge=1)
    context_top_k: int = Field(default=5, ge=1)
    context_long_term_items: int = Field(default=5, ge=1)
    novelty_top_k: int = Field(default=2, ge=1)
    recent_conversation_default: int = Field(default=10, ge=1)
    storage_key_prefix: str = ""
    storage_path: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls, **overrides: Any) -> "MemoryEngineConfig":
        """Build a config from ``RAGMEMORY_<FIELD>`` variables; explicit overrides win."""
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update(overrides)
        return cls(**values)


def build_key_value_store(config: MemoryEngineConfig) -> KeyValueStore:
    """Durable file storage when a path is configured, in-process storage otherwise."""
    if config.storage_path:
        return JsonFileKeyValueStore(Path(config.storage_path))
    return InMemoryKeyValueStore()
