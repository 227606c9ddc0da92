from .key_value_store import (
    KeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistenceError,
    PersistenceReadError,
    PersistenceWriteError,
)
from .vector_memory_store import VectorMemoryStore
from .runtime_memory import RuntimeMemory
