"""
Retrieval-augmented memory for a conversational assistant.

Stores conversation turns, facts and generated-image records, indexes them
as term-frequency vectors and composes relevant context for the next
response.
"""

from .config import MemoryEngineConfig, build_key_value_store
from .domain.context.context_manager import ContextManager, EngineState
from .domain.context.context_composer import compose_context
from .domain.context.text_vectorizer import vectorize, cosine_similarity
from .domain.context.memory.key_value_store import (
    KeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistenceError,
    PersistenceReadError,
    PersistenceWriteError,
)
from .domain.context.memory.vector_memory_store import VectorMemoryStore
from .domain.context.memory.runtime_memory import RuntimeMemory
from .domain.models.memory_item import (
    MemoryKind,
    MemoryItem,
    UserMessage,
    AssistantResponse,
    Fact,
    ImageGeneration,
    Document,
    DocumentMetadata,
    VectorRecord,
    SearchResult,
    MemoryStats,
)
from .infrastructure.observability.logging import setup_logging
from .infrastructure.observability.metrics import MemoryMetrics, MetricsSnapshot

__version__ = "0.1.0"
