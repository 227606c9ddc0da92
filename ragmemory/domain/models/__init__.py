from .memory_item import (
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

__all__ = [
    "MemoryKind",
    "MemoryItem",
    "UserMessage",
    "AssistantResponse",
    "Fact",
    "ImageGeneration",
    "Document",
    "DocumentMetadata",
    "VectorRecord",
    "SearchResult",
    "MemoryStats",
]
