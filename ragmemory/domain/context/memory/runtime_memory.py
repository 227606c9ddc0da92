from typing import Dict, List, Any, Optional, Tuple
import asyncio
import structlog
from pydantic import ValidationError

from ...models.memory_item import (
    MemoryItem,
    MemoryKind,
    UserMessage,
    AssistantResponse,
    Fact,
    ImageGeneration,
    DocumentMetadata,
    memory_log_adapter,
)
from .key_value_store import KeyValueStore, SnapshotPersistence
from .vector_memory_store import VectorMemoryStore
from ....infrastructure.observability.logging import memory_logger
from ....infrastructure.observability.metrics import MemoryMetrics

logger = structlog.get_logger(__name__)

SHORT_TERM_KEY = "rag_short_term_memory"
LONG_TERM_KEY = "rag_long_term_memory"


class RuntimeMemory(SnapshotPersistence):
    """Short-term and long-term memory logs with capacity-based eviction

    The short-term log holds raw conversation turns. The long-term log holds
    facts and the first occurrence of each kind of generated image. Both drop
    their oldest entries when they overflow.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        vector_store: VectorMemoryStore,
        short_term_capacity: int = 20,
        long_term_capacity: int = 50,
        novelty_top_k: int = 2,
        key_prefix: str = "",
        metrics: Optional[MemoryMetrics] = None
    ):
        self.storage = storage
        self.vector_store = vector_store
        self.short_term_capacity = short_term_capacity
        self.long_term_capacity = long_term_capacity
        self.novelty_top_k = novelty_top_k
        self.short_term_key = f"{key_prefix}{SHORT_TERM_KEY}"
        self.long_term_key = f"{key_prefix}{LONG_TERM_KEY}"
        self.metrics = metrics or MemoryMetrics()
        self.short_term: List[MemoryItem] = []
        self.long_term: List[MemoryItem] = []
        self._lock = asyncio.Lock()

    @property
    def storage_keys(self) -> Tuple[str, str]:
        return (self.short_term_key, self.long_term_key)

    async def record_user_message(self, text: str) -> UserMessage:
        """Append a user turn to short-term memory"""

        item = UserMessage(content=text)
        await self._append_short_term(item)
        return item

    async def record_assistant_response(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> AssistantResponse:
        """Append an assistant turn to short-term memory"""

        item = AssistantResponse(content=text, metadata=metadata or {})
        await self._append_short_term(item)
        return item

    async def record_fact(self, text: str) -> Fact:
        """Append a fact to long-term memory"""

        item = Fact(content=text)
        await self._append_long_term(item)
        return item

    async def record_generated_image(self, image_ref: str, prompt: str) -> Optional[ImageGeneration]:
        """Index a generated image and remember it long-term if it is novel

        The prompt is always added to the vector store. It reaches long-term
        memory only when a search for it finds at most one match, which is
        the document just indexed. Returns the long-term entry, or None when
        something similar was already there.
        """

        item = ImageGeneration(prompt=prompt, image_ref=image_ref)
        await self.vector_store.add_document(
            prompt,
            DocumentMetadata(
                type=MemoryKind.IMAGE_GENERATION,
                timestamp=item.timestamp,
                image_ref=image_ref
            )
        )

        similar = await self.vector_store.search(prompt, self.novelty_top_k)
        if len(similar) > 1:
            logger.debug("Image prompt already known", prompt=prompt[:50], matches=len(similar))
            return None

        self.metrics.novelty_gate_hit()
        await self._append_long_term(item)
        return item

    def recent_conversation(self, max_items: int) -> List[MemoryItem]:
        """Last max_items short-term entries, oldest first"""

        if max_items <= 0:
            return []
        return list(self.short_term[-max_items:])

    def long_term_items(self, kind: Optional[MemoryKind] = None, limit: Optional[int] = None) -> List[MemoryItem]:
        """Long-term entries, optionally restricted to one kind and to the most recent limit"""

        items = [item for item in self.long_term if kind is None or item.kind == kind]
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    async def clear(self) -> None:
        """Empty both logs"""

        async with self._lock:
            self.short_term = []
            self.long_term = []

        memory_logger.log_memory_event("clear", "all")

    async def load(self) -> None:
        """Replace both logs with their persisted snapshots, where present"""

        short_term = await self._load_log(self.short_term_key)
        long_term = await self._load_log(self.long_term_key)

        async with self._lock:
            if short_term is not None:
                self.short_term = short_term[-self.short_term_capacity:]
            if long_term is not None:
                self.long_term = long_term[-self.long_term_capacity:]

        logger.info(
            "Loaded memory logs",
            short_term=len(self.short_term),
            long_term=len(self.long_term)
        )

    async def save(self) -> None:
        """Persist full snapshots of both logs"""

        async with self._lock:
            short_blob = memory_log_adapter.dump_json(self.short_term).decode("utf-8")
            long_blob = memory_log_adapter.dump_json(self.long_term).decode("utf-8")

        await self._write(self.short_term_key, short_blob)
        await self._write(self.long_term_key, long_blob)

    async def delete_snapshot(self) -> None:
        """Remove both persisted logs"""

        await self._remove(self.short_term_key)
        await self._remove(self.long_term_key)

    async def _append_short_term(self, item: MemoryItem):
        async with self._lock:
            self.short_term.append(item)
            if len(self.short_term) > self.short_term_capacity:
                self.short_term = self.short_term[-self.short_term_capacity:]

        memory_logger.log_memory_event("record", item.kind.value, log="short_term")

    async def _append_long_term(self, item: MemoryItem):
        async with self._lock:
            self.long_term.append(item)
            if len(self.long_term) > self.long_term_capacity:
                self.long_term = self.long_term[-self.long_term_capacity:]

        memory_logger.log_memory_event("record", item.kind.value, log="long_term")

    async def _load_log(self, key: str) -> Optional[List[MemoryItem]]:
        data = await self._read(key)
        if data is None:
            return None
        try:
            return memory_log_adapter.validate_json(data)
        except ValidationError as e:
            self._record_failure("load", key, e)
            return None
