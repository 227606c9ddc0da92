from typing import Dict, List, Any, Optional, Tuple
from enum import Enum
import asyncio
import time
import uuid
import structlog

from ..models.memory_item import (
    DocumentMetadata,
    MemoryItem,
    MemoryKind,
    MemoryStats,
)
from .memory.key_value_store import KeyValueStore
from .memory.runtime_memory import RuntimeMemory
from .memory.vector_memory_store import VectorMemoryStore
from .context_composer import compose_context
from ...config import MemoryEngineConfig, build_key_value_store
from ...infrastructure.observability.logging import memory_logger, setup_logging
from ...infrastructure.observability.metrics import MemoryMetrics

logger = structlog.get_logger(__name__)

IMAGE_PREFERENCE_TEMPLATE = "User seems to like images of: {prompt}"


class EngineState(str, Enum):
    """Initialization state of the memory engine"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class ContextManager:
    """Retrieval-augmented memory engine for a conversational assistant

    Records conversation turns, facts and generated images, and assembles
    relevant past material into a context block for the next generation
    call. Construct one per conversation owner and pass it to whoever needs
    it; persisted state is loaded lazily on first use.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStore] = None,
        config: Optional[MemoryEngineConfig] = None,
        metrics: Optional[MemoryMetrics] = None
    ):
        self.config = config or MemoryEngineConfig()
        self.storage = storage or build_key_value_store(self.config)
        self.metrics = metrics or MemoryMetrics()
        self.engine_id = uuid.uuid4().hex[:12]
        self.logger = logger.bind(engine_id=self.engine_id)

        self.vector_store = VectorMemoryStore(
            storage=self.storage,
            similarity_threshold=self.config.similarity_threshold,
            min_token_length=self.config.min_token_length,
            key_prefix=self.config.storage_key_prefix,
            metrics=self.metrics
        )
        self.runtime_memory = RuntimeMemory(
            storage=self.storage,
            vector_store=self.vector_store,
            short_term_capacity=self.config.short_term_capacity,
            long_term_capacity=self.config.long_term_capacity,
            novelty_top_k=self.config.novelty_top_k,
            key_prefix=self.config.storage_key_prefix,
            metrics=self.metrics
        )

        self._ready = False
        self._init_task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: Optional[MemoryEngineConfig] = None, configure_logging: bool = True) -> "ContextManager":
        """Build an engine from config (environment by default), setting up logging on the way"""

        config = config or MemoryEngineConfig.from_env()
        if configure_logging:
            setup_logging(config.log_level, config.log_format)
        return cls(config=config)

    @property
    def state(self) -> EngineState:
        if self._ready:
            return EngineState.READY
        if self._init_task is not None:
            return EngineState.INITIALIZING
        return EngineState.UNINITIALIZED

    @property
    def storage_keys(self) -> Tuple[str, ...]:
        return self.vector_store.storage_keys + self.runtime_memory.storage_keys

    async def initialize(self):
        """Load persisted state once; concurrent callers share the same load"""

        if self._ready:
            return

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load_state())

        task = self._init_task
        try:
            await task
        except Exception:
            # Let the next caller retry
            if self._init_task is task:
                self._init_task = None
            raise

    async def _load_state(self):
        self.logger.info("Initializing memory engine")

        await self.vector_store.load()
        await self.runtime_memory.load()

        self._ready = True
        self._update_sizes()

        self.logger.info(
            "Memory engine ready",
            documents=self.vector_store.count(),
            short_term=len(self.runtime_memory.short_term),
            long_term=len(self.runtime_memory.long_term)
        )

    async def save_state(self):
        """Persist every collection as a full snapshot"""

        await self.vector_store.save()
        await self.runtime_memory.save()
        self._update_sizes()

    async def add_user_message(self, message: str):
        """Record a user turn and index it for retrieval"""

        await self.initialize()

        item = await self.runtime_memory.record_user_message(message)
        await self.vector_store.add_document(
            message,
            DocumentMetadata(type=MemoryKind.USER_MESSAGE, timestamp=item.timestamp)
        )

        await self.save_state()

    async def add_assistant_response(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        """Record an assistant turn and index it for retrieval"""

        await self.initialize()

        item = await self.runtime_memory.record_assistant_response(message, metadata)
        await self.vector_store.add_document(
            message,
            DocumentMetadata(
                type=MemoryKind.ASSISTANT_RESPONSE,
                timestamp=item.timestamp,
                extra=item.metadata
            )
        )

        await self.save_state()

    async def add_generated_image(self, image_ref: str, prompt: str):
        """Record a generated image; novel prompts also go to long-term memory"""

        await self.initialize()

        remembered = await self.runtime_memory.record_generated_image(image_ref, prompt)
        self.logger.info(
            "Recorded generated image",
            image_ref=image_ref,
            prompt=prompt[:50],
            novel=remembered is not None
        )

        await self.save_state()

    async def add_to_long_term_memory(self, fact: str):
        """Remember a fact in long-term memory"""

        await self.initialize()

        await self.runtime_memory.record_fact(fact)

        await self.save_state()

    async def remember_image_preference(self, prompt: str):
        """Record that the user likes images like the given prompt"""

        await self.add_to_long_term_memory(IMAGE_PREFERENCE_TEMPLATE.format(prompt=prompt))

    async def get_relevant_context(self, query: str) -> str:
        """Build the context block for a new user query; empty when nothing is relevant"""

        await self.initialize()

        started = time.perf_counter()

        relevant_docs = await self.vector_store.search(query, self.config.context_top_k)
        recent_images = self.runtime_memory.long_term_items(
            kind=MemoryKind.IMAGE_GENERATION,
            limit=self.config.context_long_term_items
        )
        context = compose_context(relevant_docs, recent_images)

        self.metrics.context_composed((time.perf_counter() - started) * 1000)
        memory_logger.log_memory_event(
            "retrieve",
            "context",
            details={
                "query": query[:50],
                "documents": len(relevant_docs),
                "reminders": len(recent_images)
            },
            engine_id=self.engine_id
        )

        return context

    def get_recent_conversation(self, max_items: Optional[int] = None) -> List[MemoryItem]:
        """Most recent short-term entries, oldest first

        Reads in-memory state only; call initialize() first to include
        turns persisted by an earlier process.
        """

        if max_items is None:
            max_items = self.config.recent_conversation_default
        return self.runtime_memory.recent_conversation(max_items)

    @property
    def short_term_memory(self) -> Tuple[MemoryItem, ...]:
        return tuple(self.runtime_memory.short_term)

    @property
    def long_term_memory(self) -> Tuple[MemoryItem, ...]:
        return tuple(self.runtime_memory.long_term)

    def get_memory_stats(self) -> MemoryStats:
        """Collection sizes for memory management views"""

        return MemoryStats(
            short_term_count=len(self.runtime_memory.short_term),
            long_term_count=len(self.runtime_memory.long_term),
            vector_count=len(self.vector_store.vectors),
            document_count=self.vector_store.count()
        )

    async def clear_all(self):
        """Forget everything, in memory and in storage

        The next operation reinitializes from the now empty storage.
        """

        self.logger.info("Clearing all memory")

        # A load still in flight must not repopulate the cleared collections
        pending = self._init_task
        if pending is not None and not pending.done():
            try:
                await pending
            except Exception as e:
                self.logger.warning("Pending initialization failed during clear", error=str(e))

        await self.vector_store.clear()
        await self.runtime_memory.clear()

        await self.vector_store.delete_snapshot()
        await self.runtime_memory.delete_snapshot()

        self._ready = False
        self._init_task = None
        self._update_sizes()

    def _update_sizes(self):
        stats = self.get_memory_stats()
        self.metrics.update_sizes(
            short_term=stats.short_term_count,
            long_term=stats.long_term_count,
            vectors=stats.vector_count
        )
