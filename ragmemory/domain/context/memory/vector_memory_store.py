from typing import List, Optional, Tuple
import asyncio
import time
import uuid
import structlog
from pydantic import ValidationError

from ...models.memory_item import (
    Document,
    DocumentMetadata,
    SearchResult,
    VectorRecord,
    document_list_adapter,
    vector_list_adapter,
)
from ..text_vectorizer import vectorize, cosine_similarity, MIN_TOKEN_LENGTH
from .key_value_store import KeyValueStore, SnapshotPersistence
from ....infrastructure.observability.logging import memory_logger
from ....infrastructure.observability.metrics import MemoryMetrics

logger = structlog.get_logger(__name__)

VECTORS_KEY = "rag_vectors"
DOCUMENTS_KEY = "rag_documents"


class VectorMemoryStore(SnapshotPersistence):
    """Term-frequency vector store with linear-scan cosine search
    
    Vectors and documents are kept in two index-aligned lists and persisted
    as two full snapshots.
    """
    
    def __init__(
        self,
        storage: KeyValueStore,
        similarity_threshold: float = 0.1,
        min_token_length: int = MIN_TOKEN_LENGTH,
        key_prefix: str = "",
        metrics: Optional[MemoryMetrics] = None
    ):
        self.storage = storage
        self.similarity_threshold = similarity_threshold
        self.min_token_length = min_token_length
        self.vectors_key = f"{key_prefix}{VECTORS_KEY}"
        self.documents_key = f"{key_prefix}{DOCUMENTS_KEY}"
        self.metrics = metrics or MemoryMetrics()
        self._vectors: List[VectorRecord] = []
        self._documents: List[Document] = []
        self._lock = asyncio.Lock()
        
    @property
    def vectors(self) -> Tuple[VectorRecord, ...]:
        return tuple(self._vectors)
        
    @property
    def documents(self) -> Tuple[Document, ...]:
        return tuple(self._documents)
        
    def count(self) -> int:
        return len(self._documents)
        
    @property
    def storage_keys(self) -> Tuple[str, str]:
        return (self.vectors_key, self.documents_key)
        
    async def add_document(self, text: str, metadata: DocumentMetadata) -> str:
        """Vectorize and index a document; returns its new id"""
        
        async with self._lock:
            doc_id = uuid.uuid4().hex
            vector = vectorize(text, self.min_token_length)
            
            self._vectors.append(VectorRecord(id=doc_id, vector=vector))
            self._documents.append(Document(id=doc_id, text=text, metadata=metadata))
            
        self.metrics.document_added(metadata.type.value)
        self.metrics.update_sizes(vectors=len(self._vectors))
        memory_logger.log_memory_event(
            "index",
            metadata.type.value,
            details={"id": doc_id, "tokens": len(vector)}
        )
        
        return doc_id
        
    async def search(self, query: str, top_k: int = 3) -> List[SearchResult]:
        """Return up to top_k documents above the similarity threshold, best first"""
        
        if top_k <= 0:
            return []
            
        started = time.perf_counter()
        query_vector = vectorize(query, self.min_token_length)
        
        async with self._lock:
            scored = [
                SearchResult(
                    id=record.id,
                    similarity=cosine_similarity(query_vector, record.vector),
                    document=document
                )
                for record, document in zip(self._vectors, self._documents)
            ]
            
        # Stable sort keeps insertion order among equal scores
        scored.sort(key=lambda r: r.similarity, reverse=True)
        results = [r for r in scored[:top_k] if r.similarity > self.similarity_threshold]
        
        self.metrics.search_completed((time.perf_counter() - started) * 1000)
        logger.debug("Vector search", query=query[:50], top_k=top_k, hits=len(results))
        
        return results
        
    async def load(self) -> None:
        """Replace in-memory collections with the persisted snapshot, if any"""
        
        vectors_data = await self._read(self.vectors_key)
        documents_data = await self._read(self.documents_key)
        
        if vectors_data is None or documents_data is None:
            return
            
        try:
            vectors = vector_list_adapter.validate_json(vectors_data)
            documents = document_list_adapter.validate_json(documents_data)
        except ValidationError as e:
            self._record_failure("load", self.documents_key, e)
            return
            
        if len(vectors) != len(documents):
            self._record_failure(
                "load",
                self.documents_key,
                f"vector/document count mismatch ({len(vectors)} != {len(documents)})"
            )
            return
            
        async with self._lock:
            self._vectors = vectors
            self._documents = documents
            
        logger.info("Loaded vector store", documents=len(documents))
        
    async def save(self) -> None:
        """Persist full snapshots of both collections"""
        
        async with self._lock:
            vectors_blob = vector_list_adapter.dump_json(self._vectors).decode("utf-8")
            documents_blob = document_list_adapter.dump_json(self._documents).decode("utf-8")
            
        await self._write(self.vectors_key, vectors_blob)
        await self._write(self.documents_key, documents_blob)
        
    async def clear(self) -> None:
        """Drop every vector and document from memory"""
        
        async with self._lock:
            self._vectors = []
            self._documents = []
            
        self.metrics.update_sizes(vectors=0)
        
    async def delete_snapshot(self) -> None:
        """Remove both persisted blobs"""
        
        await self._remove(self.vectors_key)
        await self._remove(self.documents_key)
