from typing import Dict, Optional
from collections import Counter
from pydantic import BaseModel, Field
import structlog

logger = structlog.get_logger(__name__)


class LatencyStats(BaseModel):
    """Running latency figures for one timed operation, in milliseconds"""
    count: int = 0
    total_ms: float = 0.0
    min_ms: Optional[float] = None
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    def observe(self, duration_ms: float):
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = duration_ms if self.min_ms is None else min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)


class MetricsSnapshot(BaseModel):
    """Point-in-time copy of everything the engine counts"""
    documents_added: int = 0
    documents_added_by_kind: Dict[str, int] = Field(default_factory=dict)
    persistence_failures: int = 0
    persistence_failures_by_operation: Dict[str, int] = Field(default_factory=dict)
    novelty_gate_hits: int = 0
    short_term_count: int = 0
    long_term_count: int = 0
    vector_count: int = 0
    search_latency: LatencyStats = Field(default_factory=LatencyStats)
    context_latency: LatencyStats = Field(default_factory=LatencyStats)


class MemoryMetrics:
    """In-process counters for one memory engine and its stores"""

    def __init__(self):
        self._documents_added: Counter = Counter()
        self._persistence_failures: Counter = Counter()
        self._novelty_gate_hits = 0
        self._sizes = {"short_term_count": 0, "long_term_count": 0, "vector_count": 0}
        self._search_latency = LatencyStats()
        self._context_latency = LatencyStats()

    def document_added(self, kind: str):
        self._documents_added[kind] += 1

    def persistence_failed(self, operation: str):
        self._persistence_failures[operation] += 1
        logger.debug("persistence_failure_counted", operation=operation,
                     total=sum(self._persistence_failures.values()))

    def novelty_gate_hit(self):
        self._novelty_gate_hits += 1

    def search_completed(self, duration_ms: float):
        self._search_latency.observe(duration_ms)

    def context_composed(self, duration_ms: float):
        self._context_latency.observe(duration_ms)

    def update_sizes(
        self,
        short_term: Optional[int] = None,
        long_term: Optional[int] = None,
        vectors: Optional[int] = None
    ):
        """Record collection sizes; None leaves a size unchanged"""

        if short_term is not None:
            self._sizes["short_term_count"] = short_term
        if long_term is not None:
            self._sizes["long_term_count"] = long_term
        if vectors is not None:
            self._sizes["vector_count"] = vectors

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            documents_added=sum(self._documents_added.values()),
            documents_added_by_kind=dict(self._documents_added),
            persistence_failures=sum(self._persistence_failures.values()),
            persistence_failures_by_operation=dict(self._persistence_failures),
            novelty_gate_hits=self._novelty_gate_hits,
            search_latency=self._search_latency.model_copy(),
            context_latency=self._context_latency.model_copy(),
            **self._sizes
        )
