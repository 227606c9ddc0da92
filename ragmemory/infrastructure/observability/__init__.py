from .logging import setup_logging, MemoryLogger, memory_logger
from .metrics import MemoryMetrics, MetricsSnapshot, LatencyStats

__all__ = [
    "setup_logging",
    "MemoryLogger",
    "memory_logger",
    "MemoryMetrics",
    "MetricsSnapshot",
    "LatencyStats",
]
