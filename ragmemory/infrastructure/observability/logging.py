import structlog
import logging
import sys
from typing import Dict, Any, Optional, List
import os

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "ragmemory"
) -> None:
    """Route structlog output to stdout, filtered at log_level
    
    Unknown levels fall back to INFO; any format other than ``json`` renders
    for a console.
    """
    
    level = _LEVELS.get(log_level.upper(), logging.INFO)
    
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]
    
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
    
    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
    )


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


class MemoryLogger:
    """Structured events for record/search/clear actions and storage failures"""
    
    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)
        
    def log_memory_event(
        self,
        action: str,
        kind: str,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.logger.info(
            "memory_event",
            action=action,
            kind=kind,
            details=details or {},
            **kwargs
        )
        
    def log_persistence_failure(self, operation: str, key: str, error: Optional[str] = None):
        """Storage problems are warnings: the engine carries on from memory"""
        
        self.logger.warning("persistence_failure", operation=operation, key=key, error=error)


memory_logger = MemoryLogger("ragmemory")
