from typing import Any, Dict, Optional
from abc import ABC, abstractmethod
from pathlib import Path
import asyncio
import json
import structlog

from ....infrastructure.observability.logging import memory_logger
from ....infrastructure.observability.metrics import MemoryMetrics

logger = structlog.get_logger(__name__)


class PersistenceError(Exception):
    """Raised by a key-value backend when it cannot serve a request"""
    
    def __init__(self, key: str, message: str):
        super().__init__(f"{message} (key={key!r})")
        self.key = key


class PersistenceReadError(PersistenceError):
    pass


class PersistenceWriteError(PersistenceError):
    pass


class KeyValueStore(ABC):
    """Durable string key-value storage consumed by the memory engine"""
    
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent"""
        
    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """Store a serialized value; returns False on failure"""
        
    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove a key; returns False on failure"""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local key-value store, lost on restart"""
    
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()
        
    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self.data.get(key)
            
    async def set(self, key: str, value: str) -> bool:
        async with self._lock:
            self.data[key] = value
            return True
            
    async def remove(self, key: str) -> bool:
        async with self._lock:
            self.data.pop(key, None)
            return True


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store kept as one JSON object on disk
    
    Every write rewrites the whole file. File I/O runs in a worker thread so
    the event loop is not blocked.
    """
    
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()
        
    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise PersistenceReadError(str(self.path), f"Cannot read storage file: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Storage file is corrupt, treating as empty", path=str(self.path), error=str(e))
            return {}
        if not isinstance(raw, dict):
            logger.warning("Storage file has unexpected shape, treating as empty", path=str(self.path))
            return {}
        return raw
        
    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self.path)
        
    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            return data.get(key)
            
    async def set(self, key: str, value: str) -> bool:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_all)
                data[key] = value
                await asyncio.to_thread(self._write_all, data)
            except OSError as e:
                raise PersistenceWriteError(key, f"Cannot write storage file: {e}") from e
            return True
            
    async def remove(self, key: str) -> bool:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_all)
                if key in data:
                    del data[key]
                    await asyncio.to_thread(self._write_all, data)
            except OSError as e:
                raise PersistenceWriteError(key, f"Cannot write storage file: {e}") from e
            return True


class SnapshotPersistence:
    """Reads and writes full-collection snapshots through a KeyValueStore
    
    Backend failures are logged and counted, never raised: in-memory state
    stays the source of truth for the rest of the process.
    """
    
    storage: KeyValueStore
    metrics: MemoryMetrics
    
    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.storage.get(key)
        except (PersistenceError, OSError) as e:
            self._record_failure("read", key, e)
            return None
            
    async def _write(self, key: str, value: str) -> None:
        try:
            ok = await self.storage.set(key, value)
        except (PersistenceError, OSError) as e:
            self._record_failure("write", key, e)
            return
        if not ok:
            self._record_failure("write", key, "backend reported failure")
            
    async def _remove(self, key: str) -> None:
        try:
            ok = await self.storage.remove(key)
        except (PersistenceError, OSError) as e:
            self._record_failure("remove", key, e)
            return
        if not ok:
            self._record_failure("remove", key, "backend reported failure")
            
    def _record_failure(self, operation: str, key: str, error: Any) -> None:
        self.metrics.persistence_failed(operation)
        memory_logger.log_persistence_failure(operation, key, error=str(error))
