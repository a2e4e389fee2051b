"""Key-value stores with atomic read-modify-write"""

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Protocol, Tuple, Type, TypeVar
import logging

from pydantic import BaseModel

from .exceptions import StoreError

T = TypeVar("T", bound=BaseModel)


class KeyValueStore(Protocol[T]):
    """Store interface the core depends on"""

    def get(self, key: str) -> Optional[T]:
        ...

    def set(self, key: str, value: T) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def update(self, key: str, mutator: Callable[[Optional[T]], T]) -> T:
        """Atomically replace the value under `key` with `mutator(current)`"""
        ...

    def compare_and_set(self, key: str, expected: Optional[T], value: T) -> bool:
        ...

    def items(self) -> List[Tuple[str, T]]:
        ...


class InMemoryStore(Generic[T]):
    """Process-local store; every mutation runs under one lock"""

    def __init__(self):
        self._data: Dict[str, T] = {}
        self._lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            value = self._data.get(key)
            return value.model_copy(deep=True) if value is not None else None

    def set(self, key: str, value: T) -> None:
        with self._lock:
            self._commit(key, value.model_copy(deep=True))

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            self._commit(key, None)
            return True

    def update(self, key: str, mutator: Callable[[Optional[T]], T]) -> T:
        with self._lock:
            current = self._data.get(key)
            new_value = mutator(current.model_copy(deep=True) if current is not None else None)
            self._commit(key, new_value.model_copy(deep=True))
            return new_value

    def compare_and_set(self, key: str, expected: Optional[T], value: T) -> bool:
        with self._lock:
            if self._data.get(key) != expected:
                return False
            self._commit(key, value.model_copy(deep=True))
            return True

    def items(self) -> List[Tuple[str, T]]:
        with self._lock:
            return [(key, value.model_copy(deep=True)) for key, value in self._data.items()]

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data.keys()))

    def __len__(self) -> int:
        return len(self._data)

    def _commit(self, key: str, value: Optional[T]):
        """Apply one change and persist it; the previous value is restored if persisting fails"""
        existed = key in self._data
        previous = self._data.get(key)
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        try:
            self._persist()
        except StoreError:
            if existed:
                self._data[key] = previous
            else:
                self._data.pop(key, None)
            raise

    def _persist(self):
        """Hook for durable subclasses"""


class JsonFileStore(InMemoryStore[T]):
    """In-memory store mirrored to a JSON file after every mutation"""

    def __init__(self, path: Path, model: Type[T]):
        super().__init__()
        self.path = path
        self.model = model
        self._load()

    def _load(self):
        """Load records from persistent storage"""
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to load {self.path}: {e}") from e
        for key, raw in data.items():
            self._data[key] = self.model(**raw)

    def _persist(self):
        """Save records to persistent storage"""
        data: Dict[str, Any] = {
            key: value.model_dump(mode='json')
            for key, value in self._data.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            self.logger.error(f"Failed to save {self.path}: {e}")
            raise StoreError(f"Failed to save {self.path}: {e}") from e
