"""Storage for execution records.

The executor owns the records; the repository only keeps them addressable by
id. Eviction is explicit (``evict_older_than``), never implicit.
"""
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..schemas.execution_models import ActionExecution


class ExecutionRepository(ABC):
    @abstractmethod
    def get(self, execution_id: str) -> Optional[ActionExecution]:
        ...

    @abstractmethod
    def save(self, execution: ActionExecution) -> None:
        ...

    @abstractmethod
    def list_all(self) -> List[ActionExecution]:
        ...

    @abstractmethod
    def evict_older_than(self, cutoff: datetime) -> int:
        """Drop records created before ``cutoff``; returns how many went."""


class InMemoryExecutionRepository(ExecutionRepository):
    def __init__(self):
        self._records: Dict[str, ActionExecution] = {}
        self._lock = threading.Lock()

    def get(self, execution_id: str) -> Optional[ActionExecution]:
        with self._lock:
            return self._records.get(execution_id)

    def save(self, execution: ActionExecution) -> None:
        with self._lock:
            self._records[execution.id] = execution

    def list_all(self) -> List[ActionExecution]:
        with self._lock:
            return list(self._records.values())

    def evict_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [k for k, v in self._records.items() if v.timestamp < cutoff]
            for key in stale:
                self._records.pop(key)
            return len(stale)

    def __len__(self):
        with self._lock:
            return len(self._records)
