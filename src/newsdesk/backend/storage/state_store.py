#!/usr/bin/env python3
"""
Key/value state stores used for rate-limit bookkeeping.

Contract: load() returns the last saved mapping (read-your-writes within a
process), save() replaces it wholesale. There is no cross-process locking;
concurrent writers are last-write-wins.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)


class StateStore(ABC):

    @abstractmethod
    def load(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def save(self, data: Dict[str, Any]) -> None:
        ...


class InMemoryStateStore(StateStore):
    """Process-local store, used by tests and one-shot runs."""

    def __init__(self, initial: Dict[str, Any] = None):
        self._data: Dict[str, Any] = deepcopy(initial) if initial else {}
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return deepcopy(self._data)

    def save(self, data: Dict[str, Any]) -> None:
        self._data = deepcopy(data)
        self.saves += 1


class JsonFileStateStore(StateStore):
    """JSON file store. Writes go to a temp file that atomically replaces the target."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not parse state file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} does not hold an object, ignoring it")
            return {}
        return data

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
