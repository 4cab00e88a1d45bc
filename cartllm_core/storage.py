#!/usr/bin/env python3
"""
Key/value storage with change notifications.

``MemoryStore`` keeps everything in a dict; ``JsonFileStore`` persists the
same mapping as one JSON file under the workspace. Listeners receive
``(changes, area)`` where ``changes`` maps each touched key to a
``StorageChange``.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, "StorageChange"], str], None]


@dataclass
class StorageChange:
    old_value: Any = None
    new_value: Any = None


class KeyValueStore:
    """Async key/value store interface."""

    area = "local"

    def __init__(self):
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, changes: Dict[str, StorageChange]) -> None:
        if not changes:
            return
        for listener in list(self._listeners):
            try:
                listener(changes, self.area)
            except Exception as e:
                logger.warning(f"Storage listener failed: {e}")

    def _read_all(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _write_all(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        data = self._read_all()
        return {k: data[k] for k in keys if k in data}

    async def set(self, items: Dict[str, Any]) -> None:
        data = self._read_all()
        changes = {k: StorageChange(data.get(k), v) for k, v in items.items()}
        data.update(items)
        self._write_all(data)
        self._notify(changes)

    async def remove(self, keys: Iterable[str]) -> None:
        data = self._read_all()
        changes = {}
        for k in keys:
            if k in data:
                changes[k] = StorageChange(data.pop(k), None)
        if changes:
            self._write_all(data)
        self._notify(changes)

    async def keys(self) -> List[str]:
        return list(self._read_all().keys())


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__()
        self._data: Dict[str, Any] = dict(initial or {})

    def _read_all(self) -> Dict[str, Any]:
        return dict(self._data)

    def _write_all(self, data: Dict[str, Any]) -> None:
        self._data = dict(data)


def _ensure_base() -> Path:
    base = Path(os.getenv("CARTLLM_WORKSPACE", "./workspace")) / "storage"
    candidates = [
        base,
        Path(os.path.expanduser("~")) / ".cache" / "cartllm" / "storage",
    ]
    for cand in candidates:
        try:
            cand.mkdir(parents=True, exist_ok=True)
            return cand
        except OSError:
            continue
    return base


class JsonFileStore(KeyValueStore):
    """Single JSON file; rewritten atomically on every change."""

    def __init__(self, path: Optional[Path] = None):
        super().__init__()
        self.path = Path(path) if path else _ensure_base() / "local.json"

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)
