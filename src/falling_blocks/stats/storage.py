from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from ..errors import StorageError

logger = logging.getLogger(__name__)


class StorageAdapter(Protocol):
    """Where the statistics store keeps its data: one JSON-compatible dict."""

    def load(self) -> Optional[Dict[str, Any]]:
        ...

    def save(self, data: Dict[str, Any]) -> None:
        ...

    def clear(self) -> None:
        ...


class MemoryStorage:
    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data = copy.deepcopy(data) if data is not None else None

    def load(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)

    def save(self, data: Dict[str, Any]) -> None:
        self._data = copy.deepcopy(data)

    def clear(self) -> None:
        self._data = None


class JsonFileStorage:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StorageError(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold a JSON object")
        return data

    def save(self, data: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StorageError(f"cannot write {self.path}: {exc}") from exc
        logger.debug("saved statistics to %s", self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageError(f"cannot remove {self.path}: {exc}") from exc
