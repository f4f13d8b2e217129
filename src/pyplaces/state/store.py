"""Key/value datastores backing the membership state.

The membership state only depends on the :class:`DataStore` protocol.
:class:`MemoryDataStore` keeps values for the life of the process;
:class:`JsonFileDataStore` survives restarts by rewriting a JSON file on
every write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pyplaces.exceptions import PlacesPersistenceError
from pyplaces.ingestion.normalize import safe_float, safe_int

_logger = logging.getLogger(__name__)


class DataStore(Protocol):
    """Structural interface of a named key/value collection."""

    def get_string(self, key: str, default: str | None = None) -> str | None: ...

    def set_string(self, key: str, value: str) -> None: ...

    def get_float(self, key: str, default: float) -> float: ...

    def set_float(self, key: str, value: float) -> None: ...

    def get_int(self, key: str, default: int) -> int: ...

    def set_int(self, key: str, value: int) -> None: ...

    def contains(self, key: str) -> bool: ...

    def remove(self, key: str) -> None: ...

    def remove_all(self) -> None: ...


class MemoryDataStore:
    """Dict-backed datastore.

    Lives only for the lifetime of the Python process.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self._values.get(key)
        return value if isinstance(value, str) else default

    def set_string(self, key: str, value: str) -> None:
        self._set(key, value)

    def get_float(self, key: str, default: float) -> float:
        value = safe_float(self._values.get(key))
        return default if value is None else value

    def set_float(self, key: str, value: float) -> None:
        self._set(key, float(value))

    def get_int(self, key: str, default: int) -> int:
        value = safe_int(self._values.get(key))
        return default if value is None else value

    def set_int(self, key: str, value: int) -> None:
        self._set(key, int(value))

    def contains(self, key: str) -> bool:
        return key in self._values

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._changed()

    def remove_all(self) -> None:
        self._values.clear()
        self._changed()

    def snapshot(self) -> dict[str, Any]:
        """Copy of every stored value."""
        return dict(self._values)

    def _set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._changed()

    def _changed(self) -> None:
        """Hook for subclasses that mirror values elsewhere."""


class JsonFileDataStore(MemoryDataStore):
    """Datastore mirrored to a JSON file.

    The whole file is rewritten (via a temporary file and rename) after
    every change. The in-memory values are updated before the file is
    written, so a failed write is repaired by the next successful one.

    Raises
    ------
    PlacesPersistenceError
        At construction if the file exists but cannot be read or is not a
        JSON object, and on any failed write.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        super().__init__(self._load())

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PlacesPersistenceError(f"Unable to read datastore {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PlacesPersistenceError(f"Datastore {self._path} does not hold a JSON object")
        return data

    def _changed(self) -> None:
        payload = json.dumps(self.snapshot(), separators=(",", ":"))
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PlacesPersistenceError(f"Unable to write datastore {self._path}: {exc}") from exc
        _logger.debug("Datastore written to %s (%d bytes)", self._path, len(payload))
