import json
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class ClientStorage(Protocol):
    """String key/value store with browser ``localStorage`` semantics."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class JsonFileStorage:
    """Persists every item to one JSON document on disk."""

    def __init__(self, path: Path | str):
        self._path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError:
            logger.warning("Ignoring unreadable storage file", extra={"path": str(self._path)})
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


__all__ = ("ClientStorage", "JsonFileStorage", "MemoryStorage")
