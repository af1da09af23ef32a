"""Local key/value store used when the database is unavailable.

Values are JSON documents stored under string keys:

- ``user_<external_id>``
- ``history_<external_id>``: list of history entries
- ``roadmaps_<external_id>``: roadmaps by roadmap id
- ``detailed_courses_<external_id>``: detailed courses by roadmap id

With a path the whole store is written back to one JSON file after every
change; without one it lives in memory only. Writes are synchronous and
block the event loop for the length of one small file write. The store is
only used while the database is down, and keeping ``get``/``set`` plain
calls lets a write finish before the request that made it returns.
"""

import json
from pathlib import Path
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)


class LocalStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, str] = {}
        if path is not None and path.exists():
            self._data = self._load(path)

    @staticmethod
    def _load(path: Path) -> dict[str, str]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load local store, starting empty", path=str(path), error=str(e))
            return {}
        if not isinstance(raw, dict):
            logger.error("Local store file is not an object, starting empty", path=str(path))
            return {}
        data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        logger.info("Local store loaded", path=str(path), keys=len(data))
        return data

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic replace
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> Any | None:
        """Return the decoded value for ``key``, or None if missing or unreadable."""
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Error parsing local store entry", key=key)
            return None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)
        self._save()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()
