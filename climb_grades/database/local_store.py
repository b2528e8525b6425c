"""Local key-value persistence.

The grade engine persists a handful of string values under fixed keys: the
JSON list of custom grade systems and two preferred-system ids. Values are
always strings; callers own serialisation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from climb_grades.exceptions import ConfigurationError
from climb_grades.logging_config import get_logger
from climb_grades.models import CustomGradeSystem

logger = get_logger(__name__)

CUSTOM_GRADE_SYSTEMS_KEY = "customGradeSystems"


class KeyValueStore(Protocol):
    """Minimal string key-value store."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, used when no file path is configured."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """Store backed by a single JSON object file.

    The file is read once, lazily, and rewritten in full on every change.
    A missing or unreadable file is treated as an empty store.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        if self.path.is_dir():
            raise ConfigurationError(f"Local store path is a directory: {self.path}")
        self._data: Optional[dict[str, str]] = None

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        data: dict[str, str] = {}
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    data = {str(k): str(v) for k, v in raw.items()}
                else:
                    logger.warning(
                        "Local store file is not a JSON object, ignoring it",
                        extra={"path": str(self.path)},
                    )
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning(
                    "Failed to read local store file, starting empty",
                    extra={"path": str(self.path), "error": str(exc)},
                )
        self._data = data
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._load(), f, ensure_ascii=False, indent=2)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._flush()


class CustomGradeSystemStore:
    """Persists the user's custom grade systems as one JSON list.

    Example:
        >>> store = CustomGradeSystemStore(InMemoryKeyValueStore())
        >>> store.get_custom_grade_systems()
        []
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def get_custom_grade_systems(self) -> list[CustomGradeSystem]:
        """Return stored systems; malformed data reads as an empty list.

        Individual entries that fail validation are skipped with a warning.
        """
        raw = self.kv.get_item(CUSTOM_GRADE_SYSTEMS_KEY)
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored custom grade systems are not valid JSON")
            return []
        if not isinstance(parsed, list):
            logger.warning("Stored custom grade systems are not a list")
            return []

        systems: list[CustomGradeSystem] = []
        for index, item in enumerate(parsed):
            try:
                systems.append(CustomGradeSystem.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed stored custom grade system",
                    extra={"index": index, "error": str(exc)},
                )
        return systems

    def save_custom_grade_systems(self, systems: list[CustomGradeSystem]) -> None:
        """Replace the stored list."""
        payload = [s.model_dump(by_alias=True, exclude_none=True) for s in systems]
        self.kv.set_item(CUSTOM_GRADE_SYSTEMS_KEY, json.dumps(payload, ensure_ascii=False))

    def delete_custom_grade_system(self, system_id: str) -> None:
        """Remove every stored system with ``system_id``."""
        systems = [s for s in self.get_custom_grade_systems() if s.id != system_id]
        self.save_custom_grade_systems(systems)
