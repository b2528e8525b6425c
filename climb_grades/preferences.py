"""Persisted grade system preferences.

Two independent choices are stored: the system new sessions are logged in,
and the system grades are displayed in across the app.
"""

from __future__ import annotations

from climb_grades.database.local_store import KeyValueStore
from climb_grades.models import GradeSystemDefinition
from climb_grades.registry import GradeSystemRegistry, canonical_system_id

SELECTED_GRADE_SYSTEM_KEY = "selectedGradeSystem"
DISPLAY_GRADE_SYSTEM_KEY = "displayGradeSystemId"


class GradePreferences:
    """Reads and writes the preferred logging and display systems."""

    def __init__(
        self,
        store: KeyValueStore,
        registry: GradeSystemRegistry,
        default_logging_system: str = "V",
    ) -> None:
        self.store = store
        self.registry = registry
        self.default_logging_system = default_logging_system

    def get_selected_grade_system(self) -> str:
        """Return the system id used when logging new sessions."""
        return self.store.get_item(SELECTED_GRADE_SYSTEM_KEY) or self.default_logging_system

    def set_selected_grade_system(self, system_id: str) -> None:
        self.store.set_item(SELECTED_GRADE_SYSTEM_KEY, system_id)

    def get_display_system_id(self) -> str:
        """Return the stored display system id, or the registry default."""
        saved = self.store.get_item(DISPLAY_GRADE_SYSTEM_KEY)
        return saved or self.registry.get_default_system().id

    def set_display_system(self, system_id: str) -> None:
        self.store.set_item(DISPLAY_GRADE_SYSTEM_KEY, system_id)

    def active_display_system(self) -> GradeSystemDefinition:
        """Return the display system, falling back to the default system.

        The stored id may name a custom system that has since been removed.
        """
        system = self.registry.get_system(canonical_system_id(self.get_display_system_id()))
        return system or self.registry.get_default_system()
