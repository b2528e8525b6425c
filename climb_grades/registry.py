"""Grade system registry.

Holds every known grade system definition, builtin and user-defined, keyed
by system id. One registry is created by the composition root
(:func:`climb_grades.engine.create_grade_engine`) and passed to each component
that needs it.

Design notes:
    The builtin V-scale and Font systems are seeded lazily on first access.
    The registry is mutated only through :meth:`GradeSystemRegistry.register_system`
    and :meth:`GradeSystemRegistry.unregister_system`; it performs no
    validation of the definitions it stores.
"""

from __future__ import annotations

from typing import Iterable, Optional

from climb_grades.exceptions import RegistryEmptyError
from climb_grades.logging_config import get_logger
from climb_grades.models import GradeEntry, GradeSystemDefinition
from climb_grades.scales import (
    CANONICAL_LADDER,
    FONT_SYSTEM_ID,
    LEGACY_SYSTEM_IDS,
    VSCALE_SYSTEM_ID,
    V_ALIASES,
    font_aliases,
)

logger = get_logger(__name__)


def canonical_system_id(system_id: str) -> str:
    """Map legacy short codes onto builtin system ids.

    ``'V'`` becomes ``'vscale'`` and ``'Font'``/``'Fontainebleau'`` become
    ``'font'`` (case-insensitive). Any other id is returned unchanged.

    Args:
        system_id: A system id or legacy short code.

    Returns:
        The id to use for registry lookups.

    Examples:
        >>> canonical_system_id("V")
        'vscale'
        >>> canonical_system_id("user-gym-colors")
        'user-gym-colors'
    """
    return LEGACY_SYSTEM_IDS.get(system_id.lower(), system_id)


def build_vscale_system() -> GradeSystemDefinition:
    """Build the builtin V-scale definition from the canonical ladder."""
    return GradeSystemDefinition(
        id=VSCALE_SYSTEM_ID,
        name="V-Scale",
        discipline="boulder",
        version=1,
        scope="builtin",
        is_default=True,
        grades=tuple(
            GradeEntry(
                id=rung.v,
                label=rung.v,
                display_order=rung.canonical,
                canonical_value=rung.canonical,
                aliases=V_ALIASES.get(rung.v, ()),
            )
            for rung in CANONICAL_LADDER
        ),
    )


def build_font_system() -> GradeSystemDefinition:
    """Build the builtin Font definition from the canonical ladder.

    Range labels such as ``"6A–6A+"`` are a single entry on the ladder; the
    single grades they cover are registered as aliases.
    """
    aliases = font_aliases()
    return GradeSystemDefinition(
        id=FONT_SYSTEM_ID,
        name="Font",
        discipline="boulder",
        version=1,
        scope="builtin",
        grades=tuple(
            GradeEntry(
                id=rung.font,
                label=rung.font,
                display_order=rung.canonical,
                canonical_value=rung.canonical,
                aliases=aliases.get(rung.font, ()),
            )
            for rung in CANONICAL_LADDER
        ),
    )


def list_builtin_systems() -> list[GradeSystemDefinition]:
    """Return fresh builtin definitions, default system first."""
    return [build_vscale_system(), build_font_system()]


class GradeSystemRegistry:
    """In-memory cache of grade system definitions keyed by id.

    Example:
        >>> registry = GradeSystemRegistry()
        >>> registry.get_system("vscale").name
        'V-Scale'
        >>> registry.get_default_system().id
        'vscale'
    """

    def __init__(self, builtins: Optional[Iterable[GradeSystemDefinition]] = None) -> None:
        """Create a registry.

        Args:
            builtins: Builtin definitions to seed on first access. Defaults to
                the V-scale and Font systems.
        """
        self._builtins = list(builtins) if builtins is not None else None
        self._systems: Optional[dict[str, GradeSystemDefinition]] = None

    def _ensure_seeded(self) -> dict[str, GradeSystemDefinition]:
        if self._systems is None:
            builtins = (
                self._builtins if self._builtins is not None else list_builtin_systems()
            )
            self._systems = {system.id: system for system in builtins}
            logger.debug(
                "Grade system registry seeded",
                extra={"systems": list(self._systems)},
            )
        return self._systems

    def get_system(self, system_id: str) -> Optional[GradeSystemDefinition]:
        """Return the definition registered under ``system_id``, if any."""
        return self._ensure_seeded().get(system_id)

    def get_all_systems(self) -> list[GradeSystemDefinition]:
        """Return every registered definition (builtin and user)."""
        return list(self._ensure_seeded().values())

    def get_default_system(self) -> GradeSystemDefinition:
        """Return the default display system.

        Prefers the system flagged ``is_default``, then the first builtin,
        then any registered system.

        Raises:
            RegistryEmptyError: If no system is registered at all.
        """
        systems = self.get_all_systems()
        for system in systems:
            if system.is_default:
                return system
        for system in systems:
            if system.scope == "builtin":
                return system
        if systems:
            return systems[0]
        raise RegistryEmptyError("No grade systems are registered")

    def register_system(self, definition: GradeSystemDefinition) -> None:
        """Insert or replace a definition by id. Last write wins."""
        self._ensure_seeded()[definition.id] = definition
        logger.debug(
            "Grade system registered",
            extra={"system_id": definition.id, "scope": definition.scope},
        )

    def unregister_system(self, system_id: str) -> None:
        """Remove a definition by id. No-op when absent."""
        removed = self._ensure_seeded().pop(system_id, None)
        if removed is not None:
            logger.debug("Grade system unregistered", extra={"system_id": system_id})

    def user_systems(self) -> list[GradeSystemDefinition]:
        """Return registered user-scope systems."""
        return [s for s in self.get_all_systems() if s.scope == "user"]

    def is_user_system(self, system_id: str) -> bool:
        """Return True if ``system_id`` is a registered user-scope system."""
        system = self.get_system(system_id)
        return system is not None and system.scope == "user"

    def clear_user_systems(self) -> None:
        """Unregister every user-scope system, leaving builtins in place."""
        for system in self.user_systems():
            self.unregister_system(system.id)

    def __contains__(self, system_id: object) -> bool:
        return isinstance(system_id, str) and self.get_system(system_id) is not None

    def __len__(self) -> int:
        return len(self._ensure_seeded())
