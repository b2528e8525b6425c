"""
Builtin grade scale tables.

This module contains the static conversion data shared across the engine:
the canonical difficulty ladder pairing each V-scale grade with its Font
equivalent, plus the direct V <-> Font lookup tables used by the legacy
``convert_grade`` helper.
"""

from typing import Dict, NamedTuple, Tuple

VSCALE_SYSTEM_ID = "vscale"
FONT_SYSTEM_ID = "font"

# Legacy short codes accepted anywhere a system id is expected
LEGACY_SYSTEM_IDS: Dict[str, str] = {
    "v": VSCALE_SYSTEM_ID,
    "vscale": VSCALE_SYSTEM_ID,
    "font": FONT_SYSTEM_ID,
    "fontainebleau": FONT_SYSTEM_ID,
}


class CanonicalRung(NamedTuple):
    """One rung of the shared difficulty ladder."""

    v: str
    font: str
    canonical: int


CANONICAL_LADDER: Tuple[CanonicalRung, ...] = (
    CanonicalRung("VB", "3–4", 0),
    CanonicalRung("V0", "4–4+", 1),
    CanonicalRung("V1", "5–5+", 2),
    CanonicalRung("V2", "5+–6A", 3),
    CanonicalRung("V3", "6A–6A+", 4),
    CanonicalRung("V4", "6B–6B+", 5),
    CanonicalRung("V5", "6C–6C+", 6),
    CanonicalRung("V6", "7A", 7),
    CanonicalRung("V7", "7A+", 8),
    CanonicalRung("V8", "7B", 9),
    CanonicalRung("V9", "7B+", 10),
    CanonicalRung("V10", "7C", 11),
    CanonicalRung("V11", "7C+", 12),
    CanonicalRung("V12", "8A", 13),
    CanonicalRung("V13", "8A+", 14),
    CanonicalRung("V14", "8B", 15),
    CanonicalRung("V15", "8B+", 16),
    CanonicalRung("V16", "8C", 17),
    CanonicalRung("V17", "9A", 18),
)

V_GRADES: Tuple[str, ...] = tuple(rung.v for rung in CANONICAL_LADDER)
FONT_GRADES: Tuple[str, ...] = tuple(rung.font for rung in CANONICAL_LADDER)

V_TO_FONT: Dict[str, str] = {rung.v: rung.font for rung in CANONICAL_LADDER}

# Single Font grades as climbers usually write them, mapped to the V grade
# the gym tables list for them. Range labels ("6A–6A+") are not keys here.
FONT_TO_V: Dict[str, str] = {
    "3": "VB",
    "4": "VB",
    "4+": "V0",
    "5": "V1",
    "5+": "V2",
    "6A": "V2",
    "6A+": "V3",
    "6B": "V4",
    "6B+": "V4",
    "6C": "V5",
    "6C+": "V5",
    "7A": "V6",
    "7A+": "V7",
    "7B": "V8",
    "7B+": "V9",
    "7C": "V10",
    "7C+": "V11",
    "8A": "V12",
    "8A+": "V13",
    "8B": "V14",
    "8B+": "V15",
    "8C": "V16",
    "9A": "V17",
}

# Alternate spellings accepted on input for V-scale entries
V_ALIASES: Dict[str, Tuple[str, ...]] = {
    "VB": ("V-easy", "VE"),
}


def font_aliases() -> Dict[str, Tuple[str, ...]]:
    """Return single-grade Font aliases keyed by the ladder's Font label.

    Each single Font grade in ``FONT_TO_V`` becomes an alias of the ladder
    entry for its V equivalent, unless it already is that entry's label.
    """
    aliases: Dict[str, list[str]] = {}
    for font_label, v_label in FONT_TO_V.items():
        ladder_label = V_TO_FONT[v_label]
        if font_label == ladder_label:
            continue
        aliases.setdefault(ladder_label, []).append(font_label)
    return {label: tuple(values) for label, values in aliases.items()}
