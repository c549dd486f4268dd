"""Spell slot progression for single and multiclass casters.

Full casters add their class level to the shared caster level, half
casters add half (rounded down, or rounded up for a lone half caster from
level 2). Pact magic is tracked separately and merged on top.
"""

from __future__ import annotations

from dpr_planner.rules.catalog import RulesCatalog


# Caster level 1..20 -> slots for spell levels 1..9.
_SLOT_TABLE: tuple[tuple[int, ...], ...] = (
    (2,),
    (3,),
    (4, 2),
    (4, 3),
    (4, 3, 2),
    (4, 3, 3),
    (4, 3, 3, 1),
    (4, 3, 3, 2),
    (4, 3, 3, 3, 1),
    (4, 3, 3, 3, 2),
    (4, 3, 3, 3, 2, 1),
    (4, 3, 3, 3, 2, 1),
    (4, 3, 3, 3, 2, 1, 1),
    (4, 3, 3, 3, 2, 1, 1),
    (4, 3, 3, 3, 2, 1, 1, 1),
    (4, 3, 3, 3, 2, 1, 1, 1),
    (4, 3, 3, 3, 2, 1, 1, 1, 1),
    (4, 3, 3, 3, 3, 1, 1, 1, 1),
    (4, 3, 3, 3, 3, 2, 1, 1, 1),
    (4, 3, 3, 3, 3, 2, 2, 1, 1),
)


def pact_slots(warlock_level: int) -> tuple[int, int]:
    """Return (slot count, slot level) for a warlock level."""
    if warlock_level <= 0:
        return 0, 0
    if warlock_level == 1:
        return 1, 1
    count = 2 if warlock_level < 11 else 3 if warlock_level < 17 else 4
    slot_level = min(5, (warlock_level + 1) // 2)
    return count, slot_level


def caster_level(class_levels: dict[str, int], catalog: RulesCatalog) -> int:
    full = 0
    half: list[int] = []
    for class_id, levels in class_levels.items():
        cls = catalog.get_class(class_id)
        if cls is None:
            continue
        if cls.caster_type == "full":
            full += levels
        elif cls.caster_type == "half":
            half.append(levels)
    if full == 0 and len(half) == 1:
        return (half[0] + 1) // 2 if half[0] >= 2 else 0
    return full + sum(lv // 2 for lv in half)


def spell_slots(class_levels: dict[str, int], catalog: RulesCatalog) -> dict[int, int]:
    """Slot counts keyed by spell level, pact slots included."""
    slots: dict[int, int] = {}
    level = min(caster_level(class_levels, catalog), len(_SLOT_TABLE))
    if level > 0:
        for idx, count in enumerate(_SLOT_TABLE[level - 1]):
            slots[idx + 1] = count

    for class_id, levels in class_levels.items():
        cls = catalog.get_class(class_id)
        if cls is None or cls.caster_type != "pact":
            continue
        count, slot_level = pact_slots(levels)
        if count:
            slots[slot_level] = slots.get(slot_level, 0) + count
    return slots


def highest_slot_level(slots: dict[int, int]) -> int:
    available = [lv for lv, count in slots.items() if count > 0]
    return max(available) if available else 0
