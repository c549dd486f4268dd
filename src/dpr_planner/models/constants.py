"""Shared rule constants: abilities, advantage states, and class groupings."""

from typing import Literal


ABILITY_NAMES: dict[str, str] = {
    "STR": "Strength",
    "DEX": "Dexterity",
    "CON": "Constitution",
    "INT": "Intelligence",
    "WIS": "Wisdom",
    "CHA": "Charisma",
}

AdvantageState = Literal["normal", "advantage", "disadvantage"]
ADVANTAGE_STATES: frozenset[str] = frozenset({"normal", "advantage", "disadvantage"})

CasterType = Literal["full", "half", "pact", "none"]

MAX_CHARACTER_LEVEL = 20
ROUNDS_PER_COMBAT = 3

# Armor class used for headline summary numbers.
TYPICAL_AC = 15

# Classes that prefer a damage feat at their first ASI.
MARTIAL_CLASSES: frozenset[str] = frozenset({"fighter", "ranger", "paladin", "barbarian"})

# Standard array in STR..CHA order.
DEFAULT_ABILITY_SCORES: dict[str, int] = {
    "STR": 15,
    "DEX": 14,
    "CON": 13,
    "INT": 12,
    "WIS": 10,
    "CHA": 8,
}


def ability_modifier(score: int) -> int:
    """Return the ability modifier for a raw score (10-11 -> +0)."""
    return (int(score) - 10) // 2


def proficiency_bonus(level: int) -> int:
    """Proficiency bonus by total character level (+2 at 1-4, +6 at 17-20)."""
    level = max(1, int(level))
    return (level - 1) // 4 + 2
