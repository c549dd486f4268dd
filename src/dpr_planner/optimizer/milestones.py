"""Named build milestones and path-constraint presets.

Milestone kinds:
  - "feature":     any class grants a feature key starting with `rules_key`
  - "class_level": `class_id` reaches `min_class_level`
  - "spell_level": spell slots of `spell_level` (or higher) are available
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from dpr_planner.engine.spell_slots import highest_slot_level, spell_slots
from dpr_planner.optimizer.specs import PathConstraints
from dpr_planner.rules.catalog import RulesCatalog


MilestoneKind = Literal["feature", "class_level", "spell_level"]


@dataclass(frozen=True, slots=True)
class Milestone:
    id: str
    name: str
    description: str
    deadline_level: int
    kind: MilestoneKind
    rules_key: str | None = None
    class_id: str | None = None
    min_class_level: int = 1
    spell_level: int = 0

    def is_met(self, class_levels: dict[str, int], catalog: RulesCatalog) -> bool:
        if self.kind == "class_level":
            return class_levels.get(self.class_id or "", 0) >= self.min_class_level
        if self.kind == "spell_level":
            return highest_slot_level(spell_slots(class_levels, catalog)) >= self.spell_level
        for class_id, class_level in class_levels.items():
            cls = catalog.get_class(class_id)
            if cls is None:
                continue
            if any(key.startswith(self.rules_key or "") for key in cls.features_through(class_level)):
                return True
        return False


COMMON_MILESTONES: dict[str, Milestone] = {
    "extra_attack": Milestone(
        id="extra_attack",
        name="Extra Attack",
        description="Attack twice with the Attack action",
        deadline_level=5,
        kind="feature",
        rules_key="extra_attack",
    ),
    "sneak_attack_2d6": Milestone(
        id="sneak_attack_2d6",
        name="Sneak Attack 2d6",
        description="Three rogue levels for 2d6 Sneak Attack",
        deadline_level=8,
        kind="class_level",
        class_id="rogue",
        min_class_level=3,
    ),
    "spellcasting_3rd": Milestone(
        id="spellcasting_3rd",
        name="3rd Level Spells",
        description="Access to 3rd-level spell slots",
        deadline_level=10,
        kind="spell_level",
        spell_level=3,
    ),
}


def get_milestone(milestone_id: str) -> Milestone:
    try:
        return COMMON_MILESTONES[milestone_id]
    except KeyError:
        raise ValueError(f"Unknown milestone: {milestone_id!r}") from None


def constraint_presets() -> dict[str, PathConstraints]:
    """Fresh copies of the built-in constraint presets."""
    return {
        "martial_dpr": PathConstraints(
            max_classes=2,
            must_hit_milestones=["extra_attack"],
            allowed_classes=["fighter", "ranger", "paladin", "barbarian", "rogue"],
            forbidden_combos=[("barbarian", "monk")],
        ),
        "spellsword": PathConstraints(
            max_classes=2,
            must_hit_milestones=["extra_attack", "spellcasting_3rd"],
            allowed_classes=["fighter", "paladin", "ranger", "wizard", "sorcerer", "warlock"],
        ),
        "rogue_hybrid": PathConstraints(
            max_classes=3,
            must_hit_milestones=["sneak_attack_2d6"],
            allowed_classes=["rogue", "fighter", "ranger", "cleric"],
        ),
    }
