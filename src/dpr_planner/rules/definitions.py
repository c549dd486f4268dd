"""Typed rule definitions: classes, feats, buffs, weapons, spells, magic items.

Multiclass prerequisites are stored in conjunctive normal form:
  requirements = AND(clause_1, clause_2, ...)
  clause       = OR(AbilityRequirement, ...)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dpr_planner.models.constants import CasterType


@dataclass(frozen=True, slots=True)
class Dice:
    count: int
    die: int
    bonus: int = 0

    @property
    def average(self) -> float:
        return self.count * (self.die + 1) / 2 + self.bonus


@dataclass(frozen=True, slots=True)
class AbilityRequirement:
    ability: str
    minimum: int = 13

    def is_met(self, scores: dict[str, int]) -> bool:
        return int(scores.get(self.ability, 0)) >= self.minimum


@dataclass(frozen=True, slots=True)
class ClassDefinition:
    """A class with its DPR-relevant features keyed by CLASS level."""

    id: str
    name: str
    hit_die: int
    caster_type: CasterType = "none"
    spellcasting_ability: str | None = None
    multiclass_requirements: tuple[tuple[AbilityRequirement, ...], ...] = ()
    features: dict[int, tuple[str, ...]] = field(default_factory=dict)
    # resource name -> ((min class level, uses), ...) ascending
    resources: dict[str, tuple[tuple[int, int], ...]] = field(default_factory=dict)

    def features_at(self, class_level: int) -> tuple[str, ...]:
        return self.features.get(class_level, ())

    def features_through(self, class_level: int) -> list[str]:
        out: list[str] = []
        for lv in range(1, class_level + 1):
            out.extend(self.features.get(lv, ()))
        return out

    def has_feature(self, rules_key: str, class_level: int) -> bool:
        return rules_key in self.features_through(class_level)

    def resource_uses(self, resource: str, class_level: int) -> int:
        uses = 0
        for min_level, count in self.resources.get(resource, ()):
            if class_level >= min_level:
                uses = count
        return uses

    def meets_multiclass_requirements(self, scores: dict[str, int]) -> bool:
        return all(
            any(req.is_met(scores) for req in clause)
            for clause in self.multiclass_requirements
        )


@dataclass(frozen=True, slots=True)
class Feat:
    id: str
    name: str
    description: str = ""
    # Weapon property that enables the -5/+10 power attack ("heavy" or "ammunition").
    power_attack_property: str | None = None
    grants_spells: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Buff:
    """A sustained effect that changes weapon attacks."""

    id: str
    name: str
    concentration: bool = False
    action_cost: str | None = None      # "action" | "bonus" | None
    allowed_round0: bool = False
    spell_level: int | None = None       # None for non-spell effects
    resource: str | None = None          # class resource spent instead of a slot
    requires_class: str | None = None
    attack_bonus: float = 0.0
    damage_bonus: float = 0.0
    on_hit_dice: tuple[Dice, ...] = ()
    additional_attacks: int = 0
    advantage: bool = False
    strength_melee_only: bool = False


@dataclass(frozen=True, slots=True)
class Weapon:
    id: str
    name: str
    category: str                        # "melee" | "ranged"
    damage: Dice
    properties: frozenset[str] = frozenset()

    def has(self, prop: str) -> bool:
        return prop in self.properties


@dataclass(frozen=True, slots=True)
class Spell:
    """A damage, healing, or control spell usable as a combat action."""

    id: str
    name: str
    level: int                           # 0 = cantrip
    action_cost: str = "action"
    damage: Dice | None = None
    healing: Dice | None = None
    attack_roll: bool = False
    save_ability: str | None = None
    half_on_save: bool = False
    max_targets: int = 1
    concentration: bool = False
    control_effect: str | None = None
    # Cantrip damage dice multiply at character levels 5/11/17; beams for
    # eldritch blast follow the same breakpoints.
    scales_with_level: bool = False
    multiple_beams: bool = False


@dataclass(frozen=True, slots=True)
class MagicItem:
    """Worn or wielded magic gear; only the DPR-relevant effects are modeled."""

    id: str
    name: str
    rarity: str = "common"
    category: str = "wondrous"           # "weapon" items boost melee weapon attacks only
    requires_attunement: bool = False
    attack_bonus: int = 0
    damage_bonus: int = 0
    ranged_damage_bonus: int = 0
    on_hit_dice: tuple[Dice, ...] = ()
    # Score is raised to this value unless it is already higher.
    ability_overrides: dict[str, int] = field(default_factory=dict)
