"""Input specs for the combat-round and level-path optimizers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from dpr_planner.models.constants import (
    ADVANTAGE_STATES,
    DEFAULT_ABILITY_SCORES,
    MAX_CHARACTER_LEVEL,
    ROUNDS_PER_COMBAT,
    TYPICAL_AC,
    AdvantageState,
)


ResourceStrategy = Literal["conservative", "balanced", "aggressive"]
TargetType = Literal["single", "multiple"]
PathObjective = Literal["l20_dpr", "tier_average", "custom"]

RESOURCE_STRATEGIES: frozenset[str] = frozenset({"conservative", "balanced", "aggressive"})
TARGET_TYPES: frozenset[str] = frozenset({"single", "multiple"})
PATH_OBJECTIVES: frozenset[str] = frozenset({"l20_dpr", "tier_average", "custom"})


@dataclass(slots=True)
class CombatOptimizationConfig:
    """Tactical situation for a three-round fight."""

    target_ac: int = TYPICAL_AC
    number_of_targets: int = 1
    target_type: TargetType = "single"
    rounds_to_optimize: int = ROUNDS_PER_COMBAT
    advantage_state: AdvantageState = "normal"
    resource_strategy: ResourceStrategy = "balanced"
    allow_nova_damage: bool = False
    prioritize_control: bool = False
    prioritize_survivability: bool = False
    include_reactions: bool = True
    target_save_bonus: int = 3
    max_alternatives: int = 3

    def __post_init__(self) -> None:
        if self.rounds_to_optimize != ROUNDS_PER_COMBAT:
            raise ValueError(
                f"rounds_to_optimize must be {ROUNDS_PER_COMBAT}, got {self.rounds_to_optimize}"
            )
        if self.number_of_targets < 1:
            raise ValueError("number_of_targets must be >= 1")
        if self.target_type not in TARGET_TYPES:
            raise ValueError(f"Unknown target type: {self.target_type!r}")
        if self.advantage_state not in ADVANTAGE_STATES:
            raise ValueError(f"Unknown advantage state: {self.advantage_state!r}")
        if self.resource_strategy not in RESOURCE_STRATEGIES:
            raise ValueError(f"Unknown resource strategy: {self.resource_strategy!r}")
        if self.max_alternatives < 0:
            raise ValueError("max_alternatives must be >= 0")


@dataclass(slots=True)
class PathConstraints:
    """Limits on which class orderings the path search may consider.

    `forbidden_combos` lists class groups that may not all appear in one path.
    """

    max_classes: int = 2
    must_hit_milestones: list[str] = field(default_factory=list)
    allowed_classes: list[str] = field(default_factory=list)
    forbidden_combos: list[tuple[str, ...]] = field(default_factory=list)


@dataclass(slots=True)
class PathOptimizationConfig:
    """Beam-search settings and the character the paths are built for."""

    objective: PathObjective = "l20_dpr"
    constraints: PathConstraints = field(default_factory=PathConstraints)
    beam_width: int = 5
    max_paths: int = 3
    base_ability_scores: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ABILITY_SCORES))
    race: str = "variant_human"
    weapon_id: str = "greatsword"
    target_ac: int = TYPICAL_AC
    max_level: int = MAX_CHARACTER_LEVEL
    custom_level_weights: dict[int, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.objective not in PATH_OBJECTIVES:
            raise ValueError(f"Unknown objective: {self.objective!r}")
        if self.objective == "custom" and not self.custom_level_weights:
            raise ValueError("custom objective requires custom_level_weights")
        if self.beam_width < 1 or self.max_paths < 1:
            raise ValueError("beam_width and max_paths must be >= 1")
        if not 1 <= self.max_level <= MAX_CHARACTER_LEVEL:
            raise ValueError(f"max_level must be in 1..{MAX_CHARACTER_LEVEL}")
        if self.constraints.max_classes < 1:
            raise ValueError("max_classes must be >= 1")
