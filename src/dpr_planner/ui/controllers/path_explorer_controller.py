"""Controller for the level path explorer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dpr_planner.engine.errors import DprPlannerError
from dpr_planner.models.constants import ABILITY_NAMES, DEFAULT_ABILITY_SCORES
from dpr_planner.optimizer import (
    COMMON_MILESTONES,
    LevelPath,
    PathConstraints,
    PathOptimizationConfig,
    PathOptimizer,
    constraint_presets,
)
from dpr_planner.optimizer.specs import PATH_OBJECTIVES

logger = logging.getLogger(__name__)


SEARCH_LIMIT_MIN = 1
SEARCH_LIMIT_MAX = 10


def _clamp(value: int) -> int:
    return max(SEARCH_LIMIT_MIN, min(SEARCH_LIMIT_MAX, int(value)))


@dataclass(slots=True)
class PathExplorerController:
    """Owns path-search inputs and the latest results.

    A failed search leaves `optimized_paths` empty and `optimization_error`
    set; stale paths are never shown as current.
    """

    optimizer: PathOptimizer = field(default_factory=PathOptimizer)
    objective: str = "l20_dpr"
    constraints: PathConstraints = field(
        default_factory=lambda: constraint_presets()["martial_dpr"]
    )
    active_preset: str | None = "martial_dpr"
    ability_scores: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ABILITY_SCORES))
    race: str = "variant_human"
    weapon_id: str = "greatsword"
    beam_width: int = 5
    max_paths: int = 3
    custom_level_weights: dict[int, float] = field(default_factory=dict)
    optimized_paths: list[LevelPath] = field(default_factory=list)
    is_optimizing: bool = False
    optimization_error: str | None = None

    def set_objective(self, objective: str) -> tuple[bool, str | None]:
        if objective not in PATH_OBJECTIVES:
            return False, f"Unknown objective: {objective}"
        self.objective = objective
        return True, None

    def set_beam_width(self, value: int) -> None:
        self.beam_width = _clamp(value)

    def set_max_paths(self, value: int) -> None:
        self.max_paths = _clamp(value)

    def set_ability_score(self, ability: str, score: int) -> tuple[bool, str | None]:
        ability = ability.upper()
        if ability not in ABILITY_NAMES:
            return False, f"Unknown ability: {ability}"
        if not 1 <= score <= 30:
            return False, "Ability scores must be in 1..30"
        self.ability_scores[ability] = int(score)
        return True, None

    def load_constraint_preset(self, name: str) -> tuple[bool, str | None]:
        presets = constraint_presets()
        if name not in presets:
            return False, f"Unknown preset: {name}"
        self.constraints = presets[name]
        self.active_preset = name
        return True, None

    def toggle_milestone(self, milestone_id: str) -> tuple[bool, str | None]:
        if milestone_id not in COMMON_MILESTONES:
            return False, f"Unknown milestone: {milestone_id}"
        required = self.constraints.must_hit_milestones
        if milestone_id in required:
            required.remove(milestone_id)
        else:
            required.append(milestone_id)
        self.active_preset = None
        return True, None

    def build_config(self) -> PathOptimizationConfig:
        return PathOptimizationConfig(
            objective=self.objective,
            constraints=self.constraints,
            beam_width=self.beam_width,
            max_paths=self.max_paths,
            base_ability_scores=dict(self.ability_scores),
            race=self.race,
            weapon_id=self.weapon_id,
            custom_level_weights=dict(self.custom_level_weights),
        )

    def optimize_paths(self) -> tuple[bool, str | None]:
        self.is_optimizing = True
        self.optimization_error = None
        try:
            self.optimized_paths = self.optimizer.optimize(self.build_config())
        except (DprPlannerError, ValueError) as exc:
            self.optimized_paths = []
            self.optimization_error = f"Path optimization failed: {exc}"
            logger.warning("Path optimization failed: %s", exc)
            return False, self.optimization_error
        finally:
            self.is_optimizing = False
        return True, None

    def clear_results(self) -> None:
        self.optimized_paths = []
        self.optimization_error = None
