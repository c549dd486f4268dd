"""Optimization and planning interfaces."""

from dpr_planner.optimizer.actions import CombatAction, build_action_menu
from dpr_planner.optimizer.combat import (
    AlternativeStrategy,
    CombatOptimizationResult,
    CombatRoundOptimizer,
    PlannedAction,
    RoundPlan,
)
from dpr_planner.optimizer.milestones import (
    COMMON_MILESTONES,
    Milestone,
    constraint_presets,
    get_milestone,
)
from dpr_planner.optimizer.path import (
    LevelPath,
    MilestoneResult,
    PathOptimizer,
    generate_path_name,
    score_progression,
)
from dpr_planner.optimizer.specs import (
    CombatOptimizationConfig,
    PathConstraints,
    PathOptimizationConfig,
)

__all__ = [
    "AlternativeStrategy",
    "COMMON_MILESTONES",
    "CombatAction",
    "CombatOptimizationConfig",
    "CombatOptimizationResult",
    "CombatRoundOptimizer",
    "LevelPath",
    "Milestone",
    "MilestoneResult",
    "PathConstraints",
    "PathOptimizationConfig",
    "PathOptimizer",
    "PlannedAction",
    "RoundPlan",
    "build_action_menu",
    "constraint_presets",
    "generate_path_name",
    "get_milestone",
    "score_progression",
]
