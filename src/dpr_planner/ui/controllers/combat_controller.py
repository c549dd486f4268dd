"""Controller for the combat round optimizer panel."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime

from dpr_planner.engine.errors import DprPlannerError
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.optimizer import (
    CombatOptimizationConfig,
    CombatOptimizationResult,
    CombatRoundOptimizer,
)

logger = logging.getLogger(__name__)


HISTORY_LIMIT = 10


@dataclass(slots=True)
class HistoryEntry:
    build_id: str
    config: CombatOptimizationConfig
    result: CombatOptimizationResult
    saved_at: datetime = field(default_factory=datetime.now)


@dataclass(slots=True)
class CombatOptimizerController:
    """Owns the tactical config, the latest result, and recent history."""

    optimizer: CombatRoundOptimizer = field(default_factory=CombatRoundOptimizer)
    config: CombatOptimizationConfig = field(default_factory=CombatOptimizationConfig)
    current_result: CombatOptimizationResult | None = None
    is_optimizing: bool = False
    optimization_error: str | None = None
    result_history: list[HistoryEntry] = field(default_factory=list)

    def set_config(self, **changes) -> tuple[bool, str | None]:
        valid = {f.name for f in dataclasses.fields(CombatOptimizationConfig)}
        unknown = sorted(set(changes) - valid)
        if unknown:
            return False, f"Unknown config field(s): {', '.join(unknown)}"
        try:
            self.config = dataclasses.replace(self.config, **changes)
        except ValueError as exc:
            return False, str(exc)
        return True, None

    def reset_config(self) -> None:
        self.config = CombatOptimizationConfig()

    def optimize_build(self, build: BuildConfiguration) -> tuple[bool, str | None]:
        self.is_optimizing = True
        self.optimization_error = None
        try:
            result = self.optimizer.find_optimal_sequence(build, self.config)
        except (DprPlannerError, ValueError) as exc:
            self.current_result = None
            self.optimization_error = f"Optimization failed: {exc}"
            logger.warning("Combat optimization failed for %s: %s", build.id, exc)
            return False, self.optimization_error
        finally:
            self.is_optimizing = False
        self.current_result = result
        return True, None

    def clear_results(self) -> None:
        self.current_result = None
        self.optimization_error = None

    def save_result_to_history(self, build_id: str) -> tuple[bool, str | None]:
        if self.current_result is None:
            return False, "No result to save"
        entry = HistoryEntry(
            build_id=build_id,
            config=dataclasses.replace(self.config),
            result=self.current_result,
        )
        self.result_history.insert(0, entry)
        del self.result_history[HISTORY_LIMIT:]
        return True, None

    def clear_history(self) -> None:
        self.result_history.clear()
