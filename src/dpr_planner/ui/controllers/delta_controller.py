"""Controller wiring a build to delta badges for buff and feat toggles."""

from __future__ import annotations

from dataclasses import dataclass, field

from dpr_planner.engine.buff_selection import BuffSelection, select_optimal_buffs
from dpr_planner.engine.delta_engine import DeltaEngine
from dpr_planner.engine.ui_model import DeltaBadge, delta_badge
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.dpr import DPRConfiguration
from dpr_planner.ui.state import AppSettings, create_dpr_config


@dataclass(slots=True)
class DeltaController:
    """Requests deltas for the current build and renders their badges.

    Must be driven from code running on the engine's event loop.
    """

    engine: DeltaEngine
    build: BuildConfiguration
    settings: AppSettings = field(default_factory=AppSettings)
    dpr_config: DPRConfiguration | None = None

    def __post_init__(self) -> None:
        if self.dpr_config is None:
            self.dpr_config = create_dpr_config(self.build.id, self.settings)

    def request_buff_deltas(self, buff_ids: list[str]) -> list[str]:
        """Schedule one delta per buff; returns the identifiers scheduled."""
        scheduled = []
        for buff_id in buff_ids:
            ok = self.engine.calculate_buff_delta(
                self.build,
                buff_id,
                self.dpr_config,
                target_ac=self.settings.default_target_ac,
                debounce_ms=self.settings.delta_debounce_ms,
            )
            if ok:
                scheduled.append(f"buff-{buff_id}")
        return scheduled

    def request_feat_delta(self, level: int, feat_id: str) -> tuple[bool, str | None]:
        try:
            ok = self.engine.calculate_feat_delta(
                self.build,
                level,
                feat_id,
                self.dpr_config,
                target_ac=self.settings.default_target_ac,
                debounce_ms=self.settings.delta_debounce_ms,
            )
        except ValueError as exc:
            return False, str(exc)
        if not ok:
            return False, "DPR calculator is not ready"
        return True, None

    def badge(self, delta_id: str) -> DeltaBadge:
        return delta_badge(self.engine.get_delta(delta_id), self.engine.config.neutral_threshold)

    def auto_select_buffs(self, respect_concentration: bool = True) -> BuffSelection:
        """Replace the build's buffs with the auto-selected set."""
        selection = select_optimal_buffs(self.build, respect_concentration=respect_concentration)
        self.set_build(selection.apply_to(self.build))
        return selection

    def set_build(self, build: BuildConfiguration) -> None:
        """Swap the build; deltas for the old build are dropped."""
        self.engine.clear_all_deltas()
        self.build = build
        self.dpr_config = create_dpr_config(build.id, self.settings)

    async def teardown(self) -> None:
        await self.engine.aclose()
