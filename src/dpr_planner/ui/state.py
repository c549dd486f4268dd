"""Shared app settings and the DPR configuration factory."""

from dataclasses import dataclass, field

from dpr_planner.models.constants import AdvantageState
from dpr_planner.models.dpr import DPRConfiguration


@dataclass(slots=True)
class AppSettings:
    """User-level defaults passed explicitly to controllers."""

    # Party-role weights used when ranking builds for a role.
    role_weights: dict[str, float] = field(
        default_factory=lambda: {"damage": 1.0, "control": 0.5, "support": 0.5, "tank": 0.5}
    )
    greedy_resource_use: bool = True
    auto_gwm_ss: bool = True
    round0_buffs_enabled: bool = True
    default_advantage: AdvantageState = "normal"
    default_target_ac: int = 16
    delta_debounce_ms: int = 200
    ac_min: int = 10
    ac_max: int = 30
    ac_step: int = 1


def create_dpr_config(build_id: str, settings: AppSettings | None = None) -> DPRConfiguration:
    """DPR envelope for a build from app settings."""
    settings = settings or AppSettings()
    return DPRConfiguration(
        build_id=build_id,
        ac_min=settings.ac_min,
        ac_max=settings.ac_max,
        ac_step=settings.ac_step,
        advantage_state=settings.default_advantage,
        round0_buffs_enabled=settings.round0_buffs_enabled,
        greedy_resource_use=settings.greedy_resource_use,
        auto_gwm_ss=settings.auto_gwm_ss,
    )
