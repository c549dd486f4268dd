"""Value objects describing a DPR calculation envelope and its results."""

from __future__ import annotations

from dataclasses import dataclass, field

from dpr_planner.models.constants import ADVANTAGE_STATES, AdvantageState


@dataclass(frozen=True, slots=True)
class DPRConfiguration:
    """Calculation envelope: AC range, advantage, resource-use policy."""

    build_id: str = ""
    ac_min: int = 10
    ac_max: int = 30
    ac_step: int = 1
    advantage_state: AdvantageState = "normal"
    round0_buffs_enabled: bool = True
    greedy_resource_use: bool = True
    auto_gwm_ss: bool = True

    def __post_init__(self) -> None:
        if self.ac_step <= 0:
            raise ValueError(f"ac_step must be positive, got {self.ac_step}")
        if self.ac_min > self.ac_max:
            raise ValueError(f"ac_min ({self.ac_min}) must be <= ac_max ({self.ac_max})")
        if self.advantage_state not in ADVANTAGE_STATES:
            raise ValueError(f"Unknown advantage state: {self.advantage_state!r}")

    def ac_values(self) -> list[int]:
        return list(range(self.ac_min, self.ac_max + 1, self.ac_step))

    def covers(self, ac: int) -> bool:
        """True when *ac* lands on a step inside [ac_min, ac_max]."""
        return self.ac_min <= ac <= self.ac_max and (ac - self.ac_min) % self.ac_step == 0


@dataclass(frozen=True, slots=True)
class CurvePoint:
    ac: int
    dpr: float
    hit_chance: float = 0.0
    crit_chance: float = 0.0
    with_power_attack: float | None = None


@dataclass(frozen=True, slots=True)
class PowerAttackBreakpoint:
    ac: int
    use_power_attack: bool
    with_power_attack: float
    without_power_attack: float


@dataclass(frozen=True, slots=True)
class DPRResult:
    """Curves across the configured AC range plus AC-15 summary numbers."""

    build_id: str
    config: DPRConfiguration
    total_dpr: float
    average_dpr: float
    round_breakdown: tuple[float, ...]
    normal_curve: tuple[CurvePoint, ...]
    advantage_curve: tuple[CurvePoint, ...] = ()
    disadvantage_curve: tuple[CurvePoint, ...] = ()
    power_attack_breakpoints: tuple[PowerAttackBreakpoint, ...] = field(default=())

    def point_at(self, ac: int, curve: str = "normal") -> CurvePoint | None:
        points = {
            "normal": self.normal_curve,
            "advantage": self.advantage_curve,
            "disadvantage": self.disadvantage_curve,
        }.get(curve)
        if points is None:
            raise ValueError(f"Unknown curve: {curve!r}")
        for point in points:
            if point.ac == ac:
                return point
        return None
