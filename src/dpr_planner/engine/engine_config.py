"""Configuration knobs for the DPR worker and delta engine."""

from dataclasses import dataclass


@dataclass(slots=True)
class EngineConfig:
    """Tuneable parameters for delta scheduling."""

    default_target_ac: int = 16
    debounce_ms: int = 200
    calculation_timeout_s: float = 30.0   # Per debounce firing, both curves
    max_workers: int = 2                  # DPRWorker thread pool size
    neutral_threshold: float = 0.05       # |delta| at or below reads as neutral

    def __post_init__(self) -> None:
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        if self.calculation_timeout_s <= 0:
            raise ValueError("calculation_timeout_s must be positive")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
