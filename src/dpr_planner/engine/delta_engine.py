"""Delta engine: debounced per-identifier DPR comparisons.

A delta is the signed DPR difference between a baseline build and a
variant with one option toggled, read at a single target AC. Requests are
keyed by a caller-chosen identifier ("buff-haste", "feat-sharpshooter").

Per identifier the engine keeps:
  - at most one pending debounce timer (a new request cancels the old one)
  - a generation number bumped by every request and every clear; a
    computation only publishes if its generation is still current
  - the latest DeltaRecord, replaced wholesale on every transition

Failures (calculator errors, missing AC, timeouts) are stored on the
record for that identifier and never raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from dpr_planner.engine.dpr_worker import CurveCalculator
from dpr_planner.engine.engine_config import EngineConfig
from dpr_planner.engine.errors import CalculationFailure, DataNotFound, DprPlannerError
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.dpr import DPRConfiguration, DPRResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeltaMetrics:
    hit_chance_delta: float
    crit_chance_delta: float
    base_dpr: float
    modified_dpr: float


@dataclass(frozen=True, slots=True)
class DeltaRecord:
    """Current state of one delta identifier."""

    value: float = 0.0
    is_calculating: bool = False
    error: str | None = None
    additional_metrics: DeltaMetrics | None = None


DeltaListener = Callable[[str, DeltaRecord | None], None]


class DeltaEngine:
    """Schedules and caches single-toggle DPR deltas on the running loop."""

    __slots__ = (
        "_calculator",
        "_config",
        "_records",
        "_timers",
        "_inflight",
        "_generations",
        "_waiters",
        "_listeners",
    )

    def __init__(self, calculator: CurveCalculator, *, config: EngineConfig | None = None) -> None:
        self._calculator = calculator
        self._config = config or EngineConfig()
        self._records: dict[str, DeltaRecord] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._inflight: dict[str, set[asyncio.Task]] = {}
        self._generations: dict[str, int] = {}
        self._waiters: dict[str, list[asyncio.Future]] = {}
        self._listeners: list[DeltaListener] = []

    @property
    def config(self) -> EngineConfig:
        return self._config

    # --- Requests ----------------------------------------------------------

    def calculate_delta(
        self,
        delta_id: str,
        base_build: BuildConfiguration,
        modified_build: BuildConfiguration,
        config: DPRConfiguration,
        target_ac: int | None = None,
        debounce_ms: int | None = None,
    ) -> bool:
        """Schedule a delta computation; returns False if the calculator isn't ready.

        Must be called from a coroutine or callback on the running loop. The
        record for *delta_id* reads as calculating before this returns.
        """
        if not self._calculator.is_initialized:
            logger.warning("Delta %s requested before the calculator is ready; ignored", delta_id)
            return False

        loop = asyncio.get_running_loop()
        target = self._config.default_target_ac if target_ac is None else int(target_ac)
        delay_ms = self._config.debounce_ms if debounce_ms is None else max(0, int(debounce_ms))

        # Snapshot now; the caller may keep editing its builds.
        base = base_build.copy()
        modified = modified_build.copy()

        generation = self._bump_generation(delta_id)
        self._cancel_timer(delta_id)
        self._publish(delta_id, DeltaRecord(is_calculating=True))
        self._timers[delta_id] = loop.call_later(
            delay_ms / 1000, self._fire, delta_id, generation, base, modified, config, target
        )
        logger.debug(
            "Scheduled delta %s (generation %d, AC %d, debounce %d ms)",
            delta_id, generation, target, delay_ms,
        )
        return True

    def calculate_buff_delta(
        self,
        build: BuildConfiguration,
        buff_id: str,
        config: DPRConfiguration,
        target_ac: int | None = None,
        debounce_ms: int | None = None,
    ) -> bool:
        """Delta of toggling *buff_id* relative to the build as it stands."""
        return self.calculate_delta(
            f"buff-{buff_id}", build, build.toggled_buff(buff_id), config, target_ac, debounce_ms
        )

    def calculate_feat_delta(
        self,
        build: BuildConfiguration,
        level: int,
        feat_id: str,
        config: DPRConfiguration,
        target_ac: int | None = None,
        debounce_ms: int | None = None,
    ) -> bool:
        """Delta of taking *feat_id* at *level*. Raises ValueError for a missing level."""
        return self.calculate_delta(
            f"feat-{feat_id}", build, build.with_feat(level, feat_id), config, target_ac, debounce_ms
        )

    # --- Reads -------------------------------------------------------------

    def get_delta(self, delta_id: str) -> DeltaRecord | None:
        return self._records.get(delta_id)

    def is_pending(self, delta_id: str) -> bool:
        record = self._records.get(delta_id)
        return record is not None and record.is_calculating

    async def wait_settled(self, delta_id: str) -> DeltaRecord | None:
        """Wait until *delta_id* stops calculating, then return its record."""
        if not self.is_pending(delta_id):
            return self._records.get(delta_id)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(delta_id, []).append(waiter)
        await waiter
        return self._records.get(delta_id)

    def add_listener(self, listener: DeltaListener) -> Callable[[], None]:
        """Subscribe to record changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # --- Clearing ----------------------------------------------------------

    def clear_delta(self, delta_id: str) -> None:
        self._cancel_timer(delta_id)
        if delta_id in self._generations:
            self._bump_generation(delta_id)
        if self._records.pop(delta_id, None) is not None:
            self._notify(delta_id, None)
        self._settle(delta_id)

    def clear_all_deltas(self) -> None:
        for delta_id in set(self._records) | set(self._timers):
            self.clear_delta(delta_id)

    async def aclose(self) -> None:
        """Clear everything and cancel computations still in flight."""
        self.clear_all_deltas()
        tasks = [task for group in self._inflight.values() for task in group]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    # --- Internals ---------------------------------------------------------

    def _bump_generation(self, delta_id: str) -> int:
        generation = self._generations.get(delta_id, 0) + 1
        self._generations[delta_id] = generation
        return generation

    def _cancel_timer(self, delta_id: str) -> None:
        handle = self._timers.pop(delta_id, None)
        if handle is not None:
            handle.cancel()

    def _fire(
        self,
        delta_id: str,
        generation: int,
        base: BuildConfiguration,
        modified: BuildConfiguration,
        config: DPRConfiguration,
        target_ac: int,
    ) -> None:
        self._timers.pop(delta_id, None)
        task = asyncio.get_running_loop().create_task(
            self._compute(delta_id, generation, base, modified, config, target_ac),
            name=f"delta-{delta_id}-{generation}",
        )
        group = self._inflight.setdefault(delta_id, set())
        group.add(task)
        task.add_done_callback(lambda t: self._forget_task(delta_id, t))

    def _forget_task(self, delta_id: str, task: asyncio.Task) -> None:
        group = self._inflight.get(delta_id)
        if group is None:
            return
        group.discard(task)
        if not group:
            del self._inflight[delta_id]

    async def _compute(
        self,
        delta_id: str,
        generation: int,
        base: BuildConfiguration,
        modified: BuildConfiguration,
        config: DPRConfiguration,
        target_ac: int,
    ) -> None:
        timeout = self._config.calculation_timeout_s
        try:
            async with asyncio.timeout(timeout):
                base_result, modified_result = await asyncio.gather(
                    self._calculate(base, config, "base"),
                    self._calculate(modified, config, "modified"),
                )
            record = self._resolve(base_result, modified_result, target_ac)
        except TimeoutError:
            record = DeltaRecord(error=f"DPR calculation timed out after {timeout:g}s")
        except DprPlannerError as exc:
            record = DeltaRecord(error=str(exc))

        if self._generations.get(delta_id) != generation:
            logger.debug("Discarding stale result for delta %s (generation %d)", delta_id, generation)
            return
        if record.error:
            logger.warning("Delta %s failed: %s", delta_id, record.error)
        else:
            logger.debug("Delta %s resolved to %+.3f", delta_id, record.value)
        self._publish(delta_id, record)
        self._settle(delta_id)

    async def _calculate(
        self, build: BuildConfiguration, config: DPRConfiguration, label: str
    ) -> DPRResult:
        try:
            result = await self._calculator.calculate_dpr_curves(build, config)
        except Exception as exc:
            raise CalculationFailure(f"Failed to calculate {label} DPR: {exc}") from exc
        if result is None:
            raise CalculationFailure(f"Failed to calculate {label} DPR")
        return result

    @staticmethod
    def _resolve(base: DPRResult, modified: DPRResult, target_ac: int) -> DeltaRecord:
        base_point = base.point_at(target_ac)
        modified_point = modified.point_at(target_ac)
        if base_point is None or modified_point is None:
            raise DataNotFound(f"DPR data not found for AC {target_ac}")
        return DeltaRecord(
            value=modified_point.dpr - base_point.dpr,
            additional_metrics=DeltaMetrics(
                hit_chance_delta=modified_point.hit_chance - base_point.hit_chance,
                crit_chance_delta=modified_point.crit_chance - base_point.crit_chance,
                base_dpr=base_point.dpr,
                modified_dpr=modified_point.dpr,
            ),
        )

    def _publish(self, delta_id: str, record: DeltaRecord) -> None:
        self._records[delta_id] = record
        self._notify(delta_id, record)

    def _notify(self, delta_id: str, record: DeltaRecord | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(delta_id, record)
            except Exception:
                # A broken subscriber must not stall publishing or settling.
                logger.exception("Delta listener %r failed for %s", listener, delta_id)

    def _settle(self, delta_id: str) -> None:
        for waiter in self._waiters.pop(delta_id, []):
            if not waiter.done():
                waiter.set_result(None)
