"""Off-loop DPR curve calculator.

The curve math is CPU-bound and synchronous; DPRWorker runs it in a small
thread pool so an asyncio caller (the delta engine) never blocks.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from dpr_planner.engine.calculations import calculate_at_ac
from dpr_planner.engine.errors import NotReady
from dpr_planner.engine.simulator import build_to_combat_state, generate_dpr_curves
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.dpr import CurvePoint, DPRConfiguration, DPRResult
from dpr_planner.rules.catalog import RulesCatalog, default_catalog

logger = logging.getLogger(__name__)


class CurveCalculator(Protocol):
    """What the delta engine needs from a calculator."""

    @property
    def is_initialized(self) -> bool: ...

    async def calculate_dpr_curves(
        self, build: BuildConfiguration, config: DPRConfiguration
    ) -> DPRResult | None: ...


class DPRWorker:
    """Runs curve calculations on a thread pool."""

    __slots__ = ("_catalog", "_max_workers", "_executor")

    def __init__(self, catalog: RulesCatalog | None = None, *, max_workers: int = 2) -> None:
        self._catalog = catalog or default_catalog()
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    # --- Lifecycle ---------------------------------------------------------

    def start(self) -> DPRWorker:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="dpr-worker"
            )
            logger.debug("DPR worker started with %d threads", self._max_workers)
        return self

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None
            logger.debug("DPR worker stopped")

    async def aclose(self) -> None:
        """Like close(), but waits for the pool off the running loop."""
        if self._executor is not None:
            await asyncio.to_thread(self.close)

    def __enter__(self) -> DPRWorker:
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> DPRWorker:
        return self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def is_initialized(self) -> bool:
        return self._executor is not None

    @property
    def catalog(self) -> RulesCatalog:
        return self._catalog

    # --- Calculations ------------------------------------------------------

    def _require_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            raise NotReady("DPR worker has not been started")
        return self._executor

    async def calculate_dpr_curves(
        self, build: BuildConfiguration, config: DPRConfiguration
    ) -> DPRResult:
        executor = self._require_executor()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            executor, generate_dpr_curves, build, config, self._catalog
        )

    async def calculate_single_ac(
        self, build: BuildConfiguration, config: DPRConfiguration, ac: int
    ) -> CurvePoint:
        executor = self._require_executor()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, self._single_ac, build, config, ac)

    async def find_power_attack_threshold(
        self, build: BuildConfiguration, config: DPRConfiguration
    ) -> int | None:
        """First AC in range where power attacking stops paying, or None."""
        result = await self.calculate_dpr_curves(build, config)
        seen_gain = False
        for bp in result.power_attack_breakpoints:
            if bp.use_power_attack:
                seen_gain = True
            elif seen_gain:
                return bp.ac
        return None

    def _single_ac(self, build: BuildConfiguration, config: DPRConfiguration, ac: int) -> CurvePoint:
        state = build_to_combat_state(build, self._catalog, include_round0=config.round0_buffs_enabled)
        result = calculate_at_ac(
            state, ac, config.advantage_state, config.greedy_resource_use, config.auto_gwm_ss
        )
        return CurvePoint(
            ac=ac,
            dpr=result.dpr,
            hit_chance=result.hit_chance,
            crit_chance=result.crit_chance,
            with_power_attack=result.with_power_attack,
        )
