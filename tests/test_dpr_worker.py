"""Tests for the thread-pool backed DPR worker."""

import asyncio

import pytest

from dpr_planner.engine.dpr_worker import DPRWorker
from dpr_planner.engine.errors import NotReady
from dpr_planner.models.build import BuildConfiguration, Equipment, LevelEntry
from dpr_planner.models.dpr import DPRConfiguration


def _fighter(feat: str | None = None) -> BuildConfiguration:
    timeline = [LevelEntry(level=i, class_id="fighter") for i in range(1, 6)]
    timeline[0].fighting_style = "great_weapon_fighting"
    if feat:
        timeline[3].feat_id = feat
    return BuildConfiguration(
        id="worker-test",
        ability_scores={"STR": 16, "DEX": 12, "CON": 14, "INT": 10, "WIS": 10, "CHA": 8},
        level_timeline=timeline,
        equipment=Equipment(main_hand="greatsword"),
    )


def test_worker_requires_start():
    worker = DPRWorker()
    assert not worker.is_initialized
    with pytest.raises(NotReady):
        asyncio.run(worker.calculate_dpr_curves(_fighter(), DPRConfiguration()))


def test_context_manager_lifecycle():
    with DPRWorker() as worker:
        assert worker.is_initialized
        result = asyncio.run(worker.calculate_dpr_curves(_fighter(), DPRConfiguration()))
    assert not worker.is_initialized
    assert result.build_id == "worker-test"
    assert len(result.normal_curve) == 21


def test_single_ac_matches_curve():
    config = DPRConfiguration()

    async def scenario():
        async with DPRWorker() as worker:
            curves = await worker.calculate_dpr_curves(_fighter(), config)
            point = await worker.calculate_single_ac(_fighter(), config, 18)
        return curves, point

    curves, point = asyncio.run(scenario())
    assert point.ac == 18
    assert point.dpr == pytest.approx(curves.point_at(18).dpr)


def test_power_attack_threshold():
    build = _fighter("great_weapon_master")

    async def scenario():
        async with DPRWorker() as worker:
            threshold = await worker.find_power_attack_threshold(build, DPRConfiguration())
            curves = await worker.calculate_dpr_curves(build, DPRConfiguration())
        return threshold, curves

    threshold, curves = asyncio.run(scenario())
    assert threshold is not None
    assert 10 < threshold <= 20
    by_ac = {bp.ac: bp for bp in curves.power_attack_breakpoints}
    assert by_ac[threshold - 1].use_power_attack
    assert not by_ac[threshold].use_power_attack


def test_no_threshold_without_feat():
    async def scenario():
        async with DPRWorker() as worker:
            return await worker.find_power_attack_threshold(_fighter(), DPRConfiguration())

    assert asyncio.run(scenario()) is None


def test_start_is_idempotent():
    worker = DPRWorker(max_workers=1)
    assert worker.start() is worker
    worker.start()
    worker.close()
    worker.close()
    assert not worker.is_initialized


def test_async_context_manager_closes_off_loop():
    async def scenario():
        async with DPRWorker() as worker:
            assert worker.is_initialized
            result = await worker.calculate_dpr_curves(_fighter(), DPRConfiguration())
        await worker.aclose()
        return worker, result

    worker, result = asyncio.run(scenario())
    assert not worker.is_initialized
    assert result.build_id == "worker-test"
