"""Tests for the debounced delta engine.

Unit tests use a synthetic calculator: a build's DPR is read from its
metadata plus a fixed amount per active buff and feat, so expected deltas
are easy to state. Each test drives the engine inside asyncio.run().
"""

import asyncio

import pytest

from dpr_planner.engine.delta_engine import DeltaEngine, DeltaRecord
from dpr_planner.engine.engine_config import EngineConfig
from dpr_planner.models.build import BuildConfiguration, LevelEntry
from dpr_planner.models.dpr import CurvePoint, DPRConfiguration, DPRResult

BUFF_DPR = 5.0
FEAT_DPR = 3.0


# ---- Helpers ----


class FakeCalculator:
    """Curve calculator with flat curves and scriptable failures."""

    def __init__(self, *, initialized: bool = True) -> None:
        self.initialized = initialized
        self.calls: list[str] = []

    @property
    def is_initialized(self) -> bool:
        return self.initialized

    async def calculate_dpr_curves(self, build, config):
        self.calls.append(build.id)
        delay = build.metadata.get("delay", 0.0)
        if delay:
            await asyncio.sleep(delay)
        if build.metadata.get("fail"):
            raise RuntimeError("worker crashed")
        if build.metadata.get("empty"):
            return None
        dpr = (
            build.metadata.get("dpr", 0.0)
            + BUFF_DPR * len(build.active_buffs)
            + FEAT_DPR * len(build.feats())
        )
        hit = 0.5 + 0.1 * len(build.active_buffs)
        curve = tuple(
            CurvePoint(ac=ac, dpr=dpr, hit_chance=hit, crit_chance=0.05)
            for ac in config.ac_values()
        )
        return DPRResult(
            build_id=build.id,
            config=config,
            total_dpr=dpr * 3,
            average_dpr=dpr,
            round_breakdown=(dpr, dpr, dpr),
            normal_curve=curve,
        )


def _build(build_id: str = "base", dpr: float = 40.0, **metadata) -> BuildConfiguration:
    return BuildConfiguration(
        id=build_id,
        level_timeline=[LevelEntry(level=i, class_id="fighter") for i in range(1, 5)],
        metadata={"dpr": dpr, **metadata},
    )


def _config() -> DPRConfiguration:
    return DPRConfiguration(ac_min=10, ac_max=30)


def _run(scenario):
    return asyncio.run(scenario())


# ---- Resolution ----


def test_delta_is_modified_minus_base():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        assert engine.calculate_delta("buff-haste", _build(dpr=40), _build("m", dpr=52), _config(), 16, 10)
        assert engine.get_delta("buff-haste") == DeltaRecord(is_calculating=True)
        record = await engine.wait_settled("buff-haste")
        await engine.aclose()
        return record

    record = _run(scenario)
    assert record.value == pytest.approx(12.0)
    assert not record.is_calculating
    assert record.error is None
    assert record.additional_metrics.base_dpr == pytest.approx(40.0)
    assert record.additional_metrics.modified_dpr == pytest.approx(52.0)


def test_swapping_builds_negates_delta():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("forward", _build(dpr=40), _build("m", dpr=52), _config(), 16, 0)
        engine.calculate_delta("reverse", _build("m", dpr=52), _build(dpr=40), _config(), 16, 0)
        forward = await engine.wait_settled("forward")
        reverse = await engine.wait_settled("reverse")
        return forward, reverse

    forward, reverse = _run(scenario)
    assert forward.value == pytest.approx(-reverse.value)


def test_get_delta_is_idempotent_and_unknown_is_none():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        assert engine.get_delta("nothing") is None
        engine.calculate_delta("d", _build(), _build("m", dpr=41), _config(), 16, 0)
        await engine.wait_settled("d")
        return engine.get_delta("d"), engine.get_delta("d")

    first, second = _run(scenario)
    assert first == second


def test_buff_delta_toggles_buff_on_copy():
    build = _build()

    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_buff_delta(build, "bless", _config(), target_ac=16, debounce_ms=0)
        return await engine.wait_settled("buff-bless")

    record = _run(scenario)
    assert record.value == pytest.approx(BUFF_DPR)
    assert record.additional_metrics.hit_chance_delta == pytest.approx(0.1)
    assert build.active_buffs == set()


def test_buff_delta_for_active_buff_is_negative():
    build = _build()
    build.active_buffs.add("bless")

    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_buff_delta(build, "bless", _config(), target_ac=16, debounce_ms=0)
        return await engine.wait_settled("buff-bless")

    assert _run(scenario).value == pytest.approx(-BUFF_DPR)


def test_feat_delta_uses_feat_identifier():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_feat_delta(_build(), 4, "sharpshooter", _config(), target_ac=16, debounce_ms=0)
        return await engine.wait_settled("feat-sharpshooter")

    assert _run(scenario).value == pytest.approx(FEAT_DPR)


def test_feat_delta_missing_level_raises():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        with pytest.raises(ValueError):
            engine.calculate_feat_delta(_build(), 9, "sharpshooter", _config())

    _run(scenario)


def test_default_target_ac_comes_from_config():
    async def scenario():
        engine = DeltaEngine(FakeCalculator(), config=EngineConfig(default_target_ac=40, debounce_ms=0))
        engine.calculate_delta("d", _build(), _build("m"), _config())
        return await engine.wait_settled("d")

    assert _run(scenario).error == "DPR data not found for AC 40"


# ---- Debounce ----


def test_rapid_requests_collapse_into_one_computation():
    calculator = FakeCalculator()

    async def scenario():
        engine = DeltaEngine(calculator)
        for dpr in (41.0, 42.0, 43.0):
            engine.calculate_delta("d", _build(), _build("m", dpr=dpr), _config(), 16, 50)
            await asyncio.sleep(0.01)
        return await engine.wait_settled("d")

    record = _run(scenario)
    assert sorted(calculator.calls) == ["base", "m"]
    assert record.value == pytest.approx(3.0)


def test_debounce_restarts_on_each_request():
    calculator = FakeCalculator()

    async def scenario():
        engine = DeltaEngine(calculator)
        engine.calculate_delta("d", _build(), _build("m"), _config(), 16, 400)
        await asyncio.sleep(0.2)
        engine.calculate_delta("d", _build(), _build("m"), _config(), 16, 400)
        # Past the first deadline, before the second.
        await asyncio.sleep(0.3)
        calls_mid = len(calculator.calls)
        pending_mid = engine.is_pending("d")
        await engine.wait_settled("d")
        return calls_mid, pending_mid

    calls_mid, pending_mid = _run(scenario)
    assert calls_mid == 0
    assert pending_mid
    assert len(calculator.calls) == 2


def test_builds_are_snapshotted_at_request_time():
    build = _build()

    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_buff_delta(build, "haste", _config(), target_ac=16, debounce_ms=20)
        build.active_buffs.add("bless")
        return await engine.wait_settled("buff-haste")

    assert _run(scenario).value == pytest.approx(BUFF_DPR)


def test_identifiers_are_independent():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("a", _build(), _build("m", dpr=50), _config(), 16, 0)
        settled_a = await engine.wait_settled("a")
        engine.calculate_delta("b", _build(), _build("m", dpr=30), _config(), 16, 50)
        during_b = engine.get_delta("a")
        record_b = await engine.wait_settled("b")
        return settled_a, during_b, record_b, engine.get_delta("a")

    settled_a, during_b, record_b, after_b = _run(scenario)
    assert settled_a.value == pytest.approx(10.0)
    assert during_b == settled_a
    assert after_b == settled_a
    assert record_b.value == pytest.approx(-10.0)


def test_newer_request_wins_over_slow_older_one():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("d", _build(delay=0.2), _build("m", dpr=99, delay=0.2), _config(), 16, 0)
        await asyncio.sleep(0.05)
        engine.calculate_delta("d", _build(), _build("m", dpr=45), _config(), 16, 0)
        fresh = await engine.wait_settled("d")
        await asyncio.sleep(0.3)
        return fresh, engine.get_delta("d")

    fresh, later = _run(scenario)
    assert fresh.value == pytest.approx(5.0)
    assert later == fresh


# ---- Failures ----


def test_calculator_error_becomes_error_record():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("bad", _build(), _build("m", fail=True), _config(), 16, 0)
        engine.calculate_delta("good", _build(), _build("m", dpr=45), _config(), 16, 0)
        return await engine.wait_settled("bad"), await engine.wait_settled("good")

    bad, good = _run(scenario)
    assert bad.value == 0.0
    assert not bad.is_calculating
    assert bad.error.startswith("Failed to calculate modified DPR")
    assert "worker crashed" in bad.error
    assert good.error is None
    assert good.value == pytest.approx(5.0)


def test_empty_result_is_reported():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("d", _build(empty=True), _build("m"), _config(), 16, 0)
        return await engine.wait_settled("d")

    assert _run(scenario).error == "Failed to calculate base DPR"


def test_missing_ac_is_reported():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("d", _build(), _build("m"), _config(), 40, 0)
        return await engine.wait_settled("d")

    record = _run(scenario)
    assert record.error == "DPR data not found for AC 40"
    assert record.value == 0.0


def test_timeout_is_reported():
    async def scenario():
        engine = DeltaEngine(FakeCalculator(), config=EngineConfig(calculation_timeout_s=0.05))
        engine.calculate_delta("d", _build(delay=1.0), _build("m"), _config(), 16, 0)
        record = await engine.wait_settled("d")
        await engine.aclose()
        return record

    record = _run(scenario)
    assert record.error == "DPR calculation timed out after 0.05s"
    assert not record.is_calculating


def test_not_ready_calculator_ignores_request():
    calculator = FakeCalculator(initialized=False)

    async def scenario():
        engine = DeltaEngine(calculator)
        accepted = engine.calculate_delta("d", _build(), _build("m"), _config(), 16, 0)
        await asyncio.sleep(0.02)
        return accepted, engine.get_delta("d")

    accepted, record = _run(scenario)
    assert accepted is False
    assert record is None
    assert calculator.calls == []


# ---- Clearing ----


def test_clear_before_debounce_cancels_computation():
    calculator = FakeCalculator()

    async def scenario():
        engine = DeltaEngine(calculator)
        engine.calculate_delta("d", _build(), _build("m"), _config(), 16, 30)
        engine.clear_delta("d")
        await asyncio.sleep(0.1)
        return engine.get_delta("d")

    assert _run(scenario) is None
    assert calculator.calls == []


def test_clear_discards_in_flight_result():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("d", _build(delay=0.1), _build("m", delay=0.1), _config(), 16, 0)
        await asyncio.sleep(0.03)
        engine.clear_delta("d")
        await asyncio.sleep(0.2)
        return engine.get_delta("d")

    assert _run(scenario) is None


def test_clear_all_and_aclose():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("a", _build(), _build("m"), _config(), 16, 0)
        engine.calculate_delta("b", _build(), _build("m"), _config(), 16, 500)
        await engine.wait_settled("a")
        engine.clear_all_deltas()
        cleared = (engine.get_delta("a"), engine.get_delta("b"))
        engine.calculate_delta("c", _build(delay=0.5), _build("m"), _config(), 16, 0)
        await asyncio.sleep(0.02)
        await engine.aclose()
        return cleared, engine.get_delta("c")

    cleared, after_close = _run(scenario)
    assert cleared == (None, None)
    assert after_close is None


def test_wait_settled_returns_none_after_clear():
    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.calculate_delta("d", _build(), _build("m"), _config(), 16, 200)
        waiter = asyncio.create_task(engine.wait_settled("d"))
        await asyncio.sleep(0.01)
        engine.clear_delta("d")
        return await waiter

    assert _run(scenario) is None


# ---- Listeners ----


def test_listener_sees_transitions_and_can_unsubscribe():
    seen: list[tuple[str, DeltaRecord | None]] = []

    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        remove = engine.add_listener(lambda delta_id, record: seen.append((delta_id, record)))
        engine.calculate_delta("d", _build(), _build("m", dpr=42), _config(), 16, 0)
        await engine.wait_settled("d")
        engine.clear_delta("d")
        remove()
        engine.calculate_delta("d", _build(), _build("m"), _config(), 16, 0)
        await engine.wait_settled("d")

    _run(scenario)
    assert [record.is_calculating if record else None for _, record in seen] == [True, False, None]
    assert seen[1][1].value == pytest.approx(2.0)


def test_failing_listener_does_not_stall_the_engine(caplog):
    calls: list[bool] = []

    def flaky(delta_id, record):
        calls.append(record.is_calculating)
        raise RuntimeError("ui glitch")

    async def scenario():
        engine = DeltaEngine(FakeCalculator())
        engine.add_listener(flaky)
        assert engine.calculate_delta("d", _build(), _build("m", dpr=45), _config(), 16, 0)
        record = await asyncio.wait_for(engine.wait_settled("d"), 1.0)
        await engine.aclose()
        return record

    record = _run(scenario)
    assert calls == [True, False]
    assert record.value == pytest.approx(5.0)
    assert not record.is_calculating
    assert "Delta listener" in caplog.text
