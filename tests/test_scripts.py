"""Tests for the CLI helper functions."""

import asyncio
import json

import pytest

from dpr_planner.engine.delta_engine import DeltaRecord
from dpr_planner.models.build import BuildConfiguration, Equipment, LevelEntry
from dpr_planner.models.dpr import DPRConfiguration
from scripts._common import (
    _dpr_config_from_dict,
    _json_safe,
    _load_json_arg,
    _parse_int_like,
)
from scripts.dpr_delta import _compute_delta
from scripts.optimize_combat import _combat_config_from_dict
from scripts.plan_path import _path_config_from_dict, _render_text_result


def _fighter() -> BuildConfiguration:
    timeline = [LevelEntry(level=i, class_id="fighter") for i in range(1, 6)]
    timeline[0].fighting_style = "great_weapon_fighting"
    return BuildConfiguration(
        id="cli-fighter",
        ability_scores={"STR": 16, "DEX": 12, "CON": 14, "INT": 10, "WIS": 10, "CHA": 8},
        level_timeline=timeline,
        equipment=Equipment(main_hand="greatsword"),
    )


# ---- _common ----


def test_parse_int_like():
    assert _parse_int_like(7) == 7
    assert _parse_int_like(" 0x10 ") == 16
    with pytest.raises(ValueError):
        _parse_int_like(True)
    with pytest.raises(ValueError):
        _parse_int_like(1.5)


def test_load_json_arg(tmp_path):
    assert _load_json_arg(None, None) == {}
    assert _load_json_arg('{"a": 1}', None) == {"a": 1}
    path = tmp_path / "payload.json"
    path.write_text(json.dumps({"b": 2}))
    assert _load_json_arg(None, path) == {"b": 2}
    with pytest.raises(ValueError, match="must be an object"):
        _load_json_arg("[1, 2]", None)


def test_json_safe_handles_dataclasses_and_sets():
    payload = _json_safe({"record": DeltaRecord(value=1.5), "ids": {"b", "a"}, 3: (1, 2)})
    assert payload == {
        "record": {"value": 1.5, "is_calculating": False, "error": None, "additional_metrics": None},
        "ids": ["a", "b"],
        "3": [1, 2],
    }
    json.dumps(payload)


def test_dpr_config_from_dict():
    config = _dpr_config_from_dict({"ac_min": "12", "advantage_state": "advantage"}, "b1")
    assert config == DPRConfiguration(build_id="b1", ac_min=12, advantage_state="advantage")
    with pytest.raises(ValueError, match="ac_range"):
        _dpr_config_from_dict({"ac_range": [10, 20]})


# ---- Per-script parsers ----


def test_combat_config_from_dict():
    config = _combat_config_from_dict({"target_ac": "18", "allow_nova_damage": 1, "target_type": "multiple"})
    assert config.target_ac == 18
    assert config.allow_nova_damage is True
    assert config.target_type == "multiple"
    with pytest.raises(ValueError, match="Unknown combat config"):
        _combat_config_from_dict({"turns": 5})
    with pytest.raises(ValueError):
        _combat_config_from_dict({"rounds_to_optimize": 5})


def test_path_config_from_dict_with_preset():
    config = _path_config_from_dict(
        {"constraints": {"max_classes": 1}, "weapon_id": "longbow", "custom_level_weights": {"20": 1}},
        preset="rogue_hybrid",
    )
    assert config.constraints.max_classes == 1
    assert config.constraints.must_hit_milestones == ["sneak_attack_2d6"]
    assert config.weapon_id == "longbow"
    assert config.custom_level_weights == {20: 1.0}
    with pytest.raises(ValueError, match="Unknown preset"):
        _path_config_from_dict({}, preset="necromancer")


def test_path_text_render():
    from dpr_planner.optimizer import PathConstraints, PathOptimizer

    config = _path_config_from_dict({"max_level": 5, "constraints": {"allowed_classes": ["fighter"]}})
    assert config.constraints == PathConstraints(allowed_classes=["fighter"])
    text = _render_text_result(PathOptimizer().optimize(config))
    assert text.startswith("path-1: Pure Fighter")
    assert "feats: L1 great_weapon_master" in text


# ---- dpr_delta ----


def test_compute_buff_delta_with_real_worker():
    delta_id, record = asyncio.run(
        _compute_delta(_fighter(), DPRConfiguration(), target_ac=16, buff_id="bless")
    )
    assert delta_id == "buff-bless"
    assert record.error is None
    assert record.value > 0


def test_compute_delta_against_modified_build():
    modified = _fighter().with_buff("haste")
    modified.id = "hasted"
    delta_id, record = asyncio.run(
        _compute_delta(_fighter(), DPRConfiguration(), target_ac=16, modified=modified)
    )
    assert delta_id == "build-hasted"
    assert record.value > 0


def test_compute_delta_out_of_range_ac():
    _, record = asyncio.run(
        _compute_delta(_fighter(), DPRConfiguration(ac_max=20), target_ac=25, buff_id="bless")
    )
    assert record.error == "DPR data not found for AC 25"


def test_compute_delta_requires_a_toggle():
    with pytest.raises(ValueError):
        asyncio.run(_compute_delta(_fighter(), DPRConfiguration(), target_ac=16))


def test_compute_delta_rejects_toggle_with_modified_build():
    modified = _fighter().with_buff("haste")
    with pytest.raises(ValueError, match="cannot be combined"):
        asyncio.run(
            _compute_delta(_fighter(), DPRConfiguration(), target_ac=16, buff_id="bless", modified=modified)
        )


# ---- dpr_curve ----


def test_curve_text_render_warns_about_attunement():
    from dpr_planner.engine.simulator import generate_dpr_curves
    from dpr_planner.rules.catalog import default_catalog
    from scripts.dpr_curve import _render_text_result

    build = _fighter()
    attuned = ["cloak_of_protection", "cloak_of_elvenkind", "bracers_of_archery", "flame_tongue"]
    build.equipment.magic_items = list(attuned)
    build.equipment.attuned_items = list(attuned)
    result = generate_dpr_curves(build, DPRConfiguration(ac_min=15, ac_max=15), default_catalog())
    text = _render_text_result(result, build)
    assert text.startswith("build: Untitled Build (cli-fighter), level 5")
    assert "warning: Attuned to 4 items but can only attune to 3" in text
