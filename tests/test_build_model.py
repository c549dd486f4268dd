"""Tests for the build model, constants, and DPR value objects."""

import pytest

from dpr_planner.models.build import (
    BuildConfiguration,
    Equipment,
    LevelEntry,
    build_from_dict,
    build_to_dict,
)
from dpr_planner.models.constants import ability_modifier, proficiency_bonus
from dpr_planner.models.dpr import CurvePoint, DPRConfiguration, DPRResult


def _build(*classes: str, **kwargs) -> BuildConfiguration:
    timeline = [LevelEntry(level=i, class_id=cid) for i, cid in enumerate(classes, start=1)]
    return BuildConfiguration(id=kwargs.pop("id", "b1"), level_timeline=timeline, **kwargs)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("score,expected", [(1, -5), (8, -1), (10, 0), (11, 0), (15, 2), (20, 5)])
def test_ability_modifier(score, expected):
    assert ability_modifier(score) == expected


@pytest.mark.parametrize("level,expected", [(1, 2), (4, 2), (5, 3), (9, 4), (13, 5), (17, 6), (20, 6)])
def test_proficiency_bonus(level, expected):
    assert proficiency_bonus(level) == expected


# ---------------------------------------------------------------------------
# BuildConfiguration
# ---------------------------------------------------------------------------


def test_empty_timeline_is_level_one():
    assert BuildConfiguration(id="x").current_level == 1


def test_class_levels_respect_up_to():
    build = _build("fighter", "fighter", "rogue", "fighter", "rogue")
    assert build.current_level == 5
    assert build.class_levels() == {"fighter": 3, "rogue": 2}
    assert build.class_levels(up_to=3) == {"fighter": 2, "rogue": 1}


def test_entries_are_sorted_by_level():
    build = BuildConfiguration(
        id="x",
        level_timeline=[LevelEntry(3, "rogue"), LevelEntry(1, "fighter"), LevelEntry(2, "fighter")],
    )
    assert [e.level for e in build.entries()] == [1, 2, 3]
    assert [e.level for e in build.entries(up_to=2)] == [1, 2]


def test_feats_and_styles_filtered_by_level():
    build = _build("fighter", "fighter", "fighter", "fighter")
    build.level_timeline[0].fighting_style = "great_weapon_fighting"
    build.level_timeline[3].feat_id = "great_weapon_master"
    assert build.feats(up_to=3) == []
    assert build.feats() == ["great_weapon_master"]
    assert build.fighting_styles() == ["great_weapon_fighting"]


def test_with_buff_returns_new_build():
    build = _build("fighter")
    buffed = build.with_buff("bless")
    assert "bless" in buffed.active_buffs
    assert "bless" not in build.active_buffs
    assert buffed.with_buff("bless", active=False).active_buffs == set()


def test_toggled_buff_flips_membership():
    build = _build("fighter", active_buffs={"bless"})
    assert build.toggled_buff("bless").active_buffs == set()
    assert build.toggled_buff("haste").active_buffs == {"bless", "haste"}
    assert build.active_buffs == {"bless"}


def test_with_feat_replaces_feat_on_copy():
    build = _build("fighter", "fighter", "fighter", "fighter")
    variant = build.with_feat(4, "great_weapon_master")
    assert variant.feats() == ["great_weapon_master"]
    assert variant.level_timeline[3].asi_or_feat == "feat"
    assert build.feats() == []


def test_with_feat_missing_level_raises():
    with pytest.raises(ValueError, match="no level 7"):
        _build("fighter").with_feat(7, "sharpshooter")


def test_copy_is_deep():
    build = _build("fighter", equipment=Equipment(main_hand="longsword"))
    clone = build.copy()
    clone.level_timeline[0].class_id = "rogue"
    clone.equipment.magic_items.append("ring")
    assert build.level_timeline[0].class_id == "fighter"
    assert build.equipment.magic_items == []


def test_primary_weapon_prefers_ranged():
    assert Equipment(main_hand="longsword", ranged="longbow").primary_weapon == "longbow"
    assert Equipment(main_hand="longsword").primary_weapon == "longsword"


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def test_build_from_dict_parses_payload():
    build = build_from_dict(
        {
            "id": "hexblade",
            "ability_scores": {"str": 8, "CHA": 16},
            "level_timeline": [
                {"level": 1, "class_id": "warlock"},
                {"level": 2, "class_id": "fighter", "fighting_style": "dueling"},
            ],
            "equipment": {"main_hand": "longsword", "shield": True},
            "active_buffs": ["hex"],
            "spells": ["eldritch_blast"],
        }
    )
    assert build.ability_scores["STR"] == 8
    assert build.ability_scores["CHA"] == 16
    assert build.ability_scores["DEX"] == 14
    assert build.class_levels() == {"warlock": 1, "fighter": 1}
    assert build.equipment.shield is True
    assert build.active_buffs == {"hex"}
    assert build_to_dict(build)["level_timeline"][1]["fighting_style"] == "dueling"


@pytest.mark.parametrize(
    "payload,message",
    [
        ({}, "requires an 'id'"),
        ({"id": "x", "ability_scores": {"LUCK": 10}}, "Unknown ability"),
        (
            {"id": "x", "level_timeline": [{"level": 1, "class_id": "a"}, {"level": 1, "class_id": "b"}]},
            "duplicate levels",
        ),
        ({"id": "x", "active_buffs": "bless"}, "active_buffs"),
    ],
)
def test_build_from_dict_rejects_bad_payloads(payload, message):
    with pytest.raises(ValueError, match=message):
        build_from_dict(payload)


# ---------------------------------------------------------------------------
# DPR value objects
# ---------------------------------------------------------------------------


def test_dpr_configuration_defaults_and_range():
    config = DPRConfiguration()
    assert config.ac_values()[0] == 10
    assert config.ac_values()[-1] == 30
    assert len(config.ac_values()) == 21


def test_dpr_configuration_covers_respects_step():
    config = DPRConfiguration(ac_min=10, ac_max=20, ac_step=2)
    assert config.covers(16)
    assert not config.covers(15)
    assert not config.covers(22)


@pytest.mark.parametrize(
    "kwargs",
    [{"ac_step": 0}, {"ac_min": 20, "ac_max": 10}, {"advantage_state": "super"}],
)
def test_dpr_configuration_validation(kwargs):
    with pytest.raises(ValueError):
        DPRConfiguration(**kwargs)


def test_point_at_returns_none_for_missing_ac():
    result = DPRResult(
        build_id="b",
        config=DPRConfiguration(),
        total_dpr=30.0,
        average_dpr=10.0,
        round_breakdown=(10.0, 10.0, 10.0),
        normal_curve=(CurvePoint(ac=16, dpr=10.0),),
    )
    assert result.point_at(16).dpr == 10.0
    assert result.point_at(17) is None
    assert result.point_at(16, curve="advantage") is None
    with pytest.raises(ValueError):
        result.point_at(16, curve="sideways")
