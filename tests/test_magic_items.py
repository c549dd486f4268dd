"""Tests for magic item effects and attunement limits."""

import logging

import pytest

from dpr_planner.engine.magic_items import (
    attunement_status,
    can_attune,
    equipped_items,
    max_attunement_slots,
)
from dpr_planner.engine.simulator import build_to_combat_state
from dpr_planner.models.build import BuildConfiguration, Equipment, LevelEntry
from dpr_planner.rules.catalog import default_catalog
from dpr_planner.rules.definitions import Dice

CATALOG = default_catalog()


def _fighter(
    *,
    items: list[str] | None = None,
    attuned: list[str] | None = None,
    main_hand: str | None = "greatsword",
    ranged: str | None = None,
    strength: int = 16,
) -> BuildConfiguration:
    return BuildConfiguration(
        id="items",
        ability_scores={"STR": strength, "DEX": 14, "CON": 14, "INT": 10, "WIS": 10, "CHA": 8},
        level_timeline=[LevelEntry(level=i, class_id="fighter") for i in range(1, 6)],
        equipment=Equipment(
            main_hand=main_hand,
            ranged=ranged,
            magic_items=list(items or []),
            attuned_items=list(attuned or []),
        ),
    )


# ---- Attunement ----


@pytest.mark.parametrize(
    "class_levels,expected",
    [({}, 3), ({"fighter": 20}, 3), ({"artificer": 10}, 4), ({"artificer": 14}, 5), ({"artificer": 18}, 6)],
)
def test_max_attunement_slots(class_levels, expected):
    assert max_attunement_slots(class_levels) == expected


def test_attunement_status_and_warning():
    attuned = ["cloak_of_protection", "cloak_of_elvenkind", "bracers_of_archery", "gauntlets_of_ogre_power"]
    status = attunement_status(_fighter(items=attuned, attuned=attuned))
    assert status.max_slots == 3
    assert status.available == 0
    assert status.over_limit
    assert status.warning == "Attuned to 4 items but can only attune to 3"

    assert can_attune(_fighter(attuned=["cloak_of_protection"]))
    assert not can_attune(_fighter(items=attuned[:3], attuned=attuned[:3]))
    assert attunement_status(_fighter()).warning is None


def test_unattuned_and_unknown_items_do_not_apply():
    build = _fighter(items=["gauntlets_of_ogre_power", "bag_of_holding", "ring_of_wishes"])
    assert [item.id for item in equipped_items(build, CATALOG)] == ["bag_of_holding"]


def test_attunements_past_the_cap_are_ignored(caplog):
    attuned = ["cloak_of_protection", "cloak_of_elvenkind", "bracers_of_archery", "gauntlets_of_ogre_power"]
    build = _fighter(items=attuned, attuned=attuned)
    with caplog.at_level(logging.WARNING):
        state = build_to_combat_state(build, CATALOG)
    # Gauntlets are the fourth attunement, so STR stays 16.
    assert state.attack_bonus == 6
    assert "can only attune to 3" in caplog.text


# ---- Simulator effects ----


def test_strength_override_raises_attack_and_damage():
    build = _fighter(items=["gauntlets_of_ogre_power"], attuned=["gauntlets_of_ogre_power"])
    state = build_to_combat_state(build, CATALOG)
    assert state.attack_bonus == 7
    assert state.damage_bonus == 4


def test_override_never_lowers_a_score():
    build = _fighter(
        items=["gauntlets_of_ogre_power"], attuned=["gauntlets_of_ogre_power"], strength=20
    )
    assert build_to_combat_state(build, CATALOG).damage_bonus == 5


def test_bracers_only_boost_ranged_attacks():
    items = {"items": ["bracers_of_archery"], "attuned": ["bracers_of_archery"]}
    ranged = build_to_combat_state(_fighter(main_hand=None, ranged="longbow", **items), CATALOG)
    melee = build_to_combat_state(_fighter(**items), CATALOG)
    # DEX 14 longbow: +2 from DEX, +2 from the bracers.
    assert ranged.damage_bonus == 4
    assert melee.damage_bonus == 3


def test_flame_tongue_adds_dice_to_melee_weapon_only():
    items = {"items": ["flame_tongue"], "attuned": ["flame_tongue"]}
    melee = build_to_combat_state(_fighter(**items), CATALOG)
    assert melee.extra_damage_dice == [Dice(2, 6)]
    ranged = build_to_combat_state(_fighter(main_hand=None, ranged="longbow", **items), CATALOG)
    assert ranged.extra_damage_dice == []
    unarmed = build_to_combat_state(_fighter(main_hand=None, **items), CATALOG)
    assert unarmed.extra_damage_dice == []
