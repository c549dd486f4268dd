"""Build -> CombatState conversion and DPR curve generation."""

from __future__ import annotations

import logging
import math

from dpr_planner.engine.calculations import (
    CombatState,
    calculate_at_ac,
    combine_advantage,
)
from dpr_planner.engine.errors import CalculationFailure
from dpr_planner.engine.magic_items import effective_ability_scores, equipped_items
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.constants import (
    TYPICAL_AC,
    AdvantageState,
    ability_modifier,
    proficiency_bonus,
)
from dpr_planner.models.dpr import (
    CurvePoint,
    DPRConfiguration,
    DPRResult,
    PowerAttackBreakpoint,
)
from dpr_planner.rules.catalog import RulesCatalog
from dpr_planner.rules.definitions import Buff, Dice, Weapon

logger = logging.getLogger(__name__)


UNARMED_STRIKE = Weapon(id="unarmed", name="Unarmed Strike", category="melee", damage=Dice(0, 0, 1))

_EXTRA_ATTACK_KEYS = {"extra_attack_1": 1, "extra_attack_2": 2, "extra_attack_3": 3}


def weapon_config(build: BuildConfiguration, catalog: RulesCatalog) -> Weapon:
    """Resolve the build's primary weapon; no weapon means an unarmed strike."""
    weapon_id = build.equipment.primary_weapon
    if weapon_id is None:
        return UNARMED_STRIKE
    weapon = catalog.get_weapon(weapon_id)
    if weapon is None:
        raise CalculationFailure(f"Unknown weapon: {weapon_id!r}")
    return weapon


def attack_ability(
    build: BuildConfiguration, weapon: Weapon, scores: dict[str, int] | None = None
) -> str:
    if weapon.category == "ranged":
        return "DEX"
    if weapon.has("finesse"):
        if scores is None:
            scores = build.ability_scores
        return "DEX" if scores.get("DEX", 10) > scores.get("STR", 10) else "STR"
    return "STR"


def rage_damage(barbarian_level: int) -> int:
    if barbarian_level >= 16:
        return 4
    if barbarian_level >= 9:
        return 3
    return 2


def _active_buffs(
    build: BuildConfiguration,
    catalog: RulesCatalog,
    include_round0: bool,
) -> list[Buff]:
    ids = set(build.active_buffs)
    if include_round0:
        ids |= build.round0_buffs
    out: list[Buff] = []
    for buff_id in sorted(ids):
        buff = catalog.get_buff(buff_id)
        if buff is None:
            logger.debug("Ignoring unknown buff %r on build %s", buff_id, build.id)
            continue
        out.append(buff)
    return out


def build_to_combat_state(
    build: BuildConfiguration,
    catalog: RulesCatalog,
    level: int | None = None,
    include_round0: bool = True,
) -> CombatState:
    """Collapse a build (optionally truncated at *level*) into attack numbers."""
    level = build.current_level if level is None else level
    class_levels = build.class_levels(up_to=level)
    weapon = weapon_config(build, catalog)
    items = equipped_items(build, catalog, level)
    scores = effective_ability_scores(build, items)
    ability = attack_ability(build, weapon, scores)
    mod = ability_modifier(scores.get(ability, 10))
    enhancement = build.equipment.weapon_enhancement_bonus

    attack_bonus: float = proficiency_bonus(level) + mod + enhancement
    damage_bonus: float = mod + enhancement
    extra_dice: list[Dice] = []
    extra_attacks = 0
    action_surges = 0
    features: set[str] = set()

    for class_id, class_level in class_levels.items():
        cls = catalog.get_class(class_id)
        if cls is None:
            raise CalculationFailure(f"Unknown class: {class_id!r}")
        owned = cls.features_through(class_level)
        features.update(owned)
        for key in owned:
            # Extra Attack from different classes does not stack.
            extra_attacks = max(extra_attacks, _EXTRA_ATTACK_KEYS.get(key, 0))
        action_surges += cls.resource_uses("action_surge", class_level)

    styles = set(build.fighting_styles(up_to=level))
    two_handed_grip = weapon.has("two-handed") or (
        weapon.has("versatile") and not build.equipment.shield and not build.equipment.off_hand
    )
    great_weapon_fighting = (
        "great_weapon_fighting" in styles and weapon.category == "melee" and two_handed_grip
    )
    if "archery" in styles and weapon.has("ammunition"):
        attack_bonus += 2
    if "dueling" in styles and weapon.category == "melee" and not weapon.has("two-handed") \
            and not build.equipment.off_hand:
        damage_bonus += 2

    for item in items:
        if item.category == "weapon" and (weapon is UNARMED_STRIKE or weapon.category != "melee"):
            continue
        attack_bonus += item.attack_bonus
        damage_bonus += item.damage_bonus
        if weapon.category == "ranged":
            damage_bonus += item.ranged_damage_bonus
        extra_dice.extend(item.on_hit_dice)

    bonus_attacks = 0
    advantage = False
    for buff in _active_buffs(build, catalog, include_round0):
        if buff.requires_class and class_levels.get(buff.requires_class, 0) == 0:
            continue
        if buff.strength_melee_only:
            if weapon.category != "melee" or ability != "STR":
                continue
            damage_bonus += rage_damage(class_levels.get("barbarian", 0))
        attack_bonus += buff.attack_bonus
        damage_bonus += buff.damage_bonus
        extra_dice.extend(buff.on_hit_dice)
        bonus_attacks += buff.additional_attacks
        advantage = advantage or buff.advantage

    power_attack = False
    for feat_id in build.feats(up_to=level):
        feat = catalog.get_feat(feat_id)
        if feat is None or feat.power_attack_property is None:
            continue
        if feat.power_attack_property == "heavy" and weapon.category == "melee" and weapon.has("heavy"):
            power_attack = True
        elif feat.power_attack_property == "ammunition" and weapon.has("ammunition"):
            power_attack = True

    rogue_levels = class_levels.get("rogue", 0)
    return CombatState(
        level=level,
        attack_bonus=attack_bonus,
        damage_bonus=damage_bonus,
        weapon_dice=weapon.damage,
        attack_ability=ability,
        extra_damage_dice=extra_dice,
        attacks_per_action=1 + extra_attacks,
        bonus_attacks=bonus_attacks,
        great_weapon_fighting=great_weapon_fighting,
        sneak_attack_dice=math.ceil(rogue_levels / 2) if "sneak_attack" in features else 0,
        power_attack_available=power_attack,
        action_surges=action_surges,
        advantage=advantage,
    )


def _curve(
    state: CombatState,
    config: DPRConfiguration,
    advantage_state: AdvantageState,
) -> tuple[CurvePoint, ...]:
    points = []
    for ac in config.ac_values():
        result = calculate_at_ac(
            state, ac, advantage_state, config.greedy_resource_use, config.auto_gwm_ss
        )
        points.append(
            CurvePoint(
                ac=ac,
                dpr=result.dpr,
                hit_chance=result.hit_chance,
                crit_chance=result.crit_chance,
                with_power_attack=result.with_power_attack,
            )
        )
    return tuple(points)


def generate_dpr_curves(
    build: BuildConfiguration,
    config: DPRConfiguration,
    catalog: RulesCatalog,
) -> DPRResult:
    """Normal/advantage/disadvantage curves plus a summary at the typical AC."""
    state = build_to_combat_state(build, catalog, include_round0=config.round0_buffs_enabled)

    breakpoints: list[PowerAttackBreakpoint] = []
    if state.power_attack_available:
        for ac in config.ac_values():
            result = calculate_at_ac(
                state, ac, config.advantage_state, config.greedy_resource_use, auto_power_attack=True
            )
            breakpoints.append(
                PowerAttackBreakpoint(
                    ac=ac,
                    use_power_attack=result.used_power_attack,
                    with_power_attack=result.with_power_attack or 0.0,
                    without_power_attack=result.without_power_attack,
                )
            )

    summary = calculate_at_ac(
        state, TYPICAL_AC, config.advantage_state, config.greedy_resource_use, config.auto_gwm_ss
    )
    logger.debug(
        "Curves for %s: %d points, %.2f DPR at AC %d (roll state %s)",
        build.id,
        len(config.ac_values()),
        summary.dpr,
        TYPICAL_AC,
        combine_advantage(config.advantage_state, state.advantage),
    )
    return DPRResult(
        build_id=build.id,
        config=config,
        total_dpr=sum(summary.round_breakdown),
        average_dpr=summary.dpr,
        round_breakdown=summary.round_breakdown,
        normal_curve=_curve(state, config, config.advantage_state),
        advantage_curve=_curve(state, config, "advantage"),
        disadvantage_curve=_curve(state, config, "disadvantage"),
        power_attack_breakpoints=tuple(breakpoints),
    )
