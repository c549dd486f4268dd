"""Combat action menu and per-build action valuation.

A CombatContext precomputes what a build can do in a fight and how much
each option is worth given the effects active when it resolves. The round
optimizer only walks states; every number comes from here.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Literal

from dpr_planner.engine.buff_selection import castable_buffs
from dpr_planner.engine.calculations import (
    CombatState,
    apply_advantage,
    crit_chance,
    dice_average,
    hit_chance,
    rolled_average,
    single_attack_damage,
    turn_damage,
)
from dpr_planner.engine.errors import CalculationFailure
from dpr_planner.engine.simulator import build_to_combat_state
from dpr_planner.engine.spell_slots import spell_slots
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.constants import ROUNDS_PER_COMBAT, ability_modifier, proficiency_bonus
from dpr_planner.optimizer.specs import CombatOptimizationConfig
from dpr_planner.rules.catalog import RulesCatalog
from dpr_planner.rules.definitions import Buff, Dice, Spell

logger = logging.getLogger(__name__)


ActionKind = Literal["attack", "action_surge", "buff", "spell", "reaction"]
ActionTiming = Literal["action", "bonus", "reaction", "free"]

# Chance per round that an enemy provokes an opportunity attack.
REACTION_TRIGGER_CHANCE = 0.25
# Damage-equivalent value of a target failing its save against a control spell.
CONTROL_VALUE = 8.0


@dataclass(frozen=True, slots=True)
class CombatAction:
    id: str
    name: str
    kind: ActionKind
    timing: ActionTiming
    spell_level: int = 0
    resource: str | None = None
    concentration: bool = False
    buff_id: str | None = None
    spell_id: str | None = None


@dataclass(frozen=True, slots=True)
class ResourceState:
    """Hashable combat resources; the optimizer memoizes on this."""

    slots: tuple[int, ...] = ()          # index 0 = 1st-level slots
    action_surges: int = 0
    rage: int = 0
    concentration: str | None = None
    effects: frozenset[str] = frozenset()

    @property
    def active_effects(self) -> frozenset[str]:
        if self.concentration is None:
            return self.effects
        return self.effects | {self.concentration}

    def slot_for(self, spell_level: int) -> int | None:
        """Lowest available slot level that can cast *spell_level*."""
        for idx in range(max(spell_level, 1) - 1, len(self.slots)):
            if self.slots[idx] > 0:
                return idx + 1
        return None

    def spend_slot(self, slot_level: int) -> ResourceState:
        slots = list(self.slots)
        slots[slot_level - 1] -= 1
        return dataclasses.replace(self, slots=tuple(slots))


def cantrip_tier(level: int) -> int:
    return 1 + (level >= 5) + (level >= 11) + (level >= 17)


class CombatContext:
    """What one build can do in combat, and what each option is worth."""

    def __init__(
        self,
        build: BuildConfiguration,
        config: CombatOptimizationConfig,
        catalog: RulesCatalog,
    ) -> None:
        self.build = build
        self.config = config
        self.catalog = catalog
        self.level = build.current_level
        self.class_levels = build.class_levels()
        self._state_cache: dict[frozenset[str], CombatState | None] = {}

        slots = spell_slots(self.class_levels, catalog)
        max_slot = max(slots) if slots else 0
        slot_tuple = tuple(slots.get(lv, 0) for lv in range(1, max_slot + 1))

        surges = rage = 0
        for class_id, class_level in self.class_levels.items():
            cls = catalog.get_class(class_id)
            if cls is None:
                continue
            surges += cls.resource_uses("action_surge", class_level)
            rage += cls.resource_uses("rage", class_level)
        self.initial_resources = ResourceState(
            slots=slot_tuple,
            action_surges=min(surges, ROUNDS_PER_COMBAT),
            rage=min(rage, ROUNDS_PER_COMBAT),
        )

        self.spell_mod, self.spell_attack_bonus, self.spell_dc = self._spellcasting_numbers()
        self.castable_buffs = self._castable_buffs()
        self.external_buffs = frozenset(
            b for b in (build.active_buffs | build.round0_buffs) if b not in self.castable_buffs
        )
        self.spells = self._combat_spells()
        self.menu = self._build_menu()

    # --- Setup ---------------------------------------------------------------

    def _spellcasting_numbers(self) -> tuple[int, int, int]:
        best_ability, best_levels = None, 0
        for class_id, class_level in sorted(self.class_levels.items()):
            cls = self.catalog.get_class(class_id)
            if cls and cls.spellcasting_ability and class_level > best_levels:
                best_ability, best_levels = cls.spellcasting_ability, class_level
        if best_ability is None:
            return 0, 0, 0
        mod = ability_modifier(self.build.ability_score(best_ability))
        prof = proficiency_bonus(self.level)
        return mod, prof + mod, 8 + prof + mod

    def _can_pay_slot(self, spell_level: int) -> bool:
        return self.initial_resources.slot_for(spell_level) is not None

    def _castable_buffs(self) -> dict[str, Buff]:
        return castable_buffs(self.build, self.catalog)

    def _combat_spells(self) -> dict[str, Spell]:
        out: dict[str, Spell] = {}
        if not self.spell_dc:
            return out
        for spell_id in sorted(self.build.spells):
            spell = self.catalog.get_spell(spell_id)
            if spell is None:
                continue
            if spell.level > 0 and not self._can_pay_slot(spell.level):
                continue
            out[spell_id] = spell
        return out

    def _build_menu(self) -> list[CombatAction]:
        menu: list[CombatAction] = []
        if self.combat_state(frozenset()) is not None:
            menu.append(CombatAction(id="attack", name="Attack", kind="attack", timing="action"))
        if self.initial_resources.action_surges:
            menu.append(
                CombatAction(
                    id="action_surge", name="Action Surge", kind="action_surge",
                    timing="free", resource="action_surge",
                )
            )
        for buff_id, buff in self.castable_buffs.items():
            menu.append(
                CombatAction(
                    id=f"cast-{buff_id}",
                    name=buff.name,
                    kind="buff",
                    timing="bonus" if buff.action_cost == "bonus" else "action",
                    spell_level=buff.spell_level or 0,
                    resource=buff.resource,
                    concentration=buff.concentration,
                    buff_id=buff_id,
                )
            )
        for spell_id, spell in self.spells.items():
            menu.append(
                CombatAction(
                    id=f"spell-{spell_id}",
                    name=spell.name,
                    kind="spell",
                    timing="bonus" if spell.action_cost == "bonus" else "action",
                    spell_level=spell.level,
                    concentration=spell.concentration,
                    spell_id=spell_id,
                )
            )
        if self.config.include_reactions and menu and menu[0].kind == "attack":
            menu.append(
                CombatAction(
                    id="opportunity_attack", name="Opportunity Attack",
                    kind="reaction", timing="reaction",
                )
            )
        return menu

    # --- Valuation -----------------------------------------------------------

    def combat_state(self, effects: frozenset[str]) -> CombatState | None:
        """Weapon attack numbers with external buffs plus *effects* active."""
        if effects in self._state_cache:
            return self._state_cache[effects]
        variant = self.build.copy()
        variant.active_buffs = set(self.external_buffs | (effects & set(self.castable_buffs)))
        variant.round0_buffs = set()
        try:
            state = build_to_combat_state(variant, self.catalog, include_round0=False)
        except CalculationFailure as exc:
            logger.debug("No weapon attack for build %s: %s", self.build.id, exc)
            state = None
        self._state_cache[effects] = state
        return state

    def _best_damage(self, state: CombatState, attacks: int) -> float:
        damage = turn_damage(state, self.config.target_ac, self.config.advantage_state, attacks)
        if state.power_attack_available:
            damage = max(
                damage,
                turn_damage(
                    state, self.config.target_ac, self.config.advantage_state, attacks,
                    power_attack=True,
                ),
            )
        return damage

    def attack_damage(self, effects: frozenset[str], first_in_turn: bool = True) -> float:
        """Expected damage of one Attack action.

        Sneak Attack and per-turn bonus attacks only count on the first
        Attack action of a turn.
        """
        state = self.combat_state(effects)
        if state is None:
            return 0.0
        if not first_in_turn:
            state = dataclasses.replace(state, sneak_attack_dice=0, bonus_attacks=0)
        return self._best_damage(state, state.attacks_per_action + state.bonus_attacks)

    def reaction_damage(self, effects: frozenset[str]) -> float:
        state = self.combat_state(effects)
        if state is None:
            return 0.0
        state = dataclasses.replace(state, bonus_attacks=0)
        return REACTION_TRIGGER_CHANCE * self._best_damage(state, 1)

    def save_fail_chance(self) -> float:
        p_save = (21 - (self.spell_dc - self.config.target_save_bonus)) / 20
        return 1 - max(0.05, min(0.95, p_save))

    def spell_outcome(self, spell: Spell) -> tuple[float, float, float]:
        """(damage, healing, control value) of casting *spell* once."""
        damage = 0.0
        p_fail = self.save_fail_chance()
        if spell.damage is not None:
            tier = cantrip_tier(self.level)
            dice = spell.damage
            if spell.scales_with_level:
                dice = Dice(dice.count * tier, dice.die, dice.bonus)
            avg = dice_average(dice)
            if spell.attack_roll:
                beams = tier if spell.multiple_beams else 1
                p_hit = apply_advantage(
                    hit_chance(self.spell_attack_bonus, self.config.target_ac),
                    self.config.advantage_state,
                )
                p_crit = min(p_hit, apply_advantage(crit_chance(), self.config.advantage_state))
                damage = beams * single_attack_damage(
                    p_hit, p_crit, avg, rolled_average(dice)
                )
            else:
                per_target = avg * (p_fail + (1 - p_fail) * 0.5 if spell.half_on_save else p_fail)
                targets = 1
                if self.config.target_type == "multiple" and spell.max_targets > 1:
                    targets = min(spell.max_targets, self.config.number_of_targets)
                damage = per_target * targets

        healing = 0.0
        if spell.healing is not None:
            healing = dice_average(spell.healing) + self.spell_mod
        control = CONTROL_VALUE * p_fail if spell.control_effect else 0.0
        return damage, healing, control


def build_action_menu(
    build: BuildConfiguration,
    config: CombatOptimizationConfig,
    catalog: RulesCatalog,
) -> list[CombatAction]:
    return CombatContext(build, config, catalog).menu
