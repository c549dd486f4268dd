"""Expected-damage math for weapon attacks.

Everything here is pure: a CombatState plus a target AC in, floats out.
The simulator is responsible for turning a build into a CombatState.

Hit model:
  hit  = clamp((21 - (AC - attack_bonus)) / 20, 0.05, 0.95)
  crit = 0.05 per face in the crit range
  advantage    -> 1 - (1 - p)^2
  disadvantage -> p^2
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dpr_planner.models.constants import ROUNDS_PER_COMBAT, AdvantageState
from dpr_planner.rules.definitions import Dice


POWER_ATTACK_PENALTY = 5
POWER_ATTACK_DAMAGE = 10
MIN_HIT_CHANCE = 0.05
MAX_HIT_CHANCE = 0.95


@dataclass(slots=True)
class CombatState:
    """Everything the attack math needs about one character at one level."""

    level: int
    attack_bonus: float
    damage_bonus: float
    weapon_dice: Dice
    attack_ability: str = "STR"
    extra_damage_dice: list[Dice] = field(default_factory=list)
    attacks_per_action: int = 1
    bonus_attacks: int = 0               # Per turn, not doubled by Action Surge
    great_weapon_fighting: bool = False
    sneak_attack_dice: int = 0           # d6 count, once per turn
    power_attack_available: bool = False
    action_surges: int = 0
    advantage: bool = False              # Granted by an active buff
    crit_faces: int = 1


@dataclass(frozen=True, slots=True)
class DPRCalculationResult:
    ac: int
    dpr: float
    hit_chance: float
    crit_chance: float
    round_breakdown: tuple[float, ...]
    used_power_attack: bool = False
    with_power_attack: float | None = None
    without_power_attack: float = 0.0


# ---------------------------------------------------------------------------
# Probability helpers
# ---------------------------------------------------------------------------


def hit_chance(attack_bonus: float, ac: int) -> float:
    raw = (21 - (ac - attack_bonus)) / 20
    return max(MIN_HIT_CHANCE, min(MAX_HIT_CHANCE, raw))


def crit_chance(crit_faces: int = 1) -> float:
    return 0.05 * max(1, crit_faces)


def apply_advantage(p: float, state: AdvantageState) -> float:
    if state == "advantage":
        return 1 - (1 - p) ** 2
    if state == "disadvantage":
        return p ** 2
    return p


def combine_advantage(state: AdvantageState, granted: bool) -> AdvantageState:
    """Merge a configured roll state with buff-granted advantage."""
    if not granted:
        return state
    if state == "disadvantage":
        return "normal"
    return "advantage"


# ---------------------------------------------------------------------------
# Damage helpers
# ---------------------------------------------------------------------------


def die_average(die: int, great_weapon_fighting: bool = False) -> float:
    """Average of one die; GWF rerolls 1s and 2s once."""
    if die <= 0:
        return 0.0
    avg = (die + 1) / 2
    if not great_weapon_fighting:
        return avg
    total = 0.0
    for face in range(1, die + 1):
        total += avg if face <= 2 else face
    return total / die


def rolled_average(dice: Dice, great_weapon_fighting: bool = False) -> float:
    """Average of the dice alone; this is the part a crit rolls again."""
    return dice.count * die_average(dice.die, great_weapon_fighting)


def dice_average(dice: Dice, great_weapon_fighting: bool = False) -> float:
    if not great_weapon_fighting:
        return dice.average
    return rolled_average(dice, great_weapon_fighting) + dice.bonus


def single_attack_damage(
    p_hit: float,
    p_crit: float,
    normal_damage: float,
    crit_dice_damage: float,
) -> float:
    """Expected damage of one attack; a crit rolls every damage die again."""
    p_normal = max(0.0, p_hit - p_crit)
    return p_normal * normal_damage + p_crit * (normal_damage + crit_dice_damage)


def attack_probabilities(
    state: CombatState,
    ac: int,
    advantage_state: AdvantageState,
    power_attack: bool = False,
) -> tuple[float, float]:
    bonus = state.attack_bonus - (POWER_ATTACK_PENALTY if power_attack else 0)
    roll_state = combine_advantage(advantage_state, state.advantage)
    p_hit = apply_advantage(hit_chance(bonus, ac), roll_state)
    p_crit = apply_advantage(crit_chance(state.crit_faces), roll_state)
    return p_hit, min(p_crit, p_hit)


def turn_damage(
    state: CombatState,
    ac: int,
    advantage_state: AdvantageState,
    attacks: int,
    power_attack: bool = False,
) -> float:
    """Expected damage of *attacks* weapon attacks in one turn."""
    if attacks <= 0:
        return 0.0
    p_hit, p_crit = attack_probabilities(state, ac, advantage_state, power_attack)

    dice_damage = rolled_average(state.weapon_dice, state.great_weapon_fighting)
    dice_damage += sum(rolled_average(d) for d in state.extra_damage_dice)
    flat = state.damage_bonus + (POWER_ATTACK_DAMAGE if power_attack else 0)
    flat += state.weapon_dice.bonus + sum(d.bonus for d in state.extra_damage_dice)
    per_attack = single_attack_damage(p_hit, p_crit, dice_damage + flat, dice_damage)
    total = per_attack * attacks

    if state.sneak_attack_dice:
        sneak = state.sneak_attack_dice * 3.5
        p_any_hit = 1 - (1 - p_hit) ** attacks
        p_any_crit = 1 - (1 - p_crit) ** attacks
        total += p_any_hit * sneak + p_any_crit * sneak
    return total


def attacks_in_round(state: CombatState, round_number: int, greedy: bool) -> int:
    attacks = state.attacks_per_action + state.bonus_attacks
    # One surge per turn, spent from round 1 onward.
    if greedy and round_number <= state.action_surges:
        attacks += state.attacks_per_action
    return attacks


def round_breakdown(
    state: CombatState,
    ac: int,
    advantage_state: AdvantageState,
    greedy: bool = True,
    power_attack: bool = False,
) -> tuple[float, ...]:
    return tuple(
        turn_damage(state, ac, advantage_state, attacks_in_round(state, r, greedy), power_attack)
        for r in range(1, ROUNDS_PER_COMBAT + 1)
    )


def calculate_at_ac(
    state: CombatState,
    ac: int,
    advantage_state: AdvantageState = "normal",
    greedy: bool = True,
    auto_power_attack: bool = True,
) -> DPRCalculationResult:
    """Average DPR over a three-round fight against one AC."""
    rounds = round_breakdown(state, ac, advantage_state, greedy)
    without = sum(rounds) / ROUNDS_PER_COMBAT
    p_hit, p_crit = attack_probabilities(state, ac, advantage_state)

    if not state.power_attack_available:
        return DPRCalculationResult(
            ac=ac,
            dpr=without,
            hit_chance=p_hit,
            crit_chance=p_crit,
            round_breakdown=rounds,
            without_power_attack=without,
        )

    pa_rounds = round_breakdown(state, ac, advantage_state, greedy, power_attack=True)
    with_pa = sum(pa_rounds) / ROUNDS_PER_COMBAT
    use_pa = auto_power_attack and with_pa > without
    if use_pa:
        p_hit, p_crit = attack_probabilities(state, ac, advantage_state, power_attack=True)
    return DPRCalculationResult(
        ac=ac,
        dpr=with_pa if use_pa else without,
        hit_chance=p_hit,
        crit_chance=p_crit,
        round_breakdown=pa_rounds if use_pa else rounds,
        used_power_attack=use_pa,
        with_power_attack=with_pa,
        without_power_attack=without,
    )
