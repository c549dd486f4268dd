"""Three-round combat sequence optimizer.

Search is a memoized depth-first walk over (round, ResourceState). Each
turn is expanded as:

  optional bonus action -> optional Action Surge -> 1-2 actions -> reaction

and scored as expected damage plus control/healing weights minus a
per-resource-point penalty that depends on the resource strategy.
Concentration lives in ResourceState as a single slot, so at most one
concentration effect is ever active.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field

from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.constants import ROUNDS_PER_COMBAT
from dpr_planner.optimizer.actions import CombatAction, CombatContext, ResourceState
from dpr_planner.optimizer.specs import CombatOptimizationConfig
from dpr_planner.rules.catalog import RulesCatalog, default_catalog

logger = logging.getLogger(__name__)


RESOURCE_PENALTIES: dict[str, float] = {
    "conservative": 3.0,
    "balanced": 1.0,
    "aggressive": 0.0,
}
CONTROL_WEIGHT = 1.0
SURVIVABILITY_WEIGHT = 0.5

# (name, resource_strategy, allow_nova, allow_resources)
_ALTERNATIVE_STRATEGIES: tuple[tuple[str, str, bool, bool], ...] = (
    ("Sustained (no resources)", "balanced", False, False),
    ("Nova", "aggressive", True, True),
    ("Conservative", "conservative", False, True),
    ("Balanced", "balanced", False, True),
)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class PlannedAction:
    action_id: str
    name: str
    timing: str
    expected_damage: float = 0.0
    expected_healing: float = 0.0
    resources_consumed: list[str] = field(default_factory=list)
    concentration: bool = False


@dataclass(slots=True)
class RoundPlan:
    round_number: int
    actions: list[PlannedAction] = field(default_factory=list)
    expected_damage: float = 0.0
    expected_healing: float = 0.0
    resources_used: list[str] = field(default_factory=list)
    buffs_applied: list[str] = field(default_factory=list)
    debuffs_applied: list[str] = field(default_factory=list)
    concentration_spell: str | None = None
    concentration_changed: bool = False


@dataclass(slots=True)
class AlternativeStrategy:
    name: str
    total_damage: float
    resource_efficiency: float
    rounds: list[RoundPlan] = field(default_factory=list)


@dataclass(slots=True)
class CombatOptimizationResult:
    build_id: str
    strategy_name: str
    total_damage: float
    rounds: list[RoundPlan]
    resource_value: float = 0.0
    resource_efficiency: float = 0.0
    total_healing: float = 0.0
    alternatives: list[AlternativeStrategy] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Search internals
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Step:
    action: CombatAction
    damage: float = 0.0
    healing: float = 0.0
    control: float = 0.0
    cost: float = 0.0
    resources: tuple[str, ...] = ()
    debuff: str | None = None


@dataclass(frozen=True, slots=True)
class _Turn:
    attacked: bool = False
    surged: bool = False
    leveled_bonus_spell: bool = False


@dataclass(slots=True)
class _Policy:
    penalty: float
    allow_resources: bool
    control_weight: float
    survivability_weight: float

    def score(self, step: _Step) -> float:
        return (
            step.damage
            + self.control_weight * step.control
            + self.survivability_weight * step.healing
            - self.penalty * step.cost
        )


class CombatRoundOptimizer:
    """Finds the best three-round action sequence for a build."""

    __slots__ = ("_catalog",)

    def __init__(self, catalog: RulesCatalog | None = None) -> None:
        self._catalog = catalog or default_catalog()

    def find_optimal_sequence(
        self,
        build: BuildConfiguration,
        config: CombatOptimizationConfig,
    ) -> CombatOptimizationResult:
        context = CombatContext(build, config, self._catalog)
        if not context.menu:
            logger.info("Build %s has no legal combat actions; returning an empty plan", build.id)
            return _zero_result(build.id)

        if config.allow_nova_damage:
            name, penalty = "Nova", 0.0
        else:
            name = config.resource_strategy.title()
            penalty = RESOURCE_PENALTIES[config.resource_strategy]
        primary = self._run(context, name, _policy(config, penalty, True))

        alternatives: list[AlternativeStrategy] = []
        seen = {round(primary.total_damage, 3)}
        for alt_name, strategy, nova, allow in _ALTERNATIVE_STRATEGIES:
            alt_penalty = 0.0 if nova else RESOURCE_PENALTIES[strategy]
            alt = self._run(context, alt_name, _policy(config, alt_penalty, allow))
            key = round(alt.total_damage, 3)
            if key in seen:
                continue
            seen.add(key)
            alternatives.append(
                AlternativeStrategy(
                    name=alt_name,
                    total_damage=alt.total_damage,
                    resource_efficiency=alt.resource_efficiency,
                    rounds=alt.rounds,
                )
            )
        alternatives.sort(key=lambda a: -a.total_damage)
        primary.alternatives = alternatives[: config.max_alternatives]
        logger.info(
            "Combat plan for %s (%s): %.2f damage over %d rounds, %d alternatives",
            build.id, name, primary.total_damage, ROUNDS_PER_COMBAT, len(primary.alternatives),
        )
        return primary

    # --- Search ------------------------------------------------------------

    def _run(self, context: CombatContext, name: str, policy: _Policy) -> CombatOptimizationResult:
        memo: dict[tuple[int, ResourceState], tuple[float, tuple[tuple[tuple[_Step, ...], ResourceState], ...]]] = {}

        def best(round_number: int, state: ResourceState):
            if round_number > ROUNDS_PER_COMBAT:
                return 0.0, ()
            key = (round_number, state)
            if key in memo:
                return memo[key]
            best_value = float("-inf")
            best_plan: tuple = ()
            for steps, next_state in self._expand_turn(context, state, policy):
                value = sum(policy.score(s) for s in steps)
                rest_value, rest_plan = best(round_number + 1, next_state)
                if value + rest_value > best_value + 1e-9:
                    best_value = value + rest_value
                    best_plan = ((steps, next_state),) + rest_plan
            memo[key] = (best_value, best_plan)
            return memo[key]

        _, plan = best(1, context.initial_resources)
        logger.debug("Strategy %s explored %d states", name, len(memo))
        return _to_result(context, name, plan)

    def _expand_turn(
        self, context: CombatContext, state: ResourceState, policy: _Policy
    ) -> list[tuple[tuple[_Step, ...], ResourceState]]:
        out: list[tuple[tuple[_Step, ...], ResourceState]] = []
        bonus_actions: list[CombatAction | None] = [None]
        bonus_actions.extend(a for a in context.menu if a.timing == "bonus")
        surge = next((a for a in context.menu if a.kind == "action_surge"), None)

        for bonus in bonus_actions:
            steps: list[_Step] = []
            turn = _Turn()
            current = state
            if bonus is not None:
                applied = self._apply(context, current, bonus, turn, policy)
                if applied is None:
                    continue
                step, current, turn = applied
                steps.append(step)

            surge_options = [False]
            if surge is not None:
                surge_options.append(True)
            for use_surge in surge_options:
                turn_steps = list(steps)
                turn_state, turn_flags = current, turn
                actions = 1
                if use_surge:
                    applied = self._apply(context, turn_state, surge, turn_flags, policy)
                    if applied is None:
                        continue
                    step, turn_state, turn_flags = applied
                    turn_steps.append(step)
                    actions = 2
                self._expand_actions(context, turn_state, turn_steps, turn_flags, actions, policy, out)
        return out

    def _expand_actions(
        self,
        context: CombatContext,
        state: ResourceState,
        steps: list[_Step],
        turn: _Turn,
        remaining: int,
        policy: _Policy,
        out: list[tuple[tuple[_Step, ...], ResourceState]],
    ) -> None:
        if remaining > 0:
            expanded = False
            for action in context.menu:
                if action.timing != "action":
                    continue
                applied = self._apply(context, state, action, turn, policy)
                if applied is None:
                    continue
                step, next_state, next_turn = applied
                expanded = True
                self._expand_actions(
                    context, next_state, steps + [step], next_turn, remaining - 1, policy, out
                )
            if expanded:
                return

        final = list(steps)
        reaction = next((a for a in context.menu if a.kind == "reaction"), None)
        if reaction is not None:
            final.append(_Step(action=reaction, damage=context.reaction_damage(state.active_effects)))
        out.append((tuple(final), state))

    def _apply(
        self,
        context: CombatContext,
        state: ResourceState,
        action: CombatAction,
        turn: _Turn,
        policy: _Policy,
    ) -> tuple[_Step, ResourceState, _Turn] | None:
        """Resolve *action* against *state*; None when it isn't legal."""
        if action.kind == "attack":
            damage = context.attack_damage(state.active_effects, first_in_turn=not turn.attacked)
            return _Step(action=action, damage=damage), state, dataclasses.replace(turn, attacked=True)

        if action.kind == "action_surge":
            if turn.surged or state.action_surges <= 0 or not policy.allow_resources:
                return None
            next_state = dataclasses.replace(state, action_surges=state.action_surges - 1)
            step = _Step(action=action, cost=2.0, resources=("action_surge",))
            return step, next_state, dataclasses.replace(turn, surged=True)

        # Casting: buffs and spells.
        if not policy.allow_resources and (action.spell_level > 0 or action.resource):
            return None
        if action.timing == "action" and action.spell_level > 0 and turn.leveled_bonus_spell:
            return None

        next_state = state
        resources: tuple[str, ...] = ()
        cost = 0.0
        if action.resource == "rage":
            if state.rage <= 0:
                return None
            next_state = dataclasses.replace(next_state, rage=state.rage - 1)
            resources, cost = ("rage",), 1.0
        elif action.spell_level > 0:
            slot = state.slot_for(action.spell_level)
            if slot is None:
                return None
            next_state = next_state.spend_slot(slot)
            resources, cost = (f"spell_slot_{slot}",), float(slot)

        effect_id = action.buff_id or action.spell_id
        if action.kind == "buff" and effect_id in state.active_effects:
            return None
        if action.concentration and state.concentration == effect_id:
            return None

        damage = healing = control = 0.0
        debuff = None
        if action.kind == "spell":
            spell = context.spells[action.spell_id]
            damage, healing, control = context.spell_outcome(spell)
            debuff = spell.control_effect

        if action.concentration:
            next_state = dataclasses.replace(next_state, concentration=effect_id)
        elif action.kind == "buff":
            next_state = dataclasses.replace(next_state, effects=next_state.effects | {effect_id})

        next_turn = turn
        if action.timing == "bonus" and action.spell_level > 0:
            next_turn = dataclasses.replace(turn, leveled_bonus_spell=True)
        step = _Step(
            action=action,
            damage=damage,
            healing=healing,
            control=control,
            cost=cost,
            resources=resources,
            debuff=debuff,
        )
        return step, next_state, next_turn


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _policy(config: CombatOptimizationConfig, penalty: float, allow_resources: bool) -> _Policy:
    return _Policy(
        penalty=penalty,
        allow_resources=allow_resources,
        control_weight=CONTROL_WEIGHT if config.prioritize_control else 0.0,
        survivability_weight=SURVIVABILITY_WEIGHT if config.prioritize_survivability else 0.0,
    )


def _zero_result(build_id: str) -> CombatOptimizationResult:
    return CombatOptimizationResult(
        build_id=build_id,
        strategy_name="No legal actions",
        total_damage=0.0,
        rounds=[RoundPlan(round_number=r) for r in range(1, ROUNDS_PER_COMBAT + 1)],
    )


def _to_result(
    context: CombatContext,
    name: str,
    plan: tuple[tuple[tuple[_Step, ...], ResourceState], ...],
) -> CombatOptimizationResult:
    rounds: list[RoundPlan] = []
    previous = context.initial_resources
    resource_value = 0.0
    for idx, (steps, state_after) in enumerate(plan, start=1):
        round_plan = RoundPlan(round_number=idx)
        for step in steps:
            round_plan.actions.append(
                PlannedAction(
                    action_id=step.action.id,
                    name=step.action.name,
                    timing=step.action.timing,
                    expected_damage=step.damage,
                    expected_healing=step.healing,
                    resources_consumed=list(step.resources),
                    concentration=step.action.concentration,
                )
            )
            round_plan.expected_damage += step.damage
            round_plan.expected_healing += step.healing
            round_plan.resources_used.extend(step.resources)
            resource_value += step.cost
            if step.action.kind == "buff" and step.action.buff_id:
                round_plan.buffs_applied.append(step.action.buff_id)
            if step.debuff:
                round_plan.debuffs_applied.append(step.debuff)
        round_plan.concentration_spell = state_after.concentration
        round_plan.concentration_changed = state_after.concentration != previous.concentration
        previous = state_after
        rounds.append(round_plan)

    while len(rounds) < ROUNDS_PER_COMBAT:
        rounds.append(RoundPlan(round_number=len(rounds) + 1))

    total = sum(r.expected_damage for r in rounds)
    return CombatOptimizationResult(
        build_id=context.build.id,
        strategy_name=name,
        total_damage=total,
        rounds=rounds,
        resource_value=resource_value,
        resource_efficiency=total / max(resource_value, 1.0),
        total_healing=sum(r.expected_healing for r in rounds),
    )
