"""Beam-search level path optimizer.

Each depth adds one character level. A partial path is extended by
continuing one of its classes or by multiclassing into an allowed class
(respecting max classes, forbidden combos, and ability prerequisites).
Paths are pruned when a required milestone can no longer be reached by
its deadline, then collapsed so only the best path per class breakdown
survives, then cut to the beam width.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dpr_planner.engine.calculations import calculate_at_ac
from dpr_planner.engine.errors import OptimizationError
from dpr_planner.engine.simulator import attack_ability, build_to_combat_state
from dpr_planner.models.build import BuildConfiguration, Equipment, LevelEntry
from dpr_planner.models.constants import MARTIAL_CLASSES
from dpr_planner.optimizer.milestones import Milestone, get_milestone
from dpr_planner.optimizer.specs import PathOptimizationConfig
from dpr_planner.rules.catalog import RulesCatalog, default_catalog
from dpr_planner.rules.definitions import Weapon

logger = logging.getLogger(__name__)


ABILITY_SCORE_CAP = 20

# (max level, weight) used by the tier_average objective.
_TIER_WEIGHTS: tuple[tuple[int, float], ...] = ((4, 0.5), (10, 1.0), (16, 1.0), (20, 0.75))


@dataclass(slots=True)
class MilestoneResult:
    milestone_id: str
    name: str
    achieved: bool
    level_achieved: int | None
    deadline_level: int


@dataclass(slots=True)
class LevelPath:
    id: str
    name: str
    levels: list[LevelEntry]
    class_breakdown: dict[str, int]
    final_dpr: float
    average_dpr: float
    milestones: list[MilestoneResult] = field(default_factory=list)
    dpr_progression: list[float] = field(default_factory=list)
    score: float = 0.0
    ability_scores: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class _PartialPath:
    entries: list[LevelEntry]
    class_levels: dict[str, int]
    ability_scores: dict[str, int]
    milestone_levels: dict[str, int]
    dpr_progression: list[float]
    score: float = 0.0

    @property
    def breakdown_key(self) -> tuple[tuple[str, int], ...]:
        return tuple(sorted(self.class_levels.items()))


def generate_path_name(class_breakdown: dict[str, int], catalog: RulesCatalog) -> str:
    """'Pure Fighter' or 'Fighter 11 / Rogue 9' (most levels first)."""

    def label(class_id: str) -> str:
        cls = catalog.get_class(class_id)
        return cls.name if cls else class_id.title()

    parts = sorted(class_breakdown.items(), key=lambda kv: (-kv[1], kv[0]))
    if len(parts) == 1:
        return f"Pure {label(parts[0][0])}"
    return " / ".join(f"{label(cid)} {lv}" for cid, lv in parts)


def score_progression(
    progression: list[float],
    objective: str,
    custom_weights: dict[int, float] | None = None,
) -> float:
    if not progression:
        return 0.0
    if objective == "l20_dpr":
        return progression[-1]
    if objective == "custom":
        weights = custom_weights or {}
        return sum(weights.get(lv, 0.0) * dpr for lv, dpr in enumerate(progression, start=1))
    total = weight_sum = 0.0
    for lv, dpr in enumerate(progression, start=1):
        weight = next(w for max_lv, w in _TIER_WEIGHTS if lv <= max_lv)
        total += weight * dpr
        weight_sum += weight
    return total / weight_sum


class PathOptimizer:
    """Searches class orderings for the best DPR progression."""

    __slots__ = ("_catalog",)

    def __init__(self, catalog: RulesCatalog | None = None) -> None:
        self._catalog = catalog or default_catalog()

    def optimize(self, config: PathOptimizationConfig) -> list[LevelPath]:
        weapon = self._catalog.get_weapon(config.weapon_id)
        if weapon is None:
            raise OptimizationError(f"Unknown weapon: {config.weapon_id!r}")
        allowed = list(config.constraints.allowed_classes) or self._catalog.class_ids()
        for class_id in allowed:
            if self._catalog.get_class(class_id) is None:
                raise OptimizationError(f"Unknown class in constraints: {class_id!r}")
        milestones = [get_milestone(mid) for mid in config.constraints.must_hit_milestones]
        enforced = [m for m in milestones if m.deadline_level <= config.max_level]

        beam = [
            _PartialPath(
                entries=[],
                class_levels={},
                ability_scores=dict(config.base_ability_scores),
                milestone_levels={},
                dpr_progression=[],
            )
        ]
        for depth in range(1, config.max_level + 1):
            candidates: dict[tuple[tuple[str, int], ...], _PartialPath] = {}
            for path in beam:
                for class_id in allowed:
                    if not self._can_take(path, class_id, config):
                        continue
                    child = self._extend(path, class_id, depth, config, weapon, milestones)
                    if not all(self._can_still_reach(m, child, depth, config, allowed) for m in enforced):
                        continue
                    key = child.breakdown_key
                    best = candidates.get(key)
                    if best is None or _rank(child) < _rank(best):
                        candidates[key] = child
            if not candidates:
                raise OptimizationError(
                    f"No level path satisfies the constraints at level {depth}"
                )
            beam = sorted(candidates.values(), key=_rank)[: config.beam_width]
            logger.debug(
                "Depth %d: %d candidates, best %.2f", depth, len(candidates), beam[0].score
            )

        results = [
            self._finish(path, idx, milestones)
            for idx, path in enumerate(beam[: config.max_paths], start=1)
        ]
        logger.info(
            "Path search (%s, beam %d) produced %d paths; best %s at %.2f DPR",
            config.objective, config.beam_width, len(results), results[0].name, results[0].final_dpr,
        )
        return results

    # --- Expansion ---------------------------------------------------------

    def _can_take(self, path: _PartialPath, class_id: str, config: PathOptimizationConfig) -> bool:
        if class_id in path.class_levels:
            return True
        if len(path.class_levels) >= config.constraints.max_classes:
            return False
        combined = set(path.class_levels) | {class_id}
        for combo in config.constraints.forbidden_combos:
            if set(combo) <= combined:
                return False
        if not path.class_levels:
            return True
        # Multiclassing needs the new class's and every current class's prerequisites.
        for cid in combined:
            cls = self._catalog.get_class(cid)
            if cls is None or not cls.meets_multiclass_requirements(path.ability_scores):
                return False
        return True

    def _extend(
        self,
        path: _PartialPath,
        class_id: str,
        depth: int,
        config: PathOptimizationConfig,
        weapon: Weapon,
        milestones: list[Milestone],
    ) -> _PartialPath:
        cls = self._catalog.get_class(class_id)
        class_levels = dict(path.class_levels)
        class_levels[class_id] = class_levels.get(class_id, 0) + 1
        class_level = class_levels[class_id]
        scores = dict(path.ability_scores)
        owned_feats = {e.feat_id for e in path.entries if e.feat_id}
        owned_styles = {e.fighting_style for e in path.entries if e.fighting_style}

        entry = LevelEntry(level=depth, class_id=class_id)
        features = cls.features_at(class_level)
        if "fighting_style" in features:
            style = _fighting_style_for(weapon)
            if style not in owned_styles:
                entry.fighting_style = style
        if "asi" in features:
            feat = _power_feat_for(weapon)
            if class_id in MARTIAL_CLASSES and feat and feat not in owned_feats:
                entry.feat_id, entry.asi_or_feat = feat, "feat"
            else:
                entry.asi_or_feat = "asi"
                _apply_asi(scores, weapon)
        if depth == 1 and config.race == "variant_human":
            feat = _power_feat_for(weapon)
            if feat and entry.feat_id is None:
                entry.feat_id = feat

        child = _PartialPath(
            entries=path.entries + [entry],
            class_levels=class_levels,
            ability_scores=scores,
            milestone_levels=dict(path.milestone_levels),
            dpr_progression=list(path.dpr_progression),
        )
        for milestone in milestones:
            if milestone.id not in child.milestone_levels and milestone.is_met(class_levels, self._catalog):
                child.milestone_levels[milestone.id] = depth

        child.dpr_progression.append(self._dpr_at(child, depth, config, weapon))
        child.score = score_progression(
            child.dpr_progression, config.objective, config.custom_level_weights
        )
        return child

    def _can_still_reach(
        self,
        milestone: Milestone,
        path: _PartialPath,
        depth: int,
        config: PathOptimizationConfig,
        allowed: list[str],
    ) -> bool:
        if milestone.id in path.milestone_levels:
            return True
        remaining = milestone.deadline_level - depth
        for class_id in allowed:
            if not self._can_take(path, class_id, config):
                continue
            levels = dict(path.class_levels)
            for _ in range(remaining):
                levels[class_id] = levels.get(class_id, 0) + 1
                if milestone.is_met(levels, self._catalog):
                    return True
        return False

    def _dpr_at(
        self,
        path: _PartialPath,
        level: int,
        config: PathOptimizationConfig,
        weapon: Weapon,
    ) -> float:
        build = _path_build(path, weapon)
        state = build_to_combat_state(build, self._catalog, level=level, include_round0=False)
        return calculate_at_ac(state, config.target_ac, "normal").dpr

    def _finish(self, path: _PartialPath, index: int, milestones: list[Milestone]) -> LevelPath:
        progression = list(path.dpr_progression)
        return LevelPath(
            id=f"path-{index}",
            name=generate_path_name(path.class_levels, self._catalog),
            levels=list(path.entries),
            class_breakdown=dict(path.class_levels),
            final_dpr=progression[-1] if progression else 0.0,
            average_dpr=sum(progression) / len(progression) if progression else 0.0,
            milestones=[
                MilestoneResult(
                    milestone_id=m.id,
                    name=m.name,
                    achieved=m.id in path.milestone_levels
                    and path.milestone_levels[m.id] <= m.deadline_level,
                    level_achieved=path.milestone_levels.get(m.id),
                    deadline_level=m.deadline_level,
                )
                for m in milestones
            ],
            dpr_progression=progression,
            score=path.score,
            ability_scores=dict(path.ability_scores),
        )


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------


def _rank(path: _PartialPath) -> tuple[float, float, tuple[str, ...]]:
    current = path.dpr_progression[-1] if path.dpr_progression else 0.0
    return (-path.score, -current, tuple(e.class_id for e in path.entries))


def _power_feat_for(weapon: Weapon) -> str | None:
    if weapon.has("ammunition"):
        return "sharpshooter"
    if weapon.category == "melee" and weapon.has("heavy"):
        return "great_weapon_master"
    return None


def _fighting_style_for(weapon: Weapon) -> str:
    if weapon.category == "ranged":
        return "archery"
    if weapon.has("two-handed"):
        return "great_weapon_fighting"
    return "dueling"


def _apply_asi(scores: dict[str, int], weapon: Weapon) -> None:
    ability = attack_ability(BuildConfiguration(id="asi"), weapon, scores)
    if scores.get(ability, 10) < ABILITY_SCORE_CAP:
        scores[ability] = min(ABILITY_SCORE_CAP, scores.get(ability, 10) + 2)
    else:
        scores["CON"] = min(ABILITY_SCORE_CAP, scores.get("CON", 10) + 2)


def _path_build(path: _PartialPath, weapon: Weapon) -> BuildConfiguration:
    equipment = Equipment(ranged=weapon.id) if weapon.category == "ranged" else Equipment(main_hand=weapon.id)
    return BuildConfiguration(
        id="path-candidate",
        name=" > ".join(e.class_id for e in path.entries),
        ability_scores=dict(path.ability_scores),
        level_timeline=list(path.entries),
        equipment=equipment,
    )
