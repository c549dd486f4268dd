"""Automatic buff selection by a static priority table.

Only buffs the build can actually put up are considered: spells it knows
(or gets from a feat) with a slot to pay for them, plus class resources
such as Rage. At most one concentration buff is picked, and no more than
MAX_AUTO_BUFFS overall. Bonus-action buffs that may start before combat
go to round 0; everything else is applied as an active buff.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dpr_planner.engine.spell_slots import spell_slots
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.rules.catalog import RulesCatalog, default_catalog
from dpr_planner.rules.definitions import Buff

logger = logging.getLogger(__name__)


# Higher is picked first. Unlisted buffs get DEFAULT_BUFF_PRIORITY.
BUFF_PRIORITIES: dict[str, int] = {
    "haste": 100,
    "holy_weapon": 95,
    "hunters_mark": 90,
    "hex": 89,
    "divine_favor": 85,
    "barbarian_rage": 84,
    "elemental_weapon": 80,
    "magic_weapon": 75,
    "bless": 70,
    "faerie_fire": 65,
}
DEFAULT_BUFF_PRIORITY = 50
MAX_AUTO_BUFFS = 3

# Spells assumed known when a build lists none: (class, min class level, spell).
_ASSUMED_SPELLS = (
    ("ranger", 2, "hunters_mark"),
    ("warlock", 1, "hex"),
    ("paladin", 2, "bless"),
    ("cleric", 1, "bless"),
)


@dataclass(slots=True)
class BuffSelection:
    active_buffs: list[str] = field(default_factory=list)
    round0_buffs: list[str] = field(default_factory=list)

    @property
    def all_buffs(self) -> list[str]:
        return self.active_buffs + self.round0_buffs

    def apply_to(self, build: BuildConfiguration) -> BuildConfiguration:
        """Copy of *build* with its buffs replaced by this selection."""
        clone = build.copy()
        clone.active_buffs = set(self.active_buffs)
        clone.round0_buffs = set(self.round0_buffs)
        return clone


def castable_buffs(
    build: BuildConfiguration,
    catalog: RulesCatalog,
    candidates: set[str] | None = None,
) -> dict[str, Buff]:
    """Buffs the build can pay for, keyed by id in sorted order.

    *candidates* defaults to the build's known spells, its active buffs and
    feat-granted spells; Rage joins when the build has rage uses.
    """
    class_levels = build.class_levels()
    slots = spell_slots(class_levels, catalog)
    rage = 0
    for class_id, class_level in class_levels.items():
        cls = catalog.get_class(class_id)
        if cls is not None:
            rage += cls.resource_uses("rage", class_level)

    if candidates is None:
        candidates = set(build.spells) | set(build.active_buffs)
    candidates = set(candidates)
    for feat_id in build.feats():
        feat = catalog.get_feat(feat_id)
        if feat:
            candidates.update(feat.grants_spells)
    if rage:
        candidates.add("barbarian_rage")

    out: dict[str, Buff] = {}
    for buff_id in sorted(candidates):
        buff = catalog.get_buff(buff_id)
        if buff is None:
            continue
        if buff.requires_class and class_levels.get(buff.requires_class, 0) == 0:
            continue
        if buff.resource == "rage":
            if rage:
                out[buff_id] = buff
        elif buff.spell_level is not None and any(
            count > 0 for slot, count in slots.items() if slot >= max(buff.spell_level, 1)
        ):
            out[buff_id] = buff
    return out


def _known_spells(build: BuildConfiguration) -> set[str]:
    if build.spells:
        return set(build.spells)
    assumed = set()
    class_levels = build.class_levels()
    for class_id, min_level, spell_id in _ASSUMED_SPELLS:
        if class_levels.get(class_id, 0) >= min_level:
            logger.info("No spell list on build %s; assuming %s has %s", build.id, class_id, spell_id)
            assumed.add(spell_id)
    return assumed


def select_optimal_buffs(
    build: BuildConfiguration,
    catalog: RulesCatalog | None = None,
    *,
    respect_concentration: bool = True,
) -> BuffSelection:
    catalog = catalog or default_catalog()
    available = castable_buffs(build, catalog, _known_spells(build))
    ranked = sorted(
        available.values(),
        key=lambda b: (-BUFF_PRIORITIES.get(b.id, DEFAULT_BUFF_PRIORITY), b.id),
    )

    selection = BuffSelection()
    has_concentration = False
    for buff in ranked:
        if respect_concentration and buff.concentration and has_concentration:
            continue
        if buff.allowed_round0 and buff.action_cost != "action":
            selection.round0_buffs.append(buff.id)
        else:
            selection.active_buffs.append(buff.id)
        has_concentration = has_concentration or buff.concentration
        if len(selection.all_buffs) >= MAX_AUTO_BUFFS:
            break

    logger.debug("Auto-selected buffs for %s: %s", build.id, selection.all_buffs)
    return selection


def explain_buff_selection(selection: BuffSelection, catalog: RulesCatalog | None = None) -> str:
    """One short reason per selected buff, comma separated."""
    catalog = catalog or default_catalog()
    reasons = []
    for buff_id in selection.all_buffs:
        buff = catalog.get_buff(buff_id)
        if buff is None:
            continue
        if buff.additional_attacks:
            plural = "s" if buff.additional_attacks > 1 else ""
            effect = f"+{buff.additional_attacks} attack{plural}"
        elif buff.on_hit_dice:
            dice = buff.on_hit_dice[0]
            effect = f"+{dice.count}d{dice.die} damage per hit"
        elif buff.attack_bonus:
            effect = f"+{buff.attack_bonus:g} to attack rolls"
        elif buff.damage_bonus:
            effect = f"+{buff.damage_bonus:g} to damage"
        elif buff.advantage:
            effect = "advantage on attacks"
        elif buff.strength_melee_only:
            effect = "bonus damage on Strength melee attacks"
        else:
            effect = "no direct damage effect"
        if buff.concentration:
            effect += " (concentration)"
        reasons.append(f"{buff.name}: {effect}")
    return ", ".join(reasons)
