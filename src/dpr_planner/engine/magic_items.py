"""Magic item resolution and attunement limits.

Every character can attune to 3 items; artificers raise the cap at class
levels 10/14/18. Items that need attunement only apply while attuned, and
attunements past the cap are ignored in the order they were listed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dpr_planner.models.build import BuildConfiguration
from dpr_planner.rules.catalog import RulesCatalog
from dpr_planner.rules.definitions import MagicItem

logger = logging.getLogger(__name__)


BASE_ATTUNEMENT_SLOTS = 3
# artificer level -> slots
_ARTIFICER_SLOTS = ((18, 6), (14, 5), (10, 4))


@dataclass(frozen=True, slots=True)
class AttunementStatus:
    max_slots: int
    current: int

    @property
    def available(self) -> int:
        return max(0, self.max_slots - self.current)

    @property
    def over_limit(self) -> bool:
        return self.current > self.max_slots

    @property
    def warning(self) -> str | None:
        if not self.over_limit:
            return None
        return f"Attuned to {self.current} items but can only attune to {self.max_slots}"


def max_attunement_slots(class_levels: dict[str, int]) -> int:
    artificer = class_levels.get("artificer", 0)
    for min_level, slots in _ARTIFICER_SLOTS:
        if artificer >= min_level:
            return slots
    return BASE_ATTUNEMENT_SLOTS


def attunement_status(build: BuildConfiguration, level: int | None = None) -> AttunementStatus:
    return AttunementStatus(
        max_slots=max_attunement_slots(build.class_levels(up_to=level)),
        current=len(build.equipment.attuned_items),
    )


def can_attune(build: BuildConfiguration) -> bool:
    status = attunement_status(build)
    return not status.over_limit and status.available > 0


def equipped_items(
    build: BuildConfiguration,
    catalog: RulesCatalog,
    level: int | None = None,
) -> list[MagicItem]:
    """Magic items whose effects currently apply to the build."""
    status = attunement_status(build, level)
    attuned = build.equipment.attuned_items[: status.max_slots]
    if status.over_limit:
        logger.warning("Build %s: %s; ignoring the rest", build.id, status.warning)

    out: list[MagicItem] = []
    for item_id in build.equipment.magic_items:
        item = catalog.get_magic_item(item_id)
        if item is None:
            logger.debug("Ignoring unknown magic item %r on build %s", item_id, build.id)
            continue
        if item.requires_attunement and item_id not in attuned:
            continue
        out.append(item)
    return out


def effective_ability_scores(build: BuildConfiguration, items: list[MagicItem]) -> dict[str, int]:
    scores = {ability: build.ability_score(ability) for ability in build.ability_scores}
    for item in items:
        for ability, value in item.ability_overrides.items():
            scores[ability] = max(scores.get(ability, 10), value)
    return scores
