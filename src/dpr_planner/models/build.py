"""Character build data model.

A BuildConfiguration is the caller-owned description of one character
variant: level timeline, equipment, active buffs, and known spells. It is
the input to every DPR calculation and optimizer. Helpers that "toggle" an
option always return a new build; nothing here mutates in place except the
plain dataclass fields themselves.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from dpr_planner.models.constants import ABILITY_NAMES, DEFAULT_ABILITY_SCORES


@dataclass(slots=True)
class LevelEntry:
    """One character level: which class was taken and what was chosen."""

    level: int
    class_id: str
    subclass_id: str | None = None
    feat_id: str | None = None
    fighting_style: str | None = None
    asi_or_feat: str | None = None  # "asi" | "feat" | None


@dataclass(slots=True)
class Equipment:
    """Worn and wielded gear. Weapon fields hold catalog weapon ids."""

    main_hand: str | None = None
    off_hand: str | None = None
    ranged: str | None = None
    armor: str | None = None
    shield: bool = False
    magic_items: list[str] = field(default_factory=list)
    attuned_items: list[str] = field(default_factory=list)
    weapon_enhancement_bonus: int = 0

    @property
    def primary_weapon(self) -> str | None:
        """Weapon used for DPR: ranged takes precedence over main hand."""
        return self.ranged or self.main_hand


@dataclass(slots=True)
class BuildConfiguration:
    """A complete character variant."""

    id: str
    name: str = "Untitled Build"
    race: str = "human"
    ability_scores: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ABILITY_SCORES))
    level_timeline: list[LevelEntry] = field(default_factory=list)
    equipment: Equipment = field(default_factory=Equipment)

    # Buff ids; order is irrelevant.
    active_buffs: set[str] = field(default_factory=set)
    round0_buffs: set[str] = field(default_factory=set)

    # Spell ids the character knows or has prepared.
    spells: set[str] = field(default_factory=set)

    # Free-form extension bag.
    metadata: dict[str, Any] = field(default_factory=dict)

    # --- Derived views -----------------------------------------------------

    @property
    def current_level(self) -> int:
        if not self.level_timeline:
            return 1
        return max(entry.level for entry in self.level_timeline)

    def entries(self, up_to: int | None = None) -> list[LevelEntry]:
        """Timeline entries sorted by level, optionally capped at *up_to*."""
        ordered = sorted(self.level_timeline, key=lambda e: e.level)
        if up_to is None:
            return ordered
        return [entry for entry in ordered if entry.level <= up_to]

    def class_levels(self, up_to: int | None = None) -> dict[str, int]:
        """Levels per class, counting only entries at or below *up_to*."""
        out: dict[str, int] = {}
        for entry in self.entries(up_to):
            out[entry.class_id] = out.get(entry.class_id, 0) + 1
        return out

    def feats(self, up_to: int | None = None) -> list[str]:
        return [entry.feat_id for entry in self.entries(up_to) if entry.feat_id]

    def fighting_styles(self, up_to: int | None = None) -> list[str]:
        return [entry.fighting_style for entry in self.entries(up_to) if entry.fighting_style]

    def ability_score(self, ability: str) -> int:
        return int(self.ability_scores.get(ability, 10))

    # --- Single-dimension variants -----------------------------------------

    def copy(self) -> BuildConfiguration:
        """Deep copy, safe to hand to another thread or mutate."""
        return copy.deepcopy(self)

    def with_buff(self, buff_id: str, active: bool = True) -> BuildConfiguration:
        clone = self.copy()
        if active:
            clone.active_buffs.add(buff_id)
        else:
            clone.active_buffs.discard(buff_id)
        return clone

    def toggled_buff(self, buff_id: str) -> BuildConfiguration:
        return self.with_buff(buff_id, buff_id not in self.active_buffs)

    def with_feat(self, level: int, feat_id: str | None) -> BuildConfiguration:
        """Return a copy with the feat at *level* replaced (None removes it)."""
        clone = self.copy()
        for entry in clone.level_timeline:
            if entry.level == level:
                entry.feat_id = feat_id
                entry.asi_or_feat = "feat" if feat_id else None
                return clone
        raise ValueError(f"Build {self.id!r} has no level {level} in its timeline")


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _str_set(raw: Any, field_name: str) -> set[str]:
    if raw is None:
        return set()
    if not isinstance(raw, (list, tuple, set)):
        raise ValueError(f"{field_name} must be a list of ids")
    return {str(v) for v in raw}


def build_from_dict(data: dict[str, Any]) -> BuildConfiguration:
    """Parse the JSON shape produced by build_to_dict()."""
    if not isinstance(data, dict):
        raise ValueError("Build payload must be an object")
    if "id" not in data:
        raise ValueError("Build payload requires an 'id'")

    scores = dict(DEFAULT_ABILITY_SCORES)
    for key, value in (data.get("ability_scores") or {}).items():
        ability = str(key).upper()
        if ability not in ABILITY_NAMES:
            raise ValueError(f"Unknown ability: {key!r}")
        scores[ability] = int(value)

    timeline: list[LevelEntry] = []
    for raw in data.get("level_timeline", []):
        if not isinstance(raw, dict):
            raise ValueError("Each level_timeline entry must be an object")
        timeline.append(
            LevelEntry(
                level=int(raw["level"]),
                class_id=str(raw["class_id"]),
                subclass_id=raw.get("subclass_id"),
                feat_id=raw.get("feat_id"),
                fighting_style=raw.get("fighting_style"),
                asi_or_feat=raw.get("asi_or_feat"),
            )
        )
    levels = [entry.level for entry in timeline]
    if len(levels) != len(set(levels)):
        raise ValueError("level_timeline contains duplicate levels")

    eq_raw = data.get("equipment") or {}
    equipment = Equipment(
        main_hand=eq_raw.get("main_hand"),
        off_hand=eq_raw.get("off_hand"),
        ranged=eq_raw.get("ranged"),
        armor=eq_raw.get("armor"),
        shield=bool(eq_raw.get("shield", False)),
        magic_items=[str(v) for v in eq_raw.get("magic_items", [])],
        attuned_items=[str(v) for v in eq_raw.get("attuned_items", [])],
        weapon_enhancement_bonus=int(eq_raw.get("weapon_enhancement_bonus", 0)),
    )

    return BuildConfiguration(
        id=str(data["id"]),
        name=str(data.get("name", "Untitled Build")),
        race=str(data.get("race", "human")),
        ability_scores=scores,
        level_timeline=timeline,
        equipment=equipment,
        active_buffs=_str_set(data.get("active_buffs"), "active_buffs"),
        round0_buffs=_str_set(data.get("round0_buffs"), "round0_buffs"),
        spells=_str_set(data.get("spells"), "spells"),
        metadata=dict(data.get("metadata") or {}),
    )


def build_to_dict(build: BuildConfiguration) -> dict[str, Any]:
    return {
        "id": build.id,
        "name": build.name,
        "race": build.race,
        "ability_scores": dict(build.ability_scores),
        "level_timeline": [
            {
                "level": entry.level,
                "class_id": entry.class_id,
                "subclass_id": entry.subclass_id,
                "feat_id": entry.feat_id,
                "fighting_style": entry.fighting_style,
                "asi_or_feat": entry.asi_or_feat,
            }
            for entry in build.entries()
        ],
        "equipment": {
            "main_hand": build.equipment.main_hand,
            "off_hand": build.equipment.off_hand,
            "ranged": build.equipment.ranged,
            "armor": build.equipment.armor,
            "shield": build.equipment.shield,
            "magic_items": list(build.equipment.magic_items),
            "attuned_items": list(build.equipment.attuned_items),
            "weapon_enhancement_bonus": build.equipment.weapon_enhancement_bonus,
        },
        "active_buffs": sorted(build.active_buffs),
        "round0_buffs": sorted(build.round0_buffs),
        "spells": sorted(build.spells),
        "metadata": dict(build.metadata),
    }
