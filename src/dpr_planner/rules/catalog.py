"""Keyed lookups over rule definitions.

Engines take a RulesCatalog explicitly so tests and homebrew packs can
swap tables without touching module state.
"""

from __future__ import annotations

from functools import lru_cache

from dpr_planner.rules import srd
from dpr_planner.rules.definitions import Buff, ClassDefinition, Feat, MagicItem, Spell, Weapon


class RulesCatalog:
    """Immutable-by-convention lookup tables over the rule definitions."""

    __slots__ = ("_classes", "_feats", "_buffs", "_weapons", "_spells", "_magic_items")

    def __init__(
        self,
        classes: dict[str, ClassDefinition] | None = None,
        feats: dict[str, Feat] | None = None,
        buffs: dict[str, Buff] | None = None,
        weapons: dict[str, Weapon] | None = None,
        spells: dict[str, Spell] | None = None,
        magic_items: dict[str, MagicItem] | None = None,
    ) -> None:
        self._classes = dict(srd.CLASSES if classes is None else classes)
        self._feats = dict(srd.FEATS if feats is None else feats)
        self._buffs = dict(srd.BUFFS if buffs is None else buffs)
        self._weapons = dict(srd.WEAPONS if weapons is None else weapons)
        self._spells = dict(srd.SPELLS if spells is None else spells)
        self._magic_items = dict(srd.MAGIC_ITEMS if magic_items is None else magic_items)

    def get_class(self, class_id: str) -> ClassDefinition | None:
        return self._classes.get(class_id)

    def get_feat(self, feat_id: str) -> Feat | None:
        return self._feats.get(feat_id)

    def get_buff(self, buff_id: str) -> Buff | None:
        return self._buffs.get(buff_id)

    def get_weapon(self, weapon_id: str) -> Weapon | None:
        return self._weapons.get(weapon_id)

    def get_spell(self, spell_id: str) -> Spell | None:
        return self._spells.get(spell_id)

    def get_magic_item(self, item_id: str) -> MagicItem | None:
        return self._magic_items.get(item_id)

    def class_ids(self) -> list[str]:
        return sorted(self._classes)

    def buff_ids(self) -> list[str]:
        return sorted(self._buffs)

    def feat_ids(self) -> list[str]:
        return sorted(self._feats)

    def magic_item_ids(self) -> list[str]:
        return sorted(self._magic_items)


@lru_cache(maxsize=1)
def default_catalog() -> RulesCatalog:
    """Shared SRD catalog."""
    return RulesCatalog()
