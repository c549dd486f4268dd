"""SRD subset: just enough rules data to drive the calculators.

Class feature keys are what the simulator and milestones look for:
  extra_attack_1..3, action_surge, rage, fighting_style, asi,
  sneak_attack, cunning_action, martial_arts
"""

from dpr_planner.rules.definitions import (
    AbilityRequirement,
    Buff,
    ClassDefinition,
    Dice,
    Feat,
    MagicItem,
    Spell,
    Weapon,
)


_ASI_STANDARD = (4, 8, 12, 16, 19)


def _features(
    extra: dict[int, tuple[str, ...]],
    asi_levels: tuple[int, ...] = _ASI_STANDARD,
) -> dict[int, tuple[str, ...]]:
    out: dict[int, tuple[str, ...]] = {lv: tuple(keys) for lv, keys in extra.items()}
    for lv in asi_levels:
        out[lv] = out.get(lv, ()) + ("asi",)
    return out


def _req(*clauses: tuple[tuple[str, int], ...]) -> tuple[tuple[AbilityRequirement, ...], ...]:
    return tuple(
        tuple(AbilityRequirement(ability, minimum) for ability, minimum in clause)
        for clause in clauses
    )


CLASSES: dict[str, ClassDefinition] = {
    "fighter": ClassDefinition(
        id="fighter",
        name="Fighter",
        hit_die=10,
        multiclass_requirements=_req((("STR", 13), ("DEX", 13))),
        features=_features(
            {
                1: ("fighting_style", "second_wind"),
                2: ("action_surge",),
                5: ("extra_attack_1",),
                11: ("extra_attack_2",),
                20: ("extra_attack_3",),
            },
            asi_levels=(4, 6, 8, 12, 14, 16, 19),
        ),
        resources={"action_surge": ((2, 1), (17, 2))},
    ),
    "barbarian": ClassDefinition(
        id="barbarian",
        name="Barbarian",
        hit_die=12,
        multiclass_requirements=_req((("STR", 13),)),
        features=_features({1: ("rage",), 2: ("reckless_attack",), 5: ("extra_attack_1",)}),
        resources={"rage": ((1, 2), (3, 3), (6, 4), (12, 5), (17, 6), (20, 99))},
    ),
    "paladin": ClassDefinition(
        id="paladin",
        name="Paladin",
        hit_die=10,
        caster_type="half",
        spellcasting_ability="CHA",
        multiclass_requirements=_req((("STR", 13),), (("CHA", 13),)),
        features=_features({2: ("fighting_style", "divine_smite"), 5: ("extra_attack_1",)}),
    ),
    "ranger": ClassDefinition(
        id="ranger",
        name="Ranger",
        hit_die=10,
        caster_type="half",
        spellcasting_ability="WIS",
        multiclass_requirements=_req((("DEX", 13),), (("WIS", 13),)),
        features=_features({2: ("fighting_style",), 5: ("extra_attack_1",)}),
    ),
    "monk": ClassDefinition(
        id="monk",
        name="Monk",
        hit_die=8,
        multiclass_requirements=_req((("DEX", 13),), (("WIS", 13),)),
        features=_features({1: ("martial_arts",), 5: ("extra_attack_1",)}),
    ),
    "rogue": ClassDefinition(
        id="rogue",
        name="Rogue",
        hit_die=8,
        multiclass_requirements=_req((("DEX", 13),)),
        features=_features(
            {1: ("sneak_attack", "expertise"), 2: ("cunning_action",)},
            asi_levels=(4, 8, 10, 12, 16, 19),
        ),
    ),
    "cleric": ClassDefinition(
        id="cleric",
        name="Cleric",
        hit_die=8,
        caster_type="full",
        spellcasting_ability="WIS",
        multiclass_requirements=_req((("WIS", 13),)),
        features=_features({1: ("spellcasting",)}),
    ),
    "druid": ClassDefinition(
        id="druid",
        name="Druid",
        hit_die=8,
        caster_type="full",
        spellcasting_ability="WIS",
        multiclass_requirements=_req((("WIS", 13),)),
        features=_features({1: ("spellcasting",)}),
    ),
    "wizard": ClassDefinition(
        id="wizard",
        name="Wizard",
        hit_die=6,
        caster_type="full",
        spellcasting_ability="INT",
        multiclass_requirements=_req((("INT", 13),)),
        features=_features({1: ("spellcasting",)}),
    ),
    "sorcerer": ClassDefinition(
        id="sorcerer",
        name="Sorcerer",
        hit_die=6,
        caster_type="full",
        spellcasting_ability="CHA",
        multiclass_requirements=_req((("CHA", 13),)),
        features=_features({1: ("spellcasting",), 3: ("metamagic",)}),
    ),
    "bard": ClassDefinition(
        id="bard",
        name="Bard",
        hit_die=8,
        caster_type="full",
        spellcasting_ability="CHA",
        multiclass_requirements=_req((("CHA", 13),)),
        features=_features({1: ("spellcasting", "bardic_inspiration")}),
    ),
    "warlock": ClassDefinition(
        id="warlock",
        name="Warlock",
        hit_die=8,
        caster_type="pact",
        spellcasting_ability="CHA",
        multiclass_requirements=_req((("CHA", 13),)),
        features=_features({1: ("pact_magic",), 2: ("eldritch_invocations",)}),
    ),
}


FEATS: dict[str, Feat] = {
    "great_weapon_master": Feat(
        id="great_weapon_master",
        name="Great Weapon Master",
        description="-5 to hit / +10 damage with heavy melee weapons.",
        power_attack_property="heavy",
    ),
    "sharpshooter": Feat(
        id="sharpshooter",
        name="Sharpshooter",
        description="-5 to hit / +10 damage with ranged weapons.",
        power_attack_property="ammunition",
    ),
    "crossbow_expert": Feat(id="crossbow_expert", name="Crossbow Expert"),
    "polearm_master": Feat(id="polearm_master", name="Polearm Master"),
    "fey_touched": Feat(id="fey_touched", name="Fey Touched", grants_spells=("bless", "hex")),
}


BUFFS: dict[str, Buff] = {
    "bless": Buff(
        id="bless", name="Bless", concentration=True, action_cost="action",
        allowed_round0=True, spell_level=1, attack_bonus=2.5,
    ),
    "hunters_mark": Buff(
        id="hunters_mark", name="Hunter's Mark", concentration=True, action_cost="bonus",
        allowed_round0=True, spell_level=1, on_hit_dice=(Dice(1, 6),),
    ),
    "hex": Buff(
        id="hex", name="Hex", concentration=True, action_cost="bonus",
        allowed_round0=True, spell_level=1, on_hit_dice=(Dice(1, 6),),
    ),
    "divine_favor": Buff(
        id="divine_favor", name="Divine Favor", concentration=True, action_cost="bonus",
        allowed_round0=True, spell_level=1, on_hit_dice=(Dice(1, 4),),
    ),
    "faerie_fire": Buff(
        id="faerie_fire", name="Faerie Fire", concentration=True, action_cost="action",
        spell_level=1, advantage=True,
    ),
    "magic_weapon": Buff(
        id="magic_weapon", name="Magic Weapon", concentration=True, action_cost="bonus",
        allowed_round0=True, spell_level=2, attack_bonus=1, damage_bonus=1,
    ),
    "elemental_weapon": Buff(
        id="elemental_weapon", name="Elemental Weapon", concentration=True, action_cost="action",
        allowed_round0=True, spell_level=3, attack_bonus=1, on_hit_dice=(Dice(1, 4),),
    ),
    "haste": Buff(
        id="haste", name="Haste", concentration=True, action_cost="action",
        allowed_round0=True, spell_level=3, additional_attacks=1,
    ),
    "holy_weapon": Buff(
        id="holy_weapon", name="Holy Weapon", concentration=True, action_cost="bonus",
        allowed_round0=True, spell_level=5, on_hit_dice=(Dice(2, 8),),
    ),
    "barbarian_rage": Buff(
        id="barbarian_rage", name="Rage", action_cost="bonus", resource="rage",
        requires_class="barbarian", strength_melee_only=True,
    ),
}


def _weapon(id_: str, name: str, category: str, count: int, die: int, *props: str) -> Weapon:
    return Weapon(id=id_, name=name, category=category, damage=Dice(count, die), properties=frozenset(props))


WEAPONS: dict[str, Weapon] = {
    w.id: w
    for w in (
        _weapon("club", "Club", "melee", 1, 4, "light"),
        _weapon("dagger", "Dagger", "melee", 1, 4, "finesse", "light", "thrown"),
        _weapon("handaxe", "Handaxe", "melee", 1, 6, "light", "thrown"),
        _weapon("javelin", "Javelin", "melee", 1, 6, "thrown"),
        _weapon("quarterstaff", "Quarterstaff", "melee", 1, 6, "versatile"),
        _weapon("spear", "Spear", "melee", 1, 6, "thrown", "versatile"),
        _weapon("shortsword", "Shortsword", "melee", 1, 6, "finesse", "light"),
        _weapon("scimitar", "Scimitar", "melee", 1, 6, "finesse", "light"),
        _weapon("rapier", "Rapier", "melee", 1, 8, "finesse"),
        _weapon("longsword", "Longsword", "melee", 1, 8, "versatile"),
        _weapon("battleaxe", "Battleaxe", "melee", 1, 8, "versatile"),
        _weapon("warhammer", "Warhammer", "melee", 1, 8, "versatile"),
        _weapon("greatsword", "Greatsword", "melee", 2, 6, "heavy", "two-handed"),
        _weapon("greataxe", "Greataxe", "melee", 1, 12, "heavy", "two-handed"),
        _weapon("maul", "Maul", "melee", 2, 6, "heavy", "two-handed"),
        _weapon("glaive", "Glaive", "melee", 1, 10, "heavy", "reach", "two-handed"),
        _weapon("halberd", "Halberd", "melee", 1, 10, "heavy", "reach", "two-handed"),
        _weapon("shortbow", "Shortbow", "ranged", 1, 6, "ammunition", "two-handed"),
        _weapon("longbow", "Longbow", "ranged", 1, 8, "ammunition", "heavy", "two-handed"),
        _weapon("light_crossbow", "Light Crossbow", "ranged", 1, 8, "ammunition", "loading", "two-handed"),
        _weapon("hand_crossbow", "Hand Crossbow", "ranged", 1, 6, "ammunition", "light", "loading"),
        _weapon("heavy_crossbow", "Heavy Crossbow", "ranged", 1, 10, "ammunition", "heavy", "loading", "two-handed"),
    )
}


SPELLS: dict[str, Spell] = {
    "eldritch_blast": Spell(
        id="eldritch_blast", name="Eldritch Blast", level=0, damage=Dice(1, 10),
        attack_roll=True, multiple_beams=True,
    ),
    "fire_bolt": Spell(
        id="fire_bolt", name="Fire Bolt", level=0, damage=Dice(1, 10),
        attack_roll=True, scales_with_level=True,
    ),
    "sacred_flame": Spell(
        id="sacred_flame", name="Sacred Flame", level=0, damage=Dice(1, 8),
        save_ability="DEX", scales_with_level=True,
    ),
    "burning_hands": Spell(
        id="burning_hands", name="Burning Hands", level=1, damage=Dice(3, 6),
        save_ability="DEX", half_on_save=True, max_targets=3,
    ),
    "healing_word": Spell(
        id="healing_word", name="Healing Word", level=1, action_cost="bonus",
        healing=Dice(1, 4),
    ),
    "shatter": Spell(
        id="shatter", name="Shatter", level=2, damage=Dice(3, 8),
        save_ability="CON", half_on_save=True, max_targets=3,
    ),
    "hold_person": Spell(
        id="hold_person", name="Hold Person", level=2, save_ability="WIS",
        concentration=True, control_effect="paralyzed",
    ),
    "fireball": Spell(
        id="fireball", name="Fireball", level=3, damage=Dice(8, 6),
        save_ability="DEX", half_on_save=True, max_targets=4,
    ),
}


MAGIC_ITEMS: dict[str, MagicItem] = {
    item.id: item
    for item in (
        MagicItem(id="healing_potion", name="Potion of Healing", category="potion"),
        MagicItem(id="bag_of_holding", name="Bag of Holding", rarity="uncommon"),
        MagicItem(
            id="cloak_of_protection", name="Cloak of Protection", rarity="uncommon",
            requires_attunement=True,
        ),
        MagicItem(
            id="bracers_of_archery", name="Bracers of Archery", rarity="uncommon",
            requires_attunement=True, ranged_damage_bonus=2,
        ),
        MagicItem(
            id="gauntlets_of_ogre_power", name="Gauntlets of Ogre Power", rarity="uncommon",
            requires_attunement=True, ability_overrides={"STR": 19},
        ),
        MagicItem(
            id="flame_tongue", name="Flame Tongue", rarity="rare", category="weapon",
            requires_attunement=True, on_hit_dice=(Dice(2, 6),),
        ),
        MagicItem(
            id="belt_of_giant_strength_hill", name="Belt of Hill Giant Strength", rarity="rare",
            requires_attunement=True, ability_overrides={"STR": 21},
        ),
        MagicItem(
            id="belt_of_giant_strength_stone", name="Belt of Stone Giant Strength",
            rarity="very_rare", requires_attunement=True, ability_overrides={"STR": 23},
        ),
        MagicItem(
            id="belt_of_giant_strength_storm", name="Belt of Storm Giant Strength",
            rarity="legendary", requires_attunement=True, ability_overrides={"STR": 29},
        ),
        MagicItem(id="cloak_of_elvenkind", name="Cloak of Elvenkind", rarity="uncommon", requires_attunement=True),
    )
}
