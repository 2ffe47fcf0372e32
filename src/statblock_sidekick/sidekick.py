"""Sidekick engine: option filtering, feature application and recomputation.

A Sidekick wraps a Statblock together with its sidekick class and level.
Class features are applied one at a time as the owning application walks
the class progression; after a level-up the ability-dependent numbers
(skills, saves, attacks, passive Perception, spellcasting) are re-derived
from the difference between the old and new ability modifiers and
proficiency bonus, so any manual adjustment on the sheet survives.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from .abilities import (
    ABILITIES,
    AbilityScores,
    ability_modifier,
    format_modifier,
    get_ability_for_skill,
    normalize_ability,
    proficiency_bonus,
)
from .attack import Attack
from .catalog import SidekickClass
from .config import SidekickConfig
from .logutils import logger
from .models import UNRESOLVED, Feature, Option, Statblock, Trait, TraitCategory


SAVE_FEATURES = {"Saving Throw Proficiency", "Sharp Mind"}
EQUIPMENT_FEATURES = {"Tool Proficiencies", "Armor Proficiency", "Shield Proficiency", "Weapon Proficiency"}

# Role trait name → (spell list, spellcasting ability)
SPELLCASTING_ROLES = {
    "Mage": ("Wizard", "Intelligence"),
    "Healer": ("Cleric and Druid", "Wisdom"),
    "Prodigy": ("Bard and Warlock", "Charisma"),
}

REPLACED_SPELL_TRAITS = {"spells", "spellcasting"}

EMPOWERED_SPELLS_TEMPLATE = (
    "Whenever the sidekick casts a spell in the {school} school by expending a spell slot, "
    "the sidekick can add its spellcasting ability modifier to the spell's damage roll "
    "or healing roll, if any."
)

_PASSIVE_PERCEPTION = re.compile(r"passive Perception (\d+)", re.IGNORECASE)


class SpellcasterLevel(NamedTuple):
    cantrips: int
    spells: int
    slots: tuple[int, int, int, int, int]  # spell levels 1-5


SPELLCASTER_TABLE: dict[int, SpellcasterLevel] = {
    1: SpellcasterLevel(2, 1, (2, 0, 0, 0, 0)),
    2: SpellcasterLevel(2, 2, (2, 0, 0, 0, 0)),
    3: SpellcasterLevel(2, 3, (3, 0, 0, 0, 0)),
    4: SpellcasterLevel(3, 3, (3, 0, 0, 0, 0)),
    5: SpellcasterLevel(3, 4, (4, 2, 0, 0, 0)),
    6: SpellcasterLevel(3, 4, (4, 2, 0, 0, 0)),
    7: SpellcasterLevel(3, 5, (4, 3, 0, 0, 0)),
    8: SpellcasterLevel(3, 5, (4, 3, 0, 0, 0)),
    9: SpellcasterLevel(3, 6, (4, 3, 2, 0, 0)),
    10: SpellcasterLevel(4, 6, (4, 3, 2, 0, 0)),
    11: SpellcasterLevel(4, 7, (4, 3, 3, 0, 0)),
    12: SpellcasterLevel(4, 7, (4, 3, 3, 0, 0)),
    13: SpellcasterLevel(4, 8, (4, 3, 3, 1, 0)),
    14: SpellcasterLevel(4, 8, (4, 3, 3, 1, 0)),
    15: SpellcasterLevel(4, 9, (4, 3, 3, 2, 0)),
    16: SpellcasterLevel(4, 9, (4, 3, 3, 2, 0)),
    17: SpellcasterLevel(4, 10, (4, 3, 3, 3, 1)),
    18: SpellcasterLevel(4, 10, (4, 3, 3, 3, 1)),
    19: SpellcasterLevel(4, 11, (4, 3, 3, 3, 2)),
    20: SpellcasterLevel(4, 11, (4, 3, 3, 3, 2)),
}


class SidekickState(NamedTuple):
    statblock: Statblock
    level: int
    expertise_skills: list[str]
    applied_features: set[tuple[int, str]]
    expertise_resolved: set[str]


def _skill_key(skill: str) -> str:
    return skill.strip().lower().replace("_", " ")


class Sidekick:
    """A sidekick statblock progressing through a sidekick class.

    ``expertise_skills`` passed at construction are assumed to be already
    reflected in the stored skill bonuses.
    """

    def __init__(
        self,
        statblock: Statblock,
        sidekick_class: SidekickClass,
        level: int = 1,
        expertise_skills: list[str] | None = None,
        config: SidekickConfig | None = None,
    ) -> None:
        self.statblock = statblock
        self.sidekick_class = sidekick_class
        self.level = level
        self.config = config or SidekickConfig()
        self.expertise_skills: list[str] = []
        for skill in expertise_skills or []:
            if skill not in self.expertise_skills:
                self.expertise_skills.append(skill)
        self.applied_features: set[tuple[int, str]] = set()
        # Skills whose stored bonus already carries the doubled proficiency bonus
        self._expertise_resolved = {_skill_key(s) for s in self.expertise_skills}

    @property
    def proficiency_bonus(self) -> int:
        return proficiency_bonus(self.level)

    @property
    def spellcasting_ability(self) -> str | None:
        """Ability named by the sidekick's spellcasting role trait, if any."""
        role = self._spellcasting_role()
        if role is None:
            return None
        return SPELLCASTING_ROLES[role.name][1].lower()

    def _spellcasting_role(self) -> Trait | None:
        for trait in self.statblock.traits or []:
            if trait.name in SPELLCASTING_ROLES:
                return trait
        return None

    # ------------------------------------------------------------------
    # Feature bookkeeping
    # ------------------------------------------------------------------

    def is_applied(self, feature: Feature) -> bool:
        return (feature.level, feature.name) in self.applied_features

    def mark_applied(self, feature: Feature) -> None:
        self.applied_features.add((feature.level, feature.name))

    def snapshot(self) -> SidekickState:
        """Capture everything a level-up can change."""
        return SidekickState(
            statblock=self.statblock.model_copy(deep=True),
            level=self.level,
            expertise_skills=list(self.expertise_skills),
            applied_features=set(self.applied_features),
            expertise_resolved=set(self._expertise_resolved),
        )

    def restore(self, state: SidekickState) -> None:
        """Return to a state taken with ``snapshot``."""
        self.statblock = state.statblock.model_copy(deep=True)
        self.level = state.level
        self.expertise_skills = list(state.expertise_skills)
        self.applied_features = set(state.applied_features)
        self._expertise_resolved = set(state.expertise_resolved)

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def check_condition(self, condition: str) -> bool:
        """Evaluate one of the feature gating conditions; unknown names are False."""
        if condition == "humanoid":
            return bool(self.statblock.type) and "humanoid" in self.statblock.type.lower()
        if condition == "simple weapon":
            return any(Attack(action).is_simple_weapon for action in self.statblock.actions or [])
        if condition == "martial weapon":
            return any(Attack(action).is_martial_weapon for action in self.statblock.actions or [])
        logger.debug(f"Unknown feature condition '{condition}'")
        return False

    def is_eligible(self, feature: Feature) -> bool:
        """A feature with conditions is granted when any one of them holds."""
        if not feature.conditions:
            return True
        return any(self.check_condition(condition) for condition in feature.conditions)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def get_options(self, feature: Feature) -> list[Option]:
        """Options of a feature the sidekick can still take.

        Never mutates the statblock or the feature.
        """
        if feature.options is None:
            return []

        if feature.name in SAVE_FEATURES:
            held = {normalize_ability(save) for save in self.statblock.saves or {}}
            return [o for o in feature.options if normalize_ability(o.name) not in held]

        if feature.name == "Skill Proficiencies":
            held = {_skill_key(skill) for skill in self.statblock.skillsaves or {}}
            return [o for o in feature.options if _skill_key(o.name) not in held]

        if feature.name == "Tool Proficiencies":
            held = set(self.statblock.equipment_proficiencies())
            return [o for o in feature.options if o.name not in held]

        if feature.name == "Expertise":
            held = {_skill_key(skill) for skill in self.expertise_skills}
            return [
                Option(name=skill)
                for skill in self.statblock.skillsaves or {}
                if _skill_key(skill) not in held
            ]

        if feature.name == "Ability Score Improvement":
            options = []
            for ability, score in zip(ABILITIES, self.statblock.stats):
                if score < self.config.ability_score_cap:
                    mod = format_modifier(ability_modifier(score))
                    options.append(Option(name=ability.capitalize(), desc=f"{score} ({mod})"))
            return options

        return list(feature.options)

    # ------------------------------------------------------------------
    # Applying features
    # ------------------------------------------------------------------

    def apply_feature(self, feature: Feature, choice: Option | None = None) -> None:
        """Apply a feature (and the chosen option, if it takes one) to the statblock."""
        name = feature.name
        logger.debug(f"Applying '{name}' to {self.statblock.name} (choice={choice.name if choice else None})")

        if name in SAVE_FEATURES:
            if choice is None:
                return
            saves = self.statblock.saves if self.statblock.saves is not None else {}
            ability = normalize_ability(choice.name)
            held = {normalize_ability(save) for save in saves}
            if ability not in held:
                saves[ability] = UNRESOLVED
            self.statblock.saves = saves

        elif name == "Skill Proficiencies":
            if choice is None:
                return
            skills = self.statblock.skillsaves if self.statblock.skillsaves is not None else {}
            if _skill_key(choice.name) not in {_skill_key(skill) for skill in skills}:
                skills[choice.name] = UNRESOLVED
            self.statblock.skillsaves = skills

        elif name in EQUIPMENT_FEATURES:
            equipment = choice.name if choice else feature.desc
            if not self.statblock.add_equipment_proficiency(equipment):
                logger.debug(f"Already proficient with {equipment}")

        elif name == "Expertise":
            if choice is None:
                return
            if _skill_key(choice.name) in {_skill_key(s) for s in self.expertise_skills}:
                logger.debug(f"{choice.name} already has expertise")
                return
            self.expertise_skills.append(choice.name)

        elif name == "Ability Score Improvement":
            if choice is None:
                return
            ability = normalize_ability(choice.name)
            score = self.statblock.abilities[ability]
            if score >= self.config.ability_score_cap:
                logger.info(f"{ability.capitalize()} is already {score}; improvement skipped")
                return
            self.statblock.set_ability(ability, score + 1)

        elif name == "Martial Role":
            if choice is None:
                return
            role = feature.model_copy(
                update={"name": choice.name, "desc": choice.desc or "", "category": choice.category}
            )
            if choice.name == "Attacker":
                self._boost_attacks(self.config.attacker_bonus)
            self.apply_standard_feature(role)

        elif name == "Spellcaster Role":
            role = feature
            if choice is not None:
                removed = self.statblock.remove_traits(REPLACED_SPELL_TRAITS)
                if removed:
                    logger.debug(f"Replaced spell traits: {[t.name for t in removed]}")
                role = feature.model_copy(update={"name": choice.name, "desc": ""})
            self.apply_standard_feature(role)

        elif name == "School of Magic for Empowered Spells":
            if choice is None:
                return
            self.apply_standard_feature(
                feature.model_copy(
                    update={
                        "name": "Empowered Spells",
                        "desc": EMPOWERED_SPELLS_TEMPLATE.format(school=choice.name),
                    }
                )
            )

        elif name == "Improved Defense":
            self.statblock.raise_armor_class(self.config.improved_defense_bonus)
            self.apply_standard_feature(feature)

        else:
            self.apply_standard_feature(feature)

    def apply_standard_feature(self, feature: Feature) -> None:
        """Upsert the feature by name into the list its category names."""
        category = TraitCategory.resolve(feature.category)
        self.statblock.upsert_trait(category, Trait(name=feature.name, desc=feature.desc))

    def _boost_attacks(self, bonus: int) -> None:
        if not self.statblock.actions:
            return
        updated = []
        for action in self.statblock.actions:
            attack = Attack(action)
            if attack.is_attack and attack.to_hit is not None:
                attack.to_hit += bonus
                action = attack.to_trait(action)
            updated.append(action)
        self.statblock.actions = updated

    # ------------------------------------------------------------------
    # Spellcasting
    # ------------------------------------------------------------------

    def apply_spellcasting(self) -> None:
        """Write the spellcasting description into the Healer/Mage/Prodigy role trait."""
        role = self._spellcasting_role()
        if role is None:
            return

        spell_list, ability_label = SPELLCASTING_ROLES[role.name]
        spell_mod = self.statblock.abilities.mod(ability_label)
        pb = self.proficiency_bonus
        spell_dc = 8 + pb + spell_mod
        spell_attack = format_modifier(pb + spell_mod)

        row = SPELLCASTER_TABLE.get(self.level)
        if row is None:
            role.desc = ""
            return

        plural = "s" if "and" in spell_list else ""
        slot_lines = "".join(
            f"- Level {spell_level} ({slots} slot{'s' if slots != 1 else ''}): \n"
            for spell_level, slots in enumerate(row.slots, start=1)
            if slots > 0
        )
        role.desc = (
            f"The sidekick is a level {self.level} spellcaster. "
            f"Its spellcasting ability is {ability_label} "
            f"(spell save DC {spell_dc}, {spell_attack} to hit with spell attacks). "
            f"The sidekick can cast the following {row.cantrips} cantrips and {row.spells} spells "
            f"from the {spell_list} spell list{plural}:\n"
            f"- Cantrips (at will): \n"
            f"{slot_lines}"
        )

    # ------------------------------------------------------------------
    # Recomputation
    # ------------------------------------------------------------------

    def update_skills(self, old_abilities: AbilityScores, old_proficiency_bonus: int) -> None:
        """Shift every skill bonus by the change in ability modifier and proficiency."""
        if not self.statblock.skillsaves:
            return

        old_mods = old_abilities.modifiers()
        new_mods = self.statblock.abilities.modifiers()
        new_pb = self.proficiency_bonus
        expertise = {_skill_key(skill) for skill in self.expertise_skills}

        updated: dict[str, int] = {}
        for skill, bonus in self.statblock.skillsaves.items():
            ability = get_ability_for_skill(skill)
            old_mod, new_mod = old_mods[ability], new_mods[ability]
            key = _skill_key(skill)

            old_multiplier = 1
            if bonus is UNRESOLVED:
                bonus = old_mod + old_proficiency_bonus
            elif key in self._expertise_resolved:
                old_multiplier = 2
            new_multiplier = 2 if key in expertise else 1

            updated[skill] = (
                bonus - old_mod - old_multiplier * old_proficiency_bonus
                + new_mod + new_multiplier * new_pb
            )

        self.statblock.skillsaves = dict(sorted(updated.items(), key=lambda item: item[0].lower()))
        self._expertise_resolved = {_skill_key(skill) for skill in updated} & expertise

    def update_saves(self, old_abilities: AbilityScores, old_proficiency_bonus: int) -> None:
        """Shift every saving throw bonus by the change in ability modifier and proficiency."""
        if not self.statblock.saves:
            return

        old_mods = old_abilities.modifiers()
        new_mods = self.statblock.abilities.modifiers()
        new_pb = self.proficiency_bonus

        updated: dict[str, int] = {}
        for save, bonus in self.statblock.saves.items():
            ability = normalize_ability(save)
            old_mod, new_mod = old_mods[ability], new_mods[ability]
            if bonus is UNRESOLVED:
                bonus = old_mod + old_proficiency_bonus
            updated[ability] = bonus - old_mod - old_proficiency_bonus + new_mod + new_pb

        self.statblock.saves = dict(sorted(updated.items()))

    def update_attacks(self, old_abilities: AbilityScores, old_proficiency_bonus: int) -> None:
        """Rewrite attack to-hit and damage numbers in every action description."""
        if not self.statblock.actions:
            return

        new_abilities = self.statblock.abilities
        old_mods = old_abilities.modifiers()
        new_mods = new_abilities.modifiers()
        pb_diff = self.proficiency_bonus - old_proficiency_bonus
        spellcasting_ability = self.spellcasting_ability

        updated: list[Trait] = []
        for action in self.statblock.actions:
            attack = Attack(action)
            if not attack.is_attack:
                updated.append(action)
                continue

            ability = attack.relevant_ability(new_abilities, spellcasting_ability)
            mod_diff = new_mods[ability] - old_mods[ability]
            if attack.to_hit is not None:
                attack.to_hit += mod_diff + pb_diff
            if attack.damage_mod is not None:
                attack.damage_mod += mod_diff
            updated.append(attack.to_trait(action))

        self.statblock.actions = updated

    def update_senses(self) -> None:
        """Rewrite the passive Perception number embedded in the senses text."""
        senses = self.statblock.senses
        if not senses:
            return
        match = _PASSIVE_PERCEPTION.search(senses)
        if match is None:
            return

        passive = 10 + self.statblock.abilities.mod("wisdom")
        if any(_skill_key(skill) == "perception" for skill in self.statblock.skillsaves or {}):
            passive += self.proficiency_bonus

        if passive != int(match.group(1)):
            self.statblock.senses = _PASSIVE_PERCEPTION.sub(f"passive Perception {passive}", senses, count=1)

    def __str__(self) -> str:
        return f"Sidekick: {self.statblock.name}, Class: {self.sidekick_class.name}, Level: {self.level}"
