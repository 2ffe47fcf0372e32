"""
Data models for sidekick statblocks and class features.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .abilities import (
    ABILITIES,
    MAX_ABILITY_SCORE,
    MIN_ABILITY_SCORE,
    AbilityScores,
    normalize_ability,
)
from .logutils import logger


# A proficient save or skill whose numeric bonus has not been worked out yet.
# Statblock documents spell this as a literal 0.
UNRESOLVED = None

Bonus = int | None

EQUIPMENT_TRAIT = "Equipment Proficiencies"
EQUIPMENT_PREFIX = "The sidekick has proficiency with "

_AC_PATTERN = re.compile(r"^\s*(\d+)(.*)$", re.DOTALL)


class TraitCategory(str, Enum):
    """The statblock lists a feature can be written into."""
    TRAITS = "traits"
    ACTIONS = "actions"
    BONUS_ACTIONS = "bonus_actions"
    LEGENDARY_ACTIONS = "legendary_actions"
    MYTHIC_ACTIONS = "mythic_actions"
    REACTIONS = "reactions"

    @classmethod
    def resolve(cls, name: "str | TraitCategory | None") -> "TraitCategory":
        """Map a feature-supplied category name to a list, defaulting to traits."""
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            if name:
                logger.debug(f"Unknown trait category '{name}', using traits")
            return cls.TRAITS


class Trait(BaseModel):
    """A named entry in one of the statblock lists (trait, action, reaction...)."""
    model_config = ConfigDict(extra="allow")

    name: str
    desc: str = ""


class Option(BaseModel):
    """One selectable outcome of a Feature."""
    name: str
    desc: str | None = None
    category: str | None = None


class Feature(BaseModel):
    """A level-gated class feature, optionally offering a choice."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    desc: str = ""
    level: int = Field(default=1, ge=1, le=20)
    category: str | None = None
    options: list[Option] | None = None
    nb_choices: int = Field(default=1, ge=0, alias="nbChoices")
    conditions: list[str] | None = None


class Statblock(BaseModel):
    """A creature statblock as stored in a ```statblock``` document.

    Keys the model does not know about are kept as extra fields so a
    document survives a parse/format round trip untouched.
    """
    model_config = ConfigDict(extra="allow")

    image: str | None = None
    name: str | None = None
    size: str | None = None
    type: str | None = None
    subtype: str | None = None
    alignment: str | None = None
    ac: int | str | None = None
    hp: int | None = None
    hit_dice: str | None = None
    speed: str | None = None
    stats: list[int] = Field(default_factory=lambda: [10] * len(ABILITIES))
    saves: dict[str, Bonus] | None = None
    skillsaves: dict[str, Bonus] | None = None
    damage_vulnerabilities: str | None = None
    damage_resistances: str | None = None
    damage_immunities: str | None = None
    condition_immunities: str | None = None
    senses: str | None = None
    languages: str | None = None
    cr: str | int | float | None = None
    traits: list[Trait] | None = None
    spells: list[Any] | None = None
    actions: list[Trait] | None = None
    bonus_actions: list[Trait] | None = None
    legendary_actions: list[Trait] | None = None
    legendary_description: str | None = None
    mythic_actions: list[Trait] | None = None
    mythic_description: str | None = None
    reactions: list[Trait] | None = None
    lair_actions: list[Trait] | None = None
    source: str | list[str] | None = None

    @field_validator("stats")
    @classmethod
    def _six_scores(cls, v: list[int]) -> list[int]:
        if len(v) != len(ABILITIES):
            raise ValueError(f"stats must hold 6 ability scores, got {len(v)}")
        for ability, score in zip(ABILITIES, v):
            if not MIN_ABILITY_SCORE <= score <= MAX_ABILITY_SCORE:
                raise ValueError(
                    f"{ability} score must be between {MIN_ABILITY_SCORE} and "
                    f"{MAX_ABILITY_SCORE}, got {score}"
                )
        return v

    @field_validator("saves", "skillsaves", mode="before")
    @classmethod
    def _read_legacy_sentinel(cls, v: Any) -> Any:
        """Documents mark "proficient, not yet computed" with a literal 0.

        Some documents store these maps as a list of single-key mappings;
        they are flattened here.
        """
        if v is None:
            return None
        if isinstance(v, list):
            merged: dict[str, Any] = {}
            for entry in v:
                merged.update(entry)
            v = merged
        return {key: (UNRESOLVED if value == 0 else value) for key, value in v.items()}

    @field_serializer("saves", "skillsaves")
    def _write_legacy_sentinel(self, v: dict[str, Bonus] | None) -> dict[str, int] | None:
        if v is None:
            return None
        return {key: (0 if value is UNRESOLVED else value) for key, value in v.items()}

    # ------------------------------------------------------------------
    # Abilities
    # ------------------------------------------------------------------

    @property
    def abilities(self) -> AbilityScores:
        return AbilityScores.from_list(self.stats)

    def set_ability(self, ability: str, score: int) -> None:
        index = ABILITIES.index(normalize_ability(ability))
        self.stats[index] = score

    # ------------------------------------------------------------------
    # Trait lists
    # ------------------------------------------------------------------

    def entries(self, category: TraitCategory) -> list[Trait]:
        """Return the list for a category, creating it if absent."""
        category = TraitCategory.resolve(category)
        entries = getattr(self, category.value)
        if entries is None:
            entries = []
            setattr(self, category.value, entries)
        return entries

    def find_trait(self, name: str, category: TraitCategory = TraitCategory.TRAITS) -> Trait | None:
        for trait in getattr(self, TraitCategory.resolve(category).value) or []:
            if trait.name == name:
                return trait
        return None

    def upsert_trait(self, category: TraitCategory, trait: Trait) -> None:
        """Replace the entry with the same name in place, else append."""
        entries = self.entries(category)
        for index, existing in enumerate(entries):
            if existing.name == trait.name:
                entries[index] = trait
                return
        entries.append(trait)

    def remove_traits(self, names: set[str], category: TraitCategory = TraitCategory.TRAITS) -> list[Trait]:
        """Drop entries whose lower-cased name is in ``names``; return what was removed."""
        attr = TraitCategory.resolve(category).value
        entries = getattr(self, attr)
        if not entries:
            return []
        removed = [t for t in entries if t.name.lower() in names]
        setattr(self, attr, [t for t in entries if t.name.lower() not in names])
        return removed

    # ------------------------------------------------------------------
    # Equipment proficiencies
    # ------------------------------------------------------------------

    def equipment_proficiencies(self) -> list[str]:
        """Items listed in the 'Equipment Proficiencies' trait, in order."""
        trait = self.find_trait(EQUIPMENT_TRAIT)
        if trait is None or "with" not in trait.desc:
            return []
        listed = trait.desc.split("with", 1)[1].strip().rstrip(".")
        return [item.strip() for item in listed.split(", ") if item.strip()]

    def add_equipment_proficiency(self, item: str) -> bool:
        """Append an item to 'Equipment Proficiencies'. Returns False if already listed."""
        items = self.equipment_proficiencies()
        if item in items:
            return False
        items.append(item)
        self.upsert_trait(
            TraitCategory.TRAITS,
            Trait(name=EQUIPMENT_TRAIT, desc=f"{EQUIPMENT_PREFIX}{', '.join(items)}."),
        )
        return True

    # ------------------------------------------------------------------
    # Armor class
    # ------------------------------------------------------------------

    def raise_armor_class(self, amount: int = 1) -> None:
        """Increase AC, whether stored as 15 or as '15 (natural armor)'."""
        if isinstance(self.ac, int):
            self.ac += amount
        elif isinstance(self.ac, str):
            match = _AC_PATTERN.match(self.ac)
            if match is None:
                logger.warning(f"Cannot raise unparsable armor class '{self.ac}'")
                return
            self.ac = f"{int(match.group(1)) + amount}{match.group(2)}"
        else:
            logger.debug("Statblock has no armor class to raise")
