"""Ability score and proficiency arithmetic.

Pure functions and fixed lookup tables shared by the statblock model,
the attack codec and the sidekick engine.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# Canonical order of the six abilities, matching the statblock ``stats`` list
ABILITIES: tuple[str, ...] = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
)

# Ability abbreviation → full name
ABILITY_NAMES = {
    "STR": "strength",
    "DEX": "dexterity",
    "CON": "constitution",
    "INT": "intelligence",
    "WIS": "wisdom",
    "CHA": "charisma",
}

MIN_ABILITY_SCORE = 1
MAX_ABILITY_SCORE = 30

# Proficiency bonus by character level (index 0 is level 1)
PROFICIENCY_BY_LEVEL: tuple[int, ...] = (
    2, 2, 2, 2,
    3, 3, 3, 3,
    4, 4, 4, 4,
    5, 5, 5, 5,
    6, 6, 6, 6,
)

# Skill (normalized to snake_case) → governing ability
SKILL_ABILITIES = {
    "acrobatics": "dexterity",
    "animal_handling": "wisdom",
    "arcana": "intelligence",
    "athletics": "strength",
    "deception": "charisma",
    "history": "intelligence",
    "insight": "wisdom",
    "intimidation": "charisma",
    "investigation": "intelligence",
    "medicine": "wisdom",
    "nature": "intelligence",
    "perception": "wisdom",
    "performance": "charisma",
    "persuasion": "charisma",
    "religion": "intelligence",
    "sleight_of_hand": "dexterity",
    "stealth": "dexterity",
    "survival": "wisdom",
}


class UnknownSkillError(KeyError):
    """Raised when a skill name has no governing ability."""


class UnknownAbilityError(KeyError):
    """Raised when a name is not one of the six abilities."""


def ability_modifier(score: int) -> int:
    """Calculate the ability modifier for a raw score."""
    return (score - 10) // 2


def proficiency_bonus(level: int) -> int:
    """Proficiency bonus for a character level.

    Levels outside 1-20 are clamped to the ends of the table.
    """
    index = min(max(level, 1), len(PROFICIENCY_BY_LEVEL)) - 1
    return PROFICIENCY_BY_LEVEL[index]


def format_modifier(value: int) -> str:
    """Render a bonus with an explicit sign: 3 → '+3', -1 → '-1'."""
    sign = "+" if value >= 0 else "-"
    return f"{sign}{abs(value)}"


def normalize_ability(name: str) -> str:
    """Resolve 'Dexterity', 'dex' or 'DEX' to 'dexterity'.

    Raises:
        UnknownAbilityError: If the name is not an ability.
    """
    key = name.strip()
    full = ABILITY_NAMES.get(key.upper(), key.lower())
    if full not in ABILITIES:
        raise UnknownAbilityError(f"Unknown ability: '{name}'")
    return full


def get_ability_for_skill(skill: str) -> str:
    """Return the ability that governs a skill ('Sleight of Hand' → 'dexterity').

    Raises:
        UnknownSkillError: If the skill is not in the fixed skill table.
    """
    normalized = skill.strip().lower().replace(" ", "_")
    try:
        return SKILL_ABILITIES[normalized]
    except KeyError:
        raise UnknownSkillError(f"Ability not found for skill: {skill}") from None


class AbilityScores(BaseModel):
    """The six raw ability scores of a creature."""
    strength: int = Field(default=10, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE)
    dexterity: int = Field(default=10, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE)
    constitution: int = Field(default=10, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE)
    intelligence: int = Field(default=10, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE)
    wisdom: int = Field(default=10, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE)
    charisma: int = Field(default=10, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE)

    @classmethod
    def from_list(cls, stats: list[int]) -> "AbilityScores":
        """Build from a statblock ``stats`` list (STR, DEX, CON, INT, WIS, CHA)."""
        if len(stats) != len(ABILITIES):
            raise ValueError(f"Expected 6 ability scores, got {len(stats)}")
        return cls(**dict(zip(ABILITIES, stats)))

    def to_list(self) -> list[int]:
        return [getattr(self, ability) for ability in ABILITIES]

    def __getitem__(self, ability: str) -> int:
        return getattr(self, normalize_ability(ability))

    def mod(self, ability: str) -> int:
        return ability_modifier(self[ability])

    def modifiers(self) -> dict[str, int]:
        """Modifier for every ability, keyed by full ability name."""
        return {ability: ability_modifier(getattr(self, ability)) for ability in ABILITIES}
