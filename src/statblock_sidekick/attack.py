"""Parse attack actions out of statblock text and write them back.

An action's description is the only place a statblock keeps its attack
numbers, so recalculating an attack means reading those numbers from the
text and substituting new ones without disturbing anything else.

Recognized slots (the first match of each wins):

    to-hit      "+4 to hit"               (2014 layout)
                "Attack Roll: +4"         (2024 layout)
    save DC     "DC 13"
    damage      "5 (1d6 + 2)" following "Hit:"; the modifier is optional

An action is an attack when it has a to-hit slot or a save DC. Everything
else is left alone: ``Attack.is_attack`` is False and every numeric field
is None.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .abilities import AbilityScores, format_modifier, normalize_ability
from .models import Trait


SIMPLE_WEAPONS = frozenset({
    "club", "dagger", "greatclub", "handaxe", "javelin", "light hammer",
    "mace", "quarterstaff", "sickle", "spear", "light crossbow", "dart",
    "shortbow", "sling",
})

MARTIAL_WEAPONS = frozenset({
    "battleaxe", "flail", "glaive", "greataxe", "greatsword", "halberd",
    "lance", "longsword", "maul", "morningstar", "pike", "rapier",
    "scimitar", "shortsword", "trident", "war pick", "warhammer", "whip",
    "blowgun", "hand crossbow", "heavy crossbow", "longbow", "net",
})

FINESSE_WEAPONS = frozenset({"dagger", "dart", "rapier", "scimitar", "shortsword", "whip"})

RANGED_WEAPONS = frozenset({
    "light crossbow", "dart", "shortbow", "sling", "blowgun",
    "hand crossbow", "heavy crossbow", "longbow", "net",
})

SPELLCASTING_ABILITIES = ("intelligence", "wisdom", "charisma")

# Longest names first so "heavy crossbow" wins over any shorter overlap
_WEAPON_PATTERNS = [
    (weapon, re.compile(rf"\b{re.escape(weapon)}s?\b"))
    for weapon in sorted(SIMPLE_WEAPONS | MARTIAL_WEAPONS, key=len, reverse=True)
]

_TO_HIT_PATTERNS = (
    re.compile(r"(?P<bonus>[+-]\s?\d+) to hit"),
    re.compile(r"Attack Roll:\s*(?P<bonus>[+-]\s?\d+)"),
)
_SAVE_DC_PATTERN = re.compile(r"\bDC (?P<dc>\d+)")
_DAMAGE_PATTERN = re.compile(
    r"(?P<avg>\d+) \((?P<count>\d+)d(?P<die>\d+)"
    r"(?:(?P<pre>\s*)(?P<sign>[+-])(?P<post>\s*)(?P<mod>\d+))?\)"
)


def weapon_for(name: str) -> str | None:
    """Return the weapon a name refers to ('Longsword (two-handed)' → 'longsword')."""
    lower = name.lower()
    for weapon, pattern in _WEAPON_PATTERNS:
        if pattern.search(lower):
            return weapon
    return None


@dataclass
class _Slot:
    """A span of the source text holding one parsed number."""
    field: str
    start: int
    end: int
    text: str
    value: int


class Attack:
    """Structured, transient view of one action's attack text."""

    def __init__(self, action: Trait) -> None:
        self.name = action.name
        self.text = action.desc or ""
        self.kind: str | None = None
        self.to_hit: int | None = None
        self.save_dc: int | None = None
        self.damage_mod: int | None = None
        self._slots: list[_Slot] = []
        self._damage: re.Match[str] | None = None
        self._parse()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self) -> None:
        text = self.text

        for pattern in _TO_HIT_PATTERNS:
            match = pattern.search(text)
            if match:
                value = int(match.group("bonus").replace(" ", ""))
                self._slots.append(_Slot("to_hit", *match.span("bonus"), match.group("bonus"), value))
                self.to_hit = value
                break

        match = _SAVE_DC_PATTERN.search(text)
        if match:
            value = int(match.group("dc"))
            self._slots.append(_Slot("save_dc", *match.span("dc"), match.group("dc"), value))
            self.save_dc = value

        if self.to_hit is None and self.save_dc is None:
            return

        if "Spell Attack" in text:
            self.kind = "spell"
        elif self.to_hit is not None:
            self.kind = "weapon"
        else:
            self.kind = "save"

        hit_index = text.find("Hit:")
        if hit_index != -1:
            match = _DAMAGE_PATTERN.search(text, hit_index)
            if match:
                mod = int(match.group("mod") or 0)
                if match.group("sign") == "-":
                    mod = -mod
                self._damage = match
                self._slots.append(_Slot("damage_mod", match.start(), match.end(), match.group(0), mod))
                self.damage_mod = mod

        self._slots.sort(key=lambda slot: slot.start)

    # ------------------------------------------------------------------
    # Derived flags
    # ------------------------------------------------------------------

    @property
    def is_attack(self) -> bool:
        return self.kind is not None

    @property
    def weapon(self) -> str | None:
        if self.kind == "spell":
            return None
        return weapon_for(self.name)

    @property
    def is_simple_weapon(self) -> bool:
        return self.is_attack and self.weapon in SIMPLE_WEAPONS

    @property
    def is_martial_weapon(self) -> bool:
        return self.is_attack and self.weapon in MARTIAL_WEAPONS

    @property
    def is_ranged(self) -> bool:
        if self.weapon in RANGED_WEAPONS:
            return True
        return "Ranged" in self.text and "Melee" not in self.text

    def relevant_ability(
        self, abilities: AbilityScores, spellcasting_ability: str | None = None
    ) -> str:
        """The ability whose modifier feeds this attack's numbers.

        Spell attacks use the caster's spellcasting ability, or the best
        mental ability when none is known. Finesse weapons take the better
        of strength and dexterity, ranged weapons use dexterity, and
        everything else uses strength.
        """
        if self.kind == "spell":
            if spellcasting_ability:
                return normalize_ability(spellcasting_ability)
            return max(SPELLCASTING_ABILITIES, key=lambda ability: abilities[ability])
        if self.weapon in FINESSE_WEAPONS:
            return "dexterity" if abilities.dexterity > abilities.strength else "strength"
        if self.is_ranged:
            return "dexterity"
        return "strength"

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> str:
        """Rebuild the description, touching only the numbers that changed."""
        if not self.is_attack:
            return self.text

        parts: list[str] = []
        cursor = 0
        for slot in self._slots:
            parts.append(self.text[cursor:slot.start])
            current = getattr(self, slot.field)
            if current == slot.value:
                parts.append(slot.text)
            elif slot.field == "to_hit":
                parts.append(format_modifier(current))
            elif slot.field == "save_dc":
                parts.append(str(current))
            else:
                parts.append(self._render_damage(current))
            cursor = slot.end
        parts.append(self.text[cursor:])
        return "".join(parts)

    def _render_damage(self, mod: int) -> str:
        match = self._damage
        count, die = int(match.group("count")), int(match.group("die"))
        average = max(1, count * (die + 1) // 2 + mod)
        if mod == 0:
            return f"{average} ({count}d{die})"
        pre = match.group("pre") if match.group("sign") else " "
        post = match.group("post") if match.group("sign") else " "
        sign = "+" if mod > 0 else "-"
        return f"{average} ({count}d{die}{pre}{sign}{post}{abs(mod)})"

    def to_trait(self, action: Trait) -> Trait:
        """Copy of ``action`` carrying the re-rendered description."""
        return action.model_copy(update={"desc": self.render()})

    def __repr__(self) -> str:
        return (
            f"Attack(name={self.name!r}, kind={self.kind!r}, to_hit={self.to_hit!r}, "
            f"damage_mod={self.damage_mod!r}, save_dc={self.save_dc!r})"
        )
