"""Level-Up Engine: walk a sidekick through its class progression.

Given a Sidekick, the engine applies the class features due at a level
(with the caller's choices), grows hit points, and re-derives skills,
saves, attacks, passive Perception and spellcasting from the old and new
ability modifiers and proficiency bonus.
"""

from __future__ import annotations

import random
import re
from collections.abc import Iterator
from contextlib import contextmanager

from pydantic import BaseModel

from .abilities import AbilityScores
from .config import SidekickConfig
from .logutils import logger
from .models import Feature, Option
from .sidekick import Sidekick


MAX_LEVEL = 20

_HIT_DICE = re.compile(r"^\s*(?P<count>\d+)d(?P<die>\d+)")


class LevelUpError(Exception):
    """Raised when level-up cannot proceed."""


class LevelUpResult(BaseModel):
    """Summary of changes applied while advancing a sidekick."""

    new_level: int
    hp_gained: int = 0
    features_added: list[str]
    choices_applied: dict[str, list[str]]
    features_skipped: list[str]
    proficiency_bonus_changed: bool
    summary: str


class SidekickLevelUpEngine:
    """Apply level-gated sidekick class features and keep the sheet consistent."""

    def __init__(self, config: SidekickConfig | None = None) -> None:
        self.config = config or SidekickConfig()

    def start(
        self,
        sidekick: Sidekick,
        *,
        choices: dict[str, list[str]] | None = None,
    ) -> LevelUpResult:
        """Apply the features of the sidekick's current level (normally level 1).

        Args:
            sidekick: The freshly created sidekick (modified in-place).
            choices: Option names per feature name, e.g.
                     {"Skill Proficiencies": ["Stealth", "Perception"]}.

        Raises:
            LevelUpError: If a choice is not one of the feature's available
                          options. The sidekick is left exactly as it was.
        """
        old_abilities = sidekick.statblock.abilities
        old_pb = sidekick.proficiency_bonus
        changes: list[str] = []

        with _rollback_on_error(sidekick):
            added, applied, skipped = self._apply_level(sidekick, sidekick.level, choices or {}, changes)
            self._recompute(sidekick, old_abilities, old_pb)

        return self._result(sidekick, 0, added, applied, skipped, False, changes)

    def level_up(
        self,
        sidekick: Sidekick,
        *,
        choices: dict[str, list[str]] | None = None,
        hp_method: str | None = None,
    ) -> LevelUpResult:
        """Advance a sidekick by one level.

        Args:
            sidekick: The sidekick to level up (modified in-place).
            choices: Option names per feature name for features gained at
                     the new level. A feature that offers options but has no
                     entry here is applied without a choice.
            hp_method: "average" or "roll"; defaults to the configured method.

        Returns:
            LevelUpResult with a summary of every change.

        Raises:
            LevelUpError: If the sidekick is at the maximum level or a choice
                          is not one of the feature's available options.
                          The sidekick is left exactly as it was.
        """
        current_level = sidekick.level
        new_level = current_level + 1
        if new_level > MAX_LEVEL:
            raise LevelUpError(f"Sidekick is already at maximum level ({MAX_LEVEL}).")

        old_abilities = sidekick.statblock.abilities
        old_pb = sidekick.proficiency_bonus
        changes: list[str] = []

        with _rollback_on_error(sidekick):
            # 1. Increment level
            sidekick.level = new_level
            changes.append(f"Level: {current_level} -> {new_level}")

            # 2. Hit points
            hp_gained = self._grow_hit_points(sidekick, old_abilities, hp_method or self.config.hp_method)
            if hp_gained:
                changes.append(f"HP: +{hp_gained} (now {sidekick.statblock.hp})")

            # 3. Class features
            added, applied, skipped = self._apply_level(sidekick, new_level, choices or {}, changes)

            # 4. Everything derived from abilities and proficiency
            self._recompute(sidekick, old_abilities, old_pb)

        new_pb = sidekick.proficiency_bonus
        prof_changed = new_pb != old_pb
        if prof_changed:
            changes.append(f"Proficiency bonus: +{old_pb} -> +{new_pb}")

        return self._result(sidekick, hp_gained, added, applied, skipped, prof_changed, changes)

    def level_up_to(
        self,
        sidekick: Sidekick,
        level: int,
        *,
        choices: dict[int, dict[str, list[str]]] | None = None,
        hp_method: str | None = None,
    ) -> list[LevelUpResult]:
        """Level up repeatedly until ``level``; ``choices`` is keyed by level."""
        if level > MAX_LEVEL:
            raise LevelUpError(f"Cannot level past {MAX_LEVEL} (requested {level}).")
        choices = choices or {}
        results = []
        while sidekick.level < level:
            results.append(
                self.level_up(sidekick, choices=choices.get(sidekick.level + 1), hp_method=hp_method)
            )
        return results

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def _apply_level(
        self,
        sidekick: Sidekick,
        level: int,
        choices: dict[str, list[str]],
        changes: list[str],
    ) -> tuple[list[str], dict[str, list[str]], list[str]]:
        added: list[str] = []
        applied_choices: dict[str, list[str]] = {}
        skipped: list[str] = []

        for feature in sidekick.sidekick_class.features_at(level):
            if sidekick.is_applied(feature):
                continue
            if not sidekick.is_eligible(feature):
                skipped.append(feature.name)
                changes.append(
                    f"NOTE: {feature.name} skipped (requires one of: {', '.join(feature.conditions or [])})"
                )
                sidekick.mark_applied(feature)
                continue

            picks = choices.get(feature.name, [])
            if feature.options is not None and picks:
                applied_choices[feature.name] = self._apply_choices(sidekick, feature, picks)
            else:
                if feature.options is not None:
                    changes.append(
                        f"NOTE: {feature.name} offers {feature.nb_choices} choice(s) "
                        "but none were given."
                    )
                sidekick.apply_feature(feature)

            sidekick.mark_applied(feature)
            added.append(feature.name)

        if added:
            changes.append(f"Features: {', '.join(added)}")
        for name, picks in applied_choices.items():
            changes.append(f"{name}: {', '.join(picks)}")
        return added, applied_choices, skipped

    @staticmethod
    def _apply_choices(sidekick: Sidekick, feature: Feature, picks: list[str]) -> list[str]:
        """Apply each pick, re-reading the options before every one."""
        if len(picks) > feature.nb_choices:
            raise LevelUpError(
                f"{feature.name} allows {feature.nb_choices} choice(s), got {len(picks)}."
            )

        applied: list[str] = []
        for pick in picks:
            options = sidekick.get_options(feature)
            option = _find_option(options, pick)
            if option is None:
                available = ", ".join(o.name for o in options) or "none"
                raise LevelUpError(
                    f"Invalid choice '{pick}' for {feature.name}. Available: {available}"
                )
            sidekick.apply_feature(feature, option)
            applied.append(option.name)
        return applied

    # ------------------------------------------------------------------
    # Hit points
    # ------------------------------------------------------------------

    @staticmethod
    def _grow_hit_points(sidekick: Sidekick, old_abilities: AbilityScores, method: str) -> int:
        """Add one hit die to the statblock.

        Average: die // 2 + 1 + CON mod (minimum 1).
        Roll: random 1-die + CON mod (minimum 1).
        """
        statblock = sidekick.statblock
        match = _HIT_DICE.match(statblock.hit_dice or "")
        if match is None:
            logger.debug(f"No parsable hit dice on {statblock.name}; HP unchanged")
            return 0

        count, die = int(match.group("count")), int(match.group("die"))
        con_mod = old_abilities.mod("constitution")

        if method == "average":
            gained = max(die // 2 + 1 + con_mod, 1)
        elif method == "roll":
            gained = max(random.randint(1, die) + con_mod, 1)
        else:
            raise LevelUpError(f"Unknown hp_method: '{method}'. Use 'average' or 'roll'.")

        statblock.hit_dice = _format_hit_dice(count + 1, die, con_mod)
        statblock.hp = (statblock.hp or 0) + gained
        return gained

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    @staticmethod
    def _recompute(sidekick: Sidekick, old_abilities: AbilityScores, old_pb: int) -> None:
        sidekick.update_skills(old_abilities, old_pb)
        sidekick.update_saves(old_abilities, old_pb)
        sidekick.update_attacks(old_abilities, old_pb)
        sidekick.update_senses()
        sidekick.apply_spellcasting()

    @staticmethod
    def _result(
        sidekick: Sidekick,
        hp_gained: int,
        added: list[str],
        applied: dict[str, list[str]],
        skipped: list[str],
        prof_changed: bool,
        changes: list[str],
    ) -> LevelUpResult:
        summary = f"{sidekick}\n" + "\n".join(f"  - {c}" for c in changes)
        logger.info(summary)
        return LevelUpResult(
            new_level=sidekick.level,
            hp_gained=hp_gained,
            features_added=added,
            choices_applied=applied,
            features_skipped=skipped,
            proficiency_bonus_changed=prof_changed,
            summary=summary,
        )


@contextmanager
def _rollback_on_error(sidekick: Sidekick) -> Iterator[None]:
    """Undo every change made inside the block if it raises LevelUpError."""
    state = sidekick.snapshot()
    try:
        yield
    except LevelUpError as e:
        sidekick.restore(state)
        logger.warning(f"Level-up of {sidekick.statblock.name} rolled back: {e}")
        raise


def _find_option(options: list[Option], name: str) -> Option | None:
    wanted = name.strip().lower()
    for option in options:
        if option.name.lower() == wanted:
            return option
    return None


def _format_hit_dice(count: int, die: int, con_mod: int) -> str:
    """'3d8 + 3' style hit dice with the constitution bonus per die."""
    bonus = count * con_mod
    if bonus == 0:
        return f"{count}d{die}"
    sign = "+" if bonus > 0 else "-"
    return f"{count}d{die} {sign} {abs(bonus)}"
