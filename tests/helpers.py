"""
Shared builders for sidekick tests.
"""

from statblock_sidekick.models import Feature, Option, Statblock, Trait


DAGGER = (
    "Melee Weapon Attack: +4 to hit, reach 5 ft. or range 20/60 ft., one target. "
    "Hit: 4 (1d4 + 2) piercing damage."
)


def make_statblock(**overrides) -> Statblock:
    """A level 1 human sidekick: STR 10, DEX 14, CON 12, INT 10, WIS 12, CHA 8."""
    data = {
        "name": "Tavi",
        "size": "Medium",
        "type": "humanoid (human)",
        "alignment": "neutral good",
        "ac": "13 (leather armor)",
        "hp": 9,
        "hit_dice": "2d8",
        "speed": "30 ft.",
        "stats": [10, 14, 12, 10, 12, 8],
        "senses": "passive Perception 10",
        "languages": "Common",
        "cr": "1/8",
        "actions": [Trait(name="Dagger", desc=DAGGER)],
    }
    data.update(overrides)
    return Statblock(**data)


def make_feature(name: str, options: list[str] | None = None, **kwargs) -> Feature:
    """Build a Feature whose options are given by name."""
    if options is not None:
        kwargs["options"] = [Option(name=o) for o in options]
    return Feature(name=name, **kwargs)
