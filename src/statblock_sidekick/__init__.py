"""
Statblock Sidekick - level sidekick statblocks through the sidekick classes,
keeping skills, saves, attacks and spellcasting consistent.
"""

from .abilities import AbilityScores, ability_modifier, get_ability_for_skill, proficiency_bonus
from .attack import Attack
from .catalog import SidekickClass, builtin_classes, get_builtin_class, load_class_file
from .config import SidekickConfig, load_config
from .level_up_engine import LevelUpError, LevelUpResult, SidekickLevelUpEngine
from .models import UNRESOLVED, Feature, Option, Statblock, Trait, TraitCategory
from .sheets import extract_statblock, format_statblock
from .sidekick import Sidekick

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("statblock-sidekick")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "Attack",
    "AbilityScores",
    "Feature",
    "LevelUpError",
    "LevelUpResult",
    "Option",
    "Sidekick",
    "SidekickClass",
    "SidekickConfig",
    "SidekickLevelUpEngine",
    "Statblock",
    "Trait",
    "TraitCategory",
    "UNRESOLVED",
    "ability_modifier",
    "builtin_classes",
    "extract_statblock",
    "format_statblock",
    "get_ability_for_skill",
    "get_builtin_class",
    "load_class_file",
    "load_config",
    "proficiency_bonus",
]
