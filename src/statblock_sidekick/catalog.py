"""
Sidekick class catalog: level-gated feature lists loaded from JSON/YAML.

A class file looks like:

```yaml
name: Warrior
features:
  - name: Martial Role
    level: 1
    options:
      - name: Attacker
        desc: The sidekick gains a +2 bonus to all attack rolls.
      - name: Defender
        category: reactions
```
"""

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from .logutils import logger
from .models import Feature


BUILTIN_CLASSES_RESOURCE = "sidekick_classes.yaml"


class CatalogError(Exception):
    """Error loading or parsing a sidekick class definition."""
    pass


class SidekickClass(BaseModel):
    """A sidekick class: a name and its features in progression order."""
    name: str
    description: str = ""
    features: list[Feature] = Field(default_factory=list)

    def features_at(self, level: int) -> list[Feature]:
        """Features gained at exactly ``level``, in catalog order."""
        return [feature for feature in self.features if feature.level == level]

    def features_up_to(self, level: int) -> list[Feature]:
        """Every feature gained at or below ``level``, ordered by level."""
        eligible = [feature for feature in self.features if feature.level <= level]
        return sorted(eligible, key=lambda feature: feature.level)


def load_class(data: dict[str, Any]) -> SidekickClass:
    """Validate a mapping into a SidekickClass.

    Raises:
        CatalogError: If the mapping does not describe a valid class.
    """
    try:
        return SidekickClass.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"Invalid sidekick class definition: {e}") from e


def _read_mapping(path: Path) -> Any:
    suffix = path.suffix.lower()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Failed to read file: {e}") from e

    try:
        if suffix == ".json":
            return json.loads(raw)
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise CatalogError(f"Failed to parse {path.name}: {e}") from e

    raise CatalogError(f"Unsupported file format: {suffix}. Supported: .json, .yaml, .yml")


def load_class_file(path: Path | str) -> SidekickClass:
    """Load a single sidekick class from a JSON or YAML file."""
    path = Path(path)
    data = _read_mapping(path)
    if not isinstance(data, dict):
        raise CatalogError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    sidekick_class = load_class(data)
    logger.debug(f"Loaded sidekick class '{sidekick_class.name}' from {path}")
    return sidekick_class


@lru_cache(maxsize=1)
def _builtin_classes() -> tuple[SidekickClass, ...]:
    text = resources.files("statblock_sidekick.data").joinpath(BUILTIN_CLASSES_RESOURCE).read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    classes = tuple(load_class(entry) for entry in data["classes"])
    logger.debug(f"Loaded {len(classes)} built-in sidekick classes")
    return classes


def builtin_classes() -> list[SidekickClass]:
    """The Expert, Spellcaster and Warrior classes shipped with the package.

    Copies are returned so callers can never alter the cached catalog.
    """
    return [sidekick_class.model_copy(deep=True) for sidekick_class in _builtin_classes()]


def get_builtin_class(name: str) -> SidekickClass:
    """Look up a built-in class by name, case-insensitively.

    Raises:
        CatalogError: If no built-in class has that name.
    """
    for sidekick_class in builtin_classes():
        if sidekick_class.name.lower() == name.strip().lower():
            return sidekick_class
    available = ", ".join(c.name for c in _builtin_classes())
    raise CatalogError(f"Sidekick class '{name}' not found. Available: {available}")
