"""
Tests for the sidekick class catalog.
"""

import json

import pytest

from statblock_sidekick.catalog import (
    CatalogError,
    SidekickClass,
    builtin_classes,
    get_builtin_class,
    load_class,
    load_class_file,
)


SCOUT = {
    "name": "Scout",
    "features": [
        {"name": "Skill Proficiencies", "level": 1, "nbChoices": 2,
         "options": [{"name": "Stealth"}, {"name": "Survival"}]},
        {"name": "Keen Eye", "level": 3, "desc": "Advantage on sight-based checks."},
        {"name": "Fleet", "level": 2, "category": "bonus_actions"},
    ],
}


class TestBuiltinClasses:

    def test_three_classes(self) -> None:
        assert [c.name for c in builtin_classes()] == ["Expert", "Spellcaster", "Warrior"]

    def test_lookup_is_case_insensitive(self) -> None:
        assert get_builtin_class("warrior").name == "Warrior"
        assert get_builtin_class(" Expert ").name == "Expert"

    def test_unknown_class(self) -> None:
        with pytest.raises(CatalogError, match="not found. Available: Expert, Spellcaster, Warrior"):
            get_builtin_class("Paladin")

    def test_copies_are_independent(self) -> None:
        warrior = get_builtin_class("Warrior")
        warrior.features.clear()
        assert get_builtin_class("Warrior").features

    def test_feature_levels_in_range(self) -> None:
        for sidekick_class in builtin_classes():
            assert all(1 <= f.level <= 20 for f in sidekick_class.features)

    def test_warrior_level_one(self) -> None:
        names = [f.name for f in get_builtin_class("Warrior").features_at(1)]
        assert names == [
            "Saving Throw Proficiency",
            "Skill Proficiencies",
            "Armor Proficiency",
            "Shield Proficiency",
            "Weapon Proficiency",
            "Martial Role",
        ]

    def test_expert_skill_choices(self) -> None:
        skills = get_builtin_class("Expert").features_at(1)[1]
        assert skills.nb_choices == 5
        assert len(skills.options) == 18

    def test_improvement_features_offer_computed_options(self) -> None:
        for sidekick_class in builtin_classes():
            for feature in sidekick_class.features:
                if feature.name in ("Ability Score Improvement", "Expertise"):
                    assert feature.options == []
                    assert feature.nb_choices == 2


class TestLoadClass:

    def test_features_at_and_up_to(self) -> None:
        scout = load_class(SCOUT)
        assert [f.name for f in scout.features_at(2)] == ["Fleet"]
        assert [f.name for f in scout.features_up_to(3)] == ["Skill Proficiencies", "Fleet", "Keen Eye"]
        assert scout.features_at(4) == []

    def test_invalid_definition(self) -> None:
        with pytest.raises(CatalogError, match="Invalid sidekick class definition"):
            load_class({"features": []})

    def test_invalid_level(self) -> None:
        with pytest.raises(CatalogError):
            load_class({"name": "Broken", "features": [{"name": "Too Late", "level": 21}]})


class TestLoadClassFile:

    def test_json(self, tmp_path) -> None:
        path = tmp_path / "scout.json"
        path.write_text(json.dumps(SCOUT), encoding="utf-8")
        scout = load_class_file(path)
        assert isinstance(scout, SidekickClass)
        assert scout.features[0].nb_choices == 2

    def test_yaml(self, tmp_path) -> None:
        path = tmp_path / "scout.yaml"
        path.write_text(
            "name: Scout\n"
            "features:\n"
            "  - name: Fleet\n"
            "    level: 2\n"
            "    category: bonus_actions\n",
            encoding="utf-8",
        )
        scout = load_class_file(str(path))
        assert scout.features[0].category == "bonus_actions"

    def test_unsupported_format(self, tmp_path) -> None:
        path = tmp_path / "scout.toml"
        path.write_text("name = 'Scout'", encoding="utf-8")
        with pytest.raises(CatalogError, match="Unsupported file format"):
            load_class_file(path)

    def test_not_a_mapping(self, tmp_path) -> None:
        path = tmp_path / "scout.yml"
        path.write_text("- Scout\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="must contain a mapping"):
            load_class_file(path)

    def test_malformed_json(self, tmp_path) -> None:
        path = tmp_path / "scout.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogError, match="Failed to parse"):
            load_class_file(path)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(CatalogError, match="Failed to read file"):
            load_class_file(tmp_path / "missing.yaml")
