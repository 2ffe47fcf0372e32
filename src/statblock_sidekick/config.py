"""
Configuration model for the sidekick engine.
"""

import os
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

from .logutils import configure_logging, logger


ENV_PREFIX = "SIDEKICK_"


class SidekickConfig(BaseModel):
    """Tunable rules constants for sidekick progression.

    The defaults follow the published sidekick rules; house-ruled tables
    can override them through the environment or by constructing the
    model directly.
    """

    ability_score_cap: int = Field(
        default=20,
        ge=1,
        le=30,
        description="Ability Score Improvement never raises a score past this value",
    )
    attacker_bonus: int = Field(
        default=2,
        ge=0,
        description="Flat to-hit bonus granted by the Attacker martial role",
    )
    improved_defense_bonus: int = Field(
        default=1,
        ge=0,
        description="Armor class increase granted by Improved Defense",
    )
    hp_method: Literal["average", "roll"] = Field(
        default="average",
        description="How hit points grow on level-up: 'average' or 'roll'",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Level applied to the statblock-sidekick logger by load_config()",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


def load_config(dotenv: bool = True, setup_logging: bool = True) -> SidekickConfig:
    """Build a SidekickConfig from ``SIDEKICK_*`` environment variables.

    Args:
        dotenv: Read the nearest ``.env`` file above the working
            directory first; values already in the environment win.
        setup_logging: Pass the configured ``log_level`` to
            ``configure_logging``.

    Returns:
        A validated SidekickConfig.
    """
    if dotenv and not load_dotenv(find_dotenv(usecwd=True)):
        logger.debug(".env file not found, using process environment only")

    values: dict[str, str] = {}
    for name in SidekickConfig.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw

    config = SidekickConfig.model_validate(values)
    if setup_logging:
        configure_logging(config.log_level)
    logger.debug(f"Loaded sidekick config: {config.model_dump()}")
    return config
