"""Parse statblock documents and extract the fenced ```statblock``` block.

Reads the Markdown produced by the renderer (or written by hand), pulls
out the YAML mapping inside the first ```statblock``` fence, and
validates it into a Statblock model.
"""

from __future__ import annotations

import re
from typing import Any

import yaml
from pydantic import ValidationError

from statblock_sidekick.logutils import logger
from statblock_sidekick.models import Statblock


STATBLOCK_FENCE = re.compile(r"```statblock\n([\s\S]+?)\n```")


class ParseError(Exception):
    """Raised when a statblock document cannot be parsed."""


class StatblockParser:
    """Extracts Statblock data from Markdown text."""

    @staticmethod
    def parse_string(content: str) -> dict[str, Any]:
        """Extract the YAML mapping of the first statblock fence.

        Args:
            content: Full Markdown note content.

        Returns:
            The parsed mapping.

        Raises:
            ParseError: If there is no statblock fence, the YAML is invalid
                        or it is not a mapping.
        """
        match = STATBLOCK_FENCE.search(content)
        if match is None:
            raise ParseError("No statblock found")

        try:
            data = yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid YAML in statblock: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"Statblock must be a mapping, got {type(data).__name__}")

        return data

    @staticmethod
    def parse_statblock(content: str) -> Statblock:
        """Parse and validate a statblock document.

        Raises:
            ParseError: If the text cannot be parsed or fails validation.
        """
        data = StatblockParser.parse_string(content)
        try:
            return Statblock.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Invalid statblock: {e}") from e


def extract_statblock(content: str) -> Statblock | None:
    """Return the Statblock in a note, or None if it cannot be read.

    Failures are logged rather than raised.
    """
    try:
        return StatblockParser.parse_statblock(content)
    except ParseError as e:
        logger.error(f"Failed to parse statblock: {e}")
        return None
