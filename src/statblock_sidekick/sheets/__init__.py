"""Statblock document codec (Markdown ```statblock``` fences ↔ Statblock)."""

from statblock_sidekick.sheets.parser import ParseError, StatblockParser, extract_statblock
from statblock_sidekick.sheets.renderer import format_statblock, statblock_to_yaml

__all__ = [
    "ParseError",
    "StatblockParser",
    "extract_statblock",
    "format_statblock",
    "statblock_to_yaml",
]
