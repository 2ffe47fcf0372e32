"""Render a Statblock back to a fenced ```statblock``` YAML block.

The output is what ``extract_statblock`` reads, so a document survives a
parse/format round trip.
"""

from __future__ import annotations

from typing import Any

import yaml

from statblock_sidekick.logutils import logger
from statblock_sidekick.models import Statblock


class _StatblockDumper(yaml.SafeDumper):
    """SafeDumper that keeps short scalar lists (like ``stats``) on one line."""


def _represent_list(dumper: yaml.SafeDumper, data: list[Any]) -> yaml.Node:
    flow = bool(data) and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in data)
    return dumper.represent_sequence("tag:yaml.org,2002:seq", data, flow_style=flow)


_StatblockDumper.add_representer(list, _represent_list)


def statblock_to_yaml(statblock: Statblock) -> str:
    """Dump a statblock as YAML, omitting empty fields and keeping field order."""
    data = statblock.model_dump(mode="json", exclude_none=True)
    return yaml.dump(
        data,
        Dumper=_StatblockDumper,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )


def format_statblock(statblock: Statblock) -> str:
    """Format a Statblock as a Markdown ```statblock``` fence."""
    content = statblock_to_yaml(statblock)
    logger.debug(f"Formatted statblock for {statblock.name}")
    return f"\n```statblock\n{content}\n```"
