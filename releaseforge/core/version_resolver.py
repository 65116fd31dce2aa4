"""Staged-to-released version resolution.

The resolver is a pluggable, pure function.  ``truncate_at_hyphen`` is only a
starting point; projects with richer version schemes pass their own callable
to the orchestrator.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import NamedTuple, Protocol

from releaseforge.config import DEFAULT_SNAPSHOT_EXPRESSIONS


class VersionResolver(Protocol):
    """Maps a staged version string to its released form.

    Implementations must be deterministic, side-effect free and must not
    raise for any input string.
    """

    def __call__(self, stage_version: str, snapshot_expression: str) -> str: ...


def truncate_at_hyphen(stage_version: str, snapshot_expression: str) -> str:
    """Default resolver: keep everything before the first hyphen.

    ``"2.15-SNAPSHOT"`` -> ``"2.15"``; a version without a hyphen is
    returned as-is.
    """
    return (stage_version or "").split("-", 1)[0]


class ModuleCoordinate(NamedTuple):
    id: str
    stage_version: str


def resolve_module_id(
    module_id: str,
    snapshot_expression: str,
    resolver: VersionResolver = truncate_at_hyphen,
) -> ModuleCoordinate:
    """Resolve the version segment (the last ``:`` token) of a coordinate."""
    tokens = module_id.split(":")
    stage_version = tokens.pop()
    tokens.append(resolver(stage_version, snapshot_expression))
    return ModuleCoordinate(id=":".join(tokens), stage_version=stage_version)


def is_supported_expression(
    snapshot_expression: str,
    expressions: Mapping[str, str] = DEFAULT_SNAPSHOT_EXPRESSIONS,
) -> bool:
    return snapshot_expression in expressions


def is_snapshot_version(
    version: str,
    snapshot_expression: str,
    expressions: Mapping[str, str] = DEFAULT_SNAPSHOT_EXPRESSIONS,
) -> bool:
    """Whether *version* carries the pre-release marker the expression names.

    Unknown expression names are matched literally.
    """
    pattern = expressions.get(snapshot_expression, re.escape(snapshot_expression))
    return re.search(pattern, version or "") is not None
