"""Split integration source into capability units.

An integration source is an optional header of ``@key value`` directives
followed by capability blocks::

    @integration github
    @auth oauth2
    @description "GitHub repositories and issues"

    @capability list_repos(owner)
    response = http.get(f"https://api.github.com/users/{owner}/repos")
    return response.data

Both ``extract`` and ``extract_manifest`` are total: malformed input yields
fewer units (or an empty manifest), never an exception.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

_MARKER = re.compile(r"^\s*@capability\s+(\w+)\s*\(([^)\n]*)\)\s*$")
_MARKER_PREFIX = re.compile(r"^\s*@capability\b")
_DIRECTIVE = re.compile(r"^\s*@(\w+)(?:\s+(.*?))?\s*$")


@dataclass(frozen=True)
class CapabilityUnit:
    """One ``@capability`` block.

    Attributes:
        name: Capability name as written after the marker.
        parameters: Declared parameter names, in order.
        raw_body: Text from the line after the marker up to the next marker.
        line: 1-based line number of the marker.
        body_line: 1-based line number of the first body line.
    """

    name: str
    parameters: Tuple[str, ...]
    raw_body: str
    line: int = 0
    body_line: int = 0


@dataclass(frozen=True)
class IntegrationManifest:
    """Directives found before the first capability."""

    name: Optional[str] = None
    auth: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    extras: Tuple[Tuple[str, str], ...] = ()

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "auth": self.auth,
            "category": self.category,
            "description": self.description,
            "extras": dict(self.extras),
        }


def split_parameters(text: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in text.split(",") if p.strip())


def extract(source_text: str) -> List[CapabilityUnit]:
    """Return the capability units of ``source_text`` in source order.

    Duplicate names are kept; deciding between them is up to the caller.
    """
    if not isinstance(source_text, str) or not source_text:
        return []

    units: List[CapabilityUnit] = []
    lines = source_text.splitlines()
    current: Optional[Tuple[str, Tuple[str, ...], int]] = None
    body: List[str] = []

    def close() -> None:
        if current is not None:
            name, params, line_no = current
            units.append(
                CapabilityUnit(
                    name=name,
                    parameters=params,
                    raw_body="\n".join(body),
                    line=line_no,
                    body_line=line_no + 1,
                )
            )

    for index, line in enumerate(lines, start=1):
        if not _MARKER_PREFIX.match(line):
            if current is not None:
                body.append(line)
            continue
        close()
        current, body = None, []
        match = _MARKER.match(line)
        if match is None:
            logger.warning("extract: skipping malformed capability marker on line %d", index)
            continue
        current = (match.group(1), split_parameters(match.group(2)), index)
    close()
    return units


def extract_manifest(source_text: str) -> IntegrationManifest:
    """Read the ``@key value`` header preceding the first capability."""
    if not isinstance(source_text, str):
        return IntegrationManifest()

    known: Dict[str, str] = {}
    extras: List[Tuple[str, str]] = []
    for line in source_text.splitlines():
        if _MARKER_PREFIX.match(line):
            break
        match = _DIRECTIVE.match(line)
        if match is None:
            continue
        key, value = match.group(1), (match.group(2) or "").strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        if key == "integration":
            key = "name"
        if key in ("name", "auth", "category", "description"):
            known[key] = value
        else:
            extras.append((key, value))
    return IntegrationManifest(
        name=known.get("name"),
        auth=known.get("auth"),
        category=known.get("category"),
        description=known.get("description"),
        extras=tuple(extras),
    )
