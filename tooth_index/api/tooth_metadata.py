"""
Tooth manifest and request header helpers for the read API.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Dict, List

import jsonschema
from jsonschema.exceptions import best_match

from tooth_index.core.exceptions import NormalizationError


SEMVER_PATTERN = (
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?'
    r'(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$'
)
SEMVER_RE = re.compile(SEMVER_PATTERN)

# format_version 2 tooth.json, limited to the fields the read API serves.
TOOTH_SCHEMA = {
    "type": "object",
    "required": ["format_version", "tooth", "version", "info"],
    "properties": {
        "format_version": {"const": 2},
        "tooth": {"type": "string"},
        "version": {"type": "string", "pattern": SEMVER_PATTERN},
        "info": {
            "type": "object",
            "required": ["name", "description", "author"],
            "properties": {
                "name": {"type": "string"},
                "description": {"type": "string"},
                "author": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        },
        "dependencies": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
    },
}

_tooth_validator = jsonschema.Draft7Validator(TOOTH_SCHEMA)

_LANGUAGE_RE = re.compile(r'^([a-zA-Z]+)(?:-[a-zA-Z0-9]+){0,2}$')


def is_valid_version_string(version: str) -> bool:
    """Check whether a string is a semantic version without a ``v`` prefix."""
    return SEMVER_RE.match(version) is not None


@dataclass
class ToothMetadata:
    """The parts of a format_version 2 ``tooth.json`` served by the read API."""
    tooth: str
    version: str
    name: str
    description: str
    author: str
    tags: List[str] = field(default_factory=list)
    dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json_string(cls, text: str) -> "ToothMetadata":
        """
        Parse a tooth manifest.

        Args:
            text: Raw ``tooth.json`` content.

        Returns:
            Parsed manifest.

        Raises:
            NormalizationError: If the manifest is not valid JSON or does not
                match the format_version 2 schema.
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise NormalizationError(f"Invalid tooth.json: {e}")

        error = best_match(_tooth_validator.iter_errors(data))
        if error is not None:
            location = ".".join(str(part) for part in error.absolute_path) or "<root>"
            raise NormalizationError(f"Invalid tooth.json at {location}: {error.message}")

        info = data["info"]
        return cls(
            tooth=data["tooth"],
            version=data["version"],
            name=info["name"],
            description=info["description"],
            author=info["author"],
            tags=list(info.get("tags") or []),
            dependencies=dict(data.get("dependencies") or {}),
        )


def parse_accept_language(header: str) -> List[str]:
    """
    Extract the distinct language codes of an Accept-Language header.

    ``zh-CN,zh;q=0.9,en;q=0.8`` yields ``["zh", "en"]``. Codes are ordered by
    quality, highest first; wildcards and malformed entries are ignored.

    Args:
        header: Header value, possibly empty.

    Returns:
        Language codes without region, highest quality first.
    """
    entries = []
    for position, part in enumerate((header or "").split(",")):
        pieces = [piece.strip() for piece in part.split(";")]
        match = _LANGUAGE_RE.match(pieces[0])
        if match is None:
            continue

        quality = 1.0
        for param in pieces[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0

        entries.append((-quality, position, match.group(1)))

    return list(dict.fromkeys(code for _, _, code in sorted(entries)))
