"""
Base domain model with camelCase JSON serialization.

Summaries and results are exported with camelCase keys so they can be
consumed by editor hosts and CI reporters without renaming.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict


def to_camel_case(snake_str: str) -> str:
    """
    Convert snake_case to camelCase.

    Examples:
        >>> to_camel_case("total_files")
        'totalFiles'
        >>> to_camel_case("was_modified")
        'wasModified'
    """
    components = snake_str.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseDomainModel):
        return value.to_json()
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "__fspath__"):
        return os.fspath(value)
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(_serialize(k)): _serialize(v) for k, v in value.items()}
    return value


@dataclass
class BaseDomainModel:
    """
    Base class for domain models.

    - to_json() serializes to camelCase
    - Enum values are serialized by value
    - Paths (anything with __fspath__) are serialized as strings
    """

    def to_json(self) -> Dict[str, Any]:
        """
        Serialize to JSON-compatible dict (camelCase).

        Returns:
            Dictionary with camelCase keys
        """
        return {
            to_camel_case(field.name): _serialize(getattr(self, field.name))
            for field in fields(self)
        }
