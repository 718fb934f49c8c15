"""Common type aliases shared across the application.

These aliases model JSON-compatible payloads to give the type checker more
context than plain ``Any`` values. They describe the ``details`` payload
carried by API errors.
"""

from __future__ import annotations

from typing import Dict, List, TypeAlias, Union

JSONPrimitive: TypeAlias = Union[str, int, float, bool, None]
JSONValue: TypeAlias = Union[JSONPrimitive, Dict[str, object], List[object]]
JSONDict: TypeAlias = Dict[str, JSONValue]

__all__ = ["JSONPrimitive", "JSONValue", "JSONDict"]
