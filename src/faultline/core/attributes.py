"""Attribute filtering helpers.

Report and event attributes are restricted to primitive values. Values of
any other kind are discarded at the boundary rather than rejected.
"""

from collections.abc import Mapping
from typing import Any

AttributeValue = str | int | float | bool
Attributes = dict[str, AttributeValue]

_PRIMITIVE_TYPES = (str, int, float, bool)


def is_primitive(value: Any) -> bool:
    """Return True if value is a string, number or boolean."""
    return isinstance(value, _PRIMITIVE_TYPES)


def primitive_attributes(attributes: Mapping[str, Any] | None) -> Attributes:
    """Keep only the primitive values of a mapping.

    Args:
        attributes: Arbitrary attribute mapping (may be None).

    Returns:
        New dict holding the string-keyed primitive entries, in order.
    """
    if not attributes:
        return {}
    return {
        str(key): value for key, value in attributes.items() if is_primitive(value)
    }


def _stringify(value: AttributeValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def stringify_attributes(attributes: Mapping[str, Any] | None) -> dict[str, str]:
    """Filter a mapping to primitive values and convert them to strings.

    Booleans render as ``true``/``false``. Values whose string form is empty
    are dropped.
    """
    result: dict[str, str] = {}
    for key, value in primitive_attributes(attributes).items():
        text = _stringify(value)
        if text:
            result[key] = text
    return result
