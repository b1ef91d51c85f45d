"""snake_case <-> CamelCase conversion for wire keys and model field names."""

import re

_SNAKE_SEGMENT = re.compile(r"_\w")
_UPPER_RUN = re.compile(r"\.?([A-Z]+)")


def snake_to_camel(value: str) -> str:
    """
    Convert a snake_case key to the CamelCase field name used on models.
    
    The first character is uppercased too, so the result is PascalCase:
    ``user_id`` -> ``UserId``.
    """
    if not value:
        return value
    converted = _SNAKE_SEGMENT.sub(lambda m: m.group(0)[1].upper(), value)
    return converted[0].upper() + converted[1:]


def camel_to_snake(value: str) -> str:
    """
    Convert a CamelCase field name back to snake_case.
    
    Each run of uppercase letters becomes one ``_``-prefixed lowercase chunk,
    so consecutive capitals collapse: ``UserID`` -> ``user_id``, ``ID`` -> ``id``.
    """
    converted = _UPPER_RUN.sub(lambda m: "_" + m.group(1).lower(), value)
    return re.sub(r"^_", "", converted)
