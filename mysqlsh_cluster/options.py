"""
Rendering of option sets into mysqlsh Python literals.
"""

import math
from typing import Any, Mapping

_ESCAPES = {
    '\\': '\\\\',
    "'": "\\'",
    '"': '\\"',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
}


def quote(value: str) -> str:
    """Render ``value`` as a single-quoted Python string literal."""
    escaped = ''.join(_ESCAPES.get(ch, ch) for ch in str(value))
    return f"'{escaped}'"


def format_value(value: Any) -> str:
    """Render a single option value."""
    if isinstance(value, bool):
        return 'True' if value else 'False'
    if isinstance(value, float) and not math.isfinite(value):
        # repr() gives nan/inf, which are not Python literals
        return f"float('{value!r}')"
    if isinstance(value, (int, float)):
        return repr(value)
    return quote(value)


def format_options(options: Mapping[str, Any]) -> str:
    """
    Render options as a Python dict literal, e.g. ``{'key': 'value'}``.

    Keys are sorted so the same options always render the same command.
    None values are left out.
    """
    items = [
        f"{quote(key)}: {format_value(value)}"
        for key, value in sorted(options.items())
        if value is not None
    ]
    return '{' + ', '.join(items) + '}'


class Options(dict):
    """Options passed to dba/cluster calls, e.g. ``Options(memberSslMode='REQUIRED')``.

    str() gives the literal that is embedded in the generated command.
    """

    def __str__(self):
        return format_options(self)
