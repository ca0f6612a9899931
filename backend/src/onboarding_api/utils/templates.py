"""Placeholder rendering for message templates."""

import re
from collections.abc import Mapping
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*\}\}")


def render_template(template: str, values: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders with values.

    Placeholders without a value are left untouched. ``None`` renders as an
    empty string.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template or "")
