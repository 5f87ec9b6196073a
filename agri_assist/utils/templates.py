"""
Audio prompt templates

Templates carry ``{placeholder}`` tokens that are filled with analysis fields
before the text is sent for speech synthesis.
"""
import re
from typing import Dict, Iterable

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")
ITEM_SEPARATOR = ". "


def join_items(items: Iterable[str]) -> str:
    """Join list fields into one spoken sentence run"""
    return ITEM_SEPARATOR.join(items)


def fill_template(template: str, values: Dict[str, str]) -> str:
    """
    Replace every known placeholder in one pass.

    Inserted values are not scanned again, so a value that itself contains
    ``{name}`` is kept verbatim. Unknown placeholders are left as they are.
    """
    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return values[key]
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, template)
