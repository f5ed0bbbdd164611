"""Post-processing guard for translated heading structure."""

from __future__ import annotations

import re

_SINGLE_HEADING_MARKER = re.compile(r"^#(?!#)\s?", re.MULTILINE)


def clean_translation_format(source_text: str, translated_text: str) -> str:
    """Strip top-level heading markers the source never had.

    When the source does not open with ``#``, a single ``#`` at the start of
    any translated line is removed along with one following whitespace
    character. Deeper markers such as ``##`` are left alone, as is every
    translation whose source opens with a heading.

    Args:
        source_text: Text that was translated.
        translated_text: Backend output.

    Returns:
        str: Translated text with hallucinated markers removed.
    """
    if source_text.strip().startswith("#"):
        return translated_text
    return _SINGLE_HEADING_MARKER.sub("", translated_text)
