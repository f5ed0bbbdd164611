"""Pure text transforms for prompt tokens and glossary terms."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from copydesk_schemas.glossary import GlossaryEntry

_TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
_LOCALE_PATTERN = re.compile(r"^[a-z]{2}-[a-z]{2}$", re.IGNORECASE)
_CONTEXT_WRAP_LIMIT = 100


def normalize_token(name: str) -> str:
    """Normalize a column header or placeholder name to a token key.

    Locale tags such as ``sv-SE`` are lowercased as-is; everything else has
    characters outside ``[A-Za-z0-9_-]`` replaced by ``_`` and is lowercased.

    Args:
        name: Raw header or placeholder name.

    Returns:
        str: Normalized token key.
    """
    stripped = name.strip()
    if _LOCALE_PATTERN.match(stripped):
        return stripped.lower()
    return re.sub(r"[^A-Za-z0-9_\-]", "_", stripped).lower()


def replace_tokens(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{{token}}`` placeholders with known values.

    Placeholders whose key is not in ``values`` are left as written. Any
    failure during substitution yields the template unchanged.

    Args:
        template: Prompt template.
        values: Token values keyed by raw or normalized name.

    Returns:
        str: Template with known tokens replaced.
    """
    try:
        lookup = {normalize_token(key): value for key, value in values.items()}

        def _substitute(match: re.Match[str]) -> str:
            key = normalize_token(match.group(1))
            if key not in lookup:
                return match.group(0)
            return lookup[key] or ""

        return _TOKEN_PATTERN.sub(_substitute, template)
    except (TypeError, AttributeError, re.error):
        return template


def build_context_block(values: Mapping[str, str]) -> str:
    """Render non-empty values as a trailing context block for prompts.

    Args:
        values: Token values in display order.

    Returns:
        str: Context block, or an empty string when nothing is set.
    """
    lines: list[str] = []
    for key, value in values.items():
        if not value or not value.strip():
            continue
        display = f'"""{value}"""' if len(value) > _CONTEXT_WRAP_LIMIT else value
        lines.append(f"{normalize_token(key)}: {display}")
    if not lines:
        return ""
    return "\n\nContext:\n" + "\n".join(lines)


def apply_glossary(
    text: str, entries: Sequence[GlossaryEntry], target_lang: str
) -> str:
    """Replace glossary source terms with their target-language terms.

    Longer terms are applied first. Matching is case-insensitive on word
    boundaries and the replacement mirrors the casing of each match.

    Args:
        text: Translated text.
        entries: Glossary entries.
        target_lang: Two-letter target language code.

    Returns:
        str: Text with glossary terms applied.
    """
    if not text or not entries:
        return text
    mappings = [
        (entry.source, entry.targets[target_lang])
        for entry in entries
        if entry.source and entry.targets.get(target_lang)
    ]
    mappings.sort(key=lambda pair: len(pair[0]), reverse=True)
    result = text
    for source, target in mappings:
        pattern = re.compile(rf"\b{re.escape(source)}\b", re.IGNORECASE)
        result = pattern.sub(
            lambda match, t=target: _match_case(match.group(0), t), result
        )
    return result


def _match_case(matched: str, target: str) -> str:
    if matched == matched.upper():
        return target.upper()
    if matched == matched.lower():
        return target.lower()
    if matched[0] == matched[0].upper():
        return target[0].upper() + target[1:].lower()
    return target


def build_glossary_context(
    entries: Sequence[GlossaryEntry], source_lang: str, target_lang: str
) -> str:
    """Render glossary rules for inclusion in a translation prompt.

    Args:
        entries: Glossary entries.
        source_lang: Two-letter source language code.
        target_lang: Two-letter target language code.

    Returns:
        str: Prompt suffix, or an empty string when no entry applies.
    """
    relevant = [entry for entry in entries if entry.targets.get(target_lang)]
    if not relevant:
        return ""
    source_name = language_name(source_lang)
    target_name = language_name(target_lang)
    lines = [
        f'- "{entry.source}" => "{entry.targets[target_lang]}"' for entry in relevant
    ]
    return (
        "\n\nGlossary (måste följas – exakt ordval):\n"
        f"{source_name} → {target_name}:\n"
        + "\n".join(lines)
        + "\n\nRegler: använd exakt målterm, ändra inte form/böjning, behåll casing "
        "så nära källans stil som möjligt. Översätt övrig text rakt av, bevara "
        "markup/struktur."
    )


LANGUAGE_NAMES: dict[str, str] = {
    "sv": "svenska",
    "da": "danska",
    "no": "norska",
    "nb": "norska",
    "en": "engelska",
    "de": "tyska",
    "fr": "franska",
    "es": "spanska",
    "it": "italienska",
    "pt": "portugisiska",
    "nl": "holländska",
    "pl": "polska",
    "ru": "ryska",
    "fi": "finska",
}


def language_name(code: str) -> str:
    """Return the Swedish display name for a language code.

    Args:
        code: Two-letter language code.

    Returns:
        str: Display name, or the code itself when unknown.
    """
    return LANGUAGE_NAMES.get(code, code)
