"""Deterministic offline transforms used when the live backend is unavailable."""

from __future__ import annotations

from copydesk_schemas.llm import RewriteDocument

_INTRO_LIMIT = 240
_DEFAULT_HIGHLIGHTS = (
    "Hög kvalitet och pålitlighet",
    "Användarvänlig design och funktionalitet",
    "Mångsidig användning",
    "Kostnadseffektiv lösning",
    "Snabb leverans och support",
)


def stub_rewrite(document: RewriteDocument) -> str:
    """Render a fixed Swedish product template from the document fields.

    Args:
        document: Product document.

    Returns:
        str: Rewritten document.
    """
    snippet = document.text[:_INTRO_LIMIT].strip()
    if document.attributes:
        highlights = [
            f"{key}: {value}" for key, value in document.attributes.items()
        ]
    else:
        highlights = list(_DEFAULT_HIGHLIGHTS)
    bullet_lines = "\n".join(f"- {line}" for line in highlights)
    tone = document.tone_hint or "professionell"
    return (
        "Titel (SEO/UX-optimerad)\n"
        f"{document.name} - Professionell lösning\n\n"
        "Kort introduktion\n"
        f"{snippet}\n\n"
        "Produktbeskrivning\n"
        "Denna produkt erbjuder pålitlig funktionalitet för dina behov. Med sin "
        "kvalitetsbyggnad och användarvänliga design ger den dig en smidig "
        "upplevelse. Perfekt för både professionellt och privat bruk.\n\n"
        "Höjdpunkter (för UX, CRO och AI Overview)\n"
        f"{bullet_lines}\n\n"
        "Meta (valfritt)\n"
        f"Meta Title: {document.name} - Professionell lösning för dina behov\n"
        f"Meta Description: Upptäck {document.name} - en pålitlig och "
        "användarvänlig produkt som ger dig kvalitet och funktionalitet. "
        "Beställ nu för snabb leverans!\n"
        f"Ton: {tone}"
    )


def stub_translate(text: str, target_lang: str) -> str:
    """Mark a text as translated while keeping its structure line for line.

    Args:
        text: Source text.
        target_lang: Two-letter target language code.

    Returns:
        str: Text prefixed with a language comment; a leading H1 gets a suffix.
    """
    code = target_lang.upper()
    lines = text.split("\n")
    rendered = [f"<!-- lang:{code} -->"]
    for index, line in enumerate(lines):
        if index == 0 and line.startswith("# "):
            rendered.append(f"{line} [{code}]")
        else:
            rendered.append(line)
    return "\n".join(rendered).strip()
