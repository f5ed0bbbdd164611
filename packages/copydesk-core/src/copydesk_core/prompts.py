"""Prompt templates and prompt assembly for gateway calls."""

from __future__ import annotations

import json
from dataclasses import dataclass

from copydesk_core.text_transforms import (
    build_context_block,
    language_name,
    replace_tokens,
)
from copydesk_schemas.items import ProductItem, UIStringItem
from copydesk_schemas.llm import RewriteDocument
from copydesk_schemas.primitives import JobType

REWRITE_SYSTEM_PROMPT = (
    "Du är en senior e-handelscopywriter och SEO-strateg. Skriv om svenska "
    "produkttexter så att de blir lättläsa, säljande men sakliga, och optimerade "
    "för UX, CRO, SEO och AI Overview. Bevara fakta, varumärken och siffror "
    "exakt. Inga hallucinationer."
)

REWRITE_USER_TEMPLATE = (
    "Skriv om denna produkt enligt rubrikerna nedan. Kort, tydligt språk. "
    "Inkludera viktiga sökord. Bevara varumärken exakt."
    """

Originalnamn: {{name}}
Originalbeskrivning: {{description}}
Attribut (frivilligt): {{attributes}}
Ton: {{tone}}

Rubriker och format (klistra in precis så här i svaret):

Titel (SEO/UX-optimerad)
{{din titel här}}

Kort introduktion
{{din korta intro, 1–2 meningar}}

Produktbeskrivning
{{3–5 korta meningar med vad man gör, upplever, får}}

Höjdpunkter (för UX, CRO och AI Overview)
{{punkt 1, fakta/nytta}}
{{punkt 2, fakta/nytta}}
{{punkt 3, fakta/nytta}}

Meta (valfritt)
Meta Title: {{≤ 60 tecken}}
Meta Description: {{≤ 155 tecken, inkl CTA}}

Regler: inga emojis, inga garantier/lagtext, inga påhittade features."""
)

TRANSLATE_SYSTEM_TEMPLATE = (
    "Du är en professionell översättare. "
    "Översätt svensk text till {{target_language}}."
    """

Regler:
- Översätt verbatim utan att ändra struktur/HTML/markdown
- Lägg INTE till #/## rubriknivåer, listtecken eller extra text
- Behåll {{...}}, radbrytningar, taggar och ordningen exakt
- Översätt endast textnoder"""
)

TRANSLATE_USER_TEMPLATE = (
    "Översätt svenska → {{target_language}} verbatim. "
    "Behåll exakt struktur/HTML/markdown. "
    "Lägg inte till rubriker eller '#'-tecken. "
    "Bevara alla taggar, klamrar {{...}}, listor, radbrytningar och ordning. "
    "Översätt endast textnoder:\n\n{{text}}"
)


@dataclass(frozen=True)
class PromptTemplates:
    """System and user templates for both gateway operations."""

    rewrite_system: str = REWRITE_SYSTEM_PROMPT
    rewrite_user: str = REWRITE_USER_TEMPLATE
    translate_system: str = TRANSLATE_SYSTEM_TEMPLATE
    translate_user: str = TRANSLATE_USER_TEMPLATE


def build_rewrite_messages(
    document: RewriteDocument,
    templates: PromptTemplates,
    context: dict[str, str] | None = None,
) -> tuple[str, str]:
    """Build the system and user prompts for a rewrite.

    Args:
        document: Product document to rewrite.
        templates: Prompt templates.
        context: Extra token values such as upload and batch names.

    Returns:
        tuple[str, str]: System prompt and user prompt.
    """
    attributes = (
        json.dumps(document.attributes, ensure_ascii=False)
        if document.attributes
        else "Inga attribut"
    )
    values = {
        **(context or {}),
        "name": document.name,
        "description": document.text,
        "attributes": attributes,
        "tone": document.tone_hint or "professionell",
    }
    system = replace_tokens(templates.rewrite_system, values)
    user = replace_tokens(templates.rewrite_user, values)
    return system, user + build_context_block(context or {})


def build_translate_messages(
    text: str,
    target_lang: str,
    templates: PromptTemplates,
    glossary_context: str = "",
) -> tuple[str, str]:
    """Build the system and user prompts for a translation.

    Args:
        text: Source text.
        target_lang: Two-letter target language code.
        templates: Prompt templates.
        glossary_context: Optional glossary rules appended to the system prompt.

    Returns:
        tuple[str, str]: System prompt and user prompt.
    """
    values = {"target_language": language_name(target_lang), "text": text}
    system = replace_tokens(templates.translate_system, values) + glossary_context
    user = replace_tokens(templates.translate_user, values)
    return system, user


def build_prompt_values(
    item: ProductItem | UIStringItem,
    *,
    job_type: JobType,
    upload_name: str | None = None,
    batch_name: str | None = None,
    target_lang: str | None = None,
) -> dict[str, str]:
    """Collect system tokens and item data for prompt substitution.

    Args:
        item: Work item being processed.
        job_type: Job type of the batch.
        upload_name: Owning upload name.
        batch_name: Batch name.
        target_lang: Target language for translation prompts.

    Returns:
        dict[str, str]: Token values with item data taking precedence.
    """
    values = {
        "targetLang": target_lang or "",
        "jobType": str(job_type),
        "uploadName": upload_name or "",
        "batchName": batch_name or "",
    }
    if isinstance(item, ProductItem):
        for key, value in (item.attributes or {}).items():
            values[key] = value if isinstance(value, str) else json.dumps(value)
    else:
        values.update(item.values)
    return values
