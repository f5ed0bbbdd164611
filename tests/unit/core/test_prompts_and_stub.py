"""Unit tests for prompt assembly and stub transforms."""

from __future__ import annotations

from copydesk_core.prompts import (
    PromptTemplates,
    build_prompt_values,
    build_rewrite_messages,
    build_translate_messages,
)
from copydesk_core.stub import stub_rewrite, stub_translate
from copydesk_schemas.llm import RewriteDocument
from copydesk_schemas.primitives import JobType
from tests.helpers.records import build_product, build_ui_string


def test_rewrite_messages_fill_document_fields() -> None:
    """Rewrite prompts carry the document and a context block."""
    document = RewriteDocument(
        name="Termos", text="Håller värmen.", attributes={"Färg": "Svart"}
    )

    system, user = build_rewrite_messages(
        document, PromptTemplates(), {"uploadName": "Vår"}
    )

    assert "e-handelscopywriter" in system
    assert "Originalnamn: Termos" in user
    assert 'Attribut (frivilligt): {"Färg": "Svart"}' in user
    assert "Ton: professionell" in user
    assert "{{din titel här}}" in user
    assert user.endswith("\n\nContext:\nuploadname: Vår")


def test_translate_messages_name_target_language() -> None:
    """Translation prompts name the language and append glossary rules."""
    system, user = build_translate_messages(
        "Hej", "da", PromptTemplates(), "\n\nGlossary"
    )

    assert "till danska" in system
    assert system.endswith("\n\nGlossary")
    assert user.endswith("\n\nHej")


def test_prompt_values_prefer_item_data() -> None:
    """Item attributes and values are merged over system tokens."""
    product = build_product(0).model_copy(update={"attributes": {"vikt": 2}})
    ui_item = build_ui_string(0, {"sv-SE": "Spara", "en-US": "Save"})

    product_values = build_prompt_values(
        product, job_type=JobType.PRODUCT_TEXTS, upload_name="Vår"
    )
    ui_values = build_prompt_values(
        ui_item, job_type=JobType.UI_STRINGS, target_lang="da"
    )

    assert product_values["vikt"] == "2"
    assert product_values["uploadName"] == "Vår"
    assert ui_values["en-US"] == "Save"
    assert ui_values["targetLang"] == "da"


def test_stub_rewrite_uses_attributes_and_intro_snippet() -> None:
    """The stub template lists attributes and quotes the first 240 characters."""
    document = RewriteDocument(
        name="Termos",
        text="a" * 300,
        attributes={"Färg": "Svart"},
        tone_hint="lekfull",
    )

    result = stub_rewrite(document)

    assert result.startswith(
        "Titel (SEO/UX-optimerad)\nTermos - Professionell lösning"
    )
    assert "Kort introduktion\n" + "a" * 240 + "\n\n" in result
    assert "- Färg: Svart" in result
    assert result.endswith("Ton: lekfull")


def test_stub_rewrite_defaults_without_attributes() -> None:
    """Without attributes the stub lists default highlights."""
    result = stub_rewrite(RewriteDocument(name="Termos", text="Kort."))

    assert "- Hög kvalitet och pålitlighet" in result
    assert result.endswith("Ton: professionell")


def test_stub_rewrite_is_deterministic() -> None:
    """The same document always yields the same text."""
    document = RewriteDocument(name="Termos", text="Kort.")

    assert stub_rewrite(document) == stub_rewrite(document)


def test_stub_translate_marks_language_and_heading() -> None:
    """The stub prefixes a language comment and tags a leading heading."""
    result = stub_translate("# Termos\nHåller värmen.\n", "da")

    assert result == "<!-- lang:DA -->\n# Termos [DA]\nHåller värmen."


def test_stub_translate_leaves_plain_text_lines() -> None:
    """Texts without a heading keep every line."""
    assert stub_translate("Spara", "en") == "<!-- lang:EN -->\nSpara"
