import pytest

from papelaria.services.catalog import default_catalog
from papelaria.services.intent_service import (
    Intent,
    classify,
    contains_phrase,
    normalize_for_matching,
    parse_menu_choice,
)

CATALOG = default_catalog()


class TestNormalization:
    def test_strips_accents_and_case(self):
        assert normalize_for_matching("  Olá,   SERVIÇOS ") == "ola, servicos"

    def test_empty(self):
        assert normalize_for_matching("") == ""
        assert normalize_for_matching(None) == ""

    def test_phrase_needs_word_boundary(self):
        assert contains_phrase("oi tudo bem", "oi") is True
        assert contains_phrase("boicote", "oi") is False
        assert contains_phrase("quero um menu!", "menu") is True


class TestMenuChoice:
    @pytest.mark.parametrize("text,expected", [("1", 1), (" 6 ", 6), ("0", 0)])
    def test_valid_numbers(self, text, expected):
        assert parse_menu_choice(text, CATALOG.valid_options) == expected

    @pytest.mark.parametrize("text", ["01", "+1", "-1", "1.0", "1 2", "7", "um", ""])
    def test_rejects_non_strict_or_unlisted(self, text):
        assert parse_menu_choice(text, CATALOG.valid_options) is None


class TestClassify:
    def test_greeting_wins_over_keyword(self):
        result = classify("oi, quanto custa a impressão?", False, CATALOG)
        assert result.kind == Intent.GREETING

    def test_service_keyword(self):
        result = classify("Vocês fazem plastificação?", False, CATALOG)
        assert result.kind == Intent.SERVICE_KEYWORD
        assert result.value == "plastificacao"

    def test_feedback_tokens(self):
        assert classify("👍", False, CATALOG).value == "positive"
        assert classify("Não gostei", False, CATALOG).value == "negative"

    def test_menu_choice(self):
        result = classify("3", False, CATALOG)
        assert result.kind == Intent.MENU_CHOICE
        assert result.value == 3

    def test_attachment_without_text(self):
        assert classify("", True, CATALOG).kind == Intent.MEDIA_UPLOAD

    def test_attachment_caption_keyword_wins(self):
        assert classify("bom dia", True, CATALOG).kind == Intent.GREETING

    def test_attachment_with_plain_caption_is_upload(self):
        assert classify("segue o arquivo", True, CATALOG).kind == Intent.MEDIA_UPLOAD

    def test_unrecognized(self):
        assert classify("qual o endereço?", False, CATALOG).kind == Intent.UNRECOGNIZED

    def test_default_catalog_used_when_missing(self):
        assert classify("menu", False).kind == Intent.GREETING
