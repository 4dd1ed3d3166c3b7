import os
import sys
import pytest

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from src.domain.bilingual import BilingualText, parse_bilingual

@pytest.mark.parametrize("value, expected", [
    (None, BilingualText()),
    ({"primary": "Intro", "secondary": "Муқаддима"}, BilingualText("Intro", "Муқаддима")),
    ({"en": "Intro", "tg": "Муқаддима"}, BilingualText("Intro", "Муқаддима")),
    ({"primary": "Only primary"}, BilingualText("Only primary", "")),
    ('{"primary": "Intro", "secondary": "Муқаддима"}', BilingualText("Intro", "Муқаддима")),
    ('{"en": "Intro", "tg": "Муқаддима"}', BilingualText("Intro", "Муқаддима")),
    ("Plain title", BilingualText("Plain title", "")),
    ('"Quoted"', BilingualText("Quoted", "")),
])
def test_parse_bilingual_shapes(value, expected):
    """Тест разбора всех форм двуязычного поля"""
    assert parse_bilingual(value) == expected

def test_parse_bilingual_malformed_json_is_plain_text():
    """Тест: битый JSON не падает, а становится основным текстом"""
    assert parse_bilingual('{"primary": "Intro"') == BilingualText('{"primary": "Intro"', "")

def test_parse_bilingual_unknown_mapping():
    """Тест: объект без известных ключей даёт пустой текст"""
    assert parse_bilingual({"fr": "Bonjour"}) == BilingualText()

def test_parse_bilingual_non_string_values():
    """Тест: числа и прочее приводятся к строке"""
    assert parse_bilingual(42) == BilingualText("42", "")
    assert parse_bilingual({"primary": 1, "secondary": None}) == BilingualText("1", "")

def test_parse_bilingual_passthrough():
    """Тест: готовый BilingualText возвращается как есть"""
    text = BilingualText("a", "b")
    assert parse_bilingual(text) is text

def test_bilingual_helpers():
    """Тест display/is_blank/to_dict"""
    assert BilingualText("", "Дарс").display == "Дарс"
    assert BilingualText("  ", "").is_blank()
    assert not BilingualText("", "x").is_blank()
    assert BilingualText("a", "b").to_dict() == {"primary": "a", "secondary": "b"}
