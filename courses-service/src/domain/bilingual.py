"""Двуязычные поля (title/description).

На вход приходит что угодно: объект {primary, secondary}, старый объект
{en, tg}, тот же объект сериализованный в JSON-строку или просто строка из
старых записей. На выходе всегда BilingualText; разбор никогда не падает.
"""
import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BilingualText:
    primary: str = ""
    secondary: str = ""

    @property
    def display(self) -> str:
        return self.primary or self.secondary

    def is_blank(self) -> bool:
        return not (self.primary.strip() or self.secondary.strip())

    def to_dict(self) -> dict[str, str]:
        return {"primary": self.primary, "secondary": self.secondary}


# (основной язык, второй язык): текущая форма и форма старых записей
_KEY_PAIRS = (("primary", "secondary"), ("en", "tg"))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _from_mapping(value: dict) -> BilingualText | None:
    for primary_key, secondary_key in _KEY_PAIRS:
        if primary_key in value or secondary_key in value:
            return BilingualText(
                primary=_as_text(value.get(primary_key)),
                secondary=_as_text(value.get(secondary_key)),
            )
    return None


def _from_text(raw: str) -> BilingualText:
    stripped = raw.strip()
    if not stripped.startswith(("{", '"')):
        return BilingualText(primary=raw)
    try:
        decoded = json.loads(stripped)
    except (ValueError, RecursionError):
        return BilingualText(primary=raw)
    if isinstance(decoded, dict):
        parsed = _from_mapping(decoded)
        return parsed if parsed is not None else BilingualText(primary=raw)
    if isinstance(decoded, str):
        return BilingualText(primary=decoded)
    return BilingualText(primary=raw)


def parse_bilingual(value: Any) -> BilingualText:
    if value is None:
        return BilingualText()
    if isinstance(value, BilingualText):
        return value
    if isinstance(value, dict):
        parsed = _from_mapping(value)
        return parsed if parsed is not None else BilingualText()
    if isinstance(value, str):
        return _from_text(value)
    return BilingualText(primary=_as_text(value))
