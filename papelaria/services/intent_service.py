import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional, Union

from papelaria.services.catalog import Catalog, default_catalog


class Intent(str, Enum):
    GREETING = "greeting"  # "oi", "menu", "bom dia"
    SERVICE_KEYWORD = "service_keyword"  # free-text service name, FAQ answer
    FEEDBACK = "feedback"  # 👍 / 👎 and friends
    MENU_CHOICE = "menu_choice"  # "1", "6", "0"
    MEDIA_UPLOAD = "media_upload"  # attachment without a keyword
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ClassifiedIntent:
    kind: Intent
    value: Optional[Union[int, str]] = None


_MENU_LITERAL = re.compile(r"0|[1-9][0-9]*")


def normalize_for_matching(text: str) -> str:
    """Casefold, strip accents and collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", stripped).strip()


@lru_cache(maxsize=256)
def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){re.escape(normalize_for_matching(phrase))}(?!\w)")


def contains_phrase(normalized: str, phrase: str) -> bool:
    return bool(_phrase_pattern(phrase).search(normalized))


def parse_menu_choice(text: str, valid_options: frozenset[int]) -> Optional[int]:
    """Strict integer parse: no sign, no leading zero, no decimals, must be a listed option."""
    candidate = (text or "").strip()
    if not _MENU_LITERAL.fullmatch(candidate):
        return None
    number = int(candidate)
    return number if number in valid_options else None


def is_greeting_message(normalized: str, catalog: Catalog) -> bool:
    return any(contains_phrase(normalized, keyword) for keyword in catalog.greeting_keywords)


def match_service_keyword(normalized: str, catalog: Catalog) -> Optional[str]:
    for service in catalog.services:
        if any(contains_phrase(normalized, keyword) for keyword in service.keywords):
            return service.key
    return None


def match_feedback(normalized: str, catalog: Catalog) -> Optional[str]:
    if normalized in {normalize_for_matching(token) for token in catalog.positive_feedback}:
        return "positive"
    if normalized in {normalize_for_matching(token) for token in catalog.negative_feedback}:
        return "negative"
    return None


def classify(text: str, has_attachment: bool, catalog: Optional[Catalog] = None) -> ClassifiedIntent:
    """Map one inbound message to a single intent; first match wins."""
    catalog = catalog or default_catalog()
    normalized = normalize_for_matching(text)

    if normalized:
        if is_greeting_message(normalized, catalog):
            return ClassifiedIntent(Intent.GREETING)

        service_key = match_service_keyword(normalized, catalog)
        if service_key:
            return ClassifiedIntent(Intent.SERVICE_KEYWORD, service_key)

        feedback = match_feedback(normalized, catalog)
        if feedback:
            return ClassifiedIntent(Intent.FEEDBACK, feedback)

        choice = parse_menu_choice(text, catalog.valid_options)
        if choice is not None:
            return ClassifiedIntent(Intent.MENU_CHOICE, choice)

    if has_attachment:
        return ClassifiedIntent(Intent.MEDIA_UPLOAD)

    return ClassifiedIntent(Intent.UNRECOGNIZED)
