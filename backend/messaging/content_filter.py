"""Redact personal contact details from chat messages.

Pattern categories run in a fixed order and are all applied. Detection is
done against the raw text; replacement is applied to the progressively
redacted text, so a span already redacted by an earlier category is not
matched again.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger("souqify.filter")

REDACTION_TOKEN = "[HIDDEN]"

PHONE_PATTERNS = (
    re.compile(r"\b0?1[0125]\d{8}\b"),  # 01XXXXXXXXX
    re.compile(r"\b(\+?20|0020)\s?1[0125]\s?\d{3,4}\s?\d{4}\b"),  # +20 1X XXXX XXXX
    re.compile(r"\b\d{4}\s?\d{3}\s?\d{4}\b"),  # XXXX XXX XXXX
)

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")

URL_PATTERNS = (
    re.compile(r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)"),
    re.compile(r"\bwww\.[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)"),
    re.compile(r"\b[a-zA-Z0-9-]+\.(com|net|org|info|eg|me|io|co|online|site)\b", re.IGNORECASE),
)

SOCIAL_PATTERNS = (
    re.compile(r"@[a-zA-Z0-9_]{3,}"),
    re.compile(
        r"\b(facebook|fb|whatsapp|wa|telegram|tg|instagram|insta|twitter|tiktok)\.com/[a-zA-Z0-9._-]+",
        re.IGNORECASE,
    ),
    re.compile(r"\b(facebook|fb|whatsapp|wa|telegram|instagram|insta):\s?[a-zA-Z0-9._-]+", re.IGNORECASE),
)

CONTACT_PROMPT_PATTERNS = (
    re.compile(r"\b(call|text|message|whatsapp|wa|telegram)\s+(me|m)\s+(on|at|@)?\s*:?\s*\d{4,}", re.IGNORECASE),
)

CATEGORIES: tuple[tuple[str, tuple[re.Pattern, ...]], ...] = (
    ("phone", PHONE_PATTERNS),
    ("email", (EMAIL_PATTERN,)),
    ("url", URL_PATTERNS),
    ("social", SOCIAL_PATTERNS),
    ("contact", CONTACT_PROMPT_PATTERNS),
)


@dataclass(frozen=True)
class FilterResult:
    filtered_text: str
    was_filtered: bool
    matches: dict[str, list[str]] = field(default_factory=dict)

    @property
    def categories(self) -> list[str]:
        return sorted({key.rsplit("_", 1)[0] for key in self.matches})


def filter_text(text: str, *, replacement: str = REDACTION_TOKEN) -> FilterResult:
    filtered = text
    matches: dict[str, list[str]] = {}

    for category, patterns in CATEGORIES:
        for index, pattern in enumerate(patterns):
            found = [m.group(0) for m in pattern.finditer(text)]
            if not found:
                continue
            matches[f"{category}_{index}"] = found
            filtered = pattern.sub(replacement, filtered)

    return FilterResult(filtered_text=filtered, was_filtered=bool(matches), matches=matches)


def contains_personal_info(text: str) -> bool:
    return filter_text(text).was_filtered
