"""
Currency detection heuristics.

A currency counts as a topic of an article when a line starts with its
code followed by a colon (the ``USD: Dollar licks its wounds`` section
headings of daily FX notes) or when it is mentioned at least four times.
"""

import re

TRACKED_CURRENCIES = ["USD", "EUR", "GBP", "JPY", "CAD", "CHF", "AUD", "NZD", "CNY"]

CURRENCY_NAMES = {
    "USD": "Dollar américain",
    "EUR": "Euro",
    "GBP": "Livre sterling",
    "JPY": "Yen japonais",
    "CAD": "Dollar canadien",
    "CHF": "Franc suisse",
    "AUD": "Dollar australien",
    "NZD": "Dollar néo-zélandais",
    "CNY": "Yuan chinois",
}

FREQUENT_MENTIONS = 4

_HEADING_PATTERNS = {
    code: re.compile(rf"(?:^|\n)\s*\b{code}\b\s*:", re.IGNORECASE)
    for code in TRACKED_CURRENCIES
}
_MENTION_PATTERNS = {
    code: re.compile(rf"\b{code}\b", re.IGNORECASE) for code in TRACKED_CURRENCIES
}


def detect_currencies(content: str) -> list[str]:
    """Tracked currencies that are a main topic of ``content``, in tracking order."""
    mentioned = []
    for code in TRACKED_CURRENCIES:
        in_heading = _HEADING_PATTERNS[code].search(content) is not None
        frequent = len(_MENTION_PATTERNS[code].findall(content)) >= FREQUENT_MENTIONS
        if in_heading or frequent:
            mentioned.append(code)
    return mentioned


def currency_tags(codes: list[str]) -> list[str]:
    """``["USD", "EUR"]`` -> ``["#USD", "#EUR"]``."""
    return [f"#{code.upper()}" for code in codes]


def currency_name(code: str) -> str:
    return CURRENCY_NAMES.get(code.upper(), code.upper())
