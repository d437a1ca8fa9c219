"""
Pattern rules that turn a free-text payment instruction into entities and an intent.

Each extraction rule is a plain function from text to the fields it found.
`extract_entities` applies them in order and keeps the first value seen for
every field, so rule order encodes precedence (an address found by an earlier
rule wins over a username found by a later one).
"""

import re
from typing import Any, Callable

from ..models import Entities, Intent, Schedule


RECOGNIZED_CURRENCIES = ("xlm", "usdc", "usdt", "eurt", "btc", "eth")

_AMOUNT_PATTERN = re.compile(
    r"(?<![\w.])(\d+(?:\.\d+)?)(?:\s*(" + "|".join(RECOGNIZED_CURRENCIES) + r")\b)?",
    re.IGNORECASE,
)
# Public keys start with G, contract ids with C; both are 56 characters
_ADDRESS_PATTERN = re.compile(r"\b([GC][A-Z0-9]{55})\b")
_EMAIL_PATTERN = re.compile(r"\b([\w.+-]+@[\w-]+(?:\.[\w-]+)+)\b")
_USERNAME_PATTERN = re.compile(r"(?<![\w.+-])@(\w+)")
_DESCRIPTION_PATTERN = re.compile(r"\bfor\s+(.+?)(?:\s+to\s+|\s*$)", re.IGNORECASE)

_RECURRENCE_DAYS = (
    ("monthly", 30),
    ("weekly", 7),
    ("daily", 1),
)

ExtractionRule = Callable[[str], dict[str, Any]]


def extract_amount(text: str) -> dict[str, Any]:
    """First number in the text, with the currency token that follows it (default XLM)."""
    match = _AMOUNT_PATTERN.search(text)
    if not match:
        return {}
    currency = match.group(2).upper() if match.group(2) else "XLM"
    return {"amount": float(match.group(1)), "currency": currency}


def extract_address(text: str) -> dict[str, Any]:
    """First Stellar account or contract address."""
    match = _ADDRESS_PATTERN.search(text)
    return {"recipient": match.group(1)} if match else {}


def extract_email(text: str) -> dict[str, Any]:
    """First email-like recipient."""
    match = _EMAIL_PATTERN.search(text)
    return {"recipient": match.group(1)} if match else {}


def extract_username(text: str) -> dict[str, Any]:
    """First @username. Becomes the recipient only when no earlier rule found one."""
    match = _USERNAME_PATTERN.search(text)
    if not match:
        return {}
    username = f"@{match.group(1)}"
    return {"recipient": username, "username": username}


def extract_description(text: str) -> dict[str, Any]:
    """Text after "for", up to "to" or the end of the string."""
    match = _DESCRIPTION_PATTERN.search(text)
    if not match:
        return {}
    description = match.group(1).strip()
    return {"description": description} if description else {}


def extract_schedule(text: str) -> dict[str, Any]:
    """Recurrence interval from monthly / weekly / daily, in that priority."""
    lower = text.lower()
    for keyword, days in _RECURRENCE_DAYS:
        if re.search(rf"\b{keyword}\b", lower):
            return {"schedule": Schedule(interval_days=days)}
    return {}


EXTRACTION_RULES: list[ExtractionRule] = [
    extract_amount,
    extract_address,
    extract_email,
    extract_username,
    extract_description,
    extract_schedule,
]


def extract_entities(text: str, rules: list[ExtractionRule] = EXTRACTION_RULES) -> Entities:
    """
    Run every extraction rule over the text.

    Args:
        text: Raw command text
        rules: Ordered rules; earlier rules take precedence per field

    Returns:
        Entities with None for every field no rule produced
    """
    fields: dict[str, Any] = {}
    for rule in rules:
        for key, value in rule(text).items():
            fields.setdefault(key, value)
    return Entities(**fields)


# Checked in order; the first group with a keyword present decides the intent
INTENT_KEYWORDS: list[tuple[tuple[str, ...], Intent]] = [
    (("send", "pay", "transfer"), "request"),
    (("request", "ask", "invoice"), "request"),
    (("refund",), "refund"),
    (("schedule", "recurring", "monthly"), "schedule"),
    (("cancel", "stop"), "cancel"),
]


def classify_intent(text: str) -> Intent:
    """
    Map command text to a single intent by keyword presence.

    Returns:
        The intent of the first keyword group found, or "query"
    """
    lower = text.lower()
    for keywords, intent in INTENT_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return intent
    return "query"
