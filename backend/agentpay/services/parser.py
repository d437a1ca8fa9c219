"""
CommandParser port and its pattern-matching implementation.

Any parser (pattern rules or an LLM) must turn free text into a ParsedCommand
and must never raise: input it cannot make sense of degrades to a "query"
intent with no entities.
"""

from abc import ABC, abstractmethod

from ..models import ParsedCommand
from .extraction import classify_intent, extract_entities


HIGH_CONFIDENCE = 0.9
DEFAULT_CONFIDENCE = 0.5


class CommandParser(ABC):
    """Port: parse a free-text payment instruction."""

    @abstractmethod
    async def parse(self, text: str) -> ParsedCommand:
        """Parse a single command."""
        ...


def parse_command(text: str) -> ParsedCommand:
    """
    Parse a command with the pattern rules.

    Confidence is high when both an amount and a recipient (or username) were
    found, moderate otherwise.
    """
    if not text or not text.strip():
        return ParsedCommand()

    entities = extract_entities(text)
    has_target = bool(entities.recipient or entities.username)
    confidence = HIGH_CONFIDENCE if entities.amount is not None and has_target else DEFAULT_CONFIDENCE

    return ParsedCommand(
        intent=classify_intent(text),
        entities=entities,
        confidence=confidence,
    )


class PatternCommandParser(CommandParser):
    """Deterministic parser built on the ordered extraction rules."""

    async def parse(self, text: str) -> ParsedCommand:
        return parse_command(text)
