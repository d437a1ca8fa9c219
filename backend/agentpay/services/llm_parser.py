import json
import math
from typing import Any

from anthropic import AsyncAnthropic
from loguru import logger
from pydantic import ValidationError

from ..config import get_settings
from ..models import Entities, ParsedCommand, Schedule
from .parser import CommandParser


COMMAND_PARSING_PROMPT = """You are a payment command parser for a Stellar payments assistant. Parse the following natural language command into structured payment data.

Command: "{command}"

Extract the following information:
1. Intent: request, refund, schedule, cancel, or query
2. Amount: numerical value
3. Currency: asset code (XLM, USDC, EURT, BTC, ETH)
4. Recipient: Stellar address (G...), @username, or email
5. Description: purpose of the payment
6. Schedule: if recurring, the interval in days

Examples:
- "Ask 50 USDC from @alice for design work" -> intent: request, amount: 50, currency: USDC, recipient: @alice, description: design work
- "Refund @bob's payment from yesterday" -> intent: refund, recipient: @bob
- "Schedule 100 XLM monthly to @freelancer" -> intent: schedule, amount: 100, currency: XLM, recipient: @freelancer, schedule: 30 days

Return a JSON object:
{{
  "intent": "request|refund|schedule|cancel|query",
  "entities": {{
    "amount": number or null,
    "currency": "string" or null,
    "recipient": "string" or null,
    "description": "string" or null,
    "schedule": {{"interval_days": number}} or null
  }},
  "confidence": 0.0-1.0
}}

Return ONLY the JSON, no additional text."""

_INTENTS = {"request", "refund", "schedule", "cancel", "query"}


class ClaudeCommandParser(CommandParser):
    """
    CommandParser backed by Claude.

    Satisfies the same contract as PatternCommandParser: any API error or
    malformed response is logged and yields the default query command.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None):
        settings = get_settings()
        self._client = AsyncAnthropic(api_key=api_key or settings.anthropic_api_key)
        self._model = model or settings.llm_model

    async def parse(self, text: str) -> ParsedCommand:
        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=512,
                messages=[
                    {"role": "user", "content": COMMAND_PARSING_PROMPT.format(command=text)},
                ],
            )
            response_text = message.content[0].text
        except Exception as e:
            logger.error("LLM command parsing failed: {}", e)
            return ParsedCommand()

        try:
            # The model sometimes wraps the JSON in prose or code fences
            json_start = response_text.find("{")
            json_end = response_text.rfind("}") + 1
            if json_start != -1 and json_end > json_start:
                data = json.loads(response_text[json_start:json_end])
            else:
                data = json.loads(response_text)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse LLM response as JSON: {}", e)
            return ParsedCommand()

        if not isinstance(data, dict):
            logger.error("LLM response is not a JSON object: {}", response_text)
            return ParsedCommand()

        try:
            return _to_parsed_command(data)
        except (ValidationError, ValueError, OverflowError) as e:
            logger.error("LLM response has unusable values: {}", e)
            return ParsedCommand()


def _to_parsed_command(data: dict[str, Any]) -> ParsedCommand:
    """Coerce loosely typed model output into a ParsedCommand."""
    intent = data.get("intent")
    if intent not in _INTENTS:
        intent = "query"

    raw = data.get("entities") or {}
    if not isinstance(raw, dict):
        raw = {}

    currency = _text(raw.get("currency"))
    schedule = raw.get("schedule")
    interval = _positive_number(schedule.get("interval_days")) if isinstance(schedule, dict) else None

    entities = Entities(
        amount=_positive_number(raw.get("amount")),
        currency=currency.upper() if currency else None,
        recipient=_text(raw.get("recipient")),
        description=_text(raw.get("description")),
        schedule=Schedule(interval_days=int(interval)) if interval and interval >= 1 else None,
    )

    try:
        confidence = float(data.get("confidence", 0.5))
    except (TypeError, ValueError, OverflowError):
        confidence = 0.5
    if not math.isfinite(confidence):
        confidence = 0.5
    confidence = min(max(confidence, 0.0), 1.0)

    return ParsedCommand(intent=intent, entities=entities, confidence=confidence)


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) and number > 0 else None
