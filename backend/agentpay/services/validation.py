from typing import Optional

from loguru import logger
from pydantic import ValidationError

from ..models import ParsedCommand, PaymentCommand, ValidationResult


SUPPORTED_CURRENCIES = ("XLM", "USDC", "EURT", "BTC", "ETH")


def validate_command(parsed: ParsedCommand) -> ValidationResult:
    """
    Check a parsed command against the field rules of its intent.

    All errors are collected. Currency and recipient formats are checked for
    every intent whenever the field is present.

    Args:
        parsed: Output of a CommandParser

    Returns:
        ValidationResult with valid=True iff no errors were found
    """
    errors: list[str] = []
    entities = parsed.entities

    if parsed.intent in ("request", "schedule"):
        if entities.amount is None or entities.amount <= 0:
            errors.append("Amount is required and must be positive")
        if not entities.currency:
            errors.append("Currency is required")
        if not entities.recipient:
            errors.append("Recipient is required")
        if parsed.intent == "schedule" and (
            entities.schedule is None or entities.schedule.interval_days <= 0
        ):
            errors.append("Schedule interval is required for recurring payments")

    elif parsed.intent in ("refund", "cancel"):
        if not entities.recipient:
            errors.append("Recipient is required for refund/cancel operations")

    if entities.currency and entities.currency.upper() not in SUPPORTED_CURRENCIES:
        errors.append(f"Unsupported currency: {entities.currency}")

    if entities.recipient:
        recipient = entities.recipient
        if not (recipient.startswith("@") or recipient.startswith("G") or "@" in recipient):
            errors.append("Recipient must be a username (@user), Stellar address (G...), or email")

    return ValidationResult(valid=not errors, errors=errors)


def convert_to_payment_command(parsed: ParsedCommand) -> Optional[PaymentCommand]:
    """
    Build the executable command for a non-query intent.

    Returns:
        PaymentCommand with currency defaulted to XLM, or None for queries and
        commands without a positive amount or a recipient
    """
    if parsed.intent == "query":
        return None

    entities = parsed.entities
    if entities.amount is None or entities.amount <= 0:
        logger.debug("No payment command: invalid or missing amount")
        return None
    if not entities.recipient:
        logger.debug("No payment command: missing recipient")
        return None

    try:
        return PaymentCommand(
            action=parsed.intent,
            amount=entities.amount,
            currency=(entities.currency or "XLM").upper(),
            recipient=entities.recipient,
            description=entities.description,
            schedule=entities.schedule,
        )
    except ValidationError as e:
        logger.error("Error converting to payment command: {}", e)
        return None
