"""
Command pipeline: raw text -> ParsedCommand -> validation -> PaymentCommand -> ledger.

None of the public coroutines here raise. Parse ambiguity, validation errors
and gateway failures all come back as an AgentResponse with success=False.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from loguru import logger

from ..models import (
    AgentResponse,
    BalanceListData,
    CancelReadyData,
    InvoiceCreatedData,
    InvoiceDetailsData,
    PaymentCommand,
    RefundReadyData,
    ScheduleReadyData,
    SwapQuoteData,
    TransactionListData,
)
from .gateway import LedgerGateway
from .invoices import InvoiceService
from .parser import CommandParser
from .schedules import ScheduleService
from .validation import convert_to_payment_command, validate_command


LOW_CONFIDENCE_THRESHOLD = 0.3
DEFAULT_INTERVAL_DAYS = 30
RECENT_TRANSACTIONS_LIMIT = 5

HELP_TEXT = (
    "I can help you with:\n"
    "- Send or request payments\n"
    "- Check your balance\n"
    "- View transaction history\n"
    "- Schedule recurring payments\n\n"
    'Try: "Send 10 XLM to [address]" or "What is my balance?"'
)

T = TypeVar("T")


def _failure(message: str) -> AgentResponse:
    return AgentResponse(success=False, message=message)


class IntentExecutor:
    """Runs a validated PaymentCommand against the ledger on behalf of a signer."""

    def __init__(
        self,
        ledger: LedgerGateway,
        invoices: InvoiceService,
        schedules: ScheduleService,
        timeout: Optional[float] = 30.0,
    ):
        self.ledger = ledger
        self.invoices = invoices
        self.schedules = schedules
        self.timeout = timeout

    async def _call(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self.timeout)

    async def execute(self, command: PaymentCommand, signer: Optional[str]) -> AgentResponse:
        if not signer:
            return _failure("Signer required: connect your wallet to sign payment operations.")

        handlers = {
            "request": self.handle_request,
            "refund": self.handle_refund,
            "schedule": self.handle_schedule,
            "cancel": self.handle_cancel,
        }
        handler = handlers.get(command.action)
        if handler is None:
            return _failure(f"Unsupported action: {command.action}")
        return await handler(command, signer)

    async def handle_request(self, command: PaymentCommand, signer: str) -> AgentResponse:
        try:
            receipt = await self._call(self.ledger.create_invoice(command, signer))
        except Exception as e:
            logger.error("Error creating invoice: {}", e)
            return _failure("Failed to create payment request.")

        return AgentResponse(
            success=True,
            message=(
                f"Payment request ready!\n\n"
                f"Amount: {command.amount} {command.currency}\n"
                f"To: {command.recipient}\n\n"
                f"Invoice ID: {receipt.invoice_id}\n\n"
                f"Sign the transaction in your wallet to create the invoice."
            ),
            invoice_id=receipt.invoice_id,
            data=InvoiceCreatedData(
                amount=command.amount,
                currency=command.currency,
                recipient=command.recipient,
                description=command.description,
                contract_call=receipt.unsigned_payload,
            ),
        )

    async def handle_refund(self, command: PaymentCommand, signer: str) -> AgentResponse:
        invoice = self.invoices.find_refundable(signer, command.recipient)
        if invoice is None:
            return _failure(f"No paid invoice found for {command.recipient}.")

        reason = command.description or "Refund requested"
        try:
            result = await self._call(self.ledger.execute_refund(invoice.id, reason, signer))
        except Exception as e:
            logger.error("Error executing refund for invoice {}: {}", invoice.id, e)
            return _failure("Failed to process refund.")

        return AgentResponse(
            success=True,
            message=(
                f"Refund ready to process!\n\n"
                f"Recipient: {command.recipient}\n"
                f"Invoice ID: {invoice.id}\n"
                f"Reason: {reason}\n\n"
                f"Sign the transaction in your wallet to complete the refund."
            ),
            invoice_id=invoice.id,
            data=RefundReadyData(
                recipient=command.recipient,
                reason=reason,
                invoice_id=invoice.id,
                contract_call=result.unsigned_payload,
            ),
        )

    async def handle_schedule(self, command: PaymentCommand, signer: str) -> AgentResponse:
        interval = command.schedule.interval_days if command.schedule else DEFAULT_INTERVAL_DAYS
        try:
            result = await self._call(self.ledger.schedule_recurring_payment(command, signer))
        except Exception as e:
            logger.error("Error scheduling recurring payment: {}", e)
            return _failure("Failed to schedule recurring payment.")

        schedule = self.schedules.create_schedule(
            from_address=signer,
            to_address=command.recipient,
            amount=command.amount,
            currency=command.currency,
            description=command.description or "",
            interval_days=interval,
        )

        return AgentResponse(
            success=True,
            message=(
                f"Recurring payment ready!\n\n"
                f"Amount: {command.amount} {command.currency}\n"
                f"To: {command.recipient}\n"
                f"Interval: Every {interval} days\n\n"
                f"Sign the transaction in your wallet to activate."
            ),
            data=ScheduleReadyData(
                amount=command.amount,
                currency=command.currency,
                recipient=command.recipient,
                interval_days=interval,
                schedule_id=schedule.id,
                contract_call=result.unsigned_payload,
            ),
        )

    async def handle_cancel(self, command: PaymentCommand, signer: str) -> AgentResponse:
        schedule = self.schedules.find_active_schedule(signer, command.recipient)
        if schedule is None:
            return _failure(f"No active recurring payment to {command.recipient} was found.")

        try:
            result = await self._call(self.ledger.cancel_recurring_payment(schedule.id, signer))
        except Exception as e:
            logger.error("Error cancelling schedule {}: {}", schedule.id, e)
            return _failure("Failed to cancel payment.")

        self.schedules.cancel_schedule(schedule.id)
        return AgentResponse(
            success=True,
            message=f"Payment to {command.recipient} has been cancelled.",
            data=CancelReadyData(
                recipient=command.recipient,
                schedule_id=schedule.id,
                contract_call=result.unsigned_payload,
            ),
        )


class QueryHandler:
    """Answers informational commands by keyword on the raw command text."""

    def __init__(self, ledger: LedgerGateway):
        self.ledger = ledger

    async def handle(self, text: str, account: Optional[str]) -> AgentResponse:
        lower = text.lower()

        if "balance" in lower:
            if not account:
                return _failure("Please connect your wallet to check balance.")

            balances = await self.ledger.get_account_balance(account)
            if not balances:
                return _failure("Could not fetch balance. Make sure your account exists on the network.")

            balance_text = ", ".join(f"{b.balance} {b.asset}" for b in balances)
            return AgentResponse(
                success=True,
                message=f"Your current balance: {balance_text}",
                data=BalanceListData(balances=balances),
            )

        if "transaction" in lower or "history" in lower:
            if not account:
                return _failure("Please connect your wallet to view transactions.")

            transactions = await self.ledger.get_recent_transactions(account, RECENT_TRANSACTIONS_LIMIT)
            return AgentResponse(
                success=True,
                message=f"Here are your recent {len(transactions)} transactions:",
                data=TransactionListData(transactions=transactions),
            )

        return AgentResponse(success=True, message=HELP_TEXT)


class PaymentAgent:
    """
    Entry point for natural-language commands.

    Commands below LOW_CONFIDENCE_THRESHOLD are rejected before validation.
    Valid commands that do not convert into a PaymentCommand (queries, or
    intents without amount or recipient) are answered by the QueryHandler.
    """

    def __init__(
        self,
        parser: CommandParser,
        ledger: LedgerGateway,
        invoices: InvoiceService,
        schedules: ScheduleService,
        timeout: Optional[float] = 30.0,
    ):
        self.parser = parser
        self.ledger = ledger
        self.executor = IntentExecutor(ledger, invoices, schedules, timeout=timeout)
        self.queries = QueryHandler(ledger)

    async def process_command(self, text: str, user_public_key: Optional[str] = None) -> AgentResponse:
        try:
            parsed = await self.parser.parse(text)
            logger.info("Parsed command intent={} confidence={}", parsed.intent, parsed.confidence)

            if parsed.confidence < LOW_CONFIDENCE_THRESHOLD:
                return _failure("I couldn't understand your command. Please try rephrasing it.")

            validation = validate_command(parsed)
            if not validation.valid:
                return _failure(f"Command validation failed: {', '.join(validation.errors)}")

            command = convert_to_payment_command(parsed)
            if command is None:
                return await self.queries.handle(text, user_public_key)

            return await self.executor.execute(command, user_public_key)
        except Exception as e:
            logger.exception("Error processing command: {}", e)
            return _failure("An error occurred while processing your command.")

    async def get_invoice_status(self, invoice_id: str) -> AgentResponse:
        try:
            invoice = await self.ledger.get_invoice(invoice_id)
        except Exception as e:
            logger.error("Error getting invoice {}: {}", invoice_id, e)
            return _failure("Failed to get invoice status.")

        if invoice is None:
            return _failure("Invoice not found.")

        return AgentResponse(
            success=True,
            message=f"Invoice {invoice_id} status: {invoice.status}",
            invoice_id=invoice.id,
            data=InvoiceDetailsData(invoice=invoice),
        )

    async def get_swap_quote(self, from_asset: str, to_asset: str, amount: float) -> AgentResponse:
        try:
            quote = await self.ledger.estimate_swap(from_asset, to_asset, amount)
        except Exception as e:
            logger.error("Error estimating swap: {}", e)
            return _failure("Failed to get swap quote.")

        return AgentResponse(
            success=True,
            message=f"Swap quote: {amount} {from_asset} -> {quote.estimated_output:.6f} {to_asset}",
            data=SwapQuoteData(
                from_asset=from_asset,
                to_asset=to_asset,
                amount_in=amount,
                estimated_output=quote.estimated_output,
                price_impact=quote.price_impact,
                fees=quote.fees,
            ),
        )
