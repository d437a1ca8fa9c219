import hashlib
import uuid
from typing import Optional

import httpx
from loguru import logger

from ..config import Settings
from ..models import (
    AssetBalance,
    ContractCall,
    Invoice,
    InvoiceReceipt,
    PaymentCommand,
    SwapEstimate,
    TransactionStatus,
    TransactionSummary,
    UnsignedTransaction,
)
from .gateway import LedgerGateway, PaymentGateway
from .invoices import InvoiceService
from .storage import new_id


DEFAULT_INTERVAL_DAYS = 30


class HorizonLedgerGateway(LedgerGateway):
    """
    LedgerGateway reading account state from Horizon.

    Contract calls are returned unsigned so the caller's wallet can sign and
    submit them. Invoices are also kept in the InvoiceService so they can be
    looked up and refunded later.
    """

    def __init__(self, settings: Settings, invoices: InvoiceService):
        self.settings = settings
        self.invoices = invoices

    def _contract_call(self, method: str, params: dict) -> ContractCall:
        return ContractCall(
            contract_id=self.settings.payment_contract_id,
            method=method,
            params=params,
            network_passphrase=self.settings.network_passphrase,
        )

    async def create_invoice(self, command: PaymentCommand, signer: str) -> InvoiceReceipt:
        invoice_id = new_id("inv")
        call = self._contract_call(
            "create_invoice",
            {
                "invoice_id": invoice_id,
                "creator": signer,
                "amount": command.amount,
                "currency": command.currency,
                "recipient": command.recipient,
                "description": command.description or "",
            },
        )
        self.invoices.create_invoice(
            from_address=signer,
            to_address=command.recipient,
            amount=command.amount,
            currency=command.currency,
            description=command.description or "",
            invoice_id=invoice_id,
        )
        return InvoiceReceipt(invoice_id=invoice_id, unsigned_payload=call)

    async def execute_refund(self, invoice_id: str, reason: str, signer: str) -> UnsignedTransaction:
        call = self._contract_call(
            "execute_refund",
            {"invoice_id": invoice_id, "reason": reason, "refunder": signer},
        )
        return UnsignedTransaction(unsigned_payload=call)

    async def schedule_recurring_payment(self, command: PaymentCommand, signer: str) -> UnsignedTransaction:
        interval = command.schedule.interval_days if command.schedule else DEFAULT_INTERVAL_DAYS
        call = self._contract_call(
            "schedule_recurring",
            {
                "amount": command.amount,
                "currency": command.currency,
                "recipient": command.recipient,
                "interval_days": interval or DEFAULT_INTERVAL_DAYS,
                "payer": signer,
            },
        )
        return UnsignedTransaction(unsigned_payload=call)

    async def cancel_recurring_payment(self, schedule_id: str, signer: str) -> UnsignedTransaction:
        call = self._contract_call(
            "cancel_recurring",
            {"schedule_id": schedule_id, "payer": signer},
        )
        return UnsignedTransaction(unsigned_payload=call)

    async def get_account_balance(self, account: str) -> list[AssetBalance]:
        """
        Fetch account balances from Horizon.

        Returns:
            One AssetBalance per trustline plus native XLM, or an empty list if
            the account does not exist or Horizon is unreachable
        """
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{self.settings.horizon_url}/accounts/{account}",
                    timeout=self.settings.gateway_timeout_seconds,
                )
            except httpx.RequestError as e:
                logger.error("Error getting account balance: {}", e)
                return []

            if response.status_code != 200:
                logger.warning("Account not found: {}", account)
                return []

            data = response.json()

        return [
            AssetBalance(
                asset="XLM" if balance.get("asset_type") == "native" else balance.get("asset_code", ""),
                balance=balance.get("balance", "0"),
            )
            for balance in data.get("balances", [])
        ]

    async def get_recent_transactions(self, account: str, limit: int = 10) -> list[TransactionSummary]:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{self.settings.horizon_url}/accounts/{account}/transactions",
                    params={"order": "desc", "limit": limit},
                    timeout=self.settings.gateway_timeout_seconds,
                )
            except httpx.RequestError as e:
                logger.error("Error getting transactions: {}", e)
                return []

            if response.status_code != 200:
                logger.warning("Failed to fetch transactions for {}", account)
                return []

            data = response.json()

        records = data.get("_embedded", {}).get("records", [])
        return [
            TransactionSummary(
                id=tx.get("id", ""),
                hash=tx.get("hash", ""),
                created_at=tx.get("created_at", ""),
                successful=bool(tx.get("successful", False)),
                source_account=tx.get("source_account", ""),
            )
            for tx in records
        ]

    async def get_transaction_status(self, tx_hash: str) -> Optional[TransactionStatus]:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{self.settings.horizon_url}/transactions/{tx_hash}",
                    timeout=self.settings.gateway_timeout_seconds,
                )
            except httpx.RequestError as e:
                logger.error("Error getting transaction status: {}", e)
                return None

            if response.status_code != 200:
                return None

            data = response.json()

        return TransactionStatus(
            hash=data.get("hash", tx_hash),
            status="success" if data.get("successful") else "failed",
            source_account=data.get("source_account", ""),
        )

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self.invoices.get_invoice(invoice_id)

    async def estimate_swap(self, from_asset: str, to_asset: str, amount: float) -> SwapEstimate:
        """Constant-fee estimate using the configured swap fee rate."""
        if amount <= 0:
            raise ValueError("Swap amount must be positive")
        fee_rate = self.settings.swap_fee_rate
        return SwapEstimate(
            estimated_output=amount * (1 - fee_rate),
            price_impact=fee_rate,
            fees=amount * fee_rate,
        )


class SimulatedPaymentGateway(PaymentGateway):
    """
    PaymentGateway that accepts every payment without touching the network.

    Signing happens in the user's wallet, which this service has no access
    to, so the HTTP split endpoints run against this gateway.
    """

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, from_address: str, to_address: str, amount: str) -> str:
        if from_address == to_address:
            raise ValueError("Cannot send a payment to the source account")
        self.sent.append((from_address, to_address, amount))
        seed = f"{from_address}:{to_address}:{amount}:{uuid.uuid4().hex}"
        return hashlib.sha256(seed.encode("utf-8")).hexdigest()
