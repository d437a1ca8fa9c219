"""
Ports to the blockchain.

LedgerGateway is everything the agent needs from the ledger: building unsigned
contract calls for the wallet to sign and reading account state.
PaymentGateway submits plain transfers for split and settlement payments.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import (
    AssetBalance,
    Invoice,
    InvoiceReceipt,
    PaymentCommand,
    SwapEstimate,
    TransactionStatus,
    TransactionSummary,
    UnsignedTransaction,
)


class LedgerGateway(ABC):
    """
    Port: ledger capabilities used by the agent.

    Write operations raise on failure. Read operations return empty results
    (or None) when the account or record does not exist.
    """

    @abstractmethod
    async def create_invoice(self, command: PaymentCommand, signer: str) -> InvoiceReceipt:
        """Build the create-invoice call for a request command."""
        ...

    @abstractmethod
    async def execute_refund(self, invoice_id: str, reason: str, signer: str) -> UnsignedTransaction:
        """Build the refund call for a paid invoice."""
        ...

    @abstractmethod
    async def schedule_recurring_payment(self, command: PaymentCommand, signer: str) -> UnsignedTransaction:
        """Build the call that registers a recurring payment."""
        ...

    @abstractmethod
    async def cancel_recurring_payment(self, schedule_id: str, signer: str) -> UnsignedTransaction:
        """Build the call that cancels a recurring payment."""
        ...

    @abstractmethod
    async def get_account_balance(self, account: str) -> list[AssetBalance]:
        """Balances of an account, empty when the account is unknown."""
        ...

    @abstractmethod
    async def get_recent_transactions(self, account: str, limit: int = 10) -> list[TransactionSummary]:
        """Most recent transactions of an account, empty when unknown."""
        ...

    @abstractmethod
    async def get_transaction_status(self, tx_hash: str) -> Optional[TransactionStatus]:
        """Status of a submitted transaction, None when unknown."""
        ...

    @abstractmethod
    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Invoice by id, None when unknown."""
        ...

    @abstractmethod
    async def estimate_swap(self, from_asset: str, to_asset: str, amount: float) -> SwapEstimate:
        """Estimated output of swapping amount of from_asset into to_asset."""
        ...


class PaymentGateway(ABC):
    """Port: send a single payment from one account to another."""

    @abstractmethod
    async def send(self, from_address: str, to_address: str, amount: str) -> str:
        """
        Submit a payment.

        Returns:
            The transaction hash

        Raises:
            Exception: If the payment was not accepted
        """
        ...
