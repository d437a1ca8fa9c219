"""
InvoiceService - payment requests and their shareable payment links.
"""

from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from ..models import Invoice, utcnow
from .storage import KeyValueStore, NotFoundError, new_id


INVOICES_KEY = "invoices"


class InvoiceService:
    def __init__(self, store: KeyValueStore, base_url: str = "http://localhost:5173"):
        self.store = store
        self.base_url = base_url.rstrip("/")

    def create_invoice(
        self,
        from_address: str,
        amount: float,
        currency: str,
        description: str = "",
        to_address: Optional[str] = None,
        expires_in_hours: Optional[float] = None,
        invoice_id: Optional[str] = None,
    ) -> Invoice:
        """
        Create a pending invoice.

        Args:
            from_address: Creator of the request
            amount: Requested amount
            currency: Asset code
            description: Free-text purpose
            to_address: Counterparty, if already known
            expires_in_hours: Optional lifetime
            invoice_id: Use this id instead of generating one

        Returns:
            The stored Invoice
        """
        invoice_id = invoice_id or new_id("inv")
        created_at = utcnow()
        expires_at = created_at + timedelta(hours=expires_in_hours) if expires_in_hours else None

        invoice = Invoice(
            id=invoice_id,
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            currency=currency,
            description=description,
            created_at=created_at,
            expires_at=expires_at,
            shareable_link=f"{self.base_url}/pay/{invoice_id}",
        )
        self._save(invoice)
        logger.info("Created invoice {} for {} {}", invoice.id, amount, currency)
        return invoice

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return next((inv for inv in self._all() if inv.id == invoice_id), None)

    def get_user_invoices(self, address: str) -> list[Invoice]:
        """Invoices created by, addressed to or paid by an account, newest first."""
        invoices = [
            inv for inv in self._all()
            if address in (inv.from_address, inv.to_address, inv.paid_by)
        ]
        return sorted(invoices, key=lambda inv: inv.created_at, reverse=True)

    def get_pending_invoices(self, address: str) -> list[Invoice]:
        return [inv for inv in self.get_user_invoices(address) if inv.status == "pending"]

    def mark_as_paid(self, invoice_id: str, transaction_hash: str, paid_by: Optional[str] = None) -> Invoice:
        invoice = self._require(invoice_id)
        invoice.status = "paid"
        invoice.paid_at = utcnow()
        invoice.transaction_hash = transaction_hash
        invoice.paid_by = paid_by
        self._save(invoice)
        return invoice

    def mark_as_refunded(self, invoice_id: str) -> Invoice:
        invoice = self._require(invoice_id)
        invoice.status = "refunded"
        self._save(invoice)
        return invoice

    def cancel_invoice(self, invoice_id: str) -> Invoice:
        invoice = self._require(invoice_id)
        invoice.status = "cancelled"
        self._save(invoice)
        return invoice

    def update_expired_invoices(self, now: Optional[datetime] = None) -> list[Invoice]:
        """Expire pending invoices past their deadline. Returns the expired ones."""
        now = now or utcnow()
        expired = []
        for invoice in self._all():
            if invoice.status == "pending" and invoice.expires_at and invoice.expires_at < now:
                invoice.status = "expired"
                self._save(invoice)
                expired.append(invoice)
        return expired

    def get_invoice_stats(self, address: str) -> dict:
        invoices = self.get_user_invoices(address)
        paid = [inv for inv in invoices if inv.status == "paid"]
        return {
            "total": len(invoices),
            "pending": sum(1 for inv in invoices if inv.status == "pending"),
            "paid": len(paid),
            "expired": sum(1 for inv in invoices if inv.status == "expired"),
            "total_amount": sum(inv.amount for inv in invoices),
            "paid_amount": sum(inv.amount for inv in paid),
        }

    def delete_invoice(self, invoice_id: str) -> None:
        self._write([inv for inv in self._all() if inv.id != invoice_id])

    def find_refundable(self, creator: str, counterparty: str) -> Optional[Invoice]:
        """Most recent paid invoice created by creator and addressed to or paid by counterparty."""
        candidates = [
            inv for inv in self._all()
            if inv.from_address == creator
            and counterparty in (inv.to_address, inv.paid_by)
            and inv.status == "paid"
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda inv: inv.paid_at or inv.created_at)

    def _require(self, invoice_id: str) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        return invoice

    def _save(self, invoice: Invoice) -> None:
        invoices = self._all()
        for index, existing in enumerate(invoices):
            if existing.id == invoice.id:
                invoices[index] = invoice
                break
        else:
            invoices.append(invoice)
        self._write(invoices)

    def _all(self) -> list[Invoice]:
        return [Invoice.model_validate(inv) for inv in self.store.get(INVOICES_KEY, [])]

    def _write(self, invoices: list[Invoice]) -> None:
        self.store.set(INVOICES_KEY, [inv.model_dump(mode="json", by_alias=True) for inv in invoices])
