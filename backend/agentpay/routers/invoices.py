from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_invoice_service, get_notification_service
from ..models import Invoice, InvoicePayment, InvoiceStats, Notification, PaymentFailure
from ..services.invoices import InvoiceService
from ..services.notifications import NotificationService

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])


def _require_invoice(invoices: InvoiceService, invoice_id: str) -> Invoice:
    invoice = invoices.get_invoice(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Invoice not found: {invoice_id}")
    return invoice


def _require_status(invoice: Invoice, expected: str) -> None:
    if invoice.status != expected:
        raise HTTPException(status_code=409, detail=f"Invoice {invoice.id} is {invoice.status}")


@router.get("", response_model=list[Invoice])
async def list_invoices(
    address: str = Query(..., description="Account that created, received or paid the invoices"),
    pending_only: bool = Query(False, alias="pendingOnly"),
    invoices: InvoiceService = Depends(get_invoice_service),
) -> list[Invoice]:
    """List an account's invoices, newest first. Stale invoices are expired first."""
    invoices.update_expired_invoices()
    if pending_only:
        return invoices.get_pending_invoices(address)
    return invoices.get_user_invoices(address)


@router.get("/stats", response_model=InvoiceStats)
async def invoice_stats(
    address: str = Query(...),
    invoices: InvoiceService = Depends(get_invoice_service),
) -> dict:
    invoices.update_expired_invoices()
    return invoices.get_invoice_stats(address)


@router.get("/{invoice_id}", response_model=Invoice)
async def get_invoice(invoice_id: str, invoices: InvoiceService = Depends(get_invoice_service)) -> Invoice:
    return _require_invoice(invoices, invoice_id)


@router.post("/{invoice_id}/pay", response_model=Invoice)
async def pay_invoice(
    invoice_id: str,
    request: InvoicePayment,
    invoices: InvoiceService = Depends(get_invoice_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> Invoice:
    """
    Record a wallet payment of a pending invoice.

    The payer's address is kept apart from the invoice's recipient so the
    invoice stays refundable under either.
    """
    invoice = _require_invoice(invoices, invoice_id)
    _require_status(invoice, "pending")

    paid = invoices.mark_as_paid(invoice_id, request.transaction_hash, paid_by=request.paid_by)
    notifications.payment_sent(paid.amount, paid.currency, paid.from_address, request.transaction_hash)
    return paid


@router.post("/{invoice_id}/payment-failed", response_model=Notification)
async def report_payment_failure(
    invoice_id: str,
    request: PaymentFailure,
    invoices: InvoiceService = Depends(get_invoice_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> Notification:
    invoice = _require_invoice(invoices, invoice_id)
    return notifications.payment_failed(invoice.amount, invoice.currency, request.error)


@router.post("/{invoice_id}/refund", response_model=Invoice)
async def mark_refunded(invoice_id: str, invoices: InvoiceService = Depends(get_invoice_service)) -> Invoice:
    """Mark a paid invoice refunded once the wallet has submitted the refund."""
    invoice = _require_invoice(invoices, invoice_id)
    _require_status(invoice, "paid")
    return invoices.mark_as_refunded(invoice_id)


@router.post("/{invoice_id}/cancel", response_model=Invoice)
async def cancel_invoice(invoice_id: str, invoices: InvoiceService = Depends(get_invoice_service)) -> Invoice:
    invoice = _require_invoice(invoices, invoice_id)
    _require_status(invoice, "pending")
    return invoices.cancel_invoice(invoice_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str, invoices: InvoiceService = Depends(get_invoice_service)) -> None:
    _require_invoice(invoices, invoice_id)
    invoices.delete_invoice(invoice_id)
