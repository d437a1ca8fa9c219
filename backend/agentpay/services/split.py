"""
Split payments and settlement execution for groups.

Transfers are issued one at a time: every payment consumes a sequence number
of the same source account.
"""

import asyncio
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from loguru import logger

from ..models import FailedPayment, GroupExpense, Settlement, SplitPaymentResult
from .gateway import PaymentGateway
from .groups import GroupService
from .notifications import NotificationService
from .storage import new_id


STROOP = Decimal("0.0000001")


def equal_share(total_amount: float, member_count: int) -> Decimal:
    """Per-member share floored to the 7 decimals of the native asset."""
    share = Decimal(str(total_amount)) / Decimal(member_count)
    return share.quantize(STROOP, rounding=ROUND_DOWN)


class SplitPaymentOrchestrator:
    def __init__(
        self,
        payments: PaymentGateway,
        groups: GroupService,
        notifications: Optional[NotificationService] = None,
        timeout: Optional[float] = 30.0,
    ):
        self.payments = payments
        self.groups = groups
        self.notifications = notifications
        self.timeout = timeout

    async def _send(self, from_address: str, to_address: str, amount: Decimal) -> str:
        return await asyncio.wait_for(
            self.payments.send(from_address, to_address, f"{amount:.7f}"),
            timeout=self.timeout,
        )

    async def split_payment(
        self,
        group_id: str,
        payer: str,
        total_amount: float,
        members: list[str],
        description: str = "Split payment",
    ) -> SplitPaymentResult:
        """
        Send each member an equal share of total_amount.

        The payer's own share is counted as successful without a transfer.
        A failed member is recorded in the result and the loop moves on. If any
        member succeeded, one GroupExpense covering the whole split is recorded
        with the first transaction hash.

        Returns:
            SplitPaymentResult with successful addresses, failures, total sent
            and transaction hashes
        """
        result = SplitPaymentResult()
        if not members or total_amount <= 0:
            return result

        share = equal_share(total_amount, len(members))
        total_sent = Decimal("0")

        for member in members:
            if member == payer:
                result.successful.append(member)
                continue

            try:
                tx_hash = await self._send(payer, member, share)
            except asyncio.TimeoutError:
                logger.warning("Split payment to {} timed out", member)
                result.failed.append(FailedPayment(address=member, error="Transaction timed out"))
                continue
            except Exception as e:
                logger.error("Split payment to {} failed: {}", member, e)
                result.failed.append(FailedPayment(address=member, error=str(e) or "Transaction failed"))
                continue

            result.successful.append(member)
            result.transaction_hashes.append(tx_hash)
            total_sent += share

        result.total_sent = float(total_sent)

        if result.successful:
            self.groups.record_expense(
                group_id,
                GroupExpense(
                    id=new_id("expense"),
                    group_id=group_id,
                    paid_by=payer,
                    amount=total_amount,
                    description=description,
                    split_among=list(members),
                    transaction_hash=result.transaction_hashes[0] if result.transaction_hashes else None,
                ),
            )
            self.groups.send_message(
                group_id,
                payer,
                f"Split {total_amount} XLM for {description} among {len(members)} members",
                amount=total_amount,
                type="payment",
            )

        self._notify(result, "Split Payment")
        return result

    async def execute_settlements(
        self,
        group_id: str,
        payer: str,
        settlements: list[Settlement],
    ) -> SplitPaymentResult:
        """Pay the settlements owed by payer. Each success is recorded as its own expense."""
        result = SplitPaymentResult()
        total_sent = Decimal("0")

        for settlement in settlements:
            if settlement.from_address != payer:
                continue

            recipient = settlement.to_address
            amount = Decimal(str(settlement.amount))
            try:
                tx_hash = await self._send(payer, recipient, amount)
            except asyncio.TimeoutError:
                logger.warning("Settlement to {} timed out", recipient)
                result.failed.append(FailedPayment(address=recipient, error="Transaction timed out"))
                continue
            except Exception as e:
                logger.error("Settlement to {} failed: {}", recipient, e)
                result.failed.append(FailedPayment(address=recipient, error=str(e) or "Settlement failed"))
                continue

            result.successful.append(recipient)
            result.transaction_hashes.append(tx_hash)
            total_sent += amount

            # Crediting the payer and debiting only the recipient clears the debt in full.
            self.groups.record_expense(
                group_id,
                GroupExpense(
                    id=new_id("settlement"),
                    group_id=group_id,
                    paid_by=payer,
                    amount=settlement.amount,
                    description="Settlement payment",
                    split_among=[recipient],
                    transaction_hash=tx_hash,
                ),
            )
            logger.info("Settled {} from {} to {} in group {}", settlement.amount, payer, recipient, group_id)

        result.total_sent = float(total_sent)

        if result.successful:
            self.groups.send_message(
                group_id,
                payer,
                f"Settled up {result.total_sent:.2f} XLM in {len(result.successful)} payment(s)",
                amount=result.total_sent,
                type="payment",
            )

        self._notify(result, "Settlement")
        return result

    def _notify(self, result: SplitPaymentResult, title: str) -> None:
        if self.notifications is None:
            return
        if result.failed:
            self.notifications.warning(
                f"{title} Incomplete",
                f"{len(result.failed)} payment(s) failed, {result.total_sent:.2f} XLM sent",
                category="group",
            )
        elif result.successful:
            self.notifications.success(
                f"{title} Complete",
                f"Sent {result.total_sent:.2f} XLM in {len(result.transaction_hashes)} payment(s)",
                category="group",
            )
