"""
ScheduleService - one-off and recurring payments set up by an account.
"""

from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from ..models import ScheduledPayment, utcnow
from .storage import KeyValueStore, NotFoundError, new_id


SCHEDULES_KEY = "scheduled_payments"


class ScheduleService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def create_schedule(
        self,
        from_address: str,
        to_address: str,
        amount: float,
        currency: str,
        description: str = "",
        interval_days: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        max_executions: Optional[int] = None,
    ) -> ScheduledPayment:
        """Create an active schedule. interval_days=None means a one-off payment."""
        start = start_date or utcnow()
        schedule = ScheduledPayment(
            id=new_id("sch"),
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            currency=currency,
            description=description,
            interval_days=interval_days,
            start_date=start,
            end_date=end_date,
            next_execution_date=start,
            max_executions=max_executions,
        )
        self._save(schedule)
        logger.info("Created schedule {} every {} days", schedule.id, interval_days)
        return schedule

    def get_schedule(self, schedule_id: str) -> Optional[ScheduledPayment]:
        return next((s for s in self._all() if s.id == schedule_id), None)

    def get_user_schedules(self, address: str) -> list[ScheduledPayment]:
        """Schedules paid by an account, soonest first."""
        schedules = [s for s in self._all() if s.from_address == address]
        return sorted(schedules, key=lambda s: s.next_execution_date)

    def get_active_schedules(self, address: str) -> list[ScheduledPayment]:
        return [s for s in self.get_user_schedules(address) if s.status == "active"]

    def get_due_payments(self, address: str, now: Optional[datetime] = None) -> list[ScheduledPayment]:
        now = now or utcnow()
        return [s for s in self.get_active_schedules(address) if s.next_execution_date <= now]

    def get_upcoming_payments(
        self, address: str, days: int = 7, now: Optional[datetime] = None
    ) -> list[ScheduledPayment]:
        now = now or utcnow()
        horizon = now + timedelta(days=days)
        return [
            s for s in self.get_active_schedules(address)
            if now < s.next_execution_date <= horizon
        ]

    def mark_as_executed(self, schedule_id: str, transaction_hash: str) -> ScheduledPayment:
        """
        Record one execution and move the schedule forward.

        A schedule completes when it is one-off, reached max_executions, or its
        next execution would fall after end_date.
        """
        schedule = self._require(schedule_id)
        schedule.last_execution_date = utcnow()
        schedule.execution_count += 1
        schedule.transaction_hashes.append(transaction_hash)

        if schedule.interval_days:
            schedule.next_execution_date += timedelta(days=schedule.interval_days)

        if (
            not schedule.interval_days
            or (schedule.max_executions and schedule.execution_count >= schedule.max_executions)
            or (schedule.end_date and schedule.next_execution_date > schedule.end_date)
        ):
            schedule.status = "completed"

        self._save(schedule)
        return schedule

    def pause_schedule(self, schedule_id: str) -> ScheduledPayment:
        return self._set_status(schedule_id, "paused")

    def resume_schedule(self, schedule_id: str) -> ScheduledPayment:
        return self._set_status(schedule_id, "active")

    def cancel_schedule(self, schedule_id: str) -> ScheduledPayment:
        return self._set_status(schedule_id, "cancelled")

    def delete_schedule(self, schedule_id: str) -> None:
        self._write([s for s in self._all() if s.id != schedule_id])

    def get_schedule_stats(self, address: str) -> dict:
        schedules = self.get_user_schedules(address)
        active = [s for s in schedules if s.status == "active"]
        return {
            "total": len(schedules),
            "active": len(active),
            "paused": sum(1 for s in schedules if s.status == "paused"),
            "completed": sum(1 for s in schedules if s.status == "completed"),
            "total_amount": sum(s.amount * s.execution_count for s in schedules),
            "next_payment_date": min((s.next_execution_date for s in active), default=None),
        }

    def find_active_schedule(self, payer: str, recipient: str) -> Optional[ScheduledPayment]:
        """Most recently created active or paused schedule from payer to recipient."""
        candidates = [
            s for s in self._all()
            if s.from_address == payer
            and s.to_address == recipient
            and s.status in ("active", "paused")
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.created_at)

    def _set_status(self, schedule_id: str, status: str) -> ScheduledPayment:
        schedule = self._require(schedule_id)
        schedule.status = status
        self._save(schedule)
        return schedule

    def _require(self, schedule_id: str) -> ScheduledPayment:
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            raise NotFoundError(f"Schedule not found: {schedule_id}")
        return schedule

    def _save(self, schedule: ScheduledPayment) -> None:
        schedules = self._all()
        for index, existing in enumerate(schedules):
            if existing.id == schedule.id:
                schedules[index] = schedule
                break
        else:
            schedules.append(schedule)
        self._write(schedules)

    def _all(self) -> list[ScheduledPayment]:
        return [ScheduledPayment.model_validate(s) for s in self.store.get(SCHEDULES_KEY, [])]

    def _write(self, schedules: list[ScheduledPayment]) -> None:
        self.store.set(SCHEDULES_KEY, [s.model_dump(mode="json", by_alias=True) for s in schedules])
