from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_notification_service, get_schedule_service
from ..models import Notification, PaymentFailure, ScheduledPayment, ScheduleExecution, ScheduleStats
from ..services.notifications import NotificationService
from ..services.schedules import ScheduleService
from ..services.storage import NotFoundError

router = APIRouter(prefix="/api/schedules", tags=["Schedules"])


def _require_schedule(schedules: ScheduleService, schedule_id: str) -> ScheduledPayment:
    schedule = schedules.get_schedule(schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail=f"Schedule not found: {schedule_id}")
    return schedule


@router.get("", response_model=list[ScheduledPayment])
async def list_schedules(
    address: str = Query(..., description="Paying account"),
    schedules: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduledPayment]:
    """List a payer's schedules, soonest first."""
    return schedules.get_user_schedules(address)


@router.get("/due", response_model=list[ScheduledPayment])
async def due_payments(
    address: str = Query(...),
    schedules: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduledPayment]:
    return schedules.get_due_payments(address)


@router.get("/upcoming", response_model=list[ScheduledPayment])
async def upcoming_payments(
    address: str = Query(...),
    days: int = Query(7, ge=1),
    schedules: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduledPayment]:
    return schedules.get_upcoming_payments(address, days=days)


@router.get("/stats", response_model=ScheduleStats)
async def schedule_stats(
    address: str = Query(...),
    schedules: ScheduleService = Depends(get_schedule_service),
) -> dict:
    return schedules.get_schedule_stats(address)


@router.get("/{schedule_id}", response_model=ScheduledPayment)
async def get_schedule(schedule_id: str, schedules: ScheduleService = Depends(get_schedule_service)) -> ScheduledPayment:
    return _require_schedule(schedules, schedule_id)


@router.post("/{schedule_id}/execute", response_model=ScheduledPayment)
async def record_execution(
    schedule_id: str,
    request: ScheduleExecution,
    schedules: ScheduleService = Depends(get_schedule_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> ScheduledPayment:
    """Record a payment the wallet made for an active schedule."""
    schedule = _require_schedule(schedules, schedule_id)
    if schedule.status != "active":
        raise HTTPException(status_code=409, detail=f"Schedule {schedule_id} is {schedule.status}")

    executed = schedules.mark_as_executed(schedule_id, request.transaction_hash)
    notifications.payment_sent(executed.amount, executed.currency, executed.to_address, request.transaction_hash)
    return executed


@router.post("/{schedule_id}/execution-failed", response_model=Notification)
async def report_execution_failure(
    schedule_id: str,
    request: PaymentFailure,
    schedules: ScheduleService = Depends(get_schedule_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> Notification:
    schedule = _require_schedule(schedules, schedule_id)
    return notifications.payment_failed(schedule.amount, schedule.currency, request.error)


@router.post("/{schedule_id}/pause", response_model=ScheduledPayment)
async def pause_schedule(schedule_id: str, schedules: ScheduleService = Depends(get_schedule_service)) -> ScheduledPayment:
    try:
        return schedules.pause_schedule(schedule_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Schedule not found: {schedule_id}")


@router.post("/{schedule_id}/resume", response_model=ScheduledPayment)
async def resume_schedule(schedule_id: str, schedules: ScheduleService = Depends(get_schedule_service)) -> ScheduledPayment:
    try:
        return schedules.resume_schedule(schedule_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Schedule not found: {schedule_id}")


@router.post("/{schedule_id}/cancel", response_model=ScheduledPayment)
async def cancel_schedule(schedule_id: str, schedules: ScheduleService = Depends(get_schedule_service)) -> ScheduledPayment:
    try:
        return schedules.cancel_schedule(schedule_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Schedule not found: {schedule_id}")


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(schedule_id: str, schedules: ScheduleService = Depends(get_schedule_service)) -> None:
    _require_schedule(schedules, schedule_id)
    schedules.delete_schedule(schedule_id)
