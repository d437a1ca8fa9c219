from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_group_service, get_split_orchestrator
from ..models import (
    Balance,
    ExpenseCreate,
    Group,
    GroupCreate,
    GroupExpense,
    GroupMessage,
    MemberAdd,
    MessageCreate,
    SettleRequest,
    Settlement,
    SplitPaymentRequest,
    SplitPaymentResult,
)
from ..services.groups import GroupService
from ..services.settlement import to_balance_list
from ..services.split import SplitPaymentOrchestrator
from ..services.storage import NotFoundError, new_id

router = APIRouter(prefix="/api/groups", tags=["Groups"])


def _require_group(groups: GroupService, group_id: str) -> Group:
    group = groups.get_group(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail=f"Group not found: {group_id}")
    return group


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(request: GroupCreate, groups: GroupService = Depends(get_group_service)) -> Group:
    """Create a group. The admin becomes the first member."""
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Group name is required")
    return groups.create_group(request.name, request.members, request.admin)


@router.get("", response_model=list[Group])
async def list_groups(
    member: Optional[str] = Query(None, description="Only groups this address belongs to"),
    groups: GroupService = Depends(get_group_service),
) -> list[Group]:
    if member:
        return groups.get_user_groups(member)
    return groups.get_all_groups()


@router.get("/{group_id}", response_model=Group)
async def get_group(group_id: str, groups: GroupService = Depends(get_group_service)) -> Group:
    return _require_group(groups, group_id)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: str, groups: GroupService = Depends(get_group_service)) -> None:
    """Delete a group along with its messages and expenses."""
    try:
        groups.delete_group(group_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Group not found: {group_id}")


@router.post("/{group_id}/members", response_model=Group)
async def add_member(
    group_id: str,
    request: MemberAdd,
    groups: GroupService = Depends(get_group_service),
) -> Group:
    try:
        return groups.add_member(group_id, request.address)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Group not found: {group_id}")


@router.delete("/{group_id}/members/{address}", response_model=Group)
async def remove_member(
    group_id: str,
    address: str,
    groups: GroupService = Depends(get_group_service),
) -> Group:
    try:
        return groups.remove_member(group_id, address)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Group not found: {group_id}")


@router.get("/{group_id}/messages", response_model=list[GroupMessage])
async def get_messages(group_id: str, groups: GroupService = Depends(get_group_service)) -> list[GroupMessage]:
    _require_group(groups, group_id)
    return groups.get_messages(group_id)


@router.post("/{group_id}/messages", response_model=GroupMessage, status_code=status.HTTP_201_CREATED)
async def send_message(
    group_id: str,
    request: MessageCreate,
    groups: GroupService = Depends(get_group_service),
) -> GroupMessage:
    _require_group(groups, group_id)
    return groups.send_message(
        group_id,
        request.sender,
        request.message,
        amount=request.amount,
        type="payment" if request.amount > 0 else "message",
    )


@router.get("/{group_id}/expenses", response_model=list[GroupExpense])
async def get_expenses(group_id: str, groups: GroupService = Depends(get_group_service)) -> list[GroupExpense]:
    _require_group(groups, group_id)
    return groups.get_expenses(group_id)


@router.post("/{group_id}/expenses", response_model=GroupExpense, status_code=status.HTTP_201_CREATED)
async def record_expense(
    group_id: str,
    request: ExpenseCreate,
    groups: GroupService = Depends(get_group_service),
) -> GroupExpense:
    """Record an expense paid outside the split flow."""
    _require_group(groups, group_id)
    expense = GroupExpense(
        id=new_id("expense"),
        group_id=group_id,
        paid_by=request.paid_by,
        amount=request.amount,
        description=request.description,
        split_among=request.split_among,
        transaction_hash=request.transaction_hash,
    )
    return groups.record_expense(group_id, expense)


@router.get("/{group_id}/balances", response_model=list[Balance])
async def get_balances(group_id: str, groups: GroupService = Depends(get_group_service)) -> list[Balance]:
    """
    Get the net balance of each member of a group.

    Positive balance = member is owed money (paid more than their share)
    Negative balance = member owes money (consumed more than they paid)
    """
    _require_group(groups, group_id)
    return to_balance_list(groups.calculate_balances(group_id))


@router.get("/{group_id}/settlements", response_model=list[Settlement])
async def get_settlements(group_id: str, groups: GroupService = Depends(get_group_service)) -> list[Settlement]:
    """Get the transfers that bring every member's balance to zero."""
    _require_group(groups, group_id)
    return groups.suggest_settlements(group_id)


@router.post("/{group_id}/split", response_model=SplitPaymentResult)
async def split_payment(
    group_id: str,
    request: SplitPaymentRequest,
    groups: GroupService = Depends(get_group_service),
    orchestrator: SplitPaymentOrchestrator = Depends(get_split_orchestrator),
) -> SplitPaymentResult:
    """
    Split a payment equally among group members.

    Uses every member of the group unless an explicit member list is given.
    """
    group = _require_group(groups, group_id)
    members = request.members or group.members
    try:
        return await orchestrator.split_payment(
            group_id, request.payer, request.total_amount, members, request.description
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Split payment failed: {str(e)}")


@router.post("/{group_id}/settle", response_model=SplitPaymentResult)
async def settle(
    group_id: str,
    request: SettleRequest,
    groups: GroupService = Depends(get_group_service),
    orchestrator: SplitPaymentOrchestrator = Depends(get_split_orchestrator),
) -> SplitPaymentResult:
    """Pay every suggested settlement owed by the payer."""
    _require_group(groups, group_id)
    try:
        settlements = groups.suggest_settlements(group_id)
        return await orchestrator.execute_settlements(group_id, request.payer, settlements)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Settlement failed: {str(e)}")
