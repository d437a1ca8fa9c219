from decimal import Decimal, ROUND_HALF_UP

from ..models import Balance, GroupExpense, Settlement


# Balances within one cent of zero count as settled
EPSILON = Decimal("0.01")
CENT = Decimal("0.01")


def calculate_balances(expenses: list[GroupExpense]) -> dict[str, float]:
    """
    Calculate the net balance of every address appearing in a group's expenses.

    Positive balance = address is owed money (paid more than their share)
    Negative balance = address owes money (consumed more than they paid)

    The payer is credited the full amount and every member of split_among is
    debited an equal share. Shares are not rounded, so the balances sum to
    zero up to float conversion error.

    Args:
        expenses: All expenses recorded for the group

    Returns:
        Dict mapping address to balance, in order of first appearance
    """
    balances: dict[str, Decimal] = {}

    for expense in expenses:
        amount = Decimal(str(expense.amount))
        balances[expense.paid_by] = balances.get(expense.paid_by, Decimal("0")) + amount

        share = amount / Decimal(len(expense.split_among))
        for member in expense.split_among:
            balances[member] = balances.get(member, Decimal("0")) - share

    return {address: float(balance) for address, balance in balances.items()}


def calculate_settlements(balances: dict[str, float]) -> list[Settlement]:
    """
    Calculate settlements with a greedy two-pointer merge.

    Debtors and creditors keep the order of the balance map. The current
    debtor pays the current creditor the smaller of what is left on either
    side, and whichever side drops under one cent moves on.

    Args:
        balances: Dict mapping address to balance

    Returns:
        List of Settlement objects, amounts rounded to cents
    """
    debtors: list[list] = []
    creditors: list[list] = []

    for address, balance in balances.items():
        bal = Decimal(str(balance))
        if bal < -EPSILON:
            debtors.append([address, -bal])  # Store as positive amount owed
        elif bal > EPSILON:
            creditors.append([address, bal])

    settlements: list[Settlement] = []

    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor_id, debt_amount = debtors[i]
        creditor_id, credit_amount = creditors[j]

        settle_amount = min(debt_amount, credit_amount)
        settlements.append(Settlement(
            from_address=debtor_id,
            to_address=creditor_id,
            amount=float(settle_amount.quantize(CENT, rounding=ROUND_HALF_UP)),
        ))

        debtors[i][1] = debt_amount - settle_amount
        creditors[j][1] = credit_amount - settle_amount

        if debtors[i][1] < EPSILON:
            i += 1
        if creditors[j][1] < EPSILON:
            j += 1

    return settlements


def suggest_settlements(expenses: list[GroupExpense]) -> list[Settlement]:
    """Settlements that bring every balance of the given expenses to zero."""
    return calculate_settlements(calculate_balances(expenses))


def to_balance_list(balances: dict[str, float]) -> list[Balance]:
    """Balances rounded to cents for display."""
    return [
        Balance(
            address=address,
            amount=float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)),
        )
        for address, amount in balances.items()
    ]
