from typing import Optional

from loguru import logger

from ..models import Group, GroupExpense, GroupMessage, Settlement
from .settlement import calculate_balances, suggest_settlements
from .storage import KeyValueStore, NotFoundError, new_id


GROUPS_KEY = "groups"


def _messages_key(group_id: str) -> str:
    return f"group_messages_{group_id}"


def _expenses_key(group_id: str) -> str:
    return f"group_expenses_{group_id}"


class GroupService:
    """Groups, their chat messages and their expense ledger."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    # Group CRUD

    def create_group(self, name: str, members: list[str], admin: str) -> Group:
        """Create a group. The admin is always the first member."""
        others: list[str] = []
        for member in members:
            if member != admin and member not in others:
                others.append(member)

        group = Group(id=new_id("group"), name=name, admin=admin, members=[admin, *others])

        groups = self.get_all_groups()
        groups.append(group)
        self._save_groups(groups)
        logger.info("Created group {} with {} members", group.id, len(group.members))
        return group

    def get_group(self, group_id: str) -> Optional[Group]:
        return next((g for g in self.get_all_groups() if g.id == group_id), None)

    def get_user_groups(self, address: str) -> list[Group]:
        return [g for g in self.get_all_groups() if address in g.members]

    def get_all_groups(self) -> list[Group]:
        return [Group.model_validate(g) for g in self.store.get(GROUPS_KEY, [])]

    def add_member(self, group_id: str, address: str) -> Group:
        groups = self.get_all_groups()
        group = self._find(groups, group_id)

        if address not in group.members:
            group.members.append(address)
            self._save_groups(groups)
            self.send_message(group_id, "system", f"New member added: {address}", type="system")
        return group

    def remove_member(self, group_id: str, address: str) -> Group:
        groups = self.get_all_groups()
        group = self._find(groups, group_id)

        if address in group.members:
            group.members = [m for m in group.members if m != address]
            self._save_groups(groups)
            self.send_message(group_id, "system", f"Member removed: {address}", type="system")
        return group

    def delete_group(self, group_id: str) -> None:
        """Delete a group together with its messages and expenses."""
        groups = self.get_all_groups()
        self._find(groups, group_id)
        self._save_groups([g for g in groups if g.id != group_id])
        self.store.delete(_messages_key(group_id))
        self.store.delete(_expenses_key(group_id))
        logger.info("Deleted group {}", group_id)

    # Messaging

    def send_message(
        self,
        group_id: str,
        sender: str,
        message: str,
        amount: float = 0,
        type: str = "message",
    ) -> GroupMessage:
        msg = GroupMessage(
            id=new_id("msg"),
            group_id=group_id,
            sender=sender,
            message=message,
            amount=amount,
            type=type,
        )
        messages = self.get_messages(group_id)
        messages.append(msg)
        self.store.set(
            _messages_key(group_id),
            [m.model_dump(mode="json", by_alias=True) for m in messages],
        )
        return msg

    def get_messages(self, group_id: str) -> list[GroupMessage]:
        return [GroupMessage.model_validate(m) for m in self.store.get(_messages_key(group_id), [])]

    # Expense tracking

    def record_expense(self, group_id: str, expense: GroupExpense) -> GroupExpense:
        expenses = self.get_expenses(group_id)
        expenses.append(expense)
        self.store.set(
            _expenses_key(group_id),
            [e.model_dump(mode="json", by_alias=True) for e in expenses],
        )
        logger.info("Recorded expense {} of {} in group {}", expense.id, expense.amount, group_id)
        return expense

    def get_expenses(self, group_id: str) -> list[GroupExpense]:
        return [GroupExpense.model_validate(e) for e in self.store.get(_expenses_key(group_id), [])]

    def calculate_balances(self, group_id: str) -> dict[str, float]:
        """Net balances over the group's current expense list."""
        return calculate_balances(self.get_expenses(group_id))

    def suggest_settlements(self, group_id: str) -> list[Settlement]:
        return suggest_settlements(self.get_expenses(group_id))

    def _find(self, groups: list[Group], group_id: str) -> Group:
        for group in groups:
            if group.id == group_id:
                return group
        raise NotFoundError(f"Group not found: {group_id}")

    def _save_groups(self, groups: list[Group]) -> None:
        self.store.set(GROUPS_KEY, [g.model_dump(mode="json", by_alias=True) for g in groups])
