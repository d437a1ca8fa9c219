import pytest

from agentpay.models import GroupExpense
from agentpay.services.groups import GroupService
from agentpay.services.horizon import SimulatedPaymentGateway
from agentpay.services.invoices import InvoiceService
from agentpay.services.notifications import NotificationService
from agentpay.services.schedules import ScheduleService
from agentpay.services.storage import TinyDBStore


ALICE = "G" + "A" * 55
BOB = "G" + "B" * 55
CAROL = "G" + "C" * 55
DAVE = "G" + "D" * 55


@pytest.fixture
def store():
    """Fresh in-memory key-value store."""
    return TinyDBStore()


@pytest.fixture
def group_service(store):
    return GroupService(store)


@pytest.fixture
def invoice_service(store):
    return InvoiceService(store, base_url="https://pay.example.com")


@pytest.fixture
def schedule_service(store):
    return ScheduleService(store)


@pytest.fixture
def notification_service(store):
    return NotificationService(store)


@pytest.fixture
def payment_gateway():
    """Gateway that accepts every transfer and records it."""
    return SimulatedPaymentGateway()


@pytest.fixture
def sample_group(group_service):
    """Four-member group administered by Alice."""
    return group_service.create_group("Trip", [BOB, CAROL, DAVE], admin=ALICE)


@pytest.fixture
def sample_expenses():
    """Alice paid 90 split three ways, Bob paid 30 split with Carol."""
    return [
        GroupExpense(
            id="e1",
            group_id="g1",
            paid_by=ALICE,
            amount=90.0,
            description="Dinner",
            split_among=[ALICE, BOB, CAROL],
        ),
        GroupExpense(
            id="e2",
            group_id="g1",
            paid_by=BOB,
            amount=30.0,
            description="Taxi",
            split_among=[BOB, CAROL],
        ),
    ]
