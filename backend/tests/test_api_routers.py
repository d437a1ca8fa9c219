"""Tests for API router endpoints."""

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from agentpay.deps import (
    get_group_service,
    get_invoice_service,
    get_notification_service,
    get_payment_agent,
    get_schedule_service,
    get_split_orchestrator,
)
from agentpay.main import app
from agentpay.models import (
    AgentResponse,
    AssetBalance,
    BalanceListData,
    ContractCall,
    GroupExpense,
    UnsignedTransaction,
)
from agentpay.services.agent import PaymentAgent
from agentpay.services.gateway import LedgerGateway
from agentpay.services.parser import PatternCommandParser
from agentpay.services.split import SplitPaymentOrchestrator

client = TestClient(app)

ALICE = "G" + "A" * 55
BOB = "G" + "B" * 55
CAROL = "G" + "C" * 55
DAVE = "G" + "D" * 55


@pytest.fixture
def agent():
    mock = AsyncMock(spec=PaymentAgent)
    app.dependency_overrides[get_payment_agent] = lambda: mock
    yield mock
    app.dependency_overrides.clear()


@pytest.fixture
def services(group_service, invoice_service, schedule_service, notification_service, payment_gateway):
    """Route service-backed endpoints to in-memory services."""
    orchestrator = SplitPaymentOrchestrator(payment_gateway, group_service, notification_service)
    app.dependency_overrides[get_group_service] = lambda: group_service
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    app.dependency_overrides[get_invoice_service] = lambda: invoice_service
    app.dependency_overrides[get_schedule_service] = lambda: schedule_service
    app.dependency_overrides[get_split_orchestrator] = lambda: orchestrator
    yield group_service
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    """Tests for health and root endpoints."""

    def test_health_check_returns_healthy(self):
        """Health check endpoint should return healthy status with a timestamp."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_root_returns_api_info(self):
        """Root endpoint should return API information."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "AgentPay API"
        assert data["docs"] == "/docs"
        assert data["health"] == "/health"


class TestAgentRouter:
    """Tests for the agent endpoints."""

    def test_command_returns_agent_response(self, agent):
        """POST /api/command passes text and key to the agent and returns camelCase JSON."""
        agent.process_command.return_value = AgentResponse(
            success=True,
            message="Your current balance: 10 XLM",
            data=BalanceListData(balances=[AssetBalance(asset="XLM", balance="10")]),
        )

        response = client.post("/api/command", json={"command": "What is my balance", "userPublicKey": ALICE})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["kind"] == "balance_list"
        assert data["data"]["balances"] == [{"asset": "XLM", "balance": "10"}]
        assert "invoiceId" not in data
        agent.process_command.assert_awaited_once_with("What is my balance", ALICE)

    def test_command_required(self, agent):
        """POST /api/command without a command returns 400."""
        response = client.post("/api/command", json={})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Command is required"}
        agent.process_command.assert_not_awaited()

    def test_command_internal_error(self, agent):
        """Unexpected errors return 500 with an AgentResponse body."""
        agent.process_command.side_effect = Exception("boom")

        response = client.post("/api/command", json={"command": "send 1 XLM to @bob"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error"}

    def test_invoice_status(self, agent):
        agent.get_invoice_status.return_value = AgentResponse(
            success=True, message="Invoice inv_1 status: paid", invoice_id="inv_1"
        )

        response = client.get("/api/invoice/inv_1")

        assert response.status_code == 200
        assert response.json()["invoiceId"] == "inv_1"
        agent.get_invoice_status.assert_awaited_once_with("inv_1")

    def test_swap_quote(self, agent):
        agent.get_swap_quote.return_value = AgentResponse(success=True, message="Swap quote")

        response = client.post("/api/swap/quote", json={"fromAsset": "XLM", "toAsset": "USDC", "amount": 100})

        assert response.status_code == 200
        agent.get_swap_quote.assert_awaited_once_with("XLM", "USDC", 100.0)

    def test_swap_quote_missing_fields(self, agent):
        response = client.post("/api/swap/quote", json={"fromAsset": "XLM"})

        assert response.status_code == 400
        assert response.json()["message"] == "fromAsset, toAsset, and amount are required"


class TestGroupsRouter:
    """Tests for the group endpoints."""

    def test_create_and_get_group(self, services):
        response = client.post("/api/groups", json={"name": "Trip", "admin": ALICE, "members": [BOB, CAROL]})

        assert response.status_code == 201
        group = response.json()
        assert group["members"] == [ALICE, BOB, CAROL]

        response = client.get(f"/api/groups/{group['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Trip"

    def test_create_group_requires_name(self, services):
        response = client.post("/api/groups", json={"name": " ", "admin": ALICE})

        assert response.status_code == 400

    def test_list_groups_by_member(self, services):
        services.create_group("A", [BOB], admin=ALICE)
        services.create_group("B", [CAROL], admin=ALICE)

        response = client.get("/api/groups", params={"member": BOB})

        assert [g["name"] for g in response.json()] == ["A"]
        assert len(client.get("/api/groups").json()) == 2

    def test_unknown_group_returns_404(self, services):
        assert client.get("/api/groups/group_missing").status_code == 404
        assert client.delete("/api/groups/group_missing").status_code == 404
        assert client.post("/api/groups/group_missing/members", json={"address": BOB}).status_code == 404
        assert client.get("/api/groups/group_missing/balances").status_code == 404

    def test_members_and_messages(self, services, sample_group):
        response = client.post(f"/api/groups/{sample_group.id}/members", json={"address": "G" + "E" * 55})
        assert response.status_code == 200

        response = client.delete(f"/api/groups/{sample_group.id}/members/{BOB}")
        assert BOB not in response.json()["members"]

        response = client.post(f"/api/groups/{sample_group.id}/messages", json={"from": ALICE, "message": "hi"})
        assert response.status_code == 201
        assert response.json()["from"] == ALICE

        messages = client.get(f"/api/groups/{sample_group.id}/messages").json()
        assert [m["type"] for m in messages] == ["system", "system", "message"]

    def test_expenses_balances_and_settlements(self, services, sample_group):
        response = client.post(
            f"/api/groups/{sample_group.id}/expenses",
            json={"paidBy": ALICE, "amount": 90, "description": "Dinner", "splitAmong": [ALICE, BOB, CAROL]},
        )
        assert response.status_code == 201
        assert response.json()["splitAmong"] == [ALICE, BOB, CAROL]

        balances = client.get(f"/api/groups/{sample_group.id}/balances").json()
        assert balances == [
            {"address": ALICE, "amount": 60.0},
            {"address": BOB, "amount": -30.0},
            {"address": CAROL, "amount": -30.0},
        ]

        settlements = client.get(f"/api/groups/{sample_group.id}/settlements").json()
        assert settlements == [
            {"from": BOB, "to": ALICE, "amount": 30.0},
            {"from": CAROL, "to": ALICE, "amount": 30.0},
        ]

    def test_expense_requires_members(self, services, sample_group):
        response = client.post(
            f"/api/groups/{sample_group.id}/expenses",
            json={"paidBy": ALICE, "amount": 10, "splitAmong": []},
        )

        assert response.status_code == 422

    def test_split_defaults_to_all_members(self, services, sample_group):
        response = client.post(f"/api/groups/{sample_group.id}/split", json={"payer": ALICE, "totalAmount": 100})

        assert response.status_code == 200
        data = response.json()
        assert data["successful"] == [ALICE, BOB, CAROL, DAVE]
        assert data["totalSent"] == 75.0
        assert len(data["transactionHashes"]) == 3

    def test_settle(self, services, sample_group):
        services.record_expense(
            sample_group.id,
            GroupExpense(id="e1", group_id=sample_group.id, paid_by=ALICE, amount=40.0, split_among=[ALICE, BOB]),
        )

        response = client.post(f"/api/groups/{sample_group.id}/settle", json={"payer": BOB})

        assert response.status_code == 200
        assert response.json()["totalSent"] == 20.0
        assert client.get(f"/api/groups/{sample_group.id}/settlements").json() == []

    def test_delete_group(self, services, sample_group):
        assert client.delete(f"/api/groups/{sample_group.id}").status_code == 204
        assert client.get(f"/api/groups/{sample_group.id}").status_code == 404


class TestNotificationsRouter:
    """Tests for the notification endpoints."""

    def test_list_and_mark_read(self, services, notification_service):
        first = notification_service.info("One", "1")
        notification_service.info("Two", "2")

        response = client.get("/api/notifications")
        assert [n["title"] for n in response.json()] == ["Two", "One"]

        response = client.post(f"/api/notifications/{first.id}/read")
        assert response.json()["read"] is True

        unread = client.get("/api/notifications", params={"unreadOnly": True}).json()
        assert [n["title"] for n in unread] == ["Two"]

        response = client.post("/api/notifications/read-all")
        assert response.json() == {"unreadCount": 0}

    def test_mark_unknown_returns_404(self, services):
        assert client.post("/api/notifications/notif_missing/read").status_code == 404

    def test_delete_and_clear(self, services, notification_service):
        keep = notification_service.info("Keep", "k")
        drop = notification_service.info("Drop", "d")

        assert client.delete(f"/api/notifications/{drop.id}").status_code == 204
        assert [n["id"] for n in client.get("/api/notifications").json()] == [keep.id]
        assert client.delete("/api/notifications/notif_missing").status_code == 404

        assert client.delete("/api/notifications").status_code == 204
        assert client.get("/api/notifications").json() == []


class TestInvoicesRouter:
    """Tests for the invoice endpoints."""

    def test_list_invoices(self, services, invoice_service):
        first = invoice_service.create_invoice(ALICE, 5.0, "XLM", to_address="@bob")
        second = invoice_service.create_invoice(ALICE, 7.0, "USDC")
        invoice_service.cancel_invoice(second.id)

        response = client.get("/api/invoices", params={"address": ALICE})
        assert [inv["id"] for inv in response.json()] == [second.id, first.id]

        response = client.get("/api/invoices", params={"address": ALICE, "pendingOnly": True})
        assert [inv["id"] for inv in response.json()] == [first.id]

    def test_list_requires_address(self, services):
        assert client.get("/api/invoices").status_code == 422

    def test_pay_invoice(self, services, invoice_service, notification_service):
        """Paying keeps the recipient and records the payer and a notification."""
        invoice = invoice_service.create_invoice(ALICE, 5.0, "XLM", to_address="@bob")

        response = client.post(f"/api/invoices/{invoice.id}/pay", json={"transactionHash": "tx1", "paidBy": BOB})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "paid"
        assert data["to"] == "@bob"
        assert data["paidBy"] == BOB
        assert data["transactionHash"] == "tx1"

        notification = notification_service.list_notifications()[0]
        assert notification.title == "Payment Sent"
        assert notification.data["txHash"] == "tx1"

        response = client.post(f"/api/invoices/{invoice.id}/pay", json={"transactionHash": "tx2"})
        assert response.status_code == 409

    def test_paid_invoice_can_be_refunded_by_command(self, services, invoice_service, schedule_service):
        """An invoice paid over HTTP is found by a refund command."""
        ledger = AsyncMock(spec=LedgerGateway)
        ledger.execute_refund.return_value = UnsignedTransaction(
            unsigned_payload=ContractCall(contract_id="CPAY", method="execute_refund", params={})
        )
        app.dependency_overrides[get_payment_agent] = lambda: PaymentAgent(
            PatternCommandParser(), ledger, invoice_service, schedule_service
        )
        invoice = invoice_service.create_invoice(ALICE, 5.0, "XLM", to_address="@bob")
        client.post(f"/api/invoices/{invoice.id}/pay", json={"transactionHash": "tx1", "paidBy": BOB})

        response = client.post("/api/command", json={"command": "Refund 5 XLM to @bob", "userPublicKey": ALICE})

        data = response.json()
        assert data["success"] is True
        assert data["data"]["invoiceId"] == invoice.id

        response = client.post(f"/api/invoices/{invoice.id}/refund")
        assert response.json()["status"] == "refunded"

    def test_refund_requires_paid_invoice(self, services, invoice_service):
        invoice = invoice_service.create_invoice(ALICE, 5.0, "XLM")

        assert client.post(f"/api/invoices/{invoice.id}/refund").status_code == 409

    def test_cancel_and_payment_failure(self, services, invoice_service):
        invoice = invoice_service.create_invoice(ALICE, 5.0, "XLM")

        response = client.post(f"/api/invoices/{invoice.id}/payment-failed", json={"error": "op_underfunded"})
        assert response.json()["type"] == "error"
        assert "op_underfunded" in response.json()["message"]

        response = client.post(f"/api/invoices/{invoice.id}/cancel")
        assert response.json()["status"] == "cancelled"
        assert client.post(f"/api/invoices/{invoice.id}/cancel").status_code == 409

    def test_stats(self, services, invoice_service):
        paid = invoice_service.create_invoice(ALICE, 10.0, "XLM")
        invoice_service.create_invoice(ALICE, 5.0, "XLM")
        invoice_service.mark_as_paid(paid.id, "tx")

        response = client.get("/api/invoices/stats", params={"address": ALICE})

        assert response.json() == {
            "total": 2,
            "pending": 1,
            "paid": 1,
            "expired": 0,
            "totalAmount": 15.0,
            "paidAmount": 10.0,
        }

    def test_get_and_delete(self, services, invoice_service):
        invoice = invoice_service.create_invoice(ALICE, 1.0, "XLM")

        assert client.get(f"/api/invoices/{invoice.id}").json()["from"] == ALICE
        assert client.delete(f"/api/invoices/{invoice.id}").status_code == 204
        assert client.get(f"/api/invoices/{invoice.id}").status_code == 404
        assert client.delete(f"/api/invoices/{invoice.id}").status_code == 404


class TestSchedulesRouter:
    """Tests for the scheduled payment endpoints."""

    def test_list_and_get(self, services, schedule_service):
        schedule = schedule_service.create_schedule(ALICE, BOB, 10.0, "XLM", interval_days=7)

        response = client.get("/api/schedules", params={"address": ALICE})
        assert [s["id"] for s in response.json()] == [schedule.id]
        assert client.get(f"/api/schedules/{schedule.id}").json()["intervalDays"] == 7
        assert client.get("/api/schedules/sch_missing").status_code == 404

    def test_due_and_upcoming(self, services, schedule_service):
        due = schedule_service.create_schedule(ALICE, BOB, 10.0, "XLM", interval_days=7)

        assert [s["id"] for s in client.get("/api/schedules/due", params={"address": ALICE}).json()] == [due.id]
        assert client.get("/api/schedules/upcoming", params={"address": ALICE, "days": 3}).json() == []

    def test_execute_records_payment(self, services, schedule_service, notification_service):
        schedule = schedule_service.create_schedule(ALICE, BOB, 10.0, "XLM", interval_days=7)

        response = client.post(f"/api/schedules/{schedule.id}/execute", json={"transactionHash": "tx1"})

        assert response.status_code == 200
        data = response.json()
        assert data["executionCount"] == 1
        assert data["transactionHashes"] == ["tx1"]
        assert notification_service.list_notifications()[0].title == "Payment Sent"

    def test_pause_resume_cancel(self, services, schedule_service):
        schedule = schedule_service.create_schedule(ALICE, BOB, 10.0, "XLM", interval_days=7)

        assert client.post(f"/api/schedules/{schedule.id}/pause").json()["status"] == "paused"
        response = client.post(f"/api/schedules/{schedule.id}/execute", json={"transactionHash": "tx1"})
        assert response.status_code == 409

        assert client.post(f"/api/schedules/{schedule.id}/resume").json()["status"] == "active"
        assert client.post(f"/api/schedules/{schedule.id}/cancel").json()["status"] == "cancelled"
        assert client.post("/api/schedules/sch_missing/pause").status_code == 404

    def test_execution_failure_and_stats(self, services, schedule_service):
        schedule = schedule_service.create_schedule(ALICE, BOB, 10.0, "XLM", interval_days=7)
        schedule_service.mark_as_executed(schedule.id, "tx1")

        response = client.post(f"/api/schedules/{schedule.id}/execution-failed", json={"error": "timeout"})
        assert response.json()["title"] == "Payment Failed"

        stats = client.get("/api/schedules/stats", params={"address": ALICE}).json()
        assert stats["total"] == 1
        assert stats["active"] == 1
        assert stats["totalAmount"] == 10.0
        assert stats["nextPaymentDate"] is not None

    def test_delete(self, services, schedule_service):
        schedule = schedule_service.create_schedule(ALICE, BOB, 10.0, "XLM")

        assert client.delete(f"/api/schedules/{schedule.id}").status_code == 204
        assert client.get(f"/api/schedules/{schedule.id}").status_code == 404
