"""
Cached providers wiring settings, storage and services together.

Routers take these through Depends so tests can swap any of them with
app.dependency_overrides.
"""

from functools import lru_cache

from .config import get_settings
from .services.agent import PaymentAgent
from .services.gateway import LedgerGateway, PaymentGateway
from .services.groups import GroupService
from .services.horizon import HorizonLedgerGateway, SimulatedPaymentGateway
from .services.invoices import InvoiceService
from .services.llm_parser import ClaudeCommandParser
from .services.notifications import NotificationService
from .services.parser import CommandParser, PatternCommandParser
from .services.schedules import ScheduleService
from .services.split import SplitPaymentOrchestrator
from .services.storage import KeyValueStore, TinyDBStore


@lru_cache
def get_store() -> KeyValueStore:
    return TinyDBStore(get_settings().db_path)


@lru_cache
def get_group_service() -> GroupService:
    return GroupService(get_store())


@lru_cache
def get_invoice_service() -> InvoiceService:
    return InvoiceService(get_store(), get_settings().public_base_url)


@lru_cache
def get_schedule_service() -> ScheduleService:
    return ScheduleService(get_store())


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService(get_store())


@lru_cache
def get_ledger_gateway() -> LedgerGateway:
    return HorizonLedgerGateway(get_settings(), get_invoice_service())


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return SimulatedPaymentGateway()


@lru_cache
def get_command_parser() -> CommandParser:
    """Pattern rules by default, Claude when PARSER_BACKEND=llm."""
    if get_settings().parser_backend == "llm":
        return ClaudeCommandParser()
    return PatternCommandParser()


@lru_cache
def get_payment_agent() -> PaymentAgent:
    return PaymentAgent(
        parser=get_command_parser(),
        ledger=get_ledger_gateway(),
        invoices=get_invoice_service(),
        schedules=get_schedule_service(),
        timeout=get_settings().gateway_timeout_seconds,
    )


@lru_cache
def get_split_orchestrator() -> SplitPaymentOrchestrator:
    return SplitPaymentOrchestrator(
        payments=get_payment_gateway(),
        groups=get_group_service(),
        notifications=get_notification_service(),
        timeout=get_settings().gateway_timeout_seconds,
    )
