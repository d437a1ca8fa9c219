from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, Literal, Optional, Union
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiModel(BaseModel):
    """Base model serialised with camelCase keys, populated by either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


Intent = Literal["request", "refund", "schedule", "cancel", "query"]
PaymentAction = Literal["request", "refund", "schedule", "cancel"]


# ===== Command interpretation =====

class Schedule(ApiModel):
    """Recurrence of a scheduled payment."""
    interval_days: int


class Entities(ApiModel):
    """Fields extracted from a free-text command. Missing values are None."""
    amount: Optional[float] = None
    currency: Optional[str] = None
    recipient: Optional[str] = None
    username: Optional[str] = None
    description: Optional[str] = None
    schedule: Optional[Schedule] = None


class ParsedCommand(ApiModel):
    """Result of parsing one free-text command."""
    intent: Intent = "query"
    entities: Entities = Field(default_factory=Entities)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class ValidationResult(ApiModel):
    """Outcome of validating a ParsedCommand."""
    valid: bool
    errors: list[str] = []


class PaymentCommand(ApiModel):
    """Validated, executable form of a parsed command."""
    action: PaymentAction
    amount: float = Field(gt=0)
    currency: str = "XLM"
    recipient: str = Field(min_length=1)
    description: Optional[str] = None
    schedule: Optional[Schedule] = None


# ===== Ledger gateway payloads =====

class ContractCall(ApiModel):
    """Unsigned contract invocation handed to the wallet for signing."""
    contract_id: str
    method: str
    params: dict[str, Any]
    network_passphrase: str = ""


class InvoiceReceipt(ApiModel):
    """Result of creating an invoice on the ledger."""
    invoice_id: str
    unsigned_payload: ContractCall


class UnsignedTransaction(ApiModel):
    """A contract call that still has to be signed by the caller."""
    unsigned_payload: ContractCall


class AssetBalance(ApiModel):
    """Balance of a single asset held by an account."""
    asset: str
    balance: str


class TransactionSummary(ApiModel):
    """A transaction as listed by Horizon."""
    id: str
    hash: str
    created_at: str
    successful: bool
    source_account: str


class TransactionStatus(ApiModel):
    """Status of a submitted transaction."""
    hash: str
    status: Literal["pending", "success", "failed"]
    source_account: str = ""


class SwapEstimate(ApiModel):
    """Estimated output of an asset swap."""
    estimated_output: float
    price_impact: float
    fees: float


# ===== Invoices, schedules, notifications =====

InvoiceStatus = Literal["pending", "paid", "refunded", "expired", "cancelled"]


class Invoice(ApiModel):
    """A payment request created by one account."""
    id: str
    from_address: str = Field(alias="from")
    to_address: Optional[str] = Field(default=None, alias="to")
    amount: float
    currency: str
    description: str = ""
    status: InvoiceStatus = "pending"
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    transaction_hash: Optional[str] = None
    paid_by: Optional[str] = None
    shareable_link: str = ""


class InvoiceStats(ApiModel):
    """Invoice counts and totals for one account."""
    total: int
    pending: int
    paid: int
    expired: int
    total_amount: float
    paid_amount: float


ScheduleStatus = Literal["active", "paused", "completed", "cancelled"]


class ScheduledPayment(ApiModel):
    """A one-off or recurring payment scheduled by an account."""
    id: str
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    amount: float
    currency: str = "XLM"
    description: str = ""
    interval_days: Optional[int] = None  # None = one-off
    start_date: datetime
    end_date: Optional[datetime] = None
    next_execution_date: datetime
    last_execution_date: Optional[datetime] = None
    execution_count: int = 0
    max_executions: Optional[int] = None
    status: ScheduleStatus = "active"
    created_at: datetime = Field(default_factory=utcnow)
    transaction_hashes: list[str] = []


class ScheduleStats(ApiModel):
    """Schedule counts and totals for one payer."""
    total: int
    active: int
    paused: int
    completed: int
    total_amount: float
    next_payment_date: Optional[datetime] = None


NotificationType = Literal["success", "error", "warning", "info"]
NotificationCategory = Literal["payment", "invoice", "schedule", "group", "system"]


class Notification(ApiModel):
    """An in-app notification."""
    id: str
    type: NotificationType
    category: NotificationCategory
    title: str
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    read: bool = False
    data: Optional[dict[str, Any]] = None


# ===== Groups =====

class Group(ApiModel):
    """A group of accounts sharing expenses."""
    id: str
    name: str
    admin: str
    members: list[str]
    created_at: datetime = Field(default_factory=utcnow)


class GroupMessage(ApiModel):
    """A chat message posted in a group."""
    id: str
    group_id: str
    sender: str = Field(alias="from")
    message: str
    amount: float = 0
    timestamp: datetime = Field(default_factory=utcnow)
    type: Literal["message", "payment", "system"] = "message"


class GroupExpense(ApiModel):
    """One recorded split-payment event of a group."""
    id: str
    group_id: str
    paid_by: str
    amount: float = Field(gt=0)
    description: str = ""
    split_among: list[str] = Field(min_length=1)
    timestamp: datetime = Field(default_factory=utcnow)
    transaction_hash: Optional[str] = None


class Balance(ApiModel):
    """A member's net balance in a group."""
    address: str
    amount: float  # Positive = owed money, Negative = owes money


class Settlement(ApiModel):
    """A payment from one member to another."""
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    amount: float


class FailedPayment(ApiModel):
    """A member payment that did not go through."""
    address: str
    error: str


class SplitPaymentResult(ApiModel):
    """Aggregated outcome of a split or settlement batch."""
    successful: list[str] = []
    failed: list[FailedPayment] = []
    total_sent: float = 0.0
    transaction_hashes: list[str] = []


# ===== Agent responses =====

class InvoiceCreatedData(ApiModel):
    kind: Literal["invoice_created"] = "invoice_created"
    amount: float
    currency: str
    recipient: str
    description: Optional[str] = None
    contract_call: ContractCall
    requires_signature: bool = True


class RefundReadyData(ApiModel):
    kind: Literal["refund_ready"] = "refund_ready"
    recipient: str
    reason: str
    invoice_id: str
    contract_call: ContractCall
    requires_signature: bool = True


class ScheduleReadyData(ApiModel):
    kind: Literal["schedule_ready"] = "schedule_ready"
    amount: float
    currency: str
    recipient: str
    interval_days: int
    schedule_id: str
    contract_call: ContractCall
    requires_signature: bool = True


class CancelReadyData(ApiModel):
    kind: Literal["cancel_ready"] = "cancel_ready"
    recipient: str
    schedule_id: str
    contract_call: ContractCall
    requires_signature: bool = True


class BalanceListData(ApiModel):
    kind: Literal["balance_list"] = "balance_list"
    balances: list[AssetBalance]


class TransactionListData(ApiModel):
    kind: Literal["transaction_list"] = "transaction_list"
    transactions: list[TransactionSummary]


class SwapQuoteData(ApiModel):
    kind: Literal["swap_quote"] = "swap_quote"
    from_asset: str
    to_asset: str
    amount_in: float
    estimated_output: float
    price_impact: float
    fees: float


class InvoiceDetailsData(ApiModel):
    kind: Literal["invoice"] = "invoice"
    invoice: Invoice


ResponseData = Annotated[
    Union[
        InvoiceCreatedData,
        RefundReadyData,
        ScheduleReadyData,
        CancelReadyData,
        BalanceListData,
        TransactionListData,
        SwapQuoteData,
        InvoiceDetailsData,
    ],
    Field(discriminator="kind"),
]


class AgentResponse(ApiModel):
    """Response returned by every agent operation."""
    success: bool
    message: str
    data: Optional[ResponseData] = None
    invoice_id: Optional[str] = None
    transaction_id: Optional[str] = None


# ===== Request bodies =====

class CommandRequest(ApiModel):
    """Request body for a natural-language command."""
    command: str = ""
    user_public_key: Optional[str] = None


class SwapQuoteRequest(ApiModel):
    """Request body for a swap quote. Missing fields are reported by the router."""
    from_asset: Optional[str] = None
    to_asset: Optional[str] = None
    amount: Optional[float] = None


class GroupCreate(ApiModel):
    """Request body for creating a group."""
    name: str
    admin: str
    members: list[str] = []


class MemberAdd(ApiModel):
    """Request body for adding a member to a group."""
    address: str


class MessageCreate(ApiModel):
    """Request body for posting a group message."""
    sender: str = Field(alias="from")
    message: str
    amount: float = 0


class ExpenseCreate(ApiModel):
    """Request body for recording a group expense by hand."""
    paid_by: str
    amount: float = Field(gt=0)
    description: str = ""
    split_among: list[str] = Field(min_length=1)
    transaction_hash: Optional[str] = None


class SplitPaymentRequest(ApiModel):
    """Request body for splitting a payment among group members."""
    payer: str
    total_amount: float = Field(gt=0)
    description: str = "Split payment"
    members: Optional[list[str]] = None  # defaults to every group member


class SettleRequest(ApiModel):
    """Request body for paying the caller's suggested settlements."""
    payer: str


class InvoicePayment(ApiModel):
    """Request body reporting a wallet payment of an invoice."""
    transaction_hash: str
    paid_by: Optional[str] = None


class ScheduleExecution(ApiModel):
    """Request body reporting one executed scheduled payment."""
    transaction_hash: str


class PaymentFailure(ApiModel):
    """Request body reporting a payment the wallet could not complete."""
    error: str
