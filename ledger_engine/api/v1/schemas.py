"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ledger_engine.domain.models import (
    AccountKind,
    EntryKind,
    EntryStatus,
    PaymentMethod,
    Transfer,
    UtilizationAlert,
)
from ledger_engine.services.store import StatusScope


class EntryCreate(BaseModel):
    """Request body for POST /v1/entries"""

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Positive amount in reais, two decimal places")
    date: date
    kind: EntryKind
    account_id: str
    category_id: Optional[str] = None
    status: EntryStatus = EntryStatus.CONFIRMADO
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    card_label: Optional[str] = None


class InstallmentCreate(EntryCreate):
    """Request body for POST /v1/entries/installments; amount is the purchase total"""

    installment_count: int = Field(..., ge=2)


class EntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    description: str
    amount: Decimal
    date: date
    kind: EntryKind
    account_id: str
    category_id: Optional[str] = None
    status: EntryStatus
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    card_label: Optional[str] = None
    installment_group_id: Optional[str] = None
    installment_index: Optional[int] = None
    installment_count: Optional[int] = None
    transfer_id: Optional[str] = None


class StatusChangeRequest(BaseModel):
    """Request body for PATCH /v1/entries/{id}/status"""

    status: EntryStatus
    scope: StatusScope = StatusScope.GROUP


class DeleteResponse(BaseModel):
    deleted: int


class InstallmentPreviewRequest(BaseModel):
    amount: Decimal
    count: int
    first_date: date


class InstallmentPreviewItem(BaseModel):
    index: int
    amount: Decimal
    date: date


class InstallmentPreviewResponse(BaseModel):
    total: Decimal
    installments: List[InstallmentPreviewItem]


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1)
    kind: AccountKind
    opening_balance: Decimal = Decimal("0.00")
    credit_limit: Optional[Decimal] = None
    invested_amount: Optional[Decimal] = None
    color: str = "#3B82F6"
    bank: Optional[str] = None
    branch: Optional[str] = None
    number: Optional[str] = None


class AccountResponse(AccountCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    kind: EntryKind
    color: str = "#10B981"
    description: Optional[str] = None


class CategoryResponse(CategoryCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str


class BalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    receipts_total: Decimal
    expenses_total: Decimal
    current_balance: Decimal


class UtilizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    current_invoice_total: Decimal
    forward_utilization: Decimal
    paid_this_cycle: Decimal
    invoice_outstanding: Decimal
    limit_remaining: Optional[Decimal] = None
    utilization_percent: Optional[Decimal] = None
    alert: Optional[UtilizationAlert] = None


class CategoryTotalSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category_name: str
    total: Decimal
    percent_of_invoice: Decimal


class DailyTotalSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    total: Decimal


class InvoiceResponse(BaseModel):
    """Response for GET /v1/accounts/{id}/invoice"""

    model_config = ConfigDict(from_attributes=True)

    start: date
    end: date
    total: Decimal
    entry_count: int
    average_per_entry: Decimal
    max_entry: Decimal
    installment_entry_count: int
    by_category: List[CategoryTotalSchema]
    by_day: List[DailyTotalSchema]
    entries: List[EntryResponse]


class TransferRequest(BaseModel):
    """Request body for POST /v1/transfers"""

    source_account_id: str
    destination_account_id: str
    amount: Decimal
    description: str
    on: Optional[date] = Field(default=None, description="Transfer date, defaults to today")


class TransferResponse(BaseModel):
    transfer_id: str
    amount: Decimal
    date: date
    description: str
    source_account_id: str
    destination_account_id: str
    debit_entry_id: str
    credit_entry_id: str

    @classmethod
    def from_transfer(cls, transfer: Transfer) -> "TransferResponse":
        return cls(
            transfer_id=transfer.transfer_id,
            amount=transfer.amount,
            date=transfer.date,
            description=transfer.description,
            source_account_id=transfer.source_account_id,
            destination_account_id=transfer.destination_account_id,
            debit_entry_id=transfer.debit.id,
            credit_entry_id=transfer.credit.id,
        )


class InvoicePaymentRequest(BaseModel):
    """Request body for POST /v1/accounts/{id}/invoice/payments"""

    origin_account_id: str
    amount: Decimal
    start: date
    end: date
    is_partial: bool = False
    on: Optional[date] = Field(default=None, description="Payment date, defaults to today")


class SettlementResponse(BaseModel):
    transfer: TransferResponse
    invoice_total: Decimal
    amount_paid: Decimal
    remaining: Decimal
    is_partial: bool
