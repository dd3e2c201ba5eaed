"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class EntryKind(str, Enum):
    RECEITA = "RECEITA"
    DESPESA = "DESPESA"


class EntryStatus(str, Enum):
    PENDENTE = "PENDENTE"
    CONFIRMADO = "CONFIRMADO"
    CANCELADO = "CANCELADO"


class PaymentMethod(str, Enum):
    DEBITO = "DEBITO"
    CREDITO = "CREDITO"
    PIX = "PIX"


class AccountKind(str, Enum):
    CORRENTE = "CORRENTE"  # checking
    POUPANCA = "POUPANCA"  # savings
    INVESTIMENTO = "INVESTIMENTO"
    CARTEIRA = "CARTEIRA"  # wallet


class DebtKind(str, Enum):
    EMPRESTIMO = "EMPRESTIMO"
    FINANCIAMENTO = "FINANCIAMENTO"
    CARTAO_CREDITO = "CARTAO_CREDITO"
    OUTRO = "OUTRO"


class DebtStatus(str, Enum):
    ATIVA = "ATIVA"
    QUITADA = "QUITADA"
    EM_ATRASO = "EM_ATRASO"


class UtilizationAlert(str, Enum):
    OK = "ok"
    ADVISORY = "advisory"
    WARNING = "warning"


@dataclass
class Account:
    """Bank account, wallet or card; credit-capable when it carries a positive limit"""

    id: Optional[str]
    owner_id: str
    name: str
    kind: AccountKind
    opening_balance: Decimal = Decimal("0.00")
    credit_limit: Optional[Decimal] = None
    invested_amount: Optional[Decimal] = None
    color: str = "#3B82F6"
    bank: Optional[str] = None
    branch: Optional[str] = None
    number: Optional[str] = None

    @property
    def is_credit_capable(self) -> bool:
        return self.credit_limit is not None and self.credit_limit > 0


@dataclass
class Category:
    """Spending or income category"""

    id: Optional[str]
    owner_id: str
    name: str
    kind: EntryKind
    color: str = "#10B981"
    description: Optional[str] = None


@dataclass
class LedgerEntry:
    """Single financial transaction posted to an account"""

    id: Optional[str]
    owner_id: str
    description: str
    amount: Decimal
    date: date
    kind: EntryKind
    account_id: str
    category_id: Optional[str]
    status: EntryStatus = EntryStatus.CONFIRMADO
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    card_label: Optional[str] = None
    installment_group_id: Optional[str] = None
    installment_index: Optional[int] = None
    installment_count: Optional[int] = None
    transfer_id: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == EntryStatus.CONFIRMADO

    @property
    def is_installment(self) -> bool:
        return self.installment_group_id is not None

    @property
    def is_transfer(self) -> bool:
        return self.transfer_id is not None

    @property
    def is_credit_charge(self) -> bool:
        """Confirmed card purchase counted against a credit limit"""
        return (
            self.is_confirmed
            and self.kind == EntryKind.DESPESA
            and self.payment_method == PaymentMethod.CREDITO
        )


@dataclass
class Debt:
    """Loan or financing tracked apart from the card ledger"""

    id: Optional[str]
    owner_id: str
    name: str
    kind: DebtKind
    principal: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    interest_rate: Decimal
    installment_value: Decimal
    installments_paid: int
    installments_total: int
    start_date: date
    due_date: date
    status: DebtStatus = DebtStatus.ATIVA
    notes: Optional[str] = None


@dataclass
class EntryFilter:
    """Criteria for listing entries; unset fields do not filter"""

    account_id: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    kind: Optional[EntryKind] = None
    status: Optional[EntryStatus] = None
    payment_method: Optional[PaymentMethod] = None
    installment_group_id: Optional[str] = None
    transfer_id: Optional[str] = None

    def matches(self, entry: LedgerEntry) -> bool:
        if self.account_id is not None and entry.account_id != self.account_id:
            return False
        if self.start is not None and entry.date < self.start:
            return False
        if self.end is not None and entry.date > self.end:
            return False
        if self.kind is not None and entry.kind != self.kind:
            return False
        if self.status is not None and entry.status != self.status:
            return False
        if self.payment_method is not None and entry.payment_method != self.payment_method:
            return False
        if self.installment_group_id is not None and entry.installment_group_id != self.installment_group_id:
            return False
        if self.transfer_id is not None and entry.transfer_id != self.transfer_id:
            return False
        return True


@dataclass
class BalanceSummary:
    """Derived account balance from confirmed entries"""

    receipts_total: Decimal
    expenses_total: Decimal
    current_balance: Decimal


@dataclass
class PortfolioSummary:
    """Totals across all of a user's accounts"""

    opening_total: Decimal
    current_total: Decimal
    receipts_total: Decimal
    expenses_total: Decimal
    invested_total: Decimal
    credit_limit_total: Decimal
    card_usage_total: Decimal
    card_available_total: Decimal

    @property
    def variation(self) -> Decimal:
        return self.current_total - self.opening_total


@dataclass
class CreditUtilization:
    """Credit limit usage for a card account at a reference date"""

    current_invoice_total: Decimal
    forward_utilization: Decimal
    paid_this_cycle: Decimal
    invoice_outstanding: Decimal
    limit_remaining: Optional[Decimal]
    utilization_percent: Optional[Decimal]
    alert: Optional[UtilizationAlert]


@dataclass
class CategoryTotal:
    category_name: str
    total: Decimal
    percent_of_invoice: Decimal


@dataclass
class DailyTotal:
    day: date
    total: Decimal


@dataclass
class InvoiceSummary:
    """Card invoice for a date range, grouped by category and by day"""

    start: date
    end: date
    total: Decimal
    entry_count: int
    average_per_entry: Decimal
    max_entry: Decimal
    installment_entry_count: int
    by_category: List[CategoryTotal] = field(default_factory=list)
    by_day: List[DailyTotal] = field(default_factory=list)
    entries: List[LedgerEntry] = field(default_factory=list)


@dataclass
class InstallmentGroup:
    """All installments of one purchase viewed as a unit"""

    group_id: str
    description: str
    total: Decimal
    first_date: date
    members: List[LedgerEntry]


@dataclass
class Transfer:
    """Paired debit/credit legs sharing a transfer id"""

    transfer_id: str
    amount: Decimal
    date: date
    description: str
    debit: LedgerEntry
    credit: LedgerEntry

    @property
    def source_account_id(self) -> str:
        return self.debit.account_id

    @property
    def destination_account_id(self) -> str:
        return self.credit.account_id


@dataclass
class Settlement:
    """Outcome of paying (part of) a card invoice"""

    transfer: Transfer
    invoice_total: Decimal
    amount_paid: Decimal
    remaining: Decimal
    is_partial: bool
