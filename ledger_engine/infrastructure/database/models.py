"""SQLAlchemy ORM models for accounts, categories, ledger entries and debts"""

import uuid
from sqlalchemy import Column, String, Numeric, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(14, 2, asdecimal=True)


def _new_id() -> str:
    return str(uuid.uuid4())


class AccountRecord(Base):
    """Account; credit-capable when credit_limit is set"""

    __tablename__ = "account"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False)
    opening_balance = Column(Money, nullable=False, default=0)
    credit_limit = Column(Money, nullable=True)
    invested_amount = Column(Money, nullable=True)
    color = Column(Text, nullable=False)
    bank = Column(Text, nullable=True)
    branch = Column(Text, nullable=True)
    number = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entries = relationship("LedgerEntryRecord", back_populates="account")


class CategoryRecord(Base):
    """Income or expense category"""

    __tablename__ = "category"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False)
    color = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LedgerEntryRecord(Base):
    """Ledger entry; installment and transfer ids are indexed for direct group lookup"""

    __tablename__ = "ledger_entry"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    date = Column(Date, nullable=False, index=True)
    kind = Column(Text, nullable=False)
    account_id = Column(String(36), ForeignKey("account.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("category.id"), nullable=True)
    status = Column(Text, nullable=False, default="CONFIRMADO")
    notes = Column(Text, nullable=True)
    payment_method = Column(Text, nullable=True)
    card_label = Column(Text, nullable=True)
    installment_group_id = Column(String(36), nullable=True, index=True)
    installment_index = Column(Integer, nullable=True)
    installment_count = Column(Integer, nullable=True)
    transfer_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("AccountRecord", back_populates="entries")


class DebtRecord(Base):
    """Loan or financing with payment progress"""

    __tablename__ = "debt"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False)
    principal = Column(Money, nullable=False)
    paid_amount = Column(Money, nullable=False, default=0)
    remaining_amount = Column(Money, nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False, default=0)
    installment_value = Column(Money, nullable=False)
    installments_paid = Column(Integer, nullable=False, default=0)
    installments_total = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="ATIVA")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
