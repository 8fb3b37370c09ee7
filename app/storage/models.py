"""SQLAlchemy models for the tables read by Credit Gate."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    String, Integer, JSON, ForeignKey, Boolean, Text, Date, DateTime,
    Numeric, Index
)
from sqlalchemy.orm import Mapped, mapped_column

from app.storage.db import Base


# Monetary columns share one precision
Money = Numeric(18, 2)


class Customer(Base):
    """Customer account with credit limit, cached balance and block flags."""

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    legal_name: Mapped[str] = mapped_column(String(255), nullable=False)
    tax_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    credit_limit: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    current_balance: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    payment_terms_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    blocked_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    blocked_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    has_check_limit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    check_limit: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)

    @property
    def display_name(self) -> str:
        """Trade name, falling back to the legal name."""
        return self.name or self.legal_name


class CustomerLedgerEntry(Base):
    """Append-only debit/credit movement on a customer account."""

    __tablename__ = "customer_ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), ForeignKey("customers.id"), nullable=False)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    doc_type: Mapped[str] = mapped_column(String(8), nullable=False)
    debit: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    credit: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    is_voided: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime,
        default=dt.datetime.utcnow,
        nullable=False
    )

    __table_args__ = (
        Index("ix_ledger_customer_company_doc", "customer_id", "company_id", "doc_type"),
    )


class SalesInvoice(Base):
    """Sales invoice with its pending balance and due date."""

    __tablename__ = "sales_invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), ForeignKey("customers.id"), nullable=False)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    doc_type: Mapped[str] = mapped_column(String(8), nullable=False)
    number: Mapped[str] = mapped_column(String(64), nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    pending_balance: Mapped[Decimal] = mapped_column(Money, nullable=False)
    due_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="DRAFT", nullable=False)

    __table_args__ = (
        Index("ix_invoices_customer_company_status", "customer_id", "company_id", "status"),
        Index("ix_invoices_company_due", "company_id", "due_date"),
    )


class CustomerPayment(Base):
    """Collection receipt linking payment instruments to a customer."""

    __tablename__ = "customer_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), ForeignKey("customers.id"), nullable=False, index=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    doc_type: Mapped[str] = mapped_column(String(8), nullable=False)


class PaymentInstrument(Base):
    """Post-dated payment instrument (check) received through a payment."""

    __tablename__ = "payment_instruments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[int] = mapped_column(Integer, ForeignKey("customer_payments.id"), nullable=False, index=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    maturity_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        Index("ix_instruments_company_status_maturity", "company_id", "status", "maturity_date"),
    )


class CustomerBlockHistory(Base):
    """Block and unblock events on a customer account."""

    __tablename__ = "customer_block_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), ForeignKey("customers.id"), nullable=False)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    block_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    blocked_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    unblocked_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_block_history_customer_open", "customer_id", "company_id", "unblocked_at"),
    )


class CreditPolicyConfig(Base):
    """Per-company credit policy switches and thresholds."""

    __tablename__ = "credit_policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)

    enforce_credit_limit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    block_on_credit_exceeded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    block_on_overdue: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    overdue_grace_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    aging_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    aging_buckets: Mapped[Optional[List[int]]] = mapped_column(JSON, nullable=True)
    credit_alert_threshold: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    enforce_check_limit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    default_check_limit: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
