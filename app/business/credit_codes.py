# ==== CREDIT DOMAIN CODES ==== #

"""
Status codes and labels for the credit validation domain.

This module defines the document statuses the engine filters on, the block
classifications it reports, and the decision and colour codes it returns.
"""

from enum import Enum


# ==== DOCUMENT STATUSES ==== #


class InvoiceStatus(str, Enum):
    """Sales invoice lifecycle states."""

    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    PARTIALLY_COLLECTED = "PARTIALLY_COLLECTED"
    COLLECTED = "COLLECTED"
    VOIDED = "VOIDED"


# Invoices still owed by the customer
PENDING_INVOICE_STATUSES = (InvoiceStatus.ISSUED, InvoiceStatus.PARTIALLY_COLLECTED)


class InstrumentStatus(str, Enum):
    """
    Post-dated payment instrument (check) states.

    Only instruments still held by the company count toward the portfolio.
    """

    IN_PORTFOLIO = "IN_PORTFOLIO"
    DEPOSITED = "DEPOSITED"
    CLEARED = "CLEARED"
    BOUNCED = "BOUNCED"
    ENDORSED = "ENDORSED"
    VOIDED = "VOIDED"


class BlockType(str, Enum):
    """Classification of an explicit account block."""

    MANUAL = "MANUAL"
    AUTO_OVERDUE = "AUTO_OVERDUE"
    AUTO_CREDIT_LIMIT = "AUTO_CREDIT_LIMIT"
    AUTO_BOUNCED_CHECK = "AUTO_BOUNCED_CHECK"


# ==== DECISION CODES ==== #


class Decision(str, Enum):
    """
    Outcome of a full credit validation.

    OK proceeds silently, WARN proceeds with warnings, BLOCKED is a hard stop
    unless a privileged override is used.
    """

    OK = "OK"
    WARN = "WARN"
    BLOCKED = "BLOCKED"


class StatusColor(str, Enum):
    """Traffic-light colour for quick status rendering."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class QuickStatusLabel(str, Enum):
    """Quick status labels, highest priority first."""

    BLOCKED = "Blocked"
    IN_ARREARS = "In arrears"
    NO_CREDIT = "No credit"
    HIGH_CREDIT = "High credit"
    OK = "OK"
    NOT_FOUND = "Not found"
