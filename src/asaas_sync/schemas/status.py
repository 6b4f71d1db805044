"""Classification of Asaas charge statuses.

Asaas exposes a dozen payment statuses; reporting only needs to know
whether a charge is paid, still open, or overdue.
"""

from collections.abc import Iterable
from datetime import date
from enum import StrEnum

PAID_STATUSES = frozenset({"RECEIVED", "CONFIRMED", "RECEIVED_IN_CASH"})
OVERDUE_STATUS = "OVERDUE"


class PaymentClass(StrEnum):
    """Settlement class of a single charge."""

    PAID = "paid"
    OPEN = "open"
    OVERDUE = "overdue"


class InstallmentStanding(StrEnum):
    """Overall standing of an installment plan."""

    PAID = "paid"
    """Every charge of the plan is paid."""

    OPEN = "open"
    """Nothing overdue, at least one charge still to be paid."""

    OVERDUE = "overdue"
    """At least one charge is overdue."""


def classify_payment(status: str, due_date: date | None, today: date | None = None) -> PaymentClass:
    """Classify a charge as paid, open or overdue.

    A charge is overdue when Asaas says so, or when its due date has passed
    and it is not paid yet (Asaas flips the status with some delay). A
    charge due today is still open.

    Args:
        status: Asaas payment status
        due_date: Due date of the charge
        today: Reference date (defaults to the current date)

    Returns:
        PaymentClass
    """
    normalized = status.strip().upper()
    if normalized in PAID_STATUSES:
        return PaymentClass.PAID
    if normalized == OVERDUE_STATUS:
        return PaymentClass.OVERDUE

    today = today or date.today()
    if due_date is not None and due_date < today:
        return PaymentClass.OVERDUE
    return PaymentClass.OPEN


def summarize_installment(classes: Iterable[PaymentClass]) -> InstallmentStanding:
    """Reduce the classes of an installment plan's charges to one standing.

    Args:
        classes: PaymentClass of every charge in the plan

    Returns:
        OVERDUE if any charge is overdue, PAID if all are paid, OPEN otherwise
        (including a plan with no charges)
    """
    seen = list(classes)
    if PaymentClass.OVERDUE in seen:
        return InstallmentStanding.OVERDUE
    if seen and all(c == PaymentClass.PAID for c in seen):
        return InstallmentStanding.PAID
    return InstallmentStanding.OPEN
