"""Payment tracking against an invoice balance."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.core.exceptions import ValidationError
from app.domain.ipd_billing.models import InvoiceState, InvoiceStatus, Payment, PaymentMode, utcnow
from app.domain.ipd_billing.money import D, ZERO, money2

logger = logging.getLogger(__name__)


def derive_status(total: Decimal, paid: Decimal) -> InvoiceStatus:
    balance = money2(D(total) - D(paid))
    if balance == ZERO:
        return InvoiceStatus.PAID
    if D(paid) > ZERO and balance > ZERO:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.PENDING


def parse_payment_mode(mode) -> PaymentMode:
    try:
        return PaymentMode(mode)
    except ValueError:
        raise ValidationError(
            f"Unknown payment mode: {mode}",
            details={"field": "payment_mode", "allowed": [m.value for m in PaymentMode]},
        )


def validate_payment(invoice: InvoiceState, amount, mode) -> tuple:
    # circular: calculator imports derive_status from here
    from app.domain.ipd_billing.calculator import invoice_totals

    try:
        amount = D(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Payment amount must be a number", details={"field": "amount"})
    if not amount.is_finite() or amount <= ZERO:
        raise ValidationError("Please enter a valid payment amount", details={"field": "amount"})
    if money2(amount) != amount:
        raise ValidationError(
            "Payment amount cannot have fractions of a cent",
            details={"field": "amount", "amount": str(amount)},
        )

    mode = parse_payment_mode(mode)

    balance = money2(invoice_totals(invoice).balance)
    if amount > balance:
        raise ValidationError(
            "Payment amount cannot exceed balance",
            details={"field": "amount", "amount": str(amount), "balance": str(balance)},
        )
    return amount, mode


def record_payment(
    invoice: InvoiceState,
    amount,
    mode,
    reference: Optional[str] = None,
    paid_at: Optional[datetime] = None,
) -> InvoiceState:
    amount, mode = validate_payment(invoice, amount, mode)
    payment = Payment(
        amount=amount,
        payment_mode=mode,
        payment_date=paid_at or utcnow(),
        reference=reference or None,
    )
    return append_payment(invoice, payment)


def append_payment(invoice: InvoiceState, payment: Payment) -> InvoiceState:
    logger.debug(f"Payment {payment.id} of {payment.amount} appended to invoice {invoice.id}")
    return invoice.model_copy(update={"payments": invoice.payments + (payment,)})
