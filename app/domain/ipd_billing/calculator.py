"""Invoice totals.

Order of operations is fixed: subtotal, then discount on the subtotal, then
tax on the post-discount amount. Tax never applies to the raw subtotal.
Nothing here rounds; rounding happens when totals are presented.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from app.core.exceptions import ValidationError
from app.domain.ipd_billing.models import Charge, InvoiceState, InvoiceTotals
from app.domain.ipd_billing.money import D, HUNDRED, ZERO, money2
from app.domain.ipd_billing.payments import derive_status


def validate_percent(value, field: str) -> Decimal:
    try:
        pct = D(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if not pct.is_finite() or pct < 0 or pct > HUNDRED:
        raise ValidationError(
            f"{field} must be between 0 and 100",
            details={"field": field, "value": str(value)},
        )
    return pct


def recompute(
    charges: Iterable[Charge],
    discount_percent,
    tax_percent,
    paid_so_far=ZERO,
) -> InvoiceTotals:
    subtotal = sum((c.total for c in charges), ZERO)
    discount = subtotal * D(discount_percent) / HUNDRED
    taxable = subtotal - discount
    tax = taxable * D(tax_percent) / HUNDRED
    total = taxable + tax
    paid = D(paid_so_far)
    # a cent-rounded payment can overshoot a sub-cent total; balance floors at zero
    balance = max(total - paid, ZERO)

    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount,
        taxable_amount=taxable,
        tax=tax,
        total=total,
        paid=paid,
        balance=balance,
        status=derive_status(total, paid),
    )


def invoice_totals(invoice: InvoiceState) -> InvoiceTotals:
    return recompute(invoice.charges, invoice.discount_percent, invoice.tax_percent, invoice.paid)


def apply_adjustments(
    invoice: InvoiceState,
    discount_percent: Optional[Decimal] = None,
    tax_percent: Optional[Decimal] = None,
) -> InvoiceState:
    """Return ``invoice`` with new discount and/or tax percentages.

    A change that would drop the total below what has already been collected
    is refused; refunds are not supported.
    """
    update = {}
    if discount_percent is not None:
        update["discount_percent"] = validate_percent(discount_percent, "discount_percent")
    if tax_percent is not None:
        update["tax_percent"] = validate_percent(tax_percent, "tax_percent")
    if not update:
        return invoice

    adjusted = invoice.model_copy(update=update)
    totals = invoice_totals(adjusted)
    if money2(totals.total) < money2(totals.paid):
        raise ValidationError(
            "Adjustment would reduce the bill below the amount already paid",
            details={"total": str(money2(totals.total)), "paid": str(money2(totals.paid))},
            error_code="PAID_EXCEEDS_TOTAL",
        )
    return adjusted
