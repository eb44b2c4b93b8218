"""Charge ledger: validated line items and the derived bed-stay charge."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional

from app.core.exceptions import ValidationError
from app.domain.ipd_billing.models import Charge, ChargeCategory, InvoiceState, as_utc, utcnow
from app.domain.ipd_billing.money import D, ZERO

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def parse_category(category) -> ChargeCategory:
    try:
        return ChargeCategory(category)
    except ValueError:
        raise ValidationError(
            f"Unknown charge category: {category}",
            details={"field": "category", "allowed": [c.value for c in ChargeCategory]},
        )


def create_charge(
    admission_id: str,
    category,
    description: str,
    quantity,
    unit_price,
    charged_at: Optional[datetime] = None,
) -> Charge:
    category = parse_category(category)

    if not description or not description.strip():
        raise ValidationError("Charge description is required", details={"field": "description"})

    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(
            "Quantity must be a whole number greater than zero",
            details={"field": "quantity", "value": str(quantity)},
        )

    try:
        price = D(unit_price)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Unit price must be a number", details={"field": "unit_price"})
    if not price.is_finite() or price < 0:
        raise ValidationError(
            "Unit price cannot be negative",
            details={"field": "unit_price", "value": str(unit_price)},
        )

    return Charge(
        admission_id=admission_id,
        category=category,
        description=description.strip(),
        quantity=quantity,
        unit_price=price,
        date=charged_at or utcnow(),
    )


def add_charge(
    invoice: InvoiceState,
    category,
    description: str,
    quantity,
    unit_price,
    charged_at: Optional[datetime] = None,
) -> InvoiceState:
    """Return a copy of ``invoice`` with one more line item at the end."""
    charge = create_charge(invoice.admission_id, category, description, quantity, unit_price, charged_at)
    return invoice.model_copy(update={"charges": invoice.charges + (charge,)})


def stay_days(
    admission_date: datetime,
    discharge_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> int:
    """Billable days: partial days round up and every stay is at least one day."""
    start = as_utc(admission_date)
    end = as_utc(discharge_date or now or utcnow())
    if end < start:
        logger.warning(f"Discharge {end.isoformat()} precedes admission {start.isoformat()}")
    return max(1, math.ceil((end - start) / ONE_DAY))


def bed_daily_rate(
    ward_daily_rate,
    bed_category: Optional[str],
    category_rates: Dict[str, Decimal],
    default_rate,
) -> Decimal:
    """Per-day bed rate: the ward's own tariff, else the bed category's, else ``default_rate``.

    Categories match loosely, so "Semi Private Ward" finds "semi-private".
    """
    if ward_daily_rate is not None:
        return D(ward_daily_rate)
    key = (bed_category or "general").strip().lower()
    if key.endswith(" ward"):
        key = key[: -len(" ward")].strip()
    key = key.replace(" ", "-")
    return D(category_rates.get(key, default_rate))


def compute_bed_charge(
    admission_id: str,
    ward_daily_rate,
    admission_date: datetime,
    discharge_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
    description: str = "Bed charges",
) -> Charge:
    days = stay_days(admission_date, discharge_date, now)
    return create_charge(
        admission_id,
        ChargeCategory.BED,
        description,
        days,
        ward_daily_rate,
        charged_at=now,
    )


def charges_by_category(charges: Iterable[Charge]) -> Dict[ChargeCategory, Decimal]:
    totals = {category: ZERO for category in ChargeCategory}
    for charge in charges:
        totals[charge.category] += charge.total
    return totals
