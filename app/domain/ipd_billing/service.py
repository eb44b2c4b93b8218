from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.domain.ipd_billing import calculator, ledger, payments
from app.domain.ipd_billing.models import (
    Admission,
    AdmissionStatus,
    InvoiceState,
    InvoiceTotals,
    Payment,
    as_utc,
    utcnow,
)
from app.domain.ipd_billing.money import format_money, money2
from app.domain.ipd_billing.repository import InvoiceDraftRepository
from app.infrastructure.backend_api import HospitalBackendClient

logger = logging.getLogger(__name__)


class AdmissionStats(BaseModel):
    active_admissions: int
    discharged_today: int


class IPDBillingService:
    """Service layer for the IPD billing workflow.

    Generate a bill, add charges and adjust percentages, take payments, then
    Save & Discharge. The draft repository holds the only mutable reference to
    each admission's bill; every step computes a new ``InvoiceState`` and
    replaces the stored one only once that step has fully succeeded.
    """

    def __init__(self, backend: HospitalBackendClient, drafts: InvoiceDraftRepository):
        self.backend = backend
        self.drafts = drafts

    async def list_admissions(self, status: Optional[AdmissionStatus] = None) -> List[Admission]:
        admissions = await self.backend.list_admissions()
        if status:
            admissions = [a for a in admissions if a.status == status]
        return sorted(admissions, key=lambda a: as_utc(a.admission_date), reverse=True)

    async def admission_stats(self, now: Optional[datetime] = None) -> AdmissionStats:
        today = (now or utcnow()).date()
        admissions = await self.backend.list_admissions()
        return AdmissionStats(
            active_admissions=sum(1 for a in admissions if a.status == AdmissionStatus.ACTIVE),
            discharged_today=sum(
                1 for a in admissions
                if a.discharge_date and a.discharge_date.date() == today
            ),
        )

    async def _get_admission(self, admission_id: str) -> Admission:
        admission = await self.backend.get_admission(admission_id)
        if not admission:
            raise NotFoundError(f"Admission {admission_id} not found")
        return admission

    async def generate_bill(self, admission_id: str, now: Optional[datetime] = None) -> InvoiceState:
        """Build a draft from the backend's charges.

        Regenerating refreshes the ledger only. Payments already posted to the
        backend, and the percentages, carry over from the existing draft.
        """
        now = now or utcnow()
        admission = await self._get_admission(admission_id)
        charges = await self.backend.get_charges(admission_id)
        existing = await self.drafts.get(admission.id)

        if not charges:
            rate = ledger.bed_daily_rate(
                admission.ward_daily_rate,
                admission.bed_category or admission.ward_name,
                settings.WARD_CATEGORY_RATES,
                settings.DEFAULT_WARD_DAILY_RATE,
            )
            charges = [
                ledger.compute_bed_charge(
                    admission.id,
                    rate,
                    admission.admission_date,
                    admission.discharge_date,
                    now=now,
                    description=f"{admission.ward_name} - Bed {admission.bed_number}",
                )
            ]

        invoice = InvoiceState(
            admission_id=admission.id,
            patient=admission.patient,
            admission_date=admission.admission_date,
            discharge_date=admission.discharge_date or now,
            total_days=ledger.stay_days(admission.admission_date, admission.discharge_date, now),
            charges=tuple(charges),
            discount_percent=calculator.validate_percent(settings.DEFAULT_DISCOUNT_PERCENT, "discount_percent"),
            tax_percent=calculator.validate_percent(settings.DEFAULT_TAX_PERCENT, "tax_percent"),
        )
        if existing:
            invoice = invoice.model_copy(update={
                "id": existing.id,
                "discount_percent": existing.discount_percent,
                "tax_percent": existing.tax_percent,
                "payments": existing.payments,
            })
            totals = calculator.invoice_totals(invoice)
            if money2(totals.total) < money2(totals.paid):
                raise ValidationError(
                    "Regenerated bill would be below the amount already paid",
                    details={"total": str(money2(totals.total)), "paid": str(money2(totals.paid))},
                    error_code="PAID_EXCEEDS_TOTAL",
                )

        await self.drafts.save(invoice)
        logger.info(
            f"Generated bill {invoice.id} for admission {admission_id} "
            f"with {len(invoice.charges)} charge(s) over {invoice.total_days} day(s)"
        )
        return invoice

    async def get_bill(self, admission_id: str) -> InvoiceState:
        invoice = await self.drafts.get(admission_id)
        if not invoice:
            raise NotFoundError(
                f"No bill in progress for admission {admission_id}",
                error_code="BILL_NOT_FOUND",
            )
        return invoice

    async def add_charge(
        self,
        admission_id: str,
        category,
        description: str,
        quantity: int,
        unit_price,
    ) -> InvoiceState:
        invoice = await self.get_bill(admission_id)
        invoice = ledger.add_charge(invoice, category, description, quantity, unit_price)
        return await self.drafts.save(invoice)

    async def update_adjustments(
        self,
        admission_id: str,
        discount_percent: Optional[Decimal] = None,
        tax_percent: Optional[Decimal] = None,
    ) -> InvoiceState:
        invoice = await self.get_bill(admission_id)
        invoice = calculator.apply_adjustments(invoice, discount_percent, tax_percent)
        return await self.drafts.save(invoice)

    async def record_payment(
        self,
        admission_id: str,
        amount,
        mode,
        reference: Optional[str] = None,
    ) -> InvoiceState:
        invoice = await self.get_bill(admission_id)
        amount, mode = payments.validate_payment(invoice, amount, mode)
        payment = Payment(amount=amount, payment_mode=mode, reference=reference or None)

        await self.backend.record_payment(admission_id, payment)

        invoice = await self.drafts.save(payments.append_payment(invoice, payment))
        logger.info(
            f"Payment of {format_money(amount, settings.CURRENCY_SYMBOL)} ({mode.value}) "
            f"recorded for admission {admission_id}"
        )
        return invoice

    async def save_and_discharge(self, admission_id: str) -> Dict[str, Any]:
        """Persist the full bill to the backend; the draft is dropped only on success."""
        invoice = await self.get_bill(admission_id)
        snapshot = build_snapshot(invoice)
        await self.backend.save_bill(snapshot)
        await self.drafts.delete(admission_id)
        logger.info(f"Bill {invoice.id} saved for admission {admission_id} ({snapshot['status']})")
        return snapshot

    async def billing_summary(self, admission_id: str) -> Dict[str, Any]:
        invoice = await self.get_bill(admission_id)
        totals = calculator.invoice_totals(invoice)
        return {
            "admission_id": admission_id,
            "total_charges": len(invoice.charges),
            "subtotal": totals.subtotal,
            "charges_by_category": ledger.charges_by_category(invoice.charges),
            "balance": totals.balance,
            "status": totals.status,
        }


def build_snapshot(invoice: InvoiceState) -> Dict[str, Any]:
    """The full bill as the backend stores it: ledger, derived totals and payments."""
    totals: InvoiceTotals = calculator.invoice_totals(invoice)
    data = invoice.model_dump(mode="json", by_alias=True)
    patient = data.pop("patient")
    data.update(patient)
    data.update(totals.model_dump(mode="json", by_alias=False))
    data["taxableAmount"] = data.pop("taxable_amount")
    return data
