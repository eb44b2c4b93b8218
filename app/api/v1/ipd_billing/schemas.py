from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from app.domain.ipd_billing.calculator import invoice_totals
from app.domain.ipd_billing.models import (
    AdmissionStatus,
    ChargeCategory,
    InvoiceState,
    InvoiceStatus,
    PaymentMode,
)
from app.domain.ipd_billing.money import Money, Percent


class ChargeCreate(BaseModel):
    """Schema for adding a line item to a bill"""
    category: ChargeCategory = ChargeCategory.OTHER
    description: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, gt=0)
    unit_price: Decimal = Field(..., ge=0)


class AdjustmentUpdate(BaseModel):
    """Schema for changing the bill's discount and tax percentages"""
    discount_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    tax_percent: Optional[Decimal] = Field(None, ge=0, le=100)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    reference: Optional[str] = Field(None, max_length=100)


class ChargeResponse(BaseModel):
    id: str
    admission_id: str
    category: ChargeCategory
    description: str
    quantity: int
    unit_price: Money
    total: Money
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    id: str
    amount: Money
    payment_mode: PaymentMode
    payment_date: datetime
    reference: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BillResponse(BaseModel):
    id: str
    admission_id: str
    patient_id: str
    patient_name: str
    patient_mrn: str
    admission_date: datetime
    discharge_date: datetime
    total_days: int
    charges: List[ChargeResponse]
    payments: List[PaymentResponse]
    discount_percent: Percent
    tax_percent: Percent
    subtotal: Money
    discount: Money
    taxable_amount: Money
    tax: Money
    total: Money
    paid: Money
    balance: Money
    status: InvoiceStatus

    @classmethod
    def from_invoice(cls, invoice: InvoiceState) -> "BillResponse":
        totals = invoice_totals(invoice)
        return cls(
            id=invoice.id,
            admission_id=invoice.admission_id,
            patient_id=invoice.patient.patient_id,
            patient_name=invoice.patient.patient_name,
            patient_mrn=invoice.patient.patient_mrn,
            admission_date=invoice.admission_date,
            discharge_date=invoice.discharge_date,
            total_days=invoice.total_days,
            charges=[ChargeResponse.model_validate(c) for c in invoice.charges],
            payments=[PaymentResponse.model_validate(p) for p in invoice.payments],
            discount_percent=invoice.discount_percent,
            tax_percent=invoice.tax_percent,
            **totals.model_dump(),
        )


class BillSummaryResponse(BaseModel):
    admission_id: str
    total_charges: int
    subtotal: Money
    charges_by_category: Dict[ChargeCategory, Money]
    balance: Money
    status: InvoiceStatus


class SavedBillResponse(BaseModel):
    message: str
    bill_id: str
    admission_id: str
    total: Money
    paid: Money
    balance: Money
    status: InvoiceStatus


class AdmissionResponse(BaseModel):
    id: str
    admission_id: Optional[str] = None
    patient_id: str
    patient_name: str
    patient_mrn: str
    ward_name: str
    bed_number: str
    bed_category: Optional[str] = None
    admission_date: datetime
    discharge_date: Optional[datetime] = None
    status: AdmissionStatus
    doctor_name: str
    diagnosis: Optional[str] = None
    ward_daily_rate: Optional[Money] = None

    model_config = ConfigDict(from_attributes=True)


class AdmissionStatsResponse(BaseModel):
    active_admissions: int
    discharged_today: int

    model_config = ConfigDict(from_attributes=True)
