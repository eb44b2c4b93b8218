from decimal import Decimal
from datetime import datetime, timezone
from typing import Optional, Tuple
import enum
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from app.domain.ipd_billing.money import Money, Percent, ZERO


def gen_uuid():
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive timestamps from the backend are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ChargeCategory(str, enum.Enum):
    BED = "bed"
    CONSULTATION = "consultation"
    PROCEDURE = "procedure"
    LAB = "lab"
    RADIOLOGY = "radiology"
    PHARMACY = "pharmacy"
    OT = "ot"
    OTHER = "other"


class PaymentMode(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    INSURANCE = "insurance"
    CHEQUE = "cheque"


class InvoiceStatus(str, enum.Enum):
    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"


class AdmissionStatus(str, enum.Enum):
    ACTIVE = "Active"
    DISCHARGED = "Discharged"


class BillingRecord(BaseModel):
    """Immutable record that reads and writes the backend's camelCase JSON."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Charge(BillingRecord):
    id: str = Field(default_factory=gen_uuid)
    admission_id: str
    category: ChargeCategory
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Money = Field(..., ge=0)
    date: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def total(self) -> Money:
        return self.quantity * self.unit_price


class Payment(BillingRecord):
    id: str = Field(default_factory=gen_uuid)
    amount: Money = Field(..., gt=0)
    payment_mode: PaymentMode
    payment_date: datetime = Field(default_factory=utcnow)
    reference: Optional[str] = None


class PatientRef(BillingRecord):
    patient_id: str
    patient_name: str = "Unknown"
    patient_mrn: str = Field("", alias="patientMRN")


class Admission(BillingRecord):
    id: str
    admission_id: Optional[str] = None
    patient_id: str
    patient_name: str = "Unknown"
    patient_mrn: str = Field("", alias="patientMRN")
    ward_name: str = "General"
    bed_number: str = "N/A"
    bed_category: Optional[str] = None
    admission_date: datetime
    discharge_date: Optional[datetime] = None
    status: AdmissionStatus = AdmissionStatus.ACTIVE
    doctor_name: str = "Not Assigned"
    diagnosis: Optional[str] = None
    ward_daily_rate: Optional[Money] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        # backend rows use lowercase statuses
        if isinstance(v, str):
            return v.strip().capitalize()
        return v

    @field_validator("admission_date", "discharge_date")
    @classmethod
    def normalize_timezone(cls, v):
        return as_utc(v) if v is not None else v

    @property
    def patient(self) -> PatientRef:
        return PatientRef(
            patient_id=self.patient_id,
            patient_name=self.patient_name,
            patient_mrn=self.patient_mrn,
        )


class InvoiceState(BillingRecord):
    """One admission's bill: the ledger, the two percentages and payments.

    Money totals are never stored here; ``calculator.recompute`` derives them.
    """

    id: str = Field(default_factory=gen_uuid)
    admission_id: str
    patient: PatientRef
    admission_date: datetime
    discharge_date: datetime
    total_days: int
    charges: Tuple[Charge, ...] = ()
    discount_percent: Percent = ZERO
    tax_percent: Percent = ZERO
    payments: Tuple[Payment, ...] = ()
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), ZERO)


class InvoiceTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Money
    discount: Money
    taxable_amount: Money
    tax: Money
    total: Money
    paid: Money
    balance: Money
    status: InvoiceStatus
