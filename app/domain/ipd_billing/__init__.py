# IPD billing domain module
from app.domain.ipd_billing.models import (
    Admission,
    AdmissionStatus,
    Charge,
    ChargeCategory,
    InvoiceState,
    InvoiceStatus,
    InvoiceTotals,
    PatientRef,
    Payment,
    PaymentMode,
)

__all__ = [
    "Admission",
    "AdmissionStatus",
    "Charge",
    "ChargeCategory",
    "InvoiceState",
    "InvoiceStatus",
    "InvoiceTotals",
    "PatientRef",
    "Payment",
    "PaymentMode",
]
