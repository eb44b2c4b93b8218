from fastapi import APIRouter, Depends, status
from typing import List, Optional

from app.api.deps import get_ipd_billing_service
from app.core.exceptions import ErrorResponse
from app.domain.ipd_billing.models import AdmissionStatus
from app.domain.ipd_billing.service import IPDBillingService
from app.api.v1.ipd_billing.schemas import (
    AdjustmentUpdate,
    AdmissionResponse,
    AdmissionStatsResponse,
    BillResponse,
    BillSummaryResponse,
    ChargeCreate,
    PaymentCreate,
    SavedBillResponse,
)

router = APIRouter(
    prefix="/ipd-billing",
    tags=["IPD Billing"],
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


# Admissions
@router.get("/admissions", response_model=List[AdmissionResponse])
async def list_admissions(
    status: Optional[AdmissionStatus] = None,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    """List admissions available for billing, newest first"""
    admissions = await service.list_admissions(status)
    return [AdmissionResponse.model_validate(a) for a in admissions]


@router.get("/admissions/stats", response_model=AdmissionStatsResponse)
async def admission_stats(service: IPDBillingService = Depends(get_ipd_billing_service)):
    stats = await service.admission_stats()
    return AdmissionStatsResponse.model_validate(stats)


# Bills
@router.post("/{admission_id}/bill", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def generate_bill(
    admission_id: str,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    """Generate a bill for an admission, seeding bed charges when none exist"""
    invoice = await service.generate_bill(admission_id)
    return BillResponse.from_invoice(invoice)


@router.get("/{admission_id}/bill", response_model=BillResponse)
async def get_bill(
    admission_id: str,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    invoice = await service.get_bill(admission_id)
    return BillResponse.from_invoice(invoice)


@router.post("/{admission_id}/bill/charges", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def add_charge(
    admission_id: str,
    charge_in: ChargeCreate,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    invoice = await service.add_charge(
        admission_id,
        charge_in.category,
        charge_in.description,
        charge_in.quantity,
        charge_in.unit_price,
    )
    return BillResponse.from_invoice(invoice)


@router.put("/{admission_id}/bill/adjustments", response_model=BillResponse)
async def update_adjustments(
    admission_id: str,
    adjustments: AdjustmentUpdate,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    """Change discount and/or tax percentage; totals are recomputed"""
    invoice = await service.update_adjustments(
        admission_id,
        discount_percent=adjustments.discount_percent,
        tax_percent=adjustments.tax_percent,
    )
    return BillResponse.from_invoice(invoice)


@router.post("/{admission_id}/bill/payments", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    admission_id: str,
    payment_in: PaymentCreate,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    invoice = await service.record_payment(
        admission_id,
        payment_in.amount,
        payment_in.payment_mode,
        payment_in.reference,
    )
    return BillResponse.from_invoice(invoice)


@router.post("/{admission_id}/bill/finalize", response_model=SavedBillResponse)
async def save_and_discharge(
    admission_id: str,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    """Save & Discharge: persist the bill to the backend and close the draft"""
    snapshot = await service.save_and_discharge(admission_id)
    return SavedBillResponse(
        message="IPD Bill saved successfully",
        bill_id=snapshot["id"],
        admission_id=admission_id,
        total=snapshot["total"],
        paid=snapshot["paid"],
        balance=snapshot["balance"],
        status=snapshot["status"],
    )


@router.get("/{admission_id}/bill/summary", response_model=BillSummaryResponse)
async def billing_summary(
    admission_id: str,
    service: IPDBillingService = Depends(get_ipd_billing_service),
):
    summary = await service.billing_summary(admission_id)
    return BillSummaryResponse(**summary)
