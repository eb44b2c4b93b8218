from fastapi import Depends, Request

from app.domain.ipd_billing.repository import InvoiceDraftRepository
from app.domain.ipd_billing.service import IPDBillingService
from app.infrastructure.backend_api import HospitalBackendClient


def get_backend_client(request: Request) -> HospitalBackendClient:
    return request.app.state.backend_client


def get_draft_repository(request: Request) -> InvoiceDraftRepository:
    return request.app.state.draft_repository


def get_ipd_billing_service(
    backend: HospitalBackendClient = Depends(get_backend_client),
    drafts: InvoiceDraftRepository = Depends(get_draft_repository),
) -> IPDBillingService:
    return IPDBillingService(backend, drafts)
