import json
import pytest
from typing import AsyncGenerator, Dict, List, Optional
from datetime import datetime, timezone

import httpx
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.api.deps import get_backend_client, get_draft_repository
from app.domain.ipd_billing.models import InvoiceState, PatientRef
from app.domain.ipd_billing.repository import InvoiceDraftRepository
from app.domain.ipd_billing.service import IPDBillingService
from app.infrastructure.backend_api import HospitalBackendClient


ADMITTED_AT = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
DISCHARGED_AT = datetime(2026, 1, 4, 9, 0, tzinfo=timezone.utc)


class FakeHospitalBackend:
    """In-process stand-in for the hospital REST backend."""

    def __init__(self):
        self.admissions: List[dict] = []
        self.charges: Dict[str, object] = {}
        self.saved_bills: List[dict] = []
        self.payments: List[dict] = []
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"error": "Internal server error"})

        path = request.url.path
        if request.method == "GET" and path == "/api/admissions":
            return httpx.Response(200, json=self.admissions)
        if request.method == "POST" and path == "/api/ipd-billing":
            self.saved_bills.append(json.loads(request.content))
            return httpx.Response(201, json={"success": True})
        if request.method == "POST" and path.endswith("/pay"):
            self.payments.append(json.loads(request.content))
            return httpx.Response(201, json={"success": True})
        if request.method == "GET" and path.startswith("/api/ipd-billing/"):
            admission_id = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=self.charges.get(admission_id, {"charges": None}))
        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture(scope="function")
def sample_admission_data() -> dict:
    """Admission record as the backend returns it."""
    return {
        "id": "adm-1",
        "admissionId": "ADM-0001",
        "patientId": "pat-1",
        "patientName": "John Doe",
        "patientMRN": "MRN-1001",
        "wardName": "General Ward",
        "bedNumber": "G-12",
        "admissionDate": ADMITTED_AT.isoformat(),
        "dischargeDate": DISCHARGED_AT.isoformat(),
        "status": "Active",
        "doctorName": "Dr. Smith",
        "diagnosis": "Pneumonia",
    }


@pytest.fixture(scope="function")
def fake_backend(sample_admission_data: dict) -> FakeHospitalBackend:
    backend = FakeHospitalBackend()
    backend.admissions.append(sample_admission_data)
    return backend


@pytest.fixture(scope="function")
async def backend_client(fake_backend: FakeHospitalBackend) -> AsyncGenerator[HospitalBackendClient, None]:
    client = HospitalBackendClient(
        httpx.AsyncClient(
            base_url="http://backend.test",
            transport=httpx.MockTransport(fake_backend.handler),
        )
    )
    yield client
    await client.aclose()


@pytest.fixture(scope="function")
def draft_repository() -> InvoiceDraftRepository:
    return InvoiceDraftRepository()


@pytest.fixture(scope="function")
def billing_service(
    backend_client: HospitalBackendClient,
    draft_repository: InvoiceDraftRepository,
) -> IPDBillingService:
    return IPDBillingService(backend_client, draft_repository)


@pytest.fixture(scope="function")
async def client(
    backend_client: HospitalBackendClient,
    draft_repository: InvoiceDraftRepository,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the backend and draft store overridden."""
    app.dependency_overrides[get_backend_client] = lambda: backend_client
    app.dependency_overrides[get_draft_repository] = lambda: draft_repository

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def empty_invoice() -> InvoiceState:
    return InvoiceState(
        admission_id="adm-1",
        patient=PatientRef(patient_id="pat-1", patient_name="John Doe", patient_mrn="MRN-1001"),
        admission_date=ADMITTED_AT,
        discharge_date=DISCHARGED_AT,
        total_days=3,
    )


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "billing: mark test as IPD billing related"
    )
