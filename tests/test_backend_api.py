import pytest
import httpx
from decimal import Decimal

from app.core.exceptions import ExternalServiceError
from app.core.tenant import reset_tenant_id, set_tenant_id
from app.domain.ipd_billing.models import AdmissionStatus, ChargeCategory, Payment, PaymentMode
from app.infrastructure.backend_api import HospitalBackendClient


@pytest.mark.integration
@pytest.mark.billing
class TestHospitalBackendClient:

    async def test_list_admissions_reads_camel_case(self, backend_client: HospitalBackendClient) -> None:
        admissions = await backend_client.list_admissions()

        assert len(admissions) == 1
        admission = admissions[0]
        assert admission.patient_mrn == "MRN-1001"
        assert admission.ward_name == "General Ward"
        assert admission.status == AdmissionStatus.ACTIVE
        assert admission.ward_daily_rate is None

    async def test_lowercase_status_is_accepted(self, backend_client, fake_backend) -> None:
        fake_backend.admissions[0]["status"] = "discharged"
        admissions = await backend_client.list_admissions()
        assert admissions[0].status == AdmissionStatus.DISCHARGED

    async def test_get_admission_unknown_returns_none(self, backend_client) -> None:
        assert await backend_client.get_admission("missing") is None

    async def test_get_charges_accepts_wrapped_and_bare_lists(self, backend_client, fake_backend) -> None:
        row = {"id": "c1", "category": "lab", "description": "CBC", "quantity": 1, "unitPrice": 300, "total": 300}
        fake_backend.charges["adm-1"] = {"charges": [row]}
        fake_backend.charges["adm-2"] = [dict(row, id="c2")]

        wrapped = await backend_client.get_charges("adm-1")
        bare = await backend_client.get_charges("adm-2")

        assert wrapped[0].category == ChargeCategory.LAB
        assert wrapped[0].admission_id == "adm-1"
        assert wrapped[0].total == Decimal("300")
        assert bare[0].admission_id == "adm-2"

    async def test_missing_charges_is_empty(self, backend_client) -> None:
        assert await backend_client.get_charges("adm-1") == []

    async def test_malformed_charge_is_backend_error(self, backend_client, fake_backend) -> None:
        fake_backend.charges["adm-1"] = [{"category": "spa", "description": "x", "quantity": 1, "unitPrice": 1}]
        with pytest.raises(ExternalServiceError):
            await backend_client.get_charges("adm-1")

    async def test_error_status_collapses_to_one_error(self, backend_client, fake_backend) -> None:
        fake_backend.fail_with = 500
        with pytest.raises(ExternalServiceError) as exc:
            await backend_client.list_admissions()
        assert exc.value.message == "External service hospital-backend unavailable"
        assert exc.value.details["operation"] == "list_admissions"

    async def test_network_error_collapses_to_one_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = HospitalBackendClient(
            httpx.AsyncClient(base_url="http://backend.test", transport=httpx.MockTransport(refuse))
        )
        with pytest.raises(ExternalServiceError) as exc:
            await client.list_admissions()
        await client.aclose()
        assert exc.value.message == "External service hospital-backend unavailable"

    async def test_record_payment_posts_camel_case(self, backend_client, fake_backend) -> None:
        payment = Payment(amount=Decimal("2000"), payment_mode=PaymentMode.UPI, reference="UPI-9")
        await backend_client.record_payment("adm-1", payment)

        assert fake_backend.requests[-1].url.path == "/api/ipd-billing/adm-1/pay"
        body = fake_backend.payments[0]
        assert body["amount"] == 2000.0
        assert body["paymentMode"] == "upi"
        assert body["reference"] == "UPI-9"
        assert "paymentDate" in body

    async def test_tenant_header_is_forwarded(self, backend_client, fake_backend) -> None:
        token = set_tenant_id("tenant-7")
        try:
            await backend_client.list_admissions()
        finally:
            reset_tenant_id(token)
        assert fake_backend.requests[-1].headers["X-Tenant-ID"] == "tenant-7"

    async def test_no_tenant_header_without_tenant(self, backend_client, fake_backend) -> None:
        await backend_client.list_admissions()
        assert "X-Tenant-ID" not in fake_backend.requests[-1].headers
