from typing import Any, Dict, List, Optional
import logging

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import handle_external_service_error
from app.core.tenant import get_tenant_id
from app.domain.ipd_billing.models import Admission, Charge, Payment

logger = logging.getLogger(__name__)

SERVICE_NAME = "hospital-backend"

_admissions_adapter = TypeAdapter(List[Admission])
_charges_adapter = TypeAdapter(List[Charge])


class HospitalBackendClient:
    """Async client for the hospital REST backend's admission and IPD billing endpoints.

    Every failure (network, timeout, error status, malformed body) surfaces as
    one ``ExternalServiceError``. Nothing is retried.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "HospitalBackendClient":
        return cls(
            httpx.AsyncClient(
                base_url=settings.BACKEND_API_URL,
                timeout=settings.BACKEND_TIMEOUT_SECONDS,
                transport=transport,
            )
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        tenant_id = get_tenant_id()
        return {"X-Tenant-ID": tenant_id} if tenant_id else {}

    async def _request(self, method: str, url: str, operation: str, json: Any = None) -> Any:
        try:
            response = await self.client.request(method, url, json=json, headers=self._headers())
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise handle_external_service_error(e, SERVICE_NAME, operation) from e

    async def list_admissions(self) -> List[Admission]:
        data = await self._request("GET", "/api/admissions", "list_admissions")
        try:
            return _admissions_adapter.validate_python(data or [])
        except PydanticValidationError as e:
            raise handle_external_service_error(e, SERVICE_NAME, "list_admissions") from e

    async def get_admission(self, admission_id: str) -> Optional[Admission]:
        # the backend has no single-admission endpoint
        for admission in await self.list_admissions():
            if admission.id == admission_id:
                return admission
        return None

    async def get_charges(self, admission_id: str) -> List[Charge]:
        """Charges the backend already holds for an admission.

        Accepts either a bare list or an object with a ``charges`` key.
        """
        data = await self._request("GET", f"/api/ipd-billing/{admission_id}", "get_charges")
        if isinstance(data, dict):
            data = data.get("charges")
        rows = [
            {"admissionId": admission_id, **row} if isinstance(row, dict) else row
            for row in data or []
        ]
        try:
            return _charges_adapter.validate_python(rows)
        except PydanticValidationError as e:
            raise handle_external_service_error(e, SERVICE_NAME, "get_charges") from e

    async def save_bill(self, snapshot: Dict[str, Any]) -> Any:
        logger.info(f"Saving IPD bill for admission {snapshot.get('admissionId')}")
        return await self._request("POST", "/api/ipd-billing", "save_bill", json=snapshot)

    async def record_payment(self, admission_id: str, payment: Payment) -> Any:
        return await self._request(
            "POST",
            f"/api/ipd-billing/{admission_id}/pay",
            "record_payment",
            json=payment.model_dump(mode="json", by_alias=True),
        )
