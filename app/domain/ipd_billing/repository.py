from typing import Dict, Optional
import logging

from app.domain.ipd_billing.models import InvoiceState
from app.infrastructure.redis import CacheService

logger = logging.getLogger(__name__)


class InvoiceDraftRepository:
    """Holds the in-progress bill for each admission, in process memory."""

    def __init__(self):
        self._drafts: Dict[str, InvoiceState] = {}

    async def get(self, admission_id: str) -> Optional[InvoiceState]:
        return self._drafts.get(admission_id)

    async def save(self, invoice: InvoiceState) -> InvoiceState:
        self._drafts[invoice.admission_id] = invoice
        return invoice

    async def delete(self, admission_id: str) -> bool:
        return self._drafts.pop(admission_id, None) is not None


class RedisInvoiceDraftRepository(InvoiceDraftRepository):
    """Bill drafts stored in Redis so they survive restarts and are shared by workers."""

    KEY_PREFIX = "ipd-billing:draft:"

    def __init__(self, cache: CacheService, ttl: int):
        self.cache = cache
        self.ttl = ttl

    async def get(self, admission_id: str) -> Optional[InvoiceState]:
        data = await self.cache.get(f"{self.KEY_PREFIX}{admission_id}")
        if data is None:
            return None
        return InvoiceState.model_validate(data)

    async def save(self, invoice: InvoiceState) -> InvoiceState:
        # python-mode dump keeps Decimals exact; json.dumps(default=str) stringifies them
        await self.cache.set(
            f"{self.KEY_PREFIX}{invoice.admission_id}",
            invoice.model_dump(by_alias=True),
            ttl=self.ttl,
        )
        logger.debug(f"Stored draft bill for admission {invoice.admission_id}")
        return invoice

    async def delete(self, admission_id: str) -> bool:
        return await self.cache.delete(f"{self.KEY_PREFIX}{admission_id}")
