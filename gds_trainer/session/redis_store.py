import json
import uuid
from typing import Any, Dict, Optional

import redis

from gds_trainer.config import settings
from gds_trainer.obs.logger import log_event
from gds_trainer.repository.base import PNRStore
from gds_trainer.types import PNR


class RedisPNRStore(PNRStore):
    """Finalized PNRs as pydantic JSON in Redis, indexed by locator.

    Keys: ``pnr:<id>`` holds the record, ``pnr:locator:<LOC>`` maps a
    locator to its id. Falls back to process memory when Redis is not
    reachable at start-up.
    """

    def __init__(self, redis_url: str = None, ttl_seconds: int = None, client: Any = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.ttl_seconds = settings.REDIS_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.prefix = "pnr:"
        self._fallback_records: Dict[str, str] = {}
        self._fallback_locators: Dict[str, str] = {}

        self.client = client if client is not None else redis.from_url(self.redis_url, decode_responses=True)
        try:
            self.client.ping()
        except redis.ConnectionError:
            self.client = None
            log_event("pnr_store_fallback", level="WARNING", reason="redis unavailable")

    @property
    def in_memory(self) -> bool:
        return self.client is None

    def _record_key(self, pnr_id: str) -> str:
        return f"{self.prefix}{pnr_id}"

    def _locator_key(self, locator: str) -> str:
        return f"{self.prefix}locator:{locator}"

    def _write(self, key: str, value: str) -> None:
        if self.ttl_seconds:
            self.client.setex(key, self.ttl_seconds, value)
        else:
            self.client.set(key, value)

    def _read_record(self, pnr_id: str) -> Optional[str]:
        if self.client is None:
            return self._fallback_records.get(pnr_id)
        return self.client.get(self._record_key(pnr_id))

    def _write_record(self, pnr_id: str, locator: str, data: str) -> None:
        if self.client is None:
            self._fallback_records[pnr_id] = data
            self._fallback_locators[locator] = pnr_id
            return
        self._write(self._record_key(pnr_id), data)
        self._write(self._locator_key(locator), pnr_id)

    async def get_by_locator(self, locator: str) -> Optional[PNR]:
        locator = locator.upper()
        if self.client is None:
            pnr_id = self._fallback_locators.get(locator)
        else:
            pnr_id = self.client.get(self._locator_key(locator))
        if not pnr_id:
            return None
        data = self._read_record(pnr_id)
        if not data:
            return None
        return PNR.model_validate_json(data)

    async def save(self, pnr: PNR) -> str:
        pnr_id = pnr.id or uuid.uuid4().hex
        record = pnr.model_copy(update={"id": pnr_id})
        self._write_record(pnr_id, record.locator, record.model_dump_json())
        log_event("pnr_saved", pnr_id=pnr_id, locator=record.locator)
        return pnr_id

    async def update(self, pnr_id: str, patch: Dict[str, Any]) -> None:
        data = self._read_record(pnr_id)
        if not data:
            raise LookupError(f"PNR {pnr_id} NOT FOUND IN STORE")
        current = json.loads(data)
        current.update(patch)
        record = PNR.model_validate(current)
        self._write_record(pnr_id, record.locator, record.model_dump_json())
        log_event("pnr_updated", pnr_id=pnr_id, locator=record.locator, fields=sorted(patch))
