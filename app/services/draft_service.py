"""
Draft persistence: serialized form state goes to object storage, the
pointer and wizard position go to the draft store.
"""

import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from app.errors import InvalidInput, NotFound, UpstreamError
from app.infrastructure.observability.logging import get_logger, token_preview
from app.models.domain.draft_domain import DraftRecord
from app.repositories.draft_repository import DraftStore
from app.security.tokens import generate_draft_token
from app.services.object_storage import ObjectStorage, draft_key

logger = get_logger(__name__)

CLIENT_TOKEN_RX = re.compile(r"^[A-Za-z0-9._~-]{10,}$")
DRAFT_SCHEMA_VERSION = 1
MAX_DRAFT_STEP = 2_147_483_647  # form_drafts.step is INTEGER


def _parse_step(value: Any) -> int:
    try:
        step = int(value or 0)
    except (TypeError, ValueError):
        return 0
    step = max(step, 0)
    if step > MAX_DRAFT_STEP:
        raise InvalidInput("Draft step is out of range")
    return step


def _history_name(now: datetime) -> str:
    return now.strftime("%Y%m%d%H%M%SZ")


class DraftService:
    def __init__(
        self,
        drafts: DraftStore,
        storage: ObjectStorage,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.drafts = drafts
        self.storage = storage
        self._clock = clock

    async def save_draft(self, body: dict[str, Any]) -> DraftRecord:
        """
        Persist the submitted form state.

        A client-supplied token is reused when it looks like one of ours;
        otherwise a fresh draft token is issued.
        """
        if not isinstance(body, dict):
            raise InvalidInput("Draft body must be a JSON object")

        now = self._clock()
        supplied = body.get("token")
        token = (
            supplied
            if isinstance(supplied, str) and CLIENT_TOKEN_RX.match(supplied)
            else generate_draft_token()
        )
        step = _parse_step(body.get("step"))

        document = {
            "token": token,
            "step": step,
            "updatedAt": now.isoformat(),
            "schemaVersion": DRAFT_SCHEMA_VERSION,
            "data": body,
        }
        current_key = draft_key(token)
        await self.storage.put_json(current_key, document)
        await self.storage.put_json(draft_key(token, _history_name(now)), document)

        record = await self.drafts.save(token, current_key, step, now)
        logger.info("Draft saved", token=token_preview(token), step=step)
        return record

    async def load_draft_payload(self, token: str) -> dict[str, Any]:
        """
        Return the serialized form data for ``token`` with the current step.

        Raises:
            NotFound: no draft, or the draft has no stored payload
            UpstreamError: storage unreachable or payload malformed
        """
        record = await self.drafts.get(token)
        if not record or not record.s3_key:
            raise NotFound("Draft not found")

        stored = await self.storage.get_json(record.s3_key)
        data = stored.get("data", stored) if isinstance(stored, dict) else None
        if not isinstance(data, dict):
            logger.error("Draft payload has unexpected shape", token=token_preview(token))
            raise UpstreamError("Stored payload is malformed")

        payload = dict(data)
        payload["step"] = record.step
        return payload
