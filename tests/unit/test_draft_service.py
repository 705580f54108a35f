from datetime import UTC, datetime

import pytest

from app.errors import InvalidInput, NotFound, UpstreamError
from app.models.domain.draft_domain import DraftRecord
from app.services.draft_service import DraftService


@pytest.mark.asyncio
async def test_save_draft_writes_current_and_history(draft_store, object_storage):
    service = DraftService(
        draft_store, object_storage, clock=lambda: datetime(2026, 3, 1, 12, 30, 5, tzinfo=UTC)
    )

    record = await service.save_draft({"token": "client-token-1", "step": "3", "name": "Sam"})

    assert record.token == "client-token-1"
    assert record.step == 3
    assert record.s3_key == "submissions/client-token-1/drafts/current.json"
    current = object_storage.objects["submissions/client-token-1/drafts/current.json"]
    assert current["schemaVersion"] == 1
    assert current["data"]["name"] == "Sam"
    assert current["updatedAt"] == "2026-03-01T12:30:05+00:00"
    assert "submissions/client-token-1/drafts/20260301123005Z.json" in object_storage.objects


@pytest.mark.asyncio
async def test_save_draft_replaces_unusable_client_token(draft_service):
    record = await draft_service.save_draft({"token": "bad token!", "step": -2})

    assert record.token != "bad token!"
    assert len(record.token) == 22
    assert record.step == 0


@pytest.mark.asyncio
async def test_save_draft_rejects_non_object(draft_service):
    with pytest.raises(InvalidInput):
        await draft_service.save_draft(["not", "a", "dict"])


@pytest.mark.asyncio
async def test_save_draft_storage_failure(draft_service, object_storage, draft_store):
    object_storage.fail = True

    with pytest.raises(UpstreamError):
        await draft_service.save_draft({"step": 1})
    assert draft_store.records == {}


@pytest.mark.asyncio
async def test_load_payload_without_data_wrapper(draft_service, draft_store, object_storage):
    draft_store.records["legacy-token"] = DraftRecord(
        token="legacy-token", s3_key="submissions/legacy-token/drafts/current.json", step=1
    )
    object_storage.objects["submissions/legacy-token/drafts/current.json"] = {"field": "x"}

    assert await draft_service.load_draft_payload("legacy-token") == {"field": "x", "step": 1}


@pytest.mark.asyncio
async def test_load_payload_missing_pointer(draft_service, draft_store):
    draft_store.records["no-pointer"] = DraftRecord(token="no-pointer")

    with pytest.raises(NotFound):
        await draft_service.load_draft_payload("no-pointer")
    with pytest.raises(NotFound):
        await draft_service.load_draft_payload("unknown")


@pytest.mark.asyncio
async def test_load_payload_malformed(draft_service, draft_store, object_storage):
    draft_store.records["odd"] = DraftRecord(token="odd", s3_key="submissions/odd/drafts/current.json")
    object_storage.objects["submissions/odd/drafts/current.json"] = {"data": ["not", "an", "object"]}

    with pytest.raises(UpstreamError):
        await draft_service.load_draft_payload("odd")


@pytest.mark.asyncio
async def test_save_draft_rejects_step_beyond_column_range(draft_service, draft_store, object_storage):
    with pytest.raises(InvalidInput):
        await draft_service.save_draft({"token": "client-token-1", "step": 2**40})

    assert object_storage.objects == {}
    assert draft_store.calls == []
