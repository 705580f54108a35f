from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.models.domain.draft_domain import ResumeTokenRecord
from app.repositories import draft_repository, resume_token_repository
from app.repositories.draft_repository import PostgresDraftStore
from app.repositories.resume_token_repository import PostgresResumeTokenStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _token_row(**overrides) -> dict:
    row = {
        "resume_token": "rt-abcdefghijklmnop",
        "submission_id": "abc123",
        "email": "parent@example.com",
        "used": False,
        "used_at": None,
        "created_at": NOW - timedelta(hours=1),
        "expires_at": NOW + timedelta(hours=23),
    }
    row.update(overrides)
    return row


def _sql(query: str) -> str:
    return " ".join(query.split())


@pytest.mark.asyncio
async def test_consume_marks_token_used_with_guarded_update(monkeypatch):
    fetch = AsyncMock(return_value=_token_row(used=True, used_at=NOW))
    monkeypatch.setattr(resume_token_repository, "fetch_one", fetch)

    result = await PostgresResumeTokenStore().consume("rt-abcdefghijklmnop", NOW)

    assert result.status == "consumed"
    assert result.record.submission_id == "abc123"
    fetch.assert_awaited_once()
    query, params = fetch.await_args.args
    sql = _sql(query)
    assert sql.startswith("UPDATE resume_tokens SET used = TRUE, used_at = %s")
    assert "WHERE resume_token = %s AND used = FALSE AND expires_at > %s" in sql
    assert "RETURNING" in sql
    assert params == (NOW, "rt-abcdefghijklmnop", NOW)


@pytest.mark.asyncio
async def test_consume_unknown_token(monkeypatch):
    fetch = AsyncMock(side_effect=[None, None])
    monkeypatch.setattr(resume_token_repository, "fetch_one", fetch)

    result = await PostgresResumeTokenStore().consume("rt-missing-token", NOW)

    assert result.status == "not_found"
    assert result.record is None
    query, params = fetch.await_args_list[1].args
    assert _sql(query).startswith("SELECT")
    assert params == ("rt-missing-token",)


@pytest.mark.asyncio
async def test_consume_already_used_token(monkeypatch):
    fetch = AsyncMock(side_effect=[None, _token_row(used=True, used_at=NOW - timedelta(minutes=5))])
    monkeypatch.setattr(resume_token_repository, "fetch_one", fetch)

    result = await PostgresResumeTokenStore().consume("rt-abcdefghijklmnop", NOW)

    assert result.status == "used"
    assert result.record.used is True


@pytest.mark.asyncio
async def test_consume_expired_token(monkeypatch):
    fetch = AsyncMock(side_effect=[None, _token_row(expires_at=NOW - timedelta(minutes=1))])
    monkeypatch.setattr(resume_token_repository, "fetch_one", fetch)

    result = await PostgresResumeTokenStore().consume("rt-abcdefghijklmnop", NOW)

    assert result.status == "expired"
    assert result.record.used is False


@pytest.mark.asyncio
async def test_create_inserts_unused_token(monkeypatch):
    execute = AsyncMock(return_value=1)
    monkeypatch.setattr(resume_token_repository, "execute_query", execute)
    record = ResumeTokenRecord(**_token_row())

    await PostgresResumeTokenStore().create(record)

    query, params = execute.await_args.args
    assert "INSERT INTO resume_tokens" in _sql(query)
    assert "FALSE" in _sql(query)
    assert params == (
        "rt-abcdefghijklmnop",
        "abc123",
        "parent@example.com",
        record.created_at,
        record.expires_at,
    )


@pytest.mark.asyncio
async def test_purge_expired_deletes_by_expiry(monkeypatch):
    execute = AsyncMock(return_value=4)
    monkeypatch.setattr(resume_token_repository, "execute_query", execute)

    assert await PostgresResumeTokenStore().purge_expired(NOW) == 4
    query, params = execute.await_args.args
    assert "DELETE FROM resume_tokens WHERE expires_at <= %s" in query
    assert params == (NOW,)


@pytest.mark.asyncio
async def test_draft_save_upserts_and_resets_status(monkeypatch):
    fetch = AsyncMock(
        return_value={
            "token": "abc123",
            "s3_key": "submissions/abc123/drafts/current.json",
            "step": 2,
            "status": "draft",
            "email": None,
            "last_activity_at": NOW,
            "updated_at": NOW,
            "finalized_at": None,
            "last_resume_email_at": None,
            "last_email_status": None,
        }
    )
    monkeypatch.setattr(draft_repository, "fetch_one", fetch)

    record = await PostgresDraftStore().save(
        "abc123", "submissions/abc123/drafts/current.json", 2, NOW
    )

    assert record.step == 2
    assert record.s3_key == "submissions/abc123/drafts/current.json"
    query, params = fetch.await_args.args
    sql = _sql(query)
    assert "INSERT INTO form_drafts" in sql
    assert "ON CONFLICT (token) DO UPDATE SET" in sql
    assert "status = 'draft'" in sql
    assert params == ("abc123", "submissions/abc123/drafts/current.json", 2, NOW, NOW)


@pytest.mark.asyncio
async def test_draft_get_missing_returns_none(monkeypatch):
    monkeypatch.setattr(draft_repository, "fetch_one", AsyncMock(return_value=None))

    assert await PostgresDraftStore().get("abc123") is None


@pytest.mark.asyncio
async def test_record_resume_email_upserts_delivery_status(monkeypatch):
    execute = AsyncMock(return_value=1)
    monkeypatch.setattr(draft_repository, "execute_query", execute)

    await PostgresDraftStore().record_resume_email("abc123", "parent@example.com", "skipped", NOW)

    query, params = execute.await_args.args
    sql = _sql(query)
    assert "ON CONFLICT (token) DO UPDATE SET" in sql
    assert "last_email_status = EXCLUDED.last_email_status" in sql
    assert "last_resume_email_at = EXCLUDED.last_resume_email_at" in sql
    assert params == ("abc123", "parent@example.com", NOW, NOW, NOW, "skipped")


@pytest.mark.asyncio
async def test_purge_idle_deletes_by_last_update(monkeypatch):
    execute = AsyncMock(return_value=2)
    monkeypatch.setattr(draft_repository, "execute_query", execute)
    cutoff = NOW - timedelta(days=180)

    assert await PostgresDraftStore().purge_idle(cutoff) == 2
    query, params = execute.await_args.args
    assert "DELETE FROM form_drafts WHERE updated_at < %s" in query
    assert params == (cutoff,)
