"""
Object storage client for serialized drafts and uploaded files (S3).

boto3 is synchronous; calls run in a worker thread so handlers stay async.
Every failure surfaces as UpstreamError.
"""

import asyncio
import json
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.errors import UpstreamError
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

PRESIGN_TTL_SECONDS = 300  # 5 minutes


class ObjectStorage(Protocol):
    async def put_json(self, key: str, payload: Any) -> str: ...

    async def get_json(self, key: str) -> Any: ...

    async def presign_get(self, key: str, expires_in: int = PRESIGN_TTL_SECONDS) -> str: ...


def draft_key(token: str, name: str = "current") -> str:
    return f"submissions/{token}/drafts/{name}.json"


class S3ObjectStorage:
    """Thin async wrapper around a boto3 S3 client."""

    def __init__(
        self,
        bucket: str | None = None,
        region: str | None = None,
        kms_key_id: str | None = None,
        client=None,
    ):
        self.bucket = bucket if bucket is not None else settings.S3_BUCKET
        self.kms_key_id = kms_key_id if kms_key_id is not None else settings.AWS_KMS_KEY_ID
        self._client = client or boto3.client("s3", region_name=region or settings.AWS_REGION)

    def _require_bucket(self) -> str:
        if not self.bucket:
            logger.error("S3 bucket is not configured")
            raise UpstreamError("Object storage is not configured")
        return self.bucket

    def _encryption_params(self) -> dict[str, str]:
        if not self.kms_key_id:
            return {}
        return {"ServerSideEncryption": "aws:kms", "SSEKMSKeyId": self.kms_key_id}

    async def put_json(self, key: str, payload: Any) -> str:
        bucket = self._require_bucket()
        body = json.dumps(payload).encode("utf-8")
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType="application/json",
                **self._encryption_params(),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 put failed", key=key, error=str(e), error_type=type(e).__name__)
            raise UpstreamError("Object storage write failed") from e

        logger.debug("S3 put completed", key=key, size=len(body))
        return key

    async def get_json(self, key: str) -> Any:
        bucket = self._require_bucket()
        try:
            response = await asyncio.to_thread(self._client.get_object, Bucket=bucket, Key=key)
            raw = await asyncio.to_thread(response["Body"].read)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 get failed", key=key, error=str(e), error_type=type(e).__name__)
            raise UpstreamError("Object storage read failed") from e

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Stored payload is not valid JSON", key=key, error=str(e))
            raise UpstreamError("Stored payload is malformed") from e

    async def presign_get(self, key: str, expires_in: int = PRESIGN_TTL_SECONDS) -> str:
        bucket = self._require_bucket()
        try:
            url = await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 presign failed", key=key, error=str(e))
            raise UpstreamError("Could not sign storage URL") from e

        logger.info("S3 presigned GET issued", key=key, ttl_seconds=expires_in)
        return url
