"""Report evidence storage on S3/MinIO.

Uploads are attempted one file at a time and each outcome is recorded;
a failed file never aborts the report submission.
"""

import asyncio
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from gigtrust.domains.fraud.config import EvidenceSettings, default_config
from gigtrust.shared.errors import ValidationError

from .models import UploadOutcome

logger = structlog.get_logger()


@dataclass
class EvidenceFile:
    filename: str
    content_type: str
    data: bytes


class EvidenceStore(Protocol):
    async def upload(self, data: bytes, filename: str, content_type: str) -> str: ...


def _get_s3_client(endpoint_url: str, access_key: str, secret_key: str):
    """Create a boto3 S3 client for MinIO."""
    import boto3

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name="us-east-1",
    )


class S3EvidenceStore:
    """Stores screenshots under ``<folder>/<uuid>-<filename>`` and returns a public URL."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        public_url: str,
        folder: str | None = None,
    ) -> None:
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.access_key = access_key
        self.secret_key = secret_key
        self.public_url = public_url.rstrip("/")
        self.folder = folder or default_config.evidence.folder
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = _get_s3_client(self.endpoint_url, self.access_key, self.secret_key)
        return self._client

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        key = f"{self.folder}/{uuid.uuid4().hex}-{filename}"
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.info("evidence_uploaded", key=key, size_bytes=len(data))
        return f"{self.public_url}/{key}"


def check_evidence_files(
    files: Sequence[EvidenceFile], settings: EvidenceSettings | None = None
) -> None:
    settings = settings or default_config.evidence
    if len(files) > settings.max_files:
        raise ValidationError(f"At most {settings.max_files} screenshots can be attached")
    for f in files:
        if f.content_type not in settings.allowed_content_types:
            raise ValidationError(
                "Only image files are allowed", details={"filename": f.filename}
            )
        if len(f.data) > settings.max_file_bytes:
            raise ValidationError(
                "Screenshot exceeds the maximum file size",
                details={"filename": f.filename, "max_bytes": settings.max_file_bytes},
            )


async def upload_evidence(store: EvidenceStore, files: Sequence[EvidenceFile]) -> list[UploadOutcome]:
    outcomes = []
    for f in files:
        try:
            url = await store.upload(f.data, f.filename, f.content_type)
        except (BotoCoreError, ClientError, OSError) as exc:
            logger.warning("evidence_upload_failed", filename=f.filename, error=str(exc))
            outcomes.append(UploadOutcome(filename=f.filename, success=False, error=str(exc)))
            continue
        outcomes.append(UploadOutcome(filename=f.filename, success=True, url=url))
    return outcomes
