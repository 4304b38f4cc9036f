"""S3-backed blob store: one object per ref under a key prefix."""

from __future__ import annotations

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from drive.core.config import Settings
from drive.core.errors import IOFault, NotFound
from drive.storage.blob_store import STALE_TEMP_SECONDS, check_ref

logger = structlog.get_logger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_missing(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in _MISSING_CODES


class S3BlobStore:
    def __init__(self, client, bucket: str, prefix: str = "") -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> S3BlobStore:
        s3 = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )
        return cls(s3, settings.aws_s3_bucket_name, settings.aws_s3_prefix)

    def _key(self, ref: str) -> str:
        return f"{self.prefix}{check_ref(ref)}"

    def put(self, ref: str, data: bytes) -> str:
        try:
            self.client.put_object(Bucket=self.bucket, Key=self._key(ref), Body=data)
        except (ClientError, BotoCoreError) as e:
            raise IOFault("Could not write blob", {"ref": ref, "error": str(e)}) from e
        logger.debug("blob_written", ref=ref, size=len(data))
        return ref

    def get(self, ref: str) -> bytes:
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=self._key(ref))
            return obj["Body"].read()
        except ClientError as e:
            if _is_missing(e):
                raise NotFound("Blob not found", {"ref": ref}) from e
            raise IOFault("Could not read blob", {"ref": ref, "error": str(e)}) from e
        except BotoCoreError as e:
            raise IOFault("Could not read blob", {"ref": ref, "error": str(e)}) from e

    def exists(self, ref: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(ref))
        except ClientError as e:
            if _is_missing(e):
                return False
            raise IOFault("Could not probe blob", {"ref": ref, "error": str(e)}) from e
        except BotoCoreError as e:
            raise IOFault("Could not probe blob", {"ref": ref, "error": str(e)}) from e
        return True

    def delete(self, ref: str) -> bool:
        # DeleteObject succeeds for absent keys, so probe first to report removal
        if not self.exists(ref):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(ref))
        except (ClientError, BotoCoreError) as e:
            raise IOFault("Could not delete blob", {"ref": ref, "error": str(e)}) from e
        logger.debug("blob_deleted", ref=ref)
        return True

    def list_all(self) -> set[str]:
        refs: set[str] = set()
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    ref = obj["Key"][len(self.prefix):]
                    # Keys nested below the prefix are not ours
                    if ref and "/" not in ref:
                        refs.add(ref)
        except (ClientError, BotoCoreError) as e:
            raise IOFault("Could not list blobs", {"bucket": self.bucket, "error": str(e)}) from e
        return refs

    def sweep_temp(self, older_than: float = STALE_TEMP_SECONDS) -> list[str]:
        # put_object is all-or-nothing, nothing partial is left behind
        return []
