"""Blob storage backends for uploaded images.

Two interchangeable backends share the same small interface: a local
directory (blobs served back through ``/uploads/{filename}``) and an S3 bucket
(blobs additionally reachable through time-limited presigned URLs).
"""
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from . import config
from .logger import get_logger

logger = get_logger(__name__)


class BlobNotFoundError(Exception):
    """Raised when a key has no stored blob."""

    def __init__(self, key: str):
        super().__init__(f"No blob stored under '{key}'")
        self.key = key


class LocalStorage:
    """Stores blobs as files in a single directory."""

    supports_signed_urls = False

    def __init__(self, upload_dir: str):
        self.root = Path(upload_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path.parent != self.root:
            raise BlobNotFoundError(key)
        return path

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self._path(key).write_bytes(data)
        logger.info(f"Stored {len(data)} bytes at {key} ({content_type})")

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise BlobNotFoundError(key)
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except BlobNotFoundError:
            return False

    def delete(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise BlobNotFoundError(key)
        path.unlink()
        logger.info(f"Deleted blob {key}")

    def signed_url(self, key: str, expires_in: int) -> Optional[str]:
        return None


class S3Storage:
    """Stores blobs in an S3 (or LocalStack) bucket."""

    supports_signed_urls = True

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def ensure_bucket(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError:
            logger.info(f"Creating S3 bucket: {self.bucket}")
            self.client.create_bucket(Bucket=self.bucket)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        logger.info(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")

    def get(self, key: str) -> bytes:
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                raise BlobNotFoundError(key) from e
            raise
        return resp["Body"].read()

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _is_missing(e):
                return False
            raise

    def delete(self, key: str) -> None:
        # delete_object succeeds silently for missing keys
        if not self.exists(key):
            raise BlobNotFoundError(key)
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info(f"Deleted s3://{self.bucket}/{key}")

    def signed_url(self, key: str, expires_in: int) -> Optional[str]:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )


def _is_missing(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code")
    return code in ("NoSuchKey", "404", "NotFound")


def create_s3_client():
    boto3_kwargs = {"region_name": config.AWS_REGION}
    if config.LOCALSTACK_ENDPOINT:
        boto3_kwargs["endpoint_url"] = config.LOCALSTACK_ENDPOINT
    return boto3.client("s3", **boto3_kwargs)


def create_storage():
    if config.STORAGE_BACKEND == "s3":
        return S3Storage(create_s3_client(), config.S3_BUCKET)
    if config.STORAGE_BACKEND == "local":
        return LocalStorage(config.UPLOAD_DIR)
    raise ValueError(f"Unknown STORAGE_BACKEND '{config.STORAGE_BACKEND}', expected 'local' or 's3'")
