"""
Blob storage for original and signed PDFs.

Objects are stored under "<folder>/<public_id><extension>" and addressed
by a public HTTPS URL. Two backends are available: S3 (boto3) for
production and the local filesystem for development and tests.
"""

import logging
import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

# Handle both package imports and standalone imports
try:
    from ..config import Settings, get_settings
except ImportError:
    from config import Settings, get_settings

from .exceptions import PublishError

logger = logging.getLogger(__name__)

SIGNED_FOLDER = "signed-documents"
ORIGINALS_FOLDER = "documents"
PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class StoredObject:
    """Location of a published blob."""

    key: str
    url: str


def build_key(folder: str, public_id: str, content_type: str) -> str:
    """Join folder and id, adding the file extension for the content type."""
    extension = mimetypes.guess_extension(content_type) or ""
    return f"{folder.strip('/')}/{public_id}{extension}"


class StorageBackend(ABC):
    """Abstract base class for blob storage backends."""

    @abstractmethod
    def publish(
        self,
        data: bytes,
        folder: str,
        public_id: str,
        content_type: str = PDF_CONTENT_TYPE,
        attachment: bool = True,
    ) -> StoredObject:
        """
        Upload data and return where it can be downloaded from.

        Raises:
            PublishError: If the upload fails.
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a stored object. Returns True if something was deleted."""


class LocalStorageBackend(StorageBackend):
    """
    Local filesystem storage backend.

    Files are written below base_path and served by the application under
    public_base_url. The attachment flag has no effect here.
    """

    def __init__(self, base_path: str | Path, public_base_url: str):
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def publish(
        self,
        data: bytes,
        folder: str,
        public_id: str,
        content_type: str = PDF_CONTENT_TYPE,
        attachment: bool = True,
    ) -> StoredObject:
        key = build_key(folder, public_id, content_type)
        full_path = self.base_path / key
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
        except OSError as e:
            logger.error("Local storage write failed for %s: %s", key, e)
            raise PublishError(f"Failed to store {key}: {e}") from e

        logger.info("Stored %s locally (%d bytes)", key, len(data))
        return StoredObject(key=key, url=f"{self.public_base_url}/{key}")

    def delete(self, key: str) -> bool:
        full_path = self.base_path / key
        try:
            if full_path.exists():
                full_path.unlink()
                return True
            return False
        except OSError as e:
            logger.warning("Could not delete %s: %s", key, e)
            return False


class S3StorageBackend(StorageBackend):
    """AWS S3 (or S3-compatible) storage backend."""

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.public_base_url = (
            public_base_url or f"https://{bucket_name}.s3.{region_name}.amazonaws.com"
        ).rstrip("/")
        self.s3_client = client or boto3.session.Session(region_name=region_name).client(
            "s3", endpoint_url=endpoint_url
        )

    def publish(
        self,
        data: bytes,
        folder: str,
        public_id: str,
        content_type: str = PDF_CONTENT_TYPE,
        attachment: bool = True,
    ) -> StoredObject:
        key = build_key(folder, public_id, content_type)
        filename = key.rsplit("/", 1)[-1]
        disposition = "attachment" if attachment else "inline"

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                ContentDisposition=f'{disposition}; filename="{filename}"',
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload error for s3://%s/%s: %s", self.bucket_name, key, e)
            raise PublishError(f"Failed to upload to S3: {e}") from e

        url = f"{self.public_base_url}/{key}"
        logger.info("S3 upload success: %s", url)
        return StoredObject(key=key, url=url)

    def delete(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("Could not delete s3://%s/%s: %s", self.bucket_name, key, e)
            return False


def create_storage(settings: Settings) -> StorageBackend:
    """Build the storage backend selected in settings."""
    if settings.storage_backend == "s3":
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET must be set when STORAGE_BACKEND=s3")
        return S3StorageBackend(
            bucket_name=settings.s3_bucket,
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            public_base_url=settings.s3_public_base_url,
        )
    return LocalStorageBackend(settings.local_storage_dir, settings.public_base_url)


# Singleton instance for convenience
_storage: StorageBackend | None = None


def get_storage() -> StorageBackend:
    """Get or create the storage backend singleton."""
    global _storage
    if _storage is None:
        _storage = create_storage(get_settings())
    return _storage
