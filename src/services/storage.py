"""S3-compatible object storage for finished videos.

Works with AWS S3 and S3-compatible providers (Cloudflare R2, MinIO) via a
custom endpoint URL. Uploads run in a worker thread since boto3 blocks.
"""

import asyncio
import logging
import mimetypes
import time
from io import BytesIO
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from pipeline.errors import StorageError

logger = logging.getLogger(__name__)


class S3Storage:
    """Object storage service used as the pipeline's uploader.

    Uses boto3 with the S3 API.
    """

    def __init__(
        self,
        bucket_name: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        public_url: Optional[str] = None,
        key_prefix: str = "videos",
        client=None,
    ):
        """Initialize S3 storage.

        Args:
            bucket_name: Bucket name
            access_key_id: API access key ID
            secret_access_key: API secret access key
            region: Bucket region
            endpoint_url: Custom endpoint for S3-compatible providers
            public_url: Optional public URL base for files (CDN URL)
            key_prefix: Folder for uploaded objects
            client: Pre-built boto3 client (tests)
        """
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_url = public_url
        self.key_prefix = key_prefix.strip("/")

        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
        )

        logger.info(f"S3 storage initialized for bucket: {bucket_name}")

    def url_for(self, key: str) -> str:
        """Public URL of an object."""
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def _default_key(self, local_path: Path) -> str:
        name = f"{local_path.stem}-{int(time.time() * 1000)}{local_path.suffix}"
        return f"{self.key_prefix}/{name}" if self.key_prefix else name

    def _upload(self, data, key: str, content_type: Optional[str]) -> None:
        if content_type is None:
            content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        try:
            self._client.upload_fileobj(
                data,
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {key}: {e}")
            raise StorageError(f"Upload of {key} failed: {e}") from e

    def upload_file_sync(self, local_path: str | Path, key: Optional[str] = None) -> str:
        """Upload a local file and return its URL (blocking)."""
        local_path = Path(local_path)
        if not local_path.is_file():
            raise StorageError(f"File to upload not found: {local_path}")

        key = key or self._default_key(local_path)
        with open(local_path, "rb") as f:
            self._upload(f, key, None)

        logger.info(f"Uploaded {local_path.name} to s3://{self.bucket_name}/{key}")
        return self.url_for(key)

    async def upload_file(self, local_path: str | Path, key: Optional[str] = None) -> str:
        """Upload a local file and return its URL.

        Raises:
            StorageError: If the file is missing or the upload fails
        """
        return await asyncio.to_thread(self.upload_file_sync, local_path, key)

    async def upload_text(self, key: str, text: str, content_type: str = "text/plain") -> str:
        """Upload a text document (e.g. an SRT file) and return its URL."""
        data = BytesIO(text.encode("utf-8"))
        await asyncio.to_thread(self._upload, data, key, content_type)
        logger.info(f"Uploaded {key} to s3://{self.bucket_name}")
        return self.url_for(key)
