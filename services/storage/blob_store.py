"""Binary blob storage for post images and avatars (S3)."""

import logging
import time
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from services.config import ServiceConfig, config as default_config

log = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/svg+xml"}


class BlobStoreError(Exception):
    pass


class BlobStore:
    """Interface used by the services. Keys are opaque strings."""

    def get_url(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def generate_upload_url(self, owner_id: int, content_type: str) -> Dict[str, str]:
        raise NotImplementedError


class S3BlobStore(BlobStore):
    def __init__(self, settings: ServiceConfig = default_config, client=None):
        self.bucket = settings.AWS_BUCKET_NAME
        self.region = settings.AWS_REGION
        self.prefix = settings.S3_PREFIX
        if not self.bucket:
            raise BlobStoreError("Server S3 configuration missing")

        self.client = client or boto3.client(
            "s3",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=self.region,
        )

    def get_url(self, key: str) -> Optional[str]:
        if not key:
            return None
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Failed to delete {key}: {e}") from e

    def generate_upload_url(self, owner_id: int, content_type: str) -> Dict[str, str]:
        """Presigned PUT valid for 5 minutes."""
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise BlobStoreError(f"Unsupported content type {content_type}")

        ext = "svg" if content_type == "image/svg+xml" else content_type.split("/")[-1]
        object_key = f"{self.prefix}{owner_id}_{int(time.time() * 1000)}.{ext}"

        try:
            upload_url = self.client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": object_key,
                    "ContentType": content_type,
                },
                ExpiresIn=300,
            )
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError("Failed to generate upload signature") from e

        return {
            "upload_url": upload_url,
            "public_url": self.get_url(object_key),
            "key": object_key,
        }
