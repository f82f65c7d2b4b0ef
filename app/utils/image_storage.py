import logging
import uuid
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.core.errors import StoreError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
}


class ImageStorage:
    """Profile images kept in an S3 bucket and served by public URL."""

    def __init__(self, settings: Settings, client=None):
        self._bucket = settings.S3_BUCKET_NAME
        self._region = settings.S3_REGION
        self._folder = settings.S3_IMAGE_FOLDER
        self._s3 = client or boto3.client("s3", region_name=settings.S3_REGION)

    @property
    def base_url(self) -> str:
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/"

    def upload(self, data: bytes, content_type: str) -> str:
        extension = ALLOWED_CONTENT_TYPES[content_type]
        s3_key = f"{self._folder}/{uuid.uuid4().hex}{extension}"
        try:
            self._s3.put_object(Bucket=self._bucket, Key=s3_key, Body=data, ContentType=content_type)
        except ClientError as e:
            logger.error(f"Failed to upload image {s3_key}: {e}")
            raise StoreError(str(e))
        logger.info(f"Uploaded image {s3_key}")
        return f"{self.base_url}{s3_key}"

    def delete(self, url: Optional[str]) -> bool:
        """Delete an image previously returned by upload. URLs we did not issue are left alone."""
        if not url or not url.startswith(self.base_url):
            return False
        s3_key = url[len(self.base_url):]
        try:
            self._s3.delete_object(Bucket=self._bucket, Key=s3_key)
        except ClientError as e:
            logger.error(f"Failed to delete image {s3_key}: {e}")
            raise StoreError(str(e))
        logger.info(f"Deleted image {s3_key}")
        return True

    def check(self) -> None:
        """Raise ClientError when the bucket is not reachable."""
        self._s3.head_bucket(Bucket=self._bucket)
