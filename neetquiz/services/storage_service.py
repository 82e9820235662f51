"""
Durable object storage for camera photos (S3 compatible)
"""
import boto3
import logging
from typing import Optional

from neetquiz.config import settings
from neetquiz.errors import UploadFailed

logger = logging.getLogger(__name__)


class StorageService:
    """Uploads local files to the configured bucket and returns their public URL"""

    def __init__(self):
        self.bucket = settings.S3_BUCKET
        self.region = settings.S3_REGION
        self._client = None

    @property
    def client(self):
        # Created lazily so importing the module never needs credentials
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=self.region,
            )
        return self._client

    def public_url(self, key: str) -> str:
        if settings.S3_PUBLIC_BASE_URL:
            return f"{settings.S3_PUBLIC_BASE_URL.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, local_path: str, destination_key: str, content_type: Optional[str] = None) -> str:
        """
        Upload a local file

        Raises:
            UploadFailed: if the upload does not complete
        """
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self.client.upload_file(local_path, self.bucket, destination_key, ExtraArgs=extra_args)
        except Exception as e:
            logger.error(f"Upload of {local_path} to {destination_key} failed: {str(e)}")
            raise UploadFailed(f"Upload failed for {destination_key}: {str(e)}") from e

        url = self.public_url(destination_key)
        logger.info(f"Uploaded {local_path} to {url}")
        return url


# Global instance
storage_service = StorageService()
