"""S3 storage backend for uploads (optional; local filesystem otherwise)."""
import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class S3StorageService:
    """Stores uploaded objects in an S3-compatible bucket under their generated name."""

    def __init__(
        self,
        region: str,
        bucket: str,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        """
        Initialize S3 client.

        Args:
            region: AWS region (may be empty for non-AWS providers)
            bucket: bucket name
            access_key: access key (optional; uses IAM role on EC2)
            secret_key: secret key (optional; uses IAM role on EC2)
            endpoint_url: custom endpoint for minio/R2/Spaces
        """
        self.bucket = bucket
        self.region = region
        self.client = boto3.client(
            "s3",
            region_name=region or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            endpoint_url=endpoint_url or None,
        )
        logger.info(f"S3 storage initialized for bucket '{bucket}'")

    def upload_file(self, file_data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """
        Upload bytes to the bucket.

        Args:
            file_data: file contents
            key: object key (the generated file name)
            content_type: MIME type

        Returns:
            The object key
        """
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=file_data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise
        logger.info(f"Uploaded to S3: s3://{self.bucket}/{key}")
        return key

    def delete_file(self, key: str) -> bool:
        """Delete an object; returns False if the provider refused."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 delete failed for {key}: {e}")
            return False
        logger.info(f"Deleted from S3: s3://{self.bucket}/{key}")
        return True
