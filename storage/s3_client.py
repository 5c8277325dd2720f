"""
S3 client for image storage.
"""
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from typing import Optional, BinaryIO
from urllib.parse import quote

from core.logger import logger


class S3Client:
    """S3 client for storing event, reward and avatar images in a single bucket."""

    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,  # For S3-compatible services (MinIO, etc.)
        public_base_url: Optional[str] = None,
        cache_control: Optional[str] = None
    ):
        """
        Initialize S3 client.

        Args:
            bucket_name: Bucket holding uploaded images
            aws_access_key_id: AWS access key (or from env)
            aws_secret_access_key: AWS secret key (or from env)
            region_name: AWS region
            endpoint_url: Custom endpoint URL (for MinIO, etc.)
            public_base_url: Base URL under which objects are publicly readable
            cache_control: Cache-Control header stored with each object
        """
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.cache_control = cache_control

        client_kwargs = {
            "region_name": region_name
        }

        if aws_access_key_id:
            client_kwargs["aws_access_key_id"] = aws_access_key_id
        if aws_secret_access_key:
            client_kwargs["aws_secret_access_key"] = aws_secret_access_key
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)

        logger.info(f"S3 client initialized (bucket: {bucket_name})")

    def upload_fileobj(
        self,
        file_obj: BinaryIO,
        s3_key: str,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None
    ) -> str:
        """
        Upload a file-like object to S3.

        Args:
            file_obj: File-like object (BytesIO, file handle, etc.)
            s3_key: S3 object key (path)
            content_type: MIME type
            metadata: Additional metadata

        Returns:
            The object key
        """
        try:
            extra_args = {}
            if content_type:
                extra_args["ContentType"] = content_type
            if self.cache_control:
                extra_args["CacheControl"] = self.cache_control
            if metadata:
                extra_args["Metadata"] = {str(k): str(v) for k, v in metadata.items()}

            self.s3_client.upload_fileobj(
                file_obj,
                self.bucket_name,
                s3_key,
                ExtraArgs=extra_args
            )

            logger.info(f"Uploaded file object to S3: s3://{self.bucket_name}/{s3_key}")
            return s3_key

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload file object to S3: {e}")
            raise

    def get_public_url(self, s3_key: str) -> str:
        """Public HTTPS URL for an object key."""
        key = quote(s3_key)
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/{key}"

    def delete_file(self, s3_key: str) -> bool:
        """
        Delete a file from S3.

        Args:
            s3_key: S3 object key (path)

        Returns:
            True if successful
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
            logger.info(f"Deleted file from S3: {self.bucket_name}/{s3_key}")
            return True

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete file from S3: {e}")
            raise

    def file_exists(self, s3_key: str) -> bool:
        """
        Check if a file exists in S3.

        Args:
            s3_key: S3 object key (path)

        Returns:
            True if file exists
        """
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=s3_key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                return False
            raise
