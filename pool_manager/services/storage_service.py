"""S3 storage wrapper.

Issues time-limited presigned PUT URLs for player profile pictures and reports
whether the configured bucket is reachable.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pool_manager.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png"]
DEFAULT_PROFILE_PICTURE_PATH = "players/{player_id}/profile"
DEFAULT_EXPIRATION_MINUTES = 15

EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png"}


def allowed_image_types() -> List[str]:
    raw = os.getenv("AWS_S3_ALLOWED_IMAGE_TYPES", "")
    types = [t.strip() for t in raw.split(",") if t.strip()]
    return types or list(DEFAULT_ALLOWED_IMAGE_TYPES)


def validate_content_type(content_type: str, allowed: Optional[List[str]] = None) -> str:
    """
    Check a profile-picture content type against the allowed set.

    Raises:
        ValidationError if the type is not allowed
    """
    allowed = allowed if allowed is not None else allowed_image_types()
    if content_type not in allowed:
        raise ValidationError(
            f"Content type {content_type} is not allowed. Allowed types: {', '.join(allowed)}"
        )
    return content_type


class S3StorageService:
    """
    Wrapper around an S3 client for profile-picture uploads.

    Reads configuration from environment variables unless passed explicitly:
      - AWS_S3_BUCKET_NAME
      - AWS_REGION
      - AWS_S3_PROFILE_PICTURE_PATH
      - AWS_S3_PRESIGNED_URL_EXPIRATION_MINUTES
      - AWS_S3_ALLOWED_IMAGE_TYPES
    Credentials come from the standard AWS chain (AWS_ACCESS_KEY_ID, ...).
    """

    def __init__(
        self,
        bucket_name: str,
        client=None,
        region: Optional[str] = None,
        profile_picture_path: str = DEFAULT_PROFILE_PICTURE_PATH,
        expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES,
        allowed_types: Optional[List[str]] = None,
    ):
        if not bucket_name:
            raise ValueError("S3 bucket name not configured")
        self.bucket_name = bucket_name
        self.client = client or boto3.client("s3", region_name=region)
        self.profile_picture_path = profile_picture_path
        self.expiration_minutes = expiration_minutes
        self.allowed_types = allowed_types or list(DEFAULT_ALLOWED_IMAGE_TYPES)
        logger.info("Using S3 bucket: %s", self.bucket_name)

    @classmethod
    def from_env(cls) -> "S3StorageService":
        return cls(
            bucket_name=os.getenv("AWS_S3_BUCKET_NAME", ""),
            region=os.getenv("AWS_REGION") or None,
            profile_picture_path=os.getenv("AWS_S3_PROFILE_PICTURE_PATH", DEFAULT_PROFILE_PICTURE_PATH),
            expiration_minutes=int(
                os.getenv("AWS_S3_PRESIGNED_URL_EXPIRATION_MINUTES", str(DEFAULT_EXPIRATION_MINUTES))
            ),
            allowed_types=allowed_image_types(),
        )

    def object_key(self, player_id: UUID, content_type: str) -> str:
        ticks = int(datetime.now(timezone.utc).timestamp() * 1_000_000)
        extension = EXTENSIONS.get(content_type, ".png")
        return f"{self.profile_picture_path.format(player_id=player_id)}-{ticks}{extension}"

    def object_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.amazonaws.com/{key}"

    def generate_presigned_upload(self, player_id: UUID, content_type: str) -> Tuple[str, str]:
        """
        Generate a presigned PUT URL for a player's profile picture.

        Returns:
            (upload_url, public_object_url)

        Raises:
            ValidationError if content_type is not allowed
        """
        validate_content_type(content_type, self.allowed_types)
        key = self.object_key(player_id, content_type)
        try:
            upload_url = self.client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket_name, "Key": key, "ContentType": content_type},
                ExpiresIn=self.expiration_minutes * 60,
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError):
            logger.exception("Error generating presigned URL for player %s", player_id)
            raise
        logger.info(
            "Generated presigned URL for player %s, expires in %d minutes", player_id, self.expiration_minutes
        )
        return upload_url, self.object_url(key)

    def check_access(self) -> bool:
        """Check that the bucket exists and is reachable with the current credentials."""
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error checking access to S3 bucket {self.bucket_name}: {e}")
            return False


# Singleton instance
_storage_service: Optional[S3StorageService] = None


def get_storage_service() -> Optional[S3StorageService]:
    """Get or create the singleton storage service; None when no bucket is configured."""
    global _storage_service
    if _storage_service is None:
        if not os.getenv("AWS_S3_BUCKET_NAME"):
            logger.warning("AWS_S3_BUCKET_NAME not configured. Profile picture uploads disabled.")
            return None
        _storage_service = S3StorageService.from_env()
    return _storage_service
