from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from seedvault.config import get_settings

settings = get_settings()


@lru_cache(maxsize=1)
def get_s3_client():
    endpoint = settings.s3_endpoint or None
    if settings.s3_provider == "aws":
        endpoint = None

    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_access_key_id,
        aws_secret_access_key=settings.s3_secret_access_key,
    )


def ensure_bucket_exists() -> None:
    client = get_s3_client()
    bucket = settings.s3_bucket

    try:
        client.head_bucket(Bucket=bucket)
        return
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code", "")
        if code not in {"404", "NoSuchBucket", "NotFound"}:
            raise

    create_args = {"Bucket": bucket}
    if settings.s3_provider == "aws" and settings.s3_region != "us-east-1":
        create_args["CreateBucketConfiguration"] = {
            "LocationConstraint": settings.s3_region
        }

    client.create_bucket(**create_args)


class ImageStore:
    """Image bucket access: uploads and time-limited signed URLs."""

    def __init__(self, client, bucket: str, ttl_seconds: int):
        self.client = client
        self.bucket = bucket
        self.ttl_seconds = ttl_seconds

    def upload_bytes(self, key: str, payload: bytes, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=payload,
            ContentType=content_type,
        )

    def signed_url(self, key: str) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.ttl_seconds,
        )


@lru_cache(maxsize=1)
def get_image_store() -> ImageStore:
    return ImageStore(get_s3_client(), settings.s3_bucket, settings.signed_url_ttl_seconds)
