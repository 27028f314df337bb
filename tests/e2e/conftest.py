"""
DirStore E2E Test Configuration

Tests run against a live DirStore server via its S3-compatible HTTP endpoint.
They are excluded from the default pytest run; start a server and run:

    dirstore --addr :8080 --root /tmp/dirstore-e2e &
    DIRSTORE_ENDPOINT=http://localhost:8080 pytest -o addopts="" tests/e2e

Requests are signed because boto3 always signs, but the server does not
check signatures, so any credentials work.
"""

import os
import uuid

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import ClientError


def pytest_configure(config):
    config.addinivalue_line("markers", "bucket_ops: Bucket operations")
    config.addinivalue_line("markers", "object_ops: Object operations")


ENDPOINT = os.environ.get("DIRSTORE_ENDPOINT", "http://localhost:8080")
REGION = "us-east-1"


@pytest.fixture(scope="session")
def s3_client():
    """Create a boto3 S3 client configured for DirStore.

    Path-style addressing keeps the bucket in the URL path. Payload
    checksums are only sent when an operation requires them, so PUT bodies
    arrive as plain bytes.
    """
    return boto3.client(
        "s3",
        endpoint_url=ENDPOINT,
        aws_access_key_id="dirstore",
        aws_secret_access_key="dirstore",
        region_name=REGION,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 1, "mode": "standard"},
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        ),
    )


@pytest.fixture()
def bucket_name():
    """Generate a unique bucket name for a test."""
    return f"test-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def created_bucket(s3_client, bucket_name):
    """Create a bucket, yield its name, then clean up."""
    s3_client.create_bucket(Bucket=bucket_name)
    yield bucket_name
    _empty_and_delete_bucket(s3_client, bucket_name)


@pytest.fixture()
def created_bucket_with_objects(s3_client, created_bucket):
    """Create a bucket with sample objects for listing tests."""
    objects = [
        "file1.txt",
        "file2.txt",
        "photos/2024/jan/photo1.jpg",
        "photos/2024/jan/photo2.jpg",
        "photos/2024/feb/photo3.jpg",
        "photos/2025/mar/photo4.jpg",
        "docs/readme.md",
        "docs/guide.md",
    ]
    for key in objects:
        s3_client.put_object(
            Bucket=created_bucket,
            Key=key,
            Body=f"content of {key}".encode(),
        )
    yield created_bucket, objects


def _empty_and_delete_bucket(client, bucket_name):
    """Delete every object one by one, then the bucket.

    Empty subdirectories left by nested keys still block bucket removal,
    so a bucket that held nested keys may survive the cleanup.
    """
    resp = client.list_objects(Bucket=bucket_name)
    for obj in resp.get("Contents", []):
        client.delete_object(Bucket=bucket_name, Key=obj["Key"])
    try:
        client.delete_bucket(Bucket=bucket_name)
    except ClientError:
        pass
