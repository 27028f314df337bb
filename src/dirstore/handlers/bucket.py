"""Bucket-level S3 request handlers for DirStore.

Implements the 3 bucket operations:
    - ListBuckets (GET /)
    - CreateBucket (PUT /{bucket})
    - DeleteBucket (DELETE /{bucket})
"""

import logging

from fastapi import FastAPI, Request, Response

from dirstore.storage.backend import StorageBackend
from dirstore.xml_utils import iter_list_buckets, xml_stream_response

logger = logging.getLogger(__name__)


class BucketHandler:
    """Handles S3 bucket operations.

    All handlers access the storage backend from ``app.state``.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        """Initialize the bucket handler.

        Args:
            app: The FastAPI application instance.
        """
        self.app = app

    @property
    def storage(self) -> StorageBackend:
        """Shortcut to the storage backend on app.state."""
        return self.app.state.storage

    async def list_buckets(self, request: Request) -> Response:
        """List all buckets.

        Implements: GET /

        Args:
            request: The incoming HTTP request.

        Returns:
            Streamed XML response containing the bucket list.
        """
        buckets = await self.storage.list_buckets()
        return xml_stream_response(iter_list_buckets(buckets), status=200)

    async def create_bucket(self, request: Request, bucket: str) -> Response:
        """Create a new bucket.

        Implements: PUT /{bucket}

        Idempotency: creating a bucket that already exists returns 200 and
        does not say whether anything was created.

        Args:
            request: The incoming HTTP request.
            bucket: The bucket name from the URL path.

        Returns:
            Empty 200 response on success.
        """
        await self.storage.create_bucket(bucket)
        return Response(status_code=200)

    async def delete_bucket(self, request: Request, bucket: str) -> Response:
        """Delete an existing empty bucket.

        Implements: DELETE /{bucket}

        Args:
            request: The incoming HTTP request.
            bucket: The bucket name from the URL path.

        Returns:
            204 No Content on success.
        """
        await self.storage.delete_bucket(bucket)
        return Response(status_code=204)
