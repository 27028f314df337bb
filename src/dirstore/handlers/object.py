"""Object-level S3 request handlers for DirStore.

Implements object operations:
    - PutObject (PUT /{bucket}/{key})
    - GetObject (GET /{bucket}/{key})
    - DeleteObject (DELETE /{bucket}/{key})
    - ListObjects (GET /{bucket}, optional ?prefix=)
"""

import logging
from collections.abc import AsyncIterator
from typing import BinaryIO

from fastapi import FastAPI, Request, Response
from fastapi.responses import StreamingResponse

from dirstore.errors import InvalidArgument
from dirstore.storage.backend import StorageBackend
from dirstore.xml_utils import iter_list_objects, xml_stream_response

logger = logging.getLogger(__name__)

# Streaming chunk size: 64 KB
_CHUNK_SIZE = 64 * 1024


def parse_content_length(value: str | None) -> int | None:
    """Parse a Content-Length header value.

    Args:
        value: The raw header value, or None when the header is absent.

    Returns:
        The declared length, or None when absent.

    Raises:
        InvalidArgument: If the value is not a non-negative integer.
    """
    if value is None:
        return None
    try:
        n = int(value)
    except ValueError:
        raise InvalidArgument(f"invalid Content-Length: {value!r}")
    if n < 0:
        raise InvalidArgument(f"invalid Content-Length: {value!r}")
    return n


async def iter_file(fh: BinaryIO) -> AsyncIterator[bytes]:
    """Yield a file's contents in 64 KB chunks, closing it afterwards."""
    try:
        while True:
            chunk = fh.read(_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        fh.close()


class ObjectHandler:
    """Handles S3 object operations.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        """Initialize the object handler.

        Args:
            app: The FastAPI application instance.
        """
        self.app = app

    @property
    def storage(self) -> StorageBackend:
        """Shortcut to the storage backend on app.state."""
        return self.app.state.storage

    async def put_object(self, request: Request, bucket: str, key: str) -> Response:
        """Store the request body as an object.

        Implements: PUT /{bucket}/{key}

        The body is streamed straight to disk. ``Content-Length``, when
        present, is passed on as the declared size.

        Args:
            request: The incoming HTTP request.
            bucket: The bucket name from the URL path.
            key: The object key from the URL path.

        Returns:
            Empty 200 response on success.
        """
        size = parse_content_length(request.headers.get("content-length"))
        await self.storage.put_object(bucket, key, request.stream(), size)
        return Response(status_code=200)

    async def get_object(self, request: Request, bucket: str, key: str) -> Response:
        """Stream an object's bytes.

        Implements: GET /{bucket}/{key}

        Args:
            request: The incoming HTTP request.
            bucket: The bucket name from the URL path.
            key: The object key from the URL path.

        Returns:
            StreamingResponse with Content-Length set to the file size.
        """
        fh, size = await self.storage.get_object(bucket, key)
        return StreamingResponse(
            content=iter_file(fh),
            status_code=200,
            headers={"Content-Length": str(size)},
            media_type="application/octet-stream",
        )

    async def delete_object(self, request: Request, bucket: str, key: str) -> Response:
        """Delete an object.

        Implements: DELETE /{bucket}/{key}

        Returns:
            204 No Content on success.
        """
        await self.storage.delete_object(bucket, key)
        return Response(status_code=204)

    async def list_objects(self, request: Request, bucket: str) -> Response:
        """List the objects in a bucket.

        Implements: GET /{bucket}

        Only the ``prefix`` query parameter is honoured, as a plain
        string-prefix filter. Results are not paginated.

        Args:
            request: The incoming HTTP request.
            bucket: The bucket name from the URL path.

        Returns:
            Streamed XML ListBucketResult.
        """
        prefix = request.query_params.get("prefix", "")
        objects = await self.storage.list_objects(bucket, prefix)
        return xml_stream_response(iter_list_objects(bucket, objects), status=200)
