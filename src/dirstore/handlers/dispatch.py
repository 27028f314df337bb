"""Request dispatch for DirStore.

Every S3 request enters through ``RequestDispatcher.dispatch``. The path is
split syntactically into ``(bucket, key)`` and the operation is chosen from
the HTTP method and which of the two are present:

    ======  ===========  ============  ============
    Method  path empty   no key        has key
    ======  ===========  ============  ============
    GET     ListBuckets  ListObjects   GetObject
    PUT     --           CreateBucket  PutObject
    DELETE  --           DeleteBucket  DeleteObject
    ======  ===========  ============  ============

Any other combination is 405. Names are validated by the storage backend,
not here.
"""

import logging

from fastapi import FastAPI, Request, Response

from dirstore.errors import DirStoreError, MethodNotAllowed
from dirstore.handlers.bucket import BucketHandler
from dirstore.handlers.object import ObjectHandler
from dirstore.metrics import record_operation

logger = logging.getLogger(__name__)

SERVICE = "service"
BUCKET = "bucket"
OBJECT = "object"

_OPERATIONS: dict[tuple[str, str], str] = {
    ("GET", SERVICE): "ListBuckets",
    ("GET", BUCKET): "ListObjects",
    ("PUT", BUCKET): "CreateBucket",
    ("DELETE", BUCKET): "DeleteBucket",
    ("GET", OBJECT): "GetObject",
    ("PUT", OBJECT): "PutObject",
    ("DELETE", OBJECT): "DeleteObject",
}


def parse_path(path: str) -> tuple[str, str]:
    """Split a request path into ``(bucket, key)``.

    One leading slash is stripped, then the remainder is split on the first
    slash. No name checks are made.

    Examples:
        ``/`` -> ``("", "")``; ``/b`` -> ``("b", "")``;
        ``/b/dir/f.txt`` -> ``("b", "dir/f.txt")``.

    Args:
        path: The URL path, with or without its leading slash.

    Returns:
        The bucket and key; either may be empty.
    """
    if path.startswith("/"):
        path = path[1:]
    bucket, _, key = path.partition("/")
    return bucket, key


def resource_level(bucket: str, key: str) -> str:
    """Classify a parsed path as service, bucket or object level."""
    if key:
        return OBJECT
    if bucket:
        return BUCKET
    return SERVICE


def resolve_operation(method: str, bucket: str, key: str) -> str:
    """Return the S3 operation name for a method and parsed path.

    Raises:
        MethodNotAllowed: If the method is not supported for the resource.
    """
    operation = _OPERATIONS.get((method.upper(), resource_level(bucket, key)))
    if operation is None:
        raise MethodNotAllowed()
    return operation


class RequestDispatcher:
    """Routes S3 requests to the bucket and object handlers.

    Holds no per-request state; one instance serves the whole app.

    Attributes:
        reserved_buckets: Names taken by fixed routes such as ``/health``.
            Requests that reach the dispatcher under them get a 405 so the
            names can never become buckets.
        bucket_handler: Handler for service and bucket operations.
        object_handler: Handler for object operations and listings.
    """

    def __init__(self, app: FastAPI, reserved_buckets: frozenset[str] = frozenset()) -> None:
        self.reserved_buckets = reserved_buckets
        self.bucket_handler = BucketHandler(app)
        self.object_handler = ObjectHandler(app)

    async def _invoke(self, operation: str, request: Request, bucket: str, key: str) -> Response:
        if operation == "ListBuckets":
            return await self.bucket_handler.list_buckets(request)
        if operation == "CreateBucket":
            return await self.bucket_handler.create_bucket(request, bucket)
        if operation == "DeleteBucket":
            return await self.bucket_handler.delete_bucket(request, bucket)
        if operation == "ListObjects":
            return await self.object_handler.list_objects(request, bucket)
        if operation == "PutObject":
            return await self.object_handler.put_object(request, bucket, key)
        if operation == "GetObject":
            return await self.object_handler.get_object(request, bucket, key)
        if operation == "DeleteObject":
            return await self.object_handler.delete_object(request, bucket, key)
        raise MethodNotAllowed()

    async def dispatch(self, request: Request, path: str) -> Response:
        """Handle one S3 request.

        Args:
            request: The incoming HTTP request.
            path: The request path (leading slash optional).

        Returns:
            The handler's response.

        Raises:
            DirStoreError: On any storage or routing failure; rendered by the
                app's exception handler.
        """
        bucket, key = parse_path(path)
        if bucket in self.reserved_buckets:
            raise MethodNotAllowed()
        operation = resolve_operation(request.method, bucket, key)

        status = 500
        try:
            response = await self._invoke(operation, request, bucket, key)
            status = response.status_code
            return response
        except DirStoreError as exc:
            status = exc.http_status
            logger.debug("%s %s/%s failed: %s", operation, bucket, key, exc.message)
            raise
        finally:
            record_operation(operation, status)
