"""Abstract storage backend protocol for DirStore."""

from typing import AsyncIterator, BinaryIO, Protocol

from dirstore.storage.models import Bucket, ObjectInfo


class StorageBackend(Protocol):
    """Protocol defining the bucket/object storage interface.

    Implementations raise ``DirStoreError`` subclasses for every failure.
    """

    async def init(self) -> None:
        """Initialize the storage backend (create directories, etc.)."""
        ...

    async def close(self) -> None:
        """Release resources held by the storage backend."""
        ...

    async def list_buckets(self) -> list[Bucket]:
        """Return every bucket."""
        ...

    async def create_bucket(self, bucket: str) -> None:
        """Create a bucket. Creating an existing bucket is not an error.

        Args:
            bucket: The bucket name.
        """
        ...

    async def delete_bucket(self, bucket: str) -> None:
        """Delete an empty bucket.

        Args:
            bucket: The bucket name.
        """
        ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: AsyncIterator[bytes],
        size: int | None = None,
    ) -> int:
        """Store an object, replacing any existing one.

        Args:
            bucket: The bucket name.
            key: The object key.
            data: The object body as an async stream of chunks.
            size: The declared body length, if known.

        Returns:
            The number of bytes written.
        """
        ...

    async def get_object(self, bucket: str, key: str) -> tuple[BinaryIO, int]:
        """Open an object for reading.

        Args:
            bucket: The bucket name.
            key: The object key.

        Returns:
            An open binary file object (the caller closes it) and its size.
        """
        ...

    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object.

        Args:
            bucket: The bucket name.
            key: The object key.
        """
        ...

    async def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectInfo]:
        """List the objects of a bucket whose keys start with ``prefix``.

        Args:
            bucket: The bucket name.
            prefix: Key prefix filter; empty matches everything.

        Returns:
            Object metadata for every matching key.
        """
        ...
