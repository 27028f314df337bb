"""Local filesystem storage backend for DirStore.

Implements the StorageBackend protocol directly on a directory tree.
Buckets are the directories under ``{root}`` and objects are the regular
files under ``{root}/{bucket}``, addressed by their forward-slash path.

The filesystem is the only source of truth:
    - No in-memory index; every listing rescans the bucket.
    - Writes go straight to the destination file. There is no
      temp-file-and-rename step, so an interrupted upload leaves a
      truncated object behind.
    - Bucket creation dates and object timestamps are file mtimes.
"""

import logging
import os
import stat
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

from dirstore.errors import Conflict, InvalidArgument, NotFound, translate_os_error
from dirstore.storage.listing import walk_objects
from dirstore.storage.locks import LockManager
from dirstore.storage.models import Bucket, ObjectInfo, mtime_to_datetime
from dirstore.validation import validate_bucket_name, validate_object_key

logger = logging.getLogger(__name__)


class LocalStorageBackend:
    """Storage backend that persists buckets and objects on the local filesystem.

    Attributes:
        root: The root directory holding one directory per bucket.
        locks: Reader/writer locks serialising access to the tree.
    """

    def __init__(self, root: str | Path, lock_mode: str = "bucket") -> None:
        """Initialize the local storage backend.

        Args:
            root: Root directory path for bucket storage.
            lock_mode: ``"bucket"`` for per-bucket locks, ``"global"`` for a
                single lock over the whole tree.
        """
        self.root = Path(root)
        self.locks = LockManager(lock_mode)

    def _bucket_path(self, bucket: str) -> Path:
        """Return the directory for a bucket.

        Raises:
            InvalidArgument: If the name would resolve outside the root.
        """
        validate_bucket_name(bucket)
        return self.root / bucket

    def _object_path(self, bucket: str, key: str) -> Path:
        """Return the file path for an object.

        Raises:
            InvalidArgument: If the bucket or key would resolve outside the
                bucket directory.
        """
        validate_object_key(key)
        return self._bucket_path(bucket) / Path(*key.split("/"))

    async def init(self) -> None:
        """Create the root directory if it does not exist."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise translate_os_error(exc, "failed to create root directory") from exc
        logger.info("Local storage backend initialized at %s", self.root)

    async def close(self) -> None:
        """No-op for local filesystem backend."""
        pass

    # -- Buckets -----------------------------------------------------------------

    async def list_buckets(self) -> list[Bucket]:
        """List the directories directly under the root.

        Files and other non-directory entries are skipped.

        Returns:
            Buckets sorted by name.
        """
        async with self.locks.namespace():
            buckets: list[Bucket] = []
            try:
                with os.scandir(self.root) as entries:
                    for entry in entries:
                        if not entry.is_dir():
                            continue
                        buckets.append(
                            Bucket(name=entry.name, creation_date=mtime_to_datetime(entry.stat()))
                        )
            except OSError as exc:
                raise translate_os_error(exc, "failed to read buckets") from exc

        buckets.sort(key=lambda b: b.name)
        return buckets

    async def create_bucket(self, bucket: str) -> None:
        """Create the bucket directory.

        Creating a bucket that already exists succeeds without error.

        Args:
            bucket: The bucket name.

        Raises:
            Conflict: If a non-directory entry already uses the name.
        """
        path = self._bucket_path(bucket)
        async with self.locks.namespace(exclusive=True):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise translate_os_error(exc, "failed to create bucket") from exc
        logger.debug("Created bucket %s", bucket)

    async def delete_bucket(self, bucket: str) -> None:
        """Remove an empty bucket directory.

        Args:
            bucket: The bucket name.

        Raises:
            NotFound: If the bucket does not exist.
            Conflict: If the bucket still contains entries.
        """
        path = self._bucket_path(bucket)
        async with self.locks.namespace(exclusive=True):
            try:
                path.rmdir()
            except OSError as exc:
                raise translate_os_error(exc, "failed to delete bucket") from exc
        logger.debug("Deleted bucket %s", bucket)

    # -- Objects -----------------------------------------------------------------

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: AsyncIterator[bytes],
        size: int | None = None,
    ) -> int:
        """Write an object's bytes to ``{root}/{bucket}/{key}``.

        Parent directories, including the bucket directory, are created as
        needed. An existing file is truncated and overwritten in place.

        Args:
            bucket: The bucket name.
            key: The object key.
            data: The object body as an async stream of chunks.
            size: The declared body length. When given, a body of any other
                length is rejected after it has been written.

        Returns:
            The number of bytes written.

        Raises:
            Conflict: If the key or one of its parents is occupied by an entry
                of the other type (file vs. directory).
            InvalidArgument: If the body length differs from ``size``.
        """
        path = self._object_path(bucket, key)
        written = 0

        async with self.locks.bucket(bucket, exclusive=True):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except (FileExistsError, NotADirectoryError) as exc:
                raise Conflict(
                    f"failed to create object directory: a parent of {key!r} is an object"
                ) from exc
            except OSError as exc:
                raise translate_os_error(exc, "failed to create object directory") from exc

            try:
                fh = open(path, "wb")
            except OSError as exc:
                raise translate_os_error(exc, "failed to create object file") from exc

            try:
                with fh:
                    async for chunk in data:
                        fh.write(chunk)
                        written += len(chunk)
            except OSError as exc:
                raise translate_os_error(exc, "failed to write object") from exc

        logger.debug("Stored %s/%s (%d bytes)", bucket, key, written)

        if size is not None and size != written:
            raise InvalidArgument(
                f"failed to write object: expected {size} bytes, received {written}"
            )
        return written

    async def get_object(self, bucket: str, key: str) -> tuple[BinaryIO, int]:
        """Open an object for reading.

        The lock is held only while the file is checked and opened; the
        caller reads and closes the returned file afterwards.

        Args:
            bucket: The bucket name.
            key: The object key.

        Returns:
            An open binary file object and the object's size in bytes.

        Raises:
            NotFound: If the path does not exist or is not a regular file.
        """
        path = self._object_path(bucket, key)
        async with self.locks.bucket(bucket):
            try:
                st = path.stat()
            except OSError as exc:
                raise translate_os_error(exc, "failed to stat object") from exc
            if not stat.S_ISREG(st.st_mode):
                raise NotFound("failed to stat object: not a regular file")

            try:
                fh = open(path, "rb")
            except OSError as exc:
                raise translate_os_error(exc, "failed to open object") from exc

        return fh, st.st_size

    async def delete_object(self, bucket: str, key: str) -> None:
        """Remove an object's file.

        Empty parent directories are left in place; they never show up in
        listings.

        Args:
            bucket: The bucket name.
            key: The object key.

        Raises:
            NotFound: If the path does not exist or is not a regular file.
        """
        path = self._object_path(bucket, key)
        async with self.locks.bucket(bucket, exclusive=True):
            if not path.is_file():
                raise NotFound("failed to delete object: no such object")
            try:
                path.unlink()
            except OSError as exc:
                raise translate_os_error(exc, "failed to delete object") from exc
        logger.debug("Deleted %s/%s", bucket, key)

    async def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectInfo]:
        """List a bucket's objects whose keys start with ``prefix``.

        Args:
            bucket: The bucket name.
            prefix: Key prefix filter; empty matches everything.

        Returns:
            Object metadata for every matching file, in walk order.

        Raises:
            NotFound: If the bucket does not exist.
        """
        path = self._bucket_path(bucket)
        async with self.locks.bucket(bucket):
            if not path.is_dir():
                raise NotFound("failed to list objects: no such bucket")
            try:
                return walk_objects(path, prefix)
            except OSError as exc:
                raise translate_os_error(exc, "failed to list objects") from exc
