"""Data model types for DirStore storage.

Both entities are views over filesystem entries; nothing here is persisted
separately from the directory tree.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone


def mtime_to_datetime(st: os.stat_result) -> datetime:
    """Convert a stat result's modification time to an aware UTC datetime."""
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


@dataclass
class Bucket:
    """A top-level directory under the storage root.

    Attributes:
        name: The bucket (directory) name.
        creation_date: The directory's modification time.
    """

    name: str
    creation_date: datetime


@dataclass
class ObjectInfo:
    """A regular file inside a bucket directory.

    Attributes:
        key: Forward-slash path relative to the bucket directory.
        size: Size in bytes.
        last_modified: The file's modification time.
        etag: Entity tag. The filesystem backend never computes one.
    """

    key: str
    size: int
    last_modified: datetime
    etag: str | None = None
