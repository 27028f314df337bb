"""Object listing for the filesystem backend.

A listing is a fresh depth-first walk of the bucket directory: there is no
index to consult and no pagination. Keys are matched with a plain
``startswith`` test; there is no delimiter grouping.
"""

import logging
import os
from pathlib import Path

from dirstore.storage.models import ObjectInfo, mtime_to_datetime

logger = logging.getLogger(__name__)


def _raise(exc: OSError) -> None:
    raise exc


def relative_key(bucket_dir: Path, path: Path) -> str:
    """Return the forward-slash key of ``path`` relative to ``bucket_dir``."""
    return path.relative_to(bucket_dir).as_posix()


def walk_objects(bucket_dir: str | Path, prefix: str = "") -> list[ObjectInfo]:
    """Collect every regular file under ``bucket_dir`` whose key starts with ``prefix``.

    Directory entries are visited in sorted order so results are stable for
    a given tree.

    Args:
        bucket_dir: The bucket's directory.
        prefix: Key prefix filter; empty matches everything.

    Returns:
        Object metadata in traversal order.

    Raises:
        OSError: If any directory in the subtree cannot be read.
    """
    bucket_dir = Path(bucket_dir)
    objects: list[ObjectInfo] = []

    for dirpath, dirnames, filenames in os.walk(bucket_dir, onerror=_raise):
        dirnames.sort()
        current = Path(dirpath)
        for fname in sorted(filenames):
            path = current / fname
            key = relative_key(bucket_dir, path)
            if prefix and not key.startswith(prefix):
                continue
            # Sockets, FIFOs and dangling links are not objects.
            if not path.is_file():
                continue
            st = path.stat()
            objects.append(
                ObjectInfo(
                    key=key,
                    size=st.st_size,
                    last_modified=mtime_to_datetime(st),
                )
            )

    logger.debug("Listed %d objects under %s (prefix=%r)", len(objects), bucket_dir, prefix)
    return objects
