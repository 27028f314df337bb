"""Bucket-name and object-key checks for DirStore.

Names are mapped verbatim onto the filesystem, so the only rules enforced
here are the ones that keep a name inside its parent directory. Anything
else the filesystem accepts is a valid name.

Each function raises ``InvalidArgument`` on invalid input.
"""

from dirstore.errors import InvalidArgument

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_RESERVED_SEGMENTS = frozenset({"", ".", ".."})
_BUCKET_FORBIDDEN_CHARS = ("/", "\\", "\x00")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_bucket_name(name: str) -> None:
    """Reject bucket names that would not map to a single child of the root.

    Args:
        name: The candidate bucket name.

    Raises:
        InvalidArgument: If the name is empty, ``.``, ``..``, or contains a
            path separator or NUL.
    """
    if name in _RESERVED_SEGMENTS:
        raise InvalidArgument(f"invalid bucket name: {name!r}")

    for ch in _BUCKET_FORBIDDEN_CHARS:
        if ch in name:
            raise InvalidArgument(f"invalid bucket name: {name!r}")


def validate_object_key(key: str) -> None:
    """Reject keys that could escape or alias a path inside the bucket.

    ``a//b``, ``a/./b``, ``/a``, ``a/`` and ``a/../b`` all contain an empty,
    ``.`` or ``..`` segment and are refused.

    Args:
        key: The object key string.

    Raises:
        InvalidArgument: If any ``/``-separated segment is empty, ``.`` or
            ``..``, or the key contains NUL.
    """
    if "\x00" in key:
        raise InvalidArgument("invalid object key: contains NUL")

    for segment in key.split("/"):
        if segment in _RESERVED_SEGMENTS:
            raise InvalidArgument(f"invalid object key: {key!r}")
