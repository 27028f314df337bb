"""S3 XML response rendering helpers for DirStore.

Listings are produced as generators of text fragments so a response can be
streamed while the envelope is still being encoded. ``render_*`` joins the
fragments for callers that want the whole document.
"""

import logging
import re
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from xml.sax.saxutils import escape as _sax_escape

from fastapi.responses import StreamingResponse

from dirstore.storage.models import Bucket, ObjectInfo

logger = logging.getLogger(__name__)

S3_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# Characters XML 1.0 does not allow in a document, even escaped.
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def _escape_xml(value: str) -> str:
    """Escape special XML characters in a string value.

    Characters that cannot appear in XML 1.0 are replaced with U+FFFD.

    Args:
        value: The raw string to escape.

    Returns:
        The XML-safe escaped string.
    """
    return _sax_escape(_INVALID_XML_CHARS.sub("\ufffd", str(value)))


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as S3 does in listings: ISO 8601 UTC, milliseconds.

    Args:
        dt: An aware or naive (assumed UTC) datetime.

    Returns:
        A string such as ``2024-01-01T00:00:00.000Z``.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def iter_list_buckets(buckets: Iterable[Bucket]) -> Iterator[str]:
    """Yield an S3 ListAllMyBuckets XML document fragment by fragment.

    Args:
        buckets: The buckets to include.

    Yields:
        Newline-terminated XML fragments.
    """
    yield XML_DECLARATION + "\n"
    yield f'<ListAllMyBucketsResult xmlns="{S3_NAMESPACE}">\n'
    yield "<Buckets>\n"
    for b in buckets:
        yield (
            "<Bucket>"
            f"<Name>{_escape_xml(b.name)}</Name>"
            f"<CreationDate>{format_timestamp(b.creation_date)}</CreationDate>"
            "</Bucket>\n"
        )
    yield "</Buckets>\n"
    yield "</ListAllMyBucketsResult>\n"


def iter_list_objects(name: str, objects: Iterable[ObjectInfo]) -> Iterator[str]:
    """Yield an S3 ListBucketResult XML document fragment by fragment.

    ``ETag`` is emitted only for objects that carry one.

    Args:
        name: Bucket name.
        objects: Object metadata for every listed key.

    Yields:
        Newline-terminated XML fragments.
    """
    yield XML_DECLARATION + "\n"
    yield f'<ListBucketResult xmlns="{S3_NAMESPACE}">\n'
    yield f"<Name>{_escape_xml(name)}</Name>\n"
    for obj in objects:
        parts = [
            "<Contents>",
            f"<Key>{_escape_xml(obj.key)}</Key>",
            f"<Size>{obj.size}</Size>",
            f"<LastModified>{format_timestamp(obj.last_modified)}</LastModified>",
        ]
        if obj.etag:
            parts.append(f"<ETag>{_escape_xml(obj.etag)}</ETag>")
        parts.append("</Contents>\n")
        yield "".join(parts)
    yield "</ListBucketResult>\n"


def render_list_buckets(buckets: Iterable[Bucket]) -> str:
    """Render a complete ListAllMyBucketsResult document."""
    return "".join(iter_list_buckets(buckets))


def render_list_objects(name: str, objects: Iterable[ObjectInfo]) -> str:
    """Render a complete ListBucketResult document."""
    return "".join(iter_list_objects(name, objects))


def _guarded(fragments: Iterable[str]) -> Iterator[bytes]:
    """Encode fragments, logging a failure that happens mid-stream.

    The status line has already been sent by the time a fragment fails, so
    the error can only be logged before the connection is aborted.
    """
    try:
        for fragment in fragments:
            yield fragment.encode("utf-8")
    except Exception:
        logger.exception("XML encoding failed after the response was started")
        raise


def xml_stream_response(fragments: Iterable[str], status: int = 200) -> StreamingResponse:
    """Stream XML fragments as a response with the XML content type.

    Args:
        fragments: XML text fragments, e.g. from ``iter_list_buckets``.
        status: HTTP status code.

    Returns:
        A StreamingResponse with media_type application/xml.
    """
    return StreamingResponse(
        content=_guarded(fragments),
        status_code=status,
        media_type="application/xml",
    )
