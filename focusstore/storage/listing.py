"""
ListObjectsV2 Response Parsing
==============================

Turns the XML body of a `GET /{bucket}?list-type=2` response into a
ListResult.

Parsing is structural: only direct children of the root element are
inspected, so a `<Prefix>` inside `<CommonPrefixes>` can never be
confused with the top-level `<Prefix>` echo or with a `<Contents><Key>`
that shares the same text.

    <ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
      <Prefix>photos/</Prefix>
      <IsTruncated>true</IsTruncated>
      <NextContinuationToken>1ueGcxLPRx1Tr/XYExHnhbYLgveDs2J/wm36Hy4vbOwM=</NextContinuationToken>
      <Contents>
        <Key>photos/2024/a.jpg</Key>
        <LastModified>2024-01-15T12:00:00.000Z</LastModified>
        <ETag>"9b2cf535f27731c974343645a3985328"</ETag>
        <Size>434234</Size>
      </Contents>
      <CommonPrefixes><Prefix>photos/2023/</Prefix></CommonPrefixes>
    </ListBucketResult>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Callable, List, Optional

from focusstore.core.errors import ProtocolError
from focusstore.core.types import Err, Ok, Result, utc_now
from focusstore.storage.models import ListResult, R2Object

_OPERATION = "list"


def _local_name(tag: str) -> str:
    """Strip the `{namespace}` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name:
            return child.text or ""
    return None


def strip_etag(etag: Optional[str]) -> str:
    """Remove the quote characters S3 wraps around ETags."""
    return (etag or "").replace('"', "").replace("&quot;", "")


def parse_iso_timestamp(value: str) -> datetime:
    """
    Parse an S3 ISO-8601 timestamp such as 2024-01-15T12:00:00.000Z.

    Raises:
        ValueError: If the value is not ISO-8601.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_contents(
    element: ET.Element,
    public_url_for: Callable[[str], Optional[str]],
) -> Optional[R2Object]:
    key = _child_text(element, "Key")
    if not key:
        return None

    size_text = _child_text(element, "Size")
    modified_text = _child_text(element, "LastModified")

    return R2Object(
        key=key,
        size=int(size_text) if size_text else 0,
        etag=strip_etag(_child_text(element, "ETag")),
        last_modified=parse_iso_timestamp(modified_text) if modified_text else utc_now(),
        url=public_url_for(key),
    )


def parse_list_result(
    xml_text: str,
    public_url_for: Optional[Callable[[str], Optional[str]]] = None,
) -> Result[ListResult, ProtocolError]:
    """
    Parse a ListObjectsV2 XML document.

    Args:
        xml_text: Response body.
        public_url_for: Maps a key to its public URL (or None).

    Returns:
        Ok[ListResult] on success.
        Err[ProtocolError] if the body is not well-formed or a
        Size/LastModified value cannot be parsed.
    """
    url_for = public_url_for or (lambda _key: None)

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        return Err(ProtocolError.malformed(_OPERATION, f"invalid XML: {e}", cause=e))

    objects: List[R2Object] = []
    prefixes: List[str] = []
    truncated = False
    cursor: Optional[str] = None

    try:
        for child in root:
            name = _local_name(child.tag)
            if name == "Contents":
                obj = _parse_contents(child, url_for)
                if obj is not None:
                    objects.append(obj)
            elif name == "CommonPrefixes":
                for inner in child:
                    if _local_name(inner.tag) == "Prefix" and inner.text:
                        prefixes.append(inner.text)
            elif name == "IsTruncated":
                truncated = (child.text or "").strip().lower() == "true"
            elif name == "NextContinuationToken":
                cursor = child.text or None
    except ValueError as e:
        return Err(ProtocolError.malformed(_OPERATION, str(e), cause=e))

    return Ok(ListResult(
        objects=objects,
        truncated=truncated,
        cursor=cursor if truncated else None,
        delimited_prefixes=prefixes,
    ))
