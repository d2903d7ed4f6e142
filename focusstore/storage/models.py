"""
Object Store Data Model
=======================

Value types produced and consumed by R2ObjectStore.

Every descriptor is a snapshot of the remote object at the moment of
the call. It holds no handle to the remote object, which is only ever
addressed by key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class HttpMetadata:
    """Standard HTTP headers stored alongside an object."""
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    cache_control: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        """Non-empty fields only."""
        return {
            name: value
            for name, value in (
                ("content_type", self.content_type),
                ("content_disposition", self.content_disposition),
                ("content_encoding", self.content_encoding),
                ("content_language", self.content_language),
                ("cache_control", self.cache_control),
            )
            if value is not None
        }


@dataclass(frozen=True, slots=True)
class R2Object:
    """
    Immutable descriptor of a stored object.

    Attributes:
        key: Object key (path in bucket).
        size: Object size in bytes (>= 0).
        etag: Entity tag with surrounding quotes removed.
        last_modified: Last modification time (UTC).
        url: Public URL when a public prefix is configured.
        http_metadata: Content headers, when known.
        custom_metadata: x-amz-meta-* values, when known.
    """
    key: str
    size: int
    etag: str
    last_modified: datetime
    url: Optional[str] = None
    http_metadata: Optional[HttpMetadata] = None
    custom_metadata: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "key": self.key,
            "size": self.size,
            "etag": self.etag,
            "last_modified": self.last_modified.isoformat(),
        }
        if self.url is not None:
            data["url"] = self.url
        if self.http_metadata is not None:
            data["http_metadata"] = self.http_metadata.to_dict()
        if self.custom_metadata is not None:
            data["custom_metadata"] = dict(self.custom_metadata)
        return data


@dataclass(frozen=True, slots=True)
class ListResult:
    """
    One page of a bucket listing.

    `cursor` is only set when `truncated` is True.
    `delimited_prefixes` holds the CommonPrefixes returned when a
    delimiter was supplied.
    """
    objects: List[R2Object] = field(default_factory=list)
    truncated: bool = False
    cursor: Optional[str] = None
    delimited_prefixes: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PutOptions:
    """
    Options for put / put_json.

    Attributes:
        content_type: Defaults to application/octet-stream on put.
        content_disposition: Sent as content-disposition.
        cache_control: Sent as cache-control.
        custom_metadata: Sent as x-amz-meta-{name} headers.
    """
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None
    custom_metadata: Optional[Dict[str, str]] = None


@dataclass(frozen=True, slots=True)
class ListOptions:
    """Filters and paging for a single list call."""
    prefix: Optional[str] = None
    delimiter: Optional[str] = None
    cursor: Optional[str] = None
    limit: Optional[int] = None
