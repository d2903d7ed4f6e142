"""
Asset Storage Helpers
=====================

Higher-level upload helpers on top of R2ObjectStore:

- content type inference from the file extension
- unique and content-hashed file names for cache busting
- long-lived cache headers for immutable assets
- parallel uploads and retention cleanup by prefix
"""

from __future__ import annotations

import asyncio
import dataclasses
import hashlib
import secrets
import string
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from focusstore.core import constants as C
from focusstore.core.errors import (
    BatchOperationError,
    FocusStoreError,
    LocalFileError,
    ProtocolError,
)
from focusstore.core.types import Err, Ok, Result
from focusstore.observability.logging import StructuredLogger
from focusstore.storage.models import PutOptions, R2Object
from focusstore.storage.r2_store import R2ObjectStore
from focusstore.storage.signing import Body

_log = StructuredLogger("focusstore.storage.assets")

CONTENT_TYPES: Dict[str, str] = {
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "avif": "image/avif",
    # Documents
    "pdf": "application/pdf",
    "json": "application/json",
    "xml": "application/xml",
    # Text
    "txt": "text/plain",
    "html": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "ts": "text/typescript",
    "md": "text/markdown",
    # Fonts
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    # Audio/Video
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "mp4": "video/mp4",
    "webm": "video/webm",
    # Archives
    "zip": "application/zip",
    "gz": "application/gzip",
    "tar": "application/x-tar",
}

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


# =============================================================================
# NAMING HELPERS
# =============================================================================

def _split_extension(filename: str) -> Tuple[str, str]:
    """
    ("img/photo.final", "png") for "img/photo.final.png".

    Only the last path segment is inspected: "img.v2/README" has no
    extension.
    """
    directory, slash, name = filename.rpartition("/")
    if "." not in name:
        return filename, ""
    stem, _, ext = name.rpartition(".")
    return f"{directory}{slash}{stem}", ext


def infer_content_type(filename: str) -> str:
    """Content type for a file name's extension, or application/octet-stream."""
    _, ext = _split_extension(filename)
    return CONTENT_TYPES.get(ext.lower(), C.DEFAULT_CONTENT_TYPE)


def unique_filename(filename: str) -> str:
    """
    Append a millisecond timestamp and 6 random characters.

    >>> unique_filename("logo.png")  # doctest: +SKIP
    'logo-1718031234567-k3j9xq.png'
    """
    stamp = time.time_ns() // C.NS_PER_MS
    suffix = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    stem, ext = _split_extension(filename)
    name = f"{stem}-{stamp}-{suffix}"
    return f"{name}.{ext}" if ext else name


def content_hash(data: bytes) -> str:
    """First 8 bytes of SHA-256, hex encoded."""
    return hashlib.sha256(data).digest()[:8].hex()


def add_hash_to_filename(filename: str, digest: str) -> str:
    stem, ext = _split_extension(filename)
    return f"{stem}-{digest}.{ext}" if ext else f"{stem}-{digest}"


# =============================================================================
# OPTIONS AND REPORTS
# =============================================================================

@dataclass(frozen=True, slots=True)
class AssetOptions:
    """
    Upload options for assets.

    Attributes:
        unique_name: Rewrite the key with a timestamp and random suffix.
        add_hash: Insert a content hash before the extension.
        content_type: Overrides extension-based inference.
        content_disposition: Sent as content-disposition.
        cache_control: Defaults to a one-year immutable policy.
        custom_metadata: Sent as x-amz-meta-* headers.
    """
    unique_name: bool = False
    add_hash: bool = False
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None
    custom_metadata: Optional[Dict[str, str]] = None


@dataclass(frozen=True, slots=True)
class AssetUpload:
    """One item for upload_many."""
    key: str
    data: Body
    options: Optional[AssetOptions] = None


@dataclass(frozen=True, slots=True)
class CleanupReport:
    """Keys removed and kept by cleanup, newest first."""
    deleted: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)


# =============================================================================
# ASSET SERVICE
# =============================================================================

class AssetService:
    """
    Asset uploads on top of an R2ObjectStore.

    Example:
        >>> assets = AssetService(store)
        >>> result = await assets.upload("img/logo.png", png_bytes, AssetOptions(add_hash=True))
        >>> result.unwrap().key
        'img/logo-3f2a9c1b7d4e5f60.png'
    """

    __slots__ = ("_store",)

    def __init__(self, store: R2ObjectStore) -> None:
        self._store = store

    @property
    def store(self) -> R2ObjectStore:
        return self._store

    async def upload(
        self,
        key: str,
        data: Body,
        options: Optional[AssetOptions] = None,
    ) -> Result[R2Object, FocusStoreError]:
        """Upload with content type detection and optional key rewriting."""
        opts = options or AssetOptions()
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)

        final_key = key
        if opts.unique_name:
            final_key = unique_filename(final_key)
        if opts.add_hash:
            final_key = add_hash_to_filename(final_key, content_hash(payload))

        return await self._store.put(final_key, payload, PutOptions(
            content_type=opts.content_type or infer_content_type(final_key),
            content_disposition=opts.content_disposition,
            cache_control=opts.cache_control or C.IMMUTABLE_CACHE_CONTROL,
            custom_metadata=opts.custom_metadata,
        ))

    async def upload_from_url(
        self,
        key: str,
        url: str,
        options: Optional[AssetOptions] = None,
    ) -> Result[R2Object, FocusStoreError]:
        """
        Download a URL and store it under `key`.

        Content type comes from options, then the response, then the key.
        """
        opts = options or AssetOptions()
        try:
            response = await self._store.http_client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            return Err(ProtocolError.transport("fetch", e))

        if not response.is_success:
            return Err(ProtocolError.http_status("fetch", response.status_code, f"GET {url}"))

        content_type = (
            opts.content_type
            or response.headers.get("content-type")
            or infer_content_type(key)
        )
        return await self.upload(key, response.content, dataclasses.replace(
            opts, content_type=content_type,
        ))

    async def upload_many(
        self,
        assets: Sequence[AssetUpload],
        concurrency: int = C.UPLOAD_CONCURRENCY,
    ) -> Result[List[R2Object], FocusStoreError]:
        """
        Upload several assets with bounded concurrency.

        Returns:
            Ok(list) in input order, or Err(BatchOperationError) listing
            every failed key. Successful uploads are not rolled back.
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def upload_one(asset: AssetUpload) -> Result[R2Object, FocusStoreError]:
            async with semaphore:
                return await self.upload(asset.key, asset.data, asset.options)

        results = await asyncio.gather(*(upload_one(asset) for asset in assets))

        failures = [
            (asset.key, result.error)
            for asset, result in zip(assets, results)
            if result.is_err()
        ]
        if failures:
            return Err(BatchOperationError.from_failures(
                "upload_many", failures, completed=len(assets) - len(failures),
            ))
        return Ok([result.unwrap() for result in results])

    async def cleanup(self, prefix: str, keep_count: int) -> Result[CleanupReport, FocusStoreError]:
        """Delete all but the `keep_count` most recently modified objects under a prefix."""
        if keep_count < 0:
            raise ValueError(f"keep_count must be >= 0, got {keep_count}")

        listed = await self._store.list_all(prefix)
        if listed.is_err():
            return listed

        newest_first = sorted(listed.unwrap(), key=lambda obj: obj.last_modified, reverse=True)
        kept = [obj.key for obj in newest_first[:keep_count]]
        doomed = [obj.key for obj in newest_first[keep_count:]]

        if doomed:
            deleted = await self._store.delete_many(doomed)
            if deleted.is_err():
                return deleted

        _log.info("Cleaned up assets", prefix=prefix, deleted=len(doomed), kept=len(kept))
        return Ok(CleanupReport(deleted=doomed, kept=kept))


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

async def upload_image(
    store: R2ObjectStore,
    key: str,
    data: Union[bytes, bytearray, memoryview],
    options: Optional[AssetOptions] = None,
) -> Result[R2Object, FocusStoreError]:
    """Upload an image; content type always comes from the extension."""
    opts = dataclasses.replace(options or AssetOptions(), content_type=None)
    return await AssetService(store).upload(key, data, opts)


async def upload_json(
    store: R2ObjectStore,
    key: str,
    value: Any,
    options: Optional[AssetOptions] = None,
) -> Result[R2Object, FocusStoreError]:
    """Upload a JSON document with a one-hour cache policy by default."""
    opts = options or AssetOptions()
    return await store.put_json(key, value, PutOptions(
        content_type=opts.content_type,
        content_disposition=opts.content_disposition,
        cache_control=opts.cache_control or C.JSON_CACHE_CONTROL,
        custom_metadata=opts.custom_metadata,
    ))


async def upload_file(
    store: R2ObjectStore,
    key: str,
    path: Union[str, Path],
    options: Optional[AssetOptions] = None,
) -> Result[R2Object, FocusStoreError]:
    """Read a local file and upload it as an asset."""
    try:
        data = await asyncio.to_thread(Path(path).read_bytes)
    except OSError as e:
        return Err(LocalFileError.unreadable(str(path), e))
    return await AssetService(store).upload(key, data, options)
