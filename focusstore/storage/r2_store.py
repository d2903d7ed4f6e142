"""
R2 Object Store
===============

Async client for one Cloudflare R2 bucket (or any S3-compatible endpoint)
over signed HTTP requests.

Design Principles:
------------------
1. **Result Monad**: Every operation returns Ok/Err, never raises for
   remote failures
2. **Stateless Requests**: Each call signs and sends its own request; the
   only shared state is the read-only config and the HTTP connection pool
3. **No Hidden Retries**: A failed call surfaces immediately; retry policy
   belongs to the caller
4. **Bounded Fan-out**: delete_many keeps at most `max_concurrency`
   requests in flight

Operations:
-----------
| Operation   | Request                       | Notes                         |
|-------------|-------------------------------|-------------------------------|
| get         | GET    /{bucket}/{key}        | 404 -> ObjectNotFoundError    |
| put         | PUT    /{bucket}/{key}        | x-amz-meta-* custom metadata  |
| delete      | DELETE /{bucket}/{key}        | 404 counts as success         |
| head        | HEAD   /{bucket}/{key}        | metadata only                 |
| list        | GET    /{bucket}?list-type=2  | one page                      |
| list_all    | repeated list                 | pages fetched sequentially    |
| copy        | get + head + put              | client-side copy              |

Cancellation:
-------------
Operations can be cancelled or given a deadline with asyncio.wait_for /
asyncio.timeout. The transport timeout comes from StoreSettings.

Example:
    >>> config = R2Config.from_url("r2://AK:SK@account/assets").unwrap()
    >>> async with R2ObjectStore(config) as store:
    ...     result = await store.put("a/b.txt", "hi", PutOptions(content_type="text/plain"))
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import time
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from focusstore.core import constants as C
from focusstore.core.errors import (
    BatchOperationError,
    ConfigurationError,
    DecodeError,
    FocusStoreError,
    ObjectNotFoundError,
    ProtocolError,
)
from focusstore.core.types import Err, Ok, Result, utc_now
from focusstore.observability.logging import StructuredLogger
from focusstore.storage.config import R2Config, StoreSettings, load_r2_config
from focusstore.storage.listing import parse_list_result, strip_etag
from focusstore.storage.models import (
    HttpMetadata,
    ListOptions,
    ListResult,
    PutOptions,
    R2Object,
)
from focusstore.storage.signing import (
    Body,
    canonical_query_string,
    encode_key,
    sign_request,
)

Clock = Callable[[], datetime]


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

@dataclass(slots=True)
class R2Metrics:
    """
    Per-store operation counters.

    Mutated only from the event loop thread running the store.
    """
    put_count: int = 0
    get_count: int = 0
    head_count: int = 0
    delete_count: int = 0
    list_count: int = 0

    bytes_uploaded: int = 0
    bytes_downloaded: int = 0

    transport_errors: int = 0
    status_errors: int = 0

    def record_upload(self, size_bytes: int) -> None:
        self.put_count += 1
        self.bytes_uploaded += size_bytes

    def record_download(self, size_bytes: int) -> None:
        self.get_count += 1
        self.bytes_downloaded += size_bytes


# =============================================================================
# R2 OBJECT STORE
# =============================================================================

class R2ObjectStore:
    """
    Object storage primitives against one configured bucket.

    Safe for concurrent use by multiple tasks: no per-call state is kept
    on the instance.

    Args:
        config: Connection descriptor.
        settings: Client tuning; defaults to StoreSettings().
        client: Optional shared httpx.AsyncClient. When given, the store
            does not close it.
        clock: Source of "now" for signing and put descriptors.
    """

    __slots__ = (
        "_config",
        "_settings",
        "_client",
        "_owns_client",
        "_base_url",
        "_clock",
        "_metrics",
        "_log",
    )

    def __init__(
        self,
        config: R2Config,
        settings: Optional[StoreSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._config = config
        self._settings = settings or StoreSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        origin = (self._settings.endpoint_url or config.endpoint).rstrip("/")
        self._base_url = f"{origin}/{config.bucket}"
        self._clock = clock
        self._metrics = R2Metrics()
        self._log = StructuredLogger("focusstore.storage.r2").with_extra(
            bucket=config.bucket,
        )

    @property
    def config(self) -> R2Config:
        return self._config

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def metrics(self) -> R2Metrics:
        return self._metrics

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The transport, shared with helpers such as AssetService."""
        return self._client

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """
        Close the HTTP client if this store created it.

        Safe to call multiple times.
        """
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> R2ObjectStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # URLS
    # -------------------------------------------------------------------------

    def get_public_url(self, key: str) -> Optional[str]:
        """Public URL for a key, or None if no public prefix is configured."""
        if not self._config.public_url:
            return None
        return f"{self._config.public_url.rstrip('/')}/{key}"

    def object_url(self, key: str) -> str:
        """Signed-request URL for a key."""
        return f"{self._base_url}/{encode_key(key)}"

    # -------------------------------------------------------------------------
    # TRANSPORT
    # -------------------------------------------------------------------------

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> Result[httpx.Response, ProtocolError]:
        """Sign and send one request. Only transport failures become Err here."""
        signed = sign_request(
            method,
            url,
            headers or {},
            body,
            self._config.access_key_id,
            self._config.secret_access_key,
            self._settings.region,
            now=self._clock(),
        )

        start_ns = time.perf_counter_ns()
        try:
            response = await self._client.request(
                method,
                signed.url,
                headers=signed.headers,
                content=body or None,
            )
        except httpx.HTTPError as e:
            self._metrics.transport_errors += 1
            self._log.warning(
                "R2 request failed",
                operation=operation,
                method=method,
                error=repr(e),
            )
            return Err(ProtocolError.transport(operation, e))

        self._log.debug(
            "R2 request",
            operation=operation,
            method=method,
            status=response.status_code,
            elapsed_ms=(time.perf_counter_ns() - start_ns) / C.NS_PER_MS,
        )
        return Ok(response)

    def _status_error(self, operation: str, response: httpx.Response) -> ProtocolError:
        self._metrics.status_errors += 1
        body = "" if response.request.method == "HEAD" else response.text
        error = ProtocolError.http_status(operation, response.status_code, body)
        self._log.warning(
            "R2 request rejected",
            operation=operation,
            status=response.status_code,
        )
        return error

    def _not_found(self, key: str) -> ObjectNotFoundError:
        return ObjectNotFoundError.for_key(self._config.bucket, key)

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Result[bytes, FocusStoreError]:
        """
        Download an object.

        Returns:
            Ok(bytes) on success.
            Err(ObjectNotFoundError) if the key does not exist.
            Err(ProtocolError) for any other failure.
        """
        sent = await self._send("get", "GET", self.object_url(key))
        if sent.is_err():
            return sent
        response = sent.unwrap()

        if response.status_code == 404:
            return Err(self._not_found(key))
        if not response.is_success:
            return Err(self._status_error("get", response))

        data = response.content
        self._metrics.record_download(len(data))
        return Ok(data)

    async def get_text(self, key: str, encoding: str = "utf-8") -> Result[str, FocusStoreError]:
        """Download an object and decode it as text."""
        result = await self.get(key)
        if result.is_err():
            return result
        try:
            return Ok(result.unwrap().decode(encoding))
        except UnicodeDecodeError as e:
            return Err(DecodeError.text(key, e))

    async def get_json(self, key: str) -> Result[Any, FocusStoreError]:
        """Download an object and parse it as JSON."""
        result = await self.get_text(key)
        if result.is_err():
            return result
        try:
            return Ok(json.loads(result.unwrap()))
        except json.JSONDecodeError as e:
            return Err(DecodeError.json(key, e))

    async def head(self, key: str) -> Result[R2Object, FocusStoreError]:
        """
        Fetch object metadata without the body.

        Custom metadata is read back from x-amz-meta-* response headers.
        """
        sent = await self._send("head", "HEAD", self.object_url(key))
        if sent.is_err():
            return sent
        response = sent.unwrap()

        if response.status_code == 404:
            return Err(self._not_found(key))
        if not response.is_success:
            return Err(self._status_error("head", response))

        self._metrics.head_count += 1
        headers = response.headers

        custom = {
            name[len(C.CUSTOM_METADATA_PREFIX):]: value
            for name, value in headers.items()
            if name.startswith(C.CUSTOM_METADATA_PREFIX)
        }

        return Ok(R2Object(
            key=key,
            size=_parse_int(headers.get("content-length")),
            etag=strip_etag(headers.get("etag")),
            last_modified=_parse_http_date(headers.get("last-modified")) or self._clock(),
            url=self.get_public_url(key),
            http_metadata=HttpMetadata(
                content_type=headers.get("content-type"),
                content_disposition=headers.get("content-disposition"),
                content_encoding=headers.get("content-encoding"),
                content_language=headers.get("content-language"),
                cache_control=headers.get("cache-control"),
            ),
            custom_metadata=custom or None,
        ))

    async def exists(self, key: str) -> Result[bool, FocusStoreError]:
        """
        Check whether a key exists.

        Ok(False) only when head reports not-found; any other error
        propagates unchanged.
        """
        result = await self.head(key)
        if result.is_ok():
            return Ok(True)
        if isinstance(result.error, ObjectNotFoundError):
            return Ok(False)
        return result

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    async def put(
        self,
        key: str,
        body: Body,
        options: Optional[PutOptions] = None,
    ) -> Result[R2Object, FocusStoreError]:
        """
        Upload an object in a single request.

        Args:
            key: Object key.
            body: Text (UTF-8 encoded) or binary payload.
            options: Content headers and custom metadata.

        Returns:
            Ok(R2Object) with size of the payload and ETag from the response.
        """
        opts = options or PutOptions()
        data = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        content_type = opts.content_type or C.DEFAULT_CONTENT_TYPE

        headers: Dict[str, str] = {"content-type": content_type}
        if opts.cache_control:
            headers["cache-control"] = opts.cache_control
        if opts.content_disposition:
            headers["content-disposition"] = opts.content_disposition
        for name, value in (opts.custom_metadata or {}).items():
            headers[f"{C.CUSTOM_METADATA_PREFIX}{name}"] = value

        sent = await self._send("put", "PUT", self.object_url(key), data, headers)
        if sent.is_err():
            return sent
        response = sent.unwrap()

        if not response.is_success:
            return Err(self._status_error("put", response))

        self._metrics.record_upload(len(data))

        return Ok(R2Object(
            key=key,
            size=len(data),
            etag=strip_etag(response.headers.get("etag")),
            last_modified=self._clock(),
            url=self.get_public_url(key),
            http_metadata=HttpMetadata(
                content_type=content_type,
                content_disposition=opts.content_disposition,
                cache_control=opts.cache_control,
            ),
            custom_metadata=dict(opts.custom_metadata) if opts.custom_metadata else None,
        ))

    async def put_json(
        self,
        key: str,
        value: Any,
        options: Optional[PutOptions] = None,
    ) -> Result[R2Object, FocusStoreError]:
        """Serialize a value to JSON and upload it (application/json by default)."""
        opts = options or PutOptions()
        if not opts.content_type:
            opts = dataclasses.replace(opts, content_type=C.JSON_CONTENT_TYPE)
        return await self.put(key, json.dumps(value), opts)

    async def copy(self, source_key: str, dest_key: str) -> Result[R2Object, FocusStoreError]:
        """
        Copy an object by downloading and re-uploading it.

        Content type and custom metadata from the source are kept.
        """
        data = await self.get(source_key)
        if data.is_err():
            return data

        source = await self.head(source_key)
        if source.is_err():
            return source
        meta = source.unwrap()

        return await self.put(dest_key, data.unwrap(), PutOptions(
            content_type=meta.http_metadata.content_type if meta.http_metadata else None,
            custom_metadata=meta.custom_metadata,
        ))

    # -------------------------------------------------------------------------
    # DELETES
    # -------------------------------------------------------------------------

    async def delete(self, key: str) -> Result[None, FocusStoreError]:
        """Delete an object. A missing key counts as success."""
        sent = await self._send("delete", "DELETE", self.object_url(key))
        if sent.is_err():
            return sent
        response = sent.unwrap()

        if not response.is_success and response.status_code != 404:
            return Err(self._status_error("delete", response))

        self._metrics.delete_count += 1
        return Ok(None)

    async def delete_many(self, keys: Sequence[str]) -> Result[None, FocusStoreError]:
        """
        Delete many keys with bounded concurrency.

        No ordering among deletes. Deletes that succeeded before a failure
        are not rolled back.

        Returns:
            Ok(None) when every delete succeeded.
            Err(BatchOperationError) listing every failed key.
        """
        if not keys:
            return Ok(None)

        semaphore = asyncio.Semaphore(self._settings.max_concurrency)

        async def delete_one(key: str) -> Result[None, FocusStoreError]:
            async with semaphore:
                return await self.delete(key)

        results = await asyncio.gather(*(delete_one(key) for key in keys))

        failures: List[Tuple[str, FocusStoreError]] = [
            (key, result.error)
            for key, result in zip(keys, results)
            if result.is_err()
        ]
        if failures:
            return Err(BatchOperationError.from_failures(
                "delete_many", failures, completed=len(keys) - len(failures),
            ))
        return Ok(None)

    # -------------------------------------------------------------------------
    # LIST OPERATIONS
    # -------------------------------------------------------------------------

    async def list(self, options: Optional[ListOptions] = None) -> Result[ListResult, FocusStoreError]:
        """
        Fetch one page of keys.

        Returns:
            Ok(ListResult); `cursor` is set when more pages remain.
        """
        opts = options or ListOptions()
        params: List[Tuple[str, str]] = [("list-type", "2")]
        if opts.prefix:
            params.append(("prefix", opts.prefix))
        if opts.delimiter:
            params.append(("delimiter", opts.delimiter))
        if opts.cursor:
            params.append(("continuation-token", opts.cursor))
        if opts.limit:
            params.append(("max-keys", str(opts.limit)))

        url = f"{self._base_url}?{canonical_query_string(params)}"
        sent = await self._send("list", "GET", url)
        if sent.is_err():
            return sent
        response = sent.unwrap()

        if not response.is_success:
            return Err(self._status_error("list", response))

        self._metrics.list_count += 1
        return parse_list_result(response.text, self.get_public_url)

    async def list_all(self, prefix: Optional[str] = None) -> Result[List[R2Object], FocusStoreError]:
        """
        List every object under a prefix, following continuation cursors.

        Pages are fetched one after another; objects keep page order.
        """
        objects: List[R2Object] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            result = await self.list(ListOptions(
                prefix=prefix,
                cursor=cursor,
                limit=self._settings.list_page_size,
            ))
            if result.is_err():
                return result
            page = result.unwrap()
            pages += 1
            objects.extend(page.objects)

            if not page.truncated:
                break
            if not page.cursor:
                self._log.warning(
                    "Truncated listing without continuation token",
                    prefix=prefix,
                    pages=pages,
                )
                break
            cursor = page.cursor

        self._log.debug("Listed objects", prefix=prefix, pages=pages, count=len(objects))
        return Ok(objects)


# =============================================================================
# HEADER PARSING
# =============================================================================

def _parse_int(value: Optional[str]) -> int:
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def _parse_http_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# FACTORIES
# =============================================================================

def create_store(
    config: R2Config,
    settings: Optional[StoreSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> R2ObjectStore:
    """
    Create an R2ObjectStore owned by the caller.

    There is no process-wide cache: two calls return two stores. Pass a
    shared `client` to reuse one connection pool across stores.
    """
    return R2ObjectStore(config, settings=settings, client=client)


def create_store_from_env(
    settings: Optional[StoreSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Result[R2ObjectStore, ConfigurationError]:
    """Create a store from R2_URL, R2_* variables or the global config file."""
    return load_r2_config().map(
        lambda config: create_store(config, settings=settings, client=client)
    )
