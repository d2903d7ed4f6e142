"""
Shared fixtures: an in-memory R2 bucket behind httpx.MockTransport.

The fake re-derives every request signature from what actually went over
the wire, so a mismatch between what was signed and what httpx sent shows
up as a 403.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote
from xml.sax.saxutils import escape

import httpx
import pytest

from focusstore.storage.config import R2Config
from focusstore.storage.r2_store import R2ObjectStore
from focusstore.storage.signing import build_canonical_request, derive_signing_key, sha256_hex

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

ACCOUNT_ID = "acct123"
ACCESS_KEY_ID = "AKTEST"
SECRET_ACCESS_KEY = "sk/with+special=chars"
BUCKET = "assets"


@dataclass
class StoredBlob:
    data: bytes
    headers: Dict[str, str]
    last_modified: datetime


@dataclass
class FakeR2:
    """
    Minimal R2 bucket: GET/PUT/HEAD/DELETE on keys, ListObjectsV2 on the bucket.

    Attributes:
        objects: Stored blobs by key.
        requests: Every request received, in order.
        fail: Optional override; return a Response to short-circuit a request.
        delay: Seconds each request sleeps (to observe concurrency).
    """
    objects: Dict[str, StoredBlob] = field(default_factory=dict)
    requests: List[httpx.Request] = field(default_factory=list)
    fail: Optional[Callable[[httpx.Request], Optional[httpx.Response]]] = None
    delay: float = 0.0
    in_flight: int = 0
    max_in_flight: int = 0

    def seed(self, key: str, data: bytes, last_modified: datetime = FIXED_NOW, **headers: str) -> None:
        self.objects[key] = StoredBlob(data, dict(headers), last_modified)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if not verify_signature(request):
                return httpx.Response(403, text="SignatureDoesNotMatch")
            if self.fail is not None:
                response = self.fail(request)
                if response is not None:
                    return response
            return self._route(request)
        finally:
            self.in_flight -= 1

    def _route(self, request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.split(b"?", 1)[0].decode("ascii")
        _, bucket, *rest = path.split("/", 2)
        if bucket != BUCKET:
            return httpx.Response(404, text="NoSuchBucket")
        if not rest:
            return self._list(request)

        key = unquote(rest[0])
        blob = self.objects.get(key)

        if request.method == "PUT":
            headers = {
                name: value
                for name, value in request.headers.items()
                if name.startswith("x-amz-meta-")
                or name in ("content-type", "cache-control", "content-disposition")
            }
            self.objects[key] = StoredBlob(request.content, headers, FIXED_NOW)
            etag = hashlib.md5(request.content).hexdigest()
            return httpx.Response(200, headers={"etag": f'"{etag}"'})

        if request.method == "DELETE":
            if blob is None:
                return httpx.Response(404, text="NoSuchKey")
            del self.objects[key]
            return httpx.Response(204)

        if blob is None:
            return httpx.Response(404, text="NoSuchKey")

        headers = {
            **blob.headers,
            "etag": f'"{hashlib.md5(blob.data).hexdigest()}"',
            "last-modified": format_datetime(blob.last_modified, usegmt=True),
        }
        if request.method == "HEAD":
            headers["content-length"] = str(len(blob.data))
            return httpx.Response(200, headers=headers)
        return httpx.Response(200, headers=headers, content=blob.data)

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        prefix = params.get("prefix", "")
        delimiter = params.get("delimiter")
        max_keys = int(params.get("max-keys", "1000"))
        start = params.get("continuation-token")

        keys = sorted(k for k in self.objects if k.startswith(prefix))
        if start:
            keys = [k for k in keys if k >= start]

        contents: List[str] = []
        common: List[str] = []
        for key in keys:
            if delimiter:
                rest = key[len(prefix):]
                if delimiter in rest:
                    folder = prefix + rest.split(delimiter, 1)[0] + delimiter
                    if folder not in common:
                        common.append(folder)
                    continue
            contents.append(key)

        page, remaining = contents[:max_keys], contents[max_keys:]
        body = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">',
            f"<Name>{BUCKET}</Name><Prefix>{escape(prefix)}</Prefix>",
            f"<KeyCount>{len(page)}</KeyCount><MaxKeys>{max_keys}</MaxKeys>",
            f"<IsTruncated>{'true' if remaining else 'false'}</IsTruncated>",
        ]
        if remaining:
            body.append(f"<NextContinuationToken>{escape(remaining[0])}</NextContinuationToken>")
        for key in page:
            blob = self.objects[key]
            body.append(
                "<Contents>"
                f"<Key>{escape(key)}</Key>"
                f"<LastModified>{blob.last_modified.strftime('%Y-%m-%dT%H:%M:%S.000Z')}</LastModified>"
                f"<ETag>&quot;{hashlib.md5(blob.data).hexdigest()}&quot;</ETag>"
                f"<Size>{len(blob.data)}</Size>"
                "<StorageClass>STANDARD</StorageClass>"
                "</Contents>"
            )
        for folder in common:
            body.append(f"<CommonPrefixes><Prefix>{escape(folder)}</Prefix></CommonPrefixes>")
        body.append("</ListBucketResult>")
        return httpx.Response(200, text="".join(body), headers={"content-type": "application/xml"})


def verify_signature(request: httpx.Request, secret: str = SECRET_ACCESS_KEY) -> bool:
    """Recompute the SigV4 signature from the request as received."""
    auth = request.headers.get("authorization", "")
    if not auth.startswith("AWS4-HMAC-SHA256 "):
        return False
    parts = dict(
        item.strip().split("=", 1)
        for item in auth[len("AWS4-HMAC-SHA256 "):].split(",")
    )
    _, date_stamp, region, service, _ = parts["Credential"].split("/")
    signed_names = parts["SignedHeaders"].split(";")

    payload_hash = sha256_hex(request.content)
    if request.headers.get("x-amz-content-sha256") != payload_hash:
        return False

    raw_path, _, raw_query = request.url.raw_path.decode("ascii").partition("?")
    headers = {name: request.headers[name] for name in signed_names}
    canonical, _ = build_canonical_request(
        request.method, raw_path, raw_query, headers, payload_hash,
    )
    amz_date = request.headers["x-amz-date"]
    string_to_sign = "\n".join([
        "AWS4-HMAC-SHA256",
        amz_date,
        f"{date_stamp}/{region}/{service}/aws4_request",
        sha256_hex(canonical),
    ])
    key = derive_signing_key(secret, date_stamp, region, service)
    expected = hmac.new(key, string_to_sign.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, parts["Signature"])


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def r2_config() -> R2Config:
    return R2Config(
        account_id=ACCOUNT_ID,
        access_key_id=ACCESS_KEY_ID,
        secret_access_key=SECRET_ACCESS_KEY,
        bucket=BUCKET,
        public_url="https://pub.example/",
    )


@pytest.fixture
def fake_r2() -> FakeR2:
    return FakeR2()


@pytest.fixture
def store(r2_config: R2Config, fake_r2: FakeR2) -> R2ObjectStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_r2))
    return R2ObjectStore(r2_config, client=client, clock=lambda: FIXED_NOW)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point the global config file at a temp dir and clear R2_* variables."""
    monkeypatch.setenv("FOCUSSTORE_CONFIG_DIR", str(tmp_path))
    for name in (
        "R2_URL", "R2_ACCOUNT_ID", "R2_ACCESS_KEY_ID",
        "R2_SECRET_ACCESS_KEY", "R2_BUCKET", "R2_PUBLIC_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path
