"""
AWS Signature Version 4 Request Signing
=======================================

Computes the Authorization header for S3-compatible endpoints
(Cloudflare R2, MinIO, AWS S3) from a shared access key pair.

Algorithm:
----------
1. Hash the payload (SHA-256, hex)
2. Lowercase header names, add host / x-amz-date / x-amz-content-sha256
3. Canonical request:
       METHOD \\n PATH \\n QUERY \\n CANONICAL_HEADERS \\n SIGNED_HEADERS \\n PAYLOAD_HASH
4. Credential scope:  YYYYMMDD/region/s3/aws4_request
5. String to sign:    AWS4-HMAC-SHA256 \\n TIMESTAMP \\n SCOPE \\n hex(sha256(canonical))
6. Signing key:       kSecret -> kDate -> kRegion -> kService -> kSigning
7. Signature:         hex(hmac(kSigning, string_to_sign))

The path and query string are signed exactly as they appear in the URL.
Callers percent-encode and sort query parameters before signing
(see `canonical_query_string`).

Thread Safety:
--------------
Pure functions over their arguments. The clock is read once per call.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote, urlsplit

from focusstore.core import constants as C

Body = Union[bytes, bytearray, memoryview, str]


@dataclass(frozen=True, slots=True)
class SignedRequest:
    """
    A request ready for the transport.

    Attributes:
        url: The URL that was signed (unchanged).
        headers: Lowercase signed headers plus `Authorization`.
    """
    url: str
    headers: Dict[str, str]


# =============================================================================
# PRIMITIVES
# =============================================================================

def sha256_hex(data: Body) -> str:
    """Hex SHA-256 of bytes or UTF-8 text."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: bytes, msg: str) -> bytes:
    """HMAC-SHA256 signing helper"""
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """
    Derive the signing key for AWS Signature Version 4.

    The signing key is derived from the secret access key through a series of
    HMAC-SHA256 operations: kSecret -> kDate -> kRegion -> kService -> kSigning
    """
    k_date = hmac_sha256((C.SIGV4_KEY_PREFIX + secret_key).encode("utf-8"), date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, C.SIGV4_TERMINATOR)


def amz_timestamp(now: Optional[datetime] = None) -> str:
    """Compact ISO-8601 UTC timestamp, e.g. 20240115T120000Z."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime(C.AMZ_DATE_FORMAT)


# =============================================================================
# CANONICALIZATION
# =============================================================================

def uri_encode(value: str) -> str:
    """Percent-encode everything except RFC 3986 unreserved characters."""
    return quote(value, safe="-_.~")


def encode_key(key: str) -> str:
    """
    Percent-encode an object key per path segment, keeping `/`.

    Segments that are exactly "." or ".." are escaped as well, so URL
    normalization cannot collapse them before the request is sent.

    >>> encode_key("a/b c.txt")
    'a/b%20c.txt'
    >>> encode_key("a/../b")
    'a/%2E%2E/b'
    """
    return "/".join(_encode_segment(segment) for segment in key.split("/"))


def _encode_segment(segment: str) -> str:
    if segment in (".", ".."):
        return "%2E" * len(segment)
    return uri_encode(segment)


def canonical_query_string(params: Iterable[Tuple[str, str]]) -> str:
    """
    Build a query string in SigV4 canonical form.

    Names and values are RFC 3986 encoded, then pairs are sorted
    by encoded name and value.
    """
    encoded = sorted((uri_encode(k), uri_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def normalize_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """
    Lowercase header names and trim values.

    Names that collide after lowercasing are merged into one
    comma-separated value, in input order.
    """
    normalized: Dict[str, str] = {}
    for name, value in headers.items():
        lname = name.strip().lower()
        trimmed = " ".join(str(value).split())
        if lname in normalized:
            normalized[lname] = f"{normalized[lname]},{trimmed}"
        else:
            normalized[lname] = trimmed
    return normalized


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    headers: Mapping[str, str],
    payload_hash: str,
) -> Tuple[str, str]:
    """
    Assemble the canonical request.

    Args:
        headers: Already-normalized (lowercase, trimmed) headers.

    Returns:
        (canonical_request, signed_headers)
    """
    names = sorted(headers)
    canonical_headers = "".join(f"{name}:{headers[name]}\n" for name in names)
    signed_headers = ";".join(names)
    canonical_request = "\n".join([
        method.upper(),
        path or "/",
        query,
        canonical_headers,
        signed_headers,
        payload_hash,
    ])
    return canonical_request, signed_headers


# =============================================================================
# SIGNER
# =============================================================================

def sign_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: Body,
    access_key_id: str,
    secret_access_key: str,
    region: str,
    now: Optional[datetime] = None,
    service: str = C.SIGV4_SERVICE,
) -> SignedRequest:
    """
    Sign a request with AWS Signature Version 4.

    Args:
        method: HTTP verb.
        url: Absolute URL; path and query must already be percent-encoded.
        headers: Extra headers to sign (any case).
        body: Request payload; empty for GET/HEAD/DELETE.
        access_key_id: Access key placed in the credential.
        secret_access_key: Secret used to derive the signing key.
        region: Signing region ("auto" for R2).
        now: Clock override; defaults to the current UTC time.
        service: Signing service name.

    Returns:
        SignedRequest with the original URL and the full header set.
    """
    parsed = urlsplit(url)
    amz_date = amz_timestamp(now)
    date_stamp = amz_date[:8]
    payload_hash = sha256_hex(body)

    signed = normalize_headers(headers)
    signed["host"] = parsed.netloc
    signed["x-amz-date"] = amz_date
    signed["x-amz-content-sha256"] = payload_hash

    canonical_request, signed_headers = build_canonical_request(
        method, parsed.path, parsed.query, signed, payload_hash,
    )

    credential_scope = f"{date_stamp}/{region}/{service}/{C.SIGV4_TERMINATOR}"
    string_to_sign = "\n".join([
        C.SIGV4_ALGORITHM,
        amz_date,
        credential_scope,
        sha256_hex(canonical_request),
    ])

    signing_key = derive_signing_key(secret_access_key, date_stamp, region, service)
    signature = hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256,
    ).hexdigest()

    signed["Authorization"] = (
        f"{C.SIGV4_ALGORITHM} Credential={access_key_id}/{credential_scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )

    return SignedRequest(url=url, headers=signed)
