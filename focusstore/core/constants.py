"""
System-Wide Constants for focusstore

All magic numbers and protocol literals centralized here.
"""

from typing import Final

# =============================================================================
# TIME UNITS
# =============================================================================
NS_PER_MS: Final[int] = 1_000_000

# =============================================================================
# SIGNATURE VERSION 4
# =============================================================================
SIGV4_ALGORITHM: Final[str] = "AWS4-HMAC-SHA256"
SIGV4_SERVICE: Final[str] = "s3"
SIGV4_TERMINATOR: Final[str] = "aws4_request"
SIGV4_KEY_PREFIX: Final[str] = "AWS4"
AMZ_DATE_FORMAT: Final[str] = "%Y%m%dT%H%M%SZ"

# =============================================================================
# R2 ENDPOINT
# =============================================================================
R2_URL_SCHEME: Final[str] = "r2"
R2_ENDPOINT_DOMAIN: Final[str] = "r2.cloudflarestorage.com"
R2_REGION: Final[str] = "auto"
CUSTOM_METADATA_PREFIX: Final[str] = "x-amz-meta-"

# =============================================================================
# CLIENT DEFAULTS
# =============================================================================
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"
JSON_CONTENT_TYPE: Final[str] = "application/json"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 60.0
DELETE_CONCURRENCY: Final[int] = 10
LIST_PAGE_SIZE: Final[int] = 1000

# =============================================================================
# ASSETS
# =============================================================================
UPLOAD_CONCURRENCY: Final[int] = 5
IMMUTABLE_CACHE_CONTROL: Final[str] = "public, max-age=31536000, immutable"
JSON_CACHE_CONTROL: Final[str] = "public, max-age=3600"

# =============================================================================
# GLOBAL CONFIG FILE
# =============================================================================
CONFIG_DIR_ENV: Final[str] = "FOCUSSTORE_CONFIG_DIR"
CONFIG_DIR_NAME: Final[str] = "1focus"
CONFIG_FILE_NAME: Final[str] = "r2.env"
