"""
R2 Connection Configuration
===========================

Type-safe, immutable configuration for the R2 object store client.

Components:
-----------
- R2Config:       credentials, account and bucket (the connection descriptor)
- StoreSettings:  client tuning (region, endpoint, timeouts, fan-out)
- Global config:  ~/.config/1focus/r2.env holding a single R2_URL line

Connection String:
------------------
    r2://ACCESS_KEY_ID:SECRET_ACCESS_KEY@ACCOUNT_ID/BUCKET?publicUrl=https://...

Credentials are percent-encoded in the userinfo part.

Lookup Order (load_r2_config):
------------------------------
1. R2_URL environment variable
2. R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, R2_BUCKET
   (+ optional R2_PUBLIC_URL)
3. Global config file
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

from dotenv import dotenv_values

from focusstore.core import constants as C
from focusstore.core.errors import ConfigurationError
from focusstore.core.types import Err, Ok, Result


# =============================================================================
# CONNECTION DESCRIPTOR
# =============================================================================

@dataclass(frozen=True, slots=True)
class R2Config:
    """
    Connection descriptor for one R2 bucket.

    Frozen dataclass - immutable after construction and safe to share
    between concurrent operations.

    Attributes:
        account_id: Cloudflare account id (endpoint host prefix).
        access_key_id: R2 API token access key.
        secret_access_key: R2 API token secret. Hidden from repr.
        bucket: Bucket name.
        public_url: Optional public URL prefix, e.g. https://pub-xxx.r2.dev

    Raises:
        ConfigurationError: If any required field is empty.
    """
    account_id: str
    access_key_id: str
    secret_access_key: str = field(repr=False)
    bucket: str
    public_url: Optional[str] = None

    def __post_init__(self) -> None:
        missing = _missing_fields(
            account_id=self.account_id,
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            bucket=self.bucket,
        )
        if missing:
            raise ConfigurationError.missing_fields(missing)

    @classmethod
    def from_url(cls, url: str) -> Result[R2Config, ConfigurationError]:
        """
        Parse an `r2://` connection string.

        Returns:
            Ok[R2Config]: Parsed descriptor
            Err[ConfigurationError]: Wrong scheme or missing parts
        """
        try:
            parsed = urlsplit(url.strip())
        except ValueError as e:
            return Err(ConfigurationError.invalid(f"unparsable R2 URL: {e}", cause=e))

        if parsed.scheme != C.R2_URL_SCHEME:
            return Err(ConfigurationError.invalid(
                f"R2 URL must start with {C.R2_URL_SCHEME}://"
            ))

        userinfo, _, account_id = parsed.netloc.rpartition("@")
        raw_key, _, raw_secret = userinfo.partition(":")
        access_key_id = unquote(raw_key)
        secret_access_key = unquote(raw_secret)
        bucket = unquote(parsed.path[1:] if parsed.path.startswith("/") else parsed.path)

        public_values = parse_qs(parsed.query).get("publicUrl")
        public_url = public_values[0] if public_values else None

        missing = _missing_fields(
            account_id=account_id,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            bucket=bucket,
        )
        if missing:
            return Err(ConfigurationError.missing_fields(
                missing,
                hint=(
                    "Expected r2://ACCESS_KEY_ID:SECRET_ACCESS_KEY@ACCOUNT_ID/BUCKET"
                ),
            ))

        return Ok(cls(
            account_id=account_id,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            bucket=bucket,
            public_url=public_url or None,
        ))

    def to_url(self) -> str:
        """Serialize to an `r2://` connection string (inverse of from_url)."""
        url = (
            f"{C.R2_URL_SCHEME}://"
            f"{quote(self.access_key_id, safe='')}:{quote(self.secret_access_key, safe='')}"
            f"@{self.account_id}/{quote(self.bucket, safe='')}"
        )
        if self.public_url:
            url = f"{url}?{urlencode({'publicUrl': self.public_url})}"
        return url

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = "R2",
    ) -> Result[R2Config, ConfigurationError]:
        """
        Construct configuration from environment variables.

        Environment Variables:
        - {prefix}_URL: full connection string (takes precedence)
        - {prefix}_ACCOUNT_ID, {prefix}_ACCESS_KEY_ID,
          {prefix}_SECRET_ACCESS_KEY, {prefix}_BUCKET: required otherwise
        - {prefix}_PUBLIC_URL: optional public prefix

        Returns:
            Err naming every missing variable when neither form is complete.
        """
        env = os.environ if environ is None else environ

        url = env.get(f"{prefix}_URL")
        if url:
            return cls.from_url(url).map_err(
                lambda e: ConfigurationError.invalid(f"{prefix}_URL: {e.message}", cause=e)
            )

        values = {
            "account_id": env.get(f"{prefix}_ACCOUNT_ID", ""),
            "access_key_id": env.get(f"{prefix}_ACCESS_KEY_ID", ""),
            "secret_access_key": env.get(f"{prefix}_SECRET_ACCESS_KEY", ""),
            "bucket": env.get(f"{prefix}_BUCKET", ""),
        }
        missing = [f"{prefix}_{name.upper()}" for name, value in values.items() if not value]
        if missing:
            return Err(ConfigurationError.missing_fields(
                missing, hint=f"Or set {prefix}_URL",
            ))

        return Ok(cls(public_url=env.get(f"{prefix}_PUBLIC_URL") or None, **values))

    @property
    def endpoint(self) -> str:
        """Default R2 endpoint origin for this account."""
        return f"https://{self.account_id}.{C.R2_ENDPOINT_DOMAIN}"


def _missing_fields(**values: str) -> List[str]:
    return [name for name, value in values.items() if not value]


# =============================================================================
# CLIENT SETTINGS
# =============================================================================

@dataclass(frozen=True, slots=True)
class StoreSettings:
    """
    Tuning for R2ObjectStore.

    Attributes:
        region: Signing region. R2 accepts "auto".
        endpoint_url: Override the origin (MinIO, local fakes). When None
            the R2 endpoint for the account is used.
        timeout_seconds: Transport timeout per request.
        max_concurrency: Max in-flight requests for delete_many.
        list_page_size: max-keys used by list_all.
    """
    region: str = C.R2_REGION
    endpoint_url: Optional[str] = None
    timeout_seconds: float = C.DEFAULT_TIMEOUT_SECONDS
    max_concurrency: int = C.DELETE_CONCURRENCY
    list_page_size: int = C.LIST_PAGE_SIZE

    def __post_init__(self) -> None:
        """
        Validate configuration invariants.

        Raises:
            ValueError: If any invariant is violated.
        """
        if not self.region:
            raise ValueError("region must be non-empty")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be > 0, got {self.max_concurrency}")
        if not 0 < self.list_page_size <= C.LIST_PAGE_SIZE:
            raise ValueError(
                f"list_page_size must be in 1..{C.LIST_PAGE_SIZE}, got {self.list_page_size}"
            )
        if self.endpoint_url and not self.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(f"endpoint_url must be http(s), got {self.endpoint_url!r}")


# =============================================================================
# GLOBAL CONFIG FILE
# =============================================================================

def get_config_dir() -> Path:
    """~/.config/1focus, or $FOCUSSTORE_CONFIG_DIR when set."""
    override = os.getenv(C.CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".config" / C.CONFIG_DIR_NAME


def get_config_path() -> Path:
    """Path of the global r2.env file."""
    return get_config_dir() / C.CONFIG_FILE_NAME


def has_global_config() -> bool:
    return get_config_path().is_file()


def save_global_config(r2_url: str) -> Path:
    """
    Write the connection string to the global config file.

    The file is created with owner-only permissions.
    """
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"R2_URL={r2_url}\n", encoding="utf-8")
    path.chmod(0o600)
    return path


def read_global_config() -> Result[R2Config, ConfigurationError]:
    """Parse the R2_URL entry of the global config file (dotenv syntax)."""
    path = get_config_path()
    if not path.is_file():
        return Err(ConfigurationError.invalid(f"cannot read {path}: no such file"))
    try:
        values = dotenv_values(path, interpolate=False, encoding="utf-8")
    except OSError as e:
        return Err(ConfigurationError.invalid(f"cannot read {path}: {e}", cause=e))

    r2_url = values.get("R2_URL")
    if not r2_url:
        return Err(ConfigurationError.invalid(f"{path} has no R2_URL entry"))
    return R2Config.from_url(r2_url)


def load_r2_config(
    environ: Optional[Mapping[str, str]] = None,
) -> Result[R2Config, ConfigurationError]:
    """
    Load configuration with fallback chain.

    1. R2_URL environment variable
    2. Individual R2_* environment variables
    3. Global config file

    An invalid R2_URL is reported, not skipped.
    """
    env = os.environ if environ is None else environ

    if env.get("R2_URL"):
        return R2Config.from_env(env)

    from_env = R2Config.from_env(env)
    if from_env.is_ok():
        return from_env

    if has_global_config():
        return read_global_config()

    return Err(ConfigurationError.not_found(str(get_config_path())))
