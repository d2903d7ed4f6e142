"""
focusstore: Async Cloudflare R2 Client
======================================

Signed-request client for S3-compatible object storage.

Components:
-----------
- core:          Result types, error hierarchy, constants
- storage:       SigV4 signer, R2ObjectStore, list parsing, config, assets
- observability: structured logging

Usage:
    >>> from focusstore import R2Config, create_store
    >>> config = R2Config.from_env().unwrap()
    >>> async with create_store(config) as store:
    ...     await store.put_json("data.json", {"ok": True})
"""

from focusstore.core import (
    BatchOperationError,
    ConfigurationError,
    DecodeError,
    Err,
    FocusStoreError,
    ObjectNotFoundError,
    Ok,
    ProtocolError,
    Result,
)
from focusstore.storage import (
    AssetOptions,
    AssetService,
    ListOptions,
    ListResult,
    PutOptions,
    R2Config,
    R2Object,
    R2ObjectStore,
    StoreSettings,
    create_store,
    create_store_from_env,
    load_r2_config,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Result",
    "Ok",
    "Err",
    "FocusStoreError",
    "ConfigurationError",
    "ObjectNotFoundError",
    "ProtocolError",
    "DecodeError",
    "BatchOperationError",
    "R2Config",
    "StoreSettings",
    "R2ObjectStore",
    "R2Object",
    "ListOptions",
    "ListResult",
    "PutOptions",
    "AssetOptions",
    "AssetService",
    "create_store",
    "create_store_from_env",
    "load_r2_config",
]
