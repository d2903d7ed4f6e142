"""
Storage Module: R2 / S3-Compatible Object Store Client
======================================================

Provides:
- SigV4 request signing
- R2ObjectStore: async object CRUD against one bucket
- Structural ListObjectsV2 parsing
- R2Config connection descriptor and config-file loading
- Asset upload helpers

Design Principles:
-----------------
1. **Result Monad**: No exceptions for control flow
2. **Explicit Factories**: No process-wide client cache
3. **Injectable Transport**: Any httpx.AsyncClient can be passed in

Example:
    >>> config = R2Config.from_url("r2://AK:SK@account/bucket").unwrap()
    >>> store = create_store(config)
"""

from __future__ import annotations

from focusstore.storage.assets import (
    AssetOptions,
    AssetService,
    AssetUpload,
    CleanupReport,
    infer_content_type,
    unique_filename,
    upload_file,
    upload_image,
    upload_json,
)
from focusstore.storage.config import (
    R2Config,
    StoreSettings,
    get_config_path,
    has_global_config,
    load_r2_config,
    save_global_config,
)
from focusstore.storage.listing import parse_list_result
from focusstore.storage.models import (
    HttpMetadata,
    ListOptions,
    ListResult,
    PutOptions,
    R2Object,
)
from focusstore.storage.r2_store import (
    R2Metrics,
    R2ObjectStore,
    create_store,
    create_store_from_env,
)
from focusstore.storage.signing import SignedRequest, encode_key, sign_request

__all__ = [
    # Signing
    "SignedRequest",
    "sign_request",
    "encode_key",
    # Store
    "R2ObjectStore",
    "R2Metrics",
    "create_store",
    "create_store_from_env",
    # Models
    "HttpMetadata",
    "ListOptions",
    "ListResult",
    "PutOptions",
    "R2Object",
    "parse_list_result",
    # Config
    "R2Config",
    "StoreSettings",
    "get_config_path",
    "has_global_config",
    "load_r2_config",
    "save_global_config",
    # Assets
    "AssetOptions",
    "AssetService",
    "AssetUpload",
    "CleanupReport",
    "infer_content_type",
    "unique_filename",
    "upload_file",
    "upload_image",
    "upload_json",
]
