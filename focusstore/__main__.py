"""
focusstore CLI Entrypoint

Commands:
    focusstore init     Prompt for R2 credentials and save the global config
    focusstore status   Show where the config lives and what it contains
    focusstore url      Print the connection string for the current config
    focusstore smoke    Exercise put/get/head/list/copy/delete on the bucket
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from typing import NoReturn, Optional, Sequence

from focusstore.core.types import utc_now
from focusstore.observability.logging import LogLevel, redact, setup_logging
from focusstore.storage.config import (
    R2Config,
    get_config_path,
    has_global_config,
    load_r2_config,
    read_global_config,
    save_global_config,
)
from focusstore.storage.models import ListOptions, PutOptions
from focusstore.storage.r2_store import create_store


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="focusstore",
        description="Cloudflare R2 storage client",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for client logs (default: WARNING)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser(
        "init", aliases=["setup"], help="Save R2 credentials to the global config",
    )
    init_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing config without asking",
    )

    subparsers.add_parser("status", help="Show config location and summary")
    subparsers.add_parser("url", help="Print the R2 connection string")

    smoke_parser = subparsers.add_parser("smoke", help="Run a live round-trip against the bucket")
    smoke_parser.add_argument(
        "--prefix",
        default="test/",
        help="Key prefix for smoke objects (default: test/)",
    )

    args = parser.parse_args(argv)

    try:
        level = LogLevel.parse(args.log_level)
    except ValueError as e:
        parser.error(str(e))
    setup_logging(level, json_output=args.log_json)

    if args.command in ("init", "setup"):
        code = _run_init(args)
    elif args.command == "status":
        code = _run_status()
    elif args.command == "url":
        code = _run_url()
    elif args.command == "smoke":
        code = asyncio.run(_run_smoke(args.prefix))
    else:
        parser.print_help()
        code = 0

    sys.exit(code)


def _get_version() -> str:
    """Get package version."""
    from focusstore import __version__
    return __version__


def _run_init(args: argparse.Namespace) -> int:
    """Prompt for credentials and write the global config file."""
    print("=== focusstore setup ===\n")

    if has_global_config() and not args.force:
        existing = read_global_config()
        if existing.is_ok():
            config = existing.unwrap()
            print(f"Existing config found at {get_config_path()}")
            print(f"  Bucket: {config.bucket}")
            print(f"  Account: {redact(config.account_id)}")
            print("")
            if input("Overwrite? (y/N): ").strip().lower() != "y":
                print("Keeping existing config.")
                return 0
            print("")

    print("Get your R2 credentials from the Cloudflare dashboard:")
    print("  1. Go to https://dash.cloudflare.com")
    print("  2. Select your account -> R2 Object Storage")
    print("  3. Create a bucket (if needed)")
    print("  4. Manage R2 API Tokens -> Create API Token (Object Read & Write)")
    print("")
    print("Your Account ID is in the dashboard URL:")
    print("  dash.cloudflare.com/<ACCOUNT_ID>/r2")
    print("")

    account_id = input("Account ID: ").strip()
    access_key_id = input("Access Key ID: ").strip()
    secret_access_key = getpass.getpass("Secret Access Key: ").strip()
    bucket = input("Bucket name: ").strip()
    public_url = input("Public URL (optional, press enter to skip): ").strip()

    missing = [
        label
        for label, value in (
            ("Account ID", account_id),
            ("Access Key ID", access_key_id),
            ("Secret Access Key", secret_access_key),
            ("Bucket name", bucket),
        )
        if not value
    ]
    if missing:
        print(f"\nError: required field(s) left empty: {', '.join(missing)}")
        return 1

    config = R2Config(
        account_id=account_id,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        bucket=bucket,
        public_url=public_url or None,
    )
    r2_url = config.to_url()

    check = R2Config.from_url(r2_url)
    if check.is_err():
        print(f"\nError: invalid config - {check.error.message}")
        return 1

    path = save_global_config(r2_url)
    print(f"\nSaved to {path}")
    print("")
    print("Usage in your code:")
    print("  from focusstore import create_store_from_env")
    print("")
    print("  store = create_store_from_env().unwrap()")
    print('  await store.put("hello.txt", "Hello!")')
    return 0


def _run_status() -> int:
    """Print config location and a redacted summary."""
    path = get_config_path()
    print("=== focusstore status ===\n")
    print(f"Config file: {path}")
    print(f"Exists: {'yes' if path.is_file() else 'no'}")
    print("")

    result = load_r2_config()
    if result.is_err():
        print(result.error.message)
        return 1

    config = result.unwrap()
    print("Configuration:")
    print(f"  Account ID: {config.account_id}")
    print(f"  Bucket: {config.bucket}")
    print(f"  Public URL: {config.public_url or '(not set)'}")
    print(f"  Access Key: {redact(config.access_key_id)}")
    return 0


def _run_url() -> int:
    result = load_r2_config()
    if result.is_err():
        print(result.error.message, file=sys.stderr)
        return 1
    print(result.unwrap().to_url())
    return 0


async def _run_smoke(prefix: str) -> int:
    """Round-trip a few objects under `prefix` and clean them up."""
    loaded = load_r2_config()
    if loaded.is_err():
        print(loaded.error.message, file=sys.stderr)
        return 1
    config = loaded.unwrap()

    text_key = f"{prefix}hello.txt"
    json_key = f"{prefix}data.json"
    copy_key = f"{prefix}hello-copy.txt"

    print(f"=== focusstore smoke test ===\n\nBucket: {config.bucket}\n")

    async with create_store(config) as store:
        steps = [
            ("put text", lambda: store.put(text_key, "Hello from focusstore!", PutOptions(
                content_type="text/plain", custom_metadata={"source": "smoke"},
            ))),
            ("put json", lambda: store.put_json(json_key, {
                "name": "focusstore smoke",
                "timestamp": utc_now().isoformat(),
            })),
            ("get text", lambda: store.get_text(text_key)),
            ("get json", lambda: store.get_json(json_key)),
            ("head", lambda: store.head(text_key)),
            ("list", lambda: store.list(ListOptions(prefix=prefix))),
            ("exists", lambda: store.exists(text_key)),
            ("copy", lambda: store.copy(text_key, copy_key)),
            ("delete", lambda: store.delete_many([text_key, json_key, copy_key])),
            ("exists after delete", lambda: store.exists(text_key)),
        ]

        for number, (label, step) in enumerate(steps, start=1):
            result = await step()
            if result.is_err():
                print(f"{number}. {label}: FAILED\n   {result.error}")
                return 1
            print(f"{number}. {label}: {_describe(result.unwrap())}")

    print("\nAll steps passed.")
    return 0


def _describe(value: object) -> str:
    if hasattr(value, "to_dict"):
        return str(value.to_dict())
    if hasattr(value, "objects"):
        return f"{len(value.objects)} object(s), truncated={value.truncated}"
    return repr(value)


if __name__ == "__main__":
    main()
