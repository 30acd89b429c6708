from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from remote_asset.cache.models import AssetStatus
from remote_asset.cache.utils import format_rfc3339
from remote_asset.config import YamlConfigLoader
from remote_asset.config.models import AppConfig, ConfigLoadRequest
from remote_asset.errors import RemoteAssetError
from remote_asset.logging import init_logging
from remote_asset.manager import RemoteAssetManager
from remote_asset.materialize import utf8_text

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="remote-asset", description="Remote asset cache runner")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to config.yaml (default: config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: refresh
    subparsers.add_parser("refresh", help="Check the remote asset once and print the cache status")

    # Command: status
    subparsers.add_parser("status", help="Load the cache without contacting the remote and print its status")

    # Command: watch
    watch_parser = subparsers.add_parser("watch", help="Keep refreshing on the configured interval")
    watch_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Stop after N seconds (useful for smoke testing).",
    )

    return parser


def _format_time(value) -> str:
    return format_rfc3339(value) if value is not None else "-"


def _print_status(status: AssetStatus) -> None:
    print(f"remote_url:      {status.remote_url}")
    print(f"cache_file_name: {status.cache_file_name}")
    print(f"app_version:     {status.app_version}")
    print(f"etag:            {status.cache_headers.etag or '-'}")
    print(f"last_modified:   {status.cache_headers.last_modified or '-'}")
    print(f"last_checked_at: {_format_time(status.last_checked_at)}")
    print(f"last_updated_at: {_format_time(status.last_updated_at)}")
    print(f"byte_count:      {status.byte_count}")
    print(f"content_hash:    {status.content_hash}")


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


async def _build_manager(config: AppConfig, *, background: bool) -> RemoteAssetManager[str]:
    settings = config.asset
    if not background:
        settings = settings.model_copy(update={"refresh_on_init": False, "auto_refresh_interval_seconds": None})
    base_data: Optional[bytes] = None if settings.base_path else b""
    return await RemoteAssetManager.from_settings(settings, utf8_text, base_data=base_data)


async def _refresh(config: AppConfig) -> None:
    async with await _build_manager(config, background=False) as manager:
        outcome = await manager.refresh()
        print(f"outcome:         {outcome.value}")
        _print_status(manager.status)


async def _status(config: AppConfig) -> None:
    async with await _build_manager(config, background=False) as manager:
        _print_status(manager.status)


async def _watch(config: AppConfig, run_seconds: Optional[float]) -> None:
    manager = await _build_manager(config, background=False)
    interval = config.asset.auto_refresh_interval_seconds or 300.0
    manager.start_auto_refresh(interval)
    try:
        if run_seconds is not None:
            await asyncio.sleep(run_seconds)
        else:
            await asyncio.Event().wait()
    finally:
        await manager.close()
        _print_status(manager.status)


async def _main_async() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    config = await _load_config(args)
    init_logging(config.logging)

    try:
        if args.command == "refresh":
            await _refresh(config)
        elif args.command == "status":
            await _status(config)
        elif args.command == "watch":
            await _watch(config, args.run_seconds)
    except RemoteAssetError as e:
        logger.error("Command failed. command=%s error=%s", args.command, e)
        return 1
    return 0


def main() -> None:
    try:
        raise SystemExit(asyncio.run(_main_async()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
