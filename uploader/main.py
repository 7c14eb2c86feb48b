"""CLI entry point."""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from common.logging_config import setup_logging
from uploader.config import DEFAULT_CONFIG_PATH, Config
from uploader.upload_client import UploadClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="itr-uploader",
        description="Upload files through the ITR upload gateway"
    )
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to config JSON file")
    parser.add_argument("--user", help="User id sent to the gateway")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Upload a local file")
    upload.add_argument("path", help="File to upload")
    upload.add_argument("--drive-id", help="Destination drive id")
    upload.add_argument("--folder", help="Destination folder path")

    fetch = subparsers.add_parser("fetch", help="Fetch a cached resource")
    fetch.add_argument("resource", help="Resource name (company-info, team-members)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the uploader CLI."""
    args = build_parser().parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('uploader', log_level=log_level)

    config = Config(Path(args.config))
    if args.user:
        config.data['user_id'] = args.user

    client = UploadClient(config)
    try:
        if args.command == "upload":
            result = client.upload_file(args.path, drive_id=args.drive_id, folder_path=args.folder)
            success = result.startswith("Uploaded:")
        else:
            result = client.fetch_resource(args.resource)
            success = not result.startswith(("Error:", "Fetch failed:"))
    except Exception as e:
        logger.error(f"Uploader error: {e}", exc_info=True)
        raise
    finally:
        client.close()

    print(result)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
