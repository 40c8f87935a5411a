#!/usr/bin/env python3
"""
Magento REST probe -- send one signed request and print the JSON response.

Reads credentials from the environment / .env (see config.py).

Usage:
  uv run python run.py GET /rest/all/V1/products/ABC-1
  uv run python run.py GET /rest/all/V1/products/ --data '{"searchCriteria": {"pageSize": 5, "currentPage": 1}}'
  uv run python run.py PUT /rest/all/V1/categories/12/move --data '{"parentId": 3}'
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from client.magento import METHODS, MagentoClient, MagentoError
from config import has_credentials, load_config
from monitor.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send one OAuth-signed Magento REST request")
    parser.add_argument("method", type=str.upper, choices=sorted(METHODS), help="HTTP verb")
    parser.add_argument("path", help="Path appended to MAGENTO_ORIGIN, e.g. /rest/all/V1/orders/1")
    parser.add_argument("--data", type=str, default=None, help="JSON payload (query params for GET, body otherwise)")
    parser.add_argument("--json-log", type=str, default=None, help="Path to JSON log file for machine-readable output")
    parser.add_argument("--log-dir", type=str, default=None, help="Directory for the verbose debug log")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()

    log_file_path = setup_logging(cfg.log_level, json_log_file=args.json_log, log_dir=args.log_dir)
    logger.debug("Log file: %s", log_file_path)

    if not has_credentials(cfg):
        logger.error(
            "MAGENTO_ORIGIN, MAGENTO_CONSUMER_KEY, MAGENTO_CONSUMER_SECRET, "
            "MAGENTO_ACCESS_TOKEN and MAGENTO_ACCESS_TOKEN_SECRET are required."
        )
        return 1

    data = None
    if args.data is not None:
        try:
            data = json.loads(args.data)
        except ValueError as e:
            logger.error("--data is not valid JSON: %s", e)
            return 1

    with MagentoClient.from_config(cfg) as client:
        try:
            result = client.call(args.method, args.path, data)
        except MagentoError as e:
            logger.error("%s %s failed: %s", args.method, args.path, e)
            return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
