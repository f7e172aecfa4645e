#!/usr/bin/env python3
"""
Process Training Documents

Asks a running Lectern API to ingest every file in its training
directory as reference material, then prints a per-file summary.

Usage:
    python scripts/process_training.py
    python scripts/process_training.py --api-url http://localhost:8000 --api-key secret
"""

from __future__ import annotations

import argparse
import os
import sys

import httpx

DEFAULT_API_URL = "http://localhost:8000"
TIMEOUT = 300.0


def log_info(msg: str) -> None:
    print(f"ℹ {msg}")


def log_success(msg: str) -> None:
    print(f"✓ {msg}")


def log_error(msg: str) -> None:
    print(f"✗ {msg}")


def check_api(api_url: str) -> bool:
    try:
        r = httpx.get(f"{api_url}/health", timeout=5.0)
        return r.status_code == 200
    except httpx.RequestError:
        return False


def process_training(api_url: str, api_key: str) -> list[dict] | None:
    """Trigger ingestion of the training directory; None on failure."""
    try:
        r = httpx.post(
            f"{api_url}/api/v1/documents/training",
            headers={"X-API-Key": api_key},
            timeout=TIMEOUT,
        )
    except httpx.RequestError as e:
        log_error(f"Request failed: {e}")
        return None

    if r.status_code != 200:
        log_error(f"Training ingestion failed: {r.status_code} - {r.text}")
        return None
    return r.json().get("results", [])


def main() -> int:
    parser = argparse.ArgumentParser(description="Ingest the training directory")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API base URL")
    parser.add_argument(
        "--api-key",
        default=os.environ.get("REQUIRED_API_KEY", ""),
        help="Value for the X-API-Key header (default: $REQUIRED_API_KEY)",
    )
    args = parser.parse_args()

    print("\n📚 Lectern Training Ingestion\n")

    if not check_api(args.api_url):
        log_error(f"API not available at {args.api_url}")
        return 1
    log_success("API connected")

    results = process_training(args.api_url, args.api_key)
    if results is None:
        return 1
    if not results:
        log_info("Training directory is empty")
        return 0

    failed = 0
    for item in results:
        if item.get("status") == "success":
            log_success(f"{item['filename']} ({item.get('chunks_count', 0)} chunks)")
        else:
            failed += 1
            log_error(f"{item['filename']}: {item.get('error')}")

    print(f"\nProcessed {len(results)} files, {failed} failed\n")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
