"""
Bulk Product Upload Script

Uploads products from a JSON array file into the configured document store.
Run from project root: python scripts/seed.py products.json

Use --sample to upload the built-in sample menu instead of a file.
"""

import argparse
import asyncio
import logging
import sys

from storefront.core.config import setup_logging
from storefront.services.catalog import (
    SeedFileError,
    populate_sample_products,
    read_seed_file,
    seed_products,
)
from storefront.services.store import get_document_store

logger = logging.getLogger("scripts.seed")


async def run_seed(path: str, sample: bool) -> int:
    store = get_document_store()
    try:
        if sample:
            report = await populate_sample_products(store)
        else:
            report = await seed_products(store, read_seed_file(path))
    finally:
        await store.close()

    print("=" * 60)
    print("✨ Bulk upload complete!")
    print(f"✅ Successfully added: {report.succeeded}")
    print(f"❌ Failed: {report.failed}")
    print("=" * 60)
    return 0 if report.failed == 0 else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Bulk product upload")
    parser.add_argument("path", nargs="?", default="products.json", help="JSON array of products")
    parser.add_argument("--sample", action="store_true", help="Upload the built-in sample menu")
    args = parser.parse_args()

    setup_logging()
    print("🚀 Starting bulk product upload...")

    try:
        sys.exit(asyncio.run(run_seed(args.path, args.sample)))
    except SeedFileError as e:
        print(f"❌ Error: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
