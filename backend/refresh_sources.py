"""
Content Cache Refresh Script for the Muscat Airport assistant.

This script:
1. Purges expired entries from the content cache
2. Fetches every configured source (respecting per-source rate limits)
3. Stores new or changed content blocks in the cache

Usage:
    python refresh_sources.py
    python refresh_sources.py --purge-only
"""
import argparse
import asyncio
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import load_content_sources
from models.content import SourceConfig
from services.content_acquisition import ContentAcquisitionService
from services.page_fetcher import PageFetcher
from services.supabase_store import create_stores

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def refresh(purge_only: bool = False) -> int:
    """
    Purge expired cache entries and, unless ``purge_only``, re-fetch all sources.

    Returns:
        Total number of content blocks fetched
    """
    stores = create_stores()
    if not stores.durable:
        logger.warning("No durable cache configured; refreshed content will be lost when this script exits")

    sources = [SourceConfig.from_dict(s) for s in load_content_sources()]
    fetcher = PageFetcher()
    acquisition = ContentAcquisitionService(sources, fetcher, stores.cache)

    try:
        logger.info("\n[1/2] Purging expired cache entries...")
        purged = await acquisition.purge_expired()
        logger.info(f"✓ Purged {purged} expired entries")

        if purge_only:
            return 0

        logger.info(f"\n[2/2] Fetching {len(sources)} sources...")
        counts = await acquisition.refresh_all()
        for name, count in counts.items():
            logger.info(f"  - {name}: {count} blocks")
        return sum(counts.values())
    finally:
        await fetcher.aclose()


def main():
    """Main refresh process."""
    parser = argparse.ArgumentParser(description="Refresh the Muscat Airport content cache")
    parser.add_argument("--purge-only", action="store_true", help="Only delete expired cache entries")
    args = parser.parse_args()

    try:
        logger.info("="*60)
        logger.info("Starting content cache refresh")
        logger.info("="*60)

        total = asyncio.run(refresh(purge_only=args.purge_only))

        logger.info("\n" + "="*60)
        logger.info("REFRESH COMPLETE!")
        logger.info(f"Content blocks fetched: {total}")
        logger.info("="*60)

    except KeyboardInterrupt:
        logger.warning("\nRefresh interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"\nRefresh failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
