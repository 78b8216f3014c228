"""
Script to run the card database sync

Commands:
    sync [--cards-only | --images-only]   One version-gated sync run
    seed                                  Insert binder images, avatars and tags
    schedule                              Run sync periodically until interrupted
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.exceptions import SyncException
from core.logging import setup_logging
from pipeline.runner import run_seed, run_sync
from pipeline.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync cards and card images from YGOProDeck")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Run one version-gated sync")
    track = sync_parser.add_mutually_exclusive_group()
    track.add_argument("--cards-only", action="store_true", help="Only upsert cards")
    track.add_argument("--images-only", action="store_true", help="Only rehost card images")

    subparsers.add_parser("seed", help="Insert static seed data")
    subparsers.add_parser("schedule", help="Run sync every SYNC_INTERVAL_MINUTES")
    return parser


async def run_schedule():
    scheduler = SyncScheduler(settings)
    scheduler.start()
    try:
        await scheduler.run_sync_job()
        # Block until cancelled (Ctrl+C)
        await asyncio.Event().wait()
    finally:
        scheduler.stop()


async def main(args: argparse.Namespace):
    if args.command == "sync":
        report = await run_sync(
            settings,
            sync_cards=not args.images_only,
            sync_images=not args.cards_only,
        )
        if report.ran:
            logger.info(f"Sync completed for database version {report.version}")
    elif args.command == "seed":
        await run_seed(settings)
        logger.info("Seeding completed")
    elif args.command == "schedule":
        await run_schedule()


if __name__ == "__main__":
    setup_logging()
    args = build_parser().parse_args()
    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except SyncException as e:
        logger.error(f"Sync failed: {e}", extra={"error_context": e.to_dict()})
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Sync pipeline error: {str(e)}")
        sys.exit(1)
