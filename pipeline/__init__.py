"""
Card database synchronization pipeline.

This package contains every component of a version-gated sync run:

Modules:
    version_gate: Decide run/skip by comparing remote and stored versions
    analytics: Run-scoped counters reported at the end of a track
    assets: Derive deduplicated image references from the catalog
    transfer: Batched concurrent scheduler and deduplicating image transfer
    seeders: Static seed data (binder images, avatars, tags)
    runner: Pipeline orchestration and scoped entry points
    scheduler: APScheduler integration for periodic sync runs

Subpackages:
    extractors: Remote card database client
    loaders: Relational store and card upsert

Architecture:
    1. Gate - skip the whole run when the dataset version is unchanged
    2. Fetch - pull the complete catalog in one request
    3. Cards - upsert each card on its own, failures counted not raised
    4. Images - skip images already stored, rehost the rest in paced batches

Usage:
    from core.config import settings
    from pipeline.runner import run_sync

    report = await run_sync(settings)
    print(report.images.snapshot())
"""

__all__ = [
    "VersionGate",
    "RunAnalytics",
    "AssetResolver",
    "AssetReference",
    "TransferScheduler",
    "DedupTransfer",
    "StaticSeeder",
    "SyncPipeline",
    "ImageTransferJob",
    "run_sync",
    "run_seed",
    "SyncScheduler",
]
