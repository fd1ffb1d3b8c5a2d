from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable

from arq.connections import RedisSettings
from arq.cron import cron
from arq.worker import run_worker
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.config import settings
from eventdesk.core.logging import configure_logging
from eventdesk.db.session import session_scope
from eventdesk.models.asset import MirroredUpload
from eventdesk.models.event import Event
from eventdesk.models.merchant import Merchant
from eventdesk.services.storage import LocalAssetStore, get_asset_store

logger = logging.getLogger(__name__)


def find_orphans(
    files: Iterable[tuple[str, float]],
    referenced: set[str],
    *,
    now: float,
    grace_seconds: float,
) -> list[str]:
    """Upload paths nobody points at, older than the grace period."""
    return [path for path, mtime in files if path not in referenced and now - mtime >= grace_seconds]


async def referenced_paths(db: AsyncSession) -> set[str]:
    """Every upload path still in use, including copies held for peer deployments."""
    event_rows = (await db.execute(select(Event.image_venue, Event.hero_image))).all()
    logos = (await db.execute(select(Merchant.logo).where(Merchant.logo.is_not(None)))).scalars().all()
    mirrored = (await db.execute(select(MirroredUpload.path))).scalars().all()

    out = {str(p) for p in [*logos, *mirrored] if p}
    for venue, hero in event_rows:
        if venue:
            out.add(str(venue))
        if hero:
            out.add(str(hero))
    return out


async def sweep_orphaned_uploads_job(ctx, store: LocalAssetStore | None = None) -> dict:
    store = store or get_asset_store()
    async with session_scope() as db:
        referenced = await referenced_paths(db)
    orphans = find_orphans(
        store.iter_files(),
        referenced,
        now=time.time(),
        grace_seconds=max(int(settings.orphan_sweep_grace_minutes), 0) * 60,
    )

    deleted = 0
    for path in orphans:
        try:
            if store.delete(path):
                deleted += 1
        except OSError:
            logger.exception("Failed to sweep orphaned upload %s", path)
    if deleted:
        logger.info("Swept %s orphaned uploads", deleted)
    return {"orphans_found": len(orphans), "orphans_deleted": deleted}


async def startup(ctx) -> None:
    configure_logging()


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    functions = [sweep_orphaned_uploads_job]
    cron_jobs = [cron(sweep_orphaned_uploads_job, minute={17})]
    on_startup = startup


def main() -> None:
    # arq expects a current event loop during worker init.
    asyncio.set_event_loop(asyncio.new_event_loop())
    run_worker(WorkerSettings)


if __name__ == "__main__":
    main()
