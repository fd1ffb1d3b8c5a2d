"""Asset slot replacement kept consistent across local disk, the template mirror and the database.

A replacement writes the new file first (locally, then on the template
deployment), removes the previous file from the deployment, flips the
database pointer and only then deletes the previous local file. Any failure
before the pointer flip discards the staged file and leaves the previous
asset untouched.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Hashable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.models.asset import MirroredUpload
from eventdesk.models.event import Event, Template
from eventdesk.models.merchant import Merchant
from eventdesk.services.exceptions import (
    InvalidAssetPath,
    RemoteError,
    RemoteUnreachable,
    ReplaceInProgress,
    TemplateNotFound,
)
from eventdesk.services.storage import IncomingFile, LocalAssetStore, get_asset_store, validate_image
from eventdesk.services.template_mirror import TemplateMirror, get_template_mirror

logger = logging.getLogger(__name__)

EVENT_ASSET_SLOTS = ("image_venue", "hero_image")
EVENT_FOLDER = "event"
MERCHANT_FOLDER = "merchant"

CommitPointer = Callable[[str | None], Awaitable[None]]


@dataclass(slots=True)
class UploadResult:
    path: str
    remote: Any = None


class SlotLockRegistry:
    """In-flight markers keyed by (scope, owner id, slot)."""

    def __init__(self) -> None:
        self._in_flight: set[Hashable] = set()

    def is_held(self, key: Hashable) -> bool:
        return key in self._in_flight

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        # Check and claim happen without an await in between.
        if key in self._in_flight:
            raise ReplaceInProgress(f"Another update is in progress for {key}")
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)


class AssetSyncFlow:
    def __init__(
        self,
        store: LocalAssetStore,
        mirror: TemplateMirror,
        locks: SlotLockRegistry | None = None,
        *,
        max_bytes: int | None = None,
    ) -> None:
        self.store = store
        self.mirror = mirror
        self.locks = locks or SlotLockRegistry()
        self.max_bytes = max_bytes

    def _managed(self, path: str | None) -> str | None:
        if not path:
            return None
        try:
            self.store.resolve(path)
        except InvalidAssetPath:
            logger.info("Ignoring unmanaged asset path %r", path)
            return None
        return path

    async def replace_asset(
        self,
        *,
        key: Hashable,
        previous_path: str | None,
        upload: IncomingFile,
        folder: str,
        scope: str,
        commit: CommitPointer,
        template_id: int | None = None,
        template_url: str | None = None,
    ) -> UploadResult:
        validate_image(upload, self.max_bytes)
        previous = self._managed(previous_path)

        async with self.locks.hold(key):
            new_path = self.store.save(folder, upload)
            remote_ack: Any = None
            mirrored = False
            try:
                if template_url:
                    try:
                        remote_ack = await self.mirror.upload_file(
                            template_url,
                            upload,
                            folder=folder,
                            scope=scope,
                            template_id=template_id,
                            file_name=PurePosixPath(new_path).name,
                        )
                        mirrored = True
                    except RemoteUnreachable:
                        logger.warning("Template %s unreachable, %s not mirrored", template_url, new_path)

                    if previous:
                        try:
                            await self.mirror.delete_file(template_url, previous)
                        except RemoteUnreachable:
                            logger.warning("Template %s unreachable, %s not removed remotely", template_url, previous)

                await commit(new_path)
            except Exception:
                await self._discard_staged(new_path, template_url if mirrored else None)
                raise

            if previous and previous != new_path:
                self._delete_local(previous)

        return UploadResult(path=new_path, remote=remote_ack)

    async def remove_asset(
        self,
        *,
        key: Hashable,
        path: str | None,
        commit: CommitPointer,
        template_url: str | None = None,
    ) -> None:
        current = self._managed(path)
        async with self.locks.hold(key):
            if current and template_url:
                try:
                    await self.mirror.delete_file(template_url, current)
                except RemoteUnreachable:
                    logger.warning("Template %s unreachable, %s not removed remotely", template_url, current)
            await commit(None)
            if current:
                self._delete_local(current)

    async def _discard_staged(self, path: str, remote_url: str | None) -> None:
        logger.warning("Discarding staged asset %s", path)
        try:
            self.store.delete(path)
        except OSError:
            logger.exception("Failed to discard staged file %s", path)
        if remote_url:
            try:
                await self.mirror.delete_file(remote_url, path)
            except RemoteError:
                logger.warning("Failed to discard mirrored copy of %s on %s", path, remote_url)

    def _delete_local(self, path: str) -> None:
        try:
            self.store.delete(path)
        except OSError:
            logger.exception("Failed to delete %s, left for the orphan sweeper", path)


_registry = SlotLockRegistry()


def get_asset_flow() -> AssetSyncFlow:
    return AssetSyncFlow(get_asset_store(), get_template_mirror(), _registry)


async def resolve_template_url(db: AsyncSession, template_id: int | None) -> str | None:
    if template_id is None:
        return None
    template = await db.get(Template, template_id)
    if template is None:
        raise TemplateNotFound(f"Template {template_id} not found")
    url = str(template.url or "").strip()
    if not url:
        logger.info("Template %s has no remote url, mirroring skipped", template_id)
        return None
    return url


def _same_url(left: str, right: str) -> bool:
    return left.strip().rstrip("/") == right.strip().rstrip("/")


async def registered_template_url(
    db: AsyncSession,
    template_id: int | None,
    template_url: str | None,
) -> str | None:
    """Remote base URL for a forwarded call, taken from the templates table only.

    A caller supplied ``template_url`` is honored only when it names a
    registered template; anything else is ignored so outbound calls (and the
    mirror token they carry) never reach an arbitrary host.
    """
    if template_id is not None:
        url = await resolve_template_url(db, template_id)
        if url and template_url and not _same_url(url, template_url):
            logger.warning("template_url %r does not match template %s, using %s", template_url, template_id, url)
        return url

    candidate = str(template_url or "").strip()
    if not candidate:
        return None
    known = (await db.execute(select(Template.url).where(Template.url.is_not(None)))).scalars().all()
    for url in known:
        if url and _same_url(url, candidate):
            return url.strip()
    logger.warning("Ignoring unregistered template url %r", candidate)
    return None


async def path_owner_ids(db: AsyncSession, path: str) -> set[int]:
    """Merchants whose event slots or logo point at ``path``."""
    event_owners = (
        await db.execute(
            select(Event.merchant_id).where(or_(Event.image_venue == path, Event.hero_image == path))
        )
    ).scalars().all()
    logo_owners = (await db.execute(select(Merchant.id).where(Merchant.logo == path))).scalars().all()
    return {int(owner) for owner in [*event_owners, *logo_owners]}


async def record_mirrored_upload(db: AsyncSession, path: str) -> None:
    db.add(MirroredUpload(path=path))
    await db.commit()


async def forget_mirrored_upload(db: AsyncSession, path: str) -> None:
    row = (
        await db.execute(select(MirroredUpload).where(MirroredUpload.path == path))
    ).scalar_one_or_none()
    if row is not None:
        await db.delete(row)
        await db.commit()


def _pointer_commit(db: AsyncSession, row: Any, field: str) -> CommitPointer:
    async def commit(path: str | None) -> None:
        previous = getattr(row, field)
        setattr(row, field, path)
        try:
            await db.commit()
        except Exception:
            setattr(row, field, previous)
            await db.rollback()
            raise

    return commit


async def replace_event_asset(
    db: AsyncSession,
    flow: AssetSyncFlow,
    event: Event,
    slot: str,
    upload: IncomingFile,
) -> UploadResult:
    if slot not in EVENT_ASSET_SLOTS:
        raise ValueError(f"Unknown asset slot: {slot}")
    template_url = await resolve_template_url(db, event.template_id)
    return await flow.replace_asset(
        key=("event", event.id, slot),
        previous_path=getattr(event, slot),
        upload=upload,
        folder=EVENT_FOLDER,
        scope="event",
        template_id=event.template_id,
        template_url=template_url,
        commit=_pointer_commit(db, event, slot),
    )


async def remove_event_asset(db: AsyncSession, flow: AssetSyncFlow, event: Event, slot: str) -> None:
    if slot not in EVENT_ASSET_SLOTS:
        raise ValueError(f"Unknown asset slot: {slot}")
    template_url = await resolve_template_url(db, event.template_id)
    await flow.remove_asset(
        key=("event", event.id, slot),
        path=getattr(event, slot),
        template_url=template_url,
        commit=_pointer_commit(db, event, slot),
    )


async def apply_template(db: AsyncSession, flow: AssetSyncFlow, event: Event, template_id: int) -> Event:
    template = await db.get(Template, template_id)
    if template is None:
        raise TemplateNotFound(f"Template {template_id} not found")

    # The new template may not recognize paths mirrored for the old one.
    for slot in EVENT_ASSET_SLOTS:
        if getattr(event, slot):
            await remove_event_asset(db, flow, event, slot)

    event.template_id = template.id
    await db.commit()
    await db.refresh(event)
    return event


async def replace_merchant_logo(
    db: AsyncSession,
    flow: AssetSyncFlow,
    merchant: Merchant,
    upload: IncomingFile,
) -> UploadResult:
    return await flow.replace_asset(
        key=("merchant", merchant.id, "logo"),
        previous_path=merchant.logo,
        upload=upload,
        folder=MERCHANT_FOLDER,
        scope="merchant",
        commit=_pointer_commit(db, merchant, "logo"),
    )
