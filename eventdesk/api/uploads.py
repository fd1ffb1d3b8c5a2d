from __future__ import annotations

import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import UploadCaller, asset_http_error, get_upload_caller, read_incoming_file
from eventdesk.db.session import get_db
from eventdesk.schemas.asset import DeleteFileIn, DeleteFileOut, UploadOut
from eventdesk.services.assets import (
    forget_mirrored_upload,
    path_owner_ids,
    record_mirrored_upload,
    registered_template_url,
)
from eventdesk.services.exceptions import AssetError, RemoteError, RemoteUnreachable
from eventdesk.services.storage import LocalAssetStore, get_asset_store, guess_content_type, validate_image
from eventdesk.services.template_mirror import TemplateMirror, get_template_mirror

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])

CACHE_CONTROL = "public, max-age=31536000, immutable"


def _parse_template_id(raw: str | None) -> int | None:
    value = str(raw or "").strip()
    if not value or value.lower() in {"null", "undefined"}:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid template_id") from exc


@router.post("/upload", response_model=UploadOut)
async def upload_file(
    file: UploadFile | None = File(default=None),
    folder: str | None = Form(default=None),
    scope: str | None = Form(default=None),
    template_id: str | None = Form(default=None),
    template_url: str | None = Form(default=None),
    file_name: str | None = Form(default=None),
    db: AsyncSession = Depends(get_db),
    caller: UploadCaller = Depends(get_upload_caller),
    store: LocalAssetStore = Depends(get_asset_store),
    mirror: TemplateMirror = Depends(get_template_mirror),
) -> UploadOut:
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    upload = await read_incoming_file(file)
    parsed_template_id = _parse_template_id(template_id)
    try:
        validate_image(upload)
        if caller.mirror:
            # Peers keep the caller's file name so both sides address the same path.
            url = store.save(folder, upload, file_name=file_name, exclusive=bool(file_name))
            try:
                await record_mirrored_upload(db, url)
            except Exception:
                store.delete(url)
                raise
            return UploadOut(url=url)

        remote_base = await registered_template_url(db, parsed_template_id, template_url)
        url = store.save(folder, upload)
    except AssetError as exc:
        raise asset_http_error(exc) from exc

    remote = None
    if remote_base:
        try:
            remote = await mirror.upload_file(
                remote_base,
                upload,
                folder=PurePosixPath(url).parent.name,
                scope=str(scope or ""),
                template_id=parsed_template_id,
                file_name=PurePosixPath(url).name,
            )
        except RemoteError:
            logger.exception("Remote upload mirror failed for %s", url)

    return UploadOut(url=url, remote=remote)


@router.get("/upload")
async def read_uploaded_file(
    file: str = Query(..., min_length=1),
    store: LocalAssetStore = Depends(get_asset_store),
) -> FileResponse:
    try:
        path = store.resolve(file)
    except AssetError as exc:
        raise asset_http_error(exc) from exc
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(
        path,
        media_type=guess_content_type(path.name),
        headers={"Cache-Control": CACHE_CONTROL},
    )


async def _ensure_deletable(db: AsyncSession, caller: UploadCaller, path: str) -> None:
    owners = await path_owner_ids(db, path)
    if not owners:
        return
    if owners - {caller.session.merchant_id}:
        logger.warning("Merchant %s tried to delete %s owned by %s", caller.session.merchant_id, path, sorted(owners))
        raise HTTPException(status_code=403, detail="File belongs to another merchant")
    raise HTTPException(status_code=409, detail="File is still in use")


@router.post("/delete-file", response_model=DeleteFileOut)
async def delete_file(
    payload: DeleteFileIn,
    db: AsyncSession = Depends(get_db),
    caller: UploadCaller = Depends(get_upload_caller),
    store: LocalAssetStore = Depends(get_asset_store),
    mirror: TemplateMirror = Depends(get_template_mirror),
) -> DeleteFileOut:
    try:
        store.resolve(payload.file_path)
        if caller.mirror:
            store.delete(payload.file_path)
            await forget_mirrored_upload(db, payload.file_path)
            return DeleteFileOut(success=True)

        await _ensure_deletable(db, caller, payload.file_path)
        remote_base = None
        if payload.scope == "event":
            remote_base = await registered_template_url(db, payload.template_id, payload.template_url)

        remote = None
        if remote_base:
            try:
                remote = await mirror.delete_file(remote_base, payload.file_path)
            except RemoteUnreachable:
                logger.warning("Template %s unreachable, deleting %s locally only", remote_base, payload.file_path)

        store.delete(payload.file_path)
    except AssetError as exc:
        raise asset_http_error(exc) from exc

    return DeleteFileOut(success=True, remote=remote)
