from __future__ import annotations

import logging
from typing import Any

import httpx

from eventdesk.core.config import settings
from eventdesk.services.exceptions import RemoteDeleteFailed, RemoteUnreachable, RemoteUploadFailed
from eventdesk.services.storage import IncomingFile

logger = logging.getLogger(__name__)

MIRROR_TOKEN_HEADER = "X-Mirror-Token"


def remote_endpoint(base_url: str, name: str) -> str:
    return f"{str(base_url or '').strip().rstrip('/')}/api/{name}"


def _payload(res: httpx.Response) -> Any:
    try:
        return res.json()
    except ValueError:
        return None


class TemplateMirror:
    """Forwards upload/delete calls to a template's own deployment."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = settings.template_remote_timeout_seconds if timeout is None else timeout
        self.token = settings.mirror_token if token is None else token
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "EventDesk/1.0",
        }
        if self.token:
            headers[MIRROR_TOKEN_HEADER] = self.token
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def delete_file(self, base_url: str, file_path: str) -> Any:
        url = remote_endpoint(base_url, "delete-file")
        try:
            async with self._client() as client:
                res = await client.post(url, json={"filePath": file_path}, headers=self._headers())
        except httpx.TransportError as exc:
            raise RemoteUnreachable(f"Remote delete unreachable: {exc}") from exc

        if not res.is_success:
            raise RemoteDeleteFailed(f"Remote delete failed: {res.text}", status_code=res.status_code)
        return _payload(res)

    async def upload_file(
        self,
        base_url: str,
        upload: IncomingFile,
        *,
        folder: str,
        scope: str,
        template_id: int | None,
        file_name: str | None = None,
    ) -> Any:
        url = remote_endpoint(base_url, "upload")
        data = {
            "folder": folder,
            "scope": scope,
            "template_id": "" if template_id is None else str(template_id),
        }
        if file_name:
            data["file_name"] = file_name
        files = {"file": (upload.filename, upload.data, upload.content_type)}
        try:
            async with self._client() as client:
                res = await client.post(url, data=data, files=files, headers=self._headers())
        except httpx.TransportError as exc:
            raise RemoteUnreachable(f"Remote upload unreachable: {exc}") from exc

        if not res.is_success:
            raise RemoteUploadFailed(f"Remote upload failed: {res.text}", status_code=res.status_code)
        return _payload(res)


def get_template_mirror() -> TemplateMirror:
    return TemplateMirror()
