from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from eventdesk.core.config import settings
from eventdesk.services.exceptions import (
    AssetExists,
    InvalidAssetPath,
    InvalidFile,
    LocalFileNotFound,
    LocalWriteFailed,
)

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_FOLDER = "general"

_FOLDER_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(slots=True)
class IncomingFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def guess_content_type(path: str) -> str:
    return CONTENT_TYPES.get(PurePosixPath(str(path or "")).suffix.lower(), DEFAULT_CONTENT_TYPE)


def validate_image(upload: IncomingFile, max_bytes: int | None = None) -> None:
    limit = settings.max_upload_bytes if max_bytes is None else max_bytes
    if not str(upload.content_type or "").lower().startswith("image/"):
        raise InvalidFile("Invalid file type")
    if upload.size <= 0:
        raise InvalidFile("Empty file")
    if upload.size > limit:
        raise InvalidFile(f"File too large (max {limit // (1024 * 1024)}MB)")


def sanitize_filename(name: str | None) -> str:
    base = re.split(r"[\\/]", str(name or "").strip())[-1]
    clean = _UNSAFE_NAME_RE.sub("-", base).lstrip(".-")
    return clean[:180] or "file"


def build_filename(original_name: str | None, now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    return f"{millis}-{sanitize_filename(original_name)}"


def normalize_folder(folder: str | None) -> str:
    value = str(folder or "").strip() or DEFAULT_FOLDER
    if not _FOLDER_RE.match(value):
        raise InvalidAssetPath(f"Invalid folder: {value}")
    return value


class LocalAssetStore:
    """Files under ``{public_dir}/uploads``, addressed by ``/uploads/...`` paths."""

    def __init__(self, public_dir: str | Path) -> None:
        self.public_dir = Path(public_dir).resolve()
        self.uploads_root = self.public_dir / "uploads"

    def resolve(self, relative_path: str | None) -> Path:
        raw = str(relative_path or "").strip()
        if not raw:
            raise InvalidAssetPath("File path required")
        candidate = (self.public_dir / raw.lstrip("/")).resolve()
        if candidate == self.uploads_root or not candidate.is_relative_to(self.uploads_root):
            raise InvalidAssetPath(f"Path outside uploads: {raw}")
        return candidate

    def relative_path(self, absolute: Path) -> str:
        return "/" + absolute.relative_to(self.public_dir).as_posix()

    def exists(self, relative_path: str) -> bool:
        return self.resolve(relative_path).is_file()

    def save(
        self,
        folder: str | None,
        upload: IncomingFile,
        *,
        file_name: str | None = None,
        now: datetime | None = None,
        exclusive: bool = False,
    ) -> str:
        name = sanitize_filename(file_name) if file_name else build_filename(upload.filename, now)
        target = self.uploads_root / normalize_folder(folder) / name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb" if exclusive else "wb") as fh:
                fh.write(upload.data)
        except FileExistsError as exc:
            raise AssetExists(f"File already exists: {self.relative_path(target)}") from exc
        except OSError as exc:
            logger.exception("Local write failed for %s", target)
            raise LocalWriteFailed(str(exc)) from exc
        return self.relative_path(target)

    def delete(self, relative_path: str) -> bool:
        target = self.resolve(relative_path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.info("File not found locally, skip delete: %s", target)
            return False
        logger.info("Local file deleted: %s", target)
        return True

    def read(self, relative_path: str) -> tuple[bytes, str]:
        target = self.resolve(relative_path)
        try:
            data = target.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise LocalFileNotFound(relative_path) from exc
        return data, guess_content_type(target.name)

    def iter_files(self) -> Iterator[tuple[str, float]]:
        if not self.uploads_root.is_dir():
            return
        for path in self.uploads_root.rglob("*"):
            if path.is_file():
                yield self.relative_path(path), path.stat().st_mtime


def get_asset_store() -> LocalAssetStore:
    return LocalAssetStore(settings.public_dir)
