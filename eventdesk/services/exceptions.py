"""Errors raised by the asset storage and mirroring layer."""


class AssetError(Exception):
    """Base class for asset related errors."""


class InvalidFile(AssetError):
    """Raised when an upload is not an image or exceeds the size limit."""


class InvalidAssetPath(AssetError):
    """Raised when a stored path does not resolve inside the uploads root."""


class LocalWriteFailed(AssetError):
    """Raised when the new file could not be written to local storage."""


class LocalFileNotFound(AssetError):
    """Raised when a stored path has no readable file on disk."""


class AssetExists(AssetError):
    """Raised when an exclusive write targets a path that already holds a file."""


class ReplaceInProgress(AssetError):
    """Raised when another replacement holds the same asset slot."""


class RemoteError(AssetError):
    """Base class for template deployment failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteDeleteFailed(RemoteError):
    """The remote deployment answered a delete request with a non-2xx status."""


class RemoteUploadFailed(RemoteError):
    """The remote deployment answered an upload with a non-2xx status."""


class RemoteUnreachable(RemoteError):
    """The remote deployment could not be contacted at all."""


class TemplateNotFound(AssetError):
    """Raised when a template id does not match any template row."""
