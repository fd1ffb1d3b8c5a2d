from datetime import datetime, timezone

import pytest

from eventdesk.services.exceptions import InvalidAssetPath, InvalidFile, LocalFileNotFound
from eventdesk.services.storage import (
    IncomingFile,
    LocalAssetStore,
    build_filename,
    guess_content_type,
    sanitize_filename,
    validate_image,
)


def test_guess_content_type_by_extension() -> None:
    assert guess_content_type("/uploads/event/a.jpg") == "image/jpeg"
    assert guess_content_type("/uploads/event/a.JPEG") == "image/jpeg"
    assert guess_content_type("logo.png") == "image/png"
    assert guess_content_type("anim.gif") == "image/gif"
    assert guess_content_type("hero.webp") == "image/webp"
    assert guess_content_type("notes.txt") == "application/octet-stream"
    assert guess_content_type("no-extension") == "application/octet-stream"


def test_build_filename_is_timestamp_prefixed() -> None:
    now = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    assert build_filename("venue.jpg", now) == f"{int(now.timestamp() * 1000)}-venue.jpg"


def test_sanitize_filename_drops_directories_and_unsafe_chars() -> None:
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("C:\\tmp\\my photo.png") == "my-photo.png"
    assert sanitize_filename(".hidden") == "hidden"
    assert sanitize_filename("") == "file"


def test_validate_image_rejects_wrong_type_and_size() -> None:
    with pytest.raises(InvalidFile):
        validate_image(IncomingFile("a.txt", "text/plain", b"x"), max_bytes=10)
    with pytest.raises(InvalidFile):
        validate_image(IncomingFile("a.png", "image/png", b"x" * 11), max_bytes=10)
    with pytest.raises(InvalidFile):
        validate_image(IncomingFile("a.png", "image/png", b""), max_bytes=10)
    validate_image(IncomingFile("a.png", "image/png", b"x" * 10), max_bytes=10)


def test_resolve_rejects_paths_outside_uploads(tmp_path) -> None:
    store = LocalAssetStore(tmp_path)
    with pytest.raises(InvalidAssetPath):
        store.resolve("/uploads/../secret.txt")
    with pytest.raises(InvalidAssetPath):
        store.resolve("/placeholder.png")
    with pytest.raises(InvalidAssetPath):
        store.resolve("/uploads")
    assert store.resolve("/uploads/event/a.png") == tmp_path.resolve() / "uploads" / "event" / "a.png"


def test_save_read_delete(tmp_path) -> None:
    store = LocalAssetStore(tmp_path)
    path = store.save("merchant", IncomingFile("logo.png", "image/png", b"\x89PNG"))

    assert path.startswith("/uploads/merchant/")
    assert path.endswith("-logo.png")
    assert store.read(path) == (b"\x89PNG", "image/png")

    assert store.delete(path) is True
    assert store.delete(path) is False
    with pytest.raises(LocalFileNotFound):
        store.read(path)


def test_save_rejects_bad_folder(tmp_path) -> None:
    store = LocalAssetStore(tmp_path)
    with pytest.raises(InvalidAssetPath):
        store.save("../escape", IncomingFile("a.png", "image/png", b"x"))


def test_iter_files_lists_relative_paths(tmp_path) -> None:
    store = LocalAssetStore(tmp_path)
    assert list(store.iter_files()) == []
    path = store.save("event", IncomingFile("a.png", "image/png", b"x"), file_name="1-a.png")
    assert [p for p, _mtime in store.iter_files()] == [path]
