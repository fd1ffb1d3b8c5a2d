import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from eventdesk.api.deps import UploadCaller, get_upload_caller
from eventdesk.api.uploads import router as uploads_router
from eventdesk.core.config import settings
from eventdesk.db.session import get_db
from eventdesk.models.asset import MirroredUpload
from eventdesk.models.event import Event, Template
from eventdesk.models.merchant import Merchant
from eventdesk.services.auth import MerchantSession
from eventdesk.services.storage import IncomingFile, LocalAssetStore, get_asset_store
from eventdesk.services.template_mirror import TemplateMirror, get_template_mirror

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
FEST_URL = "https://fest.example.com/"
MERCHANT = UploadCaller(session=MerchantSession(session_id="s-1", merchant_id=1, email="a@example.com", name="A"))


class RemoteStub:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.calls: list[tuple[str, str, str | None]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.url.host, request.url.path, request.headers.get("x-mirror-token")))
        return httpx.Response(self.status_code, json={"success": self.status_code < 300})

    @property
    def paths(self) -> list[str]:
        return [path for _host, path, _token in self.calls]


def build_client(
    tmp_path,
    db,
    remote: RemoteStub | None = None,
    caller: UploadCaller | None = None,
    token: str = "",
) -> TestClient:
    store = LocalAssetStore(tmp_path)
    mirror = TemplateMirror(timeout=1, token=token, transport=httpx.MockTransport(remote or RemoteStub()))

    async def _db():
        yield db

    app = FastAPI()
    app.include_router(uploads_router, prefix="/api")
    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_asset_store] = lambda: store
    app.dependency_overrides[get_template_mirror] = lambda: mirror
    if caller is not None:
        app.dependency_overrides[get_upload_caller] = lambda: caller
    client = TestClient(app)
    client.store = store
    return client


def test_upload_then_read_returns_identical_bytes(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)

    res = client.post(
        "/api/upload",
        files={"file": ("logo.png", PNG_BYTES, "image/png")},
        data={"folder": "merchant", "scope": "merchant"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["url"].startswith("/uploads/merchant/")
    assert body["url"].endswith("-logo.png")
    assert body["remote"] is None

    fetched = client.get("/api/upload", params={"file": body["url"]})
    assert fetched.status_code == 200
    assert fetched.content == PNG_BYTES
    assert fetched.headers["content-type"] == "image/png"
    assert fetched.headers["cache-control"] == "public, max-age=31536000, immutable"


def test_upload_rejects_non_image(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)

    res = client.post("/api/upload", files={"file": ("notes.txt", b"hello", "text/plain")})

    assert res.status_code == 400
    assert list(client.store.iter_files()) == []


def test_upload_without_file_is_rejected(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)

    res = client.post("/api/upload", data={"folder": "event"})

    assert res.status_code == 400


def test_upload_with_unknown_template_id_stores_nothing(tmp_path, fake_db) -> None:
    remote = RemoteStub()
    client = build_client(tmp_path, fake_db, remote, caller=MERCHANT)

    res = client.post(
        "/api/upload",
        files={"file": ("hero.png", PNG_BYTES, "image/png")},
        data={"folder": "event", "template_id": "99"},
    )

    assert res.status_code == 404
    assert list(client.store.iter_files()) == []
    assert remote.calls == []


def test_read_rejects_traversal(tmp_path, fake_db) -> None:
    (tmp_path / "secret.txt").write_text("nope")
    client = build_client(tmp_path, fake_db, caller=MERCHANT)

    res = client.get("/api/upload", params={"file": "/uploads/../secret.txt"})

    assert res.status_code == 400


def test_read_missing_file_is_404(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)

    res = client.get("/api/upload", params={"file": "/uploads/event/1-missing.png"})

    assert res.status_code == 404


def test_delete_file_is_idempotent(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)
    path = client.store.save("event", IncomingFile("a.png", "image/png", PNG_BYTES))

    first = client.post("/api/delete-file", json={"filePath": path})
    second = client.post("/api/delete-file", json={"filePath": path})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["success"] is True
    assert not client.store.exists(path)


def test_delete_file_refuses_another_merchants_asset(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)
    path = client.store.save("event", IncomingFile("hero.png", "image/png", PNG_BYTES))
    fake_db.results[Event] = [2]

    res = client.post("/api/delete-file", json={"filePath": path})

    assert res.status_code == 403
    assert client.store.exists(path)


def test_delete_file_refuses_asset_still_in_use(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)
    path = client.store.save("merchant", IncomingFile("logo.png", "image/png", PNG_BYTES))
    fake_db.results[Merchant] = [1]

    res = client.post("/api/delete-file", json={"filePath": path})

    assert res.status_code == 409
    assert client.store.exists(path)


def test_delete_file_keeps_local_copy_when_remote_fails(tmp_path, fake_db) -> None:
    fake_db.results[Template] = [FEST_URL]
    remote = RemoteStub(status_code=500)
    client = build_client(tmp_path, fake_db, remote, caller=MERCHANT)
    path = client.store.save("event", IncomingFile("a.png", "image/png", PNG_BYTES))

    res = client.post(
        "/api/delete-file",
        json={"filePath": path, "scope": "event", "templateUrl": "https://fest.example.com"},
    )

    assert res.status_code == 502
    assert client.store.exists(path)
    assert remote.paths == ["/api/delete-file"]


def test_delete_file_forwards_to_template_before_local_delete(tmp_path, fake_db) -> None:
    fake_db.rows[(Template, 5)] = Template(id=5, title="Fest", url=FEST_URL)
    remote = RemoteStub()
    client = build_client(tmp_path, fake_db, remote, caller=MERCHANT)
    path = client.store.save("event", IncomingFile("a.png", "image/png", PNG_BYTES))

    res = client.post("/api/delete-file", json={"filePath": path, "scope": "event", "templateId": 5})

    assert res.status_code == 200
    assert res.json()["remote"] == {"success": True}
    assert not client.store.exists(path)


def test_upload_forwards_to_registered_template(tmp_path, fake_db) -> None:
    fake_db.results[Template] = [FEST_URL]
    remote = RemoteStub()
    client = build_client(tmp_path, fake_db, remote, caller=MERCHANT, token="peer-secret")

    res = client.post(
        "/api/upload",
        files={"file": ("hero.png", PNG_BYTES, "image/png")},
        data={"folder": "event", "scope": "event", "template_url": "https://fest.example.com"},
    )

    assert res.status_code == 200
    assert remote.calls == [("fest.example.com", "/api/upload", "peer-secret")]
    assert res.json()["remote"] == {"success": True}


def test_upload_ignores_unregistered_template_url(tmp_path, fake_db) -> None:
    fake_db.results[Template] = [FEST_URL]
    remote = RemoteStub()
    client = build_client(tmp_path, fake_db, remote, caller=MERCHANT, token="peer-secret")

    res = client.post(
        "/api/upload",
        files={"file": ("hero.png", PNG_BYTES, "image/png")},
        data={"folder": "event", "template_url": "https://collector.example.net"},
    )
    deleted = client.post(
        "/api/delete-file",
        json={"filePath": res.json()["url"], "scope": "event", "templateUrl": "https://collector.example.net"},
    )

    assert res.status_code == 200
    assert res.json()["remote"] is None
    assert deleted.status_code == 200
    assert remote.calls == []


def test_upload_survives_failing_template(tmp_path, fake_db) -> None:
    fake_db.results[Template] = [FEST_URL]
    client = build_client(tmp_path, fake_db, RemoteStub(status_code=503), caller=MERCHANT)

    res = client.post(
        "/api/upload",
        files={"file": ("hero.png", PNG_BYTES, "image/png")},
        data={"folder": "event", "template_url": FEST_URL},
    )

    assert res.status_code == 200
    assert res.json()["remote"] is None
    assert client.store.exists(res.json()["url"])


def test_merchant_cannot_choose_file_name(tmp_path, fake_db) -> None:
    client = build_client(tmp_path, fake_db, caller=MERCHANT)
    victim = client.store.save("event", IncomingFile("v.png", "image/png", PNG_BYTES), file_name="1000-v.png")

    res = client.post(
        "/api/upload",
        files={"file": ("v.png", b"PWNED", "image/png")},
        data={"folder": "event", "file_name": "1000-v.png"},
    )

    assert res.status_code == 200
    assert res.json()["url"] != victim
    assert client.store.read(victim)[0] == PNG_BYTES


def test_mirror_caller_keeps_file_name_and_never_forwards(tmp_path, fake_db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "mirror_token", "peer-secret")
    fake_db.results[Template] = [FEST_URL]
    remote = RemoteStub()
    client = build_client(tmp_path, fake_db, remote)

    res = client.post(
        "/api/upload",
        files={"file": ("hero.png", PNG_BYTES, "image/png")},
        data={
            "folder": "event",
            "template_url": FEST_URL,
            "file_name": "1767323045678-hero.png",
        },
        headers={"X-Mirror-Token": "peer-secret"},
    )

    assert res.status_code == 200
    assert res.json()["url"] == "/uploads/event/1767323045678-hero.png"
    assert remote.calls == []
    assert [row.path for row in fake_db.added] == ["/uploads/event/1767323045678-hero.png"]


def test_mirror_caller_cannot_overwrite_existing_file(tmp_path, fake_db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "mirror_token", "peer-secret")
    client = build_client(tmp_path, fake_db)
    victim = client.store.save("event", IncomingFile("v.png", "image/png", PNG_BYTES), file_name="1000-v.png")

    res = client.post(
        "/api/upload",
        files={"file": ("v.png", b"PWNED", "image/png")},
        data={"folder": "event", "file_name": "1000-v.png"},
        headers={"X-Mirror-Token": "peer-secret"},
    )

    assert res.status_code == 409
    assert client.store.read(victim)[0] == PNG_BYTES
    assert fake_db.added == []


def test_mirror_delete_forgets_mirrored_record(tmp_path, fake_db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "mirror_token", "peer-secret")
    client = build_client(tmp_path, fake_db)
    path = client.store.save("event", IncomingFile("m.png", "image/png", PNG_BYTES), file_name="1-m.png")
    record = MirroredUpload(path=path)
    fake_db.results[MirroredUpload] = [record]

    res = client.post("/api/delete-file", json={"filePath": path}, headers={"X-Mirror-Token": "peer-secret"})

    assert res.status_code == 200
    assert not client.store.exists(path)
    assert fake_db.deleted == [record]


def test_wrong_mirror_token_is_rejected(tmp_path, fake_db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "mirror_token", "peer-secret")
    client = build_client(tmp_path, fake_db)

    res = client.post(
        "/api/delete-file",
        json={"filePath": "/uploads/event/1-a.png"},
        headers={"X-Mirror-Token": "guess"},
    )

    assert res.status_code == 401
