"""HTTP surface: routing, header identity, admin token, error mapping."""

import pytest
from fastapi.testclient import TestClient

from wallhub import config, db, media
from wallhub.config import Settings
from wallhub.main import app
from wallhub.models import CURATED

ADMIN = {"X-Admin-Token": "secret"}
ALICE = {"X-Actor-Id": "alice"}
BOB = {"X-Actor-Id": "bob"}


@pytest.fixture
def client(engine, sink, monkeypatch):
    monkeypatch.setattr(config, "_settings", Settings(admin_token="secret", max_page_limit=50))
    monkeypatch.setattr(db, "_engine", engine)
    media.set_media_sink(sink)
    yield TestClient(app)
    media.set_media_sink(None)


def _upload(client, headers=ALICE, **overrides):
    body = {
        "title": "Mountain View",
        "category": "Nature",
        "tags": "Peaks, Snow",
        "media_refs": [{"url": "https://res.cdn.test/demo/image/upload/v1/m.jpg", "storage_id": "wall/m"}],
    }
    body.update(overrides)
    return client.post("/content", json=body, headers=headers)


def test_health_and_ready(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").json() == {"status": "ready", "db": "ok"}


def test_workflow_states(client):
    assert client.get("/workflow/states").json() == {"states": ["pending", "approved", "rejected"]}


def test_upload_requires_actor(client):
    assert _upload(client, headers={}).status_code == 401


def test_upload_then_moderate_then_browse(client):
    created = _upload(client)
    assert created.status_code == 201
    item = created.json()
    assert item["state"] == "pending"
    assert item["owner"] == "alice"
    assert item["slug"] == "mountain-view"
    assert item["tags"] == ["peaks", "snow"]
    assert item["category"] == "nature"

    assert client.get("/content").json()["totalCount"] == 0

    pending = client.get("/admin/pending", headers=ADMIN).json()
    assert [i["id"] for i in pending["items"]] == [item["id"]]

    approved = client.post(f"/admin/content/{item['id']}/approve", headers=ADMIN)
    assert approved.status_code == 200
    assert approved.json()["is_approved"] is True

    listing = client.get("/content", params={"partition": "user"}).json()
    assert listing["totalCount"] == 1
    assert listing["totalPages"] == 1
    assert listing["page"] == 1


def test_admin_token_checks(client):
    assert client.get("/admin/pending").status_code == 401
    assert client.get("/admin/pending", headers={"X-Admin-Token": "nope"}).status_code == 403


def test_admin_closed_when_no_token_configured(client, monkeypatch):
    monkeypatch.setattr(config, "_settings", Settings())
    assert client.get("/admin/pending", headers=ADMIN).status_code == 403


def test_curated_upload(client):
    resp = client.post(
        "/admin/content",
        json={
            "title": "Aurora",
            "category": "Sky",
            "media_refs": [{"url": "https://res.cdn.test/demo/image/upload/v1/a.jpg", "storage_id": "wall/a"}],
        },
        headers=ADMIN,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["partition"] == CURATED
    assert body["owner"] == "admin"
    assert body["state"] == "approved"


def test_reject_deletes_media_and_record(client, sink):
    item = _upload(client).json()
    resp = client.delete(f"/admin/content/{item['id']}/reject", headers=ADMIN)
    assert resp.status_code == 204
    assert sink.deleted == ["wall/m"]
    assert client.get(f"/content/{item['id']}").status_code == 404


def test_engagement_endpoints(client):
    item = _upload(client).json()
    cid = item["id"]

    assert client.post(f"/content/{cid}/view", headers=BOB).json() == {"view_count": 1, "counted": True}
    assert client.post(f"/content/{cid}/view", headers=BOB).json() == {"view_count": 1, "counted": False}
    assert client.post(f"/content/{cid}/view").status_code == 401

    assert client.post(f"/content/{cid}/like", headers=BOB).json() == {"is_liked": True, "like_count": 1}
    assert [i["id"] for i in client.get("/me/likes", headers=BOB).json()["items"]] == [cid]

    download = client.get(f"/content/{cid}/download").json()
    assert download["download_count"] == 1
    assert "/upload/fl_attachment:Mountain_View/v1/m.jpg" in download["download_url"]


def test_owner_routes(client):
    item = _upload(client).json()
    cid = item["id"]

    mine = client.get("/me/content", headers=ALICE).json()
    assert [i["id"] for i in mine["items"]] == [cid]
    assert client.get(f"/me/content/{cid}", headers=BOB).status_code == 404

    assert client.patch(f"/me/content/{cid}", json={"title": "Hijack"}, headers=BOB).status_code == 403
    edited = client.patch(f"/me/content/{cid}", json={"title": "Summit"}, headers=ALICE).json()
    assert edited["title"] == "Summit"
    assert edited["slug"] == "mountain-view"

    assert client.delete(f"/me/content/{cid}", headers=BOB).status_code == 403
    assert client.delete(f"/me/content/{cid}", headers=ALICE).status_code == 204
    assert client.get(f"/content/{cid}").status_code == 404


def test_error_body_shape(client):
    resp = client.get("/content/not-a-uuid")
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidArgument"
    assert "detail" in resp.json()

    assert client.get("/content/search", params={"q": " "}).status_code == 400
    assert client.get("/content", params={"partition": "archive"}).status_code == 400


def test_huge_page_is_an_empty_page(client):
    resp = client.get("/content", params={"page": 10**18})
    assert resp.status_code == 200
    assert resp.json()["items"] == []


def test_limit_is_capped_by_settings(client):
    for i in range(3):
        client.post(
            "/admin/content",
            json={
                "title": f"Wall {i}",
                "category": "misc",
                "media_refs": [{"url": f"https://res.cdn.test/x/upload/{i}.jpg", "storage_id": f"w/{i}"}],
            },
            headers=ADMIN,
        )
    body = client.get("/content", params={"limit": 1000}).json()
    assert body["totalCount"] == 3
    assert body["totalPages"] == 1


def test_related_and_search(client):
    a = client.post(
        "/admin/content",
        json={
            "title": "Forest Path",
            "category": "nature",
            "tags": ["trees"],
            "media_refs": [{"url": "https://res.cdn.test/x/upload/f.jpg", "storage_id": "w/f"}],
        },
        headers=ADMIN,
    ).json()
    b = client.post(
        "/admin/content",
        json={
            "title": "Forest Lake",
            "category": "nature",
            "tags": ["trees", "water"],
            "media_refs": [{"url": "https://res.cdn.test/x/upload/l.jpg", "storage_id": "w/l"}],
        },
        headers=ADMIN,
    ).json()

    related = client.get(f"/content/{a['id']}/related").json()
    assert related["count"] == 1
    assert related["items"][0]["id"] == b["id"]

    found = client.get("/content/search", params={"q": "forest"}).json()
    assert [i["id"] for i in found["items"]] == [a["id"], b["id"]]
