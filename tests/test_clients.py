"""
tests/test_clients.py
"""
from __future__ import annotations

import json

import pytest
import requests

from conftest import MEDIA_CFG, FakeS3
from remotework.blog import search_posts
from remotework.clients import (
    DatabaseError,
    MediaError,
    MediaStore,
    RestDatabase,
    media_status,
    parse_content_range,
)


# ───────────────────────── helpers ────────────────────────────────────
class RecordingSession:
    """Stands in for requests.Session; answers every call with *reply*."""

    def __init__(self, data=None, *, status=200, content_range=None, exc=None):
        self.headers: dict[str, str] = {}
        self.calls: list[dict] = []
        self.data = [] if data is None else data
        self.status = status
        self.content_range = content_range
        self.exc = exc

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.exc:
            raise self.exc
        resp = requests.Response()
        resp.status_code = self.status
        resp._content = json.dumps(self.data).encode()
        if self.content_range:
            resp.headers["Content-Range"] = self.content_range
        return resp


def _db(session) -> RestDatabase:
    return RestDatabase("https://db.example.com/", "service-key", session=session)


# ───────────────────────── database gateway ───────────────────────────
def test_auth_headers():
    session = RecordingSession()
    _db(session)
    assert session.headers["apikey"] == "service-key"
    assert session.headers["Authorization"] == "Bearer service-key"


def test_select_builds_filters():
    session = RecordingSession([{"id": 1}])
    db = _db(session)
    res = db.table("blog_posts").select("id, title").eq("status", "published").eq(
        "featured", True
    ).order("published_at", desc=True).limit(3).execute()

    assert res.data == [{"id": 1}]
    (call,) = session.calls
    assert call["method"] == "GET"
    assert call["url"] == "https://db.example.com/rest/v1/blog_posts"
    assert call["params"] == [
        ("select", "id,title"),
        ("status", "eq.published"),
        ("featured", "eq.true"),
        ("order", "published_at.desc"),
        ("limit", "3"),
    ]
    assert call["headers"] == {}


def test_search_query_shape():
    session = RecordingSession([], content_range="0-9/42")
    posts, total = search_posts(
        db=_db(session), q="remote tips", category="Wellness", tags=["a b", "c"],
        limit=10, offset=20,
    )
    assert posts == []
    assert total == 42
    (call,) = session.calls
    params = call["params"]
    assert ("search_vector", "wfts(english).remote tips") in params
    assert ("category", "eq.Wellness") in params
    assert ("tags", 'ov.{"a b","c"}') in params
    assert ("order", "published_at.desc") in params
    assert ("offset", "20") in params
    assert ("limit", "10") in params
    assert call["headers"] == {"Prefer": "count=exact"}


def test_all_category_is_not_sent():
    session = RecordingSession([], content_range="*/0")
    search_posts(db=_db(session), q="x", category="All")
    assert not any(k == "category" for k, _ in session.calls[0]["params"])


def test_insert_asks_for_representation():
    session = RecordingSession([{"id": 9, "name": "Sam"}])
    res = _db(session).table("authors").insert({"name": "Sam"}).execute()
    assert res.data[0]["id"] == 9
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"] == [{"name": "Sam"}]
    assert call["headers"] == {"Prefer": "return=representation"}


def test_update_and_delete_methods():
    session = RecordingSession([])
    db = _db(session)
    db.table("blog_posts").update({"title": "x"}).eq("id", 1).execute()
    db.table("blog_posts").delete().eq("id", 1).execute()
    assert [c["method"] for c in session.calls] == ["PATCH", "DELETE"]
    assert session.calls[0]["params"] == [("id", "eq.1")]


def test_first_returns_none_when_empty():
    assert _db(RecordingSession([])).table("t").select().first() is None


def test_rpc():
    session = RecordingSession(None)
    _db(session).rpc("increment_view_count", {"post_id": 5})
    call = session.calls[0]
    assert call["url"] == "https://db.example.com/rest/v1/rpc/increment_view_count"
    assert call["json"] == {"post_id": 5}


def test_http_error_raises():
    session = RecordingSession({"message": "nope"}, status=500)
    with pytest.raises(DatabaseError):
        _db(session).table("t").select().execute()


def test_transport_error_raises():
    session = RecordingSession(exc=requests.ConnectionError("down"))
    with pytest.raises(DatabaseError):
        _db(session).table("t").select().execute()


def test_unconfigured_raises_without_network():
    session = RecordingSession()
    db = RestDatabase("", "", session=session)
    with pytest.raises(DatabaseError):
        db.table("t").select().execute()
    assert session.calls == []


@pytest.mark.parametrize("header,total", [
    ("0-9/42", 42), ("*/0", 0), ("0-9/*", None), (None, None),
])
def test_parse_content_range(header, total):
    assert parse_content_range(header) == total


# ───────────────────────── media bucket ───────────────────────────────
def test_image_url_transforms_owned_images():
    media = MediaStore(MEDIA_CFG, client=FakeS3())
    src = "https://media.example.com/blog-images/a.jpg"
    assert media.owns(src)
    assert media.image_url(src, width=800) == (
        "https://media.example.com/cdn-cgi/image/width=800,quality=auto,format=auto/blog-images/a.jpg"
    )
    assert media.image_url(src, width=1200, height=630, fit="cover").startswith(
        "https://media.example.com/cdn-cgi/image/width=1200,height=630,fit=cover,"
    )


def test_image_url_leaves_foreign_urls_alone():
    media = MediaStore(MEDIA_CFG, client=FakeS3())
    for src in ("https://elsewhere.com/x.jpg", "/static/images/author-avatar.jpg",
                "https://media.example.com.evil.io/x.jpg"):
        assert media.image_url(src, width=100) == src
        assert media.srcset(src, (100, 200)) == ""


def test_srcset():
    media = MediaStore(MEDIA_CFG, client=FakeS3())
    out = media.srcset("https://media.example.com/k.png", (320, 640))
    parts = out.split(", ")
    assert len(parts) == 2
    assert parts[0].endswith(" 320w")
    assert "width=640" in parts[1]


def test_public_url_falls_back_to_bucket_host():
    cfg = {k: v for k, v in MEDIA_CFG.items() if k != "R2_PUBLIC_BASE"}
    media = MediaStore(cfg)
    assert media.public_url("k.png") == "https://blog-media.acct.r2.cloudflarestorage.com/k.png"


def test_bucket_errors_become_media_errors():
    s3 = FakeS3()
    s3.fail = True
    media = MediaStore(MEDIA_CFG, client=s3)
    with pytest.raises(MediaError):
        media.upload("k", b"x", "image/png")
    with pytest.raises(MediaError):
        media.delete("k")


def test_unconfigured_store():
    media = MediaStore({"R2_BUCKET": "b"})
    assert not media.is_configured()
    with pytest.raises(MediaError):
        media.client


def test_media_status_reports_presence_only():
    report = media_status(MEDIA_CFG)
    assert report == {
        "R2_ACCOUNT_ID": "Set",
        "R2_ACCESS_KEY_ID": "Set",
        "R2_SECRET_ACCESS_KEY": "Set",
        "R2_BUCKET": "Set",
        "R2_PUBLIC_BASE": "Set",
        "bucket": "blog-media",
    }
    assert media_status({})["R2_BUCKET"] == "Missing"
