"""
tests/conftest.py
"""
from __future__ import annotations

import datetime as _dt
import itertools
import re
from types import SimpleNamespace
from typing import Any, Generator

import pytest
from botocore.exceptions import ClientError
from flask.testing import FlaskClient

# The single-file app lives here:
from remotework import blog
from remotework.blog import ADMIN_COOKIE, app, install_services, issue_admin_token
from remotework.clients import DatabaseError, MediaStore, QueryResult

ADMIN_EMAIL = "editor@remotework.test"
ADMIN_PASSWORD = "correct horse battery staple"
AUTH_SECRET = "test-secret"

MEDIA_BASE = "https://media.example.com"
MEDIA_CFG = {
    "R2_ACCOUNT_ID": "acct",
    "R2_ACCESS_KEY_ID": "access-key",
    "R2_SECRET_ACCESS_KEY": "very-secret",
    "R2_BUCKET": "blog-media",
    "R2_PUBLIC_BASE": MEDIA_BASE,
}


# ───────────────────────── in-memory database ─────────────────────────
_EMBED_RE = re.compile(r"\w+\s*\([^)]*\)")


def _same(a: Any, b: Any) -> bool:
    return str(a) == str(b)


class FakeQuery:
    """Mimics remotework.clients.Query against plain lists of dicts."""

    def __init__(self, db: "FakeDatabase", table: str):
        self.db = db
        self.table = table
        self.method = "GET"
        self.columns = "*"
        self.count_mode: str | None = None
        self.payload: Any = None
        self.filters: list = []
        self.orders: list[tuple[str, bool]] = []
        self.offset = 0
        self._limit: int | None = None
        self.text_queries: list[str] = []

    # shaping
    def select(self, columns: str = "*", *, count: str | None = None):
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, rows):
        self.method = "POST"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, values: dict):
        self.method = "PATCH"
        self.payload = values
        return self

    def delete(self):
        self.method = "DELETE"
        return self

    # filters
    def eq(self, col, value):
        self.filters.append(lambda r: _same(r.get(col), value))
        return self

    def neq(self, col, value):
        self.filters.append(lambda r: not _same(r.get(col), value))
        return self

    def gte(self, col, value):
        self.filters.append(lambda r: r.get(col) is not None and str(r[col]) >= str(value))
        return self

    def lte(self, col, value):
        self.filters.append(lambda r: r.get(col) is not None and str(r[col]) <= str(value))
        return self

    def overlaps(self, col, values):
        wanted = set(values)
        self.filters.append(lambda r: bool(wanted & set(r.get(col) or [])))
        return self

    def text_search(self, col, query, *, config="english", kind="websearch"):
        self.text_queries.append(query)
        words = query.lower().split()

        def match(r):
            hay = " ".join(
                str(r.get(k) or "") for k in ("title", "excerpt", "content")
            ).lower()
            return all(w in hay for w in words)

        self.filters.append(match)
        return self

    def order(self, col, *, desc=False):
        self.orders.append((col, desc))
        return self

    def range(self, start, end):
        self.offset = start
        self._limit = max(end - start + 1, 0)
        return self

    def limit(self, n):
        self._limit = n
        return self

    # running
    def _matches(self) -> list[dict]:
        rows = self.db.tables.setdefault(self.table, [])
        return [r for r in rows if all(f(r) for f in self.filters)]

    def _project(self, row: dict) -> dict:
        plain = _EMBED_RE.sub("", self.columns)
        cols = [c.strip() for c in plain.split(",") if c.strip()]
        out = dict(row) if not cols or "*" in cols else {c: row.get(c) for c in cols}
        if "authors(" in "".join(self.columns.split()):
            author = next(
                (
                    a
                    for a in self.db.tables.get("authors", [])
                    if _same(a["id"], row.get("author_id"))
                ),
                None,
            )
            out["authors"] = dict(author) if author else None
        return out

    def execute(self) -> QueryResult:
        self.db.calls.append((self.method, self.table))
        if self.table in self.db.fail_tables:
            raise DatabaseError(f"{self.method} {self.table}: boom")

        rows = self.db.tables.setdefault(self.table, [])
        if self.method == "POST":
            created = []
            for payload in self.payload:
                row = {
                    "id": str(next(self.db.ids)),
                    "created_at": _dt.datetime.now(_dt.timezone.utc).isoformat(),
                    **payload,
                }
                rows.append(row)
                created.append(self._project(row))
            return QueryResult(data=created)

        matched = self._matches()
        if self.method == "PATCH":
            for r in matched:
                r.update(self.payload)
            return QueryResult(data=[self._project(r) for r in matched])
        if self.method == "DELETE":
            for r in matched:
                rows.remove(r)
            return QueryResult(data=[dict(r) for r in matched])

        count = len(matched) if self.count_mode else None
        for col, desc in reversed(self.orders):
            matched.sort(key=lambda r: str(r.get(col) or ""), reverse=desc)
        end = None if self._limit is None else self.offset + self._limit
        page = matched[self.offset:end]
        return QueryResult(data=[self._project(r) for r in page], count=count)

    def first(self):
        res = self.limit(1).execute()
        return res.data[0] if res.data else None


class FakeDatabase:
    configured = True

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.ids = itertools.count(1)
        self.calls: list[tuple[str, str]] = []
        self.rpc_calls: list[tuple[str, dict]] = []
        self.fail_tables: set[str] = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, fn: str, params: dict | None = None):
        self.rpc_calls.append((fn, params or {}))
        if fn == "increment_view_count":
            for post in self.tables.get("blog_posts", []):
                if _same(post["id"], params["post_id"]):
                    post["view_count"] = post.get("view_count", 0) + 1
        return None


# ───────────────────────── fake S3 client ─────────────────────────────
class FakeS3:
    def __init__(self):
        self.objects: dict[str, dict] = {}
        self.fail = False

    def _maybe_fail(self, op: str) -> None:
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, op)

    def put_object(self, **kwargs):
        self._maybe_fail("PutObject")
        self.objects[kwargs["Key"]] = kwargs
        return {}

    def delete_object(self, **kwargs):
        self._maybe_fail("DeleteObject")
        self.objects.pop(kwargs["Key"], None)
        return {}


# ───────────────────────── fixtures ───────────────────────────────────
@pytest.fixture(scope="session", autouse=True)
def _configure_app() -> None:
    """
    Configure the Flask app *once* before the first test is collected.
    """
    app.config.update(
        TESTING=True,
        ADMIN_EMAIL=ADMIN_EMAIL,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        AUTH_SECRET=AUTH_SECRET,
        SITE_URL="https://remotework.test",
        GA_MEASUREMENT_ID="",
        COOKIE_SECURE=False,
        # rate limit gets its own tests
        API_RATE_LIMIT=100_000,
    )


@pytest.fixture(autouse=True)
def services() -> Generator[SimpleNamespace, None, None]:
    """Fresh fake database + bucket for every test."""
    old_db = app.extensions["remotework.db"]
    old_media = app.extensions["remotework.media"]

    db = FakeDatabase()
    s3 = FakeS3()
    media = MediaStore(MEDIA_CFG, client=s3)
    install_services(app, db=db, media=media)
    blog._api_hits.clear()

    yield SimpleNamespace(db=db, s3=s3, media=media)

    install_services(app, db=old_db, media=old_media)


@pytest.fixture
def db(services) -> FakeDatabase:
    return services.db


@pytest.fixture
def client() -> Generator[FlaskClient, None, None]:
    """
    Gives each test an isolated application context *and* test client.
    """
    with app.test_client() as client:
        with app.app_context():
            yield client


@pytest.fixture
def admin_client(client: FlaskClient) -> FlaskClient:
    """Test client carrying a freshly signed admin cookie."""
    client.set_cookie(ADMIN_COOKIE, issue_admin_token(ADMIN_EMAIL))
    return client


@pytest.fixture
def make_author(db: FakeDatabase):
    def _make(**fields) -> dict:
        row = {
            "id": str(next(db.ids)),
            "name": "Alex Johnson",
            "bio": "Remote work consultant.",
            "avatar": "/static/images/author-avatar.svg",
            "twitter": None,
            "linkedin": None,
            "website": None,
            **fields,
        }
        db.tables.setdefault("authors", []).append(row)
        return row

    return _make


@pytest.fixture
def make_post(db: FakeDatabase, make_author):
    """Insert a post row; each new post is published one day after the last."""
    day = itertools.count()
    state: dict[str, dict] = {}

    def _make(**fields) -> dict:
        if "author" not in state:
            state["author"] = make_author()
        n = next(day)
        published = _dt.datetime(2024, 1, 1, tzinfo=_dt.timezone.utc) + _dt.timedelta(days=n)
        row = {
            "id": str(next(db.ids)),
            "title": f"Post number {n}",
            "slug": f"post-{n}",
            "excerpt": "A short excerpt about remote work.",
            "content": "Some words about remote work " * 20,
            "featured_image": None,
            "category": "Productivity",
            "tags": ["remote work"],
            "featured": False,
            "status": "published",
            "reading_time": 1,
            "author_id": state["author"]["id"],
            "published_at": published.isoformat(),
            "created_at": published.isoformat(),
            **fields,
        }
        db.tables.setdefault("blog_posts", []).append(row)
        return row

    return _make
