#!/usr/bin/env python3
"""
RemoteWork – a single-module content blog.

Pages are rendered server-side from template strings; the JSON API under
/api/ talks to the hosted database gateway and the media bucket through
the handles in ``remotework.clients``.
"""

import json
import logging
import math
import os
import re
import secrets
import uuid
from collections import Counter, defaultdict, deque
from datetime import datetime, timedelta, timezone
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from time import time
from typing import DefaultDict, Literal
from urllib.parse import quote
from xml.sax.saxutils import escape as xml_escape

import click
import markdown
from flask import (
    Flask,
    Response,
    abort,
    current_app,
    jsonify,
    redirect,
    render_template_string,
    request,
    url_for,
)
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from markupsafe import Markup
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.utils import secure_filename

from remotework.clients import (
    R2_ENV_KEYS,
    DatabaseError,
    MediaError,
    MediaStore,
    RestDatabase,
    UpstreamError,
    media_status,
)
from remotework.seed_data import JOB_LISTINGS, JOB_TYPES, SAMPLE_AUTHOR, SAMPLE_POSTS

################################################################################
# Imports & constants
################################################################################

ROOT = Path(__file__).parent
ENV_FILE = ROOT / ".env"
SECRET_FILE = ROOT / ".secret_key"

SITE_NAME_DEFAULT = "RemoteWork"
SITE_URL_DEFAULT = "https://remotework.com"
SITE_DESCRIPTION = (
    "Your trusted resource for remote work tips, productivity strategies, "
    "and the latest opportunities in the distributed work landscape."
)
DEFAULT_KEYWORDS = ["remote work", "productivity", "work from home", "distributed teams"]

ADMIN_COOKIE = "admin-token"
ADMIN_TOKEN_TTL = 24 * 60 * 60  # seconds

POST_TABLE = "blog_posts"
AUTHOR_COLUMNS = "id, name, bio, avatar, twitter, linkedin, website"
POST_SELECT = f"*, authors ({AUTHOR_COLUMNS})"
COMMENT_PUBLIC_COLUMNS = "id, post_id, parent_id, author, content, created_at"
CATEGORY_ALL = "All"  # "no category filter"

SEARCH_LIMIT_DEFAULT = 10
SEARCH_LIMIT_MAX = 50
BLOG_PAGE_SIZE = 9
WORDS_PER_MINUTE = 200

UPLOAD_PREFIX = "blog-images"
UPLOAD_MAX_BYTES = 5 * 1024 * 1024  # 5 MiB
IMAGE_MIMES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}
DEFAULT_AVATAR = "/static/images/default-avatar.svg"

UNIQUE_VIEW_WINDOW = timedelta(hours=1)
ANALYTICS_MAX_ROWS = 1000
ANALYTICS_MAX_DAYS = 90

SPAM_KEYWORDS = ("viagra", "casino", "lottery", "winner", "click here", "free money")
SPAM_EMAIL_HINTS = ("temp", "fake", "spam")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LINK_RE = re.compile(r"https?://")

CACHE_POSTS = "public, s-maxage=3600, stale-while-revalidate=86400"
CACHE_SEARCH = "public, s-maxage=300, stale-while-revalidate=600"
CACHE_JOBS = "public, s-maxage=1800, stale-while-revalidate=3600"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

IMAGE_WIDTHS = {
    "hero": (320, 768, 1024, 1280, 1920),
    "content": (320, 640, 800, 1200),
    "thumbnail": (150, 300, 600),
}
IMAGE_SIZES = {
    "hero": "(max-width: 320px) 320px, (max-width: 768px) 768px, (max-width: 1024px) 1024px, (max-width: 1280px) 1280px, 1920px",
    "content": "(max-width: 320px) 320px, (max-width: 768px) 768px, (max-width: 1024px) 800px, 1200px",
    "thumbnail": "(max-width: 320px) 150px, (max-width: 768px) 200px, 300px",
}

MD_EXTENSIONS = [
    "pymdownx.extra",
    "pymdownx.magiclink",
    "pymdownx.tilde",
    "pymdownx.superfences",
    "pymdownx.saneheaders",
    "toc",
]


def _read_env_file() -> dict[str, str]:
    env = {}
    if not ENV_FILE.exists():
        return env
    for ln in ENV_FILE.read_text().splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#") or "=" not in ln:
            continue
        k, v = ln.split("=", 1)
        env[k.strip()] = v.strip()
    return env


_ENV_FILE_VALUES = _read_env_file()


def env(key: str, default: str = "") -> str:
    """Process environment first, then .env, then *default*."""
    return (os.environ.get(key) or _ENV_FILE_VALUES.get(key) or default).strip()


def _auth_secret() -> str:
    configured = env("AUTH_SECRET")
    if configured:
        return configured
    if SECRET_FILE.exists():
        return SECRET_FILE.read_text().strip()
    secret = secrets.token_hex(32)
    try:
        SECRET_FILE.write_text(secret)
        SECRET_FILE.chmod(0o600)
    except OSError:
        pass  # read-only install: tokens just won't survive a restart
    return secret


try:
    __version__ = version("remotework-blog")
except PackageNotFoundError:
    __version__ = "0.1.0-dev"


################################################################################
# App + services
################################################################################
AUTH_SECRET = _auth_secret()

app = Flask(__name__)
app.url_map.strict_slashes = False
app.config.update(
    SECRET_KEY=AUTH_SECRET,
    AUTH_SECRET=AUTH_SECRET,
    SITE_NAME=env("SITE_NAME", SITE_NAME_DEFAULT),
    SITE_URL=env("SITE_URL", SITE_URL_DEFAULT).rstrip("/"),
    ADMIN_EMAIL=env("ADMIN_EMAIL"),
    ADMIN_PASSWORD=env("ADMIN_PASSWORD"),
    SUPABASE_URL=env("SUPABASE_URL"),
    SUPABASE_SERVICE_KEY=env("SUPABASE_SERVICE_KEY"),
    DB_TIMEOUT=float(env("DB_TIMEOUT", "10")),
    GA_MEASUREMENT_ID=env("GA_MEASUREMENT_ID"),
    API_RATE_LIMIT=int(env("API_RATE_LIMIT", "100")),
    API_RATE_WINDOW=int(env("API_RATE_WINDOW", "900")),
    COOKIE_SECURE=env("COOKIE_SECURE", "1") != "0",
    # multipart overhead on top of the 5 MiB image cap
    MAX_CONTENT_LENGTH=16 * 1024 * 1024,
    **{k: env(k) for k in R2_ENV_KEYS},
)
app.logger.setLevel(getattr(logging, env("LOG_LEVEL", "INFO").upper(), logging.INFO))
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)


def build_services(cfg) -> tuple[RestDatabase, MediaStore]:
    db = RestDatabase(
        cfg["SUPABASE_URL"], cfg["SUPABASE_SERVICE_KEY"], timeout=cfg["DB_TIMEOUT"]
    )
    media = MediaStore({k: cfg.get(k, "") for k in R2_ENV_KEYS})
    if not db.configured:
        app.logger.warning("SUPABASE_URL / SUPABASE_SERVICE_KEY not set – database calls will fail")
    if not media.is_configured():
        app.logger.warning("R2 credentials not set – image uploads are disabled")
    return db, media


def install_services(flask_app: Flask, *, db, media) -> None:
    """Park the service handles on the app; views only see them via get_db()/get_media()."""
    flask_app.extensions["remotework.db"] = db
    flask_app.extensions["remotework.media"] = media


def get_db() -> RestDatabase:
    return current_app.extensions["remotework.db"]


def get_media() -> MediaStore:
    return current_app.extensions["remotework.media"]


_db, _media = build_services(app.config)
install_services(app, db=_db, media=_media)


################################################################################
# Request bodies
################################################################################
class _Body(BaseModel):
    model_config = ConfigDict(extra="forbid")


class LoginIn(_Body):
    email: str = ""
    password: str = ""


class AuthorIn(_Body):
    name: str = Field(default="", validate_default=True)
    bio: str | None = None
    avatar: str | None = None
    twitter: str | None = None
    linkedin: str | None = None
    website: str | None = None

    @field_validator("name")
    @classmethod
    def _name_min_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Author name must be at least 2 characters long")
        return v


class PostIn(_Body):
    title: str = ""
    slug: str | None = None
    excerpt: str = ""
    content: str = ""
    featured_image: str | None = None
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    author_id: str | int | None = None
    status: Literal["draft", "published"] | None = None
    featured: bool = False
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: list[str] = Field(default_factory=list)


class CommentIn(_Body):
    postId: str | int | None = None
    author: str = ""
    email: str = ""
    content: str = ""
    parentId: str | int | None = None


class AnalyticsEventIn(_Body):
    name: str | None = None
    action: str | None = None
    category: str | None = None
    label: str | None = None
    value: float | None = None
    id: str | None = None
    url: str | None = None
    timestamp: float | None = None  # ms since epoch, as the browser sends it


class AdminUser(BaseModel):
    email: str
    role: str


def parse_body(model: type[_Body]) -> _Body:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return model.model_validate(data)


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    if err.get("type") == "value_error":
        return str(err["ctx"]["error"])
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


################################################################################
# Small helpers
################################################################################
def utc_now() -> datetime:
    """Return an *aware* datetime in UTC."""
    return datetime.now(timezone.utc)


def client_ip() -> str:
    """Peer address as rewritten by ProxyFix (one trusted hop)."""
    return request.remote_addr or "unknown"


def api_error(message: str, status: int):
    return {"error": message}, status


def cors_preflight() -> Response:
    return Response(status=200, headers=CORS_HEADERS)


def with_cache(payload, cache_control: str) -> Response:
    resp = jsonify(payload)
    resp.headers["Cache-Control"] = cache_control
    return resp


def int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        abort(400, description=f"'{name}' must be an integer")


def split_tags(raw: str | None) -> list[str]:
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def generate_slug(text: str | None) -> str:
    slug = re.sub(r"[^\w\s-]", "", (text or "").lower()).strip()
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def reading_time(content: str | None) -> int:
    words = len((content or "").split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def render_markdown(text: str | None) -> Markup:
    return Markup(markdown.markdown(text or "", extensions=MD_EXTENSIONS))


def new_upload_name(original: str, mime: str) -> str:
    """``<ms-timestamp>-<random>.<ext>`` – never reuses the client's name."""
    ext = Path(secure_filename(original or "")).suffix.lower() or IMAGE_MIMES.get(mime, "")
    return f"{int(time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"


def shape_post(row: dict) -> dict:
    """Database row (with joined ``authors``) → public BlogPost shape."""
    author = row.get("authors") or {}
    return {
        "id": row.get("id"),
        "title": row.get("title") or "",
        "slug": row.get("slug") or "",
        "excerpt": row.get("excerpt") or "",
        "content": row.get("content") or "",
        "featuredImage": row.get("featured_image") or "",
        "category": row.get("category") or "",
        "tags": row.get("tags") or [],
        "author": {
            "name": author.get("name") or "",
            "bio": author.get("bio") or "",
            "avatar": author.get("avatar") or DEFAULT_AVATAR,
            "social": {
                "twitter": author.get("twitter"),
                "linkedin": author.get("linkedin"),
                "website": author.get("website"),
            },
        },
        "publishedAt": row.get("published_at"),
        "readingTime": row.get("reading_time") or reading_time(row.get("content")),
        "featured": bool(row.get("featured")),
    }


def post_errors(body: PostIn, *, require_author: bool) -> list[str]:
    errors = []
    if len(body.title.strip()) < 3:
        errors.append("Title must be at least 3 characters long")
    if len(body.excerpt.strip()) < 10:
        errors.append("Excerpt must be at least 10 characters long")
    if len(body.content.strip()) < 50:
        errors.append("Content must be at least 50 characters long")
    if not body.category.strip():
        errors.append("Category is required")
    if require_author and body.author_id in (None, ""):
        errors.append("Author ID is required")
    return errors


def post_row(body: PostIn, *, slug: str) -> dict:
    title = body.title.strip()
    excerpt = body.excerpt.strip()
    return {
        "title": title,
        "slug": slug,
        "excerpt": excerpt,
        "content": body.content.strip(),
        "featured_image": body.featured_image or None,
        "category": body.category.strip(),
        "tags": [t.strip() for t in body.tags if t.strip()],
        "featured": body.featured,
        "reading_time": reading_time(body.content),
        "seo_title": body.seo_title or title,
        "seo_description": body.seo_description or excerpt,
        "seo_keywords": body.seo_keywords,
    }


def is_spam(content: str, email: str) -> bool:
    text = content.lower()
    if any(k in text for k in SPAM_KEYWORDS):
        return True
    if len(LINK_RE.findall(content)) > 2:
        return True
    return any(h in email.lower() for h in SPAM_EMAIL_HINTS)


def thread_comments(rows: list[dict]) -> list[dict]:
    """Flat rows (oldest first) → root comments with nested ``replies``."""
    by_id = {r["id"]: {**r, "replies": []} for r in rows}
    roots = []
    for r in rows:
        node = by_id[r["id"]]
        parent_id = r.get("parent_id")
        if not parent_id:
            roots.append(node)
        elif parent_id in by_id:
            by_id[parent_id]["replies"].append(node)
    return roots


def filter_jobs(
    *, q: str | None = None, remote: bool = False, job_type: str | None = None
) -> list[dict]:
    jobs = list(JOB_LISTINGS)
    if q:
        needle = q.lower()
        jobs = [
            j
            for j in jobs
            if needle in j["title"].lower()
            or needle in j["company"].lower()
            or needle in j["location"].lower()
        ]
    if remote:
        jobs = [j for j in jobs if j["remote"]]
    if job_type:
        jobs = [j for j in jobs if j["type"].lower() == job_type.lower()]
    return sorted(jobs, key=lambda j: j["postedAt"], reverse=True)


# ── analytics roll-ups ────────────────────────────────────────────────
def top_pages(events: list[dict], n: int = 10) -> list[dict]:
    views = Counter(
        e["page_url"]
        for e in events
        if e.get("page_url")
        and (e.get("event_name") == "view_blog_post" or e.get("event_category") == "Blog")
    )
    return [{"url": url, "views": c} for url, c in views.most_common(n)]


def events_by_type(events: list[dict]) -> list[dict]:
    counts = Counter(e["event_name"] for e in events if e.get("event_name"))
    return [{"name": name, "count": c} for name, c in counts.most_common()]


def daily_stats(events: list[dict], days: int, *, today=None) -> list[dict]:
    """One bucket per day for the last *days* days, oldest first."""
    today = today or utc_now().date()
    buckets: dict[str, dict] = {}
    for i in range(days):
        day = (today - timedelta(days=i)).isoformat()
        buckets[day] = {"date": day, "events": 0, "pages": set()}

    for e in events:
        ts = e.get("timestamp") or e.get("created_at")
        if not ts:
            continue
        bucket = buckets.get(str(ts)[:10])
        if bucket is None:
            continue
        bucket["events"] += 1
        if e.get("page_url"):
            bucket["pages"].add(e["page_url"])

    return [
        {"date": b["date"], "events": b["events"], "uniquePages": len(b["pages"])}
        for b in reversed(list(buckets.values()))
    ]


################################################################################
# Database queries
################################################################################
def published_posts(
    *, db, category: str | None = None, featured: bool = False, limit: int | None = None
) -> list[dict]:
    q = db.table(POST_TABLE).select(POST_SELECT).eq("status", "published")
    if category:
        q = q.eq("category", category)
    if featured:
        q = q.eq("featured", True)
    q = q.order("published_at", desc=True)
    if limit:
        q = q.limit(limit)
    return [shape_post(r) for r in q.execute().data]


def search_posts(
    *,
    db,
    q: str = "",
    category: str = "",
    tags: list[str] | tuple = (),
    limit: int = SEARCH_LIMIT_DEFAULT,
    offset: int = 0,
) -> tuple[list[dict], int]:
    """
    One page of published posts, newest first, plus the total hit count.

    * *q*        – provider full-text match (websearch syntax, English)
    * *category* – exact match; the ``"All"`` sentinel means no filter
    * *tags*     – overlap with the post's tag array
    """
    query = (
        db.table(POST_TABLE)
        .select(POST_SELECT, count="exact")
        .eq("status", "published")
    )
    if q:
        query = query.text_search("search_vector", q, config="english", kind="websearch")
    if category and category != CATEGORY_ALL:
        query = query.eq("category", category)
    if tags:
        query = query.overlaps("tags", list(tags))
    query = query.order("published_at", desc=True).range(offset, offset + limit - 1)

    res = query.execute()
    return [shape_post(r) for r in res.data], res.count or 0


def post_by_slug(slug: str, *, db) -> dict | None:
    row = (
        db.table(POST_TABLE)
        .select(POST_SELECT)
        .eq("slug", slug)
        .eq("status", "published")
        .first()
    )
    return shape_post(row) if row else None


def post_categories(*, db) -> list[tuple[str, int]]:
    rows = db.table(POST_TABLE).select("category").eq("status", "published").execute().data
    counts = Counter(r["category"] for r in rows if r.get("category"))
    return sorted(counts.items())


def related_posts(post: dict, *, db, n: int = 3) -> list[dict]:
    same = published_posts(db=db, category=post["category"], limit=n + 1)
    return [p for p in same if p["id"] != post["id"]][:n]


def approved_comments(post_id, *, db) -> list[dict]:
    return (
        db.table("comments")
        .select(COMMENT_PUBLIC_COLUMNS)
        .eq("post_id", post_id)
        .eq("status", "approved")
        .order("created_at")
        .execute()
        .data
    )


def record_event(row: dict, *, db) -> None:
    """Store one analytics row; storage trouble never fails the request."""
    if not getattr(db, "configured", True):
        return
    try:
        db.table("analytics_events").insert(row).execute()
    except DatabaseError:
        app.logger.exception("analytics insert failed")


def analytics_insights(*, db, days: int, event: str | None = None) -> dict:
    since = (utc_now() - timedelta(days=days)).isoformat()
    q = (
        db.table("analytics_events")
        .select("*")
        .gte("timestamp", since)
        .order("timestamp", desc=True)
    )
    if event:
        q = q.eq("event_name", event)
    events = q.limit(ANALYTICS_MAX_ROWS).execute().data
    return {
        "totalEvents": len(events),
        "uniquePages": len({e.get("page_url") for e in events if e.get("page_url")}),
        "topPages": top_pages(events),
        "eventsByType": events_by_type(events),
        "dailyStats": daily_stats(events, days),
    }


################################################################################
# Authentication
################################################################################
def _token_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["AUTH_SECRET"], salt="admin-token")


def issue_admin_token(email: str) -> str:
    now = int(time())
    return _token_serializer().dumps(
        {"email": email, "role": "admin", "iat": now, "exp": now + ADMIN_TOKEN_TTL}
    )


def read_admin_token(token: str | None) -> AdminUser | None:
    """
    • Signature + age (24 h) in one step.
    • The embedded ``exp`` must still be in the future.
    """
    if not token:
        return None
    try:
        payload = _token_serializer().loads(token, max_age=ADMIN_TOKEN_TTL)
    except SignatureExpired:
        return None  # too old ➜ invalid
    except BadSignature:
        return None  # forged ➜ invalid

    if not isinstance(payload, dict) or payload.get("exp", 0) <= time():
        return None
    try:
        user = AdminUser.model_validate(
            {"email": payload.get("email"), "role": payload.get("role")}
        )
    except ValidationError:
        return None
    return user if user.role == "admin" else None


def current_admin() -> AdminUser | None:
    # one lookup per request
    if "remotework.admin" not in request.environ:
        request.environ["remotework.admin"] = read_admin_token(
            request.cookies.get(ADMIN_COOKIE)
        )
    return request.environ["remotework.admin"]


def admin_required() -> AdminUser:
    user = current_admin()
    if user is None:
        abort(401, description="Unauthorized")
    return user


def _credentials_match(email: str, password: str) -> bool:
    want_email = current_app.config.get("ADMIN_EMAIL") or ""
    want_password = current_app.config.get("ADMIN_PASSWORD") or ""
    if not want_email or not want_password:
        return False
    email_ok = secrets.compare_digest(email.encode(), want_email.encode())
    password_ok = secrets.compare_digest(password.encode(), want_password.encode())
    return email_ok and password_ok


################################################################################
# Request hooks
################################################################################
_api_hits: DefaultDict[str, deque] = defaultdict(deque)


@app.before_request
def api_rate_limit():
    if not request.path.startswith("/api/"):
        return None
    limit = int(app.config["API_RATE_LIMIT"])
    window = int(app.config["API_RATE_WINDOW"])
    now = time()

    # forget addresses with no hit inside the window
    for stale in [k for k, v in _api_hits.items() if not v or now - v[-1] > window]:
        del _api_hits[stale]

    dq = _api_hits[client_ip()]
    while dq and now - dq[0] > window:
        dq.popleft()

    if len(dq) >= limit:
        retry_after = int(window - (now - dq[0]))
        return (
            {"error": "Too many requests"},
            429,
            {"Retry-After": str(max(retry_after, 1))},
        )

    dq.append(now)
    return None


@app.before_request
def admin_gate():
    path = request.path.rstrip("/") or "/"
    if path == "/api/admin" or path.startswith("/api/admin/"):
        admin_required()
    elif (path == "/admin" or path.startswith("/admin/")) and path != "/admin/login":
        if current_admin() is None:
            resp = redirect(url_for("admin_login_page"))
            if request.cookies.get(ADMIN_COOKIE):
                resp.delete_cookie(ADMIN_COOKIE, path="/")
            return resp
    return None


@app.after_request
def sec_headers(resp):
    resp.headers.update(
        {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "X-XSS-Protection": "1; mode=block",
            "Content-Security-Policy": (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://www.googletagmanager.com; "
                "style-src 'self' 'unsafe-inline'; "
                "img-src 'self' data: https:; "
                "font-src 'self' data:; "
                "connect-src 'self' https:;"
            ),
        }
    )
    return resp


################################################################################
# JSON API – public
################################################################################
@app.route("/api/posts", methods=["GET", "OPTIONS"])
def api_posts():
    if request.method == "OPTIONS":
        return cors_preflight()

    category = (request.args.get("category") or "").strip()
    limit = int_arg("limit", 0)
    featured = request.args.get("featured") == "true"
    try:
        posts = published_posts(
            db=get_db(),
            category=category or None,
            featured=featured,
            limit=limit if limit > 0 else None,
        )
    except DatabaseError:
        app.logger.exception("fetching posts failed")
        return api_error("Failed to fetch posts", 500)
    return with_cache(posts, CACHE_POSTS)


@app.route("/api/search", methods=["GET", "OPTIONS"])
def api_search():
    if request.method == "OPTIONS":
        return cors_preflight()

    q = (request.args.get("q") or "").strip()
    category = (request.args.get("category") or "").strip()
    if category == CATEGORY_ALL:
        category = ""
    tags = split_tags(request.args.get("tags"))
    limit = min(max(int_arg("limit", SEARCH_LIMIT_DEFAULT), 1), SEARCH_LIMIT_MAX)
    offset = max(int_arg("offset", 0), 0)

    if not (q or category or tags):
        return api_error("At least one search parameter is required", 400)

    try:
        posts, total = search_posts(
            db=get_db(), q=q, category=category, tags=tags, limit=limit, offset=offset
        )
    except DatabaseError:
        app.logger.exception("search failed (q=%r category=%r tags=%r)", q, category, tags)
        return api_error("Search failed", 500)

    return with_cache(
        {
            "posts": posts,
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": total > offset + limit,
        },
        CACHE_SEARCH,
    )


@app.route("/api/posts/<slug>/view", methods=["POST"])
def api_track_view(slug):
    db = get_db()
    ip = client_ip()
    user_agent = request.headers.get("User-Agent") or "unknown"
    referrer = request.headers.get("Referer") or ""

    try:
        post = (
            db.table(POST_TABLE)
            .select("id, title, category")
            .eq("slug", slug)
            .eq("status", "published")
            .first()
        )
        if post is None:
            return api_error("Post not found", 404)

        since = (utc_now() - UNIQUE_VIEW_WINDOW).isoformat()
        recent = (
            db.table("post_views")
            .select("id")
            .eq("post_id", post["id"])
            .eq("ip_address", ip)
            .gte("created_at", since)
            .first()
        )
        if recent is None:
            db.table("post_views").insert(
                {
                    "post_id": post["id"],
                    "ip_address": ip,
                    "user_agent": user_agent,
                    "referrer": referrer,
                    "created_at": utc_now().isoformat(),
                }
            ).execute()
            db.rpc("increment_view_count", {"post_id": post["id"]})
    except DatabaseError:
        app.logger.exception("view tracking failed for %s", slug)
        return api_error("Failed to track view", 500)

    record_event(
        {
            "event_name": "view_blog_post",
            "event_category": "Blog",
            "event_label": f"{post['category']}:{slug}",
            "event_value": 1,
            "page_url": f"/blog/{slug}",
            "referrer": referrer,
            "user_agent": user_agent,
            "ip_address": ip,
            "timestamp": utc_now().isoformat(),
            "session_id": f"{ip}-{int(time() * 1000)}",
        },
        db=db,
    )
    return {"success": True, "isNewView": recent is None, "postTitle": post["title"]}


@app.route("/api/analytics", methods=["POST"])
def api_analytics_track():
    body = parse_body(AnalyticsEventIn)
    ip = client_ip()
    try:
        ts = (
            datetime.fromtimestamp(body.timestamp / 1000, tz=timezone.utc)
            if body.timestamp
            else utc_now()
        )
    except (OverflowError, OSError, ValueError):
        ts = utc_now()

    record_event(
        {
            "event_name": body.name or body.action,
            "event_category": body.category or "Web Vitals",
            "event_label": body.label or body.id,
            "event_value": body.value,
            "page_url": body.url,
            "referrer": request.headers.get("Referer") or "",
            "user_agent": request.headers.get("User-Agent") or "unknown",
            "ip_address": ip,
            "timestamp": ts.isoformat(),
            "session_id": body.id or f"{ip}-{int(time() * 1000)}",
        },
        db=get_db(),
    )
    return {"success": True}


@app.route("/api/analytics", methods=["GET"])
def api_analytics_insights():
    admin_required()
    days = min(max(int_arg("days", 7), 1), ANALYTICS_MAX_DAYS)
    event = (request.args.get("event") or "").strip() or None
    try:
        insights = analytics_insights(db=get_db(), days=days, event=event)
    except DatabaseError:
        app.logger.exception("fetching analytics failed")
        return api_error("Failed to fetch analytics", 500)
    return insights


@app.route("/api/comments", methods=["GET"])
def api_comments():
    post_id = (request.args.get("postId") or "").strip()
    if not post_id:
        return api_error("Post ID is required", 400)
    try:
        rows = approved_comments(post_id, db=get_db())
    except DatabaseError:
        app.logger.exception("fetching comments failed for post %s", post_id)
        return api_error("Failed to fetch comments", 500)
    return jsonify(thread_comments(rows))


@app.route("/api/comments", methods=["POST"])
def api_comment_create():
    body = parse_body(CommentIn)
    post_id = str(body.postId).strip() if body.postId is not None else ""
    author = body.author.strip()
    email = body.email.strip().lower()
    content = body.content.strip()

    if not (post_id and author and email and content):
        return api_error("Post ID, author, email, and content are required", 400)
    if not EMAIL_RE.match(email):
        return api_error("Invalid email format", 400)
    if not 10 <= len(content) <= 1000:
        return api_error("Comment must be between 10 and 1000 characters", 400)

    spam = is_spam(content, email)
    parent_id = body.parentId if body.parentId not in (None, "") else None
    db = get_db()
    try:
        post = (
            db.table(POST_TABLE)
            .select("id")
            .eq("id", post_id)
            .eq("status", "published")
            .first()
        )
        if post is None:
            return api_error("Post not found", 404)
        if parent_id is not None:
            parent = db.table("comments").select("id").eq("id", parent_id).first()
            if parent is None:
                return api_error("Parent comment not found", 404)

        created = (
            db.table("comments")
            .insert(
                {
                    "post_id": post["id"],
                    "author": author,
                    "email": email,
                    "content": content,
                    "parent_id": parent_id,
                    "status": "spam" if spam else "pending",
                    "ip_address": client_ip(),
                }
            )
            .execute()
            .data
        )
    except DatabaseError:
        app.logger.exception("creating comment failed")
        return api_error("Failed to create comment", 500)

    row = {k: v for k, v in (created[0] if created else {}).items() if k != "ip_address"}
    row["message"] = (
        "Comment flagged as spam and will be reviewed"
        if spam
        else "Comment submitted for moderation"
    )
    return row, 201


@app.route("/api/jobs", methods=["GET", "OPTIONS"])
def api_jobs():
    if request.method == "OPTIONS":
        return cors_preflight()

    job_type = (request.args.get("type") or "").strip() or None
    if job_type and job_type.lower() not in {t.lower() for t in JOB_TYPES}:
        return api_error(f"Unknown job type: {job_type}", 400)
    limit = min(max(int_arg("limit", 10), 1), 60)
    jobs = filter_jobs(
        q=(request.args.get("keyword") or request.args.get("q") or "").strip() or None,
        remote=request.args.get("remote") == "true",
        job_type=job_type,
    )
    return with_cache(
        {"jobs": jobs[:limit], "totalCount": len(jobs), "hasMore": len(jobs) > limit},
        CACHE_JOBS,
    )


@app.route("/api/test-media")
def api_media_check():
    """Which media settings are present – never their values."""
    return media_status(get_media().cfg)


################################################################################
# JSON API – auth
################################################################################
@app.route("/api/auth/login", methods=["POST"])
def api_login():
    body = parse_body(LoginIn)
    email = body.email
    if not email or not body.password:
        return api_error("Email and password are required", 400)

    if not _credentials_match(email, body.password):
        app.logger.warning("admin login failed for %s from %s", email, client_ip())
        return api_error("Invalid credentials", 401)

    resp = jsonify(success=True, user={"email": email, "role": "admin"})
    resp.set_cookie(
        ADMIN_COOKIE,
        issue_admin_token(email),
        max_age=ADMIN_TOKEN_TTL,
        httponly=True,
        secure=bool(app.config["COOKIE_SECURE"]),
        samesite="Lax",
        path="/",
    )
    app.logger.info("admin login for %s", email)
    return resp


@app.route("/api/auth/logout", methods=["POST"])
def api_logout():
    resp = jsonify(success=True)
    resp.delete_cookie(ADMIN_COOKIE, path="/")
    return resp


################################################################################
# JSON API – admin (guarded by admin_gate)
################################################################################
@app.route("/api/admin/authors", methods=["GET"])
def api_authors():
    try:
        rows = get_db().table("authors").select("*").order("name").execute().data
    except DatabaseError:
        app.logger.exception("fetching authors failed")
        return api_error("Failed to fetch authors", 500)
    return jsonify(rows)


@app.route("/api/admin/authors", methods=["POST"])
def api_author_create():
    body = parse_body(AuthorIn)
    row = {
        "name": body.name,
        "bio": (body.bio or "").strip(),
        "avatar": body.avatar or DEFAULT_AVATAR,
        "twitter": body.twitter or None,
        "linkedin": body.linkedin or None,
        "website": body.website or None,
    }
    try:
        created = get_db().table("authors").insert(row).execute().data
    except DatabaseError:
        app.logger.exception("creating author failed")
        return api_error("Failed to create author", 500)
    return (created[0] if created else row), 201


@app.route("/api/admin/posts", methods=["GET"])
def api_admin_posts():
    status = (request.args.get("status") or "").strip()
    limit = int_arg("limit", 0)
    offset = max(int_arg("offset", 0), 0)

    q = get_db().table(POST_TABLE).select(POST_SELECT, count="exact")
    if status:
        q = q.eq("status", status)
    q = q.order("created_at", desc=True)
    if limit > 0:
        q = q.range(offset, offset + limit - 1)
    try:
        res = q.execute()
    except DatabaseError:
        app.logger.exception("fetching admin posts failed")
        return api_error("Failed to fetch posts", 500)
    return {"posts": res.data, "total": res.count or len(res.data)}


@app.route("/api/admin/posts", methods=["POST"])
def api_admin_post_create():
    body = parse_body(PostIn)
    errors = post_errors(body, require_author=True)
    if errors:
        return {"error": "Validation failed", "details": errors}, 400

    slug = generate_slug(body.slug or body.title)
    if not slug:
        return api_error("Could not derive a slug from the title", 400)
    if body.featured_image and not get_media().owns(body.featured_image):
        return api_error("Featured image must be uploaded to the media library", 400)

    db = get_db()
    try:
        if db.table(POST_TABLE).select("id").eq("slug", slug).first():
            return api_error("A post with this slug already exists", 409)

        row = post_row(body, slug=slug)
        row["author_id"] = body.author_id
        row["status"] = body.status or "draft"
        row["published_at"] = utc_now().isoformat() if row["status"] == "published" else None
        created = db.table(POST_TABLE).insert(row).select(POST_SELECT).execute().data
    except DatabaseError:
        app.logger.exception("creating post failed")
        return api_error("Failed to create post", 500)

    app.logger.info("post created: %s (%s)", slug, row["status"])
    return (created[0] if created else row), 201


@app.route("/api/admin/posts/<post_id>", methods=["GET"])
def api_admin_post(post_id):
    try:
        post = get_db().table(POST_TABLE).select(POST_SELECT).eq("id", post_id).first()
    except DatabaseError:
        app.logger.exception("fetching post %s failed", post_id)
        return api_error("Failed to fetch post", 500)
    if post is None:
        return api_error("Post not found", 404)
    return post


@app.route("/api/admin/posts/<post_id>", methods=["PUT"])
def api_admin_post_update(post_id):
    body = parse_body(PostIn)
    errors = post_errors(body, require_author=False)
    if errors:
        return {"error": "Validation failed", "details": errors}, 400

    slug = generate_slug(body.slug or body.title)
    if not slug:
        return api_error("Could not derive a slug from the title", 400)
    if body.featured_image and not get_media().owns(body.featured_image):
        return api_error("Featured image must be uploaded to the media library", 400)

    db = get_db()
    try:
        existing = (
            db.table(POST_TABLE).select("id, slug, status").eq("id", post_id).first()
        )
        if existing is None:
            return api_error("Post not found", 404)

        if slug != existing["slug"]:
            clash = (
                db.table(POST_TABLE)
                .select("id")
                .eq("slug", slug)
                .neq("id", post_id)
                .first()
            )
            if clash:
                return api_error("A post with this slug already exists", 409)

        now = utc_now().isoformat()
        row = post_row(body, slug=slug)
        row["status"] = body.status or existing["status"]
        row["updated_at"] = now
        if row["status"] == "published" and existing["status"] != "published":
            row["published_at"] = now
        if body.author_id not in (None, ""):
            row["author_id"] = body.author_id

        updated = (
            db.table(POST_TABLE)
            .update(row)
            .eq("id", post_id)
            .select(POST_SELECT)
            .execute()
            .data
        )
    except DatabaseError:
        app.logger.exception("updating post %s failed", post_id)
        return api_error("Failed to update post", 500)

    return updated[0] if updated else {**existing, **row}


@app.route("/api/admin/posts/<post_id>", methods=["DELETE"])
def api_admin_post_delete(post_id):
    db = get_db()
    try:
        existing = db.table(POST_TABLE).select("id, title").eq("id", post_id).first()
        if existing is None:
            return api_error("Post not found", 404)
        db.table(POST_TABLE).delete().eq("id", post_id).execute()
    except DatabaseError:
        app.logger.exception("deleting post %s failed", post_id)
        return api_error("Failed to delete post", 500)

    app.logger.info("post deleted: %s", post_id)
    return {"message": "Post deleted successfully", "deletedPost": existing}


@app.route("/api/admin/upload", methods=["POST"])
def api_upload_image():
    f = request.files.get("file")
    if f is None or not f.filename:
        return api_error("No file provided", 400)

    mime = (f.mimetype or "").lower()
    if mime not in IMAGE_MIMES:
        return api_error(
            "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed.", 400
        )

    data = f.read()
    if len(data) > UPLOAD_MAX_BYTES:
        return api_error("File too large. Maximum size is 5MB.", 400)

    file_name = new_upload_name(f.filename, mime)
    key = f"{UPLOAD_PREFIX}/{file_name}"
    media = get_media()
    try:
        media.upload(key, data, mime)
    except MediaError:
        app.logger.exception("image upload failed")
        return api_error("Failed to upload file", 500)

    return {
        "url": media.public_url(key),
        "fileName": file_name,
        "originalName": f.filename,
        "size": len(data),
        "type": mime,
    }


@app.route("/api/admin/upload", methods=["DELETE"])
def api_delete_image():
    file_name = (request.args.get("fileName") or "").strip()
    if not file_name:
        return api_error("No file name provided", 400)
    if "/" in file_name or "\\" in file_name or file_name.startswith("."):
        return api_error("Invalid file name", 400)

    try:
        get_media().delete(f"{UPLOAD_PREFIX}/{file_name}")
    except MediaError:
        app.logger.exception("image delete failed for %s", file_name)
        return api_error("Failed to delete file", 500)
    return {"message": "File deleted successfully"}


################################################################################
# CLI – sample content
################################################################################
@app.cli.command("seed")
def cli_seed():
    """Insert the sample author and posts."""
    db = get_db()
    try:
        author = db.table("authors").insert(SAMPLE_AUTHOR).execute().data[0]
        click.secho(f"\n✅  Author created: {author['name']}", fg="green")
        for post in SAMPLE_POSTS:
            row = {
                **post,
                "author_id": author["id"],
                "reading_time": reading_time(post["content"]),
                "published_at": utc_now().isoformat(),
                "seo_title": post["title"],
                "seo_description": post["excerpt"],
            }
            db.table(POST_TABLE).insert(row).execute()
            click.echo(f"   • {post['title']}")
    except DatabaseError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"\n{len(SAMPLE_POSTS)} posts inserted.")


################################################################################
# SEO helpers
################################################################################
def page_meta(
    *,
    title: str | None = None,
    description: str | None = None,
    path: str = "",
    image: str | None = None,
    kind: str = "website",
    published: str | None = None,
    keywords: list[str] | None = None,
    author: str | None = None,
    robots: str | None = None,
) -> dict:
    site = current_app.config["SITE_NAME"]
    base = current_app.config["SITE_URL"]
    image = image or "/static/images/og-default.svg"
    return {
        "title": f"{title} | {site}" if title else f"{site} - Remote work made simple",
        "description": description or SITE_DESCRIPTION,
        "url": f"{base}{path}",
        "image": image if image.startswith("http") else f"{base}{image}",
        "type": kind,
        "published": published,
        "keywords": keywords or DEFAULT_KEYWORDS,
        "author": author,
        "robots": robots,
    }


def post_meta(post: dict) -> dict:
    image = post["featuredImage"]
    if image:
        image = get_media().image_url(image, width=1200, height=630, fit="cover")
    return page_meta(
        title=post["title"],
        description=post["excerpt"],
        path=f"/blog/{post['slug']}",
        image=image or "/static/images/og-blog.svg",
        kind="article",
        published=post["publishedAt"],
        keywords=post["tags"],
        author=post["author"]["name"],
    )


def structured_data(post: dict | None = None) -> Markup:
    """schema.org JSON-LD, safe to drop inside <script>."""
    site = current_app.config["SITE_NAME"]
    base = current_app.config["SITE_URL"]
    if post is None:
        data = {
            "@context": "https://schema.org",
            "@type": "WebSite",
            "name": site,
            "url": base,
            "description": SITE_DESCRIPTION,
        }
    else:
        image = post["featuredImage"] or "/static/images/og-blog.svg"
        data = {
            "@context": "https://schema.org",
            "@type": "BlogPosting",
            "headline": post["title"],
            "description": post["excerpt"],
            "image": image if image.startswith("http") else f"{base}{image}",
            "author": {
                "@type": "Person",
                "name": post["author"]["name"],
                "url": post["author"]["social"]["website"] or f"{base}/about",
            },
            "publisher": {"@type": "Organization", "name": site, "url": base},
            "datePublished": post["publishedAt"],
            "dateModified": post["publishedAt"],
            "mainEntityOfPage": {"@type": "WebPage", "@id": f"{base}/blog/{post['slug']}"},
            "keywords": ", ".join(post["tags"]),
            "articleSection": post["category"],
            "wordCount": len(post["content"].split()),
            "timeRequired": f"PT{post['readingTime']}M",
        }
    return Markup(json.dumps(data).replace("</", "<\\/"))


def share_links(url: str, title: str, description: str = "") -> dict[str, str]:
    text = f"{title} - {description}" if description else f"Check out this article: {title}"
    return {
        "twitter": f"https://twitter.com/intent/tweet?text={quote(text)}&url={quote(url, safe='')}",
        "linkedin": f"https://www.linkedin.com/sharing/share-offsite/?url={quote(url, safe='')}",
    }


def _fmt_date(iso: str | None) -> str:
    if not iso:
        return ""
    try:
        dt = datetime.fromisoformat(str(iso).replace("Z", "+00:00"))
    except ValueError:
        return str(iso)[:10]
    return f"{dt:%B} {dt.day}, {dt.year}"


app.jinja_env.globals.update(
    {
        "site_name": lambda: current_app.config["SITE_NAME"],
        "ga_id": lambda: current_app.config.get("GA_MEASUREMENT_ID") or "",
        "current_admin": current_admin,
        "page_meta": page_meta,
        "structured_data": structured_data,
        "share_links": share_links,
        "image_url": lambda src, **kw: get_media().image_url(src, **kw) if src else "",
        "srcset": lambda src, variant: get_media().srcset(src, IMAGE_WIDTHS[variant]) if src else "",
        "image_widths": IMAGE_WIDTHS,
        "image_sizes": IMAGE_SIZES,
        "category_all": CATEGORY_ALL,
        "app_version": __version__,
        "nav_links": [
            ("index", "Home"),
            ("blog_index", "Blog"),
            ("categories", "Categories"),
            ("jobs", "Jobs"),
            ("about", "About"),
        ],
    }
)
app.add_template_filter(_fmt_date, "date")
app.add_template_filter(render_markdown, "md")


################################################################################
# Templates + Views
################################################################################
def wrap(body: str) -> str:
    """Glue prolog + page-specific body + epilog."""
    return TEMPL_PROLOG + body + TEMPL_EPILOG


TEMPL_MACROS = """
{%- macro button(label, href=None, variant="primary", size="md", id=None) -%}
{%- if href -%}
<a class="btn btn-{{ variant }} btn-{{ size }}" href="{{ href }}"{% if id %} id="{{ id }}"{% endif %}>{{ label }}</a>
{%- else -%}
<button type="button" class="btn btn-{{ variant }} btn-{{ size }}"{% if id %} id="{{ id }}"{% endif %}>{{ label }}</button>
{%- endif -%}
{%- endmacro -%}

{%- macro badge(text, href=None, variant="default") -%}
{%- if href -%}<a class="badge badge-{{ variant }}" href="{{ href }}">{{ text }}</a>
{%- else -%}<span class="badge badge-{{ variant }}">{{ text }}</span>{%- endif -%}
{%- endmacro -%}

{%- macro responsive_image(src, alt, variant="content", cls="") -%}
{%- set set_ = srcset(src, variant) -%}
<img src="{{ image_url(src, width=image_widths[variant][-1]) }}"
     {%- if set_ %} srcset="{{ set_ }}" sizes="{{ image_sizes[variant] }}"{% endif %}
     alt="{{ alt }}" loading="lazy" decoding="async" class="{{ cls }}">
{%- endmacro -%}

{%- macro post_card(post) -%}
<article class="card">
  {% if post.featuredImage %}
  <a href="{{ url_for('blog_post', slug=post.slug) }}">{{ responsive_image(post.featuredImage, post.title, "thumbnail", "card-img") }}</a>
  {% endif %}
  <div class="card-body">
    {{ badge(post.category, url_for('blog_index', category=post.category)) }}
    <h3><a href="{{ url_for('blog_post', slug=post.slug) }}">{{ post.title }}</a></h3>
    <p class="muted">{{ post.excerpt }}</p>
    <p class="meta">{{ post.author.name }} · {{ post.publishedAt|date }} · {{ post.readingTime }} min read</p>
  </div>
</article>
{%- endmacro -%}

{%- macro share_buttons(url, title, description="") -%}
{%- set links = share_links(url, title, description) -%}
<div class="share">
  <span class="muted">Share:</span>
  {{ button("Twitter", links.twitter, "outline", "sm") }}
  {{ button("LinkedIn", links.linkedin, "outline", "sm") }}
  <button type="button" class="btn btn-outline btn-sm" data-share-url="{{ url }}"
          data-share-title="{{ title }}" data-share-fallback="{{ links.twitter }}">More…</button>
</div>
{%- endmacro -%}

{%- macro comment_thread(c) -%}
<div class="comment">
  <p class="meta"><strong>{{ c.author }}</strong> · {{ c.created_at|date }}</p>
  <p>{{ c.content }}</p>
  {% for r in c.replies %}{{ comment_thread(r) }}{% endfor %}
</div>
{%- endmacro -%}

{%- macro view_tracker(post) -%}
<div id="view-tracker" data-slug="{{ post.slug }}" data-category="{{ post.category }}" hidden></div>
{%- endmacro -%}
"""

TEMPL_PROLOG = (
    TEMPL_MACROS
    + """
{%- set meta = meta or page_meta() -%}
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ meta.title }}</title>
<meta name="description" content="{{ meta.description }}">
<meta name="keywords" content="{{ meta['keywords']|join(', ') }}">
{% if meta.robots %}<meta name="robots" content="{{ meta.robots }}">{% endif %}
<link rel="canonical" href="{{ meta.url }}">
<meta property="og:type" content="{{ meta.type }}">
<meta property="og:locale" content="en_US">
<meta property="og:site_name" content="{{ site_name() }}">
<meta property="og:title" content="{{ meta.title }}">
<meta property="og:description" content="{{ meta.description }}">
<meta property="og:url" content="{{ meta.url }}">
<meta property="og:image" content="{{ meta.image }}">
<meta property="og:image:width" content="1200">
<meta property="og:image:height" content="630">
{% if meta.published %}<meta property="article:published_time" content="{{ meta.published }}">{% endif %}
{% if meta.author %}<meta property="article:author" content="{{ meta.author }}">{% endif %}
<meta name="twitter:card" content="summary_large_image">
<meta name="twitter:title" content="{{ meta.title }}">
<meta name="twitter:description" content="{{ meta.description }}">
<meta name="twitter:image" content="{{ meta.image }}">
<link rel="icon" type="image/svg+xml" href="/favicon.svg">
{% if ga_id() %}
<script async src="https://www.googletagmanager.com/gtag/js?id={{ ga_id() }}"></script>
<script>
window.dataLayer = window.dataLayer || [];
function gtag(){ dataLayer.push(arguments); }
gtag('js', new Date());
gtag('config', '{{ ga_id() }}', {page_title: document.title, page_location: location.href});
</script>
{% endif %}
<style>
:root{--brand:#2563eb;--ink:#111827;--muted:#6b7280;--line:#e5e7eb;--bg:#ffffff;--soft:#f3f4f6}
*{box-sizing:border-box}
html{font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,"Helvetica Neue",Arial,"Noto Sans",sans-serif;scroll-behavior:smooth}
body{margin:0;color:var(--ink);background:var(--bg);line-height:1.6}
a{color:var(--brand);text-decoration:none}
a:hover{text-decoration:underline}
img{max-width:100%;height:auto}
.container{max-width:72rem;margin:0 auto;padding:0 1.25rem}
.skip-link{position:absolute;left:-999px}
.skip-link:focus{left:1rem;top:1rem;background:#fff;padding:.5rem;z-index:10}
.site-header{border-bottom:1px solid var(--line)}
.nav{max-width:72rem;margin:0 auto;padding:.9rem 1.25rem;display:flex;gap:1.5rem;align-items:center;flex-wrap:wrap}
.brand{font-weight:800;font-size:1.25rem;color:var(--ink)}
.nav-links{display:flex;gap:1rem;flex:1}
.nav-links a{color:var(--muted)}
.nav-links a[aria-current=page]{color:var(--ink);font-weight:600}
.nav-search input{padding:.4rem .7rem;border:1px solid var(--line);border-radius:.4rem}
main{min-height:60vh;padding:2rem 0}
.hero{padding:3rem 0;text-align:center}
.hero h1{font-size:2.5rem;margin:0 0 1rem}
.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(18rem,1fr));gap:1.5rem}
.card{border:1px solid var(--line);border-radius:.6rem;overflow:hidden;background:#fff}
.card-img{width:100%;aspect-ratio:16/9;object-fit:cover}
.card-body{padding:1rem 1.2rem}
.card-body h3{margin:.5rem 0}
.muted{color:var(--muted)}
.meta{color:var(--muted);font-size:.85rem}
.badge{display:inline-block;padding:.1rem .6rem;border-radius:1rem;background:var(--soft);color:var(--ink);font-size:.75rem;margin:0 .25rem .25rem 0}
.badge-brand{background:var(--brand);color:#fff}
.btn{display:inline-block;border-radius:.4rem;border:1px solid var(--brand);cursor:pointer;font:inherit}
.btn-primary{background:var(--brand);color:#fff}
.btn-outline{background:#fff;color:var(--brand)}
.btn-ghost{background:transparent;border-color:transparent;color:var(--muted)}
.btn-danger{background:#dc2626;border-color:#dc2626;color:#fff}
.btn-md{padding:.5rem 1rem}
.btn-sm{padding:.25rem .6rem;font-size:.85rem}
.share{display:flex;gap:.5rem;align-items:center;margin:1.5rem 0}
.article{max-width:46rem;margin:0 auto}
.article-body h1,.article-body h2,.article-body h3{line-height:1.25}
.article-body pre{background:var(--soft);padding:1rem;overflow-x:auto}
.layout{display:grid;grid-template-columns:minmax(0,1fr) 18rem;gap:2.5rem}
@media (max-width:900px){.layout{grid-template-columns:1fr}}
.author-card{display:flex;gap:1rem;align-items:center;border-top:1px solid var(--line);padding-top:1.5rem;margin-top:2rem}
.author-card img{width:4rem;height:4rem;border-radius:50%;object-fit:cover}
.sidebar section{border:1px solid var(--line);border-radius:.6rem;padding:1rem;margin-bottom:1.5rem}
.comment{border-left:3px solid var(--line);padding-left:1rem;margin:1rem 0}
.pagination{display:flex;gap:.5rem;justify-content:center;margin-top:2rem}
form.stack label{display:block;font-weight:600;margin-top:1rem}
form.stack input,form.stack textarea,form.stack select{width:100%;padding:.5rem;border:1px solid var(--line);border-radius:.4rem;font:inherit}
table{width:100%;border-collapse:collapse}
td,th{padding:.5rem;border-bottom:1px solid var(--line);text-align:left}
.notice{padding:.75rem 1rem;border-radius:.4rem;background:var(--soft)}
.site-footer{border-top:1px solid var(--line);padding:2rem 0;color:var(--muted);font-size:.9rem}
.site-footer a{color:var(--muted);margin-right:1rem}
</style>
</head>
<body>
<a class="skip-link" href="#main">Skip to content</a>
<header class="site-header">
  <nav class="nav" aria-label="Primary">
    <a class="brand" href="{{ url_for('index') }}">{{ site_name() }}</a>
    <div class="nav-links">
      {% for endpoint, label in nav_links %}
      <a href="{{ url_for(endpoint) }}"{% if request.endpoint == endpoint %} aria-current="page"{% endif %}>{{ label }}</a>
      {% endfor %}
      {% if current_admin() %}<a href="{{ url_for('admin_dashboard') }}">Admin</a>{% endif %}
    </div>
    <form class="nav-search" action="{{ url_for('blog_index') }}" method="get" role="search">
      <input type="search" name="q" placeholder="Search articles" aria-label="Search articles"
             value="{{ request.args.get('q', '') if request.endpoint == 'blog_index' else '' }}">
    </form>
  </nav>
</header>
<main id="main"><div class="container">
"""
)

TEMPL_EPILOG = """
</div></main>
<footer class="site-footer"><div class="container">
  <p>
    <a href="{{ url_for('about') }}">About</a>
    <a href="{{ url_for('contact') }}">Contact</a>
    <a href="{{ url_for('privacy') }}">Privacy</a>
    <a href="{{ url_for('terms') }}">Terms</a>
    <a href="{{ url_for('cookies') }}">Cookies</a>
  </p>
  <p>&copy; {{ site_name() }}. Remote work made simple.</p>
</div></footer>
<script>
(() => {
  const send = (payload) =>
    fetch('/api/analytics', {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify({...payload, url: location.href, timestamp: Date.now()}),
      keepalive: true,
    }).catch(() => {});
  const gtagEvent = (action, params) => {
    if (typeof window.gtag === 'function') window.gtag('event', action, params);
  };

  send({action: 'page_view', category: 'Navigation', label: location.pathname});

  document.querySelectorAll('[data-share-url]').forEach(btn => {
    btn.addEventListener('click', () => {
      if (navigator.share) {
        navigator.share({title: btn.dataset.shareTitle, url: btn.dataset.shareUrl}).catch(() => {});
      } else {
        window.open(btn.dataset.shareFallback, '_blank', 'width=600,height=400');
      }
    });
  });

  const tracker = document.getElementById('view-tracker');
  if (!tracker) return;
  const slug = tracker.dataset.slug;
  const category = tracker.dataset.category;

  fetch(`/api/posts/${encodeURIComponent(slug)}/view`, {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
  }).catch(() => {});
  gtagEvent('view_blog_post', {event_category: 'Blog', event_label: `${category}:${slug}`, value: 1});

  let maxMilestone = 0;
  const onScroll = () => {
    const range = document.documentElement.scrollHeight - window.innerHeight;
    if (range <= 0) return;
    const pct = Math.min(100, Math.round((window.scrollY / range) * 100));
    const milestone = Math.floor(pct / 25) * 25;
    if (milestone > maxMilestone) {
      maxMilestone = milestone;
      send({action: 'reading_progress', category: 'Blog', label: `${slug}:${milestone}%`, value: milestone});
    }
  };

  const started = Date.now();
  let visible = !document.hidden;
  const onVisibility = () => { visible = !document.hidden; };
  const timer = setInterval(() => {
    if (!visible) return;
    const spent = Math.round((Date.now() - started) / 1000);
    send({action: 'time_on_page', category: 'Engagement', label: slug, value: spent});
  }, 30000);

  const teardown = () => {
    window.removeEventListener('scroll', onScroll);
    document.removeEventListener('visibilitychange', onVisibility);
    clearInterval(timer);
    const spent = Math.round((Date.now() - started) / 1000);
    if (spent > 5 && navigator.sendBeacon) {
      const body = JSON.stringify({
        action: 'session_duration', category: 'Engagement', label: slug,
        value: spent, url: location.href, timestamp: Date.now(),
      });
      navigator.sendBeacon('/api/analytics', new Blob([body], {type: 'application/json'}));
    }
  };

  window.addEventListener('scroll', onScroll, {passive: true});
  document.addEventListener('visibilitychange', onVisibility);
  window.addEventListener('pagehide', teardown, {once: true});
})();
</script>
</body>
</html>
"""


@app.route("/")
def index():
    db = get_db()
    return render_template_string(
        TEMPL_INDEX,
        featured=published_posts(db=db, featured=True, limit=6),
        latest=published_posts(db=db, limit=6),
        categories=post_categories(db=db),
    )


TEMPL_INDEX = wrap("""
{% block body %}
<script type="application/ld+json">{{ structured_data() }}</script>
<section class="hero">
  <h1>Remote work made simple</h1>
  <p class="muted">Tips, tools and strategies for people who work from anywhere.</p>
  {{ button("Read the blog", url_for('blog_index')) }}
  {{ button("Browse jobs", url_for('jobs'), "outline") }}
</section>

{% if featured %}
<section>
  <h2>Featured articles</h2>
  <div class="grid">{% for post in featured %}{{ post_card(post) }}{% endfor %}</div>
</section>
{% endif %}

{% if categories %}
<section>
  <h2>Explore by category</h2>
  <p>{% for name, count in categories %}{{ badge(name ~ " (" ~ count ~ ")", url_for('blog_index', category=name)) }}{% endfor %}</p>
</section>
{% endif %}

<section>
  <h2>Latest posts</h2>
  {% if latest %}
  <div class="grid">{% for post in latest %}{{ post_card(post) }}{% endfor %}</div>
  {% else %}
  <p class="notice">No articles published yet.</p>
  {% endif %}
</section>
{% endblock %}
""")


@app.route("/blog")
def blog_index():
    db = get_db()
    q = (request.args.get("q") or "").strip()
    category = (request.args.get("category") or "").strip()
    if category == CATEGORY_ALL:
        category = ""
    tag = (request.args.get("tag") or "").strip()
    page = max(int_arg("page", 1), 1)

    posts, total = search_posts(
        db=db,
        q=q,
        category=category,
        tags=[tag] if tag else [],
        limit=BLOG_PAGE_SIZE,
        offset=(page - 1) * BLOG_PAGE_SIZE,
    )
    pages = max(1, math.ceil(total / BLOG_PAGE_SIZE))
    title = f"Search: {q}" if q else (category or (f"#{tag}" if tag else "Blog"))
    return render_template_string(
        TEMPL_BLOG,
        meta=page_meta(title=title, path="/blog"),
        posts=posts,
        total=total,
        page=page,
        pages=pages,
        q=q,
        category=category,
        tag=tag,
        categories=[name for name, _ in post_categories(db=db)],
    )


TEMPL_BLOG = wrap("""
{% block body %}
<h1>{% if q %}Results for “{{ q }}”{% elif category %}{{ category }}{% elif tag %}#{{ tag }}{% else %}Blog{% endif %}</h1>
<p>
  {{ badge(category_all, url_for('blog_index', q=q or None), "brand" if not category else "default") }}
  {% for name in categories %}
  {{ badge(name, url_for('blog_index', category=name, q=q or None), "brand" if name == category else "default") }}
  {% endfor %}
</p>
{% if q or category or tag %}<p class="muted">{{ total }} article{{ "" if total == 1 else "s" }} found.</p>{% endif %}
{% if posts %}
<div class="grid">{% for post in posts %}{{ post_card(post) }}{% endfor %}</div>
{% else %}
<p class="notice">Nothing here yet. Try a different search or category.</p>
{% endif %}
{% if pages > 1 %}
<nav class="pagination" aria-label="Pagination">
  {% if page > 1 %}{{ button("← Newer", url_for('blog_index', q=q or None, category=category or None, tag=tag or None, page=page - 1), "outline", "sm") }}{% endif %}
  <span class="muted">Page {{ page }} of {{ pages }}</span>
  {% if page < pages %}{{ button("Older →", url_for('blog_index', q=q or None, category=category or None, tag=tag or None, page=page + 1), "outline", "sm") }}{% endif %}
</nav>
{% endif %}
{% endblock %}
""")


@app.route("/blog/<slug>")
def blog_post(slug):
    db = get_db()
    post = post_by_slug(slug, db=db)
    if post is None:
        abort(404)
    return render_template_string(
        TEMPL_POST,
        meta=post_meta(post),
        post=post,
        related=related_posts(post, db=db),
        comments=thread_comments(approved_comments(post["id"], db=db)),
        jobs=filter_jobs(remote=True)[:3],
        share_url=f"{current_app.config['SITE_URL']}/blog/{post['slug']}",
    )


TEMPL_POST = wrap("""
{% block body %}
<script type="application/ld+json">{{ structured_data(post) }}</script>
{{ view_tracker(post) }}
<p>{{ button("← Back to Blog", url_for('blog_index'), "ghost", "sm") }}</p>
<div class="layout">
<article class="article">
  <header>
    {{ badge(post.category, url_for('blog_index', category=post.category), "brand") }}
    <h1>{{ post.title }}</h1>
    <p class="meta">{{ post.author.name }} · {{ post.publishedAt|date }} · {{ post.readingTime }} min read</p>
    {% if post.featuredImage %}{{ responsive_image(post.featuredImage, post.title, "hero") }}{% endif %}
  </header>

  <div class="article-body">{{ post.content|md }}</div>

  {% if post.tags %}
  <p>{% for t in post.tags %}{{ badge("#" ~ t, url_for('blog_index', tag=t)) }}{% endfor %}</p>
  {% endif %}

  {{ share_buttons(share_url, post.title, post.excerpt) }}

  <div class="author-card">
    <img src="{{ image_url(post.author.avatar, width=128) }}" alt="{{ post.author.name }}">
    <div>
      <strong>{{ post.author.name }}</strong>
      <p class="muted">{{ post.author.bio }}</p>
      <p>
        {% if post.author.social.twitter %}<a href="{{ post.author.social.twitter }}" rel="noopener">Twitter</a>{% endif %}
        {% if post.author.social.linkedin %}<a href="{{ post.author.social.linkedin }}" rel="noopener">LinkedIn</a>{% endif %}
        {% if post.author.social.website %}<a href="{{ post.author.social.website }}" rel="noopener">Website</a>{% endif %}
      </p>
    </div>
  </div>

  <section id="comments">
    <h2>Comments</h2>
    {% for c in comments %}{{ comment_thread(c) }}{% else %}<p class="muted">Be the first to comment.</p>{% endfor %}

    <form id="comment-form" class="stack" data-post-id="{{ post.id }}">
      <label for="c-author">Name</label><input id="c-author" name="author" required>
      <label for="c-email">Email</label><input id="c-email" name="email" type="email" required>
      <label for="c-content">Comment</label><textarea id="c-content" name="content" rows="4" minlength="10" maxlength="1000" required></textarea>
      <p><button type="submit" class="btn btn-primary btn-md">Post comment</button></p>
      <p id="comment-status" class="muted" role="status"></p>
    </form>
  </section>
</article>

<aside class="sidebar">
  {% if related %}
  <section>
    <h3>Related articles</h3>
    {% for r in related %}<p><a href="{{ url_for('blog_post', slug=r.slug) }}">{{ r.title }}</a></p>{% endfor %}
  </section>
  {% endif %}
  <section>
    <h3>Remote jobs</h3>
    {% for job in jobs %}
    <p><a href="{{ job.url }}" rel="noopener">{{ job.title }}</a><br><span class="meta">{{ job.company }} · {{ job.location }}</span></p>
    {% endfor %}
    {{ button("All jobs", url_for('jobs'), "outline", "sm") }}
  </section>
</aside>
</div>

<script>
(() => {
  const form = document.getElementById('comment-form');
  const status = document.getElementById('comment-status');
  form.addEventListener('submit', async ev => {
    ev.preventDefault();
    const fd = new FormData(form);
    try {
      const res = await fetch('/api/comments', {
        method: 'POST',
        headers: {'Content-Type': 'application/json'},
        body: JSON.stringify({
          postId: form.dataset.postId,
          author: fd.get('author'),
          email: fd.get('email'),
          content: fd.get('content'),
        }),
      });
      const data = await res.json();
      status.textContent = res.ok ? data.message : (data.error || 'Could not post comment.');
      if (res.ok) form.reset();
    } catch (err) {
      status.textContent = 'Could not post comment.';
    }
  });
})();
</script>
{% endblock %}
""")


@app.route("/categories")
def categories():
    return render_template_string(
        TEMPL_CATEGORIES,
        meta=page_meta(title="Categories", path="/categories"),
        categories=post_categories(db=get_db()),
    )


TEMPL_CATEGORIES = wrap("""
{% block body %}
<h1>Categories</h1>
{% if categories %}
<div class="grid">
  {% for name, count in categories %}
  <a class="card card-body" href="{{ url_for('blog_index', category=name) }}">
    <h3>{{ name }}</h3>
    <p class="muted">{{ count }} article{{ "" if count == 1 else "s" }}</p>
  </a>
  {% endfor %}
</div>
{% else %}
<p class="notice">No categories yet.</p>
{% endif %}
{% endblock %}
""")


@app.route("/jobs")
def jobs():
    remote_only = request.args.get("remote") == "true"
    job_type = (request.args.get("type") or "").strip() or None
    return render_template_string(
        TEMPL_JOBS,
        meta=page_meta(
            title="Remote Jobs",
            description="Hand-picked remote job opportunities.",
            path="/jobs",
        ),
        listings=filter_jobs(
            q=(request.args.get("q") or "").strip() or None,
            remote=remote_only,
            job_type=job_type,
        ),
        job_types=JOB_TYPES,
        job_type=job_type,
    )


TEMPL_JOBS = wrap("""
{% block body %}
<h1>Remote jobs</h1>
<p>
  {{ badge("All", url_for('jobs'), "brand" if not job_type else "default") }}
  {% for t in job_types %}{{ badge(t, url_for('jobs', type=t), "brand" if t == job_type else "default") }}{% endfor %}
</p>
{% if listings %}
<table>
  <thead><tr><th>Role</th><th>Company</th><th>Location</th><th>Type</th><th>Posted</th></tr></thead>
  <tbody>
  {% for job in listings %}
  <tr>
    <td><a href="{{ job.url }}" rel="noopener">{{ job.title }}</a></td>
    <td>{{ job.company }}</td>
    <td>{{ job.location }}</td>
    <td>{{ badge(job.type) }}</td>
    <td class="meta">{{ job.postedAt|date }}</td>
  </tr>
  {% endfor %}
  </tbody>
</table>
{% else %}
<p class="notice">No listings match.</p>
{% endif %}
{% endblock %}
""")


STATIC_PAGES = {
    "about": (
        "About",
        """
# About RemoteWork

RemoteWork is a small publication about working well from anywhere. We
write about productivity, tooling, wellness and careers for distributed
teams, and keep a short list of remote openings we think are worth a look.
""",
    ),
    "contact": (
        "Contact",
        """
# Contact

Questions, corrections or pitches: write to **hello@remotework.com**.
We read everything and answer most things within a week.
""",
    ),
    "privacy": (
        "Privacy Policy",
        """
# Privacy Policy

We record anonymous usage events (page views, reading progress, time on
page) to understand which articles are useful. Events carry the page URL,
your browser's user agent, the referrer and your IP address, and are kept
for analysis only. When a Google Analytics id is configured, the same page
views are also reported to Google Analytics.

Comments store the name and email you enter; the email is never shown
publicly.
""",
    ),
    "terms": (
        "Terms of Service",
        """
# Terms of Service

Articles are provided for general information. Job listings link to third
parties; we are not responsible for their content or hiring decisions.
Comments are moderated and may be removed at our discretion.
""",
    ),
    "cookies": (
        "Cookie Policy",
        """
# Cookie Policy

Cookies are small text files a site stores in your browser. RemoteWork
sets very few of them.

## Essential

The admin area uses one http-only session cookie, `admin-token`, which
expires after 24 hours. Readers never receive it.

## Analytics

Our own page-view and reading events are sent without cookies. When a
Google Analytics id is configured, Google Analytics sets its usual `_ga`
cookies to tell returning visitors apart.

## Managing cookies

Every browser lets you block or delete cookies in its privacy settings.
Blocking them does not affect reading the blog.

Questions: **hello@remotework.com**.
""",
    ),
}


def _static_page(name: str):
    title, body = STATIC_PAGES[name]
    return render_template_string(
        TEMPL_STATIC, meta=page_meta(title=title, path=f"/{name}"), body=body
    )


@app.route("/about")
def about():
    return _static_page("about")


@app.route("/contact")
def contact():
    return _static_page("contact")


@app.route("/privacy")
def privacy():
    return _static_page("privacy")


@app.route("/terms")
def terms():
    return _static_page("terms")


@app.route("/cookies")
def cookies():
    return _static_page("cookies")


TEMPL_STATIC = wrap("""
{% block body %}
<article class="article article-body">{{ body|md }}</article>
{% endblock %}
""")


################################################################################
# Admin pages
################################################################################
@app.route("/admin/login")
def admin_login_page():
    if current_admin() is not None:
        return redirect(url_for("admin_dashboard"))
    return render_template_string(
        TEMPL_ADMIN_LOGIN, meta=page_meta(title="Admin login", robots="noindex, nofollow")
    )


TEMPL_ADMIN_LOGIN = wrap("""
{% block body %}
<div class="article">
<h1>Admin login</h1>
<form id="login-form" class="stack">
  <label for="email">Email</label><input id="email" name="email" type="email" autocomplete="username" required>
  <label for="password">Password</label><input id="password" name="password" type="password" autocomplete="current-password" required>
  <p><button type="submit" class="btn btn-primary btn-md">Sign in</button></p>
  <p id="login-status" class="muted" role="status"></p>
</form>
</div>
<script>
document.getElementById('login-form').addEventListener('submit', async ev => {
  ev.preventDefault();
  const fd = new FormData(ev.target);
  const res = await fetch('/api/auth/login', {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify({email: fd.get('email'), password: fd.get('password')}),
  });
  if (res.ok) { location.href = '/admin'; return; }
  const data = await res.json().catch(() => ({}));
  document.getElementById('login-status').textContent = data.error || 'Login failed';
});
</script>
{% endblock %}
""")


@app.route("/admin")
def admin_dashboard():
    res = (
        get_db()
        .table(POST_TABLE)
        .select(POST_SELECT, count="exact")
        .order("created_at", desc=True)
        .execute()
    )
    posts = res.data
    return render_template_string(
        TEMPL_ADMIN_DASHBOARD,
        meta=page_meta(title="Admin", robots="noindex, nofollow"),
        posts=posts,
        total=res.count or len(posts),
        published=sum(1 for p in posts if p.get("status") == "published"),
        user=current_admin(),
    )


TEMPL_ADMIN_DASHBOARD = wrap("""
{% block body %}
<h1>Dashboard</h1>
<p class="muted">Signed in as {{ user.email }} · v{{ app_version }}</p>
<p>
  {{ button("New post", url_for('admin_post_new')) }}
  {{ button("Analytics", url_for('admin_analytics'), "outline") }}
  {{ button("Log out", None, "ghost", "md", "logout-btn") }}
</p>
<p>{{ total }} posts, {{ published }} published.</p>
<table>
  <thead><tr><th>Title</th><th>Status</th><th>Category</th><th>Published</th><th></th></tr></thead>
  <tbody>
  {% for p in posts %}
  <tr data-post-id="{{ p.id }}">
    <td><a href="{{ url_for('admin_post_edit', post_id=p.id) }}">{{ p.title }}</a></td>
    <td>{{ badge(p.status, None, "brand" if p.status == "published" else "default") }}</td>
    <td>{{ p.category }}</td>
    <td class="meta">{{ p.published_at|date }}</td>
    <td><button type="button" class="btn btn-danger btn-sm js-delete">Delete</button></td>
  </tr>
  {% else %}
  <tr><td colspan="5" class="muted">No posts yet.</td></tr>
  {% endfor %}
  </tbody>
</table>
<script>
document.getElementById('logout-btn').addEventListener('click', async () => {
  await fetch('/api/auth/logout', {method: 'POST'});
  location.href = '/admin/login';
});
document.querySelectorAll('.js-delete').forEach(btn => {
  btn.addEventListener('click', async () => {
    const row = btn.closest('tr');
    if (!confirm('Delete this post?')) return;
    const res = await fetch(`/api/admin/posts/${row.dataset.postId}`, {method: 'DELETE'});
    if (res.ok) row.remove();
    else alert((await res.json()).error || 'Delete failed');
  });
});
</script>
{% endblock %}
""")


@app.route("/admin/posts/new")
def admin_post_new():
    return _render_editor(None)


@app.route("/admin/posts/<post_id>")
def admin_post_edit(post_id):
    post = get_db().table(POST_TABLE).select("*").eq("id", post_id).first()
    if post is None:
        abort(404)
    return _render_editor(post)


def _render_editor(post: dict | None):
    authors = get_db().table("authors").select("id, name").order("name").execute().data
    return render_template_string(
        TEMPL_ADMIN_EDITOR,
        meta=page_meta(
            title="Edit post" if post else "New post", robots="noindex, nofollow"
        ),
        post=post or {},
        authors=authors,
        uploads_enabled=get_media().is_configured(),
    )


TEMPL_ADMIN_EDITOR = wrap("""
{% block body %}
<h1>{{ "Edit post" if post.id else "New post" }}</h1>
<form id="post-form" class="stack" data-post-id="{{ post.id or '' }}">
  <label for="title">Title</label><input id="title" name="title" value="{{ post.title or '' }}" required>
  <label for="slug">Slug</label><input id="slug" name="slug" value="{{ post.slug or '' }}" placeholder="generated from the title">
  <label for="excerpt">Excerpt</label><textarea id="excerpt" name="excerpt" rows="2">{{ post.excerpt or '' }}</textarea>
  <label for="content">Content (Markdown)</label><textarea id="content" name="content" rows="18">{{ post.content or '' }}</textarea>
  <label for="category">Category</label><input id="category" name="category" value="{{ post.category or '' }}">
  <label for="tags">Tags (comma separated)</label><input id="tags" name="tags" value="{{ (post.tags or [])|join(', ') }}">
  <label for="author_id">Author</label>
  <select id="author_id" name="author_id">
    {% for a in authors %}<option value="{{ a.id }}"{% if a.id == post.author_id %} selected{% endif %}>{{ a.name }}</option>{% endfor %}
  </select>
  <label for="featured_image">Featured image URL</label>
  <input id="featured_image" name="featured_image" value="{{ post.featured_image or '' }}">
  {% if uploads_enabled %}
  <input type="file" id="image-file" accept="image/jpeg,image/png,image/webp,image/gif">
  {% else %}
  <p class="muted">Image uploads are not configured.</p>
  {% endif %}
  <label for="status">Status</label>
  <select id="status" name="status">
    {% for s in ("draft", "published") %}<option value="{{ s }}"{% if s == (post.status or "draft") %} selected{% endif %}>{{ s }}</option>{% endfor %}
  </select>
  <label><input type="checkbox" name="featured"{% if post.featured %} checked{% endif %} style="width:auto"> Featured</label>
  <p><button type="submit" class="btn btn-primary btn-md">Save</button></p>
  <p id="post-status" class="muted" role="status"></p>
</form>
<script>
(() => {
  const form = document.getElementById('post-form');
  const status = document.getElementById('post-status');
  const file = document.getElementById('image-file');
  if (file) {
    file.addEventListener('change', async () => {
      if (!file.files.length) return;
      const fd = new FormData();
      fd.append('file', file.files[0]);
      status.textContent = 'Uploading…';
      const res = await fetch('/api/admin/upload', {method: 'POST', body: fd});
      const data = await res.json();
      if (!res.ok) { status.textContent = data.error || 'Upload failed'; return; }
      form.featured_image.value = data.url;
      status.textContent = 'Image uploaded.';
    });
  }
  form.addEventListener('submit', async ev => {
    ev.preventDefault();
    const fd = new FormData(form);
    const id = form.dataset.postId;
    const body = {
      title: fd.get('title'),
      slug: fd.get('slug') || null,
      excerpt: fd.get('excerpt'),
      content: fd.get('content'),
      category: fd.get('category'),
      tags: (fd.get('tags') || '').split(',').map(t => t.trim()).filter(Boolean),
      author_id: fd.get('author_id'),
      featured_image: fd.get('featured_image') || null,
      status: fd.get('status'),
      featured: fd.get('featured') === 'on',
    };
    const res = await fetch(id ? `/api/admin/posts/${id}` : '/api/admin/posts', {
      method: id ? 'PUT' : 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify(body),
    });
    const data = await res.json();
    if (res.ok) { location.href = '/admin'; return; }
    status.textContent = [data.error, ...(data.details || [])].join(' – ');
  });
})();
</script>
{% endblock %}
""")


@app.route("/admin/analytics")
def admin_analytics():
    days = min(max(int_arg("days", 7), 1), ANALYTICS_MAX_DAYS)
    return render_template_string(
        TEMPL_ADMIN_ANALYTICS,
        meta=page_meta(title="Analytics", robots="noindex, nofollow"),
        days=days,
        insights=analytics_insights(db=get_db(), days=days),
    )


TEMPL_ADMIN_ANALYTICS = wrap("""
{% block body %}
<h1>Analytics</h1>
<p>
  {% for d in (7, 30, 90) %}{{ badge(d ~ " days", url_for('admin_analytics', days=d), "brand" if d == days else "default") }}{% endfor %}
</p>
<p>{{ insights.totalEvents }} events across {{ insights.uniquePages }} pages.</p>
<div class="layout">
<section>
  <h2>Daily</h2>
  <table>
    <thead><tr><th>Date</th><th>Events</th><th>Pages</th></tr></thead>
    <tbody>{% for d in insights.dailyStats %}<tr><td>{{ d.date }}</td><td>{{ d.events }}</td><td>{{ d.uniquePages }}</td></tr>{% endfor %}</tbody>
  </table>
</section>
<aside class="sidebar">
  <section>
    <h3>Top pages</h3>
    {% for p in insights.topPages %}<p>{{ p.url }} <span class="meta">({{ p.views }})</span></p>{% else %}<p class="muted">No views yet.</p>{% endfor %}
  </section>
  <section>
    <h3>Events</h3>
    {% for e in insights.eventsByType %}<p>{{ e.name }} <span class="meta">({{ e.count }})</span></p>{% else %}<p class="muted">No events yet.</p>{% endfor %}
  </section>
</aside>
</div>
{% endblock %}
""")


################################################################################
# Meta routes
################################################################################
@app.route("/favicon.svg")
def favicon():
    """64 px SVG favicon: first letter of the site name on the brand color."""
    letter = (current_app.config["SITE_NAME"] or "R")[0].upper()
    svg = f'''<svg xmlns="http://www.w3.org/2000/svg"
                    width="64" height="64" viewBox="0 0 64 64">
      <rect width="64" height="64" rx="8" ry="8" fill="#2563eb"/>
      <text x="32" y="46" text-anchor="middle"
            font-family="Arial,Helvetica,sans-serif"
            font-size="42" font-weight="800"
            fill="#FFFFFF">{letter}</text>
    </svg>'''

    # 1-day cache so browsers don’t keep hammering the route
    return Response(
        svg,
        mimetype="image/svg+xml",
        headers={"Cache-Control": "public, max-age=86400"},
    )


@app.route("/robots.txt")
def robots():
    base = current_app.config["SITE_URL"]
    rules = (
        "User-agent: *\n"
        "Allow: /\n"
        "Disallow: /admin\n"
        "Disallow: /api/\n\n"
        f"Sitemap: {base}/sitemap.xml\n"
    )
    return (
        Response(rules, mimetype="text/plain"),
        200,
        {"Cache-Control": "public, max-age=86400"},
    )  # 1 day cache


@app.route("/sitemap.xml")
def sitemap():
    base = current_app.config["SITE_URL"]
    urls = [(f"{base}{path}", None) for path in ("/", "/blog", "/categories", "/jobs", "/about")]
    for post in published_posts(db=get_db()):
        urls.append((f"{base}/blog/{post['slug']}", (post["publishedAt"] or "")[:10] or None))

    lines = ['<?xml version="1.0" encoding="UTF-8"?>',
             '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">']
    for loc, lastmod in urls:
        lines.append("  <url>")
        lines.append(f"    <loc>{xml_escape(loc)}</loc>")
        if lastmod:
            lines.append(f"    <lastmod>{lastmod}</lastmod>")
        lines.append("  </url>")
    lines.append("</urlset>")
    return Response(
        "\n".join(lines),
        mimetype="application/xml",
        headers={"Cache-Control": "public, max-age=3600"},
    )


################################################################################
# Errors
################################################################################
def _wants_json() -> bool:
    return request.path.startswith("/api/")


@app.errorhandler(ValidationError)
def invalid_body(exc):
    return api_error(_validation_message(exc), 400)


@app.errorhandler(UpstreamError)
def upstream_failed(exc):
    app.logger.exception("upstream service call failed")
    if _wants_json():
        return api_error("Internal server error", 500)
    return render_template_string(TEMPL_500, meta=page_meta(title="Error")), 500


@app.errorhandler(HTTPException)
def http_error(exc):
    if _wants_json():
        return api_error(exc.description or exc.name, exc.code or 500)
    if exc.code == 404:
        return not_found(exc)
    return exc


def not_found(exc):
    """Site-wide “Not Found” page."""
    return (
        render_template_string(
            TEMPL_404, meta=page_meta(title="Page not found", robots="noindex")
        ),
        404,
    )


@app.errorhandler(500)
def internal_error(exc):
    """
    Generic 500 response.
    • In debug mode Flask bypasses this handler and shows the traceback.
    """
    if _wants_json():
        return api_error("Internal server error", 500)
    return render_template_string(TEMPL_500, meta=page_meta(title="Error")), 500


TEMPL_404 = wrap("""
{% block body %}
  <h1>Page not found</h1>
  <p>The page you asked for doesn’t exist.
     <a href="{{ url_for('index') }}">Back to the front page</a>
     or use the search box above.</p>
{% endblock %}
""")

TEMPL_500 = wrap("""
{% block body %}
  <h1>Internal Server Error</h1>
  <p>Our fault, not yours. Please try again in a minute.</p>
{% endblock %}
""")
