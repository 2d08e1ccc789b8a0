"""
Handles for the two external services the blog talks to.

* ``RestDatabase`` – the hosted Postgres REST gateway (PostgREST dialect,
  ``/rest/v1``), reached with a plain ``requests.Session``.
* ``MediaStore`` – an S3-compatible bucket (R2) for uploaded images, with
  public delivery and on-the-fly resizing through ``/cdn-cgi/image``.

Both are built once at start-up and handed to the app; nothing in here
keeps per-request state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

R2_ENV_KEYS = (
    "R2_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_BUCKET",
    "R2_PUBLIC_BASE",
    "R2_ENDPOINT",
)
R2_REQUIRED_KEYS = (
    "R2_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_BUCKET",
)

TEXT_SEARCH_OPS = {"websearch": "wfts", "plain": "plfts", "phrase": "phfts"}


class UpstreamError(Exception):
    """A call to the database gateway or the media bucket failed."""


class DatabaseError(UpstreamError):
    pass


class MediaError(UpstreamError):
    pass


###############################################################################
# Database gateway
###############################################################################
@dataclass
class QueryResult:
    data: list[dict] = field(default_factory=list)
    count: int | None = None


def _fmt(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _quote_item(value: Any) -> str:
    """Array literal member: always double-quoted, embedded quotes escaped."""
    s = _fmt(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{s}"'


def _compact(columns: str) -> str:
    return "".join(columns.split())


def parse_content_range(header: str | None) -> int | None:
    """``0-9/42`` → 42, ``*/0`` → 0, ``0-9/*`` → None."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


class Query:
    """
    Chainable request description for one table.

    Nothing goes over the wire until ``execute()`` (or ``first()``).
    """

    def __init__(self, db: "RestDatabase", table: str):
        self._db = db
        self.table = table
        self.method = "GET"
        self.params: list[tuple[str, str]] = []
        self.payload: Any = None
        self.count_mode: str | None = None

    # ── shaping ──────────────────────────────────────────────────────
    def select(self, columns: str = "*", *, count: str | None = None) -> "Query":
        self.params.append(("select", _compact(columns)))
        self.count_mode = count
        return self

    def insert(self, rows: dict | list[dict]) -> "Query":
        self.method = "POST"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, values: dict) -> "Query":
        self.method = "PATCH"
        self.payload = values
        return self

    def delete(self) -> "Query":
        self.method = "DELETE"
        return self

    # ── filters ──────────────────────────────────────────────────────
    def _filter(self, column: str, op: str, value: str) -> "Query":
        self.params.append((column, f"{op}.{value}"))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "eq", _fmt(value))

    def neq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "neq", _fmt(value))

    def gte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "gte", _fmt(value))

    def lte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "lte", _fmt(value))

    def overlaps(self, column: str, values: Iterable[Any]) -> "Query":
        members = ",".join(_quote_item(v) for v in values)
        return self._filter(column, "ov", "{" + members + "}")

    def text_search(
        self,
        column: str,
        query: str,
        *,
        config: str = "english",
        kind: str = "websearch",
    ) -> "Query":
        op = TEXT_SEARCH_OPS.get(kind, "fts")
        return self._filter(column, f"{op}({config})", query)

    def order(self, column: str, *, desc: bool = False) -> "Query":
        self.params.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def range(self, start: int, end: int) -> "Query":
        """Inclusive row window, same convention as the JS client."""
        self.params.append(("offset", str(start)))
        self.params.append(("limit", str(max(end - start + 1, 0))))
        return self

    def limit(self, n: int) -> "Query":
        self.params = [p for p in self.params if p[0] != "limit"]
        self.params.append(("limit", str(n)))
        return self

    # ── running ──────────────────────────────────────────────────────
    def execute(self) -> QueryResult:
        return self._db.run(self)

    def first(self) -> dict | None:
        res = self.limit(1).execute()
        return res.data[0] if res.data else None


class RestDatabase:
    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: float = 10,
        session: requests.Session | None = None,
    ):
        self.base = f"{(url or '').rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.configured = bool(url and key)
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": key or "",
                "Authorization": f"Bearer {key or ''}",
                "Accept": "application/json",
            }
        )

    def table(self, name: str) -> Query:
        return Query(self, name)

    def rpc(self, fn: str, params: dict | None = None) -> Any:
        url = f"{self.base}/rpc/{fn}"
        resp = self._send("POST", url, what=f"rpc {fn}", json=params or {})
        return resp.json() if resp.content else None

    def run(self, query: Query) -> QueryResult:
        prefer = []
        if query.count_mode:
            prefer.append(f"count={query.count_mode}")
        if query.method != "GET":
            prefer.append("return=representation")
        headers = {"Prefer": ",".join(prefer)} if prefer else {}

        resp = self._send(
            query.method,
            f"{self.base}/{query.table}",
            what=f"{query.method} {query.table}",
            params=query.params,
            json=query.payload,
            headers=headers,
        )
        data = resp.json() if resp.content else []
        if isinstance(data, dict):
            data = [data]
        return QueryResult(
            data=data, count=parse_content_range(resp.headers.get("Content-Range"))
        )

    def _send(self, method: str, url: str, *, what: str, **kwargs) -> requests.Response:
        if not self.configured:
            raise DatabaseError(f"{what}: database gateway is not configured")
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise DatabaseError(f"{what}: {exc}") from exc
        if resp.status_code >= 400:
            raise DatabaseError(f"{what}: HTTP {resp.status_code} {resp.text[:200]}")
        return resp


###############################################################################
# Media bucket
###############################################################################
def media_status(cfg: dict[str, str]) -> dict[str, str]:
    """Set/Missing report; never echoes a credential."""
    report = {k: ("Set" if cfg.get(k) else "Missing") for k in R2_REQUIRED_KEYS}
    report["R2_PUBLIC_BASE"] = "Set" if cfg.get("R2_PUBLIC_BASE") else "Missing"
    report["bucket"] = cfg.get("R2_BUCKET") or "undefined"
    return report


class MediaStore:
    def __init__(self, cfg: dict[str, str], *, client=None):
        self.cfg = {k: v for k, v in cfg.items() if v}
        self._client = client

    def is_configured(self) -> bool:
        return all(self.cfg.get(k) for k in R2_REQUIRED_KEYS)

    @property
    def client(self):
        if self._client is None:
            if not self.is_configured():
                raise MediaError("media bucket is not configured")
            cfg = self.cfg
            endpoint = (
                cfg.get("R2_ENDPOINT")
                or f"https://{cfg['R2_ACCOUNT_ID']}.r2.cloudflarestorage.com"
            )
            self._client = boto3.client(
                "s3",
                endpoint_url=endpoint,
                region_name="auto",
                aws_access_key_id=cfg["R2_ACCESS_KEY_ID"],
                aws_secret_access_key=cfg["R2_SECRET_ACCESS_KEY"],
            )
        return self._client

    @property
    def bucket(self) -> str:
        return self.cfg.get("R2_BUCKET", "")

    # ── objects ──────────────────────────────────────────────────────
    def upload(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="public, max-age=3600",
            )
        except (BotoCoreError, ClientError) as exc:
            raise MediaError(f"upload {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise MediaError(f"delete {key}: {exc}") from exc

    # ── URLs ─────────────────────────────────────────────────────────
    def public_base(self) -> str:
        base = self.cfg.get("R2_PUBLIC_BASE")
        if base:
            return base.rstrip("/")
        if self.cfg.get("R2_BUCKET") and self.cfg.get("R2_ACCOUNT_ID"):
            return f"https://{self.cfg['R2_BUCKET']}.{self.cfg['R2_ACCOUNT_ID']}.r2.cloudflarestorage.com"
        return ""

    def public_url(self, key: str) -> str:
        return f"{self.public_base()}/{key.lstrip('/')}"

    def owns(self, url: str | None) -> bool:
        base = self.public_base()
        return bool(base and url and url.startswith(base + "/"))

    def image_url(
        self,
        src: str,
        *,
        width: int | None = None,
        height: int | None = None,
        quality: str | int = "auto",
        fmt: str = "auto",
        fit: str | None = None,
    ) -> str:
        """
        Resized/recompressed delivery URL for images in our bucket.
        Anything else (external URLs, static files) comes back untouched.
        """
        if not self.owns(src):
            return src
        opts = []
        if width:
            opts.append(f"width={width}")
        if height:
            opts.append(f"height={height}")
        if fit:
            opts.append(f"fit={fit}")
        opts.append(f"quality={quality}")
        opts.append(f"format={fmt}")
        base = self.public_base()
        key = src[len(base) + 1 :]
        return f"{base}/cdn-cgi/image/{','.join(opts)}/{key}"

    def srcset(self, src: str, widths: Iterable[int]) -> str:
        if not self.owns(src):
            return ""
        return ", ".join(f"{self.image_url(src, width=w)} {w}w" for w in widths)
