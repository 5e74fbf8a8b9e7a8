"""
URL handling for coverage rows.

``canonicalize_url`` produces the dedup key used to decide whether two rows
point at the same article: lowercased host without ``www.`` plus a normalized
path, with query and fragment dropped. The key is compared, never displayed.

``resolve_link_target`` produces the URL written as the title hyperlink.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import urlsplit

TRACKING_HOSTS = (
    "links.cision.one",
    "bit.ly",
    "t.co",
    "ow.ly",
    "lnkd.in",
    "tinyurl.com",
)

URL_LIKE_RE = re.compile(r"(https?:/?/?[a-z0-9.-]+[^\s\",)]+)", re.IGNORECASE)
FORMULA_HINT_RE = re.compile(r"^=*\s*hyperlink", re.IGNORECASE)
ENCODED_ARGS_RE = re.compile(r"%22,%20%22", re.IGNORECASE)
HYPERLINK_FORMULA_RE = re.compile(
    r'^=HYPERLINK\(\s*"([^"]*)"\s*(?:[,;]\s*"([^"]*)"\s*)?\)$',
    re.IGNORECASE,
)
SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
DUPLICATE_SLASHES_RE = re.compile(r"/{2,}")
LEADING_WWW_RE = re.compile(r"^(?:www\.)+", re.IGNORECASE)


def fix_protocol(url: str) -> str:
    """Repair ``https/host``, ``https:/host`` and ``https:host`` style prefixes."""
    text = url.strip()
    text = re.sub(
        r"^(https?)/(?!/)",
        lambda m: m.group(1).lower() + "://",
        text,
        flags=re.IGNORECASE,
    )
    text = re.sub(r"^(https?):(?!//)/?", lambda m: m.group(1).lower() + "://", text, flags=re.IGNORECASE)
    return text


def _host_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_tracking_host(url: str, tracking_hosts: Sequence[str] = TRACKING_HOSTS) -> bool:
    host = _host_of(url)
    if not host:
        return False
    return any(host == known or host.endswith("." + known) for known in tracking_hosts)


def extract_best_url(raw: str, tracking_hosts: Sequence[str] = TRACKING_HOSTS) -> str | None:
    """
    Pick the article URL out of a formula or percent-encoded construct.

    The last URL-like candidate that is not on a tracking/shortener host wins;
    otherwise the last candidate overall.
    """
    if not raw:
        return None
    candidates = [fix_protocol(found) for found in URL_LIKE_RE.findall(raw)]
    if not candidates:
        return None
    for candidate in reversed(candidates):
        if not is_tracking_host(candidate, tracking_hosts):
            return candidate
    return candidates[-1]


def looks_like_formula(raw: str) -> bool:
    return bool(FORMULA_HINT_RE.search(raw) or ENCODED_ARGS_RE.search(raw))


def unwrap_hyperlink(raw: str, tracking_hosts: Sequence[str] = TRACKING_HOSTS) -> str:
    """Return the article URL inside a HYPERLINK formula, or ``raw`` unchanged."""
    working = raw.strip()
    if looks_like_formula(working):
        best = extract_best_url(working, tracking_hosts)
        if best:
            return best
    direct = HYPERLINK_FORMULA_RE.match(working)
    if direct:
        return direct.group(2) or direct.group(1)
    return working


def _normalize_path(path: str) -> str:
    path = DUPLICATE_SLASHES_RE.sub("/", path or "/")
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def _fallback_key(working: str) -> str:
    text = re.split(r"[?#]", working, maxsplit=1)[0]
    text = re.sub(r"^https?://", "", text, flags=re.IGNORECASE)
    text = LEADING_WWW_RE.sub("", text)
    text = DUPLICATE_SLASHES_RE.sub("/", text)
    if len(text) > 1 and text.endswith("/"):
        text = text[:-1]
    return text.lower()


def canonicalize_url(raw: str | None, tracking_hosts: Sequence[str] = TRACKING_HOSTS) -> str | None:
    """Dedup key for ``raw`` or ``None`` when nothing usable is present."""
    if not raw:
        return None
    working = str(raw).strip()
    if not working:
        return None
    working = unwrap_hyperlink(working, tracking_hosts)
    working = fix_protocol(working)
    if not SCHEME_RE.match(working):
        working = "https://" + working

    try:
        parts = urlsplit(working)
        host = parts.hostname
    except ValueError:
        host = None
        parts = None
    if parts is None or not host:
        key = _fallback_key(working)
        return key or None

    host = host.lower()
    host = LEADING_WWW_RE.sub("", host)
    return host + _normalize_path(parts.path)


def resolve_link_target(raw: str | None, tracking_hosts: Sequence[str] = TRACKING_HOSTS) -> str | None:
    """URL to write as the title hyperlink, with formula wrappers removed."""
    if not raw:
        return None
    working = str(raw).strip()
    if not working:
        return None
    working = unwrap_hyperlink(working, tracking_hosts)
    return fix_protocol(working) or None
