from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_SECRET_KEY_HINTS = ("key", "token", "secret", "password", "passwd", "authorization")

_QUERY_TOKEN_RE = re.compile(
    r"(?P<prefix>[?&](?:token|api_key|apikey|key)=)(?P<token>[^&\s]+)",
    re.IGNORECASE,
)
_HEADER_TOKEN_RE = re.compile(
    r"(?P<prefix>(?:\bkey|X-API-Key)\s*[:=]\s*(?:\"|')?)(?P<token>[^\s,;\"'}]+)",
    re.IGNORECASE,
)
_KV_SECRET_RE = re.compile(
    r"(?P<prefix>(?:\"|')(?:password|passwd|secret|token)(?:\"|')\s*:\s*(?:\"|'))(?P<token>[^\"']+)",
    re.IGNORECASE,
)


def _mask_middle(value: str, keep_start: int = 2, keep_end: int = 2, min_mask: int = 3) -> str:
    s = str(value or "")
    if not s:
        return ""
    total = len(s)
    if total <= 2:
        return "*" * total
    ks = max(0, int(keep_start))
    ke = max(0, int(keep_end))
    if ks + ke >= total:
        ks = min(1, total)
        ke = 0 if total <= 3 else 1
    hidden = max(1, total - ks - ke)
    if total >= (ks + ke + int(min_mask)):
        hidden = max(hidden, int(min_mask))
    head = s[:ks] if ks > 0 else ""
    tail = s[-ke:] if ke > 0 else ""
    return f"{head}{'*' * hidden}{tail}"


def mask_secret(value: Any, keep_start: int = 3, keep_end: int = 2) -> str:
    s = str(value or "").strip()
    if not s:
        return ""
    return _mask_middle(s, keep_start=keep_start, keep_end=keep_end, min_mask=4)


def mask_url(value: Any) -> str:
    """Hide userinfo and query string of a URL, keep scheme/host/port/path."""
    raw = str(value or "").strip()
    if not raw:
        return ""
    parsed = urlsplit(raw)
    if not parsed.hostname:
        return redact_log_text(raw)
    netloc = parsed.hostname
    if ":" in netloc:
        netloc = f"[{netloc}]"
    try:
        port = parsed.port
    except ValueError:
        port = None
    if port is not None:
        netloc = f"{netloc}:{port}"
    if parsed.username:
        netloc = f"***@{netloc}"
    query = "***" if parsed.query else ""
    return urlunsplit((parsed.scheme, netloc, parsed.path, query, ""))


def redact_log_text(value: Any) -> str:
    text = str(value or "")
    if not text:
        return ""
    text = _QUERY_TOKEN_RE.sub(lambda m: f"{m.group('prefix')}{mask_secret(m.group('token'))}", text)
    text = _HEADER_TOKEN_RE.sub(lambda m: f"{m.group('prefix')}{mask_secret(m.group('token'))}", text)
    text = _KV_SECRET_RE.sub(lambda m: f"{m.group('prefix')}{mask_secret(m.group('token'))}", text)
    return text


def redact_for_log(value: Any, *, key_hint: str = "") -> Any:
    if isinstance(value, dict):
        return {str(k): redact_for_log(v, key_hint=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact_for_log(v, key_hint=key_hint) for v in value)
    hint = str(key_hint or "").strip().lower()
    if hint and any(h in hint for h in _SECRET_KEY_HINTS):
        return mask_secret(value)
    if isinstance(value, str):
        return redact_log_text(value)
    return value
