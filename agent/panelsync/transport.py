from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import httpx

from .config import DEFAULT_RETRY_COUNT, DEFAULT_TIMEOUT
from .errors import DecodeError, TransportError
from .redact import mask_url, redact_log_text

logger = logging.getLogger(__name__)

_HTTP_LIMITS = httpx.Limits(max_connections=20, max_keepalive_connections=10, keepalive_expiry=20.0)
_RETRY_BACKOFF_BASE_SEC = 0.35
_RETRY_BACKOFF_MAX_SEC = 2.5
_ERROR_BODY_MAX = 512


def _retry_backoff_sec(attempt_no: int) -> float:
    n = max(1, int(attempt_no or 1))
    return min(_RETRY_BACKOFF_MAX_SEC, _RETRY_BACKOFF_BASE_SEC * (2 ** (n - 1)))


def _normalize_base_url(base_url: str) -> str:
    raw = (base_url or "").strip()
    if not raw:
        return ""
    if "://" not in raw:
        raw = f"http://{raw}"
    return raw.rstrip("/")


def _body_excerpt(response: httpx.Response) -> str:
    text = (response.text or "").strip()
    if len(text) > _ERROR_BODY_MAX:
        text = text[:_ERROR_BODY_MAX] + "…"
    return redact_log_text(text)


class PanelTransport:
    """Shared-secret JSON over HTTP, with bounded retries on network errors.

    Only transport failures (connect errors, timeouts, broken keep-alive) are
    retried. An HTTP status >= 400 is reported immediately.
    """

    def __init__(
        self,
        base_url: str,
        key: str,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        verify_tls: bool = True,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = _normalize_base_url(base_url)
        self._key = key
        self.timeout = float(timeout) if timeout and timeout > 0 else DEFAULT_TIMEOUT
        self.retry_count = max(0, int(retry_count))
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            verify=bool(verify_tls),
            limits=_HTTP_LIMITS,
            timeout=self.timeout,
        )
        self._sleep = sleep
        self.debug = False

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self) -> dict:
        return {
            "key": self._key,
            "timestamp": str(int(time.time())),
            "Accept": "application/json",
        }

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def request(self, method: str, path: str, body: Any = None) -> Any:
        """Send one request and return the decoded JSON body."""
        url = self.url(path)
        if not self.base_url:
            raise TransportError(f"request {path} failed: panel address is empty")
        method_u = str(method or "GET").upper()
        attempts = self.retry_count + 1

        response: Optional[httpx.Response] = None
        for attempt in range(attempts):
            try:
                if self.debug:
                    logger.debug("%s %s body=%s", method_u, mask_url(url), redact_log_text(body))
                if method_u == "GET":
                    response = self._client.get(url, headers=self._headers(), timeout=self.timeout)
                else:
                    response = self._client.post(url, headers=self._headers(), json=body, timeout=self.timeout)
                break
            except httpx.TransportError as exc:
                if attempt + 1 >= attempts:
                    raise TransportError(
                        f"request {mask_url(url)} failed: {redact_log_text(exc)}"
                    ) from exc
                delay = _retry_backoff_sec(attempt + 1)
                logger.warning(
                    "request %s failed (%s), retry %d/%d in %.2fs",
                    mask_url(url),
                    type(exc).__name__,
                    attempt + 1,
                    self.retry_count,
                    delay,
                )
                self._sleep(delay)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                # bad body encoding, malformed URL: retrying would not change the outcome
                raise TransportError(
                    f"request {mask_url(url)} failed: {type(exc).__name__}: {redact_log_text(exc)}"
                ) from exc

        assert response is not None
        if self.debug:
            logger.debug("%s %s -> %s %s", method_u, mask_url(url), response.status_code, _body_excerpt(response))

        if response.status_code >= 400:
            raise TransportError(
                f"request {mask_url(url)} failed: HTTP {response.status_code}, {_body_excerpt(response)}",
                status_code=response.status_code,
            )
        try:
            # panels do not always set content-type, always read the body as JSON
            return response.json()
        except ValueError as exc:
            raise DecodeError("Response", exc) from exc
