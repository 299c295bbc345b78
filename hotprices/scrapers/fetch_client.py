# hotprices/scrapers/fetch_client.py

"""Retailer-agnostic HTTP transport with retries and rate limiting."""

import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from hotprices.config.settings import Settings
from hotprices.errors import FetchFatalError, RetriesExhaustedError


@dataclass(frozen=True)
class RawResponse:
    """Body and status of a successful response."""

    url: str
    status: int
    text: str

    def json(self) -> Any:
        """Decode the body, treating malformed JSON as a fatal fetch."""
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as exc:
            raise FetchFatalError(
                f"Malformed JSON from {self.url}: {exc}",
                url=self.url,
                status=self.status,
            ) from exc


class FetchClient:
    """One HTTP session per retailer run.

    The underlying curl_cffi session keeps the cookie jar for the whole
    run. Every request waits out the minimum inter-request delay, and
    transient failures (network errors, 429, 5xx, challenge pages) are
    retried with capped exponential backoff plus jitter. Other 4xx
    responses are fatal and never retried.
    """

    def __init__(
        self,
        source_name: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(f"hotprices.fetch.{source_name}")
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self.headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            **(headers or {}),
        }
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT
        self._min_delay: float = self.settings.REQUEST_DELAY
        self._last_request_at: float | None = None

    @property
    def cookies(self) -> Any:
        """The session cookie jar shared by every request of this run."""
        return self.session.cookies

    def set_header(self, name: str, value: str) -> None:
        """Add a header sent with every subsequent request."""
        self.headers[name] = value

    # ── Pacing ───────────────────────────────────────────

    def _wait(self) -> None:
        """Sleep until the minimum delay since the last request has passed."""
        if self._last_request_at is not None:
            elapsed = time.monotonic() - self._last_request_at
            remaining = self._min_delay - elapsed
            if remaining > 0:
                time.sleep(remaining)
        self._last_request_at = time.monotonic()

    def _backoff(self, attempt: int) -> float:
        """Capped exponential backoff with random jitter."""
        base = min(
            self.settings.BACKOFF_BASE * (2 ** attempt),
            self.settings.MAX_BACKOFF,
        )
        return base + random.uniform(0, self.settings.BACKOFF_JITTER)

    # ── Response checks ──────────────────────────────────

    def _validate_response(self, text: str) -> bool:
        """Reject anti-bot challenge pages served with a 200 status."""
        if text.lstrip().startswith(("{", "[")):
            return True
        lower = text.lower()
        for marker in self.settings.CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Challenge page detected (marker: '%s')",
                    self.source_name,
                    marker,
                )
                return False
        return True

    @staticmethod
    def is_retryable_status(status: int) -> bool:
        """429 and 5xx are transient; everything else is final."""
        return status == 429 or status >= 500

    # ── Requests ─────────────────────────────────────────

    def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> RawResponse:
        """Send a request, retrying transient failures.

        Raises:
            FetchFatalError: non-retryable status.
            RetriesExhaustedError: transient failure on every attempt.
        """
        merged_headers = {**self.headers, **(headers or {})}
        send = getattr(self.session, method)
        kwargs: dict[str, Any] = {
            "headers": merged_headers,
            "timeout": self._request_timeout,
        }
        if params is not None:
            kwargs["params"] = params
        if payload is not None:
            kwargs["json"] = payload

        attempts = self.settings.MAX_RETRIES
        last_error = ""
        last_status: int | None = None
        for attempt in range(attempts):
            self._wait()
            self.logger.debug(
                "[%s] %s %s (attempt %d)",
                self.source_name,
                method.upper(),
                url,
                attempt + 1,
            )
            try:
                resp = send(url, **kwargs)
            except Exception as exc:
                last_error = str(exc)
                last_status = None
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_name,
                    attempt + 1,
                    exc,
                )
            else:
                status = int(resp.status_code)
                last_status = status
                if 200 <= status < 300:
                    text = str(resp.text)
                    if self._validate_response(text):
                        return RawResponse(url=url, status=status, text=text)
                    last_error = "challenge page"
                elif self.is_retryable_status(status):
                    last_error = f"HTTP {status}"
                    self.logger.warning(
                        "[%s] HTTP %d on attempt %d",
                        self.source_name,
                        status,
                        attempt + 1,
                    )
                else:
                    raise FetchFatalError(
                        f"HTTP {status} for {url}",
                        url=url,
                        status=status,
                    )

            if attempt < attempts - 1:
                delay = self._backoff(attempt)
                self.logger.info(
                    "[%s] Retrying %s in %.1fs",
                    self.source_name,
                    url,
                    delay,
                )
                time.sleep(delay)

        self.logger.error(
            "[%s] Giving up on %s after %d attempts: %s",
            self.source_name,
            url,
            attempts,
            last_error,
        )
        raise RetriesExhaustedError(
            f"Failed request to {url} after {attempts} attempts: {last_error}",
            url=url,
            status=last_status,
        )

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> RawResponse:
        """GET ``url`` through the retry loop."""
        return self._request("get", url, headers=headers, params=params)

    def post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> RawResponse:
        """POST a JSON ``payload`` through the retry loop."""
        return self._request("post", url, headers=headers, payload=payload)

    def get_page(self, url: str) -> BeautifulSoup:
        """Fetch an HTML page, falling back to cloudscraper when blocked."""
        try:
            resp = self.get(url)
            return BeautifulSoup(resp.text, "lxml")
        except RetriesExhaustedError as exc:
            self.logger.info(
                "[%s] curl_cffi exhausted, falling back to cloudscraper",
                self.source_name,
            )
            try:
                _cs: Any = cloudscraper
                scraper: Any = _cs.create_scraper()
                fallback: Any = scraper.get(
                    url,
                    headers=self.headers,
                    timeout=self._request_timeout,
                )
            except Exception as fallback_exc:
                self.logger.error(
                    "[%s] cloudscraper fallback also failed: %s",
                    self.source_name,
                    fallback_exc,
                )
                raise exc from fallback_exc
            if fallback.status_code == 200 and self._validate_response(
                str(fallback.text)
            ):
                return BeautifulSoup(str(fallback.text), "lxml")
            raise
