"""HTTP client for the public NCAA scoreboard / box-score JSON API."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://ncaa-api.henrygd.me"

RETRYABLE_STATUSES = frozenset({428, 429, 500, 502, 503, 504})
# 428 is the upstream's "box score not ready yet"; it and 502 back off longer.
SLOW_RETRY_STATUSES = frozenset({428, 502})


class FetchError(Exception):
    """A request that failed after the client's retry budget was spent."""

    def __init__(self, path: str, status: Optional[int] = None, kind: str = "http", message: str = ""):
        self.path = path
        self.status = status
        self.kind = kind
        detail = message or (f"status {status}" if status is not None else kind)
        super().__init__(f"Fetch failed ({detail}) for {path}")


class UpstreamRateLimitedError(FetchError):
    """Retryable status (429/5xx/not-ready) still returned on the last attempt."""


class UpstreamPermanentError(FetchError):
    """Non-retryable status or a body that is not JSON."""


class NetworkTransientError(FetchError):
    """Timeout or connection-level failure on the last attempt."""


@dataclass
class ApiClientConfig:
    base_url: str = field(default_factory=lambda: os.getenv("NCAA_API_BASE_URL", DEFAULT_BASE_URL))
    timeout_seconds: float = 20.0
    retries: int = 3  # after the first attempt
    retry_delay_seconds: float = 0.4
    not_ready_delay_seconds: float = 2.0
    network_retry_delay_seconds: float = 0.5
    user_agent: str = "wbb-ratings-bot"
    max_logged_failures: int = 10


class NCAAApiClient:
    """
    Fetches scoreboard and box-score JSON with timeout and linear backoff.

    The client keeps no state between calls apart from a failure counter used
    to throttle log output, so one instance can be shared by worker threads.

    Usage:
        client = NCAAApiClient()
        board = client.fetch_scoreboard(date(2025, 11, 3))
        box = client.fetch_boxscore("6458217")
    """

    def __init__(
        self,
        config: Optional[ApiClientConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or ApiClientConfig()
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": self.config.user_agent,
                "Accept": "application/json",
                "Accept-Language": "en-US,en;q=0.9",
                "Referer": "https://www.ncaa.com/",
                "Origin": "https://www.ncaa.com/",
            }
        )
        self._sleep = sleep
        self._failure_lock = threading.Lock()
        self.logged_failures = 0

    @staticmethod
    def scoreboard_path(day: date, sport: str = "basketball-women", division: str = "d1") -> str:
        return f"/scoreboard/{sport}/{division}/{day.year:04d}/{day.month:02d}/{day.day:02d}/all-conf"

    @staticmethod
    def boxscore_path(game_id: str) -> str:
        return f"/game/{game_id}/boxscore"

    def fetch_scoreboard(self, day: date, sport: str = "basketball-women", division: str = "d1") -> Any:
        return self.fetch_json(self.scoreboard_path(day, sport, division))

    def fetch_boxscore(self, game_id: str) -> Any:
        return self.fetch_json(self.boxscore_path(game_id), log_failures=True)

    def fetch_json(self, path: str, log_failures: bool = False) -> Any:
        """
        GET ``path`` relative to the base URL and decode the JSON body.

        Args:
            path: Path beginning with ``/``
            log_failures: Log HTTP error statuses (throttled)

        Returns:
            Decoded JSON payload

        Raises:
            UpstreamRateLimitedError: retryable status on the final attempt
            UpstreamPermanentError: non-retryable status or invalid JSON
            NetworkTransientError: timeout/connection failure on the final attempt
        """
        url = f"{self.config.base_url.rstrip('/')}{path}"
        retries = max(0, self.config.retries)

        for attempt in range(retries + 1):
            has_retry = attempt < retries
            try:
                response = self.session.get(url, timeout=self.config.timeout_seconds)
            except requests.Timeout as exc:
                if has_retry:
                    self._sleep(self.config.network_retry_delay_seconds * (attempt + 1))
                    continue
                raise NetworkTransientError(
                    path,
                    kind="timeout",
                    message=f"timed out after {self.config.timeout_seconds}s",
                ) from exc
            except (requests.ConnectionError, requests.exceptions.ChunkedEncodingError) as exc:
                # Dropped connection, possibly mid-body.
                if has_retry:
                    self._sleep(self.config.network_retry_delay_seconds * (attempt + 1))
                    continue
                raise NetworkTransientError(path, kind="network", message=str(exc)) from exc
            except requests.RequestException as exc:
                raise NetworkTransientError(path, kind="network", message=str(exc)) from exc

            status = response.status_code
            if status >= 400:
                if log_failures:
                    self._log_http_failure(status, path)
                if status in RETRYABLE_STATUSES:
                    if has_retry:
                        self._sleep(self._retry_delay(status) * (attempt + 1))
                        continue
                    raise UpstreamRateLimitedError(path, status=status)
                raise UpstreamPermanentError(path, status=status)

            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamPermanentError(path, status=status, message="invalid JSON body") from exc

        raise UpstreamRateLimitedError(path, message="retries exhausted")

    def _retry_delay(self, status: int) -> float:
        if status in SLOW_RETRY_STATUSES:
            return self.config.not_ready_delay_seconds
        return self.config.retry_delay_seconds

    def _log_http_failure(self, status: int, path: str) -> None:
        with self._failure_lock:
            if self.logged_failures >= self.config.max_logged_failures:
                return
            self.logged_failures += 1
        logger.warning("Box score HTTP failure %s for %s", status, path)
