"""Shared HTTP plumbing for the external collaborators (geocoder, router, directory, estimator)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class UpstreamServiceError(RuntimeError):
    """Raised when an external service answers with an unusable payload."""


class BaseHttpClient:
    """Holds timeout and retry policy and performs requests with backoff.

    When no ``client`` is injected a short-lived ``httpx.Client`` is created
    per request.
    """

    service_name = "HTTP service"

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        if not base_url:
            raise ValueError(f"{self.service_name} base URL is not configured.")
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.http_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.http_backoff_seconds
        self._client = client

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
        )

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        kwargs["headers"] = {"User-Agent": settings.user_agent, **(kwargs.get("headers") or {})}
        client = self._client or self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.request(method, url, **kwargs)
                    response.raise_for_status()
                    return response
                except httpx.HTTPStatusError as e:
                    # Client errors will not succeed on retry.
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"{self.service_name} request timed out after {self.max_retries} retries: {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{self.service_name} timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to {self.service_name} at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{self.service_name} network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            if self._client is None:
                client.close()

    def get_json(self, url: str, **kwargs: Any) -> Any:
        response = self._send("GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamServiceError(f"{self.service_name} returned a non-JSON response.") from exc
