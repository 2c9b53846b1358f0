"""Shared HTTP plumbing for the external schedule, travel and geocoding services."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ...config import settings

logger = logging.getLogger(__name__)


class ProviderClient:
    """Small httpx wrapper with bounded retries and exponential backoff."""

    service_name = "provider"

    def __init__(
        self,
        base_url: str | None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError(f"{self.service_name} base URL is not configured.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        # A fresh client per call; nothing is held open between requests.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(10.0, self.timeout)),
            transport=self._transport,
        )

    def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.request(method, url, **kwargs)
                    response.raise_for_status()
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise ValueError(f"{self.service_name} returned a non-JSON body from {path}") from exc
                except httpx.HTTPStatusError as exc:
                    # 4xx will not get better on retry
                    if exc.response.status_code < 500:
                        raise ValueError(
                            f"{self.service_name} rejected {method} {path}: HTTP {exc.response.status_code}"
                        ) from exc
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"{self.service_name} failed with HTTP {exc.response.status_code} after {attempt} attempts"
                        ) from exc
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"{self.service_name} request timed out after {self.max_retries} retries: {exc}")
                        raise ConnectionError(f"{self.service_name} timed out: {exc}") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"{self.service_name} timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})"
                    )
                    time.sleep(wait_time)
                except (httpx.NetworkError, OSError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to {self.service_name} at {self.base_url}: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"{self.service_name} network error, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries}): {exc}"
                    )
                    time.sleep(wait_time)
        finally:
            client.close()

    def check_health(self) -> bool:
        """Cheap reachability probe; any HTTP answer counts as reachable."""
        client = self._get_client()
        try:
            client.get(self.base_url, timeout=5.0)
            return True
        except httpx.HTTPError:
            return False
        finally:
            client.close()
