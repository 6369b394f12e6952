"""
Repology version lookups.

Asks https://repology.org which version of a project is the newest one
packaged anywhere, so local PKGBUILDs can be checked for staleness.
"""

import asyncio
import logging

import httpx

from mpr_manager import __version__
from mpr_manager.core.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_REPOLOGY_INTERVAL, REPOLOGY_API_URL
from mpr_manager.core.errors import RepologyError
from mpr_manager.core.resilience import CircuitBreaker, ExponentialBackoff

logger = logging.getLogger(__name__)

SERVICE = "repology"

# Declared as `repology_pkgname=SKIP` by packages that should not be checked.
SKIP = "SKIP"


class RepologyClient:
    """
    Async Repology API client.

    Use as an async context manager, or pass in an existing httpx.AsyncClient
    (which the caller then owns).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = REPOLOGY_API_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        backoff: ExponentialBackoff | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        min_interval: float = DEFAULT_REPOLOGY_INTERVAL,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": f"mpr-manager/{__version__}"},
        )
        self.backoff = backoff or ExponentialBackoff(base_delay=1.0, max_delay=60.0, max_retries=3)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, timeout=300.0)
        self.min_interval = min_interval
        self._pace_lock = asyncio.Lock()
        self._last_request: float | None = None

    async def __aenter__(self) -> "RepologyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _wait_turn(self) -> None:
        """Space requests at least `min_interval` seconds apart, across all tasks."""
        async with self._pace_lock:
            loop = asyncio.get_running_loop()
            if self._last_request is not None:
                wait = self._last_request + self.min_interval - loop.time()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request = loop.time()

    async def _request(self, url: str, attempt: int = 0) -> httpx.Response:
        """GET `url`, retrying rate limits and transient connection errors."""
        if self.circuit_breaker.is_open(SERVICE):
            raise RepologyError("repology is unavailable (too many recent failures)")

        await self._wait_turn()
        try:
            resp = await self.client.get(url)
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            if self.backoff.should_retry(attempt):
                delay = self.backoff.calculate_delay(attempt)
                logger.debug(
                    f"Request failed ({type(e).__name__}), retry {attempt + 1} after {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                return await self._request(url, attempt + 1)
            self.circuit_breaker.record_failure(SERVICE)
            raise RepologyError(f"request to {url} failed after {attempt + 1} attempts: {e}") from e

        if resp.status_code == 429:
            if self.backoff.should_retry(attempt):
                retry_after = resp.headers.get("Retry-After")
                delay = self.backoff.calculate_delay(
                    attempt, float(retry_after) if retry_after and retry_after.isdigit() else None
                )
                logger.warning(f"Rate limited by repology. Waiting {delay:.1f}s...")
                await asyncio.sleep(delay)
                return await self._request(url, attempt + 1)
            self.circuit_breaker.record_failure(SERVICE)
            raise RepologyError(f"rate limited by repology: {url}")

        if resp.status_code != 200:
            self.circuit_breaker.record_failure(SERVICE)
            raise RepologyError(f"repology returned HTTP {resp.status_code} for {url}")

        self.circuit_breaker.record_success(SERVICE)
        return resp

    async def get_latest_version(self, pkgname: str) -> str:
        """
        Return the version Repology marks as newest for `pkgname`.

        Returns SKIP unchanged when the package opted out of checks.
        """
        if pkgname == SKIP:
            return SKIP

        resp = await self._request(f"{self.base_url}/{pkgname}")
        try:
            entries = resp.json()
        except ValueError as e:
            raise RepologyError(f"invalid JSON from repology for {pkgname}: {e}") from e

        versions = [
            entry["version"]
            for entry in entries
            if isinstance(entry, dict) and entry.get("status") == "newest" and "version" in entry
        ]
        if not versions:
            raise RepologyError(f"could not find any versions for package {pkgname}")

        logger.debug(f"[Repology] {pkgname}: newest is {versions[0]}")
        return versions[0]
