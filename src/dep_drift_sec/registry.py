"""npm registry metadata fetching via httpx."""

import asyncio
import json
import logging
import os
from collections.abc import Iterable
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from dep_drift_sec.models import RegistryMetadata

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_CONCURRENCY = 16


def _timeout_from_env() -> float:
    raw = os.environ.get("DEP_DRIFT_SEC_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid DEP_DRIFT_SEC_TIMEOUT=%r", raw)
        return DEFAULT_TIMEOUT


class NpmRegistryFetcher:
    """Fetches package metadata (packuments) from an npm registry.

    A lookup that fails for any reason yields ``None`` for that name;
    callers treat it as "no metadata", never as an error.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self.base_url = (
            base_url or os.environ.get("NPM_REGISTRY_URL") or DEFAULT_REGISTRY_URL
        ).rstrip("/")
        self.token = token or os.environ.get("NPM_TOKEN") or None
        self.timeout = timeout if timeout is not None else _timeout_from_env()
        self.max_concurrency = max(1, max_concurrency)
        self._client: Optional[httpx.AsyncClient] = None

    # ── HTTP plumbing ─────────────────────────────────────────────────────

    @property
    def headers(self) -> dict[str, str]:
        h: dict[str, str] = {"Accept": "application/json"}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    async def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                # The per-request limit must not cover waiting for a pooled connection.
                timeout=httpx.Timeout(self.timeout, pool=None),
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def package_path(name: str) -> str:
        """Registry path for a package; scoped names keep ``@`` and encode ``/``."""
        return "/" + quote(name, safe="@")

    # ── Lookups ───────────────────────────────────────────────────────────

    async def fetch_metadata(self, name: str) -> Optional[RegistryMetadata]:
        """Fetch one packument, or None if it is missing or unreadable."""
        client = await self._client_instance()
        try:
            resp = await client.get(self.package_path(name))
        except httpx.HTTPError as e:
            logger.warning("Registry request for %s failed: %s", name, e)
            return None

        if resp.status_code != 200:
            logger.debug("Registry returned %d for %s", resp.status_code, name)
            return None

        try:
            return RegistryMetadata.model_validate(resp.json())
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unreadable registry metadata for %s: %s", name, e)
            return None

    async def fetch_all(self, names: Iterable[str]) -> dict[str, RegistryMetadata]:
        """Fetch metadata for every name concurrently; failures are omitted."""
        unique = list(dict.fromkeys(names))
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(name: str) -> Optional[RegistryMetadata]:
            async with semaphore:
                return await self.fetch_metadata(name)

        results = await asyncio.gather(
            *(bounded(name) for name in unique),
            return_exceptions=True,
        )

        metadata: dict[str, RegistryMetadata] = {}
        for name, result in zip(unique, results):
            if isinstance(result, BaseException):
                logger.warning("Metadata lookup for %s raised: %s", name, result)
            elif result is not None:
                metadata[name] = result
        logger.info("Fetched registry metadata for %d of %d packages", len(metadata), len(unique))
        return metadata
