"""
Rendering-library loading.

A load is a coroutine that either returns an opaque LibraryHandle for the
requested version or raises VersionLoadFailure. unload() releases whatever a
previous load left behind before the next one starts.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import httpx

from boardide.errors import VersionLoadFailure
from boardide.logging import logger


@dataclass(frozen=True)
class LibraryHandle:
    version: str
    url: str
    source: str = field(repr=False)


class VersionLoader(Protocol):
    async def load(self, version: str) -> LibraryHandle: ...

    async def unload(self, handle: LibraryHandle) -> None: ...


class HttpLibraryLoader:
    """Downloads the library script for a version from a URL template."""

    def __init__(self, url_template: str, *, timeout: float = 15.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if "{version}" not in url_template:
            raise ValueError("url_template must contain a {version} placeholder")
        self.url_template = url_template
        self.timeout = timeout
        self._transport = transport
        self._cache: Dict[str, LibraryHandle] = {}
        self.active: Optional[LibraryHandle] = None

    async def load(self, version: str) -> LibraryHandle:
        handle = self._cache.get(version)
        if handle is None:
            handle = await self._fetch(version)
            self._cache[version] = handle
        self.active = handle
        logger.info(f"Board library {version} ready ({len(handle.source)} chars)")
        return handle

    async def unload(self, handle: LibraryHandle) -> None:
        if self.active is handle:
            self.active = None
        logger.debug(f"Unloaded board library {handle.version}")

    async def _fetch(self, version: str) -> LibraryHandle:
        url = self.url_template.format(version=version)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
        except (httpx.HTTPStatusError, httpx.TimeoutException, httpx.TransportError) as exc:
            logger.warning(f"Library download failed for {version}: {exc}")
            raise VersionLoadFailure(version, str(exc)) from exc
        if not response.text.strip():
            raise VersionLoadFailure(version, "empty library script")
        return LibraryHandle(version=version, url=url, source=response.text)
