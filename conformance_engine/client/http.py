"""aiohttp implementation of the evidence client."""

import logging
import time
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from conformance_engine.client.base import EvidenceClient, Exchange
from conformance_engine.client.config import ClientConfig

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class HttpEvidenceClient(EvidenceClient):
    """Evidence client talking to the server under test over HTTP."""

    config: ClientConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: ClientConfig
    ) -> AsyncGenerator["HttpEvidenceClient", None]:
        """Create client with managed session lifecycle."""
        base_url = config.base_url.rstrip("/") + "/"
        async with aiohttp.ClientSession(
            base_url=base_url,
            headers={"Accept": config.accept},
            timeout=aiohttp.ClientTimeout(total=config.timeout),
            connector=aiohttp.TCPConnector(ssl=config.verify_tls),
        ) as session:
            token = config.token.get_secret_value() if config.token else None
            yield cls(config=config, session=session, bearer_token=token)

    async def _perform(
        self,
        exchange_id: str,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: str | None,
    ) -> Exchange:
        """Send the request through the session and capture the response."""
        log.debug("%s %s (%s)", method, url, exchange_id)
        started = time.monotonic()

        async with self.session.request(
            method, url.lstrip("/"), headers=headers, data=body
        ) as response:
            text = await response.text()

        duration = time.monotonic() - started
        log.debug(
            "%s %s -> %d in %.2fs", method, url, response.status, duration
        )

        return Exchange(
            id=exchange_id,
            method=method,
            url=str(response.url),
            request_headers=dict(headers),
            request_body=body,
            status=response.status,
            headers=dict(response.headers),
            body=text,
            duration=duration,
        )
