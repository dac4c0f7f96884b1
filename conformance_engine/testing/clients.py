"""In-memory evidence client serving scripted responses."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from conformance_engine.client.base import EvidenceClient, Exchange


@dataclass(frozen=True, kw_only=True)
class ScriptedResponse:
    """Response returned for a scripted route."""

    status: int = 200
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(kw_only=True)
class ScriptedEvidenceClient(EvidenceClient):
    """Evidence client answering from a route table instead of the network.

    Routes are keyed by ``(method, url)`` where ``url`` is what the caller
    passed to :meth:`send`. Unknown routes answer 404. A route answering 401
    to requests without an Authorization header can be declared with
    ``requires_auth``.
    """

    routes: dict[tuple[str, str], ScriptedResponse] = field(default_factory=dict)
    requires_auth: bool = False

    def add(
        self,
        method: str,
        url: str,
        body: Any = None,
        status: int = 200,
    ) -> None:
        self.routes[(method.upper(), url)] = ScriptedResponse(status=status, body=body)

    async def _perform(
        self,
        exchange_id: str,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: str | None,
    ) -> Exchange:
        if self.requires_auth and "Authorization" not in headers:
            response = ScriptedResponse(status=401)
        else:
            response = self.routes.get((method, url), ScriptedResponse(status=404))

        if response.body is None or isinstance(response.body, str):
            text = response.body or ""
        else:
            text = json.dumps(response.body)

        return Exchange(
            id=exchange_id,
            method=method,
            url=url,
            request_headers=dict(headers),
            request_body=body,
            status=response.status,
            headers=dict(response.headers),
            body=text,
        )
