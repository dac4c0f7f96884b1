"""Abstract base class for evidence-capturing clients."""

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, kw_only=True)
class Exchange:
    """One recorded request/response pair.

    The ``id`` is what results reference as their evidence.
    """

    id: str
    method: str
    url: str
    request_headers: Mapping[str, str] = field(default_factory=dict)
    request_body: str | None = None
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    duration: float = 0.0

    def json(self) -> Any:
        """Decode the response body as JSON.

        Raises:
            ValueError: If the body is not valid JSON

        """
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Response to {self.method} {self.url} is not valid JSON: {e}"
            ) from e


@dataclass(kw_only=True)
class EvidenceClient(ABC):
    """Abstract client the test bodies use to talk to the server under test.

    Every exchange is appended to ``transcript`` so results can point at the
    request and response they are based on.
    """

    transcript: list[Exchange] = field(default_factory=list)
    bearer_token: str | None = field(default=None, repr=False)

    @abstractmethod
    async def _perform(
        self,
        exchange_id: str,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: str | None,
    ) -> Exchange:
        """Perform the request and return the recorded exchange.

        Args:
            exchange_id: Id to give the recorded exchange
            method: HTTP method
            url: Absolute URL or path relative to the server base URL
            headers: Request headers, authorization included
            body: Serialized request body

        Returns:
            The recorded exchange

        """

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: str | Mapping[str, Any] | Sequence[Any] | None = None,
    ) -> Exchange:
        """Send a request and record it in the transcript."""
        request_headers = dict(headers or {})
        if self.bearer_token and "Authorization" not in request_headers:
            request_headers["Authorization"] = f"Bearer {self.bearer_token}"

        payload: str | None
        if body is None or isinstance(body, str):
            payload = body
        else:
            payload = json.dumps(body)
            request_headers.setdefault("Content-Type", "application/json")

        exchange_id = f"exchange-{len(self.transcript) + 1}"
        exchange = await self._perform(
            exchange_id, method.upper(), url, request_headers, payload
        )
        self.transcript.append(exchange)
        return exchange

    def set_no_auth(self) -> None:
        """Send subsequent requests without an Authorization header."""
        self.bearer_token = None

    def set_bearer(self, token: str) -> None:
        """Send subsequent requests with a bearer token."""
        self.bearer_token = token

    @property
    def last_exchange(self) -> Exchange | None:
        return self.transcript[-1] if self.transcript else None

    def exchange(self, exchange_id: str) -> Exchange:
        """Look up a recorded exchange by id.

        Raises:
            KeyError: If no exchange with that id was recorded

        """
        for recorded in self.transcript:
            if recorded.id == exchange_id:
                return recorded
        raise KeyError(exchange_id)
