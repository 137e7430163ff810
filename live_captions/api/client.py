"""Async HTTP client for the realtime session-description exchange.

WHY: Starting a realtime session requires trading the local peer
connection's offer SDP for the service's answer SDP. That is the only
HTTP call in a session; everything afterwards flows over the peer
connection's data channel. This module keeps the HTTP details (auth,
content type, error mapping) away from the session driver.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. RealtimeClient is an
async context manager: enter it to get an authenticated client, exit to
close the connection pool. exchange_sdp() posts the offer as
application/sdp and returns the answer body verbatim.

RULES:
- Always use the async context manager (async with RealtimeClient() as client:)
- api_key defaults to load_api_key() from .env (ValueError if missing)
- Endpoint: POST {base_url}/realtime?model={model}
- Non-2xx responses raise RealtimeAPIError with status and body text
- Network failures surface as httpx.HTTPError (callers map to transport errors)
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from live_captions.config import OPENAI_BASE_URL, OPENAI_REALTIME_MODEL, load_api_key

logger = logging.getLogger(__name__)


class RealtimeAPIError(Exception):
    """Raised when the realtime service rejects the SDP exchange.

    RULES:
    - Always include status_code and message
    - message is the response body text
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Realtime API error: {status_code} {message}")


class RealtimeClient:
    """Async client for the realtime API's session-description endpoint.

    WHY: Provides a typed interface for the offer/answer exchange and
    handles auth and error wrapping.

    HOW: Wraps httpx.AsyncClient with Bearer token auth. A custom
    transport can be injected for tests (httpx.MockTransport).

    RULES:
    - Use as: async with RealtimeClient() as client: ...
    - base_url defaults to OPENAI_BASE_URL, model to OPENAI_REALTIME_MODEL
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self._model = model or OPENAI_REALTIME_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def model(self) -> str:
        return self._model

    async def __aenter__(self) -> RealtimeClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=httpx.Timeout(30.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "RealtimeClient must be used as an async context manager: "
                "async with RealtimeClient() as client: ..."
            )
        return self._client

    async def exchange_sdp(
        self,
        offer_sdp: str,
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Send the local offer SDP and return the service's answer SDP.

        Args:
            offer_sdp: The local session description (offer).
            on_status: Optional callback for status updates.

        Returns:
            The answer SDP text.

        Raises:
            RealtimeAPIError: On any non-2xx response.
        """
        client = self._ensure_client()
        if on_status:
            on_status(f"Connecting to Realtime API with model: {self._model}")
        logger.info("Exchanging session description with model %s", self._model)

        resp = await client.post(
            "/realtime",
            params={"model": self._model},
            content=offer_sdp.encode("utf-8"),
            headers={"Content-Type": "application/sdp"},
        )

        if resp.status_code not in (200, 201):
            logger.error("Realtime API error: %s %s", resp.status_code, resp.text)
            raise RealtimeAPIError(resp.status_code, resp.text)

        if on_status:
            on_status("Successfully connected to Realtime API")
        return resp.text


async def fetch_answer_sdp(offer_sdp: str, **client_kwargs) -> str:
    """One-shot helper: open a client, exchange the offer, close the client."""
    async with RealtimeClient(**client_kwargs) as client:
        return await client.exchange_sdp(offer_sdp)
