"""Sends the setup request to the gateway."""

from __future__ import annotations

import logging

import httpx

from src.punchout_orchestrator.config import DispatchConfig, EndpointConfig
from src.punchout_orchestrator.models import DispatchOutcome

logger = logging.getLogger(__name__)


class SetupRequestDispatcher:
    """Performs the single outbound POST of a setup request.

    Never retries.  Transport failures (DNS, refused connection, timeout)
    come back as a non-ok outcome without a response body.
    """

    def __init__(
        self,
        setup_url: str,
        timeout: float = 30.0,
        content_type: str = "text/xml",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.setup_url = setup_url
        self.timeout = timeout
        self.content_type = content_type
        self._client = client

    @classmethod
    def from_config(
        cls,
        endpoints: EndpointConfig,
        dispatch: DispatchConfig,
        client: httpx.AsyncClient | None = None,
    ) -> SetupRequestDispatcher:
        return cls(
            setup_url=endpoints.setup_url,
            timeout=dispatch.timeout,
            content_type=dispatch.content_type,
            client=client,
        )

    async def _post(self, client: httpx.AsyncClient, payload: str) -> httpx.Response:
        return await client.post(
            self.setup_url,
            content=payload.encode("utf-8"),
            headers={"Content-Type": self.content_type},
            timeout=self.timeout,
        )

    async def dispatch(self, payload: str) -> DispatchOutcome:
        """POST *payload* to the gateway and report the HTTP outcome."""
        try:
            if self._client is not None:
                resp = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await self._post(client, payload)
        except httpx.HTTPError as exc:
            logger.warning("Setup request to %s failed: %s", self.setup_url, exc)
            return DispatchOutcome(
                http_ok=False,
                error=f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__,
            )

        http_ok = resp.is_success
        logger.info(
            "Setup request to %s answered %d", self.setup_url, resp.status_code
        )
        return DispatchOutcome(
            http_ok=http_ok,
            http_status=resp.status_code,
            raw_response=resp.text,
            error=None if http_ok else f"Gateway returned HTTP {resp.status_code}",
        )
