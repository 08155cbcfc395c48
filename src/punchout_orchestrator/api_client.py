"""Async REST client for the PunchOut backend and gateway.

Wraps the handful of endpoints the orchestrator consumes: audit-log
(network request) lookups, session lookups, setup-request templates,
deployed customer onboardings and test-result persistence.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from src.shared.errors import NotFoundError, TransportError, UpstreamError
from src.shared.models.punchout import (
    AuditEntry,
    CxmlTemplate,
    OnboardingRecord,
    PunchOutTestRecord,
    SessionRecord,
)

logger = logging.getLogger(__name__)


class PunchOutApiClient:
    """Client for the backend (``api_base_url``) and gateway REST APIs.

    Usage::

        async with PunchOutApiClient(api_url, gateway_url) as client:
            entries = await client.get_network_requests(session_key)

    An ``httpx.AsyncClient`` may be injected; it is then left open on
    :meth:`aclose` so the caller keeps ownership.
    """

    def __init__(
        self,
        api_base_url: str,
        gateway_base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_base_url = api_base_url.rstrip("/")
        self.gateway_base_url = gateway_base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout, headers={"Accept": "application/json"}
        )

    async def __aenter__(self) -> PunchOutApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and map failures onto the shared error types.

        Raises:
            TransportError: The service could not be reached.
            NotFoundError: The service answered 404.
            UpstreamError: Any other non-2xx answer.
        """
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if resp.status_code == 404:
            raise NotFoundError(f"{method} {url} returned 404")
        if resp.status_code >= 400:
            raise UpstreamError(
                f"{method} {url} returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        """Decode a JSON body; an empty body decodes to ``None``."""
        if not resp.content.strip():
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(f"Unreadable JSON from {resp.request.url}") from exc

    # ------------------------------------------------------------------
    # Backend
    # ------------------------------------------------------------------

    async def get_network_requests(self, session_key: str) -> list[AuditEntry]:
        """Return the audit entries recorded for *session_key*, in backend order."""
        url = f"{self.api_base_url}/v1/sessions/{session_key}/network-requests"
        data = self._json(await self._request("GET", url))
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamError(f"Expected a list of network requests from {url}")
        try:
            return [AuditEntry.model_validate(item) for item in data]
        except ValidationError as exc:
            raise UpstreamError(f"Malformed network request from {url}: {exc}") from exc

    async def get_session(self, session_key: str) -> SessionRecord:
        """Return the session record for *session_key*."""
        url = f"{self.api_base_url}/v1/sessions/{session_key}"
        data = self._json(await self._request("GET", url))
        if not isinstance(data, dict):
            raise UpstreamError(f"Expected a session object from {url}")
        data.setdefault("sessionKey", session_key)
        try:
            return SessionRecord.model_validate(data)
        except ValidationError as exc:
            raise UpstreamError(f"Malformed session from {url}: {exc}") from exc

    async def create_test(self, record: PunchOutTestRecord) -> dict[str, Any]:
        """Persist a test result and return the stored representation."""
        url = f"{self.api_base_url}/v1/punchout-tests"
        resp = await self._request("POST", url, json=record.to_wire())
        data = self._json(resp)
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Gateway
    # ------------------------------------------------------------------

    async def _get_template(self, url: str) -> CxmlTemplate | None:
        try:
            data = self._json(await self._request("GET", url))
        except NotFoundError:
            return None
        if not isinstance(data, dict):
            return None
        try:
            return CxmlTemplate.model_validate(data)
        except ValidationError as exc:
            raise UpstreamError(f"Malformed template from {url}: {exc}") from exc

    async def get_customer_template(
        self, environment: str, customer_id: str
    ) -> CxmlTemplate | None:
        """Return the template scoped to (*environment*, *customer_id*), if any."""
        return await self._get_template(
            f"{self.gateway_base_url}/cxml-templates/environment/"
            f"{environment}/customer/{customer_id}"
        )

    async def get_default_template(self, environment: str) -> CxmlTemplate | None:
        """Return the default template for *environment*, if any."""
        return await self._get_template(
            f"{self.gateway_base_url}/cxml-templates/environment/{environment}/default"
        )

    async def list_deployed_onboardings(self) -> list[OnboardingRecord]:
        """Return every customer onboarding currently deployed on the gateway."""
        url = f"{self.gateway_base_url}/api/onboarding/deployed"
        data = self._json(await self._request("GET", url))
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamError(f"Expected a list of onboardings from {url}")
        records: list[OnboardingRecord] = []
        for item in data:
            try:
                records.append(OnboardingRecord.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed onboarding from %s: %s", url, exc)
        return records
