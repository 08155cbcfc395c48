"""PunchOut backend and gateway Pydantic v2 wire models.

Python attributes are snake_case; the REST services speak camelCase, so
every multi-word field carries an alias.  Unknown fields are ignored.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.shared.constants import (
    AUTH_SERVICE,
    CATALOG_DESTINATIONS,
    STATUS_FAILED,
    STATUS_SUCCESS,
)

_WIRE_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class Direction(str, Enum):
    """Direction of an audited call relative to the gateway."""
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class TestStatus(str, Enum):
    """Status written to a persisted PunchOut test record."""
    __test__ = False

    SUCCESS = STATUS_SUCCESS
    FAILED = STATUS_FAILED


class AuditEntry(BaseModel):
    """One network request the backend logged for a session."""
    id: str | None = None
    session_key: str | None = Field(default=None, alias="sessionKey")
    request_id: str | None = Field(default=None, alias="requestId")
    timestamp: str | None = None
    direction: Direction
    source: str | None = None
    destination: str
    method: str | None = None
    url: str | None = None
    status_code: int | None = Field(default=None, alias="statusCode")
    request_body: str | None = Field(default=None, alias="requestBody")
    response_body: str | None = Field(default=None, alias="responseBody")
    duration: int | None = None
    request_type: str | None = Field(default=None, alias="requestType")
    success: bool = False
    error_message: str | None = Field(default=None, alias="errorMessage")

    model_config = _WIRE_CONFIG

    @property
    def is_auth_success(self) -> bool:
        return self.destination == AUTH_SERVICE and self.success

    @property
    def is_catalog_call(self) -> bool:
        return self.destination in CATALOG_DESTINATIONS

    @property
    def is_catalog_success(self) -> bool:
        return self.is_catalog_call and self.success


class SessionRecord(BaseModel):
    """A PunchOut session as stored by the backend."""
    session_key: str = Field(alias="sessionKey")
    catalog: str | None = None
    environment: str | None = None
    route_name: str | None = Field(default=None, alias="routeName")
    operation: str | None = None
    network: str | None = None
    buyer_cookie: str | None = Field(default=None, alias="buyerCookie")

    model_config = _WIRE_CONFIG


class CxmlTemplate(BaseModel):
    """A stored setup-request template."""
    id: str | None = None
    template_name: str | None = Field(default=None, alias="templateName")
    environment: str | None = None
    customer_id: str | None = Field(default=None, alias="customerId")
    customer_name: str | None = Field(default=None, alias="customerName")
    cxml_template: str = Field(default="", alias="cxmlTemplate")
    description: str | None = None
    is_default: bool = Field(default=False, alias="isDefault")

    model_config = _WIRE_CONFIG


class OnboardingRecord(BaseModel):
    """A customer onboarding deployed on the gateway."""
    id: str
    customer_name: str = Field(alias="customerName")
    customer_type: str | None = Field(default=None, alias="customerType")
    network: str = ""
    environment: str
    sample_cxml: str | None = Field(default=None, alias="sampleCxml")
    target_json: str | None = Field(default=None, alias="targetJson")
    status: str | None = None
    deployed: bool | None = None

    model_config = _WIRE_CONFIG


class PunchOutTestRecord(BaseModel):
    """A test execution persisted through ``POST /v1/punchout-tests``."""
    __test__ = False

    test_name: str = Field(alias="testName")
    environment: str
    tester: str
    test_date: str = Field(alias="testDate")
    status: TestStatus
    session_key: str | None = Field(default=None, alias="sessionKey")
    catalog_url: str | None = Field(default=None, alias="catalogUrl")
    setup_request: str | None = Field(default=None, alias="setupRequest")
    setup_response: str | None = Field(default=None, alias="setupResponse")
    error_message: str | None = Field(default=None, alias="errorMessage")
    total_duration: int | None = Field(default=None, alias="totalDuration")
    notes: str | None = None
    catalog_route_id: str | None = Field(default=None, alias="catalogRouteId")
    catalog_route_name: str | None = Field(default=None, alias="catalogRouteName")

    model_config = _WIRE_CONFIG

    def to_wire(self) -> dict[str, Any]:
        """Serialise for the backend: camelCase keys, ``None`` omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
