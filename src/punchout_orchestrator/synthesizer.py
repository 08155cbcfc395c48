"""Setup-request synthesis from stored or built-in templates.

Template resolution is a uniform three-tier lookup:

    customer template → environment default → built-in skeleton

Placeholders use the ``{{NAME}}`` form and are replaced literally,
every occurrence, in any order.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Protocol

from src.punchout_orchestrator.models import (
    CustomerContext,
    SynthesizedRequest,
    TemplateOrigin,
)
from src.shared.errors import AppError
from src.shared.models.punchout import CxmlTemplate
from src.shared.utils import epoch_millis, iso_millis, utc_now

logger = logging.getLogger(__name__)

PLACEHOLDERS: tuple[str, ...] = (
    "PAYLOAD_ID",
    "TIMESTAMP",
    "SESSION_KEY",
    "BUYER_ID",
    "DOMAIN",
    "CUSTOMER_NAME",
    "ENVIRONMENT",
)

BUILT_IN_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<cXML payloadID="{{PAYLOAD_ID}}" timestamp="{{TIMESTAMP}}">
  <Header>
    <From>
      <Credential domain="NetworkID">
        <Identity>{{BUYER_ID}}</Identity>
      </Credential>
    </From>
    <To>
      <Credential domain="NetworkID">
        <Identity>supplier456</Identity>
      </Credential>
    </To>
    <Sender>
      <Credential domain="NetworkID">
        <Identity>{{DOMAIN}}</Identity>
        <SharedSecret>secret123</SharedSecret>
      </Credential>
      <UserAgent>BuyerApp 1.0</UserAgent>
    </Sender>
  </Header>
  <Request>
    <PunchOutSetupRequest operation="create">
      <BuyerCookie>{{SESSION_KEY}}</BuyerCookie>
      <Extrinsic name="User">developer@waters.com</Extrinsic>
      <Extrinsic name="Environment">{{ENVIRONMENT}}</Extrinsic>
      <Extrinsic name="CustomerName">{{CUSTOMER_NAME}}</Extrinsic>
      <BrowserFormPost>
        <URL>https://{{DOMAIN}}/punchout/return</URL>
      </BrowserFormPost>
      <Contact role="buyer">
        <Name xml:lang="en">Developer Test</Name>
        <Email>developer@waters.com</Email>
      </Contact>
    </PunchOutSetupRequest>
  </Request>
</cXML>"""


class TemplateSource(Protocol):
    """Where stored templates come from (normally the gateway)."""

    async def get_customer_template(
        self, environment: str, customer_id: str
    ) -> CxmlTemplate | None:
        ...

    async def get_default_template(self, environment: str) -> CxmlTemplate | None:
        ...


def make_session_key(environment: str, customer_id: str, now: datetime) -> str:
    """Build the per-attempt correlation token.

    Format: ``SESSION_{ENVIRONMENT}_{customerId}_{epochMillis}``.
    """
    return f"SESSION_{environment.upper()}_{customer_id}_{epoch_millis(now)}"


def payload_id_for(session_key: str) -> str:
    """Derive a six-digit payload id from the correlation token."""
    digest = hashlib.sha256(session_key.encode("utf-8")).hexdigest()
    return str(int(digest, 16) % 1_000_000)


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{NAME}}`` occurrence for each name in *values*."""
    rendered = template
    for name, value in values.items():
        rendered = rendered.replace("{{" + name + "}}", value)
    return rendered


def placeholder_values(
    customer: CustomerContext,
    environment: str,
    session_key: str,
    now: datetime,
) -> dict[str, str]:
    """Return the substitution value for every supported placeholder."""
    return {
        "PAYLOAD_ID": payload_id_for(session_key),
        "TIMESTAMP": iso_millis(now),
        "SESSION_KEY": session_key,
        "BUYER_ID": customer.buyer_id,
        "DOMAIN": customer.domain,
        "CUSTOMER_NAME": customer.name,
        "ENVIRONMENT": environment,
    }


def synthesize_payload(
    template: str,
    customer: CustomerContext,
    environment: str,
    now: datetime,
) -> tuple[str, str]:
    """Render *template* for one attempt at time *now*.

    Returns:
        ``(payload, session_key)``.
    """
    session_key = make_session_key(environment, customer.customer_id, now)
    values = placeholder_values(customer, environment, session_key, now)
    return render_template(template, values), session_key


class PayloadSynthesizer:
    """Builds setup requests, resolving the template through three tiers."""

    def __init__(
        self,
        templates: TemplateSource | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._templates = templates
        self._clock = clock

    async def resolve_template(
        self, customer: CustomerContext, environment: str
    ) -> tuple[str, TemplateOrigin]:
        """Return the template text and the tier that supplied it.

        A lookup that fails with a transport or upstream error falls
        through to the next tier.
        """
        if self._templates is not None:
            lookups = (
                (
                    TemplateOrigin.CUSTOMER,
                    lambda: self._templates.get_customer_template(
                        environment, customer.customer_id
                    ),
                ),
                (
                    TemplateOrigin.ENVIRONMENT,
                    lambda: self._templates.get_default_template(environment),
                ),
            )
            for origin, lookup in lookups:
                try:
                    template = await lookup()
                except AppError as exc:
                    logger.warning(
                        "Template lookup (%s) failed for %s/%s: %s",
                        origin.value, environment, customer.customer_id, exc.detail,
                    )
                    continue
                if template is not None and template.cxml_template:
                    return template.cxml_template, origin

        return BUILT_IN_TEMPLATE, TemplateOrigin.BUILT_IN

    async def synthesize(
        self, customer: CustomerContext, environment: str
    ) -> SynthesizedRequest:
        """Produce a fresh setup request and correlation token."""
        template, origin = await self.resolve_template(customer, environment)
        payload, session_key = synthesize_payload(
            template, customer, environment, self._clock()
        )
        logger.info(
            "Synthesized setup request for %s/%s from %s template (session %s)",
            environment, customer.customer_id, origin.value, session_key,
        )
        return SynthesizedRequest(
            payload=payload, session_key=session_key, template_origin=origin
        )
