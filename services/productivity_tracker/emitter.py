"""
Klaviyo event emitter.

Sends one event per call to the Klaviyo Events API. Delivery is
best-effort: failures are logged with the response detail and raised to
the caller, nothing is retried.
"""

import logging
from typing import Dict, Any, Optional

import httpx

from config.settings import KlaviyoSettings, DeveloperSettings
from shared.events import ProfileIdentity, TrackerEvent, build_event_payload

logger = logging.getLogger(__name__)

EVENTS_PATH = "/api/events/"


class KlaviyoEventEmitter:
    """Format tracker events and post them to Klaviyo."""

    def __init__(
        self,
        api_key: str,
        profile: ProfileIdentity,
        metric_prefix: str = "developer_productivity",
        base_url: str = "https://a.klaviyo.com",
        revision: str = "2024-10-15",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.profile = profile
        self.metric_prefix = metric_prefix
        self.base_url = base_url.rstrip("/")
        self.revision = revision
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(
        cls,
        klaviyo: KlaviyoSettings,
        developer: DeveloperSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "KlaviyoEventEmitter":
        """Create an emitter from validated settings."""
        return cls(
            api_key=klaviyo.api_key.get_secret_value() if klaviyo.api_key else "",
            profile=ProfileIdentity.from_display_name(developer.email or "", developer.name),
            metric_prefix=klaviyo.metric_prefix,
            base_url=klaviyo.base_url,
            revision=klaviyo.revision,
            timeout=klaviyo.timeout,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}{EVENTS_PATH}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Klaviyo-API-Key {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "revision": self.revision,
        }

    async def emit(self, metric_name: str, properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one event.

        Returns the decoded response body ({} when Klaviyo answers 202 with
        no content). Raises httpx.HTTPStatusError on a non-2xx response and
        httpx.RequestError on network failure.
        """
        metric_name = getattr(metric_name, "value", metric_name)
        payload = build_event_payload(
            metric_name,
            properties or {},
            profile=self.profile,
            metric_prefix=self.metric_prefix,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=self.headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Error sending event '{metric_name}' to Klaviyo: "
                f"HTTP {e.response.status_code} - {e.response.text[:500]}"
            )
            raise
        except httpx.RequestError as e:
            logger.error(f"Error sending event '{metric_name}' to Klaviyo: {e}")
            raise

        logger.info(f"Event '{metric_name}' sent to Klaviyo successfully")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    async def send(self, event: TrackerEvent) -> Dict[str, Any]:
        """Send a TrackerEvent built by EventFactory."""
        return await self.emit(event.metric.value, event.properties)
