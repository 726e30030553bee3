# rfq_api/services/events.py
"""
Outbound marketplace events (rfq.created, rfq.distributed, rfq.quote_submitted).

Routes hand events to BackgroundTasks after the response is ready, so
delivery never blocks or fails a request. The realtime gateway subscribes
through the configured webhook; without one, events are only logged.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import structlog

from rfq_api.config import settings

logger = structlog.get_logger()
_std_logger = logging.getLogger(__name__)

RFQ_CREATED = "rfq.created"
RFQ_DISTRIBUTED = "rfq.distributed"
QUOTE_SUBMITTED = "rfq.quote_submitted"


class EventPublisher(ABC):
    @abstractmethod
    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class LogEventPublisher(EventPublisher):
    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        logger.info("event_published", topic=topic, **payload)


class _WebhookTransientError(Exception):
    """Wraps 5xx responses and connection errors that are safe to retry."""


class WebhookEventPublisher(EventPublisher):
    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    @retry(
        retry=retry_if_exception_type(_WebhookTransientError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        before_sleep=before_sleep_log(_std_logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, envelope: dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.url, json=envelope)
            except httpx.RequestError as exc:
                raise _WebhookTransientError(str(exc)) from exc
        if response.status_code >= 500:
            raise _WebhookTransientError(f"HTTP {response.status_code}")
        response.raise_for_status()

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        envelope = {
            "topic": topic,
            "payload": payload,
            "published_at": datetime.now(timezone.utc).isoformat(),
        }
        await self._post(envelope)
        logger.info("event_delivered", topic=topic, url=self.url)


def get_event_publisher() -> EventPublisher:
    """FastAPI dependency: webhook publisher when configured, log-only otherwise."""
    if settings.EVENT_WEBHOOK_URL:
        return WebhookEventPublisher(
            settings.EVENT_WEBHOOK_URL, timeout=settings.EVENT_WEBHOOK_TIMEOUT_SECONDS
        )
    return LogEventPublisher()


async def dispatch_event(
    publisher: EventPublisher, topic: str, payload: dict[str, Any]
) -> None:
    """Background-task entry point: delivery failures are logged, never raised."""
    try:
        await publisher.publish(topic, payload)
    except Exception as exc:
        logger.error("event_delivery_failed", topic=topic, error=str(exc))
