"""Notification port implementations - structured log and webhook with retry"""

import logging
import time
from typing import Optional

import httpx

from gestor_finance.config import settings
from gestor_finance.infrastructure.observability.metrics import (
    notification_counter,
    webhook_failure_counter,
    webhook_latency_histogram,
)


class LoggingNotifier:
    """Emit notifications as structured log lines"""

    def notify_success(self, message: str) -> None:
        notification_counter.labels(outcome="success").inc()
        logging.info(message, extra={"notification": "success"})

    def notify_error(self, message: str) -> None:
        notification_counter.labels(outcome="error").inc()
        logging.warning(message, extra={"notification": "error"})


class WebhookNotifier(LoggingNotifier):
    """Log notifications and also POST them to a webhook, never raising"""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.client = client or httpx.Client(timeout=settings.http_timeout_seconds)
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base

    def notify_success(self, message: str) -> None:
        super().notify_success(message)
        self._deliver({"level": "success", "message": message})

    def notify_error(self, message: str) -> None:
        super().notify_error(message)
        self._deliver({"level": "error", "message": message})

    def _deliver(self, payload: dict) -> bool:
        """
        POST the notification with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1)
        - Retries on HTTP status errors and network failures
        - Gives up silently (logged) after max_retries attempts

        Returns:
            True when the webhook acknowledged the payload
        """
        attempt = 0
        while attempt < self.max_retries:
            try:
                with webhook_latency_histogram.time():
                    response = self.client.post(self.webhook_url, json=payload)
                    response.raise_for_status()
                    return True

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                attempt += 1
                webhook_failure_counter.inc()

                if attempt >= self.max_retries:
                    logging.error(f"Notification webhook failed after {attempt} attempts: {e}")
                    return False

                backoff = self.backoff_base * (2 ** (attempt - 1))
                time.sleep(backoff)

        return False


def build_notifier() -> LoggingNotifier:
    """Webhook notifier when a URL is configured, plain log notifier otherwise"""
    if settings.notification_webhook_url:
        return WebhookNotifier()
    return LoggingNotifier()
